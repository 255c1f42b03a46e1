"""
Schedule — maps simulation steps to calendar days.

Working days are those matched by a cron expression, evaluated with
croniter at midnight of each day.
"""

from datetime import date, datetime, time, timedelta
from typing import Optional

from croniter import croniter

from orgsim.errors import InvalidArgumentError
from orgsim.models.organization import ScheduleConfig, TimeStepType


class Schedule:
    def __init__(self, config: Optional[ScheduleConfig] = None):
        self.config = config or ScheduleConfig()
        if not croniter.is_valid(self.config.working_days):
            raise InvalidArgumentError(f"invalid working days expression: {self.config.working_days}")
        self.step = 0

    @property
    def type(self) -> TimeStepType:
        return self.config.time_step_type

    @property
    def is_intraday(self) -> bool:
        return self.config.time_step_type == TimeStepType.INTRADAY

    def day_of(self, step: int) -> date:
        return self.config.start_date + timedelta(days=step)

    def is_working_day(self, step: Optional[int] = None) -> bool:
        step = self.step if step is None else step
        moment = datetime.combine(self.day_of(step), time.min)
        return bool(croniter.match(self.config.working_days, moment))

    def next(self) -> int:
        self.step += 1
        return self.step
