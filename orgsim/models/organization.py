"""Organization-wide configuration: background models, schedule, communication, run seed."""

from datetime import date
from enum import Enum
from pathlib import Path
from typing import Dict, Optional

from pydantic import BaseModel, Field

from orgsim.models.common import CommunicationMedium
from orgsim.models.knowledge import BeliefWeightLevel, RandomGenerator
from orgsim.models.murphy import MurphiesConfig


class ModelEntity(BaseModel):
    """A background model switch and the share of agents it applies to."""

    on: bool = False
    rate_of_agents_on: float = Field(ge=0, le=1, default=1.0)


class OrganizationModels(BaseModel):
    learning: ModelEntity = ModelEntity()
    forgetting: ModelEntity = ModelEntity()
    influence: ModelEntity = ModelEntity()
    beliefs: ModelEntity = ModelEntity()
    knowledge: ModelEntity = ModelEntity()
    interaction_sphere: ModelEntity = ModelEntity()
    generator: RandomGenerator = RandomGenerator.RANDOM_UNIFORM
    impact_of_belief_on_task: BeliefWeightLevel = BeliefWeightLevel.RANDOM_WEIGHT
    intraday: float = Field(gt=0, default=0.01)   # Time spent per call in intraday mode

    def on(self, rate: float = 1.0) -> None:
        for entity in (
            self.learning, self.forgetting, self.influence,
            self.beliefs, self.knowledge, self.interaction_sphere,
        ):
            entity.on = True
            entity.rate_of_agents_on = rate

    def off(self) -> None:
        for entity in (
            self.learning, self.forgetting, self.influence,
            self.beliefs, self.knowledge, self.interaction_sphere,
        ):
            entity.on = False


class TimeStepType(str, Enum):
    DAILY = "daily"
    INTRADAY = "intraday"


class ScheduleConfig(BaseModel):
    """Maps steps to calendar days. Step 0 is `start_date`."""

    time_step_type: TimeStepType = TimeStepType.DAILY
    start_date: date = date(2020, 1, 6)          # A Monday
    working_days: str = "* * * * 1-5"            # Cron expression matched against each day


class CommunicationTemplate(BaseModel):
    """Time cost and lifetime of one communication medium."""

    cost_to_send: float = Field(ge=0, default=0.01)
    cost_to_receive: float = Field(ge=0, default=0.01)
    time_to_live: int = -1                       # Steps a message-task stays in a queue


def _default_templates() -> Dict[CommunicationMedium, CommunicationTemplate]:
    return {
        CommunicationMedium.SYSTEM: CommunicationTemplate(cost_to_send=0, cost_to_receive=0),
        CommunicationMedium.EMAIL: CommunicationTemplate(
            cost_to_send=0.02, cost_to_receive=0.01, time_to_live=5
        ),
        CommunicationMedium.FACE_TO_FACE: CommunicationTemplate(
            cost_to_send=0.05, cost_to_receive=0.05, time_to_live=1
        ),
        CommunicationMedium.MEETING: CommunicationTemplate(
            cost_to_send=0.1, cost_to_receive=0.1, time_to_live=1
        ),
        CommunicationMedium.PHONE: CommunicationTemplate(
            cost_to_send=0.03, cost_to_receive=0.03, time_to_live=1
        ),
        CommunicationMedium.VIA_A_PLATFORM: CommunicationTemplate(
            cost_to_send=0.02, cost_to_receive=0.01, time_to_live=10
        ),
        CommunicationMedium.IRC: CommunicationTemplate(
            cost_to_send=0.01, cost_to_receive=0.01, time_to_live=1
        ),
    }


class CommunicationConfig(BaseModel):
    templates: Dict[CommunicationMedium, CommunicationTemplate] = Field(
        default_factory=_default_templates
    )

    def template(self, medium: CommunicationMedium) -> CommunicationTemplate:
        return self.templates.get(medium) or CommunicationTemplate()

    def time_spent(self, medium: CommunicationMedium, send: bool) -> float:
        template = self.template(medium)
        return template.cost_to_send if send else template.cost_to_receive


class SimulationConfig(BaseModel):
    """Everything needed to set up a run."""

    seed: Optional[int] = 0
    murphies: MurphiesConfig = MurphiesConfig()
    models: OrganizationModels = OrganizationModels()
    schedule: ScheduleConfig = ScheduleConfig()
    communication: CommunicationConfig = CommunicationConfig()

    @classmethod
    def from_json_file(cls, path: str) -> "SimulationConfig":
        """Load a configuration from a JSON document."""
        return cls.model_validate_json(Path(path).read_text())
