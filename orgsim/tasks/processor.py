"""
Task Processor — an agent's queue of to-do, in-progress, done and
cancelled tasks.

Behavioral Contract:
- receive(step) hands out each schedulable task at most once per step and
  returns None when there is no more work for this step.
- Message tasks never count against the task limits.
- Subscribers of an event are called in registration order.
"""

import logging
from enum import Enum
from typing import Callable, Dict, List, Optional

from orgsim.errors import InvalidArgumentError
from orgsim.models.agent import TasksLimit
from orgsim.models.common import AgentId
from orgsim.tasks.task import SimTask

logger = logging.getLogger("orgsim.tasks")


class TaskEvent(str, Enum):
    DONE = "done"
    CANCELLED = "cancelled"
    IN_PROGRESS = "in_progress"
    PRIORITIZE = "prioritize"


class TaskProcessor:
    """Queue of one agent's tasks."""

    def __init__(self, agent_id: AgentId, tasks_limit: Optional[TasksLimit] = None):
        self.agent_id = agent_id
        self.tasks_limit = tasks_limit or TasksLimit()
        self.to_do: List[SimTask] = []
        self.in_progress: List[SimTask] = []
        self.done: List[SimTask] = []
        self.cancelled: List[SimTask] = []
        self.total_tasks = 0
        self._received: Dict[str, int] = {}   # task id -> step it was last received
        self._subscribers: Dict[TaskEvent, List[Callable]] = {e: [] for e in TaskEvent}

    # --- Subscriptions ---

    def subscribe(self, event: TaskEvent, callback: Callable) -> None:
        """
        Register a callback. DONE, CANCELLED and IN_PROGRESS callbacks get the
        task; PRIORITIZE callbacks get a list of tasks and may return it reordered.
        """
        self._subscribers[event].append(callback)

    def _notify(self, event: TaskEvent, task: SimTask) -> None:
        for callback in self._subscribers[event]:
            callback(task)

    def _prioritize(self, tasks: List[SimTask]) -> List[SimTask]:
        for callback in self._subscribers[TaskEvent.PRIORITIZE]:
            ordered = callback(list(tasks))
            if ordered is not None:
                tasks = ordered
        return tasks

    # --- Limits ---

    @property
    def has_reached_total_maximum_limit(self) -> bool:
        return (
            self.tasks_limit.limit_total_tasks
            and self.total_tasks >= self.tasks_limit.maximum_total_tasks
        )

    def _can_start_new_task(self, task: SimTask) -> bool:
        if task.is_message or not self.tasks_limit.limit_simultaneous_tasks:
            return True
        working = sum(1 for t in self.in_progress if not t.is_message)
        return working < self.tasks_limit.maximum_simultaneous_tasks

    # --- Operations ---

    def post(self, task: SimTask) -> bool:
        """Enqueue a task. Returns False when the task is rejected."""
        if task is None:
            raise InvalidArgumentError("task is required")
        if task.is_cancelled_by(self.agent_id) or self.contains(task):
            return False
        task.assigned = self.agent_id
        self.to_do.append(task)
        if not task.is_message:
            self.total_tasks += 1
        return True

    def receive(self, step: int) -> Optional[SimTask]:
        """Next task to work on this step, or None when there is none."""
        self.in_progress = self._prioritize(self.in_progress)
        self.to_do = self._prioritize(self.to_do)

        for task in self.in_progress:
            if self._received.get(task.id) != step:
                self._received[task.id] = step
                return task

        for task in self.to_do:
            if self._received.get(task.id) == step or not self._can_start_new_task(task):
                continue
            self.to_do.remove(task)
            self.in_progress.append(task)
            self._received[task.id] = step
            self._notify(TaskEvent.IN_PROGRESS, task)
            return task

        return None

    def set_done(self, task: SimTask) -> None:
        if task is None:
            raise InvalidArgumentError("task is required")
        self._remove_active(task)
        task.work_to_do = 0.0
        self.done.append(task)
        self._notify(TaskEvent.DONE, task)

    def cancel(self, task: SimTask) -> None:
        if task is None:
            raise InvalidArgumentError("task is required")
        if task.is_cancelled_by(self.agent_id):
            return
        self._remove_active(task)
        task.cancel(self.agent_id)
        self.cancelled.append(task)
        self._notify(TaskEvent.CANCELLED, task)

    def tasks_check(self, step: int) -> List[SimTask]:
        """Cancel every active task whose time to live has expired."""
        expired = [t for t in self.to_do + self.in_progress if t.is_expired(step)]
        for task in expired:
            logger.debug("Task %s of %s expired at step %d", task.id, self.agent_id, step)
            self.cancel(task)
        return expired

    def _remove_active(self, task: SimTask) -> None:
        if task in self.to_do:
            self.to_do.remove(task)
        if task in self.in_progress:
            self.in_progress.remove(task)
        self._received.pop(task.id, None)

    def contains(self, task: SimTask) -> bool:
        return any(t is task for t in self.to_do + self.in_progress + self.done + self.cancelled)

    @property
    def active(self) -> List[SimTask]:
        return self.in_progress + self.to_do

    def stats(self) -> dict:
        return {
            "to_do": len(self.to_do),
            "in_progress": len(self.in_progress),
            "done": len(self.done),
            "cancelled": len(self.cancelled),
            "total": self.total_tasks,
        }
