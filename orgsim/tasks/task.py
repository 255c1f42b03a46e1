"""
Task — the unit of work an agent performs.

A task carries its knowledge requirements split into mandatory and required
bits, its blockers, and the worst impact level any guess had on it.
"""

from typing import Dict, Iterable, List, Optional
from uuid import uuid4

from orgsim.errors import NotFoundError
from orgsim.models.common import TOLERANCE, AgentId
from orgsim.models.murphy import ImpactLevel
from orgsim.tasks.blockers import BlockerCollection


class TaskKnowledgeBits:
    """Bit indexes of one knowledge topic a task needs."""

    def __init__(self, knowledge_id: int, mandatory: Iterable[int] = (), required: Iterable[int] = ()):
        self.knowledge_id = knowledge_id
        self.mandatory: List[int] = list(mandatory)
        self.required: List[int] = list(required)

    def remove_first_mandatory(self) -> Optional[int]:
        return self.mandatory.pop(0) if self.mandatory else None

    def remove_first_required(self) -> Optional[int]:
        return self.required.pop(0) if self.required else None

    def to_dict(self) -> dict:
        return {
            "knowledge_id": self.knowledge_id,
            "mandatory": list(self.mandatory),
            "required": list(self.required),
        }


class TaskKnowledgesBits:
    """Knowledge requirements of a task, per knowledge id."""

    def __init__(self):
        self._bits: Dict[int, TaskKnowledgeBits] = {}

    def add(self, bits: TaskKnowledgeBits) -> None:
        self._bits[bits.knowledge_id] = bits

    def get_bits(self, knowledge_id: int) -> TaskKnowledgeBits:
        if knowledge_id not in self._bits:
            raise NotFoundError(f"task does not require knowledge {knowledge_id}")
        return self._bits[knowledge_id]

    def contains(self, knowledge_id: int) -> bool:
        return knowledge_id in self._bits

    @property
    def knowledge_ids(self) -> List[int]:
        return list(self._bits)

    def remove_first_mandatory(self, knowledge_id: int) -> Optional[int]:
        bits = self._bits.get(knowledge_id)
        return bits.remove_first_mandatory() if bits else None

    def remove_first_required(self, knowledge_id: int) -> Optional[int]:
        bits = self._bits.get(knowledge_id)
        return bits.remove_first_required() if bits else None

    def __iter__(self):
        return iter(self._bits.values())

    def __len__(self) -> int:
        return len(self._bits)

    def to_list(self) -> List[dict]:
        return [b.to_dict() for b in self._bits.values()]


class SimTask:
    """A task in some agent's task processor."""

    def __init__(
        self,
        creator: Optional[AgentId] = None,
        weight: float = 1.0,
        created: int = 0,
        time_to_live: int = -1,
        parent=None,
        key_activity: str = "",
        task_id: Optional[str] = None,
    ):
        self.id = task_id or f"task_{uuid4().hex[:12]}"
        self.creator = creator
        self.assigned: Optional[AgentId] = None
        self.created = created
        self.time_to_live = time_to_live
        self.parent = parent                      # Message wrapped by this task, if any
        self.key_activity = key_activity
        self.knowledges_bits = TaskKnowledgesBits()
        self.blockers = BlockerCollection()
        self.incorrect = ImpactLevel.NONE
        self.cancelled_by: Optional[AgentId] = None
        self.last_touched = created
        self._weight = 0.0
        self.work_to_do = 0.0
        self.weight = weight

    @property
    def weight(self) -> float:
        return self._weight

    @weight.setter
    def weight(self, value: float) -> None:
        self._weight = max(0.0, value)
        self.work_to_do = self._weight

    @property
    def is_done(self) -> bool:
        return self.work_to_do < TOLERANCE

    @property
    def is_to_do(self) -> bool:
        """Not started yet."""
        return abs(self.weight - self.work_to_do) < TOLERANCE

    @property
    def is_blocked(self) -> bool:
        return self.blockers.is_blocked

    @property
    def is_message(self) -> bool:
        return self.parent is not None

    def is_cancelled_by(self, agent_id: AgentId) -> bool:
        return self.cancelled_by is not None and self.cancelled_by == agent_id

    @property
    def is_cancelled(self) -> bool:
        return self.cancelled_by is not None

    def cancel(self, agent_id: AgentId) -> None:
        self.cancelled_by = agent_id

    def is_expired(self, step: int) -> bool:
        return self.time_to_live >= 0 and step >= self.created + self.time_to_live

    def set_incorrect(self, impact: ImpactLevel) -> None:
        """Keep the worst impact seen."""
        if impact > self.incorrect:
            self.incorrect = impact

    def apply_impact_on_time_spent(self, factor: float) -> None:
        """Scale the task's size and its remaining work by the same factor."""
        self._weight = self._weight * factor
        self.work_to_do = self.work_to_do * factor

    def update(self, step: int) -> None:
        self.last_touched = step

    def to_summary(self) -> dict:
        return {
            "id": self.id,
            "creator": str(self.creator) if self.creator else None,
            "assigned": str(self.assigned) if self.assigned else None,
            "weight": self.weight,
            "work_to_do": self.work_to_do,
            "incorrect": self.incorrect.name,
            "cancelled": self.is_cancelled,
            "blocked": self.is_blocked,
            "created": self.created,
            "time_to_live": self.time_to_live,
            "is_message": self.is_message,
            "knowledges_bits": self.knowledges_bits.to_list(),
            "blockers": [b.model_dump(mode="json") for b in self.blockers.history],
        }
