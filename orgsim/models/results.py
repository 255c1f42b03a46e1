"""Result records produced for the statistics collector."""

from typing import Dict

from pydantic import BaseModel


class BlockerResults(BaseModel):
    """Blocker counters for one step."""

    added: int = 0
    in_progress: int = 0
    cancelled: int = 0
    resolved: Dict[str, int] = {}           # BlockerResolution value -> count
    by_kind: Dict[str, int] = {}            # MurphyKind value -> blockers added

    @property
    def total_resolved(self) -> int:
        return sum(self.resolved.values())


class TaskResults(BaseModel):
    done: int = 0
    cancelled: int = 0
    in_progress: int = 0
    to_do: int = 0
    incorrect: int = 0                      # Tasks done with an impact level above NONE


class KnowledgeAndBeliefResults(BaseModel):
    knowledge_sum: float = 0.0
    knowledge_potential: float = 0.0
    belief_sum: float = 0.0
    belief_potential: float = 0.0
    learning: float = 0.0                   # Cumulative learning of all agents
    forgetting: float = 0.0                 # Cumulative forgetting of all agents
    obsolescence: float = 0.0


class IterationResult(BaseModel):
    """Everything recorded for one simulated step."""

    step: int
    capacity: float = 0.0
    time_spent: float = 0.0
    messages_sent: int = 0
    blockers: BlockerResults = BlockerResults()
    tasks: TaskResults = TaskResults()
    knowledge_and_beliefs: KnowledgeAndBeliefResults = KnowledgeAndBeliefResults()
