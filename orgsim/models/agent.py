"""Cognitive architecture of an agent — what it can do, learn and receive."""

from typing import Tuple

from pydantic import BaseModel, Field

from orgsim.models.common import TOLERANCE, CommunicationMedium
from orgsim.models.knowledge import BeliefLevel


class KnowledgeAndBeliefs(BaseModel):
    has_knowledge: bool = True
    has_belief: bool = True
    default_belief_level: BeliefLevel = BeliefLevel.NEITHER_AGREE_NOR_DISAGREE


class MessageContent(BaseModel):
    """What an agent is allowed to receive from, or send to, other agents."""
    can_receive_knowledge: bool = True
    can_receive_beliefs: bool = True
    can_send_knowledge: bool = True
    can_send_beliefs: bool = True


class InternalCharacteristics(BaseModel):
    can_learn: bool = True
    can_forget: bool = True
    can_influence_or_be_influenced: bool = True
    learning_rate: float = Field(ge=0, le=1, default=0.5)
    learning_by_doing_rate: float = Field(ge=0, le=1, default=0.1)
    forgetting_rate: float = Field(ge=0, le=1, default=0.1)
    minimum_knowledge: float = Field(ge=0, le=1, default=0.0)
    time_to_live: int = -1                   # Steps of disuse before forgetting, -1 = never
    risk_aversion_threshold: float = Field(ge=0, le=1, default=1.0)
    influenceability_range: Tuple[float, float] = (0.0, 1.0)
    influentialness_range: Tuple[float, float] = (0.0, 1.0)
    belief_reinforcement_rate: float = Field(ge=0, le=1, default=0.1)


class TasksLimit(BaseModel):
    limit_simultaneous_tasks: bool = True    # Mono tasking when set
    maximum_simultaneous_tasks: int = Field(ge=1, default=1)
    limit_total_tasks: bool = False
    maximum_total_tasks: int = Field(ge=0, default=0)


class TasksAndPerformance(BaseModel):
    can_perform_task: bool = True
    can_perform_task_on_week_ends: bool = False
    tasks_limit: TasksLimit = TasksLimit()
    initial_capacity: float = Field(ge=0, default=1.0)


class InteractionCharacteristics(BaseModel):
    preferred_communication_mediums: CommunicationMedium = CommunicationMedium.EMAIL


class InteractionPatterns(BaseModel):
    isolation_rate: float = Field(ge=0, le=1, default=0.0)  # Daily probability of being isolated
    allow_new_interactions: bool = False
    max_new_interactions_per_step: int = Field(ge=0, default=1)


class CognitiveArchitecture(BaseModel):
    """Full cognitive configuration of one agent."""

    knowledge_and_beliefs: KnowledgeAndBeliefs = KnowledgeAndBeliefs()
    message_content: MessageContent = MessageContent()
    internal_characteristics: InternalCharacteristics = InternalCharacteristics()
    tasks_and_performance: TasksAndPerformance = TasksAndPerformance()
    interaction_characteristics: InteractionCharacteristics = InteractionCharacteristics()
    interaction_patterns: InteractionPatterns = InteractionPatterns()


class AgentCapacity(BaseModel):
    """Per-step budget of work-time units."""

    initial: float = 0.0
    actual: float = 0.0

    @property
    def has_capacity(self) -> bool:
        return self.actual > TOLERANCE

    def reset(self) -> None:
        self.actual = self.initial

    def decrement(self, value: float) -> None:
        self.actual = max(0.0, self.actual - value)
