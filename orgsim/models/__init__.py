"""orgsim data models."""

from orgsim.models.agent import (
    AgentCapacity,
    CognitiveArchitecture,
    InteractionCharacteristics,
    InteractionPatterns,
    InternalCharacteristics,
    KnowledgeAndBeliefs,
    MessageContent,
    TasksAndPerformance,
    TasksLimit,
)
from orgsim.models.blocker import Blocker
from orgsim.models.common import (
    ACTOR_CLASS,
    INTERNET_CLASS,
    TOLERANCE,
    AgentId,
    AgentStatus,
    CommunicationMedium,
    InteractionStrategy,
)
from orgsim.models.knowledge import (
    Belief,
    BeliefLevel,
    BeliefWeightLevel,
    Knowledge,
    KnowledgeLevel,
    RandomGenerator,
)
from orgsim.models.messaging import (
    Message,
    MessageAction,
    MessageAttachments,
    MessageSubject,
)
from orgsim.models.murphy import (
    BeliefCheck,
    BlockerResolution,
    ImpactLevel,
    KnowledgeCheck,
    MurphiesConfig,
    MurphyIncompleteConfig,
    MurphyIncompleteInformationConfig,
    MurphyKind,
    MurphyUnavailabilityConfig,
)
from orgsim.models.organization import (
    CommunicationConfig,
    CommunicationTemplate,
    ModelEntity,
    OrganizationModels,
    ScheduleConfig,
    SimulationConfig,
    TimeStepType,
)
from orgsim.models.results import (
    BlockerResults,
    IterationResult,
    KnowledgeAndBeliefResults,
    TaskResults,
)

__all__ = [
    "ACTOR_CLASS",
    "INTERNET_CLASS",
    "TOLERANCE",
    "AgentCapacity",
    "AgentId",
    "AgentStatus",
    "Belief",
    "BeliefCheck",
    "BeliefLevel",
    "BeliefWeightLevel",
    "Blocker",
    "BlockerResolution",
    "BlockerResults",
    "CognitiveArchitecture",
    "CommunicationConfig",
    "CommunicationMedium",
    "CommunicationTemplate",
    "ImpactLevel",
    "InteractionCharacteristics",
    "InteractionPatterns",
    "InteractionStrategy",
    "InternalCharacteristics",
    "IterationResult",
    "Knowledge",
    "KnowledgeAndBeliefResults",
    "KnowledgeAndBeliefs",
    "KnowledgeCheck",
    "KnowledgeLevel",
    "Message",
    "MessageAction",
    "MessageAttachments",
    "MessageContent",
    "MessageSubject",
    "ModelEntity",
    "MurphiesConfig",
    "MurphyIncompleteConfig",
    "MurphyIncompleteInformationConfig",
    "MurphyKind",
    "MurphyUnavailabilityConfig",
    "OrganizationModels",
    "RandomGenerator",
    "ScheduleConfig",
    "SimulationConfig",
    "TaskResults",
    "TasksAndPerformance",
    "TasksLimit",
    "TimeStepType",
]
