"""Murphy configuration — stochastic disruption policies, one per blocker kind."""

from enum import Enum, IntEnum

from pydantic import BaseModel, Field


class MurphyKind(str, Enum):
    INCOMPLETE_KNOWLEDGE = "incomplete_knowledge"
    INCOMPLETE_BELIEF = "incomplete_belief"
    INCOMPLETE_INFORMATION = "incomplete_information"
    UNAVAILABILITY = "unavailability"


class ImpactLevel(IntEnum):
    """How incorrectly a task has been performed. Ordered: a task keeps the worst level."""
    NONE = 0
    GUESSED = 1
    BLOCKED = 2


class BlockerResolution(str, Enum):
    NONE = "none"
    INTERNAL = "internal"
    EXTERNAL = "external"
    GUESSING = "guessing"
    SEARCHING = "searching"
    CANCELLED = "cancelled"


class MurphyIncompleteConfig(BaseModel):
    """Configuration shared by the incomplete knowledge / belief / information murphies."""

    on: bool = False
    rate_of_agents_on: float = Field(ge=0, le=1, default=1.0)
    threshold_for_reacting: float = Field(ge=0, le=1, default=0.1)
    rate_of_incorrect_guess: float = Field(ge=0, le=1, default=0.2)
    rate_of_answers: float = Field(ge=0, le=1, default=1.0)
    response_time: int = Field(ge=0, default=0)              # Max steps before a helper replies
    limit_number_of_tries: int = Field(ge=-1, default=-1)    # -1 = unlimited
    delay_before_searching_externally: int = Field(ge=0, default=2)
    mandatory_ratio: float = Field(ge=0, le=1, default=0.2)  # Share of required bits that are mandatory
    required_ratio: float = Field(ge=0, le=1, default=0.2)   # Share of a topic's bits a task requires
    impact_of_guessing_on_time_spent: float = Field(ge=0, default=0.1)


class MurphyIncompleteInformationConfig(MurphyIncompleteConfig):
    """
    Agents are subject to it with rate_of_agents_on; each task of a subject
    agent then misses information with rate_of_missing_information.
    """

    rate_of_agents_on: float = Field(ge=0, le=1, default=0.05)
    rate_of_missing_information: float = Field(ge=0, le=1, default=1.0)


class MurphyUnavailabilityConfig(BaseModel):
    on: bool = False
    rate_of_agents_on: float = Field(ge=0, le=1, default=1.0)
    rate_of_unavailability: float = Field(ge=0, le=1, default=0.1)


class MurphiesConfig(BaseModel):
    """All murphies of an organization. Read-only during a run."""

    incomplete_knowledge: MurphyIncompleteConfig = MurphyIncompleteConfig()
    incomplete_belief: MurphyIncompleteConfig = MurphyIncompleteConfig()
    incomplete_information: MurphyIncompleteInformationConfig = MurphyIncompleteInformationConfig()
    unavailability: MurphyUnavailabilityConfig = MurphyUnavailabilityConfig()
    multiple_blockers: bool = False

    def on(self) -> None:
        """Switch every murphy on."""
        self.incomplete_knowledge.on = True
        self.incomplete_belief.on = True
        self.incomplete_information.on = True
        self.unavailability.on = True

    def off(self) -> None:
        self.incomplete_knowledge.on = False
        self.incomplete_belief.on = False
        self.incomplete_information.on = False
        self.unavailability.on = False


class KnowledgeCheck(BaseModel):
    """Outcome of checking a task's knowledge bits against an agent's expertise."""

    mandatory_ok: bool = True
    required_ok: bool = True
    mandatory_index: int = 0
    required_index: int = 0


class BeliefCheck(BaseModel):
    """Outcome of checking a task's belief bits against an agent's beliefs."""

    mandatory_score: float = 0.0
    required_score: float = 0.0
    mandatory_index: int = 0
    required_index: int = 0
