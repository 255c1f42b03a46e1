"""Knowledge and belief topics shared by the organization."""

from enum import Enum
from typing import List

from pydantic import BaseModel, Field


class KnowledgeLevel(float, Enum):
    """Discrete expertise levels used to initialise knowledge bits."""
    NO_KNOWLEDGE = 0.0
    BASIC_KNOWLEDGE = 0.2
    FOUNDATIONAL_KNOWLEDGE = 0.4
    INTERMEDIATE = 0.6
    FULL_KNOWLEDGE = 0.8
    EXPERT = 1.0


class BeliefLevel(float, Enum):
    STRONGLY_DISAGREE = -1.0
    DISAGREE = -0.5
    NEITHER_AGREE_NOR_DISAGREE = 0.0
    AGREE = 0.5
    STRONGLY_AGREE = 1.0


class RandomGenerator(str, Enum):
    """How bits are drawn from a level."""
    RANDOM_BINARY = "random_binary"      # Each bit is 1 with probability = level
    RANDOM_UNIFORM = "random_uniform"    # Uniform around the level


class BeliefWeightLevel(str, Enum):
    NO_WEIGHT = "no_weight"
    FULL_WEIGHT = "full_weight"
    RANDOM_WEIGHT = "random_weight"


class Knowledge(BaseModel):
    """A knowledge topic, split into `length` bits."""

    id: int
    name: str = ""
    length: int = Field(ge=1, le=255, default=10)


class Belief(BaseModel):
    """A belief topic, one per knowledge topic, with a weight per bit."""

    id: int
    name: str = ""
    length: int = Field(ge=1, le=255, default=10)
    weights: List[float] = []               # Impact of each bit on a task, 0..1

    def weight(self, index: int) -> float:
        if not self.weights:
            return 1.0
        return self.weights[index]
