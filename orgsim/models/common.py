"""Identifiers, shared enums and numeric constants."""

from enum import Enum, IntFlag

from pydantic import BaseModel, ConfigDict

# Numeric tolerance used for every "is zero / is done" comparison
TOLERANCE = 0.00001

# Class keys used by AgentId.class_key
ACTOR_CLASS = 1
INTERNET_CLASS = 2


class AgentId(BaseModel):
    """Identity of an agent: a numeric key and a class tag."""

    model_config = ConfigDict(frozen=True)

    key: int
    class_key: int = ACTOR_CLASS

    @property
    def is_actor(self) -> bool:
        return self.class_key == ACTOR_CLASS

    def __str__(self) -> str:
        return f"{self.class_key}:{self.key}"


class AgentStatus(str, Enum):
    AVAILABLE = "available"
    OFFLINE = "offline"


class CommunicationMedium(IntFlag):
    """Channels a message can travel on. Preferred mediums are combined as flags."""
    NONE = 0
    SYSTEM = 1
    EMAIL = 2
    FACE_TO_FACE = 4
    MEETING = 8
    PHONE = 16
    VIA_A_PLATFORM = 32
    IRC = 64

    @classmethod
    def all_human(cls) -> "CommunicationMedium":
        return (
            cls.EMAIL | cls.FACE_TO_FACE | cls.MEETING
            | cls.PHONE | cls.VIA_A_PLATFORM | cls.IRC
        )

    def members(self) -> list:
        """The single-flag mediums contained in this value, in declaration order."""
        return [
            m for m in CommunicationMedium
            if m.value and (m.value & (m.value - 1)) == 0 and m in self
        ]


class InteractionStrategy(str, Enum):
    EVERYONE = "everyone"
    KNOWLEDGE = "knowledge"
    BELIEFS = "beliefs"
