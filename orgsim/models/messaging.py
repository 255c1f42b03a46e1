"""Messages exchanged between agents through the message bus."""

from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict

from orgsim.models.blocker import Blocker
from orgsim.models.common import AgentId, CommunicationMedium


class MessageAction(str, Enum):
    ASK = "ask"
    REPLY = "reply"
    ADD = "add"
    REMOVE = "remove"
    STOP = "stop"


class MessageSubject(str, Enum):
    HELP = "help"
    ACTOR = "actor"          # Interaction sphere growth
    STOP = "stop"


class MessageAttachments(BaseModel):
    """Typed payload of a help message. Only these fields travel with a message."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    blocker: Optional[Blocker] = None
    task: Optional[Any] = None               # SimTask, referenced not owned
    knowledge_id: Optional[int] = None
    knowledge_bit: Optional[int] = None
    knowledge_bits: Optional[List[float]] = None
    belief_bits: Optional[List[float]] = None


class Message(BaseModel):
    """A message in flight or delivered."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: str
    sender: AgentId
    receiver: AgentId
    action: MessageAction
    subject: MessageSubject
    medium: CommunicationMedium = CommunicationMedium.EMAIL
    attachments: MessageAttachments = MessageAttachments()
    sent_step: int = 0
    deliver_at: int = 0
    reply_to: Optional[str] = None

    def to_summary(self) -> dict:
        return {
            "id": self.id,
            "sender": str(self.sender),
            "receiver": str(self.receiver),
            "action": self.action.value,
            "subject": self.subject.value,
            "medium": self.medium.name,
            "sent_step": self.sent_step,
            "deliver_at": self.deliver_at,
        }
