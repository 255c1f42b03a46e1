"""
Message Bus — in-memory agent-to-agent delivery.

Behavioral Contract:
- A message sent at step S is delivered at step S+1.
- A reply with no delay is handed to the receiver at once.
- A delayed reply is delivered at the requested step.
- Messages due to an agent are collected in send order.
"""

import logging
from typing import Callable, Dict, Iterable, List, Optional

from orgsim.errors import InvalidArgumentError
from orgsim.models.common import AgentId, CommunicationMedium
from orgsim.models.messaging import (
    Message,
    MessageAction,
    MessageAttachments,
    MessageSubject,
)

logger = logging.getLogger("orgsim.messaging")


class MessageBus:
    """Mailboxes of every agent of a run."""

    def __init__(self):
        self._pending: List[Message] = []
        self._handlers: Dict[AgentId, Callable[[Message], None]] = {}
        self._sequence = 0
        self.sent_by_step: Dict[int, int] = {}

    def register(self, agent_id: AgentId, handler: Callable[[Message], None]) -> None:
        """Handler called for messages delivered immediately."""
        self._handlers[agent_id] = handler

    def _next_id(self) -> str:
        self._sequence += 1
        return f"msg_{self._sequence}"

    def _count(self, step: int) -> None:
        self.sent_by_step[step] = self.sent_by_step.get(step, 0) + 1

    def send(
        self,
        sender: AgentId,
        receiver: AgentId,
        action: MessageAction,
        subject: MessageSubject,
        step: int,
        attachments: Optional[MessageAttachments] = None,
        medium: CommunicationMedium = CommunicationMedium.EMAIL,
    ) -> Message:
        if sender is None or receiver is None:
            raise InvalidArgumentError("sender and receiver are required")
        message = Message(
            id=self._next_id(),
            sender=sender,
            receiver=receiver,
            action=action,
            subject=subject,
            medium=medium,
            attachments=attachments if attachments is not None else MessageAttachments(),
            sent_step=step,
            deliver_at=step + 1,
        )
        self._pending.append(message)
        self._count(step)
        logger.debug("Message %s %s/%s from %s to %s", message.id, action.value, subject.value, sender, receiver)
        return message

    def send_to_many(
        self,
        sender: AgentId,
        receivers: Iterable[AgentId],
        action: MessageAction,
        subject: MessageSubject,
        step: int,
        attachments: Optional[MessageAttachments] = None,
        medium: CommunicationMedium = CommunicationMedium.EMAIL,
    ) -> List[Message]:
        return [
            self.send(sender, receiver, action, subject, step, attachments, medium)
            for receiver in receivers
        ]

    def _reply_message(self, message: Message, attachments: Optional[MessageAttachments], step: int) -> Message:
        if message is None:
            raise InvalidArgumentError("message is required")
        return Message(
            id=self._next_id(),
            sender=message.receiver,
            receiver=message.sender,
            action=MessageAction.REPLY,
            subject=message.subject,
            medium=message.medium,
            attachments=attachments if attachments is not None else message.attachments,
            sent_step=step,
            deliver_at=step,
            reply_to=message.id,
        )

    def reply(self, message: Message, step: int, attachments: Optional[MessageAttachments] = None) -> Message:
        """Reply now: the receiver handles it within the same step."""
        reply = self._reply_message(message, attachments, step)
        self._count(step)
        handler = self._handlers.get(reply.receiver)
        if handler is None:
            self._pending.append(reply)
        else:
            handler(reply)
        return reply

    def reply_delayed(
        self,
        message: Message,
        step: int,
        deliver_at: int,
        attachments: Optional[MessageAttachments] = None,
    ) -> Message:
        reply = self._reply_message(message, attachments, step)
        reply.deliver_at = deliver_at
        self._pending.append(reply)
        self._count(step)
        return reply

    def collect(self, agent_id: AgentId, step: int) -> List[Message]:
        """Remove and return the messages due to an agent at this step."""
        due = [m for m in self._pending if m.receiver == agent_id and m.deliver_at <= step]
        if due:
            due_ids = {m.id for m in due}
            self._pending = [m for m in self._pending if m.id not in due_ids]
        return due

    def pending(self, agent_id: Optional[AgentId] = None) -> List[Message]:
        if agent_id is None:
            return list(self._pending)
        return [m for m in self._pending if m.receiver == agent_id]

    def sent_at(self, step: int) -> int:
        return self.sent_by_step.get(step, 0)
