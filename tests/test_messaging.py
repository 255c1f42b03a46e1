"""Tests for the message bus and the interaction sphere."""

import gc
import weakref

import numpy as np

from orgsim.knowledge.store import BeliefNetwork, KnowledgeNetwork
from orgsim.messaging.bus import MessageBus
from orgsim.models.common import AgentId, InteractionStrategy
from orgsim.models.knowledge import Knowledge
from orgsim.models.messaging import MessageAction, MessageAttachments, MessageSubject
from orgsim.network.sphere import InteractionSphere

A = AgentId(key=1)
B = AgentId(key=2)
C = AgentId(key=3)


class TestMessageBus:
    def setup_method(self):
        self.bus = MessageBus()

    def test_delivered_next_step(self):
        message = self.bus.send(A, B, MessageAction.ASK, MessageSubject.HELP, step=4)
        assert message.deliver_at == 5
        assert self.bus.collect(B, 4) == []
        assert self.bus.collect(B, 5) == [message]
        assert self.bus.pending() == []
        assert self.bus.sent_at(4) == 1

    def test_collected_messages_are_released(self):
        message = self.bus.send(A, B, MessageAction.ASK, MessageSubject.HELP, step=0)
        ref = weakref.ref(message)
        del message
        assert ref() is not None
        self.bus.collect(B, 1)
        gc.collect()
        assert ref() is None

    def test_collect_in_send_order(self):
        first = self.bus.send(A, B, MessageAction.ASK, MessageSubject.HELP, step=0)
        self.bus.send(A, C, MessageAction.ASK, MessageSubject.HELP, step=0)
        second = self.bus.send(C, B, MessageAction.ASK, MessageSubject.HELP, step=0)
        assert self.bus.collect(B, 1) == [first, second]
        assert len(self.bus.pending(C)) == 1

    def test_reply_is_handled_immediately(self):
        received = []
        self.bus.register(A, received.append)
        ask = self.bus.send(A, B, MessageAction.ASK, MessageSubject.HELP, step=0)
        reply = self.bus.reply(ask, step=1, attachments=MessageAttachments(knowledge_bits=[1.0]))
        assert received == [reply]
        assert reply.sender == B
        assert reply.receiver == A
        assert reply.action == MessageAction.REPLY
        assert reply.reply_to == ask.id
        assert reply.attachments.knowledge_bits == [1.0]

    def test_reply_without_handler_is_queued(self):
        ask = self.bus.send(A, B, MessageAction.ASK, MessageSubject.HELP, step=0)
        reply = self.bus.reply(ask, step=1)
        assert self.bus.collect(A, 1) == [reply]

    def test_reply_delayed(self):
        ask = self.bus.send(A, B, MessageAction.ASK, MessageSubject.HELP, step=0)
        reply = self.bus.reply_delayed(ask, step=1, deliver_at=3)
        assert self.bus.collect(A, 2) == []
        assert self.bus.collect(A, 3) == [reply]

    def test_send_to_many(self):
        sent = self.bus.send_to_many(A, [B, C], MessageAction.ADD, MessageSubject.ACTOR, step=0)
        assert [m.receiver for m in sent] == [B, C]
        assert len({m.id for m in sent}) == 2


class TestInteractionSphere:
    def setup_method(self):
        rng = np.random.default_rng(0)
        self.knowledge = KnowledgeNetwork(rng)
        self.knowledge.add_knowledge(Knowledge(id=1, length=4))
        self.beliefs = BeliefNetwork(rng)
        self.beliefs.add_belief(Knowledge(id=1, length=4))
        self.sphere = InteractionSphere(self.knowledge, self.beliefs, rng)
        for agent_id in (A, B, C):
            self.sphere.add_agent(agent_id)

    def test_links_are_symmetric(self):
        self.sphere.add_interaction(A, B)
        assert self.sphere.has_interaction(B, A) is True
        assert self.sphere.interactions(A) == [B]
        self.sphere.add_interaction(A, A)
        assert self.sphere.interactions(A) == [B]

    def test_everyone_strategy(self):
        self.sphere.add_interaction(A, C)
        self.sphere.add_interaction(A, B)
        assert self.sphere.get_agent_ids_for_interactions(A, InteractionStrategy.EVERYONE) == [B, C]

    def test_knowledge_strategy(self):
        self.sphere.add_interaction(A, B)
        self.sphere.add_interaction(A, C)
        self.knowledge.set_agent_knowledge(C, 1, [1.0] * 4)
        assert self.sphere.get_agent_ids_for_interactions(A, InteractionStrategy.KNOWLEDGE, 1) == [C]

    def test_beliefs_strategy(self):
        self.sphere.add_interaction(A, B)
        self.beliefs.set_agent_belief(B, 1, [0.5] * 4)
        assert self.sphere.get_agent_ids_for_interactions(A, InteractionStrategy.BELIEFS, 1) == [B]

    def test_new_interactions_exclude_links(self):
        self.sphere.add_interaction(A, B)
        assert self.sphere.get_agent_ids_for_new_interactions(A, 5) == [C]
        assert self.sphere.get_agent_ids_for_new_interactions(A, 0) == []

    def test_remove_agent(self):
        self.sphere.add_interaction(A, B)
        self.sphere.remove_agent(B)
        assert self.sphere.interactions(A) == []
        assert B not in self.sphere.agents

    def test_density(self):
        assert self.sphere.density() == 0.0
        self.sphere.add_interaction(A, B)
        self.sphere.add_interaction(B, C)
        self.sphere.add_interaction(A, C)
        assert self.sphere.density() == 1.0
