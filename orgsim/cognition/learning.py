"""
Learning model — how an agent's expertise grows from received knowledge
and from doing.
"""

import logging
from typing import Iterable, Optional

import numpy as np

from orgsim.knowledge.store import AgentExpertise, AgentKnowledge, KnowledgeNetwork
from orgsim.models.agent import InternalCharacteristics
from orgsim.models.common import AgentId
from orgsim.models.organization import ModelEntity

logger = logging.getLogger("orgsim.cognition")


class LearningModel:
    """
    new bit = current + learning_rate * max(0, incoming - current)

    Learning never lowers a bit. A topic the agent lacks is created empty
    on first learning.
    """

    def __init__(
        self,
        agent_id: AgentId,
        expertise: AgentExpertise,
        knowledge_network: KnowledgeNetwork,
        characteristics: InternalCharacteristics,
        entity: ModelEntity,
        rng: np.random.Generator,
    ):
        self.agent_id = agent_id
        self.expertise = expertise
        self.knowledge_network = knowledge_network
        self.characteristics = characteristics
        self.on = (
            entity.on
            and characteristics.can_learn
            and bool(rng.random() < entity.rate_of_agents_on)
        )
        self.cumulative_learning = 0.0

    def _get_or_create(self, knowledge_id: int, length: int, step: int) -> AgentKnowledge:
        knowledge = self.expertise.get(knowledge_id)
        if knowledge is None:
            if self.knowledge_network.exists(knowledge_id):
                length = self.knowledge_network.get_knowledge(knowledge_id).length
            knowledge = AgentKnowledge(
                knowledge_id, [0.0] * length, self.characteristics.time_to_live, step
            )
            self.expertise.add(knowledge)
        return knowledge

    def learn(self, knowledge_id: int, bits: Optional[Iterable[float]], step: int) -> float:
        """Learn from received bits. Returns the amount learned."""
        if not self.on or bits is None:
            return 0.0
        incoming = list(bits)
        if not incoming:
            return 0.0
        knowledge = self._get_or_create(knowledge_id, len(incoming), step)
        rate = self.characteristics.learning_rate
        learned = 0.0
        for index, value in enumerate(incoming[:knowledge.length]):
            current = knowledge.get_bit(index)
            gain = rate * max(0.0, value - current)
            if gain > 0:
                learned += knowledge.set_bit(index, current + gain, step)
        self.cumulative_learning += learned
        if learned:
            logger.debug("Agent %s learned %.4f on knowledge %s", self.agent_id, learned, knowledge_id)
        return learned

    def learn_by_doing(self, knowledge_id: int, index: int, step: int) -> float:
        """Nudge one bit up by the learning-by-doing rate, capped at 1."""
        if not self.on:
            return 0.0
        length = index + 1
        knowledge = self._get_or_create(knowledge_id, length, step)
        current = knowledge.get_bit(index)
        learned = knowledge.set_bit(index, current + self.characteristics.learning_by_doing_rate, step)
        self.cumulative_learning += learned
        return learned
