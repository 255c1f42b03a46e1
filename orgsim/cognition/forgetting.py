"""
Forgetting model — bits left unused longer than the time to live decay
toward the minimum knowledge.

One day of forgetting:
  initialize (pre-step)  every bit is a candidate
  update     (work)      bits a task touches are no longer candidates
  finalize   (post-step) idle candidates lose forgetting_rate
"""

import logging
from typing import Dict, Set

import numpy as np

from orgsim.knowledge.store import AgentExpertise
from orgsim.models.agent import InternalCharacteristics
from orgsim.models.common import AgentId
from orgsim.models.organization import ModelEntity
from orgsim.tasks.task import TaskKnowledgesBits

logger = logging.getLogger("orgsim.cognition")


class ForgettingModel:
    def __init__(
        self,
        agent_id: AgentId,
        expertise: AgentExpertise,
        characteristics: InternalCharacteristics,
        entity: ModelEntity,
        rng: np.random.Generator,
    ):
        self.agent_id = agent_id
        self.expertise = expertise
        self.characteristics = characteristics
        self.on = (
            entity.on
            and characteristics.can_forget
            and bool(rng.random() < entity.rate_of_agents_on)
        )
        self.candidates: Dict[int, Set[int]] = {}
        self.cumulative_forgetting = 0.0

    def initialize_forgetting_process(self) -> None:
        if not self.on:
            return
        self.candidates = {
            knowledge.knowledge_id: set(range(knowledge.length))
            for knowledge in self.expertise
        }

    def update_forgetting_process(self, task_bits: TaskKnowledgesBits, step: int) -> None:
        """Bits used by a task are refreshed and kept for today."""
        if task_bits is None:
            return
        for bits in task_bits:
            knowledge = self.expertise.get(bits.knowledge_id)
            if knowledge is None:
                continue
            for index in set(bits.mandatory) | set(bits.required):
                if index < knowledge.length:
                    knowledge.touch(index, step)
                self.candidates.get(bits.knowledge_id, set()).discard(index)

    def finalize_forgetting_process(self, step: int) -> float:
        """Decay idle candidate bits. Returns today's forgetting."""
        if not self.on:
            return 0.0
        ttl = self.characteristics.time_to_live
        if ttl < 0:
            self.candidates = {}
            return 0.0
        forgotten = 0.0
        for knowledge_id, indexes in self.candidates.items():
            knowledge = self.expertise.get(knowledge_id)
            if knowledge is None:
                continue
            for index in sorted(indexes):
                if step - int(knowledge.last_touched[index]) > ttl:
                    forgotten += knowledge.forget_bit(
                        index,
                        self.characteristics.forgetting_rate,
                        self.characteristics.minimum_knowledge,
                    )
        self.candidates = {}
        self.cumulative_forgetting += forgotten
        if forgotten:
            logger.debug("Agent %s forgot %.4f at step %d", self.agent_id, forgotten, step)
        return forgotten
