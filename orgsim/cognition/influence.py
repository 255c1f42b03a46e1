"""
Influence model — beliefs move toward those of influential peers, and are
reinforced by acting on them.
"""

from typing import Iterable, Optional

import numpy as np

from orgsim.knowledge.store import AgentBelief, AgentBeliefs, BeliefNetwork
from orgsim.models.agent import InternalCharacteristics
from orgsim.models.common import AgentId
from orgsim.models.organization import ModelEntity


class InfluenceModel:
    def __init__(
        self,
        agent_id: AgentId,
        beliefs: AgentBeliefs,
        belief_network: BeliefNetwork,
        characteristics: InternalCharacteristics,
        entity: ModelEntity,
        rng: np.random.Generator,
    ):
        self.agent_id = agent_id
        self.beliefs = beliefs
        self.belief_network = belief_network
        self.characteristics = characteristics
        self.on = (
            entity.on
            and characteristics.can_influence_or_be_influenced
            and bool(rng.random() < entity.rate_of_agents_on)
        )
        low, high = characteristics.influenceability_range
        self.influenceability = float(rng.uniform(low, high)) if high > low else low
        low, high = characteristics.influentialness_range
        self.influentialness = float(rng.uniform(low, high)) if high > low else low

    def _get_or_create(self, belief_id: int, length: int, step: int) -> AgentBelief:
        belief = self.beliefs.get(belief_id)
        if belief is None:
            if self.belief_network.exists(belief_id):
                length = self.belief_network.get_belief(belief_id).length
            belief = AgentBelief(belief_id, [0.0] * length, step)
            self.beliefs.add(belief)
        return belief

    def be_influenced(
        self,
        belief_id: int,
        bits: Optional[Iterable[float]],
        influentialness: float,
        step: int,
    ) -> float:
        """
        Move each belief bit toward the sender's, weighted by
        influenceability x the sender's influentialness.
        Returns the total absolute change.
        """
        if not self.on or bits is None:
            return 0.0
        incoming = list(bits)
        if not incoming:
            return 0.0
        belief = self._get_or_create(belief_id, len(incoming), step)
        weight = self.influenceability * influentialness
        changed = 0.0
        for index, value in enumerate(incoming[:belief.length]):
            current = belief.get_bit(index)
            changed += abs(belief.set_bit(index, current + weight * (value - current), step))
        return changed

    def reinforcement_by_doing(self, belief_id: int, index: int, step: int) -> float:
        """Acting on a belief strengthens it."""
        if not self.on:
            return 0.0
        belief = self._get_or_create(belief_id, index + 1, step)
        current = belief.get_bit(index)
        return belief.set_bit(index, current + self.characteristics.belief_reinforcement_rate, step)
