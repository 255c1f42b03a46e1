"""
Knowledge/Belief Store — per-agent bit vectors for expertise and beliefs.

Knowledge bits live in [0, 1], belief bits in [-1, 1]. Every bit carries the
step it was last touched, used by the forgetting model.

Behavioral Contract:
- A bit index must be < length, otherwise IndexError.
- Stores never mutate another agent's bits.
- The networks are registries: they own the organization topics and hand
  each agent its own expertise and belief set.
"""

import logging
from typing import Dict, Iterable, List, Optional

import numpy as np

from orgsim.errors import InvalidArgumentError, NotFoundError
from orgsim.models.common import TOLERANCE, AgentId
from orgsim.models.knowledge import (
    Belief,
    BeliefLevel,
    BeliefWeightLevel,
    Knowledge,
    KnowledgeLevel,
    RandomGenerator,
)

logger = logging.getLogger("orgsim.knowledge")


def _draw_bits(
    rng: np.random.Generator,
    length: int,
    level: float,
    generator: RandomGenerator,
    low: float,
    high: float,
) -> np.ndarray:
    """Draw `length` bits around `level` within [low, high]."""
    if generator == RandomGenerator.RANDOM_BINARY:
        # Probability of the high value is the position of level within [low, high]
        p = (level - low) / (high - low)
        return np.where(rng.random(length) < p, high, low).astype(float)
    bits = rng.uniform(level - 0.1, level + 0.1, length)
    return np.clip(bits, low, high)


class _BitVector:
    """Fixed-length float bits with a last-touched step per bit."""

    low = 0.0
    high = 1.0

    def __init__(self, topic_id: int, bits: Iterable[float], step: int = 0):
        self.id = topic_id
        self.bits = np.clip(np.asarray(list(bits), dtype=float), self.low, self.high)
        self.last_touched = np.full(len(self.bits), step, dtype=int)

    @property
    def length(self) -> int:
        return len(self.bits)

    def _check_index(self, index: int) -> None:
        if index < 0 or index >= self.length:
            raise IndexError(f"bit {index} out of range for topic {self.id} (length {self.length})")

    def get_bit(self, index: int) -> float:
        self._check_index(index)
        return float(self.bits[index])

    def set_bit(self, index: int, value: float, step: int) -> float:
        """Set a bit, clipped to the valid range. Returns the applied delta."""
        self._check_index(index)
        value = min(self.high, max(self.low, value))
        delta = value - float(self.bits[index])
        self.bits[index] = value
        self.last_touched[index] = step
        return delta

    def touch(self, index: int, step: int) -> None:
        self._check_index(index)
        self.last_touched[index] = step

    def sum(self) -> float:
        return float(self.bits.sum())

    def to_list(self) -> List[float]:
        return [float(b) for b in self.bits]


class AgentKnowledge(_BitVector):
    """One agent's expertise on one knowledge topic."""

    def __init__(
        self,
        knowledge_id: int,
        bits: Iterable[float],
        time_to_live: int = -1,
        step: int = 0,
    ):
        super().__init__(knowledge_id, bits, step)
        self.time_to_live = time_to_live

    @property
    def knowledge_id(self) -> int:
        return self.id

    def knows(self, index: int, threshold: float) -> bool:
        """A bit is known when its value reaches the threshold, within tolerance."""
        return self.get_bit(index) >= threshold - TOLERANCE

    def forget_bit(self, index: int, rate: float, minimum: float) -> float:
        """Decay a bit toward `minimum`. Returns the amount forgotten (>= 0)."""
        current = self.get_bit(index)
        if current <= minimum:
            return 0.0
        value = max(minimum, current - rate)
        self.bits[index] = value
        return current - value

    def obsolescence(self, step: int) -> float:
        """Share of bits left untouched longer than the time to live."""
        if self.time_to_live < 0 or self.length == 0:
            return 0.0
        stale = (step - self.last_touched) > self.time_to_live
        return float(stale.sum()) / self.length


class AgentBelief(_BitVector):
    """One agent's belief on one topic."""

    low = -1.0
    high = 1.0

    @property
    def belief_id(self) -> int:
        return self.id


class AgentExpertise:
    """All knowledge topics held by one agent."""

    def __init__(self):
        self._knowledges: Dict[int, AgentKnowledge] = {}

    def add(self, knowledge: AgentKnowledge) -> None:
        self._knowledges[knowledge.knowledge_id] = knowledge

    def get(self, knowledge_id: int) -> Optional[AgentKnowledge]:
        return self._knowledges.get(knowledge_id)

    def contains(self, knowledge_id: int) -> bool:
        return knowledge_id in self._knowledges

    def knows(self, knowledge_id: int, index: int, threshold: float) -> bool:
        knowledge = self._knowledges.get(knowledge_id)
        return knowledge is not None and knowledge.knows(index, threshold)

    @property
    def knowledge_ids(self) -> List[int]:
        return sorted(self._knowledges)

    def __iter__(self):
        return iter(self._knowledges[k] for k in self.knowledge_ids)

    def __len__(self) -> int:
        return len(self._knowledges)

    def sum(self) -> float:
        return sum(k.sum() for k in self._knowledges.values())

    def obsolescence(self, step: int) -> float:
        if not self._knowledges:
            return 0.0
        return sum(k.obsolescence(step) for k in self._knowledges.values()) / len(self._knowledges)


class AgentBeliefs:
    """All belief topics held by one agent."""

    def __init__(self):
        self._beliefs: Dict[int, AgentBelief] = {}

    def add(self, belief: AgentBelief) -> None:
        self._beliefs[belief.belief_id] = belief

    def get(self, belief_id: int) -> Optional[AgentBelief]:
        return self._beliefs.get(belief_id)

    def contains(self, belief_id: int) -> bool:
        return belief_id in self._beliefs

    @property
    def belief_ids(self) -> List[int]:
        return sorted(self._beliefs)

    def __len__(self) -> int:
        return len(self._beliefs)

    def sum(self) -> float:
        return sum(b.sum() for b in self._beliefs.values())


class KnowledgeNetwork:
    """
    Organization knowledge topics and the expertise of every agent.
    """

    def __init__(self, rng: np.random.Generator, generator: RandomGenerator = RandomGenerator.RANDOM_UNIFORM):
        self._rng = rng
        self.generator = generator
        self._topics: Dict[int, Knowledge] = {}
        self._expertise: Dict[AgentId, AgentExpertise] = {}

    def add_knowledge(self, knowledge: Knowledge) -> None:
        self._topics[knowledge.id] = knowledge

    def get_knowledge(self, knowledge_id: int) -> Knowledge:
        if knowledge_id not in self._topics:
            raise NotFoundError(f"knowledge {knowledge_id} is not defined")
        return self._topics[knowledge_id]

    def exists(self, knowledge_id: int) -> bool:
        return knowledge_id in self._topics

    @property
    def knowledges(self) -> List[Knowledge]:
        return [self._topics[k] for k in sorted(self._topics)]

    def expertise(self, agent_id: AgentId) -> AgentExpertise:
        """The agent's expertise, created empty on first access."""
        if agent_id not in self._expertise:
            self._expertise[agent_id] = AgentExpertise()
        return self._expertise[agent_id]

    def add_agent_knowledge(
        self,
        agent_id: AgentId,
        knowledge_id: int,
        level: KnowledgeLevel = KnowledgeLevel.FULL_KNOWLEDGE,
        time_to_live: int = -1,
        step: int = 0,
    ) -> AgentKnowledge:
        """Give an agent a knowledge topic, bits drawn from `level`."""
        knowledge = self.get_knowledge(knowledge_id)
        bits = _draw_bits(self._rng, knowledge.length, float(level), self.generator, 0.0, 1.0)
        agent_knowledge = AgentKnowledge(knowledge_id, bits, time_to_live, step)
        self.expertise(agent_id).add(agent_knowledge)
        logger.debug("Agent %s knows %s at level %s", agent_id, knowledge_id, level.name)
        return agent_knowledge

    def set_agent_knowledge(
        self,
        agent_id: AgentId,
        knowledge_id: int,
        bits: List[float],
        time_to_live: int = -1,
        step: int = 0,
    ) -> AgentKnowledge:
        """Give an agent exact knowledge bits."""
        knowledge = self.get_knowledge(knowledge_id)
        if len(bits) != knowledge.length:
            raise InvalidArgumentError(
                f"knowledge {knowledge_id} has {knowledge.length} bits, got {len(bits)}"
            )
        agent_knowledge = AgentKnowledge(knowledge_id, bits, time_to_live, step)
        self.expertise(agent_id).add(agent_knowledge)
        return agent_knowledge

    def agents_with_knowledge(self, knowledge_id: int) -> List[AgentId]:
        return sorted(
            (a for a, e in self._expertise.items() if e.contains(knowledge_id)),
            key=lambda a: (a.class_key, a.key),
        )

    def sum(self) -> float:
        return sum(e.sum() for e in self._expertise.values())

    def potential(self) -> float:
        """Maximum reachable knowledge sum for the agents' current topics."""
        return float(sum(k.length for e in self._expertise.values() for k in e))


class BeliefNetwork:
    """
    Organization belief topics and the beliefs of every agent.
    One belief topic per knowledge topic, same id and length.
    """

    def __init__(
        self,
        rng: np.random.Generator,
        generator: RandomGenerator = RandomGenerator.RANDOM_UNIFORM,
        weight_level: BeliefWeightLevel = BeliefWeightLevel.RANDOM_WEIGHT,
    ):
        self._rng = rng
        self.generator = generator
        self.weight_level = weight_level
        self._topics: Dict[int, Belief] = {}
        self._beliefs: Dict[AgentId, AgentBeliefs] = {}

    def add_belief(self, knowledge: Knowledge) -> Belief:
        """Create the belief topic mirroring a knowledge topic."""
        if self.weight_level == BeliefWeightLevel.NO_WEIGHT:
            weights = [0.0] * knowledge.length
        elif self.weight_level == BeliefWeightLevel.FULL_WEIGHT:
            weights = [1.0] * knowledge.length
        else:
            weights = [float(w) for w in self._rng.random(knowledge.length)]
        belief = Belief(id=knowledge.id, name=knowledge.name, length=knowledge.length, weights=weights)
        self._topics[belief.id] = belief
        return belief

    def get_belief(self, belief_id: int) -> Belief:
        if belief_id not in self._topics:
            raise NotFoundError(f"belief {belief_id} is not defined")
        return self._topics[belief_id]

    def exists(self, belief_id: int) -> bool:
        return belief_id in self._topics

    def beliefs(self, agent_id: AgentId) -> AgentBeliefs:
        if agent_id not in self._beliefs:
            self._beliefs[agent_id] = AgentBeliefs()
        return self._beliefs[agent_id]

    def add_agent_belief(
        self,
        agent_id: AgentId,
        belief_id: int,
        level: BeliefLevel = BeliefLevel.NEITHER_AGREE_NOR_DISAGREE,
        step: int = 0,
    ) -> AgentBelief:
        belief = self.get_belief(belief_id)
        bits = _draw_bits(self._rng, belief.length, float(level), self.generator, -1.0, 1.0)
        agent_belief = AgentBelief(belief_id, bits, step)
        self.beliefs(agent_id).add(agent_belief)
        return agent_belief

    def set_agent_belief(self, agent_id: AgentId, belief_id: int, bits: List[float], step: int = 0) -> AgentBelief:
        """Give an agent exact belief bits."""
        belief = self.get_belief(belief_id)
        if len(bits) != belief.length:
            raise InvalidArgumentError(
                f"belief {belief_id} has {belief.length} bits, got {len(bits)}"
            )
        agent_belief = AgentBelief(belief_id, bits, step)
        self.beliefs(agent_id).add(agent_belief)
        return agent_belief

    def agents_with_belief(self, belief_id: int) -> List[AgentId]:
        return sorted(
            (a for a, b in self._beliefs.items() if b.contains(belief_id)),
            key=lambda a: (a.class_key, a.key),
        )

    def sum(self) -> float:
        return sum(b.sum() for b in self._beliefs.values())

    def potential(self) -> float:
        return float(sum(
            self._topics[bid].length
            for b in self._beliefs.values()
            for bid in b.belief_ids
            if bid in self._topics
        ))
