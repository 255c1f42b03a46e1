"""
Interaction Sphere — who an agent can turn to.

Links are undirected. Candidate lists are always sorted so that runs
with the same seed take the same decisions.
"""

import logging
from typing import Dict, List, Optional, Set

import numpy as np

from orgsim.knowledge.store import BeliefNetwork, KnowledgeNetwork
from orgsim.models.common import AgentId, InteractionStrategy

logger = logging.getLogger("orgsim.network")


def _order(agent_id: AgentId) -> tuple:
    return agent_id.class_key, agent_id.key


class InteractionSphere:
    def __init__(
        self,
        knowledge_network: KnowledgeNetwork,
        belief_network: BeliefNetwork,
        rng: np.random.Generator,
    ):
        self.knowledge_network = knowledge_network
        self.belief_network = belief_network
        self._rng = rng
        self._agents: List[AgentId] = []
        self._links: Dict[AgentId, Set[AgentId]] = {}

    def add_agent(self, agent_id: AgentId) -> None:
        if agent_id not in self._links:
            self._agents.append(agent_id)
            self._links[agent_id] = set()

    def remove_agent(self, agent_id: AgentId) -> None:
        for links in self._links.values():
            links.discard(agent_id)
        self._links.pop(agent_id, None)
        if agent_id in self._agents:
            self._agents.remove(agent_id)

    def add_interaction(self, a: AgentId, b: AgentId) -> None:
        if a == b:
            return
        self.add_agent(a)
        self.add_agent(b)
        self._links[a].add(b)
        self._links[b].add(a)

    def has_interaction(self, a: AgentId, b: AgentId) -> bool:
        return b in self._links.get(a, set())

    def interactions(self, agent_id: AgentId) -> List[AgentId]:
        return sorted(self._links.get(agent_id, set()), key=_order)

    def get_agent_ids_for_interactions(
        self,
        agent_id: AgentId,
        strategy: InteractionStrategy,
        topic_id: Optional[int] = None,
    ) -> List[AgentId]:
        """Linked agents, filtered by who holds the topic for KNOWLEDGE / BELIEFS."""
        peers = self.interactions(agent_id)
        if strategy == InteractionStrategy.KNOWLEDGE and topic_id is not None:
            holders = set(self.knowledge_network.agents_with_knowledge(topic_id))
            peers = [p for p in peers if p in holders]
        elif strategy == InteractionStrategy.BELIEFS and topic_id is not None:
            holders = set(self.belief_network.agents_with_belief(topic_id))
            peers = [p for p in peers if p in holders]
        return peers

    def get_agent_ids_for_new_interactions(self, agent_id: AgentId, count: int) -> List[AgentId]:
        """Up to `count` agents not yet linked, drawn at random."""
        if count <= 0:
            return []
        linked = self._links.get(agent_id, set())
        candidates = sorted(
            (a for a in self._agents if a != agent_id and a not in linked),
            key=_order,
        )
        if not candidates:
            return []
        size = min(count, len(candidates))
        picked = self._rng.choice(len(candidates), size=size, replace=False)
        return sorted((candidates[int(i)] for i in picked), key=_order)

    def density(self) -> float:
        n = len(self._agents)
        if n < 2:
            return 0.0
        links = sum(len(v) for v in self._links.values()) / 2
        return links / (n * (n - 1) / 2)

    @property
    def agents(self) -> List[AgentId]:
        return list(self._agents)
