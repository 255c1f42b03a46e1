"""
Simulation Environment — the heartbeat of a run.

Owns the agents in registration order and everything they share: the
random generator, schedule, murphies, knowledge and belief networks,
interaction sphere, message bus and results collector.

Each step:
  1. pre_step for every agent
  2. act_cadence (new tasks, work loop, end of day) for every agent
  3. post_step for every agent
  4. the collector records the iteration
"""

import logging
from typing import Dict, List, Optional

import numpy as np

from orgsim.agents.agent import CognitiveAgent
from orgsim.agents.behavior import AgentBehavior
from orgsim.environment.schedule import Schedule
from orgsim.errors import InvalidArgumentError, NotFoundError
from orgsim.knowledge.store import BeliefNetwork, KnowledgeNetwork
from orgsim.messaging.bus import MessageBus
from orgsim.models.agent import CognitiveArchitecture
from orgsim.models.common import ACTOR_CLASS, AgentId
from orgsim.models.knowledge import Knowledge
from orgsim.models.organization import CommunicationConfig, OrganizationModels, SimulationConfig
from orgsim.models.results import IterationResult
from orgsim.murphies.policies import Murphies
from orgsim.network.sphere import InteractionSphere
from orgsim.results.collector import ResultsCollector
from orgsim.results.store import ResultsStore

logger = logging.getLogger("orgsim.environment")


class SimulationEnvironment:
    def __init__(
        self,
        config: Optional[SimulationConfig] = None,
        results_store: Optional[ResultsStore] = None,
    ):
        self.config = config or SimulationConfig()
        self.rng = np.random.default_rng(self.config.seed)
        self.schedule = Schedule(self.config.schedule)
        self.murphies = Murphies(self.config.murphies, self.rng)
        models = self.config.models
        self.knowledge_network = KnowledgeNetwork(self.rng, models.generator)
        self.belief_network = BeliefNetwork(self.rng, models.generator, models.impact_of_belief_on_task)
        self.sphere = InteractionSphere(self.knowledge_network, self.belief_network, self.rng)
        self.bus = MessageBus()
        self.collector = ResultsCollector(self, results_store)
        self._agents: Dict[AgentId, CognitiveAgent] = {}

    @property
    def models(self) -> OrganizationModels:
        return self.config.models

    @property
    def communication(self) -> CommunicationConfig:
        return self.config.communication

    # --- Setup ---

    def add_knowledge(self, knowledge: Knowledge) -> Knowledge:
        """Register a knowledge topic and its mirror belief topic."""
        self.knowledge_network.add_knowledge(knowledge)
        self.belief_network.add_belief(knowledge)
        return knowledge

    def create_agent(
        self,
        key: int,
        class_key: int = ACTOR_CLASS,
        cognitive: Optional[CognitiveArchitecture] = None,
        behavior: Optional[AgentBehavior] = None,
        has_email: bool = False,
    ) -> CognitiveAgent:
        agent_id = AgentId(key=key, class_key=class_key)
        if agent_id in self._agents:
            raise InvalidArgumentError(f"agent {agent_id} already exists")
        agent = CognitiveAgent(agent_id, self, cognitive, behavior, has_email)
        self._agents[agent_id] = agent
        if agent_id.is_actor:
            self.sphere.add_agent(agent_id)
        self.collector.watch(agent)
        logger.debug("Agent %s created", agent_id)
        return agent

    def get_agent(self, agent_id: AgentId) -> CognitiveAgent:
        agent = self._agents.get(agent_id)
        if agent is None:
            raise NotFoundError(f"agent {agent_id} not found")
        return agent

    def find_agent(self, agent_id: AgentId) -> Optional[CognitiveAgent]:
        return self._agents.get(agent_id)

    @property
    def agents(self) -> List[CognitiveAgent]:
        return list(self._agents.values())

    def link_all(self) -> None:
        """Let every actor interact with every other one."""
        actors = [a.id for a in self.agents if a.id.is_actor]
        for i, a in enumerate(actors):
            for b in actors[i + 1:]:
                self.sphere.add_interaction(a, b)

    # --- Run ---

    def step(self) -> IterationResult:
        step = self.schedule.step
        agents = self.agents
        logger.info("Step %d starts (%d agents)", step, len(agents))
        for agent in agents:
            agent.pre_step()
        for agent in agents:
            agent.act_cadence()
        for agent in agents:
            agent.post_step()
        result = self.collector.end_of_step(step)
        self.schedule.next()
        return result

    def run(self, steps: int) -> List[IterationResult]:
        if steps < 0:
            raise InvalidArgumentError("steps must be >= 0")
        results = [self.step() for _ in range(steps)]
        logger.info("Run finished at step %d", self.schedule.step)
        return results

    def status(self) -> dict:
        return {
            "step": self.schedule.step,
            "day": self.schedule.day_of(self.schedule.step).isoformat(),
            "working_day": self.schedule.is_working_day(),
            "agents": len(self._agents),
            "pending_messages": len(self.bus.pending()),
            "iterations": self.collector.store.count(),
        }
