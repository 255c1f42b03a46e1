"""
Agent behaviours — the override points of an agent, picked at construction.

DefaultBehavior gets no new tasks, starts each day at the configured
capacity and settles external escalation by guessing. The other
behaviours replace one or two of those hooks.
"""

import logging
from typing import Optional, Protocol

from orgsim.models.blocker import Blocker
from orgsim.models.common import AgentId
from orgsim.models.messaging import (
    Message,
    MessageAction,
    MessageAttachments,
    MessageSubject,
)
from orgsim.models.murphy import MurphyKind
from orgsim.tasks.task import SimTask

logger = logging.getLogger("orgsim.agents")


class AgentBehavior(Protocol):
    def get_new_tasks(self, agent) -> None: ...

    def set_initial_capacity(self, agent) -> float: ...

    def switching_context(self, agent, task: SimTask) -> None: ...

    def try_recover_externally(self, agent, task: SimTask, blocker: Blocker) -> None: ...

    def act(self, agent, message: Message) -> bool: ...


class DefaultBehavior:
    def get_new_tasks(self, agent) -> None:
        pass

    def set_initial_capacity(self, agent) -> float:
        return agent.cognitive.tasks_and_performance.initial_capacity

    def switching_context(self, agent, task: SimTask) -> None:
        pass

    def try_recover_externally(self, agent, task: SimTask, blocker: Blocker) -> None:
        """Last resort: the blocker must be settled one way or another."""
        agent.blockers.recover_by_guessing(task, blocker)

    def act(self, agent, message: Message) -> bool:
        """Handle a message before the default dispatch. True when handled."""
        return False


class WorkerBehavior(DefaultBehavior):
    """Gets one new task per working day, on a random knowledge topic."""

    def __init__(self, tasks_per_step: int = 1, weight: float = 1.0, key_activity: str = "work"):
        self.tasks_per_step = tasks_per_step
        self.weight = weight
        self.key_activity = key_activity

    def get_new_tasks(self, agent) -> None:
        env = agent.environment
        knowledges = env.knowledge_network.knowledges
        for _ in range(self.tasks_per_step):
            if agent.processor.has_reached_total_maximum_limit:
                return
            creators = env.sphere.agents or [agent.id]
            creator = creators[int(env.rng.integers(0, len(creators)))]
            task = SimTask(
                creator=creator,
                weight=self.weight,
                created=agent.step,
                key_activity=self.key_activity,
            )
            if knowledges:
                knowledge = knowledges[int(env.rng.integers(0, len(knowledges)))]
                task.knowledges_bits.add(
                    env.murphies.incomplete_knowledge.generate_task_bits(knowledge)
                )
            agent.post(task)


class AskExternalAgentBehavior(DefaultBehavior):
    """Escalates blockers to an agent outside the organization, e.g. internet access."""

    def __init__(self, external_id: AgentId):
        self.external_id = external_id

    def try_recover_externally(self, agent, task: SimTask, blocker: Blocker) -> None:
        murphy = agent.environment.murphies.get(blocker.kind)
        medium = murphy.ask_on_which_channel(
            agent.cognitive.interaction_characteristics.preferred_communication_mediums
        )
        attachments = MessageAttachments(
            blocker=blocker,
            task=task,
            knowledge_id=blocker.parameter,
            knowledge_bit=blocker.parameter2,
        )
        agent.impact_of_communication_medium_on_time_spent(medium, True, task.key_activity)
        agent.send(self.external_id, MessageAction.ASK, MessageSubject.HELP, attachments, medium)
        logger.debug("Agent %s escalates blocker %s to %s", agent.id, blocker.id, self.external_id)


class ExternalHelperBehavior(DefaultBehavior):
    """Answers every help request at once with full knowledge."""

    def act(self, agent, message: Message) -> bool:
        if message.subject != MessageSubject.HELP or message.action != MessageAction.ASK:
            return False
        asked = message.attachments
        reply = asked.model_copy()
        blocker: Optional[Blocker] = asked.blocker
        if blocker is not None and blocker.parameter is not None:
            env = agent.environment
            if blocker.kind == MurphyKind.INCOMPLETE_KNOWLEDGE and env.knowledge_network.exists(blocker.parameter):
                length = env.knowledge_network.get_knowledge(blocker.parameter).length
                reply.knowledge_bits = [1.0] * length
            elif blocker.kind == MurphyKind.INCOMPLETE_BELIEF and env.belief_network.exists(blocker.parameter):
                length = env.belief_network.get_belief(blocker.parameter).length
                reply.belief_bits = [1.0] * length
        agent.reply(message, reply)
        return True
