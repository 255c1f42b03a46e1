"""
Blocker detection and recovery for one agent.

Detection runs in a fixed order on each task: knowledge, then beliefs
(with the risk-aversion check), then information. Recovery is tried once
per blocker per step:

  1. The agent may not receive help of this kind: guess.
  2. Knowledge only: a hit in the agent's database resolves by searching.
  3. Peers exist, asking internally is still allowed and the retry limit
     does not force a guess: ask every peer for help and wait.
  4. No peers, or too late to ask internally: escalate externally.
  5. Otherwise: guess.

Business outcomes never raise. A missing task, blocker or message does.
"""

import logging
from enum import Enum
from typing import Callable, Dict, List, Optional

from orgsim.errors import InvalidArgumentError
from orgsim.models.blocker import Blocker
from orgsim.models.common import InteractionStrategy
from orgsim.models.messaging import (
    Message,
    MessageAction,
    MessageAttachments,
    MessageSubject,
)
from orgsim.models.murphy import BlockerResolution, ImpactLevel, MurphyKind
from orgsim.tasks.processor import TaskEvent
from orgsim.tasks.task import SimTask

logger = logging.getLogger("orgsim.blockers")


class BlockerEvent(str, Enum):
    ADDED = "added"
    RESOLVED = "resolved"
    CANCELLED = "cancelled"


class BlockerResolver:
    """Detects and recovers the blockers of the tasks of one agent."""

    def __init__(self, agent):
        self.agent = agent
        self._subscribers: Dict[BlockerEvent, List[Callable]] = {e: [] for e in BlockerEvent}
        agent.processor.subscribe(TaskEvent.CANCELLED, self._on_task_cancelled)

    # --- Shortcuts ---

    @property
    def _env(self):
        return self.agent.environment

    @property
    def _murphies(self):
        return self._env.murphies

    @property
    def _step(self) -> int:
        return self.agent.step

    def _is_on(self, murphy) -> bool:
        return murphy.on and self.agent.is_subject_to(murphy.kind)

    # --- Events ---

    def subscribe(self, event: BlockerEvent, callback: Callable) -> None:
        """Callbacks get (agent_id, task, blocker), in registration order."""
        self._subscribers[event].append(callback)

    def _notify(self, event: BlockerEvent, task: SimTask, blocker: Blocker) -> None:
        for callback in self._subscribers[event]:
            callback(self.agent.id, task, blocker)

    # --- Bookkeeping ---

    def add_blocker(
        self,
        task: SimTask,
        kind: MurphyKind,
        parameter: Optional[int] = None,
        parameter2: Optional[int] = None,
    ) -> Blocker:
        blocker = task.blockers.add(kind, self._step, parameter, parameter2)
        logger.debug(
            "Agent %s: task %s blocked by %s (%s, %s)",
            self.agent.id, task.id, kind.value, parameter, parameter2,
        )
        self._notify(BlockerEvent.ADDED, task, blocker)
        return blocker

    def recover_blocker(self, task: SimTask, blocker: Blocker, resolution: BlockerResolution) -> bool:
        if not task.blockers.recover(blocker, resolution, self._step):
            return False
        event = BlockerEvent.CANCELLED if resolution == BlockerResolution.CANCELLED else BlockerEvent.RESOLVED
        self._notify(event, task, blocker)
        return True

    def cancel_task(self, task: SimTask, blocker: Optional[Blocker] = None) -> None:
        """Cancel the task and every blocker still open on it."""
        self.agent.processor.cancel(task)
        if blocker is not None:
            self.recover_blocker(task, blocker, BlockerResolution.CANCELLED)

    def _on_task_cancelled(self, task: SimTask) -> None:
        # Expired tasks are cancelled by the processor directly
        for blocker in task.blockers.active:
            self.recover_blocker(task, blocker, BlockerResolution.CANCELLED)

    # --- Detection ---

    def check_blockers(self, task: SimTask) -> None:
        if task is None:
            raise InvalidArgumentError("task is required")
        if not self._murphies.multiple_blockers and task.is_blocked:
            return
        self.check_new_blockers(task)

    def check_new_blockers(self, task: SimTask) -> None:
        if task is None:
            raise InvalidArgumentError("task is required")
        if task.is_message:
            return
        self.check_blocker_incomplete_knowledge(task)
        self.check_blocker_incomplete_beliefs(task)
        self.check_blocker_incomplete_information(task)

    def _is_workable(self, task: SimTask) -> bool:
        return not task.is_done and not task.is_cancelled_by(self.agent.id)

    def check_blocker_incomplete_knowledge(self, task: SimTask) -> None:
        murphy = self._murphies.incomplete_knowledge
        if not self._is_on(murphy) or not self._env.models.knowledge.on:
            return
        for knowledge_id in task.knowledges_bits.knowledge_ids:
            if not self._is_workable(task):
                return
            self._check_knowledge(task, knowledge_id)

    def _check_knowledge(self, task: SimTask, knowledge_id: int) -> None:
        murphy = self._murphies.incomplete_knowledge
        check = murphy.check_knowledge(
            knowledge_id,
            task.knowledges_bits.get_bits(knowledge_id),
            self.agent.expertise,
            self._step,
        )
        if not check.mandatory_ok:
            blocker = self.add_blocker(
                task, MurphyKind.INCOMPLETE_KNOWLEDGE, knowledge_id, check.mandatory_index
            )
            task.blockers.update(blocker, self._step)
            self.try_recover_blocker_incomplete_knowledge(task, blocker)
        elif not check.required_ok:
            self.recover_blocker_incomplete_knowledge_by_guessing(
                task, None, knowledge_id, check.required_index, BlockerResolution.GUESSING
            )

    def check_blocker_incomplete_beliefs(self, task: SimTask) -> None:
        if task.is_message or not self.agent.has_beliefs:
            return
        for knowledge_id in task.knowledges_bits.knowledge_ids:
            if not self._is_workable(task):
                return
            if not self._env.belief_network.exists(knowledge_id):
                continue
            self.check_blocker_incomplete_belief(task, knowledge_id)
            if not self._is_workable(task):
                return
            self.check_risk_aversion(task, knowledge_id)

    def check_blocker_incomplete_belief(self, task: SimTask, knowledge_id: int) -> None:
        """A belief blocker is added when the mandatory score is strictly below -threshold."""
        murphy = self._murphies.incomplete_belief
        if not self._is_on(murphy):
            return
        belief = self._env.belief_network.get_belief(knowledge_id)
        check = murphy.check_belief(
            belief, task.knowledges_bits.get_bits(knowledge_id), self.agent.beliefs
        )
        if not check.mandatory_score < -murphy.config.threshold_for_reacting:
            return
        blocker = self.add_blocker(
            task, MurphyKind.INCOMPLETE_BELIEF, knowledge_id, check.mandatory_index
        )
        task.blockers.update(blocker, self._step)
        self.try_recover_blocker_incomplete_belief(task, blocker)

    def check_risk_aversion(self, task: SimTask, knowledge_id: int) -> None:
        """Cancel the task outright when a belief breaches the risk aversion threshold."""
        threshold = -self.agent.cognitive.internal_characteristics.risk_aversion_threshold
        belief = self._env.belief_network.get_belief(knowledge_id)
        check = self._murphies.incomplete_belief.check_risk_aversion(
            belief, task.knowledges_bits.get_bits(knowledge_id), self.agent.beliefs, threshold
        )
        if not check.mandatory_score <= threshold:
            return
        blocker = self.add_blocker(
            task, MurphyKind.INCOMPLETE_BELIEF, knowledge_id, check.mandatory_index
        )
        logger.debug("Agent %s: task %s cancelled by risk aversion", self.agent.id, task.id)
        self.cancel_task(task, blocker)

    def check_blocker_incomplete_information(self, task: SimTask) -> bool:
        murphy = self._murphies.incomplete_information
        if (
            not self._is_on(murphy)
            or not self._is_workable(task)
            or task.creator == self.agent.id
            or task.blockers.has_been_blocked_by(MurphyKind.INCOMPLETE_INFORMATION)
        ):
            return False
        if not murphy.check_information():
            return False
        blocker = self.add_blocker(task, MurphyKind.INCOMPLETE_INFORMATION)
        task.blockers.update(blocker, self._step)
        self.try_recover_blocker(task, blocker)
        return True

    # --- Recovery ---

    def try_recover_blocked_task(self, task: SimTask) -> None:
        """Try each open blocker once for this step. No-op without blockers."""
        if task is None:
            raise InvalidArgumentError("task is required")
        for blocker in task.blockers.filter_blockers(self._step):
            if task.is_cancelled_by(self.agent.id):
                return
            task.blockers.update(blocker, self._step)
            self.try_recover_blocker(task, blocker)

    def try_recover_blocker(self, task: SimTask, blocker: Blocker) -> None:
        if blocker is None:
            raise InvalidArgumentError("blocker is required")
        if blocker.kind == MurphyKind.INCOMPLETE_KNOWLEDGE:
            self.try_recover_blocker_incomplete_knowledge(task, blocker)
        elif blocker.kind == MurphyKind.INCOMPLETE_BELIEF:
            self.try_recover_blocker_incomplete_belief(task, blocker)
        elif blocker.kind == MurphyKind.INCOMPLETE_INFORMATION:
            self.try_recover_blocker_incomplete_information(task, blocker)

    def _ask_peers(self, task: SimTask, blocker: Blocker, murphy, peers) -> None:
        attachments = MessageAttachments(
            blocker=blocker,
            task=task,
            knowledge_id=blocker.parameter,
            knowledge_bit=blocker.parameter2,
        )
        medium = murphy.ask_on_which_channel(
            self.agent.cognitive.interaction_characteristics.preferred_communication_mediums
        )
        self.agent.impact_of_communication_medium_on_time_spent(medium, True, task.key_activity)
        self.agent.send_to_many(peers, MessageAction.ASK, MessageSubject.HELP, attachments, medium)

    def try_recover_blocker_incomplete_knowledge(self, task: SimTask, blocker: Blocker) -> None:
        if task is None:
            raise InvalidArgumentError("task is required")
        if blocker is None:
            raise InvalidArgumentError("blocker is required")
        knowledge_id, bit = blocker.parameter, blocker.parameter2

        if not self.agent.cognitive.message_content.can_receive_knowledge:
            self.recover_blocker_incomplete_knowledge_by_guessing(
                task, blocker, knowledge_id, bit, BlockerResolution.GUESSING
            )
            return

        database = self.agent.database
        if database is not None and database.search_knowledge(
            knowledge_id, bit, self.agent.cognitive.internal_characteristics.learning_rate, self._step
        ):
            self.recover_blocker_incomplete_knowledge_by_guessing(
                task, blocker, knowledge_id, bit, BlockerResolution.SEARCHING
            )
            return

        murphy = self._murphies.incomplete_knowledge
        peers = self.agent.get_agent_ids_for_interactions(InteractionStrategy.KNOWLEDGE, knowledge_id)
        ask_internally = murphy.ask_internally(self._step, blocker.initial_step)
        if peers and ask_internally and not murphy.should_guess(blocker.number_of_tries):
            self._ask_peers(task, blocker, murphy, peers)
        elif not peers or not ask_internally:
            self.agent.behavior.try_recover_externally(self.agent, task, blocker)
        else:
            self.recover_blocker_incomplete_knowledge_by_guessing(
                task, blocker, knowledge_id, bit, BlockerResolution.GUESSING
            )

    def try_recover_blocker_incomplete_belief(self, task: SimTask, blocker: Blocker) -> None:
        if task is None:
            raise InvalidArgumentError("task is required")
        if blocker is None:
            raise InvalidArgumentError("blocker is required")

        if not self.agent.cognitive.message_content.can_receive_beliefs:
            self.recover_blocker_incomplete_belief_by_guessing(task, blocker)
            return

        murphy = self._murphies.incomplete_belief
        peers = self.agent.get_agent_ids_for_interactions(InteractionStrategy.BELIEFS, blocker.parameter)
        ask_internally = murphy.ask_internally(self._step, blocker.initial_step)
        if peers and ask_internally and not murphy.should_guess(blocker.number_of_tries):
            self._ask_peers(task, blocker, murphy, peers)
        elif not peers or not ask_internally:
            self.agent.behavior.try_recover_externally(self.agent, task, blocker)
        else:
            self.recover_blocker_incomplete_belief_by_guessing(task, blocker)

    def try_recover_blocker_incomplete_information(self, task: SimTask, blocker: Blocker) -> None:
        """Missing information comes from whoever created the task."""
        if task is None:
            raise InvalidArgumentError("task is required")
        if blocker is None:
            raise InvalidArgumentError("blocker is required")

        murphy = self._murphies.incomplete_information
        creator = task.creator
        has_creator = creator is not None and creator != self.agent.id
        ask_internally = murphy.ask_internally(self._step, blocker.initial_step)
        if has_creator and ask_internally and not murphy.should_guess(blocker.number_of_tries):
            self._ask_peers(task, blocker, murphy, [creator])
        elif not has_creator or not ask_internally:
            self.agent.behavior.try_recover_externally(self.agent, task, blocker)
        else:
            self.recover_blocker_incomplete_by_guessing(
                task, blocker, murphy, BlockerResolution.GUESSING
            )

    # --- Guessing ---

    def recover_by_guessing(self, task: SimTask, blocker: Blocker) -> None:
        """Guess whatever the blocker kind."""
        if blocker is None:
            raise InvalidArgumentError("blocker is required")
        if blocker.kind == MurphyKind.INCOMPLETE_KNOWLEDGE:
            self.recover_blocker_incomplete_knowledge_by_guessing(
                task, blocker, blocker.parameter, blocker.parameter2, BlockerResolution.GUESSING
            )
        elif blocker.kind == MurphyKind.INCOMPLETE_BELIEF:
            self.recover_blocker_incomplete_belief_by_guessing(task, blocker)
        else:
            self.recover_blocker_incomplete_by_guessing(
                task, blocker, self._murphies.get(blocker.kind), BlockerResolution.GUESSING
            )

    def recover_blocker_incomplete_by_guessing(
        self,
        task: SimTask,
        blocker: Optional[Blocker],
        murphy,
        resolution: BlockerResolution,
    ) -> ImpactLevel:
        """
        Draw the impact of the guess. With a blocker, a task whose worst
        impact is now BLOCKED is cancelled; otherwise the task grows by the
        guess penalty and the blocker is resolved. Without a blocker the
        guess only degrades the task.
        """
        if task is None:
            raise InvalidArgumentError("task is required")
        if murphy is None:
            raise InvalidArgumentError("murphy is required")
        impact = murphy.next_guess()
        task.set_incorrect(impact)
        if blocker is not None and task.incorrect == ImpactLevel.BLOCKED:
            self.cancel_task(task, blocker)
            return ImpactLevel.BLOCKED
        if impact == ImpactLevel.BLOCKED:
            return impact
        task.apply_impact_on_time_spent(murphy.next_impact_on_time_spent())
        if blocker is not None:
            self.recover_blocker(task, blocker, resolution)
        return impact

    def recover_blocker_incomplete_knowledge_by_guessing(
        self,
        task: SimTask,
        blocker: Optional[Blocker],
        knowledge_id: int,
        bit: int,
        resolution: BlockerResolution,
    ) -> None:
        impact = self.recover_blocker_incomplete_by_guessing(
            task, blocker, self._murphies.incomplete_knowledge, resolution
        )
        if impact == ImpactLevel.BLOCKED:
            return
        self.agent.learning.learn_by_doing(knowledge_id, bit, self._step)
        if blocker is None:
            task.knowledges_bits.remove_first_required(knowledge_id)
        else:
            task.knowledges_bits.remove_first_mandatory(knowledge_id)

    def recover_blocker_incomplete_belief_by_guessing(self, task: SimTask, blocker: Blocker) -> None:
        if blocker is None:
            raise InvalidArgumentError("blocker is required")
        impact = self.recover_blocker_incomplete_by_guessing(
            task, blocker, self._murphies.incomplete_belief, BlockerResolution.GUESSING
        )
        if impact == ImpactLevel.BLOCKED:
            return
        self.agent.influence.reinforcement_by_doing(blocker.parameter, blocker.parameter2, self._step)

    # --- Help exchange ---

    def ask_help(self, message: Message) -> None:
        """A peer asks for help on one of its blockers."""
        if message is None:
            raise InvalidArgumentError("message is required")
        blocker = message.attachments.blocker
        if blocker is None or blocker.kind == MurphyKind.UNAVAILABILITY:
            return
        delay = self._murphies.get(blocker.kind).delay_to_reply_to_help()
        if delay == -1:
            return

        attachments = message.attachments.model_copy()
        content = self.agent.cognitive.message_content
        if blocker.kind == MurphyKind.INCOMPLETE_KNOWLEDGE and content.can_send_knowledge:
            knowledge = self.agent.expertise.get(blocker.parameter)
            threshold = self._murphies.incomplete_knowledge.config.threshold_for_reacting
            if knowledge is not None and knowledge.knows(blocker.parameter2, threshold):
                attachments.knowledge_bits = knowledge.to_list()
        elif blocker.kind == MurphyKind.INCOMPLETE_BELIEF and content.can_send_beliefs:
            belief = self.agent.beliefs.get(blocker.parameter)
            if belief is not None:
                attachments.belief_bits = belief.to_list()

        if delay == 0:
            task = message.attachments.task
            key_activity = task.key_activity if task is not None else ""
            self.agent.impact_of_communication_medium_on_time_spent(message.medium, False, key_activity)
            self.agent.impact_of_communication_medium_on_time_spent(message.medium, True, key_activity)
            self.agent.reply(message, attachments)
        else:
            self.agent.reply_delayed(message, self._step + delay, attachments)

    def reply_help(self, message: Message) -> None:
        """A peer answered. Late or empty answers are dropped."""
        if message is None:
            raise InvalidArgumentError("message is required")
        attachments = message.attachments
        task: SimTask = attachments.task
        if task is None:
            raise InvalidArgumentError("reply carries no task")
        if attachments.blocker is None:
            raise InvalidArgumentError("reply carries no blocker")
        blocker = task.blockers.find(attachments.blocker.id) or attachments.blocker

        if blocker.is_resolved or task.is_cancelled_by(self.agent.id):
            return
        if blocker.kind == MurphyKind.INCOMPLETE_KNOWLEDGE and attachments.knowledge_bits is None:
            return
        if blocker.kind == MurphyKind.INCOMPLETE_BELIEF and attachments.belief_bits is None:
            return

        self.agent.impact_of_communication_medium_on_time_spent(message.medium, False, task.key_activity)
        resolution = BlockerResolution.INTERNAL if message.sender.is_actor else BlockerResolution.EXTERNAL
        self.recover_blocker(task, blocker, resolution)

        if blocker.kind == MurphyKind.INCOMPLETE_KNOWLEDGE:
            knowledge_id = blocker.parameter
            task.knowledges_bits.remove_first_mandatory(knowledge_id)
            self.agent.learning.learn(knowledge_id, attachments.knowledge_bits, self._step)
            if self.agent.database is not None:
                self.agent.database.store_knowledge(
                    knowledge_id,
                    attachments.knowledge_bits,
                    self.agent.cognitive.internal_characteristics.learning_rate,
                    self._step,
                )
        elif blocker.kind == MurphyKind.INCOMPLETE_BELIEF:
            sender = self._env.find_agent(message.sender)
            influentialness = sender.influence.influentialness if sender is not None else 1.0
            self.agent.influence.be_influenced(
                blocker.parameter, attachments.belief_bits, influentialness, self._step
            )
