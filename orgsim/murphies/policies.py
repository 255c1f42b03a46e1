"""
Murphy Policies — stochastic disruption rules, one per blocker kind.

Each policy wraps its pydantic configuration and the run's random
generator. Policies decide; they never mutate tasks or agents.

Decision points:
- check_*: does a task get blocked?
- should_guess / ask_internally: which recovery branch to take?
- next_guess / next_impact_on_time_spent: how costly is a guess?
- delay_to_reply_to_help / ask_on_which_channel: how does a helper answer?
"""

import logging
from typing import Optional

import numpy as np

from orgsim.errors import InvalidArgumentError
from orgsim.knowledge.store import AgentBeliefs, AgentExpertise
from orgsim.models.common import CommunicationMedium
from orgsim.models.knowledge import Belief, Knowledge
from orgsim.models.murphy import (
    BeliefCheck,
    ImpactLevel,
    KnowledgeCheck,
    MurphiesConfig,
    MurphyIncompleteConfig,
    MurphyIncompleteInformationConfig,
    MurphyKind,
    MurphyUnavailabilityConfig,
)
from orgsim.tasks.task import TaskKnowledgeBits

logger = logging.getLogger("orgsim.murphies")


class MurphyIncomplete:
    """Policy primitives shared by the incomplete knowledge, belief and information murphies."""

    kind: MurphyKind

    def __init__(self, config: MurphyIncompleteConfig, rng: np.random.Generator):
        self.config = config
        self._rng = rng

    @property
    def on(self) -> bool:
        return self.config.on

    def is_agent_on(self) -> bool:
        """Draw whether a newly created agent is subject to this murphy."""
        return bool(self._rng.random() < self.config.rate_of_agents_on)

    def should_guess(self, number_of_tries: int) -> bool:
        """True once the retry limit forces a guess. Never with an unlimited (-1) limit."""
        if self.config.limit_number_of_tries == -1:
            return False
        return number_of_tries >= self.config.limit_number_of_tries

    def ask_internally(self, step: int, initial_step: int) -> bool:
        """Peers are asked until the delay before searching externally has passed."""
        return step - initial_step <= self.config.delay_before_searching_externally

    def next_guess(self) -> ImpactLevel:
        if self._rng.random() < self.config.rate_of_incorrect_guess:
            return ImpactLevel.BLOCKED
        return ImpactLevel.GUESSED

    def next_impact_on_time_spent(self) -> float:
        """Multiplier (>= 1) applied to a task's size after a guess."""
        return 1.0 + self.config.impact_of_guessing_on_time_spent * float(self._rng.random())

    def delay_to_reply_to_help(self) -> int:
        """Steps before a helper replies; -1 means no reply at all."""
        if self._rng.random() >= self.config.rate_of_answers:
            return -1
        return int(self._rng.integers(0, self.config.response_time + 1))

    def ask_on_which_channel(self, preferred: CommunicationMedium) -> CommunicationMedium:
        mediums = CommunicationMedium(preferred).members()
        if not mediums:
            return CommunicationMedium.EMAIL
        return mediums[int(self._rng.integers(0, len(mediums)))]


class MurphyIncompleteKnowledge(MurphyIncomplete):
    kind = MurphyKind.INCOMPLETE_KNOWLEDGE

    def check_knowledge(
        self,
        knowledge_id: int,
        task_bits: TaskKnowledgeBits,
        expertise: AgentExpertise,
        step: int,
    ) -> KnowledgeCheck:
        """
        Compare the task's mandatory then required bits with the agent's
        expertise. The first unknown bit of each subset is reported.
        """
        if task_bits is None:
            raise InvalidArgumentError("task bits are required")
        if expertise is None:
            raise InvalidArgumentError("expertise is required")

        check = KnowledgeCheck()
        threshold = self.config.threshold_for_reacting
        knowledge = expertise.get(knowledge_id)

        for index in task_bits.mandatory:
            if knowledge is None or not knowledge.knows(index, threshold):
                check.mandatory_ok = False
                check.mandatory_index = index
                break
            knowledge.touch(index, step)

        for index in task_bits.required:
            if knowledge is None or not knowledge.knows(index, threshold):
                check.required_ok = False
                check.required_index = index
                break
            knowledge.touch(index, step)

        return check

    def generate_task_bits(self, knowledge: Knowledge) -> TaskKnowledgeBits:
        """Draw the bits a new task requires on a knowledge topic."""
        return generate_task_bits(
            self._rng, knowledge, self.config.required_ratio, self.config.mandatory_ratio
        )


class MurphyIncompleteBelief(MurphyIncomplete):
    kind = MurphyKind.INCOMPLETE_BELIEF

    def check_belief(
        self,
        belief: Belief,
        task_bits: TaskKnowledgeBits,
        beliefs: AgentBeliefs,
    ) -> BeliefCheck:
        """
        Score the agent's beliefs on the task bits: the sum of
        agent bit x topic weight over the mandatory (resp. required) bits.
        The reported index is the bit with the lowest contribution.
        """
        if belief is None:
            raise InvalidArgumentError("belief is required")
        if task_bits is None:
            raise InvalidArgumentError("task bits are required")
        if beliefs is None:
            raise InvalidArgumentError("agent beliefs are required")

        check = BeliefCheck()
        agent_belief = beliefs.get(belief.id)
        if agent_belief is None:
            return check

        check.mandatory_score, check.mandatory_index = self._score(belief, agent_belief, task_bits.mandatory)
        check.required_score, check.required_index = self._score(belief, agent_belief, task_bits.required)
        return check

    @staticmethod
    def _score(belief: Belief, agent_belief, indexes) -> tuple:
        score = 0.0
        lowest: Optional[float] = None
        lowest_index = 0
        for index in indexes:
            contribution = agent_belief.get_bit(index) * belief.weight(index)
            score += contribution
            if lowest is None or contribution < lowest:
                lowest = contribution
                lowest_index = index
        return score, lowest_index

    @staticmethod
    def check_risk_aversion(
        belief: Belief,
        task_bits: TaskKnowledgeBits,
        beliefs: AgentBeliefs,
        threshold: float,
    ) -> BeliefCheck:
        """
        Find the first mandatory bit whose contribution is at or below
        `threshold`. Its contribution is returned as mandatory_score,
        0 when no bit breaches.
        """
        if belief is None:
            raise InvalidArgumentError("belief is required")
        if task_bits is None:
            raise InvalidArgumentError("task bits are required")

        check = BeliefCheck()
        agent_belief = beliefs.get(belief.id) if beliefs is not None else None
        if agent_belief is None:
            return check

        for index in task_bits.mandatory:
            contribution = agent_belief.get_bit(index) * belief.weight(index)
            if contribution <= threshold:
                check.mandatory_score = contribution
                check.mandatory_index = index
                break
        return check


class MurphyIncompleteInformation(MurphyIncomplete):
    kind = MurphyKind.INCOMPLETE_INFORMATION
    config: MurphyIncompleteInformationConfig

    def check_information(self) -> bool:
        return bool(self._rng.random() < self.config.rate_of_missing_information)


class MurphyUnavailability:
    kind = MurphyKind.UNAVAILABILITY

    def __init__(self, config: MurphyUnavailabilityConfig, rng: np.random.Generator):
        self.config = config
        self._rng = rng

    @property
    def on(self) -> bool:
        return self.config.on

    def is_agent_on(self) -> bool:
        return bool(self._rng.random() < self.config.rate_of_agents_on)

    def next(self) -> bool:
        """Fresh daily draw: is the agent unavailable today?"""
        if not self.config.on:
            return False
        return bool(self._rng.random() < self.config.rate_of_unavailability)


class Murphies:
    """The murphies of one run, built from configuration and injected into agents."""

    def __init__(self, config: Optional[MurphiesConfig] = None, rng: Optional[np.random.Generator] = None):
        self.config = config or MurphiesConfig()
        rng = rng if rng is not None else np.random.default_rng()
        self.incomplete_knowledge = MurphyIncompleteKnowledge(self.config.incomplete_knowledge, rng)
        self.incomplete_belief = MurphyIncompleteBelief(self.config.incomplete_belief, rng)
        self.incomplete_information = MurphyIncompleteInformation(self.config.incomplete_information, rng)
        self.unavailability = MurphyUnavailability(self.config.unavailability, rng)

    @property
    def multiple_blockers(self) -> bool:
        return self.config.multiple_blockers

    def get(self, kind: MurphyKind):
        return {
            MurphyKind.INCOMPLETE_KNOWLEDGE: self.incomplete_knowledge,
            MurphyKind.INCOMPLETE_BELIEF: self.incomplete_belief,
            MurphyKind.INCOMPLETE_INFORMATION: self.incomplete_information,
            MurphyKind.UNAVAILABILITY: self.unavailability,
        }[kind]

    def __iter__(self):
        return iter((
            self.incomplete_knowledge,
            self.incomplete_belief,
            self.incomplete_information,
            self.unavailability,
        ))

    def apply(self, config: MurphiesConfig) -> None:
        """Swap in a new configuration between steps."""
        self.config = config
        self.incomplete_knowledge.config = config.incomplete_knowledge
        self.incomplete_belief.config = config.incomplete_belief
        self.incomplete_information.config = config.incomplete_information
        self.unavailability.config = config.unavailability
        logger.info("Murphies reconfigured")


def generate_task_bits(
    rng: np.random.Generator,
    knowledge: Knowledge,
    required_ratio: float,
    mandatory_ratio: float,
) -> TaskKnowledgeBits:
    """
    Required bits are a random share of the topic's bits, at least one.
    Mandatory bits are a share of the required ones, in the same order.
    """
    required_count = max(1, int(round(knowledge.length * required_ratio)))
    required = sorted(int(i) for i in rng.choice(knowledge.length, size=required_count, replace=False))
    mandatory_count = int(round(required_count * mandatory_ratio))
    mandatory = required[:mandatory_count]
    return TaskKnowledgeBits(knowledge.id, mandatory=mandatory, required=required)
