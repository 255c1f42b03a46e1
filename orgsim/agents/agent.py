"""
Agent Step Engine — one agent's simulated day.

  PreStep    reset counters, start forgetting, status, capacity, read mail
  WorkLoop   receive tasks until capacity or schedulable tasks run out
  EndOfDay   grow the interaction sphere, expire stale tasks
  PostStep   finish forgetting

A task is worked in three moves: recover known blockers, detect new
ones, then spend time on it if nothing stops the agent.
"""

import logging
from typing import Dict, Iterable, List, Optional

from orgsim.agents.behavior import AgentBehavior, DefaultBehavior
from orgsim.agents.blockers import BlockerResolver
from orgsim.cognition.forgetting import ForgettingModel
from orgsim.cognition.influence import InfluenceModel
from orgsim.cognition.learning import LearningModel
from orgsim.errors import InvalidArgumentError
from orgsim.knowledge.database import Database
from orgsim.models.agent import AgentCapacity, CognitiveArchitecture
from orgsim.models.common import (
    TOLERANCE,
    AgentId,
    AgentStatus,
    CommunicationMedium,
    InteractionStrategy,
)
from orgsim.models.messaging import (
    Message,
    MessageAction,
    MessageAttachments,
    MessageSubject,
)
from orgsim.models.murphy import MurphyKind
from orgsim.tasks.processor import TaskProcessor
from orgsim.tasks.task import SimTask

logger = logging.getLogger("orgsim.agents")


class CognitiveAgent:
    """An agent that works on tasks, gets blocked, asks for help, learns and forgets."""

    def __init__(
        self,
        agent_id: AgentId,
        environment,
        cognitive: Optional[CognitiveArchitecture] = None,
        behavior: Optional[AgentBehavior] = None,
        has_email: bool = False,
        email_time_to_live: int = -1,
    ):
        if agent_id is None:
            raise InvalidArgumentError("agent id is required")
        if environment is None:
            raise InvalidArgumentError("environment is required")
        self.id = agent_id
        self.environment = environment
        self.cognitive = cognitive or CognitiveArchitecture()
        self.behavior: AgentBehavior = behavior or DefaultBehavior()
        self.status = AgentStatus.AVAILABLE
        self.capacity = AgentCapacity()
        self.processor = TaskProcessor(agent_id, self.cognitive.tasks_and_performance.tasks_limit)
        self.time_spent: Dict[str, float] = {}
        self.time_spent_today = 0.0
        self.messages_sent = 0

        models = environment.models
        rng = environment.rng
        internal = self.cognitive.internal_characteristics
        self.expertise = environment.knowledge_network.expertise(agent_id)
        self.beliefs = environment.belief_network.beliefs(agent_id)
        self.database = Database(agent_id, email_time_to_live) if has_email else None
        self.learning = LearningModel(
            agent_id, self.expertise, environment.knowledge_network, internal, models.learning, rng
        )
        self.forgetting = ForgettingModel(agent_id, self.expertise, internal, models.forgetting, rng)
        self.influence = InfluenceModel(
            agent_id, self.beliefs, environment.belief_network, internal, models.influence, rng
        )
        self.has_beliefs = (
            models.beliefs.on
            and self.cognitive.knowledge_and_beliefs.has_belief
            and bool(rng.random() < models.beliefs.rate_of_agents_on)
        )
        self._murphies_on: Dict[MurphyKind, bool] = {
            murphy.kind: murphy.is_agent_on() for murphy in environment.murphies
        }
        self.blockers = BlockerResolver(self)
        environment.bus.register(agent_id, self.on_message)

    def __repr__(self) -> str:
        return f"CognitiveAgent({self.id})"

    @property
    def step(self) -> int:
        return self.environment.schedule.step

    def is_subject_to(self, kind: MurphyKind) -> bool:
        return self._murphies_on.get(kind, False)

    # --- PreStep ---

    def pre_step(self) -> None:
        self.messages_sent = 0
        self.time_spent_today = 0.0
        self.forgetting.initialize_forgetting_process()
        if self.database is not None:
            self.database.forgetting_process(self.step)
        self.handle_status()
        self.handle_capacity(True)
        if self.status != AgentStatus.OFFLINE:
            self.receive_messages()

    def handle_status(self) -> None:
        """Isolated agents are offline for the day."""
        rate = self.cognitive.interaction_patterns.isolation_rate
        isolated = rate > 0 and bool(self.environment.rng.random() < rate)
        self.status = AgentStatus.OFFLINE if isolated else AgentStatus.AVAILABLE

    def is_performing_task(self) -> bool:
        if self.environment.schedule.is_working_day(self.step):
            return True
        return self.cognitive.tasks_and_performance.can_perform_task_on_week_ends

    def handle_capacity(self, reset_remaining: bool) -> None:
        """
        Baseline capacity on days the agent works, 0 otherwise. The
        unavailability murphy can take the whole day away.
        """
        if self.is_performing_task():
            self.capacity.initial = self.behavior.set_initial_capacity(self)
            self.murphies_impacts_on_capacity()
        else:
            self.capacity.initial = 0.0
        if reset_remaining:
            self.capacity.reset()

    def murphies_impacts_on_capacity(self) -> None:
        if not self.is_subject_to(MurphyKind.UNAVAILABILITY):
            return
        if self.environment.murphies.unavailability.next():
            self.capacity.initial = 0.0
            self.status = AgentStatus.OFFLINE
            logger.debug("Agent %s unavailable at step %d", self.id, self.step)

    def receive_messages(self) -> None:
        for message in self.environment.bus.collect(self.id, self.step):
            self.on_message(message)

    # --- Day ---

    def act_cadence(self) -> None:
        """New tasks, work loop and end of day."""
        if self.environment.schedule.is_working_day(self.step):
            self.act_working_day()
        else:
            self.act_week_end()
        self.work_loop()
        self.act_end_of_day()

    def act_working_day(self) -> None:
        performance = self.cognitive.tasks_and_performance
        if performance.can_perform_task and not self.processor.has_reached_total_maximum_limit:
            self.behavior.get_new_tasks(self)

    def act_week_end(self) -> None:
        if self.cognitive.tasks_and_performance.can_perform_task_on_week_ends:
            self.act_working_day()

    def work_loop(self) -> None:
        while self.capacity.has_capacity and self.status != AgentStatus.OFFLINE:
            task = self.processor.receive(self.step)
            if task is None:
                break
            if task.is_message and task.is_to_do:
                self.act_message(task.parent)
            self.work_in_progress(task)

    def work_in_progress(self, task: SimTask) -> None:
        if task is None:
            raise InvalidArgumentError("task is required")
        self.blockers.try_recover_blocked_task(task)
        self.blockers.check_blockers(task)
        if not task.is_cancelled_by(self.id) and not task.is_blocked and self.capacity.has_capacity:
            self.work_on_task(task)
        if self.capacity.has_capacity:
            self.behavior.switching_context(self, task)

    def work_on_task(self, task: SimTask) -> float:
        """Spend time on a task. Returns the time spent."""
        if task is None:
            raise InvalidArgumentError("task is required")
        if self.environment.schedule.is_intraday:
            time_spent = min(self.environment.models.intraday, self.capacity.actual)
        elif self.cognitive.tasks_and_performance.tasks_limit.limit_simultaneous_tasks:
            time_spent = min(task.weight, self.capacity.actual)
        else:
            time_spent = min(task.weight / 2, self.capacity.actual)

        time_spent = min(task.work_to_do, time_spent)
        task.work_to_do = max(0.0, task.work_to_do - time_spent)
        if task.work_to_do < TOLERANCE:
            self.processor.set_done(task)
        else:
            task.update(self.step)

        # Working on a topic keeps it from being forgotten today
        self.forgetting.update_forgetting_process(task.knowledges_bits, self.step)
        self.capacity.decrement(time_spent)
        self.add_time_spent(task.key_activity, time_spent)
        return time_spent

    def act_end_of_day(self) -> None:
        self.send_new_interactions()
        self.processor.tasks_check(self.step)

    def send_new_interactions(self) -> None:
        patterns = self.cognitive.interaction_patterns
        if not patterns.allow_new_interactions or not self.environment.models.interaction_sphere.on:
            return
        new_ids = self.environment.sphere.get_agent_ids_for_new_interactions(
            self.id, patterns.max_new_interactions_per_step
        )
        if new_ids:
            self.send_to_many(
                new_ids, MessageAction.ADD, MessageSubject.ACTOR, None, CommunicationMedium.SYSTEM
            )

    # --- PostStep ---

    def post_step(self) -> float:
        """Returns today's forgetting."""
        return self.forgetting.finalize_forgetting_process(self.step)

    # --- Tasks ---

    def post(self, task: SimTask) -> bool:
        if task is None:
            raise InvalidArgumentError("task is required")
        if not self.cognitive.tasks_and_performance.can_perform_task or task.is_cancelled_by(self.id):
            return False
        return self.processor.post(task)

    def post_many(self, tasks: Iterable[SimTask]) -> int:
        if tasks is None:
            raise InvalidArgumentError("tasks are required")
        return sum(1 for task in tasks if self.post(task))

    def add_time_spent(self, key_activity: str, time_spent: float) -> None:
        self.time_spent[key_activity] = self.time_spent.get(key_activity, 0.0) + time_spent
        self.time_spent_today += time_spent

    def impact_of_communication_medium_on_time_spent(
        self,
        medium: CommunicationMedium,
        send: bool,
        key_activity: str,
    ) -> float:
        """Charge the time a message costs to capacity and to the key activity."""
        impact = self.environment.communication.time_spent(medium, send)
        if impact > 0:
            self.capacity.decrement(impact)
            self.add_time_spent(key_activity, impact)
        return impact

    # --- Messages ---

    def get_agent_ids_for_interactions(
        self,
        strategy: InteractionStrategy,
        topic_id: Optional[int] = None,
    ) -> List[AgentId]:
        return self.environment.sphere.get_agent_ids_for_interactions(self.id, strategy, topic_id)

    def send(
        self,
        receiver: AgentId,
        action: MessageAction,
        subject: MessageSubject,
        attachments: Optional[MessageAttachments] = None,
        medium: CommunicationMedium = CommunicationMedium.EMAIL,
    ) -> Message:
        self.messages_sent += 1
        return self.environment.bus.send(
            self.id, receiver, action, subject, self.step, attachments, medium
        )

    def send_to_many(
        self,
        receivers: Iterable[AgentId],
        action: MessageAction,
        subject: MessageSubject,
        attachments: Optional[MessageAttachments] = None,
        medium: CommunicationMedium = CommunicationMedium.EMAIL,
    ) -> List[Message]:
        return [self.send(r, action, subject, attachments, medium) for r in receivers]

    def reply(self, message: Message, attachments: Optional[MessageAttachments] = None) -> Message:
        self.messages_sent += 1
        return self.environment.bus.reply(message, self.step, attachments)

    def reply_delayed(
        self,
        message: Message,
        deliver_at: int,
        attachments: Optional[MessageAttachments] = None,
    ) -> Message:
        self.messages_sent += 1
        return self.environment.bus.reply_delayed(message, self.step, deliver_at, attachments)

    def on_message(self, message: Message) -> None:
        """
        A delivered message becomes a task costing the medium's reading
        time, unless it is a system message or the agent does not perform
        tasks: then it is handled at once.
        """
        if message is None:
            raise InvalidArgumentError("message is required")
        if (
            self.cognitive.tasks_and_performance.can_perform_task
            and message.medium != CommunicationMedium.SYSTEM
        ):
            template = self.environment.communication.template(message.medium)
            task = SimTask(
                creator=message.sender,
                weight=template.cost_to_receive,
                created=self.step,
                time_to_live=template.time_to_live,
                parent=message,
                key_activity=self._key_activity_of(message),
            )
            self.post(task)
        else:
            self.act(message)

    @staticmethod
    def _key_activity_of(message: Message) -> str:
        task = message.attachments.task
        return task.key_activity if task is not None else ""

    def act_message(self, message: Message) -> None:
        """Handle a message read from the task queue."""
        self.act(message)

    def act(self, message: Message) -> None:
        if message is None:
            raise InvalidArgumentError("message is required")
        if self.behavior.act(self, message):
            return
        if message.subject == MessageSubject.HELP:
            if message.action == MessageAction.ASK:
                self.blockers.ask_help(message)
            elif message.action == MessageAction.REPLY:
                self.blockers.reply_help(message)
        elif message.subject == MessageSubject.ACTOR and message.action == MessageAction.ADD:
            self.environment.sphere.add_interaction(message.sender, self.id)

    def to_summary(self) -> dict:
        return {
            "id": str(self.id),
            "key": self.id.key,
            "class_key": self.id.class_key,
            "status": self.status.value,
            "capacity": self.capacity.model_dump(),
            "tasks": self.processor.stats(),
            "time_spent": dict(self.time_spent),
            "knowledge": {k.knowledge_id: k.to_list() for k in self.expertise},
            "beliefs": {
                b: self.beliefs.get(b).to_list() for b in self.beliefs.belief_ids
            },
            "cumulative_learning": self.learning.cumulative_learning,
            "cumulative_forgetting": self.forgetting.cumulative_forgetting,
        }
