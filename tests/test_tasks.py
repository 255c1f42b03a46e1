"""Tests for tasks, their blockers and the task processor."""

import pytest

from orgsim.errors import InvalidArgumentError, NotFoundError
from orgsim.models.agent import TasksLimit
from orgsim.models.common import AgentId
from orgsim.models.messaging import Message, MessageAction, MessageSubject
from orgsim.models.murphy import BlockerResolution, ImpactLevel, MurphyKind
from orgsim.tasks.blockers import BlockerCollection
from orgsim.tasks.processor import TaskEvent, TaskProcessor
from orgsim.tasks.task import SimTask, TaskKnowledgeBits, TaskKnowledgesBits

OWNER = AgentId(key=1)


def _make_message_task() -> SimTask:
    message = Message(
        id="msg_1",
        sender=AgentId(key=2),
        receiver=OWNER,
        action=MessageAction.ASK,
        subject=MessageSubject.HELP,
    )
    return SimTask(creator=message.sender, weight=0.01, parent=message)


class TestSimTask:
    def test_weight_sets_work_to_do(self):
        task = SimTask(weight=2.0)
        assert task.work_to_do == 2.0
        assert task.is_to_do is True
        assert task.is_done is False

    def test_done_within_tolerance(self):
        task = SimTask(weight=1.0)
        task.work_to_do = 0.000001
        assert task.is_done is True

    def test_incorrect_keeps_the_worst(self):
        task = SimTask()
        task.set_incorrect(ImpactLevel.BLOCKED)
        task.set_incorrect(ImpactLevel.GUESSED)
        assert task.incorrect == ImpactLevel.BLOCKED

    def test_impact_on_time_spent_scales_remaining_work(self):
        task = SimTask(weight=1.0)
        task.work_to_do = 0.5
        task.apply_impact_on_time_spent(1.1)
        assert task.weight == pytest.approx(1.1)
        assert task.work_to_do == pytest.approx(0.55)

    def test_expiry(self):
        task = SimTask(created=3, time_to_live=2)
        assert task.is_expired(4) is False
        assert task.is_expired(5) is True
        assert SimTask(time_to_live=-1).is_expired(1000) is False

    def test_cancel(self):
        task = SimTask()
        task.cancel(OWNER)
        assert task.is_cancelled is True
        assert task.is_cancelled_by(OWNER) is True
        assert task.is_cancelled_by(AgentId(key=2)) is False

    def test_message_task(self):
        assert _make_message_task().is_message is True
        assert SimTask().is_message is False


class TestTaskKnowledgesBits:
    def test_remove_first(self):
        bits = TaskKnowledgesBits()
        bits.add(TaskKnowledgeBits(1, mandatory=[2, 5], required=[2, 5, 7]))
        assert bits.remove_first_mandatory(1) == 2
        assert bits.get_bits(1).mandatory == [5]
        assert bits.remove_first_required(1) == 2
        assert bits.get_bits(1).required == [5, 7]
        assert bits.remove_first_mandatory(9) is None

    def test_unknown_knowledge(self):
        with pytest.raises(NotFoundError):
            TaskKnowledgesBits().get_bits(1)


class TestBlockerCollection:
    def setup_method(self):
        self.blockers = BlockerCollection()

    def test_add(self):
        blocker = self.blockers.add(MurphyKind.INCOMPLETE_KNOWLEDGE, 3, 1, 4)
        assert blocker.initial_step == 3
        assert blocker.parameter == 1
        assert blocker.parameter2 == 4
        assert self.blockers.is_blocked is True
        assert self.blockers.find(blocker.id) is blocker

    def test_tries_only_increase(self):
        blocker = self.blockers.add(MurphyKind.INCOMPLETE_KNOWLEDGE, 0, 1, 0)
        seen = []
        for step in range(5):
            self.blockers.update(blocker, step)
            seen.append(blocker.number_of_tries)
        assert seen == [1, 2, 3, 4, 5]
        assert blocker.last_recovery_step == 4

    def test_tries_frozen_after_resolution(self):
        blocker = self.blockers.add(MurphyKind.INCOMPLETE_KNOWLEDGE, 0, 1, 0)
        self.blockers.update(blocker, 0)
        assert self.blockers.recover(blocker, BlockerResolution.INTERNAL, 1) is True
        self.blockers.update(blocker, 2)
        assert blocker.number_of_tries == 1
        assert blocker.resolved_step == 1
        assert self.blockers.is_blocked is False

    def test_recover_twice(self):
        blocker = self.blockers.add(MurphyKind.INCOMPLETE_BELIEF, 0, 1, 0)
        self.blockers.recover(blocker, BlockerResolution.GUESSING, 1)
        assert self.blockers.recover(blocker, BlockerResolution.INTERNAL, 2) is False
        assert blocker.resolution == BlockerResolution.GUESSING

    def test_recover_with_none(self):
        blocker = self.blockers.add(MurphyKind.INCOMPLETE_BELIEF, 0, 1, 0)
        with pytest.raises(InvalidArgumentError):
            self.blockers.recover(blocker, BlockerResolution.NONE, 1)
        with pytest.raises(InvalidArgumentError):
            self.blockers.recover(None, BlockerResolution.INTERNAL, 1)

    def test_filter_skips_blockers_tried_this_step(self):
        tried = self.blockers.add(MurphyKind.INCOMPLETE_KNOWLEDGE, 0, 1, 0)
        fresh = self.blockers.add(MurphyKind.INCOMPLETE_INFORMATION, 0)
        self.blockers.update(tried, 0)
        assert self.blockers.filter_blockers(0) == [fresh]
        assert self.blockers.filter_blockers(1) == [tried, fresh]

    def test_cancel_all_keeps_history(self):
        self.blockers.add(MurphyKind.INCOMPLETE_KNOWLEDGE, 0, 1, 0)
        self.blockers.add(MurphyKind.INCOMPLETE_INFORMATION, 0)
        self.blockers.cancel_all(1)
        assert len(self.blockers) == 0
        assert len(self.blockers.history) == 2
        assert all(b.resolution == BlockerResolution.CANCELLED for b in self.blockers.history)
        assert self.blockers.has_been_blocked_by(MurphyKind.INCOMPLETE_INFORMATION) is True


class TestTaskProcessor:
    def setup_method(self):
        self.processor = TaskProcessor(OWNER)

    def test_post_rejects(self):
        with pytest.raises(InvalidArgumentError):
            self.processor.post(None)
        task = SimTask()
        task.cancel(OWNER)
        assert self.processor.post(task) is False
        other = SimTask()
        assert self.processor.post(other) is True
        assert self.processor.post(other) is False
        assert other.assigned == OWNER
        assert self.processor.total_tasks == 1

    def test_receive_once_per_step(self):
        task = SimTask()
        self.processor.post(task)
        assert self.processor.receive(0) is task
        assert self.processor.receive(0) is None
        assert self.processor.receive(1) is task

    def test_mono_tasking(self):
        first, second = SimTask(), SimTask()
        self.processor.post(first)
        self.processor.post(second)
        assert self.processor.receive(0) is first
        assert self.processor.receive(0) is None
        self.processor.set_done(first)
        assert self.processor.receive(1) is second

    def test_multi_tasking(self):
        processor = TaskProcessor(OWNER, TasksLimit(limit_simultaneous_tasks=False))
        first, second = SimTask(), SimTask()
        processor.post(first)
        processor.post(second)
        assert processor.receive(0) is first
        assert processor.receive(0) is second

    def test_message_tasks_bypass_limits(self):
        work, message = SimTask(), _make_message_task()
        self.processor.post(work)
        self.processor.post(message)
        assert self.processor.receive(0) is work
        assert self.processor.receive(0) is message
        assert self.processor.total_tasks == 1

    def test_total_limit(self):
        processor = TaskProcessor(OWNER, TasksLimit(limit_total_tasks=True, maximum_total_tasks=1))
        assert processor.has_reached_total_maximum_limit is False
        processor.post(SimTask())
        assert processor.has_reached_total_maximum_limit is True

    def test_events_in_subscription_order(self):
        calls = []
        self.processor.subscribe(TaskEvent.DONE, lambda t: calls.append(("first", t.id)))
        self.processor.subscribe(TaskEvent.DONE, lambda t: calls.append(("second", t.id)))
        task = SimTask()
        self.processor.post(task)
        self.processor.receive(0)
        self.processor.set_done(task)
        assert calls == [("first", task.id), ("second", task.id)]
        assert task.work_to_do == 0.0
        assert self.processor.done == [task]

    def test_prioritize(self):
        processor = TaskProcessor(OWNER, TasksLimit(limit_simultaneous_tasks=False))
        processor.subscribe(TaskEvent.PRIORITIZE, lambda tasks: sorted(tasks, key=lambda t: -t.weight))
        light, heavy = SimTask(weight=1.0), SimTask(weight=3.0)
        processor.post(light)
        processor.post(heavy)
        assert processor.receive(0) is heavy

    def test_cancel_fires_event(self):
        cancelled = []
        self.processor.subscribe(TaskEvent.CANCELLED, cancelled.append)
        task = SimTask()
        self.processor.post(task)
        self.processor.cancel(task)
        self.processor.cancel(task)
        assert cancelled == [task]
        assert task.is_cancelled_by(OWNER) is True
        assert self.processor.active == []

    def test_tasks_check_cancels_expired(self):
        task = SimTask(created=0, time_to_live=2)
        self.processor.post(task)
        assert self.processor.tasks_check(1) == []
        assert self.processor.tasks_check(2) == [task]
        assert self.processor.cancelled == [task]

    def test_no_work_after_done(self):
        task = SimTask()
        self.processor.post(task)
        self.processor.receive(0)
        self.processor.set_done(task)
        assert self.processor.receive(1) is None
        assert self.processor.post(task) is False
