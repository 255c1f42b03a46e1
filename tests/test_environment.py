"""Tests for the schedule, simulation environment and results."""

from datetime import date

import pytest

from orgsim.agents.behavior import WorkerBehavior
from orgsim.environment.engine import SimulationEnvironment
from orgsim.environment.schedule import Schedule
from orgsim.errors import InvalidArgumentError, NotFoundError
from orgsim.models.agent import CognitiveArchitecture
from orgsim.models.blocker import Blocker
from orgsim.models.common import AgentId
from orgsim.models.knowledge import Knowledge, KnowledgeLevel
from orgsim.models.murphy import MurphyKind
from orgsim.models.organization import ScheduleConfig, SimulationConfig, TimeStepType
from orgsim.models.results import BlockerResults, IterationResult, TaskResults
from orgsim.results.store import ResultsStore
from orgsim.tasks.task import SimTask


def _make_worker_environment(seed: int = 11, workers: int = 1, murphies: bool = False) -> SimulationEnvironment:
    config = SimulationConfig(seed=seed)
    if murphies:
        config.models.on()
        config.murphies.on()
        config.murphies.unavailability.rate_of_unavailability = 0.1
    env = SimulationEnvironment(config)
    env.add_knowledge(Knowledge(id=1, length=20))
    env.add_knowledge(Knowledge(id=2, length=20))
    for key in range(1, workers + 1):
        agent = env.create_agent(key, behavior=WorkerBehavior())
        env.knowledge_network.add_agent_knowledge(agent.id, 1, KnowledgeLevel.FULL_KNOWLEDGE)
    env.link_all()
    return env


class TestSchedule:
    def test_default_week(self):
        schedule = Schedule()
        assert schedule.day_of(0) == date(2020, 1, 6)
        assert [schedule.is_working_day(s) for s in range(7)] == [True] * 5 + [False] * 2

    def test_custom_working_days(self):
        schedule = Schedule(ScheduleConfig(working_days="* * * * *"))
        assert all(schedule.is_working_day(s) for s in range(7))

    def test_invalid_expression(self):
        with pytest.raises(InvalidArgumentError):
            Schedule(ScheduleConfig(working_days="not a cron"))

    def test_next(self):
        schedule = Schedule()
        assert schedule.next() == 1
        assert schedule.is_working_day() is True
        assert schedule.is_intraday is False


class TestSimulationEnvironment:
    def test_duplicate_agent(self):
        env = SimulationEnvironment()
        env.create_agent(1)
        with pytest.raises(InvalidArgumentError):
            env.create_agent(1)

    def test_unknown_agent(self):
        env = SimulationEnvironment()
        with pytest.raises(NotFoundError):
            env.get_agent(AgentId(key=9))
        assert env.find_agent(AgentId(key=9)) is None

    def test_negative_steps(self):
        with pytest.raises(InvalidArgumentError):
            SimulationEnvironment().run(-1)

    def test_workers_complete_one_task_per_working_day(self):
        env = _make_worker_environment()

        results = env.run(7)

        assert [r.tasks.done for r in results] == [1, 1, 1, 1, 1, 0, 0]
        assert results[0].capacity == 1.0
        assert results[5].capacity == 0.0
        assert env.collector.store.count() == 7
        assert env.status()["step"] == 7

    def test_total_task_limit(self):
        env = SimulationEnvironment(SimulationConfig(seed=3))
        env.add_knowledge(Knowledge(id=1, length=10))
        cognitive = CognitiveArchitecture()
        cognitive.tasks_and_performance.tasks_limit.limit_total_tasks = True
        cognitive.tasks_and_performance.tasks_limit.maximum_total_tasks = 2
        agent = env.create_agent(1, cognitive=cognitive, behavior=WorkerBehavior())

        env.run(5)

        assert agent.processor.total_tasks == 2
        assert len(agent.processor.done) == 2

    def test_same_seed_same_results(self):
        first = _make_worker_environment(seed=5, workers=4, murphies=True).run(15)
        second = _make_worker_environment(seed=5, workers=4, murphies=True).run(15)
        assert [r.model_dump() for r in first] == [r.model_dump() for r in second]

    def test_blockers_are_recorded(self):
        config = SimulationConfig(seed=8)
        config.models.knowledge.on = True
        config.murphies.incomplete_knowledge.on = True
        env = SimulationEnvironment(config)
        env.add_knowledge(Knowledge(id=1, length=10))
        agent = env.create_agent(1)
        task = SimTask(weight=1.0)
        task.knowledges_bits.add(env.murphies.incomplete_knowledge.generate_task_bits(
            env.knowledge_network.get_knowledge(1)
        ))
        task.knowledges_bits.get_bits(1).mandatory = [0]
        task.knowledges_bits.get_bits(1).required = [0]
        agent.post(task)

        result = env.step()

        assert result.blockers.added == 1
        assert result.blockers.by_kind == {"incomplete_knowledge": 1}
        events = env.collector.store.query_blocker_events(kind="incomplete_knowledge")
        assert events[0]["event"] == "added"
        assert events[0]["agent_id"] == str(agent.id)

    def test_intraday_steps_spend_a_slice(self):
        config = SimulationConfig(schedule=ScheduleConfig(time_step_type=TimeStepType.INTRADAY))
        env = SimulationEnvironment(config)
        agent = env.create_agent(1)
        task = SimTask(weight=1.0)
        agent.post(task)
        agent.handle_capacity(True)
        assert agent.work_on_task(task) == pytest.approx(0.01)

    def test_status(self):
        env = _make_worker_environment()
        status = env.status()
        assert status["step"] == 0
        assert status["day"] == "2020-01-06"
        assert status["working_day"] is True
        assert status["agents"] == 1
        assert status["iterations"] == 0


def _make_result(step: int, done: int = 0, added: int = 0) -> IterationResult:
    return IterationResult(
        step=step,
        capacity=1.0,
        blockers=BlockerResults(added=added),
        tasks=TaskResults(done=done),
    )


class TestResultsStore:
    def setup_method(self):
        self.store = ResultsStore(db_path=":memory:")

    def test_append_and_get(self):
        self.store.append(_make_result(0, done=2))
        retrieved = self.store.get(0)
        assert retrieved is not None
        assert retrieved.tasks.done == 2
        assert self.store.get(1) is None

    def test_query_range(self):
        for step in range(10):
            self.store.append(_make_result(step))
        assert [r.step for r in self.store.query_range(3, 5)] == [3, 4, 5]
        assert len(self.store.query_range()) == 10
        assert self.store.latest().step == 9
        assert self.store.count() == 10

    def test_step_is_append_only(self):
        self.store.append(_make_result(0))
        with pytest.raises(Exception):
            self.store.append(_make_result(0))

    def test_blocker_events(self):
        for i, kind in enumerate([MurphyKind.INCOMPLETE_KNOWLEDGE, MurphyKind.INCOMPLETE_BELIEF] * 3):
            blocker = Blocker(id=f"blk_{i}", kind=kind, initial_step=i)
            self.store.append_blocker_event(i, "added", "1:1", f"task_{i}", blocker)
        beliefs = self.store.query_blocker_events(kind="incomplete_belief")
        assert [e["blocker_id"] for e in beliefs] == ["blk_1", "blk_3", "blk_5"]
        assert len(self.store.query_blocker_events(limit=2)) == 2
