"""
Results Collector — listens to task and blocker events and turns each
step into an IterationResult appended to the results store.
"""

import logging
from typing import Optional

from orgsim.agents.blockers import BlockerEvent
from orgsim.models.blocker import Blocker
from orgsim.models.murphy import ImpactLevel
from orgsim.models.results import (
    BlockerResults,
    IterationResult,
    KnowledgeAndBeliefResults,
    TaskResults,
)
from orgsim.results.store import ResultsStore
from orgsim.tasks.processor import TaskEvent
from orgsim.tasks.task import SimTask

logger = logging.getLogger("orgsim.results")


class ResultsCollector:
    def __init__(self, environment, store: Optional[ResultsStore] = None):
        self.environment = environment
        self.store = store or ResultsStore()
        self._reset()

    def _reset(self) -> None:
        self._blockers = BlockerResults()
        self._tasks = TaskResults()

    def watch(self, agent) -> None:
        """Subscribe to an agent's task and blocker events."""
        agent.processor.subscribe(TaskEvent.DONE, self._on_task_done)
        agent.processor.subscribe(TaskEvent.CANCELLED, self._on_task_cancelled)
        agent.blockers.subscribe(BlockerEvent.ADDED, self._on_blocker_added)
        agent.blockers.subscribe(BlockerEvent.RESOLVED, self._on_blocker_resolved)
        agent.blockers.subscribe(BlockerEvent.CANCELLED, self._on_blocker_cancelled)

    # --- Callbacks ---

    def _on_task_done(self, task: SimTask) -> None:
        if task.is_message:
            return
        self._tasks.done += 1
        if task.incorrect > ImpactLevel.NONE:
            self._tasks.incorrect += 1

    def _on_task_cancelled(self, task: SimTask) -> None:
        if not task.is_message:
            self._tasks.cancelled += 1

    def _record(self, event: BlockerEvent, agent_id, task: SimTask, blocker: Blocker) -> None:
        self.store.append_blocker_event(
            self.environment.schedule.step, event.value, str(agent_id), task.id, blocker
        )

    def _on_blocker_added(self, agent_id, task: SimTask, blocker: Blocker) -> None:
        self._blockers.added += 1
        kind = blocker.kind.value
        self._blockers.by_kind[kind] = self._blockers.by_kind.get(kind, 0) + 1
        self._record(BlockerEvent.ADDED, agent_id, task, blocker)

    def _on_blocker_resolved(self, agent_id, task: SimTask, blocker: Blocker) -> None:
        resolution = blocker.resolution.value
        self._blockers.resolved[resolution] = self._blockers.resolved.get(resolution, 0) + 1
        self._record(BlockerEvent.RESOLVED, agent_id, task, blocker)

    def _on_blocker_cancelled(self, agent_id, task: SimTask, blocker: Blocker) -> None:
        self._blockers.cancelled += 1
        self._record(BlockerEvent.CANCELLED, agent_id, task, blocker)

    # --- Step ---

    def end_of_step(self, step: int) -> IterationResult:
        env = self.environment
        agents = env.agents
        workers = [a for a in agents if a.cognitive.tasks_and_performance.can_perform_task]

        self._blockers.in_progress = sum(
            len(t.blockers) for a in agents for t in a.processor.active
        )
        self._tasks.in_progress = sum(
            1 for a in agents for t in a.processor.in_progress if not t.is_message
        )
        self._tasks.to_do = sum(
            1 for a in agents for t in a.processor.to_do if not t.is_message
        )

        knowledge = KnowledgeAndBeliefResults(
            knowledge_sum=env.knowledge_network.sum(),
            knowledge_potential=env.knowledge_network.potential(),
            belief_sum=env.belief_network.sum(),
            belief_potential=env.belief_network.potential(),
            learning=sum(a.learning.cumulative_learning for a in agents),
            forgetting=sum(a.forgetting.cumulative_forgetting for a in agents),
            obsolescence=(
                sum(a.expertise.obsolescence(step) for a in agents) / len(agents) if agents else 0.0
            ),
        )
        result = IterationResult(
            step=step,
            capacity=sum(a.capacity.initial for a in workers),
            time_spent=sum(a.time_spent_today for a in agents),
            messages_sent=env.bus.sent_at(step),
            blockers=self._blockers,
            tasks=self._tasks,
            knowledge_and_beliefs=knowledge,
        )
        self.store.append(result)
        logger.info(
            "Step %d: %d tasks done, %d blockers added, %d resolved",
            step, result.tasks.done, result.blockers.added, result.blockers.total_resolved,
        )
        self._reset()
        return result
