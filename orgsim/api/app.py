"""
orgsim API — FastAPI endpoints.

Exposes a simulation environment over REST for:
- Simulation control (status, stepping)
- Murphy configuration
- Knowledge topics and agents
- Task posting
- Results queries
"""

from typing import List, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from orgsim.agents.behavior import WorkerBehavior
from orgsim.environment.engine import SimulationEnvironment
from orgsim.errors import InvalidArgumentError, NotFoundError
from orgsim.models.agent import CognitiveArchitecture
from orgsim.models.common import ACTOR_CLASS, AgentId
from orgsim.models.knowledge import Knowledge, KnowledgeLevel
from orgsim.models.murphy import MurphiesConfig
from orgsim.models.organization import SimulationConfig
from orgsim.tasks.task import SimTask, TaskKnowledgeBits


# --- Request/Response Models ---

class KnowledgeCreateRequest(BaseModel):
    id: int
    name: str = ""
    length: int = Field(ge=1, le=255, default=10)


class AgentKnowledgeRequest(BaseModel):
    knowledge_id: int
    level: KnowledgeLevel = KnowledgeLevel.FULL_KNOWLEDGE


class AgentCreateRequest(BaseModel):
    key: int
    class_key: int = ACTOR_CLASS
    cognitive: Optional[CognitiveArchitecture] = None
    worker: bool = False
    has_email: bool = False
    knowledges: List[AgentKnowledgeRequest] = []
    link_to_all: bool = True


class TaskBitsRequest(BaseModel):
    knowledge_id: int
    mandatory: List[int] = []
    required: List[int] = []


class TaskCreateRequest(BaseModel):
    weight: float = Field(ge=0, default=1.0)
    time_to_live: int = -1
    key_activity: str = ""
    creator_key: Optional[int] = None
    knowledges: List[TaskBitsRequest] = []


# --- Application Factory ---

def create_app(
    environment: Optional[SimulationEnvironment] = None,
    config: Optional[SimulationConfig] = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title="orgsim API",
        description="Agent-based organization simulation",
        version="0.1.0",
    )

    env = environment or SimulationEnvironment(config)
    app.state.environment = env

    def _agent(key: int, class_key: int):
        try:
            return env.get_agent(AgentId(key=key, class_key=class_key))
        except NotFoundError:
            raise HTTPException(404, "Agent not found")

    # === SIMULATION ===

    @app.get("/simulation/status")
    def get_status():
        """Current step and run counters."""
        return env.status()

    @app.post("/simulation/step")
    def step(count: int = 1):
        """Run `count` steps."""
        if count < 1:
            raise HTTPException(422, "count must be >= 1")
        results = env.run(count)
        return {
            "step": env.schedule.step,
            "results": [r.model_dump(mode="json") for r in results],
        }

    # === MURPHIES ===

    @app.get("/murphies")
    def get_murphies():
        return env.murphies.config.model_dump(mode="json")

    @app.put("/murphies")
    def update_murphies(req: MurphiesConfig):
        """Replace the murphy configuration between steps."""
        env.config.murphies = req
        env.murphies.apply(req)
        return req.model_dump(mode="json")

    # === KNOWLEDGE ===

    @app.post("/knowledges")
    def create_knowledge(req: KnowledgeCreateRequest):
        knowledge = env.add_knowledge(Knowledge(id=req.id, name=req.name, length=req.length))
        return knowledge.model_dump(mode="json")

    @app.get("/knowledges")
    def list_knowledges():
        return [k.model_dump(mode="json") for k in env.knowledge_network.knowledges]

    # === AGENTS ===

    @app.post("/agents")
    def create_agent(req: AgentCreateRequest):
        try:
            agent = env.create_agent(
                req.key,
                req.class_key,
                cognitive=req.cognitive,
                behavior=WorkerBehavior() if req.worker else None,
                has_email=req.has_email,
            )
            for k in req.knowledges:
                env.knowledge_network.add_agent_knowledge(
                    agent.id, k.knowledge_id, k.level,
                    agent.cognitive.internal_characteristics.time_to_live,
                    env.schedule.step,
                )
        except InvalidArgumentError as e:
            raise HTTPException(422, str(e))
        except NotFoundError as e:
            raise HTTPException(404, str(e))
        if req.link_to_all and agent.id.is_actor:
            for other in env.agents:
                if other.id != agent.id and other.id.is_actor:
                    env.sphere.add_interaction(agent.id, other.id)
        return agent.to_summary()

    @app.get("/agents")
    def list_agents():
        return [a.to_summary() for a in env.agents]

    @app.get("/agents/{key}")
    def get_agent(key: int, class_key: int = ACTOR_CLASS):
        return _agent(key, class_key).to_summary()

    @app.post("/agents/{key}/tasks")
    def post_task(key: int, req: TaskCreateRequest, class_key: int = ACTOR_CLASS):
        """Post a task to an agent."""
        agent = _agent(key, class_key)
        creator = AgentId(key=req.creator_key) if req.creator_key is not None else None
        task = SimTask(
            creator=creator,
            weight=req.weight,
            created=env.schedule.step,
            time_to_live=req.time_to_live,
            key_activity=req.key_activity,
        )
        for bits in req.knowledges:
            if not env.knowledge_network.exists(bits.knowledge_id):
                raise HTTPException(404, f"Knowledge {bits.knowledge_id} not found")
            length = env.knowledge_network.get_knowledge(bits.knowledge_id).length
            bad = [i for i in bits.mandatory + bits.required if i < 0 or i >= length]
            if bad:
                raise HTTPException(
                    422, f"Bit indexes {bad} out of range for knowledge {bits.knowledge_id} (length {length})"
                )
            task.knowledges_bits.add(
                TaskKnowledgeBits(bits.knowledge_id, bits.mandatory, bits.required)
            )
        if not agent.post(task):
            raise HTTPException(422, "Agent cannot accept this task")
        return task.to_summary()

    # === RESULTS ===

    @app.get("/results/iterations")
    def get_iterations(start: Optional[int] = None, end: Optional[int] = None):
        return [
            r.model_dump(mode="json")
            for r in env.collector.store.query_range(start, end)
        ]

    @app.get("/results/blockers")
    def get_blocker_events(kind: Optional[str] = None, limit: int = 100):
        return env.collector.store.query_blocker_events(kind, limit)

    return app
