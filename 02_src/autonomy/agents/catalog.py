"""Built-in agents bound to the default loops."""

from dataclasses import dataclass
from datetime import timedelta
from typing import Any

from ..collaborators import IKnowledgeStore, IOversightChannel, IResourceGauges
from ..errors import GenerationError
from ..llm import IContentGenerator
from ..models import Capability, Context, ObservationKind
from ..storage import IStorage
from ..tracker import ITracker
from .runtime import AgentRuntime
from .tools import FunctionTool, SensorReading

RESOURCE_PRESSURE = 70.0


@dataclass(frozen=True)
class AgentProfile:
    agent_id: str
    name: str
    role: str
    capabilities: frozenset[Capability]


DEFAULT_PROFILES = (
    AgentProfile(
        "strategy",
        "Strategy Agent",
        "strategist",
        frozenset({Capability.STRATEGY, Capability.RESEARCH}),
    ),
    AgentProfile(
        "content",
        "Content Creator Agent",
        "content_creator",
        frozenset({Capability.CONTENT_CREATION}),
    ),
    AgentProfile(
        "engagement",
        "Engagement Agent",
        "engagement_manager",
        frozenset({Capability.ENGAGEMENT}),
    ),
    AgentProfile(
        "analytics",
        "Analytics Agent",
        "analyst",
        frozenset({Capability.ANALYTICS, Capability.RESEARCH}),
    ),
    AgentProfile(
        "orchestrator",
        "Orchestrator Agent",
        "orchestrator",
        frozenset(
            {
                Capability.COORDINATION,
                Capability.RESOURCE_MANAGEMENT,
                Capability.EMERGENCY_RESPONSE,
            }
        ),
    ),
)


def _resource_sensor(gauges: IResourceGauges):
    async def read(context: Context) -> SensorReading:
        snapshot = gauges.snapshot()
        data: dict[str, Any] = {
            "cpu": snapshot.cpu,
            "memory": snapshot.memory,
            "storage": snapshot.storage,
            "external_quota": snapshot.external_quota,
        }
        if snapshot.peak > RESOURCE_PRESSURE:
            data["suggested_actions"] = [
                {
                    "action": "remember",
                    "parameters": {"key": "resource_pressure", "value": data, "importance": 0.8},
                    "expected_outcome": "pressure recorded for later cycles",
                }
            ]
        return SensorReading(
            kind=ObservationKind.PERFORMANCE_DATA,
            data=data,
            confidence=0.9,
            relevance=min(1.0, snapshot.peak / 100.0),
        )

    return read


def _remember_tool(runtime: AgentRuntime) -> FunctionTool:
    async def remember(parameters: dict[str, Any]) -> dict[str, Any]:
        key = parameters["key"]
        runtime.memory.long_term.store(
            key, parameters.get("value"), importance=float(parameters.get("importance", 0.5))
        )
        return {"stored": key}

    return FunctionTool("remember", remember, "Store a value in long-term memory")


def _generate_tool(generator: IContentGenerator, role: str) -> FunctionTool:
    async def generate(parameters: dict[str, Any]) -> dict[str, Any]:
        return await generator.generate({"role": role, **parameters})

    return FunctionTool("generate", generate, "Ask the content generator for a draft")


def _generator_task_handler(generator: IContentGenerator, role: str):
    async def handle(subtask: dict[str, Any]) -> dict[str, Any]:
        reply = await generator.generate(
            {
                "task": "subtask",
                "role": role,
                "description": subtask.get("description", ""),
                "inputs": subtask.get("inputs", {}),
                "required_outputs": subtask.get("outputs", []),
            }
        )
        missing = [name for name in subtask.get("outputs", []) if name not in reply]
        if missing:
            raise GenerationError(f"Generator omitted outputs {missing}")
        return reply

    return handle


def build_default_agents(
    storage: IStorage,
    gauges: IResourceGauges | None = None,
    knowledge: IKnowledgeStore | None = None,
    oversight: IOversightChannel | None = None,
    generator: IContentGenerator | None = None,
    tracker: ITracker | None = None,
    short_term_ttl: timedelta = timedelta(hours=1),
    episodic_capacity: int = 1000,
) -> list[AgentRuntime]:
    """Create one runtime per default profile, wired to the shared collaborators."""
    agents = []
    for profile in DEFAULT_PROFILES:
        runtime = AgentRuntime(
            agent_id=profile.agent_id,
            name=profile.name,
            role=profile.role,
            capabilities=profile.capabilities,
            storage=storage,
            knowledge=knowledge,
            oversight=oversight,
            generator=generator,
            tracker=tracker,
            short_term_ttl=short_term_ttl,
            episodic_capacity=episodic_capacity,
        )
        runtime.register_tool(_remember_tool(runtime))
        if gauges is not None:
            runtime.register_sensor("resources", _resource_sensor(gauges))
        if generator is not None:
            runtime.register_tool(_generate_tool(generator, profile.role))
            for capability in profile.capabilities:
                runtime.register_task_handler(
                    capability, _generator_task_handler(generator, profile.role)
                )
        agents.append(runtime)
    return agents
