"""AgentRuntime: the perceive-think-plan-act-execute-reflect cycle."""

import asyncio
import uuid
from collections import deque
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Protocol

from ..bus import IMessageBus
from ..collaborators import IKnowledgeStore, IOversightChannel
from ..errors import ActionExecutionError, GenerationError
from ..llm import IContentGenerator
from ..logging_config import get_logger
from ..models import (
    BROADCAST,
    HIGH_IMPACT,
    Action,
    ActionResult,
    AgentMessage,
    Capability,
    Context,
    Experience,
    Implication,
    Learning,
    LearningKind,
    MessageKind,
    Observation,
    ObservationKind,
    Plan,
    PlanStep,
    Priority,
    ResourceEstimate,
    ResultStatus,
    Risk,
    SuccessMetric,
    Thought,
    ThoughtKind,
)
from ..storage import IStorage
from ..tracker import ITracker
from .memory import AgentMemory
from .tools import Sensor, SensorReading, TaskHandler, Tool

logger = get_logger(__name__)

Clock = Callable[[], datetime]

SHARE_CONFIDENCE = 0.8
OVERSIGHT_HIGH_CONFIDENCE = 0.9
OVERSIGHT_FAILED_ACTIONS = 2
OVERSIGHT_LOW_CONFIDENCE = 0.6
ERROR_STATUS_THRESHOLD = 10
WARNING_STATUS_THRESHOLD = 5
DEGRADED_SUCCESS_RATE = 0.7
TASK_ASSIGNMENT = "task_assignment"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _evidence_confidence(count: int, total: int) -> float:
    """Share of outcomes, discounted for small samples: count / (total + 1)."""
    return count / (total + 1)


class IAgentRuntime(Protocol):
    """What the scheduler and coordinator need from an agent."""

    @property
    def agent_id(self) -> str:
        """Agent identifier."""
        ...

    @property
    def capabilities(self) -> frozenset[Capability]:
        """Declared capabilities."""
        ...

    async def health_check(self) -> bool:
        """True when the agent can run a cycle."""
        ...

    async def run_cycle(
        self, context: Context, cancel_event: asyncio.Event | None = None
    ) -> Experience:
        """Run one full cognitive cycle."""
        ...


class AgentRuntime:
    """Executes cognitive cycles for one agent.

    Cycles are strictly sequential per instance; a second ``run_cycle`` call
    waits for the first to finish. Collaborators (knowledge store, oversight,
    generator, tracker) are optional and their failures never break a cycle.
    """

    def __init__(
        self,
        agent_id: str,
        role: str,
        capabilities: frozenset[Capability],
        storage: IStorage,
        name: str = "",
        tools: list[Tool] | None = None,
        sensors: dict[str, Sensor] | None = None,
        task_handlers: dict[Capability, TaskHandler] | None = None,
        knowledge: IKnowledgeStore | None = None,
        oversight: IOversightChannel | None = None,
        generator: IContentGenerator | None = None,
        tracker: ITracker | None = None,
        short_term_ttl: timedelta = timedelta(hours=1),
        episodic_capacity: int = 1000,
        clock: Clock | None = None,
    ):
        self._agent_id = agent_id
        self._name = name or agent_id
        self._role = role
        self._capabilities = frozenset(capabilities)
        self._storage = storage
        self._tools: dict[str, Tool] = {tool.name: tool for tool in tools or []}
        self._sensors: dict[str, Sensor] = dict(sensors or {})
        self._task_handlers: dict[Capability, TaskHandler] = dict(task_handlers or {})
        self._knowledge = knowledge
        self._oversight = oversight
        self._generator = generator
        self._tracker = tracker
        self._clock = clock or _utcnow

        self.memory = AgentMemory(short_term_ttl, episodic_capacity, self._clock)
        self._lock = asyncio.Lock()
        self._bus: IMessageBus | None = None
        self._active = False

        self._cycles = 0
        self._success_rate = 0.0
        self._total_cycle_seconds = 0.0
        self._errors: deque[str] = deque(maxlen=100)
        self._warnings: deque[str] = deque(maxlen=100)

    @property
    def agent_id(self) -> str:
        return self._agent_id

    @property
    def name(self) -> str:
        return self._name

    @property
    def role(self) -> str:
        return self._role

    @property
    def capabilities(self) -> frozenset[Capability]:
        return self._capabilities

    @property
    def is_active(self) -> bool:
        return self._active

    def register_tool(self, tool: Tool) -> None:
        self._tools[tool.name] = tool

    def register_sensor(self, name: str, sensor: Sensor) -> None:
        self._sensors[name] = sensor

    def register_task_handler(self, capability: Capability, handler: TaskHandler) -> None:
        self._task_handlers[capability] = handler

    # Lifecycle
    def attach(self, bus: IMessageBus) -> None:
        """Subscribe to direct and broadcast messages."""
        if self._bus is bus:
            return
        self._bus = bus
        bus.subscribe(self._agent_id, self.handle_message)
        bus.subscribe(BROADCAST, self.handle_message)

    async def start(self) -> None:
        self._active = True
        self.memory.short_term.set("status", "active")
        logger.info("Agent %s started", self._agent_id, extra={"agent_id": self._agent_id})

    async def stop(self) -> None:
        self._active = False
        self.memory.short_term.set("status", "stopped")
        if self._bus is not None:
            self._bus.unsubscribe(self._agent_id, self.handle_message)
            self._bus.unsubscribe(BROADCAST, self.handle_message)
            self._bus = None
        logger.info("Agent %s stopped", self._agent_id, extra={"agent_id": self._agent_id})

    def _health_status(self) -> str:
        if len(self._errors) > ERROR_STATUS_THRESHOLD:
            return "error"
        if len(self._warnings) > WARNING_STATUS_THRESHOLD or (
            self._cycles and self._success_rate < DEGRADED_SUCCESS_RATE
        ):
            return "degraded"
        return "healthy"

    async def health_check(self) -> bool:
        """An agent is fit to run when it is started and not in error state."""
        return self._active and self._health_status() != "error"

    def get_status(self) -> dict[str, Any]:
        average = self._total_cycle_seconds / self._cycles if self._cycles else 0.0
        return {
            "id": self._agent_id,
            "name": self._name,
            "role": self._role,
            "capabilities": sorted(c.value for c in self._capabilities),
            "is_active": self._active,
            "current_task": self.memory.short_term.get("current_task"),
            "performance": {
                "cycles_completed": self._cycles,
                "success_rate": self._success_rate,
                "average_cycle_seconds": average,
            },
            "memory": self.memory.usage(),
            "health": {
                "status": self._health_status(),
                "errors": list(self._errors)[-10:],
                "warnings": list(self._warnings)[-10:],
            },
        }

    # Cognitive cycle
    async def run_cycle(
        self, context: Context, cancel_event: asyncio.Event | None = None
    ) -> Experience:
        """Perceive, think, plan, act, execute, reflect; record the Experience."""
        async with self._lock:
            started = self._clock()
            self.memory.short_term.set("current_task", context.loop_id or "ad-hoc")

            observations = await self.perceive(context)
            self.memory.short_term.set("current_observations", observations)

            thoughts = await self.think(observations, context)
            self.memory.short_term.set("current_thoughts", thoughts)

            plan = self.plan(thoughts, context)
            self.memory.short_term.set("current_plan", plan)

            actions = self.act(plan)
            results = await self.execute(actions, cancel_event)
            learnings = self.reflect(actions, results)

            experience = Experience(
                id=str(uuid.uuid4()),
                agent_id=self._agent_id,
                context=context,
                actions=tuple(actions),
                results=tuple(results),
                learnings=tuple(learnings),
                timestamp=self._clock(),
                success=all(r.success for r in results),
                tags=(self._role, context.user_id),
            )

            elapsed = (self._clock() - started).total_seconds()
            self._update_performance(results, elapsed)
            self.memory.short_term.set("current_task", None)

            await self._after_cycle(experience)
            return experience

    async def perceive(self, context: Context) -> list[Observation]:
        """Read every sensor and the priority channel. Failing sensors degrade."""
        observations: list[Observation] = []

        for source, sensor in self._sensors.items():
            try:
                reading: SensorReading = await sensor(context)
                observations.append(
                    Observation(
                        id=str(uuid.uuid4()),
                        kind=reading.kind,
                        source=source,
                        data=reading.data,
                        confidence=reading.confidence,
                        relevance=reading.relevance,
                        timestamp=self._clock(),
                    )
                )
            except Exception as e:
                self._warnings.append(f"Sensor {source} failed: {e}")
                logger.warning(
                    "Sensor %s failed for agent %s: %s",
                    source,
                    self._agent_id,
                    e,
                    extra={"agent_id": self._agent_id},
                )
                observations.append(
                    Observation(
                        id=str(uuid.uuid4()),
                        kind=ObservationKind.DEGRADED,
                        source=source,
                        data={},
                        confidence=0.0,
                        relevance=1.0,
                        timestamp=self._clock(),
                        error=str(e),
                    )
                )

        if self._bus is not None:
            for message in self._bus.drain_priority(self._agent_id):
                observations.append(
                    Observation(
                        id=str(uuid.uuid4()),
                        kind=ObservationKind.MESSAGE,
                        source=message.sender,
                        data=dict(message.payload),
                        confidence=1.0,
                        relevance=message.priority.score / Priority.CRITICAL.score,
                        timestamp=message.timestamp or self._clock(),
                    )
                )

        if context.environment:
            observations.append(
                Observation(
                    id=str(uuid.uuid4()),
                    kind=ObservationKind.EXTERNAL_SIGNAL,
                    source="context",
                    data=dict(context.environment),
                    confidence=1.0,
                    relevance=0.5,
                    timestamp=self._clock(),
                )
            )

        return observations

    @staticmethod
    def _implications(data: dict[str, Any]) -> tuple[Implication, ...]:
        suggested = list(data.get("suggested_actions", []))
        if "action" in data:
            suggested.append(data)
        return tuple(
            Implication(
                action=item["action"],
                parameters=dict(item.get("parameters", {})),
                expected_outcome=item.get("expected_outcome", ""),
            )
            for item in suggested
            if isinstance(item, dict) and item.get("action")
        )

    async def think(self, observations: list[Observation], context: Context) -> list[Thought]:
        """Rule-based thoughts per observation, plus generator hypotheses when bound."""
        thoughts: list[Thought] = []

        for observation in observations:
            if observation.kind is ObservationKind.DEGRADED:
                thoughts.append(
                    Thought(
                        id=str(uuid.uuid4()),
                        kind=ThoughtKind.CONCERN,
                        content=f"Input '{observation.source}' is unavailable",
                        reasoning=observation.error or "sensor failed",
                        confidence=0.9,
                        related_observations=(observation.id,),
                    )
                )
                continue

            kind = (
                ThoughtKind.INSIGHT
                if observation.kind is ObservationKind.OPPORTUNITY
                else ThoughtKind.ANALYSIS
            )
            thoughts.append(
                Thought(
                    id=str(uuid.uuid4()),
                    kind=kind,
                    content=f"{observation.kind.value} from {observation.source}",
                    reasoning=(
                        f"confidence {observation.confidence:.2f}, "
                        f"relevance {observation.relevance:.2f}"
                    ),
                    confidence=observation.confidence,
                    implications=self._implications(observation.data),
                    related_observations=(observation.id,),
                )
            )

        if self._generator is not None and observations:
            thoughts.extend(await self._hypotheses(observations, context))

        return thoughts

    async def _hypotheses(
        self, observations: list[Observation], context: Context
    ) -> list[Thought]:
        prompt = {
            "task": "hypotheses",
            "agent": self._agent_id,
            "role": self._role,
            "goals": list(context.goals),
            "observations": [
                {"kind": o.kind.value, "source": o.source, "data": o.data} for o in observations
            ],
            "reply_format": {
                "hypotheses": [
                    {
                        "content": "str",
                        "reasoning": "str",
                        "confidence": "0-1",
                        "implications": [{"action": "tool name", "parameters": {}}],
                    }
                ]
            },
        }
        try:
            reply = await self._generator.generate(prompt)
        except GenerationError as e:
            self._warnings.append(f"Generation failed: {e}")
            logger.warning(
                "Hypothesis generation failed for %s, using rule-based thoughts: %s",
                self._agent_id,
                e,
                extra={"agent_id": self._agent_id},
            )
            return []

        related = tuple(o.id for o in observations)
        thoughts = []
        for item in reply.get("hypotheses", []):
            if not isinstance(item, dict) or not item.get("content"):
                continue
            thoughts.append(
                Thought(
                    id=str(uuid.uuid4()),
                    kind=ThoughtKind.HYPOTHESIS,
                    content=str(item["content"]),
                    reasoning=str(item.get("reasoning", "")),
                    confidence=float(item.get("confidence", 0.5)),
                    implications=self._implications(
                        {"suggested_actions": item.get("implications", [])}
                    ),
                    related_observations=related,
                )
            )
        return thoughts

    def plan(self, thoughts: list[Thought], context: Context) -> Plan:
        """Turn every implication into an ordered step; unbound tools fail at execution."""
        steps: list[PlanStep] = []
        risks: list[Risk] = []

        for thought in sorted(thoughts, key=lambda t: t.confidence, reverse=True):
            if thought.kind is ThoughtKind.CONCERN:
                risks.append(
                    Risk(
                        description=thought.content,
                        probability=thought.confidence,
                        impact=5.0,
                        mitigation="proceed with the remaining inputs",
                        contingency="retry on the next cycle",
                    )
                )
            for implication in thought.implications:
                steps.append(
                    PlanStep(
                        id=f"step_{len(steps) + 1}",
                        description=thought.content,
                        action=implication.action,
                        parameters=implication.parameters,
                        expected_outcome=implication.expected_outcome,
                        priority=Priority.HIGH if thought.confidence > 0.8 else Priority.MEDIUM,
                    )
                )

        tools = sorted({step.action for step in steps})
        return Plan(
            id=str(uuid.uuid4()),
            objective=context.goals[0] if context.goals else f"{self._role} cycle",
            steps=tuple(steps),
            resources=tuple(
                ResourceEstimate(kind="tool_access", description=tool, cost=1.0)
                for tool in tools
            ),
            risks=tuple(sorted(risks, key=lambda r: r.exposure, reverse=True)),
            success_metrics=(
                SuccessMetric(name="action_success_rate", target=0.8, unit="ratio"),
            ),
        )

    def act(self, plan: Plan) -> list[Action]:
        """Materialize plan steps into action descriptors. No side effects."""
        now = self._clock()
        return [
            Action(
                id=str(uuid.uuid4()),
                tool=step.action,
                parameters=dict(step.parameters),
                expected_result=step.expected_outcome,
                reasoning=step.description,
                step_id=step.id,
                timestamp=now,
            )
            for step in plan.steps
        ]

    async def execute(
        self, actions: list[Action], cancel_event: asyncio.Event | None = None
    ) -> list[ActionResult]:
        """Dispatch all actions concurrently; every action yields exactly one result."""
        if not actions:
            return []
        return list(
            await asyncio.gather(*[self._execute_one(a, cancel_event) for a in actions])
        )

    async def _execute_one(
        self, action: Action, cancel_event: asyncio.Event | None
    ) -> ActionResult:
        if cancel_event is not None and cancel_event.is_set():
            return ActionResult(
                action_id=action.id,
                status=ResultStatus.SKIPPED,
                timestamp=self._clock(),
                error="cycle cancelled",
            )

        tool = self._tools.get(action.tool)
        if tool is None:
            return ActionResult(
                action_id=action.id,
                status=ResultStatus.FAILED,
                timestamp=self._clock(),
                error=f"Tool not found: {action.tool}",
            )

        try:
            data = await tool.execute(action.parameters)
        except Exception as e:
            error = ActionExecutionError(action.id, str(e))
            self._errors.append(str(error))
            logger.warning("%s", error, extra={"agent_id": self._agent_id})
            return ActionResult(
                action_id=action.id,
                status=ResultStatus.FAILED,
                timestamp=self._clock(),
                error=str(e),
            )

        metrics: dict[str, float] = {}
        unexpected = False
        if isinstance(data, dict):
            metrics = dict(data.get("metrics", {}))
            unexpected = bool(data.get("unexpected", False))
        return ActionResult(
            action_id=action.id,
            status=ResultStatus.COMPLETED,
            timestamp=self._clock(),
            data=data,
            metrics=metrics,
            unexpected=unexpected,
        )

    def reflect(self, actions: list[Action], results: list[ActionResult]) -> list[Learning]:
        """At least one learning per outcome category present in the results."""
        now = self._clock()
        by_id = {a.id: a for a in actions}
        learnings: list[Learning] = []

        succeeded = [r for r in results if r.success]
        failed = [r for r in results if r.status is ResultStatus.FAILED]
        total = len(results)

        if succeeded:
            tools = sorted({by_id[r.action_id].tool for r in succeeded if r.action_id in by_id})
            learnings.append(
                Learning(
                    id=str(uuid.uuid4()),
                    kind=LearningKind.SUCCESS_PATTERN,
                    content=f"{', '.join(tools)} completed as expected",
                    evidence=tuple(r.action_id for r in succeeded),
                    confidence=_evidence_confidence(len(succeeded), total),
                    applicability=(self._role,),
                    timestamp=now,
                    source_actions=tuple(r.action_id for r in succeeded),
                )
            )

        if failed:
            applicability: tuple[str, ...] = (self._role,)
            if len(failed) == total:
                applicability += (HIGH_IMPACT,)
            learnings.append(
                Learning(
                    id=str(uuid.uuid4()),
                    kind=LearningKind.FAILURE_ANALYSIS,
                    content=f"{len(failed)} of {total} actions failed",
                    evidence=tuple(r.error or "unknown" for r in failed),
                    confidence=_evidence_confidence(len(failed), total),
                    applicability=applicability,
                    timestamp=now,
                    source_actions=tuple(r.action_id for r in failed),
                )
            )

        measured = [r for r in succeeded if r.metrics]
        if measured or not results:
            names = sorted({name for r in measured for name in r.metrics})
            learnings.append(
                Learning(
                    id=str(uuid.uuid4()),
                    kind=LearningKind.OPTIMIZATION,
                    content=(
                        f"Track {', '.join(names)} to tune future cycles"
                        if names
                        else "No actionable implications this cycle"
                    ),
                    evidence=tuple(r.action_id for r in measured),
                    confidence=0.7 if names else 0.5,
                    applicability=(self._role,),
                    timestamp=now,
                    source_actions=tuple(r.action_id for r in measured),
                )
            )

        return learnings

    # Post-cycle
    def _update_performance(self, results: list[ActionResult], elapsed: float) -> None:
        self._cycles += 1
        self._total_cycle_seconds += elapsed
        ratio = (sum(1 for r in results if r.success) / len(results)) if results else 1.0
        self._success_rate += (ratio - self._success_rate) / self._cycles

    async def _after_cycle(self, experience: Experience) -> None:
        self.memory.learn(experience, domain=self._role)

        try:
            await self._storage.save_experience(experience)
        except Exception as e:
            self._errors.append(f"Experience persistence failed: {e}")
            logger.error(
                "Failed to persist experience %s: %s",
                experience.id,
                e,
                extra={"agent_id": self._agent_id},
            )

        if self._knowledge is not None:
            try:
                for learning in experience.learnings:
                    if learning.confidence > SHARE_CONFIDENCE:
                        await self._knowledge.share_knowledge(
                            self._agent_id, learning, experience.context
                        )
                await self._knowledge.record_experience(self._agent_id, experience)
            except Exception as e:
                logger.error(
                    "Knowledge sharing failed for %s: %s",
                    self._agent_id,
                    e,
                    extra={"agent_id": self._agent_id},
                )

        await self._check_oversight(experience)

        if self._tracker is not None:
            await self._tracker.track(
                "cycle_completed",
                f"agent:{self._agent_id}",
                {
                    "experience_id": experience.id,
                    "loop_id": experience.context.loop_id,
                    "success": experience.success,
                    "actions": len(experience.actions),
                    "learnings": len(experience.learnings),
                },
            )

    @staticmethod
    def evaluate_oversight(experience: Experience) -> tuple[str, Priority] | None:
        """Return (reason, urgency) when a human should review the cycle."""
        # Failure analyses are covered by the failed-action rule below.
        confident = [
            l
            for l in experience.learnings
            if l.confidence > OVERSIGHT_HIGH_CONFIDENCE
            and l.kind is not LearningKind.FAILURE_ANALYSIS
        ]
        if confident:
            return f"Discovered {len(confident)} high-confidence insights", Priority.MEDIUM

        failed = [r for r in experience.results if r.status is ResultStatus.FAILED]
        if len(failed) > OVERSIGHT_FAILED_ACTIONS:
            return f"Multiple action failures detected ({len(failed)})", Priority.HIGH

        if any(r.unexpected for r in experience.results):
            return "Unexpected outcomes detected", Priority.MEDIUM

        if any(
            l.confidence < OVERSIGHT_LOW_CONFIDENCE and HIGH_IMPACT in l.applicability
            for l in experience.learnings
        ):
            return "Low-confidence but potentially high-impact learnings", Priority.LOW

        return None

    async def _check_oversight(self, experience: Experience) -> None:
        if self._oversight is None:
            return
        verdict = self.evaluate_oversight(experience)
        if verdict is None:
            return
        reason, urgency = verdict
        succeeded = sum(1 for r in experience.results if r.success)
        try:
            await self._oversight.request_review(
                experience.context.user_id,
                self._agent_id,
                {
                    "type": "learning",
                    "experience_id": experience.id,
                    "reason": reason,
                    "summary": (
                        f"Executed {len(experience.actions)} actions with {succeeded} "
                        f"successes, generated {len(experience.learnings)} learnings"
                    ),
                    "learnings": [
                        {"content": l.content, "confidence": l.confidence}
                        for l in experience.learnings
                    ],
                },
                urgency,
            )
        except Exception as e:
            logger.error(
                "Oversight request failed for %s: %s",
                self._agent_id,
                e,
                extra={"agent_id": self._agent_id},
            )

    # Messaging
    async def handle_message(self, message: AgentMessage) -> None:
        """Dispatch an incoming message by kind. Failures are recorded, not raised."""
        if message.sender == self._agent_id and message.to == BROADCAST:
            return
        try:
            self.memory.short_term.set(f"message_{message.id}", message)
            if message.kind is MessageKind.REQUEST:
                await self._handle_request(message)
            elif message.kind is MessageKind.BROADCAST:
                self.memory.long_term.store(
                    f"broadcast_{message.id}",
                    message.payload,
                    importance=message.priority.score / Priority.CRITICAL.score,
                )
            elif message.kind is MessageKind.ALERT:
                self._warnings.append(f"Alert from {message.sender}: {message.payload}")
            elif message.kind is MessageKind.UPDATE:
                self.memory.short_term.set(f"update_{message.sender}", message.payload)
        except Exception as e:
            self._errors.append(f"Message handling error: {e}")
            logger.error(
                "Agent %s failed to handle message %s: %s",
                self._agent_id,
                message.id,
                e,
                extra={"agent_id": self._agent_id, "message_id": message.id},
            )

    async def _handle_request(self, message: AgentMessage) -> None:
        if self._bus is None:
            return
        if message.payload.get("type") == TASK_ASSIGNMENT:
            reply = await self._run_assignment(message.payload.get("subtask", {}))
        else:
            reply = {"status": "acknowledged", "original_request": message.id}
        await self._bus.reply(message, reply, sender=self._agent_id)

    async def _run_assignment(self, subtask: dict[str, Any]) -> dict[str, Any]:
        """Execute a coordinator sub-task and report its declared outputs."""
        subtask_id = subtask.get("id", "unknown")
        self.memory.short_term.set("current_task", subtask_id)
        try:
            capability = Capability(subtask.get("capability"))
        except ValueError:
            return {"status": "failed", "error": f"Unknown capability: {subtask.get('capability')}"}
        if capability not in self._capabilities:
            return {"status": "failed", "error": f"Capability {capability.value} not supported"}

        handler = self._task_handlers.get(capability)
        try:
            if handler is not None:
                outputs = await handler(subtask)
            else:
                outputs = await self._assignment_cycle(subtask)
        except Exception as e:
            self._errors.append(f"Task {subtask_id} failed: {e}")
            logger.error(
                "Agent %s failed task %s: %s",
                self._agent_id,
                subtask_id,
                e,
                extra={"agent_id": self._agent_id, "task_id": subtask_id},
            )
            return {"status": "failed", "error": str(e)}
        finally:
            self.memory.short_term.set("current_task", None)

        return {"status": "completed", "outputs": outputs}

    async def _assignment_cycle(self, subtask: dict[str, Any]) -> dict[str, Any]:
        context = Context(
            timestamp=self._clock(),
            agent_id=self._agent_id,
            goals=(subtask.get("description", ""),),
            environment=dict(subtask.get("inputs", {})),
        )
        experience = await self.run_cycle(context)
        if not experience.success:
            errors = [r.error for r in experience.results if r.error]
            raise RuntimeError(f"cycle failed: {errors}")
        data = [r.data for r in experience.results]
        return {
            name: {"experience_id": experience.id, "results": data}
            for name in subtask.get("outputs", [])
        }
