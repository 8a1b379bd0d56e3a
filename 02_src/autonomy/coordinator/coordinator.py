"""Coordinator: decomposes composite tasks and sequences them across agents."""

import asyncio
import heapq
import uuid
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Iterable, Protocol

from ..agents import IAgentRuntime
from ..bus import IMessageBus
from ..config import Settings
from ..errors import ConfigurationError, GenerationError, MessageTimeoutError, TransportFailure
from ..llm import IContentGenerator
from ..logging_config import get_logger
from ..models import (
    AgentMessage,
    Assignment,
    Bottleneck,
    Capability,
    CompositeTask,
    CoordinationReport,
    EmergencyEvent,
    EmergencyResponse,
    EmergencySeverity,
    MessageKind,
    MonitorReport,
    Priority,
    Reallocation,
    SubTask,
    SubTaskStatus,
    TaskRanking,
)
from ..tracker import ITracker

logger = get_logger(__name__)

Clock = Callable[[], datetime]
Verifier = Callable[[], Awaitable[bool]]

TASK_ASSIGNMENT = "task_assignment"
EMERGENCY_MITIGATION = "emergency_mitigation"
BLOCKING_DEPENDENTS = 3

DEFAULT_EMERGENCY_CEILINGS = {
    EmergencySeverity.CRITICAL: 60.0,
    EmergencySeverity.HIGH: 120.0,
    EmergencySeverity.MEDIUM: 300.0,
    EmergencySeverity.LOW: 600.0,
}

KIND_CAPABILITIES = {
    "content_campaign": Capability.CONTENT_CREATION,
    "content": Capability.CONTENT_CREATION,
    "analysis_deep_dive": Capability.ANALYTICS,
    "analytics": Capability.ANALYTICS,
    "engagement": Capability.ENGAGEMENT,
    "strategy": Capability.STRATEGY,
    "research": Capability.RESEARCH,
}

EMERGENCY_CAPABILITIES = {
    "high_failure_rate": (Capability.EMERGENCY_RESPONSE, Capability.COORDINATION),
    "resource_exhaustion": (Capability.EMERGENCY_RESPONSE, Capability.RESOURCE_MANAGEMENT),
    "system_critical": (
        Capability.EMERGENCY_RESPONSE,
        Capability.COORDINATION,
        Capability.RESOURCE_MANAGEMENT,
    ),
}

SEVERITY_PRIORITY = {
    EmergencySeverity.LOW: Priority.LOW,
    EmergencySeverity.MEDIUM: Priority.MEDIUM,
    EmergencySeverity.HIGH: Priority.HIGH,
    EmergencySeverity.CRITICAL: Priority.CRITICAL,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def task_score(task: CompositeTask) -> float:
    """Weighted urgency, impact and (inverse) cost on a 0-10 scale."""
    return 0.4 * task.urgency + 0.4 * task.impact + 0.2 * (10 - task.cost)


def topological_order(subtasks: Iterable[SubTask]) -> list[SubTask]:
    """Order subtasks so every dependency precedes its dependents.

    Raises:
        ConfigurationError: unknown dependency or cycle.
    """
    by_id = {s.id: s for s in subtasks}
    for subtask in by_id.values():
        unknown = [d for d in subtask.dependencies if d not in by_id]
        if unknown:
            raise ConfigurationError(f"Subtask {subtask.id}: unknown dependencies {unknown}")

    remaining = {sid: set(s.dependencies) for sid, s in by_id.items()}
    ordered: list[SubTask] = []
    while remaining:
        ready = sorted(sid for sid, deps in remaining.items() if not deps)
        if not ready:
            raise ConfigurationError(f"Dependency cycle among subtasks {sorted(remaining)}")
        for sid in ready:
            ordered.append(by_id[sid])
            del remaining[sid]
        for deps in remaining.values():
            deps.difference_update(ready)
    return ordered


class ICoordinator(Protocol):
    """Composite task orchestration across agents."""

    async def run(
        self, task: CompositeTask, agents: list[IAgentRuntime] | None = None
    ) -> CoordinationReport:
        """Decompose, assign and coordinate ``task``."""
        ...

    async def handle_emergency(self, event: EmergencyEvent) -> EmergencyResponse:
        """Classify and respond to an emergency within a bounded time."""
        ...


class Coordinator:
    """Sequences composite work across agents over the message bus.

    Sub-tasks are dispatched as request messages carrying a task assignment;
    an agent answers with ``{"status": "completed", "outputs": {...}}`` or
    ``{"status": "failed", "error": ...}``.
    """

    def __init__(
        self,
        message_bus: IMessageBus,
        agents: dict[str, IAgentRuntime],
        generator: IContentGenerator | None = None,
        tracker: ITracker | None = None,
        settings: Settings | None = None,
        verifier: Verifier | None = None,
        emergency_ceilings: dict[EmergencySeverity, float] | None = None,
        coordinator_id: str = "coordinator",
        clock: Clock | None = None,
    ):
        self._bus = message_bus
        self._agents = agents
        self._generator = generator
        self._tracker = tracker
        self._settings = settings or Settings()
        self._verifier = verifier
        self._ceilings = {**DEFAULT_EMERGENCY_CEILINGS, **(emergency_ceilings or {})}
        self._id = coordinator_id
        self._clock = clock or _utcnow

        self._tasks: dict[str, CompositeTask] = {}
        self._assignments: dict[str, Assignment] = {}
        self._reports: dict[str, CoordinationReport] = {}
        self._load: dict[str, int] = {}
        self._emergencies: list[EmergencyResponse] = []

    @property
    def coordinator_id(self) -> str:
        return self._id

    def set_verifier(self, verifier: Verifier | None) -> None:
        self._verifier = verifier

    def get_task(self, task_id: str) -> CompositeTask | None:
        return self._tasks.get(task_id)

    def get_tasks(self) -> list[CompositeTask]:
        return list(self._tasks.values())

    def get_report(self, task_id: str) -> CoordinationReport | None:
        return self._reports.get(task_id)

    def get_emergencies(self) -> list[EmergencyResponse]:
        return list(self._emergencies)

    # Decomposition
    async def decompose(self, task: CompositeTask) -> list[SubTask]:
        """Declared subtasks, else generator-proposed ones, else a single subtask.

        Raises:
            ConfigurationError: the subtasks do not form a valid DAG or an
                input is not produced by any dependency.
        """
        if task.subtasks:
            subtasks = list(task.subtasks)
        else:
            subtasks = await self._proposed_subtasks(task) or [self._single_subtask(task)]

        ids = [s.id for s in subtasks]
        if len(ids) != len(set(ids)):
            raise ConfigurationError(f"Task {task.id}: duplicate subtask ids")
        ordered = topological_order(subtasks)
        self._check_contract(task, ordered)

        task.subtasks = ordered
        self._tasks[task.id] = task
        return ordered

    def _single_subtask(self, task: CompositeTask) -> SubTask:
        return SubTask(
            id=f"{task.id}_1",
            description=task.description,
            capability=KIND_CAPABILITIES.get(task.kind, Capability.COORDINATION),
            outputs=["result"],
        )

    async def _proposed_subtasks(self, task: CompositeTask) -> list[SubTask]:
        if self._generator is None:
            return []
        prompt = {
            "task": "decompose",
            "composite_task": {
                "id": task.id,
                "kind": task.kind,
                "description": task.description,
                "objectives": task.objectives,
            },
            "capabilities": [c.value for c in Capability],
            "reply_format": {
                "subtasks": [
                    {
                        "id": "str",
                        "description": "str",
                        "capability": "one of capabilities",
                        "dependencies": ["subtask id"],
                        "inputs": ["name"],
                        "outputs": ["name"],
                        "estimated_duration": "seconds",
                    }
                ]
            },
        }
        try:
            reply = await self._generator.generate(prompt)
            return [
                SubTask(
                    id=str(item.get("id") or f"{task.id}_{index}"),
                    description=str(item.get("description", "")),
                    capability=Capability(item["capability"]),
                    dependencies=list(item.get("dependencies", [])),
                    inputs=list(item.get("inputs", [])),
                    outputs=list(item.get("outputs", [])),
                    estimated_duration=float(item.get("estimated_duration", 60.0)),
                )
                for index, item in enumerate(reply.get("subtasks", []), start=1)
            ]
        except (GenerationError, KeyError, TypeError, ValueError) as e:
            logger.warning(
                "Decomposition of %s fell back to a single subtask: %s",
                task.id,
                e,
                extra={"task_id": task.id},
            )
            return []

    @staticmethod
    def _check_contract(task: CompositeTask, ordered: list[SubTask]) -> None:
        by_id = {s.id: s for s in ordered}
        for subtask in ordered:
            available = set(task.context)
            stack = list(subtask.dependencies)
            seen: set[str] = set()
            while stack:
                dep = stack.pop()
                if dep in seen:
                    continue
                seen.add(dep)
                available.update(by_id[dep].outputs)
                stack.extend(by_id[dep].dependencies)
            missing = [name for name in subtask.inputs if name not in available]
            if missing:
                raise ConfigurationError(
                    f"Subtask {subtask.id}: inputs {missing} not produced by its dependencies"
                )

    # Assignment
    def assign(
        self, subtasks: list[SubTask], agents: list[IAgentRuntime] | None = None
    ) -> Assignment:
        """Bind each subtask to a capable agent, preferring the least loaded."""
        pool = list(agents) if agents is not None else list(self._agents.values())
        bindings: dict[str, str] = {}
        unmatched: list[str] = []
        planned: dict[str, int] = {}

        for subtask in subtasks:
            candidates = [a for a in pool if subtask.capability in a.capabilities]
            if not candidates:
                unmatched.append(subtask.id)
                logger.warning(
                    "No agent can handle subtask %s (%s)",
                    subtask.id,
                    subtask.capability.value,
                    extra={"task_id": subtask.id},
                )
                continue
            chosen = min(
                candidates,
                key=lambda a: (
                    self._load.get(a.agent_id, 0) + planned.get(a.agent_id, 0),
                    a.agent_id,
                ),
            )
            bindings[subtask.id] = chosen.agent_id
            planned[chosen.agent_id] = planned.get(chosen.agent_id, 0) + 1
            subtask.assigned_agent = chosen.agent_id
            subtask.status = SubTaskStatus.ASSIGNED

        return Assignment(bindings=bindings, unmatched=unmatched)

    # Execution
    async def coordinate(
        self,
        task: CompositeTask,
        assignment: Assignment,
        timeout: float | None = None,
    ) -> CoordinationReport:
        """Dispatch subtasks in dependency order; independent ones run concurrently.

        Each subtask starts as soon as all of its own dependencies are
        completed. Dependents of a failed, blocked or unmatched subtask are
        marked blocked. A subtask with no binding in ``assignment`` is
        treated as unmatched.
        """
        timeout = self._settings.subtask_timeout_s if timeout is None else timeout
        by_id = {s.id: s for s in task.subtasks}
        produced: dict[str, dict[str, Any]] = {}
        started_order: list[str] = []

        pending = {
            sid
            for sid, s in by_id.items()
            if s.status in (SubTaskStatus.PENDING, SubTaskStatus.ASSIGNED)
        }
        unmatched = list(assignment.unmatched)
        unmatched += sorted(
            sid for sid in pending if sid not in assignment.bindings and sid not in unmatched
        )
        for sid in unmatched:
            if sid in by_id:
                by_id[sid].status = SubTaskStatus.FAILED
                by_id[sid].error = "no capable agent"
                pending.discard(sid)

        running: dict[asyncio.Task, str] = {}
        try:
            while pending or running:
                for sid in sorted(pending):
                    if any(
                        by_id[d].status in (SubTaskStatus.FAILED, SubTaskStatus.BLOCKED)
                        for d in by_id[sid].dependencies
                    ):
                        by_id[sid].status = SubTaskStatus.BLOCKED
                        by_id[sid].error = "dependency did not complete"
                        pending.discard(sid)

                ready = sorted(
                    sid
                    for sid in pending
                    if all(
                        by_id[d].status is SubTaskStatus.COMPLETED for d in by_id[sid].dependencies
                    )
                )
                for sid in ready:
                    pending.discard(sid)
                    subtask = by_id[sid]
                    subtask.status = SubTaskStatus.IN_PROGRESS
                    subtask.started_at = self._clock()
                    started_order.append(sid)
                    dispatch = self._dispatch(
                        task, subtask, assignment.bindings[sid], produced, timeout
                    )
                    running[asyncio.create_task(dispatch, name=f"subtask:{sid}")] = sid

                if not running:
                    break
                done, _ = await asyncio.wait(running, return_when=asyncio.FIRST_COMPLETED)
                for finished in done:
                    running.pop(finished)
                    finished.result()
        finally:
            for leftover in running:
                leftover.cancel()

        subtasks = list(by_id.values())
        report = CoordinationReport(
            task_id=task.id,
            success=all(s.status is SubTaskStatus.COMPLETED for s in subtasks),
            completed=[s.id for s in subtasks if s.status is SubTaskStatus.COMPLETED],
            failed=[s.id for s in subtasks if s.status is SubTaskStatus.FAILED],
            blocked=[s.id for s in subtasks if s.status is SubTaskStatus.BLOCKED],
            unmatched=unmatched,
            outputs=produced,
            started_order=started_order,
        )
        self._reports[task.id] = report

        logger.info(
            "Task %s finished: %s completed, %s failed, %s blocked",
            task.id,
            len(report.completed),
            len(report.failed),
            len(report.blocked),
            extra={"task_id": task.id},
        )
        if self._tracker is not None:
            await self._tracker.track(
                "task_coordinated",
                f"coordinator:{self._id}",
                {
                    "task_id": task.id,
                    "success": report.success,
                    "completed": report.completed,
                    "failed": report.failed,
                    "blocked": report.blocked,
                },
            )
        return report

    async def _dispatch(
        self,
        task: CompositeTask,
        subtask: SubTask,
        agent_id: str,
        produced: dict[str, dict[str, Any]],
        timeout: float,
    ) -> None:
        upstream: dict[str, Any] = dict(task.context)
        for dep in subtask.dependencies:
            upstream.update(produced.get(dep, {}))
        inputs = {name: upstream[name] for name in subtask.inputs if name in upstream}

        request = AgentMessage(
            id=str(uuid.uuid4()),
            sender=self._id,
            to=agent_id,
            kind=MessageKind.REQUEST,
            priority=Priority.HIGH,
            payload={
                "type": TASK_ASSIGNMENT,
                "task_id": task.id,
                "subtask": {
                    "id": subtask.id,
                    "description": subtask.description,
                    "capability": subtask.capability.value,
                    "inputs": inputs,
                    "outputs": list(subtask.outputs),
                },
            },
            deadline=task.deadline,
        )

        self._load[agent_id] = self._load.get(agent_id, 0) + 1
        try:
            response = await self._bus.request_response(request, timeout=timeout)
        except (MessageTimeoutError, TransportFailure, ValueError) as e:
            self._fail(subtask, str(e))
            return
        finally:
            self._load[agent_id] -= 1
            subtask.finished_at = self._clock()

        payload = response.payload
        if payload.get("status") != "completed":
            self._fail(subtask, str(payload.get("error", "agent reported failure")))
            return

        outputs = dict(payload.get("outputs", {}))
        missing = [name for name in subtask.outputs if name not in outputs]
        if missing:
            self._fail(subtask, f"missing declared outputs {missing}")
            return

        subtask.status = SubTaskStatus.COMPLETED
        subtask.result = outputs
        produced[subtask.id] = outputs

    def _fail(self, subtask: SubTask, reason: str) -> None:
        subtask.status = SubTaskStatus.FAILED
        subtask.error = reason
        logger.warning(
            "Subtask %s failed on %s: %s",
            subtask.id,
            subtask.assigned_agent,
            reason,
            extra={"task_id": subtask.id, "agent_id": subtask.assigned_agent},
        )

    async def run(
        self, task: CompositeTask, agents: list[IAgentRuntime] | None = None
    ) -> CoordinationReport:
        """Decompose, assign and coordinate ``task``."""
        subtasks = await self.decompose(task)
        assignment = self.assign(subtasks, agents)
        self._assignments[task.id] = assignment
        return await self.coordinate(task, assignment)

    # Prioritization
    def prioritize(self, tasks: list[CompositeTask]) -> list[TaskRanking]:
        """Rank tasks by score; a prerequisite is always ranked ahead of its dependents.

        A prerequisite inherits the highest score among the tasks that
        (transitively) depend on it, so urgent work is not starved by a
        low-scoring prerequisite.

        Raises:
            ConfigurationError: the tasks' dependencies form a cycle.
        """
        by_id = {t.id: t for t in tasks}
        own = {t.id: task_score(t) for t in tasks}
        deps = {t.id: {d for d in t.depends_on if d in by_id} for t in tasks}
        dependents: dict[str, set[str]] = {tid: set() for tid in by_id}
        for tid, prerequisites in deps.items():
            for dep in prerequisites:
                dependents[dep].add(tid)

        effective = dict(own)
        inherited_from: dict[str, str] = {}
        # Propagate scores down to prerequisites until stable.
        for _ in range(len(tasks)):
            changed = False
            for tid, prerequisites in deps.items():
                for dep in prerequisites:
                    if effective[tid] > effective[dep]:
                        effective[dep] = effective[tid]
                        inherited_from[dep] = inherited_from.get(tid, tid)
                        changed = True
            if not changed:
                break

        remaining = {tid: set(p) for tid, p in deps.items()}
        heap = [(-effective[tid], tid) for tid, p in remaining.items() if not p]
        heapq.heapify(heap)
        rankings: list[TaskRanking] = []

        while heap:
            _, tid = heapq.heappop(heap)
            reasoning = (
                f"urgency {by_id[tid].urgency}, impact {by_id[tid].impact}, "
                f"cost {by_id[tid].cost}"
            )
            if tid in inherited_from:
                reasoning += f"; prerequisite of {inherited_from[tid]}"
            rankings.append(
                TaskRanking(task_id=tid, rank=len(rankings) + 1, score=own[tid], reasoning=reasoning)
            )
            for dependent in dependents[tid]:
                remaining[dependent].discard(tid)
                if not remaining[dependent]:
                    heapq.heappush(heap, (-effective[dependent], dependent))

        if len(rankings) != len(tasks):
            unranked = sorted(set(by_id) - {r.task_id for r in rankings})
            raise ConfigurationError(f"Dependency cycle among tasks {unranked}")
        return rankings

    # Monitoring
    def monitor(self, task: CompositeTask) -> MonitorReport:
        """Progress, overrun bottlenecks and reallocation proposals for ``task``."""
        subtasks = task.subtasks
        total = len(subtasks)
        completed = sum(1 for s in subtasks if s.status is SubTaskStatus.COMPLETED)
        now = self._clock()

        dependents: dict[str, list[str]] = {s.id: [] for s in subtasks}
        for subtask in subtasks:
            for dep in subtask.dependencies:
                if dep in dependents:
                    dependents[dep].append(subtask.id)

        bottlenecks: list[Bottleneck] = []
        reallocations: list[Reallocation] = []
        for subtask in subtasks:
            blocking = sorted(dependents[subtask.id])
            if subtask.status is SubTaskStatus.IN_PROGRESS and subtask.started_at:
                elapsed = (now - subtask.started_at).total_seconds()
                overrun = elapsed - subtask.estimated_duration
                if overrun > 0:
                    bottlenecks.append(
                        Bottleneck(
                            subtask_id=subtask.id,
                            agent_id=subtask.assigned_agent,
                            overrun_seconds=overrun,
                            blocking=blocking,
                        )
                    )
                    proposal = self._propose_reallocation(subtask)
                    if proposal is not None:
                        reallocations.append(proposal)
                    continue
            if subtask.status is not SubTaskStatus.COMPLETED and len(blocking) > BLOCKING_DEPENDENTS:
                bottlenecks.append(
                    Bottleneck(
                        subtask_id=subtask.id,
                        agent_id=subtask.assigned_agent,
                        overrun_seconds=0.0,
                        blocking=blocking,
                    )
                )

        if total and completed == total:
            status = "completed"
        elif any(s.status in (SubTaskStatus.FAILED, SubTaskStatus.BLOCKED) for s in subtasks):
            status = "blocked"
        elif bottlenecks:
            status = "at_risk"
        else:
            status = "on_track"

        return MonitorReport(
            task_id=task.id,
            progress=completed / total if total else 0.0,
            status=status,
            bottlenecks=bottlenecks,
            reallocations=reallocations,
        )

    def _propose_reallocation(self, subtask: SubTask) -> Reallocation | None:
        candidates = [
            agent
            for agent in self._agents.values()
            if subtask.capability in agent.capabilities and agent.agent_id != subtask.assigned_agent
        ]
        if not candidates:
            return None
        target = min(candidates, key=lambda a: (self._load.get(a.agent_id, 0), a.agent_id))
        return Reallocation(
            subtask_id=subtask.id,
            from_agent=subtask.assigned_agent,
            to_agent=target.agent_id,
            reason=f"overran estimate of {subtask.estimated_duration:.0f}s",
        )

    # Emergencies
    @staticmethod
    def classify(event: EmergencyEvent) -> EmergencySeverity:
        if event.severity is not None:
            return event.severity
        if event.kind == "system_critical":
            return EmergencySeverity.CRITICAL
        if event.kind == "high_failure_rate":
            current = float(event.data.get("current", 0.0))
            return EmergencySeverity.CRITICAL if current >= 0.6 else EmergencySeverity.HIGH
        if event.kind == "resource_exhaustion":
            current = float(event.data.get("current", 0.0))
            return EmergencySeverity.CRITICAL if current >= 95.0 else EmergencySeverity.HIGH
        return EmergencySeverity.LOW

    def _response_team(self, event: EmergencyEvent) -> list[str]:
        """Smallest greedy set of agents covering the capabilities the event needs."""
        needed = set(EMERGENCY_CAPABILITIES.get(event.kind, (Capability.EMERGENCY_RESPONSE,)))
        team: list[str] = []
        agents = sorted(self._agents.values(), key=lambda a: a.agent_id)
        while needed:
            best = max(agents, key=lambda a: len(needed & a.capabilities), default=None)
            if best is None or not needed & best.capabilities:
                break
            team.append(best.agent_id)
            needed -= best.capabilities
        return team

    async def handle_emergency(self, event: EmergencyEvent) -> EmergencyResponse:
        """Notify, mitigate and re-verify within a severity-proportional ceiling."""
        severity = self.classify(event)
        team = self._response_team(event)
        response = EmergencyResponse(
            kind=event.kind,
            severity=severity,
            response_team=team,
            ceiling_seconds=self._ceilings[severity],
        )
        logger.warning(
            "Handling emergency %s (%s) with team %s",
            event.kind,
            severity.value,
            team,
        )

        try:
            await asyncio.wait_for(
                self._escalate(event, response), timeout=response.ceiling_seconds
            )
        except asyncio.TimeoutError:
            response.timed_out = True
            response.resolved = False
            response.notes.append(
                f"response ceiling of {response.ceiling_seconds:.0f}s reached"
            )
            logger.error("Emergency %s response timed out", event.kind)

        self._emergencies.append(response)
        if self._tracker is not None:
            await self._tracker.track(
                "emergency_handled",
                f"coordinator:{self._id}",
                {
                    "kind": response.kind,
                    "severity": response.severity.value,
                    "team": response.response_team,
                    "steps": response.steps_completed,
                    "resolved": response.resolved,
                    "timed_out": response.timed_out,
                },
            )
        return response

    async def _escalate(self, event: EmergencyEvent, response: EmergencyResponse) -> None:
        priority = SEVERITY_PRIORITY[response.severity]
        payload = {
            "type": EMERGENCY_MITIGATION,
            "kind": event.kind,
            "severity": response.severity.value,
            "source": event.source,
            "data": event.data,
        }

        # Notify
        for agent_id in response.response_team:
            await self._bus.publish(
                AgentMessage(
                    id=str(uuid.uuid4()),
                    sender=self._id,
                    to=agent_id,
                    kind=MessageKind.ALERT,
                    payload=payload,
                    priority=priority,
                )
            )
        response.steps_completed.append("notify")

        # Mitigate
        requests = [
            self._bus.request_response(
                AgentMessage(
                    id=str(uuid.uuid4()),
                    sender=self._id,
                    to=agent_id,
                    kind=MessageKind.REQUEST,
                    payload=payload,
                    priority=priority,
                ),
                timeout=response.ceiling_seconds,
            )
            for agent_id in response.response_team
        ]
        replies = await asyncio.gather(*requests, return_exceptions=True)
        acknowledged = 0
        for agent_id, reply in zip(response.response_team, replies):
            if isinstance(reply, Exception):
                response.notes.append(f"{agent_id}: {reply}")
            else:
                acknowledged += 1
        response.steps_completed.append("mitigate")

        # Re-verify
        if self._verifier is not None:
            response.resolved = await self._verifier()
        else:
            response.resolved = acknowledged > 0
        response.steps_completed.append("re_verify")
