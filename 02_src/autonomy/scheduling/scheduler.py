"""LoopScheduler: timer-driven execution of agent loops."""

import asyncio
import dataclasses
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Protocol

from ..agents import IAgentRuntime
from ..bus import IMessageBus
from ..collaborators import IResourceGauges
from ..config import Settings
from ..errors import ConfigurationError, DependencyUnmetError, HealthCheckFailure
from ..logging_config import get_logger
from ..models import (
    BROADCAST,
    AgentMessage,
    Alert,
    AlertSeverity,
    BusStatus,
    Context,
    EmergencyEvent,
    Experience,
    HealthLevel,
    LoopSpec,
    LoopState,
    LoopStatus,
    MessageKind,
    Priority,
    ResourceSnapshot,
    SystemHealth,
)
from ..storage import IStorage
from ..tracker import ITracker

logger = get_logger(__name__)

Clock = Callable[[], datetime]
EmergencyHandler = Callable[[EmergencyEvent], Awaitable[Any]]

MIN_MULTIPLIER = 0.5
MAX_MULTIPLIER = 2.0
UNHEALTHY_PERFORMANCE = 0.3
CRITICAL_UNHEALTHY_LOOPS = 2
CRITICAL_RESOURCE = 90.0
DEGRADED_RESOURCE = 70.0
SLOW_RUN_MINUTES = 30.0


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ILoopScheduler(Protocol):
    """Runs registered loops on their schedules and reports their health."""

    def register(self, spec: LoopSpec) -> LoopState:
        """Add a loop. Raises ConfigurationError on invalid specs."""
        ...

    async def start(self) -> None:
        """Start one timer per loop plus the system loops."""
        ...

    async def stop(self) -> None:
        """Cancel timers and in-flight ticks."""
        ...

    async def tick(self, loop_id: str) -> LoopState:
        """Run one firing of a loop."""
        ...

    async def get_system_health(self) -> SystemHealth:
        """Aggregate loop, resource and bus health."""
        ...


class LoopScheduler:
    """Fires agent loops on their schedules.

    Every loop has its own timer task; each firing runs as a separate tick
    task. A loop never runs twice concurrently: a firing that finds the loop
    running is dropped. Failures never escape a tick; they surface as
    LoopState, alerts and SystemHealth.
    """

    def __init__(
        self,
        storage: IStorage,
        message_bus: IMessageBus,
        agents: dict[str, IAgentRuntime],
        gauges: IResourceGauges,
        tracker: ITracker | None = None,
        settings: Settings | None = None,
        emergency_handler: EmergencyHandler | None = None,
        clock: Clock | None = None,
    ):
        self._storage = storage
        self._bus = message_bus
        self._agents = agents
        self._gauges = gauges
        self._tracker = tracker
        self._settings = settings or Settings()
        self._emergency_handler = emergency_handler
        self._clock = clock or _utcnow

        self._specs: dict[str, LoopSpec] = {}
        self._states: dict[str, LoopState] = {}
        self._backoff: dict[str, int] = {}
        self._wake: dict[str, asyncio.Event] = {}
        self._alerts: list[Alert] = []

        self._running = False
        self._timers: dict[str, asyncio.Task] = {}
        self._system_tasks: list[asyncio.Task] = []
        self._ticks: set[asyncio.Task] = set()
        self._dropped_firings = 0

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def dropped_firings(self) -> int:
        return self._dropped_firings

    def set_emergency_handler(self, handler: EmergencyHandler | None) -> None:
        self._emergency_handler = handler

    # Registration
    def _has_cycle(self, specs: dict[str, LoopSpec]) -> bool:
        visiting: set[str] = set()
        done: set[str] = set()

        def visit(loop_id: str) -> bool:
            if loop_id in done:
                return False
            if loop_id in visiting:
                return True
            visiting.add(loop_id)
            for dep in specs[loop_id].dependencies:
                if dep in specs and visit(dep):
                    return True
            visiting.discard(loop_id)
            done.add(loop_id)
            return False

        return any(visit(loop_id) for loop_id in specs)

    def register(self, spec: LoopSpec) -> LoopState:
        """Add a loop and initialize its state.

        Raises:
            ConfigurationError: duplicate id, unknown agent, self-dependency,
                or a dependency cycle among registered loops.
        """
        if spec.id in self._specs:
            raise ConfigurationError(f"Loop {spec.id} already registered")
        if spec.agent_id not in self._agents:
            raise ConfigurationError(f"Loop {spec.id}: unknown agent {spec.agent_id}")
        if spec.id in spec.dependencies:
            raise ConfigurationError(f"Loop {spec.id} depends on itself")
        if spec.max_duration <= timedelta(0):
            raise ConfigurationError(f"Loop {spec.id}: max_duration must be positive")

        candidate = {**self._specs, spec.id: spec}
        if self._has_cycle(candidate):
            raise ConfigurationError(f"Loop {spec.id} introduces a dependency cycle")

        if self._running:
            missing = sorted(spec.dependencies - self._specs.keys())
            if missing:
                raise ConfigurationError(f"Loop {spec.id}: unknown dependencies {missing}")

        self._specs[spec.id] = spec
        state = LoopState(id=spec.id, next_run=spec.schedule.next_fire(self._clock()))
        self._states[spec.id] = state
        self._backoff[spec.id] = 1
        self._wake[spec.id] = asyncio.Event()
        logger.info(
            "Registered loop %s (%s) for agent %s",
            spec.id,
            spec.schedule.expression,
            spec.agent_id,
            extra={"loop_id": spec.id},
        )

        if self._running:
            self._start_timer(spec.id)
        return state

    def get_specs(self) -> list[LoopSpec]:
        return list(self._specs.values())

    # Lifecycle
    async def start(self) -> None:
        """Validate dependencies, then start loop timers and system loops.

        Raises:
            ConfigurationError: a dependency names an unregistered loop.
        """
        if self._running:
            return

        for spec in self._specs.values():
            missing = sorted(spec.dependencies - self._specs.keys())
            if missing:
                raise ConfigurationError(f"Loop {spec.id}: unknown dependencies {missing}")

        self._running = True
        for loop_id in self._specs:
            self._start_timer(loop_id)

        self._system_tasks = [
            asyncio.create_task(self._health_monitor_loop(), name="health_monitor"),
            asyncio.create_task(self._adaptive_loop(), name="adaptive_recalculation"),
        ]
        logger.info("Scheduler started with %s loops", len(self._specs))

    async def stop(self) -> None:
        """Cancel timers, system loops and in-flight ticks. Idempotent."""
        if not self._running and not self._ticks:
            return
        self._running = False

        tasks = [*self._timers.values(), *self._system_tasks, *self._ticks]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        self._timers.clear()
        self._system_tasks = []
        self._ticks.clear()
        logger.info("Scheduler stopped")

    def _start_timer(self, loop_id: str) -> None:
        self._timers[loop_id] = asyncio.create_task(
            self._timer(loop_id), name=f"timer:{loop_id}"
        )

    async def _timer(self, loop_id: str) -> None:
        wake = self._wake[loop_id]
        while self._running:
            state = self._states[loop_id]
            now = self._clock()
            delay = (state.next_run - now).total_seconds() if state.next_run else 0.0
            if delay > 0:
                wake.clear()
                try:
                    await asyncio.wait_for(wake.wait(), timeout=delay)
                except asyncio.TimeoutError:
                    pass
                continue

            next_run = self._next_run(loop_id, now)
            if next_run <= now:
                logger.warning(
                    "Schedule of %s returned %s, not after %s; using the interval",
                    loop_id,
                    next_run.isoformat(),
                    now.isoformat(),
                )
                next_run = now + self._effective_interval(loop_id)
            state.next_run = next_run
            self._spawn_tick(loop_id)

    def _spawn_tick(self, loop_id: str) -> asyncio.Task:
        task = asyncio.create_task(self.tick(loop_id), name=f"tick:{loop_id}")
        self._ticks.add(task)
        task.add_done_callback(self._ticks.discard)
        return task

    def _next_run(self, loop_id: str, after: datetime) -> datetime:
        spec = self._specs[loop_id]
        multiplier = self._states[loop_id].adaptive_multiplier if spec.adaptive else 1.0
        return spec.schedule.next_fire(after, multiplier)

    def _effective_interval(self, loop_id: str) -> timedelta:
        spec = self._specs[loop_id]
        multiplier = self._states[loop_id].adaptive_multiplier if spec.adaptive else 1.0
        return spec.schedule.interval / multiplier

    def _apply_backoff(self, loop_id: str, now: datetime) -> None:
        factor = min(self._backoff[loop_id] * 2, self._settings.max_backoff_factor)
        self._backoff[loop_id] = factor
        self._states[loop_id].next_run = now + self._effective_interval(loop_id) * factor

    # Ticks
    async def tick(self, loop_id: str) -> LoopState:
        """Run one firing of ``loop_id`` and return its updated state.

        Raises:
            KeyError: ``loop_id`` is not registered. No other exception escapes.
        """
        spec = self._specs[loop_id]
        state = self._states[loop_id]

        # Check-and-set with no suspension point in between.
        if state.status is LoopStatus.RUNNING:
            self._dropped_firings += 1
            logger.info(
                "Loop %s still running; firing dropped", loop_id, extra={"loop_id": loop_id}
            )
            return state

        failed_deps = sorted(
            dep for dep in spec.dependencies if self._states[dep].status is LoopStatus.FAILED
        )
        if failed_deps:
            state.status = LoopStatus.PAUSED
            logger.warning(
                "%s", DependencyUnmetError(loop_id, failed_deps), extra={"loop_id": loop_id}
            )
            await self._snapshot(state)
            return state

        started = self._clock()
        state.status = LoopStatus.RUNNING
        state.last_run = started

        try:
            await self._run(spec, state, started)
        except asyncio.CancelledError:
            state.status = LoopStatus.IDLE
            raise
        except Exception as e:
            logger.exception("Unexpected error in loop %s", loop_id, extra={"loop_id": loop_id})
            await self._record_failure(spec, state, started, f"unexpected error: {e}")

        await self._snapshot(state)
        return state

    async def _run(self, spec: LoopSpec, state: LoopState, started: datetime) -> None:
        agent = self._agents[spec.agent_id]

        try:
            healthy = await agent.health_check()
            reason = "health check failed"
        except Exception as e:
            healthy = False
            reason = f"health check raised: {e}"
        if not healthy:
            failure = HealthCheckFailure(spec.agent_id, reason)
            self._apply_backoff(spec.id, self._clock())
            await self._record_failure(spec, state, started, str(failure))
            return

        context = Context(
            timestamp=started,
            agent_id=spec.agent_id,
            loop_id=spec.id,
            goals=(spec.name or spec.id,),
            environment={
                "priority": spec.priority.value,
                "max_duration_minutes": spec.max_duration.total_seconds() / 60.0,
            },
        )
        cancel_event = asyncio.Event()
        logger.info("Executing loop %s", spec.id, extra={"loop_id": spec.id})

        try:
            experience = await asyncio.wait_for(
                agent.run_cycle(context, cancel_event),
                timeout=spec.max_duration.total_seconds(),
            )
        except asyncio.TimeoutError:
            cancel_event.set()
            await self._record_failure(
                spec,
                state,
                started,
                f"exceeded max duration of {spec.max_duration.total_seconds() / 60.0:.1f}m",
            )
            return
        except asyncio.CancelledError:
            cancel_event.set()
            raise
        except Exception as e:
            await self._record_failure(spec, state, started, str(e))
            return

        duration = self._minutes_since(started)
        self.update_performance_metrics(spec.id, duration, True)
        state.status = LoopStatus.IDLE
        state.consecutive_failures = 0
        state.run_count += 1
        state.last_error = None
        self._backoff[spec.id] = 1

        logger.info(
            "Loop %s completed in %.2fm",
            spec.id,
            duration,
            extra={"loop_id": spec.id, "agent_id": spec.agent_id},
        )
        await self._announce(spec, experience, duration)

    def _minutes_since(self, started: datetime) -> float:
        return max(0.0, (self._clock() - started).total_seconds() / 60.0)

    async def _record_failure(
        self,
        spec: LoopSpec,
        state: LoopState,
        started: datetime,
        reason: str,
    ) -> None:
        self.update_performance_metrics(spec.id, self._minutes_since(started), False)
        state.status = LoopStatus.FAILED
        state.consecutive_failures += 1
        state.run_count += 1
        state.last_error = reason

        await self.raise_alert(
            AlertSeverity.ERROR,
            f"Loop {spec.name or spec.id} failed: {reason}",
            spec.id,
        )
        if state.consecutive_failures == self._settings.failure_alert_threshold:
            await self.raise_alert(
                AlertSeverity.CRITICAL,
                f"Loop {spec.name or spec.id} failed {state.consecutive_failures} times in a row",
                spec.id,
            )

    async def _announce(self, spec: LoopSpec, experience: Experience, duration: float) -> None:
        completed = sum(1 for r in experience.results if r.success)
        payload = {
            "type": "loop_completed",
            "loop_id": spec.id,
            "agent_id": spec.agent_id,
            "duration_minutes": duration,
            "success": experience.success,
            "summary": (
                f"Executed {len(experience.results)} actions with "
                f"{completed} successful completions"
            ),
            "learnings": [learning.content for learning in experience.learnings],
        }
        try:
            await self._bus.broadcast(
                payload, Priority.MEDIUM, sender="scheduler", kind=MessageKind.UPDATE
            )
        except Exception as e:
            logger.error("Failed to announce loop %s: %s", spec.id, e, extra={"loop_id": spec.id})

        if self._tracker is not None:
            await self._tracker.track("loop_completed", f"loop:{spec.id}", payload)

    async def _snapshot(self, state: LoopState) -> None:
        try:
            await self._storage.save_loop_state(state)
        except Exception as e:
            logger.error("Failed to snapshot loop %s: %s", state.id, e, extra={"loop_id": state.id})

    # Metrics
    def update_performance_metrics(self, loop_id: str, duration: float, success: bool) -> LoopState:
        """Fold one run into the rolling metrics. ``duration`` is in minutes."""
        state = self._states[loop_id]
        state.average_duration = state.average_duration * 0.8 + duration * 0.2
        state.success_rate = state.success_rate * 0.9 + (0.1 if success else 0.0)

        duration_score = 1.0 - min(duration / SLOW_RUN_MINUTES, 1.0)
        state.performance_score = duration_score * 0.3 + state.success_rate * 0.7

        if state.performance_score > 0.8:
            state.adaptive_multiplier = min(MAX_MULTIPLIER, state.adaptive_multiplier * 1.1)
        elif state.performance_score < 0.5:
            state.adaptive_multiplier = max(MIN_MULTIPLIER, state.adaptive_multiplier * 0.9)
        return state

    def recalculate_adaptive_schedules(self) -> dict[str, datetime]:
        """Re-derive next_run of idle adaptive loops from their current multiplier."""
        now = self._clock()
        changed: dict[str, datetime] = {}
        for loop_id, spec in self._specs.items():
            state = self._states[loop_id]
            if not spec.adaptive or state.status is LoopStatus.RUNNING:
                continue
            if self._backoff[loop_id] > 1:
                continue
            next_run = self._next_run(loop_id, now)
            if next_run != state.next_run:
                state.next_run = next_run
                changed[loop_id] = next_run
                self._wake[loop_id].set()
                logger.info(
                    "Loop %s rescheduled to %s (multiplier %.2f)",
                    loop_id,
                    next_run.isoformat(),
                    state.adaptive_multiplier,
                    extra={"loop_id": loop_id},
                )
        return changed

    async def _adaptive_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self._settings.adaptive_recalc_interval_s)
            self.recalculate_adaptive_schedules()

    # Alerts
    async def raise_alert(self, severity: AlertSeverity, message: str, source: str) -> Alert:
        alert = Alert(
            id=str(uuid.uuid4()),
            severity=severity,
            message=message,
            source=source,
            timestamp=self._clock(),
        )
        self._alerts.append(alert)

        level = {
            AlertSeverity.INFO: logger.info,
            AlertSeverity.WARNING: logger.warning,
            AlertSeverity.ERROR: logger.error,
            AlertSeverity.CRITICAL: logger.critical,
        }[severity]
        level("Alert [%s] %s", severity.value, message, extra={"loop_id": source})

        try:
            await self._storage.save_alert(alert)
        except Exception as e:
            logger.error("Failed to persist alert %s: %s", alert.id, e)

        if severity is AlertSeverity.CRITICAL:
            try:
                await self._bus.publish(
                    AgentMessage(
                        id=str(uuid.uuid4()),
                        sender="scheduler",
                        to=BROADCAST,
                        kind=MessageKind.ALERT,
                        payload={"alert_id": alert.id, "message": message, "source": source},
                        priority=Priority.CRITICAL,
                    )
                )
            except Exception as e:
                logger.error("Failed to publish alert %s: %s", alert.id, e)
        return alert

    def get_alerts(self, include_resolved: bool = False) -> list[Alert]:
        return [a for a in self._alerts if include_resolved or not a.resolved]

    async def resolve_alert(self, alert_id: str) -> bool:
        for alert in self._alerts:
            if alert.id == alert_id and not alert.resolved:
                alert.resolved = True
                try:
                    await self._storage.save_alert(alert)
                except Exception as e:
                    logger.error("Failed to persist alert %s: %s", alert.id, e)
                return True
        return False

    # Health
    def get_loop_status(self, loop_id: str | None = None) -> LoopState | dict[str, LoopState]:
        """Copy of one loop state, or of all of them.

        Raises:
            KeyError: unknown ``loop_id``.
        """
        if loop_id is not None:
            return dataclasses.replace(self._states[loop_id])
        return {k: dataclasses.replace(v) for k, v in self._states.items()}

    def _sample_resources(self) -> ResourceSnapshot:
        try:
            return self._gauges.snapshot()
        except Exception as e:
            logger.warning("Resource gauges unavailable: %s", e)
            return ResourceSnapshot()

    async def get_system_health(self) -> SystemHealth:
        resources = self._sample_resources()
        bus_health = await self._bus.health_check()

        unhealthy = [
            loop_id
            for loop_id, state in self._states.items()
            if state.status is LoopStatus.FAILED or state.performance_score < UNHEALTHY_PERFORMANCE
        ]
        peak = resources.peak

        if len(unhealthy) > CRITICAL_UNHEALTHY_LOOPS or peak > CRITICAL_RESOURCE:
            overall = HealthLevel.CRITICAL
        elif unhealthy or peak > DEGRADED_RESOURCE or bus_health.status is not BusStatus.HEALTHY:
            overall = HealthLevel.DEGRADED
        else:
            overall = HealthLevel.HEALTHY

        return SystemHealth(
            overall=overall,
            loops=self.get_loop_status(),
            resources=resources,
            bus_status=bus_health.status.value,
            unhealthy_loops=unhealthy,
            alerts=self.get_alerts(),
            checked_at=self._clock(),
        )

    async def monitor_health(self) -> list[EmergencyEvent]:
        """One health-monitor pass: detect emergency conditions and escalate them."""
        health = await self.get_system_health()
        total = len(self._states)
        failed = sum(1 for s in self._states.values() if s.status is LoopStatus.FAILED)
        failure_rate = failed / total if total else 0.0
        peak = health.resources.peak

        events: list[EmergencyEvent] = []
        if failure_rate > self._settings.emergency_failure_rate:
            events.append(
                EmergencyEvent(
                    kind="high_failure_rate",
                    source="scheduler",
                    data={
                        "current": failure_rate,
                        "threshold": self._settings.emergency_failure_rate,
                    },
                )
            )
        if peak > self._settings.emergency_resource_usage:
            events.append(
                EmergencyEvent(
                    kind="resource_exhaustion",
                    source="scheduler",
                    data={
                        "current": peak,
                        "threshold": self._settings.emergency_resource_usage,
                    },
                )
            )
        if health.overall is HealthLevel.CRITICAL:
            events.append(
                EmergencyEvent(
                    kind="system_critical",
                    source="scheduler",
                    data={"unhealthy_loops": health.unhealthy_loops},
                )
            )

        for event in events:
            await self.raise_alert(
                AlertSeverity.CRITICAL, f"Emergency condition: {event.kind}", "health_monitor"
            )
            if self._emergency_handler is not None:
                try:
                    await self._emergency_handler(event)
                except Exception as e:
                    logger.error("Emergency handler failed for %s: %s", event.kind, e)

        if self._tracker is not None:
            await self._tracker.track(
                "health_checked",
                "scheduler",
                {
                    "overall": health.overall.value,
                    "unhealthy_loops": health.unhealthy_loops,
                    "bus_status": health.bus_status,
                    "emergencies": [event.kind for event in events],
                },
            )
        return events

    async def _health_monitor_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self._settings.health_monitor_interval_s)
            try:
                await self.monitor_health()
            except Exception as e:
                logger.error("Health monitor pass failed: %s", e)
