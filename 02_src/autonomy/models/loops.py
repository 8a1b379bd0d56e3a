"""Loop scheduling data models."""

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum


class Priority(str, Enum):
    """Shared priority scale for loops and messages."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def score(self) -> int:
        return _PRIORITY_SCORES[self]


_PRIORITY_SCORES = {
    Priority.LOW: 1,
    Priority.MEDIUM: 2,
    Priority.HIGH: 3,
    Priority.CRITICAL: 4,
}


class LoopStatus(str, Enum):
    """Runtime status of a scheduled loop."""

    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    FAILED = "failed"


class HealthLevel(str, Enum):
    """Overall system health."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    CRITICAL = "critical"


class AlertSeverity(str, Enum):
    """Alert severity, ordered."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return list(AlertSeverity).index(self)


@dataclass(frozen=True)
class Schedule:
    """Structured schedule: fire every ``interval`` counted from ``anchor``."""

    expression: str  # original text, kept for persistence
    interval: timedelta
    anchor: datetime  # timezone-aware
    timezone: str = "UTC"

    def next_fire(self, after: datetime, multiplier: float = 1.0) -> datetime:
        """First firing strictly after ``after``; the multiplier divides the interval.

        Steps are counted on the wall clock of the schedule's timezone, so a
        daily 06:00 stays at 06:00 local across DST changes. ``after`` may be
        in any timezone.
        """
        effective = self.interval / multiplier
        local = after.astimezone(self.anchor.tzinfo)
        # Same tzinfo on both sides: the difference is wall-clock time.
        steps = math.floor((local - self.anchor) / effective) + 1
        while True:
            fire = self.anchor + effective * steps
            if fire.timestamp() > after.timestamp():
                return fire
            # Repeated hour after a fall-back: try the second occurrence.
            repeat = fire.replace(fold=1)
            if repeat.timestamp() > after.timestamp():
                return repeat
            steps += 1


@dataclass(frozen=True)
class LoopSpec:
    """Static configuration of one scheduled agent loop. Immutable."""

    id: str
    agent_id: str
    schedule: Schedule
    priority: Priority = Priority.MEDIUM
    max_duration: timedelta = timedelta(minutes=15)
    adaptive: bool = True
    dependencies: frozenset[str] = frozenset()
    name: str = ""


@dataclass
class LoopState:
    """Dynamic runtime status of one loop. Written only by the scheduler."""

    id: str
    status: LoopStatus = LoopStatus.IDLE
    last_run: datetime | None = None
    next_run: datetime | None = None
    average_duration: float = 0.0  # minutes
    success_rate: float = 1.0
    performance_score: float = 1.0
    adaptive_multiplier: float = 1.0
    consecutive_failures: int = 0
    run_count: int = 0
    last_error: str | None = None


@dataclass
class Alert:
    """A queued operational alert."""

    id: str
    severity: AlertSeverity
    message: str
    source: str
    timestamp: datetime
    resolved: bool = False


@dataclass
class ResourceSnapshot:
    """Resource gauge readings, all percentages."""

    cpu: float = 0.0
    memory: float = 0.0
    storage: float = 0.0
    external_quota: float = 0.0

    @property
    def peak(self) -> float:
        return max(self.cpu, self.memory, self.storage, self.external_quota)


@dataclass
class SystemHealth:
    """Aggregated health view returned by the administrative surface."""

    overall: HealthLevel
    loops: dict[str, LoopState]
    resources: ResourceSnapshot
    bus_status: str
    unhealthy_loops: list[str] = field(default_factory=list)
    alerts: list[Alert] = field(default_factory=list)
    checked_at: datetime | None = None
