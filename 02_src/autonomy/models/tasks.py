"""Coordinator-level task models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class Capability(str, Enum):
    """What an agent can be bound to do."""

    STRATEGY = "strategy"
    CONTENT_CREATION = "content_creation"
    ENGAGEMENT = "engagement"
    ANALYTICS = "analytics"
    RESEARCH = "research"
    COORDINATION = "coordination"
    RESOURCE_MANAGEMENT = "resource_management"
    EMERGENCY_RESPONSE = "emergency_response"


class SubTaskStatus(str, Enum):
    PENDING = "pending"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    BLOCKED = "blocked"  # a dependency failed; never started


@dataclass
class SubTask:
    """An agent-assignable piece of a composite task.

    ``inputs`` and ``outputs`` are the hand-off contract: every name in
    ``inputs`` must be produced as an output of some dependency, and the bound
    agent must return every name in ``outputs``.
    """

    id: str
    description: str
    capability: Capability
    dependencies: list[str] = field(default_factory=list)
    inputs: list[str] = field(default_factory=list)
    outputs: list[str] = field(default_factory=list)
    estimated_duration: float = 60.0  # seconds
    status: SubTaskStatus = SubTaskStatus.PENDING
    assigned_agent: str | None = None
    result: dict[str, Any] = field(default_factory=dict)
    error: str | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None


@dataclass
class CompositeTask:
    """Coordinator-level unit of work."""

    id: str
    kind: str  # "content_campaign", "analysis_deep_dive", ...
    description: str
    objectives: list[str] = field(default_factory=list)
    urgency: float = 5.0  # 1-10
    impact: float = 5.0  # 1-10
    cost: float = 5.0  # 1-10, higher is more expensive
    depends_on: list[str] = field(default_factory=list)  # other CompositeTask ids
    subtasks: list[SubTask] = field(default_factory=list)
    deadline: datetime | None = None
    context: dict[str, Any] = field(default_factory=dict)


@dataclass
class Assignment:
    """Result of Coordinator.assign()."""

    bindings: dict[str, str]  # subtask id -> agent id
    unmatched: list[str] = field(default_factory=list)


@dataclass
class TaskRanking:
    task_id: str
    rank: int
    score: float
    reasoning: str


@dataclass
class Bottleneck:
    subtask_id: str
    agent_id: str | None
    overrun_seconds: float
    blocking: list[str] = field(default_factory=list)


@dataclass
class Reallocation:
    subtask_id: str
    from_agent: str | None
    to_agent: str
    reason: str


@dataclass
class MonitorReport:
    task_id: str
    progress: float  # 0-1
    status: str  # on_track | at_risk | blocked | completed
    bottlenecks: list[Bottleneck] = field(default_factory=list)
    reallocations: list[Reallocation] = field(default_factory=list)


@dataclass
class CoordinationReport:
    task_id: str
    success: bool
    completed: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    blocked: list[str] = field(default_factory=list)
    unmatched: list[str] = field(default_factory=list)
    outputs: dict[str, Any] = field(default_factory=dict)
    started_order: list[str] = field(default_factory=list)


class EmergencySeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class EmergencyEvent:
    kind: str  # "high_failure_rate", "resource_exhaustion", "system_critical", ...
    source: str
    data: dict[str, Any] = field(default_factory=dict)
    severity: EmergencySeverity | None = None  # classified when None


@dataclass
class EmergencyResponse:
    kind: str
    severity: EmergencySeverity
    response_team: list[str]
    steps_completed: list[str] = field(default_factory=list)
    resolved: bool = False
    timed_out: bool = False
    ceiling_seconds: float = 0.0
    notes: list[str] = field(default_factory=list)
