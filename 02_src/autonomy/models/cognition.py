"""Cognitive cycle data models.

Each phase of the cycle produces its own record type, tagged with a ``kind``
enum so consumers can match on it instead of probing optional fields.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from .loops import Priority


@dataclass(frozen=True)
class Context:
    """Input to one cognitive cycle."""

    timestamp: datetime
    agent_id: str
    user_id: str = "system"
    loop_id: str | None = None
    goals: tuple[str, ...] = ()
    environment: dict[str, Any] = field(default_factory=dict)
    health_check: bool = False


class ObservationKind(str, Enum):
    USER_ACTION = "user_action"
    PERFORMANCE_DATA = "performance_data"
    EXTERNAL_SIGNAL = "external_signal"
    OPPORTUNITY = "opportunity"
    MESSAGE = "message"
    DEGRADED = "degraded"  # collaborator failed; ``error`` is set


@dataclass(frozen=True)
class Observation:
    id: str
    kind: ObservationKind
    source: str
    data: dict[str, Any]
    confidence: float
    relevance: float
    timestamp: datetime
    error: str | None = None


class ThoughtKind(str, Enum):
    ANALYSIS = "analysis"
    HYPOTHESIS = "hypothesis"
    INSIGHT = "insight"
    CONCERN = "concern"


@dataclass(frozen=True)
class Implication:
    """Something a thought suggests doing; actionable when ``action`` names a tool."""

    action: str
    parameters: dict[str, Any] = field(default_factory=dict)
    expected_outcome: str = ""


@dataclass(frozen=True)
class Thought:
    id: str
    kind: ThoughtKind
    content: str
    reasoning: str
    confidence: float
    implications: tuple[Implication, ...] = ()
    related_observations: tuple[str, ...] = ()


@dataclass(frozen=True)
class PlanStep:
    id: str
    description: str
    action: str
    parameters: dict[str, Any]
    expected_outcome: str
    dependencies: tuple[str, ...] = ()
    estimated_duration: float = 1.0  # minutes
    priority: Priority = Priority.MEDIUM


@dataclass(frozen=True)
class Risk:
    description: str
    probability: float  # 0-1
    impact: float  # 1-10
    mitigation: str
    contingency: str

    @property
    def exposure(self) -> float:
        return self.probability * self.impact


@dataclass(frozen=True)
class ResourceEstimate:
    kind: str  # "tool_access", "api_call", "ai_model", ...
    description: str
    cost: float


@dataclass(frozen=True)
class SuccessMetric:
    name: str
    target: float
    unit: str
    direction: str = "increase"  # increase | decrease | maintain


@dataclass(frozen=True)
class Plan:
    id: str
    objective: str
    steps: tuple[PlanStep, ...]
    resources: tuple[ResourceEstimate, ...] = ()
    risks: tuple[Risk, ...] = ()
    success_metrics: tuple[SuccessMetric, ...] = ()


@dataclass(frozen=True)
class Action:
    """A materialized plan step. Describes a side effect; does not perform it."""

    id: str
    tool: str
    parameters: dict[str, Any]
    expected_result: str
    reasoning: str
    step_id: str
    timestamp: datetime


class ResultStatus(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"  # not dispatched because the cycle was cancelled


@dataclass(frozen=True)
class ActionResult:
    action_id: str
    status: ResultStatus
    timestamp: datetime
    data: Any = None
    error: str | None = None
    metrics: dict[str, float] = field(default_factory=dict)
    unexpected: bool = False

    @property
    def success(self) -> bool:
        return self.status is ResultStatus.COMPLETED


class LearningKind(str, Enum):
    SUCCESS_PATTERN = "success_pattern"
    FAILURE_ANALYSIS = "failure_analysis"
    USER_PREFERENCE = "user_preference"
    OPTIMIZATION = "optimization"


HIGH_IMPACT = "high_impact"


@dataclass(frozen=True)
class Learning:
    id: str
    kind: LearningKind
    content: str
    evidence: tuple[str, ...]
    confidence: float
    applicability: tuple[str, ...]
    timestamp: datetime
    source_actions: tuple[str, ...] = ()


@dataclass(frozen=True)
class Experience:
    """Auditable record of one completed cognitive cycle. Never mutated."""

    id: str
    agent_id: str
    context: Context
    actions: tuple[Action, ...]
    results: tuple[ActionResult, ...]
    learnings: tuple[Learning, ...]
    timestamp: datetime
    success: bool
    tags: tuple[str, ...] = ()


@dataclass
class Pattern:
    """Recurring condition/outcome pairing learned from experiences."""

    id: str
    description: str
    conditions: list[str]
    outcomes: list[str]
    confidence: float
    occurrences: int
    last_seen: datetime
