"""Core data models for the coordination core."""

from .cognition import (
    HIGH_IMPACT,
    Action,
    ActionResult,
    Context,
    Experience,
    Implication,
    Learning,
    LearningKind,
    Observation,
    ObservationKind,
    Pattern,
    Plan,
    PlanStep,
    ResourceEstimate,
    ResultStatus,
    Risk,
    SuccessMetric,
    Thought,
    ThoughtKind,
)
from .collaboration import KnowledgeEntry, ReviewRequest
from .loops import (
    Alert,
    AlertSeverity,
    HealthLevel,
    LoopSpec,
    LoopState,
    LoopStatus,
    Priority,
    ResourceSnapshot,
    Schedule,
    SystemHealth,
)
from .messages import (
    BROADCAST,
    WILDCARD,
    AgentMessage,
    BusHealth,
    BusStatus,
    MessageKind,
)
from .tasks import (
    Assignment,
    Bottleneck,
    Capability,
    CompositeTask,
    CoordinationReport,
    EmergencyEvent,
    EmergencyResponse,
    EmergencySeverity,
    MonitorReport,
    Reallocation,
    SubTask,
    SubTaskStatus,
    TaskRanking,
)
from .tracing import TraceEvent

__all__ = [
    # Loops
    "Priority",
    "Schedule",
    "LoopSpec",
    "LoopState",
    "LoopStatus",
    "Alert",
    "AlertSeverity",
    "HealthLevel",
    "ResourceSnapshot",
    "SystemHealth",
    # Messages
    "BROADCAST",
    "WILDCARD",
    "AgentMessage",
    "MessageKind",
    "BusHealth",
    "BusStatus",
    # Cognition
    "Context",
    "Observation",
    "ObservationKind",
    "Thought",
    "ThoughtKind",
    "Implication",
    "Plan",
    "PlanStep",
    "Risk",
    "ResourceEstimate",
    "SuccessMetric",
    "Action",
    "ActionResult",
    "ResultStatus",
    "Learning",
    "LearningKind",
    "HIGH_IMPACT",
    "Experience",
    "Pattern",
    # Tasks
    "Capability",
    "CompositeTask",
    "SubTask",
    "SubTaskStatus",
    "Assignment",
    "TaskRanking",
    "Bottleneck",
    "Reallocation",
    "MonitorReport",
    "CoordinationReport",
    "EmergencyEvent",
    "EmergencyResponse",
    "EmergencySeverity",
    # Collaboration
    "KnowledgeEntry",
    "ReviewRequest",
    # Tracing
    "TraceEvent",
]
