"""Inter-agent message models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from .loops import Priority

BROADCAST = "all"  # recipient meaning "every agent"
WILDCARD = "*"  # subscription target receiving every message


class MessageKind(str, Enum):
    """Kinds of AgentMessage."""

    REQUEST = "request"
    RESPONSE = "response"
    BROADCAST = "broadcast"
    ALERT = "alert"
    UPDATE = "update"


class BusStatus(str, Enum):
    """Bus liveness as reported by health_check()."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass(frozen=True)
class AgentMessage:
    """A message exchanged between agents. Immutable once published."""

    id: str
    sender: str
    to: str  # agent id or BROADCAST
    kind: MessageKind
    payload: dict[str, Any] = field(default_factory=dict)
    priority: Priority = Priority.MEDIUM
    timestamp: datetime | None = None  # stamped by the bus
    requires_response: bool = False
    deadline: datetime | None = None
    correlation_ids: tuple[str, ...] = ()


@dataclass
class BusHealth:
    """Result of MessageBus.health_check()."""

    status: BusStatus
    latency_ms: float
    pending_responses: int
    priority_backlog: int
    details: dict[str, Any] = field(default_factory=dict)
