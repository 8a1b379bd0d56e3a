"""Trace events recorded for observability."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass
class TraceEvent:
    """One recorded milestone: bus traffic, loop completion, task or emergency outcome.

    ``actor`` is prefixed by component kind (``agent:``, ``loop:``,
    ``coordinator:``) so the trace can be filtered per component.
    """

    id: str
    event_type: str  # "bus_message_published", "loop_completed", "task_coordinated", ...
    actor: str
    data: dict[str, Any]
    timestamp: datetime

    @property
    def component(self) -> str:
        return self.actor.split(":", 1)[0] if ":" in self.actor else self.actor

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "event_type": self.event_type,
            "actor": self.actor,
            "component": self.component,
            "data": self.data,
            "timestamp": self.timestamp.isoformat(),
        }
