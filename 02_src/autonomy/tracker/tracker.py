"""Trace recording: bus traffic plus component milestones."""

import json
import uuid
from datetime import datetime, timezone
from typing import Any, Protocol

from ..bus import IMessageBus
from ..logging_config import get_logger
from ..models import WILDCARD, AgentMessage, TraceEvent
from ..storage import IStorage

logger = get_logger(__name__)

BUS_EVENT = "bus_message_published"
PAYLOAD_SUMMARY_CHARS = 100


def summarize_payload(payload: dict[str, Any]) -> str:
    text = json.dumps(payload, default=str, sort_keys=True)
    if len(text) <= PAYLOAD_SUMMARY_CHARS:
        return text
    return text[: PAYLOAD_SUMMARY_CHARS - 3] + "..."


class ITracker(Protocol):
    """Two channels feed the trace: a wildcard bus subscription and direct track() calls."""

    async def track(self, event_type: str, actor: str, data: dict) -> TraceEvent:
        """Record a milestone."""
        ...

    async def stop(self) -> None:
        """Detach from the bus."""
        ...


class Tracker:
    """Stores a TraceEvent per bus message and per track() call.

    Recording never fails the caller: storage errors are logged and the
    event is returned unsaved.
    """

    def __init__(self, message_bus: IMessageBus, storage: IStorage):
        self._message_bus = message_bus
        self._storage = storage
        self._attached = False

    async def start(self) -> None:
        if self._attached:
            return
        self._message_bus.subscribe(WILDCARD, self._on_message)
        self._attached = True

    async def _on_message(self, message: AgentMessage) -> None:
        data: dict[str, Any] = {
            "message_id": message.id,
            "to": message.to,
            "kind": message.kind.value,
            "priority": message.priority.value,
            "payload_summary": summarize_payload(message.payload),
        }
        if message.correlation_ids:
            data["in_reply_to"] = list(message.correlation_ids)
        if message.requires_response:
            data["requires_response"] = True
        await self.track(BUS_EVENT, f"agent:{message.sender}", data)

    async def track(self, event_type: str, actor: str, data: dict) -> TraceEvent:
        event = TraceEvent(
            id=str(uuid.uuid4()),
            event_type=event_type,
            actor=actor,
            data=data,
            timestamp=datetime.now(timezone.utc),
        )
        try:
            await self._storage.save_trace_event(event)
        except Exception as e:
            logger.error("Failed to save trace event %s from %s: %s", event_type, actor, e)
        return event

    async def stop(self) -> None:
        if self._attached:
            self._message_bus.unsubscribe(WILDCARD, self._on_message)
            self._attached = False
