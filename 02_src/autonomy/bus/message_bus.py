"""MessageBus implementation for inter-agent messaging."""

import asyncio
import heapq
import itertools
import time
import uuid
from collections import deque
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Protocol

from ..errors import MessageTimeoutError, TransportFailure
from ..logging_config import get_logger
from ..models import (
    BROADCAST,
    WILDCARD,
    AgentMessage,
    BusHealth,
    BusStatus,
    MessageKind,
    Priority,
)
from ..storage import IStorage

logger = get_logger(__name__)


MessageHandler = Callable[[AgentMessage], Awaitable[None]]
Clock = Callable[[], datetime]

UNHEALTHY_LATENCY_MS = 1000.0
DEGRADED_LATENCY_MS = 500.0
DEGRADED_PENDING_RESPONSES = 100
DEGRADED_PRIORITY_BACKLOG = 1000


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IMessageBus(Protocol):
    """Pub/sub with request/response correlation and a priority channel."""

    def subscribe(self, target: str, handler: MessageHandler) -> None:
        """Subscribe a handler to an agent id, BROADCAST or WILDCARD."""
        ...

    def unsubscribe(self, target: str, handler: MessageHandler) -> None:
        """Remove a previously subscribed handler."""
        ...

    async def publish(self, message: AgentMessage) -> AgentMessage:
        """Validate, stamp, persist and deliver a message. Returns the stamped copy."""
        ...

    async def broadcast(
        self,
        payload: dict[str, Any],
        priority: Priority = Priority.MEDIUM,
        sender: str = "system",
        kind: MessageKind = MessageKind.BROADCAST,
    ) -> AgentMessage:
        """Publish to every agent."""
        ...

    async def request_response(
        self, message: AgentMessage, timeout: float | None = None
    ) -> AgentMessage:
        """Publish a request and wait for the first correlated response."""
        ...

    async def reply(
        self, request: AgentMessage, payload: dict[str, Any], sender: str
    ) -> AgentMessage:
        """Publish the response correlated to ``request``."""
        ...

    async def enqueue_priority(self, message: AgentMessage) -> AgentMessage:
        """Queue a message on the recipient's priority channel."""
        ...

    def drain_priority(self, agent_id: str, limit: int = 10) -> list[AgentMessage]:
        """Pop up to ``limit`` queued messages, most urgent first."""
        ...

    async def health_check(self) -> BusHealth:
        """Measure storage latency and report bus status."""
        ...


class MessageBus:
    """In-memory message bus persisted to Storage.

    Delivery is push-based: ``publish`` calls every handler subscribed to the
    recipient plus every wildcard handler, concurrently, isolating failures.
    The priority channel is a separate pull model for batch consumers.
    """

    def __init__(
        self,
        storage: IStorage,
        history_limit: int = 1000,
        request_timeout: float = 30.0,
        clock: Clock | None = None,
    ):
        self._storage = storage
        self._history_limit = history_limit
        self._request_timeout = request_timeout
        self._clock = clock or _utcnow

        self._subscribers: dict[str, list[MessageHandler]] = {}
        self._waiters: dict[str, asyncio.Future] = {}
        self._expired: deque[str] = deque(maxlen=history_limit)
        self._history: dict[str, deque[AgentMessage]] = {}
        self._priority: dict[str, list[tuple[int, int, AgentMessage]]] = {}
        self._sequence = itertools.count()
        self._background: set[asyncio.Task] = set()

        self._transport_failures = 0
        self._last_transport_error: str | None = None
        self._closed = False
        self._metrics = {
            "published": 0,
            "delivered": 0,
            "handler_errors": 0,
            "responses_matched": 0,
            "late_responses_discarded": 0,
            "timeouts": 0,
        }

    # Subscriptions
    def subscribe(self, target: str, handler: MessageHandler) -> None:
        """Subscribe a handler to an agent id, BROADCAST or WILDCARD."""
        self._subscribers.setdefault(target, []).append(handler)
        logger.debug("Subscribed handler for target %s", target)

    def unsubscribe(self, target: str, handler: MessageHandler) -> None:
        """Remove a previously subscribed handler. Unknown handlers are ignored."""
        handlers = self._subscribers.get(target)
        if handlers and handler in handlers:
            handlers.remove(handler)
            logger.debug("Unsubscribed handler for target %s", target)

    # Publishing
    def _validate(self, message: AgentMessage) -> None:
        if not message.id or not message.sender or not message.to:
            raise ValueError("Invalid message: missing required fields")
        if not isinstance(message.kind, MessageKind):
            raise ValueError(f"Invalid message kind: {message.kind!r}")
        if message.deadline and message.deadline <= self._clock():
            raise ValueError("Invalid message: deadline in the past")

    async def publish(self, message: AgentMessage) -> AgentMessage:
        """Validate, stamp, persist and deliver a message.

        Raises:
            ValueError: missing fields, unknown kind, or a deadline in the past.
        """
        if self._closed:
            raise TransportFailure("Message bus closed")
        self._validate(message)

        stamped = replace(message, timestamp=self._clock())
        self._metrics["published"] += 1
        self._record_history(stamped)
        await self._persist(stamped)

        logger.debug(
            "Message %s from %s to %s: %s",
            stamped.id,
            stamped.sender,
            stamped.to,
            stamped.kind.value,
            extra={"message_id": stamped.id},
        )

        if stamped.kind is MessageKind.RESPONSE and stamped.correlation_ids:
            if self._resolve_waiter(stamped):
                return stamped
            if any(cid in self._expired for cid in stamped.correlation_ids):
                self._metrics["late_responses_discarded"] += 1
                logger.info(
                    "Discarding late response %s for %s",
                    stamped.id,
                    list(stamped.correlation_ids),
                )
                return stamped

        await self._deliver(stamped)
        return stamped

    def _resolve_waiter(self, response: AgentMessage) -> bool:
        for cid in response.correlation_ids:
            waiter = self._waiters.pop(cid, None)
            if waiter is not None and not waiter.done():
                waiter.set_result(response)
                self._metrics["responses_matched"] += 1
                return True
        return False

    def _handlers_for(self, target: str) -> list[MessageHandler]:
        handlers: list[MessageHandler] = []
        for key in (target, WILDCARD):
            for handler in self._subscribers.get(key, []):
                if handler not in handlers:
                    handlers.append(handler)
        return handlers

    async def _deliver(self, message: AgentMessage) -> None:
        handlers = self._handlers_for(message.to)
        if not handlers:
            return

        results = await asyncio.gather(
            *[handler(message) for handler in handlers],
            return_exceptions=True,
        )

        for handler, result in zip(handlers, results):
            if isinstance(result, Exception):
                self._metrics["handler_errors"] += 1
                logger.error(
                    "Error in handler %s for %s: %s",
                    getattr(handler, "__qualname__", handler),
                    message.to,
                    result,
                    extra={"message_id": message.id},
                )
            else:
                self._metrics["delivered"] += 1

    def _record_history(self, message: AgentMessage) -> None:
        history = self._history.get(message.to)
        if history is None:
            history = deque(maxlen=self._history_limit)
            self._history[message.to] = history
        history.appendleft(message)

    async def _persist(self, message: AgentMessage) -> None:
        try:
            await self._storage.save_bus_message(message)
        except Exception as e:
            self._transport_failures += 1
            self._last_transport_error = str(e)
            logger.error(
                "Failed to persist message %s: %s",
                message.id,
                e,
                extra={"message_id": message.id},
            )

    async def broadcast(
        self,
        payload: dict[str, Any],
        priority: Priority = Priority.MEDIUM,
        sender: str = "system",
        kind: MessageKind = MessageKind.BROADCAST,
    ) -> AgentMessage:
        """Publish ``payload`` to every agent."""
        message = AgentMessage(
            id=str(uuid.uuid4()),
            sender=sender,
            to=BROADCAST,
            kind=kind,
            payload=payload,
            priority=priority,
        )
        return await self.publish(message)

    # Request / response
    async def request_response(
        self, message: AgentMessage, timeout: float | None = None
    ) -> AgentMessage:
        """Publish a request and wait for the first correlated response.

        The wait is bounded by ``timeout`` (default from settings) or the
        message deadline, whichever is sooner. Handlers keep running after a
        timeout; their responses are discarded.

        Raises:
            ValueError: message failed validation.
            MessageTimeoutError: no response in time.
            TransportFailure: the bus was closed while waiting.
        """
        if self._closed:
            raise TransportFailure("Message bus closed")

        request = replace(message, requires_response=True)
        self._validate(request)

        wait = self._request_timeout if timeout is None else timeout
        if request.deadline:
            remaining = (request.deadline - self._clock()).total_seconds()
            wait = min(wait, remaining)

        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._waiters[request.id] = future

        task = asyncio.create_task(self.publish(request))
        self._background.add(task)
        task.add_done_callback(self._publish_done)

        try:
            return await asyncio.wait_for(future, timeout=wait)
        except asyncio.TimeoutError:
            self._metrics["timeouts"] += 1
            self._expired.append(request.id)
            logger.warning(
                "Request %s to %s timed out after %.3fs",
                request.id,
                request.to,
                wait,
                extra={"message_id": request.id},
            )
            raise MessageTimeoutError(request.id, wait)
        finally:
            self._waiters.pop(request.id, None)

    def _publish_done(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Background publish failed: %s", error)

    async def reply(
        self, request: AgentMessage, payload: dict[str, Any], sender: str
    ) -> AgentMessage:
        """Publish the response correlated to ``request``."""
        response = AgentMessage(
            id=str(uuid.uuid4()),
            sender=sender,
            to=request.sender,
            kind=MessageKind.RESPONSE,
            payload=payload,
            priority=request.priority,
            correlation_ids=(request.id,),
        )
        return await self.publish(response)

    # Priority channel
    async def enqueue_priority(self, message: AgentMessage) -> AgentMessage:
        """Queue a message for pull-style consumption.

        Messages to BROADCAST are fanned out to every subscribed agent except
        the sender.
        """
        self._validate(message)
        stamped = replace(message, timestamp=self._clock())
        await self._persist(stamped)

        if stamped.to == BROADCAST:
            recipients = [
                target
                for target, handlers in self._subscribers.items()
                if handlers and target not in (BROADCAST, WILDCARD, stamped.sender)
            ]
        else:
            recipients = [stamped.to]

        entry_score = -stamped.priority.score
        for recipient in recipients:
            heapq.heappush(
                self._priority.setdefault(recipient, []),
                (entry_score, next(self._sequence), stamped),
            )
        return stamped

    def drain_priority(self, agent_id: str, limit: int = 10) -> list[AgentMessage]:
        """Pop up to ``limit`` queued messages: critical first, FIFO within a priority."""
        queue = self._priority.get(agent_id)
        drained: list[AgentMessage] = []
        while queue and len(drained) < limit:
            drained.append(heapq.heappop(queue)[2])
        return drained

    # Introspection
    def get_message_history(
        self, agent_id: str, limit: int = 100, offset: int = 0
    ) -> list[AgentMessage]:
        """Messages addressed to ``agent_id``, newest first."""
        history = self._history.get(agent_id)
        if not history:
            return []
        return list(itertools.islice(history, offset, offset + limit))

    @property
    def pending_responses(self) -> int:
        return len(self._waiters)

    @property
    def priority_backlog(self) -> int:
        return sum(len(queue) for queue in self._priority.values())

    def get_metrics(self) -> dict[str, Any]:
        """Counters and gauges for the observability surface."""
        return {
            **self._metrics,
            "pending_responses": self.pending_responses,
            "priority_backlog": self.priority_backlog,
            "active_subscribers": sum(len(h) for h in self._subscribers.values()),
            "transport_failures": self._transport_failures,
        }

    async def health_check(self) -> BusHealth:
        """Measure storage round-trip latency and report bus status.

        Transport failures recorded since the previous check make the bus
        unhealthy once; the counter resets after being reported.
        """
        details: dict[str, Any] = {"timestamp": self._clock().isoformat()}
        start = time.perf_counter()
        ping_error: str | None = None
        try:
            await self._storage.ping()
        except Exception as e:
            ping_error = str(e)
            details["error"] = ping_error
        latency_ms = (time.perf_counter() - start) * 1000.0

        failures = self._transport_failures
        if failures:
            details["transport_failures"] = failures
            details["last_transport_error"] = self._last_transport_error
        self._transport_failures = 0

        pending = self.pending_responses
        backlog = self.priority_backlog

        if ping_error or failures or latency_ms > UNHEALTHY_LATENCY_MS:
            status = BusStatus.UNHEALTHY
        elif (
            latency_ms > DEGRADED_LATENCY_MS
            or pending > DEGRADED_PENDING_RESPONSES
            or backlog > DEGRADED_PRIORITY_BACKLOG
        ):
            status = BusStatus.DEGRADED
        else:
            status = BusStatus.HEALTHY

        return BusHealth(
            status=status,
            latency_ms=latency_ms,
            pending_responses=pending,
            priority_backlog=backlog,
            details=details,
        )

    async def close(self) -> None:
        """Reject pending waiters and drop all handlers."""
        self._closed = True
        for message_id, waiter in list(self._waiters.items()):
            if not waiter.done():
                waiter.set_exception(TransportFailure(f"Message bus closed ({message_id})"))
        self._waiters.clear()
        self._subscribers.clear()

        for task in list(self._background):
            task.cancel()
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
        self._background.clear()
        logger.info("Message bus closed")
