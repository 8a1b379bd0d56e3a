"""Human oversight channel."""

import uuid
from datetime import datetime, timezone
from typing import Any, Protocol

from ..logging_config import get_logger
from ..models import Priority, ReviewRequest
from ..storage import IStorage

logger = get_logger(__name__)

REVIEW_STATUSES = ("pending", "approved", "rejected")


class IOversightChannel(Protocol):
    """Fire-and-forget review requests with a retrievable queue."""

    async def request_review(
        self,
        user_id: str,
        agent_id: str,
        subject: dict[str, Any],
        urgency: Priority = Priority.MEDIUM,
    ) -> ReviewRequest:
        """Queue a review request for a human."""
        ...

    async def get_queue(
        self, user_id: str | None = None, status: str | None = "pending"
    ) -> list[ReviewRequest]:
        """Review requests, most urgent first."""
        ...


class OversightChannel:
    """Review queue persisted to Storage."""

    def __init__(self, storage: IStorage):
        self._storage = storage

    async def request_review(
        self,
        user_id: str,
        agent_id: str,
        subject: dict[str, Any],
        urgency: Priority = Priority.MEDIUM,
    ) -> ReviewRequest:
        request = ReviewRequest(
            id=str(uuid.uuid4()),
            user_id=user_id,
            agent_id=agent_id,
            subject=subject,
            urgency=urgency,
            created_at=datetime.now(timezone.utc),
        )
        await self._storage.save_review_request(request)
        logger.info(
            "Review requested from %s for agent %s (%s)",
            user_id,
            agent_id,
            urgency.value,
            extra={"agent_id": agent_id},
        )
        return request

    async def get_queue(
        self, user_id: str | None = None, status: str | None = "pending"
    ) -> list[ReviewRequest]:
        requests = await self._storage.get_review_requests(status)
        if user_id:
            requests = [r for r in requests if r.user_id == user_id]
        # Stable sort keeps oldest-first within an urgency level.
        return sorted(requests, key=lambda r: r.urgency.score, reverse=True)

    async def resolve(self, request_id: str, status: str) -> ReviewRequest:
        """Record a human decision on a pending request.

        Raises:
            ValueError: unknown status.
            KeyError: unknown or already resolved request.
        """
        if status not in REVIEW_STATUSES[1:]:
            raise ValueError(f"Invalid review status: {status}")

        for request in await self._storage.get_review_requests("pending"):
            if request.id == request_id:
                request.status = status
                await self._storage.save_review_request(request)
                logger.info("Review %s %s", request_id, status)
                return request
        raise KeyError(request_id)
