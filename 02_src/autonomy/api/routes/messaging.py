"""Messaging API routes."""

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field
from fastapi import APIRouter, HTTPException, Query

from ...app import Application
from ...errors import MessageTimeoutError, TransportFailure
from ...models import AgentMessage, MessageKind, Priority


class MessageRequest(BaseModel):
    """Request model for publishing a message."""

    sender: str
    to: str
    kind: MessageKind
    payload: dict[str, Any] = Field(default_factory=dict)
    priority: Priority = Priority.MEDIUM
    requires_response: bool = False
    deadline: datetime | None = None
    timeout: float | None = None


class BroadcastRequest(BaseModel):
    """Request model for a broadcast."""

    payload: dict[str, Any]
    priority: Priority = Priority.MEDIUM
    sender: str = "operator"


def create_messaging_router(app: Application) -> APIRouter:
    """Create messaging router."""
    router = APIRouter(prefix="/api", tags=["messaging"])

    @router.post("/messages")
    async def send_message(request: MessageRequest) -> Any:
        """Publish a message; with ``requires_response`` wait for the reply."""
        message = AgentMessage(
            id=str(uuid.uuid4()),
            sender=request.sender,
            to=request.to,
            kind=request.kind,
            payload=request.payload,
            priority=request.priority,
            requires_response=request.requires_response,
            deadline=request.deadline,
        )
        try:
            if request.requires_response:
                return await app.message_bus.request_response(message, timeout=request.timeout)
            return await app.message_bus.publish(message)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except MessageTimeoutError as e:
            raise HTTPException(status_code=504, detail=str(e))
        except TransportFailure as e:
            raise HTTPException(status_code=503, detail=str(e))

    @router.post("/broadcast")
    async def broadcast(request: BroadcastRequest) -> Any:
        try:
            return await app.message_bus.broadcast(
                request.payload, priority=request.priority, sender=request.sender
            )
        except TransportFailure as e:
            raise HTTPException(status_code=503, detail=str(e))

    @router.get("/messages/{agent_id}")
    async def get_history(
        agent_id: str,
        limit: int = Query(50, ge=1, le=1000),
        offset: int = Query(0, ge=0),
    ) -> Any:
        """Recent messages addressed to an agent, newest first."""
        return app.message_bus.get_message_history(agent_id, limit=limit, offset=offset)

    return router
