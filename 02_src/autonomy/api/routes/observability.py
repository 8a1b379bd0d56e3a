"""Observability API routes."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel
from fastapi import APIRouter, HTTPException, Query

from ...app import Application


class TraceEventResponse(BaseModel):
    """Response model for trace event."""

    id: str
    event_type: str
    actor: str
    component: str
    data: dict[str, Any]
    timestamp: datetime


def create_observability_router(app: Application) -> APIRouter:
    """Create observability router."""
    router = APIRouter(prefix="/api", tags=["observability"])

    @router.get("/health")
    async def get_health() -> Any:
        """Aggregate system health: loops, resources, bus and alerts."""
        return await app.get_system_health()

    @router.get("/loops")
    async def get_loops() -> Any:
        return app.get_loop_status()

    @router.get("/loops/{loop_id}")
    async def get_loop(loop_id: str) -> Any:
        try:
            return app.get_loop_status(loop_id)
        except KeyError:
            raise HTTPException(status_code=404, detail=f"Unknown loop: {loop_id}")

    @router.get("/alerts")
    async def get_alerts(include_resolved: bool = Query(False)) -> Any:
        return app.scheduler.get_alerts(include_resolved=include_resolved)

    @router.post("/alerts/{alert_id}/resolve")
    async def resolve_alert(alert_id: str) -> dict:
        if not await app.scheduler.resolve_alert(alert_id):
            raise HTTPException(status_code=404, detail=f"Unknown alert: {alert_id}")
        return {"status": "ok"}

    @router.get("/agents")
    async def get_agents() -> list[dict]:
        return [agent.get_status() for agent in app.agents.values()]

    @router.get("/bus/health")
    async def get_bus_health() -> Any:
        return await app.message_bus.health_check()

    @router.get("/bus/metrics")
    async def get_bus_metrics() -> dict:
        return app.message_bus.get_metrics()

    @router.get("/knowledge")
    async def get_knowledge(domain: str | None = Query(None)) -> Any:
        return await app.knowledge.get_knowledge(domain)

    @router.get("/emergencies")
    async def get_emergencies() -> Any:
        return app.coordinator.get_emergencies()

    @router.get("/trace-events", response_model=list[TraceEventResponse])
    async def get_trace_events(
        after: str | None = Query(None, description="ISO timestamp filter"),
        limit: int = Query(100, ge=1, le=1000),
        event_type: str | None = Query(None, description="Filter by event type"),
        actor: str | None = Query(None, description="Filter by actor"),
        component: str | None = Query(None, description="agent, loop or coordinator"),
    ) -> list[dict]:
        """Trace events, newest first, with optional filters."""
        try:
            after_dt = None
            if after:
                try:
                    after_dt = datetime.fromisoformat(after)
                except ValueError:
                    raise HTTPException(
                        status_code=400, detail="Invalid after timestamp format"
                    )

            event_types = [event_type] if event_type else None

            events = await app.storage.get_trace_events(
                after=after_dt,
                event_types=event_types,
                actor=actor,
                limit=limit,
            )

            return [e.to_dict() for e in events if component is None or e.component == component]

        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    return router
