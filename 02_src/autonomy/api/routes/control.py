"""Control API routes."""

from typing import Any

from pydantic import BaseModel
from fastapi import APIRouter, HTTPException

from ...app import Application
from ...errors import ConfigurationError


class StatusResponse(BaseModel):
    """Response model for status."""

    status: str


def create_control_router(app: Application) -> APIRouter:
    """Create control router."""
    router = APIRouter(prefix="/api/control", tags=["control"])

    @router.post("/reset", response_model=StatusResponse)
    async def reset_system() -> dict:
        """Reset system data between test runs."""
        try:
            await app.reset()
            return {"status": "ok"}
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    @router.post("/scheduler/start", response_model=StatusResponse)
    async def start_scheduler() -> dict:
        """Start loop timers, health monitoring and adaptive recalculation."""
        try:
            await app.scheduler.start()
            return {"status": "ok"}
        except ConfigurationError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    @router.post("/scheduler/stop", response_model=StatusResponse)
    async def stop_scheduler() -> dict:
        """Stop the scheduler."""
        try:
            await app.scheduler.stop()
            return {"status": "ok"}
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    @router.post("/loops/{loop_id}/tick")
    async def tick_loop(loop_id: str) -> Any:
        """Run one firing of a loop now."""
        try:
            return await app.scheduler.tick(loop_id)
        except KeyError:
            raise HTTPException(status_code=404, detail=f"Unknown loop: {loop_id}")
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    @router.post("/adaptive/recalculate")
    async def recalculate_schedules() -> dict:
        """Recompute adaptive multipliers; returns the new next-run times."""
        next_runs = app.scheduler.recalculate_adaptive_schedules()
        return {loop_id: when.isoformat() for loop_id, when in next_runs.items()}

    @router.post("/health/check")
    async def run_health_check() -> list[dict]:
        """Run one health-monitor pass and return the emergencies it raised."""
        try:
            events = await app.scheduler.monitor_health()
            return [
                {
                    "kind": e.kind,
                    "source": e.source,
                    "severity": e.severity.value if e.severity else None,
                    "data": e.data,
                }
                for e in events
            ]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    return router
