"""Composite task and human review API routes."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field
from fastapi import APIRouter, HTTPException, Query

from ...app import Application
from ...errors import ConfigurationError
from ...models import Capability, CompositeTask, SubTask


class SubTaskRequest(BaseModel):
    id: str
    description: str
    capability: Capability
    dependencies: list[str] = Field(default_factory=list)
    inputs: list[str] = Field(default_factory=list)
    outputs: list[str] = Field(default_factory=list)
    estimated_duration: float = 60.0


class CompositeTaskRequest(BaseModel):
    """Request model for a composite task."""

    id: str
    kind: str
    description: str
    objectives: list[str] = Field(default_factory=list)
    urgency: float = Field(5.0, ge=1, le=10)
    impact: float = Field(5.0, ge=1, le=10)
    cost: float = Field(5.0, ge=1, le=10)
    depends_on: list[str] = Field(default_factory=list)
    subtasks: list[SubTaskRequest] = Field(default_factory=list)
    deadline: datetime | None = None
    context: dict[str, Any] = Field(default_factory=dict)

    def to_task(self) -> CompositeTask:
        return CompositeTask(
            id=self.id,
            kind=self.kind,
            description=self.description,
            objectives=list(self.objectives),
            urgency=self.urgency,
            impact=self.impact,
            cost=self.cost,
            depends_on=list(self.depends_on),
            subtasks=[SubTask(**s.model_dump()) for s in self.subtasks],
            deadline=self.deadline,
            context=dict(self.context),
        )


class ReviewDecision(BaseModel):
    status: str  # approved | rejected


def create_tasks_router(app: Application) -> APIRouter:
    """Create tasks router."""
    router = APIRouter(prefix="/api", tags=["tasks"])

    @router.post("/tasks")
    async def run_task(request: CompositeTaskRequest) -> Any:
        """Decompose, assign and coordinate a composite task to completion."""
        try:
            return await app.coordinator.run(request.to_task())
        except ConfigurationError as e:
            raise HTTPException(status_code=400, detail=str(e))

    @router.get("/tasks/{task_id}")
    async def get_task(task_id: str) -> dict:
        task = app.coordinator.get_task(task_id)
        if task is None:
            raise HTTPException(status_code=404, detail=f"Unknown task: {task_id}")
        return {
            "task": task,
            "report": app.coordinator.get_report(task_id),
            "monitor": app.coordinator.monitor(task),
        }

    @router.post("/tasks/prioritize")
    async def prioritize(requests: list[CompositeTaskRequest]) -> Any:
        try:
            return app.coordinator.prioritize([r.to_task() for r in requests])
        except ConfigurationError as e:
            raise HTTPException(status_code=400, detail=str(e))

    @router.get("/reviews")
    async def get_reviews(
        user_id: str | None = Query(None),
        status: str | None = Query("pending"),
    ) -> Any:
        """Human review queue, most urgent first."""
        return await app.oversight.get_queue(user_id=user_id, status=status)

    @router.post("/reviews/{request_id}")
    async def decide_review(request_id: str, decision: ReviewDecision) -> Any:
        try:
            return await app.oversight.resolve(request_id, decision.status)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except KeyError:
            raise HTTPException(status_code=404, detail=f"Unknown review request: {request_id}")

    return router
