"""Tests for Storage."""

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from autonomy.models import (
    AgentMessage,
    Alert,
    AlertSeverity,
    Context,
    Experience,
    KnowledgeEntry,
    LoopState,
    LoopStatus,
    MessageKind,
    Priority,
    ReviewRequest,
    TraceEvent,
)
from autonomy.scheduling import default_loop_specs


class TestStorageLifecycle:
    """Tests for init/close."""

    @pytest.mark.asyncio
    async def test_uninitialized_storage_raises(self):
        from autonomy.storage import Storage

        st = Storage(":memory:")
        with pytest.raises(RuntimeError, match="Storage not initialized"):
            await st.ping()

    @pytest.mark.asyncio
    async def test_ping(self, storage):
        await storage.ping()


class TestLoopPersistence:
    """Tests for loop specs and states."""

    @pytest.mark.asyncio
    async def test_loop_spec_roundtrip(self, storage):
        """Test that a stored spec is rebuilt with its schedule."""
        spec = default_loop_specs()[0]
        await storage.save_loop_spec(spec)

        loaded = await storage.get_loop_specs()
        assert len(loaded) == 1
        assert loaded[0].id == spec.id
        assert loaded[0].dependencies == spec.dependencies
        assert loaded[0].schedule.interval == spec.schedule.interval
        after = datetime(2025, 6, 4, tzinfo=timezone.utc)
        assert loaded[0].schedule.next_fire(after) == spec.schedule.next_fire(after)

    @pytest.mark.asyncio
    async def test_loop_state_snapshot_replaces(self, storage):
        state = LoopState(id="loop", status=LoopStatus.RUNNING)
        await storage.save_loop_state(state)
        state.status = LoopStatus.FAILED
        state.last_error = "boom"
        await storage.save_loop_state(state)

        states = await storage.get_loop_states()
        assert len(states) == 1
        assert states[0].status is LoopStatus.FAILED
        assert states[0].last_error == "boom"


class TestExperiences:
    @pytest.mark.asyncio
    async def test_save_and_get(self, storage):
        now = datetime.now(timezone.utc)
        experience = Experience(
            id="exp1",
            agent_id="analytics",
            context=Context(timestamp=now, agent_id="analytics", loop_id="analytics_loop"),
            actions=(),
            results=(),
            learnings=(),
            timestamp=now,
            success=True,
        )
        await storage.save_experience(experience)

        records = await storage.get_experiences("analytics")
        assert len(records) == 1
        assert records[0]["id"] == "exp1"
        assert records[0]["context"]["loop_id"] == "analytics_loop"


class TestBusMessages:
    @pytest.mark.asyncio
    async def test_filter_by_recipient(self, storage):
        now = datetime.now(timezone.utc)
        for i, to in enumerate(["a", "b", "a"]):
            await storage.save_bus_message(
                AgentMessage(
                    id=f"m{i}",
                    sender="s",
                    to=to,
                    kind=MessageKind.UPDATE,
                    payload={"i": i},
                    timestamp=now + timedelta(seconds=i),
                )
            )

        messages = await storage.get_bus_messages(recipient="a")
        assert [m.id for m in messages] == ["m2", "m0"]
        assert messages[0].kind is MessageKind.UPDATE


class TestAlertsKnowledgeReviews:
    @pytest.mark.asyncio
    async def test_alert_resolution_filter(self, storage):
        now = datetime.now(timezone.utc)
        await storage.save_alert(Alert("a1", AlertSeverity.ERROR, "x", "loop", now))
        await storage.save_alert(Alert("a2", AlertSeverity.INFO, "y", "loop", now, resolved=True))

        assert [a.id for a in await storage.get_alerts()] == ["a1"]
        assert len(await storage.get_alerts(include_resolved=True)) == 2

    @pytest.mark.asyncio
    async def test_knowledge_by_domain(self, storage):
        for domain, confidence in [("analyst", 0.9), ("analyst", 0.95), ("content", 0.85)]:
            await storage.save_knowledge(
                KnowledgeEntry(
                    id=str(uuid.uuid4()),
                    domain=domain,
                    content="c",
                    confidence=confidence,
                    contributors=["a"],
                )
            )
        entries = await storage.get_knowledge("analyst")
        assert [e.confidence for e in entries] == [0.95, 0.9]

    @pytest.mark.asyncio
    async def test_review_status_filter(self, storage):
        now = datetime.now(timezone.utc)
        await storage.save_review_request(
            ReviewRequest("r1", "system", "content", {"k": 1}, Priority.HIGH, now)
        )
        await storage.save_review_request(
            ReviewRequest("r2", "system", "content", {}, Priority.LOW, now, status="approved")
        )
        pending = await storage.get_review_requests("pending")
        assert [r.id for r in pending] == ["r1"]
        assert pending[0].urgency is Priority.HIGH


class TestTraceEventsAndClear:
    @pytest.mark.asyncio
    async def test_trace_event_filters(self, storage):
        now = datetime.now(timezone.utc)
        await storage.save_trace_event(TraceEvent("t1", "loop_completed", "loop:a", {}, now))
        await storage.save_trace_event(
            TraceEvent("t2", "cycle_completed", "agent:x", {}, now + timedelta(seconds=1))
        )

        events = await storage.get_trace_events(event_types=["cycle_completed"])
        assert [e.id for e in events] == ["t2"]
        events = await storage.get_trace_events(actor="loop:a")
        assert [e.id for e in events] == ["t1"]

    @pytest.mark.asyncio
    async def test_clear_keeps_loop_specs(self, storage):
        now = datetime.now(timezone.utc)
        await storage.save_loop_spec(default_loop_specs()[0])
        await storage.save_trace_event(TraceEvent("t1", "x", "y", {}, now))

        await storage.clear()

        assert await storage.get_trace_events() == []
        assert len(await storage.get_loop_specs()) == 1
