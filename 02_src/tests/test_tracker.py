"""Tests for Tracker."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from autonomy.models import AgentMessage, MessageKind
from autonomy.tracker.tracker import PAYLOAD_SUMMARY_CHARS, summarize_payload


class TestTrackerTrack:
    """Tests for Tracker.track() method."""

    @pytest.mark.asyncio
    async def test_track_creates_event(self, tracker, storage):
        """Test that track() creates a TraceEvent."""
        await tracker.track(
            event_type="loop_completed",
            actor="loop:analytics_loop",
            data={"key": "value"},
        )

        events = await storage.get_trace_events()
        assert len(events) == 1
        assert events[0].event_type == "loop_completed"
        assert events[0].actor == "loop:analytics_loop"
        assert events[0].data == {"key": "value"}

    @pytest.mark.asyncio
    async def test_track_generates_timestamp(self, tracker, storage):
        """Test that track() stamps the event."""
        before = datetime.now(timezone.utc)
        await tracker.track(event_type="test_event", actor="test_actor", data={})
        after = datetime.now(timezone.utc)

        events = await storage.get_trace_events()
        assert before <= events[0].timestamp <= after

    @pytest.mark.asyncio
    async def test_storage_error_is_swallowed(self, tracker, storage):
        """Test that a storage failure doesn't propagate."""
        storage.save_trace_event = AsyncMock(side_effect=RuntimeError("db down"))
        await tracker.track(event_type="x", actor="y", data={})


class TestTrackerBusMessages:
    """Tests for bus message tracing."""

    @pytest.mark.asyncio
    async def test_every_published_message_is_traced(self, tracker, message_bus, storage):
        await tracker.start()
        await message_bus.publish(
            AgentMessage(
                id="m1",
                sender="analytics",
                to="strategy",
                kind=MessageKind.UPDATE,
                payload={"report": "weekly"},
            )
        )

        events = await storage.get_trace_events(event_types=["bus_message_published"])
        assert len(events) == 1
        assert events[0].actor == "agent:analytics"
        assert events[0].data["message_id"] == "m1"
        assert events[0].data["to"] == "strategy"

    @pytest.mark.asyncio
    async def test_start_is_idempotent_and_stop_detaches(self, tracker, message_bus, storage):
        await tracker.start()
        await tracker.start()
        await message_bus.publish(
            AgentMessage(id="m1", sender="a", to="b", kind=MessageKind.UPDATE)
        )
        await tracker.stop()
        await message_bus.publish(
            AgentMessage(id="m2", sender="a", to="b", kind=MessageKind.UPDATE)
        )

        events = await storage.get_trace_events()
        assert [e.data["message_id"] for e in events] == ["m1"]

    @pytest.mark.asyncio
    async def test_request_and_reply_are_traced_with_correlation(
        self, tracker, message_bus, storage
    ):
        await tracker.start()
        await message_bus.publish(
            AgentMessage(
                id="q1",
                sender="coordinator",
                to="strategy",
                kind=MessageKind.REQUEST,
                requires_response=True,
            )
        )
        await message_bus.publish(
            AgentMessage(
                id="r1",
                sender="strategy",
                to="coordinator",
                kind=MessageKind.RESPONSE,
                correlation_ids=("q1",),
            )
        )

        events = await storage.get_trace_events(event_types=["bus_message_published"])
        by_kind = {e.data["kind"]: e for e in events}
        assert by_kind["request"].data["requires_response"] is True
        assert by_kind["response"].data["in_reply_to"] == ["q1"]
        assert by_kind["response"].actor == "agent:strategy"


def test_long_payload_summary_is_truncated():
    summary = summarize_payload({"text": "x" * 500})
    assert len(summary) == PAYLOAD_SUMMARY_CHARS
    assert summary.endswith("...")
    assert summarize_payload({"a": 1}) == '{"a": 1}'
