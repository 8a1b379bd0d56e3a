"""Tests for data models."""

from dataclasses import FrozenInstanceError, replace
from datetime import datetime, timedelta, timezone

import pytest

from autonomy.models import (
    AgentMessage,
    LoopState,
    LoopStatus,
    MessageKind,
    Priority,
    ResourceSnapshot,
    Schedule,
    TraceEvent,
)


class TestPriority:
    """Tests for Priority ordering."""

    def test_scores_are_ordered(self):
        """Test that scores rank low < medium < high < critical."""
        scores = [p.score for p in (Priority.LOW, Priority.MEDIUM, Priority.HIGH, Priority.CRITICAL)]
        assert scores == [1, 2, 3, 4]


class TestSchedule:
    """Tests for Schedule.next_fire."""

    def _schedule(self, minutes=10):
        return Schedule(
            expression=f"*/{minutes} * * * *",
            interval=timedelta(minutes=minutes),
            anchor=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )

    def test_next_fire_is_strictly_after(self):
        """Test that a time on the grid yields the next grid point."""
        schedule = self._schedule()
        after = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)
        assert schedule.next_fire(after) == datetime(2025, 1, 1, 12, 10, tzinfo=timezone.utc)

    def test_next_fire_between_grid_points(self):
        """Test rounding up to the next grid point."""
        schedule = self._schedule()
        after = datetime(2025, 1, 1, 12, 3, tzinfo=timezone.utc)
        assert schedule.next_fire(after) == datetime(2025, 1, 1, 12, 10, tzinfo=timezone.utc)

    def test_multiplier_shortens_interval(self):
        """Test that a multiplier of 2 halves the effective interval."""
        schedule = self._schedule()
        after = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)
        assert schedule.next_fire(after, multiplier=2.0) == datetime(
            2025, 1, 1, 12, 5, tzinfo=timezone.utc
        )


class TestAgentMessage:
    """Tests for AgentMessage."""

    def test_message_is_immutable(self):
        """Test that published messages cannot be mutated."""
        msg = AgentMessage(id="m1", sender="a", to="b", kind=MessageKind.UPDATE)
        with pytest.raises(FrozenInstanceError):
            msg.payload = {"x": 1}

    def test_defaults(self):
        """Test default field values."""
        msg = AgentMessage(id="m1", sender="a", to="b", kind=MessageKind.REQUEST)
        assert msg.priority is Priority.MEDIUM
        assert msg.timestamp is None
        assert msg.correlation_ids == ()
        assert replace(msg, requires_response=True).requires_response


class TestLoopState:
    """Tests for LoopState defaults."""

    def test_initial_state(self):
        state = LoopState(id="loop")
        assert state.status is LoopStatus.IDLE
        assert state.success_rate == 1.0
        assert state.adaptive_multiplier == 1.0
        assert state.consecutive_failures == 0


class TestResourceSnapshot:
    def test_peak(self):
        assert ResourceSnapshot(cpu=10, memory=75, storage=30).peak == 75


class TestTraceEvent:
    """Tests for TraceEvent."""

    def test_component_from_actor_prefix(self):
        now = datetime(2025, 3, 3, tzinfo=timezone.utc)
        event = TraceEvent("t1", "loop_completed", "loop:content_loop", {"ok": True}, now)

        assert event.component == "loop"
        assert event.to_dict() == {
            "id": "t1",
            "event_type": "loop_completed",
            "actor": "loop:content_loop",
            "component": "loop",
            "data": {"ok": True},
            "timestamp": now.isoformat(),
        }

    def test_unprefixed_actor(self):
        event = TraceEvent("t1", "x", "operator", {}, datetime.now(timezone.utc))
        assert event.component == "operator"
