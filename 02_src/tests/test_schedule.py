"""Tests for schedule parsing and the built-in loops."""

from datetime import datetime, timedelta, timezone

import pytest

from autonomy.errors import ConfigurationError
from autonomy.scheduling import DEFAULT_AGENT_IDS, default_loop_specs, parse_schedule

UTC = timezone.utc


class TestParseSchedule:
    """Tests for parse_schedule()."""

    def test_every_minutes(self):
        schedule = parse_schedule("every:15m")
        assert schedule.interval == timedelta(minutes=15)

    def test_every_hours_and_days(self):
        assert parse_schedule("every:2h").interval == timedelta(hours=2)
        assert parse_schedule("every:1d").interval == timedelta(days=1)

    def test_step_minutes(self):
        schedule = parse_schedule("*/30 * * * *")
        after = datetime(2025, 6, 1, 10, 5, tzinfo=UTC)
        assert schedule.interval == timedelta(minutes=30)
        assert schedule.next_fire(after) == datetime(2025, 6, 1, 10, 30, tzinfo=UTC)

    def test_hourly(self):
        """Test that 'M * * * *' fires at minute M of every hour."""
        schedule = parse_schedule("15 * * * *")
        after = datetime(2025, 6, 1, 10, 20, tzinfo=UTC)
        assert schedule.next_fire(after) == datetime(2025, 6, 1, 11, 15, tzinfo=UTC)

    def test_daily(self):
        schedule = parse_schedule("0 6 * * *")
        after = datetime(2025, 6, 1, 7, 0, tzinfo=UTC)
        assert schedule.next_fire(after) == datetime(2025, 6, 2, 6, 0, tzinfo=UTC)

    def test_weekly_monday(self):
        """Test that '0 0 * * 1' fires on Monday midnight."""
        schedule = parse_schedule("0 0 * * 1")
        # 2025-06-04 is a Wednesday
        after = datetime(2025, 6, 4, 9, 0, tzinfo=UTC)
        fire = schedule.next_fire(after)
        assert fire.weekday() == 0
        assert (fire.hour, fire.minute) == (0, 0)
        assert fire == datetime(2025, 6, 9, 0, 0, tzinfo=UTC)

    def test_weekly_sunday_zero_and_seven(self):
        after = datetime(2025, 6, 4, tzinfo=UTC)
        assert parse_schedule("0 12 * * 0").next_fire(after).weekday() == 6
        assert parse_schedule("0 12 * * 7").next_fire(after).weekday() == 6

    def test_daily_local_time_from_utc_instant(self):
        """Test that a UTC 'after' is compared on the schedule's wall clock."""
        schedule = parse_schedule("0 6 * * *", "America/New_York")
        after = datetime(2025, 7, 1, 10, 30, tzinfo=UTC)  # 06:30 EDT
        fire = schedule.next_fire(after)
        assert fire > after
        assert fire == datetime(2025, 7, 2, 10, 0, tzinfo=UTC)
        assert (fire.hour, fire.minute) == (6, 0)

    def test_step_minutes_in_summer_time(self):
        schedule = parse_schedule("*/5 * * * *", "America/New_York")
        after = datetime(2025, 7, 1, 14, 7, tzinfo=UTC)
        assert schedule.next_fire(after) == datetime(2025, 7, 1, 14, 10, tzinfo=UTC)

    def test_daily_keeps_local_hour_across_dst(self):
        schedule = parse_schedule("0 6 * * *", "America/New_York")
        winter = schedule.next_fire(datetime(2025, 1, 15, 12, 0, tzinfo=UTC))
        summer = schedule.next_fire(datetime(2025, 7, 15, 12, 0, tzinfo=UTC))
        assert winter == datetime(2025, 1, 16, 11, 0, tzinfo=UTC)
        assert summer == datetime(2025, 7, 16, 10, 0, tzinfo=UTC)

    def test_repeated_hour_after_fall_back(self):
        """Test that the second 01:xx hour of a fall-back night still fires forward."""
        schedule = parse_schedule("*/5 * * * *", "America/New_York")
        # 06:32Z is 01:32 EST, the second pass through 01:32 on 2025-11-02
        after = datetime(2025, 11, 2, 6, 32, tzinfo=UTC)
        fire = schedule.next_fire(after)
        assert fire.timestamp() == datetime(2025, 11, 2, 6, 35, tzinfo=UTC).timestamp()

    def test_always_after_across_a_day_of_instants(self):
        schedule = parse_schedule("*/5 * * * *", "America/New_York")
        start = datetime(2025, 3, 9, 0, 0, tzinfo=UTC)
        for minutes in range(0, 24 * 60, 7):
            after = start + timedelta(minutes=minutes)
            fire = schedule.next_fire(after)
            assert after.timestamp() < fire.timestamp() <= after.timestamp() + 3600

    @pytest.mark.parametrize(
        "expression",
        ["", "every:0m", "every:5x", "* * *", "0 0 1 * *", "0 0 * 1 *", "61 * * * *", "0 25 * * *"],
    )
    def test_rejects_unsupported(self, expression):
        with pytest.raises(ConfigurationError):
            parse_schedule(expression)

    def test_step_must_divide_the_hour(self):
        with pytest.raises(ConfigurationError):
            parse_schedule("*/7 * * * *")
        schedule = parse_schedule("*/20 * * * *")
        after = datetime(2025, 6, 1, 10, 45, tzinfo=UTC)
        assert schedule.next_fire(after) == datetime(2025, 6, 1, 11, 0, tzinfo=UTC)

    def test_rejects_unknown_timezone(self):
        with pytest.raises(ConfigurationError):
            parse_schedule("every:5m", "Not/AZone")


class TestDefaultLoops:
    """Tests for the built-in loop set."""

    def test_five_loops_bound_to_default_agents(self):
        specs = default_loop_specs()
        assert len(specs) == 5
        assert {s.agent_id for s in specs} == set(DEFAULT_AGENT_IDS)

    def test_dependencies(self):
        specs = {s.id: s for s in default_loop_specs()}
        assert specs["strategy_loop"].dependencies == {"analytics_loop"}
        assert specs["content_loop"].dependencies == {"strategy_loop"}
        assert not specs["orchestration_loop"].adaptive
