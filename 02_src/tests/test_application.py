"""Tests for Application."""

import pytest

from autonomy import Application
from autonomy.models import HealthLevel, LoopStatus
from autonomy.scheduling import DEFAULT_AGENT_IDS


@pytest.fixture(autouse=True)
def no_api_key(monkeypatch):
    """Run without a content generator."""
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    monkeypatch.delenv("AUTONOMY_AUTOSTART", raising=False)


class TestApplicationStart:
    """Tests for Application.start()."""

    @pytest.mark.asyncio
    async def test_start_initializes_components(self):
        """Test that start initializes all components."""
        app = Application(db_path=":memory:")
        await app.start()
        try:
            assert app.storage is not None
            assert app.message_bus is not None
            assert app.coordinator is not None
            assert app.knowledge is not None
            assert app.oversight is not None
            assert sorted(app.agents) == sorted(DEFAULT_AGENT_IDS)
        finally:
            await app.stop()

    @pytest.mark.asyncio
    async def test_start_wires_dependencies(self):
        """Test that components share the same bus and storage."""
        app = Application(db_path=":memory:")
        await app.start()
        try:
            assert app._tracker._message_bus is app.message_bus
            assert app._tracker._storage is app.storage
            assert app._generator is None
            assert app.coordinator._bus is app.message_bus
        finally:
            await app.stop()

    @pytest.mark.asyncio
    async def test_start_seeds_default_loops(self):
        """Test that the five default loops are registered and persisted."""
        app = Application(db_path=":memory:")
        await app.start()
        try:
            states = app.get_loop_status()
            assert set(states) == {
                "strategy_loop",
                "content_loop",
                "engagement_loop",
                "analytics_loop",
                "orchestration_loop",
            }
            assert all(s.status is LoopStatus.IDLE for s in states.values())
            assert len(await app.storage.get_loop_specs()) == 5
            assert not app.scheduler.is_running
        finally:
            await app.stop()

    @pytest.mark.asyncio
    async def test_start_scheduler_flag(self):
        app = Application(db_path=":memory:", start_scheduler=True)
        assert app.autostart
        await app.start()
        try:
            assert app.scheduler.is_running
        finally:
            await app.stop()

    @pytest.mark.asyncio
    async def test_autostart_from_env(self, monkeypatch):
        monkeypatch.setenv("AUTONOMY_AUTOSTART", "true")
        app = Application(db_path=":memory:")
        await app.start()
        try:
            assert app.scheduler.is_running
        finally:
            await app.stop()

    @pytest.mark.asyncio
    async def test_loop_specs_use_configured_timezone(self):
        app = Application(db_path=":memory:", timezone="Europe/Berlin")
        assert app.timezone == "Europe/Berlin"
        await app.start()
        try:
            specs = await app.storage.get_loop_specs()
            assert {s.schedule.timezone for s in specs} == {"Europe/Berlin"}
        finally:
            await app.stop()


class TestApplicationProperties:
    """Tests for accessing components before start."""

    @pytest.mark.parametrize(
        "name",
        ["storage", "message_bus", "scheduler", "coordinator", "oversight", "knowledge", "agents"],
    )
    def test_property_before_start_raises(self, name):
        app = Application(db_path=":memory:")
        with pytest.raises(RuntimeError, match="Application not started"):
            getattr(app, name)

    def test_settings_available_before_start(self):
        assert Application(db_path=":memory:").settings is not None


class TestApplicationHealth:
    """Tests for health and loop status accessors."""

    @pytest.mark.asyncio
    async def test_get_system_health(self):
        app = Application(db_path=":memory:")
        await app.start()
        try:
            health = await app.get_system_health()
            assert health.overall in tuple(HealthLevel)
            assert set(health.loops) == set(app.get_loop_status())
        finally:
            await app.stop()

    @pytest.mark.asyncio
    async def test_unknown_loop_status_raises(self):
        app = Application(db_path=":memory:")
        await app.start()
        try:
            with pytest.raises(KeyError):
                app.get_loop_status("missing")
        finally:
            await app.stop()


class TestApplicationReset:
    """Tests for Application.reset()."""

    @pytest.mark.asyncio
    async def test_reset_clears_state_and_keeps_loops(self):
        app = Application(db_path=":memory:")
        await app.start()
        try:
            await app.oversight.request_review("alice", "content", {"post": 1})
            old_scheduler = app.scheduler

            await app.reset()

            assert await app.oversight.get_queue() == []
            assert app.scheduler is not old_scheduler
            assert len(app.get_loop_status()) == 5
            assert len(await app.storage.get_loop_specs()) == 5
        finally:
            await app.stop()

    @pytest.mark.asyncio
    async def test_reset_restarts_running_scheduler(self):
        app = Application(db_path=":memory:", start_scheduler=True)
        await app.start()
        try:
            await app.reset()
            assert app.scheduler.is_running
        finally:
            await app.stop()


class TestApplicationStop:
    """Tests for Application.stop()."""

    @pytest.mark.asyncio
    async def test_stop_releases_components(self):
        app = Application(db_path=":memory:")
        await app.start()
        await app.stop()

        with pytest.raises(RuntimeError):
            app.storage
        with pytest.raises(RuntimeError):
            app.agents
