"""Application bootstrap and lifecycle management."""

import os
from datetime import timedelta
from typing import Protocol

from .agents import AgentRuntime, build_default_agents
from .bus import MessageBus
from .collaborators import KnowledgeStore, OversightChannel, ResourceGauges
from .config import Settings, resolve_db_path
from .coordinator import Coordinator
from .llm import ContentGenerator, IContentGenerator
from .logging_config import get_logger
from .models import HealthLevel, LoopState, SystemHealth
from .scheduling import LoopScheduler, default_loop_specs
from .storage import IStorage, Storage
from .tracker import ITracker, Tracker

logger = get_logger(__name__)


class IApplication(Protocol):
    """Bootstrap and lifecycle."""

    async def start(self) -> None:
        """Initialize components in dependency order."""
        ...

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        ...

    async def reset(self) -> None:
        """Reset data between test runs."""
        ...


class Application:
    """Main application bootstrap."""

    def __init__(
        self,
        db_path: str | None = None,
        settings: Settings | None = None,
        start_scheduler: bool | None = None,
        timezone: str | None = None,
    ):
        env_db_path = os.getenv("DATABASE_URL") if db_path is None else db_path
        self._db_path = resolve_db_path(env_db_path)
        self._settings = settings or Settings.from_env()
        if start_scheduler is None:
            start_scheduler = os.getenv("AUTONOMY_AUTOSTART", "false").lower() in ("1", "true", "yes")
        self._start_scheduler = start_scheduler
        self._timezone = timezone or os.getenv("AUTONOMY_TIMEZONE", "UTC")

        # Components (will be initialized in start())
        self._storage: IStorage | None = None
        self._message_bus: MessageBus | None = None
        self._tracker: ITracker | None = None
        self._gauges: ResourceGauges | None = None
        self._generator: IContentGenerator | None = None
        self._knowledge: KnowledgeStore | None = None
        self._oversight: OversightChannel | None = None
        self._agents: dict[str, AgentRuntime] = {}
        self._coordinator: Coordinator | None = None
        self._scheduler: LoopScheduler | None = None

    async def start(self) -> None:
        """Initialize components in dependency order."""
        logger.info("Starting application")

        # 1. Storage (no dependencies)
        self._storage = Storage(self._db_path)
        await self._storage.init()
        logger.info("Storage initialized")

        # 2. MessageBus (depends on Storage for persistence)
        self._message_bus = MessageBus(
            self._storage,
            history_limit=self._settings.history_limit,
            request_timeout=self._settings.request_timeout_s,
        )
        logger.info("MessageBus initialized")

        # 3. Tracker (depends on MessageBus + Storage)
        self._tracker = Tracker(self._message_bus, self._storage)
        await self._tracker.start()

        # 4. Content generator (optional, needs an API key)
        try:
            self._generator = ContentGenerator(
                model=self._settings.llm_model,
                hourly_quota=self._settings.generation_hourly_quota,
            )
            logger.info("Content generator initialized")
        except ValueError as e:
            self._generator = None
            logger.warning("Content generator disabled: %s", e)

        # 5. Collaborators
        quota = self._generator.quota_usage if self._generator is not None else None
        self._gauges = ResourceGauges(external_quota=quota)
        self._knowledge = KnowledgeStore(self._storage)
        self._oversight = OversightChannel(self._storage)

        # 6. Agents (depend on everything above)
        agents = build_default_agents(
            self._storage,
            gauges=self._gauges,
            knowledge=self._knowledge,
            oversight=self._oversight,
            generator=self._generator,
            tracker=self._tracker,
            short_term_ttl=timedelta(seconds=self._settings.short_term_ttl_s),
            episodic_capacity=self._settings.episodic_capacity,
        )
        for agent in agents:
            agent.attach(self._message_bus)
            await agent.start()
            self._agents[agent.agent_id] = agent
        logger.info("Agents started: %s", ", ".join(self._agents))

        # 7. Coordinator (depends on MessageBus + agents)
        self._coordinator = Coordinator(
            self._message_bus,
            self._agents,
            generator=self._generator,
            tracker=self._tracker,
            settings=self._settings,
            verifier=self._verify_recovery,
        )

        # 8. Scheduler (depends on everything)
        await self._build_scheduler()
        if self._start_scheduler:
            await self._scheduler.start()
        logger.info("All components initialized successfully")

    async def _build_scheduler(self) -> None:
        self._scheduler = LoopScheduler(
            self._storage,
            self._message_bus,
            self._agents,
            self._gauges,
            tracker=self._tracker,
            settings=self._settings,
            emergency_handler=self._coordinator.handle_emergency,
        )

        specs = await self._storage.get_loop_specs()
        if not specs:
            specs = default_loop_specs(self._timezone)
            for spec in specs:
                await self._storage.save_loop_spec(spec)
            logger.info("Seeded %s default loops", len(specs))

        for spec in specs:
            self._scheduler.register(spec)

    async def _verify_recovery(self) -> bool:
        health = await self.scheduler.get_system_health()
        return health.overall is not HealthLevel.CRITICAL

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        if self._scheduler:
            await self._scheduler.stop()
        for agent in reversed(list(self._agents.values())):
            await agent.stop()
        self._agents = {}
        if self._tracker:
            await self._tracker.stop()
        if self._message_bus:
            await self._message_bus.close()
        if self._storage:
            await self._storage.close()
            logger.info("Storage closed")
        self._scheduler = None
        self._coordinator = None
        self._message_bus = None
        self._tracker = None
        self._storage = None

    async def reset(self) -> None:
        """Reset data between test runs."""
        # 1. Pause active processes
        was_running = bool(self._scheduler and self._scheduler.is_running)
        if self._scheduler:
            await self._scheduler.stop()

        # 2. Clear storage (loop specs are kept)
        if self._storage:
            await self._storage.clear()
            logger.info("Storage cleared")

        # 3. Fresh loop states
        if self._storage:
            await self._build_scheduler()
            if was_running:
                await self._scheduler.start()
            logger.info("Reset complete")

    async def get_system_health(self) -> SystemHealth:
        return await self.scheduler.get_system_health()

    def get_loop_status(self, loop_id: str | None = None) -> LoopState | dict[str, LoopState]:
        return self.scheduler.get_loop_status(loop_id)

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def timezone(self) -> str:
        """Timezone the default loop schedules are seeded in."""
        return self._timezone

    @property
    def autostart(self) -> bool:
        return self._start_scheduler

    @property
    def storage(self) -> IStorage:
        """Get storage instance."""
        if not self._storage:
            raise RuntimeError("Application not started")
        return self._storage

    @property
    def message_bus(self) -> MessageBus:
        """Get message bus instance."""
        if not self._message_bus:
            raise RuntimeError("Application not started")
        return self._message_bus

    @property
    def scheduler(self) -> LoopScheduler:
        """Get loop scheduler instance."""
        if not self._scheduler:
            raise RuntimeError("Application not started")
        return self._scheduler

    @property
    def coordinator(self) -> Coordinator:
        """Get coordinator instance."""
        if not self._coordinator:
            raise RuntimeError("Application not started")
        return self._coordinator

    @property
    def oversight(self) -> OversightChannel:
        """Get oversight channel instance."""
        if not self._oversight:
            raise RuntimeError("Application not started")
        return self._oversight

    @property
    def knowledge(self) -> KnowledgeStore:
        """Get shared knowledge store."""
        if not self._knowledge:
            raise RuntimeError("Application not started")
        return self._knowledge

    @property
    def agents(self) -> dict[str, AgentRuntime]:
        """Get agent runtimes by id."""
        if not self._agents:
            raise RuntimeError("Application not started")
        return self._agents
