"""
Dependency Injection Container - Composition Root Pattern
========================================================
Assembles the store and services from AppSettings.

RULES:
- NO global access (the container lives on app.state)
- NO business logic (only object assembly and lifecycle ordering)
- Constructor injection only
- Startup: connect store, then start the sweeper
- Shutdown: stop the sweeper, then close the store
"""

from typing import Optional

from ..core.logger import StructuredLogger, get_logger
from ..core.time_manager import Clock, now_ms
from ..database.memory_store import InMemoryChatStore
from ..database.postgres_store import PostgresChatStore, PostgresConfig
from ..domain.interfaces.storage import IChatStore
from ..domain.services.message_gateway import MessageGateway
from ..domain.services.participant_lifecycle import ParticipantLifecycleManager
from ..domain.services.sweeper import ParticipantSweeper
from .config.settings import AppSettings


class Container:
    """
    Pure Dependency Injection Container.

    Created once per application with the settings; components are built
    eagerly so request handlers only ever read attributes.
    """

    def __init__(
        self,
        settings: AppSettings,
        logger: Optional[StructuredLogger] = None,
        store: Optional[IChatStore] = None,
        clock: Clock = now_ms,
    ):
        """
        Args:
            settings: Application settings (single source of truth)
            logger: Structured logger instance
            store: Pre-built store (tests); otherwise chosen from settings.database
            clock: Epoch-ms clock shared by the services
        """
        self.settings = settings
        self.logger = logger or get_logger("chatroom.container", settings.logging)
        self._started = False

        self.store = store or self.create_store()
        self.lifecycle = ParticipantLifecycleManager(
            self.store,
            inactivity_threshold_ms=settings.presence.inactivity_threshold_ms,
            sweep_concurrency=settings.presence.sweep_concurrency,
            max_name_length=settings.validation.max_name_length,
            clock=clock,
            logger=get_logger("chatroom.lifecycle", settings.logging),
        )
        self.gateway = MessageGateway(
            self.store,
            self.lifecycle,
            max_text_length=settings.validation.max_text_length,
            max_name_length=settings.validation.max_name_length,
            clock=clock,
            logger=get_logger("chatroom.gateway", settings.logging),
        )
        self.sweeper = ParticipantSweeper(
            self.lifecycle,
            interval_ms=settings.presence.sweep_interval_ms,
            stop_timeout_seconds=settings.presence.stop_timeout_seconds,
            logger=get_logger("chatroom.sweeper", settings.logging),
        )

    def create_store(self) -> IChatStore:
        """Pick the store backend from the database settings."""
        db = self.settings.database
        if db.is_memory:
            return InMemoryChatStore()
        if not db.url.strip():
            raise RuntimeError(
                "Configuration validation failed: DATABASE_URL is required "
                "(use memory:// for the in-memory store)"
            )
        return PostgresChatStore(PostgresConfig(
            dsn=db.url,
            database=db.name,
            min_pool_size=db.min_pool_size,
            max_pool_size=db.max_pool_size,
            command_timeout=db.command_timeout,
        ))

    async def start(self) -> None:
        """Connect before serving, then begin sweeping."""
        if self._started:
            return
        await self.store.connect()
        self.sweeper.start()
        self._started = True
        self.logger.info("container.started", {
            "store": self.store.get_storage_type(),
            "inactivity_threshold_ms": self.settings.presence.inactivity_threshold_ms,
            "sweep_interval_ms": self.settings.presence.sweep_interval_ms,
        })

    async def stop(self) -> None:
        """Stop sweeping before the store goes away."""
        if not self._started:
            return
        self._started = False
        await self.sweeper.stop()
        await self.store.disconnect()
        self.logger.info("container.stopped", {})
