"""
Shared pytest fixtures for the chat room tests
==============================================

Time is driven by FakeClock instead of sleeping; the in-memory store stands
in for PostgreSQL.
"""

import pytest

from chatroom.core.logger import get_logger
from chatroom.database.memory_store import InMemoryChatStore
from chatroom.domain.services.message_gateway import MessageGateway
from chatroom.domain.services.participant_lifecycle import ParticipantLifecycleManager
from chatroom.infrastructure.config.settings import (
    AppSettings,
    DatabaseSettings,
    LoggingSettings,
    PresenceSettings,
)

# 2023-11-14 22:13:20 UTC
START_MS = 1_700_000_000_000


class FakeClock:
    """Epoch-ms clock that only moves when told to."""

    def __init__(self, start_ms: int = START_MS):
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def quiet_logging():
    return LoggingSettings(console_enabled=False, file_enabled=False)


@pytest.fixture
def test_logger(quiet_logging):
    return get_logger("chatroom.tests", quiet_logging)


@pytest.fixture
async def store():
    memory_store = InMemoryChatStore()
    await memory_store.connect()
    yield memory_store
    await memory_store.disconnect()


@pytest.fixture
def lifecycle(store, clock, test_logger):
    return ParticipantLifecycleManager(
        store,
        inactivity_threshold_ms=10_000,
        sweep_concurrency=4,
        clock=clock,
        logger=test_logger,
    )


@pytest.fixture
def gateway(store, lifecycle, clock, test_logger):
    return MessageGateway(store, lifecycle, clock=clock, logger=test_logger)


@pytest.fixture
def memory_settings(quiet_logging):
    """Settings for an app backed by the in-memory store; the sweeper stays idle during tests."""
    return AppSettings(
        database=DatabaseSettings(url="memory://"),
        presence=PresenceSettings(sweep_interval_ms=3_600_000),
        logging=quiet_logging,
    )
