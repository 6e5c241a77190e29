"""
Participant Sweeper Tests
=========================
Background timer around ParticipantLifecycleManager.sweep().
"""

import asyncio

import pytest
from unittest.mock import AsyncMock, MagicMock

from chatroom.core.exceptions import StoreUnavailable
from chatroom.domain.models.chat import SweepReport
from chatroom.domain.services.sweeper import ParticipantSweeper


@pytest.fixture
def fake_lifecycle():
    lifecycle = MagicMock()
    lifecycle.sweep = AsyncMock(return_value=SweepReport(checked=0))
    return lifecycle


class TestRunOnce:

    @pytest.mark.asyncio
    async def test_successful_sweep_recorded(self, fake_lifecycle, test_logger):
        report = SweepReport(checked=3, evicted=["Ana"])
        fake_lifecycle.sweep.return_value = report
        sweeper = ParticipantSweeper(fake_lifecycle, interval_ms=1000, logger=test_logger)

        result = await sweeper.run_once()

        assert result is report
        assert sweeper.last_report is report
        assert sweeper.runs == 1
        assert sweeper.failures == 0

    @pytest.mark.asyncio
    async def test_failing_sweep_is_contained(self, fake_lifecycle, test_logger):
        fake_lifecycle.sweep.side_effect = StoreUnavailable("sweep")
        sweeper = ParticipantSweeper(fake_lifecycle, interval_ms=1000, logger=test_logger)

        result = await sweeper.run_once()

        assert result is None
        assert sweeper.failures == 1
        assert sweeper.last_report is None

    @pytest.mark.asyncio
    async def test_evicts_through_real_lifecycle(self, lifecycle, store, clock, test_logger):
        await lifecycle.join("Ana")
        clock.advance(10_001)
        sweeper = ParticipantSweeper(lifecycle, interval_ms=1000, logger=test_logger)

        report = await sweeper.run_once()

        assert report.evicted == ["Ana"]
        assert await store.list_participants() == []


class TestLoop:

    @pytest.mark.asyncio
    async def test_runs_periodically_until_stopped(self, fake_lifecycle, test_logger):
        sweeper = ParticipantSweeper(fake_lifecycle, interval_ms=10, logger=test_logger)

        sweeper.start()
        assert sweeper.is_running
        await asyncio.sleep(0.1)
        await sweeper.stop()

        assert not sweeper.is_running
        assert fake_lifecycle.sweep.await_count >= 2
        runs_at_stop = sweeper.runs

        await asyncio.sleep(0.05)
        assert sweeper.runs == runs_at_stop

    @pytest.mark.asyncio
    async def test_first_sweep_waits_one_interval(self, fake_lifecycle, test_logger):
        sweeper = ParticipantSweeper(fake_lifecycle, interval_ms=60_000, logger=test_logger)

        sweeper.start()
        await asyncio.sleep(0.02)
        await sweeper.stop()

        fake_lifecycle.sweep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_keeps_running_after_failures(self, fake_lifecycle, test_logger):
        fake_lifecycle.sweep.side_effect = StoreUnavailable("sweep")
        sweeper = ParticipantSweeper(fake_lifecycle, interval_ms=10, logger=test_logger)

        sweeper.start()
        await asyncio.sleep(0.1)
        assert sweeper.is_running
        await sweeper.stop()

        assert sweeper.failures >= 2

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, fake_lifecycle, test_logger):
        sweeper = ParticipantSweeper(fake_lifecycle, interval_ms=60_000, logger=test_logger)

        sweeper.start()
        first_task = sweeper._task
        sweeper.start()

        assert sweeper._task is first_task
        await sweeper.stop()

    @pytest.mark.asyncio
    async def test_stop_without_start_is_noop(self, fake_lifecycle, test_logger):
        sweeper = ParticipantSweeper(fake_lifecycle, interval_ms=1000, logger=test_logger)

        await sweeper.stop()
        await sweeper.stop()

        assert not sweeper.is_running

    @pytest.mark.asyncio
    async def test_stop_cancels_a_hung_sweep(self, fake_lifecycle, test_logger):
        async def hang():
            await asyncio.sleep(3600)

        fake_lifecycle.sweep.side_effect = hang
        sweeper = ParticipantSweeper(
            fake_lifecycle, interval_ms=10, stop_timeout_seconds=0.05, logger=test_logger,
        )

        sweeper.start()
        await asyncio.sleep(0.03)
        await sweeper.stop()

        assert not sweeper.is_running

    def test_rejects_non_positive_interval(self, fake_lifecycle):
        with pytest.raises(ValueError):
            ParticipantSweeper(fake_lifecycle, interval_ms=0)
