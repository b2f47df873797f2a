"""Tests for the RefreshScheduler lifecycle and trigger rules.

Tests verify:
- start() fires a full cycle immediately, then one per interval
- Timeframe changes refetch only the affected chart, without resetting the timer
- stop() is unconditional: no further cycles, including from late triggers
- In-flight responses after teardown never reach a newly created instance
- Failed cycles never stop the timer
"""

import asyncio
from datetime import timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from tradewatch.exceptions import NetworkError
from tradewatch.models import ChartKind, Timeframe
from tradewatch.sync.aggregator import FetchAggregator
from tradewatch.sync.scheduler import RefreshScheduler, SchedulerState
from tradewatch.sync.state import DashboardState


@pytest.fixture
def mock_aggregator() -> MagicMock:
    """Aggregator double with real state and awaitable refresh methods."""
    aggregator = MagicMock(spec=FetchAggregator)
    aggregator.state = DashboardState(tz=timezone.utc)
    aggregator.refresh_all = AsyncMock(return_value=None)
    aggregator.refresh_chart = AsyncMock(return_value=None)
    aggregator.refresh_charts = AsyncMock(return_value=None)
    return aggregator


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_initial_state_is_idle(self, mock_aggregator: MagicMock) -> None:
        scheduler = RefreshScheduler(mock_aggregator, interval=60)
        assert scheduler.status is SchedulerState.IDLE
        mock_aggregator.refresh_all.assert_not_called()

    @pytest.mark.asyncio
    async def test_start_fires_immediately(self, mock_aggregator: MagicMock) -> None:
        scheduler = RefreshScheduler(mock_aggregator, interval=60)
        await scheduler.start()
        await asyncio.sleep(0.01)

        assert scheduler.status is SchedulerState.POLLING
        mock_aggregator.refresh_all.assert_awaited_once()
        await scheduler.stop()

    @pytest.mark.asyncio
    async def test_fires_every_interval(self, mock_aggregator: MagicMock) -> None:
        scheduler = RefreshScheduler(mock_aggregator, interval=0.05)
        await scheduler.start()
        await asyncio.sleep(0.175)
        await scheduler.stop()

        assert 3 <= mock_aggregator.refresh_all.await_count <= 5
        assert scheduler.ticks == mock_aggregator.refresh_all.await_count

    @pytest.mark.asyncio
    async def test_start_twice_keeps_one_timer(self, mock_aggregator: MagicMock) -> None:
        scheduler = RefreshScheduler(mock_aggregator, interval=60)
        await scheduler.start()
        await scheduler.start()
        await asyncio.sleep(0.01)
        await scheduler.stop()
        assert mock_aggregator.refresh_all.await_count == 1

    @pytest.mark.asyncio
    async def test_stopped_is_terminal(self, mock_aggregator: MagicMock) -> None:
        scheduler = RefreshScheduler(mock_aggregator, interval=60)
        await scheduler.start()
        await scheduler.stop()
        await scheduler.start()

        assert scheduler.status is SchedulerState.STOPPED
        assert scheduler.refresh_now() is False

    @pytest.mark.asyncio
    async def test_stop_before_start(self, mock_aggregator: MagicMock) -> None:
        scheduler = RefreshScheduler(mock_aggregator, interval=60)
        await scheduler.stop()
        assert scheduler.status is SchedulerState.STOPPED
        mock_aggregator.refresh_all.assert_not_called()

    @pytest.mark.asyncio
    async def test_failing_cycles_keep_polling(self, mock_aggregator: MagicMock) -> None:
        mock_aggregator.refresh_all.side_effect = RuntimeError("backend exploded")
        scheduler = RefreshScheduler(mock_aggregator, interval=0.03)
        await scheduler.start()
        await asyncio.sleep(0.1)
        await scheduler.stop()

        assert mock_aggregator.refresh_all.await_count >= 3


class TestTriggers:
    @pytest.mark.asyncio
    async def test_timeframe_change_refetches_only_that_chart(self, mock_aggregator: MagicMock) -> None:
        scheduler = RefreshScheduler(mock_aggregator, interval=60)
        await scheduler.start()
        await asyncio.sleep(0.01)

        assert scheduler.set_timeframe(ChartKind.VOLUME, Timeframe.D7) is True
        await asyncio.sleep(0.01)

        mock_aggregator.refresh_chart.assert_awaited_once_with(ChartKind.VOLUME)
        mock_aggregator.refresh_charts.assert_not_called()
        assert mock_aggregator.refresh_all.await_count == 1
        assert mock_aggregator.state.timeframe(ChartKind.VOLUME) is Timeframe.D7
        assert mock_aggregator.state.timeframe(ChartKind.TRADES) is Timeframe.H24
        await scheduler.stop()

    @pytest.mark.asyncio
    async def test_same_timeframe_is_not_a_change(self, mock_aggregator: MagicMock) -> None:
        scheduler = RefreshScheduler(mock_aggregator, interval=60)
        await scheduler.start()
        assert scheduler.set_timeframe(ChartKind.PNL, Timeframe.H24) is False
        await asyncio.sleep(0.01)
        mock_aggregator.refresh_chart.assert_not_called()
        await scheduler.stop()

    @pytest.mark.asyncio
    async def test_timeframe_change_keeps_timer_phase(self, mock_aggregator: MagicMock) -> None:
        scheduler = RefreshScheduler(mock_aggregator, interval=0.1)
        await scheduler.start()
        await asyncio.sleep(0.07)
        scheduler.set_timeframe(ChartKind.TRADES, Timeframe.D30)
        await asyncio.sleep(0.05)  # 0.12s after start: second tick already due

        assert mock_aggregator.refresh_all.await_count == 2
        await scheduler.stop()

    @pytest.mark.asyncio
    async def test_timeframe_stored_but_not_fetched_when_idle(self, mock_aggregator: MagicMock) -> None:
        scheduler = RefreshScheduler(mock_aggregator, interval=60)
        assert scheduler.set_timeframe(ChartKind.PORTFOLIO, Timeframe.D7) is False
        assert mock_aggregator.state.timeframe(ChartKind.PORTFOLIO) is Timeframe.D7
        mock_aggregator.refresh_chart.assert_not_called()

    @pytest.mark.asyncio
    async def test_refresh_now(self, mock_aggregator: MagicMock) -> None:
        scheduler = RefreshScheduler(mock_aggregator, interval=60)
        await scheduler.start()
        await asyncio.sleep(0.01)
        assert scheduler.refresh_now() is True
        await asyncio.sleep(0.01)
        assert mock_aggregator.refresh_all.await_count == 2
        await scheduler.stop()


class TestRealPipeline:
    @pytest.mark.asyncio
    async def test_volume_timeframe_switch_end_to_end(self, mock_gateway: AsyncMock) -> None:
        """Switching volume 24h -> 7d refires only the volume request."""
        state = DashboardState(tz=timezone.utc)
        state.set_timeframe(ChartKind.PNL, Timeframe.D30)
        scheduler = RefreshScheduler(FetchAggregator(mock_gateway, state), interval=60)

        await scheduler.start()
        await asyncio.sleep(0.02)
        assert mock_gateway.get_json.await_count == 8
        mock_gateway.get_json.reset_mock()

        scheduler.set_timeframe(ChartKind.VOLUME, Timeframe.D7)
        await asyncio.sleep(0.02)

        mock_gateway.get_json.assert_awaited_once_with("/api/charts/volume", {"timeframe": "7d"})
        assert state.charts[ChartKind.VOLUME].fetched_timeframe is Timeframe.D7
        assert state.charts[ChartKind.PNL].fetched_timeframe is Timeframe.D30
        await scheduler.stop()

    @pytest.mark.asyncio
    async def test_failed_tick_then_recovery(self, fake_backend, mock_gateway: AsyncMock) -> None:
        fake_backend.failures["/api/metrics"] = NetworkError("down")
        state = DashboardState(tz=timezone.utc)
        scheduler = RefreshScheduler(FetchAggregator(mock_gateway, state), interval=0.03)

        await scheduler.start()
        await asyncio.sleep(0.01)
        assert state.metrics is None
        assert state.balances is not None

        del fake_backend.failures["/api/metrics"]
        await asyncio.sleep(0.05)
        await scheduler.stop()
        assert state.metrics is not None


class TestTeardown:
    @pytest.mark.asyncio
    async def test_no_ticks_after_stop(self, mock_aggregator: MagicMock) -> None:
        scheduler = RefreshScheduler(mock_aggregator, interval=0.02)
        await scheduler.start()
        await asyncio.sleep(0.05)
        await scheduler.stop()
        count = mock_aggregator.refresh_all.await_count

        await asyncio.sleep(0.08)
        assert mock_aggregator.refresh_all.await_count == count
        assert scheduler.set_timeframe(ChartKind.VOLUME, Timeframe.D30) is False
        mock_aggregator.refresh_chart.assert_not_called()

    @pytest.mark.asyncio
    async def test_mid_cycle_teardown_is_not_observable_by_new_instance(self, fake_backend) -> None:
        """Teardown with requests in flight: late responses stay in the old instance."""
        release = asyncio.Event()
        slow_paths = {"/api/metrics", "/api/balances"}

        async def partly_slow(path, query=None):
            if path in slow_paths:
                await release.wait()
            return await fake_backend.get_json(path, query)

        gateway = AsyncMock()
        gateway.get_json = AsyncMock(side_effect=partly_slow)

        old_state = DashboardState(tz=timezone.utc)
        old = RefreshScheduler(FetchAggregator(gateway, old_state), interval=0.02)
        await old.start()
        await asyncio.sleep(0.005)
        await old.stop()
        assert old.inflight >= 1
        calls_at_stop = gateway.get_json.await_count

        new_state = DashboardState(tz=timezone.utc)
        release.set()
        await old.drain(timeout=1.0)
        await asyncio.sleep(0.05)

        # No further ticks from the stopped scheduler
        assert gateway.get_json.await_count == calls_at_stop
        # Late responses landed in the orphaned state only
        assert old_state.metrics is not None
        assert new_state.metrics is None
        assert new_state.balances is None
        assert old.inflight == 0
