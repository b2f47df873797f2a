"""Resilient fetch aggregator -- concurrent batches with isolated failures.

A batch fires all of its fetch tasks at once and waits for every one of
them to settle. Successful results replace their slot in the shared
DashboardState in fixed task order; a failed task is logged and leaves its
slot untouched. Nothing raised by a task ever reaches the caller.

Every batch takes a monotonically increasing sequence number when it is
triggered. DashboardState refuses results older than the newest batch it
has applied for a slot, which closes the window where a slow response from
an earlier tick could overwrite a newer one.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from functools import partial
from typing import Any

from tradewatch.backend.gateway import BackendGateway
from tradewatch.exceptions import FetchError
from tradewatch.logging import batch_context, get_logger
from tradewatch.models import (
    BalanceSnapshot,
    ChartKind,
    MetricsSnapshot,
    Timeframe,
    decode,
    decode_chart,
    decode_positions,
    decode_trades,
)
from tradewatch.sync.state import (
    BALANCES,
    METRICS,
    POSITIONS,
    TRADES,
    DashboardState,
    chart_slot,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class FetchTask:
    """One independent GET whose decoded result belongs to a single slot."""

    slot: str
    path: str
    decode: Callable[[Any], Any]
    query: dict[str, str] | None = None
    chart: ChartKind | None = None
    timeframe: Timeframe | None = None


@dataclass
class BatchReport:
    """Outcome of one settled batch."""

    seq: int
    applied: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)  # slot -> error type
    discarded: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


class FetchAggregator:
    """Runs fetch batches against the backend and merges results into state.

    Args:
        gateway: Backend gateway used for every GET.
        state: The view state this aggregator is the single writer of.
        trades_window: Number of most recent trades kept per fetch.
    """

    def __init__(
        self,
        gateway: BackendGateway,
        state: DashboardState,
        trades_window: int = 20,
    ) -> None:
        self._gateway = gateway
        self._state = state
        self._trades_window = trades_window
        self._seq = 0

    @property
    def state(self) -> DashboardState:
        return self._state

    @property
    def last_seq(self) -> int:
        return self._seq

    # ──────────────────────────────────────────────
    # Task construction
    # ──────────────────────────────────────────────

    def entity_tasks(self) -> list[FetchTask]:
        return [
            FetchTask(METRICS, "/api/metrics", partial(decode, MetricsSnapshot)),
            FetchTask(BALANCES, "/api/balances", partial(decode, BalanceSnapshot)),
            FetchTask(POSITIONS, "/api/positions", decode_positions),
            FetchTask(
                TRADES,
                "/api/trades",
                partial(decode_trades, window=self._trades_window),
            ),
        ]

    def chart_task(self, kind: ChartKind) -> FetchTask:
        """Task for one chart, bound to the timeframe selected right now."""
        timeframe = self._state.timeframe(kind)
        return FetchTask(
            slot=chart_slot(kind),
            path=kind.path,
            decode=partial(decode_chart, kind),
            query={"timeframe": timeframe.value},
            chart=kind,
            timeframe=timeframe,
        )

    # ──────────────────────────────────────────────
    # Batches
    # ──────────────────────────────────────────────

    async def _fetch(self, task: FetchTask) -> Any:
        raw = await self._gateway.get_json(task.path, task.query)
        return task.decode(raw)

    async def run_batch(self, tasks: Sequence[FetchTask]) -> BatchReport:
        """Run tasks concurrently, wait for all, apply each success atomically.

        Returns:
            BatchReport listing applied, failed and discarded slots.
        """
        self._seq += 1
        report = BatchReport(seq=self._seq)

        with batch_context(report.seq):
            results = await asyncio.gather(
                *(self._fetch(task) for task in tasks), return_exceptions=True
            )
            self._apply_results(tasks, results, report)
        return report

    def _apply_results(
        self, tasks: Sequence[FetchTask], results: list[Any], report: BatchReport
    ) -> None:
        for task, result in zip(tasks, results):
            if isinstance(result, BaseException):
                self._state.record_failure(task.slot, result)
                report.failed[task.slot] = type(result).__name__
                if isinstance(result, FetchError):
                    logger.warning(
                        "fetch_task_failed",
                        slot=task.slot,
                        path=task.path,
                        error_type=type(result).__name__,
                        error=str(result),
                    )
                else:
                    logger.warning(
                        "fetch_task_error",
                        slot=task.slot,
                        path=task.path,
                        exc_info=result,
                    )
                continue

            if task.chart is not None:
                assert task.timeframe is not None
                applied = self._state.apply_chart(task.chart, result, task.timeframe, report.seq)
            else:
                applied = self._state.apply(task.slot, result, report.seq)

            if applied:
                report.applied.append(task.slot)
            else:
                report.discarded.append(task.slot)

        logger.debug(
            "fetch_batch_settled",
            applied=report.applied,
            failed=report.failed,
            discarded=report.discarded,
        )

    async def refresh_entities(self) -> BatchReport:
        """Fetch metrics, balances, positions and trades.

        The overall last-update marker advances once the batch settles,
        whether or not individual slots failed.
        """
        report = await self.run_batch(self.entity_tasks())
        self._state.mark_batch_settled()
        return report

    async def refresh_charts(self) -> BatchReport:
        """Fetch all four charts, each for its own selected timeframe."""
        return await self.run_batch([self.chart_task(kind) for kind in ChartKind])

    async def refresh_chart(self, kind: ChartKind) -> BatchReport:
        """Fetch a single chart for its selected timeframe."""
        return await self.run_batch([self.chart_task(kind)])

    async def refresh_all(self) -> tuple[BatchReport, BatchReport]:
        """One full cycle: entity batch and chart batch side by side."""
        entities, charts = await asyncio.gather(
            self.refresh_entities(), self.refresh_charts()
        )
        return entities, charts
