"""In-memory view state fed by the fetch aggregator.

Each slot (metrics, balances, positions, trades, one per chart kind) is
replaced atomically by exactly one fetch task. A slot only accepts a result
from a batch newer than the last one it applied, so a slow response from an
older batch never overwrites fresher data.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from typing import Any

from tradewatch.charts import ProjectedChart, project
from tradewatch.formatting import page_title
from tradewatch.logging import get_logger
from tradewatch.models import (
    BalanceSnapshot,
    ChartKind,
    ChartPayload,
    MetricsSnapshot,
    Position,
    Timeframe,
    Trade,
)

logger = get_logger(__name__)

METRICS = "metrics"
BALANCES = "balances"
POSITIONS = "positions"
TRADES = "trades"
ENTITY_SLOTS = (METRICS, BALANCES, POSITIONS, TRADES)


def chart_slot(kind: ChartKind) -> str:
    return f"charts.{kind.value}"


@dataclass
class SlotMeta:
    """Bookkeeping for one slot: last applied batch, success time, last failure."""

    applied_seq: int = 0
    updated_at: datetime | None = None
    last_error: str | None = None


@dataclass
class ChartSlot:
    timeframe: Timeframe
    payload: ChartPayload | None = None
    fetched_timeframe: Timeframe | None = None


class DashboardState:
    """All state the dashboard renders, plus per-slot freshness metadata.

    ``last_update`` is the coarse marker refreshed once per settled entity
    batch, even when some slots failed. ``updated_at`` in each slot's
    metadata only advances when that slot is actually replaced.
    """

    def __init__(
        self,
        default_timeframe: Timeframe = Timeframe.H24,
        tz: tzinfo | None = None,
    ) -> None:
        self.metrics: MetricsSnapshot | None = None
        self.balances: BalanceSnapshot | None = None
        self.positions: list[Position] = []
        self.trades: list[Trade] = []
        self.charts: dict[ChartKind, ChartSlot] = {
            kind: ChartSlot(timeframe=default_timeframe) for kind in ChartKind
        }
        self.loading = True
        self.last_update = datetime.now(timezone.utc)
        self._tz = tz
        self._meta: dict[str, SlotMeta] = {
            name: SlotMeta() for name in (*ENTITY_SLOTS, *map(chart_slot, ChartKind))
        }

    # ──────────────────────────────────────────────
    # Timeframes
    # ──────────────────────────────────────────────

    def timeframe(self, kind: ChartKind) -> Timeframe:
        return self.charts[kind].timeframe

    def set_timeframe(self, kind: ChartKind, timeframe: Timeframe) -> bool:
        """Select a timeframe for one chart. Returns True if it changed."""
        slot = self.charts[kind]
        if slot.timeframe == timeframe:
            return False
        slot.timeframe = timeframe
        logger.info("chart_timeframe_changed", chart=kind.value, timeframe=timeframe.value)
        return True

    # ──────────────────────────────────────────────
    # Writes (aggregator only)
    # ──────────────────────────────────────────────

    def meta(self, slot: str) -> SlotMeta:
        return self._meta[slot]

    def _accept(self, slot: str, seq: int) -> bool:
        meta = self._meta[slot]
        if seq <= meta.applied_seq:
            logger.debug(
                "stale_result_discarded",
                slot=slot,
                seq=seq,
                applied_seq=meta.applied_seq,
            )
            return False
        meta.applied_seq = seq
        meta.updated_at = datetime.now(timezone.utc)
        meta.last_error = None
        return True

    def apply(self, slot: str, value: Any, seq: int) -> bool:
        """Replace an entity slot with a decoded value from batch ``seq``.

        Returns:
            True if the value was applied, False if a newer batch already won.
        """
        if slot not in ENTITY_SLOTS:
            raise KeyError(f"unknown entity slot {slot!r}")
        if not self._accept(slot, seq):
            return False
        setattr(self, slot, value)
        return True

    def apply_chart(
        self, kind: ChartKind, payload: ChartPayload | None, timeframe: Timeframe, seq: int
    ) -> bool:
        """Replace a chart slot with a payload fetched for ``timeframe``.

        Payloads fetched for a timeframe that is no longer selected are dropped.
        A None payload is a valid empty result and clears the slot.
        """
        slot = self.charts[kind]
        if timeframe != slot.timeframe:
            logger.debug(
                "chart_result_for_old_timeframe",
                chart=kind.value,
                fetched=timeframe.value,
                selected=slot.timeframe.value,
            )
            return False
        if not self._accept(chart_slot(kind), seq):
            return False
        slot.payload = payload
        slot.fetched_timeframe = timeframe
        return True

    def record_failure(self, slot: str, error: BaseException) -> None:
        self._meta[slot].last_error = type(error).__name__

    def mark_batch_settled(self) -> None:
        self.last_update = datetime.now(timezone.utc)
        self.loading = False

    # ──────────────────────────────────────────────
    # Reads
    # ──────────────────────────────────────────────

    def chart(self, kind: ChartKind) -> ProjectedChart:
        slot = self.charts[kind]
        return project(kind, slot.payload, tz=self._tz, timeframe=slot.fetched_timeframe)

    @property
    def title(self) -> str:
        return page_title(self.metrics, self.balances)

    def snapshot(self) -> dict[str, Any]:
        """JSON-ready view of the whole state (Decimals as strings)."""
        symbol = self.metrics.base_token_symbol if self.metrics is not None else "ETH"
        return {
            "loading": self.loading,
            "last_update": self.last_update.isoformat(),
            "title": self.title,
            "metrics": _dump(self.metrics),
            "balances": _dump(self.balances),
            "positions": [_dump(p) for p in self.positions],
            "trades": [_dump(t) for t in self.trades],
            "timeframes": {kind.value: slot.timeframe.value for kind, slot in self.charts.items()},
            "charts": {kind.value: self.chart(kind).to_dict(symbol) for kind in ChartKind},
            "slots": {
                name: {
                    "updated_at": meta.updated_at.isoformat() if meta.updated_at else None,
                    "last_error": meta.last_error,
                }
                for name, meta in self._meta.items()
            },
        }


def _dump(model: Any) -> Any:
    if model is None:
        return None
    return model.model_dump(mode="json", by_alias=True)
