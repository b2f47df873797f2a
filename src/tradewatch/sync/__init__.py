"""Data synchronization -- view state, fetch aggregator and refresh scheduler."""

from tradewatch.sync.aggregator import BatchReport, FetchAggregator, FetchTask
from tradewatch.sync.scheduler import RefreshScheduler, SchedulerState
from tradewatch.sync.state import ENTITY_SLOTS, DashboardState, SlotMeta, chart_slot

__all__ = [
    "ENTITY_SLOTS",
    "BatchReport",
    "DashboardState",
    "FetchAggregator",
    "FetchTask",
    "RefreshScheduler",
    "SchedulerState",
    "SlotMeta",
    "chart_slot",
]
