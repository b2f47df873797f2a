"""Shared test fixtures for the tradewatch dashboard."""

import copy
from datetime import timezone
from typing import Any
from unittest.mock import AsyncMock

import pytest

from tradewatch.config import AppSettings, BackendSettings, SyncSettings
from tradewatch.exceptions import NetworkError
from tradewatch.sync.aggregator import FetchAggregator
from tradewatch.sync.state import DashboardState

# ---------------------------------------------------------------------------
# Sample backend payloads (mimic the bot API's JSON bodies)
# ---------------------------------------------------------------------------

METRICS = {
    "openPositions": 2,
    "totalPnL": 0.0125,
    "winRate": 62.5,
    "totalVolume": 4.5,
    "last24hTrades": 7,
    "peakPrice": 0.25,
    "lastPrice": 0.2,
    "pctChangePeak": -20.0,
    "minutesSincePeak": 45.5,
    "totalExposure": 1.5,
    "exposurePercentage": 30.0,
    "remainingCapacity": 3.5,
    "activeTrailingDip": None,
    "baseTokenSymbol": "ETH",
    "quoteTokenSymbol": "WBNB",
}

BALANCES = {
    "baseToken": {"symbol": "ETH", "balance": 1.5, "balanceUSD": 4500.0, "priceUSD": 3000.0},
    "quoteToken": {"symbol": "WBNB", "balance": 2.0, "balanceUSD": 1200.0, "priceUSD": 600.0},
    "nativeToken": {"symbol": "BNB", "balance": 0.25, "balanceUSD": 150.0, "priceUSD": 600.0},
    "portfolio": {"totalUSD": 5850.0, "lastUpdated": "2024-05-01T10:00:00Z"},
}

POSITIONS = {
    "positions": [
        {
            "id": "pos-0001-abcdef",
            "buyPrice": 0.2,
            "currentPrice": 0.25,
            "amountIn": 1.0,
            "amountOut": 5.0,
            "currentValue": 1.25,
            "pnlPercent": 25.0,
            "pnlAbsolute": 0.25,
            "ageHours": 3.5,
            "trailingStopStatus": "armed",
            "dcaInfo": {"tranches": [{"price": 0.21, "amount": 0.5}, {"price": 0.19, "amount": 0.5}]},
        },
        {
            "id": "pos-0002-fedcba",
            "buyPrice": 0.3,
            "currentPrice": 0.25,
            "amountOut": 2.0,
        },
    ]
}


def make_trades(count: int) -> list[dict[str, Any]]:
    """Newest-first trade list as the backend returns it."""
    return [
        {
            "timestamp": f"2024-05-01T10:{i:02d}:00Z",
            "side": "SELL" if i % 2 else "BUY",
            "amount_in": 1.0,
            "amount_out": 2.0,
            "profit": 0.5 if i % 2 else None,
            "profit_pct": 2.5 if i % 2 else None,
            "reason": f"reason-{i}",
            "displayAmountIn": "1.0000",
            "displayAmountOut": "2.0000",
            "displayProfit": "0.5000" if i % 2 else "",
            "displayProfitPct": "2.50%" if i % 2 else "",
            "hasProfit": bool(i % 2),
        }
        for i in range(count)
    ]


LABELS = ["2024-05-01T10:00:00Z", "2024-05-01T11:00:00Z", "2024-05-01T12:00:00Z"]

CHARTS = {
    "volume": {
        "success": True,
        "labels": LABELS,
        "buyVolume": [1.0, 2.0, 0.5],
        "sellVolume": [0.5, 0.0, 1.5],
        "totalVolume": 5.5,
        "avgTradeSize": 0.75,
    },
    "trades": {
        "success": True,
        "labels": LABELS,
        "successfulTrades": [1, 2, 0],
        "failedTrades": [0, 1, 1],
        "totalTrades": 5,
        "winRate": 60.0,
    },
    "portfolio": {
        "success": True,
        "labels": LABELS,
        "totalValue": [5800.0, 5825.0, 5850.0],
        "baseTokenValue": [4450.0, 4475.0, 4500.0],
        "quoteTokenValue": [1200.0, 1200.0, 1200.0],
        "currentBalance": 5850.0,
        "change24h": 1.25,
    },
    "pnl": {
        "success": True,
        "labels": LABELS,
        "cumulativePnL": [0.0, 0.005, 0.0125],
        "realizedPnL": [0.0, 0.005, 0.01],
        "totalPnL": 0.0125,
        "unrealizedPnL": 0.0025,
    },
}


def backend_payloads(trade_count: int = 5) -> dict[str, Any]:
    """Map of request path to JSON body for every endpoint."""
    payloads: dict[str, Any] = {
        "/api/metrics": METRICS,
        "/api/balances": BALANCES,
        "/api/positions": POSITIONS,
        "/api/trades": make_trades(trade_count),
    }
    for kind, body in CHARTS.items():
        payloads[f"/api/charts/{kind}"] = body
    return copy.deepcopy(payloads)


class FakeBackend:
    """Routes gateway GETs to canned payloads; paths in ``failures`` raise."""

    def __init__(self, payloads: dict[str, Any] | None = None) -> None:
        self.payloads = payloads if payloads is not None else backend_payloads()
        self.failures: dict[str, Exception] = {}

    async def get_json(self, path: str, query: dict[str, str] | None = None) -> Any:
        if path in self.failures:
            raise self.failures[path]
        if path not in self.payloads:
            raise NetworkError(f"no route for {path}")
        return copy.deepcopy(self.payloads[path])


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_settings() -> AppSettings:
    """AppSettings with a fixed local backend and a fast sync interval."""
    return AppSettings(
        log_level="DEBUG",
        backend=BackendSettings(base_url="", host="localhost"),
        sync=SyncSettings(interval=0.05, trades_window=20),
    )


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def mock_gateway(fake_backend: FakeBackend) -> AsyncMock:
    """Mock BackendGateway whose get_json is served by fake_backend."""
    gateway = AsyncMock()
    gateway.get_json = AsyncMock(side_effect=fake_backend.get_json)
    return gateway


@pytest.fixture
def state() -> DashboardState:
    return DashboardState(tz=timezone.utc)


@pytest.fixture
def aggregator(mock_gateway: AsyncMock, state: DashboardState) -> FetchAggregator:
    return FetchAggregator(mock_gateway, state, trades_window=20)


@pytest.fixture
def chart_bodies() -> dict[str, dict[str, Any]]:
    """Raw chart JSON bodies keyed by chart kind value."""
    return copy.deepcopy(CHARTS)


@pytest.fixture
def trades_factory():
    return make_trades
