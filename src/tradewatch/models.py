"""Backend payload models for the tradewatch dashboard.

Every payload is validated at the decode boundary: a body that does not
match its model raises DecodeError instead of leaking untyped data into
the view state.

All monetary values use Decimal. Chart series are plain floats since they
only feed the renderer.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from tradewatch.exceptions import DecodeError

ZERO = Decimal("0")


class Timeframe(str, Enum):
    """Historical window for a chart."""

    H24 = "24h"
    D7 = "7d"
    D30 = "30d"


class ChartKind(str, Enum):
    """The four independently refreshed chart feeds."""

    VOLUME = "volume"
    TRADES = "trades"
    PORTFOLIO = "portfolio"
    PNL = "pnl"

    @property
    def path(self) -> str:
        return f"/api/charts/{self.value}"


class _Payload(BaseModel):
    """Immutable payload; fields are read by their backend (camelCase) names.

    A null value for a field that has a default is read as that default, so
    one missing KPI does not reject the whole payload. Required fields still
    reject null.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _null_means_default(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        defaulted = _defaulted_keys(cls)
        return {k: v for k, v in data.items() if not (v is None and k in defaulted)}


def _defaulted_keys(model: type[BaseModel]) -> set[str]:
    """Names and aliases of fields whose default is something other than None."""
    keys: set[str] = set()
    for name, info in model.model_fields.items():
        if info.is_required() or info.default is None:
            continue
        keys.add(name)
        if info.alias:
            keys.add(info.alias)
    return keys


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------


class TrailingDip(_Payload):
    """Active trailing-dip buy tracker reported inside the metrics payload."""

    start_price: Decimal | None = Field(default=None, alias="startPrice")
    lowest_price: Decimal | None = Field(default=None, alias="lowestPrice")
    trigger_price: Decimal | None = Field(default=None, alias="triggerPrice")
    started_at: str | None = Field(default=None, alias="startedAt")


class MetricsSnapshot(_Payload):
    """Scalar trading KPIs from /api/metrics."""

    open_positions: int = Field(default=0, alias="openPositions")
    total_pnl: Decimal = Field(default=ZERO, alias="totalPnL")
    win_rate: Decimal = Field(default=ZERO, alias="winRate")
    total_volume: Decimal = Field(default=ZERO, alias="totalVolume")
    last_24h_trades: int = Field(default=0, alias="last24hTrades")
    peak_price: Decimal = Field(default=ZERO, alias="peakPrice")
    last_price: Decimal = Field(default=ZERO, alias="lastPrice")
    pct_change_peak: Decimal = Field(default=ZERO, alias="pctChangePeak")
    minutes_since_peak: Decimal = Field(default=ZERO, alias="minutesSincePeak")
    total_exposure: Decimal = Field(default=ZERO, alias="totalExposure")
    exposure_percentage: Decimal = Field(default=ZERO, alias="exposurePercentage")
    remaining_capacity: Decimal = Field(default=ZERO, alias="remainingCapacity")
    active_trailing_dip: TrailingDip | None = Field(default=None, alias="activeTrailingDip")
    base_token_symbol: str = Field(default="ETH", alias="baseTokenSymbol")
    quote_token_symbol: str = Field(default="WBNB", alias="quoteTokenSymbol")

    @field_validator("active_trailing_dip", mode="before")
    @classmethod
    def _normalize_trailing_dip(cls, value: Any) -> Any:
        # The backend reports an inactive tracker as null, false or {}
        if value is None or value is False or value == {}:
            return None
        if value is True:
            return {}
        return value


# ---------------------------------------------------------------------------
# Balances
# ---------------------------------------------------------------------------


class TokenBalance(_Payload):
    symbol: str
    balance: Decimal = ZERO
    balance_usd: Decimal = Field(default=ZERO, alias="balanceUSD")
    price_usd: Decimal = Field(default=ZERO, alias="priceUSD")


class PortfolioTotals(_Payload):
    total_usd: Decimal = Field(default=ZERO, alias="totalUSD")
    last_updated: str | None = Field(default=None, alias="lastUpdated")


class BalanceSnapshot(_Payload):
    """Token balances and portfolio total from /api/balances."""

    base_token: TokenBalance = Field(alias="baseToken")
    quote_token: TokenBalance = Field(alias="quoteToken")
    native_token: TokenBalance = Field(alias="nativeToken")
    portfolio: PortfolioTotals


# ---------------------------------------------------------------------------
# Positions and trades
# ---------------------------------------------------------------------------


class DcaTranche(_Payload):
    """A staged buy-in inside a position. Unknown keys are kept as-is."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    price: Decimal | None = None
    amount: Decimal | None = None
    timestamp: str | None = None


class DcaInfo(_Payload):
    tranches: list[DcaTranche] = Field(default_factory=list)


class Position(_Payload):
    """An open trade exposure."""

    id: str
    buy_price: Decimal = Field(alias="buyPrice")
    current_price: Decimal = Field(alias="currentPrice")
    amount_in: Decimal = Field(default=ZERO, alias="amountIn")
    amount_out: Decimal = Field(alias="amountOut")
    current_value: Decimal = Field(default=ZERO, alias="currentValue")
    pnl_percent: Decimal = Field(default=ZERO, alias="pnlPercent")
    pnl_absolute: Decimal = Field(default=ZERO, alias="pnlAbsolute")
    age_hours: Decimal = Field(default=ZERO, alias="ageHours")
    trailing_stop_status: str = Field(default="", alias="trailingStopStatus")
    dca_info: DcaInfo | None = Field(default=None, alias="dcaInfo")

    @property
    def tranche_count(self) -> int:
        return len(self.dca_info.tranches) if self.dca_info is not None else 0


class Trade(_Payload):
    """A completed execution. Profit is only meaningful when has_profit is set."""

    timestamp: str
    side: str
    amount_in: Decimal = ZERO
    amount_out: Decimal = ZERO
    profit: Decimal | None = None
    profit_pct: Decimal | None = None
    reason: str = ""
    display_amount_in: str = Field(default="", alias="displayAmountIn")
    display_amount_out: str = Field(default="", alias="displayAmountOut")
    display_profit: str = Field(default="", alias="displayProfit")
    display_profit_pct: str = Field(default="", alias="displayProfitPct")
    has_profit: bool = Field(default=False, alias="hasProfit")


class PositionsEnvelope(_Payload):
    positions: list[Position] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Charts
# ---------------------------------------------------------------------------


class ChartPayload(_Payload):
    """Shared x-axis plus parallel numeric series of equal length."""

    series_fields: ClassVar[tuple[str, ...]] = ()

    success: bool = True
    labels: list[str]

    @model_validator(mode="after")
    def _check_alignment(self) -> ChartPayload:
        expected = len(self.labels)
        for name in self.series_fields:
            actual = len(getattr(self, name))
            if actual != expected:
                raise ValueError(
                    f"series {name!r} has {actual} points, expected {expected}"
                )
        return self

    def series(self, name: str) -> list[float]:
        return getattr(self, name)


class VolumeChart(ChartPayload):
    series_fields: ClassVar[tuple[str, ...]] = ("buy_volume", "sell_volume")

    buy_volume: list[float] = Field(alias="buyVolume")
    sell_volume: list[float] = Field(alias="sellVolume")
    total_volume: Decimal = Field(default=ZERO, alias="totalVolume")
    avg_trade_size: Decimal = Field(default=ZERO, alias="avgTradeSize")


class TradesChart(ChartPayload):
    series_fields: ClassVar[tuple[str, ...]] = ("successful_trades", "failed_trades")

    successful_trades: list[float] = Field(alias="successfulTrades")
    failed_trades: list[float] = Field(alias="failedTrades")
    total_trades: int = Field(default=0, alias="totalTrades")
    win_rate: Decimal = Field(default=ZERO, alias="winRate")


class PortfolioChart(ChartPayload):
    series_fields: ClassVar[tuple[str, ...]] = (
        "total_value",
        "base_token_value",
        "quote_token_value",
    )

    total_value: list[float] = Field(alias="totalValue")
    base_token_value: list[float] = Field(alias="baseTokenValue")
    quote_token_value: list[float] = Field(alias="quoteTokenValue")
    current_balance: Decimal = Field(default=ZERO, alias="currentBalance")
    change_24h: Decimal = Field(default=ZERO, alias="change24h")


class PnLChart(ChartPayload):
    series_fields: ClassVar[tuple[str, ...]] = ("cumulative_pnl", "realized_pnl")

    cumulative_pnl: list[float] = Field(alias="cumulativePnL")
    realized_pnl: list[float] = Field(alias="realizedPnL")
    total_pnl: Decimal = Field(default=ZERO, alias="totalPnL")
    unrealized_pnl: Decimal = Field(default=ZERO, alias="unrealizedPnL")


CHART_MODELS: dict[ChartKind, type[ChartPayload]] = {
    ChartKind.VOLUME: VolumeChart,
    ChartKind.TRADES: TradesChart,
    ChartKind.PORTFOLIO: PortfolioChart,
    ChartKind.PNL: PnLChart,
}


# ---------------------------------------------------------------------------
# Decoders
# ---------------------------------------------------------------------------

_M = TypeVar("_M", bound=BaseModel)


def decode(model: type[_M], raw: Any) -> _M:
    """Validate a raw JSON value against a payload model.

    Raises:
        DecodeError: If the value does not match the model's shape.
    """
    try:
        return model.model_validate(raw)
    except ValidationError as e:
        raise DecodeError(
            f"{model.__name__}: {e.error_count()} validation error(s): {e.errors()[0]['msg']}"
        ) from e


def decode_positions(raw: Any) -> list[Position]:
    """Unwrap the {positions: [...]} envelope; a missing key means no positions."""
    return decode(PositionsEnvelope, raw).positions


def decode_trades(raw: Any, window: int = 20) -> list[Trade]:
    """Decode a trade list and keep only the first ``window`` entries (newest first)."""
    if not isinstance(raw, list):
        raise DecodeError(f"expected a list of trades, got {type(raw).__name__}")
    return [decode(Trade, item) for item in raw[:window]]


def decode_chart(kind: ChartKind, raw: Any) -> ChartPayload | None:
    """Decode a chart body; a null body means the window has no data yet."""
    if raw is None:
        return None
    return decode(CHART_MODELS[kind], raw)
