"""Visual-encoding profiles for the four dashboard charts.

Each chart kind has a fixed, ordered list of series. A series keeps the
same color and role whatever the number of data points, so the renderer
can draw the projection without any further shaping.
"""

from dataclasses import dataclass
from typing import Any, Literal

from tradewatch.models import ChartKind

GREEN = (34, 197, 94)
RED = (239, 68, 68)
BLUE = (59, 130, 246)
PURPLE = (168, 85, 247)

LINE_TENSION = 0.4
LINE_FILL_ALPHA = 0.1
BAR_FILL_ALPHA = 0.7


def rgba(rgb: tuple[int, int, int], alpha: float) -> str:
    r, g, b = rgb
    return f"rgba({r}, {g}, {b}, {alpha:g})"


@dataclass(frozen=True)
class SeriesStyle:
    """Renderer styling for one named series.

    ``field`` is the payload attribute holding the series values.
    Bar series carry a border width; line series carry tension and fill.
    """

    label: str
    field: str
    border_color: str
    background_color: str
    border_width: int | None = None
    tension: float | None = None
    fill: bool | None = None

    def as_dataset(self, data: list[float]) -> dict[str, Any]:
        dataset: dict[str, Any] = {
            "label": self.label,
            "data": data,
            "borderColor": self.border_color,
            "backgroundColor": self.background_color,
        }
        if self.border_width is not None:
            dataset["borderWidth"] = self.border_width
        if self.tension is not None:
            dataset["tension"] = self.tension
        if self.fill is not None:
            dataset["fill"] = self.fill
        return dataset


def bar_series(label: str, field: str, rgb: tuple[int, int, int]) -> SeriesStyle:
    return SeriesStyle(
        label=label,
        field=field,
        border_color=rgba(rgb, 1),
        background_color=rgba(rgb, BAR_FILL_ALPHA),
        border_width=1,
    )


def line_series(
    label: str, field: str, rgb: tuple[int, int, int], fill: bool = False
) -> SeriesStyle:
    return SeriesStyle(
        label=label,
        field=field,
        border_color=rgba(rgb, 1),
        background_color=rgba(rgb, LINE_FILL_ALPHA),
        tension=LINE_TENSION,
        fill=fill,
    )


@dataclass(frozen=True)
class ChartProfile:
    """Everything the renderer needs besides the data for one chart kind."""

    kind: ChartKind
    chart_type: Literal["bar", "line"]
    title: str
    y_axis_label: str  # may contain {symbol} for the base token
    series: tuple[SeriesStyle, ...]
    summary_fields: tuple[str, ...]

    def axis_label(self, symbol: str = "ETH") -> str:
        return self.y_axis_label.format(symbol=symbol)


PROFILES: dict[ChartKind, ChartProfile] = {
    ChartKind.VOLUME: ChartProfile(
        kind=ChartKind.VOLUME,
        chart_type="bar",
        title="Trading Volume",
        y_axis_label="Volume ({symbol})",
        series=(
            bar_series("Buy Volume", "buy_volume", GREEN),
            bar_series("Sell Volume", "sell_volume", RED),
        ),
        summary_fields=("total_volume", "avg_trade_size"),
    ),
    ChartKind.TRADES: ChartProfile(
        kind=ChartKind.TRADES,
        chart_type="line",
        title="Trade Activity",
        y_axis_label="Number of Trades",
        series=(
            line_series("Successful Trades", "successful_trades", GREEN, fill=True),
            line_series("Failed Trades", "failed_trades", RED, fill=True),
        ),
        summary_fields=("total_trades", "win_rate"),
    ),
    ChartKind.PORTFOLIO: ChartProfile(
        kind=ChartKind.PORTFOLIO,
        chart_type="line",
        title="Portfolio Balance",
        y_axis_label="Value (USD)",
        series=(
            line_series("Total Portfolio Value", "total_value", BLUE, fill=True),
            line_series("Base Token Value", "base_token_value", PURPLE),
            line_series("Quote Token Value", "quote_token_value", GREEN),
        ),
        summary_fields=("current_balance", "change_24h"),
    ),
    ChartKind.PNL: ChartProfile(
        kind=ChartKind.PNL,
        chart_type="line",
        title="Cumulative P&L",
        y_axis_label="P&L ({symbol})",
        series=(
            line_series("Cumulative P&L", "cumulative_pnl", GREEN, fill=True),
            line_series("Realized P&L", "realized_pnl", BLUE),
        ),
        summary_fields=("total_pnl", "unrealized_pnl"),
    ),
}


def chart_options(title: str, y_axis_label: str) -> dict[str, Any]:
    """Shared Chart.js options: legend on top, zero-based y axis with a title."""
    return {
        "responsive": True,
        "maintainAspectRatio": False,
        "plugins": {
            "title": {"display": False, "text": title},
            "legend": {
                "position": "top",
                "labels": {"usePointStyle": True, "padding": 15},
            },
            "tooltip": {"borderWidth": 1},
        },
        "scales": {
            "x": {"grid": {}, "ticks": {}},
            "y": {
                "beginAtZero": True,
                "title": {"display": True, "text": y_axis_label},
            },
        },
    }
