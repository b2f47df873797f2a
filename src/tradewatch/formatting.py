"""Display formatting helpers shared by the dashboard views.

Missing values render as zero, matching how the dashboard shows a slot
that has not loaded yet.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tradewatch.models import BalanceSnapshot, MetricsSnapshot

DEFAULT_TITLE = "Crypto Trading Bot Dashboard"
_MAX_INT_DIGITS = 100

Number = Decimal | float | int | None


def _fixed(value: Number, decimals: int) -> str:
    """Fixed-point string, rounding halves away from zero."""
    if value is None:
        value = 0
    try:
        d = Decimal(str(value))
    except InvalidOperation:
        d = Decimal("0")
    if not d.is_finite():
        d = Decimal("0")
    exp = Decimal(1).scaleb(-decimals)
    try:
        with localcontext() as ctx:
            ctx.prec = max(ctx.prec, min(d.adjusted(), _MAX_INT_DIGITS) + decimals + 2)
            q = d.quantize(exp, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        # Too many integer digits for fixed-point
        return f"{d:.{decimals}E}"
    return f"{q:f}"


def format_number(value: Number, decimals: int = 4) -> str:
    return _fixed(value, decimals)


def format_percent(value: Number) -> str:
    return f"{_fixed(value, 2)}%"


def format_currency(value: Number) -> str:
    return f"${_fixed(value, 2)}"


def signed_percent(value: Number) -> str:
    """Percent with an explicit '+' for zero and gains."""
    text = format_percent(value)
    return text if text.startswith("-") else f"+{text}"


def short_id(position_id: str | None, index: int) -> str:
    """First 8 characters of a position id, or a 1-based row marker."""
    if position_id:
        return position_id[:8]
    return f"#{index + 1}"


def page_title(
    metrics: MetricsSnapshot | None, balances: BalanceSnapshot | None
) -> str:
    """Window title summarizing portfolio value, open positions and P&L.

    Falls back to the plain dashboard title until both snapshots are loaded.
    """
    if metrics is None or balances is None:
        return DEFAULT_TITLE

    total_value = balances.portfolio.total_usd
    pnl = metrics.total_pnl
    sign = "+" if pnl >= 0 else ""
    return (
        f"${_fixed(total_value, 0)} Portfolio | "
        f"{metrics.open_positions} Positions | "
        f"{sign}{_fixed(pnl, 4)} P&L | {DEFAULT_TITLE}"
    )
