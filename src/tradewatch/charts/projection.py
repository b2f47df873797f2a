"""Projection of raw chart payloads into renderer-ready series sets.

A projection never fails on missing data: an absent payload yields an
empty chart (no labels, no series). Label i and value i of every series
always refer to the same time bucket.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from typing import Any

from tradewatch.charts.styles import PROFILES, ChartProfile, SeriesStyle, chart_options
from tradewatch.models import CHART_MODELS, ChartKind, ChartPayload, Timeframe


@dataclass(frozen=True)
class ProjectedSeries:
    label: str
    values: list[float]
    style: SeriesStyle


@dataclass(frozen=True)
class ProjectedChart:
    """Display labels plus one styled series per signal for one chart kind."""

    kind: ChartKind
    labels: list[str]
    series: list[ProjectedSeries]
    summary: dict[str, Any] = field(default_factory=dict)
    timeframe: Timeframe | None = None

    @property
    def profile(self) -> ChartProfile:
        return PROFILES[self.kind]

    @property
    def is_empty(self) -> bool:
        return not self.labels and not self.series

    def to_chartjs(self) -> dict[str, Any]:
        """Chart.js ``data`` object: labels plus one dataset per series."""
        return {
            "labels": list(self.labels),
            "datasets": [s.style.as_dataset(list(s.values)) for s in self.series],
        }

    def to_dict(self, symbol: str = "ETH") -> dict[str, Any]:
        """JSON-ready view including chart type, options and summary figures."""
        profile = self.profile
        return {
            "kind": self.kind.value,
            "timeframe": self.timeframe.value if self.timeframe is not None else None,
            "type": profile.chart_type,
            "data": self.to_chartjs(),
            "options": chart_options(profile.title, profile.axis_label(symbol)),
            "summary": {k: str(v) for k, v in self.summary.items()},
        }


def format_label(raw: str, tz: tzinfo | None = None) -> str:
    """Render a backend timestamp as a locale time-of-day string.

    Naive timestamps are read as local time. Values that are not ISO-8601
    are returned unchanged so label positions never shift.

    Args:
        raw: Timestamp as supplied by the backend (e.g. "2024-05-01T10:00:00Z").
        tz: Display time zone; the local zone when None.
    """
    try:
        ts = datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))
    except ValueError:
        return raw
    return ts.astimezone(tz).strftime("%X")


def project(
    kind: ChartKind,
    payload: ChartPayload | None,
    tz: tzinfo | None = None,
    timeframe: Timeframe | None = None,
) -> ProjectedChart:
    """Map a chart payload onto its kind's fixed, ordered series list.

    Args:
        kind: Which chart the payload belongs to.
        payload: Decoded payload, or None when nothing has been fetched.
        tz: Display time zone for labels.
        timeframe: Timeframe the payload was fetched for, carried through for display.

    Returns:
        ProjectedChart; empty when payload is None.

    Raises:
        TypeError: If the payload model does not belong to ``kind``.
    """
    if payload is None:
        return ProjectedChart(kind=kind, labels=[], series=[], timeframe=timeframe)

    if not isinstance(payload, CHART_MODELS[kind]):
        raise TypeError(f"{type(payload).__name__} is not a {kind.value} chart payload")

    profile = PROFILES[kind]
    labels = [format_label(label, tz) for label in payload.labels]
    series = [
        ProjectedSeries(
            label=style.label,
            values=[float(v) for v in payload.series(style.field)],
            style=style,
        )
        for style in profile.series
    ]
    summary = {name: getattr(payload, name) for name in profile.summary_fields}
    return ProjectedChart(
        kind=kind,
        labels=labels,
        series=series,
        summary=summary,
        timeframe=timeframe,
    )
