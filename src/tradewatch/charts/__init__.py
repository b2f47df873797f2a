"""Chart assembly -- visual-encoding profiles and payload projection."""

from tradewatch.charts.projection import ProjectedChart, ProjectedSeries, format_label, project
from tradewatch.charts.styles import PROFILES, ChartProfile, SeriesStyle, chart_options

__all__ = [
    "PROFILES",
    "ChartProfile",
    "ProjectedChart",
    "ProjectedSeries",
    "SeriesStyle",
    "chart_options",
    "format_label",
    "project",
]
