"""Domain entities (dataclasses) for portfolio_client."""

from portfolio_client.domain.entities.allocation import (
    BALANCE_TOLERANCE,
    WeightAllocation,
    WeightRow,
    WeightStatus,
)
from portfolio_client.domain.entities.result import (
    PORTFOLIO_LABEL,
    AnalysisResult,
    ComparisonRow,
    DrawdownSeries,
    ReportSummary,
    SummaryMetrics,
    TickerMetrics,
    TimeSeriesChart,
)

__all__ = [
    # Allocation
    "BALANCE_TOLERANCE",
    "WeightAllocation",
    "WeightRow",
    "WeightStatus",
    # Result
    "PORTFOLIO_LABEL",
    "AnalysisResult",
    "ComparisonRow",
    "DrawdownSeries",
    "ReportSummary",
    "SummaryMetrics",
    "TickerMetrics",
    "TimeSeriesChart",
]
