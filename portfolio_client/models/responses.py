"""Models for analysis service responses.

These mirror the JSON the service returns from /analyze/all, /analyze and
/chart/*. Every model ignores unknown keys and defaults missing ones, so a
partially populated response still parses; deciding what a missing piece
means is left to the adapter.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class ServiceModel(BaseModel):
    """Base for camelCase service payloads."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


def _coerce_date(value: Any) -> str:
    """Render a serialized date as YYYY-MM-DD.

    Some serializers emit dates as [year, month, day] arrays instead of strings.
    """
    if isinstance(value, (list, tuple)) and len(value) >= 3:
        year, month, day = (int(v) for v in value[:3])
        return f"{year:04d}-{month:02d}-{day:02d}"
    return str(value)


# ============================================================================
# Chart payloads
# ============================================================================


class ChartPayload(ServiceModel):
    """One chart payload (time-series, comparison or amount).

    ``series`` is kept loosely typed: values may be number lists aligned with
    ``dates``/``labels`` or mappings keyed by ticker.
    """

    title: str | None = None
    type: str | None = None
    dates: list[str] | None = None
    labels: list[str] | None = None
    series: dict[str, Any] = Field(default_factory=dict)

    @field_validator("dates", mode="before")
    @classmethod
    def _normalize_dates(cls, value: Any) -> Any:
        if value is None:
            return None
        return [_coerce_date(v) for v in value]

    @field_validator("series", mode="before")
    @classmethod
    def _null_series_is_empty(cls, value: Any) -> Any:
        return {} if value is None else value


# ============================================================================
# Portfolio data
# ============================================================================


class StockReturnPayload(ServiceModel):
    """Per-ticker (or portfolio-level) return and risk figures."""

    ticker: str = ""
    price_return: float = 0.0
    total_return: float = 0.0
    cagr: float = 0.0
    volatility: float = 0.0
    max_drawdown: float = 0.0
    max_drawdowns: list[float] | None = None
    dates: list[str] | None = None
    cumulative_returns: list[float] | None = None
    amount_changes: list[float] | None = None
    sharpe_ratio: float | None = None
    value_at_risk: float | None = None
    beta: float | None = None

    @field_validator("dates", mode="before")
    @classmethod
    def _normalize_dates(cls, value: Any) -> Any:
        if value is None:
            return None
        return [_coerce_date(v) for v in value]


class PortfolioDataPayload(ServiceModel):
    """Response from POST /analyze (and ``portfolioData`` of /analyze/all)."""

    start_date: str | None = None
    end_date: str | None = None
    stock_returns: list[StockReturnPayload] = Field(default_factory=list)
    portfolio_stock_return: StockReturnPayload | None = None

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _normalize_date(cls, value: Any) -> Any:
        return None if value is None else _coerce_date(value)

    @field_validator("stock_returns", mode="before")
    @classmethod
    def _null_list_is_empty(cls, value: Any) -> Any:
        return [] if value is None else value


# ============================================================================
# Report
# ============================================================================


class ReportSummaryPayload(ServiceModel):
    """``report.summary`` of /analyze/all."""

    analysis_start_date: str | None = None
    analysis_end_date: str | None = None
    total_days: int | None = None
    best_performing_stock: str | None = None
    best_performing_stock_return: float | None = None
    worst_performing_stock: str | None = None
    worst_performing_stock_return: float | None = None

    @field_validator("analysis_start_date", "analysis_end_date", mode="before")
    @classmethod
    def _normalize_date(cls, value: Any) -> Any:
        return None if value is None else _coerce_date(value)


class AnalysisReportPayload(ServiceModel):
    """``report`` of /analyze/all (only the summary is consumed)."""

    report_id: str | None = None
    summary: ReportSummaryPayload | None = None


# ============================================================================
# Consolidated response
# ============================================================================


class FullAnalysisResponse(ServiceModel):
    """Response from POST /analyze/all."""

    portfolio_data: PortfolioDataPayload | None = None
    time_series_chart: ChartPayload | None = None
    comparison_chart: ChartPayload | None = None
    cumulative_chart: ChartPayload | None = None
    amount_chart: ChartPayload | None = None
    report: AnalysisReportPayload | None = None
