"""Adapt raw service payloads into the canonical AnalysisResult.

The adapter does not know which strategy fetched the data. It only sees a
``RawAnalysis`` bundle and turns each piece into canonical entities,
recording an ``AdaptationWarning`` instead of raising whenever a piece is
missing or has a shape it does not recognize.

Comparison payloads come in several shapes. Each is recognized by an
explicit structural check, tried in a fixed order:

1. ``labels`` plus ``series["Price Return"]`` / ``series["Total Return"]``
   lists aligned by position
2. ``series["Price Return"]`` / ``series["Total Return"]`` mappings keyed
   by ticker
3. anything else: no rows, one warning
"""

import logging
import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from portfolio_client.core.fallback import PRICE_RETURN, TOTAL_RETURN
from portfolio_client.core.strategies import RawAnalysis
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
from portfolio_client.exceptions import AdaptationWarning
from portfolio_client.models.request import AnalysisRequest
from portfolio_client.models.responses import (
    ChartPayload,
    PortfolioDataPayload,
    ReportSummaryPayload,
    StockReturnPayload,
)

logger = logging.getLogger(__name__)


# ============================================================================
# Comparison shapes
# ============================================================================


@dataclass(frozen=True)
class LabeledComparison:
    """Shape 1: explicit labels with positionally aligned value lists."""

    labels: tuple[str, ...]
    price_returns: tuple[Any, ...]
    total_returns: tuple[Any, ...]


@dataclass(frozen=True)
class KeyedComparison:
    """Shape 2: value mappings keyed by ticker."""

    price_returns: Mapping[str, Any]
    total_returns: Mapping[str, Any]


@dataclass(frozen=True)
class UnrecognizedComparison:
    """Shape 3: neither of the above."""

    reason: str


ComparisonShape = LabeledComparison | KeyedComparison | UnrecognizedComparison


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))


def classify_comparison(chart: ChartPayload | None) -> ComparisonShape:
    """Decide which comparison shape a payload has."""
    if chart is None:
        return UnrecognizedComparison("comparison chart missing from response")

    price = chart.series.get(PRICE_RETURN)
    total = chart.series.get(TOTAL_RETURN)

    if chart.labels and (price is None or _is_sequence(price)) and (
        total is None or _is_sequence(total)
    ):
        return LabeledComparison(
            labels=tuple(chart.labels),
            price_returns=tuple(price or ()),
            total_returns=tuple(total or ()),
        )

    if isinstance(price, Mapping) and isinstance(total, Mapping):
        return KeyedComparison(price_returns=price, total_returns=total)

    return UnrecognizedComparison(
        f"unexpected comparison structure (labels={bool(chart.labels)}, "
        f"series keys={sorted(chart.series)})"
    )


def _as_float(value: Any) -> float | None:
    """Finite float or None."""
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _rows_from_shape(
    shape: ComparisonShape,
) -> tuple[list[ComparisonRow], list[AdaptationWarning]]:
    warnings: list[AdaptationWarning] = []

    if isinstance(shape, UnrecognizedComparison):
        return [], [AdaptationWarning("comparisonChart", shape.reason)]

    if isinstance(shape, LabeledComparison):
        triples = [
            (
                label,
                shape.price_returns[i] if i < len(shape.price_returns) else None,
                shape.total_returns[i] if i < len(shape.total_returns) else None,
            )
            for i, label in enumerate(shape.labels)
        ]
    else:
        triples = [
            (label, price, shape.total_returns.get(label))
            for label, price in shape.price_returns.items()
        ]

    rows: list[ComparisonRow] = []
    skipped: list[str] = []
    for label, price, total in triples:
        price_value = _as_float(price)
        total_value = _as_float(total)
        if price_value is None or total_value is None:
            skipped.append(str(label))
            continue
        rows.append(ComparisonRow(str(label), price_value, total_value))

    if skipped:
        warnings.append(
            AdaptationWarning(
                "comparisonChart",
                f"no usable price/total return for: {', '.join(skipped)}",
            )
        )
    return rows, warnings


def order_comparison_rows(
    rows: list[ComparisonRow], tickers: Sequence[str] | None
) -> list[ComparisonRow]:
    """Put rows in request ticker order when every requested ticker is present.

    The portfolio row stays first. Rows the request did not name keep their
    response order after the requested ones. If any requested ticker is
    missing, the response order is kept as is.
    """
    if not tickers:
        return rows

    by_label = {row.ticker: row for row in rows}
    wanted = list(dict.fromkeys(tickers))
    if not all(t in by_label for t in wanted):
        return rows

    head = [row for row in rows if row.ticker == PORTFOLIO_LABEL][:1]
    placed = {PORTFOLIO_LABEL, *wanted}
    ordered = head + [by_label[t] for t in wanted if t != PORTFOLIO_LABEL]
    ordered += [row for row in rows if row.ticker not in placed]
    return ordered


def adapt_comparison(
    chart: ChartPayload | None, tickers: Sequence[str] | None = None
) -> tuple[tuple[ComparisonRow, ...], list[AdaptationWarning]]:
    """Comparison rows for any recognized shape; never raises."""
    rows, warnings = _rows_from_shape(classify_comparison(chart))
    return tuple(order_comparison_rows(rows, tickers)), warnings


# ============================================================================
# Time series
# ============================================================================


def adapt_time_series(
    chart: ChartPayload | None, source: str
) -> tuple[TimeSeriesChart | None, list[AdaptationWarning]]:
    """Named curves aligned with the shared date axis.

    A missing axis leaves ``dates`` empty (points stay positional). Series
    that are not number lists are dropped with a warning.
    """
    if chart is None:
        return None, [AdaptationWarning(source, "chart missing from response")]

    warnings: list[AdaptationWarning] = []
    series: dict[str, tuple[float | None, ...]] = {}
    for name, values in chart.series.items():
        if not _is_sequence(values):
            warnings.append(AdaptationWarning(source, f"series '{name}' is not a list"))
            continue
        # Non-numeric points become None so positions stay aligned with dates
        series[name] = tuple(_as_float(v) for v in values)

    if not chart.dates:
        warnings.append(
            AdaptationWarning(source, "date axis missing; points are positional only")
        )

    return TimeSeriesChart(
        title=chart.title,
        dates=tuple(chart.dates or ()),
        series=series,
    ), warnings


# ============================================================================
# Metrics
# ============================================================================


def adapt_summary(portfolio: StockReturnPayload | None) -> SummaryMetrics:
    """Portfolio-level scalars with display defaults for missing risk figures."""
    if portfolio is None:
        return SummaryMetrics(price_return=0.0, total_return=0.0, cagr=0.0, volatility=0.0)
    return SummaryMetrics(
        price_return=portfolio.price_return,
        total_return=portfolio.total_return,
        cagr=portfolio.cagr,
        volatility=portfolio.volatility,
        sharpe_ratio=portfolio.sharpe_ratio or 0.0,
        max_drawdown=portfolio.max_drawdown or 0.0,
        value_at_risk=portfolio.value_at_risk or 0.0,
        beta=portfolio.beta if portfolio.beta is not None else 1.0,
    )


def _ticker_row(stock: StockReturnPayload, label: str | None = None) -> TickerMetrics:
    return TickerMetrics(
        ticker=label or stock.ticker,
        price_return=stock.price_return,
        total_return=stock.total_return,
        cagr=stock.cagr,
        volatility=stock.volatility,
        max_drawdown=stock.max_drawdown,
    )


def adapt_ticker_metrics(portfolio_data: PortfolioDataPayload) -> tuple[TickerMetrics, ...]:
    """Metrics table rows, portfolio row first."""
    rows: list[TickerMetrics] = []
    portfolio = portfolio_data.portfolio_stock_return
    if portfolio is not None:
        rows.append(_ticker_row(portfolio, label=portfolio.ticker or PORTFOLIO_LABEL))
    rows.extend(_ticker_row(stock) for stock in portfolio_data.stock_returns)
    return tuple(rows)


def adapt_drawdown(
    portfolio_data: PortfolioDataPayload, fallback_dates: Sequence[str] = ()
) -> DrawdownSeries | None:
    """Portfolio drawdown series, or None when the service reported none."""
    portfolio = portfolio_data.portfolio_stock_return
    if portfolio is None or not portfolio.max_drawdowns:
        return None
    dates = portfolio.dates or list(fallback_dates)
    return DrawdownSeries(dates=tuple(dates), values=tuple(portfolio.max_drawdowns))


def adapt_report(summary: ReportSummaryPayload | None) -> ReportSummary | None:
    if summary is None:
        return None
    return ReportSummary(
        analysis_start_date=summary.analysis_start_date,
        analysis_end_date=summary.analysis_end_date,
        total_days=summary.total_days,
        best_performing_stock=summary.best_performing_stock,
        best_performing_stock_return=summary.best_performing_stock_return,
        worst_performing_stock=summary.worst_performing_stock,
        worst_performing_stock_return=summary.worst_performing_stock_return,
    )


# ============================================================================
# Adapter
# ============================================================================


class ResponseAdapter:
    """Builds one AnalysisResult from a RawAnalysis bundle."""

    def adapt(
        self, raw: RawAnalysis, request: AnalysisRequest, run_id: int = 0
    ) -> AnalysisResult:
        warnings: list[AdaptationWarning] = list(raw.warnings)
        portfolio_data = raw.portfolio_data

        if portfolio_data.portfolio_stock_return is None:
            warnings.append(
                AdaptationWarning(
                    "portfolioData", "portfolio row missing; summary metrics default to zero"
                )
            )

        portfolio_series, series_warnings = adapt_time_series(raw.time_series, "timeSeriesChart")
        warnings.extend(series_warnings)
        if portfolio_series is None:
            portfolio_series = TimeSeriesChart(title=None, dates=(), series={})

        comparison_rows, comparison_warnings = adapt_comparison(raw.comparison, request.tickers)
        warnings.extend(comparison_warnings)

        amount_series = None
        if request.tracks_amount:
            if raw.amount is not None:
                amount_series, amount_warnings = adapt_time_series(raw.amount, "amountChart")
                warnings.extend(amount_warnings)
            elif not raw.failed_charts:
                warnings.append(
                    AdaptationWarning("amountChart", "amount chart missing from response")
                )

        drawdown_series = None
        if raw.include_drawdown:
            drawdown_series = adapt_drawdown(portfolio_data, portfolio_series.dates)

        for warning in warnings:
            logger.warning(f"[run {run_id}] {warning.source}: {warning.message}")

        return AnalysisResult(
            run_id=run_id,
            strategy=raw.strategy,
            start_date=portfolio_data.start_date,
            end_date=portfolio_data.end_date,
            portfolio_series=portfolio_series,
            comparison_series=comparison_rows,
            summary_metrics=adapt_summary(portfolio_data.portfolio_stock_return),
            per_ticker_metrics=adapt_ticker_metrics(portfolio_data),
            amount_series=amount_series,
            drawdown_series=drawdown_series,
            report=adapt_report(raw.report),
            degraded=raw.degraded,
            warnings=tuple(warnings),
        )
