"""Canonical analysis result entities.

One ``AnalysisResult`` is produced per successful run regardless of which
request strategy fetched the data. Presentation code reads these frozen
snapshots only.
"""

from dataclasses import dataclass, field

from portfolio_client.exceptions import AdaptationWarning

PORTFOLIO_LABEL = "Portfolio"


@dataclass(frozen=True)
class TimeSeriesChart:
    """Named curves sharing one date axis.

    ``dates`` may be empty when the service omitted the axis; points then
    line up by position only.
    """

    title: str | None
    dates: tuple[str, ...]
    series: dict[str, tuple[float | None, ...]]

    def points(self, name: str) -> list[tuple[str | None, float | None]]:
        """(date, value) pairs for one curve; date is None past the axis end."""
        values = self.series[name]
        return [
            (self.dates[i] if i < len(self.dates) else None, value)
            for i, value in enumerate(values)
        ]

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(self.series)


@dataclass(frozen=True)
class ComparisonRow:
    """Price vs. total return for one ticker (or the portfolio)."""

    ticker: str
    price_return: float
    total_return: float


@dataclass(frozen=True)
class DrawdownSeries:
    """Portfolio drawdown as fractions (0.0 = at peak).

    ``invert_axis`` tells the renderer to draw zero at the top with larger
    drawdowns toward the bottom.
    """

    dates: tuple[str, ...]
    values: tuple[float, ...]
    invert_axis: bool = True

    def points(self) -> list[tuple[str | None, float]]:
        return [
            (self.dates[i] if i < len(self.dates) else None, value)
            for i, value in enumerate(self.values)
        ]


@dataclass(frozen=True)
class SummaryMetrics:
    """Portfolio-level scalars.

    Risk figures the service omits take the display defaults: 0 for Sharpe
    ratio, max drawdown and VaR, 1.0 for beta.
    """

    price_return: float
    total_return: float
    cagr: float
    volatility: float
    sharpe_ratio: float = 0.0
    max_drawdown: float = 0.0
    value_at_risk: float = 0.0
    beta: float = 1.0


@dataclass(frozen=True)
class TickerMetrics:
    """One row of the per-ticker metrics table."""

    ticker: str
    price_return: float
    total_return: float
    cagr: float
    volatility: float
    max_drawdown: float


@dataclass(frozen=True)
class ReportSummary:
    """Best/worst performers over the analysed window."""

    analysis_start_date: str | None
    analysis_end_date: str | None
    total_days: int | None
    best_performing_stock: str | None
    best_performing_stock_return: float | None
    worst_performing_stock: str | None
    worst_performing_stock_return: float | None


@dataclass(frozen=True)
class AnalysisResult:
    """Canonical output of one analysis run."""

    run_id: int
    strategy: str
    start_date: str | None
    end_date: str | None
    portfolio_series: TimeSeriesChart
    comparison_series: tuple[ComparisonRow, ...]
    summary_metrics: SummaryMetrics
    per_ticker_metrics: tuple[TickerMetrics, ...]
    amount_series: TimeSeriesChart | None = None
    drawdown_series: DrawdownSeries | None = None
    report: ReportSummary | None = None
    degraded: bool = False
    warnings: tuple[AdaptationWarning, ...] = field(default_factory=tuple)

    @property
    def has_amount(self) -> bool:
        return self.amount_series is not None

    @property
    def has_drawdown(self) -> bool:
        return self.drawdown_series is not None
