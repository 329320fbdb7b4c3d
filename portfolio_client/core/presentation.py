"""Formatting helpers shared by presentation front ends."""

from portfolio_client.domain.entities.allocation import WeightAllocation, WeightStatus
from portfolio_client.domain.entities.result import AnalysisResult, SummaryMetrics
from portfolio_client.exceptions import DateRangeMismatch, PortfolioClientError


def format_percentage(value: float | None) -> str:
    """0.1234 -> '12.34%'. None renders as 0."""
    return f"{(value or 0.0) * 100:.2f}%"


def format_currency(value: float | None) -> str:
    """1234.5 -> '$1,234.50'."""
    amount = value or 0.0
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def format_ratio(value: float | None) -> str:
    return f"{(value or 0.0):.2f}"


def return_class(value: float | None) -> str:
    """'positive', 'negative' or 'neutral' for colouring a return."""
    if value is None or value == 0:
        return "neutral"
    return "positive" if value > 0 else "negative"


def summary_text(result: AnalysisResult) -> str:
    """One-sentence description of the portfolio's performance."""
    metrics = result.summary_metrics
    return (
        f"Over the period from {result.start_date or '?'} to {result.end_date or '?'}, "
        f"this portfolio had a total return of {format_percentage(metrics.total_return)}, "
        f"a compound annual growth rate of {format_percentage(metrics.cagr)} "
        f"and a volatility of {format_percentage(metrics.volatility)}."
    )


def risk_metric_cards(metrics: SummaryMetrics) -> list[tuple[str, str]]:
    """(label, formatted value) pairs for the risk metrics panel."""
    return [
        ("Sharpe Ratio", format_ratio(metrics.sharpe_ratio)),
        ("Max Drawdown", format_percentage(metrics.max_drawdown)),
        ("Value at Risk (95%)", format_percentage(metrics.value_at_risk)),
        ("Beta", format_ratio(metrics.beta)),
    ]


def weight_total_label(allocation: WeightAllocation) -> tuple[str, str]:
    """Formatted weight total and its status colour (green/red/yellow)."""
    colours = {
        WeightStatus.BALANCED: "green",
        WeightStatus.OVER: "red",
        WeightStatus.UNDER: "yellow",
    }
    return allocation.display_total, colours[allocation.status]


def describe_error(error: PortfolioClientError) -> str:
    """User-facing message for a failed or rejected run."""
    if isinstance(error, DateRangeMismatch):
        return (
            "The selected tickers have different data start dates. "
            f"Set the start date to {error.suggested_start_date} or later "
            "to include all data."
        )
    return getattr(error, "message", None) or str(error)
