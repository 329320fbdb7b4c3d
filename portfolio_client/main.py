"""Command-line entrypoint for portfolio analysis.

Run as:
    python -m portfolio_client.main --tickers AAPL,MSFT --start 2023-01 --end 2023-12
"""

import argparse
import asyncio
import logging
import sys

from rich.console import Console
from rich.table import Table

from portfolio_client.config import ClientConfig, StrategyName, get_log_level
from portfolio_client.core.client import check_health
from portfolio_client.core.input_normalizer import (
    RawFormInput,
    apply_suggested_start,
    parse_tickers,
)
from portfolio_client.core.orchestrator import AnalysisOrchestrator, AnalysisRun, RunState
from portfolio_client.core.presentation import (
    describe_error,
    format_currency,
    format_percentage,
    return_class,
    risk_metric_cards,
    summary_text,
    weight_total_label,
)
from portfolio_client.domain.entities.allocation import WeightAllocation, WeightRow
from portfolio_client.domain.entities.result import AnalysisResult
from portfolio_client.domain.services.weights import clamp_weight, normalize, rebuild
from portfolio_client.exceptions import DateRangeMismatch

console = Console()

RETURN_STYLES = {"positive": "green", "negative": "red", "neutral": "dim"}


def build_allocation(
    tickers: list[str], weights_text: str | None, normalize_weights: bool = False
) -> WeightAllocation:
    """Allocation from a comma-separated weight list (percent), or equal shares.

    Raises:
        ValueError: if the weight count differs from the ticker count or a
            weight is not a number
    """
    if not weights_text:
        return rebuild(tickers)

    values = [float(w) for w in weights_text.split(",") if w.strip()]
    if len(values) != len(tickers):
        raise ValueError(
            f"Got {len(values)} weights for {len(tickers)} tickers"
        )
    allocation = WeightAllocation(
        rows=tuple(WeightRow(t, clamp_weight(v)) for t, v in zip(tickers, values))
    )
    return normalize(allocation) if normalize_weights else allocation


def _styled(value: float | None, text: str) -> str:
    return f"[{RETURN_STYLES[return_class(value)]}]{text}[/]"


def render_result(result: AnalysisResult) -> None:
    """Print summary, risk metrics and per-ticker tables."""
    console.print(f"\n[bold]{summary_text(result)}[/]\n")

    metrics = result.summary_metrics
    summary = Table(title="Portfolio Summary", show_header=True, header_style="bold cyan")
    summary.add_column("Metric", style="dim")
    summary.add_column("Value", justify="right")
    summary.add_row("Price Return", _styled(metrics.price_return, format_percentage(metrics.price_return)))
    summary.add_row("Total Return", _styled(metrics.total_return, format_percentage(metrics.total_return)))
    summary.add_row("CAGR", _styled(metrics.cagr, format_percentage(metrics.cagr)))
    summary.add_row("Volatility", format_percentage(metrics.volatility))
    console.print(summary)

    risk = Table(title="Risk Metrics", show_header=True, header_style="bold cyan")
    risk.add_column("Metric", style="dim")
    risk.add_column("Value", justify="right")
    for label, value in risk_metric_cards(metrics):
        risk.add_row(label, value)
    console.print(risk)

    tickers = Table(title="Per-Ticker Metrics", show_header=True, header_style="bold cyan")
    tickers.add_column("Ticker")
    for column in ("Price Return", "Total Return", "CAGR", "Volatility", "Max Drawdown"):
        tickers.add_column(column, justify="right")
    for row in result.per_ticker_metrics:
        tickers.add_row(
            row.ticker,
            _styled(row.price_return, format_percentage(row.price_return)),
            _styled(row.total_return, format_percentage(row.total_return)),
            _styled(row.cagr, format_percentage(row.cagr)),
            format_percentage(row.volatility),
            format_percentage(row.max_drawdown),
        )
    console.print(tickers)

    if result.comparison_series:
        comparison = Table(title="Price vs. Total Return", show_header=True, header_style="bold cyan")
        comparison.add_column("Ticker")
        comparison.add_column("Price Return", justify="right")
        comparison.add_column("Total Return", justify="right")
        for row in result.comparison_series:
            comparison.add_row(
                row.ticker,
                format_percentage(row.price_return),
                format_percentage(row.total_return),
            )
        console.print(comparison)

    if result.amount_series is not None and result.amount_series.names:
        name = result.amount_series.names[0]
        points = result.amount_series.points(name)
        if points:
            first, last = points[0][1], points[-1][1]
            console.print(
                f"  {name} value: {format_currency(first)} → [bold]{format_currency(last)}[/]"
            )

    if result.report is not None and result.report.best_performing_stock:
        report = result.report
        console.print(
            f"  Best: [green]{report.best_performing_stock}[/] "
            f"({format_percentage(report.best_performing_stock_return)}), "
            f"worst: [red]{report.worst_performing_stock}[/] "
            f"({format_percentage(report.worst_performing_stock_return)})"
        )

    if result.degraded:
        console.print("\n[yellow]⚠ Some charts could not be fetched; results are partial.[/]")
    for warning in result.warnings:
        console.print(f"  [dim]{warning.source}: {warning.message}[/]")


async def run_analysis(
    config: ClientConfig, form: RawFormInput, allocation: WeightAllocation
) -> AnalysisRun:
    orchestrator = AnalysisOrchestrator.from_config(config)
    try:
        if not await check_health(orchestrator.client):
            console.print(f"[yellow]⚠ Analysis service at {config.base_url} did not answer /health[/]")
        return await orchestrator.run(form, allocation)
    finally:
        await orchestrator.aclose()


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint."""
    parser = argparse.ArgumentParser(
        description="Analyze historical returns of a stock portfolio"
    )
    parser.add_argument(
        "--tickers",
        type=str,
        required=True,
        help="Comma-separated ticker symbols (e.g., AAPL,MSFT)",
    )
    parser.add_argument(
        "--start",
        type=str,
        required=True,
        help="Start date (YYYY-MM-DD or YYYY-MM)",
    )
    parser.add_argument(
        "--end",
        type=str,
        required=True,
        help="End date (YYYY-MM-DD or YYYY-MM)",
    )
    parser.add_argument(
        "--weights",
        type=str,
        default=None,
        help="Comma-separated weights in percent, one per ticker. Default: equal weight",
    )
    parser.add_argument(
        "--normalize",
        action="store_true",
        help="Rescale --weights so they sum to 100",
    )
    parser.add_argument(
        "--dividends",
        action="store_true",
        help="Include reinvested dividends",
    )
    parser.add_argument(
        "--amount",
        type=str,
        default=None,
        help="Initial investment; enables the amount chart",
    )
    parser.add_argument(
        "--strategy",
        type=str,
        choices=[s.value for s in StrategyName],
        default=None,
        help="Request strategy (default: PORTFOLIO_API_STRATEGY or consolidated)",
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=get_log_level(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = ClientConfig.from_env()
    except ValueError as e:
        console.print(f"[bold red]Error:[/] {e}")
        return 1
    if args.strategy:
        config.strategy = StrategyName(args.strategy)

    tickers = parse_tickers(args.tickers)
    try:
        # No tickers is reported by input validation, not as a weight count error
        allocation = (
            build_allocation(tickers, args.weights, args.normalize)
            if tickers
            else WeightAllocation()
        )
    except ValueError as e:
        console.print(f"[bold red]Error:[/] invalid --weights: {e}")
        return 1

    if len(allocation):
        total, colour = weight_total_label(allocation)
        console.print(f"Weights total: [{colour}]{total}[/]")

    form = RawFormInput(
        tickers=args.tickers,
        start_date=args.start,
        end_date=args.end,
        include_dividends=args.dividends,
        initial_amount=args.amount,
    )

    run = asyncio.run(run_analysis(config, form, allocation))

    if run.state is RunState.READY and run.result is not None:
        render_result(run.result)
        return 0

    console.print(f"\n[bold red]Error:[/] {describe_error(run.error)}")
    if isinstance(run.error, DateRangeMismatch):
        suggested = apply_suggested_start(form, run.error)
        console.print(f"  Re-run with [cyan]--start {suggested.start_date}[/]")
    return 1


if __name__ == "__main__":
    sys.exit(main())
