"""Local chart derivation for degraded legacy runs.

When a legacy follow-up chart call fails, the cumulative and comparison
charts are rebuilt from the primary /analyze result. The output uses the
same payload shape the service returns, so the adapter treats it like any
other response. Amount and drawdown data are never derived here.
"""

from portfolio_client.domain.entities.result import PORTFOLIO_LABEL
from portfolio_client.models.responses import ChartPayload, PortfolioDataPayload

CUMULATIVE_TITLE = "Portfolio Time Series Analysis"
COMPARISON_TITLE = "Stock Performance Comparison"

PRICE_RETURN = "Price Return"
TOTAL_RETURN = "Total Return"


def derive_cumulative_chart(portfolio_data: PortfolioDataPayload) -> ChartPayload:
    """Cumulative-return curves: portfolio first, then each ticker.

    Tickers without a cumulative series are skipped. The date axis comes from
    the first ticker that reports dates, falling back to the portfolio row.
    """
    series: dict[str, list[float]] = {}
    dates: list[str] | None = None

    portfolio = portfolio_data.portfolio_stock_return
    if portfolio is not None and portfolio.cumulative_returns:
        series[PORTFOLIO_LABEL] = list(portfolio.cumulative_returns)

    for stock in portfolio_data.stock_returns:
        if stock.cumulative_returns:
            series[stock.ticker] = list(stock.cumulative_returns)
        if dates is None and stock.dates:
            dates = list(stock.dates)

    if dates is None and portfolio is not None and portfolio.dates:
        dates = list(portfolio.dates)

    return ChartPayload(title=CUMULATIVE_TITLE, type="timeseries", dates=dates, series=series)


def derive_comparison_chart(portfolio_data: PortfolioDataPayload) -> ChartPayload:
    """Price vs. total return bars, labelled, portfolio first."""
    labels: list[str] = []
    price_returns: list[float] = []
    total_returns: list[float] = []

    portfolio = portfolio_data.portfolio_stock_return
    if portfolio is not None:
        labels.append(PORTFOLIO_LABEL)
        price_returns.append(portfolio.price_return)
        total_returns.append(portfolio.total_return)

    for stock in portfolio_data.stock_returns:
        labels.append(stock.ticker)
        price_returns.append(stock.price_return)
        total_returns.append(stock.total_return)

    return ChartPayload(
        title=COMPARISON_TITLE,
        type="bar",
        dates=[],
        labels=labels,
        series={PRICE_RETURN: price_returns, TOTAL_RETURN: total_returns},
    )
