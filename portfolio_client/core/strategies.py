"""Request strategies for the analysis service.

Two strategies exist side by side and are picked by configuration:

- ``ConsolidatedStrategy``: one POST /analyze/all returning portfolio data
  and every chart payload together.
- ``LegacyStrategy``: POST /analyze for portfolio data, then the per-chart
  endpoints (/chart/cumulative, /chart/comparison and, when an initial
  amount is set, /chart/amount) issued concurrently.

Both return a ``RawAnalysis`` bundle. Chart calls that fail in the legacy
strategy are reported in ``failed_charts``; deciding how to recover is up
to the orchestrator.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from portfolio_client.config import StrategyName
from portfolio_client.core.client import post_analysis
from portfolio_client.exceptions import AdaptationWarning, AnalysisError, ServiceError
from portfolio_client.models.request import AnalysisRequest
from portfolio_client.models.responses import (
    ChartPayload,
    FullAnalysisResponse,
    PortfolioDataPayload,
    ReportSummaryPayload,
)

logger = logging.getLogger(__name__)

# Endpoint paths (relative to the configured base URL)
ANALYZE_ALL_PATH = "/analyze/all"
ANALYZE_PATH = "/analyze"
CHART_PATHS = {
    "cumulative": "/chart/cumulative",
    "comparison": "/chart/comparison",
    "amount": "/chart/amount",
}


@dataclass
class RawAnalysis:
    """Everything one strategy fetched for a run, before adaptation."""

    strategy: str
    portfolio_data: PortfolioDataPayload
    time_series: ChartPayload | None = None
    comparison: ChartPayload | None = None
    amount: ChartPayload | None = None
    report: ReportSummaryPayload | None = None
    failed_charts: set[str] = field(default_factory=set)
    warnings: list[AdaptationWarning] = field(default_factory=list)
    degraded: bool = False
    include_drawdown: bool = True


def _parse(model: type[BaseModel], data: Any, path: str) -> Any:
    """Validate a response body, turning schema errors into ServiceError."""
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise ServiceError(
            f"Unexpected response from {path}: {e.error_count()} invalid field(s)"
        ) from e


# =============================================================================
# Strategy interface
# =============================================================================


class AnalysisStrategy(ABC):
    """Abstract base class for request strategies."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Strategy name (e.g., 'consolidated', 'legacy')."""
        ...

    @abstractmethod
    async def fetch(
        self, client: httpx.AsyncClient, request: AnalysisRequest
    ) -> RawAnalysis:
        """Fetch all raw analysis data for one validated request.

        Raises:
            DateRangeMismatch: if the tickers' histories start on different dates
            ServiceError: for any other fatal failure
        """
        ...

    def build_payload(self, request: AnalysisRequest) -> dict:
        """JSON body this strategy sends for ``request``."""
        return request.to_payload()


# =============================================================================
# Consolidated strategy
# =============================================================================


class ConsolidatedStrategy(AnalysisStrategy):
    """Single call to /analyze/all."""

    @property
    def name(self) -> str:
        return StrategyName.CONSOLIDATED.value

    async def fetch(
        self, client: httpx.AsyncClient, request: AnalysisRequest
    ) -> RawAnalysis:
        logger.info(f"Submitting consolidated analysis for {len(request.tickers)} tickers...")

        data = await post_analysis(client, ANALYZE_ALL_PATH, self.build_payload(request))
        response: FullAnalysisResponse = _parse(FullAnalysisResponse, data, ANALYZE_ALL_PATH)

        if response.portfolio_data is None:
            raise ServiceError(f"Response from {ANALYZE_ALL_PATH} has no portfolio data")

        logger.info(
            f"Consolidated analysis received: "
            f"{len(response.portfolio_data.stock_returns)} tickers"
        )
        return RawAnalysis(
            strategy=self.name,
            portfolio_data=response.portfolio_data,
            time_series=response.time_series_chart or response.cumulative_chart,
            comparison=response.comparison_chart,
            amount=response.amount_chart,
            report=response.report.summary if response.report else None,
        )


# =============================================================================
# Legacy strategy
# =============================================================================


class LegacyStrategy(AnalysisStrategy):
    """Primary /analyze call followed by concurrent per-chart calls."""

    @property
    def name(self) -> str:
        return StrategyName.LEGACY.value

    @staticmethod
    def follow_up_charts(request: AnalysisRequest) -> list[str]:
        """Chart calls issued after the primary call."""
        charts = ["cumulative", "comparison"]
        if request.tracks_amount:
            charts.append("amount")
        return charts

    async def _fetch_chart(
        self, client: httpx.AsyncClient, chart: str, request: AnalysisRequest
    ) -> ChartPayload:
        path = CHART_PATHS[chart]
        data = await post_analysis(client, path, self.build_payload(request))
        return _parse(ChartPayload, data, path)

    async def fetch(
        self, client: httpx.AsyncClient, request: AnalysisRequest
    ) -> RawAnalysis:
        logger.info(f"Submitting legacy analysis for {len(request.tickers)} tickers...")

        # Primary failure is fatal for the run
        data = await post_analysis(client, ANALYZE_PATH, self.build_payload(request))
        portfolio_data: PortfolioDataPayload = _parse(PortfolioDataPayload, data, ANALYZE_PATH)

        charts = self.follow_up_charts(request)
        results = await asyncio.gather(
            *(self._fetch_chart(client, chart, request) for chart in charts),
            return_exceptions=True,
        )

        raw = RawAnalysis(strategy=self.name, portfolio_data=portfolio_data)
        payloads: dict[str, ChartPayload] = {}
        for chart, result in zip(charts, results):
            if isinstance(result, AnalysisError):
                logger.warning(f"Chart call '{chart}' failed: {result.message}")
                raw.failed_charts.add(chart)
                raw.warnings.append(
                    AdaptationWarning(chart, f"chart request failed: {result.message}")
                )
            elif isinstance(result, BaseException):
                raise result
            else:
                payloads[chart] = result

        raw.time_series = payloads.get("cumulative")
        raw.comparison = payloads.get("comparison")
        raw.amount = payloads.get("amount")

        logger.info(
            f"Legacy analysis received: {len(payloads)}/{len(charts)} chart calls succeeded"
        )
        return raw


def get_strategy(name: StrategyName | str) -> AnalysisStrategy:
    """Instantiate the strategy for a configured name.

    Raises:
        ValueError: if the name is unknown
    """
    strategy_name = StrategyName(name)
    if strategy_name is StrategyName.LEGACY:
        return LegacyStrategy()
    return ConsolidatedStrategy()
