"""Pytest configuration and fixtures for all tests.

Tests run isolated from PORTFOLIO_* environment variables and never touch
the network: strategies talk to a FastAPI stub of the analysis service
through ``httpx.ASGITransport``.
"""

import os
from typing import Any

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse

# Environment variables that should not leak into tests
PORTFOLIO_ENV_VARS = [
    "PORTFOLIO_API_URL",
    "PORTFOLIO_API_STRATEGY",
    "PORTFOLIO_API_TIMEOUT",
    "PORTFOLIO_LOG_LEVEL",
]

STUB_BASE_URL = "http://testserver/api/portfolio"


@pytest.fixture(autouse=True)
def isolate_from_env():
    """Clear PORTFOLIO_* env vars before each test, restore them after."""
    original_values = {}
    for var in PORTFOLIO_ENV_VARS:
        if var in os.environ:
            original_values[var] = os.environ.pop(var)

    yield

    for var in PORTFOLIO_ENV_VARS:
        os.environ.pop(var, None)
    for var, value in original_values.items():
        os.environ[var] = value


# ============================================================================
# Payload builders
# ============================================================================


def stock_return(
    ticker: str,
    price_return: float = 0.1,
    total_return: float = 0.12,
    **extra: Any,
) -> dict:
    """One StockReturn JSON object as the service sends it."""
    data = {
        "ticker": ticker,
        "priceReturn": price_return,
        "totalReturn": total_return,
        "cagr": 0.05,
        "volatility": 0.2,
        "maxDrawdown": 0.15,
        "dates": ["2023-01-03", "2023-01-04", "2023-01-05"],
        "cumulativeReturns": [0.0, 0.01, 0.02],
    }
    data.update(extra)
    return data


def portfolio_data(tickers: tuple[str, ...] = ("AAPL", "MSFT")) -> dict:
    """``portfolioData`` for the given tickers, with a drawdown series."""
    return {
        "startDate": "2023-01-03",
        "endDate": "2023-01-05",
        "stockReturns": [
            stock_return(t, round(0.1 * (i + 1), 4), round(0.1 * (i + 1) + 0.02, 4))
            for i, t in enumerate(tickers)
        ],
        "portfolioStockReturn": stock_return(
            "Portfolio",
            0.15,
            0.17,
            maxDrawdowns=[0.0, 0.01, 0.005],
            sharpeRatio=1.2,
            valueAtRisk=0.03,
            beta=0.9,
        ),
    }


def time_series_chart(names: tuple[str, ...] = ("Portfolio", "AAPL", "MSFT")) -> dict:
    return {
        "title": "Portfolio Time Series Analysis",
        "type": "timeseries",
        "dates": ["2023-01-03", "2023-01-04", "2023-01-05"],
        "series": {name: [0.0, 0.01, 0.02] for name in names},
    }


def comparison_chart() -> dict:
    return {
        "title": "Stock Performance Comparison",
        "type": "bar",
        "labels": ["AAPL", "MSFT"],
        "series": {"Price Return": [0.1, 0.2], "Total Return": [0.12, 0.22]},
    }


def amount_chart() -> dict:
    return {
        "title": "Portfolio Amount Change",
        "type": "timeseries",
        "dates": ["2023-01-03", "2023-01-04", "2023-01-05"],
        "series": {"Portfolio": [1000.0, 1010.0, 1020.0]},
    }


def full_analysis(tickers: tuple[str, ...] = ("AAPL", "MSFT")) -> dict:
    """Body of a successful /analyze/all response."""
    return {
        "portfolioData": portfolio_data(tickers),
        "timeSeriesChart": time_series_chart(("Portfolio", *tickers)),
        "comparisonChart": comparison_chart(),
        "cumulativeChart": time_series_chart(("Portfolio", *tickers)),
        "amountChart": amount_chart(),
        "report": {
            "reportId": "r-1",
            "summary": {
                "analysisStartDate": "2023-01-03",
                "analysisEndDate": "2023-01-05",
                "totalDays": 3,
                "bestPerformingStock": "MSFT",
                "bestPerformingStockReturn": 0.22,
                "worstPerformingStock": "AAPL",
                "worstPerformingStockReturn": 0.12,
            },
        },
    }


# ============================================================================
# Stub analysis service
# ============================================================================


class StubService:
    """Programmable stand-in for the analysis service.

    ``responses`` maps an endpoint path (relative to /api/portfolio) to a
    (status, JSON body) pair. Every request is recorded in ``calls``.
    """

    def __init__(self):
        self.responses: dict[str, tuple[int, Any]] = {
            "/analyze/all": (200, full_analysis()),
            "/analyze": (200, portfolio_data()),
            "/chart/cumulative": (200, time_series_chart()),
            "/chart/comparison": (200, comparison_chart()),
            "/chart/amount": (200, amount_chart()),
        }
        self.calls: list[tuple[str, Any]] = []
        self.healthy = True
        self.app = self._build_app()

    def respond(self, path: str, status: int, body: Any) -> None:
        self.responses[path] = (status, body)

    def fail(self, path: str, message: str = "Internal error", status: int = 500) -> None:
        self.respond(path, status, {"message": message, "error": "Internal Server Error"})

    def paths_called(self) -> list[str]:
        return [path for path, _ in self.calls]

    def _build_app(self) -> FastAPI:
        app = FastAPI()

        @app.get("/api/portfolio/health")
        async def health():
            if not self.healthy:
                return PlainTextResponse("down", status_code=503)
            return PlainTextResponse("Portfolio API is running")

        @app.post("/api/portfolio/{path:path}")
        async def analyze(path: str, request: Request):
            endpoint = f"/{path}"
            self.calls.append((endpoint, await request.json()))
            if endpoint not in self.responses:
                return JSONResponse({"message": "Not Found"}, status_code=404)
            status, body = self.responses[endpoint]
            return JSONResponse(body, status_code=status)

        return app


@pytest.fixture
def stub_service() -> StubService:
    return StubService()


@pytest_asyncio.fixture
async def service_client(stub_service):
    """httpx client wired to the stub service."""
    transport = httpx.ASGITransport(app=stub_service.app)
    async with httpx.AsyncClient(transport=transport, base_url=STUB_BASE_URL) as client:
        yield client
