"""Pydantic models for analysis service requests and responses."""

from portfolio_client.models.request import AnalysisRequest
from portfolio_client.models.responses import (
    AnalysisReportPayload,
    ChartPayload,
    FullAnalysisResponse,
    PortfolioDataPayload,
    ReportSummaryPayload,
    StockReturnPayload,
)

__all__ = [
    # Request
    "AnalysisRequest",
    # Responses
    "AnalysisReportPayload",
    "ChartPayload",
    "FullAnalysisResponse",
    "PortfolioDataPayload",
    "ReportSummaryPayload",
    "StockReturnPayload",
]
