"""Core pipeline: input normalization, request strategies, orchestration and adaptation."""

from portfolio_client.core.adapter import ResponseAdapter
from portfolio_client.core.input_normalizer import (
    RawFormInput,
    apply_suggested_start,
    normalize_input,
)
from portfolio_client.core.orchestrator import (
    AnalysisOrchestrator,
    AnalysisRun,
    AnalysisSession,
    RunState,
)
from portfolio_client.core.strategies import (
    AnalysisStrategy,
    ConsolidatedStrategy,
    LegacyStrategy,
    RawAnalysis,
    get_strategy,
)

__all__ = [
    # Input
    "RawFormInput",
    "apply_suggested_start",
    "normalize_input",
    # Strategies
    "AnalysisStrategy",
    "ConsolidatedStrategy",
    "LegacyStrategy",
    "RawAnalysis",
    "get_strategy",
    # Orchestration
    "AnalysisOrchestrator",
    "AnalysisRun",
    "AnalysisSession",
    "RunState",
    # Adaptation
    "ResponseAdapter",
]
