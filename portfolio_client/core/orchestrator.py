"""Analysis run orchestration.

One ``AnalysisOrchestrator`` drives a run through its state machine:

    IDLE -> VALIDATING -> REQUESTING -> ADAPTING -> READY
              |              |
              v              v
             IDLE          FAILED

Each run that reaches REQUESTING takes a new token from the
``AnalysisSession``. Only the run holding the latest token may replace the
session's current result; responses of superseded runs are discarded.
"""

import logging
from dataclasses import dataclass, field, replace
from enum import Enum

import httpx

from portfolio_client.config import ClientConfig
from portfolio_client.core.adapter import ResponseAdapter
from portfolio_client.core.client import get_client
from portfolio_client.core.fallback import derive_comparison_chart, derive_cumulative_chart
from portfolio_client.core.input_normalizer import RawFormInput, normalize_input
from portfolio_client.core.strategies import AnalysisStrategy, RawAnalysis, get_strategy
from portfolio_client.domain.entities.allocation import WeightAllocation
from portfolio_client.domain.entities.result import AnalysisResult
from portfolio_client.exceptions import (
    AdaptationWarning,
    AnalysisError,
    InvalidTransitionError,
    PortfolioClientError,
    ValidationError,
)
from portfolio_client.models.request import AnalysisRequest

logger = logging.getLogger(__name__)


# ============================================================================
# Run state machine
# ============================================================================


class RunState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    REQUESTING = "requesting"
    ADAPTING = "adapting"
    READY = "ready"
    FAILED = "failed"


ALLOWED_TRANSITIONS: dict[RunState, frozenset[RunState]] = {
    RunState.IDLE: frozenset({RunState.VALIDATING}),
    RunState.VALIDATING: frozenset({RunState.REQUESTING, RunState.IDLE}),
    RunState.REQUESTING: frozenset({RunState.ADAPTING, RunState.FAILED}),
    RunState.ADAPTING: frozenset({RunState.READY}),
    RunState.READY: frozenset(),
    RunState.FAILED: frozenset(),
}


@dataclass
class AnalysisRun:
    """Lifecycle record of one submission.

    Attributes:
        state: Current state
        run_id: Session token, assigned on entering REQUESTING (0 before)
        history: Every state the run has been in, in order
        error: Failure that ended the run (validation or analysis), if any
        result: Adapted result once READY
    """

    state: RunState = RunState.IDLE
    run_id: int = 0
    history: list[RunState] = field(default_factory=lambda: [RunState.IDLE])
    error: PortfolioClientError | None = None
    result: AnalysisResult | None = None

    @property
    def is_terminal(self) -> bool:
        return not ALLOWED_TRANSITIONS[self.state]

    def transition(self, target: RunState) -> None:
        """Move to ``target``.

        Raises:
            InvalidTransitionError: if the move is not allowed from the current state
        """
        if target not in ALLOWED_TRANSITIONS[self.state]:
            raise InvalidTransitionError(
                f"Cannot move run from {self.state.value} to {target.value}"
            )
        logger.debug(f"[run {self.run_id}] {self.state.value} -> {target.value}")
        self.state = target
        self.history.append(target)


# ============================================================================
# Session
# ============================================================================


class AnalysisSession:
    """Holds the run-sequence token and the currently displayed result."""

    def __init__(self):
        self._token = 0
        self._current: AnalysisResult | None = None
        self._last_error: AnalysisError | None = None

    @property
    def latest_run_id(self) -> int:
        return self._token

    @property
    def current(self) -> AnalysisResult | None:
        """Latest committed result (an immutable snapshot)."""
        return self._current

    @property
    def last_error(self) -> AnalysisError | None:
        """Failure of the latest run, cleared when a newer run commits."""
        return self._last_error

    def begin_run(self) -> int:
        """Issue a new token; every earlier run becomes stale."""
        self._token += 1
        return self._token

    def is_current(self, run_id: int) -> bool:
        return run_id == self._token

    def commit(self, run_id: int, result: AnalysisResult) -> bool:
        """Replace the current result if ``run_id`` is still the latest token.

        Returns:
            True if the result was committed, False if the run was stale
        """
        if not self.is_current(run_id):
            logger.warning(
                f"Discarding result of stale run {run_id} (latest is {self._token})"
            )
            return False
        self._current = result
        self._last_error = None
        return True

    def record_failure(self, run_id: int, error: AnalysisError) -> bool:
        """Remember the failure of the latest run; stale failures are ignored."""
        if not self.is_current(run_id):
            logger.warning(f"Discarding failure of stale run {run_id}: {error.message}")
            return False
        self._last_error = error
        return True


# ============================================================================
# Orchestrator
# ============================================================================


def apply_fallback(raw: RawAnalysis) -> RawAnalysis:
    """Recover from failed follow-up chart calls.

    A failed cumulative or comparison call rebuilds both charts from the
    primary result and drops amount and drawdown data. A failed amount call
    alone leaves everything else as fetched. Either way the run is degraded.
    """
    if not raw.failed_charts:
        return raw

    if raw.failed_charts & {"cumulative", "comparison"}:
        logger.warning(
            f"Deriving cumulative and comparison charts locally "
            f"(failed: {', '.join(sorted(raw.failed_charts))})"
        )
        warnings = list(raw.warnings)
        warnings.append(
            AdaptationWarning("fallback", "charts derived locally from the primary result")
        )
        return replace(
            raw,
            time_series=derive_cumulative_chart(raw.portfolio_data),
            comparison=derive_comparison_chart(raw.portfolio_data),
            amount=None,
            include_drawdown=False,
            degraded=True,
            warnings=warnings,
        )

    return replace(raw, degraded=True)


class AnalysisOrchestrator:
    """Runs analyses with one configured strategy and commits results to a session.

    Args:
        strategy: Request strategy used for every run
        client: httpx client pointed at the analysis service
        session: Session holding the run token and current result
        adapter: Response adapter (default: ResponseAdapter())
    """

    def __init__(
        self,
        strategy: AnalysisStrategy,
        client: httpx.AsyncClient,
        session: AnalysisSession | None = None,
        adapter: ResponseAdapter | None = None,
    ):
        self.strategy = strategy
        self.client = client
        self.session = session or AnalysisSession()
        self.adapter = adapter or ResponseAdapter()

    @classmethod
    def from_config(cls, config: ClientConfig | None = None) -> "AnalysisOrchestrator":
        """Orchestrator with the configured strategy and a fresh httpx client."""
        config = config or ClientConfig.from_env()
        return cls(strategy=get_strategy(config.strategy), client=get_client(config))

    async def aclose(self) -> None:
        await self.client.aclose()

    async def analyze(self, request: AnalysisRequest, run_id: int = 0) -> AnalysisResult:
        """Fetch, recover and adapt one validated request.

        Does not touch the session.

        Raises:
            DateRangeMismatch: if the tickers' histories start on different dates
            ServiceError: for any other fatal failure
        """
        raw = await self.strategy.fetch(self.client, request)
        raw = apply_fallback(raw)
        return self.adapter.adapt(raw, request, run_id=run_id)

    async def run(
        self, form: RawFormInput, allocation: WeightAllocation | None = None
    ) -> AnalysisRun:
        """Take one submission through the full state machine.

        Validation and analysis failures end the run (IDLE or FAILED) and are
        recorded on it rather than raised. The result is committed to the
        session only if no newer run started meanwhile.
        """
        run = AnalysisRun()
        run.transition(RunState.VALIDATING)
        try:
            request = normalize_input(form, allocation)
        except ValidationError as e:
            logger.info(f"Validation failed ({e.field}): {e.message}")
            run.error = e
            run.transition(RunState.IDLE)
            return run

        run.run_id = self.session.begin_run()
        run.transition(RunState.REQUESTING)
        logger.info(
            f"[run {run.run_id}] Submitting analysis for {len(request.tickers)} tickers "
            f"via {self.strategy.name} strategy..."
        )
        try:
            raw = await self.strategy.fetch(self.client, request)
        except AnalysisError as e:
            logger.error(f"[run {run.run_id}] Analysis failed: {e.message}")
            run.error = e
            run.transition(RunState.FAILED)
            self.session.record_failure(run.run_id, e)
            return run

        run.transition(RunState.ADAPTING)
        raw = apply_fallback(raw)
        result = self.adapter.adapt(raw, request, run_id=run.run_id)
        run.result = result
        run.transition(RunState.READY)

        if self.session.commit(run.run_id, result):
            logger.info(
                f"[run {run.run_id}] Analysis ready "
                f"({len(result.warnings)} warnings{', degraded' if result.degraded else ''})"
            )
        return run
