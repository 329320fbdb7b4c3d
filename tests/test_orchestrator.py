"""Tests for portfolio_client.core.orchestrator module."""

import asyncio

import pytest

from conftest import portfolio_data
from portfolio_client.config import ClientConfig
from portfolio_client.core.fallback import derive_comparison_chart, derive_cumulative_chart
from portfolio_client.core.input_normalizer import RawFormInput, normalize_input
from portfolio_client.core.orchestrator import (
    AnalysisOrchestrator,
    AnalysisRun,
    AnalysisSession,
    RunState,
    apply_fallback,
)
from portfolio_client.core.strategies import (
    AnalysisStrategy,
    ConsolidatedStrategy,
    LegacyStrategy,
    RawAnalysis,
)
from portfolio_client.exceptions import (
    DateRangeMismatch,
    InvalidTransitionError,
    ServiceError,
)
from portfolio_client.models.responses import PortfolioDataPayload

MISMATCH_MESSAGE = (
    "Stock data has different start dates. Please align them. "
    "The latest start date is 2022-03-01."
)


def form(**overrides) -> RawFormInput:
    values = {"tickers": "AAPL,MSFT", "start_date": "2023-01-01", "end_date": "2023-12-31"}
    values.update(overrides)
    return RawFormInput(**values)


class GatedStrategy(AnalysisStrategy):
    """Strategy whose fetches block until released, one gate per call."""

    def __init__(self):
        self.gates: list[asyncio.Event] = []
        self.started = asyncio.Event()

    @property
    def name(self) -> str:
        return "gated"

    async def fetch(self, client, request) -> RawAnalysis:
        gate = asyncio.Event()
        self.gates.append(gate)
        self.started.set()
        await gate.wait()
        data = portfolio_data(tuple(request.tickers))
        return RawAnalysis(
            strategy=self.name,
            portfolio_data=PortfolioDataPayload.model_validate(data),
        )


class TestAnalysisRun:
    """Tests for the run state machine."""

    def test_happy_path(self) -> None:
        run = AnalysisRun()
        for state in (RunState.VALIDATING, RunState.REQUESTING, RunState.ADAPTING, RunState.READY):
            run.transition(state)
        assert run.history == [
            RunState.IDLE,
            RunState.VALIDATING,
            RunState.REQUESTING,
            RunState.ADAPTING,
            RunState.READY,
        ]
        assert run.is_terminal

    def test_validation_failure_returns_to_idle(self) -> None:
        run = AnalysisRun()
        run.transition(RunState.VALIDATING)
        run.transition(RunState.IDLE)
        assert run.state is RunState.IDLE

    @pytest.mark.parametrize(
        "path",
        [
            [RunState.REQUESTING],
            [RunState.VALIDATING, RunState.READY],
            [RunState.VALIDATING, RunState.REQUESTING, RunState.READY],
            [RunState.VALIDATING, RunState.REQUESTING, RunState.FAILED, RunState.IDLE],
        ],
    )
    def test_illegal_transitions_raise(self, path) -> None:
        run = AnalysisRun()
        with pytest.raises(InvalidTransitionError):
            for state in path:
                run.transition(state)


class TestAnalysisSession:
    """Tests for the run-sequence token."""

    def test_only_latest_run_commits(self) -> None:
        session = AnalysisSession()
        first = session.begin_run()
        second = session.begin_run()
        assert session.commit(first, object()) is False
        assert session.current is None
        assert session.commit(second, "result") is True
        assert session.current == "result"

    def test_stale_failure_is_ignored(self) -> None:
        session = AnalysisSession()
        first = session.begin_run()
        session.begin_run()
        assert session.record_failure(first, ServiceError("late")) is False
        assert session.last_error is None


class TestApplyFallback:
    """Tests for degraded legacy recovery."""

    def _raw(self, **overrides) -> RawAnalysis:
        values = {
            "strategy": "legacy",
            "portfolio_data": PortfolioDataPayload.model_validate(portfolio_data()),
        }
        values.update(overrides)
        return RawAnalysis(**values)

    def test_untouched_without_failures(self) -> None:
        raw = self._raw()
        assert apply_fallback(raw) is raw

    def test_cumulative_failure_derives_both_charts(self) -> None:
        raw = apply_fallback(self._raw(failed_charts={"cumulative"}))
        assert raw.degraded
        assert list(raw.time_series.series) == ["Portfolio", "AAPL", "MSFT"]
        assert raw.comparison.labels == ["Portfolio", "AAPL", "MSFT"]
        assert raw.amount is None
        assert raw.include_drawdown is False

    def test_amount_failure_only_degrades(self) -> None:
        raw = apply_fallback(self._raw(failed_charts={"amount"}))
        assert raw.degraded
        assert raw.include_drawdown is True
        assert raw.time_series is None

    def test_derived_charts(self) -> None:
        data = PortfolioDataPayload.model_validate(portfolio_data())
        cumulative = derive_cumulative_chart(data)
        comparison = derive_comparison_chart(data)
        assert cumulative.dates == ["2023-01-03", "2023-01-04", "2023-01-05"]
        assert comparison.series["Price Return"] == [0.15, 0.1, 0.2]
        assert comparison.series["Total Return"] == [0.17, 0.12, 0.22]


class TestOrchestratorRun:
    """End-to-end runs against the stub service."""

    @pytest.mark.asyncio
    async def test_consolidated_run_reaches_ready(self, service_client) -> None:
        orchestrator = AnalysisOrchestrator(ConsolidatedStrategy(), service_client)
        run = await orchestrator.run(form(initial_amount="1000"))

        assert run.state is RunState.READY
        assert run.run_id == 1
        assert orchestrator.session.current is run.result
        assert run.result.has_amount
        assert run.result.report.best_performing_stock == "MSFT"

    @pytest.mark.asyncio
    async def test_validation_failure_sends_nothing(self, stub_service, service_client) -> None:
        orchestrator = AnalysisOrchestrator(ConsolidatedStrategy(), service_client)
        run = await orchestrator.run(form(tickers=""))

        assert run.state is RunState.IDLE
        assert run.run_id == 0
        assert run.error.field == "tickers"
        assert stub_service.calls == []
        assert orchestrator.session.latest_run_id == 0

    @pytest.mark.asyncio
    async def test_date_mismatch_fails_run(self, stub_service, service_client) -> None:
        stub_service.respond("/analyze/all", 400, {"message": MISMATCH_MESSAGE})
        orchestrator = AnalysisOrchestrator(ConsolidatedStrategy(), service_client)
        run = await orchestrator.run(form())

        assert run.state is RunState.FAILED
        assert isinstance(run.error, DateRangeMismatch)
        assert run.error.suggested_start_date == "2022-03-01"
        assert orchestrator.session.last_error is run.error
        assert orchestrator.session.current is None

    @pytest.mark.asyncio
    async def test_legacy_amount_only_failure(self, stub_service, service_client) -> None:
        stub_service.fail("/chart/amount", "amount failed")
        orchestrator = AnalysisOrchestrator(LegacyStrategy(), service_client)
        run = await orchestrator.run(form(initial_amount="1000"))

        assert run.state is RunState.READY
        result = run.result
        assert result.amount_series is None
        assert result.degraded
        assert result.portfolio_series.names
        assert len(result.comparison_series) == 2
        assert result.has_drawdown
        assert [w.source for w in result.warnings] == ["amount"]

    @pytest.mark.asyncio
    async def test_legacy_comparison_failure_uses_local_charts(
        self, stub_service, service_client
    ) -> None:
        stub_service.fail("/chart/comparison")
        orchestrator = AnalysisOrchestrator(LegacyStrategy(), service_client)
        run = await orchestrator.run(form(initial_amount="1000"))

        result = run.result
        assert run.state is RunState.READY
        assert result.degraded
        assert [r.ticker for r in result.comparison_series] == ["Portfolio", "AAPL", "MSFT"]
        assert result.portfolio_series.names[0] == "Portfolio"
        assert result.amount_series is None
        assert result.drawdown_series is None

    @pytest.mark.asyncio
    async def test_legacy_primary_failure(self, stub_service, service_client) -> None:
        stub_service.fail("/analyze", "boom")
        orchestrator = AnalysisOrchestrator(LegacyStrategy(), service_client)
        run = await orchestrator.run(form())

        assert run.state is RunState.FAILED
        assert run.error.message == "boom"

    @pytest.mark.asyncio
    async def test_analyze_does_not_touch_session(self, service_client) -> None:
        orchestrator = AnalysisOrchestrator(ConsolidatedStrategy(), service_client)
        result = await orchestrator.analyze(normalize_input(form()))
        assert result.run_id == 0
        assert orchestrator.session.current is None


class TestStaleRuns:
    """Superseded runs never replace the current result."""

    @pytest.mark.asyncio
    async def test_older_response_arriving_last_is_discarded(self) -> None:
        strategy = GatedStrategy()
        orchestrator = AnalysisOrchestrator(strategy, client=None)

        first = asyncio.create_task(orchestrator.run(form(tickers="AAPL")))
        await strategy.started.wait()
        strategy.started.clear()
        second = asyncio.create_task(orchestrator.run(form(tickers="MSFT")))
        await strategy.started.wait()

        # Newer run finishes first
        strategy.gates[1].set()
        second_run = await second
        strategy.gates[0].set()
        first_run = await first

        assert first_run.state is RunState.READY
        assert second_run.state is RunState.READY
        current = orchestrator.session.current
        assert current is second_run.result
        assert current.run_id == 2
        assert [m.ticker for m in current.per_ticker_metrics][1:] == ["MSFT"]


class TestFromConfig:
    """Tests for building an orchestrator from configuration."""

    @pytest.mark.asyncio
    async def test_uses_configured_strategy(self) -> None:
        orchestrator = AnalysisOrchestrator.from_config(
            ClientConfig(base_url="http://example.test/api/portfolio/", strategy="legacy")
        )
        try:
            assert isinstance(orchestrator.strategy, LegacyStrategy)
            assert str(orchestrator.client.base_url) == "http://example.test/api/portfolio/"
        finally:
            await orchestrator.aclose()
