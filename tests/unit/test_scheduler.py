"""Unit tests for MarketCycleScheduler.

The price source and orchestrator collaborators are mocked; APScheduler is
only started in the lifecycle tests.
"""

import threading
import time
from dataclasses import replace
from unittest.mock import Mock, patch

import pytest

from rebalancer.data.base import PriceSource, TradeLogStore
from rebalancer.execution.base import TradeExecutor
from rebalancer.orchestration.orchestrator import CycleOutcome, ExecutionOrchestrator
from rebalancer.orchestration.scheduler import (
    MARKET_CYCLE_JOB_ID,
    ConnectionStatus,
    MarketCycleScheduler,
)
from rebalancer.portfolio.base import RebalanceResult


@pytest.fixture
def orchestrator(settings, scenario_assets, notifier):
    log_store = Mock(spec=TradeLogStore)
    log_store.list_all.return_value = []
    return ExecutionOrchestrator(
        settings=settings,
        assets=scenario_assets,
        executor=Mock(spec=TradeExecutor),
        log_store=log_store,
        notifier=notifier,
    )


@pytest.fixture
def price_source(scenario_assets):
    """Price source returning the snapshot with BTC up 10%."""
    source = Mock(spec=PriceSource)
    source.fetch.side_effect = lambda assets, venue: [
        a.with_price(a.price * 1.1) if a.symbol == "BTC" else a for a in assets
    ]
    return source


@pytest.fixture
def scheduler(orchestrator, price_source):
    return MarketCycleScheduler(orchestrator, price_source)


class TestMarketCycleSchedulerInit:
    """Test scheduler initialization."""

    def test_init_defaults(self, scheduler, settings):
        """Test default job settings and engine."""
        assert scheduler.connection_status is ConnectionStatus.CONNECTED
        assert scheduler.last_report is None
        assert scheduler.engine.dust_threshold_usd == settings.dust_threshold_usd
        assert scheduler.is_running() is False

    def test_init_with_config(self, orchestrator, price_source):
        """Test custom scheduler configuration is kept."""
        config = {"coalesce": False, "max_instances": 1, "misfire_grace_time": 2}

        scheduler = MarketCycleScheduler(orchestrator, price_source, config=config)

        assert scheduler.config == config


class TestRunCycle:
    """Test a single market cycle."""

    def test_connected_cycle_adopts_snapshot(self, scheduler, orchestrator, price_source):
        """Test fresh prices replace the snapshot."""
        report = scheduler.run_cycle()

        assert report.connection is ConnectionStatus.CONNECTED
        assert orchestrator.assets[0].price == pytest.approx(66000.0)
        price_source.fetch.assert_called_once()

    def test_fetch_uses_selected_venue(self, scheduler, price_source, settings):
        """Test the venue from settings is passed to the price source."""
        scheduler.run_cycle()

        assert price_source.fetch.call_args.args[1] is settings.selected_venue

    def test_result_evaluated_on_new_snapshot(self, scheduler, orchestrator):
        """Test the engine sees the adopted prices."""
        report = scheduler.run_cycle()

        # BTC at 66000: 33000 / 91000 = 36.26% vs 33% target, XAUT 28.57% vs 33%
        assert report.result.deviation == pytest.approx(4.4286, abs=1e-3)
        assert orchestrator.current_result == report.result

    def test_no_prices_keeps_previous_snapshot(self, scheduler, orchestrator, price_source):
        """Test an all-unpriced fetch marks the feed down and keeps the snapshot."""
        before = orchestrator.assets
        price_source.fetch.side_effect = lambda assets, venue: [
            a.with_price(0.0) for a in assets
        ]

        report = scheduler.run_cycle()

        assert report.connection is ConnectionStatus.DISCONNECTED
        assert scheduler.connection_status is ConnectionStatus.DISCONNECTED
        assert orchestrator.assets == before

    def test_fetch_exception_degrades_connection(self, scheduler, orchestrator, price_source):
        """Test a raising price source is treated as no prices."""
        before = orchestrator.assets
        price_source.fetch.side_effect = RuntimeError("timeout")

        report = scheduler.run_cycle()

        assert report.connection is ConnectionStatus.DISCONNECTED
        assert orchestrator.assets == before
        assert report.outcome is CycleOutcome.NO_ACTION

    def test_connection_recovers(self, scheduler, price_source, scenario_assets):
        """Test the next priced fetch marks the feed up again."""
        price_source.fetch.side_effect = [[], scenario_assets]

        assert scheduler.run_cycle().connection is ConnectionStatus.DISCONNECTED
        assert scheduler.run_cycle().connection is ConnectionStatus.CONNECTED

    def test_outcome_reported(self, scheduler):
        """Test the orchestrator outcome is recorded in the report."""
        report = scheduler.run_cycle()

        assert report.outcome is CycleOutcome.NO_ACTION
        assert report.error is None
        assert scheduler.last_report is report

    def test_batch_failure_captured(self, scheduler, orchestrator):
        """Test a failing batch is reported without raising."""
        with patch.object(
            orchestrator, "handle_result", side_effect=RuntimeError("venue down")
        ):
            report = scheduler.run_cycle()

        assert report.outcome is None
        assert report.error == "venue down"

    def test_uses_injected_engine(self, orchestrator, price_source):
        """Test a custom engine is used for evaluation."""
        engine = Mock()
        engine.evaluate.return_value = RebalanceResult.neutral()
        scheduler = MarketCycleScheduler(orchestrator, price_source, engine=engine)

        report = scheduler.run_cycle()

        engine.evaluate.assert_called_once()
        assert engine.evaluate.call_args.args[1] == orchestrator.settings.delta_threshold
        assert report.result == RebalanceResult.neutral()

    def test_observe_only_cycle(self, orchestrator, price_source):
        """Test act=False stores the result without handing it to the orchestrator."""
        scheduler = MarketCycleScheduler(orchestrator, price_source)

        with patch.object(orchestrator, "handle_result") as handle_result:
            report = scheduler.run_cycle(act=False)

        handle_result.assert_not_called()
        assert report.outcome is None
        assert report.error is None
        assert orchestrator.current_result == report.result
        assert orchestrator.assets[0].price == pytest.approx(66000.0)


class TestSchedulerLifecycle:
    """Test start and stop."""

    def test_start_and_stop(self, scheduler):
        """Test the poll job is registered and removed with the scheduler."""
        scheduler.start(run_immediately=False)
        try:
            assert scheduler.is_running() is True
            job = scheduler.scheduler.get_job(MARKET_CYCLE_JOB_ID)
            assert job is not None
            assert job.trigger.interval.total_seconds() == 5.0
        finally:
            scheduler.stop()

        assert scheduler.is_running() is False

    def test_start_twice_is_noop(self, scheduler):
        """Test starting a running scheduler does not add a second job."""
        scheduler.start(run_immediately=False)
        try:
            scheduler.start(run_immediately=False)
            assert len(scheduler.scheduler.get_jobs()) == 1
        finally:
            scheduler.stop()

    def test_stop_when_not_running(self, scheduler):
        """Test stopping an idle scheduler is harmless."""
        scheduler.stop()
        assert scheduler.is_running() is False

    def test_stop_waits_for_in_flight_cycle(
        self, settings, scenario_assets, notifier, price_source
    ):
        """Test stop lets the running cycle finish and schedules no further ticks."""
        fast = replace(settings, poll_interval_seconds=0.05)
        log_store = Mock(spec=TradeLogStore)
        log_store.list_all.return_value = []
        orchestrator = ExecutionOrchestrator(
            settings=fast,
            assets=scenario_assets,
            executor=Mock(spec=TradeExecutor),
            log_store=log_store,
            notifier=notifier,
        )

        fetch_started = threading.Event()
        release_fetch = threading.Event()
        repriced = price_source.fetch.side_effect

        def blocking_fetch(assets, venue):
            fetch_started.set()
            assert release_fetch.wait(timeout=5)
            return repriced(assets, venue)

        price_source.fetch.side_effect = blocking_fetch
        scheduler = MarketCycleScheduler(orchestrator, price_source)

        scheduler.start()
        assert fetch_started.wait(timeout=5)

        stopper = threading.Thread(target=scheduler.stop)
        stopper.start()
        stopper.join(timeout=0.2)
        assert stopper.is_alive()
        assert scheduler.last_report is None

        release_fetch.set()
        stopper.join(timeout=5)
        assert not stopper.is_alive()

        report = scheduler.last_report
        assert report is not None
        assert report.outcome is CycleOutcome.NO_ACTION
        assert orchestrator.current_result == report.result
        assert orchestrator.assets[0].price == pytest.approx(66000.0)

        time.sleep(0.2)
        assert price_source.fetch.call_count == 1
        assert scheduler.is_running() is False
