"""Market cycle scheduler - APScheduler driven poll loop.

This module runs the fixed-interval market cycle:
- Fetch prices for the current snapshot
- Adopt the new snapshot if at least one asset is priced, otherwise keep the
  previous one and mark the connection as down
- Evaluate drift and hand the result to the execution orchestrator

The scheduler is free-running; overlapping batch execution is prevented by the
orchestrator's execution gate, not by the timer.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

import pytz
from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED, EVENT_JOB_MAX_INSTANCES
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from rebalancer.data.base import PriceSource
from rebalancer.orchestration.orchestrator import CycleOutcome, ExecutionOrchestrator
from rebalancer.portfolio.base import RebalanceResult
from rebalancer.portfolio.rebalance_engine import RebalanceEngine
from rebalancer.utils.logging import get_logger

logger = get_logger(__name__)

MARKET_CYCLE_JOB_ID = "market_cycle"


class ConnectionStatus(Enum):
    """Health of the price feed as seen by the last cycle."""

    CONNECTED = "CONNECTED"
    DISCONNECTED = "DISCONNECTED"


@dataclass
class CycleReport:
    """Summary of one market cycle.

    Attributes:
        connection: Price feed health after this cycle
        result: Rebalance result computed this cycle
        outcome: What the orchestrator did, None if it raised
        error: Error text if the cycle's batch failed
        timestamp: When the cycle finished
    """

    connection: ConnectionStatus
    result: RebalanceResult
    outcome: Optional[CycleOutcome] = None
    error: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)


class MarketCycleScheduler:
    """APScheduler wrapper for the market cycle.

    Example:
        >>> scheduler = MarketCycleScheduler(orchestrator, MarketPriceProvider())
        >>> scheduler.start()
        >>> ...
        >>> scheduler.stop()
    """

    def __init__(
        self,
        orchestrator: ExecutionOrchestrator,
        price_source: PriceSource,
        engine: Optional[RebalanceEngine] = None,
        config: Optional[dict] = None,
    ):
        """Initialize market cycle scheduler.

        Args:
            orchestrator: Execution orchestrator owning the snapshot
            price_source: Source of fresh prices
            engine: Rebalance engine. Built from the orchestrator settings if None.
            config: Scheduler settings
                - coalesce: Combine missed runs (default: True)
                - max_instances: Max concurrent cycle runs (default: 1)
                - misfire_grace_time: Seconds a late run may still start (default: 5)
        """
        config = config or {}
        self.config = config
        self.orchestrator = orchestrator
        self.price_source = price_source
        self.engine = engine or RebalanceEngine(
            {"dust_threshold_usd": orchestrator.settings.dust_threshold_usd}
        )
        self.connection_status = ConnectionStatus.CONNECTED
        self.last_report: Optional[CycleReport] = None

        self.scheduler = BackgroundScheduler(
            timezone=pytz.utc,
            job_defaults={
                "coalesce": config.get("coalesce", True),
                "max_instances": config.get("max_instances", 1),
                "misfire_grace_time": config.get("misfire_grace_time", 5),
            },
        )
        self.scheduler.add_listener(
            self._on_job_event,
            EVENT_JOB_EXECUTED | EVENT_JOB_ERROR | EVENT_JOB_MAX_INSTANCES,
        )

    def run_cycle(self, act: bool = True) -> CycleReport:
        """Run one market cycle.

        Never raises: price-feed failures mark the connection as down and keep
        the previous snapshot, batch failures are logged and reported. The next
        tick retries automatically.

        Args:
            act: Hand the result to the orchestrator. With act=False the result
                only becomes the current result; nothing is executed or sent.

        Returns:
            CycleReport for this cycle
        """
        settings = self.orchestrator.settings
        snapshot = self.orchestrator.assets

        try:
            fetched = self.price_source.fetch(snapshot, settings.selected_venue)
        except Exception as e:
            logger.error("Market refresh failed: %s", e)
            fetched = []

        if any(asset.price > 0 for asset in fetched):
            self.connection_status = ConnectionStatus.CONNECTED
            self.orchestrator.adopt_snapshot(fetched)
        else:
            self.connection_status = ConnectionStatus.DISCONNECTED
            logger.warning("No usable prices this cycle, keeping previous snapshot")

        result = self.engine.evaluate(self.orchestrator.assets, settings.delta_threshold)
        report = CycleReport(connection=self.connection_status, result=result)

        if act:
            try:
                report.outcome = self.orchestrator.handle_result(result)
            except Exception as e:
                logger.error("Rebalance batch failed: %s", e, exc_info=True)
                report.error = str(e)
        else:
            self.orchestrator.record_result(result)

        logger.debug(
            "Cycle finished: connection=%s deviation=%.2f%% outcome=%s",
            report.connection.value,
            result.deviation,
            report.outcome.value if report.outcome else report.error or "observed",
        )
        self.last_report = report
        return report

    def _on_job_event(self, event):
        """Event listener for cycle execution, errors and overlaps."""
        if event.code == EVENT_JOB_MAX_INSTANCES:
            logger.debug("Previous market cycle still running, tick skipped")
        elif getattr(event, "exception", None):
            logger.error(
                "Job '%s' raised exception: %s",
                event.job_id,
                event.exception,
                exc_info=event.exception,
            )

    def start(self, run_immediately: bool = True):
        """Start the poll loop (non-blocking).

        Args:
            run_immediately: Run the first cycle now instead of after one interval
        """
        if self.scheduler.running:
            logger.warning("Scheduler already running")
            return

        interval = self.orchestrator.settings.poll_interval_seconds
        job_args = {}
        if run_immediately:
            # next_run_time=None would add the job paused, so only pass it when set
            job_args["next_run_time"] = datetime.now(pytz.utc)

        self.scheduler.add_job(
            func=self.run_cycle,
            trigger=IntervalTrigger(seconds=interval, timezone=pytz.utc),
            id=MARKET_CYCLE_JOB_ID,
            name=MARKET_CYCLE_JOB_ID,
            replace_existing=True,
            **job_args,
        )
        self.scheduler.start()
        logger.info("Market cycle started (every %.1fs)", interval)

    def stop(self):
        """Stop scheduling new cycles.

        Waits for an in-flight cycle (including its batch) to finish.
        """
        if not self.scheduler.running:
            logger.warning("Scheduler not running")
            return

        logger.info("Shutting down market cycle...")
        self.scheduler.shutdown(wait=True)
        logger.info("Market cycle stopped")

    def is_running(self) -> bool:
        return self.scheduler.running
