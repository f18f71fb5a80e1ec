"""Execution orchestrator - gates rebalance results into trades or alerts.

Each market cycle hands the latest RebalanceResult to the orchestrator, which
decides between three outcomes:

1. No drift above threshold: nothing happens
2. Auto-execute enabled: the action batch is executed (single flight)
3. Manual-signal mode: a Telegram alert is sent, at most once per cooldown

Batch execution is modelled as a two-state machine (IDLE -> EXECUTING -> IDLE)
with one transition function; while EXECUTING any new batch request is dropped,
not queued.
"""

import threading
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, List, Optional, Sequence

from rebalancer.data.base import TradeLogStore
from rebalancer.execution.base import TradeExecutor, TradeLog
from rebalancer.notifications.base import Notifier
from rebalancer.notifications.telegram import format_rebalance_message
from rebalancer.orchestration.cooldown import AlertCooldownTracker
from rebalancer.portfolio.base import Asset, RebalanceAction, RebalanceResult, total_value
from rebalancer.utils.config import Settings
from rebalancer.utils.logging import get_logger, log_with_context

logger = get_logger(__name__)


class ExecutionState(Enum):
    """Batch execution states."""

    IDLE = "idle"
    EXECUTING = "executing"


class CycleOutcome(Enum):
    """What the orchestrator did with a rebalance result."""

    NO_ACTION = "no_action"  # Drift below threshold
    EXECUTED = "executed"  # Batch executed automatically
    SKIPPED_IN_FLIGHT = "skipped_in_flight"  # A batch is already executing
    SIGNAL_SENT = "signal_sent"  # Manual-signal alert sent
    SIGNAL_SUPPRESSED = "signal_suppressed"  # Cooldown active or notifier unconfigured


def project_optimistic_balances(assets: Sequence[Asset]) -> List[Asset]:
    """Balances the portfolio would hold if a full rebalance hit its targets.

    Approximation: assumes every trade filled exactly at the prices of the
    snapshot. Replace with reconciliation against actual fills once executors
    report authoritative fill amounts.

    Args:
        assets: Snapshot the batch was computed from

    Returns:
        New asset list with balance = total_value * target% / price
        (an unpriced asset divides by 1 instead of 0)
    """
    portfolio_value = total_value(assets)
    projected = []
    for asset in assets:
        target_usd = portfolio_value * asset.target_allocation / 100
        price = asset.price if asset.price > 0 else 1.0
        projected.append(asset.with_balance(target_usd / price))
    return projected


class ExecutionOrchestrator:
    """Owns the portfolio snapshot, the latest result and the execution gate.

    Readers (CLI, dashboards) get copies through the properties; only the
    orchestrator and its scheduler mutate the state.

    Example:
        >>> orchestrator = ExecutionOrchestrator(
        ...     settings, assets, VenueRouter(), TradeLogDatabase(path), notifier
        ... )
        >>> outcome = orchestrator.handle_result(engine.evaluate(assets, 5.0))
    """

    def __init__(
        self,
        settings: Settings,
        assets: Sequence[Asset],
        executor: TradeExecutor,
        log_store: TradeLogStore,
        notifier: Notifier,
        cooldown: Optional[AlertCooldownTracker] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize orchestrator.

        Args:
            settings: Runtime settings (threshold, auto-execute, venue)
            assets: Initial portfolio snapshot
            executor: Executes single actions on the venue
            log_store: Append-only trade log
            notifier: Alert channel
            cooldown: Alert cooldown tracker. Built from settings if None.
            clock: Current time source shared with the cooldown tracker
        """
        self.settings = settings
        self.executor = executor
        self.log_store = log_store
        self.notifier = notifier
        self.clock = clock or datetime.now
        self.cooldown = cooldown or AlertCooldownTracker(
            credentials_configured=notifier.configured,
            cooldown=timedelta(seconds=settings.alert_cooldown_seconds),
            clock=self.clock,
        )

        self._lock = threading.Lock()
        self._state = ExecutionState.IDLE
        self._assets: List[Asset] = list(assets)
        self._current_result = RebalanceResult.neutral()
        self._trade_logs: List[TradeLog] = []

    @property
    def state(self) -> ExecutionState:
        return self._state

    @property
    def is_executing(self) -> bool:
        return self._state is ExecutionState.EXECUTING

    @property
    def assets(self) -> List[Asset]:
        """Copy of the current portfolio snapshot."""
        with self._lock:
            return list(self._assets)

    @property
    def current_result(self) -> RebalanceResult:
        with self._lock:
            return self._current_result

    @property
    def trade_logs(self) -> List[TradeLog]:
        """Trade log as of the last refresh, newest first."""
        with self._lock:
            return list(self._trade_logs)

    def update_settings(self, settings: Settings) -> None:
        """Swap settings (e.g. toggling auto-execute) between cycles."""
        self.settings = settings
        self.cooldown.credentials_configured = self.notifier.configured
        self.cooldown.cooldown = timedelta(seconds=settings.alert_cooldown_seconds)

    def record_result(self, result: RebalanceResult) -> None:
        """Store a result as the current one without acting on it."""
        with self._lock:
            self._current_result = result

    def adopt_snapshot(self, assets: Sequence[Asset]) -> None:
        """Replace the portfolio snapshot with freshly priced assets."""
        with self._lock:
            self._assets = list(assets)

    def _transition(self, target: ExecutionState) -> bool:
        """Move the execution state machine.

        IDLE -> EXECUTING only succeeds from IDLE; EXECUTING -> IDLE always
        succeeds.

        Returns:
            True if the state changed to target
        """
        with self._lock:
            if target is ExecutionState.EXECUTING:
                if self._state is ExecutionState.EXECUTING:
                    return False
                self._state = ExecutionState.EXECUTING
                return True

            self._state = ExecutionState.IDLE
            return True

    def handle_result(self, result: RebalanceResult) -> CycleOutcome:
        """Act on the result of one market cycle.

        Args:
            result: Latest rebalance result (becomes current_result)

        Returns:
            CycleOutcome describing what happened

        Raises:
            Exception: Whatever the executor raised, if an automatic batch failed
        """
        self.record_result(result)

        if not result.needs_rebalance:
            return CycleOutcome.NO_ACTION

        if self.settings.auto_execute:
            if self.is_executing:
                logger.debug("Batch already in flight, dropping trigger")
                return CycleOutcome.SKIPPED_IN_FLIGHT

            receipts = self.execute_batch(result.actions, self.assets)
            if receipts is None:
                return CycleOutcome.SKIPPED_IN_FLIGHT
            return CycleOutcome.EXECUTED

        return self._send_manual_signal(result)

    def _send_manual_signal(self, result: RebalanceResult) -> CycleOutcome:
        now = self.clock()
        if not self.cooldown.can_alert(now):
            return CycleOutcome.SIGNAL_SUPPRESSED

        logger.info("Sending manual rebalance alert (deviation %.2f%%)", result.deviation)
        message = format_rebalance_message(
            self.settings.selected_venue, result.deviation, result.actions, False
        )
        if not self.notifier.send(message):
            logger.warning("Manual rebalance alert was not delivered")
        self.cooldown.record_alert(now)
        return CycleOutcome.SIGNAL_SENT

    def execute_pending(self) -> Optional[List[TradeLog]]:
        """Execute the actions of the current result ("execute now" trigger)."""
        result = self.current_result
        if not result.actions:
            logger.info("No pending rebalance actions")
            return []
        return self.execute_batch(result.actions, self.assets)

    def execute_batch(
        self,
        actions: Sequence[RebalanceAction],
        current_assets: Sequence[Asset],
    ) -> Optional[List[TradeLog]]:
        """Execute a batch of actions sequentially.

        Each action is executed and logged before the next one starts. The
        first failure is logged as a FAILED receipt, aborts the remaining
        actions and is re-raised.

        On success the snapshot is replaced with optimistically projected
        balances, the current result is cleared, the trade log is refreshed
        and a summary is sent if the notifier is configured.

        Args:
            actions: Actions to execute, in order
            current_assets: Snapshot the actions were computed from

        Returns:
            Receipts in execution order, or None if a batch was already running
        """
        if not self._transition(ExecutionState.EXECUTING):
            logger.info("Batch already executing, ignoring new request")
            return None

        try:
            logger.info("Executing rebalance batch of %d actions", len(actions))
            receipts = [self._execute_action(action) for action in actions]

            projected = project_optimistic_balances(current_assets)
            with self._lock:
                self._assets = projected
                self._current_result = RebalanceResult.neutral()

            self.refresh_trade_logs()

            if self.notifier.configured:
                message = format_rebalance_message(
                    self.settings.selected_venue, 0.0, actions, True
                )
                self.notifier.send(message)

            logger.info("Rebalance batch completed (%d trades)", len(receipts))
            return receipts
        finally:
            self._transition(ExecutionState.IDLE)

    def _execute_action(self, action: RebalanceAction) -> TradeLog:
        try:
            receipt = self.executor.execute(action, self.settings)
        except Exception as e:
            logger.error(
                "Trade failed for %s %s, aborting batch: %s",
                action.side.value,
                action.symbol,
                e,
            )
            self.log_store.append(
                TradeLog.failed(action, self.settings.selected_venue, e, self.clock())
            )
            raise

        self.log_store.append(receipt)
        log_with_context(
            logger,
            "info",
            "Trade completed",
            symbol=action.symbol,
            side=action.side.value,
            amount=f"{action.amount:.6f}",
            usd_value=f"{action.usd_value:.2f}",
            status=receipt.status.value,
        )
        return receipt

    def refresh_trade_logs(self) -> List[TradeLog]:
        """Reload the trade log view from the store."""
        logs = self.log_store.list_all()
        with self._lock:
            self._trade_logs = list(logs)
        return list(logs)
