"""Orchestration Layer - Market cycle, execution gate and alert cooldown.

This module wires the price source, rebalance engine, executor, trade log and
notifier into the running monitor.
"""

from rebalancer.orchestration.cooldown import DEFAULT_ALERT_COOLDOWN, AlertCooldownTracker
from rebalancer.orchestration.orchestrator import (
    CycleOutcome,
    ExecutionOrchestrator,
    ExecutionState,
    project_optimistic_balances,
)
from rebalancer.orchestration.scheduler import (
    ConnectionStatus,
    CycleReport,
    MarketCycleScheduler,
)

__all__ = [
    # Execution
    "ExecutionOrchestrator",
    "ExecutionState",
    "CycleOutcome",
    "project_optimistic_balances",
    # Alerts
    "AlertCooldownTracker",
    "DEFAULT_ALERT_COOLDOWN",
    # Poll loop
    "MarketCycleScheduler",
    "ConnectionStatus",
    "CycleReport",
]
