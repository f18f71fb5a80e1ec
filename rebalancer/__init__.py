"""Crypto portfolio rebalancer.

Monitors drift between current and target allocations, proposes the trades
that restore the targets and either executes them on the selected venue or
sends a manual rebalance signal.
"""

__version__ = "0.1.0"
