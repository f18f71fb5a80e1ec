"""Command line interface for the rebalancer.

Usage:
    rebalancer run                 # poll every few seconds until Ctrl+C
    rebalancer status              # one market cycle, print allocations
    rebalancer execute             # one market cycle, then execute pending actions
    rebalancer history -l 20       # trade log, newest first
    rebalancer --simulated status  # random-walk prices instead of live feeds
"""

import sys
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import click
from rich.console import Console
from rich.table import Table
from rich.text import Text

from rebalancer.data.providers import MarketPriceProvider, SimulatedPriceProvider
from rebalancer.data.storage import TradeLogDatabase
from rebalancer.execution.base import TradeStatus, Venue
from rebalancer.execution.venue_router import VenueRouter
from rebalancer.notifications.telegram import TelegramNotifier
from rebalancer.orchestration.orchestrator import ExecutionOrchestrator
from rebalancer.orchestration.scheduler import (
    ConnectionStatus,
    CycleReport,
    MarketCycleScheduler,
)
from rebalancer.portfolio.base import current_allocation_percent, total_value
from rebalancer.utils.config import load_assets, load_config, load_settings
from rebalancer.utils.exceptions import RebalancerError
from rebalancer.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)

console = Console()


@dataclass
class Monitor:
    """Fully wired rebalancer components."""

    orchestrator: ExecutionOrchestrator
    scheduler: MarketCycleScheduler
    log_store: TradeLogDatabase


def build_monitor(
    config_path: Optional[str],
    env_file: Optional[str],
    simulated: bool,
    log_level: Optional[str] = None,
) -> Monitor:
    """Load configuration, set up logging and wire every component together.

    Args:
        config_path: YAML configuration file (default: config/default.yaml)
        env_file: Credentials .env file (default: .env)
        simulated: Use random-walk prices instead of live feeds
        log_level: Overrides logging.level from the configuration

    Raises:
        ConfigurationError: If configuration is invalid
    """
    config = load_config(config_path)
    setup_logging(
        level=log_level or config.get("logging.level", "INFO"),
        log_file=config.get("logging.file"),
    )

    settings = load_settings(config, env_file)
    assets = load_assets(config)
    if settings.has_signing_key and settings.selected_venue is Venue.HYPERLIQUID:
        logger.warning(
            "Signing key set for HYPERLIQUID, but orders are posted unsigned; "
            "the exchange will reject them and each batch aborts on its first trade"
        )

    log_store = TradeLogDatabase(settings.database_path)
    notifier = TelegramNotifier(settings.telegram_bot_token, settings.telegram_chat_id)
    orchestrator = ExecutionOrchestrator(
        settings=settings,
        assets=assets,
        executor=VenueRouter(),
        log_store=log_store,
        notifier=notifier,
    )
    orchestrator.refresh_trade_logs()

    price_source = SimulatedPriceProvider() if simulated else MarketPriceProvider()
    scheduler = MarketCycleScheduler(
        orchestrator, price_source, config=config.get("scheduler", {})
    )

    logger.info(
        "Monitor ready: %d assets, venue=%s, mode=%s, threshold=%.2f%%",
        len(assets),
        settings.selected_venue.value,
        "AUTO-TRADING" if settings.auto_execute else "MANUAL SIGNAL",
        settings.delta_threshold,
    )
    return Monitor(orchestrator=orchestrator, scheduler=scheduler, log_store=log_store)


def create_allocation_table(monitor: Monitor, report: Optional[CycleReport]) -> Table:
    """Asset allocation versus target."""
    orchestrator = monitor.orchestrator
    settings = orchestrator.settings
    assets = orchestrator.assets
    portfolio_value = total_value(assets)

    table = Table(title="Portfolio Allocation", show_header=True, header_style="bold magenta")
    table.add_column("Asset", style="cyan", no_wrap=True)
    table.add_column("Price", justify="right")
    table.add_column("Balance", justify="right")
    table.add_column("Value", justify="right")
    table.add_column("Current", justify="right")
    table.add_column("Target", justify="right")
    table.add_column("Drift", justify="right")

    for asset in assets:
        allocation = current_allocation_percent(asset, portfolio_value)
        drift = allocation - asset.target_allocation
        drift_style = "red" if abs(drift) >= settings.delta_threshold else "green"
        table.add_row(
            f"{asset.symbol} ({asset.name})",
            f"${asset.price:,.2f}" if asset.price > 0 else "n/a",
            f"{asset.balance:,.6f}",
            f"${asset.usd_value:,.2f}",
            f"{allocation:.2f}%",
            f"{asset.target_allocation:g}%",
            Text(f"{drift:+.2f}%", style=drift_style),
        )

    result = orchestrator.current_result
    table.caption = (
        f"Total equity ${portfolio_value:,.0f} | "
        f"Max drift {result.deviation:.2f}% / {settings.delta_threshold:g}% | "
        f"{settings.selected_venue.value} | "
        f"{'AUTO-TRADING' if settings.auto_execute else 'MANUAL SIGNAL MODE'}"
    )
    if report is not None and report.connection is ConnectionStatus.DISCONNECTED:
        table.caption += " | PRICE FEED ERROR"
    return table


def create_actions_table(monitor: Monitor) -> Table:
    """Pending actions of the current result."""
    result = monitor.orchestrator.current_result

    title = "Rebalance Required" if result.needs_rebalance else "Proposed Adjustments"
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("Side", no_wrap=True)
    table.add_column("Asset", style="cyan")
    table.add_column("Amount", justify="right")
    table.add_column("Value", justify="right")
    table.add_column("Reason")

    for action in result.actions:
        side_style = "green" if action.side.value == "BUY" else "red"
        table.add_row(
            Text(action.side.value, style=side_style),
            action.symbol,
            f"{action.amount:,.4f}",
            f"${action.usd_value:,.2f}",
            action.reason,
        )
    return table


def create_history_table(monitor: Monitor, limit: int) -> Table:
    """Most recent trade log entries."""
    status_styles = {
        TradeStatus.EXECUTED: "green",
        TradeStatus.SIMULATED: "yellow",
        TradeStatus.FAILED: "red",
    }

    table = Table(title="Trade History", show_header=True, header_style="bold magenta")
    table.add_column("Time", no_wrap=True)
    table.add_column("Venue")
    table.add_column("Pair", style="cyan")
    table.add_column("Side")
    table.add_column("Amount", justify="right")
    table.add_column("Price", justify="right")
    table.add_column("Total", justify="right")
    table.add_column("Status")
    table.add_column("Tx / Error")

    for log in monitor.orchestrator.trade_logs[:limit]:
        table.add_row(
            log.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            log.venue.value,
            log.pair,
            log.side.value,
            f"{log.amount:,.4f}",
            f"${log.price:,.2f}",
            f"${log.total_usd:,.2f}",
            Text(log.status.value, style=status_styles[log.status]),
            log.error or log.tx_hash or "",
        )
    return table


@click.group()
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False),
              default=None, help="YAML configuration file (default: config/default.yaml)")
@click.option("--env-file", type=click.Path(dir_okay=False), default=None,
              help="Credentials .env file (default: .env)")
@click.option("--simulated", is_flag=True, help="Use random-walk prices instead of live feeds")
@click.option("--log-level", default=None, help="Logging level (default: logging.level from config)")
@click.pass_context
def cli(ctx, config_path, env_file, simulated: bool, log_level: Optional[str]):
    """Crypto Rebalancer - drift monitor and rebalancing executor."""
    ctx.ensure_object(dict)
    ctx.obj.update(
        config_path=config_path,
        env_file=env_file,
        simulated=simulated,
        log_level=log_level,
    )


def _load_monitor(ctx) -> Monitor:
    try:
        return build_monitor(**ctx.obj)
    except (RebalancerError, FileNotFoundError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        sys.exit(1)


@cli.command()
@click.pass_context
def run(ctx):
    """Run the market cycle until interrupted."""
    monitor = _load_monitor(ctx)
    monitor.scheduler.start()

    console.print("[bold green]Rebalancer running. Press Ctrl+C to exit.[/bold green]")
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopping after the current cycle...[/yellow]")
    finally:
        monitor.scheduler.stop()
        monitor.log_store.close()


@cli.command()
@click.pass_context
def status(ctx):
    """Price the portfolio once and show allocations and pending actions.

    Read-only: nothing is executed and no alert is sent.
    """
    monitor = _load_monitor(ctx)
    report = monitor.scheduler.run_cycle(act=False)

    console.print(f"[dim]Last updated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}[/dim]\n")
    console.print(create_allocation_table(monitor, report))
    if monitor.orchestrator.current_result.actions:
        console.print(create_actions_table(monitor))


@cli.command()
@click.option("--force", is_flag=True, help="Execute even if drift is below the threshold")
@click.pass_context
def execute(ctx, force: bool):
    """Price the portfolio once, then execute the pending actions.

    The cycle itself does not act, so auto-execute mode cannot run the batch
    twice and manual mode sends no alert.
    """
    monitor = _load_monitor(ctx)
    monitor.scheduler.run_cycle(act=False)
    result = monitor.orchestrator.current_result

    if not result.needs_rebalance and not force:
        console.print(
            f"[green]Portfolio balanced[/green] (max drift {result.deviation:.2f}%). "
            "Use --force to trade anyway."
        )
        return

    if not result.actions:
        console.print("[yellow]No actions pending.[/yellow]")
        return

    try:
        receipts = monitor.orchestrator.execute_pending()
    except Exception as e:
        console.print(f"[bold red]Batch failed:[/bold red] {e}")
        sys.exit(1)

    if receipts is None:
        console.print("[yellow]A batch is already executing.[/yellow]")
        return

    console.print(f"[bold green]Executed {len(receipts)} trades.[/bold green]")
    console.print(create_history_table(monitor, len(receipts)))


@cli.command()
@click.option("--limit", "-l", default=20, help="Number of trades to show")
@click.pass_context
def history(ctx, limit: int):
    """Show the trade log, newest first."""
    monitor = _load_monitor(ctx)
    console.print(create_history_table(monitor, limit))


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
