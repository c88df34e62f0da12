#!/usr/bin/env python3
"""Trading Cycle Orchestrator - CLI Entry Point."""
import sys
import logging
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

import click
from rich.console import Console
from rich.table import Table

from __version__ import __version__

console = Console()
logger = logging.getLogger("tradecycle.cli")


def _init_components(config_path=None, verbose=False):
    """Load config, open the database and attach the DB log sink."""
    from utils.logger import setup_logging
    from config import load_config
    from models.database import Database

    config = load_config(config_path)

    log_cfg = config.get("logging", {})
    db = Database(config["database"]["path"])
    db.connect()
    setup_logging("DEBUG" if verbose else log_cfg.get("level", "INFO"), log_cfg.get("file"), db=db)

    return {"config": config, "db": db}


@click.group()
@click.option("--config", "config_path", default=None, help="Path to config YAML")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.version_option(__version__, prog_name="tradecycle")
@click.pass_context
def cli(ctx, config_path, verbose):
    """Trading Cycle Orchestrator - gated, bounded trading and signal cycles."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose


def _get_components(ctx):
    if "_components" not in ctx.obj:
        ctx.obj["_components"] = _init_components(ctx.obj.get("config_path"), ctx.obj.get("verbose"))
    return ctx.obj["_components"]


# ──────────────────────────────────────────────────────
# SETUP
# ──────────────────────────────────────────────────────
@cli.command()
@click.pass_context
def setup(ctx):
    """First-time setup: initialize DB and seed default settings."""
    c = _get_components(ctx)
    console.print("[bold cyan]Trading Cycle - Setup[/bold cyan]\n")
    console.print(f"[green]✓[/green] Database initialized ({c['config']['database']['path']})")

    settings = c["db"].ensure_default_settings()
    state = "enabled" if settings.trading_enabled else "disabled"
    console.print(f"[green]✓[/green] Trading settings present (trading {state})")

    if not c["db"].list_instruments():
        console.print("[yellow]![/yellow] No trading pairs yet. Add one with: tradecycle pairs add BTCUSDT")

    console.print("\n[bold]Setup complete![/bold] Enable trading with "
                  "[bold]tradecycle settings set trading_enabled on[/bold], then [bold]tradecycle run[/bold].\n")


# ──────────────────────────────────────────────────────
# CYCLE
# ──────────────────────────────────────────────────────
def _build_cycle(c):
    from orchestrator.cycle import TradingCycle
    return TradingCycle(c["db"], c["config"])


def _print_report(report):
    from models.enums import CycleOutcome
    from utils.formatters import format_timestamp

    colors = {CycleOutcome.SUCCESS: "green", CycleOutcome.SKIPPED: "yellow", CycleOutcome.ERRORED: "red"}
    color = colors[report.outcome]
    line = f"[{color}]{report.outcome.value}[/{color}]"
    if report.reason:
        line += f" - {report.reason}"
    console.print(f"Cycle {format_timestamp(report.started_at)}: {line} ({report.duration:.1f}s)")

    if report.run is None:
        return
    degraded = " [yellow](degraded)[/yellow]" if report.strategy_degraded else ""
    console.print(f"Strategy: {report.strategy}{degraded}")
    summary = report.run.summary
    if summary is not None:
        console.print(f"  analyzed {len(summary.analyzed)}, trades {len(summary.trades)}, "
                      f"errors {len(summary.errors)}")

    loop = report.run.loop
    if loop is not None:
        degraded = " [yellow](degraded)[/yellow]" if report.analyzer_degraded else ""
        console.print(f"Analyzer: {report.analyzer}{degraded}")
        table = Table(title="Signals", show_header=True)
        table.add_column("Symbol")
        table.add_column("Type")
        table.add_column("Signal")
        table.add_column("Strength")
        table.add_column("Confidence", justify="right")
        for r in loop.results:
            table.add_row(
                r.symbol,
                r.trading_type.value if r.trading_type else "-",
                r.signal.value,
                r.strength.value if r.strength else "-",
                f"{r.confidence_pct}%",
            )
        console.print(table)
        if loop.skipped:
            console.print(f"[yellow]Skipped:[/yellow] {', '.join(loop.skipped)}")
        if loop.failed:
            console.print(f"[red]Failed:[/red] {', '.join(loop.failed)}")
        if loop.cap_reached:
            console.print("[dim]Instrument cap reached, remaining pairs deferred to the next cycle[/dim]")

    if report.retention is not None:
        console.print(f"Cleanup: {report.retention.total} records deleted")


@cli.command()
@click.pass_context
def run(ctx):
    """Run one trading cycle. Exit 0 on success or skip, 1 on failure."""
    from models.errors import TradeCycleError

    try:
        c = _get_components(ctx)
        cycle = _build_cycle(c)
    except TradeCycleError as e:
        logger.error(f"Cannot start trading cycle: {e}")
        raise SystemExit(1)

    report = cycle.run()
    _print_report(report)
    if report.exit_code:
        raise SystemExit(report.exit_code)


@cli.command()
@click.option("--interval", default=None, type=int, help="Seconds between cycles (default: config)")
@click.pass_context
def schedule(ctx, interval):
    """Run cycles periodically in the foreground."""
    from orchestrator.scheduler import CycleScheduler

    c = _get_components(ctx)
    cycle = _build_cycle(c)
    interval = interval or c["config"].get("scheduler", {}).get("interval_seconds", 300)

    sched = CycleScheduler(cycle.run, interval_seconds=interval)
    sched.on_cycle(_print_report)
    console.print(f"[bold]Running a trading cycle every {interval}s.[/bold] Press Ctrl+C to stop.")
    try:
        sched.run_forever()
    except KeyboardInterrupt:
        console.print("\nStopped.")


@cli.command()
@click.pass_context
def cleanup(ctx):
    """Apply retention policies without running a cycle."""
    from orchestrator.retention import RetentionSweep, policies_from_config

    c = _get_components(ctx)
    sweep = RetentionSweep(c["db"], policies_from_config(c["config"]))
    result = sweep.run()

    table = Table(title="Retention", show_header=True)
    table.add_column("Policy")
    table.add_column("Deleted", justify="right")
    for name, count in result.deleted.items():
        table.add_row(name, str(count))
    for name, err in result.errors.items():
        table.add_row(name, f"[red]failed: {err}[/red]")
    console.print(table)


# ──────────────────────────────────────────────────────
# SETTINGS
# ──────────────────────────────────────────────────────
@cli.group()
def settings():
    """View and change operational settings."""
    pass


@settings.command("show")
@click.pass_context
def settings_show(ctx):
    """Show the current trading settings."""
    from models.settings import BOOL_FIELDS
    from utils.formatters import format_flag, format_pct, format_usd

    c = _get_components(ctx)
    current = c["db"].get_settings()
    if current is None:
        console.print("[red]No trading settings found.[/red] Run: tradecycle setup")
        raise SystemExit(1)

    table = Table(title="Trading Settings", show_header=True)
    table.add_column("Setting")
    table.add_column("Value", justify="right")
    for key, value in current.to_dict().items():
        if key in BOOL_FIELDS:
            shown = format_flag(value)
        elif key == "max_position_size":
            shown = format_usd(value)
        elif key == "ai_confidence_threshold":
            shown = format_pct(value)
        else:
            shown = str(value)
        table.add_row(key, shown)
    console.print(table)


@settings.command("set")
@click.argument("key")
@click.argument("value")
@click.pass_context
def settings_set(ctx, key, value):
    """Set one setting, e.g. `settings set emergency_stop on`."""
    from models.settings import parse_setting

    c = _get_components(ctx)
    try:
        parsed = parse_setting(key, value)
    except (KeyError, ValueError) as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1)
    c["db"].update_settings(**{key: parsed})
    logger.info(f"Setting changed: {key} = {parsed}", extra={"category": "SYSTEM"})
    console.print(f"[green]✓[/green] {key} = {parsed}")


# ──────────────────────────────────────────────────────
# PAIRS
# ──────────────────────────────────────────────────────
@cli.group()
def pairs():
    """Manage tradable instruments."""
    pass


@pairs.command("list")
@click.pass_context
def pairs_list(ctx):
    """List all trading pairs."""
    c = _get_components(ctx)
    instruments = c["db"].list_instruments()
    if not instruments:
        console.print("[dim]No trading pairs configured[/dim]")
        return
    table = Table(title="Trading Pairs", show_header=True)
    table.add_column("Symbol")
    table.add_column("Type")
    table.add_column("Priority", justify="right")
    table.add_column("Enabled")
    for inst in instruments:
        table.add_row(inst.symbol, inst.trading_type.value, str(inst.ai_priority),
                      "[green]✓[/green]" if inst.enabled else "[red]✗[/red]")
    console.print(table)


@pairs.command("add")
@click.argument("symbol")
@click.option("--type", "trading_type", default="BOTH",
              type=click.Choice(["SPOT", "FUTURES", "BOTH"], case_sensitive=False))
@click.option("--priority", default=0, type=int, help="Analysis priority (higher first)")
@click.option("--disabled", is_flag=True, help="Add without enabling")
@click.pass_context
def pairs_add(ctx, symbol, trading_type, priority, disabled):
    """Add a trading pair."""
    import sqlite3

    c = _get_components(ctx)
    try:
        c["db"].add_instrument(symbol, trading_type.upper(), enabled=not disabled, ai_priority=priority)
    except sqlite3.IntegrityError:
        console.print(f"[red]{symbol.upper()} already exists[/red]")
        raise SystemExit(1)
    console.print(f"[green]✓[/green] Added {symbol.upper()} ({trading_type.upper()})")


@pairs.command("enable")
@click.argument("symbol")
@click.pass_context
def pairs_enable(ctx, symbol):
    """Enable a trading pair."""
    _set_pair_enabled(ctx, symbol, True)


@pairs.command("disable")
@click.argument("symbol")
@click.pass_context
def pairs_disable(ctx, symbol):
    """Disable a trading pair."""
    _set_pair_enabled(ctx, symbol, False)


def _set_pair_enabled(ctx, symbol, enabled):
    c = _get_components(ctx)
    if not c["db"].set_instrument_enabled(symbol, enabled):
        console.print(f"[red]Unknown pair: {symbol.upper()}[/red]")
        raise SystemExit(1)
    console.print(f"[green]✓[/green] {symbol.upper()} {'enabled' if enabled else 'disabled'}")


# ──────────────────────────────────────────────────────
# NOTIFICATIONS
# ──────────────────────────────────────────────────────
@cli.group()
def notifications():
    """Browse notifications."""
    pass


@notifications.command("list")
@click.option("--unread", is_flag=True, help="Only unread notifications")
@click.option("--limit", default=20, type=int, help="Number of notifications to show")
@click.pass_context
def notifications_list(ctx, unread, limit):
    """Show recent notifications."""
    from utils.formatters import time_ago

    c = _get_components(ctx)
    items = c["db"].list_notifications(limit=limit, unread_only=unread)
    if not items:
        console.print("[dim]No notifications[/dim]")
        return
    table = Table(title="Notifications", show_header=True)
    table.add_column("ID", style="dim")
    table.add_column("When", style="dim")
    table.add_column("Priority")
    table.add_column("Type")
    table.add_column("Title")
    table.add_column("Read")
    for n in items:
        table.add_row(str(n.id), time_ago(n.created_at), n.priority.value, n.type.value, n.title,
                      "✓" if n.is_read else "")
    console.print(table)


@notifications.command("read")
@click.argument("notification_id", type=int)
@click.pass_context
def notifications_read(ctx, notification_id):
    """Mark a notification as read."""
    c = _get_components(ctx)
    if not c["db"].mark_notification_read(notification_id):
        console.print(f"[red]Unknown notification: {notification_id}[/red]")
        raise SystemExit(1)
    console.print(f"[green]✓[/green] Notification {notification_id} marked read")


if __name__ == "__main__":
    cli()
