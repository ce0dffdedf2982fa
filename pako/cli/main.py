"""
Pako CLI entry point.

Commands:
    pako run      — Start the bot
    pako check    — Validate command definitions
    pako history  — Show recent executions from the audit log
    pako logs     — Show recent log lines
    pako config   — Show the effective configuration
    pako version  — Show version
"""

from __future__ import annotations

import asyncio
import logging
import signal
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

app = typer.Typer(
    name="pako",
    help="Pako — run shell commands on this machine from Telegram.",
    add_completion=False,
)

console = Console()


def _load_config(config_path: Path | None):
    from pako.core.config import PakoConfig
    from pako.core.errors import ConfigError

    try:
        return PakoConfig.load(project_path=config_path)
    except ConfigError as e:
        console.print(f"[red]Config error:[/red] {e}")
        raise typer.Exit(1)


@app.command()
def run(
    config_path: Path = typer.Option(None, "--config", "-c", help="Path to pako.toml"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug output"),
) -> None:
    """Start the bot and the scheduler."""
    from pako.core.errors import ConfigError

    config = _load_config(config_path)
    try:
        config.validate_for_run()
    except ConfigError as e:
        console.print(f"[red]Config error:[/red] {e}")
        raise typer.Exit(1)

    asyncio.run(_run_bot(config, verbose))


async def _run_bot(config, verbose: bool = False) -> None:
    """Wire every component, run until a signal arrives, then shut down."""
    from pako.arguments.collector import ArgumentCollector
    from pako.bot.app import Bot
    from pako.bot.telegram import TelegramAPI
    from pako.commands.builtin import (
        CleanupCommand,
        HelpCommand,
        LogsCommand,
        ReloadCommand,
        ScheduledListCommand,
        StatusCommand,
        VersionCommand,
    )
    from pako.commands.loader import CommandLoader
    from pako.commands.registry import CommandRegistry
    from pako.core.errors import PakoError
    from pako.core.logging import parse_level, setup_logging
    from pako.scheduler.engine import Scheduler, extract_scheduled
    from pako.security.auth import Allowlist
    from pako.security.confirm import ConfirmationManager
    from pako.shell.executor import ShellExecutor
    from pako.status.metrics import MetricsCollector
    from pako.store.audit import AuditLog, NopAuditLog
    from pako.store.messages import MessageStore

    # Setup logging
    setup_logging(
        log_dir=Path(config.logging.dir),
        console_level=logging.DEBUG if verbose else parse_level(config.logging.level),
    )
    logger = logging.getLogger("pako")
    logger.info("Starting Pako")

    # Commands
    executor = ShellExecutor(default_timeout=config.defaults.timeout)
    loader = CommandLoader(config.resolve_path(config.commands.dir), config.defaults, executor)
    try:
        commands = loader.load()
    except PakoError as e:
        console.print(f"[red]Failed to load commands:[/red] {e}")
        raise typer.Exit(1)

    # Stores
    if config.database.audit_enabled:
        audit = AuditLog(config.resolve_path(config.database.path))
    else:
        audit = NopAuditLog()
    store_path = config.messages.store_path
    messages = MessageStore(config.resolve_path(store_path) if store_path else None)

    api = TelegramAPI(config.telegram.token, base_url=config.telegram.api_url)

    # Registry: built-ins first, then YAML commands
    registry = CommandRegistry()
    reload_cmd = ReloadCommand(loader, registry)
    scheduled_cmd = ScheduledListCommand()
    cleanup_cmd = CleanupCommand(messages, api)
    for builtin in (
        HelpCommand(registry),
        StatusCommand(MetricsCollector(config.status.disk_path)),
        VersionCommand(),
        LogsCommand(Path(config.logging.dir)),
        reload_cmd,
        scheduled_cmd,
        cleanup_cmd,
    ):
        registry.register(builtin, builtin=True)
    registry.reload(commands)

    allowlist = Allowlist(config.telegram.allowed_chat_ids)
    collector = ArgumentCollector(default_timeout=config.arguments.timeout)
    confirmations = ConfirmationManager(
        ttl=config.confirm.ttl, sweep_interval=config.confirm.sweep_interval
    )

    bot = Bot(
        api,
        registry,
        allowlist,
        collector,
        confirmations,
        defaults=config.defaults,
        audit=audit,
        messages=messages,
        cleanup=cleanup_cmd,
        poll_timeout=config.telegram.poll_timeout,
        argument_sweep_interval=config.arguments.sweep_interval,
    )

    scheduler = Scheduler(config.telegram.allowed_chat_ids, bot.execute_scheduled)
    scheduler.update_commands(extract_scheduled(commands))
    bot.set_scheduler(scheduler)
    reload_cmd.attach_scheduler(scheduler)
    scheduled_cmd.attach_scheduler(scheduler)

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            pass  # Windows

    bot_task: asyncio.Task | None = None
    try:
        await audit.initialize()
        await messages.load()
        me = await api.get_me()
        logger.info(f"Connected as @{me.get('username', '?')}")
        console.print(
            f"[green]Pako running[/green] as @{me.get('username', '?')} "
            f"with {len(registry)} commands, {len(scheduler.names())} scheduled"
        )

        await confirmations.start()
        await scheduler.start()
        await bot.notify_startup()

        bot_task = asyncio.create_task(bot.run(), name="bot")
        stop_task = asyncio.create_task(stop.wait(), name="stop")
        done, _ = await asyncio.wait({bot_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
        stop_task.cancel()
        if bot_task in done:
            bot_task.result()  # surface a crash
    except PakoError as e:
        logger.error(f"Pako stopped: {e}")
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    finally:
        logger.info("Shutting down")
        if bot_task is not None and not bot_task.done():
            bot_task.cancel()
            await asyncio.gather(bot_task, return_exceptions=True)
        await scheduler.stop()
        await confirmations.stop()
        await audit.close()
        await api.close()
        logger.info("Shutdown complete")


@app.command()
def check(
    config_path: Path = typer.Option(None, "--config", "-c", help="Path to pako.toml"),
) -> None:
    """Load every command definition and report problems."""
    from pako.commands.base import Capability
    from pako.commands.loader import CommandLoader
    from pako.core.errors import CommandLoadError
    from pako.scheduler.engine import extract_scheduled
    from pako.shell.executor import ShellExecutor

    config = _load_config(config_path)
    directory = config.resolve_path(config.commands.dir)
    loader = CommandLoader(directory, config.defaults, ShellExecutor())

    try:
        commands = loader.load()
    except CommandLoadError as e:
        console.print(f"[red]✗ {e.path or directory}[/red]\n{e.message}")
        raise typer.Exit(1)

    if not commands:
        console.print(f"[dim]No commands found in {directory}[/dim]")
        raise typer.Exit(0)

    scheduled = {sc.name: sc.describe() for sc in extract_scheduled(commands)}

    table = Table(title=f"Commands in {directory}")
    table.add_column("Command", style="cyan")
    table.add_column("Description")
    table.add_column("Category")
    table.add_column("Schedule")
    table.add_column("Flags", style="dim")

    for cmd in commands:
        flags = [
            label
            for cap, label in (
                (Capability.CONFIRM, "confirm"),
                (Capability.ARGUMENTS, "args"),
                (Capability.QUIET, "quiet"),
                (Capability.FILE_RESPONSE, "file"),
            )
            if cmd.has(cap)
        ]
        table.add_row(
            f"/{cmd.name}",
            cmd.description,
            cmd.category.name if cmd.has(Capability.CATEGORY) else "",
            scheduled.get(cmd.name, ""),
            ", ".join(flags),
        )

    console.print(table)
    console.print(f"[green]✓ {len(commands)} command(s) OK[/green]")


@app.command()
def history(
    config_path: Path = typer.Option(None, "--config", "-c", help="Path to pako.toml"),
    limit: int = typer.Option(20, "--limit", "-n", help="Number of entries to show"),
) -> None:
    """Show recent command executions."""
    from datetime import datetime

    config = _load_config(config_path)
    db_path = config.resolve_path(config.database.path)
    if not db_path.exists():
        console.print("[dim]No audit log yet.[/dim]")
        raise typer.Exit(0)

    entries = asyncio.run(_recent_entries(db_path, limit))
    if not entries:
        console.print("[dim]No executions recorded.[/dim]")
        raise typer.Exit(0)

    table = Table(title="Recent executions")
    table.add_column("Time", style="dim")
    table.add_column("Chat")
    table.add_column("Command", style="cyan")
    table.add_column("Args")
    table.add_column("Exit")
    table.add_column("Duration", justify="right")

    for entry in entries:
        style = "green" if entry.exit_code == 0 else "red"
        table.add_row(
            datetime.fromtimestamp(entry.timestamp).strftime("%Y-%m-%d %H:%M:%S"),
            str(entry.chat_id),
            f"/{entry.command}",
            entry.args,
            f"[{style}]{entry.exit_code}[/{style}]",
            f"{entry.duration_ms} ms",
        )
    console.print(table)


async def _recent_entries(db_path: Path, limit: int):
    from pako.store.audit import AuditLog

    audit = AuditLog(db_path)
    try:
        await audit.initialize()
        return await audit.recent(limit)
    finally:
        await audit.close()


@app.command()
def version() -> None:
    """Show Pako version."""
    from pako import __version__
    console.print(f"Pako v{__version__}")


@app.command()
def logs(
    lines: int = typer.Option(50, "--lines", "-n", help="Number of lines to show"),
    config_path: Path = typer.Option(None, "--config", "-c", help="Path to pako.toml"),
) -> None:
    """Show recent logs."""
    from datetime import datetime

    config = _load_config(config_path)
    log_dir = Path(config.logging.dir).expanduser()

    if not log_dir.exists():
        console.print("[dim]No logs found.[/dim]")
        raise typer.Exit(0)

    # Find today's log file
    log_file = log_dir / f"pako_{datetime.now().strftime('%Y%m%d')}.log"
    if not log_file.exists():
        console.print(f"[dim]No log file for today: {log_file}[/dim]")
        raise typer.Exit(0)

    with open(log_file, "r", encoding="utf-8") as f:
        all_lines = f.readlines()

    for line in all_lines[-lines:]:
        console.print(line.rstrip(), markup=False)


@app.command()
def config(
    config_path: Path = typer.Option(None, "--config", "-c", help="Path to pako.toml"),
) -> None:
    """Show the effective configuration (token masked)."""
    import json

    cfg = _load_config(config_path)
    data = cfg.model_dump()
    token = data["telegram"]["token"]
    if token:
        data["telegram"]["token"] = token[:4] + "…" if len(token) > 8 else "****"

    console.print(Panel("[bold]Pako Configuration[/bold]", border_style="cyan"))
    console.print(f"[bold]Commands dir:[/bold] {cfg.resolve_path(cfg.commands.dir)}")
    console.print(Panel(json.dumps(data, indent=2, ensure_ascii=False), title="effective config", border_style="dim"))


if __name__ == "__main__":
    app()
