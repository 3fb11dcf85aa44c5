"""Entry point: python -m rebuild_relay."""

from __future__ import annotations

import asyncio
import logging
import sys

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from rebuild_relay.config import RelayConfig, load_config
from rebuild_relay.errors import RelayError
from rebuild_relay.logging_config import configure_logging

logger = logging.getLogger(__name__)

_console = Console()


def _load(verbose: bool) -> RelayConfig:
    """Load config and configure logging from it."""
    configure_logging(verbose=verbose)
    try:
        config = load_config()
    except RelayError as exc:
        _console.print(f"[bold red]{exc}[/bold red]")
        sys.exit(1)
    configure_logging(config, verbose=verbose)
    return config


def _print_usage() -> None:
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_row("[bold]serve[/bold]", "Run the webhook server and periodic check (default)")
    table.add_row("[bold]check[/bold]", "Run one rebuild check and exit")
    table.add_row("[bold]help[/bold]", "Show this message")
    table.add_row("[bold]-v, --verbose[/bold]", "Debug logging")
    _console.print()
    _console.print(
        Panel(
            table,
            title="[bold]rebuild-relay[/bold]",
            subtitle="config: ./rebuild-relay.json or $REBUILD_RELAY_CONFIG",
            expand=False,
        )
    )
    _console.print()


def _cmd_serve(verbose: bool) -> None:
    from rebuild_relay.app import serve

    config = _load(verbose)
    _console.print(
        f"[green]rebuild-relay listening on "
        f"{config.server.host}:{config.server.port}[/green] "
        f"[dim](debounce {config.debounce.delay_seconds}s, store={config.store.backend})[/dim]"
    )
    try:
        asyncio.run(serve(config))
    except KeyboardInterrupt:
        logger.info("Interrupted")


def _cmd_check(verbose: bool) -> None:
    from rebuild_relay.app import run_check_once

    config = _load(verbose)
    try:
        result = asyncio.run(run_check_once(config))
    except RelayError as exc:
        _console.print(f"[bold red]Check failed:[/bold red] {exc}")
        sys.exit(1)
    if result.dispatched:
        _console.print(f"[green]Dispatched {result.total_changes} batched change(s).[/green]")
    else:
        _console.print("[dim]Nothing due.[/dim]")


def main() -> None:
    """CLI entry point."""
    args = sys.argv[1:]
    commands = [a for a in args if not a.startswith("-")]
    verbose = "--verbose" in args or "-v" in args

    if "--help" in args or "-h" in args:
        commands.insert(0, "help")

    action = commands[0] if commands else "serve"
    dispatch = {
        "help": _print_usage,
        "serve": lambda: _cmd_serve(verbose),
        "check": lambda: _cmd_check(verbose),
    }
    handler = dispatch.get(action)
    if handler is None:
        _console.print(f"[bold yellow]Unknown command: {action}[/bold yellow]")
        _print_usage()
        sys.exit(2)
    handler()


if __name__ == "__main__":
    main()
