"""
Beacon CLI Main Entry Point

The Typer application for running and inspecting the monitor.
"""

from __future__ import annotations

import asyncio
import time
from typing import Annotated

import httpx
import structlog
import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from beacon import __version__
from beacon.config import get_settings
from beacon.heartbeat import (
    DisplayState,
    NotificationDispatcher,
    SweepDriver,
    TransitionCoordinator,
    build_notifier,
    build_store,
    collect_status,
    format_duration,
)
from beacon.logconfig import configure_logging

logger = structlog.get_logger(__name__)
console = Console()

# Create the main app
app = typer.Typer(
    name="beacon",
    help="Beacon - heartbeat-based liveness monitor",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(
            Panel(
                Text.from_markup(
                    f"[bold cyan]Beacon[/bold cyan] v{__version__}\n"
                    "[dim]Heartbeat-based liveness monitor[/dim]"
                ),
                title="Version",
                border_style="cyan",
            )
        )
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose output.",
        ),
    ] = False,
) -> None:
    """
    Beacon - track which hosts are alive from the pings they send.
    """
    settings = get_settings()
    configure_logging("DEBUG" if verbose else settings.log_level, json=settings.log_json)


@app.command()
def serve(
    host: Annotated[str, typer.Option("--host", help="Bind address (default from settings)")] = "",
    port: Annotated[int, typer.Option("--port", "-p", help="Bind port (default from settings)")] = 0,
) -> None:
    """
    Run the HTTP API with the sweep scheduler.

    Example: beacon serve --port 8080
    """
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "beacon.api.main:create_app",
        factory=True,
        host=host or settings.host,
        port=port or settings.port,
        log_config=None,
    )


@app.command()
def sweep() -> None:
    """
    Run one sweep pass against the configured store and exit.

    Useful from cron when the API server runs without its own scheduler.
    """
    settings = get_settings()

    async def _sweep():
        store = build_store(settings)
        dispatcher = NotificationDispatcher(
            build_notifier(settings),
            timeout=settings.notify_timeout_seconds,
        )
        coordinator = TransitionCoordinator(store)
        driver = SweepDriver(
            settings.server_names,
            threshold_seconds=settings.alert_threshold_seconds,
            coordinator=coordinator,
            dispatcher=dispatcher,
            entity_timeout=settings.entity_timeout_seconds,
        )
        try:
            return await driver.run_once()
        finally:
            await coordinator.drain(timeout=settings.drain_timeout_seconds)
            await dispatcher.drain(timeout=settings.drain_timeout_seconds)
            await dispatcher.notifier.close()
            await store.close()

    report = asyncio.run(_sweep())

    table = Table(title="Sweep", border_style="cyan")
    table.add_column("Server", style="cyan")
    table.add_column("Outcome")
    table.add_column("Error", style="red")

    for outcome in report.outcomes:
        table.add_row(
            outcome.name,
            outcome.transition.value if outcome.transition else "-",
            outcome.error or "",
        )

    console.print(table)
    if report.failed:
        raise typer.Exit(1)


@app.command()
def status() -> None:
    """Show the current state of every configured server."""
    settings = get_settings()

    async def _status():
        store = build_store(settings)
        try:
            return await collect_status(
                settings.server_names,
                store,
                int(time.time()),
                settings.alert_threshold_seconds,
            )
        finally:
            await store.close()

    reports = asyncio.run(_status())

    if not reports:
        console.print("[dim]No servers configured to monitor.[/dim]")
        return

    table = Table(title="Server Status", border_style="cyan")
    table.add_column("Server", style="cyan")
    table.add_column("Status", justify="center")
    table.add_column("Last Seen")
    table.add_column("Last State Change")

    for report in reports:
        status_style = {
            DisplayState.UP: "[green]●[/green] up",
            DisplayState.DOWN: "[red]✗[/red] down",
            DisplayState.STALE: "[yellow]◐[/yellow] stale",
            DisplayState.UNKNOWN: "[dim]○[/dim] unknown",
        }[report.display_state]

        table.add_row(
            report.name,
            status_style,
            f"{format_duration(report.seen_ago)} ago" if report.seen_ago is not None else "never",
            f"{format_duration(report.changed_ago)} ago" if report.changed_ago is not None else "-",
        )

    console.print(table)


@app.command()
def bot() -> None:
    """Answer /status in the configured Telegram chat."""
    from beacon.chat.handler import StatusCommandHandler
    from beacon.chat.telegram import TelegramAdapter

    settings = get_settings()
    if not settings.telegram_bot_token or not settings.telegram_chat_id:
        console.print("[red]BEACON_TELEGRAM_BOT_TOKEN and BEACON_TELEGRAM_CHAT_ID are required[/red]")
        raise typer.Exit(1)

    async def _run():
        store = build_store(settings)
        adapter = TelegramAdapter(
            settings.telegram_bot_token,
            allowed_chats=[int(settings.telegram_chat_id)],
        )
        StatusCommandHandler(
            settings.server_names,
            store,
            settings.alert_threshold_seconds,
        ).register(adapter)
        try:
            await adapter.run()
        finally:
            await store.close()

    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        console.print("[dim]Bot stopped[/dim]")


@app.command()
def hello(
    name: Annotated[str, typer.Argument(help="Name this host reports as")],
    url: Annotated[
        str,
        typer.Option("--url", "-u", help="Base URL of the Beacon server", envvar="BEACON_URL"),
    ] = "http://localhost:8000",
    token: Annotated[
        str,
        typer.Option("--token", "-t", help="Bearer token", envvar="BEACON_ACCESS_TOKEN"),
    ] = "",
    timeout: Annotated[float, typer.Option("--timeout", help="Request timeout in seconds")] = 10.0,
) -> None:
    """
    Send one liveness ping to a Beacon server.

    Example (crontab on the monitored host):
        * * * * * beacon hello db1 --url https://beacon.example.com
    """
    try:
        response = httpx.post(
            f"{url.rstrip('/')}/hello",
            params={"name": name},
            headers={"Authorization": f"Bearer {token}"},
            timeout=timeout,
        )
    except httpx.HTTPError as e:
        console.print(f"[red]Ping failed: {e}[/red]")
        raise typer.Exit(1)

    if response.status_code >= 400:
        console.print(f"[red]{response.status_code}: {response.text}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]✓[/green] {response.text}")


if __name__ == "__main__":
    app()
