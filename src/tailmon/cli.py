import asyncio
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from tailmon.config import Settings, settings
from tailmon.main import configure_logging
from tailmon.schemas.device import Snapshot
from tailmon.services.classifier import HealthStatus, Thresholds, classify, ram_ratio
from tailmon.services.metrics_client import MetricsClient
from tailmon.services.time_format import time_ago

app = typer.Typer(name="tailmon", help="Tailmon fleet health dashboard")
console = Console()

_STATUS_STYLES = {
    HealthStatus.NORMAL: "green",
    HealthStatus.WARNING: "yellow",
    HealthStatus.CRITICAL: "red",
}


def _override(**values) -> Settings:
    return settings.model_copy(update={k: v for k, v in values.items() if v is not None})


async def _fetch_once(cfg: Settings) -> Snapshot:
    client = MetricsClient(
        base_url=cfg.server_url,
        path=cfg.metrics_path,
        timeout=cfg.fetch_timeout_seconds,
    )
    try:
        return await client.fetch_snapshot()
    finally:
        await client.aclose()


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, help="Dashboard bind host"),
    port: Optional[int] = typer.Option(None, help="Dashboard port"),
    server_url: Optional[str] = typer.Option(None, "--server-url", help="Metrics server base URL"),
    interval_ms: Optional[int] = typer.Option(None, "--interval-ms", help="Refresh interval (ms)"),
):
    """Run the dashboard and its refresh loop."""
    from tailmon.main import main

    cfg = _override(
        dashboard_host=host,
        dashboard_port=port,
        server_url=server_url,
        refresh_interval_ms=interval_ms,
    )
    configure_logging(cfg)
    console.print("[bold]Tailmon Dashboard[/bold]")
    console.print(f"  Metrics server: {cfg.server_url}{cfg.metrics_path}")
    console.print(f"  Dashboard:      http://{cfg.dashboard_host}:{cfg.dashboard_port}/dashboard")
    console.print(f"  Refresh:        {cfg.refresh_interval_ms}ms")
    console.print()
    asyncio.run(main(cfg))


@app.command()
def snapshot(
    server_url: Optional[str] = typer.Option(None, "--server-url", help="Metrics server base URL"),
):
    """Fetch the device set once and print it."""
    cfg = _override(server_url=server_url)
    configure_logging(cfg)
    result = asyncio.run(_fetch_once(cfg))

    if not result.ok:
        console.print(f"[red]Metrics server unreachable:[/red] {result.fetch_error}")
        raise typer.Exit(code=1)

    if not result.devices:
        console.print("[dim]No devices connected.[/dim]")
        return

    thresholds = Thresholds.from_settings(cfg)
    table = Table(title="Devices")
    table.add_column("Device", style="bold")
    table.add_column("OS")
    table.add_column("Status")
    table.add_column("CPU", justify="right")
    table.add_column("RAM", justify="right")
    table.add_column("RAM Used/Total", justify="right")
    table.add_column("Last Seen")

    for device in result.devices:
        status = classify(device, thresholds)
        style = _STATUS_STYLES[status]
        table.add_row(
            escape(device.device_id),
            escape(device.os_info),
            f"[{style}]{status.value}[/{style}]",
            f"{device.cpu_usage:.1f}%",
            f"{ram_ratio(device) * 100:.1f}%",
            f"{device.ram_used_mb}/{device.ram_total_mb} MB",
            time_ago(device.last_seen),
        )
    console.print(table)


if __name__ == "__main__":
    app()
