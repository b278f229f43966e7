"""CLI command to test connectivity to the upstream API."""

import asyncio
import sys

import click
from rich.console import Console
from rich.table import Table

from binproxy.proxy.errors import ProxyError
from binproxy.proxy.forwarder import Forwarder

console = Console()


async def _ping(forwarder: Forwarder) -> int:
    try:
        return await forwarder.ping()
    finally:
        await forwarder.close()


@click.command()
@click.option("--upstream", default=None, help="Upstream API base URL (default: settings)")
@click.pass_context
def check(ctx, upstream):
    """Ping the upstream API once and report reachability."""
    settings = ctx.obj["settings"]
    forwarder = Forwarder(base_url=upstream or settings.upstream_url, timeout=settings.timeout)

    table = Table(title="Upstream Connectivity", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Upstream", forwarder.base_url)

    try:
        status = asyncio.run(_ping(forwarder))
    except ProxyError as e:
        table.add_row("Status", "[red]unreachable[/red]")
        table.add_row("Error", e.message)
        console.print(table)
        sys.exit(1)

    color = "green" if 200 <= status < 300 else "yellow"
    table.add_row("Status", f"[{color}]reachable[/{color}]")
    table.add_row("HTTP status", str(status))
    console.print(table)
