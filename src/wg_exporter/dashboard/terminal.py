"""Terminal views using Rich: a one-shot peer table and a live dashboard."""

from __future__ import annotations

import json
import logging
import sys
import time

from rich.console import Console, Group
from rich.layout import Layout
from rich.live import Live
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from wg_exporter import __version__
from wg_exporter.collector.base import MetricsCollector
from wg_exporter.metrics import InterfaceSample, MetricSnapshot, PeerSample

log = logging.getLogger(__name__)

# WireGuard rekeys every 2 minutes; a handshake older than this means the
# peer has gone quiet
STALE_HANDSHAKE_SECONDS = 180
DEAD_HANDSHAKE_SECONDS = 600

MAX_CONSECUTIVE_ERRORS = 5


def format_bytes(n: float) -> str:
    for unit, size in (("TiB", 1024 ** 4), ("GiB", 1024 ** 3), ("MiB", 1024 ** 2), ("KiB", 1024)):
        if n >= size:
            return f"{n / size:.2f} {unit}"
    return f"{int(n)} B"


def format_age(seconds: float) -> str:
    seconds = int(seconds)
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        return f"{seconds // 60}m {seconds % 60}s"
    if seconds < 86400:
        return f"{seconds // 3600}h {seconds % 3600 // 60}m"
    return f"{seconds // 86400}d {seconds % 86400 // 3600}h"


def _handshake_cell(peer: PeerSample) -> str:
    if peer.latest_handshake_seconds == 0:
        return "[dim]never[/dim]"
    age = peer.handshake_age_seconds
    if age < STALE_HANDSHAKE_SECONDS:
        color = "green"
    elif age < DEAD_HANDSHAKE_SECONDS:
        color = "yellow"
    else:
        color = "red"
    return f"[{color}]{format_age(age)} ago[/{color}]"


def build_interface_table(iface: InterfaceSample) -> Table:
    title = f"{iface.name}  [dim]port {iface.listening_port or '?'}  {iface.peers_total} peer(s)[/dim]"
    table = Table(title=title, show_header=True, header_style="bold cyan", expand=True)
    table.add_column("Peer")
    table.add_column("Endpoint", style="dim")
    table.add_column("Handshake", justify="right")
    table.add_column("Received", justify="right")
    table.add_column("Sent", justify="right")
    table.add_column("IPs", justify="right", width=4)

    for peer in iface.peers:
        table.add_row(
            escape(peer.peer),
            escape(peer.endpoint) or "-",
            _handshake_cell(peer),
            format_bytes(peer.bytes_received),
            format_bytes(peer.bytes_sent),
            str(peer.allowed_ips_count),
        )
    return table


def build_snapshot_view(snapshot: MetricSnapshot):
    """All interface tables stacked, or a notice if there's nothing to show."""
    if snapshot.discovery_failed:
        return Text("  Interface discovery failed, see logs", style="bold red")
    if not snapshot.interfaces:
        return Text("  No WireGuard interfaces found", style="dim")
    return Group(*(build_interface_table(iface) for iface in snapshot.interfaces))


def build_display(snapshot: MetricSnapshot, source_name: str) -> Layout:
    layout = Layout()

    header = Text(f"  wg-exporter v{__version__}  |  {source_name}", style="bold white on blue")
    header.append(f"\n  {snapshot.timestamp.strftime('%Y-%m-%d %H:%M:%S')}  ", style="dim")
    header.append(
        f"  {len(snapshot.interfaces)} interface(s), {snapshot.peers_total} peer(s)",
        style="bold green" if not snapshot.discovery_failed else "bold red",
    )

    layout.split_column(
        Layout(Panel(header, border_style="blue"), size=4),
        Layout(Panel(build_snapshot_view(snapshot), title="Peers", border_style="cyan")),
        Layout(Panel(Text("  Press Ctrl+C to stop", style="dim"), border_style="dim"), size=3),
    )
    return layout


def print_snapshot(snapshot: MetricSnapshot, console: Console = None):
    console = console or Console()
    console.print(build_snapshot_view(snapshot))


def run_dashboard(collector: MetricsCollector, refresh_interval: float = 2.0):

    console = Console()
    source_name = collector.name()

    log.info("Starting dashboard: source=%s, refresh=%.1fs", source_name, refresh_interval)
    console.print(f"\n[bold]Starting wg-exporter v{__version__}...[/bold]")
    console.print(f"Source: {source_name}")
    console.print(f"Refresh: every {refresh_interval}s")
    console.print()

    consecutive_errors = 0

    with Live(console=console, refresh_per_second=1, screen=True) as live:
        try:
            while True:
                try:
                    snapshot = collector.collect()
                    consecutive_errors = 0
                except Exception as e:
                    consecutive_errors += 1
                    log.warning("Collection failed (attempt %d/%d): %s",
                                consecutive_errors, MAX_CONSECUTIVE_ERRORS, e)
                    if consecutive_errors >= MAX_CONSECUTIVE_ERRORS:
                        log.error("Giving up after %d failed collections", consecutive_errors)
                        console.print(f"\n[bold red]Giving up after {consecutive_errors} failures: {e}[/bold red]")
                        break
                    error_text = Text(
                        f"  Collection error (retry {consecutive_errors}/{MAX_CONSECUTIVE_ERRORS}): {e}",
                        style="bold red",
                    )
                    live.update(Panel(error_text, border_style="red"))
                    time.sleep(refresh_interval)
                    continue

                live.update(build_display(snapshot, source_name))
                time.sleep(refresh_interval)
        except KeyboardInterrupt:
            pass

    console.print("\n[dim]Dashboard stopped.[/dim]")


def run_jsonl(collector: MetricsCollector, refresh_interval: float = 2.0):
    """Non-interactive output mode: one JSON object per snapshot per line.

    For log shippers and anywhere a Rich TUI isn't available.
    """
    source_name = collector.name()
    log.info("Starting JSONL output: source=%s, refresh=%.1fs", source_name, refresh_interval)

    consecutive_errors = 0

    try:
        while True:
            try:
                snapshot = collector.collect()
                consecutive_errors = 0
            except Exception as e:
                consecutive_errors += 1
                log.warning("Collection failed (attempt %d/%d): %s",
                            consecutive_errors, MAX_CONSECUTIVE_ERRORS, e)
                if consecutive_errors >= MAX_CONSECUTIVE_ERRORS:
                    log.error("Giving up after %d failed collections", consecutive_errors)
                    break
                time.sleep(refresh_interval)
                continue

            record = snapshot.summary()
            record["source"] = source_name
            sys.stdout.write(json.dumps(record) + "\n")
            sys.stdout.flush()
            time.sleep(refresh_interval)
    except KeyboardInterrupt:
        pass
