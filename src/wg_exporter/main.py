"""
wg-exporter entry point.

Usage:
    wg-exporter                              Serve metrics on :9586/metrics
    wg-exporter --config exporter.json       Same, with settings from a file
    wg-exporter show                         One-shot peer table
    wg-exporter watch                        Live dashboard of local interfaces
    wg-exporter watch --url http://vpn:9586  Live dashboard of a remote exporter
    wg-exporter --mock show                  Use the fake wg tool (no WireGuard needed)
"""

from __future__ import annotations

import logging
import os
import shlex
import sys

import click

from wg_exporter import __version__
from wg_exporter.collector.remote_collector import RemoteCollector
from wg_exporter.collector.wireguard_collector import WireGuardCollector
from wg_exporter.config import load_config, split_list
from wg_exporter.dashboard.terminal import print_snapshot, run_dashboard, run_jsonl
from wg_exporter.errors import ConfigError
from wg_exporter.server import serve


log = logging.getLogger("wg_exporter")


def _fake_wg_command() -> str:
    return f"{shlex.quote(sys.executable)} -m wg_exporter.mock.fake_wg"


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="wg-exporter")
@click.option("--config", "config_file", default=None, type=click.Path(dir_okay=False),
              help="Path to a JSON configuration file")
@click.option("--listen-address", default=None, help="Address to listen on (e.g. :9586)")
@click.option("--metrics-path", default=None, help="Path for the metrics endpoint")
@click.option("--interfaces-denylist", default=None,
              help="Comma-separated list of interfaces to exclude")
@click.option("--wg-command-path", default=None, help="Path to the wg command")
@click.option("--show-endpoints/--hide-endpoints", default=None,
              help="Expose peer endpoints as a label")
@click.option("--display-names/--no-display-names", default=None,
              help="Resolve peer display names from wg-quick configs")
@click.option("--wireguard-config-dir", default=None,
              help="Directory holding <interface>.conf files")
@click.option("--human-fallback", is_flag=True, default=None,
              help="Parse `wg show <iface>` when the dump format fails")
@click.option("--mock", is_flag=True, default=False, help="Use the fake wg tool with demo data")
@click.option("--verbose", is_flag=True, default=False, help="Enable debug logging")
@click.pass_context
def cli(ctx, config_file, listen_address, metrics_path, interfaces_denylist, wg_command_path,
        show_endpoints, display_names, wireguard_config_dir, human_fallback, mock, verbose):
    """wg-exporter - Prometheus exporter for WireGuard."""
    debug = verbose or os.environ.get("LOG_LEVEL", "").lower() == "debug"
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    overrides = {
        "listen_address": listen_address,
        "metrics_path": metrics_path,
        "interfaces_denylist": split_list(interfaces_denylist) if interfaces_denylist is not None else None,
        "wg_command_path": _fake_wg_command() if mock else wg_command_path,
        "show_endpoints": show_endpoints,
        "display_names": display_names,
        "wireguard_config_dir": wireguard_config_dir,
        "human_fallback": human_fallback or None,
    }

    try:
        config = load_config(config_file, overrides=overrides)
    except ConfigError as e:
        log.error("Failed to load configuration: %s", e)
        raise SystemExit(1)

    ctx.ensure_object(dict)
    ctx.obj["config"] = config

    if ctx.invoked_subcommand is None:
        collector = WireGuardCollector(config)
        try:
            serve(config, collector)
        except (ConfigError, OSError) as e:
            log.error("Failed to start server: %s", e)
            raise SystemExit(1)


@cli.command()
@click.pass_context
def show(ctx):
    """Collect once and print a table of interfaces and peers."""
    collector = WireGuardCollector(ctx.obj["config"])
    snapshot = collector.collect()
    print_snapshot(snapshot)
    if snapshot.discovery_failed:
        raise SystemExit(1)


@cli.command()
@click.option("--url", default=None, help="Watch a remote exporter instead (e.g. http://vpn:9586)")
@click.option("--refresh", default=2.0, help="Refresh interval in seconds")
@click.option("--output", type=click.Choice(["tui", "jsonl"]), default="tui",
              help="Output mode: tui (Rich dashboard) or jsonl (one JSON line per snapshot)")
@click.pass_context
def watch(ctx, url, refresh, output):
    """Live view of peers, refreshed every few seconds."""
    config = ctx.obj["config"]
    if url:
        collector = RemoteCollector(base_url=url, metrics_path=config.metrics_path)
    else:
        collector = WireGuardCollector(config)

    runner = run_jsonl if output == "jsonl" else run_dashboard
    try:
        runner(collector, refresh_interval=refresh)
    finally:
        collector.close()


if __name__ == "__main__":
    cli()
