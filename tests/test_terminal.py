"""Tests for the Rich terminal views."""

from datetime import datetime, timezone

from rich.console import Console

from wg_exporter.dashboard.terminal import (
    build_display,
    format_age,
    format_bytes,
    print_snapshot,
)
from wg_exporter.metrics import InterfaceSample, MetricSnapshot, PeerSample


def _make_snapshot(**overrides) -> MetricSnapshot:
    peers = [
        PeerSample(
            labels={"interface": "wg0", "peer": "alice"},
            endpoint="198.51.100.10:51820",
            endpoint_present=True,
            latest_handshake_seconds=1700000000,
            handshake_age_seconds=42,
            bytes_received=3 * 1024 ** 2,
            bytes_sent=512,
            allowed_ips_count=2,
        ),
        PeerSample(labels={"interface": "wg0", "peer": "ci-runner"}),
    ]
    defaults = dict(
        timestamp=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
        interfaces=[InterfaceSample(labels={"interface": "wg0"}, listening_port=51820, peers=peers)],
    )
    defaults.update(overrides)
    return MetricSnapshot(**defaults)


def _render(snapshot) -> str:
    console = Console(record=True, width=120)
    print_snapshot(snapshot, console=console)
    return console.export_text()


def test_format_bytes():
    assert format_bytes(0) == "0 B"
    assert format_bytes(1023) == "1023 B"
    assert format_bytes(1536) == "1.50 KiB"
    assert format_bytes(3 * 1024 ** 3) == "3.00 GiB"


def test_format_age():
    assert format_age(42) == "42s"
    assert format_age(125) == "2m 5s"
    assert format_age(7260) == "2h 1m"
    assert format_age(90000) == "1d 1h"


def test_table_lists_peers():
    text = _render(_make_snapshot())
    assert "alice" in text
    assert "ci-runner" in text
    assert "3.00 MiB" in text
    assert "never" in text
    assert "42s ago" in text


def test_empty_and_failed_snapshots():
    assert "No WireGuard interfaces" in _render(_make_snapshot(interfaces=[]))
    assert "discovery failed" in _render(_make_snapshot(interfaces=[], discovery_failed=True))


def test_build_display_renders():
    console = Console(record=True, width=120, height=40)
    console.print(build_display(_make_snapshot(), "WireGuard (wg)"))
    text = console.export_text()
    assert "WireGuard (wg)" in text
    assert "1 interface(s), 2 peer(s)" in text


def test_summary_is_json_friendly():
    summary = _make_snapshot().summary()
    assert summary["peers_total"] == 2
    assert summary["interfaces"][0]["interface"] == "wg0"
    assert summary["interfaces"][0]["peers"][0]["peer"] == "alice"
