"""Tests for the human-readable fallback decoders."""

from datetime import datetime, timedelta, timezone

import pytest

from wg_exporter.collector.human_format import (
    parse_byte_size,
    parse_relative_time,
    parse_show_output,
    parse_transfer,
    read_interface_human,
)
from wg_exporter.errors import DumpParseError, UnitError
from wg_exporter.metrics import DumpShape

NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)

SHOW_OUTPUT = """\
interface: wg0
  public key: HIgo9xNzJMWLKASShiTqIybxZ0U3wGLiUeJ1PKf8ykw=
  private key: (hidden)
  listening port: 51820

peer: xTIBA5rboUvnH4htodjb6e697QjLERt1NAB4mZqp8Dg=
  endpoint: 198.51.100.10:51820
  allowed ips: 10.8.0.2/32, fd00:8::2/128
  latest handshake: 1 minute, 5 seconds ago
  transfer: 1.50 KiB received, 2.00 MiB sent

peer: TrMvSoP4jYQlY6RIzBgbssQqY3vxI2Pi+y71lOWWXX0=
  allowed ips: 10.8.0.3/32
"""


def test_relative_time_full():
    ts, seconds = parse_relative_time("3 days, 4 hours, 2 minutes, 10 seconds ago", now=NOW)
    assert seconds == 3 * 86400 + 4 * 3600 + 2 * 60 + 10
    assert ts == NOW - timedelta(seconds=seconds)


def test_relative_time_is_order_independent():
    _, a = parse_relative_time("1 day, 2 hours ago", now=NOW)
    _, b = parse_relative_time("2 hours, 1 day ago", now=NOW)
    assert a == b == 26 * 3600


def test_relative_time_case_and_missing_ago():
    _, seconds = parse_relative_time("5 MINUTES, 1 Second", now=NOW)
    assert seconds == 301


def test_relative_time_unmatched_is_zero():
    ts, seconds = parse_relative_time("Now", now=NOW)
    assert seconds == 0
    assert ts == NOW


@pytest.mark.parametrize("text, expected", [
    ("2 MiB", 2097152),
    ("1.5 GiB", 1610612736),
    ("512 B", 512),
    ("1 KB", 1024),
    ("3 kib", 3072),
    ("1 TiB", 1024 ** 4),
    ("0.5 mb", 524288),
])
def test_byte_size(text, expected):
    assert parse_byte_size(text) == expected


def test_byte_size_unknown_unit():
    with pytest.raises(UnitError):
        parse_byte_size("2 XB")


def test_byte_size_garbage():
    with pytest.raises(UnitError):
        parse_byte_size("lots")


def test_unit_error_is_a_value_error():
    with pytest.raises(ValueError):
        parse_byte_size("2 PiB")


def test_transfer_both_clauses():
    assert parse_transfer("12.34 MiB received, 1.00 GiB sent") == (
        int(12.34 * 1024 ** 2), 1024 ** 3,
    )


def test_transfer_missing_clause_is_zero():
    assert parse_transfer("4 KiB received") == (4096, 0)
    assert parse_transfer("4 KiB SENT") == (0, 4096)
    assert parse_transfer("") == (0, 0)


def test_transfer_bad_unit_propagates():
    with pytest.raises(UnitError):
        parse_transfer("4 XiB received, 1 B sent")


def test_parse_show_output():
    iface = parse_show_output("wg0", SHOW_OUTPUT, now=NOW)

    assert iface.shape is DumpShape.HUMAN
    assert iface.public_key == "HIgo9xNzJMWLKASShiTqIybxZ0U3wGLiUeJ1PKf8ykw="
    assert iface.listening_port == 51820
    assert len(iface.peers) == 2

    a, b = iface.peers
    assert a.endpoint == "198.51.100.10:51820"
    assert a.allowed_ips == ["10.8.0.2/32", "fd00:8::2/128"]
    assert a.latest_handshake == NOW - timedelta(seconds=65)
    assert a.bytes_received == 1536
    assert a.bytes_sent == 2 * 1024 ** 2

    assert b.endpoint is None
    assert b.latest_handshake is None
    assert b.bytes_received == 0


def test_parse_show_output_bad_unit_keeps_peer():
    text = "interface: wg0\n  listening port: 1\n\npeer: P\n  transfer: 1 XB received, 2 B sent\n"
    iface = parse_show_output("wg0", text, now=NOW)
    assert len(iface.peers) == 1
    assert iface.peers[0].bytes_received == 0
    assert iface.peers[0].bytes_sent == 0


def test_parse_show_output_without_interface_block():
    with pytest.raises(DumpParseError):
        parse_show_output("wg0", "nothing useful here\n")


def test_read_interface_human_from_fake_tool(fake_wg):
    cmd = fake_wg({"interfaces": [{
        "name": "wg0",
        "public_key": "PUB",
        "listen_port": 51820,
        "peers": [{"public_key": "PEER", "endpoint": "192.0.2.1:1",
                   "allowed_ips": ["10.0.0.2/32"], "rx": 2048, "tx": 3 * 1024 ** 2}],
    }]})

    iface = read_interface_human(cmd, "wg0")
    assert iface.public_key == "PUB"
    peer = iface.peers[0]
    assert peer.endpoint == "192.0.2.1:1"
    assert peer.bytes_received == 2048
    assert peer.bytes_sent == 3 * 1024 ** 2
    assert peer.latest_handshake is None
