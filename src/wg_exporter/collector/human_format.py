"""
Fallback decoders for the human-readable `wg show <iface>` output.

Only used when the dump format isn't available. The decoders are lenient
about time ("3 days, 4 hours ago" with any unit missing) but strict about
byte units, since a wrong multiplier would be off by orders of magnitude.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Optional, Tuple

from wg_exporter.collector.dump_parser import NONE_SENTINEL, parse_allowed_ips
from wg_exporter.collector.interfaces import (
    WG_COMMAND_TIMEOUT,
    Command,
    is_valid_interface_name,
    run_wg,
)
from wg_exporter.errors import DumpParseError, InvalidInterfaceName, UnitError
from wg_exporter.metrics import DumpShape, Interface, Peer

log = logging.getLogger(__name__)

_DAYS_RE = re.compile(r"(\d+)\s*days?\b", re.IGNORECASE)
_HOURS_RE = re.compile(r"(\d+)\s*hours?\b", re.IGNORECASE)
_MINUTES_RE = re.compile(r"(\d+)\s*minutes?\b", re.IGNORECASE)
_SECONDS_RE = re.compile(r"(\d+)\s*seconds?\b", re.IGNORECASE)

_SIZE_RE = re.compile(r"^\s*(\d+(?:\.\d+)?|\.\d+)\s*([A-Za-z]+)\s*$")
_RECEIVED_RE = re.compile(r"(\d+(?:\.\d+)?)\s*([A-Za-z]+)\s+received", re.IGNORECASE)
_SENT_RE = re.compile(r"(\d+(?:\.\d+)?)\s*([A-Za-z]+)\s+sent", re.IGNORECASE)

UNIT_MULTIPLIERS = {
    "b": 1,
    "kb": 1024,
    "kib": 1024,
    "mb": 1024 ** 2,
    "mib": 1024 ** 2,
    "gb": 1024 ** 3,
    "gib": 1024 ** 3,
    "tb": 1024 ** 4,
    "tib": 1024 ** 4,
}


def _first_int(pattern: re.Pattern, text: str) -> int:
    match = pattern.search(text)
    return int(match.group(1)) if match else 0


def parse_relative_time(text: str, now: Optional[datetime] = None) -> Tuple[datetime, int]:
    """Decode "1 day, 2 hours, 3 minutes, 4 seconds ago".

    Returns (now - duration, duration in seconds). Text with no recognisable
    units decodes to a zero duration.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    seconds = (
        _first_int(_DAYS_RE, text) * 86400
        + _first_int(_HOURS_RE, text) * 3600
        + _first_int(_MINUTES_RE, text) * 60
        + _first_int(_SECONDS_RE, text)
    )
    return now - timedelta(seconds=seconds), seconds


def parse_byte_size(text: str) -> int:
    """Decode "12.34 MiB" into bytes using 1024-based multipliers."""
    match = _SIZE_RE.match(text)
    if not match:
        raise UnitError(f"unrecognized byte size: {text!r}")

    magnitude, unit = match.groups()
    multiplier = UNIT_MULTIPLIERS.get(unit.lower())
    if multiplier is None:
        raise UnitError(f"unknown size unit: {unit!r}")

    try:
        return int(Decimal(magnitude) * multiplier)
    except InvalidOperation as e:
        raise UnitError(f"bad size magnitude: {magnitude!r}") from e


def parse_transfer(text: str) -> Tuple[int, int]:
    """Decode "1.2 MiB received, 3 KiB sent" into (received, sent).

    Either clause may be missing, in which case that side is 0.
    """
    received = sent = 0

    match = _RECEIVED_RE.search(text)
    if match:
        received = parse_byte_size(f"{match.group(1)} {match.group(2)}")

    match = _SENT_RE.search(text)
    if match:
        sent = parse_byte_size(f"{match.group(1)} {match.group(2)}")

    return received, sent


def _split_field(line: str) -> Tuple[str, str]:
    key, _, value = line.strip().partition(":")
    return key.strip().lower(), value.strip()


def parse_show_output(name: str, text: str, now: Optional[datetime] = None) -> Interface:
    """Parse the block `wg show <name>` prints into an Interface."""
    if now is None:
        now = datetime.now(timezone.utc)

    iface: Optional[Interface] = None
    peer: Optional[Peer] = None

    for line in text.splitlines():
        if not line.strip():
            continue
        key, value = _split_field(line)

        if key == "interface":
            iface = Interface(name=name, public_key="", shape=DumpShape.HUMAN)
            peer = None
            continue
        if iface is None:
            continue

        if key == "peer":
            peer = Peer(public_key=value)
            iface.peers.append(peer)
            continue

        if peer is None:
            if key == "public key":
                iface.public_key = value
            elif key == "listening port":
                try:
                    iface.listening_port = int(value)
                except ValueError:
                    iface.listening_port = 0
            continue

        if key == "endpoint":
            peer.endpoint = None if value == NONE_SENTINEL else value
        elif key == "allowed ips":
            peer.allowed_ips = parse_allowed_ips(value)
        elif key == "latest handshake":
            peer.latest_handshake, _ = parse_relative_time(value, now=now)
        elif key == "transfer":
            try:
                peer.bytes_received, peer.bytes_sent = parse_transfer(value)
            except UnitError as e:
                log.warning("Bad transfer line for peer %s on %s: %s", peer.public_key, name, e)

    if iface is None:
        raise DumpParseError(f"no interface block in wg show {name} output")

    log.debug("Parsed human-readable output: interface=%s peers=%d", name, len(iface.peers))
    return iface


def read_interface_human(command: Command, name: str, timeout: float = WG_COMMAND_TIMEOUT) -> Interface:
    """Run `wg show <name>` and parse the human-readable output."""
    if not is_valid_interface_name(name):
        raise InvalidInterfaceName(f"invalid interface name: {name!r}")

    output = run_wg(command, ["show", name], timeout=timeout)
    return parse_show_output(name, output)
