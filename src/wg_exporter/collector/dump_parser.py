"""
Parser for `wg show <iface> dump`.

The dump is one header line for the interface followed by one line per
peer, fields separated by tabs. Two header shapes show up depending on
who runs wg:

    PRIVILEGED  private_key  public_key  listen_port  fwmark
                peer: public_key  preshared_key  endpoint  allowed_ips
                      latest_handshake  rx  tx  keepalive

    RESTRICTED  public_key  listen_port  [fwmark]
                peer: public_key  endpoint  allowed_ips
                      latest_handshake  rx  tx  [keepalive]

The shape is picked from the header's field count and the peer layout
follows from it. Guessing wrong would silently put the private key into
the public key slot, so a header we can't classify is an error.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

from wg_exporter.collector.interfaces import (
    WG_COMMAND_TIMEOUT,
    Command,
    is_valid_interface_name,
    run_wg,
)
from wg_exporter.errors import DumpParseError, InvalidInterfaceName
from wg_exporter.metrics import DumpShape, Interface, Peer

log = logging.getLogger(__name__)

NONE_SENTINEL = "(none)"
MAX_UINT64 = 2 ** 64 - 1


@dataclass(frozen=True)
class _PeerLayout:
    endpoint: int
    allowed_ips: int
    latest_handshake: int
    rx: int
    tx: int
    min_fields: int


_PEER_LAYOUTS = {
    DumpShape.PRIVILEGED: _PeerLayout(endpoint=2, allowed_ips=3, latest_handshake=4, rx=5, tx=6, min_fields=7),
    DumpShape.RESTRICTED: _PeerLayout(endpoint=1, allowed_ips=2, latest_handshake=3, rx=4, tx=5, min_fields=6),
}


def detect_shape(header_fields: List[str]) -> DumpShape:
    if len(header_fields) >= 4:
        return DumpShape.PRIVILEGED
    if len(header_fields) >= 2:
        return DumpShape.RESTRICTED
    raise DumpParseError(f"invalid interface dump header: {len(header_fields)} field(s)")


def _parse_port(value: str) -> int:
    try:
        port = int(value)
    except ValueError:
        return 0
    return port if 0 <= port <= 65535 else 0


def _parse_counter(value: str) -> int:
    try:
        n = int(value)
    except ValueError:
        return 0
    return n if 0 <= n <= MAX_UINT64 else 0


def parse_handshake(value: str) -> Optional[datetime]:
    """Unix seconds to a UTC datetime. 0 means the peer never shook hands."""
    try:
        ts = int(value)
    except ValueError:
        return None
    if ts <= 0:
        return None
    try:
        return datetime.fromtimestamp(ts, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def parse_allowed_ips(value: str) -> List[str]:
    ips = []
    for entry in value.split(","):
        entry = entry.strip()
        if entry and entry != NONE_SENTINEL:
            ips.append(entry)
    return ips


def _parse_peer(fields: List[str], layout: _PeerLayout) -> Peer:
    endpoint = fields[layout.endpoint]
    return Peer(
        public_key=fields[0],
        endpoint=None if endpoint == NONE_SENTINEL else endpoint,
        allowed_ips=parse_allowed_ips(fields[layout.allowed_ips]),
        latest_handshake=parse_handshake(fields[layout.latest_handshake]),
        bytes_received=_parse_counter(fields[layout.rx]),
        bytes_sent=_parse_counter(fields[layout.tx]),
    )


def parse_dump(name: str, text: str) -> Interface:
    """Parse dump output for one interface. Malformed peer lines are skipped."""
    lines = [line for line in text.splitlines() if line.strip()]
    if not lines:
        raise DumpParseError(f"no data returned from wg show {name} dump")

    header = lines[0].split()
    shape = detect_shape(header)

    if shape is DumpShape.PRIVILEGED:
        public_key, port = header[1], header[2]
    else:
        public_key, port = header[0], header[1]

    iface = Interface(
        name=name,
        public_key=public_key,
        listening_port=_parse_port(port),
        shape=shape,
    )
    log.debug("Parsed %s header: shape=%s port=%d", name, shape.value, iface.listening_port)

    layout = _PEER_LAYOUTS[shape]
    for lineno, line in enumerate(lines[1:], start=2):
        fields = line.split()
        if len(fields) < layout.min_fields:
            log.debug(
                "Skipping short peer line %d on %s (%d fields, need %d)",
                lineno, name, len(fields), layout.min_fields,
            )
            continue
        iface.peers.append(_parse_peer(fields, layout))

    log.debug("Parsed interface data: interface=%s peers=%d", name, len(iface.peers))
    return iface


def read_interface(command: Command, name: str, timeout: float = WG_COMMAND_TIMEOUT) -> Interface:
    """Run `wg show <name> dump` and parse the result."""
    if not is_valid_interface_name(name):
        raise InvalidInterfaceName(f"invalid interface name: {name!r}")

    output = run_wg(command, ["show", name, "dump"], timeout=timeout)
    return parse_dump(name, output)
