"""
Fake `wg` tool for development and tests on machines without WireGuard.

    python -m wg_exporter.mock.fake_wg show interfaces
    python -m wg_exporter.mock.fake_wg show wg0 dump
    wg-exporter --mock show

State comes from the JSON file named by WG_EXPORTER_FAKE_STATE, or from a
built-in demo with two interfaces whose counters grow with wall-clock
time. State file layout:

    {
        "interfaces": [
            {"name": "wg0", "private_key": "...", "public_key": "...",
             "listen_port": 51820, "restricted": false,
             "peers": [{"public_key": "...", "endpoint": "203.0.113.7:51820",
                        "allowed_ips": ["10.0.0.2/32"], "latest_handshake": 1700000000,
                        "rx": 100, "tx": 200}]}
        ],
        "names": ["wg0", "bad;name"],      # optional `show interfaces` override
        "one_per_line": false,             # list names one per line like older wg
        "fail": ["wg1"],                   # interfaces whose show command exits 1
        "fail_dump": ["wg2"],              # only `show <iface> dump` exits 1
        "fail_discovery": false,
        "sleep": 0                         # seconds to stall before answering
    }
"""

from __future__ import annotations

import base64
import hashlib
import json
import os
import sys
import time
from typing import List, Optional

STATE_ENV = "WG_EXPORTER_FAKE_STATE"

_DEMO_PEERS = {
    "wg0": [
        ("alice-laptop", "198.51.100.10:51820", ["10.8.0.2/32"], 45),
        ("bob-phone", "203.0.113.24:40112", ["10.8.0.3/32", "fd00:8::3/128"], 130),
        ("ci-runner", None, ["10.8.0.10/32"], None),
    ],
    "wg1": [
        ("site-b", "192.0.2.77:51821", ["10.9.0.0/24", "172.16.0.0/16"], 20),
    ],
}


def fake_key(seed: str) -> str:
    """Deterministic 44-char base64 string that looks like a WireGuard key."""
    return base64.b64encode(hashlib.sha256(seed.encode()).digest()).decode()


def demo_state(now: Optional[float] = None) -> dict:
    if now is None:
        now = time.time()
    tick = int(now) % 86400

    interfaces = []
    for port_offset, (name, peers) in enumerate(_DEMO_PEERS.items()):
        iface_peers = []
        for i, (peer_name, endpoint, allowed_ips, handshake_ago) in enumerate(peers):
            iface_peers.append({
                "public_key": fake_key(peer_name),
                "endpoint": endpoint,
                "allowed_ips": allowed_ips,
                "latest_handshake": int(now) - handshake_ago if handshake_ago is not None else 0,
                "rx": (i + 1) * 1_048_576 + tick * 2048 * (i + 1),
                "tx": (i + 1) * 524_288 + tick * 8192 * (i + 1),
            })
        interfaces.append({
            "name": name,
            "private_key": fake_key(f"{name}-private"),
            "public_key": fake_key(name),
            "listen_port": 51820 + port_offset,
            "peers": iface_peers,
        })
    return {"interfaces": interfaces}


def load_state() -> dict:
    path = os.environ.get(STATE_ENV)
    if not path:
        return demo_state()
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def _find(state: dict, name: str) -> Optional[dict]:
    for iface in state.get("interfaces", []):
        if iface["name"] == name:
            return iface
    return None


def render_dump(iface: dict) -> str:
    restricted = iface.get("restricted", False)
    if restricted:
        header = [iface["public_key"], str(iface.get("listen_port", 0))]
    else:
        header = [
            iface.get("private_key", "(none)"),
            iface["public_key"],
            str(iface.get("listen_port", 0)),
            str(iface.get("fwmark", "off")),
        ]
    lines = ["\t".join(header)]

    for peer in iface.get("peers", []):
        fields = [peer["public_key"]]
        if not restricted:
            fields.append(peer.get("preshared_key", "(none)"))
        fields += [
            peer.get("endpoint") or "(none)",
            ",".join(peer.get("allowed_ips", [])) or "(none)",
            str(peer.get("latest_handshake", 0)),
            str(peer.get("rx", 0)),
            str(peer.get("tx", 0)),
            str(peer.get("keepalive", "off")),
        ]
        lines.append("\t".join(fields))
    return "\n".join(lines) + "\n"


def _plural(n: int, unit: str) -> str:
    return f"{n} {unit}" + ("" if n == 1 else "s")


def format_ago(seconds: int) -> str:
    if seconds <= 0:
        return "Now"
    parts = []
    for unit, size in (("day", 86400), ("hour", 3600), ("minute", 60), ("second", 1)):
        if seconds >= size:
            parts.append(_plural(seconds // size, unit))
            seconds %= size
    return ", ".join(parts) + " ago"


def format_bytes(n: int) -> str:
    for unit, size in (("TiB", 1024 ** 4), ("GiB", 1024 ** 3), ("MiB", 1024 ** 2), ("KiB", 1024)):
        if n >= size:
            return f"{n / size:.2f} {unit}"
    return f"{n} B"


def render_show(iface: dict, now: Optional[float] = None) -> str:
    if now is None:
        now = time.time()
    lines = [
        f"interface: {iface['name']}",
        f"  public key: {iface['public_key']}",
        "  private key: (hidden)",
        f"  listening port: {iface.get('listen_port', 0)}",
    ]
    for peer in iface.get("peers", []):
        lines += ["", f"peer: {peer['public_key']}"]
        if peer.get("endpoint"):
            lines.append(f"  endpoint: {peer['endpoint']}")
        lines.append(f"  allowed ips: {', '.join(peer.get('allowed_ips', [])) or '(none)'}")
        if peer.get("latest_handshake"):
            lines.append(f"  latest handshake: {format_ago(int(now) - peer['latest_handshake'])}")
        if peer.get("rx") or peer.get("tx"):
            lines.append(
                f"  transfer: {format_bytes(peer.get('rx', 0))} received, "
                f"{format_bytes(peer.get('tx', 0))} sent"
            )
    return "\n".join(lines) + "\n"


def main(argv: Optional[List[str]] = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if not args or args[0] != "show" or len(args) < 2:
        sys.stderr.write("Usage: fake_wg show { interfaces | <interface> [dump] }\n")
        return 1

    state = load_state()
    if state.get("sleep"):
        time.sleep(float(state["sleep"]))

    if args[1] == "interfaces":
        if state.get("fail_discovery"):
            sys.stderr.write("Unable to list interfaces: Operation not permitted\n")
            return 1
        names = state.get("names") or [iface["name"] for iface in state.get("interfaces", [])]
        sep = "\n" if state.get("one_per_line") else " "
        sys.stdout.write(sep.join(names) + "\n")
        return 0

    name = args[1]
    iface = _find(state, name)
    if iface is None or name in state.get("fail", []):
        sys.stderr.write("Unable to access interface: No such device\n")
        return 1

    if len(args) > 2 and args[2] == "dump":
        if name in state.get("fail_dump", []):
            sys.stderr.write("Unable to access interface: Protocol not supported\n")
            return 1
        sys.stdout.write(render_dump(iface))
    else:
        sys.stdout.write(render_show(iface))
    return 0


if __name__ == "__main__":
    sys.exit(main())
