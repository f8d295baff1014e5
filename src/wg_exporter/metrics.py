"""
Core data model for wg-exporter.

Interface and Peer are what the parsers produce from wg output. The
*Sample classes are what the collector turns them into: resolved label
sets plus the numbers that end up in the Prometheus gauges. Everything
here lives for one scrape and is thrown away afterwards.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional


class DumpShape(enum.Enum):
    """Which output format an Interface was parsed from."""

    PRIVILEGED = "privileged"   # dump header starts with the private key
    RESTRICTED = "restricted"   # dump header starts with the public key
    HUMAN = "human"             # `wg show <iface>` fallback


@dataclass
class Peer:
    public_key: str
    endpoint: Optional[str] = None          # None if the peer never connected
    allowed_ips: List[str] = field(default_factory=list)
    latest_handshake: Optional[datetime] = None
    bytes_received: int = 0
    bytes_sent: int = 0
    display_name: str = ""                  # filled in from the wg-quick config

    @property
    def label(self) -> str:
        """Value for the `peer` label: display name if we have one."""
        return self.display_name or self.public_key


@dataclass
class Interface:
    name: str
    public_key: str
    listening_port: int = 0                 # 0 = unknown
    peers: List[Peer] = field(default_factory=list)
    shape: DumpShape = DumpShape.RESTRICTED


@dataclass
class PeerSample:
    labels: Dict[str, str]
    endpoint: str = ""                      # "" when hidden or absent
    endpoint_present: bool = False
    latest_handshake_seconds: float = 0.0
    handshake_age_seconds: float = 0.0
    bytes_sent: int = 0
    bytes_received: int = 0
    allowed_ips_count: int = 0

    @property
    def peer(self) -> str:
        return self.labels.get("peer", "")


@dataclass
class InterfaceSample:
    labels: Dict[str, str]
    public_key: str = ""
    listening_port: int = 0
    peers: List[PeerSample] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.labels.get("interface", "")

    @property
    def peers_total(self) -> int:
        return len(self.peers)


@dataclass
class MetricSnapshot:
    """Everything one collection cycle produced."""

    timestamp: datetime
    interfaces: List[InterfaceSample] = field(default_factory=list)
    discovery_failed: bool = False

    @property
    def peers_total(self) -> int:
        return sum(iface.peers_total for iface in self.interfaces)

    def interface(self, name: str) -> Optional[InterfaceSample]:
        for iface in self.interfaces:
            if iface.name == name:
                return iface
        return None

    def summary(self) -> dict:
        """Return a plain dict for display or JSON output."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "discovery_failed": self.discovery_failed,
            "peers_total": self.peers_total,
            "interfaces": [
                {
                    "interface": iface.name,
                    "listening_port": iface.listening_port,
                    "peers_total": iface.peers_total,
                    "peers": [
                        {
                            "peer": peer.peer,
                            "endpoint": peer.endpoint,
                            "handshake_age_seconds": round(peer.handshake_age_seconds, 1),
                            "bytes_received": peer.bytes_received,
                            "bytes_sent": peer.bytes_sent,
                            "allowed_ips_count": peer.allowed_ips_count,
                        }
                        for peer in iface.peers
                    ],
                }
                for iface in self.interfaces
            ],
        }
