"""
Collector for the local WireGuard interfaces.

One call to collect() is one scrape: discover interfaces, read each one
with the wg tool, fold in display names from the wg-quick configs, build
labels, then replace the published gauges with the new snapshot.
Interfaces that fail to read are skipped; a failed discovery publishes
nothing at all rather than a half-stale picture.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Dict, Optional

from wg_exporter.collector.base import MetricsCollector
from wg_exporter.collector.display_names import load_display_names
from wg_exporter.collector.dump_parser import read_interface
from wg_exporter.collector.human_format import read_interface_human
from wg_exporter.collector.interfaces import WG_COMMAND_TIMEOUT, discover_interfaces
from wg_exporter.config import RESERVED_LABELS, ExporterConfig
from wg_exporter.errors import ConfigFileMissing, ConfigReadError, ExporterError
from wg_exporter.metrics import (
    Interface,
    InterfaceSample,
    MetricSnapshot,
    Peer,
    PeerSample,
)
from wg_exporter.registry import MetricsRegistry

log = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WireGuardCollector(MetricsCollector):

    def __init__(
        self,
        config: ExporterConfig,
        registry: Optional[MetricsRegistry] = None,
        clock: Callable[[], datetime] = _utcnow,
        timeout_seconds: float = WG_COMMAND_TIMEOUT,
    ):
        self._config = config
        self._clock = clock
        self._timeout = timeout_seconds
        self._static_label_names = config.static_label_names()
        self.registry = registry or MetricsRegistry(self._static_label_names)
        self._lock = threading.Lock()

    def name(self) -> str:
        return f"WireGuard ({self._config.wg_command_path})"

    def collect(self) -> MetricSnapshot:
        """Run one collection cycle and publish it to the registry."""
        with self._lock:
            return self._collect_locked()

    def scrape(self) -> bytes:
        """Collect and render in one step, for the /metrics handler."""
        with self._lock:
            self._collect_locked()
            return self.registry.render()

    def _collect_locked(self) -> MetricSnapshot:
        snapshot = self.build_snapshot()
        self.registry.replace(snapshot)
        return snapshot

    def build_snapshot(self) -> MetricSnapshot:
        """Read current state without touching the registry."""
        now = self._clock()
        cfg = self._config

        try:
            names = discover_interfaces(
                cfg.wg_command_path, cfg.interfaces_denylist, timeout=self._timeout
            )
        except ExporterError as e:
            log.error("Failed to discover interfaces: %s", e)
            return MetricSnapshot(timestamp=now, discovery_failed=True)

        snapshot = MetricSnapshot(timestamp=now)
        for name in names:
            iface = self._read_interface(name)
            if iface is None:
                continue
            # ages are relative to when this interface was read, not cycle start
            read_at = self._clock()
            if cfg.display_names:
                self._apply_display_names(iface)
            snapshot.interfaces.append(self._sample_interface(iface, read_at))

        log.debug(
            "Collected snapshot: interfaces=%d peers=%d",
            len(snapshot.interfaces), snapshot.peers_total,
        )
        return snapshot

    def _read_interface(self, name: str) -> Optional[Interface]:
        command = self._config.wg_command_path
        try:
            return read_interface(command, name, timeout=self._timeout)
        except ExporterError as e:
            if not self._config.human_fallback:
                log.error("Failed to parse interface data: interface=%s error=%s", name, e)
                return None
            log.warning("Dump failed for %s (%s), trying human-readable output", name, e)

        try:
            return read_interface_human(command, name, timeout=self._timeout)
        except ExporterError as e:
            log.error("Failed to parse interface data: interface=%s error=%s", name, e)
            return None

    def _apply_display_names(self, iface: Interface):
        path = self._config.display_name_file(iface.name)
        try:
            names = load_display_names(path)
        except ConfigFileMissing:
            log.debug("No config file for %s at %s, using public keys", iface.name, path)
            return
        except ConfigReadError as e:
            log.warning("Display names unavailable for %s: %s", iface.name, e)
            return

        for peer in iface.peers:
            display_name = names.get(peer.public_key)
            if display_name:
                peer.display_name = display_name

    def interface_labels(self, interface: str) -> Dict[str, str]:
        labels = {name: "" for name in self._static_label_names}
        for key, value in self._config.interface_labels.get(interface, {}).items():
            if key not in RESERVED_LABELS:
                labels[key] = value
        labels["interface"] = interface
        return labels

    def _sample_peer(self, peer: Peer, base_labels: Dict[str, str], now: datetime) -> PeerSample:
        labels = dict(base_labels, peer=peer.label)

        if peer.latest_handshake is not None:
            latest = peer.latest_handshake.timestamp()
            age = max(0.0, (now - peer.latest_handshake).total_seconds())
        else:
            latest = age = 0.0

        show_endpoint = self._config.show_endpoints and bool(peer.endpoint)
        return PeerSample(
            labels=labels,
            endpoint=peer.endpoint if show_endpoint else "",
            endpoint_present=show_endpoint,
            latest_handshake_seconds=latest,
            handshake_age_seconds=age,
            bytes_sent=peer.bytes_sent,
            bytes_received=peer.bytes_received,
            allowed_ips_count=len(peer.allowed_ips),
        )

    def _sample_interface(self, iface: Interface, now: datetime) -> InterfaceSample:
        labels = self.interface_labels(iface.name)
        return InterfaceSample(
            labels=labels,
            public_key=iface.public_key,
            listening_port=iface.listening_port,
            peers=[self._sample_peer(peer, labels, now) for peer in iface.peers],
        )
