"""
Prometheus gauges for the exporter, owned by one MetricsRegistry object.

Lifecycle per scrape: replace(snapshot), then render(). The caller must
serialize the two; WireGuardCollector does that with its lock.
All series are gauges because wg reports absolute values and we do no
reset detection.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple

from prometheus_client import CollectorRegistry, Gauge, generate_latest

from wg_exporter.metrics import MetricSnapshot

INTERFACE_LABELS = ("interface",)
PEER_LABELS = ("interface", "peer")
ENDPOINT_LABELS = ("interface", "peer", "endpoint")


class MetricsRegistry:

    def __init__(
        self,
        static_label_names: Iterable[str] = (),
        registry: Optional[CollectorRegistry] = None,
    ):
        self.registry = registry if registry is not None else CollectorRegistry()
        self.static_label_names = tuple(static_label_names)
        extra = self.static_label_names

        def gauge(name: str, doc: str, labels: tuple) -> Gauge:
            return Gauge(name, doc, labelnames=labels + extra, registry=self.registry)

        self.peers_total = gauge(
            "interface_peers_total",
            "Number of configured peers per WireGuard interface",
            INTERFACE_LABELS,
        )
        self.latest_handshake_seconds = gauge(
            "interface_peer_latest_handshake_seconds",
            "Unix timestamp of the latest handshake per peer (0 if never)",
            PEER_LABELS,
        )
        self.handshake_age_seconds = gauge(
            "interface_peer_handshake_age_seconds",
            "Age in seconds of the latest handshake per peer (0 if never)",
            PEER_LABELS,
        )
        self.bytes_sent = gauge(
            "interface_peer_bytes_sent",
            "Total bytes sent to peer",
            PEER_LABELS,
        )
        self.bytes_received = gauge(
            "interface_peer_bytes_received",
            "Total bytes received from peer",
            PEER_LABELS,
        )
        self.listening_port = gauge(
            "interface_listening_port",
            "Listening port of the WireGuard interface",
            INTERFACE_LABELS,
        )
        self.endpoint = gauge(
            "interface_peer_endpoint",
            "Peer endpoint information (1 if endpoint exists and is shown, 0 otherwise)",
            ENDPOINT_LABELS,
        )
        self.allowed_ips_count = gauge(
            "interface_peer_allowed_ips_count",
            "Number of allowed IPs per peer",
            PEER_LABELS,
        )

    def gauges(self):
        return [
            self.peers_total,
            self.latest_handshake_seconds,
            self.handshake_age_seconds,
            self.bytes_sent,
            self.bytes_received,
            self.listening_port,
            self.endpoint,
            self.allowed_ips_count,
        ]

    def reset(self):
        """Drop every series so nothing from the previous cycle survives."""
        for g in self.gauges():
            g.clear()

    def _values(self, labels: Dict[str, str], base: tuple) -> Tuple[str, ...]:
        # positional, so no label name can clash with a parameter of labels()
        return tuple(labels.get(name, "") for name in base + self.static_label_names)

    def _series(self, snapshot: MetricSnapshot) -> List[Tuple[Gauge, Tuple[str, ...], float]]:
        series = []
        for iface in snapshot.interfaces:
            values = self._values(iface.labels, INTERFACE_LABELS)
            series.append((self.peers_total, values, iface.peers_total))
            series.append((self.listening_port, values, iface.listening_port))

            for peer in iface.peers:
                values = self._values(peer.labels, PEER_LABELS)
                series.append((self.latest_handshake_seconds, values, peer.latest_handshake_seconds))
                series.append((self.handshake_age_seconds, values, peer.handshake_age_seconds))
                series.append((self.bytes_sent, values, peer.bytes_sent))
                series.append((self.bytes_received, values, peer.bytes_received))
                series.append((self.allowed_ips_count, values, peer.allowed_ips_count))

                endpoint_values = self._values(
                    dict(peer.labels, endpoint=peer.endpoint), ENDPOINT_LABELS
                )
                series.append((self.endpoint, endpoint_values, 1 if peer.endpoint_present else 0))
        return series

    def write(self, snapshot: MetricSnapshot):
        for gauge, values, value in self._series(snapshot):
            gauge.labels(*values).set(value)

    def replace(self, snapshot: MetricSnapshot):
        """Swap the published series for the snapshot's, all or nothing.

        Label values are resolved before anything is cleared. If setting a
        gauge still fails, the registry is left empty rather than holding a
        mix of two cycles.
        """
        series = self._series(snapshot)
        self.reset()
        try:
            for gauge, values, value in series:
                gauge.labels(*values).set(value)
        except Exception:
            self.reset()
            raise

    def render(self) -> bytes:
        return generate_latest(self.registry)

    def sample_value(self, name: str, labels: Dict[str, str]) -> Optional[float]:
        """Current value of one series, or None. Static labels default to ""."""
        full = {k: "" for k in self.static_label_names}
        full.update(labels)
        return self.registry.get_sample_value(name, full)
