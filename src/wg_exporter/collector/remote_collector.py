"""
Collector for a wg-exporter running elsewhere. Scrapes its metrics
endpoint and maps the Prometheus output back into a MetricSnapshot, so
the dashboard can watch a remote host without shell access to it.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, Tuple

import httpx

from wg_exporter.collector.base import MetricsCollector
from wg_exporter.collector.prometheus_parser import iter_samples, parse_prometheus_text
from wg_exporter.metrics import InterfaceSample, MetricSnapshot, PeerSample

# peer gauge name -> PeerSample attribute
_PEER_GAUGES = {
    "interface_peer_latest_handshake_seconds": "latest_handshake_seconds",
    "interface_peer_handshake_age_seconds": "handshake_age_seconds",
    "interface_peer_bytes_sent": "bytes_sent",
    "interface_peer_bytes_received": "bytes_received",
    "interface_peer_allowed_ips_count": "allowed_ips_count",
}

_INT_FIELDS = {"bytes_sent", "bytes_received", "allowed_ips_count"}


class RemoteCollector(MetricsCollector):

    def __init__(self, base_url: str, timeout_seconds: float = 5.0, metrics_path: str = "/metrics"):
        self._metrics_url = base_url.rstrip("/")
        if not self._metrics_url.endswith(metrics_path):
            self._metrics_url += metrics_path

        self._timeout = timeout_seconds
        self._client = httpx.Client(timeout=self._timeout)

    def collect(self) -> MetricSnapshot:
        """Scrape the remote exporter and rebuild its snapshot."""
        response = self._client.get(self._metrics_url)
        response.raise_for_status()

        families = parse_prometheus_text(response.text)
        snapshot = MetricSnapshot(timestamp=datetime.now(timezone.utc))
        interfaces: Dict[str, InterfaceSample] = {}
        peers: Dict[Tuple[str, str], PeerSample] = {}

        for sample in iter_samples(families, "interface_peers_total"):
            name = sample.labels.get("interface", "")
            iface = InterfaceSample(labels=dict(sample.labels))
            interfaces[name] = iface
            snapshot.interfaces.append(iface)

        for sample in iter_samples(families, "interface_listening_port"):
            iface = interfaces.get(sample.labels.get("interface", ""))
            if iface:
                iface.listening_port = int(sample.value)

        def peer_for(labels: Dict[str, str]) -> PeerSample:
            key = (labels.get("interface", ""), labels.get("peer", ""))
            peer = peers.get(key)
            if peer is None:
                peer_labels = {k: v for k, v in labels.items() if k != "endpoint"}
                peer = PeerSample(labels=peer_labels)
                peers[key] = peer
                iface = interfaces.get(key[0])
                if iface:
                    iface.peers.append(peer)
            return peer

        for metric_name, attr in _PEER_GAUGES.items():
            for sample in iter_samples(families, metric_name):
                value = int(sample.value) if attr in _INT_FIELDS else sample.value
                setattr(peer_for(sample.labels), attr, value)

        for sample in iter_samples(families, "interface_peer_endpoint"):
            peer = peer_for(sample.labels)
            peer.endpoint = sample.labels.get("endpoint", "")
            peer.endpoint_present = sample.value > 0

        return snapshot

    def name(self) -> str:
        return f"wg-exporter ({self._metrics_url})"

    def close(self):
        self._client.close()
