"""Prometheus exporter for WireGuard interfaces and peers."""

__version__ = "0.3.0"
