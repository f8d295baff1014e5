"""
HTTP surface: the metrics endpoint plus a health check and a small
landing page. Each GET on the metrics path runs one full collection.
"""

from __future__ import annotations

import logging
import signal
import socket
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

from prometheus_client import CONTENT_TYPE_LATEST

from wg_exporter import __version__
from wg_exporter.collector.wireguard_collector import WireGuardCollector
from wg_exporter.config import ExporterConfig

log = logging.getLogger(__name__)


class _IPv6HTTPServer(ThreadingHTTPServer):
    address_family = socket.AF_INET6


def make_handler(collector: WireGuardCollector, metrics_path: str = "/metrics"):
    """Build a request handler class bound to one collector."""

    class _MetricsHandler(BaseHTTPRequestHandler):
        server_version = f"wg-exporter/{__version__}"

        def _send(self, status: int, body: bytes, content_type: str = "text/plain; charset=utf-8"):
            self.send_response(status)
            self.send_header("Content-Type", content_type)
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)

        def do_GET(self):
            path = self.path.split("?", 1)[0]

            if path == metrics_path:
                try:
                    body = collector.scrape()
                except Exception:
                    log.exception("Scrape failed")
                    self._send(500, b"scrape failed\n")
                    return
                self._send(200, body, CONTENT_TYPE_LATEST)
            elif path == "/health":
                self._send(200, b"OK\n")
            elif path == "/":
                body = f"WireGuard Prometheus Exporter\nMetrics endpoint: {metrics_path}\n"
                self._send(200, body.encode())
            else:
                self._send(404, b"not found\n")

        def log_message(self, format, *args):
            log.debug("%s - %s", self.address_string(), format % args)

    return _MetricsHandler


def create_server(config: ExporterConfig, collector: WireGuardCollector) -> ThreadingHTTPServer:
    host, port = config.listen_host_port()
    server_cls = _IPv6HTTPServer if ":" in host else ThreadingHTTPServer
    server = server_cls((host, port), make_handler(collector, config.metrics_path))
    server.daemon_threads = True
    return server


def serve(config: ExporterConfig, collector: WireGuardCollector):
    """Run until SIGINT or SIGTERM."""
    server = create_server(config, collector)

    def _shutdown(signum, frame):
        log.info("Shutting down server...")
        # shutdown() blocks until serve_forever returns, so not from this thread
        threading.Thread(target=server.shutdown, daemon=True).start()

    signal.signal(signal.SIGTERM, _shutdown)
    signal.signal(signal.SIGINT, _shutdown)

    log.info(
        "Starting WireGuard Prometheus exporter: address=%s path=%s",
        config.listen_address, config.metrics_path,
    )
    try:
        server.serve_forever()
    finally:
        server.server_close()
    log.info("Server exited")
