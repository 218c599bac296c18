# -----------------------------------------------------------------------------
# Copyright (c) 2025 Redfish Exporter contributors
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

"""
HTTP endpoints of the exporter.

- ``GET /redfish?target=<host>[&group=<name>]`` scrapes one BMC
- ``GET /metrics`` serves the exporter's own process metrics
- ``GET /health`` liveness probe
- ``GET /`` landing page
- ``POST /-/reload`` re-reads the configuration file
"""

import logging
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from threading import Thread
from typing import Dict, List, Tuple
from urllib.parse import parse_qs, urlparse

from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, CollectorRegistry, generate_latest

from .config import ConfigError, CredentialsNotFound, SafeConfig
from .connection import connect
from .descriptors import DescriptorRegistry
from .exporter import Connector, RedfishCollector

LOG = logging.getLogger(__name__)

DEFAULT_LISTEN_ADDRESS = ":9610"

LANDING_PAGE = b"""<html>
<head><title>Redfish Exporter</title></head>
<body>
<h1>Redfish Exporter</h1>
<form action="/redfish">
<label>Target:</label> <input type="text" name="target" placeholder="X.X.X.X" value="1.2.3.4"><br>
<label>Group:</label> <input type="text" name="group" placeholder="optional"><br>
<input type="submit" value="Submit">
</form>
<p><a href="/metrics">Exporter metrics</a></p>
</body>
</html>
"""


def parse_listen_address(address: str) -> Tuple[str, int]:
    """Split ``[host]:port`` into a (host, port) pair; an empty host binds all interfaces."""
    host, _, port = address.rpartition(':')
    if not port.isdigit():
        raise ValueError(f"Invalid listen address '{address}', expected [host]:port")
    return host.strip('[]'), int(port)


class ExporterHTTPServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, server_address: Tuple[str, int], safe_config: SafeConfig,
                 descriptors: DescriptorRegistry, connector: Connector = connect):
        self.safe_config = safe_config
        self.descriptors = descriptors
        self.connector = connector
        super().__init__(server_address, RedfishHandler)


class RedfishHandler(BaseHTTPRequestHandler):
    """HTTP handler for the scrape, metrics and management endpoints."""

    server: ExporterHTTPServer

    def do_GET(self):
        url = urlparse(self.path)
        if url.path == '/redfish':
            self._scrape(parse_qs(url.query))
        elif url.path == '/metrics':
            self._send(200, CONTENT_TYPE_LATEST, generate_latest(REGISTRY))
        elif url.path == '/health':
            self._send(200, 'text/plain', b'OK')
        elif url.path == '/':
            self._send(200, 'text/html; charset=utf-8', LANDING_PAGE)
        else:
            self._send(404, 'text/plain', b'Not Found')

    def do_POST(self):
        if urlparse(self.path).path != '/-/reload':
            self._send(404, 'text/plain', b'Not Found')
            return
        try:
            self.server.safe_config.reload_config()
        except ConfigError as e:
            LOG.error(f"Error reloading config: {e}")
            self._send(500, 'text/plain', f"failed to reload config: {e}".encode())
            return
        self._send(200, 'text/plain', b'OK')

    def _scrape(self, query: Dict[str, List[str]]) -> None:
        target = query.get('target', [''])[0].strip()
        if not target:
            self._send(400, 'text/plain', b"'target' parameter must be specified")
            return
        group = query.get('group', [''])[0].strip() or None

        try:
            credentials = self.server.safe_config.credentials_for_target(target, group)
        except CredentialsNotFound as e:
            LOG.warning(f"Rejecting scrape of {target}: {e}")
            self._send(400, 'text/plain', str(e).encode())
            return

        registry = CollectorRegistry()
        registry.register(RedfishCollector(
            target,
            credentials,
            self.server.descriptors,
            config=self.server.safe_config.config,
            connector=self.server.connector,
        ))
        try:
            output = generate_latest(registry)
        except Exception as e:
            LOG.exception(f"Unexpected error scraping {target}: {e}")
            self._send(500, 'text/plain', b'scrape failed')
            return
        self._send(200, CONTENT_TYPE_LATEST, output)

    def _send(self, status: int, content_type: str, body: bytes) -> None:
        self.send_response(status)
        self.send_header('Content-Type', content_type)
        self.send_header('Content-Length', str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format_string, *args):
        LOG.debug(f"{self.address_string()} - {format_string % args}")


def create_server(listen_address: str, safe_config: SafeConfig, descriptors: DescriptorRegistry,
                  connector: Connector = connect) -> ExporterHTTPServer:
    host, port = parse_listen_address(listen_address)
    server = ExporterHTTPServer((host, port), safe_config, descriptors, connector)
    LOG.info(f"Listening on {listen_address}")
    LOG.info(f"Scrape endpoint: http://{host or 'localhost'}:{server.server_address[1]}/redfish?target=<host>")
    return server


def start_server_thread(server: ExporterHTTPServer) -> Thread:
    """Serve in a background thread, used by tests and embedding callers."""
    thread = Thread(target=server.serve_forever, daemon=True)
    thread.start()
    return thread
