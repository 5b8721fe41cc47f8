"""The metrics exporter: an HTTP endpoint and a loop that refreshes the gauges."""

import logging
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import urlsplit

from .anomaly_exporter import AnomalyExporter
from .metric_exporter import MetricExporter
from .registry import Registry

logger = logging.getLogger(__name__)

DEFAULT_PORT = 9091
DEFAULT_RETRY_DELAY = 0.5

_INDEX_PAGE = b"""
<html>
    <head><title>FRR MAD Exporter</title></head>
    <body>
        <h1>FRR MAD Exporter</h1>
        <p><a href="/metrics">Metrics</a></p>
    </body>
</html>
"""


def try_update_with_retry(name, update_func, retry_delay=DEFAULT_RETRY_DELAY):
    """Call ``update_func``; on failure wait ``retry_delay`` seconds and try once more.

    The exception of the second attempt propagates.
    """
    logger.debug("Attempting update of %s", name)
    try:
        update_func()
    except Exception as exc:
        logger.warning("Update of %s failed, will retry in %ss: %s", name, retry_delay, exc)
        time.sleep(retry_delay)
        try:
            update_func()
        except Exception as retry_exc:
            logger.debug("Retry of %s failed: %s", name, retry_exc)
            raise
        logger.debug("Retry of %s succeeded", name)
    logger.debug("Update of %s completed successfully", name)


def _make_handler(registry):
    class Handler(BaseHTTPRequestHandler):
        def do_GET(self):
            path = urlsplit(self.path).path
            if path == "/metrics":
                self._reply(200, "text/plain; version=0.0.4; charset=utf-8",
                            registry.render().encode("utf-8"))
            elif path == "/":
                self._reply(200, "text/html", _INDEX_PAGE)
            else:
                self._reply(404, "text/plain; charset=utf-8", b"404 page not found\n")

        def _reply(self, status, content_type, body):
            self.send_response(status)
            self.send_header("Content-Type", content_type)
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)

        def log_message(self, format, *args):
            logger.debug("HTTP %s - %s", self.address_string(), format % args)

    return Handler


class Exporter:
    """Serves gauges on ``/metrics`` and refreshes them every poll interval."""

    def __init__(self, config, poll_interval, frr_data, anomalies):
        if poll_interval <= 0:
            raise ValueError("poll interval must be positive")
        port = DEFAULT_PORT
        if 0 < config.port <= 65535:
            port = config.port
        elif config.port != 0:
            logger.error("invalid port in config: port %d is out of bounds "
                         "(must be between 1 and 65535)", config.port)

        logger.info("Initializing exporter (port=%d, poll_interval=%ss)", port, poll_interval)
        self.port = port
        self.address = f":{port}"
        self.interval = poll_interval
        self.registry = Registry()
        self.anomaly_exporter = AnomalyExporter(anomalies, self.registry)
        self.metric_exporter = MetricExporter(frr_data, self.registry, config)
        self._server = None
        self._server_thread = None
        self._loop_thread = None
        self._stop_event = threading.Event()

    def start(self):
        """Start the HTTP server and the export loop in background threads."""
        self._stop_event = threading.Event()
        try:
            self._server = ThreadingHTTPServer(("", self.port), _make_handler(self.registry))
        except OSError as exc:
            logger.error("Metrics server failed: %s", exc)
            self._server = None
        else:
            self._server_thread = threading.Thread(
                target=self._server.serve_forever, name="frrmad-metrics-http", daemon=True)
            self._server_thread.start()

        self._loop_thread = threading.Thread(
            target=self._run_export_loop, name="frrmad-export-loop", daemon=True)
        self._loop_thread.start()
        logger.info("Exporter started (address=%s, interval=%ss)", self.address, self.interval)

    def stop(self):
        """Stop the export loop and the HTTP server."""
        logger.info("Shutting down exporter")
        self._stop_event.set()
        if self._server is not None:
            self._server.shutdown()
            self._server.server_close()
            self._server = None
        for thread in (self._server_thread, self._loop_thread):
            if thread is not None:
                thread.join()
        self._server_thread = None
        self._loop_thread = None
        logger.info("Exporter shutdown complete")

    def _run_export_loop(self):
        logger.info("Starting export loop")
        while not self._stop_event.wait(self.interval):
            start = time.perf_counter()
            self.export_data()
            logger.debug("Completed export cycle in %.6fs", time.perf_counter() - start)
        logger.info("Export loop stopped")

    def export_data(self):
        """Refresh all gauges; failures are logged and do not stop the other updates."""
        logger.debug("Starting data export")
        for name, exporter in (("AnomalyExporter", self.anomaly_exporter),
                               ("MetricExporter", self.metric_exporter)):
            if exporter is None:
                continue
            try:
                try_update_with_retry(name, exporter.update)
            except Exception as exc:
                logger.error("Failed to update %s after retry: %s", name, exc)
        logger.debug("Data export completed")