"""Verifier HTTP service for delegated-session using stdlib http.server.

Routes:
    POST   /instantiate        — derive a contract image and address
    POST   /authorize          — evaluate the authorization predicate
    GET    /health             — health check

Usage:
    python -m delegated_session.server.app --port 8080
    python -m delegated_session.server.app --host 127.0.0.1 --port 9000
    python -m delegated_session.server.app --config delegated-session.json
"""
from __future__ import annotations

import argparse
import json
import logging
import urllib.parse
from http.server import BaseHTTPRequestHandler, HTTPServer
from pathlib import Path

from delegated_session.config import DelegationSettings
from delegated_session.server import routes

logger = logging.getLogger(__name__)


class VerifierHandler(BaseHTTPRequestHandler):
    """HTTP request handler for the verifier service.

    All request bodies and responses use JSON.
    """

    def log_message(self, format: str, *args: object) -> None:
        """Route access logs through the Python logging system."""
        logger.debug(format, *args)

    # ── GET ───────────────────────────────────────────────────────────────────

    def do_GET(self) -> None:
        path = urllib.parse.urlparse(self.path).path.rstrip("/")

        if path == "/health":
            status, data = routes.handle_health()
            self._send_json(status, data)
        else:
            self._send_json(
                404, {"error": "Not found", "detail": f"No route for GET {path}"}
            )

    # ── POST ──────────────────────────────────────────────────────────────────

    def do_POST(self) -> None:
        path = urllib.parse.urlparse(self.path).path.rstrip("/")

        body = self._read_json_body()
        if body is None:
            return

        if path == "/instantiate":
            status, data = routes.handle_instantiate(body)
        elif path == "/authorize":
            status, data = routes.handle_authorize(body)
        else:
            status, data = 404, {"error": "Not found", "detail": f"No route for POST {path}"}
        self._send_json(status, data)

    # ── Helpers ───────────────────────────────────────────────────────────────

    def _send_json(self, status: int, data: dict[str, object]) -> None:
        """Serialize *data* to JSON and send an HTTP response with *status*."""
        body = json.dumps(data, default=str).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _read_json_body(self) -> dict[str, object] | None:
        """Read and parse the JSON request body.

        Returns None (and sends a 400 error response) if parsing fails or
        the body is not a JSON object.
        """
        content_length = int(self.headers.get("Content-Length", 0))
        if content_length == 0:
            return {}

        raw = self.rfile.read(content_length)
        try:
            parsed = json.loads(raw.decode("utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            self._send_json(400, {"error": "Invalid JSON", "detail": str(exc)})
            return None
        if not isinstance(parsed, dict):
            self._send_json(400, {"error": "Invalid JSON", "detail": "expected an object"})
            return None
        return parsed


def create_server(
    host: str = "127.0.0.1",
    port: int = 8080,
    settings: DelegationSettings | None = None,
) -> HTTPServer:
    """Create (but do not start) the verifier HTTP server.

    When *settings* name an ``audit_log_path``, authorization decisions are
    audited to that file.
    """
    audit = settings.build_audit_logger() if settings is not None else None
    if audit is not None:
        routes.reset_state(audit=audit)
    server = HTTPServer((host, port), VerifierHandler)
    logger.info("delegated-session verifier created at http://%s:%d", host, port)
    return server


def run_server(
    host: str = "127.0.0.1",
    port: int = 8080,
    settings: DelegationSettings | None = None,
) -> None:
    """Create and run the verifier HTTP server (blocking)."""
    server = create_server(host=host, port=port, settings=settings)
    logger.info("Serving delegated-session verifier on http://%s:%d", host, port)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Shutting down delegated-session verifier.")
    finally:
        server.server_close()


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="delegated-session verifier HTTP service",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    parser.add_argument("--port", type=int, default=8080, help="TCP port")
    parser.add_argument("--config", type=Path, default=None, help="JSON settings file")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )
    return parser


if __name__ == "__main__":
    args = _build_arg_parser().parse_args()
    logging.basicConfig(level=getattr(logging, args.log_level))
    settings = DelegationSettings.from_file(args.config) if args.config else None
    run_server(host=args.host, port=args.port, settings=settings)
