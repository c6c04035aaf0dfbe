"""HTTP server for agentic-did using stdlib http.server.

Routes:
    POST   /challenge               — issue a challenge for an audience
    POST   /present                 — present a VP and receive a capability token
    GET    /health                  — health check
    GET    /.well-known/jwks.json   — capability-token verification key

Usage:
    python -m agentic_did.server.app --demo-agents --port 8787
    python -m agentic_did.server.app --oracle-url https://oracle.example --audit-log audit.jsonl
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
import urllib.parse
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Optional

from agentic_did.agents import provision_demo_agents
from agentic_did.audit import AuditLogger
from agentic_did.config import VerifierConfig
from agentic_did.errors import ErrorKind
from agentic_did.oracle.http import HttpCredentialStateOracle
from agentic_did.oracle.memory import InMemoryCredentialStateOracle
from agentic_did.server import routes
from agentic_did.service import VerifierService

logger = logging.getLogger(__name__)

DEFAULT_PORT: int = 8787
# Presentations are small; anything larger is refused before parsing.
MAX_BODY_BYTES: int = 256 * 1024


class AgenticDIDHandler(BaseHTTPRequestHandler):
    """HTTP request handler for the agentic-did verifier.

    All request bodies and responses use JSON.
    """

    def log_message(self, format: str, *args: object) -> None:
        """Override to route access logs through the Python logging system."""
        logger.debug(format, *args)

    # ── GET ───────────────────────────────────────────────────────────────────

    def do_GET(self) -> None:
        """Handle all GET requests by routing on the URL path."""
        path = urllib.parse.urlparse(self.path).path.rstrip("/")

        if path == "/health":
            status, data = routes.handle_health()
        elif path == "/.well-known/jwks.json":
            status, data = routes.handle_jwks()
        else:
            status, data = 404, {"error": "Not found", "detail": f"No route for GET {path}"}
        self._send_json(status, data)

    # ── POST ──────────────────────────────────────────────────────────────────

    def do_POST(self) -> None:
        """Handle all POST requests by routing on the URL path."""
        path = urllib.parse.urlparse(self.path).path.rstrip("/")

        body = self._read_json_body()
        if body is None:
            return

        if path == "/challenge":
            status, data = routes.handle_challenge(body, caller_id=self.client_address[0])
        elif path == "/present":
            status, data = routes.handle_present(body)
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
        self.send_header("Cache-Control", "no-store")
        self.end_headers()
        self.wfile.write(body)

    def _read_json_body(self) -> Optional[dict[str, object]]:
        """Read and parse the JSON request body.

        Returns None (and sends an error response) if the body is too large
        or is not a JSON object.
        """
        try:
            content_length = int(self.headers.get("Content-Length", 0))
        except ValueError:
            self._send_json(400, {"error": "Invalid Content-Length", "detail": ""})
            return None
        if content_length == 0:
            return {}
        if content_length > MAX_BODY_BYTES:
            self._send_json(
                413, {"error": "Payload too large", "detail": f"limit is {MAX_BODY_BYTES} bytes"}
            )
            return None

        raw = self.rfile.read(content_length)
        try:
            parsed = json.loads(raw.decode("utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            self._send_json(400, {"error": "Invalid JSON", "detail": str(exc)})
            return None
        if not isinstance(parsed, dict):
            self._send_json(400, {"error": "Invalid JSON", "detail": "body must be an object"})
            return None
        return parsed


def build_service(
    oracle_url: Optional[str] = None,
    audit_log: Optional[Path] = None,
    demo_agents: bool = False,
) -> VerifierService:
    """Build the verifier service from environment configuration.

    Parameters
    ----------
    oracle_url:
        Base URL of a remote credential-state oracle. When omitted an
        in-memory oracle is used, which starts empty unless *demo_agents*
        is set.
    audit_log:
        JSONL file the audit trail is appended to. Without it events are
        kept in a bounded in-memory buffer.
    demo_agents:
        Provision the demo agent catalog into the in-memory oracle and log
        each agent's subject and receipt. Ignored with *oracle_url*.
    """
    config = VerifierConfig.from_env()
    audit = AuditLogger(audit_log) if audit_log is not None else None
    if oracle_url:
        if demo_agents:
            logger.warning("Demo agents are only provisioned into the in-memory oracle; ignoring.")
        oracle = HttpCredentialStateOracle(oracle_url, timeout_seconds=config.oracle_timeout_seconds)
        return VerifierService.build(config=config, oracle=oracle, audit=audit)

    memory_oracle = InMemoryCredentialStateOracle()
    if demo_agents:
        for key, provisioned in provision_demo_agents(memory_oracle).items():
            logger.info(
                "Provisioned demo agent %s subject=%s cred_hash=%s attestation=%s%s",
                key,
                provisioned.credential.pid,
                provisioned.receipt.cred_hash,
                provisioned.receipt.attestation,
                " (revoked)" if provisioned.agent.rogue else "",
            )
    else:
        logger.warning(
            "No oracle URL given: the in-memory oracle is empty and every presentation "
            "will be rejected as %s.",
            ErrorKind.CREDENTIAL_STATE_UNKNOWN.value,
        )
    return VerifierService.build(config=config, oracle=memory_oracle, audit=audit)


def create_server(
    host: str = "0.0.0.0",
    port: int = DEFAULT_PORT,
    service: Optional[VerifierService] = None,
) -> ThreadingHTTPServer:
    """Create (but do not start) the agentic-did HTTP server.

    Parameters
    ----------
    host:
        Bind address (default ``"0.0.0.0"`` — all interfaces).
    port:
        TCP port to listen on (default 8787).
    service:
        The verifier service to expose; built from the environment if None.

    Returns
    -------
    ThreadingHTTPServer
        A configured server instance ready to call ``serve_forever()`` on.
    """
    routes.configure(service or build_service())
    server = ThreadingHTTPServer((host, port), AgenticDIDHandler)
    logger.info("agentic-did verifier created at http://%s:%d", host, port)
    return server


def run_server(
    host: str = "0.0.0.0",
    port: int = DEFAULT_PORT,
    service: Optional[VerifierService] = None,
) -> None:
    """Create and run the agentic-did HTTP server (blocking)."""
    server = create_server(host=host, port=port, service=service)
    logger.info("Serving agentic-did on http://%s:%d — press Ctrl-C to stop", host, port)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Shutting down agentic-did verifier.")
    finally:
        server.server_close()
        routes.reset_state()


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="agentic-did verifier HTTP server",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--host", default="0.0.0.0", help="Bind address")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="TCP port")
    parser.add_argument("--oracle-url", default=None, help="Remote credential-state oracle")
    parser.add_argument(
        "--demo-agents",
        action="store_true",
        help="Provision the demo agents into an in-memory oracle (without --oracle-url)",
    )
    parser.add_argument("--audit-log", type=Path, default=None, help="JSONL audit log file")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )
    return parser


if __name__ == "__main__":
    parser = _build_arg_parser()
    args = parser.parse_args()
    if not args.oracle_url and not args.demo_agents:
        parser.error("either --oracle-url or --demo-agents is required")
    logging.basicConfig(level=getattr(logging, args.log_level))
    try:
        service = build_service(
            args.oracle_url, audit_log=args.audit_log, demo_agents=args.demo_agents
        )
    except ValueError as exc:
        sys.exit(f"invalid configuration: {exc}")
    run_server(host=args.host, port=args.port, service=service)
