"""HTTP server mode for agentic-did.

Provides a lightweight stdlib-based HTTP API for challenge issuance and
presentation verification without requiring a web framework.
"""
from __future__ import annotations

from agentic_did.server.app import AgenticDIDHandler, create_server, run_server

__all__ = ["AgenticDIDHandler", "create_server", "run_server"]
