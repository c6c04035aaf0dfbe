"""Tests for agentic_did.server.app — HTTP handler integration."""
from __future__ import annotations

import datetime
import http.client
import json
import logging
import threading
from http.server import ThreadingHTTPServer
from pathlib import Path
from typing import Iterator

import pytest
import requests

from agentic_did.challenge import Challenge
from agentic_did.config import VerifierConfig
from agentic_did.credentials import AgentCredential, build_presentation
from agentic_did.oracle import InMemoryCredentialStateOracle
from agentic_did.server import routes
from agentic_did.server.app import MAX_BODY_BYTES, AgenticDIDHandler, build_service, create_server
from agentic_did.server.models import ErrorResponse, HealthResponse, PresentRequest
from agentic_did.service import VerifierService


@pytest.fixture(autouse=True)
def reset_server_state() -> Iterator[None]:
    """Reset module-level state around each test."""
    routes.reset_state()
    yield
    routes.reset_state()


@pytest.fixture()
def live_oracle() -> InMemoryCredentialStateOracle:
    return InMemoryCredentialStateOracle()


@pytest.fixture()
def base_url(live_oracle: InMemoryCredentialStateOracle) -> Iterator[str]:
    service = VerifierService.build(
        config=VerifierConfig(rate_limit_per_minute=0), oracle=live_oracle
    )
    server = create_server(host="127.0.0.1", port=0, service=service)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{server.server_address[1]}"
    finally:
        server.shutdown()
        server.server_close()


class TestCreateServer:
    def test_returns_threading_server(self) -> None:
        server = create_server(host="127.0.0.1", port=0)
        try:
            assert isinstance(server, ThreadingHTTPServer)
        finally:
            server.server_close()

    def test_uses_correct_handler(self) -> None:
        server = create_server(host="127.0.0.1", port=0)
        try:
            assert server.RequestHandlerClass is AgenticDIDHandler
        finally:
            server.server_close()

    def test_installs_given_service(self) -> None:
        service = VerifierService.build()
        server = create_server(host="127.0.0.1", port=0, service=service)
        try:
            assert routes.get_service() is service
        finally:
            server.server_close()


class TestBuildService:
    def test_audit_log_goes_to_file(self, tmp_path: Path) -> None:
        log_file = tmp_path / "audit.jsonl"
        service = build_service(audit_log=log_file, demo_agents=True)
        try:
            service.get_challenge("bank.example", caller_id="10.0.0.1")
        finally:
            service.close()
        lines = log_file.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 1
        assert json.loads(lines[0])["details"]["caller_id"] == "10.0.0.1"

    def test_demo_agents_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.INFO, logger="agentic_did.server.app")
        build_service(demo_agents=True).close()
        messages = [record.getMessage() for record in caplog.records]
        assert len([m for m in messages if m.startswith("Provisioned demo agent")]) == 4

    def test_empty_oracle_warns(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.WARNING, logger="agentic_did.server.app")
        build_service().close()
        assert any("CredentialStateUnknown" in r.getMessage() for r in caplog.records)


class TestLiveServer:
    def test_health(self, base_url: str) -> None:
        response = requests.get(f"{base_url}/health", timeout=5)
        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert response.headers["Cache-Control"] == "no-store"

    def test_jwks(self, base_url: str) -> None:
        keys = requests.get(f"{base_url}/.well-known/jwks.json", timeout=5).json()["keys"]
        assert len(keys) == 1
        assert keys[0]["crv"] == "Ed25519"

    def test_unknown_routes(self, base_url: str) -> None:
        assert requests.get(f"{base_url}/nope", timeout=5).status_code == 404
        assert requests.post(f"{base_url}/nope", json={}, timeout=5).status_code == 404

    def test_invalid_json(self, base_url: str) -> None:
        response = requests.post(
            f"{base_url}/challenge",
            data=b"{not json",
            headers={"Content-Type": "application/json"},
            timeout=5,
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid JSON"

    def test_non_object_body(self, base_url: str) -> None:
        response = requests.post(f"{base_url}/challenge", json=["bank.example"], timeout=5)
        assert response.status_code == 400

    def test_oversized_body(self, base_url: str) -> None:
        host, port = base_url.removeprefix("http://").split(":")
        conn = http.client.HTTPConnection(host, int(port), timeout=5)
        try:
            conn.putrequest("POST", "/present")
            conn.putheader("Content-Type", "application/json")
            conn.putheader("Content-Length", str(MAX_BODY_BYTES + 1))
            conn.endheaders()
            assert conn.getresponse().status == 413
        finally:
            conn.close()

    def test_full_exchange(
        self, base_url: str, live_oracle: InMemoryCredentialStateOracle
    ) -> None:
        credential = AgentCredential.create("Traveler", ["travel:book", "travel:cancel"])
        receipt = live_oracle.register_credential(credential)

        response = requests.post(
            f"{base_url}/challenge", json={"audience": "travel.example"}, timeout=5
        )
        assert response.status_code == 201
        data = response.json()
        expires_at = datetime.datetime.fromisoformat(data["expires_at"])
        challenge = Challenge(
            nonce=data["nonce"],
            audience=data["audience"],
            issued_at=expires_at - datetime.timedelta(seconds=1),
            expires_at=expires_at,
        )
        vp = build_presentation(credential, challenge, receipt)
        body = {"vp": vp.model_dump(mode="json"), "nonce": challenge.nonce}

        first = requests.post(f"{base_url}/present", json=body, timeout=5)
        assert first.status_code == 200
        assert first.json()["role"] == "Traveler"

        replay = requests.post(f"{base_url}/present", json=body, timeout=5)
        assert replay.status_code == 401


class TestServerModels:
    def test_health_response_defaults(self) -> None:
        resp = HealthResponse()
        assert resp.status == "ok"
        assert resp.service == "agentic-did"

    def test_error_response_defaults(self) -> None:
        resp = ErrorResponse(error="x")
        assert resp.kind is None
        assert resp.retryable is False

    def test_present_request_requires_nonce(self) -> None:
        with pytest.raises(ValueError):
            PresentRequest.model_validate({"vp": {}})
