"""Tests for agentic_did.server.routes — route handler functions."""
from __future__ import annotations

from typing import Iterator

import pytest

from agentic_did.config import VerifierConfig
from agentic_did.credentials import build_presentation
from agentic_did.errors import ErrorKind
from agentic_did.server import routes
from agentic_did.service import PresentationResult, VerifierService

AUDIENCE = "bank.example"


@pytest.fixture(autouse=True)
def installed(service: VerifierService) -> Iterator[VerifierService]:
    """Install the test service in the route module, and clear it afterwards."""
    routes.reset_state(service)
    yield service
    routes.reset_state()


def present_body(service: VerifierService, banker, audience: str = AUDIENCE) -> dict[str, object]:
    credential, receipt = banker
    challenge = service.get_challenge(audience)
    vp = build_presentation(credential, challenge, receipt)
    return {"vp": vp.model_dump(mode="json"), "nonce": challenge.nonce}


class TestHealth:
    def test_health_ok(self) -> None:
        status, data = routes.handle_health()
        assert status == 200
        assert data["status"] == "ok"
        assert data["service"] == "agentic-did"

    def test_health_reports_issuer(self, config: VerifierConfig) -> None:
        _, data = routes.handle_health()
        assert data["issuer"] == config.issuer


class TestJWKS:
    def test_single_key(self, installed: VerifierService) -> None:
        status, data = routes.handle_jwks()
        assert status == 200
        assert data["keys"] == [installed.capability_issuer.public_jwk()]


class TestChallengeRoute:
    def test_issues_challenge(self) -> None:
        status, data = routes.handle_challenge({"audience": AUDIENCE}, caller_id="127.0.0.1")
        assert status == 201
        assert data["audience"] == AUDIENCE
        assert data["nonce"]
        assert isinstance(data["exp"], int)

    def test_missing_audience(self) -> None:
        status, data = routes.handle_challenge({})
        assert status == 422
        assert data["error"] == "Validation error"

    def test_blank_audience(self) -> None:
        status, _ = routes.handle_challenge({"audience": "   "})
        assert status == 422

    def test_rate_limited(self, oracle, clock) -> None:
        config = VerifierConfig(rate_limit_per_minute=1, rate_limit_burst=1)
        routes.reset_state(VerifierService.build(config=config, oracle=oracle, clock=clock))
        assert routes.handle_challenge({"audience": AUDIENCE}, caller_id="10.1.1.1")[0] == 201
        status, data = routes.handle_challenge({"audience": AUDIENCE}, caller_id="10.1.1.1")
        assert status == 429
        assert data["kind"] == "ResourceExhausted"


class TestPresentRoute:
    def test_success(self, installed: VerifierService, banker) -> None:
        status, data = routes.handle_present(present_body(installed, banker))
        assert status == 200
        assert data["role"] == "Banker"
        assert data["scopes"] == ["bank:balance", "bank:transfer"]
        assert str(data["token"]).count(".") == 2

    def test_replay_is_401(self, installed: VerifierService, banker) -> None:
        body = present_body(installed, banker)
        routes.handle_present(body)
        status, data = routes.handle_present(body)
        assert status == 401
        assert data["kind"] == "ChallengeInvalidOrReused"
        assert data["error"] == "Presentation rejected"
        assert data["retryable"] is False

    def test_revoked_is_403(self, installed: VerifierService, oracle, banker) -> None:
        credential, _ = banker
        oracle.revoke(credential.cred_hash)
        status, data = routes.handle_present(present_body(installed, banker))
        assert status == 403
        assert data["kind"] == "CredentialRevoked"

    def test_bad_request_body_is_malformed(self) -> None:
        status, data = routes.handle_present({"vp": "not-a-dict"})
        assert status == 400
        assert data["kind"] == "MalformedVP"

    def test_bad_vp_is_malformed(self, installed: VerifierService) -> None:
        challenge = installed.get_challenge(AUDIENCE)
        status, data = routes.handle_present({"vp": {"pid": "x"}, "nonce": challenge.nonce})
        assert status == 400
        assert data["kind"] == "MalformedVP"

    def test_oracle_outage_is_503(self, config: VerifierConfig, clock, banker) -> None:
        class DownOracle:
            def lookup(self, cred_hash: str, attestation: str) -> object:
                raise TimeoutError("no answer")

        service = VerifierService.build(config=config, oracle=DownOracle(), clock=clock)
        routes.reset_state(service)
        status, data = routes.handle_present(present_body(service, banker))
        assert status == 503
        assert data["error"] == "Service unavailable"
        assert data["retryable"] is True

    def test_undecided_result_is_500(self, config: VerifierConfig, oracle, clock, banker) -> None:
        class UndecidedService(VerifierService):
            def present_vp(self, vp: object, nonce: str) -> PresentationResult:
                return PresentationResult(ok=False)

        service = UndecidedService.build(config=config, oracle=oracle, clock=clock)
        routes.reset_state(service)
        status, data = routes.handle_present(present_body(service, banker))
        assert status == 500
        assert data["error"] == "Internal error"
        assert data["kind"] is None


class TestStatusMapping:
    def test_every_kind_has_a_status(self) -> None:
        assert set(routes.STATUS_FOR_KIND) == set(ErrorKind)

    def test_infrastructure_kinds_are_503(self) -> None:
        assert routes.STATUS_FOR_KIND[ErrorKind.ORACLE_UNAVAILABLE] == 503
        assert routes.STATUS_FOR_KIND[ErrorKind.ISSUANCE_FAILED] == 503
