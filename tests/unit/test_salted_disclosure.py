"""Tests for agentic_did.disclosure.salted — salted-digest disclosure proofs."""
from __future__ import annotations

import datetime
import json

import pytest

from agentic_did.credentials import AgentCredential, DisclosedClaims, Role
from agentic_did.crypto import b64url_decode, b64url_encode, canonical_json
from agentic_did.disclosure import (
    DisclosureProofVerifier,
    DisclosureProver,
    SaltedDigestProver,
    SaltedDigestVerifier,
)

NOW = datetime.datetime(2026, 1, 1, 12, 0, 0, tzinfo=datetime.timezone.utc)
NONCE = "nonce-abc"
AUDIENCE = "bank.example"


@pytest.fixture()
def credential() -> AgentCredential:
    return AgentCredential.create("Banker", ["bank:transfer", "bank:balance"], clock=lambda: NOW)


@pytest.fixture()
def disclosed() -> DisclosedClaims:
    return DisclosedClaims(role=Role.BANKER, scopes=frozenset({"bank:transfer"}))


def verify(
    credential: AgentCredential,
    proof: str,
    disclosed: DisclosedClaims,
    nonce: str = NONCE,
    audience: str = AUDIENCE,
    cred_hash: str | None = None,
    subject_id: str | None = None,
) -> bool:
    return SaltedDigestVerifier().verify(
        proof,
        cred_hash=cred_hash or credential.cred_hash,
        subject_id=subject_id or credential.pid,
        disclosed=disclosed,
        nonce=nonce,
        audience=audience,
    )


def rewrite_payload(proof: str, **changes: object) -> str:
    """Return *proof* with payload fields replaced (signature left untouched)."""
    payload_b64, signature_b64 = proof.split(".")
    payload = json.loads(b64url_decode(payload_b64))
    payload.update(changes)
    return f"{b64url_encode(canonical_json(payload))}.{signature_b64}"


class TestProtocolConformance:
    def test_prover_and_verifier_satisfy_protocols(self) -> None:
        assert isinstance(SaltedDigestProver(), DisclosureProver)
        assert isinstance(SaltedDigestVerifier(), DisclosureProofVerifier)


class TestSaltedDigestProof:
    def test_valid_partial_disclosure(
        self, credential: AgentCredential, disclosed: DisclosedClaims
    ) -> None:
        proof = SaltedDigestProver().prove(credential, disclosed, NONCE, AUDIENCE)
        assert verify(credential, proof, disclosed) is True

    def test_undisclosed_scope_is_not_revealed(
        self, credential: AgentCredential, disclosed: DisclosedClaims
    ) -> None:
        proof = SaltedDigestProver().prove(credential, disclosed, NONCE, AUDIENCE)
        payload = json.loads(b64url_decode(proof.split(".")[0]))
        revealed = {entry[2] for entry in payload["disclosures"]}
        assert "bank:balance" not in revealed

    def test_claiming_more_than_revealed_fails(
        self, credential: AgentCredential, disclosed: DisclosedClaims
    ) -> None:
        proof = SaltedDigestProver().prove(credential, disclosed, NONCE, AUDIENCE)
        wider = DisclosedClaims(role=Role.BANKER, scopes=frozenset({"bank:transfer", "bank:balance"}))
        assert verify(credential, proof, wider) is False

    def test_other_role_fails(
        self, credential: AgentCredential, disclosed: DisclosedClaims
    ) -> None:
        proof = SaltedDigestProver().prove(credential, disclosed, NONCE, AUDIENCE)
        claimed = DisclosedClaims(role=Role.ADMIN, scopes=disclosed.scopes)
        assert verify(credential, proof, claimed) is False

    def test_other_nonce_fails(
        self, credential: AgentCredential, disclosed: DisclosedClaims
    ) -> None:
        proof = SaltedDigestProver().prove(credential, disclosed, NONCE, AUDIENCE)
        assert verify(credential, proof, disclosed, nonce="other") is False

    def test_other_audience_fails(
        self, credential: AgentCredential, disclosed: DisclosedClaims
    ) -> None:
        proof = SaltedDigestProver().prove(credential, disclosed, NONCE, AUDIENCE)
        assert verify(credential, proof, disclosed, audience="evil.example") is False

    def test_other_credential_hash_fails(
        self, credential: AgentCredential, disclosed: DisclosedClaims
    ) -> None:
        proof = SaltedDigestProver().prove(credential, disclosed, NONCE, AUDIENCE)
        assert verify(credential, proof, disclosed, cred_hash="tampered") is False

    def test_proof_from_another_holder_fails(self, disclosed: DisclosedClaims) -> None:
        holder = AgentCredential.create("Banker", ["bank:transfer"], clock=lambda: NOW)
        other = AgentCredential.create("Banker", ["bank:transfer"], clock=lambda: NOW)
        proof = SaltedDigestProver().prove(holder, disclosed, NONCE, AUDIENCE)
        assert verify(holder, proof, disclosed, subject_id=other.pid) is False

    def test_injected_disclosure_fails(
        self, credential: AgentCredential, disclosed: DisclosedClaims
    ) -> None:
        proof = SaltedDigestProver().prove(credential, disclosed, NONCE, AUDIENCE)
        payload = json.loads(b64url_decode(proof.split(".")[0]))
        forged = payload["disclosures"] + [["salt", "scope", "admin:*"]]
        tampered = rewrite_payload(proof, disclosures=forged)
        claimed = DisclosedClaims(role=Role.BANKER, scopes=frozenset({"bank:transfer", "admin:*"}))
        assert verify(credential, tampered, claimed) is False

    def test_rewritten_payload_breaks_signature(
        self, credential: AgentCredential, disclosed: DisclosedClaims
    ) -> None:
        proof = SaltedDigestProver().prove(credential, disclosed, NONCE, AUDIENCE)
        payload = json.loads(b64url_decode(proof.split(".")[0]))
        # Drop the scope disclosure: still committed, but no longer what was signed.
        reduced = [d for d in payload["disclosures"] if d[1] == "role"]
        tampered = rewrite_payload(proof, disclosures=reduced)
        assert verify(credential, tampered, DisclosedClaims(role=Role.BANKER)) is False

    @pytest.mark.parametrize(
        "proof",
        ["", "not-a-proof", "a.b.c", "!!!.???", b64url_encode(b"[]") + ".AAAA"],
    )
    def test_garbage_returns_false(
        self, credential: AgentCredential, disclosed: DisclosedClaims, proof: str
    ) -> None:
        assert verify(credential, proof, disclosed) is False

    def test_wrong_version_fails(
        self, credential: AgentCredential, disclosed: DisclosedClaims
    ) -> None:
        proof = SaltedDigestProver().prove(credential, disclosed, NONCE, AUDIENCE)
        assert verify(credential, rewrite_payload(proof, v=2), disclosed) is False

    def test_role_only_disclosure(self, credential: AgentCredential) -> None:
        role_only = DisclosedClaims(role=Role.BANKER)
        proof = SaltedDigestProver().prove(credential, role_only, NONCE, AUDIENCE)
        assert verify(credential, proof, role_only) is True
