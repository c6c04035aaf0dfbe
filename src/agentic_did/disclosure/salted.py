"""Salted-digest selective disclosure with holder key binding.

This is a hash-commitment scheme in the style of SD-JWT / SD-CWT, not a
zero-knowledge proof: the holder reveals the ``(salt, name, value)``
triples of the claims it discloses together with the full list of
committed digests. Undisclosed claims remain hidden behind their salted
digests.

Proof format
------------
``base64url(payload).base64url(signature)`` where ``payload`` is the
canonical JSON of::

    {"v": 1, "digests": [...], "disclosures": [[salt, name, value], ...],
     "nonce": "...", "aud": "..."}

and ``signature`` is the holder's Ed25519 signature over the payload bytes.

Verification checks, in order: proof shape, nonce and audience binding,
the recomputed credential hash, that every revealed triple is committed,
that the revealed claims equal the disclosed claims exactly, and the
holder signature against the key encoded in the subject's ``did:key``.
"""
from __future__ import annotations

import hmac
import json
import logging
from typing import Optional

from agentic_did.credentials.credential import (
    ROLE_CLAIM,
    SCOPE_CLAIM,
    AgentCredential,
    compute_credential_hash,
    disclosure_digest,
)
from agentic_did.credentials.models import DisclosedClaims
from agentic_did.crypto import (
    Ed25519KeyManager,
    b64url_decode,
    b64url_encode,
    canonical_json,
    did_to_public_key,
)

logger = logging.getLogger(__name__)

_PROOF_VERSION: int = 1


class SaltedDigestProver:
    """Builds salted-digest disclosure proofs from an :class:`AgentCredential`."""

    def __init__(self, key_manager: Optional[Ed25519KeyManager] = None) -> None:
        self._key_manager = key_manager or Ed25519KeyManager()

    def prove(
        self,
        credential: AgentCredential,
        disclosed: DisclosedClaims,
        nonce: str,
        audience: str,
    ) -> str:
        """Produce a proof revealing exactly *disclosed*.

        Raises
        ------
        ValueError
            If *disclosed* names claims the credential does not hold.
        """
        payload = {
            "v": _PROOF_VERSION,
            "digests": credential.digests,
            "disclosures": [list(d) for d in credential.disclosures_for(disclosed)],
            "nonce": nonce,
            "aud": audience,
        }
        payload_bytes = canonical_json(payload)
        signature = self._key_manager.sign(credential.private_key, payload_bytes)
        return f"{b64url_encode(payload_bytes)}.{b64url_encode(signature)}"


class SaltedDigestVerifier:
    """Verifies proofs produced by :class:`SaltedDigestProver`."""

    def __init__(self, key_manager: Optional[Ed25519KeyManager] = None) -> None:
        self._key_manager = key_manager or Ed25519KeyManager()

    def verify(
        self,
        proof: str,
        *,
        cred_hash: str,
        subject_id: str,
        disclosed: DisclosedClaims,
        nonce: str,
        audience: str,
    ) -> bool:
        try:
            return self._verify(proof, cred_hash, subject_id, disclosed, nonce, audience)
        except (ValueError, TypeError, KeyError) as exc:
            logger.debug("Disclosure proof rejected: %s", exc)
            return False

    def _verify(
        self,
        proof: str,
        cred_hash: str,
        subject_id: str,
        disclosed: DisclosedClaims,
        nonce: str,
        audience: str,
    ) -> bool:
        parts = proof.split(".")
        if len(parts) != 2:
            return False
        payload_bytes = b64url_decode(parts[0])
        signature = b64url_decode(parts[1])
        payload = json.loads(payload_bytes.decode("utf-8"))
        if not isinstance(payload, dict) or payload.get("v") != _PROOF_VERSION:
            return False

        if not (
            isinstance(payload.get("nonce"), str)
            and isinstance(payload.get("aud"), str)
            and hmac.compare_digest(payload["nonce"], nonce)
            and hmac.compare_digest(payload["aud"], audience)
        ):
            logger.debug("Disclosure proof bound to a different challenge")
            return False

        digests = payload["digests"]
        if not isinstance(digests, list) or not all(isinstance(d, str) for d in digests):
            return False
        committed = set(digests)
        if len(committed) != len(digests):
            return False
        if not hmac.compare_digest(compute_credential_hash(subject_id, digests), cred_hash):
            logger.debug("Disclosure proof commits to a different credential")
            return False

        roles: list[str] = []
        scopes: list[str] = []
        for entry in payload["disclosures"]:
            if (
                not isinstance(entry, list)
                or len(entry) != 3
                or not all(isinstance(part, str) for part in entry)
            ):
                return False
            if disclosure_digest((entry[0], entry[1], entry[2])) not in committed:
                return False
            if entry[1] == ROLE_CLAIM:
                roles.append(entry[2])
            elif entry[1] == SCOPE_CLAIM:
                scopes.append(entry[2])
            else:
                return False

        if roles != [disclosed.role.value]:
            return False
        if len(scopes) != len(set(scopes)) or set(scopes) != set(disclosed.scopes):
            return False

        public_key = did_to_public_key(subject_id)
        return self._key_manager.verify(public_key, signature, payload_bytes)


__all__ = ["SaltedDigestProver", "SaltedDigestVerifier"]
