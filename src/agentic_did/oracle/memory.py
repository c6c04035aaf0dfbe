"""InMemoryCredentialStateOracle — thread-safe local credential-state registry.

Stands in for the ledger-backed oracle in tests, demos and single-process
deployments. Each registered credential gets a receipt whose attestation
is the oracle's Ed25519 signature over the credential hash; lookups check
that signature, so a receipt whose hash was altered, or one minted by a
different oracle, reports ``unknown``.

Revocation follows the pattern of the certificate revocation list: a set
guarded by a lock, with mutation and lookup methods.
"""
from __future__ import annotations

import datetime
import logging
import threading
from dataclasses import dataclass
from typing import Iterable, Optional

from agentic_did.config import Clock, utc_now
from agentic_did.credentials.credential import AgentCredential
from agentic_did.credentials.models import CredentialStateReceipt, Role
from agentic_did.crypto import Ed25519KeyManager, b64url_decode, b64url_encode
from agentic_did.oracle.base import CredentialPolicy, CredentialStatus, OracleResponse

logger = logging.getLogger(__name__)

_ATTESTATION_CONTEXT: bytes = b"agentic-did/credential-state/v1|"


@dataclass
class _CredentialRecord:
    policy: CredentialPolicy
    expires_at: Optional[datetime.datetime]
    revoked: bool = False
    reason: str = ""


class InMemoryCredentialStateOracle:
    """Credential-state oracle backed by an in-memory dictionary.

    Parameters
    ----------
    clock:
        Source of the current UTC time for expiry checks.
    signing_key:
        Optional 32-byte raw Ed25519 private key for attestations. A fresh
        key is generated when omitted.
    """

    def __init__(self, clock: Clock = utc_now, signing_key: Optional[bytes] = None) -> None:
        self._clock = clock
        self._key_manager = Ed25519KeyManager()
        if signing_key is None:
            signing_key, _ = self._key_manager.generate_keypair()
        self._signing_key = signing_key
        self._public_key = self._key_manager.public_key_for(signing_key)
        self._records: dict[str, _CredentialRecord] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def register(
        self,
        cred_hash: str,
        role: Role | str,
        scopes: Iterable[str],
        expires_at: Optional[datetime.datetime] = None,
    ) -> CredentialStateReceipt:
        """Record a credential as valid under the given policy.

        Parameters
        ----------
        cred_hash:
            Content hash of the credential.
        role:
            Authoritative role.
        scopes:
            Authoritative scopes.
        expires_at:
            Optional UTC expiry; lookups after it report ``expired``.

        Returns
        -------
        CredentialStateReceipt
            The receipt a holder presents alongside its credential.
        """
        policy = CredentialPolicy(role=Role(role), scopes=frozenset(scopes))
        with self._lock:
            self._records[cred_hash] = _CredentialRecord(policy=policy, expires_at=expires_at)
        logger.info("Registered credential state for role=%s", policy.role.value)
        return self.receipt_for(cred_hash)

    def register_credential(
        self,
        credential: AgentCredential,
        policy: Optional[CredentialPolicy] = None,
    ) -> CredentialStateReceipt:
        """Register *credential* using its own claims (or *policy*) as the grant."""
        policy = policy or CredentialPolicy(
            role=credential.role, scopes=frozenset(credential.scopes)
        )
        return self.register(
            credential.cred_hash,
            policy.role,
            policy.scopes,
            expires_at=credential.expires_at,
        )

    def receipt_for(self, cred_hash: str) -> CredentialStateReceipt:
        """Mint a receipt attesting *cred_hash*."""
        message = _ATTESTATION_CONTEXT + cred_hash.encode("utf-8")
        signature = self._key_manager.sign(self._signing_key, message)
        return CredentialStateReceipt(attestation=b64url_encode(signature), cred_hash=cred_hash)

    def revoke(self, cred_hash: str, reason: str = "unspecified") -> bool:
        """Mark a credential revoked. Returns False when the hash is unknown."""
        with self._lock:
            record = self._records.get(cred_hash)
            if record is None:
                return False
            record.revoked = True
            record.reason = reason
        logger.info("Revoked credential (reason=%s)", reason)
        return True

    def reinstate(self, cred_hash: str) -> bool:
        """Clear a revocation. Returns False when the hash is unknown."""
        with self._lock:
            record = self._records.get(cred_hash)
            if record is None:
                return False
            record.revoked = False
            record.reason = ""
        return True

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def lookup(self, cred_hash: str, attestation: str) -> OracleResponse:
        """Return the state of *cred_hash*; never raises on malformed input."""
        if not isinstance(cred_hash, str) or not isinstance(attestation, str):
            return OracleResponse(status=CredentialStatus.UNKNOWN)
        if not self._attestation_valid(cred_hash, attestation):
            logger.debug("Attestation does not match credential hash")
            return OracleResponse(status=CredentialStatus.UNKNOWN)

        with self._lock:
            record = self._records.get(cred_hash)
            if record is None:
                return OracleResponse(status=CredentialStatus.UNKNOWN)
            revoked = record.revoked
            expires_at = record.expires_at
            policy = record.policy

        if revoked:
            return OracleResponse(status=CredentialStatus.REVOKED)
        if expires_at is not None and self._clock() > expires_at:
            return OracleResponse(status=CredentialStatus.EXPIRED)
        return OracleResponse(status=CredentialStatus.VALID, policy=policy)

    def is_revoked(self, cred_hash: str) -> bool:
        """Return True when *cred_hash* is registered and revoked."""
        with self._lock:
            record = self._records.get(cred_hash)
            return record is not None and record.revoked

    @property
    def public_key(self) -> bytes:
        """Raw Ed25519 key that verifies this oracle's attestations."""
        return self._public_key

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _attestation_valid(self, cred_hash: str, attestation: str) -> bool:
        try:
            signature = b64url_decode(attestation)
            message = _ATTESTATION_CONTEXT + cred_hash.encode("utf-8")
        except (ValueError, UnicodeEncodeError):
            return False
        return self._key_manager.verify(self._public_key, signature, message)


__all__ = ["InMemoryCredentialStateOracle"]
