"""Error taxonomy for the trust protocol.

Every failure of a presentation maps to exactly one :class:`ErrorKind`.
Each kind has its own exception class so that checks can ``raise`` at the
point of failure; the service boundary turns the exception back into a
structured outcome (kind + human-readable detail).

Only ``OracleUnavailable`` and ``IssuanceFailed`` describe infrastructure
failures; those are flagged ``retryable``. A retry must start over with a
new challenge because the nonce has already been consumed.
"""
from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Mutually exclusive failure kinds, in verification order."""

    MALFORMED_VP = "MalformedVP"
    CHALLENGE_INVALID_OR_REUSED = "ChallengeInvalidOrReused"
    POSSESSION_PROOF_INVALID = "PossessionProofInvalid"
    CREDENTIAL_REVOKED = "CredentialRevoked"
    CREDENTIAL_EXPIRED = "CredentialExpired"
    CREDENTIAL_STATE_UNKNOWN = "CredentialStateUnknown"
    ORACLE_UNAVAILABLE = "OracleUnavailable"
    POLICY_MISMATCH = "PolicyMismatch"
    DISCLOSURE_PROOF_INVALID = "DisclosureProofInvalid"
    ISSUANCE_FAILED = "IssuanceFailed"
    RESOURCE_EXHAUSTED = "ResourceExhausted"


_INFRASTRUCTURE_KINDS: frozenset[ErrorKind] = frozenset(
    {ErrorKind.ORACLE_UNAVAILABLE, ErrorKind.ISSUANCE_FAILED}
)


class TrustProtocolError(Exception):
    """Base class for all trust-protocol failures.

    Parameters
    ----------
    detail:
        Human-readable explanation of the failure.
    """

    kind: ErrorKind

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"{self.kind.value}: {detail}")

    @property
    def retryable(self) -> bool:
        """True when the failure is infrastructural (retry with a new challenge)."""
        return self.kind in _INFRASTRUCTURE_KINDS


class MalformedVPError(TrustProtocolError):
    """Raised when a presentation is missing fields or is badly formed."""

    kind = ErrorKind.MALFORMED_VP


class ChallengeInvalidOrReusedError(TrustProtocolError):
    """Raised when a nonce is unknown, expired, or already redeemed."""

    kind = ErrorKind.CHALLENGE_INVALID_OR_REUSED


class PossessionProofInvalidError(TrustProtocolError):
    """Raised when the possession proof does not verify against the subject key."""

    kind = ErrorKind.POSSESSION_PROOF_INVALID


class CredentialRevokedError(TrustProtocolError):
    """Raised when the oracle reports the credential as revoked."""

    kind = ErrorKind.CREDENTIAL_REVOKED


class CredentialExpiredError(TrustProtocolError):
    """Raised when the oracle reports the credential as expired."""

    kind = ErrorKind.CREDENTIAL_EXPIRED


class CredentialStateUnknownError(TrustProtocolError):
    """Raised when the oracle has no definitive record of the credential."""

    kind = ErrorKind.CREDENTIAL_STATE_UNKNOWN


class OracleUnavailableError(TrustProtocolError):
    """Raised when the oracle times out or cannot be reached."""

    kind = ErrorKind.ORACLE_UNAVAILABLE


class PolicyMismatchError(TrustProtocolError):
    """Raised when disclosed claims diverge from the oracle policy."""

    kind = ErrorKind.POLICY_MISMATCH


class DisclosureProofInvalidError(TrustProtocolError):
    """Raised when the selective-disclosure proof is absent or invalid."""

    kind = ErrorKind.DISCLOSURE_PROOF_INVALID


class IssuanceFailedError(TrustProtocolError):
    """Raised when the capability token cannot be signed."""

    kind = ErrorKind.ISSUANCE_FAILED


class ResourceExhaustedError(TrustProtocolError):
    """Raised when a caller exceeds the challenge rate limit or the registry is full."""

    kind = ErrorKind.RESOURCE_EXHAUSTED


__all__ = [
    "ChallengeInvalidOrReusedError",
    "CredentialExpiredError",
    "CredentialRevokedError",
    "CredentialStateUnknownError",
    "DisclosureProofInvalidError",
    "ErrorKind",
    "IssuanceFailedError",
    "MalformedVPError",
    "OracleUnavailableError",
    "PolicyMismatchError",
    "PossessionProofInvalidError",
    "ResourceExhaustedError",
    "TrustProtocolError",
]
