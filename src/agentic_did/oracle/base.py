"""Credential-state oracle contract.

The oracle is the external system of record for credential state. Given a
credential hash and the attestation from the presenter's receipt, it
answers with a status and, for valid credentials, the authoritative
policy (role and scopes) for that credential.

Adapters raise :class:`~agentic_did.errors.OracleUnavailableError` for
timeouts and transport failures. A definitive "no such credential" is
:attr:`CredentialStatus.UNKNOWN`, never an exception.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Protocol, runtime_checkable

from agentic_did.credentials.models import Role


class CredentialStatus(str, Enum):
    """Credential state as reported by the oracle."""

    VALID = "valid"
    EXPIRED = "expired"
    REVOKED = "revoked"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class CredentialPolicy:
    """Authoritative grant for a credential.

    Parameters
    ----------
    role:
        The role the credential carries.
    scopes:
        The scopes the credential carries.
    """

    role: Role
    scopes: frozenset[str] = field(default_factory=frozenset)

    def to_dict(self) -> dict[str, object]:
        """Serialize to a plain dictionary."""
        return {"role": self.role.value, "scopes": sorted(self.scopes)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CredentialPolicy":
        """Reconstruct a policy from a plain dictionary.

        Raises
        ------
        ValueError
            If the role is unknown or scopes are not a list of strings.
        """
        scopes = data.get("scopes") or []
        if not isinstance(scopes, list) or not all(isinstance(s, str) for s in scopes):
            raise ValueError("policy scopes must be a list of strings")
        return cls(role=Role(str(data["role"])), scopes=frozenset(scopes))


@dataclass(frozen=True)
class OracleResponse:
    """Result of one oracle lookup."""

    status: CredentialStatus
    policy: Optional[CredentialPolicy] = None


@runtime_checkable
class CredentialStateOracle(Protocol):
    """Anything that can answer credential-state lookups."""

    def lookup(self, cred_hash: str, attestation: str) -> OracleResponse:
        """Return the state of the credential identified by *cred_hash*."""
        ...


__all__ = [
    "CredentialPolicy",
    "CredentialStateOracle",
    "CredentialStatus",
    "OracleResponse",
]
