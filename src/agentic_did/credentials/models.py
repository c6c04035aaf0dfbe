"""Wire models for presentations: disclosed claims, receipts and the VP itself.

These are pydantic v2 models so that the structural check of a presentation
is a single ``model_validate`` call; any :class:`pydantic.ValidationError`
is a malformed presentation. Field sizes are bounded so that hostile input
cannot make later checks expensive.

The short wire names (``pid``, ``proof``, ``sd_proof``) are accepted as
aliases of ``subject_id``, ``possession_proof`` and ``disclosure_proof``.
"""
from __future__ import annotations

from enum import Enum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_serializer, field_validator

_MAX_SCOPES: int = 64
_MAX_SCOPE_LENGTH: int = 128


class Role(str, Enum):
    """Roles a credential can entitle an agent to."""

    BANKER = "Banker"
    TRAVELER = "Traveler"
    SHOPPER = "Shopper"
    ADMIN = "Admin"
    AGENT = "Agent"


class DisclosedClaims(BaseModel):
    """The minimal subset of credential claims an agent chooses to reveal."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    role: Role
    scopes: frozenset[str] = Field(default_factory=frozenset)

    @field_validator("scopes")
    @classmethod
    def validate_scopes(cls, value: frozenset[str]) -> frozenset[str]:
        if len(value) > _MAX_SCOPES:
            raise ValueError(f"at most {_MAX_SCOPES} scopes may be disclosed")
        for scope in value:
            if not scope or scope != scope.strip() or len(scope) > _MAX_SCOPE_LENGTH:
                raise ValueError(f"invalid scope {scope!r}")
        return value

    @field_serializer("scopes")
    def serialize_scopes(self, value: frozenset[str]) -> list[str]:
        return sorted(value)


class CredentialStateReceipt(BaseModel):
    """Oracle-issued receipt identifying a credential and attesting its state."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    attestation: str = Field(min_length=1, max_length=4096)
    cred_hash: str = Field(min_length=1, max_length=256)


class VerifiablePresentation(BaseModel):
    """A proof bundle submitted by an agent in exchange for a capability.

    Parameters
    ----------
    subject_id:
        Privacy-preserving identifier (pid) of the holder; a ``did:key``.
    possession_proof:
        base64url Ed25519 signature over ``nonce|audience|expires_at``.
    disclosure_proof:
        Opaque selective-disclosure proof. May be empty here; an empty proof
        fails the disclosure check rather than the structural one.
    disclosed:
        The claims the holder chose to reveal.
    receipt:
        The credential-state receipt to check against the oracle.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    subject_id: str = Field(
        min_length=1,
        max_length=512,
        validation_alias=AliasChoices("subject_id", "pid"),
    )
    possession_proof: str = Field(
        min_length=1,
        max_length=512,
        validation_alias=AliasChoices("possession_proof", "proof"),
    )
    disclosure_proof: str = Field(
        default="",
        max_length=65536,
        validation_alias=AliasChoices("disclosure_proof", "sd_proof"),
    )
    disclosed: DisclosedClaims
    receipt: CredentialStateReceipt

    @field_validator("subject_id")
    @classmethod
    def validate_subject_id(cls, value: str) -> str:
        if not value.startswith("did:") or any(ch.isspace() for ch in value):
            raise ValueError("subject_id must be a DID without whitespace")
        return value


__all__ = [
    "CredentialStateReceipt",
    "DisclosedClaims",
    "Role",
    "VerifiablePresentation",
]
