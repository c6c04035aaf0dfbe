"""CapabilityToken — Ed25519-signed, key-bound, short-lived capability.

Token format
------------
The token is a dot-separated string:
    base64url(header).base64url(payload).base64url(signature)

- header: ``{"alg": "EdDSA", "typ": "cap+jwt"}``
- payload: ``jti``, ``iss``, ``sub``, ``aud``, ``role``, ``scope`` (sorted
  list), ``iat`` and ``exp`` (UNIX seconds) and ``cnf: {"jkt": ...}``
- signature: Ed25519 over ``header.payload`` with the issuer key

The layout is JWT-compatible so standard tooling can inspect it. The
``cnf.jkt`` claim carries the RFC 7638 thumbprint of the key that proved
possession; a resource server demands proof with that same key.
"""
from __future__ import annotations

import datetime
import json
from dataclasses import dataclass
from typing import Any

from agentic_did.credentials.models import Role
from agentic_did.crypto import b64url_decode, b64url_encode, canonical_json

TOKEN_HEADER: dict[str, str] = {"alg": "EdDSA", "typ": "cap+jwt"}
HEADER_B64: str = b64url_encode(canonical_json(TOKEN_HEADER))


# ---------------------------------------------------------------------------
# Custom exceptions
# ---------------------------------------------------------------------------


class CapabilityTokenError(Exception):
    """Base class for all errors raised when consuming a capability token."""


class TokenInvalidError(CapabilityTokenError):
    """Raised when the token is structurally invalid (bad format)."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Invalid capability token: {reason}")


class TokenTamperedError(CapabilityTokenError):
    """Raised when signature verification fails."""

    def __init__(self) -> None:
        super().__init__("Capability token signature verification failed")


class TokenExpiredError(CapabilityTokenError):
    """Raised when the token's expiry time has passed."""

    def __init__(self, token_id: str, expired_at: datetime.datetime) -> None:
        self.token_id = token_id
        self.expired_at = expired_at
        super().__init__(f"Capability token {token_id!r} expired at {expired_at.isoformat()}")


class AudienceMismatchError(CapabilityTokenError):
    """Raised when a token is presented to a resource it was not issued for."""

    def __init__(self, expected: str, actual: str) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"Capability token audience {actual!r} does not match {expected!r}")


class KeyBindingMismatchError(CapabilityTokenError):
    """Raised when the presenter's key thumbprint differs from ``cnf.jkt``."""

    def __init__(self) -> None:
        super().__init__("Capability token is bound to a different key")


class InsufficientScopeError(CapabilityTokenError):
    """Raised when a token lacks the role or scope an action requires."""

    def __init__(self, required: str) -> None:
        self.required = required
        super().__init__(f"Capability token does not grant {required!r}")


# ---------------------------------------------------------------------------
# CapabilityToken
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CapabilityToken:
    """An issued capability and its encoded form.

    Parameters
    ----------
    token_id:
        Unique token identifier (``jti``).
    issuer:
        Issuer identifier (``iss``).
    subject:
        Subject identifier of the holder (``sub``).
    audience:
        Resource the token may be used against (``aud``).
    role:
        Verified role.
    scopes:
        Granted scopes.
    issued_at:
        UTC issue time, whole seconds.
    expires_at:
        UTC expiry time, whole seconds.
    key_binding:
        RFC 7638 thumbprint of the holder key (``cnf.jkt``).
    encoded:
        The signed compact token string.
    """

    token_id: str
    issuer: str
    subject: str
    audience: str
    role: Role
    scopes: frozenset[str]
    issued_at: datetime.datetime
    expires_at: datetime.datetime
    key_binding: str
    encoded: str

    @property
    def ttl_seconds(self) -> int:
        return int((self.expires_at - self.issued_at).total_seconds())

    def is_expired(self, now: datetime.datetime) -> bool:
        """Return True when *now* is at or past the expiry time."""
        return now >= self.expires_at

    def claims(self) -> dict[str, Any]:
        """Return the payload claims carried by this token."""
        return build_claims(
            token_id=self.token_id,
            issuer=self.issuer,
            subject=self.subject,
            audience=self.audience,
            role=self.role,
            scopes=self.scopes,
            issued_at=self.issued_at,
            expires_at=self.expires_at,
            key_binding=self.key_binding,
        )

    def to_dict(self) -> dict[str, object]:
        """Serialize to a plain dictionary (including the encoded token)."""
        return {**self.claims(), "token": self.encoded}

    def __str__(self) -> str:
        return self.encoded


# ---------------------------------------------------------------------------
# Claim helpers
# ---------------------------------------------------------------------------


def build_claims(
    *,
    token_id: str,
    issuer: str,
    subject: str,
    audience: str,
    role: Role,
    scopes: frozenset[str],
    issued_at: datetime.datetime,
    expires_at: datetime.datetime,
    key_binding: str,
) -> dict[str, Any]:
    """Assemble the payload claims for a token."""
    return {
        "jti": token_id,
        "iss": issuer,
        "sub": subject,
        "aud": audience,
        "role": role.value,
        "scope": sorted(scopes),
        "iat": int(issued_at.timestamp()),
        "exp": int(expires_at.timestamp()),
        "cnf": {"jkt": key_binding},
    }


def split_token(encoded: str) -> tuple[str, str, bytes, dict[str, Any]]:
    """Split a compact token into signing input, header, signature and claims.

    Returns
    -------
    tuple
        ``(signing_input, header_b64, signature_bytes, claims)``

    Raises
    ------
    TokenInvalidError
        When the token has an unexpected format or cannot be decoded.
    """
    if not isinstance(encoded, str):
        raise TokenInvalidError("token must be a string")
    parts = encoded.split(".")
    if len(parts) != 3:
        raise TokenInvalidError(f"Expected 3 dot-separated parts, got {len(parts)}")
    header_b64, payload_b64, signature_b64 = parts
    try:
        header = json.loads(b64url_decode(header_b64).decode("utf-8"))
        claims = json.loads(b64url_decode(payload_b64).decode("utf-8"))
        signature = b64url_decode(signature_b64)
    except ValueError as exc:
        raise TokenInvalidError(f"Could not decode token: {exc}") from exc
    if header != TOKEN_HEADER:
        raise TokenInvalidError(f"Unsupported token header: {header!r}")
    if not isinstance(claims, dict):
        raise TokenInvalidError("Token payload is not a JSON object")
    return f"{header_b64}.{payload_b64}", header_b64, signature, claims


def token_from_claims(claims: dict[str, Any], encoded: str) -> CapabilityToken:
    """Rebuild a :class:`CapabilityToken` from decoded claims.

    Raises
    ------
    TokenInvalidError
        When a claim is missing or has the wrong type.
    """
    try:
        scopes = claims["scope"]
        if not isinstance(scopes, list) or not all(isinstance(s, str) for s in scopes):
            raise TypeError("scope must be a list of strings")
        return CapabilityToken(
            token_id=str(claims["jti"]),
            issuer=str(claims["iss"]),
            subject=str(claims["sub"]),
            audience=str(claims["aud"]),
            role=Role(claims["role"]),
            scopes=frozenset(scopes),
            issued_at=datetime.datetime.fromtimestamp(int(claims["iat"]), datetime.timezone.utc),
            expires_at=datetime.datetime.fromtimestamp(int(claims["exp"]), datetime.timezone.utc),
            key_binding=str(claims["cnf"]["jkt"]),
            encoded=encoded,
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise TokenInvalidError(f"Missing or invalid claim: {exc}") from exc


__all__ = [
    "AudienceMismatchError",
    "CapabilityToken",
    "CapabilityTokenError",
    "HEADER_B64",
    "InsufficientScopeError",
    "KeyBindingMismatchError",
    "TOKEN_HEADER",
    "TokenExpiredError",
    "TokenInvalidError",
    "TokenTamperedError",
    "build_claims",
    "split_token",
    "token_from_claims",
]
