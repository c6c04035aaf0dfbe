"""Encoding helpers: base64url, canonical JSON, content hashes and JWK thumbprints.

The JWK helpers follow RFC 8037 (OKP keys) and RFC 7638 (thumbprints).
A thumbprint is what a capability token's ``cnf.jkt`` claim carries, so the
resource server can match it against the key that proved possession.
"""
from __future__ import annotations

import base64
import binascii
import hashlib
import json
from typing import Any


def b64url_encode(data: bytes) -> str:
    """Encode bytes as base64url without padding per RFC 7515."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(value: str) -> bytes:
    """Decode an unpadded base64url string.

    Raises
    ------
    ValueError
        If *value* is not a string or is not valid base64url.
    """
    if not isinstance(value, str):
        raise ValueError(f"Expected a base64url string, got {type(value).__name__}")
    padded = value + "=" * (-len(value) % 4)
    try:
        return base64.urlsafe_b64decode(padded.encode("ascii"))
    except (UnicodeEncodeError, binascii.Error) as exc:
        raise ValueError(f"Invalid base64url data: {exc}") from exc


def canonical_json(obj: Any) -> bytes:
    """Produce a deterministic JSON encoding (sorted keys, no whitespace)."""
    return json.dumps(obj, sort_keys=True, separators=(",", ":")).encode("utf-8")


def content_hash(data: bytes) -> str:
    """Return the base64url-encoded SHA-256 digest of *data*."""
    return b64url_encode(hashlib.sha256(data).digest())


def jwk_from_public_key(public_key_bytes: bytes, kid: str | None = None) -> dict[str, str]:
    """Export a raw Ed25519 public key as an OKP JWK.

    Parameters
    ----------
    public_key_bytes:
        The 32-byte raw Ed25519 public key.
    kid:
        Optional key identifier to include.
    """
    jwk = {
        "kty": "OKP",
        "crv": "Ed25519",
        "x": b64url_encode(public_key_bytes),
    }
    if kid:
        jwk["kid"] = kid
    return jwk


def jwk_thumbprint(public_key_bytes: bytes) -> str:
    """Compute the RFC 7638 SHA-256 thumbprint of an Ed25519 public key.

    Only the required members (``crv``, ``kty``, ``x``) participate, in
    lexicographic order.
    """
    members = {
        "crv": "Ed25519",
        "kty": "OKP",
        "x": b64url_encode(public_key_bytes),
    }
    return content_hash(canonical_json(members))


__all__ = [
    "b64url_decode",
    "b64url_encode",
    "canonical_json",
    "content_hash",
    "jwk_from_public_key",
    "jwk_thumbprint",
]
