"""crypto — key generation, signatures, content hashing and did:key encoding."""
from __future__ import annotations

from agentic_did.crypto.did_key import did_to_public_key, public_key_to_did
from agentic_did.crypto.encoding import (
    b64url_decode,
    b64url_encode,
    canonical_json,
    content_hash,
    jwk_from_public_key,
    jwk_thumbprint,
)
from agentic_did.crypto.keys import Ed25519KeyManager

__all__ = [
    "Ed25519KeyManager",
    "b64url_decode",
    "b64url_encode",
    "canonical_json",
    "content_hash",
    "did_to_public_key",
    "jwk_from_public_key",
    "jwk_thumbprint",
    "public_key_to_did",
]
