"""did:key codec — self-certifying subject identifiers for agents.

Implements the encoding half of the ``did:key`` DID method
(https://w3c-ccg.github.io/did-method-key/) for Ed25519 keys:

1. Take the 32-byte raw Ed25519 public key.
2. Prepend the Ed25519 multicodec prefix ``0xed 0x01``.
3. Encode with base58btc and prefix the multibase indicator ``z``.
4. Assemble: ``did:key:z<base58btc-encoded>``.

A presentation's ``subject_id`` is a ``did:key``, so the verifier recovers
the holder key from the identifier alone. Each credential gets a fresh
keypair, which keeps the identifier pairwise and unlinkable across
credentials.
"""
from __future__ import annotations

_ED25519_MULTICODEC_PREFIX: bytes = b"\xed\x01"
_DID_KEY_PREFIX: str = "did:key:z"
_ED25519_KEY_LENGTH: int = 32

_BASE58_ALPHABET: str = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"


def _base58btc_encode(data: bytes) -> str:
    """Encode *data* to a base58btc string."""
    n = int.from_bytes(data, "big")
    result: list[str] = []
    while n > 0:
        n, remainder = divmod(n, 58)
        result.append(_BASE58_ALPHABET[remainder])
    # Preserve leading zero bytes as '1' characters
    for byte in data:
        if byte == 0:
            result.append("1")
        else:
            break
    return "".join(reversed(result))


def _base58btc_decode(encoded: str) -> bytes:
    """Decode a base58btc string back to bytes.

    Raises
    ------
    ValueError
        If the string contains a character not in the base58btc alphabet.
    """
    n = 0
    for char in encoded:
        index = _BASE58_ALPHABET.find(char)
        if index < 0:
            raise ValueError(f"Invalid base58btc character {char!r}")
        n = n * 58 + index
    result = n.to_bytes((n.bit_length() + 7) // 8, "big") if n > 0 else b""
    pad_size = len(encoded) - len(encoded.lstrip("1"))
    return b"\x00" * pad_size + result


def public_key_to_did(public_key_bytes: bytes) -> str:
    """Encode a raw Ed25519 public key as a ``did:key`` DID.

    Raises
    ------
    ValueError
        If the key is not 32 bytes long.
    """
    if len(public_key_bytes) != _ED25519_KEY_LENGTH:
        raise ValueError(
            f"Ed25519 public keys are {_ED25519_KEY_LENGTH} bytes, got {len(public_key_bytes)}"
        )
    return _DID_KEY_PREFIX + _base58btc_encode(_ED25519_MULTICODEC_PREFIX + public_key_bytes)


def did_to_public_key(did: str) -> bytes:
    """Recover the raw Ed25519 public key from a ``did:key`` DID.

    Raises
    ------
    ValueError
        If the DID is not in ``did:key:z<encoded>`` format, uses a
        multicodec other than Ed25519, or carries a key of the wrong length.
    """
    if not isinstance(did, str) or not did.startswith(_DID_KEY_PREFIX):
        raise ValueError(
            f"Invalid did:key format: {did!r}. "
            "Expected format: did:key:z<base58btc-encoded-public-key>"
        )
    encoded = did[len(_DID_KEY_PREFIX):]
    if not encoded:
        raise ValueError(f"Invalid did:key format: {did!r}. The encoded key portion is empty.")
    decoded = _base58btc_decode(encoded)
    if not decoded.startswith(_ED25519_MULTICODEC_PREFIX):
        raise ValueError(
            f"Unsupported multicodec prefix 0x{decoded[:2].hex()} in DID {did!r}. "
            "Only Ed25519 (0xed01) keys are supported."
        )
    public_bytes = decoded[len(_ED25519_MULTICODEC_PREFIX):]
    if len(public_bytes) != _ED25519_KEY_LENGTH:
        raise ValueError(f"Encoded key in {did!r} has length {len(public_bytes)}, expected 32")
    return public_bytes


__all__ = ["did_to_public_key", "public_key_to_did"]
