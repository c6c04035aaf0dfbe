"""Holder-side helpers: possession messages and presentation assembly.

The possession proof is an Ed25519 signature by the holder key over the
UTF-8 bytes of ``"{nonce}|{audience}|{exp}"``, where ``exp`` is the
challenge expiry in integer UNIX seconds. The verifier rebuilds the same
bytes from the challenge it issued, so a proof made for one challenge or
audience never verifies against another.
"""
from __future__ import annotations

import datetime
from typing import TYPE_CHECKING, Optional

from agentic_did.credentials.credential import AgentCredential
from agentic_did.credentials.models import (
    CredentialStateReceipt,
    DisclosedClaims,
    VerifiablePresentation,
)
from agentic_did.crypto import Ed25519KeyManager, b64url_encode

if TYPE_CHECKING:
    from agentic_did.challenge.registry import Challenge
    from agentic_did.disclosure.base import DisclosureProver


def possession_message(nonce: str, audience: str, expires_at: datetime.datetime | int) -> bytes:
    """Return the exact bytes a possession proof signs.

    Parameters
    ----------
    nonce:
        The challenge nonce.
    audience:
        The challenge audience.
    expires_at:
        The challenge expiry, as a datetime or integer UNIX seconds.
    """
    exp = expires_at if isinstance(expires_at, int) else int(expires_at.timestamp())
    return f"{nonce}|{audience}|{exp}".encode("utf-8")


def sign_possession(
    credential: AgentCredential,
    challenge: "Challenge",
    key_manager: Optional[Ed25519KeyManager] = None,
) -> str:
    """Sign *challenge* with the credential's holder key.

    Returns
    -------
    str
        base64url-encoded Ed25519 signature.
    """
    manager = key_manager or Ed25519KeyManager()
    message = possession_message(challenge.nonce, challenge.audience, challenge.expires_at)
    return b64url_encode(manager.sign(credential.private_key, message))


def build_presentation(
    credential: AgentCredential,
    challenge: "Challenge",
    receipt: CredentialStateReceipt,
    disclosed: Optional[DisclosedClaims] = None,
    prover: Optional["DisclosureProver"] = None,
) -> VerifiablePresentation:
    """Assemble a verifiable presentation answering *challenge*.

    Parameters
    ----------
    credential:
        The held credential.
    challenge:
        The challenge obtained from the verifier.
    receipt:
        The oracle receipt for the credential.
    disclosed:
        Claims to reveal. Defaults to every claim of the credential.
    prover:
        Selective-disclosure prover. Defaults to the salted-digest prover.

    Returns
    -------
    VerifiablePresentation

    Raises
    ------
    ValueError
        If *disclosed* names claims the credential does not hold.
    """
    if prover is None:
        from agentic_did.disclosure.salted import SaltedDigestProver

        prover = SaltedDigestProver()

    claims = disclosed or credential.full_claims()
    return VerifiablePresentation(
        subject_id=credential.pid,
        possession_proof=sign_possession(credential, challenge),
        disclosure_proof=prover.prove(credential, claims, challenge.nonce, challenge.audience),
        disclosed=claims,
        receipt=receipt,
    )


__all__ = ["build_presentation", "possession_message", "sign_possession"]
