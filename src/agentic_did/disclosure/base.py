"""Interfaces for the pluggable selective-disclosure proof system.

The VP verifier depends only on :class:`DisclosureProofVerifier`; the
concrete proof system is injected at construction. A zero-knowledge
backend, the salted-digest scheme in :mod:`agentic_did.disclosure.salted`
or a test double all satisfy the same protocol.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from agentic_did.credentials.models import DisclosedClaims

if TYPE_CHECKING:
    from agentic_did.credentials.credential import AgentCredential


@runtime_checkable
class DisclosureProofVerifier(Protocol):
    """Checks that disclosed claims are consistent with a committed credential."""

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
        """Return True when *proof* shows *disclosed* is part of *cred_hash*.

        The proof must also be bound to *nonce* and *audience*.
        Implementations return ``False`` for malformed proofs instead of
        raising.
        """
        ...


@runtime_checkable
class DisclosureProver(Protocol):
    """Holder-side counterpart producing proofs a verifier accepts."""

    def prove(
        self,
        credential: "AgentCredential",
        disclosed: DisclosedClaims,
        nonce: str,
        audience: str,
    ) -> str:
        """Produce a proof revealing exactly *disclosed* for one challenge."""
        ...


__all__ = ["DisclosureProofVerifier", "DisclosureProver"]
