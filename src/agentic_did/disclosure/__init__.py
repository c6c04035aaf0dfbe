"""disclosure — pluggable selective-disclosure proof capability."""
from __future__ import annotations

from agentic_did.disclosure.base import DisclosureProofVerifier, DisclosureProver
from agentic_did.disclosure.salted import SaltedDigestProver, SaltedDigestVerifier

__all__ = [
    "DisclosureProofVerifier",
    "DisclosureProver",
    "SaltedDigestProver",
    "SaltedDigestVerifier",
]
