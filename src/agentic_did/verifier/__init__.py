"""verifier — verifiable-presentation validation."""
from __future__ import annotations

from agentic_did.verifier.vp_verifier import (
    DIDKeyResolver,
    SubjectKeyResolver,
    VerificationOutcome,
    VPVerifier,
)

__all__ = ["DIDKeyResolver", "SubjectKeyResolver", "VPVerifier", "VerificationOutcome"]
