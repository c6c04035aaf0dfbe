"""credentials — held credentials, disclosed claims and verifiable presentations.

Public API
----------
``AgentCredential``
    The privately held credential with its salted claim commitments.
``VerifiablePresentation``, ``DisclosedClaims``, ``CredentialStateReceipt``, ``Role``
    Pydantic wire models.
``build_presentation``, ``possession_message``
    Holder-side presentation assembly.
"""
from __future__ import annotations

from agentic_did.credentials.credential import (
    AgentCredential,
    compute_credential_hash,
    disclosure_digest,
)
from agentic_did.credentials.models import (
    CredentialStateReceipt,
    DisclosedClaims,
    Role,
    VerifiablePresentation,
)
from agentic_did.credentials.presentation import (
    build_presentation,
    possession_message,
    sign_possession,
)

__all__ = [
    "AgentCredential",
    "CredentialStateReceipt",
    "DisclosedClaims",
    "Role",
    "VerifiablePresentation",
    "build_presentation",
    "compute_credential_hash",
    "disclosure_digest",
    "possession_message",
    "sign_possession",
]
