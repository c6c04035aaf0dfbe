"""capability — issuance and resource-side verification of capability tokens."""
from __future__ import annotations

from agentic_did.capability.issuer import CapabilityIssuer
from agentic_did.capability.token import (
    AudienceMismatchError,
    CapabilityToken,
    CapabilityTokenError,
    InsufficientScopeError,
    KeyBindingMismatchError,
    TokenExpiredError,
    TokenInvalidError,
    TokenTamperedError,
)
from agentic_did.capability.verifier import CapabilityTokenVerifier, has_scope

__all__ = [
    "AudienceMismatchError",
    "CapabilityIssuer",
    "CapabilityToken",
    "CapabilityTokenError",
    "CapabilityTokenVerifier",
    "InsufficientScopeError",
    "KeyBindingMismatchError",
    "TokenExpiredError",
    "TokenInvalidError",
    "TokenTamperedError",
    "has_scope",
]
