"""challenge — single-use, time-bounded nonces bound to an audience."""
from __future__ import annotations

from agentic_did.challenge.issuer import ChallengeIssuer
from agentic_did.challenge.rate_limit import RateLimiter, TokenBucket
from agentic_did.challenge.registry import Challenge, ChallengeRegistry, RegistryFullError

__all__ = [
    "Challenge",
    "ChallengeIssuer",
    "ChallengeRegistry",
    "RateLimiter",
    "RegistryFullError",
    "TokenBucket",
]
