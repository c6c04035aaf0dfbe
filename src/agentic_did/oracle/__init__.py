"""oracle — credential-state oracle contract and adapters."""
from __future__ import annotations

from agentic_did.oracle.base import (
    CredentialPolicy,
    CredentialStateOracle,
    CredentialStatus,
    OracleResponse,
)
from agentic_did.oracle.http import HttpCredentialStateOracle
from agentic_did.oracle.memory import InMemoryCredentialStateOracle

__all__ = [
    "CredentialPolicy",
    "CredentialStateOracle",
    "CredentialStatus",
    "HttpCredentialStateOracle",
    "InMemoryCredentialStateOracle",
    "OracleResponse",
]
