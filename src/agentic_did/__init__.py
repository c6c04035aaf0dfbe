"""agentic-did — challenge/presentation trust protocol for autonomous agents.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import agentic_did
>>> agentic_did.__version__
'0.1.0'

Quick start
-----------
::

    from agentic_did import (
        VerifierService, VerifierConfig, AgentCredential,
        InMemoryCredentialStateOracle, build_presentation,
    )

    oracle = InMemoryCredentialStateOracle()
    service = VerifierService.build(oracle=oracle)

    credential = AgentCredential.create("Banker", ["bank:transfer", "bank:balance"])
    receipt = oracle.register_credential(credential)

    challenge = service.get_challenge("bank.example")
    vp = build_presentation(credential, challenge, receipt)
    result = service.present_vp(vp, challenge.nonce)
"""
from __future__ import annotations

__version__: str = "0.1.0"

# ------------------------------------------------------------------
# Errors and configuration
# ------------------------------------------------------------------
from agentic_did.config import VerifierConfig
from agentic_did.errors import (
    ChallengeInvalidOrReusedError,
    CredentialExpiredError,
    CredentialRevokedError,
    CredentialStateUnknownError,
    DisclosureProofInvalidError,
    ErrorKind,
    IssuanceFailedError,
    MalformedVPError,
    OracleUnavailableError,
    PolicyMismatchError,
    PossessionProofInvalidError,
    ResourceExhaustedError,
    TrustProtocolError,
)

# ------------------------------------------------------------------
# Holder side
# ------------------------------------------------------------------
from agentic_did.credentials import (
    AgentCredential,
    CredentialStateReceipt,
    DisclosedClaims,
    Role,
    VerifiablePresentation,
    build_presentation,
)

# ------------------------------------------------------------------
# Verifier side
# ------------------------------------------------------------------
from agentic_did.audit import AuditEvent, AuditLogger
from agentic_did.capability import (
    CapabilityIssuer,
    CapabilityToken,
    CapabilityTokenError,
    CapabilityTokenVerifier,
    has_scope,
)
from agentic_did.challenge import Challenge, ChallengeIssuer, ChallengeRegistry
from agentic_did.disclosure import SaltedDigestProver, SaltedDigestVerifier
from agentic_did.oracle import (
    CredentialPolicy,
    CredentialStatus,
    HttpCredentialStateOracle,
    InMemoryCredentialStateOracle,
    OracleResponse,
)
from agentic_did.service import PresentationResult, VerifierService
from agentic_did.verifier import VerificationOutcome, VPVerifier

__all__ = [
    # version
    "__version__",
    # errors and configuration
    "ChallengeInvalidOrReusedError",
    "CredentialExpiredError",
    "CredentialRevokedError",
    "CredentialStateUnknownError",
    "DisclosureProofInvalidError",
    "ErrorKind",
    "IssuanceFailedError",
    "MalformedVPError",
    "OracleUnavailableError",
    "PolicyMismatchError",
    "PossessionProofInvalidError",
    "ResourceExhaustedError",
    "TrustProtocolError",
    "VerifierConfig",
    # holder side
    "AgentCredential",
    "CredentialStateReceipt",
    "DisclosedClaims",
    "Role",
    "VerifiablePresentation",
    "build_presentation",
    # verifier side
    "AuditEvent",
    "AuditLogger",
    "CapabilityIssuer",
    "CapabilityToken",
    "CapabilityTokenError",
    "CapabilityTokenVerifier",
    "Challenge",
    "ChallengeIssuer",
    "ChallengeRegistry",
    "CredentialPolicy",
    "CredentialStatus",
    "HttpCredentialStateOracle",
    "InMemoryCredentialStateOracle",
    "OracleResponse",
    "PresentationResult",
    "SaltedDigestProver",
    "SaltedDigestVerifier",
    "VPVerifier",
    "VerificationOutcome",
    "VerifierService",
    "has_scope",
]
