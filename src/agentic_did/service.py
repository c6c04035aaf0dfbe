"""VerifierService — the protocol's public surface.

Wires a :class:`~agentic_did.challenge.ChallengeIssuer`, a
:class:`~agentic_did.verifier.VPVerifier` and a
:class:`~agentic_did.capability.CapabilityIssuer` together, records audit
events, and converts protocol exceptions into a structured
:class:`PresentationResult`. It holds no business logic of its own.

Example
-------
::

    from agentic_did import VerifierService

    service = VerifierService.build()
    challenge = service.get_challenge("bank.example")
    result = service.present_vp(vp, challenge.nonce)
    if result.ok:
        use(result.token.encoded)
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Union

from agentic_did.audit import AuditLogger
from agentic_did.capability.issuer import CapabilityIssuer
from agentic_did.capability.token import CapabilityToken
from agentic_did.capability.verifier import CapabilityTokenVerifier
from agentic_did.challenge.issuer import ChallengeIssuer
from agentic_did.challenge.registry import Challenge, ChallengeRegistry
from agentic_did.config import Clock, VerifierConfig, utc_now
from agentic_did.credentials.models import Role, VerifiablePresentation
from agentic_did.disclosure.base import DisclosureProofVerifier
from agentic_did.disclosure.salted import SaltedDigestVerifier
from agentic_did.errors import ErrorKind, ResourceExhaustedError, TrustProtocolError
from agentic_did.oracle.base import CredentialStateOracle
from agentic_did.oracle.memory import InMemoryCredentialStateOracle
from agentic_did.verifier.vp_verifier import VPVerifier

logger = logging.getLogger(__name__)

_RETRYABLE_KINDS = frozenset({ErrorKind.ORACLE_UNAVAILABLE, ErrorKind.ISSUANCE_FAILED})


@dataclass(frozen=True)
class PresentationResult:
    """Outcome of :meth:`VerifierService.present_vp`.

    Exactly one of ``token`` and ``error`` is set.
    """

    ok: bool
    role: Optional[Role] = None
    scopes: frozenset[str] = field(default_factory=frozenset)
    token: Optional[CapabilityToken] = None
    error: Optional[ErrorKind] = None
    detail: str = ""

    @classmethod
    def success(cls, token: CapabilityToken) -> "PresentationResult":
        return cls(ok=True, role=token.role, scopes=token.scopes, token=token)

    @classmethod
    def failure(cls, exc: TrustProtocolError) -> "PresentationResult":
        return cls(ok=False, error=exc.kind, detail=exc.detail)

    @property
    def retryable(self) -> bool:
        """True for infrastructure failures; a retry needs a new challenge."""
        return self.error in _RETRYABLE_KINDS

    def to_dict(self) -> dict[str, object]:
        """Serialize to a plain dictionary."""
        if self.ok and self.token is not None:
            return {
                "ok": True,
                "role": self.token.role.value,
                "scopes": sorted(self.scopes),
                "token": self.token.encoded,
                "expires_at": self.token.expires_at.isoformat(),
            }
        return {
            "ok": False,
            "error": self.error.value if self.error else None,
            "detail": self.detail,
            "retryable": self.retryable,
        }


class VerifierService:
    """Challenge issuance and presentation handling for one verifier.

    Parameters
    ----------
    challenge_issuer:
        Issues and records challenges.
    vp_verifier:
        Verifies presentations against the same challenge registry.
    capability_issuer:
        Mints capability tokens for successful presentations.
    audit:
        Optional audit logger; an in-memory one is created when omitted.
    """

    def __init__(
        self,
        challenge_issuer: ChallengeIssuer,
        vp_verifier: VPVerifier,
        capability_issuer: CapabilityIssuer,
        audit: Optional[AuditLogger] = None,
    ) -> None:
        self._challenge_issuer = challenge_issuer
        self._vp_verifier = vp_verifier
        self._capability_issuer = capability_issuer
        self._audit = audit if audit is not None else AuditLogger()

    @classmethod
    def build(
        cls,
        config: Optional[VerifierConfig] = None,
        oracle: Optional[CredentialStateOracle] = None,
        disclosure_verifier: Optional[DisclosureProofVerifier] = None,
        clock: Clock = utc_now,
        audit: Optional[AuditLogger] = None,
        signing_key: Optional[bytes] = None,
    ) -> "VerifierService":
        """Assemble a service with default components.

        Parameters
        ----------
        config:
            Protocol configuration (defaults to :class:`VerifierConfig`).
        oracle:
            Credential-state oracle. Defaults to an empty in-memory oracle.
        disclosure_verifier:
            Disclosure proof capability. Defaults to salted digests.
        clock:
            Source of the current UTC time, shared by every component.
        audit:
            Optional audit logger.
        signing_key:
            Optional raw Ed25519 key for capability tokens.
        """
        config = config or VerifierConfig()
        registry = ChallengeRegistry(max_outstanding=config.max_outstanding_challenges)
        verifier = VPVerifier(
            registry=registry,
            oracle=oracle if oracle is not None else InMemoryCredentialStateOracle(clock=clock),
            disclosure_verifier=(
                disclosure_verifier if disclosure_verifier is not None else SaltedDigestVerifier()
            ),
            config=config,
            clock=clock,
        )
        return cls(
            challenge_issuer=ChallengeIssuer(registry, config=config, clock=clock),
            vp_verifier=verifier,
            capability_issuer=CapabilityIssuer(config, signing_key=signing_key, clock=clock),
            audit=audit,
        )

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def audit(self) -> AuditLogger:
        return self._audit

    @property
    def capability_issuer(self) -> CapabilityIssuer:
        return self._capability_issuer

    def token_verifier(self, clock: Clock = utc_now) -> CapabilityTokenVerifier:
        """Return a resource-side verifier for tokens minted by this service."""
        return CapabilityTokenVerifier(
            self._capability_issuer.public_key, self._capability_issuer.issuer, clock=clock
        )

    # ------------------------------------------------------------------
    # Protocol operations
    # ------------------------------------------------------------------

    def get_challenge(self, audience: str, caller_id: Optional[str] = None) -> Challenge:
        """Issue a challenge for *audience*.

        Raises
        ------
        ValueError
            If *audience* is empty.
        ResourceExhaustedError
            If the caller is rate-limited or too many challenges are outstanding.
        """
        caller = caller_id or "anonymous"
        try:
            challenge = self._challenge_issuer.issue_challenge(audience, caller_id=caller_id)
        except ResourceExhaustedError as exc:
            self._audit.log_challenge(audience, caller, issued=False, detail=exc.detail)
            raise
        self._audit.log_challenge(
            audience, caller, issued=True, expires_at=challenge.expires_at.isoformat()
        )
        return challenge

    def present_vp(
        self,
        vp: Union[VerifiablePresentation, Mapping[str, Any]],
        nonce: str,
    ) -> PresentationResult:
        """Verify *vp* and, on success, mint a capability token.

        Parameters
        ----------
        vp:
            The presentation, as a model or as parsed JSON.
        nonce:
            The nonce of the challenge being answered.

        Returns
        -------
        PresentationResult
            Either a token with the granted role and scopes, or the error
            kind and detail of the first failed check.
        """
        subject_id = _subject_of(vp)
        try:
            outcome = self._vp_verifier.verify(vp, nonce)
            token = self._capability_issuer.issue(
                subject_id=outcome.subject_id,
                granted_role=outcome.role,
                granted_scopes=outcome.scopes,
                audience=outcome.audience,
                key_thumbprint=outcome.key_thumbprint,
            )
        except TrustProtocolError as exc:
            if exc.retryable:
                logger.error("Presentation failed on infrastructure: %s", exc)
            else:
                logger.warning("Presentation rejected: %s", exc)
            self._audit.log_decision(
                subject_id, "", accepted=False, kind=exc.kind.value, detail=exc.detail
            )
            return PresentationResult.failure(exc)

        self._audit.log_decision(
            outcome.subject_id,
            outcome.audience,
            accepted=True,
            token_id=token.token_id,
            role=token.role.value,
            scopes=sorted(token.scopes),
        )
        return PresentationResult.success(token)

    def sweep_expired(self) -> int:
        """Evict expired outstanding challenges."""
        return self._challenge_issuer.sweep_expired()

    def close(self) -> None:
        self._vp_verifier.close()


def _subject_of(vp: Union[VerifiablePresentation, Mapping[str, Any]]) -> str:
    if isinstance(vp, VerifiablePresentation):
        return vp.subject_id
    if isinstance(vp, Mapping):
        pid = vp.get("pid", vp.get("subject_id"))
        if isinstance(pid, str):
            return pid[:512]
    return "-"


__all__ = ["PresentationResult", "VerifierService"]
