"""VPVerifier — validates a verifiable presentation against an issued challenge.

Checks run in a fixed order and stop at the first failure:

1. structure                → ``MalformedVP``
2. nonce redemption         → ``ChallengeInvalidOrReused``
3. possession proof         → ``PossessionProofInvalid``
4. credential-state lookup  → ``CredentialRevoked`` / ``CredentialExpired`` /
                              ``CredentialStateUnknown`` / ``OracleUnavailable``
5. policy cross-check       → ``PolicyMismatch``
6. disclosure proof         → ``DisclosureProofInvalid``

Cheap checks come before signature verification and the oracle call. The
nonce is consumed before any cryptographic work, so a presentation that
fails a later check has still spent its challenge.

The verifier keeps no state of its own; the registry it redeems nonces
from is shared with the challenge issuer.
"""
from __future__ import annotations

import concurrent.futures
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Protocol, Union

from pydantic import ValidationError

from agentic_did.challenge.registry import ChallengeRegistry
from agentic_did.config import Clock, VerifierConfig, utc_now
from agentic_did.credentials.models import DisclosedClaims, Role, VerifiablePresentation
from agentic_did.credentials.presentation import possession_message
from agentic_did.crypto import Ed25519KeyManager, b64url_decode, did_to_public_key, jwk_thumbprint
from agentic_did.disclosure.base import DisclosureProofVerifier
from agentic_did.errors import (
    ChallengeInvalidOrReusedError,
    CredentialExpiredError,
    CredentialRevokedError,
    CredentialStateUnknownError,
    DisclosureProofInvalidError,
    MalformedVPError,
    OracleUnavailableError,
    PolicyMismatchError,
    PossessionProofInvalidError,
)
from agentic_did.oracle.base import (
    CredentialPolicy,
    CredentialStateOracle,
    CredentialStatus,
    OracleResponse,
)

logger = logging.getLogger(__name__)

_ORACLE_WORKERS: int = 8


class SubjectKeyResolver(Protocol):
    """Maps a subject identifier to the raw public key bound to it."""

    def resolve(self, subject_id: str) -> bytes:
        """Return the raw Ed25519 public key; raise ValueError if unresolvable."""
        ...


class DIDKeyResolver:
    """Resolves ``did:key`` subject identifiers from the identifier itself."""

    def resolve(self, subject_id: str) -> bytes:
        return did_to_public_key(subject_id)


@dataclass(frozen=True)
class VerificationOutcome:
    """A successful verification.

    Parameters
    ----------
    subject_id:
        The verified subject identifier.
    role:
        The verified role (equal to the policy role).
    scopes:
        Disclosed scopes intersected with policy scopes.
    audience:
        Audience of the redeemed challenge.
    key_thumbprint:
        RFC 7638 thumbprint of the key that signed the possession proof.
    """

    subject_id: str
    role: Role
    scopes: frozenset[str]
    audience: str
    key_thumbprint: str

    def to_dict(self) -> dict[str, object]:
        """Serialize to a plain dictionary."""
        return {
            "subject_id": self.subject_id,
            "role": self.role.value,
            "scopes": sorted(self.scopes),
            "audience": self.audience,
            "key_thumbprint": self.key_thumbprint,
        }


class VPVerifier:
    """Runs the verification sequence for one presentation at a time.

    Parameters
    ----------
    registry:
        Registry of outstanding challenges.
    oracle:
        Credential-state oracle.
    disclosure_verifier:
        Selective-disclosure proof capability.
    config:
        Supplies the oracle timeout and scope strictness.
    clock:
        Source of the current UTC time.
    key_resolver:
        Resolves subject identifiers to keys (default: ``did:key``).

    Notes
    -----
    Safe to call from many threads at once. Oracle calls run on a small
    worker pool so that an unresponsive oracle costs at most
    ``config.oracle_timeout_seconds`` per request.
    """

    def __init__(
        self,
        registry: ChallengeRegistry,
        oracle: CredentialStateOracle,
        disclosure_verifier: DisclosureProofVerifier,
        config: Optional[VerifierConfig] = None,
        clock: Clock = utc_now,
        key_resolver: Optional[SubjectKeyResolver] = None,
    ) -> None:
        self._registry = registry
        self._oracle = oracle
        self._disclosure_verifier = disclosure_verifier
        self._config = config or VerifierConfig()
        self._clock = clock
        self._key_resolver = key_resolver or DIDKeyResolver()
        self._key_manager = Ed25519KeyManager()
        self._executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=_ORACLE_WORKERS, thread_name_prefix="oracle-lookup"
        )

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def verify(
        self,
        vp: Union[VerifiablePresentation, Mapping[str, Any]],
        nonce: str,
    ) -> VerificationOutcome:
        """Verify *vp* against the challenge identified by *nonce*.

        Parameters
        ----------
        vp:
            The presentation, as a model or as a parsed JSON mapping.
        nonce:
            The nonce of the challenge the presentation answers.

        Returns
        -------
        VerificationOutcome

        Raises
        ------
        TrustProtocolError
            The first failed check, as the subclass for its error kind.
        """
        presentation = self._check_structure(vp, nonce)

        challenge = self._registry.consume(nonce, self._clock())
        if challenge is None:
            raise ChallengeInvalidOrReusedError("challenge is unknown, expired, or already used")

        public_key = self._check_possession(
            presentation, nonce, challenge.audience, challenge.expires_at_epoch
        )

        response = self._lookup_state(presentation)
        policy = self._check_state(response)

        granted = self._check_policy(presentation.disclosed, policy)

        self._check_disclosure(presentation, nonce, challenge.audience)

        outcome = VerificationOutcome(
            subject_id=presentation.subject_id,
            role=policy.role,
            scopes=granted,
            audience=challenge.audience,
            key_thumbprint=jwk_thumbprint(public_key),
        )
        logger.info(
            "Presentation verified: role=%s scopes=%s audience=%s",
            outcome.role.value,
            sorted(outcome.scopes),
            outcome.audience,
        )
        return outcome

    def close(self) -> None:
        """Release the oracle worker pool."""
        self._executor.shutdown(wait=False)

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _check_structure(
        self,
        vp: Union[VerifiablePresentation, Mapping[str, Any]],
        nonce: str,
    ) -> VerifiablePresentation:
        if not isinstance(nonce, str) or not nonce:
            raise MalformedVPError("nonce is required")
        if isinstance(vp, VerifiablePresentation):
            return vp
        try:
            return VerifiablePresentation.model_validate(vp)
        except ValidationError as exc:
            fields = sorted({".".join(str(p) for p in err["loc"]) for err in exc.errors()})
            raise MalformedVPError(f"invalid or missing fields: {', '.join(fields)}") from exc

    def _check_possession(
        self,
        presentation: VerifiablePresentation,
        nonce: str,
        audience: str,
        expires_at_epoch: int,
    ) -> bytes:
        try:
            public_key = self._key_resolver.resolve(presentation.subject_id)
        except ValueError as exc:
            raise PossessionProofInvalidError(f"cannot resolve subject key: {exc}") from exc
        try:
            signature = b64url_decode(presentation.possession_proof)
        except ValueError as exc:
            raise PossessionProofInvalidError("possession proof is not base64url") from exc

        message = possession_message(nonce, audience, expires_at_epoch)
        if not self._key_manager.verify(public_key, signature, message):
            raise PossessionProofInvalidError(
                "signature does not match the challenge for this subject"
            )
        return public_key

    def _lookup_state(self, presentation: VerifiablePresentation) -> OracleResponse:
        receipt = presentation.receipt
        timeout = self._config.oracle_timeout_seconds
        future = self._executor.submit(self._oracle.lookup, receipt.cred_hash, receipt.attestation)
        try:
            response = future.result(timeout=timeout)
        except concurrent.futures.TimeoutError as exc:
            future.cancel()
            logger.error("Credential-state oracle did not answer within %.1fs", timeout)
            raise OracleUnavailableError(f"oracle did not answer within {timeout}s") from exc
        except OracleUnavailableError:
            raise
        except Exception as exc:
            logger.error("Credential-state oracle failed: %s", exc)
            raise OracleUnavailableError(f"oracle failed: {exc}") from exc

        if not isinstance(response, OracleResponse):
            raise OracleUnavailableError("oracle returned an unexpected response type")
        return response

    def _check_state(self, response: OracleResponse) -> CredentialPolicy:
        if response.status == CredentialStatus.REVOKED:
            raise CredentialRevokedError("credential has been revoked")
        if response.status == CredentialStatus.EXPIRED:
            raise CredentialExpiredError("credential has expired")
        if response.status != CredentialStatus.VALID:
            raise CredentialStateUnknownError("oracle has no record of this credential")
        if response.policy is None:
            logger.warning("SECURITY: oracle reported a valid credential without a policy")
            raise PolicyMismatchError("oracle returned no policy for this credential")
        return response.policy

    def _check_policy(
        self,
        disclosed: DisclosedClaims,
        policy: CredentialPolicy,
    ) -> frozenset[str]:
        if disclosed.role != policy.role:
            logger.warning(
                "SECURITY: disclosed role %s does not match policy role %s",
                disclosed.role.value,
                policy.role.value,
            )
            raise PolicyMismatchError(
                f"disclosed role {disclosed.role.value!r} does not match policy"
            )

        extra = disclosed.scopes - policy.scopes
        if extra:
            logger.warning("SECURITY: disclosed scopes outside policy: %s", sorted(extra))
            if self._config.strict_scopes:
                raise PolicyMismatchError(f"disclosed scopes not in policy: {sorted(extra)}")

        granted = disclosed.scopes & policy.scopes
        if disclosed.scopes and not granted:
            raise PolicyMismatchError("no disclosed scope is granted by policy")
        return granted

    def _check_disclosure(
        self,
        presentation: VerifiablePresentation,
        nonce: str,
        audience: str,
    ) -> None:
        if not presentation.disclosure_proof:
            raise DisclosureProofInvalidError("disclosure proof is missing")
        try:
            valid = self._disclosure_verifier.verify(
                presentation.disclosure_proof,
                cred_hash=presentation.receipt.cred_hash,
                subject_id=presentation.subject_id,
                disclosed=presentation.disclosed,
                nonce=nonce,
                audience=audience,
            )
        except Exception as exc:
            logger.error("Disclosure proof verifier raised: %s", exc)
            raise DisclosureProofInvalidError(
                f"disclosure proof could not be verified: {exc}"
            ) from exc
        if not valid:
            raise DisclosureProofInvalidError("disclosure proof does not match disclosed claims")


__all__ = ["DIDKeyResolver", "SubjectKeyResolver", "VPVerifier", "VerificationOutcome"]
