"""CapabilityIssuer — mints capability tokens after a successful verification."""
from __future__ import annotations

import datetime
import logging
import uuid
from typing import Iterable, Optional

from agentic_did.capability.token import HEADER_B64, CapabilityToken, build_claims
from agentic_did.config import Clock, VerifierConfig, utc_now
from agentic_did.credentials.models import Role
from agentic_did.crypto import (
    Ed25519KeyManager,
    b64url_encode,
    canonical_json,
    jwk_from_public_key,
    jwk_thumbprint,
)
from agentic_did.errors import IssuanceFailedError

logger = logging.getLogger(__name__)


class CapabilityIssuer:
    """Owns the token-signing key and issues signed capability tokens.

    Parameters
    ----------
    config:
        Supplies the issuer identifier and the fixed token TTL.
    signing_key:
        Optional 32-byte raw Ed25519 private key. A fresh key is generated
        when omitted.
    clock:
        Source of the current UTC time.
    key_manager:
        Optional key manager (injectable for failure tests).
    """

    def __init__(
        self,
        config: Optional[VerifierConfig] = None,
        signing_key: Optional[bytes] = None,
        clock: Clock = utc_now,
        key_manager: Optional[Ed25519KeyManager] = None,
    ) -> None:
        self._config = config or VerifierConfig()
        self._clock = clock
        self._key_manager = key_manager or Ed25519KeyManager()
        if signing_key is None:
            signing_key, public_key = self._key_manager.generate_keypair()
        else:
            public_key = self._key_manager.public_key_for(signing_key)
        self._signing_key = signing_key
        self._public_key = public_key
        self._key_id = jwk_thumbprint(public_key)

    @property
    def issuer(self) -> str:
        return self._config.issuer

    @property
    def public_key(self) -> bytes:
        """Raw Ed25519 key that verifies tokens from this issuer."""
        return self._public_key

    def public_jwk(self) -> dict[str, str]:
        """Return the verification key as a JWK, ``kid`` set to its thumbprint."""
        jwk = jwk_from_public_key(self._public_key, kid=self._key_id)
        jwk["use"] = "sig"
        jwk["alg"] = "EdDSA"
        return jwk

    def issue(
        self,
        subject_id: str,
        granted_role: Role,
        granted_scopes: Iterable[str],
        audience: str,
        key_thumbprint: str,
    ) -> CapabilityToken:
        """Sign a capability token for exactly *granted_scopes*.

        Parameters
        ----------
        subject_id:
            The verified subject identifier.
        granted_role:
            The verified role.
        granted_scopes:
            The scopes to grant; nothing beyond these is ever added.
        audience:
            The resource the token is valid for.
        key_thumbprint:
            Thumbprint of the key that proved possession.

        Returns
        -------
        CapabilityToken

        Raises
        ------
        IssuanceFailedError
            If the token cannot be signed. No token is returned in that case.
        """
        if not subject_id or not audience or not key_thumbprint:
            raise IssuanceFailedError("subject, audience and key binding are required")

        issued_at = self._clock().replace(microsecond=0)
        expires_at = issued_at + datetime.timedelta(seconds=self._config.token_ttl_seconds)
        token_id = str(uuid.uuid4())
        scopes = frozenset(granted_scopes)
        role = Role(granted_role)

        claims = build_claims(
            token_id=token_id,
            issuer=self._config.issuer,
            subject=subject_id,
            audience=audience,
            role=role,
            scopes=scopes,
            issued_at=issued_at,
            expires_at=expires_at,
            key_binding=key_thumbprint,
        )
        signing_input = f"{HEADER_B64}.{b64url_encode(canonical_json(claims))}"
        try:
            signature = self._key_manager.sign(self._signing_key, signing_input.encode("ascii"))
        except Exception as exc:
            logger.error("Capability token signing failed: %s", exc)
            raise IssuanceFailedError(f"token signing failed: {exc}") from exc

        token = CapabilityToken(
            token_id=token_id,
            issuer=self._config.issuer,
            subject=subject_id,
            audience=audience,
            role=role,
            scopes=scopes,
            issued_at=issued_at,
            expires_at=expires_at,
            key_binding=key_thumbprint,
            encoded=f"{signing_input}.{b64url_encode(signature)}",
        )
        logger.info(
            "Issued capability %s for audience=%s scopes=%s ttl=%ds",
            token_id,
            audience,
            sorted(scopes),
            self._config.token_ttl_seconds,
        )
        return token


__all__ = ["CapabilityIssuer"]
