"""Resource-side checks for capability tokens.

A resource server verifies a token with the issuer's public key alone:
format, signature, issuer, audience, expiry and, when the presenter's key
is known, the key binding. :func:`has_scope` and
:meth:`CapabilityTokenVerifier.authorize` then decide whether a particular
action is allowed.
"""
from __future__ import annotations

import hmac
import logging
from typing import Iterable, Optional

from agentic_did.capability.token import (
    AudienceMismatchError,
    CapabilityToken,
    InsufficientScopeError,
    KeyBindingMismatchError,
    TokenExpiredError,
    TokenInvalidError,
    TokenTamperedError,
    split_token,
    token_from_claims,
)
from agentic_did.config import Clock, utc_now
from agentic_did.credentials.models import Role
from agentic_did.crypto import Ed25519KeyManager

logger = logging.getLogger(__name__)

WILDCARD_SCOPE: str = "*"


def has_scope(scopes: Iterable[str], required: str) -> bool:
    """Return True when *scopes* grants *required* exactly or via ``*``."""
    granted = set(scopes)
    return required in granted or WILDCARD_SCOPE in granted


class CapabilityTokenVerifier:
    """Verifies capability tokens from one issuer.

    Parameters
    ----------
    issuer_public_key:
        Raw Ed25519 public key of the capability issuer.
    issuer:
        Expected ``iss`` claim.
    clock:
        Source of the current UTC time.
    """

    def __init__(self, issuer_public_key: bytes, issuer: str, clock: Clock = utc_now) -> None:
        self._public_key = issuer_public_key
        self._issuer = issuer
        self._clock = clock
        self._key_manager = Ed25519KeyManager()

    def verify(
        self,
        encoded: str,
        audience: str,
        presenter_thumbprint: Optional[str] = None,
    ) -> CapabilityToken:
        """Verify *encoded* and return the decoded token.

        Parameters
        ----------
        encoded:
            The compact token string.
        audience:
            The resource performing the check.
        presenter_thumbprint:
            Thumbprint of the key the presenter proved possession of. When
            given, it must equal the token's ``cnf.jkt``.

        Raises
        ------
        TokenInvalidError
            Bad format or claims, or a foreign issuer.
        TokenTamperedError
            Signature verification failed.
        TokenExpiredError
            The token has expired.
        AudienceMismatchError
            The token was issued for another resource.
        KeyBindingMismatchError
            The presenter holds a different key.
        """
        signing_input, _, signature, claims = split_token(encoded)
        if not self._key_manager.verify(self._public_key, signature, signing_input.encode("ascii")):
            raise TokenTamperedError()

        token = token_from_claims(claims, encoded)
        if token.issuer != self._issuer:
            raise TokenInvalidError(f"unexpected issuer {token.issuer!r}")
        if token.is_expired(self._clock()):
            raise TokenExpiredError(token.token_id, token.expires_at)
        if token.audience != audience:
            raise AudienceMismatchError(expected=audience, actual=token.audience)
        if presenter_thumbprint is not None and not hmac.compare_digest(
            token.key_binding, presenter_thumbprint
        ):
            logger.warning("Capability %s presented with a different key", token.token_id)
            raise KeyBindingMismatchError()
        return token

    def authorize(
        self,
        token: CapabilityToken,
        required_scope: str,
        required_role: Optional[Role | str] = None,
    ) -> None:
        """Check that *token* permits an action.

        Raises
        ------
        InsufficientScopeError
            If the role differs from *required_role* or the scope is not granted.
        """
        if required_role is not None and token.role != Role(required_role):
            raise InsufficientScopeError(f"role:{Role(required_role).value}")
        if not has_scope(token.scopes, required_scope):
            raise InsufficientScopeError(required_scope)


__all__ = ["CapabilityTokenVerifier", "WILDCARD_SCOPE", "has_scope"]
