"""ChallengeIssuer — mints single-use nonces bound to an audience."""
from __future__ import annotations

import logging
import secrets
from typing import Optional

from agentic_did.challenge.rate_limit import RateLimiter
from agentic_did.challenge.registry import Challenge, ChallengeRegistry, RegistryFullError
from agentic_did.config import Clock, VerifierConfig, utc_now
from agentic_did.errors import ResourceExhaustedError

logger = logging.getLogger(__name__)

# 32 random bytes -> 256 bits of entropy
_NONCE_BYTES: int = 32
_MAX_AUDIENCE_LENGTH: int = 512


class ChallengeIssuer:
    """Issues challenges and records them in a :class:`ChallengeRegistry`.

    Parameters
    ----------
    registry:
        Registry of outstanding challenges, shared with the VP verifier.
    config:
        Supplies the nonce TTL and rate-limit settings.
    clock:
        Source of the current UTC time.
    rate_limiter:
        Optional explicit limiter. When omitted, one is built from
        ``config.rate_limit_per_minute`` (``0`` disables limiting).
    """

    def __init__(
        self,
        registry: ChallengeRegistry,
        config: Optional[VerifierConfig] = None,
        clock: Clock = utc_now,
        rate_limiter: Optional[RateLimiter] = None,
    ) -> None:
        self._registry = registry
        self._config = config or VerifierConfig()
        self._clock = clock
        if rate_limiter is None and self._config.rate_limit_per_minute > 0:
            rate_limiter = RateLimiter(
                per_minute=self._config.rate_limit_per_minute,
                burst=self._config.rate_limit_burst,
            )
        self._rate_limiter = rate_limiter

    def issue_challenge(self, audience: str, caller_id: Optional[str] = None) -> Challenge:
        """Create and record a challenge for *audience*.

        Parameters
        ----------
        audience:
            Identifier of the resource the presentation will be for.
        caller_id:
            Optional caller identity used for rate limiting. Callers that
            do not identify themselves share one anonymous bucket.

        Returns
        -------
        Challenge

        Raises
        ------
        ValueError
            If *audience* is empty or too long.
        ResourceExhaustedError
            If the caller is rate-limited or the registry is full.
        """
        if not audience or not audience.strip():
            raise ValueError("audience must not be empty.")
        if len(audience) > _MAX_AUDIENCE_LENGTH:
            raise ValueError(f"audience must be at most {_MAX_AUDIENCE_LENGTH} characters.")

        if self._rate_limiter is not None and not self._rate_limiter.allow(caller_id or "anonymous"):
            logger.warning("Challenge rate limit exceeded for caller=%s", caller_id or "anonymous")
            raise ResourceExhaustedError(
                f"Too many challenge requests for caller {caller_id or 'anonymous'!r}"
            )

        now = self._clock()
        challenge = Challenge(
            nonce=secrets.token_urlsafe(_NONCE_BYTES),
            audience=audience,
            issued_at=now,
            expires_at=now + self._config.nonce_ttl,
        )
        try:
            self._registry.add(challenge, now)
        except RegistryFullError as exc:
            logger.error("Challenge registry full: %s", exc)
            raise ResourceExhaustedError(str(exc)) from exc

        logger.info(
            "Issued challenge for audience=%s expiring at %s",
            audience,
            challenge.expires_at.isoformat(),
        )
        return challenge

    def sweep_expired(self) -> int:
        """Evict expired challenges from the registry; returns the count removed.

        Idle rate-limit buckets are pruned on the same pass.
        """
        if self._rate_limiter is not None:
            self._rate_limiter.prune()
        return self._registry.sweep(self._clock())


__all__ = ["ChallengeIssuer"]
