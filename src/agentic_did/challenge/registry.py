"""Challenge and ChallengeRegistry — single-use, time-bounded nonces.

The registry is the only shared mutable state in the protocol. Redemption
is a single ``dict.pop`` performed under the registry lock, so when many
threads race to redeem the same nonce exactly one receives the challenge
and every other caller receives ``None``.

Expired entries are evicted lazily when a redemption finds them and in
bulk by :meth:`ChallengeRegistry.sweep`. Eviction never raises.
"""
from __future__ import annotations

import datetime
import logging
import threading
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Challenge:
    """A nonce bound to an audience and an expiry.

    Parameters
    ----------
    nonce:
        Unpredictable random token (URL-safe string).
    audience:
        Identifier of the verifier or resource the challenge is for.
    issued_at:
        UTC issuance time.
    expires_at:
        UTC expiry time; always later than ``issued_at``.
    """

    nonce: str
    audience: str
    issued_at: datetime.datetime
    expires_at: datetime.datetime

    def __post_init__(self) -> None:
        if self.expires_at <= self.issued_at:
            raise ValueError("Challenge expires_at must be later than issued_at.")

    def is_expired(self, now: datetime.datetime) -> bool:
        """Return True when *now* is at or past the expiry time."""
        return now >= self.expires_at

    @property
    def expires_at_epoch(self) -> int:
        """Expiry as integer UNIX seconds, the form signed in possession proofs."""
        return int(self.expires_at.timestamp())

    def to_dict(self) -> dict[str, object]:
        """Serialize to a plain dictionary."""
        return {
            "nonce": self.nonce,
            "audience": self.audience,
            "issued_at": self.issued_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
            "exp": self.expires_at_epoch,
        }


class RegistryFullError(Exception):
    """Raised when the registry holds its maximum number of outstanding challenges."""

    def __init__(self, capacity: int) -> None:
        self.capacity = capacity
        super().__init__(f"Challenge registry is full ({capacity} outstanding)")


class ChallengeRegistry:
    """Thread-safe store of outstanding challenges keyed by nonce.

    Parameters
    ----------
    max_outstanding:
        Optional bound on stored challenges. When the bound is reached, an
        expiry sweep is attempted before :class:`RegistryFullError` is raised.
    """

    def __init__(self, max_outstanding: Optional[int] = None) -> None:
        self._outstanding: dict[str, Challenge] = {}
        self._lock = threading.Lock()
        self._max_outstanding = max_outstanding

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add(self, challenge: Challenge, now: datetime.datetime) -> None:
        """Record *challenge* as outstanding.

        Raises
        ------
        ValueError
            If the nonce is already outstanding.
        RegistryFullError
            If the registry is at capacity even after evicting expired entries.
        """
        with self._lock:
            if challenge.nonce in self._outstanding:
                raise ValueError("Nonce is already outstanding.")
            if (
                self._max_outstanding is not None
                and len(self._outstanding) >= self._max_outstanding
            ):
                self._evict_expired_locked(now)
                if len(self._outstanding) >= self._max_outstanding:
                    raise RegistryFullError(self._max_outstanding)
            self._outstanding[challenge.nonce] = challenge

    def consume(self, nonce: str, now: datetime.datetime) -> Optional[Challenge]:
        """Atomically redeem *nonce*.

        The entry is removed whether or not it has expired, so a nonce can
        never be redeemed twice.

        Returns
        -------
        Challenge or None
            The challenge when the nonce was outstanding and unexpired;
            ``None`` when it was unknown, already redeemed, or expired.
        """
        with self._lock:
            challenge = self._outstanding.pop(nonce, None)
        if challenge is None:
            return None
        if challenge.is_expired(now):
            logger.debug("Evicted expired challenge on redemption (audience=%s)", challenge.audience)
            return None
        return challenge

    def sweep(self, now: datetime.datetime) -> int:
        """Remove all expired challenges.

        Returns
        -------
        int
            Number of challenges removed.
        """
        with self._lock:
            removed = self._evict_expired_locked(now)
        if removed:
            logger.debug("Challenge sweep removed %d expired entries", removed)
        return removed

    def clear(self) -> None:
        """Remove every outstanding challenge."""
        with self._lock:
            self._outstanding.clear()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        with self._lock:
            return len(self._outstanding)

    def __contains__(self, nonce: object) -> bool:
        with self._lock:
            return nonce in self._outstanding

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _evict_expired_locked(self, now: datetime.datetime) -> int:
        """Remove expired entries (caller must hold the lock)."""
        expired = [n for n, c in self._outstanding.items() if c.is_expired(now)]
        for nonce in expired:
            del self._outstanding[nonce]
        return len(expired)


__all__ = ["Challenge", "ChallengeRegistry", "RegistryFullError"]
