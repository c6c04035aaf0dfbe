"""VerifierConfig — explicit configuration for the trust-protocol components.

Components receive a :class:`VerifierConfig` (and a clock) through their
constructors; nothing in the protocol path reads process state. The
environment is read only by :meth:`VerifierConfig.from_env`, which the CLI
and HTTP server call once at start-up.

Environment variables
---------------------
``ISSUER``                  capability-token issuer identifier
``TOKEN_TTL_SECONDS``       capability-token lifetime
``NONCE_TTL_SECONDS``       challenge lifetime
``ORACLE_TIMEOUT_SECONDS``  deadline for one credential-state lookup
``STRICT_SCOPES``           ``1``/``true`` rejects any disclosed scope outside policy
``RATE_LIMIT_PER_MINUTE``   challenges per caller per minute (``0`` disables)
"""
from __future__ import annotations

import datetime
import os
from dataclasses import dataclass
from typing import Callable, Mapping, Optional

Clock = Callable[[], datetime.datetime]

DEFAULT_ISSUER: str = "https://agenticdid.io"
MAX_TOKEN_TTL_SECONDS: int = 600
MIN_NONCE_TTL_SECONDS: int = 1
MAX_NONCE_TTL_SECONDS: int = 300


def utc_now() -> datetime.datetime:
    """Default clock: the current UTC time."""
    return datetime.datetime.now(datetime.timezone.utc)


@dataclass(frozen=True)
class VerifierConfig:
    """Immutable protocol configuration.

    Parameters
    ----------
    issuer:
        Identifier placed in the ``iss`` claim of capability tokens.
    token_ttl_seconds:
        Fixed capability-token lifetime (1 to 600 seconds).
    nonce_ttl_seconds:
        Challenge lifetime (1 to 300 seconds).
    oracle_timeout_seconds:
        Deadline for a single credential-state lookup.
    strict_scopes:
        When True, any disclosed scope absent from the oracle policy fails
        with ``PolicyMismatch``. When False, such scopes are dropped and
        only the intersection is granted.
    rate_limit_per_minute:
        Challenges a single caller may obtain per minute. ``0`` disables
        rate limiting.
    rate_limit_burst:
        Token-bucket capacity for the per-caller limiter.
    max_outstanding_challenges:
        Upper bound on unredeemed challenges held in the registry.
    """

    issuer: str = DEFAULT_ISSUER
    token_ttl_seconds: int = 120
    nonce_ttl_seconds: int = 120
    oracle_timeout_seconds: float = 2.0
    strict_scopes: bool = False
    rate_limit_per_minute: int = 60
    rate_limit_burst: int = 20
    max_outstanding_challenges: int = 10_000

    def __post_init__(self) -> None:
        if not self.issuer:
            raise ValueError("issuer must not be empty.")
        if not 1 <= self.token_ttl_seconds <= MAX_TOKEN_TTL_SECONDS:
            raise ValueError(
                f"token_ttl_seconds must be between 1 and {MAX_TOKEN_TTL_SECONDS}, "
                f"got {self.token_ttl_seconds}"
            )
        if not MIN_NONCE_TTL_SECONDS <= self.nonce_ttl_seconds <= MAX_NONCE_TTL_SECONDS:
            raise ValueError(
                f"nonce_ttl_seconds must be between {MIN_NONCE_TTL_SECONDS} and "
                f"{MAX_NONCE_TTL_SECONDS}, got {self.nonce_ttl_seconds}"
            )
        if self.oracle_timeout_seconds <= 0:
            raise ValueError("oracle_timeout_seconds must be positive.")
        if self.rate_limit_per_minute < 0:
            raise ValueError("rate_limit_per_minute must not be negative.")
        if self.rate_limit_burst < 1:
            raise ValueError("rate_limit_burst must be at least 1.")
        if self.max_outstanding_challenges < 1:
            raise ValueError("max_outstanding_challenges must be at least 1.")

    @property
    def token_ttl(self) -> datetime.timedelta:
        return datetime.timedelta(seconds=self.token_ttl_seconds)

    @property
    def nonce_ttl(self) -> datetime.timedelta:
        return datetime.timedelta(seconds=self.nonce_ttl_seconds)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "VerifierConfig":
        """Build a config from environment variables, falling back to defaults.

        Parameters
        ----------
        environ:
            Mapping to read from. Defaults to ``os.environ``.

        Raises
        ------
        ValueError
            If a variable is present but cannot be parsed or is out of range.
        """
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            issuer=env.get("ISSUER", defaults.issuer),
            token_ttl_seconds=int(env.get("TOKEN_TTL_SECONDS", defaults.token_ttl_seconds)),
            nonce_ttl_seconds=int(env.get("NONCE_TTL_SECONDS", defaults.nonce_ttl_seconds)),
            oracle_timeout_seconds=float(
                env.get("ORACLE_TIMEOUT_SECONDS", defaults.oracle_timeout_seconds)
            ),
            strict_scopes=_parse_bool(env.get("STRICT_SCOPES"), defaults.strict_scopes),
            rate_limit_per_minute=int(
                env.get("RATE_LIMIT_PER_MINUTE", defaults.rate_limit_per_minute)
            ),
        )


def _parse_bool(raw: Optional[str], default: bool) -> bool:
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


__all__ = ["Clock", "DEFAULT_ISSUER", "VerifierConfig", "utc_now"]
