"""AgentCredential — the credential an agent holds privately.

A credential commits to its claims as salted digests, one per claim: the
role is one claim and every scope is its own claim, so scopes can be
revealed individually. The credential hash is the content hash of the
holder's pid together with the sorted digest list; that is the value the
credential-state oracle keys its records on.

Revealing a claim means revealing its ``(salt, name, value)`` triple. A
verifier recomputes the digest and checks it is one of the committed ones;
unrevealed claims stay hidden behind their digests.
"""
from __future__ import annotations

import datetime
import secrets
from dataclasses import dataclass, field
from typing import Iterable, Optional

from agentic_did.config import Clock, utc_now
from agentic_did.credentials.models import DisclosedClaims, Role
from agentic_did.crypto import (
    Ed25519KeyManager,
    canonical_json,
    content_hash,
    jwk_thumbprint,
    public_key_to_did,
)

ROLE_CLAIM: str = "role"
SCOPE_CLAIM: str = "scope"

DEFAULT_CREDENTIAL_TTL_SECONDS: int = 365 * 24 * 60 * 60

Disclosure = tuple[str, str, str]


def disclosure_digest(disclosure: Disclosure) -> str:
    """Return the committed digest of a ``(salt, name, value)`` disclosure."""
    salt, name, value = disclosure
    return content_hash(canonical_json([salt, name, value]))


def compute_credential_hash(pid: str, digests: Iterable[str]) -> str:
    """Return the content hash identifying a credential.

    Parameters
    ----------
    pid:
        The holder's subject identifier.
    digests:
        All committed claim digests. Order does not matter.
    """
    return content_hash(canonical_json({"pid": pid, "digests": sorted(digests)}))


@dataclass(frozen=True)
class AgentCredential:
    """A held credential: role, scopes, holder key material and commitment.

    Parameters
    ----------
    pid:
        Privacy-preserving subject identifier (``did:key`` of the holder key).
    role:
        The role the credential entitles the holder to.
    scopes:
        Sorted tuple of scope strings.
    private_key:
        32-byte raw Ed25519 holder private key.
    public_key:
        32-byte raw Ed25519 holder public key.
    disclosures:
        Salted ``(salt, name, value)`` triples, one per claim.
    cred_hash:
        Content hash over ``pid`` and the claim digests.
    issued_at:
        UTC issuance time.
    expires_at:
        UTC expiry time.
    """

    pid: str
    role: Role
    scopes: tuple[str, ...]
    private_key: bytes = field(repr=False)
    public_key: bytes
    disclosures: tuple[Disclosure, ...] = field(repr=False)
    cred_hash: str
    issued_at: datetime.datetime
    expires_at: datetime.datetime

    @classmethod
    def create(
        cls,
        role: Role | str,
        scopes: Iterable[str],
        ttl_seconds: int = DEFAULT_CREDENTIAL_TTL_SECONDS,
        clock: Clock = utc_now,
        key_manager: Optional[Ed25519KeyManager] = None,
    ) -> "AgentCredential":
        """Create a credential with a fresh holder keypair.

        Parameters
        ----------
        role:
            The credential role.
        scopes:
            Scope strings granted by the credential.
        ttl_seconds:
            Lifetime from now (default one year).
        clock:
            Source of the current UTC time.
        key_manager:
            Optional key manager; a default one is used otherwise.

        Returns
        -------
        AgentCredential
        """
        manager = key_manager or Ed25519KeyManager()
        private_key, public_key = manager.generate_keypair()
        pid = public_key_to_did(public_key)
        role = Role(role)
        scope_tuple = tuple(sorted(set(scopes)))

        disclosures: list[Disclosure] = [(secrets.token_urlsafe(16), ROLE_CLAIM, role.value)]
        disclosures.extend(
            (secrets.token_urlsafe(16), SCOPE_CLAIM, scope) for scope in scope_tuple
        )

        now = clock()
        return cls(
            pid=pid,
            role=role,
            scopes=scope_tuple,
            private_key=private_key,
            public_key=public_key,
            disclosures=tuple(disclosures),
            cred_hash=compute_credential_hash(pid, (disclosure_digest(d) for d in disclosures)),
            issued_at=now,
            expires_at=now + datetime.timedelta(seconds=ttl_seconds),
        )

    @property
    def digests(self) -> list[str]:
        """Sorted committed digests of every claim."""
        return sorted(disclosure_digest(d) for d in self.disclosures)

    @property
    def key_thumbprint(self) -> str:
        """RFC 7638 thumbprint of the holder public key."""
        return jwk_thumbprint(self.public_key)

    def full_claims(self) -> DisclosedClaims:
        """Return every claim of this credential as a disclosure set."""
        return DisclosedClaims(role=self.role, scopes=frozenset(self.scopes))

    def disclosures_for(self, disclosed: DisclosedClaims) -> list[Disclosure]:
        """Select the salted disclosures that reveal exactly *disclosed*.

        Raises
        ------
        ValueError
            If *disclosed* names a role or scope this credential does not hold.
        """
        if disclosed.role != self.role:
            raise ValueError(
                f"Credential role is {self.role.value!r}, cannot disclose {disclosed.role.value!r}"
            )
        missing = disclosed.scopes - set(self.scopes)
        if missing:
            raise ValueError(f"Credential does not hold scopes: {sorted(missing)}")
        return [
            d
            for d in self.disclosures
            if d[1] == ROLE_CLAIM or (d[1] == SCOPE_CLAIM and d[2] in disclosed.scopes)
        ]

    def is_expired(self, now: Optional[datetime.datetime] = None) -> bool:
        """Return True when the credential has passed its expiry time."""
        current = now or utc_now()
        return current > self.expires_at

    def __repr__(self) -> str:
        return (
            f"AgentCredential(pid={self.pid!r}, role={self.role.value!r}, "
            f"scopes={list(self.scopes)!r}, expires_at={self.expires_at.isoformat()!r})"
        )


__all__ = [
    "AgentCredential",
    "DEFAULT_CREDENTIAL_TTL_SECONDS",
    "Disclosure",
    "ROLE_CLAIM",
    "SCOPE_CLAIM",
    "compute_credential_hash",
    "disclosure_digest",
]
