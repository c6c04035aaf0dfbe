"""Tests for agentic_did.challenge — registry, rate limiter and issuer."""
from __future__ import annotations

import datetime
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from agentic_did.challenge import (
    Challenge,
    ChallengeIssuer,
    ChallengeRegistry,
    RateLimiter,
    RegistryFullError,
    TokenBucket,
)
from agentic_did.config import VerifierConfig
from agentic_did.errors import ErrorKind, ResourceExhaustedError

NOW = datetime.datetime(2026, 1, 1, 12, 0, 0, tzinfo=datetime.timezone.utc)


def make_challenge(nonce: str = "n1", ttl: int = 120) -> Challenge:
    return Challenge(
        nonce=nonce,
        audience="bank.example",
        issued_at=NOW,
        expires_at=NOW + datetime.timedelta(seconds=ttl),
    )


class FakeMonotonic:
    def __init__(self) -> None:
        self.value = 0.0

    def __call__(self) -> float:
        return self.value


# ---------------------------------------------------------------------------
# Challenge
# ---------------------------------------------------------------------------


class TestChallenge:
    def test_expiry_must_follow_issue_time(self) -> None:
        with pytest.raises(ValueError):
            Challenge(nonce="n", audience="a", issued_at=NOW, expires_at=NOW)

    def test_expired_at_exact_expiry(self) -> None:
        challenge = make_challenge(ttl=10)
        assert not challenge.is_expired(NOW + datetime.timedelta(seconds=9))
        assert challenge.is_expired(NOW + datetime.timedelta(seconds=10))

    def test_to_dict(self) -> None:
        data = make_challenge().to_dict()
        assert data["nonce"] == "n1"
        assert data["audience"] == "bank.example"
        assert data["exp"] == int((NOW + datetime.timedelta(seconds=120)).timestamp())


# ---------------------------------------------------------------------------
# ChallengeRegistry
# ---------------------------------------------------------------------------


class TestChallengeRegistry:
    def test_consume_returns_challenge_once(self) -> None:
        registry = ChallengeRegistry()
        challenge = make_challenge()
        registry.add(challenge, NOW)
        assert registry.consume("n1", NOW) == challenge
        assert registry.consume("n1", NOW) is None

    def test_consume_unknown_nonce(self) -> None:
        assert ChallengeRegistry().consume("missing", NOW) is None

    def test_consume_expired_returns_none_and_evicts(self) -> None:
        registry = ChallengeRegistry()
        registry.add(make_challenge(ttl=5), NOW)
        assert registry.consume("n1", NOW + datetime.timedelta(seconds=5)) is None
        assert "n1" not in registry

    def test_duplicate_nonce_rejected(self) -> None:
        registry = ChallengeRegistry()
        registry.add(make_challenge(), NOW)
        with pytest.raises(ValueError):
            registry.add(make_challenge(), NOW)

    def test_sweep_removes_only_expired(self) -> None:
        registry = ChallengeRegistry()
        registry.add(make_challenge("short", ttl=5), NOW)
        registry.add(make_challenge("long", ttl=100), NOW)
        removed = registry.sweep(NOW + datetime.timedelta(seconds=10))
        assert removed == 1
        assert len(registry) == 1
        assert "long" in registry

    def test_capacity_enforced(self) -> None:
        registry = ChallengeRegistry(max_outstanding=2)
        registry.add(make_challenge("a"), NOW)
        registry.add(make_challenge("b"), NOW)
        with pytest.raises(RegistryFullError):
            registry.add(make_challenge("c"), NOW)

    def test_capacity_reclaimed_from_expired_entries(self) -> None:
        registry = ChallengeRegistry(max_outstanding=1)
        registry.add(make_challenge("a", ttl=5), NOW)
        later = NOW + datetime.timedelta(seconds=6)
        registry.add(
            Challenge(
                nonce="b",
                audience="x",
                issued_at=later,
                expires_at=later + datetime.timedelta(seconds=5),
            ),
            later,
        )
        assert len(registry) == 1
        assert "b" in registry

    def test_concurrent_consume_has_exactly_one_winner(self) -> None:
        registry = ChallengeRegistry()
        registry.add(make_challenge(), NOW)
        barrier = threading.Barrier(32)

        def redeem() -> bool:
            barrier.wait()
            return registry.consume("n1", NOW) is not None

        with ThreadPoolExecutor(max_workers=32) as pool:
            results = list(pool.map(lambda _: redeem(), range(32)))

        assert results.count(True) == 1
        assert len(registry) == 0


# ---------------------------------------------------------------------------
# Rate limiting
# ---------------------------------------------------------------------------


class TestRateLimiter:
    def test_bucket_allows_burst_then_blocks(self) -> None:
        clock = FakeMonotonic()
        bucket = TokenBucket(rate=1.0, capacity=3, monotonic=clock)
        assert [bucket.consume() for _ in range(4)] == [True, True, True, False]

    def test_bucket_refills_over_time(self) -> None:
        clock = FakeMonotonic()
        bucket = TokenBucket(rate=1.0, capacity=1, monotonic=clock)
        assert bucket.consume()
        assert not bucket.consume()
        clock.value = 1.0
        assert bucket.consume()

    def test_callers_have_independent_buckets(self) -> None:
        limiter = RateLimiter(per_minute=60, burst=1, monotonic=FakeMonotonic())
        assert limiter.allow("alice")
        assert not limiter.allow("alice")
        assert limiter.allow("bob")

    def test_reset_restores_capacity(self) -> None:
        limiter = RateLimiter(per_minute=60, burst=1, monotonic=FakeMonotonic())
        limiter.allow("alice")
        limiter.reset("alice")
        assert limiter.allow("alice")

    def test_prune_drops_refilled_buckets(self) -> None:
        clock = FakeMonotonic()
        limiter = RateLimiter(per_minute=60, burst=1, monotonic=clock)
        for i in range(500):
            limiter.allow(f"caller-{i}")
        assert len(limiter) == 500
        clock.value = 1.0
        assert limiter.prune() == 500
        assert len(limiter) == 0

    def test_prune_keeps_draining_buckets(self) -> None:
        clock = FakeMonotonic()
        limiter = RateLimiter(per_minute=60, burst=2, monotonic=clock)
        limiter.allow("idle")
        clock.value = 1.0
        limiter.allow("busy")
        limiter.allow("busy")
        assert limiter.prune() == 1
        assert len(limiter) == 1
        assert not limiter.allow("busy")

    def test_caller_churn_is_bounded(self) -> None:
        limiter = RateLimiter(per_minute=60, burst=1, monotonic=FakeMonotonic(), max_callers=50)
        for i in range(1_000):
            assert limiter.allow(f"caller-{i}")
        assert len(limiter) == 50

    def test_eviction_prefers_least_recent_caller(self) -> None:
        limiter = RateLimiter(per_minute=60, burst=2, monotonic=FakeMonotonic(), max_callers=2)
        limiter.allow("alice")
        limiter.allow("bob")
        limiter.allow("alice")
        limiter.allow("carol")
        assert not limiter.allow("alice")

    def test_max_callers_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            RateLimiter(per_minute=60, burst=1, max_callers=0)


# ---------------------------------------------------------------------------
# ChallengeIssuer
# ---------------------------------------------------------------------------


class TestChallengeIssuer:
    def test_issues_and_records_challenge(self) -> None:
        registry = ChallengeRegistry()
        issuer = ChallengeIssuer(registry, VerifierConfig(nonce_ttl_seconds=30), clock=lambda: NOW)
        challenge = issuer.issue_challenge("bank.example")
        assert challenge.audience == "bank.example"
        assert challenge.issued_at == NOW
        assert challenge.expires_at == NOW + datetime.timedelta(seconds=30)
        assert challenge.nonce in registry

    def test_nonces_are_unique_and_long(self) -> None:
        issuer = ChallengeIssuer(ChallengeRegistry(), clock=lambda: NOW)
        nonces = {issuer.issue_challenge("a", caller_id=str(i)).nonce for i in range(50)}
        assert len(nonces) == 50
        assert all(len(n) >= 43 for n in nonces)

    @pytest.mark.parametrize("audience", ["", "   ", "x" * 513])
    def test_invalid_audience_rejected(self, audience: str) -> None:
        issuer = ChallengeIssuer(ChallengeRegistry(), clock=lambda: NOW)
        with pytest.raises(ValueError):
            issuer.issue_challenge(audience)

    def test_rate_limited_caller_gets_resource_exhausted(self) -> None:
        limiter = RateLimiter(per_minute=60, burst=2, monotonic=FakeMonotonic())
        issuer = ChallengeIssuer(ChallengeRegistry(), clock=lambda: NOW, rate_limiter=limiter)
        issuer.issue_challenge("a", caller_id="agent-1")
        issuer.issue_challenge("a", caller_id="agent-1")
        with pytest.raises(ResourceExhaustedError) as exc_info:
            issuer.issue_challenge("a", caller_id="agent-1")
        assert exc_info.value.kind == ErrorKind.RESOURCE_EXHAUSTED
        issuer.issue_challenge("a", caller_id="agent-2")

    def test_rate_limit_disabled_with_zero(self) -> None:
        config = VerifierConfig(rate_limit_per_minute=0)
        issuer = ChallengeIssuer(ChallengeRegistry(), config, clock=lambda: NOW)
        for _ in range(100):
            issuer.issue_challenge("a")

    def test_full_registry_gives_resource_exhausted(self) -> None:
        config = VerifierConfig(rate_limit_per_minute=0)
        issuer = ChallengeIssuer(ChallengeRegistry(max_outstanding=1), config, clock=lambda: NOW)
        issuer.issue_challenge("a")
        with pytest.raises(ResourceExhaustedError):
            issuer.issue_challenge("a")

    def test_sweep_expired(self) -> None:
        clock_now = [NOW]
        registry = ChallengeRegistry()
        issuer = ChallengeIssuer(
            registry, VerifierConfig(nonce_ttl_seconds=10), clock=lambda: clock_now[0]
        )
        issuer.issue_challenge("a")
        clock_now[0] = NOW + datetime.timedelta(seconds=11)
        assert issuer.sweep_expired() == 1
        assert len(registry) == 0

    def test_sweep_expired_prunes_idle_rate_limit_buckets(self) -> None:
        monotonic = FakeMonotonic()
        limiter = RateLimiter(per_minute=60, burst=1, monotonic=monotonic)
        issuer = ChallengeIssuer(ChallengeRegistry(), clock=lambda: NOW, rate_limiter=limiter)
        for i in range(20):
            issuer.issue_challenge("a", caller_id=f"agent-{i}")
        monotonic.value = 5.0
        issuer.sweep_expired()
        assert len(limiter) == 0
