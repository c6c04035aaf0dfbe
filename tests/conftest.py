"""Shared fixtures: a controllable clock and a wired verifier service."""
from __future__ import annotations

import datetime
from typing import Iterator

import pytest

from agentic_did.config import VerifierConfig
from agentic_did.credentials import AgentCredential, CredentialStateReceipt
from agentic_did.oracle import InMemoryCredentialStateOracle
from agentic_did.service import VerifierService

START = datetime.datetime(2026, 1, 1, 12, 0, 0, tzinfo=datetime.timezone.utc)


class FixedClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime.datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime.datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + datetime.timedelta(seconds=seconds)


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture()
def config() -> VerifierConfig:
    return VerifierConfig(rate_limit_per_minute=0)


@pytest.fixture()
def oracle(clock: FixedClock) -> InMemoryCredentialStateOracle:
    return InMemoryCredentialStateOracle(clock=clock)


@pytest.fixture()
def service(
    config: VerifierConfig,
    oracle: InMemoryCredentialStateOracle,
    clock: FixedClock,
) -> Iterator[VerifierService]:
    svc = VerifierService.build(config=config, oracle=oracle, clock=clock)
    yield svc
    svc.close()


@pytest.fixture()
def banker(
    oracle: InMemoryCredentialStateOracle, clock: FixedClock
) -> tuple[AgentCredential, CredentialStateReceipt]:
    credential = AgentCredential.create("Banker", ["bank:transfer", "bank:balance"], clock=clock)
    return credential, oracle.register_credential(credential)
