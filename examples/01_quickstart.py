#!/usr/bin/env python3
"""Example: Quickstart

Runs one challenge/presentation round against an in-process verifier and
prints the capability token it grants.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install agentic-did
"""
from __future__ import annotations

import agentic_did
from agentic_did import (
    AgentCredential,
    InMemoryCredentialStateOracle,
    VerifierService,
    build_presentation,
)


def main() -> None:
    print(f"agentic-did version: {agentic_did.__version__}")

    # Step 1: A verifier backed by an in-memory credential-state oracle
    oracle = InMemoryCredentialStateOracle()
    service = VerifierService.build(oracle=oracle)

    # Step 2: An agent credential, registered with the oracle
    credential = AgentCredential.create("Banker", ["bank:transfer", "bank:balance"])
    receipt = oracle.register_credential(credential)
    print(f"Agent subject: {credential.pid[:40]}...")

    # Step 3: Challenge, presentation, token
    challenge = service.get_challenge("bank.example")
    vp = build_presentation(credential, challenge, receipt)
    result = service.present_vp(vp, challenge.nonce)
    service.close()

    if result.ok and result.token is not None:
        print(f"Granted role={result.token.role.value} scopes={sorted(result.scopes)}")
        print(f"Token expires at {result.token.expires_at.isoformat()}")
    else:
        print(f"Rejected: {result.error}")

    print("\nQuickstart complete.")


if __name__ == "__main__":
    main()
