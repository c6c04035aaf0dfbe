#!/usr/bin/env python3
"""Example: Resource-side authorization

Provisions the demo agents, lets each one obtain a capability token, and
checks the token the way a resource server would before performing an
action. The rogue agent's credential is revoked, so it never gets a token.

Usage:
    python examples/02_resource_server.py
"""
from __future__ import annotations

from agentic_did import InMemoryCredentialStateOracle, VerifierService
from agentic_did.agents import ACTION_AUDIENCES, ACTIONS, AGENTS, perform_action, present, provision

PLAN = [
    ("banker", "transfer"),
    ("shopper", "shop"),
    ("traveler", "flight"),
    ("traveler", "transfer"),
    ("rogue", "transfer"),
]


def main() -> None:
    oracle = InMemoryCredentialStateOracle()
    service = VerifierService.build(oracle=oracle)
    provisioned = {key: provision(agent, oracle) for key, agent in AGENTS.items()}

    for agent_key, action_id in PLAN:
        action = ACTIONS[action_id]
        agent = provisioned[agent_key]
        result = present(service, agent, ACTION_AUDIENCES[action_id])
        if not result.ok:
            print(f"{agent.agent.name:<24} {action.label:<24} rejected ({result.error.value})")
            continue
        allowed = perform_action(
            service,
            result,
            action,
            presenter_thumbprint=agent.credential.key_thumbprint,
        )
        print(f"{agent.agent.name:<24} {action.label:<24} {'allowed' if allowed else 'denied'}")

    service.close()


if __name__ == "__main__":
    main()
