"""Demo agent catalog and resource actions.

Four agents are provisioned against an in-memory oracle: three legitimate
ones (banker, traveler and the shopper, a trusted service) and a rogue
agent that claims the Banker role with ``admin:*`` but whose credential
has been revoked. An action requires a role and a scope; a capability
token authorizes it through
:meth:`~agentic_did.capability.CapabilityTokenVerifier.authorize`.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from agentic_did.capability.token import CapabilityTokenError
from agentic_did.config import Clock, utc_now
from agentic_did.credentials.credential import AgentCredential
from agentic_did.credentials.models import CredentialStateReceipt, DisclosedClaims, Role
from agentic_did.credentials.presentation import build_presentation
from agentic_did.oracle.memory import InMemoryCredentialStateOracle
from agentic_did.service import PresentationResult, VerifierService


@dataclass(frozen=True)
class DemoAgent:
    """A catalog entry describing an agent and its credential claims."""

    key: str
    name: str
    role: Role
    scopes: tuple[str, ...]
    description: str
    rogue: bool = False
    trusted_service: bool = False


@dataclass(frozen=True)
class Action:
    """A protected resource action."""

    id: str
    label: str
    required_role: Role
    required_scope: str


AGENTS: dict[str, DemoAgent] = {
    "banker": DemoAgent(
        key="banker",
        name="Legit Banker Agent",
        role=Role.BANKER,
        scopes=("bank:transfer", "bank:balance"),
        description="Authorized to perform banking operations",
    ),
    "traveler": DemoAgent(
        key="traveler",
        name="Legit Traveler Agent",
        role=Role.TRAVELER,
        scopes=("travel:book", "travel:cancel"),
        description="Authorized to book and manage travel",
    ),
    "shopper": DemoAgent(
        key="shopper",
        name="Amazon Shopping Agent",
        role=Role.SHOPPER,
        scopes=("shop:purchase", "shop:cart"),
        description="Authorized Amazon agent for e-commerce purchases",
        trusted_service=True,
    ),
    "rogue": DemoAgent(
        key="rogue",
        name="Rogue Agent",
        role=Role.BANKER,
        scopes=("bank:transfer", "admin:*"),
        description="Unauthorized agent with revoked credentials",
        rogue=True,
    ),
}

ACTIONS: dict[str, Action] = {
    "transfer": Action("transfer", "Send $50", Role.BANKER, "bank:transfer"),
    "shop": Action("shop", "Buy Headphones ($149)", Role.SHOPPER, "shop:purchase"),
    "flight": Action("flight", "Book Flight", Role.TRAVELER, "travel:book"),
}

# Audience of each action's resource server.
ACTION_AUDIENCES: dict[str, str] = {
    "transfer": "bank.example",
    "shop": "shop.example",
    "flight": "travel.example",
}


@dataclass(frozen=True)
class ProvisionedAgent:
    """A demo agent together with its credential and oracle receipt."""

    agent: DemoAgent
    credential: AgentCredential
    receipt: CredentialStateReceipt


def get_agent(key: str) -> DemoAgent:
    """Return the catalog entry for *key*.

    Raises
    ------
    KeyError
        If no agent with that key exists.
    """
    try:
        return AGENTS[key]
    except KeyError:
        raise KeyError(f"Unknown agent {key!r}. Known agents: {sorted(AGENTS)}") from None


def provision(
    agent: DemoAgent,
    oracle: InMemoryCredentialStateOracle,
    clock: Clock = utc_now,
) -> ProvisionedAgent:
    """Create a credential for *agent* and register it with *oracle*.

    Rogue agents are registered and then revoked.
    """
    credential = AgentCredential.create(agent.role, agent.scopes, clock=clock)
    receipt = oracle.register_credential(credential)
    if agent.rogue:
        oracle.revoke(credential.cred_hash, reason="compromised agent")
    return ProvisionedAgent(agent=agent, credential=credential, receipt=receipt)


def provision_demo_agents(
    oracle: InMemoryCredentialStateOracle,
    clock: Clock = utc_now,
) -> dict[str, ProvisionedAgent]:
    """Provision every catalog agent into *oracle*, keyed like :data:`AGENTS`."""
    return {key: provision(agent, oracle, clock=clock) for key, agent in AGENTS.items()}


def present(
    service: VerifierService,
    provisioned: ProvisionedAgent,
    audience: str,
    disclose: Optional[Iterable[str]] = None,
    caller_id: Optional[str] = None,
) -> PresentationResult:
    """Run one full challenge/presentation round for a provisioned agent.

    Parameters
    ----------
    disclose:
        Scopes to reveal. Defaults to every scope the credential holds.

    Raises
    ------
    ValueError
        If *disclose* names scopes the credential does not hold.
    """
    credential = provisioned.credential
    disclosed = credential.full_claims()
    if disclose is not None:
        disclosed = DisclosedClaims(role=credential.role, scopes=frozenset(disclose))

    challenge = service.get_challenge(audience, caller_id=caller_id)
    vp = build_presentation(credential, challenge, provisioned.receipt, disclosed=disclosed)
    return service.present_vp(vp, challenge.nonce)


def perform_action(
    service: VerifierService,
    result: PresentationResult,
    action: Action,
    presenter_thumbprint: Optional[str] = None,
    audience: Optional[str] = None,
    clock: Clock = utc_now,
) -> bool:
    """Return True when *result*'s token authorizes *action*.

    The token is checked the way a resource server would: signature,
    audience, expiry and key binding, then role and scope. *audience*
    defaults to the action's resource server.
    """
    if not result.ok or result.token is None:
        return False
    verifier = service.token_verifier(clock=clock)
    try:
        token = verifier.verify(
            result.token.encoded,
            audience=audience or ACTION_AUDIENCES[action.id],
            presenter_thumbprint=presenter_thumbprint,
        )
        verifier.authorize(token, action.required_scope, action.required_role)
    except CapabilityTokenError:
        return False
    return True


__all__ = [
    "ACTIONS",
    "ACTION_AUDIENCES",
    "AGENTS",
    "Action",
    "DemoAgent",
    "ProvisionedAgent",
    "get_agent",
    "perform_action",
    "present",
    "provision",
    "provision_demo_agents",
]
