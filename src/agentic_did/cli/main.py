"""CLI entry point for agentic-did.

Invoked as::

    agentic-did [OPTIONS] COMMAND [ARGS]...

or, during development::

    python -m agentic_did.cli.main

Commands
--------
version         Show version information
agents          List the demo agents and actions
demo            Run a full challenge/presentation round for a demo agent
challenge       Issue a sample challenge from a throwaway verifier
inspect-token   Decode (and optionally verify) a capability token
serve           Run the verifier HTTP server
"""
from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

console = Console()

_LOG_LEVELS = click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False)


# ------------------------------------------------------------------
# Root group
# ------------------------------------------------------------------


@click.group()
@click.version_option(package_name="agentic-did")
@click.option("--log-level", type=_LOG_LEVELS, default="WARNING", help="Logging level.")
def cli(log_level: str) -> None:
    """AgenticDID trust protocol: challenges, presentations and capability tokens"""
    logging.basicConfig(level=getattr(logging, log_level.upper()))


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from agentic_did import __version__

    console.print(f"[bold]agentic-did[/bold] v{__version__}")


# ------------------------------------------------------------------
# agents
# ------------------------------------------------------------------


@cli.command(name="agents")
def agents_command() -> None:
    """List the demo agents and the actions they can attempt."""
    from agentic_did.agents import ACTION_AUDIENCES, ACTIONS, AGENTS

    table = Table(title="Demo Agents", show_header=True)
    table.add_column("Key", style="cyan")
    table.add_column("Name")
    table.add_column("Role")
    table.add_column("Scopes")
    table.add_column("Status", justify="center")

    for agent in AGENTS.values():
        if agent.rogue:
            status = "[red]revoked[/red]"
        elif agent.trusted_service:
            status = "[green]trusted service[/green]"
        else:
            status = "[green]valid[/green]"
        table.add_row(agent.key, agent.name, agent.role.value, ", ".join(agent.scopes), status)
    console.print(table)

    actions = Table(title="Actions", show_header=True)
    actions.add_column("Action", style="cyan")
    actions.add_column("Label")
    actions.add_column("Audience")
    actions.add_column("Requires")
    for action in ACTIONS.values():
        actions.add_row(
            action.id,
            action.label,
            ACTION_AUDIENCES[action.id],
            f"{action.required_role.value} + {action.required_scope}",
        )
    console.print(actions)


# ------------------------------------------------------------------
# demo
# ------------------------------------------------------------------


@cli.command(name="demo")
@click.argument("agent_key")
@click.option("--audience", "-a", default=None, help="Audience to request a challenge for.")
@click.option(
    "--disclose",
    "-d",
    multiple=True,
    help="Scope to disclose (repeatable). Defaults to every scope held.",
)
@click.option("--action", "action_id", default=None, help="Action to attempt with the token.")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print the result as JSON.")
def demo_command(
    agent_key: str,
    audience: str | None,
    disclose: tuple[str, ...],
    action_id: str | None,
    as_json: bool,
) -> None:
    """Run a full challenge/presentation round for AGENT_KEY.

    Exits with status 1 when the presentation is rejected.
    """
    from agentic_did.agents import (
        ACTION_AUDIENCES,
        ACTIONS,
        get_agent,
        perform_action,
        present,
        provision,
    )
    from agentic_did.oracle.memory import InMemoryCredentialStateOracle
    from agentic_did.service import VerifierService

    try:
        agent = get_agent(agent_key)
    except KeyError as exc:
        console.print(f"[red]Error:[/red] {exc.args[0]}")
        sys.exit(2)

    action = None
    if action_id is not None:
        if action_id not in ACTIONS:
            console.print(f"[red]Error:[/red] unknown action {action_id!r}")
            sys.exit(2)
        action = ACTIONS[action_id]
    target = audience or (ACTION_AUDIENCES[action.id] if action else "bank.example")

    oracle = InMemoryCredentialStateOracle()
    service = VerifierService.build(oracle=oracle)
    try:
        provisioned = provision(agent, oracle)
        result = present(service, provisioned, target, disclose=disclose or None)
        authorized = None
        if action is not None:
            authorized = perform_action(
                service,
                result,
                action,
                presenter_thumbprint=provisioned.credential.key_thumbprint,
                audience=target,
            )
    except ValueError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        sys.exit(2)
    finally:
        service.close()

    if as_json:
        payload = result.to_dict()
        if authorized is not None:
            payload["authorized"] = authorized
        click.echo(json.dumps(payload, indent=2))
    else:
        console.print(f"[bold]{agent.name}[/bold] ({agent.role.value}) → {target}")
        console.print(f"  Subject: {provisioned.credential.pid}")
        if result.ok and result.token is not None:
            console.print("  [green]Verified[/green]")
            console.print(f"  Role:    {result.token.role.value}")
            console.print(f"  Scopes:  {', '.join(sorted(result.scopes)) or '(none)'}")
            console.print(f"  Expires: {result.token.expires_at.isoformat()}")
            console.print(f"  Token:   {result.token.encoded}")
        else:
            kind = result.error.value if result.error is not None else "unknown"
            console.print(f"  [red]Rejected[/red]: {kind}")
            console.print(f"  Detail:  {result.detail}")
        if action is not None:
            verdict = "[green]allowed[/green]" if authorized else "[red]denied[/red]"
            console.print(f"  Action {action.label!r}: {verdict}")

    if not result.ok:
        sys.exit(1)


# ------------------------------------------------------------------
# challenge
# ------------------------------------------------------------------


@cli.command(name="challenge")
@click.argument("audience")
def challenge_command(audience: str) -> None:
    """Print a sample challenge for AUDIENCE.

    The challenge comes from a throwaway in-process verifier that exits
    with this command, so its nonce cannot be redeemed anywhere. Use it
    to inspect the challenge format; obtain real challenges from a
    running verifier's POST /challenge.
    """
    from agentic_did.service import VerifierService

    service = VerifierService.build()
    try:
        challenge = service.get_challenge(audience)
    except ValueError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        sys.exit(2)
    finally:
        service.close()
    click.echo(json.dumps(challenge.to_dict(), indent=2))


# ------------------------------------------------------------------
# inspect-token
# ------------------------------------------------------------------


@cli.command(name="inspect-token")
@click.argument("token")
@click.option(
    "--public-key",
    default=None,
    help="base64url issuer public key; when given the signature is verified too.",
)
@click.option("--issuer", default=None, help="Expected issuer (with --public-key).")
@click.option("--audience", default=None, help="Expected audience (with --public-key).")
def inspect_token_command(
    token: str,
    public_key: str | None,
    issuer: str | None,
    audience: str | None,
) -> None:
    """Decode a capability TOKEN and display its claims."""
    from agentic_did.capability import CapabilityTokenError, CapabilityTokenVerifier
    from agentic_did.capability.token import split_token, token_from_claims
    from agentic_did.config import DEFAULT_ISSUER
    from agentic_did.crypto import b64url_decode

    try:
        _, _, _, claims = split_token(token)
        decoded = token_from_claims(claims, token)
    except CapabilityTokenError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)

    table = Table(title="Capability Token", show_header=True)
    table.add_column("Claim", style="cyan")
    table.add_column("Value")
    table.add_row("jti", decoded.token_id)
    table.add_row("iss", decoded.issuer)
    table.add_row("sub", decoded.subject)
    table.add_row("aud", decoded.audience)
    table.add_row("role", decoded.role.value)
    table.add_row("scope", ", ".join(sorted(decoded.scopes)) or "(none)")
    table.add_row("iat", decoded.issued_at.isoformat())
    table.add_row("exp", decoded.expires_at.isoformat())
    table.add_row("cnf.jkt", decoded.key_binding)
    console.print(table)

    if public_key is None:
        console.print("[yellow]Signature not verified (no --public-key).[/yellow]")
        return

    try:
        verifier = CapabilityTokenVerifier(b64url_decode(public_key), issuer or DEFAULT_ISSUER)
        verifier.verify(token, audience=audience or decoded.audience)
    except ValueError as exc:
        console.print(f"[red]Error:[/red] --public-key is not base64url: {exc}")
        sys.exit(2)
    except CapabilityTokenError as exc:
        console.print(f"[red]Invalid:[/red] {exc}")
        sys.exit(1)
    console.print("[green]Signature, issuer, audience and expiry verified.[/green]")


# ------------------------------------------------------------------
# serve
# ------------------------------------------------------------------


@cli.command(name="serve")
@click.option("--host", default="0.0.0.0", help="Bind address.")
@click.option("--port", default=8787, type=int, help="TCP port.")
@click.option("--oracle-url", default=None, help="Remote credential-state oracle base URL.")
@click.option(
    "--demo-agents",
    is_flag=True,
    default=False,
    help="Provision the demo agents into an in-memory oracle instead of using --oracle-url.",
)
@click.option(
    "--audit-log",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Append the audit trail to this JSONL file.",
)
@click.option("--log-level", type=_LOG_LEVELS, default="INFO", help="Logging level.")
def serve_command(
    host: str,
    port: int,
    oracle_url: str | None,
    demo_agents: bool,
    audit_log: Path | None,
    log_level: str,
) -> None:
    """Run the verifier HTTP server (blocking).

    Either --oracle-url or --demo-agents is required: an empty in-memory
    oracle would reject every presentation.
    """
    from agentic_did.server.app import build_service, run_server

    if not oracle_url and not demo_agents:
        console.print("[red]Error:[/red] either --oracle-url or --demo-agents is required.")
        sys.exit(2)

    logging.getLogger().setLevel(getattr(logging, log_level.upper()))
    try:
        service = build_service(oracle_url, audit_log=audit_log, demo_agents=demo_agents)
    except ValueError as exc:
        console.print(f"[red]Error:[/red] invalid configuration: {exc}")
        sys.exit(2)
    console.print(f"[bold]agentic-did[/bold] verifier on http://{host}:{port}")
    run_server(host=host, port=port, service=service)


if __name__ == "__main__":
    cli()
