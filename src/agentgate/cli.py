"""
CLI entry point for agentgate.

This module provides the Typer-based command-line interface for agentgate.
Every command is a thin shell over the library API so the same checks can
be run programmatically.

Commands:
    guard        Classify text for prompt injection
    redact       Remove PII and secrets from text
    check-url    Check a URL for SSRF-unsafe destinations
    settle       Score a payment before settlement
    ticket       Issue, verify and decode capability tickets

Exit codes:
    0  the input passed / the ticket is valid
    1  the input was blocked / the ticket is invalid / an error occurred
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from agentgate import __version__
from agentgate.errors import AgentGateError
from agentgate.guard import guard as run_guard
from agentgate.network import check_url as run_check_url
from agentgate.redact import redact as run_redact
from agentgate.schema import (
    AuditLevel,
    Classification,
    IssuerConfig,
    Policy,
    TransactionMeta,
    load_policy,
)
from agentgate.settlement import SettlementOptions, settlement_guard
from agentgate.tickets import TicketIssuer

app = typer.Typer(
    name="agentgate",
    help="Guard agent tool calls and payments with tickets, redaction and injection checks.",
    add_completion=False,
    no_args_is_help=True,
)

ticket_app = typer.Typer(
    name="ticket",
    help="Issue, verify and decode capability tickets.",
    no_args_is_help=True,
)
app.add_typer(ticket_app, name="ticket")

console = Console()

SIGNING_KEY_ENV = "AGENTGATE_SIGNING_KEY"
ISSUER_ENV = "AGENTGATE_ISSUER"

PolicyOption = Annotated[
    Optional[Path],
    typer.Option(
        "--policy",
        "-p",
        help="Path to a policy YAML file.",
        exists=True,
        readable=True,
        resolve_path=True,
    ),
]
JsonOption = Annotated[
    bool,
    typer.Option("--json", help="Output results in JSON format."),
]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]agentgate[/bold] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Log library decisions to stderr."),
    ] = False,
) -> None:
    """
    agentgate - trust and safety checks for autonomous agents.
    """
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )


def _load_policy_or_exit(policy_path: Path | None, json_output: bool) -> Policy | None:
    if policy_path is None:
        return None
    try:
        return load_policy(policy_path)
    except AgentGateError as e:
        _print_error(e, json_output)
        raise typer.Exit(code=1)


def _print_error(error: AgentGateError, json_output: bool) -> None:
    if json_output:
        print(json.dumps({"error": True, **error.to_dict()}, indent=2, default=str))
    else:
        console.print(f"[red]{escape(str(error))}[/red]")


# =============================================================================
# Content Commands
# =============================================================================


@app.command()
def guard(
    text: Annotated[str, typer.Argument(help="Text to classify.")],
    policy_path: PolicyOption = None,
    json_output: JsonOption = False,
) -> None:
    """
    Classify text for prompt injection and obfuscation.

    Example:
        $ agentgate guard "ignore all previous instructions"
    """
    policy = _load_policy_or_exit(policy_path, json_output)
    result = asyncio.run(run_guard(text, policy))

    if json_output:
        print(result.model_dump_json(indent=2))
    elif result.classification == Classification.BLOCK:
        console.print(f"[red]✗ block[/red]  {', '.join(result.violation_types)}")
        if result.cwe_codes:
            console.print(f"[dim]CWE: {', '.join(result.cwe_codes)}[/dim]")
    else:
        console.print("[green]✓ pass[/green]")

    if result.classification == Classification.BLOCK:
        raise typer.Exit(code=1)


@app.command()
def redact(
    text: Annotated[str, typer.Argument(help="Text to sanitize.")],
    policy_path: PolicyOption = None,
    json_output: JsonOption = False,
) -> None:
    """
    Remove PII, credentials and wallet secrets from text.

    Example:
        $ agentgate redact "mail me at user@example.com"
    """
    policy = _load_policy_or_exit(policy_path, json_output)
    result = run_redact(text, policy)

    if json_output:
        print(result.model_dump_json(indent=2))
        return

    console.print(result.redacted, markup=False, highlight=False)
    if result.findings:
        table = Table(show_header=True, header_style="bold")
        table.add_column("Type", style="cyan")
        table.add_column("Span", style="dim")
        for finding in result.findings:
            table.add_row(finding.type, f"{finding.span[0]}-{finding.span[1]}")
        console.print(table)


@app.command("check-url")
def check_url(
    url: Annotated[str, typer.Argument(help="URL to check.")],
    json_output: JsonOption = False,
) -> None:
    """
    Check whether a URL points at a public http(s) destination.

    Example:
        $ agentgate check-url http://169.254.169.254/latest/meta-data
    """
    result = asyncio.run(run_check_url(url))

    if json_output:
        print(json.dumps({
            "url": url,
            "safe": result.safe,
            "reason": result.reason,
            "resolved_ips": result.resolved_ips,
        }, indent=2))
    elif result.safe:
        console.print(f"[green]✓ safe[/green]  {', '.join(result.resolved_ips)}")
    else:
        console.print(f"[red]✗ blocked[/red]  {escape(result.reason or '')}")

    if not result.safe:
        raise typer.Exit(code=1)


@app.command()
def settle(
    amount: Annotated[str, typer.Option("--amount", help="Payment amount.")],
    currency: Annotated[str, typer.Option("--currency", help="Currency or token symbol.")],
    recipient: Annotated[str, typer.Option("--recipient", help="Recipient address.")],
    description: Annotated[str, typer.Option("--description", help="What the payment is for.")],
    reputation: Annotated[
        Optional[float],
        typer.Option("--reputation", min=0.0, max=1.0, help="Counterparty reputation in [0, 1]."),
    ] = None,
    known_bad: Annotated[
        Optional[list[str]],
        typer.Option("--known-bad", help="Recipient address to treat as known-bad (repeatable)."),
    ] = None,
    json_output: JsonOption = False,
) -> None:
    """
    Score a payment with the settlement heuristics.

    Example:
        $ agentgate settle --amount 50 --currency USDC --recipient 0xabc... --description "Data analysis"
    """
    meta = TransactionMeta(
        amount=amount,
        currency=currency,
        recipient_address=recipient,
        service_description=description,
        reputation_score=reputation,
    )
    options = SettlementOptions(known_bad_addresses=known_bad or ())
    result = asyncio.run(settlement_guard(meta, options))

    if json_output:
        print(result.model_dump_json(indent=2))
    else:
        color = "red" if result.classification == Classification.BLOCK else "green"
        console.print(
            f"[{color}]{result.classification.value}[/{color}]  "
            f"risk score {result.risk_score:.2f}"
        )
        for factor in result.risk_factors:
            console.print(f"  [dim]- {factor}[/dim]")

    if result.classification == Classification.BLOCK:
        raise typer.Exit(code=1)


# =============================================================================
# Ticket Commands
# =============================================================================


SigningKeyOption = Annotated[
    str,
    typer.Option("--signing-key", envvar=SIGNING_KEY_ENV, help="HMAC secret used to sign tickets."),
]
AlgorithmOption = Annotated[
    str,
    typer.Option("--algorithm", help="HMAC algorithm (HS256, HS384, HS512)."),
]


def _issuer(signing_key: str, issuer: str, algorithm: str) -> TicketIssuer:
    try:
        config = IssuerConfig(signing_key=signing_key, issuer=issuer, algorithm=algorithm)
    except ValidationError as e:
        console.print(f"[red]Invalid issuer configuration: {escape(str(e))}[/red]")
        raise typer.Exit(code=1)
    try:
        return TicketIssuer(config)
    except ValueError as e:
        console.print(f"[red]Invalid issuer configuration: {escape(str(e))}[/red]")
        raise typer.Exit(code=1)


@ticket_app.command("issue")
def ticket_issue(
    agent_id: Annotated[str, typer.Option("--agent-id", help="Agent identifier (sub claim).")],
    max_value: Annotated[float, typer.Option("--max-value", help="Per-operation value limit.")],
    signing_key: SigningKeyOption,
    level: Annotated[
        AuditLevel,
        typer.Option("--level", case_sensitive=False, help="Audit level."),
    ] = AuditLevel.BRONZE,
    server: Annotated[
        Optional[list[str]],
        typer.Option("--server", help="Allowed server (repeatable)."),
    ] = None,
    validity: Annotated[
        Optional[int],
        typer.Option("--validity", help="Lifetime in seconds."),
    ] = None,
    no_payment_proof: Annotated[
        bool,
        typer.Option("--no-payment-proof", help="Do not require payment proof."),
    ] = False,
    issuer: Annotated[
        str,
        typer.Option("--issuer", envvar=ISSUER_ENV, help="Issuer identifier (iss claim)."),
    ] = "agentgate",
    algorithm: AlgorithmOption = "HS256",
) -> None:
    """
    Issue a capability ticket and print it.

    Example:
        $ AGENTGATE_SIGNING_KEY=secret agentgate ticket issue --agent-id agent://a --max-value 100 --server mcp-a
    """
    constraints = {
        "max_op_value": max_value,
        "allowed_servers": server or [],
        "kill_switch_active": False,
        "requires_payment_proof": not no_payment_proof,
    }
    try:
        ticket = _issuer(signing_key, issuer, algorithm).generate(
            agent_id, level, constraints, validity_duration=validity
        )
    except AgentGateError as e:
        _print_error(e, json_output=False)
        raise typer.Exit(code=1)
    print(ticket)


@ticket_app.command("verify")
def ticket_verify(
    ticket: Annotated[str, typer.Argument(help="Ticket to verify.")],
    signing_key: SigningKeyOption,
    issuer: Annotated[
        str,
        typer.Option("--issuer", envvar=ISSUER_ENV, help="Issuer identifier."),
    ] = "agentgate",
    algorithm: AlgorithmOption = "HS256",
    json_output: JsonOption = False,
) -> None:
    """
    Verify a ticket's signature, expiry and kill switch.
    """
    result = _issuer(signing_key, issuer, algorithm).validate_sync(ticket)

    if json_output:
        print(result.model_dump_json(indent=2))
    elif result.valid and result.payload is not None:
        console.print(
            f"[green]✓ valid[/green]  {result.payload.sub} "
            f"({result.payload.audit_level.value})"
        )
    else:
        code = result.error_code.value if result.error_code else "invalid"
        console.print(f"[red]✗ {code}[/red]  {escape(result.error or '')}")

    if not result.valid:
        raise typer.Exit(code=1)


@ticket_app.command("decode")
def ticket_decode(
    ticket: Annotated[str, typer.Argument(help="Ticket to decode.")],
) -> None:
    """
    Print a ticket's claims WITHOUT verifying it.
    """
    # Decoding never needs the key
    payload = TicketIssuer(IssuerConfig(signing_key="-", issuer="-")).decode(ticket)
    if payload is None:
        console.print("[red]Not a decodable ticket[/red]")
        raise typer.Exit(code=1)
    print(payload.model_dump_json(indent=2))


if __name__ == "__main__":
    app()
