"""CLI entry point for delegated-session.

Invoked as::

    delegated-session [OPTIONS] COMMAND [ARGS]...

or, during development::

    python -m delegated_session.cli.main

Commands
--------
keygen        Generate an owner keypair
instantiate   Derive a contract image and account address
delegate      Issue a delegation signed by a local owner key
sign          Sign an outer transaction with a delegation
authorize     Evaluate the authorization predicate on a signed envelope
"""
from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

console = Console()


# ------------------------------------------------------------------
# Root group
# ------------------------------------------------------------------


@click.group()
@click.version_option(package_name="delegated-session")
def cli() -> None:
    """Origin-bound session key delegation"""


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from delegated_session import __version__

    console.print(f"[bold]delegated-session[/bold] v{__version__}")


# ------------------------------------------------------------------
# keygen
# ------------------------------------------------------------------


@cli.command(name="keygen")
@click.option(
    "--output",
    type=click.Path(dir_okay=False),
    required=True,
    help="File to write the hex-encoded private key to.",
)
def keygen_command(output: str) -> None:
    """Generate an owner keypair and write its private key to OUTPUT."""
    from delegated_session.crypto import Ed25519KeyManager, encode_address

    private_key, public_key = Ed25519KeyManager().generate_keypair()
    Path(output).write_text(private_key.hex() + "\n", encoding="utf-8")

    console.print(f"[green]Private key written to[/green] {output}")
    console.print(f"  Public key: {public_key.hex()}")
    console.print(f"  Address:    {encode_address(public_key)}")


# ------------------------------------------------------------------
# instantiate
# ------------------------------------------------------------------


@cli.command(name="instantiate")
@click.option(
    "--owner",
    "-o",
    "owners",
    multiple=True,
    required=True,
    help="Hex owner public key (repeatable; first is the primary owner).",
)
@click.option("--origin", required=True, help="Origin the contract is bound to.")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print JSON.")
def instantiate_command(owners: tuple[str, ...], origin: str, as_json: bool) -> None:
    """Derive the contract image for OWNERS and ORIGIN."""
    from delegated_session.contract import OwnerKeySet, instantiate
    from delegated_session.errors import TemplateError

    try:
        image = instantiate(OwnerKeySet.from_hex(owners), origin)
    except TemplateError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(image.to_dict(), indent=2))
        return

    table = Table(title=f"Contract image — {origin}", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Address", image.address)
    table.add_row("Program", image.program.hex())
    for index, key in enumerate(image.owners.to_hex()):
        table.add_row("Owner" if index == 0 else "Recovery key", key)
    console.print(table)


# ------------------------------------------------------------------
# delegate
# ------------------------------------------------------------------


@cli.command(name="delegate")
@click.option(
    "--owner-key-file",
    type=click.Path(exists=True, dir_okay=False),
    required=True,
    help="File holding the owner's hex private key.",
)
@click.option("--origin", required=True, help="Origin the delegation is bound to.")
@click.option("--ttl", type=int, default=None, help="Delegation lifetime in seconds.")
@click.option(
    "--output",
    type=click.Path(dir_okay=False),
    required=True,
    help="File to write the delegation (including the session secret) to.",
)
@click.option(
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="JSON settings file.",
)
def delegate_command(
    owner_key_file: str,
    origin: str,
    ttl: int | None,
    output: str,
    config_file: str | None,
) -> None:
    """Issue a delegation from a local owner key to a fresh session key."""
    from delegated_session.errors import DelegatedSessionError
    from delegated_session.session import DelegationIssuer, LocalOwnerSigner

    settings = _load_settings(config_file)
    try:
        owner = LocalOwnerSigner(_read_hex_file(owner_key_file))
        delegation = asyncio.run(
            DelegationIssuer(settings=settings).authenticate(owner, origin, ttl=ttl)
        )
    except (DelegatedSessionError, ValueError) as exc:
        console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)

    Path(output).write_text(json.dumps(delegation.to_dict(), indent=2), encoding="utf-8")
    console.print(f"[green]Delegation written to[/green] {output}")
    console.print(f"  Owner:       {delegation.transaction.sender}")
    console.print(f"  Session key: {delegation.transaction.receiver}")
    console.print(f"  Origin:      {origin}")
    console.print(f"  Expiry:      {delegation.expiry}")
    console.print("[yellow]The file contains the session private key.[/yellow]")


# ------------------------------------------------------------------
# sign
# ------------------------------------------------------------------


@cli.command(name="sign")
@click.option(
    "--delegation-file",
    type=click.Path(exists=True, dir_okay=False),
    required=True,
    help="Delegation file written by 'delegate'.",
)
@click.option(
    "--tx-file",
    type=click.Path(exists=True, dir_okay=False),
    required=True,
    help="JSON file holding the unsigned outer transaction.",
)
@click.option(
    "--owner",
    "-o",
    "owners",
    multiple=True,
    help="Hex owner public key (repeatable). Defaults to the delegating owner.",
)
@click.option(
    "--output",
    type=click.Path(dir_okay=False),
    required=True,
    help="File to write the signed envelope to.",
)
def sign_command(
    delegation_file: str,
    tx_file: str,
    owners: tuple[str, ...],
    output: str,
) -> None:
    """Sign an outer transaction from the delegation's contract account."""
    from delegated_session.contract import OwnerKeySet, instantiate
    from delegated_session.errors import DelegatedSessionError
    from delegated_session.session import Delegation, InMemorySessionStore, SessionSigner
    from delegated_session.transaction import Transaction

    try:
        delegation = Delegation.from_dict(_read_json_file(delegation_file))
        transaction = Transaction.from_dict(_read_json_file(tx_file))
        owner_set = (
            OwnerKeySet.from_hex(owners)
            if owners
            else OwnerKeySet.of(delegation.owner_public_key)
        )
        image = instantiate(owner_set, delegation.origin)

        store = InMemorySessionStore()
        store.add_delegation(delegation)
        envelope = SessionSigner(store).sign_transaction(
            image, delegation.keypair, transaction
        )
    except (DelegatedSessionError, ValueError, KeyError) as exc:
        console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)

    Path(output).write_text(json.dumps(envelope.to_dict(), indent=2), encoding="utf-8")
    console.print(f"[green]Signed envelope written to[/green] {output}")
    console.print(f"  Contract: {image.address}")
    console.print(f"  Tx id:    {transaction.tx_id}")


# ------------------------------------------------------------------
# authorize
# ------------------------------------------------------------------


@cli.command(name="authorize")
@click.argument("envelope_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--now",
    type=int,
    default=None,
    help="Verifier time in unix seconds (defaults to the system clock).",
)
@click.option(
    "--explain",
    is_flag=True,
    default=False,
    help="Show the outcome of every gate.",
)
@click.option(
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="JSON settings file; its audit_log_path receives the decision.",
)
def authorize_command(
    envelope_file: str, now: int | None, explain: bool, config_file: str | None
) -> None:
    """Evaluate the authorization predicate on ENVELOPE_FILE."""
    from delegated_session.authorization import AuthorizationPredicate, AuthorizedTransaction

    settings = _load_settings(config_file)
    try:
        envelope = AuthorizedTransaction.from_dict(_read_json_file(envelope_file))
        image = envelope.image
    except (ValueError, KeyError) as exc:
        console.print(f"[red]Error:[/red] malformed envelope: {exc}")
        sys.exit(1)

    predicate = AuthorizationPredicate(image, audit=settings.build_audit_logger())
    decision = predicate.evaluate(
        envelope.transaction, envelope.witness, now=now
    )
    sender_ok = envelope.transaction.sender == image.address

    if explain:
        table = Table(title=f"Authorization — {envelope.transaction.tx_id}", show_header=True)
        table.add_column("Gate", style="cyan")
        table.add_column("Result", justify="center")
        table.add_column("Detail")
        table.add_row(
            "sender",
            "[green]PASS[/green]" if sender_ok else "[red]FAIL[/red]",
            "" if sender_ok else f"sender is not {image.address}",
        )
        for outcome in decision.outcomes:
            table.add_row(
                outcome.gate,
                "[green]PASS[/green]" if outcome.passed else "[red]FAIL[/red]",
                outcome.detail,
            )
        console.print(table)

    if decision.approved and sender_ok:
        console.print("[green]APPROVED[/green]")
    else:
        console.print("[red]REJECTED[/red]")
        sys.exit(1)


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _load_settings(config_file: str | None):  # type: ignore[no-untyped-def]
    """Return DelegationSettings, optionally loaded from a JSON file."""
    from pydantic import ValidationError

    from delegated_session.config import DelegationSettings

    if not config_file:
        return DelegationSettings()
    try:
        return DelegationSettings.from_file(Path(config_file))
    except (ValidationError, json.JSONDecodeError) as exc:
        console.print(f"[red]Error:[/red] invalid config file: {exc}")
        sys.exit(1)


def _read_hex_file(path: str) -> bytes:
    return bytes.fromhex(Path(path).read_text(encoding="utf-8").strip())


def _read_json_file(path: str) -> dict[str, object]:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"{path} does not hold a JSON object")
    return data


if __name__ == "__main__":
    cli()
