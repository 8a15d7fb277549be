"""DID CLI commands.

Creates did:webvh identities for user and list keys held by the KMS.
"""

from __future__ import annotations

import json
from pathlib import Path

import typer
from rich.console import Console

from listproof.cli.config import ListproofConfig, create_kms_client, resolve_org_id
from listproof.sdk.actions import create_list_identity, create_user_identity
from listproof.sdk.errors import IdentityCreationError
from listproof.sdk.models import DIDCreationResult

app = typer.Typer(name="did", help="did:webvh identity commands")
console = Console()


@app.command("create-user")
def create_user_command(
    org_id: str | None = typer.Argument(None, help="Custodial organization ID (defaults to config)"),
    domain: str | None = typer.Option(None, "--domain", "-d", help="did:webvh domain (defaults to config)"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Output file for the creation result")
) -> None:
    """Create the user's did:webvh identity."""
    config = ListproofConfig()
    domain = domain or config.webvh_domain
    if not domain:
        console.print("[red]Error: No domain given. Use --domain or set LISTPROOF_WEBVH_DOMAIN.[/red]")
        raise typer.Exit(1)

    try:
        org_id = resolve_org_id(config, org_id)
        with create_kms_client(config) as kms:
            result = create_user_identity(kms, org_id, domain)
    except (IdentityCreationError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    _output_result(result, output)


@app.command("create-list")
def create_list_command(
    org_id: str = typer.Argument(..., help="Custodial organization ID"),
    user_did: str = typer.Argument(..., help="Owner's did:webvh (provides the domain)"),
    slug: str = typer.Argument(..., help="Path slug for the list DID"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Output file for the creation result")
) -> None:
    """Create a did:webvh identity for a published list."""
    try:
        with create_kms_client(ListproofConfig()) as kms:
            result = create_list_identity(kms, org_id, user_did, slug)
    except (IdentityCreationError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    _output_result(result, output)


def _output_result(result: DIDCreationResult, output: Path | None) -> None:
    """Output creation result to file or stdout."""
    json_str = json.dumps(result.model_dump(by_alias=True), indent=2)

    if output:
        output.write_text(json_str)
        console.print(f"[green]Created {result.did}, saved to {output}[/green]")
    else:
        # Use print() to avoid rich formatting issues
        print(json_str)
