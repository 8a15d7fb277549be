"""VC CLI commands.

Issues Data Integrity credentials with custodial keys and verifies them.
"""

from __future__ import annotations

import json
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console

from listproof.cli.config import ListproofConfig, create_kms_client, resolve_org_id
from listproof.sdk.errors import ListproofError
from listproof.sdk.models import CredentialKind, subject_from_fields
from listproof.sdk.vc import issue_with_custodial_key, verify_credential

app = typer.Typer(name="vc", help="Verifiable credential commands")
console = Console()


@app.command("issue")
def issue_command(
    kind: CredentialKind = typer.Argument(..., help="Credential kind"),
    subject_file: Path = typer.Argument(..., help="JSON file with credentialSubject fields"),
    org_id: str | None = typer.Option(None, "--org", help="Custodial organization ID of the signer (defaults to config)"),
    issuer_did: str = typer.Option(..., "--issuer-did", help="Issuer DID"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Output file for the credential")
) -> None:
    """Issue a signed credential from a subject file."""
    if not subject_file.exists():
        console.print(f"[red]Error: Subject file {subject_file} not found[/red]")
        raise typer.Exit(1)

    try:
        subject = subject_from_fields(kind, _load_subject(subject_file))
        config = ListproofConfig()
        org_id = resolve_org_id(config, org_id)
        with create_kms_client(config) as kms:
            credential = issue_with_custodial_key(
                kms, org_id, subject, issuer_did, config.credential_context
            )
    except (ListproofError, ValidationError, ValueError) as e:
        console.print(f"[red]Issuance error: {e}[/red]")
        raise typer.Exit(1)

    json_str = json.dumps(credential.to_wire(), indent=2)
    if output:
        output.write_text(json_str)
        console.print(f"[green]Credential saved to {output}[/green]")
    else:
        print(json_str)


@app.command("verify")
def verify_command(
    vc_file: Path = typer.Argument(..., help="Signed credential JSON file")
) -> None:
    """Verify a credential's Data Integrity proof."""
    if not vc_file.exists():
        console.print(f"[red]Error: VC file {vc_file} not found[/red]")
        raise typer.Exit(1)

    try:
        credential = json.loads(vc_file.read_text())
    except json.JSONDecodeError as e:
        console.print(f"[red]Error: Invalid JSON in VC file: {e}[/red]")
        raise typer.Exit(1)

    if isinstance(credential, dict) and verify_credential(credential):
        console.print("[green]Valid: proof verified[/green]")
    else:
        console.print("[red]Invalid: proof verification failed[/red]")
        raise typer.Exit(1)


def _load_subject(subject_file: Path) -> dict:
    """Load and validate JSON subject file."""
    try:
        data = json.loads(subject_file.read_text())
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in subject file: {e}")
    if not isinstance(data, dict):
        raise ValueError("Subject must be a JSON object")
    return data
