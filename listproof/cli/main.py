"""Typer CLI for listproof.

Provides commands: resolve-key, sign-data, and the did / vc command groups.
Main entrypoint for the listproof command-line interface.
"""

from __future__ import annotations

import json
import logging

import typer
from rich.console import Console

from listproof import __version__
from listproof.cli.config import ListproofConfig, create_kms_client, resolve_org_id
from listproof.cli.did_commands import app as did_app
from listproof.cli.vc_commands import app as vc_app
from listproof.sdk.custody import resolve_signing_key
from listproof.sdk.errors import ListproofError
from listproof.sdk.signer import sign_data


app = typer.Typer(
    name="listproof",
    help="Custodial-key DID creation and verifiable credential signing",
    add_completion=False,
    rich_markup_mode="rich"
)
console = Console()

app.add_typer(did_app, name="did", help="did:webvh identity commands")
app.add_typer(vc_app, name="vc", help="Verifiable credential commands")


def version_callback(show_version: bool) -> None:
    """Show version and exit."""
    if show_version:
        console.print(f"listproof version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging")
) -> None:
    """listproof CLI."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )


@app.command()
def resolve_key(
    org_id: str | None = typer.Argument(None, help="Custodial organization ID (defaults to config)")
) -> None:
    """Resolve the Ed25519 signing key of a custodial organization."""
    try:
        config = ListproofConfig()
        org_id = resolve_org_id(config, org_id)
        with create_kms_client(config) as kms:
            key_handle = resolve_signing_key(kms, org_id)
        print(json.dumps(key_handle.model_dump(mode="json", by_alias=True), indent=2))
    except (ListproofError, ValueError) as e:
        console.print(f"[red]Error resolving key: {e}[/red]")
        raise typer.Exit(1)


@app.command("sign-data")
def sign_data_command(
    data: str = typer.Argument(..., help="UTF-8 data to sign"),
    org_id: str | None = typer.Option(None, "--org", help="Custodial organization ID (defaults to config)")
) -> None:
    """Sign arbitrary data with the organization's Ed25519 key."""
    try:
        config = ListproofConfig()
        org_id = resolve_org_id(config, org_id)
        with create_kms_client(config) as kms:
            result = sign_data(kms, org_id, data)
        print(json.dumps(result.model_dump(by_alias=True), indent=2))
    except (ListproofError, ValueError) as e:
        console.print(f"[red]Error signing data: {e}[/red]")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
