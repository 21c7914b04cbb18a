"""CLI commands for inspecting manifests."""

from pathlib import Path
from typing import Optional

import typer
from rich.panel import Panel
from rich.table import Table

from integration_audit.cli.utils import console, load_manifest_or_exit, output_json, status_icon


def checks_cmd(
    manifest: Path = typer.Argument(..., help="Path to the provider manifest YAML"),
    format: str = typer.Option("terminal", "--format", "-f", help="Output format (terminal, json)"),
) -> None:
    """
    List the checks a manifest declares.

    Example:
        integration-audit checks manifests/github.yaml
    """
    provider = load_manifest_or_exit(manifest)

    if format == "json":
        output_json(
            {
                "manifest": provider.id,
                "checks": [
                    {
                        **check.model_dump(mode="json", include={"id", "name", "description", "default_severity"}),
                        "variables": [v.id for v in provider.variables_for(check)],
                    }
                    for check in provider.checks
                ],
            }
        )
        return

    console.print(
        Panel(
            f"[bold]Provider:[/bold] {provider.display_name} ({provider.id})\n"
            f"[bold]Base URL:[/bold] {provider.base_url or '-'}\n"
            f"[bold]Auth:[/bold] {provider.auth.type}",
            title="Manifest",
        )
    )

    table = Table(title="Checks")
    table.add_column("ID", style="bold")
    table.add_column("Name")
    table.add_column("Severity")
    table.add_column("Variables", style="dim")
    for check in provider.checks:
        table.add_row(
            check.id,
            check.name,
            check.default_severity.value,
            ", ".join(v.id for v in provider.variables_for(check)) or "-",
        )
    console.print(table)


def validate_cmd(
    manifest: Path = typer.Argument(..., help="Path to the provider manifest YAML"),
    credentials_file: Optional[Path] = typer.Option(
        None,
        "--credentials",
        help="YAML file of credentials to validate against the auth strategy",
    ),
    token: Optional[str] = typer.Option(None, "--token", "-t", envvar="INTEGRATION_AUDIT_TOKEN"),
) -> None:
    """
    Validate a manifest file, and optionally a set of credentials for it.

    Example:
        integration-audit validate manifests/github.yaml --credentials creds.yaml
    """
    import yaml

    from integration_audit.auth.credentials import validate_credentials
    from integration_audit.utils.errors import CredentialsError

    provider = load_manifest_or_exit(manifest)
    console.print(f"{status_icon(True)} Manifest {provider.id}: {len(provider.checks)} checks")

    if credentials_file is None and token is None:
        return

    credentials = {}
    if credentials_file is not None:
        try:
            credentials = yaml.safe_load(credentials_file.read_text()) or {}
        except (OSError, yaml.YAMLError) as e:
            console.print(f"[red]Error:[/red] Cannot read credentials: {e}")
            raise typer.Exit(1)

    try:
        validate_credentials(provider, {str(k): str(v) for k, v in credentials.items()}, access_token=token)
    except CredentialsError as e:
        console.print(f"{status_icon(False)} Credentials: {e.message}")
        raise typer.Exit(1)
    console.print(f"{status_icon(True)} Credentials match {provider.auth.type} auth")
