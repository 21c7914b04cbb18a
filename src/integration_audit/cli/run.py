"""CLI command for running checks."""

import asyncio
from pathlib import Path
from typing import List, Optional

import typer

from integration_audit.cli.utils import console, load_manifest_or_exit, output_json, parse_key_values


def run_cmd(
    manifest: Path = typer.Argument(..., help="Path to the provider manifest YAML"),
    check: Optional[str] = typer.Option(None, "--check", "-c", help="Only run this check"),
    token: Optional[str] = typer.Option(
        None,
        "--token",
        "-t",
        envvar="INTEGRATION_AUDIT_TOKEN",
        help="OAuth access token",
    ),
    credential: Optional[List[str]] = typer.Option(
        None,
        "--credential",
        help="Credential as KEY=VALUE (repeatable)",
    ),
    var: Optional[List[str]] = typer.Option(
        None,
        "--var",
        help="Check variable as KEY=VALUE (repeatable)",
    ),
    connection_id: str = typer.Option("cli", "--connection-id", help="Connection identifier for state"),
    format: Optional[str] = typer.Option(
        None,
        "--format",
        "-f",
        help="Output format (terminal, json)",
    ),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output file path"),
    config_path: Optional[Path] = typer.Option(None, "--config", help="Configuration file"),
    show_all: bool = typer.Option(False, "--all", "-a", help="Show passing results and logs"),
) -> None:
    """
    Run a manifest's checks against a connection.

    Exits with status 1 when any check records findings or errors.

    Example:
        integration-audit run manifests/github.yaml --token $GITHUB_TOKEN
    """
    from integration_audit.auth.credentials import validate_credentials
    from integration_audit.core.runner import run_all_checks
    from integration_audit.renderers import OutputFormat, RenderContext, get_renderer
    from integration_audit.utils.config import load_config
    from integration_audit.utils.errors import CheckNotFoundError, ConfigurationError, CredentialsError
    from integration_audit.utils.plugins import get_plugin_manager

    try:
        config = load_config(config_path)
    except (ConfigurationError, FileNotFoundError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if config.plugins:
        get_plugin_manager().load_configured(config.plugins)

    provider = load_manifest_or_exit(manifest)
    credentials = parse_key_values(credential, "--credential")
    variables = parse_key_values(var, "--var")

    try:
        validate_credentials(provider, credentials, access_token=token)
    except CredentialsError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(1)

    try:
        output_format = OutputFormat(format or config.output.default_format)
    except ValueError:
        console.print(f"[red]Error:[/red] Invalid format: {format}")
        raise typer.Exit(1)

    with console.status(f"Running checks for {provider.display_name}..."):
        try:
            result = asyncio.run(
                run_all_checks(
                    provider,
                    check,
                    credentials=credentials,
                    access_token=token,
                    variables=variables,
                    connection_id=connection_id,
                    config=config,
                )
            )
        except CheckNotFoundError as e:
            console.print(f"[red]Error:[/red] {e.message}")
            raise typer.Exit(1)

    if output_format == OutputFormat.JSON:
        output_json(result, output)
    else:
        context = RenderContext(
            format=output_format,
            output_path=output,
            verbose=show_all or config.output.verbose,
            color=config.output.color,
        )
        renderer = get_renderer(output_format)
        if output:
            renderer.render_to_file(result, context)
            console.print(f"Report written to {output}")
        else:
            renderer.render(result, context)

    if not result.success:
        raise typer.Exit(1)
