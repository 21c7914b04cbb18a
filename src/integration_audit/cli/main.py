"""Main CLI entry point for integration-audit."""

import typer
from rich.console import Console

from integration_audit.cli import checks, run

app = typer.Typer(
    name="integration-audit",
    help="Run compliance checks against third-party provider APIs.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()

app.command(name="run")(run.run_cmd)
app.command(name="checks")(checks.checks_cmd)
app.command(name="validate")(checks.validate_cmd)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose output"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress non-essential output"),
) -> None:
    """
    integration-audit: compliance checks for third-party integrations.

    - [bold]run[/bold]: Run a manifest's checks against a connection
    - [bold]checks[/bold]: List the checks a manifest declares
    - [bold]validate[/bold]: Validate a manifest and credentials
    """
    from integration_audit.utils.logging import configure_logging

    if verbose:
        configure_logging(level="DEBUG")
    elif quiet:
        configure_logging(level="WARNING")
    else:
        configure_logging(level="INFO")


@app.command()
def version() -> None:
    """Show the integration-audit version."""
    from integration_audit import __version__

    console.print(f"integration-audit version {__version__}")


if __name__ == "__main__":
    app()
