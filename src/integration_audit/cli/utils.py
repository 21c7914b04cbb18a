"""Shared utilities for CLI commands."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import typer
from pydantic import BaseModel
from rich.console import Console

from integration_audit.models.manifest import Manifest

# Shared console instance
console = Console()


def load_manifest_or_exit(path: Path) -> Manifest:
    """Load a manifest file, printing the error and exiting on failure."""
    from integration_audit.core.manifest import load_manifest
    from integration_audit.utils.errors import ManifestError

    try:
        return load_manifest(path)
    except ManifestError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(1)


def parse_key_values(pairs: list[str] | None, option: str) -> dict[str, str]:
    """Parse repeated ``KEY=VALUE`` options into a dict.

    Args:
        pairs: Raw option values
        option: Option name for error messages

    Returns:
        Parsed mapping; later keys win
    """
    parsed: dict[str, str] = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            console.print(f"[red]Error:[/red] {option} expects KEY=VALUE, got '{pair}'")
            raise typer.Exit(1)
        parsed[key.strip()] = value
    return parsed


def output_json(data: dict[str, Any] | BaseModel, output: Path | None = None) -> None:
    """Output data as JSON to console or file."""
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json")

    json_str = json.dumps(data, indent=2, default=str)

    if output:
        output.write_text(json_str)
        console.print(f"Report written to {output}")
    else:
        console.print_json(json_str)


def status_icon(success: bool) -> str:
    """Get a colored status icon."""
    return "[green]OK[/green]" if success else "[red]FAIL[/red]"
