"""Manifest loading from YAML files.

A manifest file declares a provider and its checks. Check routines are
referenced as ``"package.module:function"`` and imported while loading, so a
loaded Manifest is complete and never changes afterwards.

Example manifest:

    id: github
    name: GitHub
    base_url: https://api.github.com
    default_headers:
      Accept: application/vnd.github+json
    auth:
      type: oauth2
      config:
        scopes: [repo, read:org]
    checks:
      - id: branch_protection
        name: Branch protection enabled
        default_severity: high
        run: my_checks.github:branch_protection
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from integration_audit.models.manifest import Manifest
from integration_audit.utils.errors import ManifestError
from integration_audit.utils.logging import get_logger

logger = get_logger("manifest")

MANIFEST_SUFFIXES = (".yaml", ".yml")


def manifest_from_dict(data: Mapping[str, Any], source: str | None = None) -> Manifest:
    """Build a Manifest from parsed data.

    Args:
        data: Manifest mapping, with ``run`` given as callables or references
        source: Where the data came from, for error messages

    Returns:
        The loaded manifest

    Raises:
        ManifestError: If the data is not a valid manifest
    """
    if not isinstance(data, Mapping):
        raise ManifestError(f"Manifest must be a mapping, got {type(data).__name__}", source=source)
    try:
        return Manifest.model_validate(dict(data))
    except PydanticValidationError as e:
        location = f" ({source})" if source else ""
        raise ManifestError(f"Invalid manifest{location}: {e}", source=source) from e


def load_manifest(path: Path | str) -> Manifest:
    """Load a manifest from a YAML file.

    Args:
        path: Path to the manifest file

    Returns:
        The loaded manifest

    Raises:
        ManifestError: If the file is missing, not YAML, or not a valid manifest
    """
    path = Path(path)
    if not path.exists():
        raise ManifestError(f"Manifest file not found: {path}", source=str(path))

    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        raise ManifestError(f"Invalid YAML in manifest {path}: {e}", source=str(path)) from e

    manifest = manifest_from_dict(data, source=str(path))
    logger.debug("Loaded manifest %s with %d checks from %s", manifest.id, len(manifest.checks), path)
    return manifest


def load_manifests(directory: Path | str) -> list[Manifest]:
    """Load every manifest file in a directory, sorted by file name.

    Raises:
        ManifestError: If the directory is missing or any file fails to load
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise ManifestError(f"Manifest directory not found: {directory}", source=str(directory))

    paths = sorted(p for p in directory.iterdir() if p.suffix in MANIFEST_SUFFIXES)
    return [load_manifest(p) for p in paths]
