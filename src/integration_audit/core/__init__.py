"""Check execution runtime."""

from integration_audit.core.context import CheckContext
from integration_audit.core.manifest import load_manifest, load_manifests, manifest_from_dict
from integration_audit.core.runner import CheckRunner, run_all_checks
from integration_audit.core.state import FileStateStorage, InMemoryStateStorage, StateStorage
from integration_audit.core.variables import (
    VariableFetchContext,
    fetch_variable_options,
    resolve_variables,
)

__all__ = [
    "CheckContext",
    "CheckRunner",
    "FileStateStorage",
    "InMemoryStateStorage",
    "StateStorage",
    "VariableFetchContext",
    "fetch_variable_options",
    "load_manifest",
    "load_manifests",
    "manifest_from_dict",
    "resolve_variables",
    "run_all_checks",
]
