"""integration-audit: a check execution runtime for third-party integrations.

A provider manifest declares where an API lives, how it authenticates, and
which compliance checks run against it. The runtime turns each check into
authenticated, retried, paginated HTTP/GraphQL calls and collects what the
check reports into a structured run result:

- **Manifests**: declarative provider descriptions loaded from YAML
- **Auth**: OAuth2 bearer, API key, basic and custom strategies
- **Executor**: retries on 429/5xx and a single token refresh on 401
- **Pagination**: page number, cursor and Link header strategies
- **Runner**: sequential execution with per-check error isolation

Usage:
    # Library API
    from integration_audit import CheckContext, CheckRunner, load_manifest

    async def repos_are_private(ctx: CheckContext) -> None:
        for repo in await ctx.fetch_all_pages("/user/repos"):
            if repo["private"]:
                ctx.pass_({...})
            else:
                ctx.fail({...})

    manifest = load_manifest("manifests/github.yaml")
    runner = CheckRunner(manifest, access_token=token, connection_id="conn_1")
    result = await runner.run_all()
    print(result.total_findings)

CLI:
    integration-audit run <manifest.yaml> --token <token>
    integration-audit checks <manifest.yaml>
    integration-audit validate <manifest.yaml> --credentials <creds.yaml>
"""

__version__ = "0.1.0"

# Core classes
from integration_audit.core.context import CheckContext
from integration_audit.core.manifest import load_manifest, load_manifests
from integration_audit.core.runner import CheckRunner, run_all_checks
from integration_audit.core.state import FileStateStorage, InMemoryStateStorage, StateStorage

# Models (commonly used)
from integration_audit.models.common import AuditError, Severity
from integration_audit.models.manifest import CheckDefinition, CheckVariable, Manifest
from integration_audit.models.result import (
    CheckExecution,
    CheckFindingResult,
    CheckPassingResult,
    CheckRunResult,
    CheckStatus,
    RunAllResult,
)

# Registry
from integration_audit.registry import ManifestRegistry, get_default_registry

# Renderers
from integration_audit.renderers.base import OutputFormat, RenderContext, Renderer

__all__ = [
    # Version
    "__version__",
    # Core
    "CheckContext",
    "CheckRunner",
    "run_all_checks",
    "load_manifest",
    "load_manifests",
    "StateStorage",
    "InMemoryStateStorage",
    "FileStateStorage",
    # Models
    "AuditError",
    "Severity",
    "Manifest",
    "CheckDefinition",
    "CheckVariable",
    "CheckFindingResult",
    "CheckPassingResult",
    "CheckRunResult",
    "CheckExecution",
    "CheckStatus",
    "RunAllResult",
    # Registry
    "ManifestRegistry",
    "get_default_registry",
    # Renderers
    "Renderer",
    "RenderContext",
    "OutputFormat",
]
