"""Data models for integration-audit."""

from integration_audit.models.common import AuditError, Severity
from integration_audit.models.manifest import (
    ApiKeyAuth,
    ApiKeyConfig,
    AuthStrategy,
    BasicAuth,
    BasicAuthConfig,
    CheckDefinition,
    CheckVariable,
    CheckVariableValues,
    CustomAuth,
    CustomAuthConfig,
    Manifest,
    OAuth2Auth,
    OAuth2Config,
    VariableOption,
)
from integration_audit.models.result import (
    CheckExecution,
    CheckFindingResult,
    CheckPassingResult,
    CheckRunLog,
    CheckRunResult,
    CheckRunSummary,
    CheckStatus,
    Finding,
    IntegrationFinding,
    IntegrationPassingResult,
    PassingResult,
    RunAllResult,
)

__all__ = [
    # Common
    "AuditError",
    "Severity",
    # Manifest
    "ApiKeyAuth",
    "ApiKeyConfig",
    "AuthStrategy",
    "BasicAuth",
    "BasicAuthConfig",
    "CheckDefinition",
    "CheckVariable",
    "CheckVariableValues",
    "CustomAuth",
    "CustomAuthConfig",
    "Manifest",
    "OAuth2Auth",
    "OAuth2Config",
    "VariableOption",
    # Results
    "CheckExecution",
    "CheckFindingResult",
    "CheckPassingResult",
    "CheckRunLog",
    "CheckRunResult",
    "CheckRunSummary",
    "CheckStatus",
    "Finding",
    "IntegrationFinding",
    "IntegrationPassingResult",
    "PassingResult",
    "RunAllResult",
]
