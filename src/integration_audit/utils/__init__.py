"""Utility functions for integration-audit."""

from integration_audit.utils.errors import (
    AuthenticationError,
    CheckLogicError,
    CheckNotFoundError,
    ConfigurationError,
    CredentialsError,
    GraphQLError,
    HttpStatusError,
    IntegrationAuditError,
    ManifestError,
    NetworkError,
    RateLimitError,
    TransientError,
    ValidationError,
    safe_get,
)
from integration_audit.utils.logging import configure_logging, get_logger, get_logger_with_context

__all__ = [
    "AuthenticationError",
    "CheckLogicError",
    "CheckNotFoundError",
    "ConfigurationError",
    "CredentialsError",
    "GraphQLError",
    "HttpStatusError",
    "IntegrationAuditError",
    "ManifestError",
    "NetworkError",
    "RateLimitError",
    "TransientError",
    "ValidationError",
    "configure_logging",
    "get_logger",
    "get_logger_with_context",
    "safe_get",
]
