"""Error handling utilities for integration-audit."""

from __future__ import annotations

from typing import Any

from integration_audit.models.common import AuditError


class IntegrationAuditError(Exception):
    """Base exception for integration-audit."""

    def __init__(self, message: str, code: str = "UNKNOWN_ERROR", details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_audit_error(self) -> AuditError:
        """Convert to AuditError model."""
        return AuditError(code=self.code, message=self.message, details=self.details)


class HttpStatusError(IntegrationAuditError):
    """A provider request finished with a non-success HTTP status."""

    def __init__(
        self,
        status: int,
        url: str | None = None,
        message: str | None = None,
        code: str = "HTTP_ERROR",
    ):
        details: dict[str, Any] = {"status": status}
        if url:
            details["url"] = url
        super().__init__(message or f"HTTP {status}", code=code, details=details)
        self.status = status
        self.url = url


class TransientError(HttpStatusError):
    """Server error that persisted after all retries."""

    def __init__(self, status: int, url: str | None = None, message: str | None = None, code: str = "TRANSIENT_ERROR"):
        super().__init__(status, url, message or f"HTTP {status}: retries exhausted", code=code)


class RateLimitError(TransientError):
    """Rate limiting (429) that persisted after all retries."""

    def __init__(self, url: str | None = None, message: str | None = None):
        super().__init__(429, url, message or "HTTP 429: rate limit retries exhausted", code="RATE_LIMITED")


class AuthenticationError(HttpStatusError):
    """Authentication failed and no token refresh could recover it."""

    def __init__(self, url: str | None = None, message: str = "HTTP 401: authentication failed"):
        super().__init__(401, url, message, code="AUTH_ERROR")


class NetworkError(IntegrationAuditError):
    """Network operation failed before a response was received."""

    def __init__(self, message: str, url: str | None = None):
        details = {"url": url} if url else {}
        super().__init__(message, code="NETWORK_ERROR", details=details)


class GraphQLError(IntegrationAuditError):
    """GraphQL response carried a non-empty ``errors`` array."""

    def __init__(self, errors: list[Any]):
        messages = []
        for error in errors:
            if isinstance(error, dict):
                messages.append(str(error.get("message", error)))
            else:
                messages.append(str(error))
        super().__init__(
            f"GraphQL error: {'; '.join(messages)}",
            code="GRAPHQL_ERROR",
            details={"errors": errors},
        )
        self.errors = errors


class CheckLogicError(IntegrationAuditError):
    """A check's run routine raised instead of completing."""

    def __init__(self, check_id: str, cause: BaseException):
        super().__init__(
            f"Check {check_id} failed to complete: {cause}",
            code="CHECK_ERROR",
            details={"check_id": check_id, "exception": type(cause).__name__},
        )
        self.check_id = check_id
        self.cause = cause


class CheckNotFoundError(IntegrationAuditError):
    """Requested check is not defined in the manifest."""

    def __init__(self, check_id: str, manifest_id: str | None = None):
        details = {"check_id": check_id}
        if manifest_id:
            details["manifest_id"] = manifest_id
        super().__init__(f"Check not found: {check_id}", code="CHECK_NOT_FOUND", details=details)


class ValidationError(IntegrationAuditError):
    """Validation failed."""

    def __init__(self, message: str, field: str | None = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="VALIDATION_ERROR", details=details)


class CredentialsError(ValidationError):
    """Credentials do not satisfy the manifest's auth strategy."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message, field=field)
        self.code = "CREDENTIALS_ERROR"


class ConfigurationError(IntegrationAuditError):
    """Configuration error."""

    def __init__(self, message: str, config_key: str | None = None):
        details = {"config_key": config_key} if config_key else {}
        super().__init__(message, code="CONFIG_ERROR", details=details)


class ManifestError(IntegrationAuditError):
    """A manifest could not be loaded or is malformed."""

    def __init__(self, message: str, source: str | None = None):
        details = {"source": source} if source else {}
        super().__init__(message, code="MANIFEST_ERROR", details=details)


def safe_get(data: Any, path: str, default: Any = None) -> Any:
    """Safely get a nested value using a dot-separated path.

    Args:
        data: Parsed JSON value to traverse
        path: Dot-separated key path (e.g. "response_metadata.next_cursor")
        default: Default value if any key is missing

    Returns:
        Value at the nested key path, or default
    """
    current = data
    for key in path.split("."):
        if isinstance(current, dict):
            current = current.get(key)
            if current is None:
                return default
        else:
            return default
    return current
