"""Pre-flight validation of connection credentials."""

from __future__ import annotations

from collections.abc import Mapping

from integration_audit.models.manifest import Manifest
from integration_audit.utils.errors import CredentialsError


def validate_credentials(
    manifest: Manifest,
    credentials: Mapping[str, str],
    access_token: str | None = None,
) -> None:
    """Check that credentials fit the manifest's auth strategy.

    Args:
        manifest: Provider manifest
        credentials: Connection credentials
        access_token: OAuth access token, if held separately from credentials

    Raises:
        CredentialsError: If required credentials are missing
    """
    auth = manifest.auth

    if auth.type == "oauth2":
        if not (access_token or credentials.get("access_token")):
            raise CredentialsError(
                "No valid OAuth credentials found. Please reconnect.",
                field="access_token",
            )

    elif auth.type == "api_key":
        if not credentials.get(auth.config.name) and not credentials.get("api_key"):
            raise CredentialsError(
                "API key not found. Please reconnect the integration.",
                field=auth.config.name,
            )

    elif auth.type == "basic":
        username_field = auth.config.username_field
        password_field = auth.config.password_field
        if not credentials.get(username_field) or not credentials.get(password_field):
            raise CredentialsError(
                "Username and password required. Please reconnect the integration.",
                field=username_field if not credentials.get(username_field) else password_field,
            )

    elif auth.type == "custom":
        if not credentials:
            raise CredentialsError("No valid credentials found for custom integration")
        for field in auth.config.credential_fields:
            if field.required and not credentials.get(field.id):
                raise CredentialsError(f"Missing required credential: {field.label}", field=field.id)
