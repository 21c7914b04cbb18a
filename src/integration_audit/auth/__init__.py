"""Authentication for provider requests."""

from integration_audit.auth.builders import (
    ApiKeyBuilder,
    AuthBuilder,
    AuthParams,
    BasicBuilder,
    CustomBuilder,
    OAuth2Builder,
    build_auth,
    get_auth_builder,
    register_auth_builder,
)
from integration_audit.auth.credentials import validate_credentials

__all__ = [
    "ApiKeyBuilder",
    "AuthBuilder",
    "AuthParams",
    "BasicBuilder",
    "CustomBuilder",
    "OAuth2Builder",
    "build_auth",
    "get_auth_builder",
    "register_auth_builder",
    "validate_credentials",
]
