"""Auth header and query parameter builders.

Each auth strategy type maps to one builder. Builders are pure: they read
the strategy, the connection credentials and the current access token and
return what must be added to an outgoing request. They never perform I/O.
"""

from __future__ import annotations

import base64
from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, Field

from integration_audit.models.manifest import ApiKeyAuth, BasicAuth


class AuthParams(BaseModel):
    """Request additions produced by an auth builder."""

    model_config = {"frozen": True}

    headers: dict[str, str] = Field(default_factory=dict)
    query_params: dict[str, str] = Field(default_factory=dict)


@runtime_checkable
class AuthBuilder(Protocol):
    """Protocol for auth builders.

    Example:
        class JwtBuilder:
            def build(self, strategy, credentials, access_token=None) -> AuthParams:
                return AuthParams(headers={"Authorization": f"JWT {credentials['jwt']}"})

        register_auth_builder("jwt", JwtBuilder())
    """

    def build(
        self,
        strategy: Any,
        credentials: Mapping[str, str],
        access_token: str | None = None,
    ) -> AuthParams:
        ...


class OAuth2Builder:
    """Bearer token from the current access token slot."""

    def build(
        self,
        strategy: Any,
        credentials: Mapping[str, str],
        access_token: str | None = None,
    ) -> AuthParams:
        # A missing token is not an error here; the provider answers 401.
        if not access_token:
            return AuthParams()
        return AuthParams(headers={"Authorization": f"Bearer {access_token}"})


class ApiKeyBuilder:
    """API key placed in a header or query parameter."""

    def build(
        self,
        strategy: ApiKeyAuth,
        credentials: Mapping[str, str],
        access_token: str | None = None,
    ) -> AuthParams:
        config = strategy.config
        key = credentials.get(config.name) or credentials.get("api_key")
        if not key:
            return AuthParams()

        value = f"{config.prefix}{key}" if config.prefix else key
        if config.location == "query":
            return AuthParams(query_params={config.name: value})
        return AuthParams(headers={config.name: value})


class BasicBuilder:
    """HTTP basic auth from configurable credential fields."""

    def build(
        self,
        strategy: BasicAuth,
        credentials: Mapping[str, str],
        access_token: str | None = None,
    ) -> AuthParams:
        config = strategy.config
        username = credentials.get(config.username_field)
        if not username:
            return AuthParams()
        password = credentials.get(config.password_field) or ""
        token = base64.b64encode(f"{username}:{password}".encode()).decode("ascii")
        return AuthParams(headers={"Authorization": f"Basic {token}"})


class CustomBuilder:
    """No injection; the check authenticates with its own client."""

    def build(
        self,
        strategy: Any,
        credentials: Mapping[str, str],
        access_token: str | None = None,
    ) -> AuthParams:
        return AuthParams()


_builders: dict[str, AuthBuilder] = {
    "oauth2": OAuth2Builder(),
    "api_key": ApiKeyBuilder(),
    "basic": BasicBuilder(),
    "custom": CustomBuilder(),
}


def register_auth_builder(auth_type: str, builder: AuthBuilder) -> None:
    """Register a builder for a new auth strategy type.

    Raises:
        ValueError: If a builder for the type is already registered
    """
    if auth_type in _builders:
        raise ValueError(f"Auth builder '{auth_type}' is already registered")
    _builders[auth_type] = builder


def get_auth_builder(auth_type: str) -> AuthBuilder:
    """Get the builder for an auth strategy type.

    Raises:
        KeyError: If no builder handles the type
    """
    if auth_type not in _builders:
        raise KeyError(f"No auth builder registered for '{auth_type}'")
    return _builders[auth_type]


def build_auth(
    strategy: Any,
    credentials: Mapping[str, str],
    access_token: str | None = None,
) -> AuthParams:
    """Build request headers and query params for a manifest's auth strategy.

    Args:
        strategy: The manifest's auth strategy
        credentials: Connection credentials
        access_token: Current OAuth access token, if any

    Returns:
        Headers and query parameters to merge into the request
    """
    return get_auth_builder(strategy.type).build(strategy, credentials, access_token)
