"""Provider manifest data models.

A manifest declares, for one third-party provider, where its API lives, how
requests are authenticated, and which compliance checks run against it.
Manifests are frozen once built; check and option routines are plain async
functions bound at load time.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, field_validator

from integration_audit.models.common import Severity

CheckVariableValue = Union[str, int, float, bool, list[str], None]
CheckVariableValues = dict[str, CheckVariableValue]

# Check routines take a CheckContext; option fetchers take a VariableFetchContext.
CheckRun = Callable[..., Awaitable[None]]
OptionFetcher = Callable[..., Awaitable[list[Any]]]


def _resolve_reference(value: Any) -> Any:
    """Resolve "package.module:attribute" strings to the referenced object."""
    if isinstance(value, str):
        from integration_audit.utils.plugins import load_object

        return load_object(value)
    return value


# ---------------------------------------------------------------------------
# Auth strategies
# ---------------------------------------------------------------------------


class OAuth2Config(BaseModel):
    """OAuth2 settings consumed by the runtime (token exchange happens elsewhere)."""

    model_config = {"frozen": True}

    scopes: list[str] = Field(default_factory=list, description="Requested scopes")
    authorize_url: str | None = Field(default=None, description="Authorization endpoint")
    token_url: str | None = Field(default=None, description="Token endpoint")
    refresh_url: str | None = Field(default=None, description="Refresh endpoint if not token_url")
    supports_refresh_token: bool = Field(default=True, description="Whether tokens can be refreshed")


class ApiKeyConfig(BaseModel):
    """Where and how an API key is sent."""

    model_config = {"frozen": True, "populate_by_name": True}

    name: str = Field(description="Header or query parameter name")
    location: Literal["header", "query"] = Field(default="header", alias="in")
    prefix: str | None = Field(default=None, description='Value prefix, e.g. "Bearer "')


class BasicAuthConfig(BaseModel):
    """Credential field names used for HTTP basic auth."""

    model_config = {"frozen": True}

    username_field: str = Field(default="username")
    password_field: str = Field(default="password")


class CredentialField(BaseModel):
    """A credential input a custom-auth provider expects."""

    model_config = {"frozen": True}

    id: str
    label: str
    type: str = "text"
    required: bool = True
    help_text: str | None = None


class CustomAuthConfig(BaseModel):
    """Provider-defined credentials; the check authenticates itself."""

    model_config = {"frozen": True}

    description: str | None = None
    credential_fields: list[CredentialField] = Field(default_factory=list)


class OAuth2Auth(BaseModel):
    model_config = {"frozen": True}

    type: Literal["oauth2"] = "oauth2"
    config: OAuth2Config = Field(default_factory=OAuth2Config)


class ApiKeyAuth(BaseModel):
    model_config = {"frozen": True}

    type: Literal["api_key"] = "api_key"
    config: ApiKeyConfig


class BasicAuth(BaseModel):
    model_config = {"frozen": True}

    type: Literal["basic"] = "basic"
    config: BasicAuthConfig = Field(default_factory=BasicAuthConfig)


class CustomAuth(BaseModel):
    model_config = {"frozen": True}

    type: Literal["custom"] = "custom"
    config: CustomAuthConfig = Field(default_factory=CustomAuthConfig)


AuthStrategy = Annotated[
    Union[OAuth2Auth, ApiKeyAuth, BasicAuth, CustomAuth],
    Field(discriminator="type"),
]


# ---------------------------------------------------------------------------
# Checks and variables
# ---------------------------------------------------------------------------


class VariableOption(BaseModel):
    """A selectable value for select/multi-select variables."""

    model_config = {"frozen": True}

    value: str
    label: str


class CheckVariable(BaseModel):
    """A user-configurable knob for a check."""

    model_config = {"frozen": True}

    id: str = Field(description="Variable identifier used as the values key")
    label: str = Field(description="Display label")
    type: Literal["text", "number", "boolean", "select", "multi-select"] = "text"
    required: bool = False
    default: CheckVariableValue = None
    help_text: str | None = None
    placeholder: str | None = None
    options: list[VariableOption] | None = Field(default=None, description="Static options")
    fetch_options: OptionFetcher | None = Field(
        default=None,
        exclude=True,
        description="Async routine listing options from the provider API",
    )

    @field_validator("fetch_options", mode="before")
    @classmethod
    def _resolve_fetch_options(cls, value: Any) -> Any:
        return _resolve_reference(value)


class CheckDefinition(BaseModel):
    """A single compliance check declared by a manifest."""

    model_config = {"frozen": True}

    id: str = Field(description="Unique check identifier")
    name: str = Field(description="Human-readable check name")
    description: str = Field(default="", description="What the check verifies")
    default_severity: Severity = Field(default=Severity.MEDIUM)
    variables: list[CheckVariable] = Field(default_factory=list)
    run: CheckRun = Field(exclude=True, description="Async routine taking a CheckContext")

    @field_validator("run", mode="before")
    @classmethod
    def _resolve_run(cls, value: Any) -> Any:
        return _resolve_reference(value)


class Manifest(BaseModel):
    """Declarative description of one provider."""

    model_config = {"frozen": True}

    id: str = Field(description="Provider identifier, e.g. 'github'")
    name: str = Field(default="", description="Display name")
    description: str = Field(default="")
    category: str | None = Field(default=None, description="Catalog grouping")
    docs_url: str | None = None
    base_url: str = Field(default="", description="Base URL for relative request paths")
    default_headers: dict[str, str] = Field(default_factory=dict)
    auth: AuthStrategy
    variables: list[CheckVariable] = Field(
        default_factory=list,
        description="Integration-level variables merged into every check",
    )
    checks: list[CheckDefinition] = Field(default_factory=list)
    is_active: bool = True

    def get_check(self, check_id: str) -> CheckDefinition | None:
        """Get a check by ID."""
        for check in self.checks:
            if check.id == check_id:
                return check
        return None

    @property
    def display_name(self) -> str:
        return self.name or self.id

    @property
    def requires_oauth(self) -> bool:
        return self.auth.type == "oauth2"

    def variables_for(self, check: CheckDefinition) -> list[CheckVariable]:
        """Integration-level variables followed by the check's own; check entries win on id clashes."""
        merged: dict[str, CheckVariable] = {v.id: v for v in self.variables}
        for variable in check.variables:
            merged[variable.id] = variable
        return list(merged.values())
