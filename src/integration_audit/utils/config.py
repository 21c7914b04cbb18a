"""Configuration file support for integration-audit."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field

from integration_audit.utils.errors import ConfigurationError


class HttpConfig(BaseModel):
    """HTTP transport configuration."""

    timeout: float = Field(default=30.0, gt=0, description="Per-request timeout in seconds")
    max_retries: int = Field(default=3, ge=0, description="Retries for 429 and 5xx responses")
    backoff_base: float = Field(
        default=1.0,
        ge=0,
        description="Base delay in seconds; retry n waits backoff_base * 2**(n-1)",
    )
    user_agent: str = Field(default="integration-audit", description="User-Agent header")


class PaginationConfig(BaseModel):
    """Pagination defaults."""

    per_page: int = Field(default=100, gt=0, description="Items requested per page")
    max_pages: int = Field(default=100, gt=0, description="Maximum pages fetched per call")


class StateConfig(BaseModel):
    """Check state storage configuration."""

    backend: Literal["memory", "file"] = Field(default="memory", description="State backend")
    directory: str | None = Field(default=None, description="Directory for the file backend")


class OutputConfig(BaseModel):
    """Output configuration."""

    default_format: str = Field(default="terminal", description="Default output format")
    color: bool = Field(default=True, description="Enable color output")
    verbose: bool = Field(default=False, description="Verbose output")


class IntegrationAuditConfig(BaseModel):
    """Main configuration for integration-audit."""

    http: HttpConfig = Field(default_factory=HttpConfig)
    pagination: PaginationConfig = Field(default_factory=PaginationConfig)
    state: StateConfig = Field(default_factory=StateConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)

    plugins: list[str] = Field(default_factory=list, description="Plugin modules to load")


def get_config_paths() -> list[Path]:
    """Get possible configuration file paths.

    Returns:
        List of paths to check for configuration files
    """
    paths = []

    paths.append(Path.cwd() / ".integration-audit.yaml")
    paths.append(Path.cwd() / ".integration-audit.yml")
    paths.append(Path.cwd() / "integration-audit.yaml")

    home = Path.home()
    paths.append(home / ".integration-audit.yaml")
    paths.append(home / ".integration-audit" / "config.yaml")
    paths.append(home / ".config" / "integration-audit" / "config.yaml")

    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        paths.append(Path(xdg_config) / "integration-audit" / "config.yaml")

    return paths


def load_config(config_path: Path | str | None = None) -> IntegrationAuditConfig:
    """Load configuration from file.

    Args:
        config_path: Explicit path to config file. If None, searches default locations.

    Returns:
        Loaded configuration
    """
    if config_path is not None:
        path = Path(config_path)
        if path.exists():
            return _load_config_file(path)
        raise FileNotFoundError(f"Config file not found: {config_path}")

    for path in get_config_paths():
        if path.exists():
            return _load_config_file(path)

    return IntegrationAuditConfig()


def _load_config_file(path: Path) -> IntegrationAuditConfig:
    """Load configuration from a specific file."""
    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in config file: {e}") from e

    if data is None:
        return IntegrationAuditConfig()
    try:
        return IntegrationAuditConfig.model_validate(data)
    except ValueError as e:
        raise ConfigurationError(f"Failed to load config file {path}: {e}") from e


def save_config(config: IntegrationAuditConfig, config_path: Path | str | None = None) -> Path:
    """Save configuration to file.

    Args:
        config: Configuration to save
        config_path: Path to save to. Defaults to ~/.integration-audit/config.yaml

    Returns:
        Path where config was saved
    """
    if config_path is None:
        config_path = Path.home() / ".integration-audit" / "config.yaml"
    else:
        config_path = Path(config_path)

    config_path.parent.mkdir(parents=True, exist_ok=True)

    data = config.model_dump(mode="json", exclude_defaults=True)
    config_path.write_text(yaml.dump(data, default_flow_style=False, sort_keys=False))

    return config_path


def get_default_config() -> IntegrationAuditConfig:
    """Get the default configuration."""
    return IntegrationAuditConfig()


# Global config instance
_config: IntegrationAuditConfig | None = None


def get_config() -> IntegrationAuditConfig:
    """Get the global configuration instance, loading from file on first call."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def set_config(config: IntegrationAuditConfig | None) -> None:
    """Set (or reset, with None) the global configuration instance."""
    global _config
    _config = config
