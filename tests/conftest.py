"""Shared test fixtures for integration-audit tests."""

from collections.abc import AsyncIterator, Callable
from typing import Any

import httpx
import pytest

from integration_audit.models.manifest import CheckDefinition, Manifest
from integration_audit.utils.config import IntegrationAuditConfig, set_config


@pytest.fixture(autouse=True)
def default_config():
    """Use default configuration instead of any config file on the machine."""
    config = IntegrationAuditConfig()
    set_config(config)
    yield config
    set_config(None)


@pytest.fixture
def sleeps() -> list[float]:
    """Delays requested by the code under test."""
    return []


@pytest.fixture
def record_sleep(sleeps: list[float]) -> Callable[[float], Any]:
    """An async sleep that records the delay instead of waiting."""

    async def sleep(delay: float) -> None:
        sleeps.append(delay)

    return sleep


@pytest.fixture
async def make_client() -> AsyncIterator[Callable[..., httpx.AsyncClient]]:
    """Build AsyncClients served by a MockTransport handler, closed after the test."""
    clients: list[httpx.AsyncClient] = []

    def factory(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        clients.append(client)
        return client

    yield factory

    for client in clients:
        await client.aclose()


async def noop_check(ctx: Any) -> None:
    """Check that records nothing."""


@pytest.fixture
def make_manifest() -> Callable[..., Manifest]:
    """Build a manifest with sensible defaults."""

    def factory(**overrides: Any) -> Manifest:
        data: dict[str, Any] = {
            "id": "github",
            "name": "GitHub",
            "base_url": "https://api.example.com",
            "default_headers": {"Accept": "application/json"},
            "auth": {"type": "oauth2"},
            "checks": [CheckDefinition(id="noop", name="No-op", run=noop_check)],
        }
        data.update(overrides)
        return Manifest(**data)

    return factory


@pytest.fixture
def manifest(make_manifest) -> Manifest:
    """Default OAuth2 manifest."""
    return make_manifest()
