"""Provider manifest registry."""

from integration_audit.registry.manifests import ManifestRegistry, get_default_registry

__all__ = [
    "ManifestRegistry",
    "get_default_registry",
]
