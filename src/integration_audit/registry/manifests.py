"""Registry of loaded provider manifests."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

from integration_audit.core.manifest import load_manifests
from integration_audit.models.manifest import Manifest


class ManifestRegistry:
    """Registry for looking up provider manifests.

    Example:
        registry = ManifestRegistry()
        registry.load_directory("manifests/")

        github = registry["github"]
        for manifest in registry.by_category("source-control"):
            print(manifest.display_name)
    """

    def __init__(self) -> None:
        self._manifests: dict[str, Manifest] = {}

    def register(self, manifest: Manifest) -> None:
        """Register a manifest.

        Raises:
            ValueError: If a manifest with the same id is already registered
        """
        if manifest.id in self._manifests:
            raise ValueError(f"Manifest '{manifest.id}' is already registered")
        self._manifests[manifest.id] = manifest

    def unregister(self, manifest_id: str) -> None:
        """Unregister a manifest by id.

        Raises:
            KeyError: If no manifest with that id is registered
        """
        if manifest_id not in self._manifests:
            raise KeyError(f"No manifest '{manifest_id}' is registered")
        del self._manifests[manifest_id]

    def load_directory(self, directory: Path | str) -> list[Manifest]:
        """Load and register every manifest file in a directory."""
        manifests = load_manifests(directory)
        for manifest in manifests:
            self.register(manifest)
        return manifests

    def get(self, manifest_id: str) -> Manifest | None:
        return self._manifests.get(manifest_id)

    def __getitem__(self, manifest_id: str) -> Manifest:
        if manifest_id not in self._manifests:
            raise KeyError(f"No manifest '{manifest_id}' is registered")
        return self._manifests[manifest_id]

    def __contains__(self, manifest_id: str) -> bool:
        return manifest_id in self._manifests

    def __iter__(self) -> Iterator[Manifest]:
        return iter(self._manifests.values())

    def __len__(self) -> int:
        return len(self._manifests)

    @property
    def ids(self) -> list[str]:
        """Get ids of all registered manifests."""
        return list(self._manifests.keys())

    def active(self) -> list[Manifest]:
        """Manifests with ``is_active`` set."""
        return [m for m in self._manifests.values() if m.is_active]

    def by_category(self, category: str) -> list[Manifest]:
        return [m for m in self._manifests.values() if m.category == category]

    def clear(self) -> None:
        """Remove all registered manifests."""
        self._manifests.clear()


_default_registry: ManifestRegistry | None = None


def get_default_registry() -> ManifestRegistry:
    """Get the default global manifest registry."""
    global _default_registry
    if _default_registry is None:
        _default_registry = ManifestRegistry()
    return _default_registry
