"""Plugin system for integration-audit.

Plugins contribute provider manifests and auth strategies. Check routines
themselves are plain functions referenced from manifests as
``"package.module:function"`` and imported with ``load_object``.
"""

from __future__ import annotations

import importlib
import importlib.util
import sys
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from integration_audit.utils.logging import get_logger

logger = get_logger("plugins")


def load_object(reference: str) -> Any:
    """Import the object named by a ``"package.module:attribute"`` reference.

    Dotted attributes (``"pkg.mod:Class.method"``) are followed.

    Raises:
        ValueError: If the reference is malformed or cannot be resolved
    """
    module_name, sep, attr_path = reference.partition(":")
    if not sep or not module_name or not attr_path:
        raise ValueError(f"Invalid reference '{reference}', expected 'package.module:attribute'")

    try:
        obj: Any = importlib.import_module(module_name)
    except ImportError as e:
        raise ValueError(f"Failed to import module '{module_name}': {e}") from e

    for attr in attr_path.split("."):
        try:
            obj = getattr(obj, attr)
        except AttributeError as e:
            raise ValueError(f"'{module_name}' has no attribute '{attr_path}'") from e
    return obj


@runtime_checkable
class Plugin(Protocol):
    """Protocol for integration-audit plugins.

    Example:
        from my_checks.github import manifest

        class GitHubPlugin:
            name = "github"
            version = "1.0.0"

            def init(self, context: PluginContext) -> None:
                context.register_manifest(manifest)

            def cleanup(self) -> None:
                pass

        plugin = GitHubPlugin()
    """

    name: str
    version: str

    def init(self, context: "PluginContext") -> None:
        """Initialize the plugin.

        Args:
            context: Plugin context for registration
        """
        ...

    def cleanup(self) -> None:
        """Cleanup plugin resources."""
        ...


class PluginContext:
    """Context provided to plugins for registration."""

    def __init__(self, registry: Any = None) -> None:
        """Initialize the plugin context.

        Args:
            registry: ManifestRegistry to register into. Defaults to the global one.
        """
        if registry is None:
            from integration_audit.registry import get_default_registry

            registry = get_default_registry()
        self._registry = registry

    @property
    def registry(self) -> Any:
        return self._registry

    def register_manifest(self, manifest: Any) -> None:
        """Register a provider manifest.

        Args:
            manifest: Manifest instance
        """
        self._registry.register(manifest)
        logger.debug(f"Registered manifest: {manifest.id}")

    def register_auth_builder(self, auth_type: str, builder: Any) -> None:
        """Register a builder for a new auth strategy type.

        Args:
            auth_type: Value of the strategy's ``type`` field
            builder: Object implementing the AuthBuilder protocol
        """
        from integration_audit.auth.builders import register_auth_builder

        register_auth_builder(auth_type, builder)
        logger.debug(f"Registered auth builder: {auth_type}")


class PluginManager:
    """Manager for loading and managing plugins.

    Example:
        manager = PluginManager()
        manager.load_plugin("my_checks.plugin")
        manager.load_plugin_from_path("/path/to/plugin.py")
    """

    def __init__(self, context: PluginContext | None = None) -> None:
        """Initialize the plugin manager."""
        self._plugins: dict[str, Plugin] = {}
        self._context = context or PluginContext()

    @property
    def context(self) -> PluginContext:
        """Get the plugin context."""
        return self._context

    def load_plugin(self, module_name: str) -> None:
        """Load a plugin by module name.

        Raises:
            ImportError: If module cannot be imported
            ValueError: If module doesn't implement Plugin protocol
        """
        try:
            module = importlib.import_module(module_name)
        except ImportError as e:
            raise ImportError(f"Failed to import plugin module '{module_name}': {e}") from e

        self._register_module_plugin(module, module_name)

    def load_plugin_from_path(self, path: Path | str) -> None:
        """Load a plugin from a file path.

        Raises:
            FileNotFoundError: If file doesn't exist
            ValueError: If file doesn't implement Plugin protocol
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Plugin file not found: {path}")

        module_name = f"integration_audit_plugin_{path.stem}"
        spec = importlib.util.spec_from_file_location(module_name, path)
        if spec is None or spec.loader is None:
            raise ValueError(f"Cannot load plugin from: {path}")

        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        spec.loader.exec_module(module)

        self._register_module_plugin(module, str(path))

    def load_configured(self, plugins: list[str]) -> None:
        """Load plugins listed in configuration: module names or ``.py`` paths."""
        for entry in plugins:
            if entry.endswith(".py"):
                self.load_plugin_from_path(entry)
            else:
                self.load_plugin(entry)

    def _register_module_plugin(self, module: Any, source: str) -> None:
        plugin: Plugin | None = None

        if hasattr(module, "plugin"):
            plugin = module.plugin
        elif hasattr(module, "Plugin"):
            plugin = module.Plugin()

        if plugin is None:
            raise ValueError(
                f"No plugin found in '{source}'. "
                "Module must export a 'plugin' instance or a 'Plugin' class."
            )
        if not hasattr(plugin, "name") or not hasattr(plugin, "version"):
            raise ValueError(f"Plugin from '{source}' missing required 'name' or 'version'")
        if plugin.name in self._plugins:
            raise ValueError(f"Plugin '{plugin.name}' is already loaded")

        plugin.init(self._context)
        self._plugins[plugin.name] = plugin
        logger.info(f"Loaded plugin: {plugin.name} v{plugin.version}")

    def unload_plugin(self, name: str) -> None:
        """Unload a plugin by name.

        Raises:
            KeyError: If plugin is not loaded
        """
        if name not in self._plugins:
            raise KeyError(f"Plugin '{name}' is not loaded")

        plugin = self._plugins.pop(name)
        plugin.cleanup()
        logger.info(f"Unloaded plugin: {name}")

    def get_plugin(self, name: str) -> Plugin | None:
        return self._plugins.get(name)

    @property
    def loaded_plugins(self) -> list[str]:
        """Get names of all loaded plugins."""
        return list(self._plugins.keys())


_plugin_manager: PluginManager | None = None


def get_plugin_manager() -> PluginManager:
    """Get the global plugin manager."""
    global _plugin_manager
    if _plugin_manager is None:
        _plugin_manager = PluginManager()
    return _plugin_manager
