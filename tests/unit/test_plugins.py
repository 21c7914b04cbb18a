"""Unit tests for the plugin system."""

import json
import os.path

import pytest

from integration_audit.auth.builders import AuthParams, _builders, get_auth_builder
from integration_audit.registry import ManifestRegistry
from integration_audit.utils.plugins import (
    Plugin,
    PluginContext,
    PluginManager,
    get_plugin_manager,
    load_object,
)


class MockPlugin:
    """A mock plugin for testing."""

    name = "mock-plugin"
    version = "1.0.0"

    def __init__(self):
        self.initialized = False
        self.cleaned_up = False
        self.context = None

    def init(self, context: PluginContext) -> None:
        self.initialized = True
        self.context = context

    def cleanup(self) -> None:
        self.cleaned_up = True


class TestLoadObject:
    """Tests for resolving module:attribute references."""

    def test_valid_references(self):
        assert load_object("json:dumps") is json.dumps
        assert load_object("os.path:join") is os.path.join

    def test_dotted_attribute(self):
        assert load_object("json:JSONDecoder.decode") is json.JSONDecoder.decode

    def test_malformed(self):
        for reference in ["json.dumps", ":dumps", "json:"]:
            with pytest.raises(ValueError, match="Invalid reference"):
                load_object(reference)

    def test_missing_module(self):
        with pytest.raises(ValueError, match="Failed to import"):
            load_object("definitely_not_a_module_xyz:run")

    def test_missing_attribute(self):
        with pytest.raises(ValueError, match="no attribute"):
            load_object("json:nope")


class TestPluginContext:
    """Tests for PluginContext."""

    @pytest.fixture
    def registry(self):
        return ManifestRegistry()

    @pytest.fixture
    def context(self, registry):
        return PluginContext(registry)

    def test_register_manifest(self, context, registry, manifest):
        """Test manifests are added to the registry."""
        context.register_manifest(manifest)
        assert registry["github"] is manifest
        assert context.registry is registry

    def test_register_auth_builder(self, context):
        """Test new auth types can be registered."""

        class HmacBuilder:
            def build(self, strategy, credentials, access_token=None):
                return AuthParams(headers={"X-Signature": "sig"})

        builder = HmacBuilder()
        try:
            context.register_auth_builder("hmac", builder)
            assert get_auth_builder("hmac") is builder
        finally:
            _builders.pop("hmac", None)


class TestPluginManager:
    """Tests for PluginManager."""

    @pytest.fixture
    def registry(self):
        return ManifestRegistry()

    @pytest.fixture
    def manager(self, registry):
        return PluginManager(PluginContext(registry))

    def test_mock_plugin_implements_protocol(self):
        assert isinstance(MockPlugin(), Plugin)

    def test_register_module_plugin(self, manager):
        """Test a module exposing a 'plugin' instance."""

        class Module:
            plugin = MockPlugin()

        manager._register_module_plugin(Module, "test")
        assert manager.loaded_plugins == ["mock-plugin"]
        assert Module.plugin.initialized
        assert Module.plugin.context is manager.context

    def test_register_plugin_class(self, manager):
        """Test a module exposing a 'Plugin' class."""

        class Module:
            Plugin = MockPlugin

        manager._register_module_plugin(Module, "test")
        assert manager.get_plugin("mock-plugin").initialized

    def test_no_plugin(self, manager):
        class Module:
            pass

        with pytest.raises(ValueError, match="No plugin found"):
            manager._register_module_plugin(Module, "test")

    def test_duplicate(self, manager):
        class Module:
            plugin = MockPlugin()

        manager._register_module_plugin(Module, "test")
        with pytest.raises(ValueError, match="already loaded"):
            manager._register_module_plugin(Module, "test")

    def test_unload(self, manager):
        class Module:
            plugin = MockPlugin()

        manager._register_module_plugin(Module, "test")
        manager.unload_plugin("mock-plugin")
        assert Module.plugin.cleaned_up
        assert manager.loaded_plugins == []
        with pytest.raises(KeyError):
            manager.unload_plugin("mock-plugin")

    def test_load_missing_module(self, manager):
        with pytest.raises(ImportError):
            manager.load_plugin("definitely_not_a_module_xyz")

    def test_load_from_path(self, manager, registry, tmp_path):
        """Test a plugin file registering a manifest."""
        plugin_file = tmp_path / "slack_plugin.py"
        plugin_file.write_text(
            "from integration_audit.models.manifest import Manifest\n"
            "\n"
            "class Plugin:\n"
            "    name = 'slack'\n"
            "    version = '0.1.0'\n"
            "\n"
            "    def init(self, context):\n"
            "        context.register_manifest(Manifest(id='slack', auth={'type': 'oauth2'}))\n"
            "\n"
            "    def cleanup(self):\n"
            "        pass\n"
        )
        manager.load_plugin_from_path(plugin_file)
        assert "slack" in registry
        assert manager.loaded_plugins == ["slack"]

    def test_load_from_missing_path(self, manager, tmp_path):
        with pytest.raises(FileNotFoundError):
            manager.load_plugin_from_path(tmp_path / "missing.py")

    def test_load_configured(self, manager, registry, tmp_path):
        """Test configured entries ending in .py load from files."""
        plugin_file = tmp_path / "noop_plugin.py"
        plugin_file.write_text(
            "class Plugin:\n"
            "    name = 'noop'\n"
            "    version = '1'\n"
            "    def init(self, context):\n"
            "        pass\n"
            "    def cleanup(self):\n"
            "        pass\n"
        )
        manager.load_configured([str(plugin_file)])
        assert manager.loaded_plugins == ["noop"]

    def test_global_manager(self):
        assert get_plugin_manager() is get_plugin_manager()
