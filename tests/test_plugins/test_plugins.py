"""Tests for the plugin base class, step declarations and the plugin registry."""

from __future__ import annotations

from abc import abstractmethod

import pytest

from keelson.config import Configuration
from keelson.exceptions import (
    ConfigurationKeyError,
    ConfigurationTypeError,
    PluginResolutionError,
)
from keelson.http import Request, Response
from keelson.plugins import (
    POST_DISPATCH,
    PRE_DISPATCH,
    Plugin,
    PluginRegistry,
    plugin_factory,
    step,
)
from keelson.plugins.hooks import collect_steps


# ---------------------------------------------------------------------------
# Test helpers -- concrete Plugin subclasses
# ---------------------------------------------------------------------------


class SilentPlugin(Plugin):
    """Declares no step at all."""


class CountingPlugin(Plugin):
    """Counts the steps it receives."""

    def init(self) -> None:
        self.calls: list[str] = []

    @step(PRE_DISPATCH)
    def before(self) -> None:
        self.calls.append(PRE_DISPATCH)

    @step(POST_DISPATCH)
    def after(self) -> None:
        self.calls.append(POST_DISPATCH)


class OverridingPlugin(CountingPlugin):
    """Overrides a step handler without re-declaring it."""

    def after(self) -> None:
        self.calls.append("overridden")


class RenamingPlugin(CountingPlugin):
    """Moves postDispatch to another method."""

    @step(POST_DISPATCH)
    def finish(self) -> None:
        self.calls.append("finish")


class AbstractPlugin(Plugin):
    @abstractmethod
    def required(self) -> None: ...


class NotAPlugin:
    pass


@pytest.fixture
def registered_plugins():
    """Register the helper plugins under the sample project's plugin root."""
    root = "sample_app.plugins"
    plugin_factory.register(root, "CountingPlugin", CountingPlugin)
    plugin_factory.register(root, "SilentPlugin", SilentPlugin)
    yield root
    plugin_factory.unregister(root, "CountingPlugin")
    plugin_factory.unregister(root, "SilentPlugin")


def _registry(settings: dict, tmp_path=None) -> PluginRegistry:
    settings = {"project": "sample_app", "layout": "Index", **settings}
    return PluginRegistry(Request("Home"), Response(), Configuration(settings, tmp_path or "."))


# ---------------------------------------------------------------------------
# Step declarations
# ---------------------------------------------------------------------------


class TestStepDeclarations:
    def test_named_step(self):
        assert dict(CountingPlugin.steps) == {PRE_DISPATCH: "before", POST_DISPATCH: "after"}

    def test_bare_step_uses_method_name(self):
        class Audit(Plugin):
            @step
            def audit(self) -> None:
                pass

        assert dict(Audit.steps) == {"audit": "audit"}

    def test_plugin_without_steps(self):
        assert dict(SilentPlugin.steps) == {}

    def test_override_keeps_base_declaration(self):
        assert OverridingPlugin.steps[POST_DISPATCH] == "after"

    def test_subclass_declaration_wins(self):
        assert RenamingPlugin.steps[POST_DISPATCH] == "finish"
        assert RenamingPlugin.steps[PRE_DISPATCH] == "before"

    def test_steps_are_read_only(self):
        with pytest.raises(TypeError):
            CountingPlugin.steps["other"] = "before"  # type: ignore[index]

    def test_collect_steps_on_plain_class(self):
        class Holder:
            @step("custom")
            def handler(self) -> None:
                pass

        assert collect_steps(Holder) == {"custom": "handler"}


# ---------------------------------------------------------------------------
# Plugin base class
# ---------------------------------------------------------------------------


class TestPluginBase:
    def _make(self, cls: type[Plugin]) -> Plugin:
        registry = _registry({})
        return cls(registry.request, registry.response, registry.config, registry)

    def test_constructor_binds_collaborators_and_calls_init(self):
        plugin = self._make(CountingPlugin)
        assert plugin.calls == []
        assert plugin.request.module_name == "Home"
        assert plugin.response.content == ""
        assert plugin.config.project == "sample_app"

    def test_name_is_class_name(self):
        assert self._make(CountingPlugin).name == "CountingPlugin"

    def test_update_runs_declared_step(self):
        plugin = self._make(CountingPlugin)
        assert plugin.update(PRE_DISPATCH) is True
        assert plugin.calls == [PRE_DISPATCH]

    def test_update_ignores_undeclared_step(self):
        plugin = self._make(SilentPlugin)
        assert plugin.update(PRE_DISPATCH) is False

    def test_update_uses_override(self):
        plugin = self._make(OverridingPlugin)
        plugin.update(POST_DISPATCH)
        assert plugin.calls == ["overridden"]

    def test_implements(self):
        plugin = self._make(CountingPlugin)
        assert plugin.implements(PRE_DISPATCH)
        assert not plugin.implements("execute")


# ---------------------------------------------------------------------------
# Registry loading and ordering
# ---------------------------------------------------------------------------


class TestRegistryLoading:
    def test_project_plugins_then_system_plugins(self):
        registry = _registry(
            {
                "plugins": ["Recorder", "Auditor"],
                "systemPlugins": ["ExceptionsHandler", "LayoutRenderer"],
            }
        )
        registry.load_plugins()
        assert registry.names == ["Recorder", "Auditor", "LayoutRenderer", "ExceptionsHandler"]

    def test_exceptions_handler_is_last_wherever_declared(self):
        registry = _registry({"systemPlugins": ["LayoutRenderer", "ExceptionsHandler"]})
        registry.load_plugins()
        assert registry.names == ["LayoutRenderer", "ExceptionsHandler"]

    def test_absent_keys_give_empty_registry(self):
        registry = _registry({})
        registry.load_plugins()
        assert len(registry) == 0
        assert registry.names == []

    def test_mapping_values_are_used(self):
        registry = _registry({"plugins": {"first": "Recorder", "second": "Auditor"}})
        registry.load_plugins()
        assert registry.names == ["Recorder", "Auditor"]

    def test_name_in_both_lists_fails_and_leaves_registry_empty(self):
        registry = _registry(
            {"plugins": ["LayoutRenderer"], "systemPlugins": ["ExceptionsHandler", "LayoutRenderer"]}
        )
        with pytest.raises(ConfigurationKeyError):
            registry.load_plugins()
        assert len(registry) == 0
        assert not registry.has("ExceptionsHandler")

    def test_name_twice_in_one_list_is_loaded_once(self):
        registry = _registry(
            {
                "plugins": ["Recorder", "Auditor", "Recorder"],
                "systemPlugins": ["LayoutRenderer", "LayoutRenderer"],
            }
        )
        registry.load_plugins()
        assert registry.names == ["Recorder", "Auditor", "LayoutRenderer"]

    def test_scalar_plugins_value_is_a_type_error(self):
        registry = _registry({"plugins": "Recorder"})
        with pytest.raises(ConfigurationTypeError):
            registry.load_plugins()

    def test_unknown_plugin(self):
        registry = _registry({"plugins": ["Nonexistent"]})
        with pytest.raises(PluginResolutionError, match="doesn't exist"):
            registry.load_plugins()

    def test_unknown_plugin_keeps_exceptions_handler(self):
        registry = _registry({"plugins": ["Nonexistent"], "systemPlugins": ["ExceptionsHandler"]})
        with pytest.raises(PluginResolutionError):
            registry.load_plugins()
        assert registry.names == ["ExceptionsHandler"]

    def test_registered_type_is_used(self, registered_plugins):
        registry = _registry({"plugins": ["CountingPlugin"]})
        registry.load_plugins()
        assert isinstance(registry.get("CountingPlugin"), CountingPlugin)

    def test_type_not_extending_plugin(self):
        with pytest.raises(PluginResolutionError, match="doesn't extend"):
            plugin_factory.register("sample_app.plugins", "NotAPlugin", NotAPlugin)  # type: ignore[arg-type]

    def test_abstract_type(self):
        with pytest.raises(PluginResolutionError, match="isn't instantiable"):
            plugin_factory.register("sample_app.plugins", "AbstractPlugin", AbstractPlugin)

    def test_plugins_share_the_registry(self):
        registry = _registry({"plugins": ["Recorder"]})
        registry.load_plugins()
        assert registry.get("Recorder").plugins is registry


# ---------------------------------------------------------------------------
# Registry access and notification
# ---------------------------------------------------------------------------


class TestRegistryNotify:
    @pytest.fixture
    def registry(self, registered_plugins) -> PluginRegistry:
        registry = _registry(
            {
                "plugins": ["Recorder", "CountingPlugin", "SilentPlugin"],
                "systemPlugins": ["LayoutRenderer"],
            }
        )
        registry.load_plugins()
        return registry

    def test_get_unknown_name(self, registry):
        with pytest.raises(PluginResolutionError):
            registry.get("Missing")

    def test_contains_and_iter(self, registry):
        assert "Recorder" in registry
        assert [plugin.name for plugin in registry] == registry.names

    def test_notify_all(self, registry):
        registry.notify(PRE_DISPATCH)
        assert registry.get("Recorder").seen == [PRE_DISPATCH]
        assert registry.get("CountingPlugin").calls == [PRE_DISPATCH]

    def test_notify_filtered_to_one_plugin(self, registry):
        registry.get("LayoutRenderer").enabled = False
        registry.notify(POST_DISPATCH, ["CountingPlugin"])
        assert registry.get("CountingPlugin").calls == [POST_DISPATCH]
        assert registry.get("Recorder").seen == []

    def test_filtered_notify_follows_registry_order(self):
        calls: list[str] = []

        class First(Plugin):
            @step
            def audit(self) -> None:
                calls.append("First")

        class Second(Plugin):
            @step
            def audit(self) -> None:
                calls.append("Second")

        root = "sample_app.plugins"
        plugin_factory.register(root, "First", First)
        plugin_factory.register(root, "Second", Second)
        try:
            registry = _registry({"plugins": ["First", "Second"]})
            registry.load_plugins()
            registry.notify("audit", ["Second", "First"])
        finally:
            plugin_factory.unregister(root, "First")
            plugin_factory.unregister(root, "Second")
        assert calls == ["First", "Second"]

    def test_unknown_names_in_filter_are_ignored(self, registry):
        registry.notify(PRE_DISPATCH, ["Missing"])
        assert registry.get("Recorder").seen == []

    def test_undeclared_step_is_skipped(self, registry):
        registry.notify("nobody-handles-this")
        assert registry.get("CountingPlugin").calls == []

    def test_pre_and_post_dispatch(self, registry):
        registry.get("LayoutRenderer").enabled = False
        registry.pre_dispatch()
        registry.post_dispatch()
        assert registry.get("CountingPlugin").calls == [PRE_DISPATCH, POST_DISPATCH]
        assert registry.response.headers["X-Recorder"] == "preDispatch,postDispatch"

    def test_plugin_failure_propagates(self, registry):
        class Exploding(Plugin):
            @step(PRE_DISPATCH)
            def explode(self) -> None:
                raise RuntimeError("plugin failed")

        plugin_factory.register("sample_app.plugins", "Exploding", Exploding)
        try:
            failing = _registry({"plugins": ["Exploding"]})
            failing.load_plugins()
            with pytest.raises(RuntimeError, match="plugin failed"):
                failing.pre_dispatch()
        finally:
            plugin_factory.unregister("sample_app.plugins", "Exploding")

    def test_plugin_notify_shortcut(self, registry):
        registry.get("CountingPlugin").notify("audit", ["Recorder"])
        assert registry.get("Recorder").seen == ["audit"]
