"""End-to-end tests of the front controller on the sample project."""

from __future__ import annotations

import io

import pytest

from keelson.application import make_environ
from keelson.exceptions import (
    ConfigurationKeyError,
    DataSourceError,
    RoutingError,
    ViewNotFoundError,
)
from keelson.front_controller import FrontController
from keelson.http import Response


@pytest.fixture
def run(site_config):
    """Run a request for *path* and return the controller."""

    def _run(path: str = "", config=None, **environ) -> FrontController:
        controller = FrontController(config or site_config, make_environ(path, **environ))
        controller.execute()
        return controller

    return _run


def _no_handler(make_config):
    return make_config(systemPlugins=["LayoutRenderer"])


# ---------------------------------------------------------------------------
# Successful requests
# ---------------------------------------------------------------------------


class TestPages:
    def test_default_module_with_layout(self, run):
        response = run().response
        assert response.status == "200 OK"
        assert response.content.startswith("<!DOCTYPE html>")
        assert '<p class="message">Welcome to your new project.</p>' in response.content
        assert 'content="A small MVC framework"' in response.content
        assert 'href="/assets/site.css"' in response.content

    def test_plugins_are_notified_once(self, run):
        controller = run("Blog/list")
        assert controller.response.headers["X-Recorder"] == "preDispatch,postDispatch"
        assert controller.plugins.names == ["Recorder", "LayoutRenderer", "ExceptionsHandler"]

    def test_composed_page(self, run):
        content = run("Blog/list").response.content
        assert "<li>Hello world</li><li>Second post</li>" in content
        assert "<h2>Archives</h2><p>Thanks for reading</p>" in content
        assert '<p class="owner">sample</p>' in content
        assert '<p class="latest">Latest 5</p>' in content
        assert 'href="Blog/show/id/1/"' in content
        assert content.rstrip().endswith("</html>")

    def test_routed_parameters(self, run):
        content = run("Home/greet/name/Ada").response.content
        assert '<p class="greeting">Hello, Ada!</p>' in content

    def test_disabled_action_rendering_is_still_wrapped(self, run):
        content = run("Blog/raw").response.content
        assert content.startswith("<!DOCTYPE html>")
        assert "raw body" in content

    def test_disabled_layout(self, run):
        assert run("Blog/plain").response.content == "<span>plain</span>\n"

    def test_nested_action_disables_outer_layout(self, run):
        assert run("Blog/embed").response.content == "<div><span>plain</span>\n</div>\n"

    def test_layout_switch(self, run):
        assert run("Blog/minimal").response.content == "<main><span>plain</span>\n</main>\n"

    def test_configured_layout(self, run, make_config):
        config = make_config(layout="Minimal")
        content = run("Home", config).response.content
        assert content == '<main><p class="message">Welcome to your new project.</p>\n</main>\n'

    def test_data_sources_are_built(self, run):
        controller = run("Blog/show/id/2")
        assert controller.response.content.count("<h1>Second post</h1>") == 1
        assert controller.plugins.data_sources is controller.data_sources
        assert len(controller.data_sources) == 1

    def test_send_response(self, run):
        controller = run("Blog/plain")
        buffer = io.StringIO()
        controller.send_response(buffer)
        assert buffer.getvalue() == "<span>plain</span>\n"

    def test_protocol_comes_from_environ(self, run):
        assert run().response.protocol == "HTTP/1.0"


# ---------------------------------------------------------------------------
# Status signals
# ---------------------------------------------------------------------------


class TestStatusSignals:
    def test_unknown_module(self, run):
        response = run("Nowhere").response
        assert response.status == "404 Not found"
        assert response.content == "Not found"

    def test_unknown_action(self, run):
        assert run("Blog/unknown").response.status == "404 Not found"

    def test_signal_from_action_skips_layout(self, run):
        controller = run("Blog/show/id/9")
        assert controller.response.status == "404 Post not found"
        assert controller.response.content == "Post not found"
        assert controller.response.headers["X-Recorder"] == "preDispatch"

    def test_signal_without_exceptions_handler(self, run, make_config):
        response = run("Nowhere", _no_handler(make_config)).response
        assert response.status == "404 Not found"
        assert response.content == "Not found"


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


class TestFailures:
    def test_failure_becomes_500(self, run):
        response = run("Blog/broken").response
        assert response.status == "500 Internal Server Error"
        assert response.content == ""

    def test_debug_view(self, run, make_config):
        response = run("Blog/broken", make_config(debug=True)).response
        assert response.status_code == 500
        assert "builtins.ValueError" in response.content
        assert "<pre>boom</pre>" in response.content

    def test_missing_view(self, run):
        assert run("Blog/nowhere").response.status_code == 500

    def test_failure_without_exceptions_handler(self, make_config):
        controller = FrontController(_no_handler(make_config), make_environ("Blog/broken"))
        with pytest.raises(ValueError, match="boom"):
            controller.execute()

    def test_missing_view_without_exceptions_handler(self, make_config):
        controller = FrontController(_no_handler(make_config), make_environ("Blog/nowhere"))
        with pytest.raises(ViewNotFoundError):
            controller.execute()

    def test_no_module(self, run, make_config):
        assert run("", make_config(module=None)).response.status_code == 500

    def test_no_module_without_exceptions_handler(self, make_config):
        config = make_config(module=None, systemPlugins=None)
        with pytest.raises(RoutingError):
            FrontController(config, make_environ("")).execute()

    def test_data_source_mismatch(self, run, make_config):
        assert run("Home", make_config(dsns={})).response.status_code == 500

    def test_data_source_mismatch_without_exceptions_handler(self, make_config):
        config = make_config(dsns={}, systemPlugins=["LayoutRenderer"])
        with pytest.raises(DataSourceError):
            FrontController(config, make_environ("Home")).execute()

    def test_plugin_failing_to_load_is_handled(self, run, make_config):
        controller = run("Home", make_config(plugins=["Nonexistent"]))
        assert controller.response.status_code == 500
        assert controller.plugins.names[-1] == "ExceptionsHandler"
        assert "Recorder" not in controller.plugins

    def test_colliding_plugin_names_escape(self, make_config):
        config = make_config(plugins=["LayoutRenderer"])
        with pytest.raises(ConfigurationKeyError):
            FrontController(config, make_environ("Home")).execute()

    def test_fresh_response_before_execute(self, site_config):
        controller = FrontController(site_config, make_environ("Home"))
        assert isinstance(controller.response, Response)
        assert controller.request is None
        assert controller.plugins is None
