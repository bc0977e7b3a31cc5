"""keelson -- the request lifecycle of a small MVC web framework.

A request flows through a fixed pipeline::

    FrontController
        -> PluginRegistry.load_plugins()
        -> notify("preDispatch")
        -> Dispatcher.dispatch()     # pre_execute, execute, post_execute, finalize
        -> notify("postDispatch")    # LayoutRenderer wraps the content
        -> send_response()

Handlers ("modules") and plugins are located by name from the project's
import package; views are Jinja2 templates composed from an action view,
partial views, nested action views and a layout. Failures are handled once,
at the front controller, by the ``ExceptionsHandler`` plugin.

Modules:
    application: WSGI application and per-host configuration selection.
    app: Typer command line (``keelson serve``, ``request``, ``plugins``).
    config: Configuration files and typed reads.
    front_controller: The per-request orchestrator and recovery boundary.
    dispatcher: Module resolution and the four-phase lifecycle.
    module: The ``Module`` base class and the ``@action`` decorator.
    renderer: Template rendering with partial and action views.
    plugins: Plugin base class, registry and the system plugins.
    exceptions: Exception hierarchy with exit-code mapping.
"""

__version__ = "0.1.0"
