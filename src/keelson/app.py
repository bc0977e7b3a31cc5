"""The ``keelson`` command line.

Commands:

* ``keelson serve ROOT`` -- serve a project with the ``wsgiref``
  development server.
* ``keelson request ROOT PATH`` -- run one request through the project and
  print the response body (status line on stderr).
* ``keelson plugins ROOT`` -- show the plugins a request would load, in
  notification order.

``main`` is the console script declared in ``pyproject.toml``. A
:class:`~keelson.exceptions.KeelsonError` ends the process with the error's
``exit_code``; any other failure is written to a crash report under the
data directory.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer

from keelson import __version__
from keelson.exit_codes import EXIT_GENERIC_FAILURE

INTERRUPTED = 130

app = typer.Typer(
    name="keelson",
    help="Run and inspect keelson web projects.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

ProjectRoot = typer.Argument(..., exists=True, file_okay=False, help="Project directory.")
HostOption = typer.Option(None, "--host", help="Host name used to pick the configuration file.")


def _show_version(value: bool) -> None:
    if value:
        typer.echo(f"keelson {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", callback=_show_version, is_eager=True, help="Show version and exit."
    ),
    as_json: bool = typer.Option(False, "--json", help="Print tables as JSON."),
    as_plain: bool = typer.Option(False, "--plain", help="Print tables as tab-separated text."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colour."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Hide status lines and notes."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging."),
) -> None:
    """Install the output manager and remember the logging flags."""
    from keelson.output import OutputFormat, OutputManager, set_output

    table_format = OutputFormat.AUTO
    if as_json:
        table_format = OutputFormat.JSON
    elif as_plain:
        table_format = OutputFormat.PLAIN
    set_output(OutputManager(table_format, no_color=no_color, quiet=quiet, verbose=verbose))
    ctx.obj = {"verbose": verbose, "no_color": no_color}


def _start_logging(ctx: typer.Context, root: Path) -> None:
    from keelson.log import configure_logging

    flags = ctx.obj or {}
    configure_logging(root, verbose=flags.get("verbose", False), no_color=flags.get("no_color", False))


def _fields(pairs: list[str]) -> dict[str, str]:
    """Turn repeated ``key=value`` options into a mapping."""
    fields: dict[str, str] = {}
    for pair in pairs:
        key, separator, value = pair.partition("=")
        if not (separator and key):
            raise typer.BadParameter(f"Expected key=value, got '{pair}'")
        fields[key] = value
    return fields


@app.command()
def serve(
    ctx: typer.Context,
    root: Path = ProjectRoot,
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind."),
    port: int = typer.Option(8000, "--port", help="Port to listen on."),
) -> None:
    """Serve the project at ROOT with the development server."""
    from wsgiref.simple_server import make_server

    from keelson.application import Application
    from keelson.output import get_output

    _start_logging(ctx, root)
    with make_server(host, port, Application(root)) as server:
        get_output().note(f"Serving {root} on http://{host}:{port}/ (Ctrl-C to stop)")
        server.serve_forever()


@app.command()
def request(
    ctx: typer.Context,
    root: Path = ProjectRoot,
    path: str = typer.Argument("", help="Request path: module/action/key/value/..."),
    post: list[str] = typer.Option([], "--post", "-d", help="Form field as key=value."),
    cookie: list[str] = typer.Option([], "--cookie", "-b", help="Cookie as key=value."),
    host: Optional[str] = HostOption,
) -> None:
    """Run one request through the project at ROOT and print the body.

    Exits with 4 when the response status is 4xx and 5 when it is 5xx.
    """
    from keelson.application import Application, make_environ
    from keelson.exceptions import HttpStatusSignal
    from keelson.output import get_output

    _start_logging(ctx, root)
    output = get_output()
    environ = make_environ(path, _fields(post), host, _fields(cookie))
    output.trace(f"Requesting '{path or '/'}' from {root}")
    response, body = Application(root).handle(environ)

    output.write_body(body)
    output.status(response.status_line, response.status_code)
    if response.status_code >= 400:
        raise typer.Exit(HttpStatusSignal(response.status_code, response.reason).exit_code)


@app.command()
def plugins(ctx: typer.Context, root: Path = ProjectRoot, host: Optional[str] = HostOption) -> None:
    """List the plugins loaded for a request to ROOT, in notification order."""
    from keelson.application import ensure_importable
    from keelson.config import load_configuration
    from keelson.http import Request, Response
    from keelson.output import get_output
    from keelson.plugins import PluginRegistry

    _start_logging(ctx, root)
    ensure_importable(root)
    config = load_configuration(root, host)
    registry = PluginRegistry(Request(), Response(), config)
    registry.load_plugins()

    rows = [
        [str(position), plugin.name, f"{type(plugin).__module__}.{type(plugin).__qualname__}", ", ".join(plugin.steps)]
        for position, plugin in enumerate(registry, start=1)
    ]
    get_output().write_rows(["#", "Plugin", "Type", "Steps"], rows, title=f"Plugins of {config.project}")


# --- entry point ---


def _on_interrupt(signum: int, frame: object) -> None:
    sys.stderr.write("\nStopped.\n")
    sys.exit(INTERRUPTED)


def _save_crash_report() -> Path:
    """Write the current traceback under the data directory and return its path."""
    from keelson.config import get_data_dir

    reports = get_data_dir() / "logs"
    reports.mkdir(parents=True, exist_ok=True)
    report = reports / f"crash-{datetime.now():%Y%m%d-%H%M%S}.log"
    report.write_text(traceback.format_exc(), encoding="utf-8")
    return report


def main() -> None:
    """Run the command line and exit with the resulting status."""
    from keelson.exceptions import KeelsonError
    from keelson.output import get_output

    signal.signal(signal.SIGINT, _on_interrupt)
    try:
        app()
    except KeelsonError as exc:
        get_output().fail(str(exc))
        sys.exit(exc.exit_code)
    except KeyboardInterrupt:
        sys.exit(INTERRUPTED)
    except Exception:
        report = _save_crash_report()
        get_output().fail(f"Unexpected error, details in {report}")
        sys.exit(EXIT_GENERIC_FAILURE)
