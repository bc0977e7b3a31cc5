"""Lifecycle step names and the ``@step`` declaration used by plugins.

A *step* is a named, zero-argument notification broadcast through
:meth:`~keelson.plugins.registry.PluginRegistry.notify`. The framework fires
:data:`PRE_DISPATCH` and :data:`POST_DISPATCH` around every top-level
dispatch and :data:`EXECUTE` on the exceptions handler; modules and plugins
may broadcast any other step name (``disable`` is how a module switches the
layout off).

Plugins declare the steps they answer with the :func:`step` decorator. The
declarations are collected once per class, when the class is created, into
:attr:`~keelson.plugins.base.Plugin.steps`; notifying a plugin of a step it
does not declare is a silent no-op.

Example::

    class Stopwatch(Plugin):
        @step(PRE_DISPATCH)
        def start(self) -> None:
            self.started = time.monotonic()

        @step  # step name defaults to the method name
        def reset(self) -> None:
            self.started = None
"""

from __future__ import annotations

from typing import Any, Callable, Optional, TypeVar, Union, overload

PRE_DISPATCH = "preDispatch"
POST_DISPATCH = "postDispatch"
EXECUTE = "execute"
ENABLE = "enable"
DISABLE = "disable"

STEP_ATTRIBUTE = "__keelson_step__"

F = TypeVar("F", bound=Callable[..., Any])


@overload
def step(name: F) -> F: ...


@overload
def step(name: Optional[str] = None) -> Callable[[F], F]: ...


def step(name: Union[str, Callable[..., Any], None] = None) -> Any:
    """Declare the decorated method as the handler of a lifecycle step.

    Usable bare (``@step``, the step is named after the method) or with an
    explicit step name (``@step("postDispatch")``).
    """

    def decorate(func: F, step_name: Optional[str] = None) -> F:
        setattr(func, STEP_ATTRIBUTE, step_name or func.__name__)
        return func

    if callable(name):
        return decorate(name)
    return lambda func: decorate(func, name)


def collect_steps(cls: type) -> dict[str, str]:
    """Return the ``{step name: method name}`` declarations of *cls* and its bases.

    Declarations from subclasses override those of their bases.
    """
    steps: dict[str, str] = {}
    for klass in reversed(cls.__mro__):
        for attr, value in vars(klass).items():
            step_name = getattr(value, STEP_ATTRIBUTE, None)
            if isinstance(step_name, str):
                steps[step_name] = attr
    return steps
