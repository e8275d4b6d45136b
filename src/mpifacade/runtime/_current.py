"""The process-wide current runtime.

``get_runtime()`` creates the runtime selected by ``FacadeSettings.runtime``
on first use. Tests swap it with ``set_runtime()`` or ``use_runtime()``.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager

from mpifacade.core.logging import get_logger
from mpifacade.core.settings import FacadeSettings, get_settings
from mpifacade.runtime._types import Runtime

logger = get_logger(__name__)

_lock = threading.Lock()
_current: Runtime | None = None


def create_runtime(settings: FacadeSettings | None = None) -> Runtime:
    """Build the runtime named by *settings* (defaults to ``get_settings()``)."""
    settings = settings or get_settings()
    if settings.runtime == "stub":
        from mpifacade.runtime._base import StubRuntime

        return StubRuntime(world_size=settings.stub_world_size, universe_size=settings.stub_universe_size)

    from mpifacade.runtime.mpi4py_runtime import Mpi4pyRuntime

    return Mpi4pyRuntime(
        auto_initialize=settings.mpi4py_auto_initialize,
        auto_finalize=settings.mpi4py_auto_finalize,
    )


def get_runtime() -> Runtime:
    """Return the current runtime, creating it from settings if needed."""
    global _current
    with _lock:
        if _current is None:
            _current = create_runtime()
            logger.debug("runtime_selected", runtime=_current.runtime_name)
        return _current


def peek_runtime() -> Runtime | None:
    """Return the current runtime without creating one."""
    return _current


def set_runtime(runtime: Runtime | None) -> Runtime | None:
    """Install *runtime* as the current runtime and return the previous one."""
    global _current
    with _lock:
        previous, _current = _current, runtime
    return previous


@contextmanager
def use_runtime(runtime: Runtime) -> Iterator[Runtime]:
    """Temporarily install *runtime*.

    Example:
        >>> with use_runtime(StubRuntime(world_size=4)) as rt:
        ...     SingleSpawner("worker", 2).spawn()
    """
    previous = set_runtime(runtime)
    try:
        yield runtime
    finally:
        set_runtime(previous)


__all__ = [
    "create_runtime",
    "get_runtime",
    "peek_runtime",
    "set_runtime",
    "use_runtime",
]
