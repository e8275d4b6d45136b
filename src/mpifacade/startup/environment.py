"""
Runtime environment: initialization, finalization, queries and clock.

Architecture:

    .. code-block:: text

        initialize(required) ──► active() ──► finalize()
              │                     │              │
              │                     │              └── runs atfinalize() callbacks (LIFO)
              │                     └── universe_size / processor_name / Clock / parent_process
              └── raises ThreadSupportNotSatisfiedError if required > provided

        environment(required)  context manager around initialize()/finalize()
        run_main(func, required)  initialize, call func, finalize, return its exit code

Examples:
    >>> with environment(ThreadSupport.SERIALIZED) as provided:
    ...     print(provided, processor_name())

    >>> start = Clock.now()
    >>> elapsed = Clock.now() - start
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager

from mpifacade.core.assertions import precondition
from mpifacade.core.errors import ThreadSupportNotSatisfiedError
from mpifacade.core.logging import get_logger
from mpifacade.runtime import CommHandle, get_runtime
from mpifacade.startup.thread_support import ThreadSupport

logger = get_logger(__name__)

_atfinalize_callbacks: list[Callable[[], None]] = []


def initialized() -> bool:
    return get_runtime().initialized()


def finalized() -> bool:
    return get_runtime().finalized()


def active() -> bool:
    """True between a successful initialization and finalization."""
    runtime = get_runtime()
    return runtime.initialized() and not runtime.finalized()


def initialize(required: ThreadSupport | None = None) -> ThreadSupport:
    """Initialize the runtime.

    Args:
        required: Minimum level of thread support. ``None`` performs a
            plain initialization.

    Returns:
        The level of thread support the runtime provides.

    Raises:
        ThreadSupportNotSatisfiedError: The runtime provides less than
            *required*. The runtime stays initialized.
    """
    runtime = get_runtime()
    precondition(not runtime.initialized(), "MPI environment already initialized!")
    provided = ThreadSupport(runtime.init(None if required is None else int(required)))
    logger.info(
        "runtime_initialized",
        runtime=runtime.runtime_name,
        required=None if required is None else str(ThreadSupport(required)),
        provided=str(provided),
    )
    if required is not None and ThreadSupport(required) > provided:
        raise ThreadSupportNotSatisfiedError(ThreadSupport(required), provided)
    return provided


def finalize() -> None:
    """Run the registered atfinalize callbacks (last registered first) and finalize."""
    runtime = get_runtime()
    precondition(not runtime.finalized(), "MPI environment already finalized!")
    while _atfinalize_callbacks:
        _atfinalize_callbacks.pop()()
    runtime.finalize()
    logger.info("runtime_finalized", runtime=runtime.runtime_name)


def atfinalize(callback: Callable[[], None]) -> None:
    """Register *callback* to run at the start of :func:`finalize`."""
    precondition(callable(callback), "The atfinalize callback must be callable!")
    _atfinalize_callbacks.append(callback)


def abort(code: int = 1, comm: CommHandle | None = None) -> None:
    """Abort every process of *comm* (``COMM_WORLD`` by default)."""
    runtime = get_runtime()
    logger.critical("runtime_abort", runtime=runtime.runtime_name, code=code)
    runtime.abort(runtime.comm_world() if comm is None else comm, code)


def provided_thread_support() -> ThreadSupport:
    return ThreadSupport(get_runtime().query_thread())


def is_main_thread() -> bool:
    return get_runtime().is_thread_main()


def universe_size() -> int | None:
    """Processes the runtime can host, or ``None`` if it doesn't say."""
    return get_runtime().universe_size()


def processor_name() -> str:
    return get_runtime().processor_name()


def parent_process() -> CommHandle | None:
    """Intercommunicator to the spawning parent, or ``None`` if this process wasn't spawned."""
    runtime = get_runtime()
    parent = runtime.comm_get_parent()
    return None if runtime.is_comm_null(parent) else parent


@contextmanager
def environment(required: ThreadSupport | None = None) -> Iterator[ThreadSupport]:
    """Initialize on entry, finalize on exit; yields the provided thread support."""
    try:
        yield initialize(required)
    finally:
        if initialized() and not finalized():
            finalize()


def run_main(func: Callable[[], int], required: ThreadSupport | None = None) -> int:
    """Initialize, call *func*, finalize and return its exit code.

    If the required thread support can't be provided, *func* is not
    called and ``-1`` is returned.
    """
    ret = -1
    try:
        initialize(required)
        ret = func()
    except ThreadSupportNotSatisfiedError as exc:
        logger.error("thread_support_not_satisfied", required=str(exc.required), provided=str(exc.provided))
    finally:
        finalize()
    return ret


class Clock:
    """Wall clock of the runtime, in seconds."""

    is_steady = True

    @staticmethod
    def now() -> float:
        return get_runtime().wtime()

    @staticmethod
    def resolution() -> float:
        return get_runtime().wtick()

    @staticmethod
    def synchronized(comm: CommHandle | None = None) -> bool:
        """Whether clocks of all processes in *comm* are synchronized."""
        runtime = get_runtime()
        return runtime.wtime_is_global(runtime.comm_world() if comm is None else comm)


__all__ = [
    "Clock",
    "abort",
    "active",
    "atfinalize",
    "environment",
    "finalize",
    "finalized",
    "initialize",
    "initialized",
    "is_main_thread",
    "parent_process",
    "processor_name",
    "provided_thread_support",
    "run_main",
    "universe_size",
]
