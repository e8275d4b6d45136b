"""
User error handlers for communicators, files and windows.

An :class:`ErrorHandler` wraps one Python callback into a native error
handler for every requested kind of object. The kinds form a bit mask
(:class:`ErrorHandlerType`), so ``COMM | WIN`` creates two native
handlers sharing the callback.

The callback may take ``(obj, ErrorCode)``, ``(ErrorCode)`` or no
argument at all; the number of positional parameters decides what it
receives.

Usage:
    def on_error(comm, code):
        logger.error("mpi_error", code=code.value, message=code.message())

    with make_error_handler(on_error, ErrorHandlerType.COMM) as handler:
        handler.attach(runtime.comm_world())
        ...
"""

from __future__ import annotations

import inspect
from collections.abc import Callable
from enum import IntFlag
from typing import Any

from mpifacade.core.assertions import precondition
from mpifacade.core.errors import InvalidArgumentError, UnsetErrorHandlerTypeError
from mpifacade.core.logging import get_logger
from mpifacade.error.error_code import ErrorCode
from mpifacade.runtime import (
    ERRHANDLER_COMM,
    ERRHANDLER_FILE,
    ERRHANDLER_WIN,
    CommHandle,
    ErrhandlerHandle,
    Runtime,
    get_runtime,
)

logger = get_logger(__name__)


class ErrorHandlerType(IntFlag):
    """Kinds of objects an error handler can be attached to."""

    COMM = ERRHANDLER_COMM
    FILE = ERRHANDLER_FILE
    WIN = ERRHANDLER_WIN

    @property
    def canonical_name(self) -> str:
        return " | ".join(kind.name for kind in _KINDS if kind & self)

    def __str__(self) -> str:
        return self.canonical_name

    def __format__(self, format_spec: str) -> str:
        return format(self.canonical_name, format_spec)

    @classmethod
    def from_string(cls, name: str) -> ErrorHandlerType:
        return error_handler_type_from_string(name)


_KINDS = (ErrorHandlerType.COMM, ErrorHandlerType.FILE, ErrorHandlerType.WIN)
_ALL_KINDS = ErrorHandlerType.COMM | ErrorHandlerType.FILE | ErrorHandlerType.WIN


def to_string(value: ErrorHandlerType) -> str:
    """Names of the set kinds joined by ``" | "``, e.g. ``"COMM | WIN"``."""
    return ErrorHandlerType(value).canonical_name


def error_handler_type_from_string(name: str) -> ErrorHandlerType:
    """Parse ``"COMM"``, ``"FILE | WIN"`` and the like.

    Unknown parts are skipped; at least one part must name a kind.

    Raises:
        InvalidArgumentError: no part of *name* names a kind.
    """
    value = ErrorHandlerType(0)
    for part in name.split("|"):
        member = ErrorHandlerType.__members__.get(part.strip())
        if member is not None:
            value |= member
    if not value:
        raise InvalidArgumentError(
            f'Can\'t convert "{name}" to ErrorHandlerType!',
            context={"value": name, "type": "ErrorHandlerType"},
        )
    return value


def _dispatcher(callback: Callable[..., Any], runtime: Runtime) -> Callable[[Any, int], None]:
    try:
        parameters = inspect.signature(callback).parameters.values()
    except (TypeError, ValueError):
        arity = 2
    else:
        positional = [
            p for p in parameters if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD) and p.default is p.empty
        ]
        varargs = any(p.kind is p.VAR_POSITIONAL for p in parameters)
        arity = 2 if varargs else len(positional)
    precondition(arity in (0, 1, 2), "Illegal callback function signature: {!r}", callback)

    def dispatch(obj: Any, errcode: int) -> None:
        if arity == 2:
            callback(obj, ErrorCode(errcode, runtime=runtime))
        elif arity == 1:
            callback(ErrorCode(errcode, runtime=runtime))
        else:
            callback()

    return dispatch


class ErrorHandler:
    """Owns one native error handler per kind in :attr:`types`.

    The native handlers are released by :meth:`free`, on leaving a
    ``with`` block, or when the object is garbage collected while the
    runtime is active. Objects the handler is attached to keep using it
    after it has been freed.
    """

    def __init__(
        self,
        callback: Callable[..., Any],
        types: ErrorHandlerType = ErrorHandlerType.COMM,
        *,
        runtime: Runtime | None = None,
    ) -> None:
        precondition(callable(callback), "Attempt to create an error handler from a non-callable: {!r}", callback)
        types = ErrorHandlerType(types)
        precondition(
            types and not int(types) & ~int(_ALL_KINDS),
            "Attempt to create an error handler with an illegal type (which is {})!",
            int(types),
        )
        self._runtime = runtime or get_runtime()
        self._callback = callback
        self._handlers: dict[ErrorHandlerType, ErrhandlerHandle] = {}
        dispatch = _dispatcher(callback, self._runtime)
        for kind in _KINDS:
            if kind & types:
                self._handlers[kind] = self._runtime.errhandler_create(int(kind), dispatch)
        logger.debug("error_handler_created", types=str(types))

    @property
    def types(self) -> ErrorHandlerType:
        value = ErrorHandlerType(0)
        for kind in self._handlers:
            value |= kind
        return value

    @property
    def callback(self) -> Callable[..., Any]:
        return self._callback

    def handle(self, kind: ErrorHandlerType = ErrorHandlerType.COMM) -> ErrhandlerHandle:
        """The native handler for *kind*.

        Raises:
            UnsetErrorHandlerTypeError: this handler holds no handler of *kind*.
        """
        kind = ErrorHandlerType(kind)
        if kind not in self._handlers:
            raise UnsetErrorHandlerTypeError(kind, self.types)
        return self._handlers[kind]

    def attach(self, comm: CommHandle) -> ErrorHandler:
        """Make this the error handler of communicator *comm*."""
        self._runtime.comm_set_errhandler(comm, self.handle(ErrorHandlerType.COMM))
        return self

    def free(self) -> None:
        handlers, self._handlers = self._handlers, {}
        for handler in handlers.values():
            self._runtime.errhandler_free(handler)
        if handlers:
            logger.debug("error_handler_freed", count=len(handlers))

    def __enter__(self) -> ErrorHandler:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.free()

    def __copy__(self):
        raise TypeError("ErrorHandler owns its native handlers and cannot be copied")

    def __deepcopy__(self, memo: dict):
        return self.__copy__()

    def __del__(self) -> None:
        runtime = getattr(self, "_runtime", None)
        if getattr(self, "_handlers", None) and runtime.initialized() and not runtime.finalized():
            self.free()

    def __repr__(self) -> str:
        return f"ErrorHandler(types={self.types}, callback={self._callback!r})"


def make_error_handler(
    callback: Callable[..., Any],
    types: ErrorHandlerType = ErrorHandlerType.COMM,
    *,
    runtime: Runtime | None = None,
) -> ErrorHandler:
    """Create an :class:`ErrorHandler` for the kinds in *types*."""
    return ErrorHandler(callback, types, runtime=runtime)


def call_error_handler(comm: CommHandle, errcode: ErrorCode | int, *, runtime: Runtime | None = None) -> None:
    """Invoke the error handler attached to *comm* with *errcode*."""
    (runtime or get_runtime()).comm_call_errhandler(comm, int(errcode))


__all__ = [
    "ErrorHandler",
    "ErrorHandlerType",
    "call_error_handler",
    "error_handler_type_from_string",
    "make_error_handler",
    "to_string",
]
