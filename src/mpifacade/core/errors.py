"""
Structured error types for the mpifacade package.

The facade distinguishes two kinds of failure. Recoverable errors are
raised as typed values that carry a category, a source location and a
human-readable message. Contract violations (illegal keys, null handles,
iterator misuse, size mismatches) are fatal and live in
:mod:`mpifacade.core.assertions`, but share the same base class so that
logging and serialization work the same way for both.

Manifesto:
    - **Typed Error Hierarchy:** One class per failure the caller may handle
    - **Builtin Compatibility:** Each recoverable error also subclasses the
      matching builtin (``KeyError``, ``IndexError``, ``ValueError``,
      ``RuntimeError``) so ordinary ``except`` clauses keep working
    - **Source Location:** Every error records file, function, line and the
      world rank of the raising process (when the runtime is active)
    - **Rich Context:** Errors carry metadata for structured logging

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────────┐
        │                        FacadeError                            │
        │        (message, category, location, context, cause)          │
        ├──────────────────────────────────────────────────────────────┤
        │  KeyNotFoundError        OutOfRangeError                      │
        │  (LOOKUP, KeyError)      (LOOKUP, IndexError)                 │
        │                                                               │
        │  InvalidArgumentError    ThreadSupportNotSatisfiedError       │
        │  (ARGUMENT, ValueError)  (ENVIRONMENT, RuntimeError)          │
        │                                                               │
        │  RuntimeFailureError     ContractViolation                    │
        │  (RUNTIME, RuntimeError) (CONTRACT) -> assertions module      │
        └──────────────────────────────────────────────────────────────┘

Examples:
    >>> err = OutOfRangeError("set_command_at", index=2, size=2)
    >>> err.index, err.size
    (2, 2)
    >>> "2" in err.message
    True

    >>> err = KeyNotFoundError("key")
    >>> err.to_dict()["category"]
    'LOOKUP'

Tags:
    error-handling, exception-hierarchy, source-location, mpifacade

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

_THIS_FILE = os.path.normcase(os.path.abspath(__file__))


class ErrorCategory(str, Enum):
    """
    Categories used to classify facade errors in logs and reports.

    Attributes:
        LOOKUP: Missing key or index outside a container
        ARGUMENT: Invalid argument value (e.g. unknown enum name)
        ENVIRONMENT: Runtime environment could not satisfy a request
        RUNTIME: The underlying runtime reported a failure
        CONTRACT: A precondition or sanity contract was violated
        INTERNAL: Unexpected state
    """

    LOOKUP = "LOOKUP"
    ARGUMENT = "ARGUMENT"
    ENVIRONMENT = "ENVIRONMENT"
    RUNTIME = "RUNTIME"
    CONTRACT = "CONTRACT"
    INTERNAL = "INTERNAL"


@dataclass(frozen=True)
class SourceLocation:
    """
    Where an error was raised.

    ``rank`` is the world rank of the raising process, or ``None`` when no
    runtime environment is active.
    """

    file_name: str
    function_name: str
    line: int
    rank: int | None = None

    @classmethod
    def current(cls, skip_files: tuple[str, ...] = ()) -> SourceLocation:
        """Capture the location of the first caller frame outside *skip_files*.

        Frames that belong to this module are always skipped so that the
        location points at the code that raised the error, not at the
        error constructor.
        """
        skipped = {_THIS_FILE, *(os.path.normcase(os.path.abspath(f)) for f in skip_files)}
        frame = sys._getframe(1)
        while frame is not None and os.path.normcase(os.path.abspath(frame.f_code.co_filename)) in skipped:
            frame = frame.f_back
        if frame is None:  # pragma: no cover
            return cls(file_name="<unknown>", function_name="<unknown>", line=0, rank=_current_rank())
        return cls(
            file_name=frame.f_code.co_filename,
            function_name=frame.f_code.co_name,
            line=frame.f_lineno,
            rank=_current_rank(),
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "file": self.file_name,
            "function": self.function_name,
            "line": self.line,
        }
        if self.rank is not None:
            result["rank"] = self.rank
        return result

    def describe(self) -> str:
        """Render the location block used in error reports."""
        where = (
            f"on MPI_COMM_WORLD rank {self.rank}"
            if self.rank is not None
            else "without a running MPI environment"
        )
        return (
            f"  {where}\n"
            f"  in file     {self.file_name}\n"
            f"  in function {self.function_name}\n"
            f"  @ line      {self.line}\n"
        )


def _current_rank() -> int | None:
    # Errors raised while the runtime module is half-imported must still work.
    try:
        from mpifacade.runtime import peek_runtime
    except ImportError:  # pragma: no cover
        return None
    runtime = peek_runtime()
    if runtime is None:
        return None
    try:
        if not runtime.initialized() or runtime.finalized():
            return None
        return runtime.comm_rank(runtime.comm_world())
    except Exception:  # noqa: BLE001 - location capture must never mask the real error
        return None


class FacadeError(Exception):
    """
    Base exception for all mpifacade errors.

    Every FacadeError carries:
    - **message:** Human-readable description
    - **category:** :class:`ErrorCategory` used for routing/logging
    - **location:** :class:`SourceLocation` of the raise site
    - **context:** Free-form metadata dict (``with_context`` adds to it)
    - **cause:** Optional underlying exception

    Subclasses set ``default_category``.

    Examples:
        >>> err = FacadeError("Something went wrong")
        >>> err.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> err.with_context(command="a.out").context["command"]
        'a.out'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        location: SourceLocation | None = None,
        context: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.location = location or SourceLocation.current()
        self.context: dict[str, Any] = dict(context or {})
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> FacadeError:
        """Add metadata to this error (fluent API)."""
        self.context.update(kwargs)
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "location": self.location.to_dict(),
        }
        if self.context:
            result["context"] = dict(self.context)
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def describe(self) -> str:
        """Multi-line report: message followed by the source location."""
        return f"{self.message}\n\nException thrown\n{self.location.describe()}"

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# RECOVERABLE ERRORS
# =============================================================================


class KeyNotFoundError(FacadeError, KeyError):
    """Raised by ``InfoMap.at`` (and ``del m[key]``) when the key is absent."""

    default_category = ErrorCategory.LOOKUP

    def __init__(self, key: str, message: str | None = None, **kwargs: Any):
        super().__init__(message or f"The specified key '{key}' doesn't exist!", **kwargs)
        self.key = key


class OutOfRangeError(FacadeError, IndexError):
    """
    Index outside ``[0, size)`` on a range-checked accessor.

    The message names the offending index and the violated bound, e.g.
    ``MultipleSpawner.set_command_at range check: i (which is 2) >= size() (which is 2)``
    or ``... range check: i (which is -1) < 0``.
    """

    default_category = ErrorCategory.LOOKUP

    def __init__(
        self,
        operation: str,
        *,
        index: int,
        size: int,
        what: str = "size()",
        index_name: str = "i",
        **kwargs: Any,
    ):
        if index < 0:
            check = f"{index_name} (which is {index}) < 0"
        else:
            check = f"{index_name} (which is {index}) >= {what} (which is {size})"
        super().__init__(f"{operation} range check: {check}", **kwargs)
        self.operation = operation
        self.index = index
        self.size = size


class InvalidArgumentError(FacadeError, ValueError):
    """An argument could not be interpreted (e.g. unknown enum name)."""

    default_category = ErrorCategory.ARGUMENT


class ThreadSupportNotSatisfiedError(FacadeError, RuntimeError):
    """
    The runtime could not provide the requested level of thread support.

    Carries both levels so callers can decide whether to continue with the
    provided one.
    """

    default_category = ErrorCategory.ENVIRONMENT

    def __init__(self, required: Any, provided: Any, **kwargs: Any):
        super().__init__(
            f"Couldn't satisfy required level of thread support: {required}\n"
            f"Highest supported level of thread support:         {provided}",
            **kwargs,
        )
        self.required = required
        self.provided = provided


class UnsetErrorHandlerTypeError(FacadeError, LookupError):
    """An error handler was asked for a kind of handler it doesn't hold."""

    default_category = ErrorCategory.LOOKUP

    def __init__(self, requested: Any, set_types: Any, **kwargs: Any):
        super().__init__(
            f"The requested error handler type ({requested}) hasn't been set for this error handler! "
            f"Set error handler types are: {set_types}",
            **kwargs,
        )
        self.requested = requested
        self.set_types = set_types


class RuntimeFailureError(FacadeError, RuntimeError):
    """The underlying runtime rejected a primitive call."""

    default_category = ErrorCategory.RUNTIME


__all__ = [
    "ErrorCategory",
    "SourceLocation",
    "FacadeError",
    "KeyNotFoundError",
    "OutOfRangeError",
    "InvalidArgumentError",
    "ThreadSupportNotSatisfiedError",
    "UnsetErrorHandlerTypeError",
    "RuntimeFailureError",
]
