"""
Error classes and error codes registered with the runtime.

Manifesto:
    The runtime reports failures as integer codes, each belonging to an
    error class. Applications can register their own classes and codes
    and attach a message to every new code, so that their failures are
    reported through the same channel (error handlers, error strings) as
    the runtime's own.

Architecture:

    .. code-block:: text

        ErrorClass()                       → runtime.add_error_class()
        ├── add_error_code("msg")          → ErrorCode
        └── add_error_code("a", "b", ...)  → [ErrorCode, ...]
              │  runtime.add_error_code(class) + runtime.add_error_string(code, msg)
              ▼
        ErrorCode(value)
        ├── category()   → ErrorClass   (runtime.error_class)
        ├── message()    → str          (runtime.error_string)
        └── bool(code)   → code != SUCCESS

    Predefined codes map one to one onto their classes, so
    ``ErrorCode(2).category().value == 2``.

Invariants:
    - An error code lies in ``[0, last used code]``; when the runtime
      doesn't expose the last used code, in ``[0, INT_MAX)``.
    - A new error string is shorter than ``max_message_size()``.

Examples:
    >>> category = ErrorClass()
    >>> code = category.add_error_code("my library: bad input")
    >>> code.category() == category
    True
    >>> code.message()
    'my library: bad input'
"""

from __future__ import annotations

import functools
from collections.abc import Iterable
from typing import Any

from mpifacade.core.assertions import precondition
from mpifacade.core.logging import get_logger
from mpifacade.runtime import INT_MAX, SUCCESS, Runtime, get_runtime

logger = get_logger(__name__)


def _check_code(runtime: Runtime, code: int) -> int:
    last = runtime.last_used_code()
    limit = INT_MAX - 1 if last is None else last
    precondition(
        isinstance(code, int) and 0 <= code <= limit,
        "Attempt to use an error code (which is {}) that falls outside the valid range [0, {}]!",
        code,
        limit,
    )
    return code


@functools.total_ordering
class ErrorClass:
    """An error class (category) grouping several error codes.

    ``ErrorClass()`` registers a new class with the runtime; the classes
    of existing codes are obtained with :meth:`ErrorCode.category`.
    """

    __slots__ = ("_value", "_runtime")

    def __init__(self, *, runtime: Runtime | None = None) -> None:
        self._runtime = runtime or get_runtime()
        self._value = self._runtime.add_error_class()
        logger.debug("error_class_added", error_class=self._value)

    @classmethod
    def _existing(cls, value: int, runtime: Runtime) -> ErrorClass:
        obj = cls.__new__(cls)
        obj._value = value
        obj._runtime = runtime
        return obj

    @property
    def value(self) -> int:
        return self._value

    def add_error_code(self, *messages: Any) -> ErrorCode | list[ErrorCode]:
        """Register new error codes in this class, one per message.

        A single string yields one :class:`ErrorCode`; several strings,
        or one iterable of strings, yield a list in the same order.
        """
        if len(messages) == 1 and isinstance(messages[0], str):
            return self._add(messages[0])
        if len(messages) == 1 and isinstance(messages[0], Iterable):
            messages = tuple(messages[0])
        return [self._add(message) for message in messages]

    def _add(self, message: str) -> ErrorCode:
        precondition(isinstance(message, str), "Attempt to add a non-string error description: {!r}", message)
        limit = self._runtime.max_error_string()
        precondition(
            len(message) < limit,
            "Attempt to add an error string of length {}, which exceeds MPI_MAX_ERROR_STRING (which is {})!",
            len(message),
            limit,
        )
        code = self._runtime.add_error_code(self._value)
        self._runtime.add_error_string(code, message)
        logger.debug("error_code_added", error_class=self._value, error_code=code)
        return ErrorCode(code, runtime=self._runtime)

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, ErrorClass):
            return NotImplemented
        return self._value == other._value

    def __lt__(self, other: Any) -> bool:
        if not isinstance(other, ErrorClass):
            return NotImplemented
        return self._value < other._value

    def __hash__(self) -> int:
        return hash(self._value)

    def __int__(self) -> int:
        return self._value

    def __str__(self) -> str:
        return str(self._value)

    def __repr__(self) -> str:
        return f"ErrorClass({self._value})"


@functools.total_ordering
class ErrorCode:
    """An error code value; ``SUCCESS`` when default constructed.

    Truthy iff the code reports an error (``value != SUCCESS``).
    """

    __slots__ = ("_value", "_runtime")

    def __init__(self, code: int = SUCCESS, *, runtime: Runtime | None = None) -> None:
        self._runtime = runtime or get_runtime()
        self._value = _check_code(self._runtime, code)

    @property
    def value(self) -> int:
        return self._value

    def assign(self, code: int) -> None:
        self._value = _check_code(self._runtime, code)

    def clear(self) -> None:
        """Reset to ``SUCCESS``."""
        self._value = SUCCESS

    def category(self) -> ErrorClass:
        return ErrorClass._existing(self._runtime.error_class(self._value), self._runtime)

    def message(self) -> str:
        return self._runtime.error_string(self._value)

    @staticmethod
    def last_used_value(runtime: Runtime | None = None) -> int | None:
        """The largest code handed out so far, or ``None`` if the runtime doesn't say.

        Not every value below it is necessarily a valid code.
        """
        return (runtime or get_runtime()).last_used_code()

    @staticmethod
    def max_message_size(runtime: Runtime | None = None) -> int:
        return (runtime or get_runtime()).max_error_string()

    def __bool__(self) -> bool:
        return self._value != SUCCESS

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, ErrorCode):
            return NotImplemented
        return self._value == other._value

    def __lt__(self, other: Any) -> bool:
        if not isinstance(other, ErrorCode):
            return NotImplemented
        return self._value < other._value

    def __hash__(self) -> int:
        return hash(self._value)

    def __int__(self) -> int:
        return self._value

    def __str__(self) -> str:
        return f"{self._value}: {self.message()}"

    def __repr__(self) -> str:
        return f"ErrorCode({self._value})"


__all__ = ["ErrorClass", "ErrorCode"]
