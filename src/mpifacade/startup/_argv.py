"""Command line argument normalization.

Arguments are stored as ``(key, value)`` pairs. A positional token is
``(token, "")``; a pair contributes ``key`` and, when ``value`` is not
empty, ``value`` to the argv the runtime receives.

Accepted inputs (freely nested):

- a scalar (``str``, ``int``, ``float``, ``bool``, path, ...) → one token
- a 2-tuple of scalars → one ``(key, value)`` pair
- a mapping → one pair per item
- any other iterable → its elements, in order
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from mpifacade.core.assertions import sanity
from mpifacade.core.conversion import convert_to_string

ArgvPair = tuple[str, str]


def is_scalar(value: Any) -> bool:
    return isinstance(value, (str, bytes)) or not isinstance(value, Iterable)


def is_argv_pair(value: Any) -> bool:
    return isinstance(value, tuple) and len(value) == 2 and is_scalar(value[0]) and is_scalar(value[1])


def _pair(key: Any, value: Any) -> ArgvPair:
    key = convert_to_string(key)
    sanity(key, "Attempt to set an empty command line argument!")
    return key, "" if value is None else convert_to_string(value)


def _collect(arg: Any, out: list[ArgvPair]) -> None:
    if is_scalar(arg):
        out.append(_pair(arg, ""))
    elif is_argv_pair(arg):
        out.append(_pair(*arg))
    elif isinstance(arg, Mapping):
        for key, value in arg.items():
            out.append(_pair(key, value))
    else:
        for item in arg:
            _collect(item, out)


def normalize_argv(*args: Any) -> list[ArgvPair]:
    """Turn arbitrary argv input into a list of ``(key, value)`` pairs."""
    pairs: list[ArgvPair] = []
    for arg in args:
        _collect(arg, pairs)
    return pairs


def marshal_argv(pairs: Iterable[ArgvPair]) -> list[str]:
    """Flatten pairs into the token list handed to the runtime."""
    tokens: list[str] = []
    for key, value in pairs:
        tokens.append(key)
        if value:
            tokens.append(value)
    return tokens


__all__ = ["ArgvPair", "is_argv_pair", "is_scalar", "normalize_argv", "marshal_argv"]
