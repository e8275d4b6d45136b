"""String coercion for command line arguments and info values."""

from __future__ import annotations

from typing import Any


def convert_to_string(value: Any) -> str:
    """Coerce *value* to the string the runtime receives.

    ``bool`` becomes ``"true"``/``"false"``, strings pass through, every
    other value (ints, floats, paths, ...) uses ``str()``.
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)


__all__ = ["convert_to_string"]
