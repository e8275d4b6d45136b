"""Levels of thread support and their canonical names."""

from __future__ import annotations

from enum import IntEnum
from typing import TypeVar

from mpifacade.core.errors import InvalidArgumentError
from mpifacade.runtime import THREAD_FUNNELED, THREAD_MULTIPLE, THREAD_SERIALIZED, THREAD_SINGLE

E = TypeVar("E", bound=IntEnum)


class ThreadSupport(IntEnum):
    """Ordered levels of thread support: ``SINGLE < FUNNELED < SERIALIZED < MULTIPLE``."""

    SINGLE = THREAD_SINGLE
    FUNNELED = THREAD_FUNNELED
    SERIALIZED = THREAD_SERIALIZED
    MULTIPLE = THREAD_MULTIPLE

    @property
    def canonical_name(self) -> str:
        return f"MPI_THREAD_{self.name}"

    def __str__(self) -> str:
        return self.canonical_name

    def __format__(self, format_spec: str) -> str:
        return format(self.canonical_name, format_spec)

    @classmethod
    def from_string(cls, name: str) -> ThreadSupport:
        return enum_from_string(name, cls)


def to_string(value: ThreadSupport) -> str:
    """Canonical name of *value*, e.g. ``"MPI_THREAD_SINGLE"``."""
    return ThreadSupport(value).canonical_name


def enum_from_string(name: str, enum_type: type[E] = ThreadSupport) -> E:
    """Parse a canonical name (or a bare member name) into *enum_type*.

    Raises:
        InvalidArgumentError: *name* names no member of *enum_type*.
    """
    for member in enum_type:
        if name in (str(member), member.name):
            return member
    raise InvalidArgumentError(
        f'Can\'t convert "{name}" to {enum_type.__qualname__}!',
        context={"value": name, "type": enum_type.__qualname__},
    )


__all__ = ["ThreadSupport", "enum_from_string", "to_string"]
