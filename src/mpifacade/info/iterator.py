"""Random access cursors over an :class:`~mpifacade.info.info_map.InfoMap`.

A cursor is ``(map, index)`` with ``index`` in ``[0, size]``. The native
store is ordinally indexed, so cursor arithmetic is index arithmetic and
dereferencing fetches the n-th key and its value on demand.

- :class:`ConstInfoIterator` dereferences to ``(key, value)``.
- :class:`InfoIterator` dereferences to ``(key, InfoProxy)``; assigning
  through the proxy writes back into the map.
- :class:`ReverseInfoIterator` adapts either of them, dereferencing the
  element before its base.

Every change to the map's key set (insert of a new key, erase, clear,
merge, swap, move) invalidates all cursors. Using an invalidated or a
default-constructed cursor, or comparing cursors of different maps, is a
contract violation.

Usage:
    it = m.begin()
    key, proxy = it.deref()
    proxy.set("new value")
    it += 1
    assert m.end() - m.begin() == len(m)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from mpifacade.core.assertions import precondition
from mpifacade.info.proxy import InfoProxy

if TYPE_CHECKING:
    from mpifacade.info.info_map import InfoMap


class ConstInfoIterator:
    """Cursor dereferencing to ``(key, value)`` strings."""

    __slots__ = ("_map", "_index", "_generation")
    __hash__ = None

    def __init__(self, info_map: InfoMap | None = None, index: int = 0) -> None:
        self._map = info_map
        self._index = index
        self._generation = None if info_map is None else info_map._generation

    @classmethod
    def _make(cls, info_map: InfoMap | None, index: int, generation: int | None):
        it = cls.__new__(cls)
        it._map = info_map
        it._index = index
        it._generation = generation
        return it

    @property
    def index(self) -> int:
        return self._index

    @property
    def info_map(self) -> InfoMap | None:
        return self._map

    def as_const(self) -> ConstInfoIterator:
        return ConstInfoIterator._make(self._map, self._index, self._generation)

    # -- checks ------------------------------------------------------------

    def _check_singular(self, op: str) -> None:
        precondition(self._map is not None, "Attempt to {} a singular iterator!", op)

    def _check_valid(self, op: str) -> InfoMap:
        self._check_singular(op)
        precondition(
            self._generation == self._map._generation,
            "Attempt to {} an iterator that has been invalidated by a modification of its info object!",
            op,
        )
        precondition(not self._map.is_null(), "Attempt to {} an iterator referring to 'MPI_INFO_NULL'!", op)
        return self._map

    def _check_dereferenceable(self, op: str) -> InfoMap:
        info_map = self._check_valid(op)
        size = info_map.size()
        precondition(
            0 <= self._index < size,
            "Attempt to {} an iterator at position {} of an info object of size {}!",
            op,
            self._index,
            size,
        )
        return info_map

    def _check_same_map(self, other: Any, op: str) -> None:
        self._check_singular(op)
        other._check_singular(op)
        precondition(self._map is other._map, "Attempt to {} iterators of different info objects!", op)

    # -- arithmetic --------------------------------------------------------

    def _moved(self, n: int):
        self._check_singular("advance")
        return type(self)._make(self._map, self._index + n, self._generation)

    def __add__(self, n: int):
        if not isinstance(n, int):
            return NotImplemented
        return self._moved(n)

    __radd__ = __add__

    def __sub__(self, other: Any):
        if isinstance(other, ConstInfoIterator):
            self._check_same_map(other, "compute the distance between")
            return self._index - other._index
        if isinstance(other, int):
            return self._moved(-other)
        return NotImplemented

    # -- comparison --------------------------------------------------------

    def _compare(self, other: Any) -> int | None:
        if not isinstance(other, ConstInfoIterator):
            return None
        self._check_same_map(other, "compare")
        return self._index - other._index

    def __eq__(self, other: Any) -> bool:
        diff = self._compare(other)
        return NotImplemented if diff is None else diff == 0

    def __ne__(self, other: Any) -> bool:
        diff = self._compare(other)
        return NotImplemented if diff is None else diff != 0

    def __lt__(self, other: Any) -> bool:
        diff = self._compare(other)
        return NotImplemented if diff is None else diff < 0

    def __le__(self, other: Any) -> bool:
        diff = self._compare(other)
        return NotImplemented if diff is None else diff <= 0

    def __gt__(self, other: Any) -> bool:
        diff = self._compare(other)
        return NotImplemented if diff is None else diff > 0

    def __ge__(self, other: Any) -> bool:
        diff = self._compare(other)
        return NotImplemented if diff is None else diff >= 0

    # -- access ------------------------------------------------------------

    def key(self) -> str:
        info_map = self._check_dereferenceable("dereference")
        return info_map.runtime.info_get_nthkey(info_map.handle, self._index)

    def deref(self) -> tuple[str, Any]:
        info_map = self._check_dereferenceable("dereference")
        key = info_map.runtime.info_get_nthkey(info_map.handle, self._index)
        return key, info_map.runtime.info_get(info_map.handle, key)

    def __getitem__(self, n: int) -> tuple[str, Any]:
        return (self + n).deref()

    def __repr__(self) -> str:
        if self._map is None:
            return f"{type(self).__name__}(<singular>)"
        return f"{type(self).__name__}(index={self._index})"


class InfoIterator(ConstInfoIterator):
    """Cursor dereferencing to ``(key, InfoProxy)``."""

    __slots__ = ()

    def deref(self) -> tuple[str, InfoProxy]:
        info_map = self._check_dereferenceable("dereference")
        key = info_map.runtime.info_get_nthkey(info_map.handle, self._index)
        return key, InfoProxy(info_map, key)


class ReverseInfoIterator:
    """Reverse adapter over a forward cursor.

    Dereferences the element before ``base()``; advancing moves the base
    backwards.
    """

    __slots__ = ("_base",)
    __hash__ = None

    def __init__(self, base: ConstInfoIterator) -> None:
        self._base = base

    def base(self) -> ConstInfoIterator:
        return self._base

    @property
    def is_const(self) -> bool:
        return not isinstance(self._base, InfoIterator)

    def __add__(self, n: int) -> ReverseInfoIterator:
        if not isinstance(n, int):
            return NotImplemented
        return ReverseInfoIterator(self._base - n)

    __radd__ = __add__

    def __sub__(self, other: Any):
        if isinstance(other, ReverseInfoIterator):
            return other._base - self._base
        if isinstance(other, int):
            return ReverseInfoIterator(self._base + other)
        return NotImplemented

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, ReverseInfoIterator):
            return NotImplemented
        return self._base == other._base

    def __ne__(self, other: Any) -> bool:
        if not isinstance(other, ReverseInfoIterator):
            return NotImplemented
        return self._base != other._base

    def __lt__(self, other: Any) -> bool:
        if not isinstance(other, ReverseInfoIterator):
            return NotImplemented
        return self._base > other._base

    def __le__(self, other: Any) -> bool:
        if not isinstance(other, ReverseInfoIterator):
            return NotImplemented
        return self._base >= other._base

    def __gt__(self, other: Any) -> bool:
        if not isinstance(other, ReverseInfoIterator):
            return NotImplemented
        return self._base < other._base

    def __ge__(self, other: Any) -> bool:
        if not isinstance(other, ReverseInfoIterator):
            return NotImplemented
        return self._base <= other._base

    def deref(self) -> tuple[str, Any]:
        return (self._base - 1).deref()

    def __getitem__(self, n: int) -> tuple[str, Any]:
        return (self + n).deref()

    def __repr__(self) -> str:
        return f"ReverseInfoIterator({self._base!r})"


__all__ = ["ConstInfoIterator", "InfoIterator", "ReverseInfoIterator"]
