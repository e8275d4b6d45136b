"""
Ordered key/value map over a native info object.

Manifesto:
    The runtime's info object is an ordinally indexed store of string
    pairs reached through "n-th key", "get", "set" and "delete"
    primitives. ``InfoMap`` lays a mapping interface over it without
    hiding what it is: every operation goes straight to the runtime, the
    map owns its handle only when ``freeable`` is set, and element access
    returns an :class:`InfoProxy` so reads and writes stay distinguishable.

Architecture:

    .. code-block:: text

        InfoMap (HandleOwner)
        ├── element access   m[k] → InfoProxy, m[k] = v, at(k), get(k)
        ├── lookup           find / contains / count / equal_range
        ├── modifiers        insert / insert_or_assign / erase / extract
        │                    clear / merge / swap / assign
        ├── cursors          begin/end, cbegin/cend, rbegin/rend, crbegin/crend
        └── lifetime         copy (deep, freeable), move (source reset to empty),
                             adopt(handle, freeable), free / with / __del__

Invariants:
    - Keys and values are non-empty strings shorter than
      ``max_key_size`` / ``max_value_size``.
    - Iteration order is insertion order; overwriting keeps the position.
    - Any change of the key set invalidates all cursors.
    - Operations other than ``swap``, ``is_null`` and ``max_size`` on a
      map referring to the null handle are contract violations.

Examples:
    >>> m = InfoMap([("key1", "value1"), ("key2", "value2")])
    >>> m["key3"] = "value3"
    >>> str(m["key1"])
    'value1'
    >>> m.keys()
    ['key1', 'key2', 'key3']
    >>> other = m.move()
    >>> len(m), len(other)
    (0, 3)
"""

from __future__ import annotations

import sys
from collections.abc import Callable, Iterable, Iterator, Mapping
from typing import Any

from mpifacade.core.assertions import precondition
from mpifacade.core.errors import KeyNotFoundError
from mpifacade.core.logging import get_logger
from mpifacade.info.handle import HandleOwner
from mpifacade.info.iterator import ConstInfoIterator, InfoIterator, ReverseInfoIterator
from mpifacade.info.proxy import InfoProxy
from mpifacade.runtime import InfoHandle, Runtime, get_runtime

logger = get_logger(__name__)


class _RuntimeConstant:
    """Class-level attribute computed from the current runtime."""

    def __init__(self, factory: Callable[[type, Runtime], Any]) -> None:
        self._factory = factory
        self.__doc__ = factory.__doc__

    def __get__(self, obj: Any, owner: type) -> Any:
        return self._factory(owner, get_runtime())


def _require_active(runtime: Runtime, name: str) -> None:
    precondition(
        runtime.initialized() and not runtime.finalized(),
        "Attempt to access InfoMap.{} outside the active window of the runtime!",
        name,
    )


def _null(cls: type, runtime: Runtime) -> InfoMap:
    """Non-freeable map referring to the runtime's null info object."""
    return cls.adopt(runtime.info_null(), False, runtime=runtime)


def _env(cls: type, runtime: Runtime) -> InfoMap:
    """Non-freeable map referring to the runtime's environment info object."""
    _require_active(runtime, "env")
    return cls.adopt(runtime.info_env(), False, runtime=runtime)


def _max_key_size(cls: type, runtime: Runtime) -> int:
    """Maximum key length accepted by the runtime (exclusive)."""
    return runtime.max_info_key()


def _max_value_size(cls: type, runtime: Runtime) -> int:
    """Maximum value length accepted by the runtime (exclusive)."""
    return runtime.max_info_val()


class InfoMap(HandleOwner):
    """Ordered key/value map backed by a runtime info object.

    Args:
        init: ``None`` for an empty map, another ``InfoMap`` to deep-copy,
            a mapping, or an iterable of ``(key, value)`` pairs. Later
            pairs overwrite earlier ones with the same key.
        runtime: Runtime owning the handle (defaults to the current one).
    """

    null = _RuntimeConstant(_null)
    env = _RuntimeConstant(_env)
    max_key_size = _RuntimeConstant(_max_key_size)
    max_value_size = _RuntimeConstant(_max_value_size)

    __hash__ = None

    _generation = 0
    _epoch = 0

    def __init__(
        self,
        init: InfoMap | Mapping[str, str] | Iterable[tuple[str, str]] | None = None,
        *,
        runtime: Runtime | None = None,
    ) -> None:
        if isinstance(init, InfoMap):
            init._check_live("copy")
            super().__init__(init._duplicate(), True, runtime=runtime or init.runtime)
            return
        super().__init__(runtime=runtime)
        if init is not None:
            self.insert_or_assign(init)

    @classmethod
    def adopt(cls, handle: InfoHandle, freeable: bool, *, runtime: Runtime | None = None) -> InfoMap:
        """Wrap an existing info handle; it is released later only if *freeable*."""
        obj = cls.__new__(cls)
        HandleOwner.__init__(obj, handle, freeable, runtime=runtime)
        return obj

    @classmethod
    def from_range(cls, first: ConstInfoIterator, last: ConstInfoIterator) -> InfoMap:
        """Build a map from the pairs in ``[first, last)``."""
        obj = cls(runtime=None if first.info_map is None else first.info_map.runtime)
        obj.insert_or_assign(_iterate_range(first, last))
        return obj

    # -- HandleOwner hooks -------------------------------------------------

    def _default_handle(self) -> tuple[InfoHandle, bool]:
        return self._runtime.info_create(), True

    def _duplicate_handle(self, handle: InfoHandle) -> InfoHandle:
        return self._runtime.info_dup(handle)

    def _free_handle(self, handle: InfoHandle) -> None:
        self._runtime.info_free(handle)
        logger.debug("info_handle_freed", runtime=self._runtime.runtime_name)

    def _null_handle(self) -> InfoHandle:
        return self._runtime.info_null()

    def _is_null_handle(self, handle: InfoHandle) -> bool:
        return self._runtime.is_info_null(handle)

    # -- validation --------------------------------------------------------

    def _check_live(self, op: str) -> None:
        precondition(
            not self.is_null(),
            "Attempt to call {}() on an info object referring to 'MPI_INFO_NULL'!",
            op,
        )

    def _check_key(self, key: str) -> None:
        if not isinstance(key, str):
            raise TypeError(f"info keys must be str, not {type(key).__name__}")
        limit = self._runtime.max_info_key()
        precondition(
            0 < len(key) < limit,
            "Illegal info key: '{}' has length {} (must be in [1, {}))",
            key,
            len(key),
            limit,
        )

    def _check_value(self, value: str) -> None:
        if not isinstance(value, str):
            raise TypeError(f"info values must be str, not {type(value).__name__}")
        limit = self._runtime.max_info_val()
        precondition(
            0 < len(value) < limit,
            "Illegal info value: '{}' has length {} (must be in [1, {}))",
            value,
            len(value),
            limit,
        )

    def _check_own(self, it: Any, op: str) -> int:
        precondition(
            isinstance(it, ConstInfoIterator),
            "{}() expects an info iterator, got {}",
            op,
            type(it).__name__,
        )
        it._check_valid(op)
        precondition(it.info_map is self, "Attempt to call {}() with an iterator of a different info object!", op)
        return it.index

    # -- primitives --------------------------------------------------------

    def _touch(self) -> None:
        self._generation += 1

    def _rehandle(self) -> None:
        self._generation += 1
        self._epoch += 1

    def _nkeys(self) -> int:
        return self._runtime.info_get_nkeys(self._handle)

    def _key_at(self, index: int) -> str:
        return self._runtime.info_get_nthkey(self._handle, index)

    def _value_of(self, key: str) -> str | None:
        return self._runtime.info_get(self._handle, key)

    def _index_of(self, key: str) -> int | None:
        for index in range(self._nkeys()):
            if self._key_at(index) == key:
                return index
        return None

    def _store(self, key: str, value: str) -> bool:
        """Set *key*; returns True if the key was newly inserted."""
        inserted = self._runtime.info_get_valuelen(self._handle, key) is None
        self._runtime.info_set(self._handle, key, value)
        if inserted:
            self._touch()
        return inserted

    def _iterator(self, index: int) -> InfoIterator:
        return InfoIterator._make(self, index, self._generation)

    # -- lifetime ----------------------------------------------------------

    def copy(self) -> InfoMap:
        """Deep copy; the copy is always freeable."""
        return type(self)(self)

    __copy__ = copy

    def __deepcopy__(self, memo: dict) -> InfoMap:
        return self.copy()

    def move(self) -> InfoMap:
        """Hand the handle over to a new map; self becomes empty and freeable."""
        handle, freeable = self._take()
        self._rehandle()
        return type(self).adopt(handle, freeable, runtime=self._runtime)

    def assign(self, other: InfoMap | Mapping[str, str] | Iterable[tuple[str, str]]) -> InfoMap:
        """Replace the contents with a deep copy of *other* or with the given pairs."""
        if other is self:
            return self
        if isinstance(other, InfoMap):
            other._check_live("copy")
            self._replace(other._duplicate(), True)
            self._rehandle()
            return self
        pairs = list(_pairs(other))
        self._replace(self._runtime.info_create(), True)
        self._rehandle()
        self.insert_or_assign(pairs)
        return self

    def free(self) -> None:
        super().free()
        self._rehandle()

    def swap(self, other: InfoMap) -> None:
        """Exchange handles and freeability with *other*."""
        self._exchange(other)
        self._rehandle()
        other._rehandle()

    # -- element access ----------------------------------------------------

    def at(self, key: str) -> InfoProxy:
        """Proxy to an existing key; raises :class:`KeyNotFoundError` if absent."""
        self._check_live("at")
        self._check_key(key)
        if self._runtime.info_get_valuelen(self._handle, key) is None:
            raise KeyNotFoundError(key)
        return InfoProxy(self, key)

    def __getitem__(self, key: str) -> InfoProxy:
        self._check_live("operator[]")
        self._check_key(key)
        return InfoProxy(self, key)

    def __setitem__(self, key: str, value: str) -> None:
        self.put(key, value)

    def __delitem__(self, key: str) -> None:
        if not self.erase(key):
            raise KeyNotFoundError(key)

    def put(self, key: str, value: str) -> None:
        """Write *value* under *key*."""
        self._check_live("put")
        self._check_key(key)
        self._check_value(value)
        self._store(key, value)

    def get_or_insert(self, key: str) -> str:
        """Read *key*, inserting ``" "`` if absent."""
        return self[key].get()

    def get(self, key: str, default: str | None = None) -> str | None:
        """Read *key* without inserting it."""
        self._check_live("get")
        self._check_key(key)
        value = self._value_of(key)
        return default if value is None else value

    # -- cursors -----------------------------------------------------------

    def begin(self) -> InfoIterator:
        self._check_live("begin")
        return self._iterator(0)

    def end(self) -> InfoIterator:
        self._check_live("end")
        return self._iterator(self._nkeys())

    def cbegin(self) -> ConstInfoIterator:
        return self.begin().as_const()

    def cend(self) -> ConstInfoIterator:
        return self.end().as_const()

    def rbegin(self) -> ReverseInfoIterator:
        return ReverseInfoIterator(self.end())

    def rend(self) -> ReverseInfoIterator:
        return ReverseInfoIterator(self.begin())

    def crbegin(self) -> ReverseInfoIterator:
        return ReverseInfoIterator(self.cend())

    def crend(self) -> ReverseInfoIterator:
        return ReverseInfoIterator(self.cbegin())

    def __iter__(self) -> Iterator[tuple[str, str]]:
        self._check_live("__iter__")
        generation = self._generation
        for index in range(self._nkeys()):
            precondition(generation == self._generation, "InfoMap changed size during iteration")
            key = self._key_at(index)
            yield key, self._value_of(key)

    def __reversed__(self) -> Iterator[tuple[str, str]]:
        return reversed(self.items())

    # -- capacity ----------------------------------------------------------

    def size(self) -> int:
        self._check_live("size")
        return self._nkeys()

    def __len__(self) -> int:
        return self.size()

    def empty(self) -> bool:
        return self.size() == 0

    def __bool__(self) -> bool:
        return not self.is_null() and self._nkeys() > 0

    @staticmethod
    def max_size() -> int:
        return sys.maxsize

    # -- modifiers ---------------------------------------------------------

    def insert(self, key: Any, value: Any = None) -> tuple[InfoIterator, bool] | None:
        """Insert pairs whose key is not present yet.

        ``insert(key, value)`` returns ``(iterator, inserted)``.
        ``insert(pairs)`` and ``insert(first, last)`` insert a whole range.
        """
        self._check_live("insert")
        if isinstance(key, ConstInfoIterator):
            pairs: Iterable[tuple[str, str]] = _iterate_range(key, value)
        elif value is None and not isinstance(key, str):
            pairs = _pairs(key)
        else:
            self._check_key(key)
            self._check_value(value)
            index = self._index_of(key)
            if index is not None:
                return self._iterator(index), False
            self._store(key, value)
            return self._iterator(self._nkeys() - 1), True

        for k, v in list(pairs):
            self._check_key(k)
            self._check_value(v)
            if self._runtime.info_get_valuelen(self._handle, k) is None:
                self._store(k, v)
        return None

    emplace = insert

    def insert_or_assign(self, key: Any, value: Any = None) -> tuple[InfoIterator, bool] | None:
        """Store pairs unconditionally.

        ``insert_or_assign(key, value)`` returns ``(iterator, inserted)``;
        passing a range of pairs stores all of them.
        """
        self._check_live("insert_or_assign")
        if isinstance(key, ConstInfoIterator):
            pairs: Iterable[tuple[str, str]] = _iterate_range(key, value)
        elif value is None and not isinstance(key, str):
            pairs = _pairs(key)
        else:
            self._check_key(key)
            self._check_value(value)
            index = self._index_of(key)
            self._store(key, value)
            if index is None:
                return self._iterator(self._nkeys() - 1), True
            return self._iterator(index), False

        for k, v in list(pairs):
            self._check_key(k)
            self._check_value(v)
            self._store(k, v)
        return None

    def erase(self, target: Any, last: ConstInfoIterator | None = None) -> Any:
        """Erase by key (returns 0 or 1), by iterator or by iterator range.

        Erasing through iterators returns an iterator to the element that
        followed the erased ones.
        """
        self._check_live("erase")
        if isinstance(target, str):
            self._check_key(target)
            if self._runtime.info_delete(self._handle, target):
                self._touch()
                return 1
            return 0

        first = self._check_own(target, "erase")
        if last is None:
            precondition(
                0 <= first < self._nkeys(),
                "Attempt to erase() at position {} of an info object of size {}!",
                first,
                self._nkeys(),
            )
            keys = [self._key_at(first)]
        else:
            stop = self._check_own(last, "erase")
            precondition(
                0 <= first <= stop <= self._nkeys(),
                "Illegal erase() range [{}, {}) for an info object of size {}!",
                first,
                stop,
                self._nkeys(),
            )
            keys = [self._key_at(index) for index in range(first, stop)]

        for key in keys:
            self._runtime.info_delete(self._handle, key)
        self._touch()
        return self._iterator(first)

    def extract(self, target: Any) -> tuple[str, str] | None:
        """Remove and return the pair at an iterator or under a key.

        Extracting an absent key returns ``None``.
        """
        self._check_live("extract")
        if isinstance(target, str):
            self._check_key(target)
            value = self._value_of(target)
            if value is None:
                return None
            key = target
        else:
            index = self._check_own(target, "extract")
            precondition(
                0 <= index < self._nkeys(),
                "Attempt to extract() at position {} of an info object of size {}!",
                index,
                self._nkeys(),
            )
            key = self._key_at(index)
            value = self._value_of(key)
        self._runtime.info_delete(self._handle, key)
        self._touch()
        return key, value

    def clear(self) -> None:
        self._check_live("clear")
        for index in reversed(range(self._nkeys())):
            self._runtime.info_delete(self._handle, self._key_at(index))
        self._touch()

    def merge(self, source: InfoMap) -> None:
        """Move every pair of *source* whose key is absent here; conflicting keys stay in *source*."""
        precondition(source is not self, "Attempt to merge() an info object with itself!")
        self._check_live("merge")
        source._check_live("merge")
        moved = 0
        for key, value in source.items():
            if self._runtime.info_get_valuelen(self._handle, key) is None:
                self._store(key, value)
                source._runtime.info_delete(source._handle, key)
                moved += 1
        if moved:
            source._touch()

    # -- lookup ------------------------------------------------------------

    def find(self, key: str) -> InfoIterator:
        self._check_live("find")
        self._check_key(key)
        index = self._index_of(key)
        return self.end() if index is None else self._iterator(index)

    def contains(self, key: str) -> bool:
        self._check_live("contains")
        self._check_key(key)
        return self._runtime.info_get_valuelen(self._handle, key) is not None

    __contains__ = contains

    def count(self, key: str) -> int:
        return int(self.contains(key))

    def equal_range(self, key: str) -> tuple[InfoIterator, InfoIterator]:
        it = self.find(key)
        if it == self.end():
            return it, it
        return it, it + 1

    # -- additional functions ----------------------------------------------

    def keys(self) -> list[str]:
        self._check_live("keys")
        return [self._key_at(index) for index in range(self._nkeys())]

    def values(self) -> list[str]:
        self._check_live("values")
        return [self._value_of(key) for key in self.keys()]

    def items(self) -> list[tuple[str, str]]:
        self._check_live("items")
        return [(key, self._value_of(key)) for key in self.keys()]

    # -- comparison --------------------------------------------------------

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, InfoMap):
            return NotImplemented
        if self.is_null() or other.is_null():
            return self.is_null() and other.is_null()
        if self._nkeys() != other._nkeys():
            return False
        return all(other._value_of(key) == value for key, value in self.items())

    def __ne__(self, other: Any) -> bool:
        result = self.__eq__(other)
        return result if result is NotImplemented else not result

    def __repr__(self) -> str:
        if self.is_null():
            return "InfoMap(<MPI_INFO_NULL>)"
        return f"InfoMap({self.items()!r}, freeable={self._freeable})"


def erase_if(info_map: InfoMap, pred: Callable[[tuple[str, str]], bool]) -> int:
    """Erase every pair for which ``pred((key, value))`` holds; returns the number erased."""
    info_map._check_live("erase_if")
    doomed = [key for key, value in info_map.items() if pred((key, value))]
    for key in doomed:
        info_map.erase(key)
    return len(doomed)


def swap(lhs: InfoMap, rhs: InfoMap) -> None:
    lhs.swap(rhs)


def _pairs(source: Any) -> Iterable[tuple[str, str]]:
    if isinstance(source, InfoMap):
        return source.items()
    if isinstance(source, Mapping):
        return source.items()
    return ((key, value) for key, value in source)


def _iterate_range(first: ConstInfoIterator, last: ConstInfoIterator) -> Iterator[tuple[str, str]]:
    precondition(
        isinstance(last, ConstInfoIterator),
        "An iterator range needs two info iterators, got {}",
        type(last).__name__,
    )
    first._check_same_map(last, "iterate over")
    precondition(first <= last, "Illegal iterator range [{}, {})", first.index, last.index)
    for step in range(last - first):
        key, value = (first + step).as_const().deref()
        yield key, value


__all__ = ["InfoMap", "erase_if", "swap"]
