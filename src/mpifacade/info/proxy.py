"""Element proxy returned by ``InfoMap[key]``.

The native info object only supports set-by-key and get-by-key, so
element access hands out a proxy that separates the two directions:

- **write**: ``proxy.set(value)`` (or ``m[key] = value``) stores *value*.
- **read**: ``proxy.get()``, ``str(proxy)``, ``f"{proxy}"`` or a
  comparison materializes the current value. Reading a key that is not
  present inserts a single space and returns it, so ``m[key]`` behaves
  like a standard mapping's default-inserting subscript.

A proxy is only valid while its map keeps the handle it had when the
proxy was created. After ``move()``, ``swap()`` or ``free()`` on the map,
using the proxy is a contract violation.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from mpifacade.core.assertions import precondition

if TYPE_CHECKING:
    from mpifacade.info.info_map import InfoMap

PLACEHOLDER = " "


class InfoProxy:
    """Reference to ``(map, key)`` distinguishing reads from writes."""

    __slots__ = ("_map", "_key", "_epoch")
    __hash__ = None

    def __init__(self, info_map: InfoMap, key: str) -> None:
        self._map = info_map
        self._key = key
        self._epoch = info_map._epoch

    @property
    def key(self) -> str:
        return self._key

    def _check(self, op: str) -> InfoMap:
        info_map = self._map
        precondition(
            self._epoch == info_map._epoch,
            "Attempt to {} through a proxy whose info object has been moved, swapped or freed!",
            op,
        )
        precondition(
            not info_map.is_null(),
            "Attempt to {} through a proxy referring to 'MPI_INFO_NULL'!",
            op,
        )
        return info_map

    def get(self) -> str:
        """Read the value, inserting ``" "`` if the key is absent."""
        info_map = self._check("read")
        value = info_map.runtime.info_get(info_map.handle, self._key)
        if value is None:
            info_map._store(self._key, PLACEHOLDER)
            return PLACEHOLDER
        return value

    def set(self, value: str) -> None:
        """Store *value* under the proxied key."""
        info_map = self._check("write")
        info_map._check_value(value)
        info_map._store(self._key, value)

    def __str__(self) -> str:
        return self.get()

    def __format__(self, format_spec: str) -> str:
        return format(self.get(), format_spec)

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, InfoProxy):
            return self.get() == other.get()
        if isinstance(other, str):
            return self.get() == other
        return NotImplemented

    def __ne__(self, other: Any) -> bool:
        result = self.__eq__(other)
        return result if result is NotImplemented else not result

    def __len__(self) -> int:
        return len(self.get())

    def __repr__(self) -> str:
        return f"InfoProxy(key={self._key!r})"


__all__ = ["InfoProxy", "PLACEHOLDER"]
