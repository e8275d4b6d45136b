"""Ownership of opaque runtime handles.

A :class:`HandleOwner` stores ``(handle, freeable)``. The handle is
released when the owner is freed, leaves a ``with`` block or is garbage
collected, but only if ``freeable`` is set and the handle is not the
runtime's null sentinel. Adopted handles keep whatever freeability the
caller declares.

Subclasses bind the owner to one kind of runtime object by implementing
the ``_default_handle``, ``_duplicate_handle``, ``_free_handle``,
``_null_handle`` and ``_is_null_handle`` hooks.
"""

from __future__ import annotations

from typing import Any

from mpifacade.core.assertions import precondition
from mpifacade.runtime import Runtime, get_runtime


class HandleOwner:
    """Owns a runtime handle iff ``freeable``."""

    _runtime: Runtime | None = None
    _handle: Any = None
    _freeable: bool = False

    def __init__(self, handle: Any = None, freeable: bool = True, *, runtime: Runtime | None = None) -> None:
        self._runtime = runtime or get_runtime()
        if handle is None:
            handle, freeable = self._default_handle()
        else:
            precondition(
                not freeable or not self._is_null_handle(handle),
                "Adopting a null handle requires freeable == false!",
            )
        self._handle = handle
        self._freeable = bool(freeable)

    # -- hooks -------------------------------------------------------------

    def _default_handle(self) -> tuple[Any, bool]:
        raise NotImplementedError

    def _duplicate_handle(self, handle: Any) -> Any:
        raise NotImplementedError

    def _free_handle(self, handle: Any) -> None:
        raise NotImplementedError

    def _null_handle(self) -> Any:
        raise NotImplementedError

    def _is_null_handle(self, handle: Any) -> bool:
        raise NotImplementedError

    # -- accessors ---------------------------------------------------------

    @property
    def runtime(self) -> Runtime:
        return self._runtime

    @property
    def handle(self) -> Any:
        """The underlying runtime handle (not owned by the caller)."""
        return self._handle

    @property
    def freeable(self) -> bool:
        """Whether this object releases its handle at end of life."""
        return self._freeable

    def is_null(self) -> bool:
        return self._is_null_handle(self._handle)

    # -- ownership transfer ------------------------------------------------

    def _duplicate(self) -> Any:
        """Deep copy of the current handle; the copy is always owned."""
        return self._duplicate_handle(self._handle)

    def _take(self) -> tuple[Any, bool]:
        """Hand over ``(handle, freeable)`` and reset self to a fresh default."""
        taken = (self._handle, self._freeable)
        self._handle, self._freeable = self._default_handle()
        return taken

    def _replace(self, handle: Any, freeable: bool) -> None:
        """Release the current handle (if owned) and take over *handle*."""
        self._release()
        self._handle = handle
        self._freeable = freeable

    def _exchange(self, other: HandleOwner) -> None:
        self._runtime, other._runtime = other._runtime, self._runtime
        self._handle, other._handle = other._handle, self._handle
        self._freeable, other._freeable = other._freeable, self._freeable

    def _release(self) -> None:
        if self._handle is not None and self._freeable and not self._is_null_handle(self._handle):
            self._free_handle(self._handle)

    def free(self) -> None:
        """Release the handle if owned; afterwards this object refers to the null handle."""
        self._release()
        self._handle = self._null_handle()
        self._freeable = False

    def __copy__(self):
        # A second owner of the same handle would release it twice.
        raise TypeError(f"{type(self).__name__} owns its handle and cannot be copied")

    def __deepcopy__(self, memo: dict):
        return self.__copy__()

    def _runtime_active(self) -> bool:
        runtime = self._runtime
        return runtime is not None and runtime.initialized() and not runtime.finalized()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.free()

    def __del__(self) -> None:
        # Handles die with the runtime; nothing to release outside the active window.
        if self._handle is not None and self._freeable and self._runtime_active():
            self._release()
            self._freeable = False


__all__ = ["HandleOwner"]
