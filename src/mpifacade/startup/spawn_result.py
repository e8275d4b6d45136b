"""Outcome of a spawn: the intercommunicator plus per-process error codes."""

from __future__ import annotations

import sys
from collections import Counter
from typing import TextIO

from mpifacade.core.assertions import precondition
from mpifacade.info.handle import HandleOwner
from mpifacade.runtime import ERRCODE_UNSET, SUCCESS, CommHandle, Runtime


class SpawnResult(HandleOwner):
    """Read-only view of a finished spawn.

    Owns the intercommunicator: it is released by :meth:`free`, on leaving
    a ``with`` block, or when the result is garbage collected while the
    runtime is active.

    Args:
        intercomm: Intercommunicator returned by the runtime.
        errcodes: One code per requested process, or ``None`` when the
            caller did not ask for them.
        maxprocs: Total number of processes requested.
    """

    def __init__(
        self,
        intercomm: CommHandle,
        errcodes: list[int] | None,
        maxprocs: int,
        *,
        runtime: Runtime,
    ) -> None:
        super().__init__(intercomm, not runtime.is_comm_null(intercomm), runtime=runtime)
        self._errcodes = None if errcodes is None else list(errcodes)
        self._maxprocs = maxprocs

    # -- HandleOwner hooks -------------------------------------------------

    def _default_handle(self) -> tuple[CommHandle, bool]:
        return self._runtime.comm_null(), False

    def _free_handle(self, handle: CommHandle) -> None:
        self._runtime.comm_free(handle)

    def _null_handle(self) -> CommHandle:
        return self._runtime.comm_null()

    def _is_null_handle(self, handle: CommHandle) -> bool:
        return self._runtime.is_comm_null(handle)

    # -- queries -----------------------------------------------------------

    @property
    def maxprocs(self) -> int:
        return self._maxprocs

    def intercommunicator(self) -> CommHandle:
        return self._handle

    def errcodes(self) -> list[int] | None:
        return None if self._errcodes is None else list(self._errcodes)

    def number_of_spawned_processes(self) -> int:
        """Processes that started successfully.

        Counted from the error codes when present, otherwise taken from
        the remote group of the intercommunicator.
        """
        if self._errcodes is not None:
            return sum(1 for code in self._errcodes if code == SUCCESS)
        if self.is_null():
            return 0
        return self._runtime.comm_remote_size(self._handle)

    def maxprocs_processes_spawned(self) -> bool:
        return self.number_of_spawned_processes() == self._maxprocs

    def error_list(self) -> str:
        precondition(self._errcodes is not None, "Attempt to list errors of a spawn that didn't request error codes!")
        failed = Counter(code for code in self._errcodes if code != SUCCESS)
        total = sum(failed.values())
        if total == 0:
            return "0 errors occurred!"

        lines = [f"{total} {'error' if total == 1 else 'errors'} occurred!:\n"]
        for code in sorted(failed):
            if code == ERRCODE_UNSET:
                description = "Failed to retrieve error string"
            else:
                description = self._runtime.error_string(code)
            lines.append(f"{failed[code]:>5}x {description}\n")
        return "".join(lines)

    def print_errors_to(self, sink: TextIO | None = None) -> None:
        """Write :meth:`error_list` to *sink* (standard output by default)."""
        (sink or sys.stdout).write(self.error_list())

    def __repr__(self) -> str:
        return (
            f"SpawnResult(maxprocs={self._maxprocs}, "
            f"spawned={self.number_of_spawned_processes()}, "
            f"errcodes={'requested' if self._errcodes is not None else 'ignored'})"
        )


__all__ = ["SpawnResult"]
