"""State and checks shared by :class:`SingleSpawner` and :class:`MultipleSpawner`.

.. code-block:: text

    CONFIGURING ──spawn()──► LAUNCHED
        ▲                       │
        └── setters keep the last SpawnResult; spawn() replaces it

Result getters (``intercommunicator()``, ``errcodes()``, ...) delegate to
the last :class:`SpawnResult` and are contract violations while the
spawner is still configuring.
"""

from __future__ import annotations

from enum import Enum
from typing import TextIO

from mpifacade.core.assertions import precondition, sanity
from mpifacade.core.errors import OutOfRangeError
from mpifacade.info.info_map import InfoMap
from mpifacade.runtime import INT_MAX, CommHandle, Runtime, get_runtime
from mpifacade.startup.spawn_result import SpawnResult


class SpawnerState(str, Enum):
    CONFIGURING = "configuring"
    LAUNCHED = "launched"


class SpawnerBase:
    """Root, communicator and launch state common to all spawners."""

    def __init__(self, runtime: Runtime | None = None) -> None:
        self._runtime = runtime or get_runtime()
        self._root = 0
        self._comm = self._runtime.comm_world()
        self._result: SpawnResult | None = None

    @property
    def runtime(self) -> Runtime:
        return self._runtime

    # -- maxprocs ----------------------------------------------------------

    def _maxprocs_limit(self) -> int:
        universe = self._runtime.universe_size()
        return INT_MAX if universe is None else universe

    def _legal_maxprocs(self, maxprocs: int) -> bool:
        universe = self._runtime.universe_size()
        return 0 < maxprocs < INT_MAX and (universe is None or maxprocs <= universe)

    # -- spawn info --------------------------------------------------------

    def _null_info(self) -> InfoMap:
        return InfoMap.adopt(self._runtime.info_null(), False, runtime=self._runtime)

    def _own_info(self, spawn_info: InfoMap | None) -> InfoMap:
        """Private copy of *spawn_info*; the null map is kept as is."""
        if spawn_info is None or spawn_info.is_null():
            return self._null_info()
        return InfoMap(spawn_info)

    # -- root & communicator -----------------------------------------------

    @property
    def root(self) -> int:
        return self._root

    @property
    def communicator(self) -> CommHandle:
        return self._comm

    def _legal_root(self, root: int, comm: CommHandle) -> bool:
        return 0 <= root < self._runtime.comm_size(comm)

    def set_root(self, root: int):
        sanity(
            self._legal_root(root, self._comm),
            "Attempt to set the root process (which is {}), which falls outside the valid range [0, {})!",
            root,
            self._runtime.comm_size(self._comm),
        )
        self._root = root
        return self

    def set_communicator(self, comm: CommHandle):
        precondition(not self._runtime.is_comm_null(comm), "Attempt to set the communicator to MPI_COMM_NULL!")
        precondition(not self._runtime.comm_is_inter(comm), "Attempt to set the communicator to an intercommunicator!")
        sanity(
            self._legal_root(self._root, comm),
            "The previously set root (which is {}) isn't a valid root in the new communicator anymore!",
            self._root,
        )
        self._comm = comm
        return self

    def _check_launchable(self) -> None:
        precondition(not self._runtime.is_comm_null(self._comm), "Can't use the null communicator!")
        precondition(not self._runtime.comm_is_inter(self._comm), "Can't spawn from an intercommunicator!")
        precondition(
            self._legal_root(self._root, self._comm),
            "The previously set root '{}' isn't a valid root in the current communicator!",
            self._root,
        )

    @staticmethod
    def _check_index(operation: str, index: int, size: int, **kwargs) -> None:
        if not 0 <= index < size:
            raise OutOfRangeError(operation, index=index, size=size, **kwargs)

    # -- launch state ------------------------------------------------------

    @property
    def state(self) -> SpawnerState:
        return SpawnerState.CONFIGURING if self._result is None else SpawnerState.LAUNCHED

    @property
    def result(self) -> SpawnResult:
        return self._launched("result")

    def _launched(self, op: str) -> SpawnResult:
        precondition(self._result is not None, "Attempt to call {}() before spawn()!", op)
        return self._result

    def _record(self, result: SpawnResult) -> SpawnResult:
        self._result = result
        return result

    def intercommunicator(self) -> CommHandle:
        return self._launched("intercommunicator").intercommunicator()

    def errcodes(self) -> list[int] | None:
        return self._launched("errcodes").errcodes()

    def number_of_spawned_processes(self) -> int:
        return self._launched("number_of_spawned_processes").number_of_spawned_processes()

    def maxprocs_processes_spawned(self) -> bool:
        return self._launched("maxprocs_processes_spawned").maxprocs_processes_spawned()

    def error_list(self) -> str:
        return self._launched("error_list").error_list()

    def print_errors_to(self, sink: TextIO | None = None) -> None:
        self._launched("print_errors_to").print_errors_to(sink)


__all__ = ["SpawnerBase", "SpawnerState"]
