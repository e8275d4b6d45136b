"""Spawner for one executable on ``maxprocs`` new processes.

Usage:
    spawner = (
        SingleSpawner("worker.out", 4)
        .add_argv("--verbose", ("--level", 3))
        .set_spawn_info(InfoMap({"host": "node01"}))
    )
    with spawner.spawn() as result:
        if not result.maxprocs_processes_spawned():
            result.print_errors_to(sys.stderr)
"""

from __future__ import annotations

from typing import Any

from mpifacade.core.assertions import precondition, sanity
from mpifacade.info.info_map import InfoMap
from mpifacade.runtime import Runtime
from mpifacade.startup._argv import ArgvPair, marshal_argv, normalize_argv
from mpifacade.startup._spawner_base import SpawnerBase
from mpifacade.startup.spawn_result import SpawnResult


class SingleSpawner(SpawnerBase):
    """Configuration and launch of a single executable.

    Args:
        command: Executable to start.
        maxprocs: Number of processes, in ``(0, universe_size]``.
        runtime: Runtime to spawn with (defaults to the current one).
    """

    def __init__(self, command: str, maxprocs: int, *, runtime: Runtime | None = None) -> None:
        super().__init__(runtime)
        self._command = ""
        self._maxprocs = 0
        self._argv: list[ArgvPair] = []
        self._spawn_info = self._null_info()
        self.set_command(command)
        self.set_maxprocs(maxprocs)

    @classmethod
    def from_pair(cls, pair: tuple[str, int], *, runtime: Runtime | None = None) -> SingleSpawner:
        command, maxprocs = pair
        return cls(command, maxprocs, runtime=runtime)

    # -- setters -----------------------------------------------------------

    def set_command(self, command: str) -> SingleSpawner:
        sanity(command, "Attempt to set executable name to the empty string!")
        self._command = command
        return self

    def set_maxprocs(self, maxprocs: int) -> SingleSpawner:
        sanity(
            self._legal_maxprocs(maxprocs),
            "Attempt to set the maxprocs value (which is {}), which falls outside the valid range (0, {}]!",
            maxprocs,
            self._maxprocs_limit(),
        )
        self._maxprocs = maxprocs
        return self

    def set_spawn_info(self, spawn_info: InfoMap) -> SingleSpawner:
        """Use a copy of *spawn_info* as launch hints."""
        previous, self._spawn_info = self._spawn_info, self._own_info(spawn_info)
        previous.free()
        return self

    def add_argv(self, *args: Any) -> SingleSpawner:
        """Append command line arguments (tokens, ``(key, value)`` pairs or iterables of them)."""
        self._argv.extend(normalize_argv(*args))
        return self

    def remove_argv(self) -> SingleSpawner:
        self._argv.clear()
        return self

    # -- getters -----------------------------------------------------------

    @property
    def command(self) -> str:
        return self._command

    @property
    def maxprocs(self) -> int:
        return self._maxprocs

    @property
    def spawn_info(self) -> InfoMap:
        return self._spawn_info

    @property
    def argv(self) -> list[ArgvPair]:
        return list(self._argv)

    def argv_at(self, i: int) -> ArgvPair:
        self._check_index("SingleSpawner.argv_at", i, len(self._argv), what="argv_size()")
        return self._argv[i]

    def argv_size(self) -> int:
        return len(self._argv)

    # -- launch ------------------------------------------------------------

    def spawn(self, errcodes: bool = True) -> SpawnResult:
        """Start the processes; collective over :attr:`communicator`.

        Args:
            errcodes: Keep one error code per process in the result.
        """
        precondition(self._command, "Attempt to use the executable name which is only an empty string!")
        precondition(
            self._legal_maxprocs(self._maxprocs),
            "Attempt to use the maxprocs value (which is {}), which falls outside the valid range (0, {}]!",
            self._maxprocs,
            self._maxprocs_limit(),
        )
        self._check_launchable()

        outcome = self._runtime.spawn(
            self._command,
            marshal_argv(self._argv) or None,
            self._maxprocs,
            self._spawn_info.handle,
            self._root,
            self._comm,
        )
        return self._record(
            SpawnResult(
                outcome.intercomm,
                outcome.errcodes if errcodes else None,
                self._maxprocs,
                runtime=self._runtime,
            )
        )

    def __repr__(self) -> str:
        return (
            f"SingleSpawner(command={self._command!r}, maxprocs={self._maxprocs}, "
            f"argv={self._argv!r}, root={self._root}, state={self.state.value})"
        )


Spawner = SingleSpawner

__all__ = ["SingleSpawner", "Spawner"]
