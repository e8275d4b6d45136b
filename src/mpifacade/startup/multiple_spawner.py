"""
Spawner for several executables started by one collective call.

Manifesto:
    Starting K executables together gives them a single
    intercommunicator and a shared ``MPI_COMM_WORLD``. The spawner keeps
    K parallel slots (command, maxprocs, argv, spawn info) and enforces
    the aggregate invariants on every change and once more in
    ``spawn()``.

Architecture:

    .. code-block:: text

        MultipleSpawner
        ├── construction   (cmd, maxprocs) pairs │ [pairs] │ spawners (flattened)
        │                  from_ranges(commands, maxprocs)
        ├── bulk setters   set_command / set_maxprocs / set_spawn_info / add_argv
        │                  exactly K values (variadic or one iterable)
        ├── indexed        *_at(i, ...) → OutOfRangeError outside [0, K)
        └── spawn()        runtime.spawn_multiple(...) → SpawnResult

Invariants:
    - K >= 1 and every command is non-empty.
    - Every maxprocs value is in ``(0, INT_MAX)`` and the total does not
      exceed the universe size when it is known.
    - Only the ``*_at`` accessors raise :class:`OutOfRangeError`; every
      other violation is a contract violation.

Examples:
    >>> ms = MultipleSpawner(("a.out", 4), ("b.out", 2))
    >>> _ = ms.add_argv(["-foo", "bar"], ["-bar", 1])
    >>> ms.argv_at(1)
    [('-bar', ''), ('1', '')]
    >>> ms.total_maxprocs()
    6
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from mpifacade.core.assertions import precondition, sanity
from mpifacade.info.info_map import InfoMap
from mpifacade.runtime import Runtime
from mpifacade.startup._argv import ArgvPair, is_argv_pair, is_scalar, marshal_argv, normalize_argv
from mpifacade.startup._spawner_base import SpawnerBase
from mpifacade.startup.single_spawner import SingleSpawner
from mpifacade.startup.spawn_result import SpawnResult


def _is_pair(value: Any) -> bool:
    return isinstance(value, tuple) and len(value) == 2 and isinstance(value[0], str)


def _is_block_list(value: Any) -> bool:
    """One iterable holding all argv blocks, as opposed to a single token, pair or mapping."""
    return not is_scalar(value) and not is_argv_pair(value) and not isinstance(value, Mapping)


class MultipleSpawner(SpawnerBase):
    """Configuration and launch of K executables.

    Accepts ``(command, maxprocs)`` pairs, either as separate arguments
    or as one iterable, or existing spawners which are flattened in
    order (they must agree on root and communicator).
    """

    def __init__(self, *args: Any, runtime: Runtime | None = None) -> None:
        if len(args) == 1 and not _is_pair(args[0]) and not isinstance(args[0], SpawnerBase):
            args = tuple(args[0])
        precondition(args, "Attempt to create a MultipleSpawner without any executable!")

        spawners = [arg for arg in args if isinstance(arg, SpawnerBase)]
        if spawners:
            precondition(
                len(spawners) == len(args),
                "Attempt to mix spawners and (command, maxprocs) pairs!",
            )
            super().__init__(runtime or spawners[0].runtime)
            self._init_from_spawners(spawners)
        else:
            super().__init__(runtime)
            for i, arg in enumerate(args):
                precondition(_is_pair(arg), "The {}-th argument isn't a (command, maxprocs) pair: {!r}", i, arg)
            self._commands = [command for command, _ in args]
            self._maxprocs = [maxprocs for _, maxprocs in args]
            self._argvs: list[list[ArgvPair]] = [[] for _ in args]
            self._spawn_infos = [self._null_info() for _ in args]

        for i, command in enumerate(self._commands):
            sanity(command, "Attempt to set the {}-th executable name to the empty string!", i)
        self._check_maxprocs()

    @classmethod
    def from_ranges(
        cls,
        commands: Iterable[str],
        maxprocs: Iterable[int],
        *,
        runtime: Runtime | None = None,
    ) -> MultipleSpawner:
        """Build from two parallel ranges of commands and maxprocs values."""
        commands = list(commands)
        maxprocs = list(maxprocs)
        precondition(
            len(commands) == len(maxprocs),
            "Attempt to pass two ranges of different sizes (size of first range (which is {}) != size of second range (which is {}))!",
            len(commands),
            len(maxprocs),
        )
        return cls(list(zip(commands, maxprocs)), runtime=runtime)

    def _init_from_spawners(self, spawners: list[SpawnerBase]) -> None:
        first = spawners[0]
        precondition(
            all(s.root == first.root for s in spawners),
            "Attempt to use different root processes!",
        )
        precondition(
            all(s.communicator == first.communicator for s in spawners),
            "Attempt to use different communicators!",
        )
        self._commands = []
        self._maxprocs = []
        self._argvs = []
        self._spawn_infos = []
        for spawner in spawners:
            if isinstance(spawner, SingleSpawner):
                self._commands.append(spawner.command)
                self._maxprocs.append(spawner.maxprocs)
                self._argvs.append(spawner.argv)
                self._spawn_infos.append(self._own_info(spawner.spawn_info))
            else:
                for i in range(spawner.size()):
                    self._commands.append(spawner.command_at(i))
                    self._maxprocs.append(spawner.maxprocs_at(i))
                    self._argvs.append(spawner.argv_at(i))
                    self._spawn_infos.append(self._own_info(spawner.spawn_info_at(i)))
        self._root = first.root
        self._comm = first.communicator

    # -- checks ------------------------------------------------------------

    def _check_maxprocs(self, values: list[int] | None = None) -> None:
        values = self._maxprocs if values is None else values
        limit = self._maxprocs_limit()
        for i, maxprocs in enumerate(values):
            sanity(
                self._legal_maxprocs(maxprocs),
                "Attempt to set the {}-th maxprocs value (which is {}), which falls outside the valid range (0, {}]!",
                i,
                maxprocs,
                limit,
            )
        sanity(
            self._legal_maxprocs(sum(values)),
            "Attempt to set the total number of maxprocs (which is: {} = {}), which falls outside the valid range (0, {}]!",
            " + ".join(str(m) for m in values),
            sum(values),
            limit,
        )

    def _bulk(self, args: tuple[Any, ...], scalar: type | tuple[type, ...]) -> list[Any]:
        """Exactly K values, passed variadically or as one iterable."""
        if len(args) == 1 and not isinstance(args[0], scalar) and isinstance(args[0], Iterable):
            values = list(args[0])
        else:
            values = list(args)
        sanity(
            len(values) == self.size(),
            "Illegal number of values: {} != size() (which is {})",
            len(values),
            self.size(),
        )
        return values

    def _at(self, operation: str, i: int) -> None:
        self._check_index(f"MultipleSpawner.{operation}", i, self.size())

    # -- commands ----------------------------------------------------------

    def set_command(self, *commands: str) -> MultipleSpawner:
        values = self._bulk(commands, str)
        for i, command in enumerate(values):
            sanity(command, "Attempt to set the {}-th executable name to the empty string!", i)
        self._commands = values
        return self

    def set_command_at(self, i: int, command: str) -> MultipleSpawner:
        self._at("set_command_at", i)
        sanity(command, "Attempt to set the {}-th executable name to the empty string!", i)
        self._commands[i] = command
        return self

    @property
    def command(self) -> tuple[str, ...]:
        return tuple(self._commands)

    def command_at(self, i: int) -> str:
        self._at("command_at", i)
        return self._commands[i]

    # -- maxprocs ----------------------------------------------------------

    def set_maxprocs(self, *maxprocs: int) -> MultipleSpawner:
        values = self._bulk(maxprocs, int)
        self._check_maxprocs(values)
        self._maxprocs = values
        return self

    def set_maxprocs_at(self, i: int, maxprocs: int) -> MultipleSpawner:
        self._at("set_maxprocs_at", i)
        values = list(self._maxprocs)
        values[i] = maxprocs
        self._check_maxprocs(values)
        self._maxprocs = values
        return self

    @property
    def maxprocs(self) -> tuple[int, ...]:
        return tuple(self._maxprocs)

    def maxprocs_at(self, i: int) -> int:
        self._at("maxprocs_at", i)
        return self._maxprocs[i]

    def total_maxprocs(self) -> int:
        return sum(self._maxprocs)

    # -- spawn info --------------------------------------------------------

    def set_spawn_info(self, *spawn_infos: InfoMap) -> MultipleSpawner:
        values = [self._own_info(info) for info in self._bulk(spawn_infos, InfoMap)]
        previous, self._spawn_infos = self._spawn_infos, values
        for info in previous:
            info.free()
        return self

    def set_spawn_info_at(self, i: int, spawn_info: InfoMap) -> MultipleSpawner:
        self._at("set_spawn_info_at", i)
        previous, self._spawn_infos[i] = self._spawn_infos[i], self._own_info(spawn_info)
        previous.free()
        return self

    @property
    def spawn_info(self) -> tuple[InfoMap, ...]:
        return tuple(self._spawn_infos)

    def spawn_info_at(self, i: int) -> InfoMap:
        self._at("spawn_info_at", i)
        return self._spawn_infos[i]

    # -- argv --------------------------------------------------------------

    def add_argv(self, *blocks: Any) -> MultipleSpawner:
        """Append one argv block per executable.

        ``add_argv(block_0, ..., block_K-1)`` or ``add_argv([block_0, ...])``.
        A lone token, pair or mapping counts as a single block.
        """
        if len(blocks) == 1 and self.size() != 1 and _is_block_list(blocks[0]):
            blocks = tuple(blocks[0])
        sanity(
            len(blocks) == self.size(),
            "Illegal number of argv blocks: {} != size() (which is {})",
            len(blocks),
            self.size(),
        )
        normalized = [normalize_argv(block) for block in blocks]
        for argv, block in zip(self._argvs, normalized):
            argv.extend(block)
        return self

    def add_argv_at(self, i: int, *args: Any) -> MultipleSpawner:
        self._at("add_argv_at", i)
        self._argvs[i].extend(normalize_argv(*args))
        return self

    def remove_argv(self) -> MultipleSpawner:
        for argv in self._argvs:
            argv.clear()
        return self

    def remove_argv_at(self, i: int, j: int | None = None) -> MultipleSpawner:
        """Clear the argv of executable *i*, or only its *j*-th argument."""
        self._at("remove_argv_at", i)
        if j is None:
            self._argvs[i].clear()
        else:
            self._check_index(
                "MultipleSpawner.remove_argv_at",
                j,
                len(self._argvs[i]),
                what=f"argv_size({i})",
                index_name="j",
            )
            del self._argvs[i][j]
        return self

    @property
    def argv(self) -> list[list[ArgvPair]]:
        return [list(argv) for argv in self._argvs]

    def argv_at(self, i: int, j: int | None = None) -> Any:
        """Argv of executable *i*, or its *j*-th ``(key, value)`` pair."""
        self._at("argv_at", i)
        if j is None:
            return list(self._argvs[i])
        self._check_index("MultipleSpawner.argv_at", j, len(self._argvs[i]), what=f"argv_size({i})", index_name="j")
        return self._argvs[i][j]

    def argv_size(self, i: int | None = None) -> Any:
        """Argv lengths of all executables, or of executable *i*."""
        if i is None:
            return [len(argv) for argv in self._argvs]
        self._at("argv_size", i)
        return len(self._argvs[i])

    # -- size --------------------------------------------------------------

    def size(self) -> int:
        sanity(
            len(self._commands) == len(self._maxprocs) == len(self._argvs) == len(self._spawn_infos),
            "Attempt to retrieve the size while the sizes of the members (commands = {}, argvs = {}, maxprocs = {}, info = {}) differ!",
            len(self._commands),
            len(self._argvs),
            len(self._maxprocs),
            len(self._spawn_infos),
        )
        return len(self._commands)

    def __len__(self) -> int:
        return self.size()

    # -- launch ------------------------------------------------------------

    def spawn(self, errcodes: bool = True) -> SpawnResult:
        """Start all executables with one collective call.

        Args:
            errcodes: Keep one error code per process in the result.
        """
        for i, command in enumerate(self._commands):
            precondition(command, "Attempt to use the {}-th executable name which is only an empty string!", i)
        limit = self._maxprocs_limit()
        for i, maxprocs in enumerate(self._maxprocs):
            precondition(
                self._legal_maxprocs(maxprocs),
                "Attempt to use the {}-th maxprocs value (which is {}), which falls outside the valid range (0, {}]!",
                i,
                maxprocs,
                limit,
            )
        precondition(
            self._legal_maxprocs(self.total_maxprocs()),
            "Attempt to use the total number of maxprocs (which is: {} = {}), which falls outside the valid range (0, {}]!",
            " + ".join(str(m) for m in self._maxprocs),
            self.total_maxprocs(),
            limit,
        )
        self._check_launchable()

        argvs = None
        if any(self._argvs):
            argvs = [marshal_argv(argv) for argv in self._argvs]

        outcome = self._runtime.spawn_multiple(
            list(self._commands),
            argvs,
            list(self._maxprocs),
            [info.handle for info in self._spawn_infos],
            self._root,
            self._comm,
        )
        return self._record(
            SpawnResult(
                outcome.intercomm,
                outcome.errcodes if errcodes else None,
                self.total_maxprocs(),
                runtime=self._runtime,
            )
        )

    def __repr__(self) -> str:
        return (
            f"MultipleSpawner(commands={self._commands!r}, maxprocs={self._maxprocs!r}, "
            f"root={self._root}, state={self.state.value})"
        )


MultiSpawner = MultipleSpawner

__all__ = ["MultipleSpawner", "MultiSpawner"]
