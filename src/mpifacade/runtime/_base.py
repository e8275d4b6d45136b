"""Base runtime with shared spawn logic, and the in-memory stub runtime.

``BaseRuntime`` wraps the two spawn primitives with structured logging
and converts unexpected exceptions into :class:`RuntimeFailureError`.
``StubRuntime`` implements every primitive in memory so the facade can
be exercised without an MPI installation.

Architecture:

    .. code-block:: text

        BaseRuntime
        ├── spawn()           → log spawn_started → _do_spawn()          → log spawn_completed
        ├── spawn_multiple()  → log spawn_started → _do_spawn_multiple() → log spawn_completed
        └── on error: wrap in RuntimeFailureError (FacadeErrors pass through)
              │
        ┌─────┴───────────────────────┐
        ▼                             ▼
    Mpi4pyRuntime              StubRuntime
    (real MPI)                 (in-memory for tests)

Usage:
    runtime = StubRuntime(world_size=4, universe_size=16)
    runtime.failing_commands["broken.out"] = StubRuntime.ERR_SPAWN
    with use_runtime(runtime):
        result = SingleSpawner("broken.out", 2).spawn()
        assert result.number_of_spawned_processes() == 0
"""

from __future__ import annotations

import itertools
import platform
import sys
import time
from collections.abc import Sequence
from dataclasses import dataclass, field

from mpifacade.core.errors import FacadeError, RuntimeFailureError
from mpifacade.core.logging import get_logger
from mpifacade.runtime._types import (
    ERRHANDLER_COMM,
    ERRHANDLER_FILE,
    ERRHANDLER_WIN,
    SUCCESS,
    THREAD_MULTIPLE,
    THREAD_SINGLE,
    CommHandle,
    ErrhandlerCallback,
    InfoHandle,
    SpawnOutcome,
)

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Base runtime
# ---------------------------------------------------------------------------

class BaseRuntime:
    """Base class for runtimes with shared spawn lifecycle logic.

    Subclasses MUST implement every primitive of
    :class:`~mpifacade.runtime._types.Runtime` except ``spawn`` and
    ``spawn_multiple``, which they provide as ``_do_spawn`` and
    ``_do_spawn_multiple``.
    """

    @property
    def runtime_name(self) -> str:
        """Unique name for this runtime."""
        raise NotImplementedError

    def spawn(
        self,
        command: str,
        argv: Sequence[str] | None,
        maxprocs: int,
        info: InfoHandle,
        root: int,
        comm: CommHandle,
    ) -> SpawnOutcome:
        """Spawn *maxprocs* copies of *command* with logging and error wrapping."""
        logger.info(
            "spawn_started",
            runtime=self.runtime_name,
            command=command,
            argv=list(argv or ()),
            maxprocs=maxprocs,
            root=root,
        )
        try:
            outcome = self._do_spawn(command, argv, maxprocs, info, root, comm)
        except FacadeError:
            raise
        except Exception as exc:
            logger.error("spawn_failed", runtime=self.runtime_name, command=command, error=str(exc))
            raise RuntimeFailureError(f"Spawn of '{command}' failed: {exc}", cause=exc) from exc
        self._log_outcome([command], outcome)
        return outcome

    def spawn_multiple(
        self,
        commands: Sequence[str],
        argvs: Sequence[Sequence[str]] | None,
        maxprocs: Sequence[int],
        infos: Sequence[InfoHandle],
        root: int,
        comm: CommHandle,
    ) -> SpawnOutcome:
        """Spawn several executables in one collective call."""
        logger.info(
            "spawn_started",
            runtime=self.runtime_name,
            commands=list(commands),
            maxprocs=list(maxprocs),
            root=root,
        )
        try:
            outcome = self._do_spawn_multiple(commands, argvs, maxprocs, infos, root, comm)
        except FacadeError:
            raise
        except Exception as exc:
            logger.error("spawn_failed", runtime=self.runtime_name, commands=list(commands), error=str(exc))
            raise RuntimeFailureError(f"Spawn of {list(commands)} failed: {exc}", cause=exc) from exc
        self._log_outcome(list(commands), outcome)
        return outcome

    def _log_outcome(self, commands: list[str], outcome: SpawnOutcome) -> None:
        failed = sum(1 for code in outcome.errcodes if code != SUCCESS)
        if failed:
            logger.warning(
                "spawn_partial_failure",
                runtime=self.runtime_name,
                commands=commands,
                failed=failed,
                requested=len(outcome.errcodes),
            )
        logger.info(
            "spawn_completed",
            runtime=self.runtime_name,
            commands=commands,
            spawned=len(outcome.errcodes) - failed,
        )

    # -- Abstract methods (subclass implements) ----------------------------

    def _do_spawn(self, command, argv, maxprocs, info, root, comm) -> SpawnOutcome:
        """Implement in subclass."""
        raise NotImplementedError

    def _do_spawn_multiple(self, commands, argvs, maxprocs, infos, root, comm) -> SpawnOutcome:
        """Implement in subclass."""
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


# ---------------------------------------------------------------------------
# Stub runtime for testing
# ---------------------------------------------------------------------------

_ids = itertools.count(1)


class _StubInfo:
    """In-memory info object: an insertion-ordered dict plus a liveness flag."""

    def __init__(self, name: str | None = None, entries: dict[str, str] | None = None) -> None:
        self.id = next(_ids)
        self.name = name or f"info-{self.id}"
        self.entries: dict[str, str] = dict(entries or {})
        self.freed = False

    def __repr__(self) -> str:
        return f"<StubInfo {self.name} {self.entries!r}>"


class _StubComm:
    """In-memory communicator."""

    def __init__(
        self,
        name: str,
        size: int,
        rank: int = 0,
        *,
        remote_size: int | None = None,
    ) -> None:
        self.id = next(_ids)
        self.name = name
        self.size = size
        self.rank = rank
        self.remote_size = remote_size
        self.freed = False

    @property
    def is_inter(self) -> bool:
        return self.remote_size is not None

    def __repr__(self) -> str:
        return f"<StubComm {self.name} size={self.size}>"


class _StubErrhandler:
    """In-memory error handler for one kind of object."""

    def __init__(self, kind: int, callback: ErrhandlerCallback) -> None:
        self.id = next(_ids)
        self.kind = kind
        self.callback = callback
        self.freed = False

    def __repr__(self) -> str:
        return f"<StubErrhandler {self.id} kind={self.kind}>"


@dataclass
class SpawnCall:
    """One recorded spawn primitive invocation."""

    commands: list[str]
    argvs: list[list[str] | None]
    maxprocs: list[int]
    infos: list[dict[str, str] | None]
    root: int
    comm: _StubComm
    errcodes: list[int] = field(default_factory=list)

    @property
    def multiple(self) -> bool:
        return len(self.commands) > 1


class StubRuntime(BaseRuntime):
    """In-memory runtime for unit tests.

    .. code-block:: text

        StubRuntime behavior:

        info objects  → insertion-ordered dicts, null/env sentinels
        COMM_WORLD    → world_size processes, this process is rank 0
        spawn()       → every process succeeds, unless
                          failing_commands[command] = errcode, or
                          spawn_limit caps the processes that may start
        abort()       → raises StubAbort (a SystemExit)
        error codes   → 0..ERR_LASTCODE predefined, each its own class;
                        add_error_class/add_error_code extend the range
        errhandlers   → callbacks per communicator; none attached means
                        comm_call_errhandler() aborts

        Track usage:
          runtime.spawn_calls      → list of SpawnCall
          runtime.live_info_count  → info objects created and not yet freed
          runtime.freed_infos      → number of info_free calls
          runtime.live_errhandler_count → error handlers not yet freed
    """

    ERR_SPAWN = 42
    ERR_LASTCODE = 64
    MAX_INFO_KEY = 255
    MAX_INFO_VAL = 1024
    MAX_ERROR_STRING = 256

    _ERROR_STRINGS = {
        SUCCESS: "MPI_SUCCESS: no errors",
        ERR_SPAWN: "MPI_ERR_SPAWN: could not spawn processes",
    }

    def __init__(
        self,
        *,
        world_size: int = 1,
        universe_size: int | None = None,
        thread_level_limit: int = THREAD_MULTIPLE,
        initialized: bool = True,
        spawn_limit: int | None = None,
        processor_name: str | None = None,
        mpi_version: tuple[int, int] = (3, 1),
        library_version: str = "mpifacade stub runtime (in-memory)",
    ) -> None:
        self.world_size = world_size
        self._universe_size = universe_size
        self.thread_level_limit = thread_level_limit
        self.spawn_limit = spawn_limit
        self._processor_name = processor_name or platform.node() or "localhost"
        self._mpi_version = mpi_version
        self._library_version = library_version

        self._initialized = initialized
        self._finalized = False
        self._provided = thread_level_limit if initialized else THREAD_SINGLE

        self._null_info = _StubInfo("MPI_INFO_NULL")
        self._env_info = _StubInfo("MPI_INFO_ENV", self._environment_entries())
        self._world = _StubComm("MPI_COMM_WORLD", world_size)
        self._self = _StubComm("MPI_COMM_SELF", 1)
        self._null_comm = _StubComm("MPI_COMM_NULL", 0)
        self.parent: _StubComm = self._null_comm

        self.failing_commands: dict[str, int] = {}
        self.spawn_calls: list[SpawnCall] = []
        self.aborted: tuple[_StubComm, int] | None = None
        self.live_infos: set[int] = set()
        self.freed_infos = 0
        self.freed_comms = 0

        self._last_used_code = self.ERR_LASTCODE
        self._user_classes: set[int] = set()
        self._user_codes: dict[int, int] = {}
        self._user_strings: dict[int, str] = {}
        self._comm_errhandlers: dict[int, _StubErrhandler] = {}
        self.live_errhandlers: set[int] = set()
        self.freed_errhandlers = 0

    @property
    def runtime_name(self) -> str:
        return "stub"

    def __repr__(self) -> str:
        return f"StubRuntime(world_size={self.world_size}, universe_size={self._universe_size})"

    # -- helpers for tests -------------------------------------------------

    def create_comm(self, size: int, rank: int = 0, name: str | None = None) -> _StubComm:
        """Create an additional intracommunicator of *size* processes."""
        return _StubComm(name or f"comm-{size}", size, rank)

    @property
    def live_info_count(self) -> int:
        return len(self.live_infos)

    @property
    def live_errhandler_count(self) -> int:
        return len(self.live_errhandlers)

    def _environment_entries(self) -> dict[str, str]:
        entries = {
            "command": sys.argv[0] if sys.argv and sys.argv[0] else "python",
            "argv": " ".join(sys.argv[1:]),
            "maxprocs": str(self.world_size),
            "host": self._processor_name,
            "thread_level": "MPI_THREAD_MULTIPLE",
        }
        return {key: value for key, value in entries.items() if value}

    # -- info objects ------------------------------------------------------

    def _live_info(self, info: _StubInfo) -> _StubInfo:
        if info is self._null_info:
            raise RuntimeFailureError("MPI_ERR_INFO: invalid use of MPI_INFO_NULL")
        if info.freed:
            raise RuntimeFailureError(f"MPI_ERR_INFO: {info.name} has already been freed")
        return info

    def info_create(self) -> _StubInfo:
        info = _StubInfo()
        self.live_infos.add(info.id)
        return info

    def info_dup(self, info: _StubInfo) -> _StubInfo:
        source = self._live_info(info)
        copy = _StubInfo(entries=source.entries)
        self.live_infos.add(copy.id)
        return copy

    def info_free(self, info: _StubInfo) -> None:
        source = self._live_info(info)
        if source is self._env_info:
            raise RuntimeFailureError("MPI_ERR_INFO: MPI_INFO_ENV can't be freed")
        source.freed = True
        self.live_infos.discard(source.id)
        self.freed_infos += 1

    def info_null(self) -> _StubInfo:
        return self._null_info

    def info_env(self) -> _StubInfo:
        return self._env_info

    def is_info_null(self, info: InfoHandle) -> bool:
        return info is self._null_info

    def info_get_nkeys(self, info: _StubInfo) -> int:
        return len(self._live_info(info).entries)

    def info_get_nthkey(self, info: _StubInfo, n: int) -> str:
        entries = self._live_info(info).entries
        if not 0 <= n < len(entries):
            raise RuntimeFailureError(f"MPI_ERR_ARG: key index {n} out of range [0, {len(entries)})")
        return next(itertools.islice(entries, n, None))

    def info_get_valuelen(self, info: _StubInfo, key: str) -> int | None:
        value = self._live_info(info).entries.get(key)
        return None if value is None else len(value)

    def info_get(self, info: _StubInfo, key: str) -> str | None:
        return self._live_info(info).entries.get(key)

    def info_set(self, info: _StubInfo, key: str, value: str) -> None:
        target = self._live_info(info)
        if not 0 < len(key) < self.MAX_INFO_KEY:
            raise RuntimeFailureError(f"MPI_ERR_INFO_KEY: illegal key length {len(key)}")
        if not 0 < len(value) < self.MAX_INFO_VAL:
            raise RuntimeFailureError(f"MPI_ERR_INFO_VALUE: illegal value length {len(value)}")
        target.entries[key] = value

    def info_delete(self, info: _StubInfo, key: str) -> bool:
        entries = self._live_info(info).entries
        if key not in entries:
            return False
        del entries[key]
        return True

    def max_info_key(self) -> int:
        return self.MAX_INFO_KEY

    def max_info_val(self) -> int:
        return self.MAX_INFO_VAL

    # -- communicators -----------------------------------------------------

    def _live_comm(self, comm: _StubComm) -> _StubComm:
        if comm is self._null_comm:
            raise RuntimeFailureError("MPI_ERR_COMM: invalid use of MPI_COMM_NULL")
        if comm.freed:
            raise RuntimeFailureError(f"MPI_ERR_COMM: {comm.name} has already been freed")
        return comm

    def comm_world(self) -> _StubComm:
        return self._world

    def comm_self(self) -> _StubComm:
        return self._self

    def comm_null(self) -> _StubComm:
        return self._null_comm

    def is_comm_null(self, comm: CommHandle) -> bool:
        return comm is self._null_comm

    def comm_size(self, comm: _StubComm) -> int:
        return self._live_comm(comm).size

    def comm_rank(self, comm: _StubComm) -> int:
        return self._live_comm(comm).rank

    def comm_is_inter(self, comm: _StubComm) -> bool:
        return self._live_comm(comm).is_inter

    def comm_remote_size(self, comm: _StubComm) -> int:
        target = self._live_comm(comm)
        if not target.is_inter:
            raise RuntimeFailureError(f"MPI_ERR_COMM: {target.name} is not an intercommunicator")
        return target.remote_size or 0

    def comm_free(self, comm: _StubComm) -> None:
        target = self._live_comm(comm)
        if target is self._world or target is self._self:
            raise RuntimeFailureError(f"MPI_ERR_COMM: {target.name} can't be freed")
        target.freed = True
        self.freed_comms += 1

    def comm_get_parent(self) -> _StubComm:
        return self.parent

    def universe_size(self) -> int | None:
        return self._universe_size

    # -- process management ------------------------------------------------

    def _errcodes_for(self, command: str, maxprocs: int, started: int) -> list[int]:
        failing = self.failing_commands.get(command)
        codes = []
        for i in range(maxprocs):
            if failing is not None:
                codes.append(failing)
            elif self.spawn_limit is not None and started + i >= self.spawn_limit:
                codes.append(self.ERR_SPAWN)
            else:
                codes.append(SUCCESS)
        return codes

    def _snapshot(self, info: InfoHandle) -> dict[str, str] | None:
        if info is self._null_info:
            return None
        return dict(self._live_info(info).entries)

    def _do_spawn(self, command, argv, maxprocs, info, root, comm) -> SpawnOutcome:
        return self._do_spawn_multiple([command], None if argv is None else [argv], [maxprocs], [info], root, comm)

    def _do_spawn_multiple(self, commands, argvs, maxprocs, infos, root, comm) -> SpawnOutcome:
        parent = self._live_comm(comm)
        if not 0 <= root < parent.size:
            raise RuntimeFailureError(f"MPI_ERR_ROOT: root {root} outside [0, {parent.size})")

        errcodes: list[int] = []
        for command, count in zip(commands, maxprocs):
            errcodes.extend(self._errcodes_for(command, count, len(errcodes)))

        spawned = sum(1 for code in errcodes if code == SUCCESS)
        intercomm = _StubComm(f"intercomm-{'+'.join(commands)}", parent.size, parent.rank, remote_size=spawned)

        self.spawn_calls.append(
            SpawnCall(
                commands=list(commands),
                argvs=[None] * len(commands) if argvs is None else [list(a) if a is not None else None for a in argvs],
                maxprocs=list(maxprocs),
                infos=[self._snapshot(info) for info in infos],
                root=root,
                comm=parent,
                errcodes=list(errcodes),
            )
        )
        return SpawnOutcome(intercomm=intercomm, errcodes=errcodes)

    def error_string(self, errcode: int) -> str:
        if errcode in self._user_strings:
            return self._user_strings[errcode]
        if errcode in self._user_codes or errcode in self._user_classes:
            return ""
        return self._ERROR_STRINGS.get(errcode, f"Unknown error code {errcode}")

    # -- error classes, codes and handlers ---------------------------------

    def _valid_code(self, errcode: int) -> int:
        if not 0 <= errcode <= self._last_used_code:
            raise RuntimeFailureError(f"MPI_ERR_ARG: invalid error code {errcode}")
        return errcode

    def add_error_class(self) -> int:
        self._last_used_code += 1
        self._user_classes.add(self._last_used_code)
        return self._last_used_code

    def add_error_code(self, error_class: int) -> int:
        if not (0 <= error_class <= self.ERR_LASTCODE or error_class in self._user_classes):
            raise RuntimeFailureError(f"MPI_ERR_ARG: invalid error class {error_class}")
        self._last_used_code += 1
        self._user_codes[self._last_used_code] = error_class
        return self._last_used_code

    def add_error_string(self, errcode: int, message: str) -> None:
        self._valid_code(errcode)
        if errcode <= self.ERR_LASTCODE:
            raise RuntimeFailureError(f"MPI_ERR_ARG: can't change the string of predefined error code {errcode}")
        if len(message) >= self.MAX_ERROR_STRING:
            raise RuntimeFailureError(f"MPI_ERR_ARG: error string of length {len(message)} is too long")
        self._user_strings[errcode] = message

    def error_class(self, errcode: int) -> int:
        self._valid_code(errcode)
        return self._user_codes.get(errcode, errcode)

    def last_used_code(self) -> int | None:
        return self._last_used_code

    def max_error_string(self) -> int:
        return self.MAX_ERROR_STRING

    def errhandler_create(self, kind: int, callback: ErrhandlerCallback) -> _StubErrhandler:
        if kind not in (ERRHANDLER_COMM, ERRHANDLER_FILE, ERRHANDLER_WIN):
            raise RuntimeFailureError(f"MPI_ERR_ARG: invalid error handler kind {kind}")
        handler = _StubErrhandler(kind, callback)
        self.live_errhandlers.add(handler.id)
        return handler

    def errhandler_free(self, handler: _StubErrhandler) -> None:
        if handler.freed:
            raise RuntimeFailureError(f"MPI_ERR_ERRHANDLER: error handler {handler.id} has already been freed")
        handler.freed = True
        self.live_errhandlers.discard(handler.id)
        self.freed_errhandlers += 1

    def comm_set_errhandler(self, comm: _StubComm, handler: _StubErrhandler) -> None:
        target = self._live_comm(comm)
        if handler.freed or handler.kind != ERRHANDLER_COMM:
            raise RuntimeFailureError(f"MPI_ERR_ERRHANDLER: {handler!r} can't be attached to a communicator")
        self._comm_errhandlers[target.id] = handler

    def comm_call_errhandler(self, comm: _StubComm, errcode: int) -> None:
        target = self._live_comm(comm)
        handler = self._comm_errhandlers.get(target.id)
        if handler is None:
            self.abort(target, errcode)
            return
        handler.callback(target, errcode)

    # -- environment -------------------------------------------------------

    def init(self, required: int | None) -> int:
        if self._initialized:
            raise RuntimeFailureError("MPI_ERR_OTHER: the environment has already been initialized")
        self._initialized = True
        requested = THREAD_SINGLE if required is None else required
        self._provided = min(requested, self.thread_level_limit)
        return self._provided

    def finalize(self) -> None:
        if self._finalized:
            raise RuntimeFailureError("MPI_ERR_OTHER: the environment has already been finalized")
        self._finalized = True

    def initialized(self) -> bool:
        return self._initialized

    def finalized(self) -> bool:
        return self._finalized

    def query_thread(self) -> int:
        return self._provided

    def is_thread_main(self) -> bool:
        return True

    def abort(self, comm: CommHandle, errcode: int) -> None:
        self.aborted = (comm, errcode)
        raise StubAbort(errcode)

    def processor_name(self) -> str:
        return self._processor_name

    def wtime(self) -> float:
        return time.perf_counter()

    def wtick(self) -> float:
        return time.get_clock_info("perf_counter").resolution

    def wtime_is_global(self, comm: CommHandle) -> bool:
        self._live_comm(comm)
        return False

    def version(self) -> tuple[int, int]:
        return self._mpi_version

    def library_version(self) -> str:
        return self._library_version


class StubAbort(SystemExit):
    """Raised by :meth:`StubRuntime.abort` in place of terminating the process."""


__all__ = [
    "BaseRuntime",
    "SpawnCall",
    "StubRuntime",
    "StubAbort",
]
