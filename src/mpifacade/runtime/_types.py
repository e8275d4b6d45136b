"""Runtime protocol and shared types.

``Runtime`` is the canonical protocol between the facade and a message
passing runtime. Every primitive the facade consumes is listed here;
handles are opaque objects owned by the runtime implementation.

Architecture:

    .. code-block:: text

        InfoMap / SingleSpawner / MultipleSpawner / environment
                              │
                              ▼
                    Runtime (Protocol, this file)
                              │
                    BaseRuntime (_base.py)
                 ┌────────────┴────────────┐
                 ▼                         ▼
           Mpi4pyRuntime              StubRuntime
         (mpi4py.MPI bindings)      (in-memory, tests)

Thread levels cross this boundary as the plain integers 0..3
(single, funneled, serialized, multiple); adapters translate to and from
the native constants. Error handler kinds cross it as the bits 1, 2 and 4
(communicator, file, window).
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

SUCCESS = 0
ERRCODE_UNSET = -1
INT_MAX = 2**31 - 1

THREAD_SINGLE = 0
THREAD_FUNNELED = 1
THREAD_SERIALIZED = 2
THREAD_MULTIPLE = 3

ERRHANDLER_COMM = 1 << 0
ERRHANDLER_FILE = 1 << 1
ERRHANDLER_WIN = 1 << 2

InfoHandle = Any
CommHandle = Any
ErrhandlerHandle = Any
ErrhandlerCallback = Callable[[Any, int], None]


@dataclass
class SpawnOutcome:
    """What a spawn primitive hands back: the intercommunicator and one error code per requested process."""

    intercomm: CommHandle
    errcodes: list[int] = field(default_factory=list)


@runtime_checkable
class Runtime(Protocol):
    """Primitives consumed by the facade."""

    @property
    def runtime_name(self) -> str: ...

    # -- info objects ------------------------------------------------------
    def info_create(self) -> InfoHandle: ...
    def info_dup(self, info: InfoHandle) -> InfoHandle: ...
    def info_free(self, info: InfoHandle) -> None: ...
    def info_null(self) -> InfoHandle: ...
    def info_env(self) -> InfoHandle: ...
    def is_info_null(self, info: InfoHandle) -> bool: ...
    def info_get_nkeys(self, info: InfoHandle) -> int: ...
    def info_get_nthkey(self, info: InfoHandle, n: int) -> str: ...
    def info_get_valuelen(self, info: InfoHandle, key: str) -> int | None: ...
    def info_get(self, info: InfoHandle, key: str) -> str | None: ...
    def info_set(self, info: InfoHandle, key: str, value: str) -> None: ...
    def info_delete(self, info: InfoHandle, key: str) -> bool: ...
    def max_info_key(self) -> int: ...
    def max_info_val(self) -> int: ...

    # -- communicators -----------------------------------------------------
    def comm_world(self) -> CommHandle: ...
    def comm_self(self) -> CommHandle: ...
    def comm_null(self) -> CommHandle: ...
    def is_comm_null(self, comm: CommHandle) -> bool: ...
    def comm_size(self, comm: CommHandle) -> int: ...
    def comm_rank(self, comm: CommHandle) -> int: ...
    def comm_is_inter(self, comm: CommHandle) -> bool: ...
    def comm_remote_size(self, comm: CommHandle) -> int: ...
    def comm_free(self, comm: CommHandle) -> None: ...
    def comm_get_parent(self) -> CommHandle: ...
    def universe_size(self) -> int | None: ...

    # -- process management ------------------------------------------------
    def spawn(
        self,
        command: str,
        argv: Sequence[str] | None,
        maxprocs: int,
        info: InfoHandle,
        root: int,
        comm: CommHandle,
    ) -> SpawnOutcome: ...

    def spawn_multiple(
        self,
        commands: Sequence[str],
        argvs: Sequence[Sequence[str]] | None,
        maxprocs: Sequence[int],
        infos: Sequence[InfoHandle],
        root: int,
        comm: CommHandle,
    ) -> SpawnOutcome: ...

    def error_string(self, errcode: int) -> str: ...

    # -- error classes, codes and handlers ---------------------------------
    def add_error_class(self) -> int: ...
    def add_error_code(self, error_class: int) -> int: ...
    def add_error_string(self, errcode: int, message: str) -> None: ...
    def error_class(self, errcode: int) -> int: ...
    def last_used_code(self) -> int | None: ...
    def max_error_string(self) -> int: ...
    def errhandler_create(self, kind: int, callback: ErrhandlerCallback) -> ErrhandlerHandle: ...
    def errhandler_free(self, handler: ErrhandlerHandle) -> None: ...
    def comm_set_errhandler(self, comm: CommHandle, handler: ErrhandlerHandle) -> None: ...
    def comm_call_errhandler(self, comm: CommHandle, errcode: int) -> None: ...

    # -- environment -------------------------------------------------------
    def init(self, required: int | None) -> int: ...
    def finalize(self) -> None: ...
    def initialized(self) -> bool: ...
    def finalized(self) -> bool: ...
    def query_thread(self) -> int: ...
    def is_thread_main(self) -> bool: ...
    def abort(self, comm: CommHandle, errcode: int) -> None: ...
    def processor_name(self) -> str: ...
    def wtime(self) -> float: ...
    def wtick(self) -> float: ...
    def wtime_is_global(self, comm: CommHandle) -> bool: ...
    def version(self) -> tuple[int, int]: ...
    def library_version(self) -> str: ...


__all__ = [
    "SUCCESS",
    "ERRCODE_UNSET",
    "INT_MAX",
    "THREAD_SINGLE",
    "THREAD_FUNNELED",
    "THREAD_SERIALIZED",
    "THREAD_MULTIPLE",
    "ERRHANDLER_COMM",
    "ERRHANDLER_FILE",
    "ERRHANDLER_WIN",
    "InfoHandle",
    "CommHandle",
    "ErrhandlerHandle",
    "ErrhandlerCallback",
    "SpawnOutcome",
    "Runtime",
]
