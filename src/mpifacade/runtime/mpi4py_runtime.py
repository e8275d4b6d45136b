"""mpi4py runtime: the facade's primitives on top of ``mpi4py.MPI``.

``mpi4py`` is imported on first use, after ``mpi4py.rc`` has been set
from the constructor arguments, so that ``initialize()`` can choose the
thread level itself when automatic initialization is disabled.

Every ``MPI.Exception`` leaving a primitive is translated into a
:class:`RuntimeFailureError` carrying the MPI error class and string.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any

from mpifacade.core.errors import RuntimeFailureError
from mpifacade.core.logging import get_logger
from mpifacade.runtime._base import BaseRuntime
from mpifacade.runtime._types import (
    ERRCODE_UNSET,
    ERRHANDLER_COMM,
    ERRHANDLER_FILE,
    ERRHANDLER_WIN,
    THREAD_FUNNELED,
    THREAD_MULTIPLE,
    THREAD_SERIALIZED,
    THREAD_SINGLE,
    CommHandle,
    ErrhandlerCallback,
    ErrhandlerHandle,
    InfoHandle,
    SpawnOutcome,
)

logger = get_logger(__name__)


class Mpi4pyRuntime(BaseRuntime):
    """Runtime backed by mpi4py.

    Args:
        auto_initialize: Value for ``mpi4py.rc.initialize``.
        auto_finalize: Value for ``mpi4py.rc.finalize``.
    """

    def __init__(self, *, auto_initialize: bool = True, auto_finalize: bool = True) -> None:
        self._auto_initialize = auto_initialize
        self._auto_finalize = auto_finalize
        self._mpi: Any = None

    @property
    def runtime_name(self) -> str:
        return "mpi4py"

    def __repr__(self) -> str:
        return f"Mpi4pyRuntime(auto_initialize={self._auto_initialize}, auto_finalize={self._auto_finalize})"

    @property
    def MPI(self) -> Any:  # noqa: N802
        if self._mpi is None:
            import mpi4py

            mpi4py.rc.initialize = self._auto_initialize
            mpi4py.rc.finalize = self._auto_finalize
            from mpi4py import MPI

            self._mpi = MPI
            logger.debug("mpi4py_loaded", version=mpi4py.__version__, library=MPI.Get_library_version().strip())
        return self._mpi

    @contextmanager
    def _errors(self, primitive: str) -> Iterator[None]:
        MPI = self.MPI
        try:
            yield
        except MPI.Exception as exc:
            error_class = exc.Get_error_class()
            raise RuntimeFailureError(
                f"{primitive} failed: {exc.Get_error_string()}",
                context={"primitive": primitive, "error_class": error_class},
                cause=exc,
            ) from exc

    # -- thread levels -----------------------------------------------------

    def _native_level(self, level: int) -> int:
        MPI = self.MPI
        return {
            THREAD_SINGLE: MPI.THREAD_SINGLE,
            THREAD_FUNNELED: MPI.THREAD_FUNNELED,
            THREAD_SERIALIZED: MPI.THREAD_SERIALIZED,
            THREAD_MULTIPLE: MPI.THREAD_MULTIPLE,
        }[level]

    def _canonical_level(self, native: int) -> int:
        MPI = self.MPI
        return {
            MPI.THREAD_SINGLE: THREAD_SINGLE,
            MPI.THREAD_FUNNELED: THREAD_FUNNELED,
            MPI.THREAD_SERIALIZED: THREAD_SERIALIZED,
            MPI.THREAD_MULTIPLE: THREAD_MULTIPLE,
        }[native]

    # -- info objects ------------------------------------------------------

    def info_create(self) -> InfoHandle:
        with self._errors("MPI_Info_create"):
            return self.MPI.Info.Create()

    def info_dup(self, info: InfoHandle) -> InfoHandle:
        with self._errors("MPI_Info_dup"):
            return info.Dup()

    def info_free(self, info: InfoHandle) -> None:
        with self._errors("MPI_Info_free"):
            info.Free()

    def info_null(self) -> InfoHandle:
        return self.MPI.INFO_NULL

    def info_env(self) -> InfoHandle:
        return self.MPI.INFO_ENV

    def is_info_null(self, info: InfoHandle) -> bool:
        return info == self.MPI.INFO_NULL

    def info_get_nkeys(self, info: InfoHandle) -> int:
        with self._errors("MPI_Info_get_nkeys"):
            return info.Get_nkeys()

    def info_get_nthkey(self, info: InfoHandle, n: int) -> str:
        with self._errors("MPI_Info_get_nthkey"):
            return info.Get_nthkey(n)

    def info_get_valuelen(self, info: InfoHandle, key: str) -> int | None:
        value = self.info_get(info, key)
        return None if value is None else len(value)

    def info_get(self, info: InfoHandle, key: str) -> str | None:
        with self._errors("MPI_Info_get"):
            return info.Get(key)

    def info_set(self, info: InfoHandle, key: str, value: str) -> None:
        with self._errors("MPI_Info_set"):
            info.Set(key, value)

    def info_delete(self, info: InfoHandle, key: str) -> bool:
        MPI = self.MPI
        try:
            info.Delete(key)
        except MPI.Exception as exc:
            if exc.Get_error_class() == MPI.ERR_INFO_NOKEY:
                return False
            raise RuntimeFailureError(
                f"MPI_Info_delete failed: {exc.Get_error_string()}",
                context={"primitive": "MPI_Info_delete", "error_class": exc.Get_error_class()},
                cause=exc,
            ) from exc
        return True

    def max_info_key(self) -> int:
        return self.MPI.MAX_INFO_KEY

    def max_info_val(self) -> int:
        return self.MPI.MAX_INFO_VAL

    # -- communicators -----------------------------------------------------

    def comm_world(self) -> CommHandle:
        return self.MPI.COMM_WORLD

    def comm_self(self) -> CommHandle:
        return self.MPI.COMM_SELF

    def comm_null(self) -> CommHandle:
        return self.MPI.COMM_NULL

    def is_comm_null(self, comm: CommHandle) -> bool:
        return comm == self.MPI.COMM_NULL

    def comm_size(self, comm: CommHandle) -> int:
        with self._errors("MPI_Comm_size"):
            return comm.Get_size()

    def comm_rank(self, comm: CommHandle) -> int:
        with self._errors("MPI_Comm_rank"):
            return comm.Get_rank()

    def comm_is_inter(self, comm: CommHandle) -> bool:
        with self._errors("MPI_Comm_test_inter"):
            return comm.Is_inter()

    def comm_remote_size(self, comm: CommHandle) -> int:
        with self._errors("MPI_Comm_remote_size"):
            return comm.Get_remote_size()

    def comm_free(self, comm: CommHandle) -> None:
        with self._errors("MPI_Comm_free"):
            comm.Free()

    def comm_get_parent(self) -> CommHandle:
        with self._errors("MPI_Comm_get_parent"):
            return self.MPI.Comm.Get_parent()

    def universe_size(self) -> int | None:
        MPI = self.MPI
        with self._errors("MPI_Comm_get_attr"):
            value = MPI.COMM_WORLD.Get_attr(MPI.UNIVERSE_SIZE)
        return None if value is None else int(value)

    # -- process management ------------------------------------------------

    def _do_spawn(self, command, argv, maxprocs, info, root, comm) -> SpawnOutcome:
        errcodes: list[int] = []
        with self._errors("MPI_Comm_spawn"):
            intercomm = comm.Spawn(
                command,
                args=None if argv is None else list(argv),
                maxprocs=maxprocs,
                info=info,
                root=root,
                errcodes=errcodes,
            )
        return SpawnOutcome(intercomm=intercomm, errcodes=_flatten(errcodes, maxprocs))

    def _do_spawn_multiple(self, commands, argvs, maxprocs, infos, root, comm) -> SpawnOutcome:
        errcodes: list[Any] = []
        with self._errors("MPI_Comm_spawn_multiple"):
            intercomm = comm.Spawn_multiple(
                list(commands),
                args=None if argvs is None else [list(argv) for argv in argvs],
                maxprocs=list(maxprocs),
                info=list(infos),
                root=root,
                errcodes=errcodes,
            )
        return SpawnOutcome(intercomm=intercomm, errcodes=_flatten(errcodes, sum(maxprocs)))

    def error_string(self, errcode: int) -> str:
        return self.MPI.Get_error_string(errcode)

    # -- error classes, codes and handlers ---------------------------------

    def add_error_class(self) -> int:
        with self._errors("MPI_Add_error_class"):
            return self.MPI.Add_error_class()

    def add_error_code(self, error_class: int) -> int:
        with self._errors("MPI_Add_error_code"):
            return self.MPI.Add_error_code(error_class)

    def add_error_string(self, errcode: int, message: str) -> None:
        with self._errors("MPI_Add_error_string"):
            self.MPI.Add_error_string(errcode, message)

    def error_class(self, errcode: int) -> int:
        with self._errors("MPI_Error_class"):
            return self.MPI.Get_error_class(errcode)

    def last_used_code(self) -> int | None:
        MPI = self.MPI
        with self._errors("MPI_Comm_get_attr"):
            value = MPI.COMM_WORLD.Get_attr(MPI.LASTUSEDCODE)
        return None if value is None else int(value)

    def max_error_string(self) -> int:
        return self.MPI.MAX_ERROR_STRING

    def _errhandler_owner(self, kind: int) -> Any:
        MPI = self.MPI
        return {ERRHANDLER_COMM: MPI.Comm, ERRHANDLER_FILE: MPI.File, ERRHANDLER_WIN: MPI.Win}[kind]

    def errhandler_create(self, kind: int, callback: ErrhandlerCallback) -> ErrhandlerHandle:
        with self._errors("MPI_Errhandler_create"):
            return self._errhandler_owner(kind).Create_errhandler(callback)

    def errhandler_free(self, handler: ErrhandlerHandle) -> None:
        with self._errors("MPI_Errhandler_free"):
            handler.Free()

    def comm_set_errhandler(self, comm: CommHandle, handler: ErrhandlerHandle) -> None:
        with self._errors("MPI_Comm_set_errhandler"):
            comm.Set_errhandler(handler)

    def comm_call_errhandler(self, comm: CommHandle, errcode: int) -> None:
        with self._errors("MPI_Comm_call_errhandler"):
            comm.Call_errhandler(errcode)

    # -- environment -------------------------------------------------------

    def init(self, required: int | None) -> int:
        MPI = self.MPI
        with self._errors("MPI_Init_thread"):
            if required is None:
                MPI.Init()
                return self._canonical_level(MPI.Query_thread())
            return self._canonical_level(MPI.Init_thread(self._native_level(required)))

    def finalize(self) -> None:
        with self._errors("MPI_Finalize"):
            self.MPI.Finalize()

    def initialized(self) -> bool:
        return self.MPI.Is_initialized()

    def finalized(self) -> bool:
        return self.MPI.Is_finalized()

    def query_thread(self) -> int:
        with self._errors("MPI_Query_thread"):
            return self._canonical_level(self.MPI.Query_thread())

    def is_thread_main(self) -> bool:
        with self._errors("MPI_Is_thread_main"):
            return self.MPI.Is_thread_main()

    def abort(self, comm: CommHandle, errcode: int) -> None:
        comm.Abort(errcode)

    def processor_name(self) -> str:
        with self._errors("MPI_Get_processor_name"):
            return self.MPI.Get_processor_name()

    def wtime(self) -> float:
        return self.MPI.Wtime()

    def wtick(self) -> float:
        return self.MPI.Wtick()

    def wtime_is_global(self, comm: CommHandle) -> bool:
        MPI = self.MPI
        with self._errors("MPI_Comm_get_attr"):
            value = comm.Get_attr(MPI.WTIME_IS_GLOBAL)
        return bool(value)

    def version(self) -> tuple[int, int]:
        major, minor = self.MPI.Get_version()
        return major, minor

    def library_version(self) -> str:
        return self.MPI.Get_library_version().strip()


def _flatten(errcodes: Sequence[Any], expected: int) -> list[int]:
    """Flatten (possibly nested) error codes and pad them to *expected* entries."""
    flat: list[int] = []
    for code in errcodes:
        if isinstance(code, (list, tuple)):
            flat.extend(int(c) for c in code)
        else:
            flat.append(int(code))
    flat.extend([ERRCODE_UNSET] * (expected - len(flat)))
    return flat[:expected]


__all__ = ["Mpi4pyRuntime"]
