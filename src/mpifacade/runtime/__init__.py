"""Runtime boundary between the facade and the message passing library.

Architecture:

    .. code-block:: text

        mpifacade.runtime
        ├── __init__.py         ← Public API (this file)
        ├── _types.py           ← Runtime protocol, SpawnOutcome, constants
        ├── _base.py            ← BaseRuntime + StubRuntime
        ├── _current.py         ← get_runtime() / set_runtime() / use_runtime()
        └── mpi4py_runtime.py   ← Mpi4pyRuntime (mpi4py.MPI)

Modules:
    _types          - Runtime protocol and constants
    _base           - Shared spawn logging, in-memory runtime
    _current        - Process-wide current runtime
    mpi4py_runtime  - Adapter over mpi4py (imported lazily)
"""

from mpifacade.runtime._base import BaseRuntime, SpawnCall, StubAbort, StubRuntime
from mpifacade.runtime._current import (
    create_runtime,
    get_runtime,
    peek_runtime,
    set_runtime,
    use_runtime,
)
from mpifacade.runtime._types import (
    ERRCODE_UNSET,
    ERRHANDLER_COMM,
    ERRHANDLER_FILE,
    ERRHANDLER_WIN,
    INT_MAX,
    SUCCESS,
    THREAD_FUNNELED,
    THREAD_MULTIPLE,
    THREAD_SERIALIZED,
    THREAD_SINGLE,
    CommHandle,
    ErrhandlerCallback,
    ErrhandlerHandle,
    InfoHandle,
    Runtime,
    SpawnOutcome,
)

__all__ = [
    "BaseRuntime",
    "SpawnCall",
    "StubAbort",
    "StubRuntime",
    "create_runtime",
    "get_runtime",
    "peek_runtime",
    "set_runtime",
    "use_runtime",
    "ERRCODE_UNSET",
    "ERRHANDLER_COMM",
    "ERRHANDLER_FILE",
    "ERRHANDLER_WIN",
    "INT_MAX",
    "SUCCESS",
    "THREAD_FUNNELED",
    "THREAD_MULTIPLE",
    "THREAD_SERIALIZED",
    "THREAD_SINGLE",
    "CommHandle",
    "ErrhandlerCallback",
    "ErrhandlerHandle",
    "InfoHandle",
    "Runtime",
    "SpawnOutcome",
]
