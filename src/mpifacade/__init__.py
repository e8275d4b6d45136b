"""
mpifacade - Ergonomic facade over an MPI runtime.

Subpackages:
- mpifacade.core: errors, contract checks, settings, logging
- mpifacade.runtime: Runtime protocol, mpi4py and in-memory runtimes
- mpifacade.info: InfoMap and its proxy/iterators
- mpifacade.startup: environment, ThreadSupport, spawners
- mpifacade.error: error classes/codes, error handlers
- mpifacade.version: library and MPI version queries
"""

__version__ = "0.1.0"

from mpifacade.core import (
    ContractViolation,
    FacadeError,
    InvalidArgumentError,
    KeyNotFoundError,
    OutOfRangeError,
    PreconditionViolation,
    RuntimeFailureError,
    SanityViolation,
    ThreadSupportNotSatisfiedError,
    UnsetErrorHandlerTypeError,
    get_settings,
)
from mpifacade.error import ErrorClass, ErrorCode, ErrorHandler, ErrorHandlerType, make_error_handler
from mpifacade.info import InfoMap, InfoProxy, erase_if
from mpifacade.runtime import StubRuntime, get_runtime, set_runtime, use_runtime
from mpifacade.startup import (
    Clock,
    MultipleSpawner,
    SingleSpawner,
    SpawnResult,
    ThreadSupport,
    enum_from_string,
    environment,
    finalize,
    initialize,
    parent_process,
    to_string,
)

__all__ = [
    "__version__",
    "ContractViolation",
    "FacadeError",
    "InvalidArgumentError",
    "KeyNotFoundError",
    "OutOfRangeError",
    "PreconditionViolation",
    "RuntimeFailureError",
    "SanityViolation",
    "ThreadSupportNotSatisfiedError",
    "UnsetErrorHandlerTypeError",
    "get_settings",
    "ErrorClass",
    "ErrorCode",
    "ErrorHandler",
    "ErrorHandlerType",
    "make_error_handler",
    "InfoMap",
    "InfoProxy",
    "erase_if",
    "StubRuntime",
    "get_runtime",
    "set_runtime",
    "use_runtime",
    "Clock",
    "MultipleSpawner",
    "SingleSpawner",
    "SpawnResult",
    "ThreadSupport",
    "enum_from_string",
    "environment",
    "finalize",
    "initialize",
    "parent_process",
    "to_string",
]
