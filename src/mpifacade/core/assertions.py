"""
Contract checks for the facade.

Two assertion categories guard the public surface:

- **precondition**: the caller broke an operation's contract (null map
  access, illegal key, foreign iterator, bulk setter size mismatch).
- **sanity**: a value is outside its documented domain (maxprocs beyond
  the universe size, root outside the communicator).

A failed check is fatal. It is logged as a ``contract_violation`` event
and then either raised as a :class:`ContractViolation` (default) or, if
``abort_on_violation`` is set, turned into an abort of the whole process
group. Each category can be switched off through
``MPIFACADE_ASSERTION_CATEGORIES``; disabled checks cost one settings
lookup and never evaluate their message.

Usage:
    precondition(not self.is_null(), "Attempt to call size() on an info object referring to 'MPI_INFO_NULL'!")
    sanity(0 < maxprocs <= limit, "maxprocs ({}) outside (0, {}]", maxprocs, limit)
"""

from __future__ import annotations

import os
from typing import Any, NoReturn

from mpifacade.core.errors import ErrorCategory, FacadeError, SourceLocation
from mpifacade.core.logging import get_logger
from mpifacade.core.settings import get_settings

logger = get_logger(__name__)

_THIS_FILE = os.path.abspath(__file__)


class ContractViolation(FacadeError):
    """A fatal contract violation."""

    default_category = ErrorCategory.CONTRACT
    assertion_category = "contract"


class PreconditionViolation(ContractViolation):
    """An operation was called while its precondition did not hold."""

    assertion_category = "precondition"


class SanityViolation(ContractViolation):
    """A value fell outside its documented domain."""

    assertion_category = "sanity"


def precondition(cond: Any, msg: str, *args: Any) -> None:
    """Fail with :class:`PreconditionViolation` unless *cond* holds."""
    if not cond and get_settings().assertions_enabled("precondition"):
        _violate(PreconditionViolation, msg, args)


def sanity(cond: Any, msg: str, *args: Any) -> None:
    """Fail with :class:`SanityViolation` unless *cond* holds."""
    if not cond and get_settings().assertions_enabled("sanity"):
        _violate(SanityViolation, msg, args)


def _violate(kind: type[ContractViolation], msg: str, args: tuple[Any, ...]) -> NoReturn:
    message = msg.format(*args) if args else msg
    location = SourceLocation.current(skip_files=(_THIS_FILE,))
    violation = kind(f"{kind.assertion_category.capitalize()} assertion failed: {message}", location=location)

    logger.critical("contract_violation", **violation.to_dict())

    if get_settings().abort_on_violation:
        _abort()
    raise violation


def _abort() -> NoReturn:
    from mpifacade.runtime import peek_runtime

    runtime = peek_runtime()
    if runtime is not None and runtime.initialized() and not runtime.finalized():
        runtime.abort(runtime.comm_world(), 1)
    os.abort()


__all__ = [
    "ContractViolation",
    "PreconditionViolation",
    "SanityViolation",
    "precondition",
    "sanity",
]
