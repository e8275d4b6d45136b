"""
Ambient infrastructure shared by the facade: typed errors, contract
checks, settings, structured logging and string coercion.

Modules:
    errors      - FacadeError hierarchy and SourceLocation
    assertions  - precondition()/sanity() contract checks
    settings    - FacadeSettings (pydantic-settings) + get_settings()
    logging     - structlog configuration and get_logger()
    conversion  - convert_to_string()
"""

from mpifacade.core.assertions import (
    ContractViolation,
    PreconditionViolation,
    SanityViolation,
    precondition,
    sanity,
)
from mpifacade.core.conversion import convert_to_string
from mpifacade.core.errors import (
    ErrorCategory,
    FacadeError,
    InvalidArgumentError,
    KeyNotFoundError,
    OutOfRangeError,
    RuntimeFailureError,
    SourceLocation,
    ThreadSupportNotSatisfiedError,
    UnsetErrorHandlerTypeError,
)
from mpifacade.core.settings import FacadeSettings, clear_settings_cache, get_settings

__all__ = [
    "ContractViolation",
    "PreconditionViolation",
    "SanityViolation",
    "precondition",
    "sanity",
    "convert_to_string",
    "ErrorCategory",
    "FacadeError",
    "InvalidArgumentError",
    "KeyNotFoundError",
    "OutOfRangeError",
    "RuntimeFailureError",
    "SourceLocation",
    "ThreadSupportNotSatisfiedError",
    "UnsetErrorHandlerTypeError",
    "FacadeSettings",
    "clear_settings_cache",
    "get_settings",
]
