"""
Error classes, error codes and user error handlers.

Modules:
    error_code     - ErrorClass / ErrorCode over the runtime's error registry
    error_handler  - ErrorHandlerType bit mask, ErrorHandler, make_error_handler()
"""

from mpifacade.error.error_code import ErrorClass, ErrorCode
from mpifacade.error.error_handler import (
    ErrorHandler,
    ErrorHandlerType,
    call_error_handler,
    error_handler_type_from_string,
    make_error_handler,
    to_string,
)

__all__ = [
    "ErrorClass",
    "ErrorCode",
    "ErrorHandler",
    "ErrorHandlerType",
    "call_error_handler",
    "error_handler_type_from_string",
    "make_error_handler",
    "to_string",
]
