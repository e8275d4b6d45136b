"""Tests for ErrorHandlerType and ErrorHandler."""

import copy

import pytest

from mpifacade.core.assertions import PreconditionViolation
from mpifacade.core.errors import InvalidArgumentError, UnsetErrorHandlerTypeError
from mpifacade.error import (
    ErrorCode,
    ErrorHandler,
    ErrorHandlerType,
    call_error_handler,
    error_handler_type_from_string,
    make_error_handler,
    to_string,
)
from mpifacade.runtime import StubAbort, StubRuntime


# =============================================================================
# ErrorHandlerType
# =============================================================================


class TestErrorHandlerType:
    def test_bit_values(self):
        assert [int(kind) for kind in (ErrorHandlerType.COMM, ErrorHandlerType.FILE, ErrorHandlerType.WIN)] == [1, 2, 4]

    def test_bitwise_operators(self):
        both = ErrorHandlerType.COMM | ErrorHandlerType.WIN
        assert both & ErrorHandlerType.WIN == ErrorHandlerType.WIN
        assert not both & ErrorHandlerType.FILE
        assert both ^ ErrorHandlerType.WIN == ErrorHandlerType.COMM

    @pytest.mark.parametrize(
        "value, name",
        [
            (ErrorHandlerType.COMM, "COMM"),
            (ErrorHandlerType.FILE, "FILE"),
            (ErrorHandlerType.WIN, "WIN"),
            (ErrorHandlerType.COMM | ErrorHandlerType.WIN, "COMM | WIN"),
            (ErrorHandlerType.WIN | ErrorHandlerType.FILE | ErrorHandlerType.COMM, "COMM | FILE | WIN"),
        ],
    )
    def test_to_string(self, value, name):
        assert to_string(value) == name
        assert str(value) == name
        assert f"{value}" == name

    @pytest.mark.parametrize(
        "name, value",
        [
            ("COMM", ErrorHandlerType.COMM),
            ("FILE|WIN", ErrorHandlerType.FILE | ErrorHandlerType.WIN),
            ("  WIN |  COMM ", ErrorHandlerType.COMM | ErrorHandlerType.WIN),
            ("COMM | BOGUS", ErrorHandlerType.COMM),
        ],
    )
    def test_from_string(self, name, value):
        assert error_handler_type_from_string(name) == value
        assert ErrorHandlerType.from_string(name) == value

    @pytest.mark.parametrize("name", ["", "comm", "BOGUS", " | "])
    def test_from_string_without_any_kind(self, name):
        with pytest.raises(InvalidArgumentError, match="to ErrorHandlerType!"):
            error_handler_type_from_string(name)


# =============================================================================
# ErrorHandler
# =============================================================================


class TestErrorHandler:
    def test_creates_one_native_handler_per_kind(self, runtime):
        handler = make_error_handler(lambda comm, code: None, ErrorHandlerType.COMM | ErrorHandlerType.WIN)
        assert handler.types == ErrorHandlerType.COMM | ErrorHandlerType.WIN
        assert runtime.live_errhandler_count == 2
        assert handler.handle(ErrorHandlerType.WIN).kind == int(ErrorHandlerType.WIN)

    def test_unset_kind(self):
        handler = ErrorHandler(lambda: None)
        with pytest.raises(UnsetErrorHandlerTypeError) as exc_info:
            handler.handle(ErrorHandlerType.FILE)
        assert exc_info.value.requested == ErrorHandlerType.FILE
        assert exc_info.value.set_types == ErrorHandlerType.COMM
        assert str(exc_info.value) == (
            "The requested error handler type (FILE) hasn't been set for this error handler! "
            "Set error handler types are: COMM"
        )
        assert isinstance(exc_info.value, LookupError)

    def test_attach_requires_communicator_kind(self, runtime):
        handler = ErrorHandler(lambda: None, ErrorHandlerType.FILE)
        with pytest.raises(UnsetErrorHandlerTypeError):
            handler.attach(runtime.comm_world())

    def test_illegal_construction(self):
        with pytest.raises(PreconditionViolation, match="non-callable"):
            ErrorHandler("not callable")
        with pytest.raises(PreconditionViolation, match="illegal type"):
            ErrorHandler(lambda: None, ErrorHandlerType(0))
        with pytest.raises(PreconditionViolation, match="Illegal callback function signature"):
            ErrorHandler(lambda a, b, c: None)


class TestCallbacks:
    def test_object_and_code(self, runtime):
        calls = []
        make_error_handler(lambda comm, code: calls.append((comm, code))).attach(runtime.comm_world())
        call_error_handler(runtime.comm_world(), 3)
        assert calls == [(runtime.comm_world(), ErrorCode(3))]

    def test_code_only(self, runtime):
        calls = []

        def on_error(code):
            calls.append(code.message())

        make_error_handler(on_error).attach(runtime.comm_world())
        call_error_handler(runtime.comm_world(), ErrorCode(StubRuntime.ERR_SPAWN))
        assert calls == ["MPI_ERR_SPAWN: could not spawn processes"]

    def test_no_arguments(self, runtime):
        calls = []
        make_error_handler(lambda: calls.append(True)).attach(runtime.comm_self())
        call_error_handler(runtime.comm_self(), 1)
        assert calls == [True]

    def test_callback_may_raise(self, runtime):
        def on_error(comm, code):
            raise RuntimeError(code.value)

        make_error_handler(on_error).attach(runtime.comm_world())
        with pytest.raises(RuntimeError, match="4"):
            call_error_handler(runtime.comm_world(), 4)

    def test_without_handler_errors_are_fatal(self, runtime):
        with pytest.raises(StubAbort):
            call_error_handler(runtime.comm_world(), 2)


class TestLifetime:
    def test_free(self, runtime):
        handler = make_error_handler(lambda: None, ErrorHandlerType.COMM | ErrorHandlerType.FILE)
        handler.free()
        assert runtime.live_errhandler_count == 0
        assert runtime.freed_errhandlers == 2
        assert handler.types == ErrorHandlerType(0)
        handler.free()
        assert runtime.freed_errhandlers == 2

    def test_context_manager(self, runtime):
        calls = []
        with make_error_handler(lambda code: calls.append(code.value)) as handler:
            handler.attach(runtime.comm_world())
        assert runtime.live_errhandler_count == 0
        call_error_handler(runtime.comm_world(), 1)
        assert calls == [1]

    def test_copy_is_refused(self, runtime):
        handler = make_error_handler(lambda: None)
        with pytest.raises(TypeError):
            copy.copy(handler)
        with pytest.raises(TypeError):
            copy.deepcopy(handler)
        handler.free()
        assert runtime.freed_errhandlers == 1
