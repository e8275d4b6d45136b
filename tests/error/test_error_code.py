"""Tests for ErrorClass and ErrorCode."""

import pytest

from mpifacade.core.assertions import PreconditionViolation
from mpifacade.error import ErrorClass, ErrorCode
from mpifacade.runtime import INT_MAX, SUCCESS, StubRuntime


# =============================================================================
# ErrorClass
# =============================================================================


class TestErrorClass:
    def test_new_class_is_registered(self, runtime):
        category = ErrorClass()
        assert category.value > StubRuntime.ERR_LASTCODE
        assert runtime.last_used_code() == category.value

    def test_add_single_error_code(self):
        category = ErrorClass()
        first = category.add_error_code("ERROR_STRING: one")
        second = category.add_error_code("ERROR_STRING: two")
        empty = category.add_error_code("")
        assert [code.category() for code in (first, second, empty)] == [category] * 3
        assert first.message() == "ERROR_STRING: one"
        assert second.message() == "ERROR_STRING: two"
        assert empty.message() == ""

    def test_add_several_codes_at_once(self):
        category = ErrorClass()
        messages = ["ERROR_STRING: one", "ERROR_STRING: two", "ERROR_STRING: three"]
        for codes in (category.add_error_code(*messages), category.add_error_code(messages)):
            assert [code.message() for code in codes] == messages
            assert all(code.category() == category for code in codes)

    def test_error_string_too_long(self, runtime):
        category = ErrorClass()
        before = runtime.last_used_code()
        with pytest.raises(PreconditionViolation, match="exceeds MPI_MAX_ERROR_STRING"):
            category.add_error_code("x" * StubRuntime.MAX_ERROR_STRING)
        with pytest.raises(PreconditionViolation):
            category.add_error_code("fine", "x" * StubRuntime.MAX_ERROR_STRING)
        assert runtime.last_used_code() == before + 1

    def test_ordering_and_hash(self):
        low, high = ErrorCode(0).category(), ErrorCode(1).category()
        assert low.value == SUCCESS
        assert low < high and high >= low
        assert low == ErrorCode(0).category()
        assert len({low, ErrorCode(0).category(), high}) == 2
        assert str(high) == "1"


# =============================================================================
# ErrorCode
# =============================================================================


class TestErrorCode:
    def test_default_is_success(self):
        code = ErrorCode()
        assert code.value == SUCCESS
        assert not code

    def test_value(self):
        assert ErrorCode(3).value == 3
        assert ErrorCode(1)

    @pytest.mark.parametrize("value", [-1, StubRuntime.ERR_LASTCODE + 1, INT_MAX])
    def test_illegal_values(self, value):
        with pytest.raises(PreconditionViolation, match="falls outside the valid range"):
            ErrorCode(value)

    def test_assign_and_clear(self):
        code = ErrorCode(5)
        code.assign(3)
        assert code.value == 3
        with pytest.raises(PreconditionViolation):
            code.assign(-1)
        assert code.value == 3
        code.clear()
        assert code.value == SUCCESS

    def test_predefined_codes_map_onto_their_class(self):
        assert ErrorCode(2).category().value == 2

    def test_message(self, runtime):
        code = ErrorCode(StubRuntime.ERR_SPAWN)
        assert code.message() == runtime.error_string(StubRuntime.ERR_SPAWN)
        assert str(code) == f"{StubRuntime.ERR_SPAWN}: MPI_ERR_SPAWN: could not spawn processes"

    def test_last_used_value_and_max_message_size(self, runtime):
        assert ErrorCode.last_used_value() == StubRuntime.ERR_LASTCODE
        assert ErrorCode.max_message_size() == StubRuntime.MAX_ERROR_STRING
        assert ErrorCode.last_used_value(runtime) == runtime.last_used_code()

    def test_comparisons(self):
        zero, one, two = ErrorCode(0), ErrorCode(1), ErrorCode(2)
        assert zero == ErrorCode(0) and zero != one
        assert zero < one <= one < two
        assert two > zero and two >= two
        assert ErrorCode(1) != 1
        assert len({zero, ErrorCode(0), one}) == 2
