"""Tests for ThreadSupport and its string conversions."""

from enum import IntEnum

import pytest

from mpifacade.core.errors import InvalidArgumentError
from mpifacade.startup import ThreadSupport, enum_from_string, to_string


class TestThreadSupport:
    def test_ordering(self):
        assert ThreadSupport.SINGLE < ThreadSupport.FUNNELED < ThreadSupport.SERIALIZED < ThreadSupport.MULTIPLE

    def test_values(self):
        assert [int(level) for level in ThreadSupport] == [0, 1, 2, 3]

    def test_canonical_names(self):
        assert [str(level) for level in ThreadSupport] == [
            "MPI_THREAD_SINGLE",
            "MPI_THREAD_FUNNELED",
            "MPI_THREAD_SERIALIZED",
            "MPI_THREAD_MULTIPLE",
        ]

    def test_format(self):
        assert f"{ThreadSupport.FUNNELED}" == "MPI_THREAD_FUNNELED"
        assert f"{ThreadSupport.SINGLE:>18}" == " MPI_THREAD_SINGLE"


class TestConversion:
    @pytest.mark.parametrize("level", list(ThreadSupport))
    def test_round_trip(self, level):
        assert enum_from_string(to_string(level)) == level

    def test_to_string_accepts_ints(self):
        assert to_string(2) == "MPI_THREAD_SERIALIZED"

    def test_member_name_accepted(self):
        assert enum_from_string("MULTIPLE") is ThreadSupport.MULTIPLE
        assert ThreadSupport.from_string("MPI_THREAD_SINGLE") is ThreadSupport.SINGLE

    def test_unknown_name(self):
        with pytest.raises(InvalidArgumentError) as exc_info:
            enum_from_string("INVALID_VALUE")
        assert str(exc_info.value) == 'Can\'t convert "INVALID_VALUE" to ThreadSupport!'
        assert isinstance(exc_info.value, ValueError)
        assert exc_info.value.context == {"value": "INVALID_VALUE", "type": "ThreadSupport"}

    def test_names_are_case_sensitive(self):
        with pytest.raises(InvalidArgumentError):
            enum_from_string("mpi_thread_single")

    def test_other_enum_types(self):
        class Level(IntEnum):
            LOW = 1
            HIGH = 2

        assert enum_from_string("HIGH", Level) is Level.HIGH
        with pytest.raises(InvalidArgumentError, match="Level"):
            enum_from_string("MEDIUM", Level)
