"""Tests for SpawnResult."""

import copy
import io

import pytest

from mpifacade.core.assertions import PreconditionViolation
from mpifacade.runtime import ERRCODE_UNSET, SUCCESS, StubRuntime
from mpifacade.startup import SpawnResult


def _spawned(runtime, maxprocs=2):
    outcome = runtime.spawn("worker", None, maxprocs, runtime.info_null(), 0, runtime.comm_world())
    return outcome.intercomm


class TestQueries:
    def test_success(self, runtime):
        result = SpawnResult(_spawned(runtime, 3), [SUCCESS] * 3, 3, runtime=runtime)
        assert result.maxprocs == 3
        assert result.number_of_spawned_processes() == 3
        assert result.maxprocs_processes_spawned()
        assert result.error_list() == "0 errors occurred!"

    def test_errcodes_are_copied(self, runtime):
        codes = [SUCCESS, SUCCESS]
        result = SpawnResult(_spawned(runtime), codes, 2, runtime=runtime)
        codes.append(1)
        result.errcodes().append(1)
        assert result.errcodes() == [SUCCESS, SUCCESS]

    def test_count_from_intercomm_without_errcodes(self, runtime):
        result = SpawnResult(_spawned(runtime, 4), None, 4, runtime=runtime)
        assert result.errcodes() is None
        assert result.number_of_spawned_processes() == 4

    def test_null_intercomm_without_errcodes(self, runtime):
        result = SpawnResult(runtime.comm_null(), None, 4, runtime=runtime)
        assert result.number_of_spawned_processes() == 0
        assert not result.maxprocs_processes_spawned()


class TestErrorList:
    def test_grouped_and_sorted(self, runtime):
        codes = [SUCCESS, StubRuntime.ERR_SPAWN, ERRCODE_UNSET, StubRuntime.ERR_SPAWN]
        result = SpawnResult(runtime.comm_null(), codes, 4, runtime=runtime)
        assert result.error_list() == (
            "3 errors occurred!:\n"
            "    1x Failed to retrieve error string\n"
            "    2x MPI_ERR_SPAWN: could not spawn processes\n"
        )

    def test_single_error(self, runtime):
        result = SpawnResult(runtime.comm_null(), [SUCCESS, 7], 2, runtime=runtime)
        assert result.error_list() == "1 error occurred!:\n    1x Unknown error code 7\n"

    def test_requires_errcodes(self, runtime):
        result = SpawnResult(runtime.comm_null(), None, 1, runtime=runtime)
        with pytest.raises(PreconditionViolation):
            result.error_list()

    def test_print_errors_to_sink(self, runtime):
        result = SpawnResult(runtime.comm_null(), [StubRuntime.ERR_SPAWN], 1, runtime=runtime)
        sink = io.StringIO()
        result.print_errors_to(sink)
        assert sink.getvalue() == result.error_list()

    def test_print_errors_to_stdout(self, runtime, capsys):
        result = SpawnResult(runtime.comm_null(), [SUCCESS], 1, runtime=runtime)
        result.print_errors_to()
        assert capsys.readouterr().out == "0 errors occurred!"


class TestLifetime:
    def test_free_releases_intercomm(self, runtime):
        result = SpawnResult(_spawned(runtime), [SUCCESS] * 2, 2, runtime=runtime)
        result.free()
        assert runtime.freed_comms == 1
        assert result.is_null()
        assert result.number_of_spawned_processes() == 2

    def test_repr(self, runtime):
        result = SpawnResult(runtime.comm_null(), None, 2, runtime=runtime)
        assert repr(result) == "SpawnResult(maxprocs=2, spawned=0, errcodes=ignored)"

    def test_copy_is_refused(self, runtime):
        result = SpawnResult(_spawned(runtime), [SUCCESS] * 2, 2, runtime=runtime)
        with pytest.raises(TypeError, match="SpawnResult owns its handle"):
            copy.copy(result)
        with pytest.raises(TypeError):
            copy.deepcopy(result)
        result.free()
        assert runtime.freed_comms == 1
