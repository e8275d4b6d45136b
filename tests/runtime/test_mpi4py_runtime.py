"""Tests for the mpi4py runtime.

The helpers run everywhere; the rest needs mpi4py and an MPI library and
runs as a singleton MPI job (no launcher required).
"""

import pytest

from mpifacade.runtime import ERRCODE_UNSET, SUCCESS, THREAD_SINGLE, Runtime
from mpifacade.runtime.mpi4py_runtime import Mpi4pyRuntime, _flatten


class TestFlatten:
    def test_flat_codes(self):
        assert _flatten([0, 0, 3], 3) == [0, 0, 3]

    def test_nested_codes(self):
        assert _flatten([[0, 1], [2]], 3) == [0, 1, 2]

    def test_missing_codes_are_padded(self):
        assert _flatten([], 2) == [ERRCODE_UNSET, ERRCODE_UNSET]

    def test_extra_codes_are_dropped(self):
        assert _flatten([0, 0, 0], 2) == [SUCCESS, SUCCESS]


@pytest.fixture(scope="module")
def mpi_runtime():
    pytest.importorskip("mpi4py")
    return Mpi4pyRuntime()


@pytest.mark.integration
class TestMpi4pyRuntime:
    def test_satisfies_protocol(self, mpi_runtime):
        assert isinstance(mpi_runtime, Runtime)

    def test_environment_is_active(self, mpi_runtime):
        assert mpi_runtime.initialized()
        assert not mpi_runtime.finalized()
        assert mpi_runtime.query_thread() >= THREAD_SINGLE

    def test_world(self, mpi_runtime):
        world = mpi_runtime.comm_world()
        assert mpi_runtime.comm_size(world) >= 1
        assert 0 <= mpi_runtime.comm_rank(world) < mpi_runtime.comm_size(world)
        assert not mpi_runtime.comm_is_inter(world)

    def test_info_lifecycle(self, mpi_runtime):
        info = mpi_runtime.info_create()
        try:
            mpi_runtime.info_set(info, "host", "node01")
            assert mpi_runtime.info_get(info, "host") == "node01"
            assert mpi_runtime.info_get_valuelen(info, "host") == 6
            assert mpi_runtime.info_get_nkeys(info) == 1
            assert mpi_runtime.info_get_nthkey(info, 0) == "host"
            assert mpi_runtime.info_delete(info, "host") is True
            assert mpi_runtime.info_delete(info, "host") is False
            assert mpi_runtime.info_get(info, "host") is None
        finally:
            mpi_runtime.info_free(info)

    def test_null_handles(self, mpi_runtime):
        assert mpi_runtime.is_info_null(mpi_runtime.info_null())
        assert mpi_runtime.is_comm_null(mpi_runtime.comm_null())

    def test_clock(self, mpi_runtime):
        assert mpi_runtime.wtick() > 0
        assert mpi_runtime.wtime() <= mpi_runtime.wtime()

    def test_error_registry(self, mpi_runtime):
        error_class = mpi_runtime.add_error_class()
        code = mpi_runtime.add_error_code(error_class)
        mpi_runtime.add_error_string(code, "mpifacade test error")
        assert mpi_runtime.error_class(code) == error_class
        assert mpi_runtime.error_string(code) == "mpifacade test error"
        assert mpi_runtime.max_error_string() > 0

    def test_version(self, mpi_runtime):
        major, minor = mpi_runtime.version()
        assert major >= 1 and minor >= 0
        assert mpi_runtime.library_version()
