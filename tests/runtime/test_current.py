"""Tests for the process-wide current runtime."""

from mpifacade.core.settings import FacadeSettings, clear_settings_cache
from mpifacade.runtime import (
    StubRuntime,
    create_runtime,
    get_runtime,
    peek_runtime,
    set_runtime,
    use_runtime,
)


class TestCurrentRuntime:
    def test_fixture_runtime_is_current(self, runtime):
        assert get_runtime() is runtime
        assert peek_runtime() is runtime

    def test_set_runtime_returns_previous(self, runtime):
        other = StubRuntime()
        assert set_runtime(other) is runtime
        assert get_runtime() is other

    def test_use_runtime_restores(self, runtime):
        other = StubRuntime()
        with use_runtime(other) as installed:
            assert installed is other
            assert get_runtime() is other
        assert get_runtime() is runtime

    def test_use_runtime_restores_on_error(self, runtime):
        try:
            with use_runtime(StubRuntime()):
                raise ValueError("boom")
        except ValueError:
            pass
        assert get_runtime() is runtime

    def test_get_runtime_creates_from_settings(self, monkeypatch):
        monkeypatch.setenv("MPIFACADE_RUNTIME", "stub")
        monkeypatch.setenv("MPIFACADE_STUB_WORLD_SIZE", "3")
        clear_settings_cache()
        set_runtime(None)
        assert peek_runtime() is None
        created = get_runtime()
        assert isinstance(created, StubRuntime)
        assert created.comm_size(created.comm_world()) == 3
        assert get_runtime() is created


class TestCreateRuntime:
    def test_stub(self):
        rt = create_runtime(FacadeSettings(runtime="stub", stub_world_size=2, stub_universe_size=8))
        assert isinstance(rt, StubRuntime)
        assert rt.universe_size() == 8

    def test_mpi4py_is_not_loaded_eagerly(self):
        from mpifacade.runtime.mpi4py_runtime import Mpi4pyRuntime

        rt = create_runtime(FacadeSettings(runtime="mpi4py", mpi4py_auto_initialize=False))
        assert isinstance(rt, Mpi4pyRuntime)
        assert rt.runtime_name == "mpi4py"
        assert rt._mpi is None
        assert "auto_initialize=False" in repr(rt)
