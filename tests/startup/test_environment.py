"""Tests for environment lifecycle, queries and Clock."""

import pytest

from mpifacade.core.assertions import PreconditionViolation
from mpifacade.core.errors import ThreadSupportNotSatisfiedError
from mpifacade.runtime import THREAD_SERIALIZED, StubAbort, StubRuntime, use_runtime
from mpifacade.startup import (
    Clock,
    ThreadSupport,
    abort,
    active,
    atfinalize,
    environment,
    finalize,
    finalized,
    initialize,
    initialized,
    is_main_thread,
    parent_process,
    processor_name,
    provided_thread_support,
    run_main,
    universe_size,
)


@pytest.fixture
def serialized_runtime():
    """Uninitialized runtime that provides at most MPI_THREAD_SERIALIZED."""
    runtime = StubRuntime(world_size=2, initialized=False, thread_level_limit=THREAD_SERIALIZED)
    with use_runtime(runtime):
        yield runtime


# =============================================================================
# Lifecycle
# =============================================================================


class TestInitialize:
    def test_plain_initialize(self, fresh_runtime):
        assert not initialized()
        assert initialize() is ThreadSupport.SINGLE
        assert initialized()
        assert active()

    def test_required_level_provided(self, serialized_runtime):
        assert initialize(ThreadSupport.FUNNELED) is ThreadSupport.FUNNELED
        assert provided_thread_support() is ThreadSupport.FUNNELED

    def test_required_level_not_satisfied(self, serialized_runtime):
        with pytest.raises(ThreadSupportNotSatisfiedError) as exc_info:
            initialize(ThreadSupport.MULTIPLE)
        assert exc_info.value.required is ThreadSupport.MULTIPLE
        assert exc_info.value.provided is ThreadSupport.SERIALIZED
        assert "MPI_THREAD_MULTIPLE" in str(exc_info.value)
        assert initialized()

    def test_double_initialize(self, runtime):
        with pytest.raises(PreconditionViolation, match="MPI environment already initialized!"):
            initialize()


class TestFinalize:
    def test_finalize(self, runtime):
        finalize()
        assert finalized()
        assert not active()

    def test_double_finalize(self, runtime):
        finalize()
        with pytest.raises(PreconditionViolation, match="MPI environment already finalized!"):
            finalize()

    def test_atfinalize_runs_last_registered_first(self, runtime):
        calls = []
        atfinalize(lambda: calls.append("first"))
        atfinalize(lambda: calls.append(("second", runtime.finalized())))
        finalize()
        assert calls == [("second", False), "first"]

    def test_atfinalize_requires_callable(self):
        with pytest.raises(PreconditionViolation):
            atfinalize("not callable")


class TestEnvironmentContext:
    def test_initializes_and_finalizes(self, serialized_runtime):
        with environment(ThreadSupport.SERIALIZED) as provided:
            assert provided is ThreadSupport.SERIALIZED
            assert active()
        assert serialized_runtime.finalized()

    def test_finalizes_on_error(self, fresh_runtime):
        with pytest.raises(ValueError):
            with environment():
                raise ValueError("boom")
        assert fresh_runtime.finalized()

    def test_finalizes_when_thread_support_not_satisfied(self, serialized_runtime):
        with pytest.raises(ThreadSupportNotSatisfiedError):
            with environment(ThreadSupport.MULTIPLE):
                pytest.fail("body must not run")
        assert serialized_runtime.finalized()


class TestRunMain:
    def test_returns_exit_code(self, fresh_runtime):
        assert run_main(lambda: 3) == 3
        assert fresh_runtime.finalized()

    def test_thread_support_not_satisfied(self, serialized_runtime):
        called = []
        assert run_main(lambda: called.append(1) or 0, ThreadSupport.MULTIPLE) == -1
        assert called == []
        assert serialized_runtime.finalized()


# =============================================================================
# Queries
# =============================================================================


class TestQueries:
    def test_runtime_facts(self, runtime):
        assert universe_size() == 16
        assert processor_name() == "node00"
        assert is_main_thread()
        assert provided_thread_support() is ThreadSupport.MULTIPLE

    def test_unknown_universe(self):
        with use_runtime(StubRuntime(universe_size=None)):
            assert universe_size() is None

    def test_no_parent(self):
        assert parent_process() is None

    def test_parent(self, runtime):
        runtime.parent = runtime.create_comm(2, name="parent")
        assert parent_process() is runtime.parent

    def test_abort(self, runtime):
        with pytest.raises(StubAbort):
            abort(3)
        assert runtime.aborted == (runtime.comm_world(), 3)

    def test_abort_communicator(self, runtime):
        comm = runtime.create_comm(2)
        with pytest.raises(StubAbort):
            abort(code=5, comm=comm)
        assert runtime.aborted == (comm, 5)


class TestClock:
    def test_now_is_monotonic(self):
        first = Clock.now()
        assert Clock.now() >= first

    def test_resolution(self):
        assert Clock.resolution() > 0

    def test_synchronized(self, runtime):
        assert Clock.synchronized() is False
        assert Clock.synchronized(runtime.comm_self()) is False

    def test_steady(self):
        assert Clock.is_steady
