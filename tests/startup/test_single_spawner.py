"""Tests for SingleSpawner."""

import io

import pytest

from mpifacade.core.assertions import PreconditionViolation, SanityViolation
from mpifacade.core.errors import OutOfRangeError
from mpifacade.info import InfoMap
from mpifacade.runtime import INT_MAX, StubRuntime, use_runtime
from mpifacade.startup import SingleSpawner, Spawner, SpawnerState, SpawnResult


# ── Configuration ────────────────────────────────────────────────────────


class TestConfiguration:
    def test_defaults(self, runtime):
        s = SingleSpawner("worker", 4)
        assert s.command == "worker"
        assert s.maxprocs == 4
        assert s.argv == []
        assert s.spawn_info.is_null()
        assert s.root == 0
        assert s.communicator is runtime.comm_world()
        assert s.state is SpawnerState.CONFIGURING

    def test_from_pair(self):
        s = SingleSpawner.from_pair(("worker", 2))
        assert (s.command, s.maxprocs) == ("worker", 2)

    def test_alias(self):
        assert Spawner is SingleSpawner

    def test_setters_chain(self):
        s = SingleSpawner("a", 1)
        assert s.set_command("b").set_maxprocs(3).set_root(1) is s
        assert (s.command, s.maxprocs, s.root) == ("b", 3, 1)

    def test_empty_command(self):
        with pytest.raises(SanityViolation, match="Attempt to set executable name to the empty string!"):
            SingleSpawner("", 1)

    @pytest.mark.parametrize("maxprocs", [0, -1, 17])
    def test_maxprocs_outside_universe(self, maxprocs):
        with pytest.raises(SanityViolation) as exc_info:
            SingleSpawner("worker", maxprocs)
        assert str(exc_info.value) == (
            "Sanity assertion failed: Attempt to set the maxprocs value "
            f"(which is {maxprocs}), which falls outside the valid range (0, 16]!"
        )

    def test_maxprocs_equal_to_universe(self):
        assert SingleSpawner("worker", 16).maxprocs == 16

    def test_unknown_universe_size(self):
        with use_runtime(StubRuntime(universe_size=None)):
            assert SingleSpawner("worker", 1000).maxprocs == 1000
            with pytest.raises(SanityViolation, match=str(INT_MAX)):
                SingleSpawner("worker", INT_MAX)


class TestArgv:
    def test_normalization(self):
        s = SingleSpawner("worker", 1)
        s.add_argv("--verbose", ("--level", 3), {"--mode": "fast"}, ["a", ("b", True)])
        assert s.argv == [
            ("--verbose", ""),
            ("--level", "3"),
            ("--mode", "fast"),
            ("a", ""),
            ("b", "true"),
        ]
        assert s.argv_size() == 5

    def test_add_argv_appends(self):
        s = SingleSpawner("worker", 1).add_argv("-x").add_argv("-y")
        assert s.argv == [("-x", ""), ("-y", "")]

    def test_argv_is_a_copy(self):
        s = SingleSpawner("worker", 1).add_argv("-x")
        s.argv.append(("-y", ""))
        assert s.argv_size() == 1

    def test_remove_argv(self):
        s = SingleSpawner("worker", 1).add_argv("-x")
        assert s.remove_argv() is s
        assert s.argv == []

    def test_argv_at(self):
        s = SingleSpawner("worker", 1).add_argv(("--level", 2))
        assert s.argv_at(0) == ("--level", "2")

    def test_argv_at_out_of_range(self):
        s = SingleSpawner("worker", 1).add_argv("-x")
        with pytest.raises(OutOfRangeError) as exc_info:
            s.argv_at(5)
        assert str(exc_info.value) == "SingleSpawner.argv_at range check: i (which is 5) >= argv_size() (which is 1)"

    def test_empty_argument(self):
        with pytest.raises(SanityViolation, match="empty command line argument"):
            SingleSpawner("worker", 1).add_argv(("", "value"))


class TestSpawnInfo:
    def test_stores_a_copy(self):
        info = InfoMap({"host": "node01"})
        s = SingleSpawner("worker", 1).set_spawn_info(info)
        info["host"] = "node02"
        assert s.spawn_info["host"] == "node01"
        assert s.spawn_info.handle is not info.handle

    def test_replacing_frees_previous_copy(self, runtime):
        info = InfoMap({"host": "node01"})
        s = SingleSpawner("worker", 1).set_spawn_info(info)
        assert runtime.live_info_count == 2
        s.set_spawn_info(InfoMap.null)
        assert runtime.live_info_count == 1
        assert s.spawn_info.is_null()


class TestRootAndCommunicator:
    def test_root_outside_communicator(self):
        with pytest.raises(SanityViolation, match=r"\(which is 4\), which falls outside the valid range \[0, 4\)"):
            SingleSpawner("worker", 1).set_root(4)

    def test_set_communicator(self, runtime):
        comm = runtime.create_comm(2)
        s = SingleSpawner("worker", 1).set_communicator(comm)
        assert s.communicator is comm

    def test_null_communicator(self, runtime):
        with pytest.raises(PreconditionViolation, match="MPI_COMM_NULL"):
            SingleSpawner("worker", 1).set_communicator(runtime.comm_null())

    def test_intercommunicator(self, runtime):
        result = SingleSpawner("worker", 1).spawn()
        with pytest.raises(PreconditionViolation, match="intercommunicator"):
            SingleSpawner("worker", 1).set_communicator(result.intercommunicator())

    def test_root_invalid_in_new_communicator(self, runtime):
        s = SingleSpawner("worker", 1).set_root(3)
        with pytest.raises(SanityViolation, match="isn't a valid root in the new communicator"):
            s.set_communicator(runtime.create_comm(2))
        assert s.communicator is runtime.comm_world()


# ── Spawning ─────────────────────────────────────────────────────────────


class TestSpawn:
    def test_spawn_passes_configuration(self, runtime):
        s = (
            SingleSpawner("worker", 4)
            .add_argv("--verbose", ("--level", 3))
            .set_spawn_info(InfoMap({"host": "node01"}))
            .set_root(2)
        )
        result = s.spawn()
        call = runtime.spawn_calls[-1]
        assert call.commands == ["worker"]
        assert call.argvs == [["--verbose", "--level", "3"]]
        assert call.maxprocs == [4]
        assert call.infos == [{"host": "node01"}]
        assert call.root == 2
        assert call.comm is runtime.comm_world()
        assert isinstance(result, SpawnResult)

    def test_spawn_without_argv_or_info(self, runtime):
        SingleSpawner("worker", 1).spawn()
        call = runtime.spawn_calls[-1]
        assert call.argvs == [None]
        assert call.infos == [None]

    def test_successful_spawn(self):
        s = SingleSpawner("worker", 4)
        result = s.spawn()
        assert s.state is SpawnerState.LAUNCHED
        assert s.result is result
        assert result.errcodes() == [0, 0, 0, 0]
        assert s.errcodes() == [0, 0, 0, 0]
        assert s.number_of_spawned_processes() == 4
        assert s.maxprocs_processes_spawned()
        assert s.error_list() == "0 errors occurred!"

    def test_failed_spawn(self, runtime):
        runtime.failing_commands["broken"] = StubRuntime.ERR_SPAWN
        s = SingleSpawner("broken", 2)
        s.spawn()
        assert s.number_of_spawned_processes() == 0
        assert not s.maxprocs_processes_spawned()
        assert s.error_list() == "2 errors occurred!:\n    2x MPI_ERR_SPAWN: could not spawn processes\n"
        sink = io.StringIO()
        s.print_errors_to(sink)
        assert sink.getvalue() == s.error_list()

    def test_partial_spawn(self):
        with use_runtime(StubRuntime(world_size=4, universe_size=16, spawn_limit=3)):
            s = SingleSpawner("worker", 5)
            s.spawn()
            assert s.number_of_spawned_processes() == 3
            assert s.errcodes().count(StubRuntime.ERR_SPAWN) == 2

    def test_ignore_errcodes(self, runtime):
        s = SingleSpawner("worker", 3)
        result = s.spawn(errcodes=False)
        assert result.errcodes() is None
        assert s.number_of_spawned_processes() == 3
        with pytest.raises(PreconditionViolation, match="didn't request error codes"):
            s.error_list()

    def test_getters_before_spawn(self):
        s = SingleSpawner("worker", 1)
        with pytest.raises(PreconditionViolation, match=r"Attempt to call errcodes\(\) before spawn\(\)!"):
            s.errcodes()
        with pytest.raises(PreconditionViolation, match="before spawn"):
            s.intercommunicator()

    def test_setters_after_spawn_keep_result(self):
        s = SingleSpawner("worker", 2)
        result = s.spawn()
        s.set_maxprocs(4)
        assert s.result is result
        assert s.state is SpawnerState.LAUNCHED
        assert s.spawn() is not result
        assert s.result.maxprocs == 4

    def test_universe_shrinking_before_spawn(self, runtime):
        s = SingleSpawner("worker", 8)
        runtime._universe_size = 4
        with pytest.raises(PreconditionViolation, match="Attempt to use the maxprocs value"):
            s.spawn()

    def test_repr(self):
        assert repr(SingleSpawner("worker", 2)) == (
            "SingleSpawner(command='worker', maxprocs=2, argv=[], root=0, state=configuring)"
        )
