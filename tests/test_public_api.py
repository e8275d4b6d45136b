"""Smoke tests for the top-level package exports."""

import mpifacade


class TestPublicApi:
    def test_version(self):
        assert mpifacade.__version__ == "0.1.0"

    def test_all_exports_resolve(self):
        for name in mpifacade.__all__:
            assert hasattr(mpifacade, name), name

    def test_end_to_end(self, runtime):
        info = mpifacade.InfoMap({"wdir": "/scratch"})
        spawner = (
            mpifacade.MultipleSpawner(("a.out", 2), ("b.out", 1))
            .add_argv(["--verbose"], [("--level", 1)])
            .set_spawn_info(info, mpifacade.InfoMap.null)
        )
        with spawner.spawn() as result:
            assert result.maxprocs_processes_spawned()
            assert result.error_list() == "0 errors occurred!"
        assert runtime.freed_comms == 1
        assert runtime.spawn_calls[-1].argvs == [["--verbose"], ["--level", "1"]]
