"""
Shared pytest fixtures and configuration for mpifacade tests.

This module provides:
- An in-memory runtime installed for every test (4 processes in
  ``MPI_COMM_WORLD``, universe size 16)
- Settings cache and environment isolation
- Cleanup of the atfinalize callbacks registered by a test

Usage:
    Request ``runtime`` to inspect or configure the StubRuntime the
    facade is talking to:

    def test_spawn(runtime):
        runtime.failing_commands["broken.out"] = StubRuntime.ERR_SPAWN
        ...
"""

import os
import sys
from pathlib import Path

import pytest

# Ensure mpifacade package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from mpifacade.core.settings import clear_settings_cache
from mpifacade.runtime import StubRuntime, set_runtime
from mpifacade.startup.environment import _atfinalize_callbacks


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Mark every test without an explicit marker as a unit test."""
    for item in items:
        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Isolation Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def stub_runtime(monkeypatch: pytest.MonkeyPatch):
    """Install a fresh StubRuntime and clean settings for each test."""
    for name in [name for name in os.environ if name.startswith("MPIFACADE_")]:
        monkeypatch.delenv(name)
    clear_settings_cache()

    runtime = StubRuntime(world_size=4, universe_size=16, processor_name="node00")
    previous = set_runtime(runtime)
    yield runtime
    set_runtime(previous)

    _atfinalize_callbacks.clear()
    clear_settings_cache()


@pytest.fixture
def runtime(stub_runtime: StubRuntime) -> StubRuntime:
    """The StubRuntime installed for the current test."""
    return stub_runtime


@pytest.fixture
def fresh_runtime():
    """A StubRuntime that has not been initialized yet."""
    runtime = StubRuntime(world_size=4, universe_size=16, initialized=False)
    previous = set_runtime(runtime)
    yield runtime
    set_runtime(previous)
