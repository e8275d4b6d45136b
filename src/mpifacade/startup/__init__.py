"""
Startup: environment lifecycle, thread support and dynamic process spawning.

Modules:
    thread_support    - ThreadSupport enum, to_string(), enum_from_string()
    environment       - initialize()/finalize(), queries, Clock, parent_process()
    single_spawner    - SingleSpawner
    multiple_spawner  - MultipleSpawner
    spawn_result      - SpawnResult
"""

from mpifacade.startup._spawner_base import SpawnerState
from mpifacade.startup.environment import (
    Clock,
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
from mpifacade.startup.multiple_spawner import MultipleSpawner, MultiSpawner
from mpifacade.startup.single_spawner import SingleSpawner, Spawner
from mpifacade.startup.spawn_result import SpawnResult
from mpifacade.startup.thread_support import ThreadSupport, enum_from_string, to_string

__all__ = [
    "SpawnerState",
    "Clock",
    "abort",
    "active",
    "atfinalize",
    "environment",
    "finalize",
    "finalized",
    "initialize",
    "initialized",
    "is_main_thread",
    "parent_process",
    "processor_name",
    "provided_thread_support",
    "run_main",
    "universe_size",
    "MultipleSpawner",
    "MultiSpawner",
    "SingleSpawner",
    "Spawner",
    "SpawnResult",
    "ThreadSupport",
    "enum_from_string",
    "to_string",
]
