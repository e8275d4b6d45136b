"""Version of mpifacade and of the MPI standard and library underneath.

The library constants are fixed at import time; the MPI queries ask the
current runtime on every call.
"""

from __future__ import annotations

from mpifacade import __version__
from mpifacade.runtime import Runtime, get_runtime

name = "mpifacade"
version = __version__
version_major, version_minor, version_patch = (int(part) for part in version.split("."))


def mpi_version(runtime: Runtime | None = None) -> str:
    """Version of the MPI standard the runtime implements, e.g. ``"3.1"``."""
    major, minor = (runtime or get_runtime()).version()
    return f"{major}.{minor}"


def mpi_version_major(runtime: Runtime | None = None) -> int:
    return (runtime or get_runtime()).version()[0]


def mpi_version_minor(runtime: Runtime | None = None) -> int:
    return (runtime or get_runtime()).version()[1]


def mpi_library_version(runtime: Runtime | None = None) -> str:
    """The library's own version banner."""
    return (runtime or get_runtime()).library_version()


def mpi_library_name(runtime: Runtime | None = None) -> str:
    """``"Open MPI"``, ``"MPICH"`` or ``"unknown"``."""
    banner = mpi_library_version(runtime)
    if "Open MPI" in banner:
        return "Open MPI"
    if "MPICH" in banner:
        return "MPICH"
    return "unknown"


__all__ = [
    "name",
    "version",
    "version_major",
    "version_minor",
    "version_patch",
    "mpi_version",
    "mpi_version_major",
    "mpi_version_minor",
    "mpi_library_version",
    "mpi_library_name",
]
