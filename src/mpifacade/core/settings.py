"""
Centralized settings for mpifacade.

One validated, cached settings object decides which runtime backs the
facade, which contract checks are active and how violations and log
events are reported. Values come from ``MPIFACADE_*`` environment
variables or a ``.env`` file.

Examples:
    >>> from mpifacade.core.settings import get_settings
    >>> settings = get_settings()
    >>> settings.runtime
    'mpi4py'

    Switching to the in-memory runtime for a test session::

        MPIFACADE_RUNTIME=stub MPIFACADE_STUB_UNIVERSE_SIZE=8 pytest

Tags:
    mpifacade, configuration, settings, pydantic, caching, validation

Doc-Types:
    api-reference
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ASSERTION_CATEGORIES = ("precondition", "sanity")


class FacadeSettings(BaseSettings):
    """mpifacade configuration.

    Fields
    ──────
    runtime                 : Backend used by ``get_runtime()`` ("mpi4py" or "stub")
    assertion_categories    : Enabled contract checks ("precondition", "sanity")
    abort_on_violation      : Abort the process group instead of raising
    log_level               : Structlog log level
    log_format              : "console" or "json"
    mpi4py_auto_initialize  : Value for ``mpi4py.rc.initialize``
    mpi4py_auto_finalize    : Value for ``mpi4py.rc.finalize``
    stub_world_size         : World size of the in-memory runtime
    stub_universe_size      : Universe size of the in-memory runtime (None = unknown)
    """

    model_config = SettingsConfigDict(
        env_prefix="MPIFACADE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Runtime ──────────────────────────────────────────────────
    runtime: Literal["mpi4py", "stub"] = Field(default="mpi4py")

    # ── Contracts ────────────────────────────────────────────────
    assertion_categories: list[str] = Field(default_factory=lambda: list(ASSERTION_CATEGORIES))
    abort_on_violation: bool = Field(default=False)

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: Literal["console", "json"] = Field(default="console")

    # ── mpi4py ───────────────────────────────────────────────────
    mpi4py_auto_initialize: bool = Field(default=True)
    mpi4py_auto_finalize: bool = Field(default=True)

    # ── Stub runtime ─────────────────────────────────────────────
    stub_world_size: int = Field(default=1, ge=1)
    stub_universe_size: int | None = Field(default=None, ge=1)

    @field_validator("assertion_categories")
    @classmethod
    def _known_categories(cls, value: list[str]) -> list[str]:
        normalized = [v.strip().lower() for v in value]
        unknown = sorted(set(normalized) - set(ASSERTION_CATEGORIES))
        if unknown:
            raise ValueError(
                f"Unknown assertion categories {unknown}; expected a subset of {list(ASSERTION_CATEGORIES)}"
            )
        return normalized

    def assertions_enabled(self, category: str) -> bool:
        return category in self.assertion_categories


# ── Settings factory with caching ────────────────────────────────────────

_settings_cache: dict[str, FacadeSettings] = {}


def get_settings(*, _force_reload: bool = False) -> FacadeSettings:
    """Load, validate, and cache a :class:`FacadeSettings` instance."""
    if not _force_reload and "default" in _settings_cache:
        return _settings_cache["default"]
    settings = FacadeSettings()
    _settings_cache["default"] = settings
    return settings


def clear_settings_cache() -> None:
    """Clear the settings cache (primarily for testing)."""
    _settings_cache.clear()


__all__ = [
    "ASSERTION_CATEGORIES",
    "FacadeSettings",
    "get_settings",
    "clear_settings_cache",
]
