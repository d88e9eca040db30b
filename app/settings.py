"""Configuration helpers for deploying the Microscope Canvas API."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from core.history import DEFAULT_HISTORY_LIMIT
from core.snapshot import DEFAULT_SNAPSHOT_LIMIT
from infrastructure.autosave import DEFAULT_AUTOSAVE_DELAY
from infrastructure.persistence import IN_MEMORY


def _normalise_path(value: str | None) -> Path | None:
    if value is None:
        return None

    trimmed = value.strip()
    if not trimmed:
        return None

    return Path(trimmed).expanduser()


def _parse_int(source: Mapping[str, str], name: str, *, default: int) -> int:
    raw = source.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        parsed = int(raw.strip())
    except ValueError as exc:
        raise ValueError(f"{name} must be a non-negative integer.") from exc
    if parsed < 0:
        raise ValueError(f"{name} must be a non-negative integer.")
    return parsed


def _parse_delay(source: Mapping[str, str], name: str, *, default: float) -> float:
    raw = source.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        parsed = float(raw.strip())
    except ValueError as exc:
        raise ValueError(f"{name} must be a number of seconds.") from exc
    if parsed < 0:
        raise ValueError(f"{name} must not be negative.")
    return parsed


@dataclass(frozen=True)
class CanvasSettings:
    """Deployment settings for the FastAPI application.

    Read from environment variables so the service can be configured
    without touching code.  An unset or blank ``MICROSCOPE_DB_PATH``
    keeps everything in memory.
    """

    db_path: Path | None = None
    history_limit: int = DEFAULT_HISTORY_LIMIT
    snapshot_limit: int = DEFAULT_SNAPSHOT_LIMIT
    autosave_delay: float = DEFAULT_AUTOSAVE_DELAY

    @property
    def database(self) -> str:
        """Connection target for the SQLite stores."""
        return str(self.db_path) if self.db_path is not None else IN_MEMORY

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "CanvasSettings":
        """Return settings populated from ``environ``.

        Args:
            environ: Optional mapping of environment variables. When omitted,
                :data:`os.environ` is used.
        """

        source = environ if environ is not None else os.environ

        return cls(
            db_path=_normalise_path(source.get("MICROSCOPE_DB_PATH")),
            history_limit=_parse_int(
                source, "MICROSCOPE_HISTORY_LIMIT", default=DEFAULT_HISTORY_LIMIT,
            ),
            snapshot_limit=_parse_int(
                source, "MICROSCOPE_SNAPSHOT_LIMIT", default=DEFAULT_SNAPSHOT_LIMIT,
            ),
            autosave_delay=_parse_delay(
                source, "MICROSCOPE_AUTOSAVE_DELAY", default=DEFAULT_AUTOSAVE_DELAY,
            ),
        )


__all__ = ["CanvasSettings"]
