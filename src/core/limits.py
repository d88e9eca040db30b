"""
Soft caps on collection sizes.

These are technical safeguards, not rules of play: exceeding a cap is
allowed, it is only logged as a warning.
"""
from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

MAX_PERIODS_PER_GAME = 1024
MAX_EVENTS_PER_PERIOD = 256
MAX_SCENES_PER_EVENT = 128
MAX_LEGACIES_PER_GAME = 256


def _would_exceed(current_count: int, cap: int, what: str) -> bool:
    exceeded = current_count >= cap
    if exceeded:
        logger.warning("Soft cap warning: exceeding maximum %s (%d)", what, cap)
    return exceeded


def would_exceed_period_cap(current_count: int) -> bool:
    """``True`` if adding one more period goes past the cap."""
    return _would_exceed(current_count, MAX_PERIODS_PER_GAME, "periods")


def would_exceed_event_cap(current_count: int) -> bool:
    return _would_exceed(current_count, MAX_EVENTS_PER_PERIOD, "events")


def would_exceed_scene_cap(current_count: int) -> bool:
    return _would_exceed(current_count, MAX_SCENES_PER_EVENT, "scenes")


def would_exceed_legacy_cap(current_count: int) -> bool:
    return _would_exceed(current_count, MAX_LEGACIES_PER_GAME, "legacies")
