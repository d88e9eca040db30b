"""
Schema migration for stored / imported game dicts.

Schema history:
    v1  original timeline (periods, legacies, single ``focus``)
    v2  anchors, anchor placements and ``currentAnchorId``

:func:`migrate_game_dict` upgrades any older dict to the current
version by filling in defaults.  It never rejects data; rejecting a
*newer* schema is the importer's decision.
"""
from __future__ import annotations

import logging
from typing import Any, Mapping

from core.model import SCHEMA_VERSION

logger = logging.getLogger(__name__)

LEGACY_SCHEMA_VERSION = 1


def schema_version_of(data: Mapping[str, Any]) -> int:
    """Declared schema version; data without one predates versioning."""
    version = data.get("schemaVersion")
    if isinstance(version, int) and not isinstance(version, bool):
        return version
    return LEGACY_SCHEMA_VERSION


def migrate_game_dict(data: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of *data* upgraded to :data:`SCHEMA_VERSION`.

    The input mapping is not modified.
    """
    migrated = dict(data)
    version = schema_version_of(data)

    if "focuses" not in migrated:
        legacy_focus = migrated.get("focus")
        if legacy_focus:
            migrated["focuses"] = [legacy_focus]
            migrated.setdefault("currentFocusIndex", 0)
        else:
            migrated["focuses"] = []
    migrated.setdefault("currentFocusIndex", -1)
    migrated.setdefault("players", [])
    migrated.setdefault("activePlayerIndex", -1)

    # v1 -> v2
    migrated.setdefault("anchors", [])
    migrated.setdefault("anchorPlacements", [])
    migrated.setdefault("currentAnchorId", None)

    if version < SCHEMA_VERSION:
        logger.info("Migrated game %s from schema v%d to v%d",
                    migrated.get("id"), version, SCHEMA_VERSION)
    migrated["schemaVersion"] = max(version, SCHEMA_VERSION)
    return migrated
