"""
Markdown export — deterministic, human-readable rendering of a Game.

Layout::

    # <game name>
    ## Big Picture / Focuses / Players / Legacies / Palette / Anchors
    ## Timeline
    ### ○ <light period>        ### ● <dark period>
    - ○ **Event: <event>**
      - ● **Scene: <scene>**
    ---
    *Exported from Microscope Canvas on YYYY-MM-DD*

Sections with nothing to show are omitted.  User text has the Markdown
control characters ``* _ ` #`` backslash-escaped.
"""
from __future__ import annotations

import re
from datetime import date
from typing import Optional

from core.model import Event, Game, Period, Scene, Tone, find_by_id

LIGHT_GLYPH = "○"
DARK_GLYPH = "●"
FOOTER_PREFIX = "*Exported from Microscope Canvas on"

_SPECIAL = re.compile(r"([*_`#])")


def escape_markdown(text: Optional[str]) -> str:
    if not text:
        return ""
    return _SPECIAL.sub(r"\\\1", text)


def tone_glyph(tone: Tone | str) -> str:
    return DARK_GLYPH if Tone(tone) is Tone.DARK else LIGHT_GLYPH


# ------------------------------------------------------------------
# Timeline
# ------------------------------------------------------------------

def _scene_lines(scene: Scene, indent: str) -> list[str]:
    lines = [f"{indent}- {tone_glyph(scene.tone)} **Scene: {escape_markdown(scene.name)}**"]
    if scene.question:
        lines.append(f"{indent}  - Question: {escape_markdown(scene.question)}")
    if scene.answer:
        lines.append(f"{indent}  - Answer: {escape_markdown(scene.answer)}")
    if scene.description:
        lines.append(f"{indent}  - {escape_markdown(scene.description)}")
    if scene.notes:
        lines.append(f"{indent}  - *Notes: {escape_markdown(scene.notes)}*")
    return lines


def _event_lines(event: Event) -> list[str]:
    lines = [f"- {tone_glyph(event.tone)} **Event: {escape_markdown(event.name)}**"]
    if event.description:
        lines.append(f"  - {escape_markdown(event.description)}")
    if event.notes:
        lines.append(f"  - *Notes: {escape_markdown(event.notes)}*")
    for scene in event.scenes:
        lines.extend(_scene_lines(scene, "  "))
    return lines


def _period_lines(period: Period) -> list[str]:
    lines = [f"### {tone_glyph(period.tone)} {escape_markdown(period.name)}", ""]
    if period.description:
        lines += [escape_markdown(period.description), ""]
    if period.notes:
        lines += [f"*Notes: {escape_markdown(period.notes)}*", ""]
    for event in period.events:
        lines.extend(_event_lines(event))
    if period.events:
        lines.append("")
    return lines


# ------------------------------------------------------------------
# Game-level sections
# ------------------------------------------------------------------

def _big_picture_lines(game: Game) -> list[str]:
    bp = game.big_picture
    if bp is None:
        return []
    lines = ["## Big Picture", ""]
    if bp.premise:
        lines.append(f"**Premise:** {escape_markdown(bp.premise)}")
    if bp.bookend_start:
        lines.append(f"**Beginning:** {escape_markdown(bp.bookend_start)}")
    if bp.bookend_end:
        lines.append(f"**End:** {escape_markdown(bp.bookend_end)}")
    lines.append("")
    return lines


def _focus_lines(game: Game) -> list[str]:
    focuses = game.focuses or ([game.focus] if game.focus else [])
    if not focuses:
        return []
    current = game.current_focus_index if game.focuses else 0
    lines = ["## Focuses", ""]
    for i, focus in enumerate(focuses):
        marker = " (current)" if i == current else ""
        lines.append(f"- **{escape_markdown(focus.name)}**{marker}")
        if focus.description:
            lines.append(f"  - {escape_markdown(focus.description)}")
    lines.append("")
    return lines


def _player_lines(game: Game) -> list[str]:
    if not game.players:
        return []
    lines = ["## Players", ""]
    for i, player in enumerate(game.players):
        marker = " (active)" if i == game.active_player_index else ""
        lines.append(f"- {escape_markdown(player.name)}{marker}")
    lines.append("")
    return lines


def _legacy_lines(game: Game) -> list[str]:
    if not game.legacies:
        return []
    lines = ["## Legacies", ""]
    for legacy in game.legacies:
        lines.append(f"- **{escape_markdown(legacy.name)}**")
        if legacy.description:
            lines.append(f"  - {escape_markdown(legacy.description)}")
    lines.append("")
    return lines


def _palette_lines(game: Game) -> list[str]:
    palette = game.palette
    if palette is None or not (palette.yes or palette.no):
        return []
    lines = ["## Palette", ""]
    if palette.yes:
        lines.append("**Yes (Allowed):**")
        lines.extend(f"- {escape_markdown(item)}" for item in palette.yes)
    if palette.no:
        if palette.yes:
            lines.append("")
        lines.append("**No (Banned):**")
        lines.extend(f"- {escape_markdown(item)}" for item in palette.no)
    lines.append("")
    return lines


def _anchor_lines(game: Game) -> list[str]:
    if not game.anchors:
        return []
    lines = ["## Anchors", ""]
    for anchor in game.anchors:
        line = f"- **{escape_markdown(anchor.name)}**"
        if anchor.id == game.current_anchor_id:
            line += " (current)"
        placement = next(
            (p for p in game.anchor_placements if p.anchor_id == anchor.id), None,
        )
        if placement is not None:
            period = find_by_id(game.periods, placement.period_id)
            if period is not None:
                line += f", placed on {escape_markdown(period.name)}"
        lines.append(line)
        if anchor.description:
            lines.append(f"  - {escape_markdown(anchor.description)}")
    lines.append("")
    return lines


def export_game_to_markdown(game: Game, exported_on: Optional[date] = None) -> str:
    """Render *game* as Markdown.  *exported_on* defaults to today."""
    lines = [f"# {escape_markdown(game.name)}", ""]
    lines += _big_picture_lines(game)
    lines += _focus_lines(game)
    lines += _player_lines(game)
    lines += _legacy_lines(game)
    lines += _palette_lines(game)
    lines += _anchor_lines(game)

    if game.periods:
        lines += ["## Timeline", ""]
        for period in game.periods:
            lines += _period_lines(period)

    day = (exported_on or date.today()).isoformat()
    lines += ["---", f"{FOOTER_PREFIX} {day}*"]
    return "\n".join(lines)
