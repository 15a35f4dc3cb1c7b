"""Sprite helpers: direction remapping and clone-move merging."""

from __future__ import annotations

from collections.abc import Mapping

from .types import RotationStyle, SpritePlacement

# Renderer sentinel for "mirrored horizontally" under the left-right style
LEFT_RIGHT_FLIPPED = -180


def remap_direction(direction: float, style: RotationStyle) -> float:
    """Convert a Scratch direction (90 = facing right) to the renderer's angle."""
    if style is RotationStyle.LEFT_RIGHT:
        return LEFT_RIGHT_FLIPPED if direction < 0 else 0
    if style is RotationStyle.DONT_ROTATE:
        return 0
    return 90 - direction


def merge_sprite_moves(
    moves: Mapping[str, SpritePlacement],
    clone_moves: Mapping[str, Mapping[int, SpritePlacement]],
) -> list[tuple[str, list[SpritePlacement]]]:
    """Combine primary placements with staged clone placements.

    Each clone is appended after its template's own placement, in ascending
    clone index; missing indices are simply absent. A sprite that only has
    clones gets an entry headed by its lowest-indexed clone.

    Neither input is modified, so building several snapshots from the same
    state never duplicates clones.
    """
    merged: list[tuple[str, list[SpritePlacement]]] = [
        (name, [placement]) for name, placement in moves.items()
    ]
    index_by_name = {name: i for i, (name, _) in enumerate(merged)}

    for name, clones in clone_moves.items():
        placements = [clones[i] for i in sorted(clones)]
        if not placements:
            continue
        if name in index_by_name:
            merged[index_by_name[name]][1].extend(placements)
        else:
            index_by_name[name] = len(merged)
            merged.append((name, placements))

    return merged
