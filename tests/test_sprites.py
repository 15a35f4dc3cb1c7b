"""Tests for sprite direction remapping and clone merging."""

from __future__ import annotations

import pytest

from voxelamming.sprites import merge_sprite_moves, remap_direction
from voxelamming.types import RotationStyle, SpritePlacement


class TestRemapDirection:
    """Tests for remap_direction."""

    @pytest.mark.parametrize(
        ("direction", "expected"), [(90, 0), (0, 90), (-90, 180), (180, -90)]
    )
    def test_all_around(self, direction: float, expected: float) -> None:
        assert remap_direction(direction, RotationStyle.ALL_AROUND) == expected

    @pytest.mark.parametrize(("direction", "expected"), [(-1, -180), (0, 0), (90, 0)])
    def test_left_right(self, direction: float, expected: float) -> None:
        assert remap_direction(direction, RotationStyle.LEFT_RIGHT) == expected

    def test_dont_rotate(self) -> None:
        assert remap_direction(-45, RotationStyle.DONT_ROTATE) == 0


class TestMergeSpriteMoves:
    """Tests for merging clone placements into the primary list."""

    def test_clones_follow_template_in_index_order(self) -> None:
        primary = SpritePlacement(0, 0, 0)
        clone0 = SpritePlacement(1, 1, 0)
        clone3 = SpritePlacement(3, 3, 0)
        merged = merge_sprite_moves({"cat": primary}, {"cat": {3: clone3, 0: clone0}})
        assert merged == [("cat", [primary, clone0, clone3])]

    def test_clone_without_primary_starts_entry(self) -> None:
        clone = SpritePlacement(5, 5, 0)
        merged = merge_sprite_moves({}, {"dog": {1: clone}})
        assert merged == [("dog", [clone])]

    def test_inputs_are_not_modified(self) -> None:
        """Merging twice gives the same result."""
        moves = {"cat": SpritePlacement(0, 0, 0)}
        clones = {"cat": {0: SpritePlacement(1, 1, 0)}}
        first = merge_sprite_moves(moves, clones)
        second = merge_sprite_moves(moves, clones)
        assert first == second
        assert len(first[0][1]) == 2
