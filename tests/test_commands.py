"""Tests for the command surface."""

from __future__ import annotations

from typing import get_args

import pytest

from voxelamming import commands
from voxelamming.commands import (
    COMMAND_TYPES,
    CreateBox,
    CreateSprite,
    PopMatrix,
    SendData,
    SetLight,
    SetRoomName,
    WriteSentence,
    apply_command,
    command_from_dict,
)
from voxelamming.errors import CommandDecodeError, StackUnderflow
from voxelamming.scene import SceneBuilder


class TestCommandTable:
    """Tests for the closed command set."""

    def test_every_scene_command_has_a_builder_method(self) -> None:
        """Each scene op is named after the SceneBuilder method it drives."""
        for cls in get_args(commands.SceneCommand):
            assert callable(getattr(SceneBuilder, cls.op, None)), cls.op

    def test_ops_are_unique(self) -> None:
        all_types = [*get_args(commands.SceneCommand), *get_args(commands.ClientCommand)]
        assert len(COMMAND_TYPES) == len(all_types)


class TestApplyCommand:
    """Tests for apply_command."""

    def test_applies_to_builder(self) -> None:
        builder = SceneBuilder()
        apply_command(builder, CreateBox(1, 2, 3, r=0.5))
        assert builder.current.boxes[0].position == (1, 2, 3)
        assert builder.current.boxes[0].r == 0.5

    def test_scene_errors_propagate(self) -> None:
        with pytest.raises(StackUnderflow):
            apply_command(SceneBuilder(), PopMatrix())

    def test_client_commands_are_rejected(self) -> None:
        with pytest.raises(TypeError):
            apply_command(SceneBuilder(), SendData())  # type: ignore[arg-type]


class TestCommandFromDict:
    """Tests for decoding script entries."""

    def test_decodes_and_coerces_strings(self) -> None:
        """Host arguments arrive as strings and are converted by field type."""
        command = command_from_dict({"op": "create_box", "x": "1.5", "y": 2, "z": "-3"})
        assert command == CreateBox(1.5, 2.0, -3.0)

    def test_bool_and_int_fields(self) -> None:
        command = command_from_dict(
            {
                "op": "write_sentence",
                "sentence": "Hi",
                "x": 0,
                "y": 0,
                "z": 0,
                "font_size": "24",
                "is_fixed_width": "true",
            }
        )
        assert isinstance(command, WriteSentence)
        assert command.font_size == 24
        assert command.is_fixed_width is True

    def test_optional_float(self) -> None:
        command = command_from_dict({"op": "create_sprite", "sprite_name": "cat", "color_list": "x"})
        assert isinstance(command, CreateSprite)
        assert command.scale is None
        command = command_from_dict(
            {"op": "create_sprite", "sprite_name": "cat", "color_list": "x", "scale": "2"}
        )
        assert command.scale == 2.0

    def test_defaults_fill_missing_optional_arguments(self) -> None:
        assert command_from_dict({"op": "set_light", "x": 0, "y": 1, "z": 0}) == SetLight(0, 1, 0)

    def test_client_commands(self) -> None:
        assert command_from_dict({"op": "set_room_name", "room_name": 42}) == SetRoomName("42")
        assert command_from_dict({"op": "send_data"}) == SendData("")

    @pytest.mark.parametrize(
        "entry",
        [
            {"op": "explode"},
            {"x": 1},
            {"op": "create_box", "x": 1, "y": 2},
            {"op": "create_box", "x": 1, "y": 2, "z": 3, "colour": "red"},
            {"op": "create_box", "x": "left", "y": 2, "z": 3},
            {"op": "write_sentence", "sentence": "a", "x": 0, "y": 0, "z": 0, "is_fixed_width": "maybe"},
            ["create_box", 1, 2, 3],
        ],
    )
    def test_malformed_entries(self, entry: object) -> None:
        with pytest.raises(CommandDecodeError):
            command_from_dict(entry)  # type: ignore[arg-type]

    @pytest.mark.parametrize(
        "entry",
        [
            {"op": "create_box", "x": "inf", "y": 0, "z": 0},
            {"op": "create_box", "x": 0, "y": float("nan"), "z": 0},
            {"op": "set_frame_repeats", "repeats": "inf"},
            {"op": "move_sprite", "sprite_name": "cat", "x": 0, "y": 0, "scale": "-inf"},
        ],
    )
    def test_non_finite_numbers_are_rejected(self, entry: dict) -> None:
        with pytest.raises(CommandDecodeError):
            command_from_dict(entry)
