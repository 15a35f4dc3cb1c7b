"""Tests for the scene accumulator."""

from __future__ import annotations

import pytest

from voxelamming.errors import (
    InvalidArgumentError,
    StackUnderflow,
    UnknownNameError,
)
from voxelamming.scene import SceneBuilder
from voxelamming.types import Box, FramedBox, LightType, RotationStyle


@pytest.fixture
def builder() -> SceneBuilder:
    return SceneBuilder()


class TestBoxes:
    """Tests for box placement, dedup and removal."""

    def test_same_cell_keeps_last_box(self, builder: SceneBuilder) -> None:
        """At most one box per quantized position; the newest wins."""
        builder.create_box(0, 0, 0, 1, 0, 0)
        builder.create_box(0.4, 0.9, 0.2, 0, 1, 0)
        assert builder.current.boxes == [Box(0, 0, 0, 0.0, 1.0, 0.0, 1.0)]

    def test_grid_mode_floors_positions(self, builder: SceneBuilder) -> None:
        builder.create_box(1.96, 0, 0)
        assert builder.current.boxes[0].position == (1, 0, 0)

    def test_float_command_enables_float_mode(self, builder: SceneBuilder) -> None:
        builder.set_command("float")
        builder.create_box(1.96, 0, 0)
        assert builder.current.boxes[0].position == (1.96, 0.0, 0.0)
        assert builder.current.commands == ["float"]

    def test_colors_round_to_two_decimals(self, builder: SceneBuilder) -> None:
        builder.create_box(0, 0, 0, 0.123, 0.456, 0.789, 0.5)
        box = builder.current.boxes[0]
        assert (box.r, box.g, box.b, box.alpha) == (0.12, 0.46, 0.79, 0.5)

    def test_remove_box(self, builder: SceneBuilder) -> None:
        builder.create_box(0, 0, 0)
        builder.create_box(1, 0, 0)
        builder.remove_box(0.5, 0.5, 0.5)
        assert [b.position for b in builder.current.boxes] == [(1, 0, 0)]

    def test_textured_box(self, builder: SceneBuilder) -> None:
        builder.create_textured_box(0, 0, 0, "stone")
        assert builder.current.boxes[0].texture_id == 1

    def test_unknown_texture_raises_and_leaves_state(self, builder: SceneBuilder) -> None:
        with pytest.raises(UnknownNameError) as exc_info:
            builder.create_textured_box(0, 0, 0, "lava")
        assert exc_info.value.kind == "texture"
        assert builder.current.boxes == []

    def test_boxes_follow_pushed_transform(self, builder: SceneBuilder) -> None:
        builder.push_matrix()
        builder.set_node(10, 0, 0)
        builder.create_box(1, 2, 3)
        builder.pop_matrix()
        builder.create_box(1, 2, 3)
        assert [b.position for b in builder.current.boxes] == [(11, 2, 3), (1, 2, 3)]

    def test_pop_underflow(self, builder: SceneBuilder) -> None:
        with pytest.raises(StackUnderflow):
            builder.pop_matrix()

    def test_non_finite_position_raises_and_leaves_state(self, builder: SceneBuilder) -> None:
        builder.create_box(0, 0, 0)
        with pytest.raises(InvalidArgumentError):
            builder.create_box(float("inf"), 0, 0)
        with pytest.raises(InvalidArgumentError):
            builder.create_box(1, 0, 0, r=float("nan"))
        assert [b.position for b in builder.current.boxes] == [(0, 0, 0)]


class TestNodeTransforms:
    """Tests for set_node and the matrix stack seen through the builder."""

    def test_popped_set_node_leaves_no_trace(self) -> None:
        nested = SceneBuilder()
        nested.push_matrix()
        nested.set_node(1, 0, 0)
        nested.pop_matrix()
        nested.set_node(5, 0, 0)

        direct = SceneBuilder()
        direct.set_node(5, 0, 0)

        assert nested.transforms.depth == 0
        assert nested.transforms.node_transform == direct.transforms.node_transform
        assert nested.transforms.matrix_transform == direct.transforms.matrix_transform

    def test_node_position_floors_in_grid_mode(self, builder: SceneBuilder) -> None:
        builder.set_node(1.96, 0, 0)
        assert builder.transforms.node_transform.position == (1, 0, 0)

    def test_node_position_keeps_two_decimals_in_float_mode(self, builder: SceneBuilder) -> None:
        builder.set_command("float")
        builder.set_node(1.96, 0, 0)
        assert builder.transforms.node_transform.position == (1.96, 0.0, 0.0)


class TestFrames:
    """Tests for framing."""

    def test_frames_are_isolated(self, builder: SceneBuilder) -> None:
        """The same cell in two frames yields two framed boxes and no plain box."""
        builder.frame_in()
        builder.create_box(0, 0, 0)
        builder.frame_out()
        builder.frame_in()
        builder.create_box(0, 0, 0)
        builder.frame_out()
        assert builder.current.boxes == []
        assert [b.frame_id for b in builder.current.frames] == [0, 1]
        assert all(isinstance(b, FramedBox) for b in builder.current.frames)

    def test_remove_is_scoped_to_frame(self, builder: SceneBuilder) -> None:
        builder.frame_in()
        builder.create_box(0, 0, 0)
        builder.frame_out()
        builder.frame_in()
        builder.remove_box(0, 0, 0)
        assert len(builder.current.frames) == 1

    def test_fps_and_repeats_tokens(self, builder: SceneBuilder) -> None:
        builder.set_frame_fps(4)
        builder.set_frame_repeats(3)
        assert builder.current.commands == ["fps 4", "repeats 3"]

    def test_set_node_while_framing_records_delta(self, builder: SceneBuilder) -> None:
        builder.frame_in()
        builder.set_node(1, 2, 3)
        transforms = builder.transforms.frame_transforms
        assert len(transforms) == 1
        assert transforms[0].frame_id == 0


class TestDrawLine:
    """Tests for line rasterization."""

    def test_dominant_axis_drives(self, builder: SceneBuilder) -> None:
        builder.draw_line(0, 0, 0, 3, 1, 0)
        assert [b.position for b in builder.current.boxes] == [
            (0, 0, 0),
            (1, 0, 0),
            (2, 0, 0),
            (3, 1, 0),
        ]

    def test_negative_direction_includes_both_endpoints(self, builder: SceneBuilder) -> None:
        builder.draw_line(0, 3, 0, 0, 0, 0)
        assert [b.position for b in builder.current.boxes] == [
            (0, 3, 0),
            (0, 2, 0),
            (0, 1, 0),
            (0, 0, 0),
        ]

    def test_zero_length_is_noop(self, builder: SceneBuilder) -> None:
        builder.draw_line(2, 2, 2, 2.5, 2.5, 2.5)
        assert builder.current.boxes == []


class TestSettingsAndEntities:
    """Tests for scalar settings, text, lights, models and game state."""

    def test_change_shape_validates(self, builder: SceneBuilder) -> None:
        builder.change_shape("sphere")
        with pytest.raises(InvalidArgumentError):
            builder.change_shape("cube")
        assert builder.current.shape == "sphere"

    def test_material_and_size(self, builder: SceneBuilder) -> None:
        builder.change_material(True, 0.2)
        builder.set_box_size(0.5)
        builder.set_build_interval(0.1)
        s = builder.current
        assert (s.is_metallic, s.roughness, s.size, s.build_interval) == (True, 0.2, 0.5, 0.1)

    def test_light_types(self, builder: SceneBuilder) -> None:
        builder.set_light(0, 5, 0, light_type="spot")
        builder.set_light(0, 5, 0, light_type=3)
        assert [light.light_type for light in builder.current.lights] == [
            LightType.SPOT,
            LightType.DIRECTIONAL,
        ]
        with pytest.raises(InvalidArgumentError):
            builder.set_light(0, 0, 0, light_type="laser")
        assert len(builder.current.lights) == 2

    def test_sentence(self, builder: SceneBuilder) -> None:
        builder.write_sentence("Hello", 1.5, 2, 3, font_size=24, is_fixed_width=True)
        sentence = builder.current.sentences[0]
        assert (sentence.text, sentence.x, sentence.font_size) == ("Hello", 1, 24)
        assert sentence.is_fixed_width is True

    def test_models(self, builder: SceneBuilder) -> None:
        builder.create_model("Earth", 1, 2, 3, entity_name="planet")
        builder.move_model("planet", 4, 5, 6, yaw=45)
        assert builder.current.models[0].entity_name == "planet"
        assert builder.current.model_moves[0].yaw == 45
        with pytest.raises(UnknownNameError):
            builder.create_model("Teapot")

    def test_game_state(self, builder: SceneBuilder) -> None:
        assert builder.current.game_score == -1
        builder.set_game_score(10)
        builder.set_game_screen(640, 480)
        builder.send_game_over()
        builder.send_game_clear()
        s = builder.current
        assert s.game_score == 10
        assert s.game_screen == [640.0, 480.0, 90.0, 1.0, 1.0, 0.0, 0.5]
        assert s.commands == ["gameOver", "gameClear"]

    def test_animations(self, builder: SceneBuilder) -> None:
        builder.animate_node(1.7, 0, 0, yaw=90, interval=5)
        builder.animate_global(0, 0, 0, scale=2)
        assert builder.current.animation.x == 1
        assert builder.current.animation.interval == 5
        assert builder.current.global_animation.scale == 2


class TestSprites:
    """Tests for sprite templates, placements and clones."""

    def test_create_sprite_places_it(self, builder: SceneBuilder) -> None:
        builder.create_sprite("cat", "colors", 10, 20, 90)
        placement = builder.current.sprite_moves["cat"]
        assert (placement.x, placement.y, placement.direction, placement.scale) == (10, 20, 0, 1)

    def test_invisible_sprite_has_no_placement(self, builder: SceneBuilder) -> None:
        builder.create_sprite("cat", "colors", visible=False)
        assert len(builder.current.sprites) == 1
        assert "cat" not in builder.current.sprite_moves

    def test_move_unknown_sprite_raises(self, builder: SceneBuilder) -> None:
        with pytest.raises(UnknownNameError):
            builder.move_sprite("dog", 0, 0)

    def test_move_sprite_replaces_and_hides(self, builder: SceneBuilder) -> None:
        builder.create_sprite("cat", "colors")
        builder.move_sprite("cat", 5, 6, 0)
        assert builder.current.sprite_moves["cat"].direction == 90
        builder.move_sprite("cat", 5, 6, visible=False)
        assert "cat" not in builder.current.sprite_moves

    def test_rotation_style_left_right(self, builder: SceneBuilder) -> None:
        builder.set_rotation_style("cat", "left-right")
        builder.create_sprite("cat", "colors")
        builder.move_sprite("cat", 0, 0, -90)
        assert builder.current.sprite_moves["cat"].direction == -180
        builder.move_sprite("cat", 0, 0, 45)
        assert builder.current.sprite_moves["cat"].direction == 0

    def test_rotation_style_validates(self, builder: SceneBuilder) -> None:
        with pytest.raises(InvalidArgumentError):
            builder.set_rotation_style("cat", "spin")

    def test_sprite_scale_is_default_for_moves(self, builder: SceneBuilder) -> None:
        builder.create_sprite("cat", "colors")
        builder.set_sprite_scale("cat", 2)
        builder.move_sprite("cat", 0, 0)
        assert builder.current.sprite_moves["cat"].scale == 2.0

    def test_clones(self, builder: SceneBuilder) -> None:
        builder.create_sprite("cat", "colors")
        builder.move_sprite_clone("cat", 2, 1, 1)
        builder.move_sprite_clone("cat", 0, 2, 2)
        builder.remove_sprite_clone("cat", 2)
        assert list(builder.current.sprite_clone_moves["cat"]) == [0]
        with pytest.raises(InvalidArgumentError):
            builder.move_sprite_clone("cat", -1, 0, 0)


class TestClear:
    """Tests for clear."""

    def test_clear_resets_scene_but_keeps_sprite_config(self, builder: SceneBuilder) -> None:
        builder.set_rotation_style("cat", RotationStyle.DONT_ROTATE)
        builder.set_sprite_scale("cat", 3)
        builder.set_command("float")
        builder.create_box(0, 0, 0)
        builder.push_matrix()
        builder.clear()
        assert builder.current.boxes == []
        assert builder.current.commands == []
        assert builder.allow_float is False
        assert builder.transforms.depth == 0
        assert builder.state.persistent.rotation_styles == {"cat": RotationStyle.DONT_ROTATE}
        assert builder.state.persistent.sprite_scales == {"cat": 3.0}
