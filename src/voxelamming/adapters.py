"""
Adapters for converting the snake_case scene state into the renderer's wire format.

The renderer expects one JSON object per send with camelCase keys. Every key is
always present; collections with no activity are empty arrays. Sentences,
models, model moves and sprite moves travel as arrays of strings.
"""

from __future__ import annotations

import json
from typing import Any

from .scene import SceneState
from .sprites import merge_sprite_moves
from .types import (
    Animation,
    Box,
    FramedBox,
    FrameTransform,
    Light,
    Model,
    ModelMove,
    Sentence,
    SpritePlacement,
)


def _number_text(value: float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def animation_to_wire(a: Animation) -> list[float]:
    return [a.x, a.y, a.z, a.pitch, a.yaw, a.roll, a.scale, a.interval]


def frame_transform_to_wire(t: FrameTransform) -> list[float]:
    return [t.x, t.y, t.z, t.pitch, t.yaw, t.roll, t.frame_id]


def box_to_wire(box: Box) -> list[float]:
    """Convert a box to ``[x, y, z, r, g, b, alpha, textureId(, frameId)]``."""
    values = [box.x, box.y, box.z, box.r, box.g, box.b, box.alpha, box.texture_id]
    if isinstance(box, FramedBox):
        values.append(box.frame_id)
    return values


def sentence_to_wire(s: Sentence) -> list[str]:
    return [
        s.text,
        *(_number_text(v) for v in (s.x, s.y, s.z, s.r, s.g, s.b, s.alpha)),
        str(s.font_size),
        "1" if s.is_fixed_width else "0",
    ]


def light_to_wire(light: Light) -> list[float]:
    return [
        light.x,
        light.y,
        light.z,
        light.r,
        light.g,
        light.b,
        light.alpha,
        light.intensity,
        light.interval,
        int(light.light_type),
    ]


def model_to_wire(m: Model) -> list[str]:
    numbers = (m.x, m.y, m.z, m.pitch, m.yaw, m.roll, m.scale)
    return [m.model_name, *(_number_text(v) for v in numbers), m.entity_name]


def model_move_to_wire(m: ModelMove) -> list[str]:
    numbers = (m.x, m.y, m.z, m.pitch, m.yaw, m.roll, m.scale)
    return [m.entity_name, *(_number_text(v) for v in numbers)]


def placement_to_wire(p: SpritePlacement) -> list[str]:
    return [_number_text(v) for v in (p.x, p.y, p.direction, p.scale)]


def snapshot_to_wire(state: SceneState, name: str, date: str) -> dict[str, Any]:
    """Build the wire object for one send.

    Clone placements are merged into the sprite moves here; the state itself is
    not modified, so the snapshot can be sent again unchanged.

    Args:
        state: Scene state to serialize.
        name: Free-text record name.
        date: ISO-8601 timestamp of this send.
    """
    s = state.resettable
    t = s.transforms
    sprite_moves = [
        [sprite_name, *(v for p in placements for v in placement_to_wire(p))]
        for sprite_name, placements in merge_sprite_moves(
            s.sprite_moves, s.sprite_clone_moves
        )
    ]
    return {
        "nodeTransform": t.node_transform.to_list(),
        "matrixTransform": t.matrix_transform.to_list(),
        "frameTransforms": [frame_transform_to_wire(f) for f in t.frame_transforms],
        "globalAnimation": animation_to_wire(s.global_animation),
        "animation": animation_to_wire(s.animation),
        "boxes": [box_to_wire(b) for b in s.boxes],
        "frames": [box_to_wire(b) for b in s.frames],
        "sentences": [sentence_to_wire(x) for x in s.sentences],
        "lights": [light_to_wire(x) for x in s.lights],
        "commands": list(s.commands),
        "models": [model_to_wire(m) for m in s.models],
        "modelMoves": [model_move_to_wire(m) for m in s.model_moves],
        "sprites": [[sprite.name, sprite.color_list] for sprite in s.sprites],
        "spriteMoves": sprite_moves,
        "gameScore": s.game_score,
        "gameScreen": list(s.game_screen),
        "size": s.size,
        "shape": s.shape,
        "interval": s.build_interval,
        "isMetallic": 1 if s.is_metallic else 0,
        "roughness": s.roughness,
        "isAllowedFloat": 1 if s.is_allowed_float else 0,
        "name": name,
        "date": date,
    }


def snapshot_to_json(state: SceneState, name: str, date: str) -> str:
    """Serialize the wire object for one send."""
    return json.dumps(snapshot_to_wire(state, name, date), ensure_ascii=False)
