"""
Command surface.

Each host operation is a small frozen dataclass tagged with an ``op`` name.
``apply_command`` is the single dispatcher onto a :class:`SceneBuilder`;
``command_from_dict`` decodes the ``{"op": ..., **args}`` entries of a script.
Room selection and sending are client-level commands handled by
:class:`voxelamming.client.VoxelammingClient`.
"""

from __future__ import annotations

import math
from collections.abc import Callable
from dataclasses import MISSING, dataclass, fields
from typing import Any, ClassVar, Union, get_args

from .errors import CommandDecodeError
from .scene import SceneBuilder


# Transforms
@dataclass(frozen=True)
class SetNode:
    op: ClassVar[str] = "set_node"
    x: float
    y: float
    z: float
    pitch: float = 0
    yaw: float = 0
    roll: float = 0


@dataclass(frozen=True)
class AnimateNode:
    op: ClassVar[str] = "animate_node"
    x: float
    y: float
    z: float
    pitch: float = 0
    yaw: float = 0
    roll: float = 0
    scale: float = 1
    interval: float = 10


@dataclass(frozen=True)
class AnimateGlobal:
    op: ClassVar[str] = "animate_global"
    x: float
    y: float
    z: float
    pitch: float = 0
    yaw: float = 0
    roll: float = 0
    scale: float = 1
    interval: float = 10


@dataclass(frozen=True)
class PushMatrix:
    op: ClassVar[str] = "push_matrix"


@dataclass(frozen=True)
class PopMatrix:
    op: ClassVar[str] = "pop_matrix"


# Boxes
@dataclass(frozen=True)
class CreateBox:
    op: ClassVar[str] = "create_box"
    x: float
    y: float
    z: float
    r: float = 1
    g: float = 1
    b: float = 1
    alpha: float = 1


@dataclass(frozen=True)
class CreateTexturedBox:
    op: ClassVar[str] = "create_textured_box"
    x: float
    y: float
    z: float
    texture: str


@dataclass(frozen=True)
class RemoveBox:
    op: ClassVar[str] = "remove_box"
    x: float
    y: float
    z: float


@dataclass(frozen=True)
class DrawLine:
    op: ClassVar[str] = "draw_line"
    x1: float
    y1: float
    z1: float
    x2: float
    y2: float
    z2: float
    r: float = 1
    g: float = 1
    b: float = 1
    alpha: float = 1


@dataclass(frozen=True)
class ImportMesh:
    op: ClassVar[str] = "import_mesh"
    text: str


# Frames
@dataclass(frozen=True)
class FrameIn:
    op: ClassVar[str] = "frame_in"


@dataclass(frozen=True)
class FrameOut:
    op: ClassVar[str] = "frame_out"


@dataclass(frozen=True)
class SetFrameFps:
    op: ClassVar[str] = "set_frame_fps"
    fps: float = 2


@dataclass(frozen=True)
class SetFrameRepeats:
    op: ClassVar[str] = "set_frame_repeats"
    repeats: int = 10


# Settings
@dataclass(frozen=True)
class SetBoxSize:
    op: ClassVar[str] = "set_box_size"
    size: float


@dataclass(frozen=True)
class SetBuildInterval:
    op: ClassVar[str] = "set_build_interval"
    interval: float


@dataclass(frozen=True)
class ChangeShape:
    op: ClassVar[str] = "change_shape"
    shape: str


@dataclass(frozen=True)
class ChangeMaterial:
    op: ClassVar[str] = "change_material"
    is_metallic: bool = False
    roughness: float = 0.5


@dataclass(frozen=True)
class SetCommand:
    op: ClassVar[str] = "set_command"
    command: str


# Text, lights, models
@dataclass(frozen=True)
class WriteSentence:
    op: ClassVar[str] = "write_sentence"
    sentence: str
    x: float
    y: float
    z: float
    r: float = 1
    g: float = 1
    b: float = 1
    alpha: float = 1
    font_size: int = 16
    is_fixed_width: bool = False


@dataclass(frozen=True)
class SetLight:
    op: ClassVar[str] = "set_light"
    x: float
    y: float
    z: float
    r: float = 1
    g: float = 1
    b: float = 1
    alpha: float = 1
    intensity: float = 1000
    interval: float = 1
    light_type: str = "point"


@dataclass(frozen=True)
class CreateModel:
    op: ClassVar[str] = "create_model"
    model_name: str
    x: float = 0
    y: float = 0
    z: float = 0
    pitch: float = 0
    yaw: float = 0
    roll: float = 0
    scale: float = 1
    entity_name: str = ""


@dataclass(frozen=True)
class MoveModel:
    op: ClassVar[str] = "move_model"
    entity_name: str
    x: float = 0
    y: float = 0
    z: float = 0
    pitch: float = 0
    yaw: float = 0
    roll: float = 0
    scale: float = 1


# Sprites
@dataclass(frozen=True)
class CreateSprite:
    op: ClassVar[str] = "create_sprite"
    sprite_name: str
    color_list: str
    x: float = 0
    y: float = 0
    direction: float = 90
    scale: float | None = None
    visible: bool = True


@dataclass(frozen=True)
class MoveSprite:
    op: ClassVar[str] = "move_sprite"
    sprite_name: str
    x: float
    y: float
    direction: float = 90
    scale: float | None = None
    visible: bool = True


@dataclass(frozen=True)
class MoveSpriteClone:
    op: ClassVar[str] = "move_sprite_clone"
    sprite_name: str
    clone_index: int
    x: float
    y: float
    direction: float = 90
    scale: float | None = None


@dataclass(frozen=True)
class RemoveSpriteClone:
    op: ClassVar[str] = "remove_sprite_clone"
    sprite_name: str
    clone_index: int


@dataclass(frozen=True)
class SetRotationStyle:
    op: ClassVar[str] = "set_rotation_style"
    sprite_name: str
    rotation_style: str = "all around"


@dataclass(frozen=True)
class SetSpriteScale:
    op: ClassVar[str] = "set_sprite_scale"
    sprite_name: str
    scale: float


# Game
@dataclass(frozen=True)
class SetGameScore:
    op: ClassVar[str] = "set_game_score"
    score: float


@dataclass(frozen=True)
class SetGameScreen:
    op: ClassVar[str] = "set_game_screen"
    width: float
    height: float
    angle: float = 90
    r: float = 1
    g: float = 1
    b: float = 0
    alpha: float = 0.5


@dataclass(frozen=True)
class SendGameOver:
    op: ClassVar[str] = "send_game_over"


@dataclass(frozen=True)
class SendGameClear:
    op: ClassVar[str] = "send_game_clear"


@dataclass(frozen=True)
class Clear:
    op: ClassVar[str] = "clear"


# Client-level
@dataclass(frozen=True)
class SetRoomName:
    op: ClassVar[str] = "set_room_name"
    room_name: str


@dataclass(frozen=True)
class SendData:
    op: ClassVar[str] = "send_data"
    name: str = ""


SceneCommand = Union[
    SetNode,
    AnimateNode,
    AnimateGlobal,
    PushMatrix,
    PopMatrix,
    CreateBox,
    CreateTexturedBox,
    RemoveBox,
    DrawLine,
    ImportMesh,
    FrameIn,
    FrameOut,
    SetFrameFps,
    SetFrameRepeats,
    SetBoxSize,
    SetBuildInterval,
    ChangeShape,
    ChangeMaterial,
    SetCommand,
    WriteSentence,
    SetLight,
    CreateModel,
    MoveModel,
    CreateSprite,
    MoveSprite,
    MoveSpriteClone,
    RemoveSpriteClone,
    SetRotationStyle,
    SetSpriteScale,
    SetGameScore,
    SetGameScreen,
    SendGameOver,
    SendGameClear,
    Clear,
]
ClientCommand = Union[SetRoomName, SendData]
Command = Union[SceneCommand, ClientCommand]

_Handler = Callable[[SceneBuilder, Any], None]

_HANDLERS: dict[type, _Handler] = {
    SetNode: lambda b, c: b.set_node(c.x, c.y, c.z, c.pitch, c.yaw, c.roll),
    AnimateNode: lambda b, c: b.animate_node(
        c.x, c.y, c.z, c.pitch, c.yaw, c.roll, c.scale, c.interval
    ),
    AnimateGlobal: lambda b, c: b.animate_global(
        c.x, c.y, c.z, c.pitch, c.yaw, c.roll, c.scale, c.interval
    ),
    PushMatrix: lambda b, c: b.push_matrix(),
    PopMatrix: lambda b, c: b.pop_matrix(),
    CreateBox: lambda b, c: b.create_box(c.x, c.y, c.z, c.r, c.g, c.b, c.alpha),
    CreateTexturedBox: lambda b, c: b.create_textured_box(c.x, c.y, c.z, c.texture),
    RemoveBox: lambda b, c: b.remove_box(c.x, c.y, c.z),
    DrawLine: lambda b, c: b.draw_line(
        c.x1, c.y1, c.z1, c.x2, c.y2, c.z2, c.r, c.g, c.b, c.alpha
    ),
    ImportMesh: lambda b, c: b.import_mesh(c.text),
    FrameIn: lambda b, c: b.frame_in(),
    FrameOut: lambda b, c: b.frame_out(),
    SetFrameFps: lambda b, c: b.set_frame_fps(c.fps),
    SetFrameRepeats: lambda b, c: b.set_frame_repeats(c.repeats),
    SetBoxSize: lambda b, c: b.set_box_size(c.size),
    SetBuildInterval: lambda b, c: b.set_build_interval(c.interval),
    ChangeShape: lambda b, c: b.change_shape(c.shape),
    ChangeMaterial: lambda b, c: b.change_material(c.is_metallic, c.roughness),
    SetCommand: lambda b, c: b.set_command(c.command),
    WriteSentence: lambda b, c: b.write_sentence(
        c.sentence, c.x, c.y, c.z, c.r, c.g, c.b, c.alpha, c.font_size, c.is_fixed_width
    ),
    SetLight: lambda b, c: b.set_light(
        c.x, c.y, c.z, c.r, c.g, c.b, c.alpha, c.intensity, c.interval, c.light_type
    ),
    CreateModel: lambda b, c: b.create_model(
        c.model_name, c.x, c.y, c.z, c.pitch, c.yaw, c.roll, c.scale, c.entity_name
    ),
    MoveModel: lambda b, c: b.move_model(
        c.entity_name, c.x, c.y, c.z, c.pitch, c.yaw, c.roll, c.scale
    ),
    CreateSprite: lambda b, c: b.create_sprite(
        c.sprite_name, c.color_list, c.x, c.y, c.direction, c.scale, c.visible
    ),
    MoveSprite: lambda b, c: b.move_sprite(
        c.sprite_name, c.x, c.y, c.direction, c.scale, c.visible
    ),
    MoveSpriteClone: lambda b, c: b.move_sprite_clone(
        c.sprite_name, c.clone_index, c.x, c.y, c.direction, c.scale
    ),
    RemoveSpriteClone: lambda b, c: b.remove_sprite_clone(c.sprite_name, c.clone_index),
    SetRotationStyle: lambda b, c: b.set_rotation_style(c.sprite_name, c.rotation_style),
    SetSpriteScale: lambda b, c: b.set_sprite_scale(c.sprite_name, c.scale),
    SetGameScore: lambda b, c: b.set_game_score(c.score),
    SetGameScreen: lambda b, c: b.set_game_screen(
        c.width, c.height, c.angle, c.r, c.g, c.b, c.alpha
    ),
    SendGameOver: lambda b, c: b.send_game_over(),
    SendGameClear: lambda b, c: b.send_game_clear(),
    Clear: lambda b, c: b.clear(),
}

_unhandled = set(get_args(SceneCommand)) - set(_HANDLERS)
if _unhandled:
    raise RuntimeError(
        f"Scene commands without a handler: {sorted(t.__name__ for t in _unhandled)}"
    )

COMMAND_TYPES: dict[str, type] = {
    cls.op: cls for cls in (*get_args(SceneCommand), *get_args(ClientCommand))
}


def apply_command(builder: SceneBuilder, command: SceneCommand) -> None:
    """Apply one scene command to ``builder``.

    Raises:
        TypeError: If ``command`` is not a scene command.
        SceneError: Whatever the builder raises for invalid input.
    """
    handler = _HANDLERS.get(type(command))
    if handler is None:
        raise TypeError(f"Not a scene command: {command!r}")
    handler(builder, command)


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1", "yes", "on"):
            return True
        if lowered in ("false", "0", "no", "off", ""):
            return False
        raise ValueError(f"not a boolean: {value!r}")
    return bool(value)


def _to_finite_float(value: Any) -> float:
    number = float(value)
    if not math.isfinite(number):
        raise ValueError(f"not a finite number: {value!r}")
    return number


# Host arguments often arrive as strings; coerce by the declared field type
_COERCERS: dict[str, Callable[[Any], Any]] = {
    "float": _to_finite_float,
    "int": lambda v: int(_to_finite_float(v)),
    "str": str,
    "bool": _to_bool,
    "float | None": lambda v: None if v is None else _to_finite_float(v),
}


def command_from_dict(data: dict[str, Any]) -> Command:
    """Decode a ``{"op": name, **arguments}`` mapping into a command.

    Raises:
        CommandDecodeError: On an unknown op, unknown or missing arguments, or
            an argument that cannot be converted to its declared type (numbers
            must be finite).
    """
    if not isinstance(data, dict):
        raise CommandDecodeError(f"Command entry must be an object, got {type(data).__name__}")
    args = dict(data)
    op = args.pop("op", None)
    cls = COMMAND_TYPES.get(op) if isinstance(op, str) else None
    if cls is None:
        raise CommandDecodeError(f"Unknown command op: {op!r}")

    declared = {f.name: f for f in fields(cls)}
    unknown = sorted(set(args) - set(declared))
    if unknown:
        raise CommandDecodeError(f"{op}: unknown arguments {', '.join(unknown)}")
    missing = sorted(
        name
        for name, f in declared.items()
        if f.default is MISSING and name not in args
    )
    if missing:
        raise CommandDecodeError(f"{op}: missing arguments {', '.join(missing)}")

    kwargs: dict[str, Any] = {}
    for name, value in args.items():
        coerce = _COERCERS.get(str(declared[name].type))
        try:
            kwargs[name] = coerce(value) if coerce is not None else value
        except (TypeError, ValueError, OverflowError) as e:
            raise CommandDecodeError(f"{op}: bad value for {name}: {value!r}") from e
    return cls(**kwargs)
