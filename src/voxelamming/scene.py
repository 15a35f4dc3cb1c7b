"""
Scene accumulator.

``SceneBuilder`` turns imperative commands into an in-memory ``SceneState``.
The state is split into a ``resettable`` group, which ``clear`` resets, and a
``persistent`` group of long-lived per-sprite configuration, which survives
``clear`` and every send.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from . import mesh_import
from .errors import InvalidArgumentError, UnknownNameError
from .quantize import round_numbers, round_two_decimals
from .sprites import remap_direction
from .transform_stack import TransformStack
from .types import (
    SHAPES,
    Animation,
    Box,
    FramedBox,
    Light,
    LightType,
    Model,
    ModelMove,
    RotationStyle,
    Sentence,
    SpritePlacement,
    SpriteTemplate,
)

logger = logging.getLogger(__name__)

DEFAULT_TEXTURE_NAMES: tuple[str, ...] = (
    "grass",
    "stone",
    "dirt",
    "planks",
    "bricks",
)
DEFAULT_MODEL_NAMES: tuple[str, ...] = (
    "Earth",
    "Mercury",
    "Venus",
    "Mars",
    "Jupiter",
    "Saturn",
    "Uranus",
    "Neptune",
    "Pluto",
    "Sun",
    "Moon",
    "ToyBiplane",
    "ToyCar",
    "Drummer",
    "Robot",
    "ToyRocket",
    "RocketToy1",
    "RocketToy2",
    "Skull",
)

FLOAT_COMMAND = "float"
GAME_OVER_COMMAND = "gameOver"
GAME_CLEAR_COMMAND = "gameClear"


@dataclass
class ResettableState:
    """Everything ``clear`` puts back to its initial value."""

    transforms: TransformStack = field(default_factory=TransformStack)
    global_animation: Animation = field(default_factory=Animation)
    animation: Animation = field(default_factory=Animation)
    boxes: list[Box] = field(default_factory=list)
    frames: list[FramedBox] = field(default_factory=list)
    sentences: list[Sentence] = field(default_factory=list)
    lights: list[Light] = field(default_factory=list)
    commands: list[str] = field(default_factory=list)
    models: list[Model] = field(default_factory=list)
    model_moves: list[ModelMove] = field(default_factory=list)
    sprites: list[SpriteTemplate] = field(default_factory=list)
    sprite_moves: dict[str, SpritePlacement] = field(default_factory=dict)
    sprite_clone_moves: dict[str, dict[int, SpritePlacement]] = field(
        default_factory=dict
    )
    game_score: float = -1
    game_screen: list[float] = field(default_factory=list)
    size: float = 1.0
    shape: str = "box"
    build_interval: float = 0.01
    is_metallic: bool = False
    roughness: float = 0.5
    is_allowed_float: bool = False
    is_framing: bool = False
    frame_id: int = 0


@dataclass
class PersistentState:
    """Per-sprite configuration that outlives ``clear``."""

    rotation_styles: dict[str, RotationStyle] = field(default_factory=dict)
    sprite_scales: dict[str, float] = field(default_factory=dict)


@dataclass
class SceneState:
    resettable: ResettableState = field(default_factory=ResettableState)
    persistent: PersistentState = field(default_factory=PersistentState)

    def clear(self) -> None:
        self.resettable = ResettableState()


class SceneBuilder:
    """
    Accumulates scene commands into a :class:`SceneState`.

    Every operation either applies completely or raises a
    :class:`~voxelamming.errors.SceneError` leaving the state untouched.
    """

    def __init__(
        self,
        texture_names: Iterable[str] = DEFAULT_TEXTURE_NAMES,
        model_names: Iterable[str] = DEFAULT_MODEL_NAMES,
    ) -> None:
        self.texture_names: list[str] = list(texture_names)
        self.model_names: list[str] = list(model_names)
        self.state = SceneState()

    # Properties
    @property
    def current(self) -> ResettableState:
        """The resettable part of the state (all scene collections)."""
        return self.state.resettable

    @property
    def transforms(self) -> TransformStack:
        return self.state.resettable.transforms

    @property
    def allow_float(self) -> bool:
        return self.state.resettable.is_allowed_float

    def _round(self, values: Sequence[float]) -> list[float]:
        return round_numbers(values, self.allow_float)

    # Transforms
    def push_matrix(self) -> None:
        self.transforms.push_matrix()

    def pop_matrix(self) -> None:
        self.transforms.pop_matrix()

    def set_node(
        self,
        x: float,
        y: float,
        z: float,
        pitch: float = 0,
        yaw: float = 0,
        roll: float = 0,
    ) -> None:
        s = self.current
        self.transforms.set_node(
            x,
            y,
            z,
            pitch,
            yaw,
            roll,
            allow_float=s.is_allowed_float,
            framing=s.is_framing,
            frame_id=s.frame_id,
        )

    def animate_node(
        self,
        x: float,
        y: float,
        z: float,
        pitch: float = 0,
        yaw: float = 0,
        roll: float = 0,
        scale: float = 1,
        interval: float = 10,
    ) -> None:
        x, y, z = self._round((x, y, z))
        self.current.animation = Animation(x, y, z, pitch, yaw, roll, scale, interval)

    def animate_global(
        self,
        x: float,
        y: float,
        z: float,
        pitch: float = 0,
        yaw: float = 0,
        roll: float = 0,
        scale: float = 1,
        interval: float = 10,
    ) -> None:
        x, y, z = self._round((x, y, z))
        self.current.global_animation = Animation(
            x, y, z, pitch, yaw, roll, scale, interval
        )

    # Boxes
    def _place_box(
        self,
        x: float,
        y: float,
        z: float,
        color: Sequence[float],
        texture_id: int,
    ) -> None:
        x, y, z = self._round(self.transforms.resolve(x, y, z))
        r, g, b, alpha = round_two_decimals(color)
        self._remove_at(x, y, z)
        s = self.current
        if s.is_framing:
            s.frames.append(FramedBox(x, y, z, r, g, b, alpha, texture_id, s.frame_id))
        else:
            s.boxes.append(Box(x, y, z, r, g, b, alpha, texture_id))

    def create_box(
        self,
        x: float,
        y: float,
        z: float,
        r: float = 1,
        g: float = 1,
        b: float = 1,
        alpha: float = 1,
    ) -> None:
        """Place a box, replacing any box already in that cell."""
        self._place_box(x, y, z, (r, g, b, alpha), -1)

    def create_textured_box(self, x: float, y: float, z: float, texture: str) -> None:
        """Place a box using one of the configured textures.

        Raises:
            UnknownNameError: If ``texture`` is not a configured texture name.
        """
        try:
            texture_id = self.texture_names.index(texture)
        except ValueError:
            raise UnknownNameError("texture", texture) from None
        self._place_box(x, y, z, (1, 1, 1, 1), texture_id)

    def _remove_at(self, x: float, y: float, z: float) -> None:
        s = self.current
        if s.is_framing:
            s.frames = [
                box
                for box in s.frames
                if not (box.position == (x, y, z) and box.frame_id == s.frame_id)
            ]
        else:
            s.boxes = [box for box in s.boxes if box.position != (x, y, z)]

    def remove_box(self, x: float, y: float, z: float) -> None:
        """Remove the box in the given cell (scoped to the current frame when framing)."""
        x, y, z = self._round(self.transforms.resolve(x, y, z))
        self._remove_at(x, y, z)

    def draw_line(
        self,
        x1: float,
        y1: float,
        z1: float,
        x2: float,
        y2: float,
        z2: float,
        r: float = 1,
        g: float = 1,
        b: float = 1,
        alpha: float = 1,
    ) -> None:
        """Rasterize a line of boxes, stepping one unit along the dominant axis."""
        start = self._round((x1, y1, z1))
        end = self._round((x2, y2, z2))
        diff = [e - s for s, e in zip(start, end)]
        length = max(abs(d) for d in diff)
        if length == 0:
            return

        axis = next(i for i, d in enumerate(diff) if abs(d) == length)
        step = 1 if diff[axis] > 0 else -1
        for n in range(int(abs(diff[axis])) + 1):
            t = n * step / diff[axis]
            point = [start[i] + t * diff[i] for i in range(3)]
            point[axis] = start[axis] + n * step
            self.create_box(*point, r, g, b, alpha)

    def import_mesh(self, text: str) -> int:
        """Add the voxel boxes reconstructed from a mesh blob.

        Returns:
            The number of boxes created.

        Raises:
            MalformedMeshError: If the blob is malformed; nothing is added.
        """
        boxes = mesh_import.boxes_from_mesh(text)
        for box in boxes:
            self.create_box(box.x, box.y, box.z, box.r, box.g, box.b, box.alpha)
        logger.info(f"Imported mesh: {len(boxes)} boxes")
        return len(boxes)

    # Frames
    def frame_in(self) -> None:
        self.current.is_framing = True

    def frame_out(self) -> None:
        self.current.is_framing = False
        self.current.frame_id += 1

    def set_frame_fps(self, fps: float = 2) -> None:
        self.current.commands.append(f"fps {fps}")

    def set_frame_repeats(self, repeats: int = 10) -> None:
        self.current.commands.append(f"repeats {repeats}")

    # Scalar settings
    def set_box_size(self, size: float) -> None:
        self.current.size = float(size)

    def set_build_interval(self, interval: float) -> None:
        self.current.build_interval = float(interval)

    def change_shape(self, shape: str) -> None:
        if shape not in SHAPES:
            raise InvalidArgumentError(
                f"Unknown shape {shape!r}; expected one of {', '.join(SHAPES)}"
            )
        self.current.shape = shape

    def change_material(self, is_metallic: bool = False, roughness: float = 0.5) -> None:
        self.current.is_metallic = bool(is_metallic)
        self.current.roughness = float(roughness)

    def set_command(self, command: str) -> None:
        """Append an opaque command token; ``float`` also enables float mode."""
        self.current.commands.append(command)
        if command == FLOAT_COMMAND:
            self.current.is_allowed_float = True

    # Text and lights
    def write_sentence(
        self,
        sentence: str,
        x: float,
        y: float,
        z: float,
        r: float = 1,
        g: float = 1,
        b: float = 1,
        alpha: float = 1,
        font_size: int = 16,
        is_fixed_width: bool = False,
    ) -> None:
        x, y, z = self._round((x, y, z))
        r, g, b, alpha = round_two_decimals((r, g, b, alpha))
        self.current.sentences.append(
            Sentence(str(sentence), x, y, z, r, g, b, alpha, int(font_size), bool(is_fixed_width))
        )

    def set_light(
        self,
        x: float,
        y: float,
        z: float,
        r: float = 1,
        g: float = 1,
        b: float = 1,
        alpha: float = 1,
        intensity: float = 1000,
        interval: float = 1,
        light_type: LightType | str | int = LightType.POINT,
    ) -> None:
        kind = LightType.parse(light_type)
        x, y, z = self._round((x, y, z))
        r, g, b, alpha = round_two_decimals((r, g, b, alpha))
        self.current.lights.append(
            Light(x, y, z, r, g, b, alpha, float(intensity), float(interval), kind)
        )

    # Models
    def create_model(
        self,
        model_name: str,
        x: float = 0,
        y: float = 0,
        z: float = 0,
        pitch: float = 0,
        yaw: float = 0,
        roll: float = 0,
        scale: float = 1,
        entity_name: str = "",
    ) -> None:
        """Place one of the renderer's bundled models.

        Raises:
            UnknownNameError: If ``model_name`` is not a configured model.
        """
        if model_name not in self.model_names:
            raise UnknownNameError("model", model_name)
        values = round_two_decimals((x, y, z, pitch, yaw, roll, scale))
        self.current.models.append(Model(model_name, *values, entity_name=entity_name))

    def move_model(
        self,
        entity_name: str,
        x: float = 0,
        y: float = 0,
        z: float = 0,
        pitch: float = 0,
        yaw: float = 0,
        roll: float = 0,
        scale: float = 1,
    ) -> None:
        values = round_two_decimals((x, y, z, pitch, yaw, roll, scale))
        self.current.model_moves.append(ModelMove(entity_name, *values))

    # Game
    def set_game_score(self, score: float) -> None:
        self.current.game_score = float(score)

    def set_game_screen(
        self,
        width: float,
        height: float,
        angle: float = 90,
        r: float = 1,
        g: float = 1,
        b: float = 0,
        alpha: float = 0.5,
    ) -> None:
        self.current.game_screen = [
            float(width),
            float(height),
            float(angle),
            *round_two_decimals((r, g, b, alpha)),
        ]

    def send_game_over(self) -> None:
        self.current.commands.append(GAME_OVER_COMMAND)

    def send_game_clear(self) -> None:
        self.current.commands.append(GAME_CLEAR_COMMAND)

    # Sprites
    def _require_sprite(self, sprite_name: str) -> None:
        if not any(t.name == sprite_name for t in self.current.sprites):
            raise UnknownNameError("sprite", sprite_name)

    def _placement(
        self,
        sprite_name: str,
        x: float,
        y: float,
        direction: float,
        scale: float | None,
    ) -> SpritePlacement:
        persistent = self.state.persistent
        style = persistent.rotation_styles.get(sprite_name, RotationStyle.ALL_AROUND)
        if scale is None:
            scale = persistent.sprite_scales.get(sprite_name, 1)
        x, y, angle = self._round((x, y, remap_direction(direction, style)))
        return SpritePlacement(x, y, angle, scale)

    def set_rotation_style(self, sprite_name: str, rotation_style: RotationStyle | str) -> None:
        self.state.persistent.rotation_styles[sprite_name] = RotationStyle.parse(
            rotation_style
        )

    def set_sprite_scale(self, sprite_name: str, scale: float) -> None:
        self.state.persistent.sprite_scales[sprite_name] = float(scale)

    def create_sprite(
        self,
        sprite_name: str,
        color_list: str,
        x: float = 0,
        y: float = 0,
        direction: float = 90,
        scale: float | None = None,
        visible: bool = True,
    ) -> None:
        """Register a sprite template and, when visible, place it."""
        placement = self._placement(sprite_name, x, y, direction, scale)
        self.current.sprites.append(SpriteTemplate(sprite_name, str(color_list)))
        if visible:
            self.current.sprite_moves[sprite_name] = placement

    def move_sprite(
        self,
        sprite_name: str,
        x: float,
        y: float,
        direction: float = 90,
        scale: float | None = None,
        visible: bool = True,
    ) -> None:
        """Replace the placement of a sprite; hide it when ``visible`` is False.

        Raises:
            UnknownNameError: If no template named ``sprite_name`` exists.
        """
        self._require_sprite(sprite_name)
        moves = self.current.sprite_moves
        if not visible:
            moves.pop(sprite_name, None)
            return
        moves[sprite_name] = self._placement(sprite_name, x, y, direction, scale)

    def move_sprite_clone(
        self,
        sprite_name: str,
        clone_index: int,
        x: float,
        y: float,
        direction: float = 90,
        scale: float | None = None,
    ) -> None:
        """Stage the placement of one clone of a sprite.

        Raises:
            UnknownNameError: If no template named ``sprite_name`` exists.
            InvalidArgumentError: If ``clone_index`` is negative.
        """
        self._require_sprite(sprite_name)
        if int(clone_index) < 0:
            raise InvalidArgumentError(f"clone index must be >= 0, got {clone_index}")
        clones = self.current.sprite_clone_moves.setdefault(sprite_name, {})
        clones[int(clone_index)] = self._placement(sprite_name, x, y, direction, scale)

    def remove_sprite_clone(self, sprite_name: str, clone_index: int) -> None:
        clones = self.current.sprite_clone_moves.get(sprite_name)
        if clones is None:
            return
        clones.pop(int(clone_index), None)
        if not clones:
            del self.current.sprite_clone_moves[sprite_name]

    # Lifecycle
    def clear(self) -> None:
        """Reset every resettable field; per-sprite configuration is kept."""
        self.state.clear()
        logger.debug("Scene cleared")
