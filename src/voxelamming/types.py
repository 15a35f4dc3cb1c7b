"""
Data types for the Voxelamming scene.

All types use snake_case field names; conversion to the renderer's camelCase
wire format lives in :mod:`voxelamming.adapters`.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum

import numpy as np

from . import rotation
from .errors import InvalidArgumentError

SHAPES: tuple[str, ...] = ("box", "sphere", "plane")


class LightType(IntEnum):
    """Light kinds, numbered as the renderer expects them."""

    POINT = 1
    SPOT = 2
    DIRECTIONAL = 3

    @classmethod
    def parse(cls, value: LightType | str | int) -> LightType:
        """Accept an enum member, its lowercase name or its wire number."""
        if isinstance(value, LightType):
            return value
        try:
            if isinstance(value, str):
                return cls[value.strip().upper()]
            return cls(int(value))
        except (KeyError, ValueError) as e:
            raise InvalidArgumentError(f"Unknown light type: {value!r}") from e


class RotationStyle(str, Enum):
    """How a sprite's direction is shown (Scratch semantics)."""

    ALL_AROUND = "all around"
    LEFT_RIGHT = "left-right"
    DONT_ROTATE = "don't rotate"

    @classmethod
    def parse(cls, value: RotationStyle | str) -> RotationStyle:
        try:
            return cls(value)
        except ValueError as e:
            raise InvalidArgumentError(f"Unknown rotation style: {value!r}") from e


@dataclass(frozen=True)
class TransformFrame:
    """A position plus either Euler angles (3 values) or a row-major matrix (9)."""

    position: tuple[float, float, float] = (0, 0, 0)
    rotation: tuple[float, ...] = (0, 0, 0)

    def __post_init__(self) -> None:
        if len(self.rotation) not in (3, 9):
            raise ValueError(
                f"rotation must have 3 (euler) or 9 (matrix) values, got {len(self.rotation)}"
            )

    @property
    def is_matrix(self) -> bool:
        return len(self.rotation) == 9

    def rotation_basis(self) -> np.ndarray:
        """Return the 3x3 rotation this frame represents."""
        if self.is_matrix:
            return rotation.matrix_from_list(self.rotation)
        pitch, yaw, roll = self.rotation
        return rotation.rotation_matrix(pitch, yaw, roll)

    def to_list(self) -> list[float]:
        return [*self.position, *self.rotation]


@dataclass(frozen=True)
class FrameTransform:
    """A node transform recorded while framing, tagged with its frame id."""

    x: float
    y: float
    z: float
    pitch: float
    yaw: float
    roll: float
    frame_id: int


@dataclass(frozen=True)
class Animation:
    """Target pose for a node or global animation."""

    x: float = 0
    y: float = 0
    z: float = 0
    pitch: float = 0
    yaw: float = 0
    roll: float = 0
    scale: float = 1
    interval: float = 0


@dataclass(frozen=True)
class Box:
    """A voxel box; ``texture_id`` is -1 for plain coloured boxes."""

    x: float
    y: float
    z: float
    r: float = 1
    g: float = 1
    b: float = 1
    alpha: float = 1
    texture_id: int = -1

    @property
    def position(self) -> tuple[float, float, float]:
        return (self.x, self.y, self.z)


@dataclass(frozen=True)
class FramedBox(Box):
    """A box recorded while framing; dedup is scoped to its ``frame_id``."""

    frame_id: int = 0


@dataclass(frozen=True)
class Light:
    x: float
    y: float
    z: float
    r: float = 1
    g: float = 1
    b: float = 1
    alpha: float = 1
    intensity: float = 1000
    interval: float = 1
    light_type: LightType = LightType.POINT


@dataclass(frozen=True)
class Sentence:
    text: str
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
class Model:
    """A placed instance of one of the renderer's bundled models."""

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
class ModelMove:
    entity_name: str
    x: float = 0
    y: float = 0
    z: float = 0
    pitch: float = 0
    yaw: float = 0
    roll: float = 0
    scale: float = 1


@dataclass(frozen=True)
class SpriteTemplate:
    """A named sprite appearance; ``color_list`` is passed through opaquely."""

    name: str
    color_list: str


@dataclass(frozen=True)
class SpritePlacement:
    """Where a sprite (or one of its clones) is drawn in a given send."""

    x: float
    y: float
    direction: float
    scale: float = 1
