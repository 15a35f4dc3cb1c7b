"""Nested transform stack: node transform, matrix transform and frame deltas."""

from __future__ import annotations

from . import rotation
from .errors import StackUnderflow
from .quantize import round_numbers
from .types import FrameTransform, TransformFrame

IDENTITY_FRAME = TransformFrame()


class TransformStack:
    """
    Tracks the active node transform and the composed matrix transform.

    The node transform is applied by the renderer to the whole node. The matrix
    transform is applied client-side to geometry created while at least one
    matrix is pushed; each nested ``set_node`` is expressed relative to the
    transform that was current when its enclosing ``push_matrix`` ran.
    """

    def __init__(self) -> None:
        self.node_transform: TransformFrame = IDENTITY_FRAME
        self.matrix_transform: TransformFrame = IDENTITY_FRAME
        self.frame_transforms: list[FrameTransform] = []
        self._saved: list[TransformFrame] = []

    @property
    def depth(self) -> int:
        """Current nesting depth (number of un-popped ``push_matrix`` calls)."""
        return len(self._saved)

    def push_matrix(self) -> None:
        self._saved.append(self.matrix_transform)

    def pop_matrix(self) -> None:
        """Restore the matrix transform saved by the matching ``push_matrix``.

        Raises:
            StackUnderflow: If nothing has been pushed.
        """
        if not self._saved:
            raise StackUnderflow()
        self.matrix_transform = self._saved.pop()

    def set_node(
        self,
        x: float,
        y: float,
        z: float,
        pitch: float = 0,
        yaw: float = 0,
        roll: float = 0,
        *,
        allow_float: bool = False,
        framing: bool = False,
        frame_id: int = 0,
    ) -> None:
        """Set the node transform, or compose a child transform when pushed.

        Args:
            x, y, z: Position (local to the parent when depth > 0).
            pitch, yaw, roll: Rotation in degrees.
            allow_float: Quantization mode for the resulting position.
            framing: When True at depth 0, record a per-frame delta instead of
                replacing the node transform.
            frame_id: Frame id recorded with the delta.
        """
        if self._saved:
            parent = self._saved[-1]
            self.matrix_transform = self._compose(
                parent, (x, y, z), (pitch, yaw, roll), allow_float
            )
            return

        x, y, z = round_numbers((x, y, z), allow_float)
        if framing:
            self.frame_transforms.append(
                FrameTransform(x, y, z, pitch, yaw, roll, frame_id)
            )
        else:
            self.node_transform = TransformFrame((x, y, z), (pitch, yaw, roll))

    def resolve(self, x: float, y: float, z: float) -> tuple[float, float, float]:
        """Map a local point through the current matrix transform.

        At depth 0 the point is returned unchanged (the renderer applies the
        node transform itself).
        """
        if not self._saved:
            return (x, y, z)
        return self._to_parent(self.matrix_transform, (x, y, z))

    def reset(self) -> None:
        self.node_transform = IDENTITY_FRAME
        self.matrix_transform = IDENTITY_FRAME
        self.frame_transforms = []
        self._saved = []

    @staticmethod
    def _to_parent(
        parent: TransformFrame, local: tuple[float, float, float]
    ) -> tuple[float, float, float]:
        base_rotation = parent.rotation_basis()
        offset = rotation.transform_point(local, rotation.transpose(base_rotation))
        return rotation.add(parent.position, offset)

    @classmethod
    def _compose(
        cls,
        parent: TransformFrame,
        local: tuple[float, float, float],
        angles: tuple[float, float, float],
        allow_float: bool,
    ) -> TransformFrame:
        position = round_numbers(cls._to_parent(parent, local), allow_float)
        pitch, yaw, roll = angles
        composed = rotation.multiply(
            rotation.rotation_matrix(-pitch, -yaw, -roll), parent.rotation_basis()
        )
        return TransformFrame(tuple(position), tuple(rotation.matrix_to_list(composed)))
