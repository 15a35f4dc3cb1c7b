"""
Reconstruct voxel boxes from a quad-mesh vertex list.

The accepted format is the ASCII PLY that voxel editors (MagicaVoxel and
friends) export: an optional header terminated by ``end_header``, then one
vertex per line as ``x y z r g b``, with every four consecutive vertices
forming one quad face. The colour property type in the header (``uchar`` or
``float``) decides whether channels are 0-255 or 0-1. Face index lines
(``4 i j k l``) may follow the vertex block and are ignored, since the export
already lists vertices face by face.

Every face of a voxel mesh lies in an axis-aligned plane. The plane is found by
checking which coordinate the first three vertices share, the edge length gives
the voxel step, and the winding (outward normal) tells on which side of the
plane the voxel sits.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

import numpy as np

from .errors import MalformedMeshError
from .quantize import floor_to_grid, round_two_decimals
from .types import Box

logger = logging.getLogger(__name__)

Vertex = tuple[float, float, float, float, float, float]

VERTEX_FIELDS = 6
QUAD = 4

# Full scale of the colour channels for each PLY property type
_COLOR_SCALES = {
    "uchar": 255.0,
    "uint8": 255.0,
    "float": 1.0,
    "float32": 1.0,
    "double": 1.0,
    "float64": 1.0,
}
_COLOR_PROPERTIES = ("red", "r", "diffuse_red")


def _split_header(text: str) -> tuple[list[str], list[str], int]:
    """Return the header lines, all lines, and the index of the first body line."""
    lines = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    for i, line in enumerate(lines):
        if line.strip() == "end_header":
            return lines[:i], lines, i + 1
    return [], lines, 0


def color_scale(text: str) -> float | None:
    """Full scale of the vertex colours declared by the mesh header.

    ``property uchar red`` means 0-255 channels, ``property float red`` means
    0-1 channels. Returns None for a headerless blob or an unknown type.
    """
    header, _, _ = _split_header(text)
    for line in header:
        fields = line.split()
        if len(fields) == 3 and fields[0] == "property" and fields[2] in _COLOR_PROPERTIES:
            return _COLOR_SCALES.get(fields[1])
    return None


def parse_vertices(text: str) -> list[Vertex]:
    """Extract the vertex list from a mesh blob.

    Raises:
        MalformedMeshError: On a line that is neither a vertex nor a quad face.
    """
    _, lines, start = _split_header(text)

    vertices: list[Vertex] = []
    for line_no, line in enumerate(lines[start:], start=start + 1):
        fields = line.split()
        if not fields:
            continue
        if len(fields) == VERTEX_FIELDS:
            try:
                vertices.append(tuple(float(f) for f in fields))  # type: ignore[arg-type]
            except ValueError as e:
                raise MalformedMeshError(f"non-numeric vertex: {line!r}", line_no) from e
        elif fields[0] == str(QUAD) and len(fields) == QUAD + 1:
            continue
        else:
            raise MalformedMeshError(
                f"expected {VERTEX_FIELDS} vertex fields or a quad face, got {line!r}",
                line_no,
            )
    return vertices


def _normalize_color(rgb: Sequence[float], scale: float | None = None) -> list[float]:
    # Scene colours are 0-1; without a declared scale, channels above 1 are bytes
    if scale is None:
        scale = 255.0 if any(c > 1 for c in rgb) else 1.0
    if scale != 1.0:
        rgb = [c / scale for c in rgb]
    return round_two_decimals(rgb)


def _face_to_box(face: Sequence[Vertex], face_no: int, scale: float | None) -> Box:
    corners = np.array([v[:3] for v in face], dtype=float)
    v0, v1, v2 = corners[0], corners[1], corners[2]

    shared = [axis for axis in range(3) if v0[axis] == v1[axis] == v2[axis]]
    if len(shared) != 1:
        raise MalformedMeshError(f"face {face_no} is not an axis-aligned quad")
    axis = shared[0]
    in_plane = [a for a in range(3) if a != axis]

    step = float(np.max(np.abs(np.diff(corners[:3, in_plane], axis=0))))
    if step == 0:
        raise MalformedMeshError(f"face {face_no} has zero size")

    normal = np.cross(v1 - v0, v2 - v0)
    cell = [0, 0, 0]
    plane = floor_to_grid(v0[axis] / step)
    cell[axis] = plane - 1 if normal[axis] > 0 else plane
    for a in in_plane:
        cell[a] = floor_to_grid(corners[:, a].min() / step)

    r, g, b = _normalize_color(face[0][3:6], scale)
    return Box(cell[0], cell[1], cell[2], r, g, b, 1)


def get_boxes(vertices: Sequence[Vertex], channel_scale: float | None = None) -> list[Box]:
    """Turn a flat quad-face vertex list into deduplicated voxel boxes.

    Boxes are keyed by grid position only, so the faces of one voxel collapse
    into a single box; when faces disagree about a cell's colour the last face
    wins, matching ``create_box`` overwrite semantics.

    ``channel_scale`` is the full scale of the colour channels (255 or 1); when
    None it is guessed per face from the channel values.

    Raises:
        MalformedMeshError: If the vertex count is not a multiple of four or a
            face is not an axis-aligned quad.
    """
    if len(vertices) % QUAD:
        raise MalformedMeshError(
            f"vertex count {len(vertices)} is not a multiple of {QUAD}"
        )

    boxes: dict[tuple[float, float, float], Box] = {}
    for face_no, i in enumerate(range(0, len(vertices), QUAD)):
        box = _face_to_box(vertices[i : i + QUAD], face_no, channel_scale)
        boxes.pop(box.position, None)
        boxes[box.position] = box

    logger.debug(f"Mesh import: {len(vertices) // QUAD} faces -> {len(boxes)} boxes")
    return list(boxes.values())


def boxes_from_mesh(text: str) -> list[Box]:
    """Parse a mesh blob and return its voxel boxes."""
    return get_boxes(parse_vertices(text), color_scale(text))
