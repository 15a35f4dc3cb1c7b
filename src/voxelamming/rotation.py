"""
rotation.py
-----------
Rotation math in the renderer's convention.

The renderer is left-handed: yaw turns around the vertical (y) axis, pitch
around the lateral (x) axis and roll around the depth (z) axis. The composite
rotation is ``Rz(roll) @ Rx(pitch) @ Ry(yaw)``; the order is fixed.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

import numpy as np

Vec3 = tuple[float, float, float]

# cos/sin for quarter turns, so 90/180/270 degree inputs come out exact
_QUARTER_TURNS: dict[int, tuple[float, float]] = {
    0: (1.0, 0.0),
    1: (0.0, 1.0),
    2: (-1.0, 0.0),
    3: (0.0, -1.0),
}


def _cos_sin(degrees: float) -> tuple[float, float]:
    quarter, remainder = divmod(float(degrees), 90.0)
    if remainder == 0.0:
        return _QUARTER_TURNS[int(quarter) % 4]
    rad = math.radians(degrees)
    return math.cos(rad), math.sin(rad)


def pitch_matrix(pitch: float) -> np.ndarray:
    """Elementary rotation around the lateral (x) axis."""
    c, s = _cos_sin(pitch)
    return np.array([
        [1.0, 0.0, 0.0],
        [0.0, c,   s],
        [0.0, -s,  c],
    ])


def yaw_matrix(yaw: float) -> np.ndarray:
    """Elementary rotation around the vertical (y) axis."""
    c, s = _cos_sin(yaw)
    return np.array([
        [c,   0.0, -s],
        [0.0, 1.0, 0.0],
        [s,   0.0, c],
    ])


def roll_matrix(roll: float) -> np.ndarray:
    """Elementary rotation around the depth (z) axis."""
    c, s = _cos_sin(roll)
    return np.array([
        [c,   s,   0.0],
        [-s,  c,   0.0],
        [0.0, 0.0, 1.0],
    ])


def rotation_matrix(pitch: float, yaw: float, roll: float) -> np.ndarray:
    """3x3 rotation matrix from pitch/yaw/roll in degrees."""
    return roll_matrix(roll) @ pitch_matrix(pitch) @ yaw_matrix(yaw)


def multiply(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Standard 3x3 matrix product ``a @ b``."""
    return np.asarray(a, dtype=float) @ np.asarray(b, dtype=float)


def transpose(m: np.ndarray) -> np.ndarray:
    """Transpose of a 3x3 matrix (the inverse, for a rotation)."""
    return np.asarray(m, dtype=float).T.copy()


def transform_point(v: Sequence[float], m: np.ndarray) -> Vec3:
    """Apply ``m`` to the column vector ``v``."""
    x, y, z = np.asarray(m, dtype=float) @ np.asarray(v, dtype=float)
    return float(x), float(y), float(z)


def add(v1: Sequence[float], v2: Sequence[float]) -> Vec3:
    """Component-wise vector addition."""
    return (
        float(v1[0]) + float(v2[0]),
        float(v1[1]) + float(v2[1]),
        float(v1[2]) + float(v2[2]),
    )


def matrix_to_list(m: np.ndarray) -> list[float]:
    """Flatten a 3x3 matrix row-major into plain floats (JSON-serializable)."""
    return [float(v) for v in np.asarray(m, dtype=float).reshape(9)]


def matrix_from_list(values: Sequence[float]) -> np.ndarray:
    """Inverse of :func:`matrix_to_list`."""
    if len(values) != 9:
        raise ValueError(f"expected 9 matrix entries, got {len(values)}")
    return np.array(values, dtype=float).reshape(3, 3)
