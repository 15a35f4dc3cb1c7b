"""Numeric quantization policy for scene coordinates and colours."""

from __future__ import annotations

import math
from collections.abc import Iterable

from .errors import InvalidArgumentError

# Values closer than this to a grid line are treated as lying on it, so that
# float noise from rotations (2.9999999999) does not floor one cell short.
GRID_SNAP_TOLERANCE = 1e-6


def _finite(value: float) -> float:
    value = float(value)
    if not math.isfinite(value):
        raise InvalidArgumentError(f"Coordinates and colours must be finite, got {value}")
    return value


def round_two_decimals(values: Iterable[float]) -> list[float]:
    """Round each value to two decimals.

    Raises:
        InvalidArgumentError: If a value is infinite or NaN.
    """
    return [round(_finite(v), 2) + 0.0 for v in values]


def floor_to_grid(value: float) -> int:
    """Floor ``value`` onto the integer grid, snapping float noise first.

    Raises:
        InvalidArgumentError: If ``value`` is infinite or NaN.
    """
    value = _finite(value)
    nearest = round(value)
    if abs(value - nearest) < GRID_SNAP_TOLERANCE:
        return int(nearest)
    return math.floor(value)


def round_numbers(values: Iterable[float], allow_float: bool = False) -> list[float]:
    """Quantize coordinates to the active numeric mode.

    Args:
        values: Coordinates to quantize.
        allow_float: When True, round to two decimals without flooring;
            otherwise floor onto the integer grid.

    Returns:
        A list of quantized values (ints in grid mode).

    Raises:
        InvalidArgumentError: If a value is infinite or NaN.
    """
    if allow_float:
        return round_two_decimals(values)
    return [floor_to_grid(v) for v in values]
