"""Tests for rotation module."""

from __future__ import annotations

import itertools

import numpy as np
import pytest

from voxelamming import rotation

QUARTER_TURNS = (0, 90, 180, 270)


def _assert_matrix(actual: np.ndarray, expected: list[list[float]]) -> None:
    assert np.allclose(actual, np.array(expected, dtype=float), atol=1e-6)


class TestElementaryMatrices:
    """Tests for the single-axis rotations."""

    def test_zero_angles_give_identity(self) -> None:
        """All-zero angles produce the identity."""
        _assert_matrix(rotation.rotation_matrix(0, 0, 0), np.eye(3).tolist())

    def test_yaw_quarter_turn_is_exact(self) -> None:
        """A 90 degree yaw has exact 0/1 entries."""
        m = rotation.yaw_matrix(90)
        assert m.tolist() == [[0.0, 0.0, -1.0], [0.0, 1.0, 0.0], [1.0, 0.0, 0.0]]

    def test_yaw_moves_x_onto_z(self) -> None:
        """Yaw turns around the vertical axis."""
        assert rotation.transform_point((1, 0, 0), rotation.yaw_matrix(90)) == (0.0, 0.0, 1.0)

    def test_pitch_turns_around_x(self) -> None:
        """Pitch leaves x fixed and moves y onto -z."""
        assert rotation.transform_point((0, 1, 0), rotation.pitch_matrix(90)) == (0.0, 0.0, -1.0)
        assert rotation.transform_point((1, 0, 0), rotation.pitch_matrix(90)) == (1.0, 0.0, 0.0)

    def test_roll_turns_around_z(self) -> None:
        """Roll leaves z fixed and moves x onto -y."""
        assert rotation.transform_point((1, 0, 0), rotation.roll_matrix(90)) == (0.0, -1.0, 0.0)

    @pytest.mark.parametrize("angle", [180, 270, -90, 450])
    def test_quarter_turns_match_trig(self, angle: float) -> None:
        """Exact quarter-turn values agree with cos/sin."""
        rad = np.radians(angle)
        c, s = np.cos(rad), np.sin(rad)
        _assert_matrix(rotation.roll_matrix(angle), [[c, s, 0], [-s, c, 0], [0, 0, 1]])


class TestComposition:
    """Tests for composite rotations and their inverses."""

    def test_composite_order_is_roll_pitch_yaw(self) -> None:
        """rotation_matrix applies yaw first, then pitch, then roll."""
        expected = (
            rotation.roll_matrix(30) @ rotation.pitch_matrix(20) @ rotation.yaw_matrix(10)
        )
        _assert_matrix(rotation.rotation_matrix(20, 10, 30), expected.tolist())

    @pytest.mark.parametrize(
        "angles", [(37, 0, 0), (0, 123, 0), (0, 0, -71)]
    )
    def test_single_axis_inverts_by_negation(self, angles: tuple[float, float, float]) -> None:
        """Negating a single-axis angle gives the inverse rotation."""
        p, y, r = angles
        product = rotation.multiply(
            rotation.rotation_matrix(p, y, r), rotation.rotation_matrix(-p, -y, -r)
        )
        _assert_matrix(product, np.eye(3).tolist())

    def test_composite_inverts_by_transpose(self) -> None:
        """The transpose of a composite rotation is its inverse."""
        m = rotation.rotation_matrix(25, -40, 70)
        _assert_matrix(rotation.multiply(rotation.transpose(m), m), np.eye(3).tolist())

    def test_composite_inverts_by_reverse_negated_elements(self) -> None:
        """Negated elementary rotations in reverse order undo the composite."""
        m = rotation.rotation_matrix(25, -40, 70)
        inverse = (
            rotation.yaw_matrix(40) @ rotation.pitch_matrix(-25) @ rotation.roll_matrix(-70)
        )
        _assert_matrix(inverse @ m, np.eye(3).tolist())

    @pytest.mark.parametrize(
        "pitch,yaw,roll", list(itertools.product(QUARTER_TURNS, repeat=3))
    )
    def test_every_quarter_turn_composite_inverts(
        self, pitch: float, yaw: float, roll: float
    ) -> None:
        """Both inverse forms hold for all 64 quarter-turn orientations."""
        m = rotation.rotation_matrix(pitch, yaw, roll)
        _assert_matrix(rotation.multiply(rotation.transpose(m), m), np.eye(3).tolist())
        inverse = (
            rotation.yaw_matrix(-yaw) @ rotation.pitch_matrix(-pitch) @ rotation.roll_matrix(-roll)
        )
        _assert_matrix(inverse @ m, np.eye(3).tolist())


class TestVectorHelpers:
    """Tests for the small vector/matrix helpers."""

    def test_add(self) -> None:
        assert rotation.add((1, 2, 3), (0.5, -2, 1)) == (1.5, 0.0, 4.0)

    def test_matrix_list_round_trip(self) -> None:
        """Row-major flattening is reversible."""
        m = rotation.rotation_matrix(10, 20, 30)
        values = rotation.matrix_to_list(m)
        assert len(values) == 9
        assert all(isinstance(v, float) for v in values)
        _assert_matrix(rotation.matrix_from_list(values), m.tolist())

    def test_matrix_from_list_rejects_wrong_length(self) -> None:
        with pytest.raises(ValueError):
            rotation.matrix_from_list([1.0] * 8)
