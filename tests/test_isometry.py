"""Tests for rigid transforms."""

from __future__ import annotations

import numpy as np
import pytest

from core_engine.errors import UnsupportedDimension
from core_engine.isometry import Isometry


class TestIsometry:
    """Construction, composition and action on points."""

    def test_identity(self) -> None:
        m = Isometry.identity(3)
        p = np.array([1.0, -2.0, 3.0])
        np.testing.assert_array_equal(m.transform_point(p), p)

    def test_2d_rotation(self) -> None:
        m = Isometry.new([1.0, 0.0], np.pi / 2)
        np.testing.assert_allclose(m.transform_point([1.0, 0.0]), [1.0, 1.0], atol=1e-15)

    def test_3d_rotation_vector(self) -> None:
        m = Isometry.new([0.0, 0.0, 0.0], np.array([0.0, 0.0, np.pi / 2]))
        np.testing.assert_allclose(m.transform_point([1.0, 0.0, 0.0]), [0.0, 1.0, 0.0], atol=1e-15)

    def test_rotation_is_orthonormal(self) -> None:
        m = Isometry.new([0.0, 0.0, 0.0], np.array([0.4, -1.2, 0.7]))
        np.testing.assert_allclose(m.rotation @ m.rotation.T, np.eye(3), atol=1e-14)
        assert np.linalg.det(m.rotation) == pytest.approx(1.0)

    def test_composition_order(self) -> None:
        a = Isometry.new([1.0, 2.0], 0.5)
        b = Isometry.new([-3.0, 0.5], -1.2)
        p = np.array([0.3, 0.9])
        np.testing.assert_allclose(
            (a * b).transform_point(p), a.transform_point(b.transform_point(p)), atol=1e-14
        )

    def test_inverse(self) -> None:
        m = Isometry.new([1.0, 2.0, 3.0], np.array([0.1, 0.2, 0.3]))
        assert (m * m.inverse()).allclose(Isometry.identity(3), atol=1e-14)
        p = np.array([4.0, 5.0, 6.0])
        np.testing.assert_allclose(m.inverse_transform_point(m.transform_point(p)), p, atol=1e-14)

    def test_prepend_translation_is_local(self) -> None:
        m = Isometry.new([5.0, 0.0], np.pi / 2)
        moved = m.prepend_translation([1.0, 0.0])
        np.testing.assert_allclose(moved.translation, [5.0, 1.0], atol=1e-15)
        assert moved.allclose(m * Isometry.new([1.0, 0.0]))

    def test_append_translation_is_global(self) -> None:
        m = Isometry.new([5.0, 0.0], np.pi / 2)
        np.testing.assert_allclose(m.append_translation([1.0, 0.0]).translation, [6.0, 0.0])

    def test_axis_alignment(self) -> None:
        assert Isometry.new([0.0, 0.0], np.pi).is_axis_aligned()
        assert not Isometry.new([0.0, 0.0], 0.1).is_axis_aligned()

    def test_unsupported_dimension(self) -> None:
        with pytest.raises(UnsupportedDimension):
            Isometry.new([1.0, 2.0, 3.0, 4.0])
        with pytest.raises(UnsupportedDimension):
            Isometry.identity(1)

    def test_3d_scalar_rotation_rejected(self) -> None:
        with pytest.raises(ValueError):
            Isometry.new([0.0, 0.0, 0.0], 0.5)

    def test_dimension_mismatch_in_composition(self) -> None:
        with pytest.raises(ValueError):
            Isometry.identity(2) * Isometry.identity(3)


# ===================================================================
# ROTATION VALIDATION
# ===================================================================


class TestRotationValidation:
    """Only orthonormal rotation matrices are accepted."""

    @pytest.mark.parametrize(
        "rotation",
        [
            [[1.0, 1.0], [0.0, 1.0]],
            [[2.0, 0.0], [0.0, 2.0]],
            [[0.0, 0.0], [0.0, 0.0]],
        ],
    )
    def test_non_orthonormal_rejected(self, rotation: list[list[float]]) -> None:
        with pytest.raises(ValueError, match="orthonormal"):
            Isometry(np.array(rotation), np.zeros(2))

    def test_signed_permutation_accepted(self) -> None:
        rotation = np.array([[0.0, 0.0, 1.0], [-1.0, 0.0, 0.0], [0.0, 1.0, 0.0]])
        m = Isometry(rotation, np.array([1.0, 2.0, 3.0]))
        assert m.is_axis_aligned(), "A signed axis permutation must count as axis-aligned"

    def test_composed_rotations_stay_valid(self) -> None:
        step = Isometry.new([0.1, 0.0, 0.0], np.array([0.3, -0.2, 0.9]))
        m = Isometry.identity(3)
        for _ in range(200):
            m = m * step
        np.testing.assert_allclose(m.rotation @ m.rotation.T, np.eye(3), atol=1e-12)

    def test_two_unit_entries_in_a_row_not_aligned(self) -> None:
        # At 45 degrees every entry is within 0.5 of both 0 and 1
        m = Isometry.new([0.0, 0.0], np.pi / 4)
        assert not m.is_axis_aligned(tolerance=0.5), (
            "A row with more than one unit-magnitude entry is not a permutation"
        )

    def test_small_rotation_not_aligned(self) -> None:
        assert not Isometry.new([0.0, 0.0], 0.1).is_axis_aligned()
        assert not Isometry.new([0.0, 0.0, 0.0], np.array([0.0, 0.1, 0.0])).is_axis_aligned()
