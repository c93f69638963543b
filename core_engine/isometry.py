"""Rigid transforms (rotation + translation) in 2-D and 3-D.

An :class:`Isometry` maps a point ``p`` of a shape's local frame to
``rotation @ p + translation``. Composition follows the usual convention
``(a * b).transform_point(p) == a.transform_point(b.transform_point(p))``,
so ``ambient * placement`` places a part that is itself placed inside a
parent frame.

Rotations are given the same way for both dimensions:

- 2-D: a scalar angle [rad], counter-clockwise.
- 3-D: a rotation vector (unit axis scaled by the angle), converted with
  Rodrigues' formula.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from core_engine.errors import check_dimension

# Max deviation of R @ R.T from the identity
ORTHONORMAL_ATOL = 1e-9


def _rotation_matrix(dim: int, rotation: float | np.ndarray) -> np.ndarray:
    """Build a rotation matrix from an angle (2-D) or rotation vector (3-D)."""
    if dim == 2:
        angle = float(np.asarray(rotation, dtype=np.float64).reshape(()))
        c, s = np.cos(angle), np.sin(angle)
        return np.array([[c, -s], [s, c]], dtype=np.float64)

    rotvec = np.asarray(rotation, dtype=np.float64)
    if rotvec.ndim == 0:
        if float(rotvec) != 0.0:
            raise ValueError("A 3-D rotation must be given as a rotation vector")
        rotvec = np.zeros(3, dtype=np.float64)
    if rotvec.shape != (3,):
        raise ValueError(f"3-D rotation vector must have shape (3,), got {rotvec.shape}")

    theta = float(np.linalg.norm(rotvec))
    if theta < 1e-15:
        return np.eye(3, dtype=np.float64)

    k = rotvec / theta
    skew = np.array(
        [
            [0.0, -k[2], k[1]],
            [k[2], 0.0, -k[0]],
            [-k[1], k[0], 0.0],
        ],
        dtype=np.float64,
    )
    return np.eye(3) + np.sin(theta) * skew + (1.0 - np.cos(theta)) * (skew @ skew)


@dataclass(frozen=True, eq=False)
class Isometry:
    """A rigid transform.

    Attributes
    ----------
    rotation : np.ndarray
        Orthonormal rotation matrix. Shape: (D, D), dtype: float64.
    translation : np.ndarray
        Translation vector. Shape: (D,), dtype: float64.

    Raises
    ------
    ValueError
        If ``rotation`` is not a (D, D) matrix with ``R @ R.T`` equal to the
        identity within ``ORTHONORMAL_ATOL``.
    """

    rotation: np.ndarray
    translation: np.ndarray

    def __post_init__(self) -> None:
        rotation = np.array(self.rotation, dtype=np.float64)
        translation = np.array(self.translation, dtype=np.float64)

        dim = check_dimension(translation.shape[0] if translation.ndim == 1 else -1)
        if rotation.shape != (dim, dim):
            raise ValueError(
                f"Rotation must have shape ({dim}, {dim}), got {rotation.shape}"
            )

        if not np.allclose(rotation @ rotation.T, np.eye(dim), rtol=0.0, atol=ORTHONORMAL_ATOL):
            raise ValueError(f"Rotation is not orthonormal: {rotation.tolist()}")

        rotation.setflags(write=False)
        translation.setflags(write=False)
        object.__setattr__(self, "rotation", rotation)
        object.__setattr__(self, "translation", translation)

    # -----------------------------------------------------------------
    # Constructors
    # -----------------------------------------------------------------

    @classmethod
    def identity(cls, dim: int) -> Isometry:
        """The identity transform in ``dim`` dimensions."""
        dim = check_dimension(dim)
        return cls(np.eye(dim), np.zeros(dim))

    @classmethod
    def new(
        cls,
        translation: np.ndarray | list[float] | tuple[float, ...],
        rotation: float | np.ndarray = 0.0,
    ) -> Isometry:
        """Build an isometry from a translation and a rotation.

        Parameters
        ----------
        translation : array_like
            Translation vector. Its length sets the dimension.
        rotation : float or array_like
            Angle [rad] in 2-D, rotation vector in 3-D. Default: no rotation.
        """
        translation = np.asarray(translation, dtype=np.float64)
        dim = check_dimension(translation.shape[0] if translation.ndim == 1 else -1)
        return cls(_rotation_matrix(dim, rotation), translation)

    @classmethod
    def from_translation(
        cls, translation: np.ndarray | list[float] | tuple[float, ...]
    ) -> Isometry:
        """A pure translation."""
        return cls.new(translation)

    # -----------------------------------------------------------------
    # Algebra
    # -----------------------------------------------------------------

    @property
    def dim(self) -> int:
        return int(self.translation.shape[0])

    def compose(self, other: Isometry) -> Isometry:
        """Return ``self * other`` (apply ``other`` first)."""
        if other.dim != self.dim:
            raise ValueError(
                f"Cannot compose a {self.dim}-D isometry with a {other.dim}-D one"
            )
        return Isometry(
            self.rotation @ other.rotation,
            self.rotation @ other.translation + self.translation,
        )

    def __mul__(self, other: Isometry) -> Isometry:
        if not isinstance(other, Isometry):
            return NotImplemented
        return self.compose(other)

    def inverse(self) -> Isometry:
        rot_t = self.rotation.T
        return Isometry(rot_t, -(rot_t @ self.translation))

    def prepend_translation(self, translation: np.ndarray) -> Isometry:
        """Translate by ``translation`` expressed in this isometry's local frame."""
        translation = np.asarray(translation, dtype=np.float64)
        return Isometry(self.rotation, self.translation + self.rotation @ translation)

    def append_translation(self, translation: np.ndarray) -> Isometry:
        """Translate by ``translation`` expressed in the parent frame."""
        translation = np.asarray(translation, dtype=np.float64)
        return Isometry(self.rotation, self.translation + translation)

    # -----------------------------------------------------------------
    # Action on points and vectors
    # -----------------------------------------------------------------

    def transform_point(self, point: np.ndarray) -> np.ndarray:
        return self.rotation @ np.asarray(point, dtype=np.float64) + self.translation

    def transform_points(self, points: np.ndarray) -> np.ndarray:
        """Transform an array of points. Shape: (N, D)."""
        return np.asarray(points, dtype=np.float64) @ self.rotation.T + self.translation

    def transform_vector(self, vector: np.ndarray) -> np.ndarray:
        return self.rotation @ np.asarray(vector, dtype=np.float64)

    def inverse_transform_point(self, point: np.ndarray) -> np.ndarray:
        return self.rotation.T @ (np.asarray(point, dtype=np.float64) - self.translation)

    # -----------------------------------------------------------------
    # Predicates
    # -----------------------------------------------------------------

    def is_axis_aligned(self, tolerance: float = 1e-9) -> bool:
        """True if the rotation is a signed permutation of the axes."""
        abs_rot = np.abs(self.rotation)
        unit = np.abs(abs_rot - 1.0) <= tolerance
        return bool(
            np.all(unit | (abs_rot <= tolerance)) and np.all(np.count_nonzero(unit, axis=1) == 1)
        )

    def allclose(self, other: Isometry, atol: float = 1e-12) -> bool:
        return (
            self.dim == other.dim
            and np.allclose(self.rotation, other.rotation, rtol=0.0, atol=atol)
            and np.allclose(self.translation, other.translation, rtol=0.0, atol=atol)
        )

    def __repr__(self) -> str:
        return (
            f"Isometry(rotation={self.rotation.tolist()}, "
            f"translation={self.translation.tolist()})"
        )
