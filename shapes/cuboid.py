"""Axis-aligned box primitive (a rectangle in 2-D, a cuboid in 3-D)."""

from __future__ import annotations

import numpy as np

from bounding_volume.aabb import BoundingBox
from core_engine.constants import PRECISIONS, VolumetricConfig, default_config
from core_engine.errors import InvalidShapeError, check_dimension
from core_engine.isometry import Isometry
from shapes.shape import Shape
from volumetric.cuboid import (
    cuboid_center_of_mass,
    cuboid_surface,
    cuboid_unit_angular_inertia,
    cuboid_volume,
)
from volumetric.volumetric import Volumetric


class Cuboid(Shape, Volumetric):
    """A box centered on its local origin.

    Parameters
    ----------
    half_extents : array_like
        One strictly positive, finite half-extent per axis. Its length
        (2 or 3) sets the dimension.
    dtype : type, optional
        Scalar precision, ``np.float32`` or ``np.float64``. Default: the
        ``precision`` of ``config``.
    config : VolumetricConfig, optional
        Volumetric settings, e.g. ``load_config(path).volumetric``.
        Default: the built-in configuration.

    Raises
    ------
    UnsupportedDimension
        If the half-extent vector has a length other than 2 or 3.
    InvalidShapeError
        If a half-extent is not finite or not strictly positive.
    """

    def __init__(
        self,
        half_extents,
        dtype: type | None = None,
        config: VolumetricConfig | None = None,
    ) -> None:
        if dtype is None:
            if config is None:
                config = default_config().volumetric
            dtype = config.dtype
        if np.dtype(dtype).type not in PRECISIONS.values():
            raise ValueError(f"Unsupported precision {dtype}, expected float32 or float64")

        half = np.array(half_extents, dtype=dtype)
        if half.ndim != 1:
            raise ValueError(f"Half-extents must be a vector, got shape {half.shape}")
        check_dimension(half.shape[0])
        if not np.all(np.isfinite(half)) or np.any(half <= 0):
            raise InvalidShapeError(
                f"Half-extents must be finite and strictly positive, got {half.tolist()}"
            )

        half.setflags(write=False)
        self._half_extents = half

    @property
    def half_extents(self) -> np.ndarray:
        """Read-only half-extent vector. Shape: (D,)."""
        return self._half_extents

    @property
    def dim(self) -> int:
        return int(self._half_extents.shape[0])

    @property
    def dtype(self) -> type:
        return self._half_extents.dtype.type

    def local_bounding_volume(self) -> BoundingBox:
        return BoundingBox.from_half_extents(self._half_extents)

    def bounding_volume(self, m: Isometry) -> BoundingBox:
        if m.dim != self.dim:
            raise ValueError(f"Cannot place a {self.dim}-D cuboid with a {m.dim}-D isometry")
        return BoundingBox.from_half_extents(self._half_extents, m)

    # -----------------------------------------------------------------
    # Volumetric
    # -----------------------------------------------------------------

    def volume(self) -> np.floating:
        return cuboid_volume(self.dim, self._half_extents)

    def surface(self) -> np.floating:
        return cuboid_surface(self.dim, self._half_extents)

    def center_of_mass(self) -> np.ndarray:
        return cuboid_center_of_mass(self.dim, self.dtype)

    def unit_angular_inertia(self) -> np.ndarray:
        return cuboid_unit_angular_inertia(self.dim, self._half_extents)

    # -----------------------------------------------------------------
    # Value semantics
    # -----------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Cuboid):
            return NotImplemented
        return self.dtype is other.dtype and np.array_equal(
            self._half_extents, other._half_extents
        )

    def __hash__(self) -> int:
        return hash((Cuboid, str(self._half_extents.dtype), self._half_extents.tobytes()))

    def __repr__(self) -> str:
        return (
            f"Cuboid(half_extents={self._half_extents.tolist()}, "
            f"dtype={self._half_extents.dtype.name})"
        )
