"""Axis-aligned bounding boxes.

A :class:`BoundingBox` is the bounding volume used by every spatial index
and broad-phase test in this project. Boxes are immutable: geometry changes
produce new boxes, never in-place updates.

Design Notes
------------
- **Precision**: corners are stored as float64 regardless of the precision
  of the shape they bound; widening float32 is exact, so a box built from a
  float32 primitive still matches that primitive bit for bit.
- **Kernels**: the overlap, distance and ray-slab tests are Numba
  ``@njit(cache=True)`` functions over raw corner arrays so tree traversal
  code can call them without building Python objects per node.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

import numpy as np
from numba import boolean, njit

from core_engine.errors import EmptyInputError, check_dimension
from core_engine.isometry import Isometry


# ===================================================================
# AABB KERNELS (Numba JIT)
# ===================================================================


@njit(cache=True, fastmath=False)
def aabb_intersects(
    min1: np.ndarray,
    max1: np.ndarray,
    min2: np.ndarray,
    max2: np.ndarray,
) -> boolean:
    """Test two boxes for overlap (touching counts as overlap)."""
    for axis in range(min1.shape[0]):
        if max1[axis] < min2[axis] or max2[axis] < min1[axis]:
            return False
    return True


@njit(cache=True, fastmath=False)
def aabb_distance_squared(
    min1: np.ndarray,
    max1: np.ndarray,
    min2: np.ndarray,
    max2: np.ndarray,
) -> float:
    """Squared Euclidean distance between two boxes (0 if they overlap)."""
    acc = 0.0
    for axis in range(min1.shape[0]):
        gap = 0.0
        if max1[axis] < min2[axis]:
            gap = min2[axis] - max1[axis]
        elif max2[axis] < min1[axis]:
            gap = min1[axis] - max2[axis]
        acc += gap * gap
    return acc


@njit(cache=True, fastmath=False)
def ray_aabb_intersect(
    ray_origin: np.ndarray,
    inv_dir: np.ndarray,
    bbox_min: np.ndarray,
    bbox_max: np.ndarray,
    t_max_limit: float,
) -> boolean:
    """Test if a ray intersects an axis-aligned bounding box.

    Uses the slab method with precomputed inverse direction to avoid
    division. Works in any dimension.

    Parameters
    ----------
    ray_origin : np.ndarray
        Ray origin. Shape: (D,).
    inv_dir : np.ndarray
        Precomputed 1.0 / ray_dir for each axis (a large finite value where
        the direction component is zero). Shape: (D,).
    bbox_min, bbox_max : np.ndarray
        Box corners. Shape: (D,).
    t_max_limit : float
        Maximum parametric distance (for early culling).

    Returns
    -------
    bool
        True if the ray intersects the box within [0, t_max_limit].
    """
    t_min = 0.0
    t_max = t_max_limit

    for axis in range(ray_origin.shape[0]):
        t1 = (bbox_min[axis] - ray_origin[axis]) * inv_dir[axis]
        t2 = (bbox_max[axis] - ray_origin[axis]) * inv_dir[axis]

        # Swap so t1 <= t2
        if t1 > t2:
            t1, t2 = t2, t1

        if t1 > t_min:
            t_min = t1
        if t2 < t_max:
            t_max = t2

        if t_min > t_max:
            return False

    return True


# ===================================================================
# BOUNDING BOX
# ===================================================================


@dataclass(frozen=True, eq=False)
class BoundingBox:
    """An axis-aligned box ``[mins, maxs]`` in 2-D or 3-D.

    Attributes
    ----------
    mins : np.ndarray
        Minimum corner. Shape: (D,), dtype: float64, read-only.
    maxs : np.ndarray
        Maximum corner. Shape: (D,), dtype: float64, read-only.

    Raises
    ------
    ValueError
        If the corners differ in shape or ``mins > maxs`` on some axis.
    UnsupportedDimension
        If D is not 2 or 3.
    """

    mins: np.ndarray
    maxs: np.ndarray

    def __post_init__(self) -> None:
        mins = np.array(self.mins, dtype=np.float64)
        maxs = np.array(self.maxs, dtype=np.float64)

        if mins.ndim != 1 or mins.shape != maxs.shape:
            raise ValueError(
                f"Box corners must be vectors of equal length, got {mins.shape} and {maxs.shape}"
            )
        check_dimension(mins.shape[0])
        if np.any(np.isnan(mins)) or np.any(np.isnan(maxs)):
            raise ValueError("Box corners must not contain NaN")
        if np.any(mins > maxs):
            raise ValueError(f"mins must be <= maxs, got mins={mins}, maxs={maxs}")

        mins.setflags(write=False)
        maxs.setflags(write=False)
        object.__setattr__(self, "mins", mins)
        object.__setattr__(self, "maxs", maxs)

    # -----------------------------------------------------------------
    # Constructors
    # -----------------------------------------------------------------

    @classmethod
    def from_points(cls, points: np.ndarray) -> BoundingBox:
        """Smallest box containing every point. Shape: (N, D)."""
        points = np.asarray(points, dtype=np.float64)
        if points.ndim != 2 or points.shape[0] == 0:
            raise EmptyInputError("Cannot bound an empty point set")
        return cls(points.min(axis=0), points.max(axis=0))

    @classmethod
    def from_half_extents(
        cls,
        half_extents: np.ndarray,
        m: Isometry | None = None,
    ) -> BoundingBox:
        """Exact box of a centered box with ``half_extents`` placed at ``m``."""
        half = np.asarray(half_extents, dtype=np.float64)
        if m is None:
            return cls(-half, half)
        world_half = np.abs(m.rotation) @ half
        return cls(m.translation - world_half, m.translation + world_half)

    @classmethod
    def union(cls, boxes: Iterable[BoundingBox]) -> BoundingBox:
        """Smallest box containing every box of ``boxes``."""
        boxes = list(boxes)
        if not boxes:
            raise EmptyInputError("Cannot compute the union of zero boxes")
        mins = np.min(np.stack([b.mins for b in boxes]), axis=0)
        maxs = np.max(np.stack([b.maxs for b in boxes]), axis=0)
        return cls(mins, maxs)

    # -----------------------------------------------------------------
    # Geometry
    # -----------------------------------------------------------------

    @property
    def dim(self) -> int:
        return int(self.mins.shape[0])

    def center(self) -> np.ndarray:
        return (self.mins + self.maxs) * 0.5

    def half_extents(self) -> np.ndarray:
        return (self.maxs - self.mins) * 0.5

    def extents(self) -> np.ndarray:
        return self.maxs - self.mins

    def merged(self, other: BoundingBox) -> BoundingBox:
        self._check_same_dim(other)
        return BoundingBox(np.minimum(self.mins, other.mins), np.maximum(self.maxs, other.maxs))

    def loosened(self, margin: float) -> BoundingBox:
        """Box grown by ``margin`` on every side."""
        if margin < 0.0:
            raise ValueError(f"Margin must be non-negative, got {margin}")
        return BoundingBox(self.mins - margin, self.maxs + margin)

    def transformed(self, m: Isometry) -> BoundingBox:
        """Exact bounding box of this box once moved by ``m``."""
        if m.dim != self.dim:
            raise ValueError(f"Cannot move a {self.dim}-D box with a {m.dim}-D isometry")
        center = m.transform_point(self.center())
        world_half = np.abs(m.rotation) @ self.half_extents()
        return BoundingBox(center - world_half, center + world_half)

    # -----------------------------------------------------------------
    # Predicates and distances
    # -----------------------------------------------------------------

    def intersects(self, other: BoundingBox) -> bool:
        self._check_same_dim(other)
        return bool(aabb_intersects(self.mins, self.maxs, other.mins, other.maxs))

    def contains(self, other: BoundingBox) -> bool:
        self._check_same_dim(other)
        return bool(np.all(self.mins <= other.mins) and np.all(other.maxs <= self.maxs))

    def contains_point(self, point: np.ndarray) -> bool:
        point = np.asarray(point, dtype=np.float64)
        return bool(np.all(self.mins <= point) and np.all(point <= self.maxs))

    def distance(self, other: BoundingBox) -> float:
        """Euclidean distance between the two boxes (0 if they overlap)."""
        self._check_same_dim(other)
        return float(np.sqrt(aabb_distance_squared(self.mins, self.maxs, other.mins, other.maxs)))

    def equals(self, other: BoundingBox) -> bool:
        """Exact corner-for-corner equality."""
        return (
            self.dim == other.dim
            and np.array_equal(self.mins, other.mins)
            and np.array_equal(self.maxs, other.maxs)
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BoundingBox):
            return NotImplemented
        return self.equals(other)

    def __hash__(self) -> int:
        return hash((self.mins.tobytes(), self.maxs.tobytes()))

    def __repr__(self) -> str:
        return f"BoundingBox(mins={self.mins.tolist()}, maxs={self.maxs.tolist()})"

    def _check_same_dim(self, other: BoundingBox) -> None:
        if other.dim != self.dim:
            raise ValueError(f"Dimension mismatch: {self.dim}-D box vs {other.dim}-D box")
