"""Bounding volumes and the bounding-volume tree.

Axis-aligned bounding boxes with Numba overlap/distance/ray kernels, and a
balanced, read-only BVT used to prune geometric queries.
"""

from bounding_volume.aabb import (
    BoundingBox,
    aabb_distance_squared,
    aabb_intersects,
    ray_aabb_intersect,
)
from bounding_volume.bvt import BVT, build_bvt

__all__ = [
    "BoundingBox",
    "aabb_intersects",
    "aabb_distance_squared",
    "ray_aabb_intersect",
    "BVT",
    "build_bvt",
]
