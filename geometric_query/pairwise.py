"""Pairwise primitive algorithms and their registry.

Queries between two primitives are dispatched on the pair of shape types.
A :class:`PairwiseRegistry` maps ``(type_a, type_b)`` to a distance and a
contact function; a pair registered in one order also serves the reverse
order (distances are symmetric, contacts are flipped).

The only built-in algorithm is cuboid-cuboid for placements whose rotation
is a signed permutation of the axes. For those the placed boxes are exactly
their world AABBs, so distance and contact reduce to interval arithmetic
per axis. Arbitrary orientations need a general convex algorithm (GJK,
SAT) and raise :class:`~core_engine.errors.UnsupportedShapePair`.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass
from typing import Callable

import numpy as np

from bounding_volume.aabb import BoundingBox
from core_engine.constants import QueryConfig, default_config
from core_engine.errors import UnsupportedShapePair
from core_engine.isometry import Isometry
from geometric_query.types import Contact
from shapes.cuboid import Cuboid
from shapes.shape import Shape

DistanceFn = Callable[[Isometry, Shape, Isometry, Shape], float]
ContactFn = Callable[[Isometry, Shape, Isometry, Shape, float], "Contact | None"]


@dataclass(frozen=True)
class PairwiseAlgorithms:
    distance: DistanceFn
    contact: ContactFn


class PairwiseRegistry:
    """Pairwise algorithms keyed by primitive type pair.

    Lookups follow the method resolution order of both operands, so an
    algorithm registered for a base class also serves its subclasses.
    """

    def __init__(self) -> None:
        self._algorithms: dict[tuple[type, type], PairwiseAlgorithms] = {}

    def register_pairwise(
        self,
        type_a: type,
        type_b: type,
        distance: DistanceFn,
        contact: ContactFn,
    ) -> None:
        self._algorithms[(type_a, type_b)] = PairwiseAlgorithms(distance, contact)

    def lookup(self, g1: Shape, g2: Shape) -> tuple[PairwiseAlgorithms, bool]:
        """Find the algorithms for ``(g1, g2)``.

        Returns
        -------
        algorithms : PairwiseAlgorithms
            The registered functions.
        swapped : bool
            True if they were registered for ``(type(g2), type(g1))`` and
            must be called with the operands reversed.

        Raises
        ------
        UnsupportedShapePair
            If no algorithm is registered for the pair in either order.
        """
        for cls_a in type(g1).__mro__:
            for cls_b in type(g2).__mro__:
                if (cls_a, cls_b) in self._algorithms:
                    return self._algorithms[(cls_a, cls_b)], False
                if (cls_b, cls_a) in self._algorithms:
                    return self._algorithms[(cls_b, cls_a)], True
        raise UnsupportedShapePair(
            f"No pairwise algorithm for {type(g1).__name__} vs {type(g2).__name__}"
        )

    def distance(self, m1: Isometry, g1: Shape, m2: Isometry, g2: Shape) -> float:
        algorithms, swapped = self.lookup(g1, g2)
        if swapped:
            return algorithms.distance(m2, g2, m1, g1)
        return algorithms.distance(m1, g1, m2, g2)

    def contact(
        self,
        m1: Isometry,
        g1: Shape,
        m2: Isometry,
        g2: Shape,
        prediction: float,
    ) -> Contact | None:
        algorithms, swapped = self.lookup(g1, g2)
        if swapped:
            found = algorithms.contact(m2, g2, m1, g1, prediction)
            return None if found is None else found.flipped()
        return algorithms.contact(m1, g1, m2, g2, prediction)

    def __contains__(self, pair: tuple[type, type]) -> bool:
        return pair in self._algorithms or (pair[1], pair[0]) in self._algorithms


def default_registry(config: QueryConfig | None = None) -> PairwiseRegistry:
    """A new registry holding the built-in algorithms.

    Parameters
    ----------
    config : QueryConfig, optional
        Query settings. Default: the built-in configuration.
    """
    if config is None:
        config = default_config().query

    registry = PairwiseRegistry()
    registry.register_pairwise(
        Cuboid,
        Cuboid,
        distance=functools.partial(
            cuboid_cuboid_distance, alignment_tolerance=config.alignment_tolerance
        ),
        contact=functools.partial(
            cuboid_cuboid_contact, alignment_tolerance=config.alignment_tolerance
        ),
    )
    return registry


# ===================================================================
# CUBOID-CUBOID (axis-aligned placements)
# ===================================================================


def _aligned_world_boxes(
    m1: Isometry,
    g1: Cuboid,
    m2: Isometry,
    g2: Cuboid,
    alignment_tolerance: float,
) -> tuple[BoundingBox, BoundingBox]:
    if g1.dim != g2.dim:
        raise ValueError(f"Cannot query a {g1.dim}-D shape against a {g2.dim}-D shape")
    if not (m1.is_axis_aligned(alignment_tolerance) and m2.is_axis_aligned(alignment_tolerance)):
        raise UnsupportedShapePair(
            "Cuboid-cuboid queries require rotations that are signed axis permutations"
        )
    return g1.bounding_volume(m1), g2.bounding_volume(m2)


def cuboid_cuboid_distance(
    m1: Isometry,
    g1: Cuboid,
    m2: Isometry,
    g2: Cuboid,
    alignment_tolerance: float = 1e-9,
) -> float:
    """Exact distance between two axis-aligned placed cuboids (0 if they overlap)."""
    box1, box2 = _aligned_world_boxes(m1, g1, m2, g2, alignment_tolerance)
    return box1.distance(box2)


def cuboid_cuboid_contact(
    m1: Isometry,
    g1: Cuboid,
    m2: Isometry,
    g2: Cuboid,
    prediction: float,
    alignment_tolerance: float = 1e-9,
) -> Contact | None:
    """Contact between two axis-aligned placed cuboids.

    Separated boxes yield their closest points (negative depth) if they are
    no farther apart than ``prediction``. Overlapping or touching boxes yield
    the axis of minimum penetration, with ``world1`` and ``world2`` on the
    faces of each box along that axis.
    """
    box1, box2 = _aligned_world_boxes(m1, g1, m2, g2, alignment_tolerance)
    min1, max1, min2, max2 = box1.mins, box1.maxs, box2.mins, box2.maxs

    # Midpoint of the overlap interval (only meaningful on overlapping axes)
    mid = (np.maximum(min1, min2) + np.minimum(max1, max2)) * 0.5
    world1 = mid.copy()
    world2 = mid.copy()

    dist = box1.distance(box2)
    if dist > 0.0:
        if dist > prediction:
            return None
        for axis in range(box1.dim):
            if max1[axis] < min2[axis]:
                world1[axis], world2[axis] = max1[axis], min2[axis]
            elif max2[axis] < min1[axis]:
                world1[axis], world2[axis] = min1[axis], max2[axis]
        normal = (world2 - world1) / dist
        return Contact(world1, world2, normal, -dist)

    # Penetration if box2 is pushed along +axis (row 0) or -axis (row 1)
    penetrations = np.stack([max1 - min2, max2 - min1])
    side, axis = np.unravel_index(int(np.argmin(penetrations)), penetrations.shape)
    depth = float(penetrations[side, axis])

    normal = np.zeros(box1.dim, dtype=np.float64)
    if side == 0:
        normal[axis] = 1.0
        world1[axis], world2[axis] = max1[axis], min2[axis]
    else:
        normal[axis] = -1.0
        world1[axis], world2[axis] = min1[axis], max2[axis]

    return Contact(world1, world2, normal, depth)
