"""Distance, proximity and contact between two placed shapes.

Either operand may be a :class:`~shapes.composite.CompositeShape`, possibly
nested. A composite operand is handled by moving the other operand's
bounding box into the composite's local frame, pruning the composite's
parts with its BVT, and recursing into the surviving parts through
:meth:`~shapes.composite.CompositeShape.for_each_part_with_transform`.
Pairs of primitives go to the pairwise registry.

Pruning
-------
- ``distance``: best-first branch-and-bound over the tree, with the box
  distance of each node as lower bound. Subtrees that cannot beat the best
  part found so far are never visited.
- ``proximity`` / ``contact``: only parts whose box overlaps the other
  operand's box loosened by the margin can be within the margin.

Every entry point takes an optional :class:`PairwiseRegistry`; without one
a registry with the built-in algorithms is created for the call.
"""

from __future__ import annotations

import logging

import numpy as np

from bounding_volume.aabb import BoundingBox, aabb_distance_squared
from core_engine.isometry import Isometry
from geometric_query.pairwise import PairwiseRegistry, default_registry
from geometric_query.types import Contact, Proximity
from shapes.composite import CompositeShape
from shapes.shape import Shape

logger = logging.getLogger(__name__)


def _local_box(m_composite: Isometry, m_other: Isometry, other: Shape) -> BoundingBox:
    """Bounding box of ``other`` in the local frame of a composite placed at ``m_composite``."""
    return other.bounding_volume(m_composite.inverse() * m_other)


def _check_margin(name: str, value: float) -> float:
    value = float(value)
    if not value >= 0.0:
        raise ValueError(f"{name} must be non-negative, got {value}")
    return value


# ===================================================================
# DISTANCE
# ===================================================================


def distance(
    m1: Isometry,
    g1: Shape,
    m2: Isometry,
    g2: Shape,
    registry: PairwiseRegistry | None = None,
) -> float:
    """Minimum separation distance between two placed shapes (0 if they overlap).

    Raises
    ------
    UnsupportedShapePair
        If two primitives met during the query have no pairwise algorithm.
    """
    if registry is None:
        registry = default_registry()

    if g1.is_composite():
        return _composite_distance(m1, g1, m2, g2, registry)
    if g2.is_composite():
        return _composite_distance(m2, g2, m1, g1, registry)
    return float(registry.distance(m1, g1, m2, g2))


def _composite_distance(
    m1: Isometry,
    g1: CompositeShape,
    m2: Isometry,
    g2: Shape,
    registry: PairwiseRegistry,
) -> float:
    other = _local_box(m1, m2, g2)
    visited = [0]

    def cost_bound(mins: np.ndarray, maxs: np.ndarray) -> float:
        return float(np.sqrt(aabb_distance_squared(mins, maxs, other.mins, other.maxs)))

    def evaluate(index: int) -> float:
        visited[0] += 1
        return g1.for_each_part_with_transform(
            index, m1, lambda pm, part: distance(pm, part, m2, g2, registry)
        )

    best, _ = g1.spatial_index().best_first(cost_bound, evaluate)
    logger.debug(
        "distance: evaluated %d of %d parts of %s",
        visited[0],
        g1.part_count(),
        type(g1).__name__,
    )
    return best


# ===================================================================
# PROXIMITY
# ===================================================================


def proximity(
    m1: Isometry,
    g1: Shape,
    m2: Isometry,
    g2: Shape,
    margin: float,
    registry: PairwiseRegistry | None = None,
) -> Proximity:
    """Classify two placed shapes against ``margin``.

    ``INTERSECTING`` if they touch or overlap, ``WITHIN_MARGIN`` if their
    distance is at most ``margin``, ``DISJOINT`` otherwise.

    Raises
    ------
    ValueError
        If ``margin`` is negative.
    """
    margin = _check_margin("Margin", margin)
    if registry is None:
        registry = default_registry()

    if g1.is_composite():
        return _composite_proximity(m1, g1, m2, g2, margin, registry)
    if g2.is_composite():
        return _composite_proximity(m2, g2, m1, g1, margin, registry)

    dist = registry.distance(m1, g1, m2, g2)
    if dist <= 0.0:
        return Proximity.INTERSECTING
    if dist <= margin:
        return Proximity.WITHIN_MARGIN
    return Proximity.DISJOINT


def _composite_proximity(
    m1: Isometry,
    g1: CompositeShape,
    m2: Isometry,
    g2: Shape,
    margin: float,
    registry: PairwiseRegistry,
) -> Proximity:
    candidates = g1.spatial_index().intersecting(_local_box(m1, m2, g2).loosened(margin))
    logger.debug(
        "proximity: %d of %d parts of %s survive pruning",
        len(candidates),
        g1.part_count(),
        type(g1).__name__,
    )

    result = Proximity.DISJOINT
    for index in candidates:
        part_result = g1.for_each_part_with_transform(
            index, m1, lambda pm, part: proximity(pm, part, m2, g2, margin, registry)
        )
        if part_result is Proximity.INTERSECTING:
            return part_result
        if part_result is Proximity.WITHIN_MARGIN:
            result = part_result
    return result


# ===================================================================
# CONTACT
# ===================================================================


def contact(
    m1: Isometry,
    g1: Shape,
    m2: Isometry,
    g2: Shape,
    prediction: float,
    registry: PairwiseRegistry | None = None,
) -> Contact | None:
    """Deepest contact between two placed shapes.

    Returns None if the shapes are farther apart than ``prediction``. For a
    composite operand the contact of the deepest part is returned, expressed
    with ``g1`` as the first shape.

    Raises
    ------
    ValueError
        If ``prediction`` is negative.
    """
    prediction = _check_margin("Prediction", prediction)
    if registry is None:
        registry = default_registry()

    if g1.is_composite():
        return _composite_contact(m1, g1, m2, g2, prediction, registry)
    if g2.is_composite():
        found = _composite_contact(m2, g2, m1, g1, prediction, registry)
        return None if found is None else found.flipped()
    return registry.contact(m1, g1, m2, g2, prediction)


def _composite_contact(
    m1: Isometry,
    g1: CompositeShape,
    m2: Isometry,
    g2: Shape,
    prediction: float,
    registry: PairwiseRegistry,
) -> Contact | None:
    candidates = g1.spatial_index().intersecting(
        _local_box(m1, m2, g2).loosened(prediction)
    )
    logger.debug(
        "contact: %d of %d parts of %s survive pruning",
        len(candidates),
        g1.part_count(),
        type(g1).__name__,
    )

    deepest: Contact | None = None
    for index in candidates:
        found = g1.for_each_part_with_transform(
            index, m1, lambda pm, part: contact(pm, part, m2, g2, prediction, registry)
        )
        if found is not None and (deepest is None or found.depth > deepest.depth):
            deepest = found
    return deepest
