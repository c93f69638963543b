"""Tests for distance, proximity and contact queries.

Covers the pairwise cuboid algorithm, recursion into composite operands on
either side (including nested composites and composite pairs) and pruning.
"""

from __future__ import annotations

import numpy as np
import pytest

from core_engine.constants import QueryConfig
from core_engine.errors import UnsupportedShapePair
from core_engine.isometry import Isometry
from geometric_query import (
    PairwiseRegistry,
    Proximity,
    contact,
    default_registry,
    distance,
    proximity,
)
from geometric_query.pairwise import cuboid_cuboid_contact
from shapes.composite import CompositeShape, Compound, GeneratedComposite
from shapes.cuboid import Cuboid
from shapes.shape import Shape


# ===================================================================
# FIXTURES
# ===================================================================


@pytest.fixture
def unit_box() -> Cuboid:
    return Cuboid([1.0, 1.0])


@pytest.fixture
def box_at_six() -> Isometry:
    return Isometry.new([6.0, 0.0])


# ===================================================================
# CROSSED CUBOIDS SCENARIO
# ===================================================================


class TestCrossedCuboids:
    """A cross of two rectangles queried against a unit box at (6, 0)."""

    def test_distance(
        self, crossed_cuboids: CompositeShape, unit_box: Cuboid, box_at_six: Isometry
    ) -> None:
        d = distance(Isometry.identity(2), crossed_cuboids, box_at_six, unit_box)
        assert d == pytest.approx(2.0), f"Expected distance 2.0, got {d}"

    def test_proximity_disjoint(
        self, crossed_cuboids: CompositeShape, unit_box: Cuboid, box_at_six: Isometry
    ) -> None:
        prox = proximity(Isometry.identity(2), crossed_cuboids, box_at_six, unit_box, 0.0)
        assert prox is Proximity.DISJOINT

    def test_no_contact(
        self, crossed_cuboids: CompositeShape, unit_box: Cuboid, box_at_six: Isometry
    ) -> None:
        assert contact(Isometry.identity(2), crossed_cuboids, box_at_six, unit_box, 0.0) is None

    def test_operand_order_does_not_matter(
        self, crossed_cuboids: CompositeShape, unit_box: Cuboid, box_at_six: Isometry
    ) -> None:
        d = distance(box_at_six, unit_box, Isometry.identity(2), crossed_cuboids)
        assert d == pytest.approx(2.0)

    def test_within_margin(
        self, crossed_cuboids: CompositeShape, unit_box: Cuboid, box_at_six: Isometry
    ) -> None:
        prox = proximity(Isometry.identity(2), crossed_cuboids, box_at_six, unit_box, 2.5)
        assert prox is Proximity.WITHIN_MARGIN

    def test_contact_with_prediction(
        self, crossed_cuboids: CompositeShape, unit_box: Cuboid, box_at_six: Isometry
    ) -> None:
        found = contact(Isometry.identity(2), crossed_cuboids, box_at_six, unit_box, 2.5)

        assert found is not None
        assert found.depth == pytest.approx(-2.0)
        np.testing.assert_allclose(found.normal, [1.0, 0.0])
        assert found.world1[0] == pytest.approx(3.0)
        assert found.world2[0] == pytest.approx(5.0)

    def test_flipped_contact_when_composite_second(
        self, crossed_cuboids: CompositeShape, unit_box: Cuboid, box_at_six: Isometry
    ) -> None:
        found = contact(box_at_six, unit_box, Isometry.identity(2), crossed_cuboids, 2.5)

        assert found is not None
        np.testing.assert_allclose(found.normal, [-1.0, 0.0])
        assert found.world1[0] == pytest.approx(5.0), "world1 lies on the first operand"

    def test_moved_composite(
        self, crossed_cuboids: CompositeShape, unit_box: Cuboid, box_at_six: Isometry
    ) -> None:
        m = Isometry.new([0.0, 3.0])
        assert distance(m, crossed_cuboids, box_at_six, unit_box) == pytest.approx(np.sqrt(8.0))

    def test_far_parts_are_not_materialized(
        self, crossed_cuboids: CompositeShape, unit_box: Cuboid, box_at_six: Isometry
    ) -> None:
        proximity(Isometry.identity(2), crossed_cuboids, box_at_six, unit_box, 0.0)
        assert crossed_cuboids.materializations == 0, "Both parts are pruned by the tree"

        distance(Isometry.identity(2), crossed_cuboids, box_at_six, unit_box)
        assert crossed_cuboids.materializations == 1, (
            "The vertical part's box is 3 away, farther than the horizontal part"
        )


# ===================================================================
# PRIMITIVE PAIRS
# ===================================================================


class TestCuboidPair:
    """The axis-aligned cuboid-cuboid algorithm."""

    def test_overlap(self, unit_box: Cuboid) -> None:
        m1 = Isometry.identity(2)
        m2 = Isometry.new([1.5, 0.2])

        assert distance(m1, unit_box, m2, unit_box) == 0.0
        assert proximity(m1, unit_box, m2, unit_box, 0.0) is Proximity.INTERSECTING

        found = contact(m1, unit_box, m2, unit_box, 0.0)
        assert found is not None
        assert found.depth == pytest.approx(0.5)
        np.testing.assert_array_equal(found.normal, [1.0, 0.0])
        assert found.world1[0] == pytest.approx(1.0)
        assert found.world2[0] == pytest.approx(0.5)

    def test_touching_is_intersecting(self, unit_box: Cuboid) -> None:
        m2 = Isometry.new([2.0, 0.0])
        assert proximity(Isometry.identity(2), unit_box, m2, unit_box, 0.0) is Proximity.INTERSECTING

    def test_diagonal_gap_3d(self) -> None:
        box = Cuboid([1.0, 1.0, 1.0])
        m2 = Isometry.new([5.0, 6.0, 0.0])
        assert distance(Isometry.identity(3), box, m2, box) == pytest.approx(5.0)

        found = contact(Isometry.identity(3), box, m2, box, 10.0)
        assert found is not None
        np.testing.assert_allclose(found.normal, [0.6, 0.8, 0.0])
        np.testing.assert_allclose(found.world1, [1.0, 1.0, 0.0])
        np.testing.assert_allclose(found.world2, [4.0, 5.0, 0.0])

    def test_quarter_turn_is_supported(self) -> None:
        m2 = Isometry.new([5.0, 0.0], np.pi / 2)
        d = distance(Isometry.identity(2), Cuboid([1.0, 1.0]), m2, Cuboid([2.0, 1.0]))
        assert d == pytest.approx(3.0)

    def test_oblique_rotation_unsupported(self, unit_box: Cuboid) -> None:
        m2 = Isometry.new([5.0, 0.0], 0.3)
        with pytest.raises(UnsupportedShapePair):
            distance(Isometry.identity(2), unit_box, m2, unit_box)

    def test_looser_tolerance_accepts_near_alignment(self, unit_box: Cuboid) -> None:
        registry = default_registry(QueryConfig(alignment_tolerance=1e-3))
        m2 = Isometry.new([5.0, 0.0], 1e-5)
        d = distance(Isometry.identity(2), unit_box, m2, unit_box, registry=registry)
        assert d == pytest.approx(3.0, abs=1e-4)

    def test_negative_margin_rejected(self, unit_box: Cuboid) -> None:
        m = Isometry.identity(2)
        with pytest.raises(ValueError):
            proximity(m, unit_box, m, unit_box, -1.0)
        with pytest.raises(ValueError):
            contact(m, unit_box, m, unit_box, -0.5)


# ===================================================================
# REGISTRY
# ===================================================================


class _Marker(Shape):
    """Primitive with no registered algorithm."""

    @property
    def dim(self) -> int:
        return 2

    def bounding_volume(self, m: Isometry):
        return Cuboid([0.5, 0.5]).bounding_volume(m)


class TestRegistry:
    """Dispatch on shape type pairs."""

    def test_unregistered_pair(self, unit_box: Cuboid) -> None:
        with pytest.raises(UnsupportedShapePair):
            distance(Isometry.identity(2), unit_box, Isometry.new([3.0, 0.0]), _Marker())

    def test_unsupported_is_not_implemented(self, unit_box: Cuboid) -> None:
        with pytest.raises(NotImplementedError):
            distance(Isometry.identity(2), _Marker(), Isometry.new([3.0, 0.0]), unit_box)

    def test_reverse_order_registration(self, unit_box: Cuboid) -> None:
        registry = PairwiseRegistry()
        registry.register_pairwise(
            _Marker,
            Cuboid,
            distance=lambda m1, g1, m2, g2: 42.0,
            contact=lambda m1, g1, m2, g2, prediction: cuboid_cuboid_contact(
                m1, Cuboid([0.5, 0.5]), m2, g2, prediction
            ),
        )
        assert (Cuboid, _Marker) in registry

        m1 = Isometry.identity(2)
        m2 = Isometry.new([3.0, 0.0])
        assert distance(m1, unit_box, m2, _Marker(), registry=registry) == 42.0

        found = contact(m1, unit_box, m2, _Marker(), 5.0, registry=registry)
        assert found is not None
        np.testing.assert_allclose(found.normal, [1.0, 0.0])
        assert found.world1[0] == pytest.approx(1.0), "Contact is expressed from the cuboid"

    def test_default_registries_are_independent(self) -> None:
        first = default_registry()
        first.register_pairwise(_Marker, _Marker, lambda *a: 0.0, lambda *a: None)
        assert (_Marker, _Marker) not in default_registry()


# ===================================================================
# COMPOSITE RECURSION
# ===================================================================


class TestCompositeRecursion:
    """Nested composites, composite pairs and agreement with brute force."""

    def test_nested_composite(self, crossed_cuboids: CompositeShape, unit_box: Cuboid) -> None:
        outer = Compound([(Isometry.new([10.0, 0.0]), crossed_cuboids)])
        m2 = Isometry.new([16.0, 0.0])

        assert distance(Isometry.identity(2), outer, m2, unit_box) == pytest.approx(2.0)
        assert proximity(Isometry.identity(2), outer, m2, unit_box, 0.0) is Proximity.DISJOINT

    def test_composite_vs_composite(self, crossed_cuboids: CompositeShape) -> None:
        other = Compound([(Isometry.new([0.0, 0.0]), Cuboid([0.5, 0.5]))])
        m2 = Isometry.new([1.0, 8.0])

        # Top of the vertical part is y=3, bottom of the small box is y=7.5
        assert distance(Isometry.identity(2), crossed_cuboids, m2, other) == pytest.approx(4.5)

        m2_overlap = Isometry.new([1.0, 1.0])
        assert (
            proximity(Isometry.identity(2), crossed_cuboids, m2_overlap, other, 0.0)
            is Proximity.INTERSECTING
        )
        found = contact(Isometry.identity(2), crossed_cuboids, m2_overlap, other, 0.0)
        assert found is not None and found.depth > 0.0

    def test_distance_matches_brute_force(self, rng: np.random.Generator) -> None:
        centers = rng.uniform(-50.0, 50.0, size=(300, 3))
        halves = rng.uniform(0.2, 2.0, size=(300, 3))
        parts = [(Isometry.new(centers[i]), Cuboid(halves[i])) for i in range(300)]
        compound = Compound(parts)

        other = Cuboid([1.0, 1.0, 1.0])
        for _ in range(10):
            m2 = Isometry.new(rng.uniform(-80.0, 80.0, size=3))
            expected = min(
                distance(placement, shape, m2, other) for placement, shape in parts
            )
            assert distance(Isometry.identity(3), compound, m2, other) == pytest.approx(expected)

    def test_deepest_contact_wins(self) -> None:
        composite = GeneratedComposite(
            2,
            lambda i: (Isometry.new([0.0, 0.0]), Cuboid([1.0, 1.0] if i == 0 else [2.0, 2.0])),
            lambda i: Cuboid([1.0, 1.0] if i == 0 else [2.0, 2.0]).local_bounding_volume(),
        )
        other = Cuboid([1.0, 1.0])
        found = contact(Isometry.identity(2), composite, Isometry.new([2.0, 0.0]), other, 0.0)

        assert found is not None
        assert found.depth == pytest.approx(1.0), "Penetration into the larger part is deeper"
