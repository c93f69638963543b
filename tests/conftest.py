"""Pytest configuration and shared fixtures for the geometry tests."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import numpy as np
import pytest


# Add project root to path so imports work
PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from bounding_volume.aabb import BoundingBox  # noqa: E402
from core_engine.isometry import Isometry  # noqa: E402
from shapes.composite import CompositeShape  # noqa: E402
from shapes.cuboid import Cuboid  # noqa: E402


def pytest_configure(config: pytest.Config) -> None:
    """Configure logging for tests."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(name)s [%(levelname)s] %(message)s",
    )


# ===================================================================
# SHARED SHAPES
# ===================================================================


class CrossedCuboids(CompositeShape):
    """A horizontal 4x2 and a vertical 2x4 rectangle, both centered at (1, 1).

    Parts are generated on the fly in single precision; the overall bound
    is a deliberately loose 20x20 box that follows the translation only.
    """

    def __init__(self) -> None:
        self.materializations = 0
        super().__init__()

    def part_count(self) -> int:
        return 2

    def part_bounding_box(self, index: int) -> BoundingBox:
        if index == 0:
            return BoundingBox([-1.0, 0.0], [3.0, 2.0])
        return BoundingBox([0.0, -1.0], [2.0, 3.0])

    def part_at(self, index: int) -> tuple[Isometry, Cuboid]:
        self.materializations += 1
        half_extents = [2.0, 1.0] if index == 0 else [1.0, 2.0]
        return Isometry.new([1.0, 1.0]), Cuboid(half_extents, dtype=np.float32)

    def bounding_volume(self, m: Isometry) -> BoundingBox:
        return BoundingBox(
            np.array([-10.0, -10.0]) + m.translation,
            np.array([10.0, 10.0]) + m.translation,
        )


@pytest.fixture
def crossed_cuboids() -> CrossedCuboids:
    return CrossedCuboids()


@pytest.fixture
def rng() -> np.random.Generator:
    """Seeded generator for reproducible random geometry."""
    return np.random.default_rng(42)
