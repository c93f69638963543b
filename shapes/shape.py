"""Shape capability base class."""

from __future__ import annotations

from abc import ABC, abstractmethod

from bounding_volume.aabb import BoundingBox
from core_engine.isometry import Isometry


class Shape(ABC):
    """Anything that can be placed in space and bounded.

    Geometric queries are written against this minimal capability set:
    primitives additionally have pairwise algorithms registered in
    :mod:`geometric_query.pairwise`, composites expose their parts through
    :class:`shapes.composite.CompositeShape`.
    """

    @property
    @abstractmethod
    def dim(self) -> int:
        """Spatial dimension (2 or 3)."""

    @abstractmethod
    def bounding_volume(self, m: Isometry) -> BoundingBox:
        """Bounding box of the shape once placed at ``m``."""

    def is_composite(self) -> bool:
        return False
