"""Result types of geometric queries."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import numpy as np


class Proximity(Enum):
    """Coarse classification of two shapes against a margin."""

    INTERSECTING = "intersecting"
    WITHIN_MARGIN = "within_margin"
    DISJOINT = "disjoint"


@dataclass(frozen=True, eq=False)
class Contact:
    """Closest (or deepest) pair of points between two shapes.

    Attributes
    ----------
    world1 : np.ndarray
        Contact point on the first shape, world frame. Shape: (D,).
    world2 : np.ndarray
        Contact point on the second shape, world frame. Shape: (D,).
    normal : np.ndarray
        Unit normal pointing from the first shape toward the second.
    depth : float
        Penetration depth; negative when the shapes are separated
        (``-depth`` is then their distance).
    """

    world1: np.ndarray
    world2: np.ndarray
    normal: np.ndarray
    depth: float

    def flipped(self) -> Contact:
        """The same contact seen from the second shape."""
        return Contact(self.world2, self.world1, -self.normal, self.depth)

    def __repr__(self) -> str:
        return (
            f"Contact(world1={self.world1.tolist()}, world2={self.world2.tolist()}, "
            f"normal={self.normal.tolist()}, depth={self.depth})"
        )
