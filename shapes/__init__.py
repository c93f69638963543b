"""Shapes: the capability base, the box primitive and composite shapes."""

from shapes.composite import CompositeShape, Compound, GeneratedComposite
from shapes.cuboid import Cuboid
from shapes.shape import Shape

__all__ = [
    "Shape",
    "Cuboid",
    "CompositeShape",
    "Compound",
    "GeneratedComposite",
]
