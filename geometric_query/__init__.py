"""Geometric queries between placed shapes, with composite recursion."""

from geometric_query.pairwise import (
    PairwiseRegistry,
    cuboid_cuboid_contact,
    cuboid_cuboid_distance,
    default_registry,
)
from geometric_query.query import contact, distance, proximity
from geometric_query.types import Contact, Proximity

__all__ = [
    "distance",
    "proximity",
    "contact",
    "Contact",
    "Proximity",
    "PairwiseRegistry",
    "default_registry",
    "cuboid_cuboid_distance",
    "cuboid_cuboid_contact",
]
