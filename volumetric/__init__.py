"""Volumetric Property Engine.

Exact volume, surface, center of mass and unit angular inertia of box
primitives, generic over dimension (2-D/3-D) and scalar precision.
"""

from volumetric.cuboid import (
    cuboid_center_of_mass,
    cuboid_surface,
    cuboid_unit_angular_inertia,
    cuboid_volume,
)
from volumetric.volumetric import MassProperties, Volumetric

__all__ = [
    "cuboid_volume",
    "cuboid_surface",
    "cuboid_center_of_mass",
    "cuboid_unit_angular_inertia",
    "MassProperties",
    "Volumetric",
]
