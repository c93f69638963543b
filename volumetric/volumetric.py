"""Mass-property capability for primitive shapes.

A primitive that knows its volume, surface, center of mass and unit-mass
angular inertia gets its mass, scaled inertia and a :class:`MassProperties`
record from :class:`Volumetric` for free.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True, eq=False)
class MassProperties:
    """Mass properties of one primitive for a given density.

    Attributes
    ----------
    mass : float
        Total mass [kg] (density times volume).
    center_of_mass : np.ndarray
        Center of mass in the shape's local frame. Shape: (D,).
    angular_inertia : np.ndarray
        Angular inertia tensor about the center of mass.
        Shape: (1, 1) in 2-D, (3, 3) in 3-D.
    """

    mass: float
    center_of_mass: np.ndarray
    angular_inertia: np.ndarray


class Volumetric(ABC):
    """Mixin for shapes with exact volumetric properties."""

    @abstractmethod
    def volume(self) -> np.floating:
        """Volume (area in 2-D)."""

    @abstractmethod
    def surface(self) -> np.floating:
        """Surface area (perimeter in 2-D)."""

    @abstractmethod
    def center_of_mass(self) -> np.ndarray:
        """Center of mass in the local frame."""

    @abstractmethod
    def unit_angular_inertia(self) -> np.ndarray:
        """Angular inertia tensor of the shape with unit mass."""

    def mass(self, density: float) -> np.floating:
        """Mass for a uniform ``density``."""
        if density < 0.0:
            raise ValueError(f"Density must be non-negative, got {density}")
        volume = self.volume()
        return volume * type(volume)(density)

    def angular_inertia(self, mass: float) -> np.ndarray:
        """Angular inertia tensor scaled to ``mass``."""
        unit = self.unit_angular_inertia()
        return unit * unit.dtype.type(mass)

    def mass_properties(self, density: float) -> MassProperties:
        mass = self.mass(density)
        return MassProperties(
            mass=mass,
            center_of_mass=self.center_of_mass(),
            angular_inertia=self.angular_inertia(mass),
        )
