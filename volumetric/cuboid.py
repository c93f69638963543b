"""Volumetric properties of a centered, axis-aligned cuboid.

Every function takes the spatial dimension (2 or 3) and the half-extent
vector and returns an exact result in the scalar type of the half-extents,
so float32 boxes get float32 properties and float64 boxes float64 ones.
Integer half-extents are promoted to float64.

Formulas
--------
With ``h`` the half-extents and ``w = (1/12) * 2 * 2 = 1/3``:

- volume:  ``prod(2 * h_i)``
- surface: 2-D perimeter ``4 * (h0 + h1)``;
  3-D area ``2 * (xx*yy + xx*zz + yy*zz)`` with ``xx = 2*h0`` etc.
- center of mass: the origin of the local frame.
- unit angular inertia (``i_k = w * h_k**2``):
  2-D ``[[ix + iy]]``; 3-D ``diag(iy + iz, ix + iz, ix + iy)``.

Positivity of the half-extents is the primitive's construction invariant
and is not checked here.
"""

from __future__ import annotations

import numpy as np

from core_engine.errors import check_dimension


def _as_half_extents(dim: int, half_extents: np.ndarray) -> np.ndarray:
    """Validate ``dim`` and return the half-extents as a float array."""
    dim = check_dimension(dim)
    he = np.asarray(half_extents)
    if not np.issubdtype(he.dtype, np.floating):
        he = he.astype(np.float64)
    if he.shape != (dim,):
        raise ValueError(
            f"Expected {dim} half-extents for a {dim}-D cuboid, got shape {he.shape}"
        )
    return he


def cuboid_volume(dim: int, half_extents: np.ndarray) -> np.floating:
    """The volume (area in 2-D) of a cuboid."""
    he = _as_half_extents(dim, half_extents)
    scalar = he.dtype.type
    two = scalar(2.0)

    res = scalar(1.0)
    for half_extent in he:
        res = res * half_extent * two

    return res


def cuboid_surface(dim: int, half_extents: np.ndarray) -> np.floating:
    """The surface (perimeter in 2-D) of a cuboid."""
    he = _as_half_extents(dim, half_extents)
    scalar = he.dtype.type

    if dim == 2:
        return (he[0] + he[1]) * scalar(4.0)

    xx = he[0] + he[0]
    yy = he[1] + he[1]
    zz = he[2] + he[2]

    side_xy = xx * yy
    side_xz = xx * zz
    side_yz = yy * zz

    return (side_xy + side_xz + side_yz) * scalar(2.0)


def cuboid_center_of_mass(dim: int, dtype: type = np.float64) -> np.ndarray:
    """The center of mass of a cuboid: the local origin."""
    dim = check_dimension(dim)
    return np.zeros(dim, dtype=dtype)


def cuboid_unit_angular_inertia(dim: int, half_extents: np.ndarray) -> np.ndarray:
    """The angular inertia tensor of a unit-mass cuboid.

    Returns
    -------
    np.ndarray
        Shape (1, 1) in 2-D (the out-of-plane moment), (3, 3) diagonal in
        3-D. Same dtype as the half-extents.
    """
    he = _as_half_extents(dim, half_extents)
    scalar = he.dtype.type

    _2 = scalar(2.0)
    _i12 = scalar(1.0 / 12.0)
    w = _i12 * _2 * _2
    ix = w * he[0] * he[0]
    iy = w * he[1] * he[1]

    if dim == 2:
        res = np.zeros((1, 1), dtype=he.dtype)
        res[0, 0] = ix + iy
        return res

    iz = w * he[2] * he[2]

    res = np.zeros((3, 3), dtype=he.dtype)
    res[0, 0] = iy + iz
    res[1, 1] = ix + iz
    res[2, 2] = ix + iy

    return res
