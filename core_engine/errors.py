"""Error types shared by every geometry package.

All errors here are precondition violations raised at the boundary of the
offending call. None of them is transient: callers are expected to fix the
input, not to retry.
"""

from __future__ import annotations

SUPPORTED_DIMENSIONS: tuple[int, ...] = (2, 3)


class GeometryError(Exception):
    """Base class for all geometry errors."""


class IndexOutOfRange(GeometryError, IndexError):
    """A part index is outside ``[0, part_count)``."""


class UnsupportedDimension(GeometryError, ValueError):
    """A spatial dimension other than 2 or 3 was requested."""


class EmptyInputError(GeometryError, ValueError):
    """A bounding-volume tree (or a union) was requested over zero entries."""


class InvalidShapeError(GeometryError, ValueError):
    """A primitive shape violates its construction invariant."""


class UnsupportedShapePair(GeometryError, NotImplementedError):
    """No pairwise algorithm can handle the given pair of shapes."""


def check_dimension(dim: int) -> int:
    """Validate a spatial dimension.

    Parameters
    ----------
    dim : int
        Requested dimension.

    Returns
    -------
    int
        The validated dimension.

    Raises
    ------
    UnsupportedDimension
        If ``dim`` is not 2 or 3.
    """
    if dim not in SUPPORTED_DIMENSIONS:
        raise UnsupportedDimension(
            f"Dimension must be one of {SUPPORTED_DIMENSIONS}, got {dim}"
        )
    return int(dim)
