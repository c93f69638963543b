"""Composite shapes: many placed sub-shapes queried as one.

A composite never stores its parts as persistent objects. It knows how many
parts it has, the local bounding box of each part (needed up front to seed
the spatial index) and a rule that materializes a part, with its placement,
from its index on demand. Geometric queries prune parts with the owned
:class:`~bounding_volume.bvt.BVT` and only materialize the survivors.

Design Notes
------------
- **Consistency**: :meth:`CompositeShape.bounding_box_of_part` returns the
  very box stored in the tree for that leaf, so the boxes used for pruning
  and the boxes reported to callers can never drift apart.
- **No caching**: every call to :meth:`CompositeShape.for_each_part_with_transform`
  materializes the part again; a generation rule that is a pure function of
  the index therefore yields bit-identical results on repeated calls.
- **Read-only**: the tree is built once in ``__init__``. A composite whose
  parts change must be rebuilt as a new instance.
"""

from __future__ import annotations

import logging
import operator
from abc import abstractmethod
from typing import Callable, Sequence, TypeVar

from bounding_volume.aabb import BoundingBox
from bounding_volume.bvt import BVT, build_bvt
from core_engine.constants import BVTConfig, default_config
from core_engine.errors import IndexOutOfRange
from core_engine.isometry import Isometry
from shapes.shape import Shape

logger = logging.getLogger(__name__)

T = TypeVar("T")

PartCallback = Callable[[Isometry, Shape], T]


class CompositeShape(Shape):
    """Base class of every composite shape.

    Subclasses define the generation rule through :meth:`part_count`,
    :meth:`part_bounding_box` and :meth:`part_at`, set up whatever state
    those need, and then call ``super().__init__()``, which builds the
    spatial index over all parts.

    Parameters
    ----------
    split_strategy : str, optional
        BVT split heuristic. Default: the ``split_strategy`` of ``config``.
    config : BVTConfig, optional
        Tree settings, e.g. ``load_config(path).bvt``. Default: the
        built-in configuration.

    Raises
    ------
    EmptyInputError
        If the composite has zero parts.
    ValueError
        If the parts' bounding boxes do not share one dimension.
    """

    def __init__(
        self,
        split_strategy: str | None = None,
        config: BVTConfig | None = None,
    ) -> None:
        if split_strategy is None:
            if config is None:
                config = default_config().bvt
            split_strategy = config.split_strategy

        count = self.part_count()
        logger.debug("Indexing %d parts of %s", count, type(self).__name__)
        self._bvt: BVT = build_bvt(
            [(i, self.part_bounding_box(i)) for i in range(count)],
            split_strategy=split_strategy,
        )

    # -----------------------------------------------------------------
    # Generation rule (subclass contract)
    # -----------------------------------------------------------------

    @abstractmethod
    def part_count(self) -> int:
        """Number of parts, fixed for the lifetime of the instance."""

    @abstractmethod
    def part_bounding_box(self, index: int) -> BoundingBox:
        """Local bounding box of part ``index``, used to build the tree.

        Must bound the part placed at its intrinsic placement and must not
        depend on any external transform.
        """

    @abstractmethod
    def part_at(self, index: int) -> tuple[Isometry, Shape]:
        """Materialize part ``index`` as ``(placement, shape)``."""

    # -----------------------------------------------------------------
    # Capability set used by geometric queries
    # -----------------------------------------------------------------

    @property
    def dim(self) -> int:
        return self._bvt.dim

    def is_composite(self) -> bool:
        return True

    def bounding_box_of_part(self, index: int) -> BoundingBox:
        """Local bounding box of part ``index``, as stored in the tree.

        Raises
        ------
        IndexOutOfRange
            If ``index`` is not in ``[0, part_count())``.
        """
        return self._bvt.leaf_volume(self._check_index(index))

    def for_each_part_with_transform(
        self,
        index: int,
        ambient: Isometry,
        callback: PartCallback[T],
    ) -> T:
        """Materialize part ``index`` placed inside ``ambient``.

        ``callback(ambient * placement, shape)`` is invoked exactly once
        before this method returns; its return value is passed through.

        Raises
        ------
        IndexOutOfRange
            If ``index`` is not in ``[0, part_count())``.
        """
        placement, shape = self.part_at(self._check_index(index))
        return callback(ambient * placement, shape)

    def map_part_at(self, index: int, callback: PartCallback[T]) -> T:
        """Like :meth:`for_each_part_with_transform` with no ambient transform."""
        placement, shape = self.part_at(self._check_index(index))
        return callback(placement, shape)

    def spatial_index(self) -> BVT:
        return self._bvt

    def bounding_volume(self, m: Isometry) -> BoundingBox:
        """Bound of the whole composite placed at ``m``.

        The tree's root volume moved by ``m``. Subclasses may return a
        looser, cheaper bound; it only has to contain every part.
        """
        return self._bvt.root_volume().transformed(m)

    def _check_index(self, index: int) -> int:
        index = operator.index(index)
        count = self.part_count()
        if not 0 <= index < count:
            raise IndexOutOfRange(f"Part index {index} out of range [0, {count})")
        return index

    def __len__(self) -> int:
        return self.part_count()


# ===================================================================
# CONCRETE COMPOSITES
# ===================================================================


class Compound(CompositeShape):
    """Composite over an explicit list of ``(placement, shape)`` parts.

    Each part's local box is the exact bounding volume of the shape at its
    placement.
    """

    def __init__(
        self,
        parts: Sequence[tuple[Isometry, Shape]],
        split_strategy: str | None = None,
        config: BVTConfig | None = None,
    ) -> None:
        self._parts = tuple((placement, shape) for placement, shape in parts)
        for placement, shape in self._parts:
            if placement.dim != shape.dim:
                raise ValueError(
                    f"Part placement is {placement.dim}-D but its shape is {shape.dim}-D"
                )
        super().__init__(split_strategy, config)

    def part_count(self) -> int:
        return len(self._parts)

    def part_bounding_box(self, index: int) -> BoundingBox:
        placement, shape = self._parts[index]
        return shape.bounding_volume(placement)

    def part_at(self, index: int) -> tuple[Isometry, Shape]:
        return self._parts[index]


class GeneratedComposite(CompositeShape):
    """Composite whose parts come from index-driven generation functions.

    Parameters
    ----------
    count : int
        Number of parts.
    generate : callable
        ``generate(i) -> (placement, shape)``; should be a pure function of
        ``i``.
    bounding_box : callable
        ``bounding_box(i) -> BoundingBox``; local bound of part ``i``.
    split_strategy : str, optional
        BVT split heuristic.
    config : BVTConfig, optional
        Tree settings used when ``split_strategy`` is not given.
    """

    def __init__(
        self,
        count: int,
        generate: Callable[[int], tuple[Isometry, Shape]],
        bounding_box: Callable[[int], BoundingBox],
        split_strategy: str | None = None,
        config: BVTConfig | None = None,
    ) -> None:
        count = operator.index(count)
        if count < 0:
            raise ValueError(f"Part count must be non-negative, got {count}")
        self._count = count
        self._generate = generate
        self._bounding_box = bounding_box
        super().__init__(split_strategy, config)

    def part_count(self) -> int:
        return self._count

    def part_bounding_box(self, index: int) -> BoundingBox:
        return self._bounding_box(index)

    def part_at(self, index: int) -> tuple[Isometry, Shape]:
        return self._generate(index)
