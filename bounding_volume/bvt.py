"""Balanced bounding-volume tree (BVT) over opaque leaf identifiers.

The tree maps identifiers (for composite shapes: part indices) to
axis-aligned bounding boxes and is used to prune geometric queries. It is
built once from the complete list of ``(identifier, box)`` pairs and is
read-only afterwards; callers needing a different leaf set build a new tree.

Design Notes
------------
- **Flattened nodes**: nodes are stored in one contiguous float64 array
  (no Python node objects) so the Numba traversal kernels can walk it
  with an explicit stack and no recursion.
- **Node layout** (``2*D + 2`` doubles per node):
  ``[min_0 .. min_{D-1}, max_0 .. max_{D-1}, child_or_slot, right_or_flag]``
  - If ``right_or_flag < 0``: leaf node, ``child_or_slot`` indexes the
    leaf identifier table.
  - Otherwise: internal node, ``child_or_slot`` = left child node index,
    ``right_or_flag`` = right child node index.
- **Balance**: every split is a median split (sibling leaf counts differ by
  at most one), so the depth is exactly ``ceil(log2(N))``.
- **Tightness**: an internal node's box is the exact union of its
  children's boxes.
"""

from __future__ import annotations

import heapq
import logging
from typing import Callable, Hashable, Iterator, Sequence

import numpy as np
from numba import njit

from bounding_volume.aabb import BoundingBox, ray_aabb_intersect
from core_engine.constants import SPLIT_STRATEGIES
from core_engine.errors import EmptyInputError

logger = logging.getLogger(__name__)

_INF: float = 1e30
_LEAF_FLAG: float = -1.0


def _node_size(dim: int) -> int:
    return 2 * dim + 2


# ===================================================================
# BVT TRAVERSAL: stack-based, no recursion (Numba JIT)
# ===================================================================


@njit(cache=True, fastmath=False)
def _collect_intersecting(
    bvt_nodes: np.ndarray,
    dim: int,
    query_min: np.ndarray,
    query_max: np.ndarray,
    stack_capacity: int,
    out_slots: np.ndarray,
) -> int:
    """Collect the leaf slots whose box overlaps ``[query_min, query_max]``.

    Parameters
    ----------
    bvt_nodes : np.ndarray
        Flattened node array.
    dim : int
        Spatial dimension.
    query_min, query_max : np.ndarray
        Query box corners. Shape: (D,).
    stack_capacity : int
        Traversal stack size (tree depth + 2 is always enough).
    out_slots : np.ndarray
        Output buffer, at least one entry per leaf. dtype: int64.

    Returns
    -------
    int
        Number of slots written to ``out_slots``.
    """
    node_size = 2 * dim + 2
    stack = np.empty(stack_capacity, dtype=np.int64)
    stack[0] = 0  # Push root node index
    stack_ptr = 1
    count = 0

    while stack_ptr > 0:
        stack_ptr -= 1
        base = stack[stack_ptr] * node_size

        overlap = True
        for axis in range(dim):
            if (
                bvt_nodes[base + dim + axis] < query_min[axis]
                or query_max[axis] < bvt_nodes[base + axis]
            ):
                overlap = False
                break
        if not overlap:
            continue

        right_or_flag = bvt_nodes[base + 2 * dim + 1]
        if right_or_flag < 0:
            out_slots[count] = int(bvt_nodes[base + 2 * dim])
            count += 1
        else:
            stack[stack_ptr] = int(bvt_nodes[base + 2 * dim])
            stack_ptr += 1
            stack[stack_ptr] = int(right_or_flag)
            stack_ptr += 1

    return count


@njit(cache=True, fastmath=False)
def _collect_ray_hits(
    bvt_nodes: np.ndarray,
    dim: int,
    ray_origin: np.ndarray,
    inv_dir: np.ndarray,
    t_max_limit: float,
    stack_capacity: int,
    out_slots: np.ndarray,
) -> int:
    """Collect the leaf slots whose box is crossed by a ray.

    Same contract as :func:`_collect_intersecting`, with the slab test in
    place of the box-overlap test.
    """
    node_size = 2 * dim + 2
    stack = np.empty(stack_capacity, dtype=np.int64)
    stack[0] = 0
    stack_ptr = 1
    count = 0

    while stack_ptr > 0:
        stack_ptr -= 1
        base = stack[stack_ptr] * node_size

        if not ray_aabb_intersect(
            ray_origin,
            inv_dir,
            bvt_nodes[base : base + dim],
            bvt_nodes[base + dim : base + 2 * dim],
            t_max_limit,
        ):
            continue

        right_or_flag = bvt_nodes[base + 2 * dim + 1]
        if right_or_flag < 0:
            out_slots[count] = int(bvt_nodes[base + 2 * dim])
            count += 1
        else:
            stack[stack_ptr] = int(bvt_nodes[base + 2 * dim])
            stack_ptr += 1
            stack[stack_ptr] = int(right_or_flag)
            stack_ptr += 1

    return count


# ===================================================================
# BVT
# ===================================================================


class BVT:
    """Read-only balanced bounding-volume tree.

    Build instances with :meth:`BVT.build` (or :func:`build_bvt`). The root
    is node ``0``; nodes are addressed by integer index for external
    traversal code.

    Attributes
    ----------
    dim : int
        Spatial dimension of every stored box.
    depth : int
        Maximum leaf depth (0 for a single-leaf tree).
    split_strategy : str
        Axis selection heuristic used at construction.
    """

    root: int = 0

    def __init__(
        self,
        nodes: np.ndarray,
        leaf_ids: list[Hashable],
        leaf_nodes: np.ndarray,
        dim: int,
        depth: int,
        split_strategy: str,
    ) -> None:
        nodes.setflags(write=False)
        leaf_nodes.setflags(write=False)
        self._nodes = nodes
        self._leaf_ids = leaf_ids
        self._leaf_nodes = leaf_nodes
        self._slot_of: dict[Hashable, int] = {
            leaf_id: slot for slot, leaf_id in enumerate(leaf_ids)
        }
        self.dim = dim
        self.depth = depth
        self.split_strategy = split_strategy
        self._node_size = _node_size(dim)
        self._root_volume = self.node_volume(self.root)

    @classmethod
    def build(
        cls,
        pairs: Sequence[tuple[Hashable, BoundingBox]],
        split_strategy: str = "longest_extent",
    ) -> BVT:
        """Build a balanced tree over ``(identifier, box)`` pairs.

        See :func:`build_bvt`.
        """
        return build_bvt(pairs, split_strategy=split_strategy)

    # -----------------------------------------------------------------
    # Structure access
    # -----------------------------------------------------------------

    @property
    def num_nodes(self) -> int:
        return self._nodes.shape[0] // self._node_size

    @property
    def num_leaves(self) -> int:
        return len(self._leaf_ids)

    def __len__(self) -> int:
        return len(self._leaf_ids)

    @property
    def nodes(self) -> np.ndarray:
        """The flattened (read-only) node array."""
        return self._nodes

    def root_volume(self) -> BoundingBox:
        """Union of every leaf box."""
        return self._root_volume

    def node_bounds(self, node: int) -> tuple[np.ndarray, np.ndarray]:
        """Read-only views of a node's ``(mins, maxs)`` corners."""
        self._check_node(node)
        base = node * self._node_size
        return (
            self._nodes[base : base + self.dim],
            self._nodes[base + self.dim : base + 2 * self.dim],
        )

    def node_volume(self, node: int) -> BoundingBox:
        mins, maxs = self.node_bounds(node)
        return BoundingBox(mins, maxs)

    def is_leaf(self, node: int) -> bool:
        self._check_node(node)
        return self._nodes[node * self._node_size + 2 * self.dim + 1] < 0

    def children(self, node: int) -> tuple[int, int]:
        """Left and right child of an internal node."""
        if self.is_leaf(node):
            raise ValueError(f"Node {node} is a leaf and has no children")
        base = node * self._node_size
        return (
            int(self._nodes[base + 2 * self.dim]),
            int(self._nodes[base + 2 * self.dim + 1]),
        )

    def leaf_id(self, node: int) -> Hashable:
        """Identifier stored at a leaf node."""
        if not self.is_leaf(node):
            raise ValueError(f"Node {node} is not a leaf")
        return self._leaf_ids[int(self._nodes[node * self._node_size + 2 * self.dim])]

    def leaf_volume(self, leaf_id: Hashable) -> BoundingBox:
        """Box the tree was built with for ``leaf_id``.

        Raises
        ------
        KeyError
            If no leaf carries ``leaf_id``.
        """
        return self.node_volume(int(self._leaf_nodes[self._slot_of[leaf_id]]))

    def leaves(self) -> Iterator[tuple[Hashable, BoundingBox]]:
        """Iterate over ``(identifier, box)`` in construction-input order."""
        for slot, leaf_id in enumerate(self._leaf_ids):
            yield leaf_id, self.node_volume(int(self._leaf_nodes[slot]))

    def _check_node(self, node: int) -> None:
        if not 0 <= node < self.num_nodes:
            raise IndexError(f"Node index {node} out of range [0, {self.num_nodes})")

    # -----------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------

    def intersecting(self, volume: BoundingBox) -> list[Hashable]:
        """Identifiers of every leaf whose box overlaps ``volume``."""
        if volume.dim != self.dim:
            raise ValueError(f"Query box is {volume.dim}-D, tree is {self.dim}-D")
        out = np.empty(self.num_leaves, dtype=np.int64)
        count = _collect_intersecting(
            self._nodes, self.dim, volume.mins, volume.maxs, self.depth + 2, out
        )
        return [self._leaf_ids[slot] for slot in out[:count]]

    def ray_candidates(
        self,
        origin: np.ndarray,
        direction: np.ndarray,
        max_toi: float = np.inf,
    ) -> list[Hashable]:
        """Identifiers of every leaf whose box is crossed by a ray.

        Parameters
        ----------
        origin : np.ndarray
            Ray origin. Shape: (D,).
        direction : np.ndarray
            Ray direction, need not be normalized. Shape: (D,).
        max_toi : float
            Maximum parametric distance along the ray.
        """
        origin = np.asarray(origin, dtype=np.float64)
        direction = np.asarray(direction, dtype=np.float64)
        if origin.shape != (self.dim,) or direction.shape != (self.dim,):
            raise ValueError(f"Ray origin and direction must have shape ({self.dim},)")

        # Zero components become a large finite inverse (no 0 * inf NaNs)
        inv_dir = np.empty(self.dim, dtype=np.float64)
        for axis in range(self.dim):
            if direction[axis] == 0.0:
                inv_dir[axis] = _INF
            else:
                inv_dir[axis] = 1.0 / direction[axis]

        out = np.empty(self.num_leaves, dtype=np.int64)
        count = _collect_ray_hits(
            self._nodes,
            self.dim,
            origin,
            inv_dir,
            min(float(max_toi), _INF),
            self.depth + 2,
            out,
        )
        return [self._leaf_ids[slot] for slot in out[:count]]

    def visit(
        self,
        predicate: Callable[[np.ndarray, np.ndarray], bool],
        on_leaf: Callable[[Hashable], bool | None],
    ) -> None:
        """Depth-first traversal pruned by ``predicate``.

        ``predicate(mins, maxs)`` is called for each reached node; its
        subtree is skipped when it returns False. ``on_leaf(identifier)``
        is called for each reached leaf; returning True stops the whole
        traversal.
        """
        stack = [self.root]
        while stack:
            node = stack.pop()
            mins, maxs = self.node_bounds(node)
            if not predicate(mins, maxs):
                continue
            if self.is_leaf(node):
                if on_leaf(self.leaf_id(node)):
                    return
            else:
                left, right = self.children(node)
                stack.append(right)
                stack.append(left)

    def best_first(
        self,
        cost_bound: Callable[[np.ndarray, np.ndarray], float],
        evaluate: Callable[[Hashable], float | None],
    ) -> tuple[float, Hashable | None]:
        """Minimize ``evaluate`` over the leaves with branch-and-bound.

        Parameters
        ----------
        cost_bound : callable
            ``cost_bound(mins, maxs)`` must be a lower bound of
            ``evaluate`` for every leaf under a node with those bounds.
        evaluate : callable
            Exact cost of a leaf, or None to ignore the leaf.

        Returns
        -------
        best_cost : float
            Smallest cost found (``inf`` if every leaf was ignored).
        best_id : hashable or None
            Identifier achieving ``best_cost``.
        """
        best_cost = np.inf
        best_id: Hashable | None = None

        # Node index breaks ties so the heap never compares anything else
        heap: list[tuple[float, int]] = [(float(cost_bound(*self.node_bounds(self.root))), self.root)]

        while heap:
            bound, node = heapq.heappop(heap)
            if bound >= best_cost:
                break

            if self.is_leaf(node):
                leaf_id = self.leaf_id(node)
                cost = evaluate(leaf_id)
                if cost is not None and cost < best_cost:
                    best_cost = float(cost)
                    best_id = leaf_id
            else:
                for child in self.children(node):
                    child_bound = float(cost_bound(*self.node_bounds(child)))
                    if child_bound < best_cost:
                        heapq.heappush(heap, (child_bound, child))

        return best_cost, best_id

    def __repr__(self) -> str:
        return (
            f"BVT(dim={self.dim}, leaves={self.num_leaves}, nodes={self.num_nodes}, "
            f"depth={self.depth})"
        )


# ===================================================================
# BVT CONSTRUCTION: Python (one-time cost, not JIT-compiled)
# ===================================================================


def build_bvt(
    pairs: Sequence[tuple[Hashable, BoundingBox]],
    split_strategy: str = "longest_extent",
) -> BVT:
    """Build a balanced BVT from ``(identifier, box)`` pairs.

    Parameters
    ----------
    pairs : sequence of (hashable, BoundingBox)
        Leaves of the tree. Identifiers must be unique; all boxes must
        share one dimension.
    split_strategy : str
        ``'longest_extent'`` or ``'max_variance'``. Default:
        ``'longest_extent'``.

    Returns
    -------
    BVT
        The built tree.

    Raises
    ------
    EmptyInputError
        If ``pairs`` is empty.
    ValueError
        On mixed dimensions, duplicate identifiers or an unknown strategy.
    """
    pairs = list(pairs)
    if not pairs:
        raise EmptyInputError("Cannot build a BVT from zero bounding volumes")
    if split_strategy not in SPLIT_STRATEGIES:
        raise ValueError(
            f"Unknown split strategy '{split_strategy}', expected one of {SPLIT_STRATEGIES}"
        )

    leaf_ids: list[Hashable] = [leaf_id for leaf_id, _ in pairs]
    if len(set(leaf_ids)) != len(leaf_ids):
        raise ValueError("BVT leaf identifiers must be unique")

    dim = pairs[0][1].dim
    if any(box.dim != dim for _, box in pairs):
        raise ValueError("All bounding volumes of a BVT must share one dimension")

    num_leaves = len(pairs)
    logger.info(
        "Building BVT for %d leaves (dim=%d, split=%s)...",
        num_leaves,
        dim,
        split_strategy,
    )

    leaf_mins = np.stack([box.mins for _, box in pairs])
    leaf_maxs = np.stack([box.maxs for _, box in pairs])
    centroids = (leaf_mins + leaf_maxs) * 0.5

    # Working slot array (reordered during construction)
    slots = np.arange(num_leaves, dtype=np.int64)

    node_size = _node_size(dim)
    max_nodes = 2 * num_leaves - 1
    nodes_flat = np.zeros(max_nodes * node_size, dtype=np.float64)
    leaf_nodes = np.empty(num_leaves, dtype=np.int64)

    node_count = [0]  # Mutable counter (list for closure access)
    max_depth = [0]

    def _allocate_node() -> int:
        idx = node_count[0]
        node_count[0] += 1
        return idx

    def _build_recursive(start: int, end: int, depth: int) -> int:
        """Recursively build the subtree over ``slots[start:end]``."""
        node_idx = _allocate_node()
        base = node_idx * node_size
        count = end - start

        sub = slots[start:end]
        nodes_flat[base : base + dim] = leaf_mins[sub].min(axis=0)
        nodes_flat[base + dim : base + 2 * dim] = leaf_maxs[sub].max(axis=0)

        if count == 1:
            nodes_flat[base + 2 * dim] = float(sub[0])
            nodes_flat[base + 2 * dim + 1] = _LEAF_FLAG
            leaf_nodes[sub[0]] = node_idx
            max_depth[0] = max(max_depth[0], depth)
            return node_idx

        axis = _split_axis(centroids[sub], split_strategy)

        # Median partition along the split axis
        half = count // 2
        order = np.argpartition(centroids[sub, axis], half - 1, kind="introselect")
        slots[start:end] = sub[order]
        mid = start + half

        left_idx = _build_recursive(start, mid, depth + 1)
        right_idx = _build_recursive(mid, end, depth + 1)

        nodes_flat[base + 2 * dim] = float(left_idx)
        nodes_flat[base + 2 * dim + 1] = float(right_idx)

        return node_idx

    _build_recursive(0, num_leaves, 0)

    actual_nodes = node_count[0]
    bvt_nodes = nodes_flat[: actual_nodes * node_size].copy()

    logger.info(
        "BVT built: %d nodes (%d leaves), depth %d, %.3f MB node memory",
        actual_nodes,
        num_leaves,
        max_depth[0],
        bvt_nodes.nbytes / 1e6,
    )

    return BVT(bvt_nodes, leaf_ids, leaf_nodes, dim, max_depth[0], split_strategy)


def _split_axis(centroids: np.ndarray, split_strategy: str) -> int:
    """Choose the split axis for a set of leaf centers.

    Parameters
    ----------
    centroids : np.ndarray
        Leaf box centers. Shape: (n, D).
    split_strategy : str
        ``'longest_extent'`` or ``'max_variance'``.

    Returns
    -------
    int
        Axis index.
    """
    if split_strategy == "max_variance":
        return int(np.argmax(centroids.var(axis=0)))
    return int(np.argmax(centroids.max(axis=0) - centroids.min(axis=0)))

