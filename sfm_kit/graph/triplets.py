"""
Triplet (3-cycle) listing on view graphs.

A triplet of views that are pairwise connected is the smallest loop on
which relative rotations/translations can be checked for consistency
before global reconstruction.
"""

from __future__ import annotations

from typing import Dict, Hashable, Iterable, List, NamedTuple, Protocol, Tuple

from sfm_kit.graph.view_graph import ViewGraph
from sfm_kit.utils.logging_utils import get_logger

logger = get_logger("triplets")


class NeighborGraph(Protocol):
    """Anything exposing node enumeration and per-node neighbor sets."""

    def nodes(self) -> Iterable[int]: ...

    def neighbors(self, node: int) -> Iterable[int]: ...


class Triplet(NamedTuple):
    """Three mutually connected nodes, always stored with i < j < k."""

    i: int
    j: int
    k: int

    def edges(self) -> Tuple[Tuple[int, int], Tuple[int, int], Tuple[int, int]]:
        return (self.i, self.j), (self.j, self.k), (self.i, self.k)

    def contains(self, edge: Tuple[int, int]) -> bool:
        """True if the unordered pair `edge` is one of the three triplet edges."""
        a, b = edge
        if a > b:
            a, b = b, a
        return (a, b) in self.edges()

    def __str__(self) -> str:
        return f"{{{self.i},{self.j},{self.k}}}"


def list_triplets(graph: NeighborGraph) -> Tuple[bool, List[Triplet]]:
    """
    List every triangle of an undirected simple graph exactly once.

    Each triangle is produced from its smallest node u, its middle node v
    and the common neighbors w > v, so no deduplication is needed.

    Args:
        graph: ViewGraph, or any object with nodes() and neighbors(node).

    Returns:
        Tuple of (found, triplets) where:
        - found: True if at least one triangle exists.
        - triplets: Triplet(i, j, k) with i < j < k, in lexicographic order.

    Raises:
        ValueError: If a node lists a neighbor that nodes() does not enumerate.
    """
    adjacency = {u: frozenset(graph.neighbors(u)) for u in graph.nodes()}
    for u, nbrs in adjacency.items():
        unknown = nbrs.difference(adjacency)
        if unknown:
            raise ValueError(
                f"Node {u} lists neighbors {sorted(unknown)} that are not graph nodes"
            )

    triplets: List[Triplet] = []
    for u in sorted(adjacency):
        nbrs_u = adjacency[u]
        for v in sorted(n for n in nbrs_u if n > u):
            common = nbrs_u & adjacency[v]
            for w in sorted(n for n in common if n > v):
                triplets.append(Triplet(u, v, w))

    logger.debug(f"Triplet listing: {len(adjacency)} nodes, {len(triplets)} triplets")
    return len(triplets) > 0, triplets


def triplets_from_pairs(pairs: Iterable[Tuple[Hashable, Hashable]]) -> List[Tuple]:
    """
    List the triplets formed by a set of view pairs.

    Args:
        pairs: View-id pairs, e.g. the image pairs that passed geometric
            verification. Ids can be any sortable hashable values; repeated
            or reversed pairs are merged.

    Returns:
        Triplets as ascending tuples of the original view ids.

    Raises:
        ValueError: If a pair links a view to itself.
    """
    edges = set()
    for a, b in pairs:
        if a == b:
            raise ValueError(f"View pair ({a}, {b}) links a view to itself")
        edges.add((a, b) if a < b else (b, a))

    view_ids = sorted({v for e in edges for v in e})
    index: Dict[Hashable, int] = {v: n for n, v in enumerate(view_ids)}
    graph = ViewGraph.from_edges(
        len(view_ids), ((index[a], index[b]) for a, b in sorted(edges))
    )

    _, triplets = list_triplets(graph)
    logger.info(
        f"Triplets from pairs: {len(view_ids)} views, {len(edges)} pairs, "
        f"{len(triplets)} triplets"
    )
    return [(view_ids[t.i], view_ids[t.j], view_ids[t.k]) for t in triplets]


__all__ = ["NeighborGraph", "Triplet", "list_triplets", "triplets_from_pairs"]
