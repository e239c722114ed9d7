"""
Undirected view graph used for pairwise-consistency checks.

Nodes are camera views identified by integer handles assigned in insertion
order, edges are view pairs with enough geometric support. The graph is a
plain arena of node handles plus a neighbor-set index, so any code that
only needs `nodes()` and `neighbors()` can consume it.
"""

from __future__ import annotations

import numbers
import operator
from typing import Dict, FrozenSet, Iterable, Iterator, List, Set, Tuple


class ViewGraph:
    """Simple undirected graph: no weights, no self-loops, no multi-edges."""

    def __init__(self) -> None:
        # adjacency[node] is the set of neighbor handles of `node`.
        self._adjacency: List[Set[int]] = []
        self._num_edges = 0

    @classmethod
    def from_edges(cls, num_nodes: int, edges: Iterable[Tuple[int, int]]) -> "ViewGraph":
        """
        Build a graph with nodes 0..num_nodes-1 and the given edges.

        Raises:
            ValueError: On a self-loop, a repeated edge or an unknown node.
        """
        graph = cls()
        graph.add_nodes(num_nodes)
        for u, v in edges:
            graph.add_edge(u, v)
        return graph

    def add_node(self) -> int:
        self._adjacency.append(set())
        return len(self._adjacency) - 1

    def add_nodes(self, count: int) -> List[int]:
        return [self.add_node() for _ in range(count)]

    def add_edge(self, u: int, v: int) -> None:
        """
        Connect two existing nodes.

        Raises:
            ValueError: If u == v, the edge already exists (in either
                orientation) or either node is not part of the graph.
        """
        u, v = self._handle(u), self._handle(v)
        for n in (u, v):
            if n not in self:
                raise ValueError(f"Unknown node {n} (graph has {self.num_nodes} nodes)")
        if u == v:
            raise ValueError(f"Self-loop on node {u} is not allowed")
        if v in self._adjacency[u]:
            raise ValueError(f"Duplicate edge ({u}, {v})")
        self._adjacency[u].add(v)
        self._adjacency[v].add(u)
        self._num_edges += 1

    def has_edge(self, u: int, v: int) -> bool:
        return u in self and v in self and self._handle(v) in self._adjacency[self._handle(u)]

    def neighbors(self, node: int) -> FrozenSet[int]:
        return frozenset(self._adjacency[node])

    def degree(self, node: int) -> int:
        return len(self._adjacency[node])

    def nodes(self) -> range:
        return range(len(self._adjacency))

    def edges(self) -> Iterator[Tuple[int, int]]:
        """Yield every edge once as (u, v) with u < v, in ascending order."""
        for u, nbrs in enumerate(self._adjacency):
            for v in sorted(nbrs):
                if v > u:
                    yield u, v

    def adjacency(self) -> Dict[int, FrozenSet[int]]:
        return {n: frozenset(nbrs) for n, nbrs in enumerate(self._adjacency)}

    @property
    def num_nodes(self) -> int:
        return len(self._adjacency)

    @property
    def num_edges(self) -> int:
        return self._num_edges

    @staticmethod
    def _handle(node) -> int:
        # numpy integers from edge arrays are stored as plain ints
        try:
            return operator.index(node)
        except TypeError:
            raise ValueError(f"Node handle must be an integer, got {node!r}") from None

    def __len__(self) -> int:
        return len(self._adjacency)

    def __contains__(self, node: object) -> bool:
        return (
            isinstance(node, numbers.Integral)
            and not isinstance(node, bool)
            and 0 <= int(node) < len(self._adjacency)
        )

    def __repr__(self) -> str:
        return f"ViewGraph(num_nodes={self.num_nodes}, num_edges={self.num_edges})"


__all__ = ["ViewGraph"]
