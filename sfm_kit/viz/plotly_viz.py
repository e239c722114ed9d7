"""
Visualization utilities for view graphs using Plotly.
"""

from __future__ import annotations

from typing import Iterable, List, Set, Tuple

import numpy as np
import plotly.graph_objs as go

from sfm_kit.graph.triplets import Triplet
from sfm_kit.graph.view_graph import ViewGraph


def circular_layout(num_nodes: int) -> np.ndarray:
    """Place nodes evenly on the unit circle, node 0 at (1, 0)."""
    theta = 2.0 * np.pi * np.arange(num_nodes) / max(num_nodes, 1)
    return np.stack([np.cos(theta), np.sin(theta)], axis=1)


def _edge_trace(
    edges: List[Tuple[int, int]],
    positions: np.ndarray,
    color: str,
    width: float,
    name: str,
) -> go.Scatter:
    # One polyline, segments separated by None
    xs: List[float | None] = []
    ys: List[float | None] = []
    for u, v in edges:
        xs.extend([positions[u, 0], positions[v, 0], None])
        ys.extend([positions[u, 1], positions[v, 1], None])
    return go.Scatter(
        x=xs,
        y=ys,
        mode="lines",
        line=dict(color=color, width=width),
        hoverinfo="none",
        name=name,
    )


def plot_view_graph(
    graph: ViewGraph,
    triplets: Iterable[Triplet] | None = None,
    positions: np.ndarray | None = None,
) -> go.Figure:
    """
    Create a 2D Plotly figure of a view graph.

    Args:
        graph: ViewGraph to draw.
        triplets: Optional triplets; their edges are drawn in red.
        positions: Optional (N, 2) node positions; circular layout otherwise.

    Returns:
        Plotly Figure with one trace for plain edges, one for triplet edges
        (only when there are any) and one for the nodes.
    """
    n = graph.num_nodes
    if positions is None:
        positions = circular_layout(n)
    else:
        positions = np.asarray(positions, dtype=float)
        if positions.shape != (n, 2):
            raise ValueError(f"Expected positions of shape ({n}, 2), got {positions.shape}")

    triplet_edges: Set[Tuple[int, int]] = set()
    for t in triplets or []:
        triplet_edges.update(Triplet(*t).edges())

    all_edges = list(graph.edges())
    plain = [e for e in all_edges if e not in triplet_edges]
    in_loops = [e for e in all_edges if e in triplet_edges]

    fig = go.Figure()
    fig.add_trace(_edge_trace(plain, positions, "gray", 1.0, "Pairs"))
    if in_loops:
        fig.add_trace(_edge_trace(in_loops, positions, "red", 2.5, "Triplet edges"))

    fig.add_trace(
        go.Scatter(
            x=positions[:, 0] if n > 0 else [],
            y=positions[:, 1] if n > 0 else [],
            mode="markers+text",
            marker=dict(size=14, color="steelblue"),
            text=[str(i) for i in range(n)],
            textposition="top center",
            name="Views",
        )
    )

    fig.update_layout(
        title=f"View graph: {n} views, {graph.num_edges} pairs",
        xaxis=dict(visible=False),
        yaxis=dict(visible=False, scaleanchor="x"),
        width=800,
        height=600,
    )

    return fig


__all__ = ["plot_view_graph", "circular_layout"]
