from __future__ import annotations

import numpy as np
import pytest

from sfm_kit.features.gradients import GradientField, compute_gradient_fields
from sfm_kit.graph.view_graph import ViewGraph


@pytest.fixture(scope="session")
def textured_fields():
    """Gradients of a smoothed random image, 128x128."""
    rng = np.random.default_rng(0)
    image = rng.uniform(0.0, 255.0, size=(128, 128)).astype(np.float32)
    return compute_gradient_fields(image, sigma=1.5)


@pytest.fixture
def constant_fields():
    """Return a factory for fields with a constant gradient (gx, gy)."""

    def _make(gx: float, gy: float, shape=(128, 128)):
        return GradientField(np.full(shape, gx)), GradientField(np.full(shape, gy))

    return _make


@pytest.fixture
def make_graph():
    def _make(num_nodes: int, edges):
        return ViewGraph.from_edges(num_nodes, edges)

    return _make
