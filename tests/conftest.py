"""
Pytest configuration and shared fixtures.
"""

import threading
from typing import Callable, List, Optional

import numpy as np
import pytest

from tabletop_recognition.confidence import get_confidence
from tabletop_recognition.pose import ModelFitInfo, Pose


def make_cluster(cx: float, cy: float, n: int = 5, spread: float = 0.002) -> np.ndarray:
    """Square grid of n x n points centred on (cx, cy) at table height."""
    offsets = np.linspace(-spread, spread, n)
    gx, gy = np.meshgrid(offsets, offsets)
    return np.column_stack([
        cx + gx.ravel(),
        cy + gy.ravel(),
        np.full(n * n, 0.01)
    ])


def box_surface(width: float, depth: float, height: float, step: float = 0.01) -> np.ndarray:
    """Grid samples of the faces of a box whose base is centred on the origin at z = 0."""
    xs = np.linspace(-width / 2, width / 2, int(round(width / step)) + 1)
    ys = np.linspace(-depth / 2, depth / 2, int(round(depth / step)) + 1)
    zs = np.linspace(0.0, height, int(round(height / step)) + 1)

    faces = []
    for z in (0.0, height):
        gx, gy = np.meshgrid(xs, ys)
        faces.append(np.column_stack([gx.ravel(), gy.ravel(), np.full(gx.size, z)]))
    for x in (-width / 2, width / 2):
        gy, gz = np.meshgrid(ys, zs)
        faces.append(np.column_stack([np.full(gy.size, x), gy.ravel(), gz.ravel()]))
    for y in (-depth / 2, depth / 2):
        gx, gz = np.meshgrid(xs, zs)
        faces.append(np.column_stack([gx.ravel(), np.full(gx.size, y), gz.ravel()]))

    return np.vstack(faces)


class CentroidDetector:
    """
    Deterministic stand-in for the model fitter.

    Places a single model at the cluster's planar centroid and scores it with
    score_fn (a constant by default).
    """

    def __init__(
        self,
        score_fn: Optional[Callable[[np.ndarray], float]] = None,
        model_id: str = "mug",
        prune: bool = True
    ):
        self.score_fn = score_fn or (lambda points: 0.9)
        self.model_id = model_id
        self.prune = prune
        self.calls: List[int] = []
        self.models = {}
        self._lock = threading.Lock()

    def add_object(self, model_id, mesh):
        self.models[model_id] = mesh

    def clear_objects(self):
        self.models.clear()

    def fit_best_models(self, points, num_models, index, confidence_cutoff):
        with self._lock:
            self.calls.append(len(points))

        if len(points) == 0:
            return []

        score = self.score_fn(points)
        if self.prune and get_confidence(score) < confidence_cutoff:
            return []

        centroid = points.mean(axis=0)
        pose = Pose(position=[centroid[0], centroid[1], 0.0])
        return [ModelFitInfo(model_id=self.model_id, pose=pose, score=score)]


@pytest.fixture
def detector():
    """Centroid detector with a constant 0.9 score."""
    return CentroidDetector()
