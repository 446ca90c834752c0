"""
Spatial Index Module

Nearest-neighbour index over the points of a single cluster, used by the
fitter to find correspondences between model points and cluster points.
"""

from typing import Tuple

import numpy as np
import open3d as o3d


def as_points(points) -> np.ndarray:
    """
    Normalize an array-like of 3D points to a float64 (N, 3) array.

    Args:
        points: Array-like of shape (N, 3), N may be zero

    Returns:
        Nx3 float64 array
    """
    arr = np.asarray(points, dtype=np.float64)
    if arr.size == 0:
        return np.empty((0, 3), dtype=np.float64)
    if arr.ndim != 2 or arr.shape[1] != 3:
        raise ValueError(f"Expected points of shape (N, 3), got {arr.shape}")
    return arr


class SpatialIndex:
    """
    KD-tree over a cluster's points backed by Open3D's tensor NNS.

    Each index is owned by a single fitting task and is never shared
    between worker threads.
    """

    def __init__(self):
        self._search = None
        self._size = 0

    @classmethod
    def build(cls, points: np.ndarray) -> "SpatialIndex":
        """
        Build an index over a set of points.

        Args:
            points: Nx3 array of cluster points (may be empty)

        Returns:
            Ready-to-query spatial index
        """
        index = cls()
        points = as_points(points)
        index._size = len(points)

        if index._size > 0:
            dataset = o3d.core.Tensor(np.ascontiguousarray(points), dtype=o3d.core.Dtype.Float64)
            index._search = o3d.core.nns.NearestNeighborSearch(dataset)
            index._search.knn_index()

        return index

    def __len__(self) -> int:
        return self._size

    def nearest(self, queries: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        Find the nearest indexed point for each query point.

        All queries are answered by one batched search.

        Args:
            queries: Mx3 array of query points

        Returns:
            Tuple of (indices into the indexed points, Euclidean distances)
        """
        if self._search is None:
            raise ValueError("Cannot query an empty spatial index")

        queries = as_points(queries)
        if len(queries) == 0:
            return np.empty(0, dtype=np.int64), np.empty(0, dtype=np.float64)

        query_tensor = o3d.core.Tensor(np.ascontiguousarray(queries), dtype=o3d.core.Dtype.Float64)
        indices, sq_dists = self._search.knn_search(query_tensor, 1)

        indices = indices.numpy().reshape(-1).astype(np.int64)
        sq_dists = sq_dists.numpy().reshape(-1).astype(np.float64)

        return indices, np.sqrt(np.maximum(sq_dists, 0.0))
