"""
Cluster Fit Dispatcher Module

Runs model fitting over every cluster in parallel. Each task builds its own
spatial index, so workers share nothing mutable except read access to the
model registry.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

import numpy as np

from .pose import ModelFitInfo
from .spatial_index import SpatialIndex, as_points

logger = logging.getLogger(__name__)


class ClusterFitDispatcher:
    """
    Fans model fitting out over clusters and joins the results.
    """

    def __init__(self, detector, num_models: int = 1, max_workers: Optional[int] = None):
        """
        Initialize the dispatcher.

        Args:
            detector: Object exposing fit_best_models(points, k, index, cutoff)
            num_models: Number of ranked fits requested per cluster
            max_workers: Worker threads for the fan-out (one per cluster if None)
        """
        self.detector = detector
        self.num_models = num_models
        self.max_workers = max_workers

    def fit_cluster(self, points: np.ndarray, confidence_cutoff: float) -> List[ModelFitInfo]:
        """
        Index one cluster and fit the registered models to it.

        Args:
            points: Nx3 cluster points
            confidence_cutoff: Passed to the detector for pruning

        Returns:
            Best-first list of fits, empty for an empty cluster or no match
        """
        points = as_points(points)
        if len(points) == 0:
            return []

        index = SpatialIndex.build(points)
        return self.detector.fit_best_models(
            points, max(1, self.num_models), index, confidence_cutoff
        )

    def fit_all(self, clusters: List[np.ndarray], confidence_cutoff: float) -> List[List[ModelFitInfo]]:
        """
        Fit every cluster concurrently and wait for all of them.

        Args:
            clusters: List of Nx3 cluster point arrays
            confidence_cutoff: Passed to the detector for pruning

        Returns:
            One fit list per cluster, in input order
        """
        if not clusters:
            return []

        workers = self.max_workers or len(clusters)

        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [
                executor.submit(self.fit_cluster, points, confidence_cutoff)
                for points in clusters
            ]
            # result() re-raises any worker exception here
            fit_results = [future.result() for future in futures]

        logger.debug(
            f"Fitted {len(clusters)} clusters with {workers} workers, "
            f"{sum(1 for fits in fit_results if fits)} matched"
        )

        return fit_results
