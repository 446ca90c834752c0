"""
Model Fitting Module

Fits candidate models to a cluster by planar translation and ranks them.
Models are assumed upright on the table, so only x/y translation is searched;
the model base is placed on the lowest point of the cluster.
"""

import logging
from typing import Hashable, List, Optional, Tuple

import numpy as np

from .confidence import get_confidence
from .model_registry import ModelRegistry
from .pose import ModelFitInfo, Pose
from .spatial_index import SpatialIndex, as_points

logger = logging.getLogger(__name__)


class IterativeTranslationFitter:
    """
    Aligns a model point set to a cluster with an ICP-style translation search.

    Each iteration matches every model point to its nearest cluster point and
    shifts the model by the mean planar offset of the matched pairs. The fit
    score is computed from clipped model-to-cluster distances.
    """

    def __init__(
        self,
        distance_clip: float = 0.0075,
        max_correspondence_distance: float = 0.05,
        max_iterations: int = 50,
        tolerance: float = 1e-5
    ):
        """
        Initialize the fitter.

        Args:
            distance_clip: Distance at which a model point counts as unexplained (m)
            max_correspondence_distance: Pairs farther apart are ignored in updates (m)
            max_iterations: Maximum number of translation updates
            tolerance: Update norm below which the search stops (m)
        """
        if distance_clip <= 0:
            raise ValueError("distance_clip must be positive")
        self.distance_clip = distance_clip
        self.max_correspondence_distance = max_correspondence_distance
        self.max_iterations = max_iterations
        self.tolerance = tolerance

    def initial_translation(self, model_points: np.ndarray, cluster_points: np.ndarray) -> np.ndarray:
        """
        Center the model on the cluster in x/y and rest it on the cluster's lowest point.
        """
        model_centroid = model_points.mean(axis=0)
        cluster_centroid = cluster_points.mean(axis=0)

        return np.array([
            cluster_centroid[0] - model_centroid[0],
            cluster_centroid[1] - model_centroid[1],
            cluster_points[:, 2].min() - model_points[:, 2].min()
        ], dtype=np.float64)

    def score(self, distances: np.ndarray) -> float:
        """
        Score in [0, 1] from model-to-cluster distances; 1 means every model
        point lies on the cluster.
        """
        clipped = np.minimum(distances, self.distance_clip)
        return float(1.0 - clipped.mean() / self.distance_clip)

    def fit(
        self,
        model_points: np.ndarray,
        cluster_points: np.ndarray,
        index: SpatialIndex
    ) -> Tuple[Pose, float]:
        """
        Fit one model to one cluster.

        Args:
            model_points: Mx3 model points in the model frame
            cluster_points: Nx3 cluster points (non-empty)
            index: Spatial index built over cluster_points

        Returns:
            Tuple of (pose of the model origin, raw score)
        """
        translation = self.initial_translation(model_points, cluster_points)

        for _ in range(self.max_iterations):
            moved = model_points + translation
            indices, distances = index.nearest(moved)

            matched = distances < self.max_correspondence_distance
            if not matched.any():
                break

            offsets = cluster_points[indices[matched], :2] - moved[matched, :2]
            step = offsets.mean(axis=0)
            translation[:2] += step

            if np.linalg.norm(step) < self.tolerance:
                break

        _, distances = index.nearest(model_points + translation)
        return Pose(position=translation), self.score(distances)


class ExhaustiveFitDetector:
    """
    Fits every registered model to a cluster and keeps the best ones.
    """

    def __init__(
        self,
        registry: Optional[ModelRegistry] = None,
        fitter: Optional[IterativeTranslationFitter] = None
    ):
        self.registry = registry if registry is not None else ModelRegistry()
        self.fitter = fitter if fitter is not None else IterativeTranslationFitter()

    def add_object(self, model_id: Hashable, mesh) -> None:
        self.registry.add_object(model_id, mesh)

    def clear_objects(self) -> None:
        self.registry.clear_objects()

    def fit_best_models(
        self,
        points: np.ndarray,
        num_models: int,
        index: SpatialIndex,
        confidence_cutoff: float
    ) -> List[ModelFitInfo]:
        """
        Rank registered models against a cluster.

        Args:
            points: Nx3 cluster points
            num_models: Maximum number of fits to return
            index: Spatial index built over points
            confidence_cutoff: Fits whose confidence falls below this are dropped

        Returns:
            Up to num_models fits, best score first; empty if nothing qualifies
        """
        points = as_points(points)
        if len(points) == 0:
            return []

        fits = []
        for model_id, model_points in self.registry.models():
            pose, score = self.fitter.fit(model_points, points, index)
            if get_confidence(score) < confidence_cutoff:
                continue
            fits.append(ModelFitInfo(model_id=model_id, pose=pose, score=score))

        # Stable sort keeps registration order among equal scores
        fits.sort(key=lambda fit: fit.score, reverse=True)

        logger.debug(
            f"Fitted {len(self.registry)} models to {len(points)} points, "
            f"{len(fits)} above cutoff"
        )

        return fits[:max(1, num_models)]
