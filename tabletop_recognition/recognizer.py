"""
Tabletop Object Recognizer Module

Entry point of the package: fits registered models to pre-segmented
clusters, merges clusters that turn out to be fragments of one object, and
reports the confident detections.
"""

import logging
from dataclasses import dataclass
from typing import Hashable, List, Optional

import numpy as np

from .confidence import get_confidence
from .dispatcher import ClusterFitDispatcher
from .fitting import ExhaustiveFitDetector
from .merger import ClusterMerger, identity_roots
from .pose import ModelFitInfo, Pose
from .spatial_index import as_points

logger = logging.getLogger(__name__)


@dataclass
class TabletopResult:
    """
    One recognized object.

    Attributes:
        object_id: Id of the best-matching model
        pose: Pose of the model in the table frame
        confidence: Confidence derived from the fit score, in [0, 1]
        cloud: Nx3 points of the (possibly merged) cluster
        cloud_index: Index of the root cluster in the input list
    """

    object_id: Hashable
    pose: Pose
    confidence: float
    cloud: np.ndarray
    cloud_index: int


def aggregate_results(
    clusters: List[np.ndarray],
    fit_results: List[List[ModelFitInfo]],
    roots: List[int],
    confidence_cutoff: float
) -> List[TabletopResult]:
    """
    Build results for the live roots whose best fit clears the cutoff.

    Args:
        clusters: Final cluster point arrays
        fit_results: Final best-first fit lists
        roots: Root map from merging (identity when merging is off)
        confidence_cutoff: Minimum confidence of a reported object

    Returns:
        Results in ascending root index order
    """
    results = []

    for i, root in enumerate(roots):
        if root != i or not fit_results[i]:
            continue

        best = fit_results[i][0]
        confidence = get_confidence(best.score)
        if confidence < confidence_cutoff:
            continue

        results.append(TabletopResult(
            object_id=best.model_id,
            pose=best.pose,
            confidence=confidence,
            cloud=clusters[i],
            cloud_index=i
        ))

    return results


class TabletopObjectRecognizer:
    """
    Recognizes registered objects in tabletop point cloud clusters.
    """

    def __init__(
        self,
        fit_merge_threshold: float = 0.02,
        max_workers: Optional[int] = None,
        detector=None
    ):
        """
        Initialize the recognizer.

        Args:
            fit_merge_threshold: Planar distance under which two fits are merged (m)
            max_workers: Threads for the initial fitting phase (one per cluster if None)
            detector: Model detector exposing add_object, clear_objects and
                      fit_best_models (ExhaustiveFitDetector if None)
        """
        self.detector = detector if detector is not None else ExhaustiveFitDetector()
        self.dispatcher = ClusterFitDispatcher(self.detector, num_models=1, max_workers=max_workers)
        self.merger = ClusterMerger(self.dispatcher, fit_merge_threshold)

    @property
    def fit_merge_threshold(self) -> float:
        """Planar distance under which two fits are treated as one object (m)."""
        return self.merger.fit_merge_threshold

    def clear_objects(self) -> None:
        """Remove every registered model from the detector."""
        self.detector.clear_objects()

    def add_object(self, model_id: Hashable, mesh) -> None:
        """
        Register a candidate model with the detector.

        Args:
            model_id: Identifier reported for detections of this model
            mesh: Open3D triangle mesh, or an Mx3 array of model points
        """
        self.detector.add_object(model_id, mesh)

    def object_detection(
        self,
        clusters: List,
        confidence_cutoff: float,
        perform_fit_merge: bool
    ) -> List[TabletopResult]:
        """
        Detect objects in a list of clusters.

        On success the clusters list is updated in place: entries are
        normalized to Nx3 float arrays and, when merging, roots receive the
        points of the clusters they absorb. If fitting raises, the list is
        left untouched.

        Args:
            clusters: List of Nx3 point arrays, one per segmented cluster
            confidence_cutoff: Minimum confidence of a reported object, in [0, 1]
            perform_fit_merge: Merge clusters whose best fits coincide

        Returns:
            List of TabletopResult, ordered by root cluster index
        """
        if not 0.0 <= confidence_cutoff <= 1.0:
            raise ValueError(f"confidence_cutoff must be in [0, 1], got {confidence_cutoff}")

        working = [as_points(points) for points in clusters]

        fit_results = self.dispatcher.fit_all(working, confidence_cutoff)

        if perform_fit_merge:
            roots = self.merger.merge(working, fit_results, confidence_cutoff)
        else:
            roots = identity_roots(len(working))

        results = aggregate_results(working, fit_results, roots, confidence_cutoff)
        clusters[:] = working

        num_merged = sum(1 for i, root in enumerate(roots) if root != i)
        logger.info(
            f"Recognized {len(results)} objects in {len(working)} clusters "
            f"({num_merged} merged)"
        )

        return results
