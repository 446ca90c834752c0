"""
Cluster Merging Module

Merges clusters whose best fits land on the same spot of the table. Upstream
segmentation sometimes splits one object into several clusters; those
fragments fit the same model at nearly the same position.
"""

import logging
from typing import List, Optional

import numpy as np

from .pose import ModelFitInfo, fit_distance

logger = logging.getLogger(__name__)


def identity_roots(num_clusters: int) -> List[int]:
    """Root map in which every cluster is its own root."""
    return list(range(num_clusters))


class ClusterMerger:
    """
    Greedy merge of clusters with coincident fits.

    Roots are visited in ascending index order. A root absorbs the first
    later live cluster whose top fit lies within the merge threshold on the
    table plane, is re-fitted on the combined points, and is then compared
    again against the remaining later clusters. Earlier indices are not
    revisited.

    The root map is a list of indices: roots[i] == i for a live root,
    roots[j] == i once cluster j has been absorbed into root i.
    """

    def __init__(self, dispatcher, fit_merge_threshold: float = 0.02):
        """
        Initialize the merger.

        Args:
            dispatcher: ClusterFitDispatcher used to re-fit merged clusters
            fit_merge_threshold: Planar distance below which two fits are the same object (m)
        """
        if fit_merge_threshold <= 0:
            raise ValueError("fit_merge_threshold must be positive")
        self.dispatcher = dispatcher
        self.fit_merge_threshold = fit_merge_threshold

    def find_merge_target(
        self,
        root: int,
        roots: List[int],
        fit_results: List[List[ModelFitInfo]]
    ) -> Optional[int]:
        """
        First live cluster after root whose top fit is close to root's top fit.

        Args:
            root: Index of the live root being grown
            roots: Current root map
            fit_results: Current fit lists, best-first

        Returns:
            Index of the cluster to absorb, or None
        """
        anchor = fit_results[root][0]

        for j in range(root + 1, len(roots)):
            if roots[j] != j or not fit_results[j]:
                continue
            if fit_distance(anchor, fit_results[j][0]) < self.fit_merge_threshold:
                return j

        return None

    def merge(
        self,
        clusters: List[np.ndarray],
        fit_results: List[List[ModelFitInfo]],
        confidence_cutoff: float,
        roots: Optional[List[int]] = None
    ) -> List[int]:
        """
        Merge fragment clusters in place and re-fit the grown roots.

        clusters and fit_results are modified: absorbed points are appended
        to their root, absorbed fit lists are cleared, and each grown root's
        fit list is replaced by a fresh fit of its merged points.

        Args:
            clusters: List of Nx3 cluster point arrays
            fit_results: One best-first fit list per cluster
            confidence_cutoff: Passed to the detector on re-fit
            roots: Existing root map to continue from (identity if None)

        Returns:
            Final root map
        """
        if len(clusters) != len(fit_results):
            raise ValueError(
                f"Got {len(clusters)} clusters but {len(fit_results)} fit lists"
            )

        if roots is None:
            roots = identity_roots(len(clusters))

        i = 0
        while i < len(clusters):
            if roots[i] != i or not fit_results[i]:
                i += 1
                continue

            j = self.find_merge_target(i, roots, fit_results)
            if j is None:
                i += 1
                continue

            clusters[i] = np.vstack([clusters[i], clusters[j]])
            fit_results[j] = []
            roots[j] = i

            # Sequential re-fit; the next comparison depends on the new pose
            fit_results[i] = self.dispatcher.fit_cluster(clusters[i], confidence_cutoff)

            logger.debug(
                f"Merged cluster {j} into {i} ({len(clusters[i])} points), "
                f"re-fit {'matched' if fit_results[i] else 'found no model'}"
            )

        return roots
