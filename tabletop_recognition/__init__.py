"""
Tabletop Object Recognition

Recognizes known rigid objects in pre-segmented tabletop point cloud
clusters: model fitting, fragment merging, and confidence filtering.
"""

from .confidence import get_confidence
from .pose import Pose, ModelFitInfo, fit_distance
from .spatial_index import SpatialIndex
from .model_registry import ModelRegistry
from .fitting import IterativeTranslationFitter, ExhaustiveFitDetector
from .dispatcher import ClusterFitDispatcher
from .merger import ClusterMerger
from .recognizer import TabletopObjectRecognizer, TabletopResult, aggregate_results

__version__ = "1.0.0"

__all__ = [
    "TabletopObjectRecognizer",
    "TabletopResult",
    "ClusterFitDispatcher",
    "ClusterMerger",
    "ExhaustiveFitDetector",
    "IterativeTranslationFitter",
    "ModelRegistry",
    "SpatialIndex",
    "Pose",
    "ModelFitInfo",
    "aggregate_results",
    "fit_distance",
    "get_confidence"
]
