"""
Model Registry Module

Holds the candidate object models that clusters are fitted against. Each
model is stored as a point set in its own frame, with the base of the object
resting on z = 0.
"""

import logging
from typing import Dict, Hashable, List, Tuple

import numpy as np
import open3d as o3d

from .spatial_index import as_points

logger = logging.getLogger(__name__)


class ModelRegistry:
    """
    Registry of candidate models keyed by model id.

    The registry is shared read-only by all fitting tasks of a detection
    call; it must only be mutated between calls.
    """

    def __init__(self, num_model_points: int = 500):
        """
        Initialize an empty registry.

        Args:
            num_model_points: Number of surface samples taken from each mesh
        """
        if num_model_points <= 0:
            raise ValueError("num_model_points must be positive")
        self.num_model_points = num_model_points
        self._models: Dict[Hashable, np.ndarray] = {}

    def add_object(self, model_id: Hashable, mesh) -> None:
        """
        Register a model, replacing any model with the same id.

        Args:
            model_id: Identifier reported for fits of this model
            mesh: Open3D triangle mesh, or an Mx3 array of model points
        """
        if isinstance(mesh, o3d.geometry.TriangleMesh):
            if len(mesh.triangles) == 0:
                raise ValueError(f"Mesh for model {model_id!r} has no triangles")
            sampled = mesh.sample_points_uniformly(number_of_points=self.num_model_points)
            points = np.asarray(sampled.points, dtype=np.float64)
        elif isinstance(mesh, (np.ndarray, list, tuple)):
            points = as_points(mesh)
        else:
            raise TypeError(f"Unsupported mesh descriptor: {type(mesh).__name__}")

        if len(points) == 0:
            raise ValueError(f"Model {model_id!r} has no points")

        self._models[model_id] = points
        logger.debug(f"Registered model {model_id!r} with {len(points)} points")

    def clear_objects(self) -> None:
        """Remove every registered model."""
        self._models.clear()

    def models(self) -> List[Tuple[Hashable, np.ndarray]]:
        """Snapshot of (model_id, points) pairs in registration order."""
        return list(self._models.items())

    def __len__(self) -> int:
        return len(self._models)

    def __contains__(self, model_id: Hashable) -> bool:
        return model_id in self._models
