"""
Pose Module

Pose and fit records shared by the fitter, the merge loop, and the result
builder. Poses are 6D (position + orientation) and expressed in the table
frame, where the supporting plane is z = 0.
"""

from dataclasses import dataclass, field
from typing import Hashable

import numpy as np


def rotation_matrix_to_rpy(R: np.ndarray) -> np.ndarray:
    """
    Convert 3x3 rotation matrix to roll, pitch, yaw (ZYX Euler angles).

    Args:
        R: 3x3 rotation matrix

    Returns:
        Array of [roll, pitch, yaw] in radians
    """
    sy = np.sqrt(R[0, 0] ** 2 + R[1, 0] ** 2)
    singular = sy < 1e-6

    if not singular:
        roll = np.arctan2(R[2, 1], R[2, 2])
        pitch = np.arctan2(-R[2, 0], sy)
        yaw = np.arctan2(R[1, 0], R[0, 0])
    else:
        roll = np.arctan2(-R[1, 2], R[1, 1])
        pitch = np.arctan2(-R[2, 0], sy)
        yaw = 0.0

    return np.array([roll, pitch, yaw], dtype=np.float64)


@dataclass
class Pose:
    """
    Rigid 6D pose: a translation and a rotation matrix.
    """

    position: np.ndarray
    rotation: np.ndarray = field(default_factory=lambda: np.eye(3))

    def __post_init__(self):
        self.position = np.asarray(self.position, dtype=np.float64).reshape(3)
        self.rotation = np.asarray(self.rotation, dtype=np.float64).reshape(3, 3)

    @property
    def orientation(self) -> np.ndarray:
        """Orientation as [roll, pitch, yaw] in radians."""
        return rotation_matrix_to_rpy(self.rotation)

    def as_matrix(self) -> np.ndarray:
        """Return the pose as a 4x4 homogeneous transform."""
        T = np.eye(4, dtype=np.float64)
        T[:3, :3] = self.rotation
        T[:3, 3] = self.position
        return T


@dataclass
class ModelFitInfo:
    """
    Result of fitting one candidate model to one cluster.

    Attributes:
        model_id: Identifier of the model in the registry
        pose: Estimated pose of the model origin
        score: Raw fit score in [0, 1], higher is better
    """

    model_id: Hashable
    pose: Pose
    score: float


def fit_distance(fit_a: ModelFitInfo, fit_b: ModelFitInfo) -> float:
    """
    Distance along the supporting plane between two fitted models.

    Only x and y are compared; objects are assumed to rest on the same plane.
    """
    dx = fit_a.pose.position[0] - fit_b.pose.position[0]
    dy = fit_a.pose.position[1] - fit_b.pose.position[1]
    return float(np.sqrt(dx * dx + dy * dy))
