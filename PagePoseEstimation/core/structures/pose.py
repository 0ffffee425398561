"""
Pose value types and correspondence handling.
"""

from dataclasses import dataclass
from typing import Any, Sequence, Tuple

import numpy as np

from PagePoseEstimation.core.exceptions import InvalidCorrespondenceCountError, PoseEstimationError


def _pose_vector(values: Any, size: int, name: str) -> np.ndarray:
    """Writable float64 copy of a pose component."""
    vector = np.array(values, dtype=np.float64).reshape(-1)
    if vector.size != size:
        raise ValueError(f"{name} must have {size} components, got {vector.size}")
    return vector


@dataclass(frozen=True, eq=False)
class PoseVector:
    """Axis-angle rotation and translation of the object frame in camera space"""
    rvec: np.ndarray
    tvec: np.ndarray

    def __post_init__(self):
        object.__setattr__(self, 'rvec', _pose_vector(self.rvec, 3, 'rvec'))
        object.__setattr__(self, 'tvec', _pose_vector(self.tvec, 3, 'tvec'))

    @classmethod
    def from_params(cls, params: np.ndarray) -> 'PoseVector':
        """Split a 6-element optimizer vector [rvec | tvec]."""
        params = np.asarray(params, dtype=np.float64).reshape(-1)
        return cls(rvec=params[:3], tvec=params[3:6])

    @classmethod
    def identity(cls) -> 'PoseVector':
        return cls(rvec=np.zeros(3), tvec=np.zeros(3))

    def as_params(self) -> np.ndarray:
        return np.concatenate([self.rvec, self.tvec])

    def rotation_matrix(self) -> np.ndarray:
        from PagePoseEstimation.algorithms.geometry.projection import rodrigues_to_matrix
        return rodrigues_to_matrix(self.rvec)

    def is_finite(self) -> bool:
        return bool(np.all(np.isfinite(self.rvec)) and np.all(np.isfinite(self.tvec)))


@dataclass(frozen=True, eq=False)
class PoseEstimate:
    """
    Result of a pose estimation call.

    Attributes:
        rvec: Axis-angle rotation (3,)
        tvec: Translation (3,)
        success: Whether a pose was produced
        converged: Whether refinement reached its error tolerance before
            the iteration cap
        iterations: Refinement iterations performed
        initial_error: Sum of squared pixel residuals of the linear estimate
        final_error: Sum of squared pixel residuals after refinement
        reprojection_error: RMS pixel distance after refinement
        method: Linear initializer branch ('planar' or 'dlt')
    """
    rvec: np.ndarray
    tvec: np.ndarray
    success: bool
    converged: bool = True
    iterations: int = 0
    initial_error: float = 0.0
    final_error: float = 0.0
    reprojection_error: float = 0.0
    method: str = ''

    def __post_init__(self):
        object.__setattr__(self, 'rvec', _pose_vector(self.rvec, 3, 'rvec'))
        object.__setattr__(self, 'tvec', _pose_vector(self.tvec, 3, 'tvec'))

    @property
    def pose(self) -> PoseVector:
        return PoseVector(rvec=self.rvec, tvec=self.tvec)

    def rotation_matrix(self) -> np.ndarray:
        return self.pose.rotation_matrix()

    def __bool__(self) -> bool:
        return self.success


def as_correspondences(object_points: Sequence, image_points: Sequence
                       ) -> Tuple[np.ndarray, np.ndarray]:
    """
    Check lengths, then copy correspondences into float arrays.

    Args:
        object_points: 3D points (Nx3, or OpenCV style Nx1x3)
        image_points: 2D points (Nx2, or Nx1x2)

    Returns:
        Tuple of (points_3d Nx3, points_2d Nx2)

    Raises:
        InvalidCorrespondenceCountError: if the sequences differ in length
        PoseEstimationError: if points are ragged or have the wrong dimension
    """
    if len(object_points) != len(image_points):
        raise InvalidCorrespondenceCountError(len(object_points), len(image_points))

    points_3d = _point_array(object_points, 3, "objectPoints")
    points_2d = _point_array(image_points, 2, "imagePoints")

    if len(points_3d) != len(points_2d):
        raise InvalidCorrespondenceCountError(len(points_3d), len(points_2d))

    return points_3d, points_2d


def _point_array(points: Sequence, dim: int, name: str) -> np.ndarray:
    """Copy points into an (N, dim) float array; trailing axis must be dim."""
    try:
        array = np.array(points, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise PoseEstimationError(f"{name} must be a numeric Nx{dim} array: {e}") from e

    if array.size == 0:
        return array.reshape(0, dim)

    if array.ndim == 0 or array.shape[-1] != dim:
        raise PoseEstimationError(
            f"{name} must have {dim} coordinates per point, got shape {array.shape}"
        )
    return array.reshape(-1, dim)
