"""
Pose Validation Utilities

Validation functions for 3D-2D correspondences and recovered poses:
rotation validity, depth constraints and reprojection errors.
"""

import numpy as np
from typing import Dict, Tuple, Optional, List
from dataclasses import dataclass, field

from PagePoseEstimation.algorithms.geometry.projection import (
    camera_depths,
    project_points,
    rodrigues_to_matrix,
)
from PagePoseEstimation.core.structures.camera import CameraIntrinsics, DistortionCoefficients
from PagePoseEstimation.core.structures.pose import PoseVector


@dataclass
class PoseValidationResult:
    """Result of pose validation"""
    is_valid: bool
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    metrics: Dict[str, float] = field(default_factory=dict)


class PoseValidator:
    """
    Validates a recovered pose against its correspondences.

    This class checks:
    - Rotation matrix validity (orthogonality, det=1)
    - Point depths (in front of the camera, within bounds)
    - Reprojection errors
    """

    def __init__(self,
                 max_reprojection_error: float = 2.0,
                 min_depth: float = 1e-6,
                 max_depth: float = 1e6):
        """
        Initialize pose validator.

        Args:
            max_reprojection_error: Mean reprojection error above which a warning is raised (pixels)
            min_depth: Minimum depth of a point in the camera frame
            max_depth: Maximum depth of a point in the camera frame
        """
        self.max_reprojection_error = max_reprojection_error
        self.min_depth = min_depth
        self.max_depth = max_depth

    def validate_pose(self,
                     pose: PoseVector,
                     points_3d: np.ndarray,
                     points_2d: np.ndarray,
                     intrinsics: CameraIntrinsics,
                     distortion: Optional[DistortionCoefficients] = None) -> PoseValidationResult:
        """
        Pose validation.

        Args:
            pose: Recovered pose
            points_3d: Object points (Nx3)
            points_2d: Observed image points (Nx2)
            intrinsics: Camera intrinsics
            distortion: Distortion coefficients (optional)

        Returns:
            PoseValidationResult with validation outcome and metrics
        """
        warnings = []
        errors = []
        metrics = {}

        if not pose.is_finite():
            errors.append("Pose contains NaN or Inf")
            return PoseValidationResult(is_valid=False, warnings=warnings,
                                        errors=errors, metrics=metrics)

        if not is_valid_rotation_matrix(rodrigues_to_matrix(pose.rvec)):
            errors.append("Invalid rotation matrix (not orthogonal or det != 1)")

        metrics['translation_norm'] = float(np.linalg.norm(pose.tvec))

        depth_metrics = self._validate_point_depths(points_3d, pose)
        metrics.update(depth_metrics)

        if depth_metrics['num_behind_camera'] > 0:
            warnings.append(f"{depth_metrics['num_behind_camera']} points behind camera")
        if depth_metrics['num_too_close'] > 0:
            warnings.append(f"{depth_metrics['num_too_close']} points too close to camera plane")
        if depth_metrics['num_too_far'] > 0:
            warnings.append(f"{depth_metrics['num_too_far']} points beyond max depth")

        reproj_errors = compute_reprojection_errors(
            points_3d, points_2d, pose, intrinsics, distortion
        )

        if len(reproj_errors) > 0:
            metrics['mean_reprojection_error'] = float(np.mean(reproj_errors))
            metrics['median_reprojection_error'] = float(np.median(reproj_errors))
            metrics['max_reprojection_error'] = float(np.max(reproj_errors))

            if not np.isfinite(metrics['max_reprojection_error']):
                errors.append("Non-finite reprojection error")
            elif metrics['mean_reprojection_error'] > self.max_reprojection_error:
                warnings.append(
                    f"High reprojection error: {metrics['mean_reprojection_error']:.2f} > "
                    f"{self.max_reprojection_error}"
                )

        return PoseValidationResult(
            is_valid=len(errors) == 0,
            warnings=warnings,
            errors=errors,
            metrics=metrics
        )

    def _validate_point_depths(self,
                              points_3d: np.ndarray,
                              pose: PoseVector) -> Dict[str, float]:
        """Validate depths of 3D points in camera frame."""
        depths = camera_depths(points_3d, pose.rvec, pose.tvec)

        num_behind_camera = np.sum(depths < 0)
        num_too_close = np.sum((depths >= 0) & (depths < self.min_depth))
        num_too_far = np.sum(depths > self.max_depth)

        metrics = {
            'num_behind_camera': int(num_behind_camera),
            'num_too_close': int(num_too_close),
            'num_too_far': int(num_too_far),
        }

        if len(depths) > 0:
            metrics['mean_depth'] = float(np.mean(depths))
            metrics['min_depth'] = float(np.min(depths))
            metrics['max_depth'] = float(np.max(depths))

        return metrics


def is_valid_rotation_matrix(R: np.ndarray, atol: float = 1e-6) -> bool:
    """Check if matrix is a proper rotation (R^T R = I, det = +1)."""
    R = np.asarray(R)
    if R.shape != (3, 3):
        return False

    if not np.allclose(R.T @ R, np.eye(3), atol=atol):
        return False

    return bool(np.isclose(np.linalg.det(R), 1.0, atol=atol))


def compute_reprojection_errors(points_3d: np.ndarray,
                                points_2d: np.ndarray,
                                pose: PoseVector,
                                intrinsics: CameraIntrinsics,
                                distortion: Optional[DistortionCoefficients] = None) -> np.ndarray:
    """
    Compute reprojection error for each point.

    Returns:
        Euclidean pixel distance per correspondence (N,)
    """
    projected = project_points(points_3d, pose.rvec, pose.tvec, intrinsics, distortion)
    return np.linalg.norm(projected - np.asarray(points_2d).reshape(-1, 2), axis=1)


def validate_correspondences(points_3d: np.ndarray,
                            points_2d: np.ndarray,
                            min_points: int = 4) -> Tuple[bool, str]:
    """
    Validate 2D-3D correspondences for pose estimation.

    Args:
        points_3d: 3D points (Nx3)
        points_2d: 2D points (Nx2)
        min_points: Minimum required points

    Returns:
        (is_valid, error_message)
    """
    if points_3d.size == 0 or points_2d.size == 0:
        return False, "Empty point arrays"

    points_3d = points_3d.reshape(-1, 3)
    points_2d = points_2d.reshape(-1, 2)

    if len(points_3d) != len(points_2d):
        return False, f"Mismatched lengths: {len(points_3d)} 3D points, {len(points_2d)} 2D points"

    if len(points_3d) < min_points:
        return False, f"Insufficient points: need at least {min_points}, got {len(points_3d)}"

    if not np.all(np.isfinite(points_3d)):
        return False, "3D points contain NaN or Inf"

    if not np.all(np.isfinite(points_2d)):
        return False, "2D points contain NaN or Inf"

    return True, ""
