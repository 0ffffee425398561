"""
High-Level PnP Solver

Single public entry point for camera pose estimation from 3D-2D
correspondences, mirroring OpenCV's solvePnP: a linear (DLT) estimate
seeds a Levenberg-Marquardt refinement under the full distortion model.

Each call builds its own initializer and refiner, so a solver can be
shared between threads.

Usage:
    estimate = estimate_pose(object_points, image_points, camera_matrix)
    estimate.rvec, estimate.tvec
"""

import numpy as np
from typing import Any, Optional, Sequence

from PagePoseEstimation.algorithms.geometry.pose.linear_initializer import LinearPoseInitializer
from PagePoseEstimation.algorithms.geometry.pose.validators import PoseValidator
from PagePoseEstimation.algorithms.geometry.projection import project_points
from PagePoseEstimation.algorithms.optimization.refinement.pose_refiner import PoseRefiner
from PagePoseEstimation.core.exceptions import (
    DegenerateDepthError,
    DegenerateGeometryError,
    PoseEstimationError,
)
from PagePoseEstimation.core.interfaces.base_optimizer import OptimizationStatus
from PagePoseEstimation.core.structures.camera import CameraIntrinsics, DistortionCoefficients
from PagePoseEstimation.core.structures.pose import PoseEstimate, PoseVector, as_correspondences
from PagePoseEstimation.logger import get_logger

logger = get_logger("pose.pnp_solver")


class PnPSolverConfig:
    """Configuration for the PnP solver"""

    MIN_POINTS = 4

    # Validation only logs; it never changes the returned pose
    VALIDATE = False
    MAX_REPROJECTION_ERROR = 2.0  # pixels, warning threshold


class PnPSolver:
    """
    PnP solver: linear initialization followed by nonlinear refinement.

    Keyword configuration is forwarded to LinearPoseInitializer and
    PoseRefiner, each picking up the keys it knows (e.g. max_iterations,
    damping, planarity_tolerance).
    """

    def __init__(self, **config):
        """
        Initialize PnP solver.

        Args:
            **config: Configuration overrides for the solver, initializer and refiner
        """
        self.settings = PnPSolverConfig()
        self.config = dict(config)

        for key, value in config.items():
            if hasattr(self.settings, key.upper()):
                setattr(self.settings, key.upper(), value)

    def solve_pnp(self,
                  object_points: Sequence,
                  image_points: Sequence,
                  camera_matrix: Any,
                  dist_coeffs: Optional[Any] = None,
                  validate: Optional[bool] = None) -> PoseEstimate:
        """
        Solve PnP problem to estimate camera pose.

        Args:
            object_points: 3D points in the object frame (Nx3)
            image_points: Corresponding 2D points in the image (Nx2)
            camera_matrix: 3x3 matrix, flattened 9 values, (fx, fy, cx, cy)
                or CameraIntrinsics
            dist_coeffs: [k1, k2, p1, p2(, k3)]; fewer than 4 means none
            validate: Log pose validation warnings (default from config)

        Returns:
            PoseEstimate with success=True

        Raises:
            InvalidCorrespondenceCountError: lengths differ (checked first)
            InvalidCameraModelError: malformed camera matrix or distortion
            DegenerateGeometryError: fewer than 4 points or no linear solution
            DegenerateDepthError: a point lies on the camera plane
        """
        points_3d, points_2d = as_correspondences(object_points, image_points)

        if len(points_3d) < self.settings.MIN_POINTS:
            raise DegenerateGeometryError(
                f"solvePnP needs at least {self.settings.MIN_POINTS} correspondences, "
                f"got {len(points_3d)}"
            )
        if not (np.all(np.isfinite(points_3d)) and np.all(np.isfinite(points_2d))):
            raise PoseEstimationError("Correspondences contain NaN or Inf")

        intrinsics = CameraIntrinsics.from_matrix(camera_matrix)
        distortion = DistortionCoefficients.from_sequence(dist_coeffs)

        logger.debug(f"Running solvePnP on {len(points_3d)} points")

        # Stage 1: linear estimate (no distortion)
        init_result = LinearPoseInitializer(**self.config).estimate(points_3d, points_2d, intrinsics)
        if not init_result.success:
            raise DegenerateGeometryError(
                init_result.metadata.get('error', 'Linear pose estimation failed')
            )

        seed = init_result.model
        method = init_result.metadata['method']
        self._check_finite_projection(seed, points_3d, intrinsics, distortion, 'linear estimate')

        # Stage 2: nonlinear refinement (full distortion model)
        refiner = PoseRefiner(**self.config)
        refine_result = refiner.refine_pose(
            seed.rvec, seed.tvec, points_3d, points_2d, intrinsics, distortion
        )
        if not refine_result.success:
            raise DegenerateGeometryError(
                refine_result.metadata.get('error', 'Pose refinement failed')
            )

        pose = refine_result.optimized_params
        self._check_finite_projection(pose, points_3d, intrinsics, distortion, 'refined pose')

        if validate is None:
            validate = self.settings.VALIDATE
        if validate:
            self._log_validation(pose, points_3d, points_2d, intrinsics, distortion)

        estimate = PoseEstimate(
            rvec=pose.rvec,
            tvec=pose.tvec,
            success=True,
            converged=refine_result.status == OptimizationStatus.CONVERGED,
            iterations=refine_result.num_iterations,
            initial_error=refine_result.initial_cost,
            final_error=refine_result.final_cost,
            reprojection_error=refine_result.metadata['rms_error'],
            method=method
        )

        logger.debug(f"solvePnP success: rvec={estimate.rvec}, tvec={estimate.tvec}")

        return estimate

    def _check_finite_projection(self,
                                 pose: PoseVector,
                                 points_3d: np.ndarray,
                                 intrinsics: CameraIntrinsics,
                                 distortion: DistortionCoefficients,
                                 stage: str):
        """Zero-depth points have no finite projection."""
        projected = project_points(points_3d, pose.rvec, pose.tvec, intrinsics, distortion)
        bad = ~np.all(np.isfinite(projected), axis=1)
        if np.any(bad):
            raise DegenerateDepthError(
                f"{int(np.sum(bad))} point(s) project to non-finite pixels under the "
                f"{stage} (zero depth), indices {np.flatnonzero(bad).tolist()}"
            )

    def _log_validation(self, pose, points_3d, points_2d, intrinsics, distortion):
        validator = PoseValidator(max_reprojection_error=self.settings.MAX_REPROJECTION_ERROR)
        validation = validator.validate_pose(pose, points_3d, points_2d, intrinsics, distortion)

        for warning in validation.warnings:
            logger.warning(f"Pose validation: {warning}")
        for error in validation.errors:
            logger.error(f"Pose validation: {error}")


def estimate_pose(object_points: Sequence,
                  image_points: Sequence,
                  camera_matrix: Any,
                  dist_coeffs: Optional[Any] = None,
                  **config) -> PoseEstimate:
    """
    Find an object pose from 3D-2D point correspondences.

    Args:
        object_points: 3D points (Nx3)
        image_points: 2D points (Nx2)
        camera_matrix: Flattened row-major 3x3 matrix (or 3x3 / 4 values)
        dist_coeffs: Distortion coefficients, defaults to none
        **config: Solver / initializer / refiner configuration overrides

    Returns:
        PoseEstimate
    """
    return PnPSolver(**config).solve_pnp(object_points, image_points, camera_matrix, dist_coeffs)


solve_pnp = estimate_pose
