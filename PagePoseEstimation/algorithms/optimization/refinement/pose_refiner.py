"""
Iterative Pose Refinement

Refines a single camera pose by Levenberg-Marquardt minimization of the
summed squared reprojection error, using the full distortion model and a
forward-difference Jacobian.

Used for:
- Refining the linear initializer's estimate inside the PnP solver
- Standalone pose polishing when a pose and correspondences are known
"""

import numpy as np
from typing import Any, Dict, Optional, Tuple
from scipy.linalg import LinAlgError, solve

from PagePoseEstimation.algorithms.optimization.cost_functions import ReprojectionCost
from PagePoseEstimation.core.interfaces.base_optimizer import (
    IterativeOptimizer,
    OptimizationResult,
    OptimizationStatus,
)
from PagePoseEstimation.core.structures.camera import CameraIntrinsics, DistortionCoefficients
from PagePoseEstimation.core.structures.pose import PoseVector
from PagePoseEstimation.logger import get_logger

logger = get_logger("optimization.pose_refiner")


class PoseRefinerConfig:
    """Configuration for pose refinement"""

    # Termination
    MAX_ITERATIONS = 20
    ERROR_TOLERANCE = 1e-5      # on the summed squared residuals (px^2)
    MAX_RUNTIME = None          # seconds, None for no limit

    # Levenberg-Marquardt
    DAMPING = 1e-2
    GRADIENT_DIFFERENCE = 1e-3  # forward-difference step for the Jacobian
    DAMPING_STEP_UP = 11.0
    DAMPING_STEP_DOWN = 9.0
    MIN_DAMPING = 1e-7
    MAX_DAMPING = 1e7
    IMPROVEMENT_THRESHOLD = 1e-3

    MIN_POINTS = 4


class PoseRefiner(IterativeOptimizer):
    """
    Levenberg-Marquardt pose refinement.

    Each iteration solves (J^T J + lambda I) delta = -J^T r. A step is
    kept only if the actual cost reduction is a reasonable fraction of the
    reduction predicted by the linearization, so the cost never increases.
    Rejected steps raise the damping, accepted ones lower it.

    Reaching the iteration cap is not a failure: the best pose found is
    returned with status MAX_ITERATIONS.
    """

    def __init__(self, **config):
        """
        Initialize pose refiner.

        Args:
            **config: Configuration overrides, e.g. max_iterations=50,
                damping=1e-3, verbose=True
        """
        self.settings = PoseRefinerConfig()

        for key, value in config.items():
            if hasattr(self.settings, key.upper()):
                setattr(self.settings, key.upper(), value)

        super().__init__(
            max_iterations=self.settings.MAX_ITERATIONS,
            tolerance=self.settings.ERROR_TOLERANCE,
            max_runtime=self.settings.MAX_RUNTIME,
            verbose=bool(config.get('verbose', False))
        )

        self._damping = self.settings.DAMPING
        self._accepted_steps = 0

    def get_algorithm_name(self) -> str:
        return "PoseRefiner"

    def reset(self):
        super().reset()
        self._damping = self.settings.DAMPING
        self._accepted_steps = 0

    def validate_input(self, params: np.ndarray, cost_fn: ReprojectionCost) -> Tuple[bool, str]:
        """Validate input for pose refinement"""
        params = np.asarray(params)
        if params.shape != (6,):
            return False, f"Pose parameter vector must have 6 entries, got shape {params.shape}"
        if not np.all(np.isfinite(params)):
            return False, "Initial pose contains NaN or Inf"
        if len(cost_fn.points_3d) < self.settings.MIN_POINTS:
            return False, (f"Need at least {self.settings.MIN_POINTS} points, "
                           f"got {len(cost_fn.points_3d)}")
        return True, ""

    def compute_cost(self, params: np.ndarray, cost_fn: ReprojectionCost) -> float:
        return cost_fn.compute_cost(params)

    def compute_residuals(self, params: np.ndarray, cost_fn: ReprojectionCost) -> np.ndarray:
        return cost_fn.compute_residuals(params)

    def check_convergence(self, current_cost: float, previous_cost: float) -> bool:
        """Converged once the error metric itself is within tolerance."""
        return current_cost <= self.tolerance

    def _iteration_step(self, current_params: np.ndarray, cost_fn: ReprojectionCost) -> np.ndarray:
        """One damped Gauss-Newton step; returns current_params if the step is rejected."""
        predicted = cost_fn.predict(current_params)
        residuals = predicted - cost_fn.observed
        J = cost_fn.numerical_jacobian(
            current_params, self.settings.GRADIENT_DIFFERENCE, predicted
        )

        gradient = J.T @ residuals
        normal_matrix = J.T @ J + self._damping * np.eye(len(current_params))

        try:
            delta = -solve(normal_matrix, gradient, assume_a='pos')
        except (LinAlgError, ValueError):
            self._increase_damping()
            return current_params

        trial_params = current_params + delta
        trial_cost = cost_fn.compute_cost(trial_params)
        current_cost = float(residuals @ residuals)

        predicted_reduction = float(delta @ (self._damping * delta - gradient))
        actual_reduction = current_cost - trial_cost

        if (np.isfinite(trial_cost) and predicted_reduction > 0
                and actual_reduction / predicted_reduction > self.settings.IMPROVEMENT_THRESHOLD):
            self._damping = max(self._damping / self.settings.DAMPING_STEP_DOWN,
                                self.settings.MIN_DAMPING)
            self._accepted_steps += 1
            return trial_params

        self._increase_damping()
        return current_params

    def _increase_damping(self):
        self._damping = min(self._damping * self.settings.DAMPING_STEP_UP,
                            self.settings.MAX_DAMPING)

    def refine_pose(self,
                    rvec: np.ndarray,
                    tvec: np.ndarray,
                    points_3d: np.ndarray,
                    points_2d: np.ndarray,
                    intrinsics: CameraIntrinsics,
                    distortion: Optional[DistortionCoefficients] = None) -> OptimizationResult:
        """
        Refine a single camera pose.

        Args:
            rvec: Initial rotation vector (3,)
            tvec: Initial translation vector (3,)
            points_3d: Object points (Nx3)
            points_2d: Corresponding image points (Nx2)
            intrinsics: Camera intrinsics
            distortion: Distortion coefficients (optional)

        Returns:
            OptimizationResult whose optimized_params is a PoseVector
        """
        cost_fn = ReprojectionCost(points_3d, points_2d, intrinsics, distortion)
        initial_pose = PoseVector(rvec=rvec, tvec=tvec)

        logger.debug(f"Refining pose on {len(cost_fn.points_3d)} points "
                     f"(distortion: {cost_fn.distortion.is_active})")

        result = self.optimize(initial_pose.as_params(), cost_fn)

        if result.optimized_params is not None:
            result.optimized_params = PoseVector.from_params(result.optimized_params)

        if result.success:
            result.metadata.update({
                'num_points': len(cost_fn.points_3d),
                'accepted_steps': self._accepted_steps,
                'final_damping': self._damping,
                'rms_error': cost_fn.compute_rms(result.optimized_params.as_params()),
            })
            logger.info(f"Pose refinement {result.status.value}: cost "
                        f"{result.initial_cost:.6g} -> {result.final_cost:.6g} "
                        f"in {result.num_iterations} iterations")
            if self.verbose:
                result.print_summary()
        else:
            logger.warning(f"Pose refinement failed: {result.metadata.get('error')}")

        return result


def refine_camera_pose(rvec: np.ndarray,
                       tvec: np.ndarray,
                       points_3d: np.ndarray,
                       points_2d: np.ndarray,
                       camera_matrix: Any,
                       dist_coeffs: Optional[Any] = None,
                       **config) -> Dict[str, Any]:
    """
    Convenience function for pose refinement.

    Args:
        rvec: Initial rotation vector
        tvec: Initial translation vector
        points_3d: Object points
        points_2d: Image points
        camera_matrix: CameraIntrinsics or a 3x3 / 9-value / 4-value matrix
        dist_coeffs: Distortion coefficients (optional)
        **config: PoseRefinerConfig overrides

    Returns:
        Dictionary with refined pose
    """
    refiner = PoseRefiner(**config)

    result = refiner.refine_pose(
        rvec=rvec,
        tvec=tvec,
        points_3d=points_3d,
        points_2d=points_2d,
        intrinsics=CameraIntrinsics.from_matrix(camera_matrix),
        distortion=DistortionCoefficients.from_sequence(dist_coeffs)
    )

    if result.success:
        return {
            'success': True,
            'rvec': result.optimized_params.rvec,
            'tvec': result.optimized_params.tvec,
            'converged': result.status == OptimizationStatus.CONVERGED,
            'initial_error': result.initial_cost,
            'final_error': result.final_cost,
            'improvement': result.get_cost_reduction()
        }
    else:
        return {
            'success': False,
            'error': result.metadata.get('error', 'Refinement failed')
        }
