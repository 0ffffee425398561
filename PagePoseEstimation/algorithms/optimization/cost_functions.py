"""
Reprojection Cost Functions

Residuals and cost of a single-camera pose against fixed 3D-2D
correspondences. The parameter vector is [rvec(3) | tvec(3)].

Residual layout (2N,): entry 2i is u_predicted - u_observed for
correspondence i, entry 2i+1 the same for v.
"""

import numpy as np
from typing import Optional

from PagePoseEstimation.algorithms.geometry.projection import project_points
from PagePoseEstimation.core.structures.camera import CameraIntrinsics, DistortionCoefficients


class ReprojectionCost:
    """
    Reprojection error of a pose under the full distortion model.

    All context is passed explicitly, so one instance can be evaluated
    at any parameter vector without side effects.
    """

    def __init__(self,
                 points_3d: np.ndarray,
                 points_2d: np.ndarray,
                 intrinsics: CameraIntrinsics,
                 distortion: Optional[DistortionCoefficients] = None):
        """
        Args:
            points_3d: Object points (Nx3)
            points_2d: Observed image points (Nx2)
            intrinsics: Camera intrinsics
            distortion: Distortion coefficients (optional)
        """
        self.points_3d = np.asarray(points_3d, dtype=np.float64).reshape(-1, 3)
        self.observed = np.asarray(points_2d, dtype=np.float64).reshape(-1)
        self.intrinsics = intrinsics
        self.distortion = DistortionCoefficients.from_sequence(distortion)

    @property
    def num_residuals(self) -> int:
        return self.observed.size

    def predict(self, params: np.ndarray) -> np.ndarray:
        """Predicted pixel coordinates, flattened to (2N,) as [u0, v0, u1, v1, ...]."""
        params = np.asarray(params, dtype=np.float64)
        return project_points(
            self.points_3d, params[:3], params[3:6], self.intrinsics, self.distortion
        ).reshape(-1)

    def compute_residuals(self, params: np.ndarray) -> np.ndarray:
        """
        Compute reprojection residuals.

        Returns:
            Residual vector (2N,)
        """
        with np.errstate(invalid='ignore'):
            return self.predict(params) - self.observed

    def compute_cost(self, params: np.ndarray) -> float:
        """
        Sum of squared residuals.

        Returns:
            Total cost; inf if any residual is not finite
        """
        residuals = self.compute_residuals(params)
        if not np.all(np.isfinite(residuals)):
            return float('inf')
        return float(residuals @ residuals)

    def compute_rms(self, params: np.ndarray) -> float:
        """RMS pixel distance over all correspondences."""
        cost = self.compute_cost(params)
        num_points = len(self.points_3d)
        if num_points == 0:
            return 0.0
        return float(np.sqrt(cost / num_points))

    def numerical_jacobian(self,
                           params: np.ndarray,
                           step: float,
                           predicted: Optional[np.ndarray] = None) -> np.ndarray:
        """
        Forward-difference Jacobian of the predictions.

        Args:
            params: Parameter vector (6,)
            step: Finite-difference step applied to each parameter
            predicted: Predictions at params, if already computed

        Returns:
            J (2N x 6) with J[i, k] = d prediction_i / d param_k
        """
        params = np.asarray(params, dtype=np.float64)
        if predicted is None:
            predicted = self.predict(params)

        J = np.empty((self.num_residuals, len(params)))
        for k in range(len(params)):
            shifted = params.copy()
            shifted[k] += step
            with np.errstate(invalid='ignore'):
                J[:, k] = (self.predict(shifted) - predicted) / step

        return J
