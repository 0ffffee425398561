"""
Linear Pose Initializer

Closed-form, distortion-free pose estimate from 3D-2D correspondences
using the Direct Linear Transform. It only seeds the nonlinear refiner,
so lens distortion is ignored here.

Two branches:
- Planar: the object points lie on one plane (a photographed page).
  A homography is estimated with the normalized DLT and decomposed
  into rotation and translation.
- Generic: non-coplanar points. The 3x4 projection matrix [R|t] is
  estimated directly in normalized image coordinates.

Usage:
    initializer = LinearPoseInitializer()
    result = initializer.estimate(points_3d, points_2d, intrinsics)
    pose = result.model
"""

import numpy as np
from typing import Tuple

from PagePoseEstimation.algorithms.geometry.projection import matrix_to_rodrigues
from PagePoseEstimation.algorithms.geometry.pose.validators import (
    compute_reprojection_errors,
    validate_correspondences,
)
from PagePoseEstimation.core.exceptions import DegenerateGeometryError
from PagePoseEstimation.core.interfaces.base_estimator import (
    BaseEstimator,
    EstimationResult,
    EstimationStatus,
)
from PagePoseEstimation.core.structures.camera import CameraIntrinsics
from PagePoseEstimation.core.structures.pose import PoseVector
from PagePoseEstimation.logger import get_logger

logger = get_logger("pose.linear_initializer")


class LinearInitializerConfig:
    """Configuration for the linear initializer"""

    # Object points whose Z spread is below this are on the page plane Z = const
    PLANARITY_TOLERANCE = 1e-6

    # Relative smallest singular value of centered points for general coplanarity
    COPLANARITY_TOLERANCE = 1e-6

    # Relative singular value gap below which the DLT system is rank deficient
    RANK_TOLERANCE = 1e-10

    MIN_PLANAR_POINTS = 4
    MIN_GENERIC_POINTS = 6


class LinearPoseInitializer(BaseEstimator):
    """
    Direct linear pose estimation.

    Returns an EstimationResult whose model is a PoseVector. Degenerate
    correspondence sets (too few points, collinear points) produce a
    failed result instead of a pose.
    """

    def __init__(self, **config):
        super().__init__(**config)
        self.settings = LinearInitializerConfig()

        for key, value in config.items():
            if hasattr(self.settings, key.upper()):
                setattr(self.settings, key.upper(), value)

    def get_min_points(self) -> int:
        return self.settings.MIN_PLANAR_POINTS

    def validate_input(self, points_3d: np.ndarray, points_2d: np.ndarray,
                       intrinsics: CameraIntrinsics) -> Tuple[bool, str]:
        return validate_correspondences(points_3d, points_2d, min_points=self.get_min_points())

    def estimate(self,
                 points_3d: np.ndarray,
                 points_2d: np.ndarray,
                 intrinsics: CameraIntrinsics) -> EstimationResult:
        """
        Estimate a pose from correspondences.

        Args:
            points_3d: Object points (Nx3)
            points_2d: Image points in pixels (Nx2)
            intrinsics: Camera intrinsics

        Returns:
            EstimationResult with a PoseVector model and metadata['method']
        """
        points_3d = np.asarray(points_3d, dtype=np.float64).reshape(-1, 3)
        points_2d = np.asarray(points_2d, dtype=np.float64).reshape(-1, 2)

        is_valid, error_msg = self.validate_input(points_3d, points_2d, intrinsics)
        if not is_valid:
            return EstimationResult(
                success=False,
                status=EstimationStatus.INSUFFICIENT_POINTS,
                metadata={'error': error_msg}
            )

        frame = self._plane_frame(points_3d)

        try:
            if frame is not None:
                method = 'planar'
                pose = self._solve_planar(points_3d, points_2d, intrinsics, *frame)
            else:
                method = 'dlt'
                if len(points_3d) < self.settings.MIN_GENERIC_POINTS:
                    return EstimationResult(
                        success=False,
                        status=EstimationStatus.INSUFFICIENT_POINTS,
                        metadata={
                            'method': method,
                            'error': f"Non-planar DLT needs at least "
                                     f"{self.settings.MIN_GENERIC_POINTS} points, "
                                     f"got {len(points_3d)}"
                        }
                    )
                pose = self._solve_generic(points_3d, points_2d, intrinsics)
        except DegenerateGeometryError as e:
            return EstimationResult(
                success=False,
                status=EstimationStatus.DEGENERATE_CONFIG,
                metadata={'method': method, 'error': str(e)}
            )

        if not pose.is_finite():
            return EstimationResult(
                success=False,
                status=EstimationStatus.NUMERICAL_INSTABILITY,
                metadata={'method': method, 'error': 'Linear pose is not finite'}
            )

        logger.debug(f"Linear pose ({method}): rvec={pose.rvec}, tvec={pose.tvec}")

        return EstimationResult(
            success=True,
            status=EstimationStatus.SUCCESS,
            model=pose,
            residuals=compute_reprojection_errors(points_3d, points_2d, pose, intrinsics),
            metadata={'method': method, 'num_points': len(points_3d)}
        )

    def _plane_frame(self, points_3d: np.ndarray):
        """
        Find the plane carrying all object points.

        Returns:
            (basis, origin) such that (P - origin) @ basis.T has zero third
            coordinate, or None when the points are not coplanar
        """
        z = points_3d[:, 2]
        if np.ptp(z) < self.settings.PLANARITY_TOLERANCE:
            return np.eye(3), np.array([0.0, 0.0, float(np.mean(z))])

        origin = points_3d.mean(axis=0)
        _, S, Vt = np.linalg.svd(points_3d - origin)
        if S[0] > 0 and S[2] < self.settings.COPLANARITY_TOLERANCE * S[0]:
            basis = Vt.copy()
            if np.linalg.det(basis) < 0:
                basis[2] = -basis[2]
            return basis, origin

        return None

    def _solve_planar(self,
                      points_3d: np.ndarray,
                      points_2d: np.ndarray,
                      intrinsics: CameraIntrinsics,
                      basis: np.ndarray,
                      origin: np.ndarray) -> PoseVector:
        """Homography from the plane to the image, decomposed with K^-1."""
        plane_points = (points_3d - origin) @ basis.T
        H = compute_homography(plane_points[:, :2], points_2d,
                               rank_tolerance=self.settings.RANK_TOLERANCE)
        R_plane, t_plane = decompose_homography(H, intrinsics)

        # Back from plane coordinates to object coordinates
        R = R_plane @ basis
        t = t_plane - R @ origin

        return PoseVector(rvec=matrix_to_rodrigues(R), tvec=t)

    def _solve_generic(self,
                       points_3d: np.ndarray,
                       points_2d: np.ndarray,
                       intrinsics: CameraIntrinsics) -> PoseVector:
        """DLT for [R|t] on intrinsics-normalized image points."""
        image_norm = intrinsics.normalize(points_2d)

        T_obj = _similarity_transform(points_3d)
        T_img = _similarity_transform(image_norm)

        obj_h = _to_homogeneous(points_3d) @ T_obj.T
        img_h = _to_homogeneous(image_norm) @ T_img.T

        num_points = len(points_3d)
        A = np.zeros((2 * num_points, 12))
        for i in range(num_points):
            X = obj_h[i]
            u, v = img_h[i, 0], img_h[i, 1]
            A[2 * i, 0:4] = X
            A[2 * i, 8:12] = -u * X
            A[2 * i + 1, 4:8] = X
            A[2 * i + 1, 8:12] = -v * X

        _, S, Vt = np.linalg.svd(A)
        if S[10] < self.settings.RANK_TOLERANCE * S[0]:
            raise DegenerateGeometryError("DLT system is rank deficient")

        P = np.linalg.inv(T_img) @ Vt[-1].reshape(3, 4) @ T_obj

        M = P[:, :3]
        if np.linalg.det(M) < 0:
            P = -P
            M = P[:, :3]

        U, S_m, Vt_m = np.linalg.svd(M)
        R = U @ Vt_m
        scale = np.mean(S_m)
        if scale <= 0:
            raise DegenerateGeometryError("DLT projection matrix has zero scale")

        t = P[:, 3] / scale

        return PoseVector(rvec=matrix_to_rodrigues(R), tvec=t)


def _to_homogeneous(points: np.ndarray) -> np.ndarray:
    return np.hstack([points, np.ones((len(points), 1))])


def _similarity_transform(points: np.ndarray) -> np.ndarray:
    """
    Hartley normalization: translate the centroid to the origin and
    scale so the mean distance from it is sqrt(dim).
    """
    dim = points.shape[1]
    centroid = points.mean(axis=0)
    mean_dist = np.mean(np.linalg.norm(points - centroid, axis=1))
    if mean_dist < 1e-12:
        raise DegenerateGeometryError("All points coincide")

    s = np.sqrt(dim) / mean_dist
    T = np.eye(dim + 1)
    T[:dim, :dim] *= s
    T[:dim, dim] = -s * centroid
    return T


def compute_homography(src: np.ndarray, dst: np.ndarray,
                       rank_tolerance: float = LinearInitializerConfig.RANK_TOLERANCE) -> np.ndarray:
    """
    Normalized DLT homography mapping src (Nx2) to dst (Nx2), N >= 4.

    Returns:
        H (3x3) with dst ~ H @ [src, 1]

    Raises:
        DegenerateGeometryError: if the points do not determine H
    """
    T_src = _similarity_transform(src)
    T_dst = _similarity_transform(dst)

    src_n = _to_homogeneous(src) @ T_src.T
    dst_n = _to_homogeneous(dst) @ T_dst.T

    num_points = len(src)
    A = np.zeros((2 * num_points, 9))
    for i in range(num_points):
        x, y = src_n[i, 0], src_n[i, 1]
        u, v = dst_n[i, 0], dst_n[i, 1]
        A[2 * i] = [-x, -y, -1.0, 0.0, 0.0, 0.0, u * x, u * y, u]
        A[2 * i + 1] = [0.0, 0.0, 0.0, -x, -y, -1.0, v * x, v * y, v]

    _, S, Vt = np.linalg.svd(A)
    if S[7] < rank_tolerance * S[0]:
        raise DegenerateGeometryError("Homography is rank deficient (collinear points?)")

    H = np.linalg.inv(T_dst) @ Vt[-1].reshape(3, 3) @ T_src
    return H


def decompose_homography(H: np.ndarray, intrinsics: CameraIntrinsics) -> Tuple[np.ndarray, np.ndarray]:
    """
    Split a plane-to-image homography into rotation and translation.

    The first two columns of K^-1 H are the scaled plane axes r1, r2 and
    the third the scaled translation. The rotation is re-orthonormalized
    with an SVD since the linear solve does not give an exact rotation.

    Returns:
        Tuple of (R 3x3, t (3,)) with the plane in front of the camera
    """
    M = np.linalg.inv(intrinsics.as_matrix()) @ H

    n1 = np.linalg.norm(M[:, 0])
    n2 = np.linalg.norm(M[:, 1])
    if n1 < 1e-12 or n2 < 1e-12:
        raise DegenerateGeometryError("Homography columns vanish")

    r1 = M[:, 0] / n1
    r2 = M[:, 1] / n2
    t = M[:, 2] / ((n1 + n2) / 2.0)

    # H is only defined up to sign; keep the plane in front of the camera
    if t[2] < 0:
        r1, r2, t = -r1, -r2, -t

    r3 = np.cross(r1, r2)
    U, _, Vt = np.linalg.svd(np.column_stack([r1, r2, r3]))
    R = U @ Vt
    if np.linalg.det(R) < 0:
        U[:, -1] = -U[:, -1]
        R = U @ Vt

    return R, t


def solve_dlt(points_3d: np.ndarray,
              points_2d: np.ndarray,
              camera_matrix) -> PoseVector:
    """
    Convenience function for the linear pose estimate.

    Args:
        points_3d: Object points (Nx3)
        points_2d: Image points (Nx2)
        camera_matrix: CameraIntrinsics or a 3x3 / 9-value / 4-value matrix

    Returns:
        PoseVector

    Raises:
        DegenerateGeometryError: if no pose can be computed
    """
    result = LinearPoseInitializer().estimate(
        points_3d, points_2d, CameraIntrinsics.from_matrix(camera_matrix)
    )
    if not result.success:
        raise DegenerateGeometryError(result.metadata.get('error', 'Linear pose estimation failed'))
    return result.model
