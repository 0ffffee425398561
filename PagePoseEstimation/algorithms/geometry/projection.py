"""
Geometry Projector

Maps object points through a candidate pose and a camera model to pixel
coordinates, including Brown-Conrady radial/tangential lens distortion.

Zero depth is not an error here: a point with Zc == 0 projects to a
non-finite pixel and the caller decides what to do with it (the refiner
rejects such steps, the solver facade raises DegenerateDepthError).
"""

import numpy as np
from typing import Optional, Sequence, Union
from scipy.spatial.transform import Rotation

from PagePoseEstimation.core.structures.camera import CameraIntrinsics, DistortionCoefficients
from PagePoseEstimation.core.structures.pose import PoseVector


class ProjectionConfig:
    """Configuration for projection"""

    # Below this angle the rotation axis is undefined and R is the identity
    ROTATION_EPSILON = 1e-8


def skew(v: np.ndarray) -> np.ndarray:
    """Cross-product matrix [v]x such that skew(v) @ w == np.cross(v, w)."""
    return np.array([[0.0, -v[2], v[1]],
                     [v[2], 0.0, -v[0]],
                     [-v[1], v[0], 0.0]])


def rodrigues_to_matrix(rvec: Union[Sequence[float], np.ndarray],
                        epsilon: float = ProjectionConfig.ROTATION_EPSILON) -> np.ndarray:
    """
    Convert an axis-angle vector to a 3x3 rotation matrix.

    R = cos(theta) I + sin(theta) [k]x + (1 - cos(theta)) k k^T

    Args:
        rvec: Rotation vector (3,), direction is the axis, norm the angle
        epsilon: Angles below this return the exact identity

    Returns:
        Rotation matrix (3x3)
    """
    rvec = np.asarray(rvec, dtype=np.float64).reshape(3)
    theta = np.linalg.norm(rvec)

    if theta < epsilon:
        return np.eye(3)

    k = rvec / theta
    c = np.cos(theta)
    s = np.sin(theta)

    return c * np.eye(3) + s * skew(k) + (1.0 - c) * np.outer(k, k)


def matrix_to_rodrigues(R: np.ndarray) -> np.ndarray:
    """
    Convert a rotation matrix to an axis-angle vector.

    Args:
        R: Rotation matrix (3x3)

    Returns:
        Rotation vector (3,)
    """
    return Rotation.from_matrix(np.asarray(R, dtype=np.float64)).as_rotvec()


def transform_points(points_3d: np.ndarray, rvec: np.ndarray, tvec: np.ndarray) -> np.ndarray:
    """Object frame to camera frame: R @ P + t for each row of points_3d."""
    R = rodrigues_to_matrix(rvec)
    t = np.asarray(tvec, dtype=np.float64).reshape(3)
    return np.asarray(points_3d, dtype=np.float64).reshape(-1, 3) @ R.T + t


def camera_depths(points_3d: np.ndarray, rvec: np.ndarray, tvec: np.ndarray) -> np.ndarray:
    """Depth (Zc) of each object point in the camera frame."""
    return transform_points(points_3d, rvec, tvec)[:, 2]


def distort_normalized(x: np.ndarray, y: np.ndarray,
                       distortion: DistortionCoefficients) -> tuple:
    """Apply radial and tangential distortion to normalized coordinates."""
    if not distortion.is_active:
        return x, y

    k1, k2, p1, p2, k3 = (distortion.k1, distortion.k2, distortion.p1,
                          distortion.p2, distortion.k3)

    r2 = x * x + y * y
    radial = 1.0 + k1 * r2 + k2 * r2 * r2 + k3 * r2 * r2 * r2
    dx = 2.0 * p1 * x * y + p2 * (r2 + 2.0 * x * x)
    dy = p1 * (r2 + 2.0 * y * y) + 2.0 * p2 * x * y

    return x * radial + dx, y * radial + dy


def project_points(points_3d: np.ndarray,
                   rvec: np.ndarray,
                   tvec: np.ndarray,
                   camera_matrix: Union[CameraIntrinsics, Sequence[float], np.ndarray],
                   dist_coeffs: Optional[Union[DistortionCoefficients, Sequence[float]]] = None
                   ) -> np.ndarray:
    """
    Project object points to pixel coordinates.

    Args:
        points_3d: Object points (Nx3)
        rvec: Rotation vector (3,)
        tvec: Translation vector (3,)
        camera_matrix: CameraIntrinsics or a 3x3 / 9-value / 4-value matrix
        dist_coeffs: Distortion coefficients [k1, k2, p1, p2(, k3)], optional

    Returns:
        Pixel coordinates (Nx2); rows are non-finite where Zc == 0
    """
    intrinsics = CameraIntrinsics.from_matrix(camera_matrix)
    distortion = DistortionCoefficients.from_sequence(dist_coeffs)

    points_cam = transform_points(points_3d, rvec, tvec)

    with np.errstate(divide='ignore', invalid='ignore', over='ignore'):
        x = points_cam[:, 0] / points_cam[:, 2]
        y = points_cam[:, 1] / points_cam[:, 2]

        x_d, y_d = distort_normalized(x, y, distortion)

        u = intrinsics.fx * x_d + intrinsics.cx
        v = intrinsics.fy * y_d + intrinsics.cy

    return np.column_stack([u, v])


def project_point(point_3d: Union[Sequence[float], np.ndarray],
                  pose: PoseVector,
                  camera_matrix: Union[CameraIntrinsics, Sequence[float], np.ndarray],
                  dist_coeffs: Optional[Union[DistortionCoefficients, Sequence[float]]] = None
                  ) -> np.ndarray:
    """
    Project a single object point.

    Returns:
        Pixel coordinate (2,)
    """
    return project_points(
        np.asarray(point_3d, dtype=np.float64).reshape(1, 3),
        pose.rvec, pose.tvec, camera_matrix, dist_coeffs
    )[0]
