"""
Tests for the geometry projector.
"""

import numpy as np
import pytest
from numpy.testing import assert_allclose, assert_array_equal
from scipy.spatial.transform import Rotation

from PagePoseEstimation import (
    CameraIntrinsics,
    DistortionCoefficients,
    PoseVector,
    matrix_to_rodrigues,
    project_point,
    project_points,
    rodrigues_to_matrix,
)
from PagePoseEstimation.algorithms.geometry.projection import camera_depths, skew


def test_zero_rotation_is_exact_identity():
    assert_array_equal(rodrigues_to_matrix([0.0, 0.0, 0.0]), np.eye(3))
    # Below the small-angle threshold as well
    assert_array_equal(rodrigues_to_matrix([1e-10, -1e-10, 0.0]), np.eye(3))


def test_rodrigues_matches_scipy():
    rvec = Rotation.from_euler('xyz', [30, -20, 45], degrees=True).as_rotvec()
    expected = Rotation.from_rotvec(rvec).as_matrix()
    assert_allclose(rodrigues_to_matrix(rvec), expected, atol=1e-12)


def test_matrix_to_rodrigues_inverts_rodrigues():
    rvec = np.array([0.3, -0.2, 0.1])
    assert_allclose(matrix_to_rodrigues(rodrigues_to_matrix(rvec)), rvec, atol=1e-12)


def test_skew_is_cross_product():
    a = np.array([1.0, 2.0, 3.0])
    b = np.array([-4.0, 0.5, 2.0])
    assert_allclose(skew(a) @ b, np.cross(a, b))


def test_unit_square_projection(camera_matrix):
    square = [[0, 0, 0], [1, 0, 0], [1, 1, 0], [0, 1, 0]]
    projected = project_points(square, [0, 0, 0], [0, 0, 5], camera_matrix)

    expected = [[320, 240], [480, 240], [480, 400], [320, 400]]
    assert_allclose(projected, expected, atol=1e-9)


def test_project_point_matches_batch(camera_matrix, cube_points, true_pose):
    rvec, tvec = true_pose
    batch = project_points(cube_points, rvec, tvec, camera_matrix)
    single = project_point(cube_points[3], PoseVector(rvec, tvec), camera_matrix)
    assert single.shape == (2,)
    assert_allclose(single, batch[3])


def test_short_distortion_vector_is_ignored(camera_matrix, cube_points, true_pose):
    rvec, tvec = true_pose
    undistorted = project_points(cube_points, rvec, tvec, camera_matrix)

    for coeffs in (None, [], [0.3], [0.3, -0.1], [0.3, -0.1, 0.01]):
        assert_array_equal(project_points(cube_points, rvec, tvec, camera_matrix, coeffs),
                           undistorted)


def test_four_coefficients_mean_zero_k3(camera_matrix, cube_points, true_pose):
    rvec, tvec = true_pose
    four = project_points(cube_points, rvec, tvec, camera_matrix, [-0.2, 0.05, 0.001, -0.002])
    five = project_points(cube_points, rvec, tvec, camera_matrix,
                          [-0.2, 0.05, 0.001, -0.002, 0.0])
    assert_allclose(four, five)


def test_distortion_moves_points(camera_matrix, cube_points, true_pose):
    rvec, tvec = true_pose
    undistorted = project_points(cube_points, rvec, tvec, camera_matrix)
    distorted = project_points(cube_points, rvec, tvec, camera_matrix,
                               [-0.2, 0.05, 0.001, -0.002, 0.01])
    assert not np.allclose(distorted, undistorted)


def test_intrinsics_forms_are_equivalent(cube_points, true_pose):
    rvec, tvec = true_pose
    flat = [700.0, 0.0, 300.0, 0.0, 710.0, 250.0, 0.0, 0.0, 1.0]

    expected = project_points(cube_points, rvec, tvec, flat)
    assert_allclose(project_points(cube_points, rvec, tvec, np.reshape(flat, (3, 3))), expected)
    assert_allclose(project_points(cube_points, rvec, tvec,
                                   CameraIntrinsics(700.0, 710.0, 300.0, 250.0)), expected)


def test_zero_depth_gives_non_finite_pixels(camera_matrix):
    points = np.array([[0.0, 0.0, 0.0], [1.0, 1.0, 1.0]])
    projected = project_points(points, [0, 0, 0], [0, 0, 0], camera_matrix)

    assert not np.all(np.isfinite(projected[0]))
    assert_allclose(projected[1], [1120.0, 1040.0])


def test_camera_depths(true_pose, cube_points):
    rvec, tvec = true_pose
    depths = camera_depths(cube_points, rvec, tvec)
    expected = (cube_points @ Rotation.from_rotvec(rvec).as_matrix().T + tvec)[:, 2]
    assert_allclose(depths, expected)


def test_matches_opencv(camera_matrix, cube_points, true_pose):
    cv2 = pytest.importorskip("cv2")
    rvec, tvec = true_pose
    dist = [-0.2, 0.05, 0.001, -0.002, 0.01]

    ours = project_points(cube_points, rvec, tvec, camera_matrix, dist)
    reference, _ = cv2.projectPoints(
        cube_points.reshape(-1, 1, 3), rvec.reshape(3, 1), tvec.reshape(3, 1),
        np.reshape(camera_matrix, (3, 3)), np.asarray(dist)
    )
    assert_allclose(ours, reference.reshape(-1, 2), atol=1e-6)


def test_distortion_from_instance():
    coeffs = DistortionCoefficients.from_sequence([0.1, 0.2, 0.3, 0.4])
    assert DistortionCoefficients.from_sequence(coeffs) is coeffs
