"""
Tests for the linear (DLT / homography) pose initializer.
"""

import numpy as np
import pytest
from numpy.testing import assert_allclose

from PagePoseEstimation import CameraIntrinsics, DegenerateGeometryError, LinearPoseInitializer, solve_dlt
from PagePoseEstimation.algorithms.geometry.pose.linear_initializer import (
    compute_homography,
    decompose_homography,
)
from PagePoseEstimation.core.interfaces.base_estimator import EstimationStatus


@pytest.fixture
def intrinsics(camera_matrix):
    return CameraIntrinsics.from_matrix(camera_matrix)


def test_planar_points_use_homography(intrinsics, page_points, true_pose, make_observations):
    rvec, tvec = true_pose
    image_points = make_observations(page_points, rvec, tvec)

    result = LinearPoseInitializer().estimate(page_points, image_points, intrinsics)

    assert result.success
    assert result.metadata['method'] == 'planar'
    assert_allclose(result.model.rvec, rvec, atol=1e-8)
    assert_allclose(result.model.tvec, tvec, atol=1e-8)
    assert np.max(result.residuals) < 1e-6


def test_constant_page_height(intrinsics, page_points, true_pose, make_observations):
    rvec, tvec = true_pose
    raised = page_points + np.array([0.0, 0.0, 0.5])
    image_points = make_observations(raised, rvec, tvec)

    result = LinearPoseInitializer().estimate(raised, image_points, intrinsics)

    assert result.metadata['method'] == 'planar'
    assert_allclose(result.model.rvec, rvec, atol=1e-8)
    assert_allclose(result.model.tvec, tvec, atol=1e-8)


def test_tilted_coplanar_points(intrinsics, true_pose, make_observations):
    rvec, tvec = true_pose
    xs, ys = np.meshgrid(np.linspace(-1.0, 1.0, 4), np.linspace(-1.0, 1.0, 3))
    xs, ys = xs.ravel(), ys.ravel()
    tilted = np.column_stack([xs, ys, 0.3 * xs + 0.2 * ys])
    image_points = make_observations(tilted, rvec, tvec)

    result = LinearPoseInitializer().estimate(tilted, image_points, intrinsics)

    assert result.metadata['method'] == 'planar'
    assert_allclose(result.model.rvec, rvec, atol=1e-8)
    assert_allclose(result.model.tvec, tvec, atol=1e-8)


def test_non_planar_points_use_dlt(intrinsics, cube_points, true_pose, make_observations):
    rvec, tvec = true_pose
    image_points = make_observations(cube_points, rvec, tvec)

    result = LinearPoseInitializer().estimate(cube_points, image_points, intrinsics)

    assert result.success
    assert result.metadata['method'] == 'dlt'
    assert_allclose(result.model.rvec, rvec, atol=1e-8)
    assert_allclose(result.model.tvec, tvec, atol=1e-8)


def test_solve_dlt_function(camera_matrix, cube_points, true_pose, make_observations):
    rvec, tvec = true_pose
    image_points = make_observations(cube_points, rvec, tvec)

    pose = solve_dlt(cube_points, image_points, camera_matrix)
    assert_allclose(pose.tvec, tvec, atol=1e-8)


def test_too_few_points(intrinsics, page_points, true_pose, make_observations):
    rvec, tvec = true_pose
    image_points = make_observations(page_points, rvec, tvec)

    result = LinearPoseInitializer().estimate(page_points[:3], image_points[:3], intrinsics)

    assert not result.success
    assert result.status == EstimationStatus.INSUFFICIENT_POINTS


def test_non_planar_needs_six_points(intrinsics, cube_points, true_pose, make_observations):
    rvec, tvec = true_pose
    image_points = make_observations(cube_points, rvec, tvec)

    result = LinearPoseInitializer().estimate(cube_points[:5], image_points[:5], intrinsics)

    assert not result.success
    assert result.status == EstimationStatus.INSUFFICIENT_POINTS
    assert result.metadata['method'] == 'dlt'


def test_collinear_points_are_degenerate(intrinsics, camera_matrix):
    line = np.column_stack([np.linspace(0.0, 2.0, 6), np.zeros(6), np.zeros(6)])
    image_points = np.column_stack([np.linspace(300.0, 500.0, 6), np.full(6, 240.0)])

    result = LinearPoseInitializer().estimate(line, image_points, intrinsics)

    assert not result.success
    assert result.status == EstimationStatus.DEGENERATE_CONFIG


def test_homography_maps_points():
    src = np.array([[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0], [0.5, 0.3]])
    H_true = np.array([[2.0, 0.1, 3.0], [0.2, 1.5, -1.0], [0.01, 0.02, 1.0]])
    src_h = np.column_stack([src, np.ones(len(src))]) @ H_true.T
    dst = src_h[:, :2] / src_h[:, 2:]

    H = compute_homography(src, dst)
    assert_allclose(H / H[2, 2], H_true, atol=1e-9)


def test_homography_rejects_coincident_points():
    src = np.zeros((4, 2))
    dst = np.array([[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0]])
    with pytest.raises(DegenerateGeometryError):
        compute_homography(src, dst)


def test_decomposition_keeps_points_in_front(intrinsics):
    # H = K [r1 r2 t] for a fronto-parallel plane at depth 4, with its sign flipped
    K = intrinsics.as_matrix()
    H = -(K @ np.array([[1.0, 0.0, 0.1], [0.0, 1.0, -0.2], [0.0, 0.0, 4.0]]))

    R, t = decompose_homography(H, intrinsics)

    assert_allclose(R, np.eye(3), atol=1e-12)
    assert_allclose(t, [0.1, -0.2, 4.0], atol=1e-12)
