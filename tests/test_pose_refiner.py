"""
Tests for Levenberg-Marquardt pose refinement and the reprojection cost.
"""

import numpy as np
import pytest
from numpy.testing import assert_allclose

from PagePoseEstimation import CameraIntrinsics, DistortionCoefficients, PoseRefiner, refine_camera_pose
from PagePoseEstimation.algorithms.optimization.cost_functions import ReprojectionCost
from PagePoseEstimation.core.interfaces.base_optimizer import OptimizationStatus


@pytest.fixture
def intrinsics(camera_matrix):
    return CameraIntrinsics.from_matrix(camera_matrix)


@pytest.fixture
def perturbed_pose(true_pose):
    rvec, tvec = true_pose
    return rvec + np.array([0.05, -0.04, 0.03]), tvec + np.array([0.2, -0.1, 0.5])


class TestReprojectionCost:

    def test_zero_at_true_pose(self, intrinsics, cube_points, true_pose, make_observations):
        rvec, tvec = true_pose
        cost_fn = ReprojectionCost(cube_points, make_observations(cube_points, rvec, tvec), intrinsics)
        params = np.concatenate([rvec, tvec])

        assert cost_fn.num_residuals == 2 * len(cube_points)
        assert cost_fn.compute_cost(params) < 1e-18
        assert cost_fn.compute_rms(params) < 1e-9

    def test_residual_layout(self, intrinsics):
        points_3d = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0]])
        observed = np.array([[321.0, 238.0], [480.0, 240.0]])
        cost_fn = ReprojectionCost(points_3d, observed, intrinsics)

        residuals = cost_fn.compute_residuals([0, 0, 0, 0, 0, 5])
        assert_allclose(residuals, [-1.0, 2.0, 0.0, 0.0], atol=1e-12)
        assert cost_fn.compute_cost([0, 0, 0, 0, 0, 5]) == pytest.approx(5.0)

    def test_zero_depth_cost_is_infinite(self, intrinsics):
        points_3d = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 1.0]])
        cost_fn = ReprojectionCost(points_3d, np.zeros((2, 2)), intrinsics)
        assert cost_fn.compute_cost(np.zeros(6)) == float('inf')

    def test_jacobian_matches_central_difference(self, intrinsics, cube_points, true_pose,
                                                 make_observations):
        rvec, tvec = true_pose
        cost_fn = ReprojectionCost(cube_points, make_observations(cube_points, rvec, tvec), intrinsics)
        params = np.concatenate([rvec, tvec])

        J = cost_fn.numerical_jacobian(params, 1e-6)

        h = 1e-6
        for k in range(6):
            step = np.zeros(6)
            step[k] = h
            column = (cost_fn.predict(params + step) - cost_fn.predict(params - step)) / (2 * h)
            assert_allclose(J[:, k], column, rtol=1e-3, atol=1e-2)


class TestPoseRefiner:

    def test_recovers_true_pose(self, intrinsics, cube_points, true_pose, perturbed_pose,
                                make_observations):
        rvec, tvec = true_pose
        image_points = make_observations(cube_points, rvec, tvec)

        result = PoseRefiner().refine_pose(*perturbed_pose, cube_points, image_points, intrinsics)

        assert result.success
        assert result.status == OptimizationStatus.CONVERGED
        assert result.final_cost <= 1e-5
        assert_allclose(result.optimized_params.rvec, rvec, atol=1e-4)
        assert_allclose(result.optimized_params.tvec, tvec, atol=1e-3)
        assert result.metadata['num_points'] == len(cube_points)

    def test_cost_never_increases(self, intrinsics, page_points, true_pose, perturbed_pose,
                                  make_observations):
        rvec, tvec = true_pose
        image_points = make_observations(page_points, rvec, tvec, noise=0.5, seed=3)

        result = PoseRefiner().refine_pose(*perturbed_pose, page_points, image_points, intrinsics)

        history = np.asarray(result.convergence_history)
        assert np.all(np.diff(history) <= 1e-9)
        assert result.final_cost <= result.initial_cost

    def test_iteration_cap_returns_best_pose(self, intrinsics, cube_points, true_pose,
                                             perturbed_pose, make_observations):
        rvec, tvec = true_pose
        image_points = make_observations(cube_points, rvec, tvec)

        result = PoseRefiner(max_iterations=1).refine_pose(
            *perturbed_pose, cube_points, image_points, intrinsics
        )

        assert result.success
        assert result.status == OptimizationStatus.MAX_ITERATIONS
        assert not result.converged
        assert result.num_iterations == 1
        assert result.final_cost <= result.initial_cost

    def test_timeout(self, intrinsics, cube_points, true_pose, perturbed_pose, make_observations):
        rvec, tvec = true_pose
        image_points = make_observations(cube_points, rvec, tvec)

        result = PoseRefiner(max_runtime=0.0).refine_pose(
            *perturbed_pose, cube_points, image_points, intrinsics
        )

        assert result.success
        assert result.status == OptimizationStatus.TIMEOUT
        assert result.num_iterations == 0

    def test_zero_depth_seed_is_numerical_error(self, intrinsics, page_points):
        image_points = np.zeros((len(page_points), 2))

        result = PoseRefiner().refine_pose(np.zeros(3), np.zeros(3), page_points,
                                           image_points, intrinsics)

        assert not result.success
        assert result.status == OptimizationStatus.NUMERICAL_ERROR

    def test_invalid_seed(self, intrinsics, page_points):
        result = PoseRefiner().refine_pose([np.nan, 0, 0], [0, 0, 5], page_points,
                                           np.zeros((len(page_points), 2)), intrinsics)
        assert result.status == OptimizationStatus.INVALID_INPUT

    def test_iteration_callback(self, intrinsics, cube_points, true_pose, perturbed_pose,
                                make_observations):
        rvec, tvec = true_pose
        image_points = make_observations(cube_points, rvec, tvec)
        calls = []

        refiner = PoseRefiner()
        refiner.set_iteration_callback(lambda iteration, cost, params: calls.append(iteration))
        result = refiner.refine_pose(*perturbed_pose, cube_points, image_points, intrinsics)

        assert calls == list(range(1, result.num_iterations + 1))

    def test_refines_under_distortion(self, intrinsics, page_points, true_pose, make_observations):
        rvec, tvec = true_pose
        dist = DistortionCoefficients.from_sequence([-0.1, 0.01, 0.001, -0.001, 0.0])
        image_points = make_observations(page_points, rvec, tvec, dist_coeffs=dist)

        result = PoseRefiner().refine_pose(rvec + 0.02, tvec + 0.1, page_points,
                                           image_points, intrinsics, dist)

        assert result.converged
        assert_allclose(result.optimized_params.tvec, tvec, atol=1e-3)


def test_refine_camera_pose_dict(camera_matrix, cube_points, true_pose, perturbed_pose,
                                 make_observations):
    rvec, tvec = true_pose
    image_points = make_observations(cube_points, rvec, tvec)

    refined = refine_camera_pose(*perturbed_pose, cube_points, image_points, camera_matrix)

    assert refined['success']
    assert refined['converged']
    assert refined['improvement'] > 0
    assert_allclose(refined['tvec'], tvec, atol=1e-3)


def test_refine_camera_pose_failure(camera_matrix, page_points):
    refined = refine_camera_pose(np.zeros(3), np.zeros(3), page_points,
                                 np.zeros((len(page_points), 2)), camera_matrix)
    assert not refined['success']
    assert 'error' in refined


def test_verbose_logs_summary(caplog, intrinsics, cube_points, true_pose, perturbed_pose,
                              make_observations):
    rvec, tvec = true_pose
    image_points = make_observations(cube_points, rvec, tvec)
    finished = []

    refiner = PoseRefiner(verbose=True)
    refiner.set_convergence_callback(finished.append)
    with caplog.at_level("INFO", logger="PagePoseEstimation"):
        result = refiner.refine_pose(*perturbed_pose, cube_points, image_points, intrinsics)

    assert finished and finished[0].status == result.status
    messages = [record.getMessage() for record in caplog.records]
    assert "OPTIMIZATION RESULT" in messages
    assert any(message.startswith("Iteration 1:") for message in messages)
