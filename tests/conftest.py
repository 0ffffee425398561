"""
Shared fixtures: synthetic cameras, poses and correspondence sets.
"""

import numpy as np
import pytest
from scipy.spatial.transform import Rotation

from PagePoseEstimation import project_points


@pytest.fixture
def camera_matrix():
    """Flattened row-major K with fx=fy=800, cx=320, cy=240."""
    return [800.0, 0.0, 320.0,
            0.0, 800.0, 240.0,
            0.0, 0.0, 1.0]


@pytest.fixture
def true_pose():
    rvec = Rotation.from_euler('xyz', [10, -15, 5], degrees=True).as_rotvec()
    tvec = np.array([0.2, -0.1, 8.0])
    return rvec, tvec


@pytest.fixture
def cube_points():
    """Non-coplanar object points."""
    rng = np.random.default_rng(42)
    return rng.uniform(-1.0, 1.0, size=(10, 3))


@pytest.fixture
def page_points():
    """3x3 grid on the page plane Z = 0."""
    xs, ys = np.meshgrid(np.linspace(0.0, 2.0, 3), np.linspace(0.0, 3.0, 3))
    return np.column_stack([xs.ravel(), ys.ravel(), np.zeros(xs.size)])


@pytest.fixture
def make_observations(camera_matrix):
    """Project object points under a pose (and optional distortion)."""
    def _make(points_3d, rvec, tvec, dist_coeffs=None, noise=0.0, seed=0):
        image_points = project_points(points_3d, rvec, tvec, camera_matrix, dist_coeffs)
        if noise > 0:
            rng = np.random.default_rng(seed)
            image_points = image_points + rng.normal(0.0, noise, image_points.shape)
        return image_points
    return _make
