"""
Algorithms Module

Geometric and optimization algorithms for pose estimation.

Submodules:
- geometry: Projection, linear pose initialization, PnP solver
- optimization: Reprojection cost and pose refinement

Usage:
    from PagePoseEstimation.algorithms import estimate_pose, PoseRefiner
"""

# Geometry algorithms
from PagePoseEstimation.algorithms.geometry import (
    # Projection
    project_point,
    project_points,
    rodrigues_to_matrix,
    matrix_to_rodrigues,

    # Pose Estimation
    LinearPoseInitializer,
    solve_dlt,
    PnPSolver,
    estimate_pose,
    solve_pnp,
    PoseValidator,
)

# Optimization algorithms
from PagePoseEstimation.algorithms.optimization import (
    ReprojectionCost,
    PoseRefiner,
    PoseRefinerConfig,
    refine_camera_pose,
)


__all__ = [
    # Geometry - Projection
    'project_point',
    'project_points',
    'rodrigues_to_matrix',
    'matrix_to_rodrigues',

    # Geometry - Pose Estimation
    'LinearPoseInitializer',
    'solve_dlt',
    'PnPSolver',
    'estimate_pose',
    'solve_pnp',
    'PoseValidator',

    # Optimization
    'ReprojectionCost',
    'PoseRefiner',
    'PoseRefinerConfig',
    'refine_camera_pose',
]
