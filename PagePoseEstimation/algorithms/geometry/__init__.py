from .projection import (
    project_point,
    project_points,
    rodrigues_to_matrix,
    matrix_to_rodrigues,
    camera_depths,
)

from .pose import (
    LinearPoseInitializer,
    LinearInitializerConfig,
    solve_dlt,
    PnPSolver,
    PnPSolverConfig,
    estimate_pose,
    solve_pnp,
    PoseValidator,
)

__all__ = [
    'project_point',
    'project_points',
    'rodrigues_to_matrix',
    'matrix_to_rodrigues',
    'camera_depths',
    'LinearPoseInitializer',
    'LinearInitializerConfig',
    'solve_dlt',
    'PnPSolver',
    'PnPSolverConfig',
    'estimate_pose',
    'solve_pnp',
    'PoseValidator',
]
