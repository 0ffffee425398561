# Linear initialization
from .linear_initializer import (
    LinearPoseInitializer,
    LinearInitializerConfig,
    compute_homography,
    decompose_homography,
    solve_dlt
)

# Validation
from .validators import (
    PoseValidator,
    PoseValidationResult,
    compute_reprojection_errors,
    validate_correspondences
)

# Solver facade
from .pnp_solver import (
    PnPSolver,
    PnPSolverConfig,
    estimate_pose,
    solve_pnp
)

__all__ = [
    'LinearPoseInitializer',
    'LinearInitializerConfig',
    'compute_homography',
    'decompose_homography',
    'solve_dlt',
    'PoseValidator',
    'PoseValidationResult',
    'compute_reprojection_errors',
    'validate_correspondences',
    'PnPSolver',
    'PnPSolverConfig',
    'estimate_pose',
    'solve_pnp',
]
