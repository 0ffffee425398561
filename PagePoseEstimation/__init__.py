"""
PagePoseEstimation - Camera pose estimation for document dewarping

Recovers the camera rotation and translation relative to a photographed
page from 3D-2D point correspondences (a solvePnP equivalent): a linear
DLT estimate refined by Levenberg-Marquardt under a full lens
distortion model.
"""

from .logger import (
    setup_logger,
    get_logger,
    configure_root_logger,
    disable_console_logging,
    set_level
)

from .core import (
    PoseEstimationError,
    InvalidCorrespondenceCountError,
    DegenerateGeometryError,
    DegenerateDepthError,
    InvalidCameraModelError,
    CameraIntrinsics,
    DistortionCoefficients,
    PoseVector,
    PoseEstimate,
)

from .algorithms import (
    project_point,
    project_points,
    rodrigues_to_matrix,
    matrix_to_rodrigues,
    LinearPoseInitializer,
    solve_dlt,
    PnPSolver,
    estimate_pose,
    solve_pnp,
    PoseRefiner,
    refine_camera_pose,
)

from .page import (
    estimate_page_pose,
    get_default_params,
    pix2norm,
    norm2pix,
)

__version__ = "1.0.0"
__all__ = [
    # Logging
    "setup_logger",
    "get_logger",
    "configure_root_logger",
    "disable_console_logging",
    "set_level",

    # Errors
    "PoseEstimationError",
    "InvalidCorrespondenceCountError",
    "DegenerateGeometryError",
    "DegenerateDepthError",
    "InvalidCameraModelError",

    # Data model
    "CameraIntrinsics",
    "DistortionCoefficients",
    "PoseVector",
    "PoseEstimate",

    # Geometry
    "project_point",
    "project_points",
    "rodrigues_to_matrix",
    "matrix_to_rodrigues",

    # Pose estimation
    "LinearPoseInitializer",
    "solve_dlt",
    "PnPSolver",
    "estimate_pose",
    "solve_pnp",
    "PoseRefiner",
    "refine_camera_pose",

    # Page
    "estimate_page_pose",
    "get_default_params",
    "pix2norm",
    "norm2pix",
]
