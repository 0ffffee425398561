"""
Core types and interfaces.
"""

from .exceptions import (
    PoseEstimationError,
    InvalidCorrespondenceCountError,
    DegenerateGeometryError,
    DegenerateDepthError,
    InvalidCameraModelError,
)

from .structures import (
    CameraIntrinsics,
    DistortionCoefficients,
    PoseVector,
    PoseEstimate,
    as_correspondences,
)

__all__ = [
    'PoseEstimationError',
    'InvalidCorrespondenceCountError',
    'DegenerateGeometryError',
    'DegenerateDepthError',
    'InvalidCameraModelError',
    'CameraIntrinsics',
    'DistortionCoefficients',
    'PoseVector',
    'PoseEstimate',
    'as_correspondences',
]
