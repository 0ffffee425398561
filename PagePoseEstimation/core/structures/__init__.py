from .camera import CameraIntrinsics, DistortionCoefficients
from .pose import PoseVector, PoseEstimate, as_correspondences

__all__ = [
    # Camera model
    'CameraIntrinsics',
    'DistortionCoefficients',

    # Pose
    'PoseVector',
    'PoseEstimate',

    # Utilities
    'as_correspondences',
]
