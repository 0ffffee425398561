# Pose refinement
from .pose_refiner import (
    PoseRefiner,
    PoseRefinerConfig,
    refine_camera_pose
)


__all__ = [
    'PoseRefiner',
    'PoseRefinerConfig',
    'refine_camera_pose',
]


# Module metadata
__description__ = 'Iterative refinement of camera poses'
