# Cost functions
from .cost_functions import ReprojectionCost

# Refinement
from .refinement import (
    PoseRefiner,
    PoseRefinerConfig,
    refine_camera_pose
)

__all__ = [
    'ReprojectionCost',
    'PoseRefiner',
    'PoseRefinerConfig',
    'refine_camera_pose',
]
