"""
Exceptions raised at the public pose estimation boundary.

Internal components report problems through EstimationResult /
OptimizationResult status codes; the solver facade converts failed
results into these exceptions.
"""


class PoseEstimationError(ValueError):
    """Base class for all pose estimation errors"""


class InvalidCorrespondenceCountError(PoseEstimationError):
    """Object and image point arrays have different lengths"""

    def __init__(self, num_object_points: int, num_image_points: int):
        self.num_object_points = num_object_points
        self.num_image_points = num_image_points
        super().__init__(
            f"objectPoints and imagePoints must have same length "
            f"(got {num_object_points} and {num_image_points})"
        )


class DegenerateGeometryError(PoseEstimationError):
    """Correspondence set cannot determine a pose (too few or collinear points)"""


class DegenerateDepthError(DegenerateGeometryError):
    """A point lies on the camera plane (Zc == 0) so its projection is not finite"""


class InvalidCameraModelError(PoseEstimationError):
    """Camera matrix or distortion coefficients have an invalid shape or value"""
