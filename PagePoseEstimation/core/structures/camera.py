"""
Camera model value types.

CameraIntrinsics holds the pinhole calibration (fx, fy, cx, cy) and
DistortionCoefficients the Brown-Conrady lens terms [k1, k2, p1, p2, k3].
Both are frozen so a single instance can be shared by concurrent
estimations.
"""

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple, Union

import numpy as np

from PagePoseEstimation.core.exceptions import InvalidCameraModelError


@dataclass(frozen=True)
class CameraIntrinsics:
    """Pinhole camera intrinsics"""
    fx: float
    fy: float
    cx: float
    cy: float

    def __post_init__(self):
        values = (self.fx, self.fy, self.cx, self.cy)
        if not all(np.isfinite(v) for v in values):
            raise InvalidCameraModelError(f"Camera intrinsics must be finite, got {values}")
        if self.fx == 0 or self.fy == 0:
            raise InvalidCameraModelError(
                f"Focal lengths must be non-zero, got fx={self.fx}, fy={self.fy}"
            )

    @classmethod
    def from_matrix(cls, camera_matrix: Union['CameraIntrinsics', Sequence[float], np.ndarray]
                    ) -> 'CameraIntrinsics':
        """
        Build intrinsics from a calibration matrix.

        Args:
            camera_matrix: 3x3 matrix, flattened row-major 9 values,
                4 values (fx, fy, cx, cy) or an existing CameraIntrinsics

        Returns:
            CameraIntrinsics
        """
        if isinstance(camera_matrix, CameraIntrinsics):
            return camera_matrix

        try:
            values = np.asarray(camera_matrix, dtype=np.float64).reshape(-1)
        except (TypeError, ValueError) as e:
            raise InvalidCameraModelError(f"Camera matrix is not numeric: {e}") from e

        if values.size == 9:
            return cls(fx=float(values[0]), fy=float(values[4]),
                       cx=float(values[2]), cy=float(values[5]))
        if values.size == 4:
            return cls(fx=float(values[0]), fy=float(values[1]),
                       cx=float(values[2]), cy=float(values[3]))

        raise InvalidCameraModelError(
            f"Camera matrix must have 9 or 4 values, got {values.size}"
        )

    def as_matrix(self) -> np.ndarray:
        """Return the 3x3 calibration matrix K."""
        return np.array([[self.fx, 0.0, self.cx],
                         [0.0, self.fy, self.cy],
                         [0.0, 0.0, 1.0]])

    def normalize(self, points_2d: np.ndarray) -> np.ndarray:
        """Map pixel coordinates (Nx2) to normalized image coordinates (K^-1)."""
        points_2d = np.asarray(points_2d, dtype=np.float64).reshape(-1, 2)
        return np.column_stack([
            (points_2d[:, 0] - self.cx) / self.fx,
            (points_2d[:, 1] - self.cy) / self.fy,
        ])


@dataclass(frozen=True)
class DistortionCoefficients:
    """
    Lens distortion coefficients [k1, k2, p1, p2, k3].

    Fewer than four values means no distortion; k3 defaults to 0.
    """
    values: Tuple[float, ...] = ()

    MAX_COEFFICIENTS = 5
    MIN_ACTIVE_COEFFICIENTS = 4

    def __post_init__(self):
        values = tuple(float(v) for v in self.values)
        if len(values) > self.MAX_COEFFICIENTS:
            raise InvalidCameraModelError(
                f"At most {self.MAX_COEFFICIENTS} distortion coefficients are supported, "
                f"got {len(values)}"
            )
        if not all(np.isfinite(v) for v in values):
            raise InvalidCameraModelError(f"Distortion coefficients must be finite, got {values}")
        object.__setattr__(self, 'values', values)

    @classmethod
    def from_sequence(cls, dist_coeffs: Optional[Union['DistortionCoefficients',
                                                       Sequence[float], np.ndarray]]
                      ) -> 'DistortionCoefficients':
        if dist_coeffs is None:
            return cls()
        if isinstance(dist_coeffs, DistortionCoefficients):
            return dist_coeffs
        return cls(tuple(np.asarray(dist_coeffs, dtype=np.float64).reshape(-1)))

    @property
    def is_active(self) -> bool:
        return len(self.values) >= self.MIN_ACTIVE_COEFFICIENTS

    @property
    def k1(self) -> float:
        return self.values[0] if self.is_active else 0.0

    @property
    def k2(self) -> float:
        return self.values[1] if self.is_active else 0.0

    @property
    def p1(self) -> float:
        return self.values[2] if self.is_active else 0.0

    @property
    def p2(self) -> float:
        return self.values[3] if self.is_active else 0.0

    @property
    def k3(self) -> float:
        return self.values[4] if self.is_active and len(self.values) > 4 else 0.0

    def __len__(self) -> int:
        return len(self.values)
