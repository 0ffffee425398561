"""
Page Corner Pose

Initial camera pose of a photographed page from its four detected corners,
and the default parameter vector the dewarping model is optimized from.

Corners are in normalized image coordinates (see pix2norm): origin at the
image centre, scaled so the longer image side spans [-1, 1]. The camera is
therefore a pinhole with focal length PageConfig.FOCAL_LENGTH and the
principal point at the origin.
"""

import numpy as np
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from PagePoseEstimation.algorithms.geometry.pose.pnp_solver import estimate_pose
from PagePoseEstimation.core.exceptions import DegenerateGeometryError
from PagePoseEstimation.core.structures.pose import PoseEstimate
from PagePoseEstimation.logger import get_logger

logger = get_logger("page.corners")


class PageConfig:
    """Configuration for the page model"""

    # Focal length in normalized image units
    FOCAL_LENGTH = 1.2

    # Initial cubic slopes of the page surface
    INITIAL_CUBIC_SLOPES = (0.0, 0.0)


@dataclass
class PagePose:
    """Page rectangle size and camera pose relative to it"""
    page_dims: Tuple[float, float]
    estimate: PoseEstimate


@dataclass
class DefaultParams:
    """
    Initial dewarping parameter vector.

    params layout: rvec(3) | tvec(3) | cubic slopes(2) | span y coords | span x coords
    """
    page_dims: Tuple[float, float]
    span_counts: List[int]
    params: np.ndarray


def pix2norm(shape: Sequence[int], pts: np.ndarray) -> np.ndarray:
    """
    Convert pixel coordinates to normalized coordinates.

    Args:
        shape: Image shape (height, width, ...)
        pts: Pixel coordinates (Nx2) as (x, y)

    Returns:
        Normalized coordinates (Nx2)
    """
    height, width = shape[:2]
    scl = 2.0 / max(height, width)
    offset = np.array([width, height], dtype=np.float64) * 0.5
    return (np.asarray(pts, dtype=np.float64).reshape(-1, 2) - offset) * scl


def norm2pix(shape: Sequence[int], pts: np.ndarray, as_integer: bool = True) -> np.ndarray:
    """
    Convert normalized coordinates back to pixel coordinates.

    Args:
        shape: Image shape (height, width, ...)
        pts: Normalized coordinates (Nx2)
        as_integer: Round half up and return integers

    Returns:
        Pixel coordinates (Nx2)
    """
    height, width = shape[:2]
    scl = max(height, width) * 0.5
    offset = np.array([width, height], dtype=np.float64) * 0.5
    pixels = np.asarray(pts, dtype=np.float64).reshape(-1, 2) * scl + offset
    if as_integer:
        return np.trunc(pixels + 0.5).astype(int)
    return pixels


def page_camera_matrix(focal_length: float = PageConfig.FOCAL_LENGTH) -> List[float]:
    """Flattened K for normalized coordinates."""
    return [focal_length, 0.0, 0.0,
            0.0, focal_length, 0.0,
            0.0, 0.0, 1.0]


def estimate_page_pose(corners: Sequence[Sequence[float]],
                       focal_length: float = PageConfig.FOCAL_LENGTH) -> PagePose:
    """
    Estimate the camera pose of a flat page from its corners.

    Args:
        corners: Four normalized corners ordered top-left, top-right,
            bottom-right, bottom-left
        focal_length: Focal length in normalized units

    Returns:
        PagePose with (width, height) of the page and the pose estimate
    """
    corners = np.asarray(corners, dtype=np.float64).reshape(-1, 2)
    if len(corners) != 4:
        raise DegenerateGeometryError(f"Expected 4 page corners, got {len(corners)}")

    page_width = float(np.linalg.norm(corners[1] - corners[0]))
    page_height = float(np.linalg.norm(corners[3] - corners[0]))

    object_points = np.array([
        [0.0, 0.0, 0.0],
        [page_width, 0.0, 0.0],
        [page_width, page_height, 0.0],
        [0.0, page_height, 0.0],
    ])

    estimate = estimate_pose(object_points, corners, page_camera_matrix(focal_length))

    logger.debug(f"Page {page_width:.3f}x{page_height:.3f}: "
                 f"rvec={estimate.rvec}, tvec={estimate.tvec}")

    return PagePose(page_dims=(page_width, page_height), estimate=estimate)


def get_default_params(corners: Sequence[Sequence[float]],
                       ycoords: Sequence[float],
                       xcoords: Sequence[Sequence[float]],
                       focal_length: float = PageConfig.FOCAL_LENGTH) -> DefaultParams:
    """
    Compute the initial camera pose and build the parameter vector for
    the page model optimization.

    Args:
        corners: Four normalized page corners
        ycoords: Page y coordinate of each text span
        xcoords: Page x coordinates of the keypoints of each span

    Returns:
        DefaultParams
    """
    page_pose = estimate_page_pose(corners, focal_length)

    span_counts = [len(xc) for xc in xcoords]

    params = np.concatenate([
        page_pose.estimate.rvec,
        page_pose.estimate.tvec,
        np.asarray(PageConfig.INITIAL_CUBIC_SLOPES, dtype=np.float64),
        np.asarray(ycoords, dtype=np.float64).reshape(-1),
        np.concatenate([np.asarray(xc, dtype=np.float64).reshape(-1) for xc in xcoords])
        if len(xcoords) else np.empty(0),
    ])

    return DefaultParams(
        page_dims=page_pose.page_dims,
        span_counts=span_counts,
        params=params
    )
