"""
Base interface for estimation algorithms.

This defines the contract for algorithms that compute a closed-form
estimate from point correspondences (homography, linear pose, ...).
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple
from dataclasses import dataclass, field
from enum import Enum
import numpy as np


class EstimationStatus(Enum):
    """Status codes for estimation results"""
    SUCCESS = "success"
    INSUFFICIENT_POINTS = "insufficient_points"
    DEGENERATE_CONFIG = "degenerate_configuration"
    NUMERICAL_INSTABILITY = "numerical_instability"
    FAILED = "failed"


@dataclass
class EstimationResult:
    """
    Result of an estimation algorithm.

    Attributes:
        success: Whether estimation succeeded
        status: Status code from EstimationStatus
        model: Estimated model (e.g., a PoseVector)
        residuals: Residual errors for each point
        metadata: Additional algorithm-specific information
    """
    success: bool
    status: EstimationStatus
    model: Optional[Any] = None
    residuals: Optional[np.ndarray] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __bool__(self) -> bool:
        """Allow truthiness check"""
        return self.success


class BaseEstimator(ABC):
    """
    Abstract base class for closed-form estimators.

    Subclasses validate their input themselves and report degenerate data
    through a failed EstimationResult rather than by raising.

    Examples:
        - LinearPoseInitializer
    """

    def __init__(self, **config):
        self.config = config

    @abstractmethod
    def estimate(self, *args, **kwargs) -> EstimationResult:
        """
        Perform estimation.

        Returns:
            EstimationResult: Estimation result with model and metadata
        """
        pass

    @abstractmethod
    def validate_input(self, *args, **kwargs) -> Tuple[bool, str]:
        """
        Validate input data before estimation.

        Returns:
            Tuple[bool, str]: (is_valid, error_message)
        """
        pass

    def get_min_points(self) -> int:
        """Minimum number of point correspondences."""
        return 0

    def get_algorithm_name(self) -> str:
        return self.__class__.__name__

    def __repr__(self) -> str:
        return f"{self.get_algorithm_name()}(config={self.config})"
