"""
Core interfaces.

This module defines the abstract base classes (contracts) that the
estimation and optimization components follow:

Usage:
    from PagePoseEstimation.core.interfaces import BaseEstimator, IterativeOptimizer

    class MyEstimator(BaseEstimator):
        def estimate(self, *args):
            ...
"""

# Estimator interfaces
from .base_estimator import (
    BaseEstimator,
    EstimationResult,
    EstimationStatus
)

# Optimizer interfaces
from .base_optimizer import (
    BaseOptimizer,
    IterativeOptimizer,
    OptimizationResult,
    OptimizationStatus
)


__all__ = [
    # Estimator
    'BaseEstimator',
    'EstimationResult',
    'EstimationStatus',

    # Optimizer
    'BaseOptimizer',
    'IterativeOptimizer',
    'OptimizationResult',
    'OptimizationStatus',
]
