"""
Base interface for optimization algorithms.

This defines the contract for algorithms that refine estimates through
iterative optimization (pose refinement, ...).
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, List, Callable
from dataclasses import dataclass, field
from enum import Enum
import numpy as np
import time
from PagePoseEstimation.logger import get_logger

logger = get_logger("core.interfaces")


class OptimizationStatus(Enum):
    """Status codes for optimization results"""
    SUCCESS = "success"
    MAX_ITERATIONS = "max_iterations_reached"
    CONVERGED = "converged"
    TIMEOUT = "timeout"
    NUMERICAL_ERROR = "numerical_error"
    INVALID_INPUT = "invalid_input"
    FAILED = "failed"


@dataclass
class OptimizationResult:
    """
    Result of an optimization algorithm.

    Attributes:
        success: Whether optimization succeeded
        status: Status code from OptimizationStatus
        optimized_params: Optimized parameters (e.g., a PoseVector)
        initial_cost: Cost before optimization
        final_cost: Cost after optimization
        num_iterations: Number of iterations performed
        residuals: Final residuals
        convergence_history: History of cost values per iteration
        runtime: Optimization runtime in seconds
        metadata: Additional algorithm-specific information
    """
    success: bool
    status: OptimizationStatus
    optimized_params: Optional[Any] = None
    initial_cost: float = 0.0
    final_cost: float = 0.0
    num_iterations: int = 0
    residuals: Optional[np.ndarray] = None
    convergence_history: List[float] = field(default_factory=list)
    runtime: float = 0.0
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __bool__(self) -> bool:
        """Allow truthiness check"""
        return self.success

    @property
    def converged(self) -> bool:
        return self.status == OptimizationStatus.CONVERGED

    def get_cost_reduction(self) -> float:
        """
        Get absolute cost reduction.

        Returns:
            float: Initial cost - final cost
        """
        return self.initial_cost - self.final_cost

    def get_relative_cost_reduction(self) -> float:
        """
        Get relative cost reduction.

        Returns:
            float: (initial - final) / initial
        """
        if self.initial_cost == 0:
            return 0.0
        return (self.initial_cost - self.final_cost) / self.initial_cost

    def print_summary(self):
        """Log optimization result summary"""
        logger.info("OPTIMIZATION RESULT")
        logger.info(f"Status: {self.status.value}")
        logger.info(f"Iterations: {self.num_iterations}")
        logger.info(f"Runtime: {self.runtime:.3f}s")

        logger.info("Cost:")
        logger.info(f"  Initial: {self.initial_cost:.6f}")
        logger.info(f"  Final: {self.final_cost:.6f}")
        logger.info(f"  Reduction: {self.get_cost_reduction():.6f} "
                    f"({self.get_relative_cost_reduction():.2%})")

        if self.residuals is not None and len(self.residuals) > 0:
            logger.info("Residuals:")
            logger.info(f"  Mean: {np.mean(np.abs(self.residuals)):.6f}")
            logger.info(f"  Max: {np.max(np.abs(self.residuals)):.6f}")

        for key, value in self.metadata.items():
            if isinstance(value, float):
                logger.info(f"  {key}: {value:.6f}")
            else:
                logger.info(f"  {key}: {value}")


class BaseOptimizer(ABC):
    """
    Abstract base class for optimization algorithms.

    Optimizer instances hold per-run iteration state, so a single
    instance must not be shared between concurrent runs.

    Examples:
        - PoseRefiner
    """

    def __init__(self,
                 max_iterations: int = 100,
                 tolerance: float = 1e-6,
                 max_runtime: Optional[float] = None,
                 verbose: bool = False,
                 **config):
        """
        Initialize optimizer with configuration.

        Args:
            max_iterations: Maximum number of iterations
            tolerance: Convergence tolerance
            max_runtime: Optional wall-clock budget in seconds
            verbose: Whether to log every iteration at INFO level
            **config: Algorithm-specific configuration
        """
        self.max_iterations = max_iterations
        self.tolerance = tolerance
        self.max_runtime = max_runtime
        self.verbose = verbose
        self.config = config

        # Callbacks
        self._iteration_callback: Optional[Callable] = None
        self._convergence_callback: Optional[Callable] = None

        # State
        self._current_iteration = 0
        self._current_cost = float('inf')
        self._converged = False
        self._start_time = 0.0

    @abstractmethod
    def optimize(self, *args, **kwargs) -> OptimizationResult:
        """
        Perform optimization.

        Returns:
            OptimizationResult: Optimization result with optimized parameters
        """
        pass

    @abstractmethod
    def compute_cost(self, params: Any, *args, **kwargs) -> float:
        """
        Compute optimization cost/error for given parameters.

        Args:
            params: Current parameter values
            *args: Additional data needed for cost computation

        Returns:
            float: Total cost
        """
        pass

    @abstractmethod
    def compute_residuals(self, params: Any, *args, **kwargs) -> np.ndarray:
        """
        Compute residuals for given parameters.

        Args:
            params: Current parameter values
            *args: Additional data needed for residual computation

        Returns:
            np.ndarray: Residuals
        """
        pass

    @abstractmethod
    def validate_input(self, *args, **kwargs) -> tuple[bool, str]:
        """
        Validate input before optimization.

        Returns:
            Tuple[bool, str]: (is_valid, error_message)
        """
        pass

    def check_convergence(self,
                         current_cost: float,
                         previous_cost: float) -> bool:
        """
        Check if optimization has converged.

        Args:
            current_cost: Cost at current iteration
            previous_cost: Cost at previous iteration

        Returns:
            bool: True if converged
        """
        if previous_cost == 0 or not np.isfinite(previous_cost):
            return False

        relative_change = abs(current_cost - previous_cost) / previous_cost
        return relative_change < self.tolerance

    def should_terminate(self) -> tuple[bool, OptimizationStatus]:
        """
        Check if optimization should terminate.

        Returns:
            Tuple[bool, OptimizationStatus]: (should_stop, reason)
        """
        if self._converged:
            return True, OptimizationStatus.CONVERGED

        if self._current_iteration >= self.max_iterations:
            return True, OptimizationStatus.MAX_ITERATIONS

        if not np.isfinite(self._current_cost):
            return True, OptimizationStatus.NUMERICAL_ERROR

        if (self.max_runtime is not None
                and time.time() - self._start_time >= self.max_runtime):
            return True, OptimizationStatus.TIMEOUT

        return False, OptimizationStatus.SUCCESS

    def set_iteration_callback(self, callback: Callable):
        """
        Set callback to be called after each iteration.

        Args:
            callback: Function(iteration, cost, params) -> None
        """
        self._iteration_callback = callback

    def set_convergence_callback(self, callback: Callable):
        """
        Set callback to be called when optimization finishes.

        Args:
            callback: Function(result) -> None
        """
        self._convergence_callback = callback

    def _notify_iteration(self, iteration: int, cost: float, params: Any):
        """Notify iteration callback"""
        if self._iteration_callback is not None:
            self._iteration_callback(iteration, cost, params)

        if self.verbose:
            logger.info(f"Iteration {iteration}: cost = {cost:.6f}")
        else:
            logger.debug(f"Iteration {iteration}: cost = {cost:.6f}")

    def _notify_convergence(self, result: OptimizationResult):
        """Notify convergence callback"""
        if self._convergence_callback is not None:
            self._convergence_callback(result)

    def reset(self):
        """Reset optimizer state"""
        self._current_iteration = 0
        self._current_cost = float('inf')
        self._converged = False
        self._start_time = time.time()

    def get_algorithm_name(self) -> str:
        """Get name of the optimization algorithm."""
        return self.__class__.__name__

    def __repr__(self) -> str:
        """String representation"""
        return (f"{self.get_algorithm_name()}("
                f"max_iter={self.max_iterations}, "
                f"tol={self.tolerance})")


class IterativeOptimizer(BaseOptimizer):
    """
    Base class for iterative optimization algorithms.

    This extends BaseOptimizer with iteration management, so subclasses
    only provide the cost, the residuals and a single update step.
    """

    def optimize(self, initial_params: Any, *args, **kwargs) -> OptimizationResult:
        """
        Perform iterative optimization.

        Args:
            initial_params: Initial parameter values
            *args, **kwargs: Algorithm-specific arguments

        Returns:
            OptimizationResult: Optimization result
        """
        is_valid, error_msg = self.validate_input(initial_params, *args, **kwargs)
        if not is_valid:
            return OptimizationResult(
                success=False,
                status=OptimizationStatus.INVALID_INPUT,
                metadata={'error': error_msg}
            )

        self.reset()

        current_params = initial_params
        self._current_cost = self.compute_cost(current_params, *args, **kwargs)
        initial_cost = self._current_cost
        convergence_history = [initial_cost]

        if not np.isfinite(initial_cost):
            return OptimizationResult(
                success=False,
                status=OptimizationStatus.NUMERICAL_ERROR,
                optimized_params=initial_params,
                initial_cost=initial_cost,
                final_cost=initial_cost,
                runtime=time.time() - self._start_time,
                metadata={'error': 'Initial cost is not finite'}
            )

        self._converged = self.check_convergence(self._current_cost, float('inf'))
        should_stop, status = self.should_terminate()

        while not should_stop:
            current_params = self._iteration_step(current_params, *args, **kwargs)

            previous_cost = self._current_cost
            self._current_cost = self.compute_cost(current_params, *args, **kwargs)
            convergence_history.append(self._current_cost)

            self._current_iteration += 1
            self._notify_iteration(self._current_iteration, self._current_cost, current_params)

            self._converged = self.check_convergence(self._current_cost, previous_cost)
            should_stop, status = self.should_terminate()

        residuals = self.compute_residuals(current_params, *args, **kwargs)

        result = OptimizationResult(
            success=status != OptimizationStatus.NUMERICAL_ERROR,
            status=status,
            optimized_params=current_params,
            initial_cost=initial_cost,
            final_cost=self._current_cost,
            num_iterations=self._current_iteration,
            residuals=residuals,
            convergence_history=convergence_history,
            runtime=time.time() - self._start_time,
            metadata={'algorithm': self.get_algorithm_name()}
        )

        self._notify_convergence(result)

        return result

    @abstractmethod
    def _iteration_step(self, current_params: Any, *args, **kwargs) -> Any:
        """
        Perform one iteration step.

        Args:
            current_params: Current parameter values
            *args, **kwargs: Additional arguments

        Returns:
            Updated parameters
        """
        pass
