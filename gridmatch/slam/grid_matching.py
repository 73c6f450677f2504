"""Scan-to-grid matching with an external least-squares solver.

Wires an ``OccupiedSpaceCostFunction2D`` into ``scipy.optimize.least_squares``:
the cost function supplies residuals and their auto-differentiated
Jacobian, SciPy owns the iteration (Levenberg-Marquardt or trust region),
damping and convergence tests.

Key names:
    - GridMatchConfig: Solver and weighting parameters
    - GridMatchResult: Optimized pose and diagnostics
    - match_scan_to_grid: Refine a pose so a scan lands on low-cost cells

Author: Navigation Engineer
Date: October 2026
"""

import warnings
from dataclasses import dataclass
from typing import Literal, Optional, Union

import numpy as np
from scipy.optimize import least_squares

from .grid_2d import GridField
from .occupied_space_cost import create_occupied_space_cost_function_2d
from .padding import points_in_grid
from .se2 import se2_apply, wrap_angle
from .types import PointCloud2D, Pose2


@dataclass
class GridMatchConfig:
    """
    Parameters for scan-to-grid matching.

    Attributes:
        scaling_factor: Weight applied to every residual.
        method: SciPy solver, "lm" (Levenberg-Marquardt, needs at least 3
                scan points) or "trf" (trust region reflective).
        max_evaluations: Maximum number of residual evaluations.
        ftol: Relative tolerance on the cost change.
        xtol: Relative tolerance on the pose change.
        gtol: Tolerance on the gradient norm.
    """

    scaling_factor: float = 1.0
    method: Literal["lm", "trf"] = "lm"
    max_evaluations: int = 100
    ftol: float = 1e-8
    xtol: float = 1e-8
    gtol: float = 1e-8

    def __post_init__(self) -> None:
        """Validate the configuration after initialization."""
        if not (np.isfinite(self.scaling_factor) and self.scaling_factor >= 0.0):
            raise ValueError(
                f"scaling_factor must be non-negative and finite, "
                f"got {self.scaling_factor}"
            )
        if self.method not in ("lm", "trf"):
            raise ValueError(f"Unknown method: {self.method}. Use 'lm' or 'trf'.")
        if self.max_evaluations <= 0:
            raise ValueError(
                f"max_evaluations must be positive, got {self.max_evaluations}"
            )
        for name in ("ftol", "xtol", "gtol"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")


@dataclass
class GridMatchResult:
    """
    Result container for scan-to-grid matching.

    Attributes:
        pose: Optimized pose [x, y, yaw], shape (3,), yaw in [-π, π].
        residuals: Final residual vector, shape (N,).
        cost: Final cost ½‖r‖².
        converged: Whether the solver met one of its tolerances.
        n_evaluations: Number of residual evaluations performed.
        message: Solver termination message.
    """

    pose: np.ndarray
    residuals: np.ndarray
    cost: float
    converged: bool
    n_evaluations: int
    message: str

    def to_pose2(self) -> Pose2:
        """Optimized pose as a Pose2."""
        return Pose2.from_array(self.pose)


def match_scan_to_grid(
    scan: PointCloud2D,
    grid: GridField,
    initial_pose: Union[np.ndarray, Pose2],
    config: Optional[GridMatchConfig] = None,
) -> GridMatchResult:
    """
    Refine a pose by minimizing the occupied-space cost of a scan.

    Args:
        scan: Scan points in the sensor frame, shape (N, 2).
        grid: Correspondence-cost grid; must not be mutated until this
              call returns.
        initial_pose: Initial guess [x, y, yaw] or Pose2.
        config: Solver parameters (defaults to GridMatchConfig()).

    Returns:
        GridMatchResult with the optimized pose and diagnostics.

    Raises:
        ValueError: If inputs are malformed, or method "lm" is requested
            with fewer than 3 scan points.

    Warns:
        UserWarning: If no scan point falls on the grid at the initial pose
            (flat cost surface).
        RuntimeWarning: If the solver stops without converging.

    Example:
        >>> result = match_scan_to_grid(scan, grid, np.array([4.8, 5.1, 0.0]))
        >>> result.converged
        True
    """
    if config is None:
        config = GridMatchConfig()

    if isinstance(initial_pose, Pose2):
        initial_pose = initial_pose.to_array()
    x0 = np.asarray(initial_pose, dtype=np.float64)
    if x0.shape != (3,):
        raise ValueError(f"initial_pose must have shape (3,), got {x0.shape}")

    cost_function = create_occupied_space_cost_function_2d(config.scaling_factor, scan)
    n = cost_function.num_residuals
    if n == 0:
        raise ValueError("scan is empty")
    if config.method == "lm" and n < cost_function.num_parameters:
        raise ValueError(
            f"method 'lm' needs at least {cost_function.num_parameters} "
            f"scan points, got {n}"
        )

    world = se2_apply(x0, cost_function.point_cloud)
    if not np.any(points_in_grid(world, grid.limits())):
        warnings.warn(
            "No scan point falls on the grid at the initial pose; the cost "
            "surface is flat and the pose cannot be refined.",
            UserWarning,
            stacklevel=2,
        )

    solution = least_squares(
        lambda p: cost_function.residuals(p, grid),
        x0,
        jac=lambda p: cost_function.jacobian(p, grid),
        method=config.method,
        ftol=config.ftol,
        xtol=config.xtol,
        gtol=config.gtol,
        max_nfev=config.max_evaluations,
    )

    converged = bool(solution.status > 0)
    if not converged:
        warnings.warn(
            f"Grid matching did not converge after {solution.nfev} evaluations: "
            f"{solution.message}",
            RuntimeWarning,
            stacklevel=2,
        )

    pose = np.asarray(solution.x, dtype=np.float64)
    pose[2] = wrap_angle(pose[2])

    return GridMatchResult(
        pose=pose,
        residuals=np.asarray(solution.fun, dtype=np.float64),
        cost=float(solution.cost),
        converged=converged,
        n_evaluations=int(solution.nfev),
        message=str(solution.message),
    )
