"""Grid-based scan matching building blocks.

This is NOT a full SLAM framework. It provides the scan-to-grid residual
used by a nonlinear least-squares pose optimizer:
    - SE(2) transforms generic over NumPy and JAX arrays
    - A read-only correspondence-cost grid contract
    - Padded grid addressing with a max-cost border
    - Bicubic (Catmull-Rom) interpolation of the grid
    - The occupied-space cost function and its auto-differentiated Jacobian

Grid construction and the solver iteration live outside this package; the
solver adapter hands the cost function to scipy.optimize.least_squares.

Main components:
    - Pose2, MapLimits, CostGrid2D: Core data structures
    - se2_apply, se2_inverse, wrap_angle: SE(2) operations
    - PADDING, world_to_padded_grid, PaddedGridAdapter: Grid addressing
    - cubic_hermite, BiCubicInterpolator: Interpolation
    - occupied_space_residuals, occupied_space_jacobian,
      OccupiedSpaceCostFunction2D: Cost function
    - match_scan_to_grid: Pose refinement

Example usage:
    >>> from gridmatch.slam import CostGrid2D, MapLimits, match_scan_to_grid
    >>> import numpy as np
    >>>
    >>> limits = MapLimits(resolution=0.1, origin_x=10.0, origin_y=10.0,
    ...                    rows=100, cols=100)
    >>> grid = CostGrid2D.from_occupancy(occupancy, limits)
    >>> result = match_scan_to_grid(scan, grid, initial_pose=np.zeros(3))
    >>> print(result.to_pose2())

Author: Navigation Engineer
Date: October 2026
"""

from .grid_2d import CostGrid2D, GridField, MapLimits
from .grid_matching import GridMatchConfig, GridMatchResult, match_scan_to_grid
from .interpolation import BiCubicInterpolator, cubic_hermite
from .occupied_space_cost import (
    OccupiedSpaceCostFunction2D,
    create_occupied_space_cost_function_2d,
    occupied_space_jacobian,
    occupied_space_residuals,
)
from .padding import PADDING, PaddedGridAdapter, points_in_grid, world_to_padded_grid
from .se2 import se2_apply, se2_inverse, wrap_angle
from .types import PointCloud2D, Pose2

__all__ = [
    # Core types
    "Pose2",
    "PointCloud2D",
    "MapLimits",
    "GridField",
    "CostGrid2D",
    # SE(2) operations
    "se2_apply",
    "se2_inverse",
    "wrap_angle",
    # Padded grid addressing
    "PADDING",
    "world_to_padded_grid",
    "points_in_grid",
    "PaddedGridAdapter",
    # Interpolation
    "cubic_hermite",
    "BiCubicInterpolator",
    # Cost function
    "occupied_space_residuals",
    "occupied_space_jacobian",
    "OccupiedSpaceCostFunction2D",
    "create_occupied_space_cost_function_2d",
    # Matching
    "GridMatchConfig",
    "GridMatchResult",
    "match_scan_to_grid",
]
