"""Occupied-space cost function for 2D grid scan matching.

Scores how well a pose aligns a scan with a correspondence-cost grid: each
scan point is moved into the world frame by the pose, looked up in the grid
through bicubic interpolation, and scaled. One residual per point; the
solver minimizes their sum of squares.

    r_i(x, y, yaw) = s * f(P(R(yaw) p_i + [x, y]))

where s is the scaling factor, P maps world points to padded grid
coordinates and f is the bicubic interpolant of the cell costs.

Points that land off the grid read the grid's ``max_cost`` and are not an
error, so the cost surface stays defined and smooth for any pose the solver
tries.

The residual code is shared between plain evaluation (``xp=numpy``) and
forward-mode automatic differentiation (``xp=jax.numpy`` under
``jax.jacfwd``), which supplies the (N, 3) Jacobian with respect to the pose.

Key functions:
    - occupied_space_residuals: Residual vector for one pose
    - occupied_space_jacobian: Jacobian of the residuals w.r.t. [x, y, yaw]
    - OccupiedSpaceCostFunction2D: Binds a scan and a scaling factor
    - create_occupied_space_cost_function_2d: Validating factory

Author: Navigation Engineer
Date: October 2026
"""

from typing import Optional, Tuple, Union

import numpy as np

from ..jax_init import jax, jnp
from .grid_2d import GridField
from .interpolation import BiCubicInterpolator
from .padding import PaddedGridAdapter, world_to_padded_grid
from .se2 import se2_apply
from .types import PointCloud2D, Pose2


def occupied_space_residuals(
    pose: Union[np.ndarray, Pose2],
    point_cloud: PointCloud2D,
    grid: GridField,
    scaling_factor: float,
    xp=np,
):
    """
    Evaluate one scaled residual per scan point.

    For each point i:
        1. world_i = R(yaw) * point_i + [x, y]
        2. (row_i, col_i) = padded grid coordinates of world_i
        3. value_i = bicubic interpolation of the grid at (row_i, col_i)
        4. residual_i = scaling_factor * value_i

    Points are independent of each other and are evaluated together as
    arrays. Nothing is cached between calls; ``grid`` is only read.

    Args:
        pose: Pose [x, y, yaw] or Pose2 instance. May be a JAX tracer.
        point_cloud: Scan points in the sensor frame, shape (N, 2).
        grid: Correspondence-cost grid (read-only for this call).
        scaling_factor: Non-negative weight applied to every residual.
        xp: Array namespace (numpy, or jax.numpy for differentiation).

    Returns:
        Residual vector of shape (N,), index-aligned with ``point_cloud``.

    Raises:
        ValueError: If the pose or point cloud has the wrong shape.

    Examples:
        >>> limits = MapLimits(1.0, 0.0, 0.0, rows=10, cols=10)
        >>> costs = np.zeros((10, 10))
        >>> costs[5, 5] = 1.0
        >>> grid = CostGrid2D(costs, limits)
        >>> occupied_space_residuals(np.zeros(3), np.array([[-5.5, -5.5]]),
        ...                          grid, scaling_factor=2.0)
        array([2.])
    """
    world = se2_apply(pose, point_cloud, xp=xp)
    rows, cols = world_to_padded_grid(world, grid.limits(), xp=xp)
    interpolator = BiCubicInterpolator(PaddedGridAdapter(grid))
    values = interpolator.evaluate(rows, cols, xp=xp)
    return scaling_factor * values


def occupied_space_jacobian(
    pose: Union[np.ndarray, Pose2],
    point_cloud: PointCloud2D,
    grid: GridField,
    scaling_factor: float,
) -> np.ndarray:
    """
    Jacobian of the residuals with respect to [x, y, yaw].

    Uses forward-mode automatic differentiation (``jax.jacfwd``) through the
    same code path as ``occupied_space_residuals``, so the derivatives flow
    through the pose transform and the bicubic interpolant.

    Returns:
        Jacobian matrix of shape (N, 3).
    """
    if isinstance(pose, Pose2):
        pose = pose.to_array()
    pose = jnp.asarray(np.asarray(pose, dtype=np.float64))

    def residuals(p):
        return occupied_space_residuals(
            p, point_cloud, grid, scaling_factor, xp=jnp
        )

    return np.asarray(jax.jacfwd(residuals)(pose), dtype=np.float64)


class OccupiedSpaceCostFunction2D:
    """
    Occupied-space cost for matching one scan against a grid.

    Holds the per-scan constants (scan points and scaling factor). The grid
    is passed to every evaluation and is never stored, so one instance can
    be evaluated against different grids, and from several threads at once.

    Attributes:
        scaling_factor: Weight applied to every residual.
        point_cloud: Scan points in the sensor frame, shape (N, 2).

    Example:
        >>> cost = OccupiedSpaceCostFunction2D(1.0, scan)
        >>> r, J = cost.evaluate(np.array([0.1, 0.0, 0.0]), grid)
        >>> r.shape, J.shape
        ((N,), (N, 3))
    """

    num_parameters = 3

    def __init__(self, scaling_factor: float, point_cloud: PointCloud2D):
        point_cloud = np.array(point_cloud, dtype=np.float64)
        point_cloud.setflags(write=False)
        self.scaling_factor = float(scaling_factor)
        self.point_cloud = point_cloud

    @property
    def num_residuals(self) -> int:
        """Number of residuals, one per scan point."""
        return self.point_cloud.shape[0]

    def residuals(self, pose: Union[np.ndarray, Pose2], grid: GridField) -> np.ndarray:
        """Residual vector of shape (N,) at ``pose``."""
        return np.asarray(
            occupied_space_residuals(pose, self.point_cloud, grid, self.scaling_factor),
            dtype=np.float64,
        )

    def jacobian(self, pose: Union[np.ndarray, Pose2], grid: GridField) -> np.ndarray:
        """Jacobian of shape (N, 3) at ``pose``."""
        return occupied_space_jacobian(
            pose, self.point_cloud, grid, self.scaling_factor
        )

    def evaluate(
        self,
        pose: Union[np.ndarray, Pose2],
        grid: GridField,
        compute_jacobian: bool = True,
    ) -> Tuple[np.ndarray, Optional[np.ndarray]]:
        """
        Evaluate residuals and, optionally, their Jacobian.

        Returns:
            Tuple (residuals, jacobian); jacobian is None when
            ``compute_jacobian`` is False.
        """
        residuals = self.residuals(pose, grid)
        jacobian = self.jacobian(pose, grid) if compute_jacobian else None
        return residuals, jacobian

    def __repr__(self) -> str:
        """Readable string representation."""
        return (
            f"OccupiedSpaceCostFunction2D(scaling_factor={self.scaling_factor}, "
            f"num_residuals={self.num_residuals})"
        )


def create_occupied_space_cost_function_2d(
    scaling_factor: float, point_cloud: PointCloud2D
) -> OccupiedSpaceCostFunction2D:
    """
    Create an occupied-space cost function for one scan.

    Args:
        scaling_factor: Non-negative weight applied to every residual.
        point_cloud: Scan points in the sensor frame, shape (N, 2).

    Returns:
        OccupiedSpaceCostFunction2D with ``num_residuals == N``.

    Raises:
        ValueError: If scaling_factor is negative or non-finite, or the
            point cloud is not shape (N, 2) with finite coordinates.
    """
    if not (np.isfinite(scaling_factor) and scaling_factor >= 0.0):
        raise ValueError(
            f"scaling_factor must be non-negative and finite, got {scaling_factor}"
        )

    point_cloud = np.asarray(point_cloud, dtype=np.float64)
    if point_cloud.ndim != 2 or point_cloud.shape[1] != 2:
        raise ValueError(
            f"point_cloud must have shape (N, 2), got {point_cloud.shape}"
        )
    if not np.all(np.isfinite(point_cloud)):
        raise ValueError("point_cloud must contain only finite coordinates")

    return OccupiedSpaceCostFunction2D(scaling_factor, point_cloud)
