"""Padded grid addressing for branch-free border handling.

The bicubic interpolator reads a 4x4 window of cells around every query.
Near the border that window spills outside the real grid. Instead of
special-casing those queries, the grid is embedded in a much larger virtual
index space by adding ``PADDING`` to both axes: real cell (r, c) lives at
virtual index (r + PADDING, c + PADDING), and every virtual index outside
the real block reads the grid's ``max_cost`` sentinel.

Key names:
    - PADDING: Virtual index offset added to both axes
    - world_to_padded_grid: World points -> fractional virtual (row, col)
    - points_in_grid: Which world points fall on a real cell
    - PaddedGridAdapter: Virtual-index view of a GridField

Author: Navigation Engineer
Date: October 2026
"""

from typing import Tuple

import numpy as np

from .grid_2d import GridField, MapLimits

# Offset applied to both index axes. Invariants:
#   - 2 * PADDING + n stays below 2**31 - 1 for any grid with n < 2**30
#     cells per axis, so virtual indices never overflow an int32;
#   - padded coordinates held as float64 keep a resolution of
#     ulp(2 * PADDING) ~ 4.7e-10 cells.
PADDING = 2**20
_INT32_MAX = 2**31 - 1
_MAX_CELLS_PER_AXIS = 2**30

assert 2 * PADDING + _MAX_CELLS_PER_AXIS < _INT32_MAX
assert np.spacing(np.float64(2 * PADDING)) < 1e-9


def world_to_padded_grid(
    world_points, limits: MapLimits, xp=np
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Map world points to fractional virtual grid coordinates.

        col = (origin_x - x) / resolution - 0.5 + PADDING
        row = (origin_y - y) / resolution - 0.5 + PADDING

    The -0.5 term puts integer coordinates on cell centers.

    Args:
        world_points: Points in the world frame, shape (N, 2). May be traced
            values when ``xp`` is ``jax.numpy``.
        limits: World-to-index frame of the grid.
        xp: Array namespace used for the arithmetic.

    Returns:
        Tuple (rows, cols) of fractional virtual coordinates, each shape (N,).

    Examples:
        >>> limits = MapLimits(1.0, 0.0, 0.0, rows=10, cols=10)
        >>> rows, cols = world_to_padded_grid(np.array([[-5.5, -5.5]]), limits)
        >>> rows - PADDING, cols - PADDING
        (array([5.]), array([5.]))
    """
    cols = (limits.origin_x - world_points[:, 0]) / limits.resolution - 0.5 + PADDING
    rows = (limits.origin_y - world_points[:, 1]) / limits.resolution - 0.5 + PADDING
    return rows, cols


def points_in_grid(world_points: np.ndarray, limits: MapLimits) -> np.ndarray:
    """Boolean mask of world points whose nearest cell lies inside the grid."""
    rows, cols = world_to_padded_grid(np.asarray(world_points), limits)
    row_idx = np.round(rows).astype(np.int64) - PADDING
    col_idx = np.round(cols).astype(np.int64) - PADDING
    return (
        (row_idx >= 0) & (row_idx < limits.rows)
        & (col_idx >= 0) & (col_idx < limits.cols)
    )


class PaddedGridAdapter:
    """
    Virtual-index view of a GridField with a max-cost border.

    The adapter holds a borrowed reference to the grid for the duration of
    one evaluation; it is created per call and never outlives it. Lookups
    in a non-NumPy namespace gather from ``grid.as_array()``, converted once
    on first use and reused by every later lookup of the same evaluation.

    Example:
        >>> adapter = PaddedGridAdapter(grid)
        >>> adapter.get_value(np.array([0]), np.array([0]))  # far off-grid
        array([1.])
    """

    def __init__(self, grid: GridField):
        self._grid = grid
        self._costs = None

    def num_rows(self) -> int:
        return self._grid.rows() + 2 * PADDING

    def num_cols(self) -> int:
        return self._grid.cols() + 2 * PADDING

    def get_value(self, rows, cols, xp=np):
        """
        Read cell costs at integer virtual indices.

        Every index outside [PADDING, PADDING + rows) x [PADDING, PADDING + cols)
        resolves to ``max_cost()``; nothing is raised.

        Args:
            rows: Integer virtual row indices, shape (N,).
            cols: Integer virtual column indices, shape (N,).
            xp: Array namespace of the indices.

        Returns:
            Cell costs, shape (N,).
        """
        n_rows = self._grid.rows()
        n_cols = self._grid.cols()
        rows = rows - PADDING
        cols = cols - PADDING
        inside = (rows >= 0) & (rows < n_rows) & (cols >= 0) & (cols < n_cols)

        # Off-grid lanes read a valid cell and are replaced by the sentinel
        safe_rows = xp.clip(rows, 0, n_rows - 1)
        safe_cols = xp.clip(cols, 0, n_cols - 1)
        if xp is np:
            values = np.asarray(self._grid.value(safe_rows, safe_cols), dtype=np.float64)
        else:
            # Traced indices cannot go through an arbitrary Python lookup
            if self._costs is None:
                self._costs = xp.asarray(self._grid.as_array(), dtype=xp.float64)
            values = self._costs[safe_rows, safe_cols]

        return xp.where(inside, values, self._grid.max_cost())
