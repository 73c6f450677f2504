"""Read-only correspondence-cost grids for 2D scan matching.

The occupied-space cost function only ever *reads* a grid. This module
defines the query contract it relies on (``GridField``), the description of
the grid's world frame (``MapLimits``) and ``CostGrid2D``, a NumPy-backed
implementation of the contract.

Cell values are correspondence costs: low where a scan point matches known
obstacle evidence, ``max_cost`` where nothing is known (free or unexplored
space). Grid construction and updating belong to the map builder; nothing
here mutates a grid.

Index convention:
    col = (origin_x - x_world) / resolution - 0.5
    row = (origin_y - y_world) / resolution - 0.5
so cell (0, 0) has its center half a cell inside the reference corner
(origin_x, origin_y), and indices grow towards decreasing world coordinates.

Author: Navigation Engineer
Date: October 2026
"""

from dataclasses import dataclass
from typing import Protocol, Tuple, runtime_checkable

import numpy as np


@dataclass(frozen=True)
class MapLimits:
    """
    World-to-index frame of a 2D grid.

    Attributes:
        resolution: Edge length of one cell (meters), must be positive.
        origin_x: World x of the grid's reference corner (meters).
        origin_y: World y of the grid's reference corner (meters).
        rows: Number of cell rows (along world y).
        cols: Number of cell columns (along world x).

    Examples:
        >>> limits = MapLimits(resolution=1.0, origin_x=0.0, origin_y=0.0,
        ...                    rows=10, cols=10)
        >>> limits.cell_center(5, 5)
        (-5.5, -5.5)
    """

    resolution: float
    origin_x: float
    origin_y: float
    rows: int
    cols: int

    def __post_init__(self) -> None:
        """Validate the grid frame after initialization."""
        if not (np.isfinite(self.resolution) and self.resolution > 0):
            raise ValueError(
                f"resolution must be positive and finite, got {self.resolution}"
            )
        if not np.isfinite(self.origin_x):
            raise ValueError(f"origin_x must be finite, got {self.origin_x}")
        if not np.isfinite(self.origin_y):
            raise ValueError(f"origin_y must be finite, got {self.origin_y}")
        if self.rows <= 0 or self.cols <= 0:
            raise ValueError(
                f"grid must have at least one cell, got {self.rows}x{self.cols}"
            )

    def cell_center(self, row: int, col: int) -> Tuple[float, float]:
        """World coordinates (x, y) of the center of cell (row, col)."""
        x = self.origin_x - (col + 0.5) * self.resolution
        y = self.origin_y - (row + 0.5) * self.resolution
        return float(x), float(y)

    @property
    def extent(self) -> Tuple[float, float]:
        """World size (width along x, height along y) of the grid in meters."""
        return self.cols * self.resolution, self.rows * self.resolution


@runtime_checkable
class GridField(Protocol):
    """
    Read-only query surface consumed by the occupied-space cost function.

    Implementations must not be mutated while an evaluation is in flight;
    any number of evaluations may read the same grid concurrently.

    ``value()`` and ``as_array()`` must describe the same cells:
    ``as_array()[r, c] == value(r, c)`` for every in-range (r, c). Plain
    residuals read cells through ``value()``, while the Jacobian gathers
    from ``as_array()``, so a grid whose two views disagree gets a
    Jacobian that does not belong to its residuals.
    """

    def value(self, row, col):
        """Cost of cell(s) (row, col); only defined for in-range indices.

        Accepts integer scalars or integer arrays of equal shape.
        """
        ...

    def max_cost(self) -> float:
        """Sentinel cost for unknown / free space and everything off-grid."""
        ...

    def rows(self) -> int:
        ...

    def cols(self) -> int:
        ...

    def limits(self) -> MapLimits:
        ...

    def as_array(self) -> np.ndarray:
        """Read-only (rows, cols) view of all cell costs, equal to ``value()``."""
        ...


class CostGrid2D:
    """
    NumPy-backed correspondence-cost grid.

    Stores a read-only copy of the cost array, so neither the caller's array
    nor any consumer can change the grid after construction.

    Example:
        >>> limits = MapLimits(1.0, 0.0, 0.0, rows=10, cols=10)
        >>> costs = np.zeros((10, 10))
        >>> costs[5, 5] = 1.0
        >>> grid = CostGrid2D(costs, limits)
        >>> grid.value(5, 5)
        1.0
        >>> grid.max_cost()
        1.0
    """

    def __init__(
        self,
        costs: np.ndarray,
        limits: MapLimits,
        min_cost: float = 0.0,
        max_cost: float = 1.0,
    ):
        """Initialize the grid.

        Args:
            costs: Cell costs, shape (limits.rows, limits.cols).
            limits: World-to-index frame of the grid.
            min_cost: Lowest admissible cost.
            max_cost: Sentinel cost for unknown space; every cell must lie
                in [min_cost, max_cost].

        Raises:
            ValueError: If the shape does not match the limits, or costs are
                non-finite or outside [min_cost, max_cost].
        """
        costs = np.array(costs, dtype=np.float64)
        if costs.shape != (limits.rows, limits.cols):
            raise ValueError(
                f"costs must have shape ({limits.rows}, {limits.cols}), "
                f"got {costs.shape}"
            )
        if min_cost > max_cost:
            raise ValueError(
                f"min_cost must not exceed max_cost, got [{min_cost}, {max_cost}]"
            )
        if not np.all(np.isfinite(costs)):
            raise ValueError("costs must be finite")
        if costs.min() < min_cost or costs.max() > max_cost:
            raise ValueError(
                f"costs must lie in [{min_cost}, {max_cost}], "
                f"got [{costs.min()}, {costs.max()}]"
            )

        costs.setflags(write=False)
        self._costs = costs
        self._limits = limits
        self._min_cost = float(min_cost)
        self._max_cost = float(max_cost)

    @classmethod
    def from_occupancy(
        cls, probabilities: np.ndarray, limits: MapLimits
    ) -> "CostGrid2D":
        """
        Build a cost grid from occupancy probabilities.

        The correspondence cost of a cell is ``1 - p(occupied)``, so occupied
        cells are cheap and free or unknown (p = 0) cells cost ``max_cost = 1``.

        Raises:
            ValueError: If any probability lies outside [0, 1].
        """
        probabilities = np.asarray(probabilities, dtype=np.float64)
        if np.any(probabilities < 0.0) or np.any(probabilities > 1.0):
            raise ValueError("occupancy probabilities must lie in [0, 1]")
        return cls(1.0 - probabilities, limits, min_cost=0.0, max_cost=1.0)

    def value(self, row, col):
        return self._costs[row, col]

    def min_cost(self) -> float:
        """Lowest admissible cell cost (best correspondence)."""
        return self._min_cost

    def max_cost(self) -> float:
        return self._max_cost

    def rows(self) -> int:
        return self._limits.rows

    def cols(self) -> int:
        return self._limits.cols

    def limits(self) -> MapLimits:
        return self._limits

    def as_array(self) -> np.ndarray:
        return self._costs

    def __repr__(self) -> str:
        """Readable string representation."""
        return (
            f"CostGrid2D(rows={self.rows()}, cols={self.cols()}, "
            f"resolution={self._limits.resolution}, "
            f"cost=[{self._min_cost}, {self._max_cost}])"
        )
