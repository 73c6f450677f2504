"""Type definitions for grid-based scan matching.

Key types:
    - Pose2: SE(2) pose representation [x, y, yaw]
    - PointCloud2D: Type alias for 2D point clouds

Author: Navigation Engineer
Date: October 2026
"""

from dataclasses import dataclass

import numpy as np


# Type aliases for clarity and documentation
PointCloud2D = np.ndarray  # Shape (N, 2), points in 2D space (meters)


@dataclass
class Pose2:
    """
    SE(2) pose representation for 2D scan matching.

    Represents a rigid transformation in the plane: position (x, y) and
    orientation (yaw angle). This is the parameter block refined by the
    occupied-space cost function and returned to display layers once the
    solver has converged.

    Attributes:
        x: Position in x-axis (meters).
        y: Position in y-axis (meters).
        yaw: Heading angle (radians), measured counter-clockwise from the
             positive x-axis.

    Examples:
        >>> p = Pose2(x=10.0, y=5.0, yaw=np.pi/2)
        >>> p.to_array()
        array([10.        ,  5.        ,  1.57079633])
        >>> Pose2.from_array(np.array([1.0, 2.0, 0.0]))
        Pose2(x=1.0000, y=2.0000, yaw=0.0000)
    """

    x: float
    y: float
    yaw: float

    def __post_init__(self) -> None:
        """Validate pose values after initialization."""
        if not np.isfinite(self.x):
            raise ValueError(f"x must be finite, got {self.x}")
        if not np.isfinite(self.y):
            raise ValueError(f"y must be finite, got {self.y}")
        if not np.isfinite(self.yaw):
            raise ValueError(f"yaw must be finite, got {self.yaw}")

    def to_array(self) -> np.ndarray:
        """Convert pose to NumPy array [x, y, yaw] of shape (3,)."""
        return np.array([self.x, self.y, self.yaw], dtype=np.float64)

    @classmethod
    def from_array(cls, arr: np.ndarray) -> "Pose2":
        """
        Create Pose2 from NumPy array [x, y, yaw].

        Raises:
            ValueError: If array does not have exactly 3 elements.
        """
        arr = np.asarray(arr)
        if arr.shape != (3,):
            raise ValueError(f"Array must have shape (3,), got {arr.shape}")
        return cls(x=float(arr[0]), y=float(arr[1]), yaw=float(arr[2]))

    @classmethod
    def identity(cls) -> "Pose2":
        """Create identity pose (origin with zero rotation)."""
        return cls(x=0.0, y=0.0, yaw=0.0)

    def __repr__(self) -> str:
        """Readable string representation."""
        return f"Pose2(x={self.x:.4f}, y={self.y:.4f}, yaw={self.yaw:.4f})"
