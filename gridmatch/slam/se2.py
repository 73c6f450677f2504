"""SE(2) operations for grid-based scan matching.

This module implements the rigid transformations used to move a scan from
the sensor frame into the grid's world frame. The transforms are generic
over the array namespace: pass ``xp=numpy`` for plain float evaluation or
``xp=jax.numpy`` to trace them under forward-mode automatic differentiation,
so that the same code yields both residuals and their Jacobian.

Key functions:
    - se2_apply: Transform points by an SE(2) pose
    - se2_inverse: Invert an SE(2) pose
    - wrap_angle: Normalize angle to [-π, π]

SE(2) representation: poses are arrays [x, y, yaw] of shape (3,).

Author: Navigation Engineer
Date: October 2026
"""

from typing import Union

import numpy as np

from .types import Pose2


def wrap_angle(theta: float) -> float:
    """
    Normalize angle to the range [-π, π].

    Examples:
        >>> wrap_angle(0.0)
        0.0
        >>> wrap_angle(np.pi + 0.1)  # Wraps to negative side
        -3.0415926535897927

    Notes:
        Uses the formula: θ_wrapped = atan2(sin(θ), cos(θ))
    """
    return np.arctan2(np.sin(theta), np.cos(theta))


def se2_apply(p: Union[np.ndarray, Pose2], points: np.ndarray, xp=np):
    """
    Transform 2D points by an SE(2) pose.

    Applies the SE(2) transformation to a set of 2D points:
        points_transformed = R(yaw) * points + [x, y]

    The pose may carry derivatives (a JAX tracer) when ``xp`` is
    ``jax.numpy``; the points are constants of the evaluation.

    Args:
        p: Pose [x, y, yaw] or Pose2 instance defining the transformation.
        points: Points to transform, array of shape (N, 2) where each row
                is [px, py] in meters.
        xp: Array namespace used for the arithmetic (numpy or jax.numpy).

    Returns:
        Transformed points, array of shape (N, 2).

    Raises:
        ValueError: If the pose does not have shape (3,) or points does not
            have shape (N, 2).

    Examples:
        >>> p = np.array([0, 0, np.pi/2])
        >>> pts = np.array([[1, 0], [0, 1]])
        >>> result = se2_apply(p, pts)
        >>> # [1,0] rotates to [0,1], [0,1] rotates to [-1,0]
        >>> np.allclose(result, [[0, 1], [-1, 0]], atol=1e-10)
        True
    """
    if isinstance(p, Pose2):
        p = p.to_array()
    p = xp.asarray(p, dtype=xp.float64)

    if p.shape != (3,):
        raise ValueError(f"p must have shape (3,), got {p.shape}")

    points = np.asarray(points, dtype=np.float64)
    if points.ndim != 2 or points.shape[1] != 2:
        raise ValueError(
            f"points must have shape (N, 2), got {points.shape}"
        )

    cos_yaw = xp.cos(p[2])
    sin_yaw = xp.sin(p[2])

    # Written per component so the rotation stays a function of the traced yaw
    px = xp.asarray(points[:, 0])
    py = xp.asarray(points[:, 1])
    x_world = cos_yaw * px - sin_yaw * py + p[0]
    y_world = sin_yaw * px + cos_yaw * py + p[1]

    return xp.stack([x_world, y_world], axis=1)


def se2_inverse(p: Union[np.ndarray, Pose2]) -> np.ndarray:
    """
    Compute the inverse of an SE(2) pose: p_inv = p⁻¹.

    Applying ``p_inv`` to world points expresses them in the frame of ``p``.

        x_inv = -(x*cos(yaw) + y*sin(yaw))
        y_inv = -(-x*sin(yaw) + y*cos(yaw))
        yaw_inv = -yaw  (wrapped to [-π, π])

    Raises:
        ValueError: If pose does not have shape (3,).

    Examples:
        >>> p = np.array([1.0, 2.0, 0.0])
        >>> np.allclose(se2_inverse(p), [-1.0, -2.0, 0.0])
        True
    """
    if isinstance(p, Pose2):
        p = p.to_array()
    p = np.asarray(p, dtype=np.float64)

    if p.shape != (3,):
        raise ValueError(f"p must have shape (3,), got {p.shape}")

    x, y, yaw = p
    cos_yaw = np.cos(yaw)
    sin_yaw = np.sin(yaw)

    return np.array(
        [
            -(x * cos_yaw + y * sin_yaw),
            -(-x * sin_yaw + y * cos_yaw),
            wrap_angle(-yaw),
        ],
        dtype=np.float64,
    )
