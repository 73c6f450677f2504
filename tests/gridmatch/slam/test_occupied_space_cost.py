"""Unit tests for gridmatch.slam.occupied_space_cost module.

Tests the occupied-space residuals and their auto-differentiated Jacobian:
residual count, sentinel behaviour off the grid, scaling, symmetry and
agreement with central-difference Jacobians.

Author: Navigation Engineer
Date: October 2026
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Callable

import numpy as np
import pytest

from gridmatch.jax_init import jnp
from gridmatch.slam import (
    CostGrid2D,
    GridField,
    MapLimits,
    OccupiedSpaceCostFunction2D,
    Pose2,
    create_occupied_space_cost_function_2d,
    occupied_space_jacobian,
    occupied_space_residuals,
)


def numerical_jacobian(
    f: Callable,
    x: np.ndarray,
    epsilon: float = 1e-5
) -> np.ndarray:
    """Compute Jacobian numerically using central differences."""
    x = np.asarray(x, dtype=float)
    y0 = f(x)
    J = np.zeros((len(y0), len(x)))

    for i in range(len(x)):
        x_plus = x.copy()
        x_minus = x.copy()
        x_plus[i] += epsilon
        x_minus[i] -= epsilon
        J[:, i] = (f(x_plus) - f(x_minus)) / (2 * epsilon)

    return J


def single_cell_grid() -> CostGrid2D:
    """10x10 grid, resolution 1, origin (0, 0), zero except cell (5, 5) = 1."""
    limits = MapLimits(resolution=1.0, origin_x=0.0, origin_y=0.0, rows=10, cols=10)
    costs = np.zeros((10, 10))
    costs[5, 5] = 1.0
    return CostGrid2D(costs, limits)


def smooth_grid() -> CostGrid2D:
    """8m x 8m grid at 0.1m resolution with a smooth, non-separable cost."""
    limits = MapLimits(resolution=0.1, origin_x=4.0, origin_y=4.0, rows=80, cols=80)
    rr, cc = np.meshgrid(np.arange(80), np.arange(80), indexing="ij")
    x = limits.origin_x - (cc + 0.5) * limits.resolution
    y = limits.origin_y - (rr + 0.5) * limits.resolution
    costs = 0.5 + 0.4 * np.sin(0.9 * x + 0.3 * y) * np.cos(0.6 * y)
    return CostGrid2D(costs, limits)


def radial_grid() -> CostGrid2D:
    """21x21 grid whose center cell sits on the world origin, radial cost."""
    limits = MapLimits(resolution=1.0, origin_x=10.5, origin_y=10.5, rows=21, cols=21)
    rr, cc = np.meshgrid(np.arange(21), np.arange(21), indexing="ij")
    costs = 1.0 - np.exp(-((rr - 10) ** 2 + (cc - 10) ** 2) / 20.0)
    return CostGrid2D(costs, limits)


class ListCostGrid:
    """GridField backed by nested Python lists, outside CostGrid2D."""

    def __init__(self, cells, limits: MapLimits, max_cost: float = 1.0):
        self._cells = [[float(v) for v in row] for row in cells]
        self._limits = limits
        self._max_cost = max_cost
        self.as_array_calls = 0

    def value(self, row, col):
        rows = np.asarray(row)
        cols = np.asarray(col)
        flat = [
            self._cells[r][c]
            for r, c in zip(rows.ravel().tolist(), cols.ravel().tolist())
        ]
        return np.array(flat, dtype=np.float64).reshape(rows.shape)

    def max_cost(self) -> float:
        return self._max_cost

    def rows(self) -> int:
        return len(self._cells)

    def cols(self) -> int:
        return len(self._cells[0])

    def limits(self) -> MapLimits:
        return self._limits

    def as_array(self) -> np.ndarray:
        self.as_array_calls += 1
        return np.array(self._cells, dtype=np.float64)


def list_grid() -> ListCostGrid:
    """4m x 4m computed field at 0.25m resolution, stored as lists."""
    limits = MapLimits(resolution=0.25, origin_x=2.0, origin_y=2.0, rows=16, cols=16)
    cells = [
        [0.5 + 0.3 * np.sin(0.7 * r) * np.cos(0.4 * c) for c in range(16)]
        for r in range(16)
    ]
    return ListCostGrid(cells, limits)


class TestResidualCount:
    """Residuals are index-aligned with the point cloud."""

    @pytest.mark.parametrize("n_points", [0, 1, 7, 64])
    def test_length_matches_point_cloud(self, n_points):
        """Test |residuals| == |point cloud| for random poses."""
        rng = np.random.default_rng(n_points)
        grid = smooth_grid()
        points = rng.uniform(-6.0, 6.0, size=(n_points, 2))

        for _ in range(5):
            pose = rng.uniform([-3, -3, -np.pi], [3, 3, np.pi])
            residuals = occupied_space_residuals(pose, points, grid, 1.0)
            assert residuals.shape == (n_points,)

    def test_index_preserving(self):
        """Test that residual i only depends on point i."""
        grid = smooth_grid()
        points = np.array([[0.3, -0.2], [1.1, 0.7], [-0.8, 0.4]])
        pose = np.array([0.2, -0.1, 0.3])

        together = occupied_space_residuals(pose, points, grid, 1.0)
        alone = [occupied_space_residuals(pose, points[i:i + 1], grid, 1.0)[0]
                 for i in range(3)]

        np.testing.assert_allclose(together, alone, atol=1e-15)


class TestResidualValues:
    """Residual values at known locations."""

    def test_single_cell_scenario(self):
        """Test a point on cell (5, 5) of the 10x10 single-cell grid."""
        grid = single_cell_grid()
        point = np.array([grid.limits().cell_center(5, 5)])
        assert point.tolist() == [[-5.5, -5.5]]

        for scaling in (1.0, 0.5, 3.0):
            residuals = occupied_space_residuals(np.zeros(3), point, grid, scaling)
            assert residuals[0] == pytest.approx(scaling * 1.0, abs=1e-12)

    def test_best_cell_gives_min_cost(self):
        """Test that a point on the lowest-cost cell returns that cost."""
        rng = np.random.default_rng(11)
        limits = MapLimits(resolution=1.0, origin_x=0.0, origin_y=0.0, rows=10, cols=10)
        costs = rng.uniform(0.3, 1.0, size=(10, 10))
        costs[4, 6] = 0.05
        grid = CostGrid2D(costs, limits)
        point = np.array([limits.cell_center(4, 6)])

        residuals = occupied_space_residuals(Pose2.identity(), point, grid, 2.0)

        assert residuals[0] == pytest.approx(2.0 * 0.05, abs=1e-9)

    @pytest.mark.parametrize("yaw", [0.0, 0.7, -2.3, np.pi])
    def test_far_points_read_max_cost(self, yaw):
        """Test points 10x the grid extent away, for any rotation."""
        grid = single_cell_grid()
        points = np.array([
            [100.0, 100.0], [-100.0, -100.0], [100.0, -100.0], [-100.0, 100.0],
            [0.0, 150.0],
        ])
        pose = np.array([0.5, -0.5, yaw])

        residuals = occupied_space_residuals(pose, points, grid, 3.0)

        np.testing.assert_allclose(residuals, 3.0 * grid.max_cost(), atol=1e-12)

    def test_scaling_linearity(self):
        """Test that doubling the scaling factor doubles every residual."""
        rng = np.random.default_rng(12)
        grid = smooth_grid()
        points = rng.uniform(-5.0, 5.0, size=(40, 2))

        for _ in range(5):
            pose = rng.uniform([-2, -2, -np.pi], [2, 2, np.pi])
            single = occupied_space_residuals(pose, points, grid, 0.7)
            double = occupied_space_residuals(pose, points, grid, 1.4)
            np.testing.assert_allclose(double, 2.0 * single, rtol=1e-14, atol=0.0)

    @pytest.mark.parametrize("yaw", [np.pi / 2, np.pi, -np.pi / 2])
    def test_rotation_symmetry(self, yaw):
        """Test that a symmetric cloud on a radial field is rotation invariant."""
        grid = radial_grid()
        base = np.array([[2.0, 0.0], [1.3, 0.4], [3.7, -1.6]])
        quarter_turn = np.array([[0.0, -1.0], [1.0, 0.0]])
        points = np.vstack([
            base,
            base @ quarter_turn.T,
            base @ (quarter_turn @ quarter_turn).T,
            base @ (quarter_turn @ quarter_turn @ quarter_turn).T,
        ])

        unrotated = occupied_space_residuals(np.zeros(3), points, grid, 1.0)
        rotated = occupied_space_residuals(np.array([0.0, 0.0, yaw]), points, grid, 1.0)

        np.testing.assert_allclose(rotated, unrotated, atol=1e-9)

    def test_continuous_across_cell_boundary(self):
        """Test that moving a point across a cell edge does not jump."""
        grid = smooth_grid()
        # x = 0.05 maps to column 39.0, where the 4x4 window shifts by one cell
        points = np.array([[0.05, 0.33]])
        eps = 1e-7

        before = occupied_space_residuals(np.array([-eps, 0.0, 0.0]), points, grid, 1.0)
        after = occupied_space_residuals(np.array([eps, 0.0, 0.0]), points, grid, 1.0)

        assert abs(after[0] - before[0]) < 1e-4

    def test_inputs_not_mutated(self):
        """Test that pose, point cloud and grid are left untouched."""
        grid = smooth_grid()
        grid_before = grid.as_array().copy()
        points = np.array([[0.1, 0.2], [-1.0, 0.5]])
        points_before = points.copy()
        pose = np.array([0.1, 0.2, 0.3])
        pose_before = pose.copy()

        occupied_space_residuals(pose, points, grid, 1.0)
        occupied_space_jacobian(pose, points, grid, 1.0)

        np.testing.assert_array_equal(points, points_before)
        np.testing.assert_array_equal(pose, pose_before)
        np.testing.assert_array_equal(grid.as_array(), grid_before)

    def test_jax_namespace_matches_numpy(self):
        """Test that the traced code path evaluates the same residuals."""
        rng = np.random.default_rng(13)
        grid = smooth_grid()
        points = rng.uniform(-6.0, 6.0, size=(30, 2))
        pose = np.array([0.4, -0.3, 1.1])

        expected = occupied_space_residuals(pose, points, grid, 1.5)
        result = occupied_space_residuals(jnp.asarray(pose), points, grid, 1.5, xp=jnp)

        np.testing.assert_allclose(np.asarray(result), expected, atol=1e-12)


class TestJacobian:
    """Auto-differentiated Jacobian of the residuals."""

    def test_matches_finite_differences(self):
        """Test jacfwd against central differences."""
        grid = smooth_grid()
        rng = np.random.default_rng(14)
        points = rng.uniform(-2.0, 2.0, size=(12, 2))

        for pose in (np.array([0.13, -0.27, 0.31]), np.array([-0.42, 0.18, -1.2])):
            J_auto = occupied_space_jacobian(pose, points, grid, 2.0)

            def f(p):
                return occupied_space_residuals(p, points, grid, 2.0)

            J_numerical = numerical_jacobian(f, pose)

            assert J_auto.shape == (12, 3)
            np.testing.assert_allclose(
                J_auto, J_numerical,
                rtol=1e-4, atol=1e-4,
                err_msg=f"Jacobian mismatch at pose={pose}"
            )

    def test_linear_field_analytic(self):
        """Test the exact Jacobian on a field linear in row and column."""
        limits = MapLimits(resolution=1.0, origin_x=0.0, origin_y=0.0, rows=10, cols=10)
        rr, cc = np.meshgrid(np.arange(10), np.arange(10), indexing="ij")
        grid = CostGrid2D(0.02 * rr + 0.05 * cc, limits)
        point = np.array([[-4.3, -5.2]])
        scaling = 1.5

        J = occupied_space_jacobian(np.zeros(3), point, grid, scaling)

        # col = -x - 0.5, row = -y - 0.5; at yaw = 0: dx/dyaw = -py, dy/dyaw = px
        px, py = point[0]
        expected = scaling * np.array([[
            -0.05,
            -0.02,
            -0.05 * (-py) - 0.02 * px,
        ]])
        np.testing.assert_allclose(J, expected, atol=1e-10)

    def test_zero_off_grid(self):
        """Test that far-away points have a zero gradient."""
        grid = single_cell_grid()
        points = np.array([[100.0, 100.0], [-250.0, 40.0]])

        J = occupied_space_jacobian(np.array([0.0, 0.0, 0.4]), points, grid, 1.0)

        np.testing.assert_allclose(J, 0.0, atol=1e-12)

    def test_empty_point_cloud(self):
        """Test that an empty scan yields a (0, 3) Jacobian."""
        J = occupied_space_jacobian(np.zeros(3), np.empty((0, 2)), smooth_grid(), 1.0)
        assert J.shape == (0, 3)


class TestCustomGridField:
    """Residuals and Jacobian on a GridField that is not a CostGrid2D."""

    points = np.array([
        [0.3, -0.4], [-1.1, 0.7], [1.4, 1.2], [-0.6, -1.3], [0.05, 0.9],
    ])
    pose = np.array([0.12, -0.08, 0.25])

    def test_satisfies_protocol(self):
        """Test that the list-backed grid is recognised as a GridField."""
        assert isinstance(list_grid(), GridField)

    def test_jax_residuals_match_numpy(self):
        """Test that value() and as_array() lookups give the same residuals."""
        grid = list_grid()

        expected = occupied_space_residuals(self.pose, self.points, grid, 1.5)
        result = occupied_space_residuals(
            jnp.asarray(self.pose), self.points, grid, 1.5, xp=jnp
        )

        np.testing.assert_allclose(np.asarray(result), expected, atol=1e-12)

    def test_jacobian_matches_finite_differences(self):
        """Test that the Jacobian belongs to the value() residuals."""
        grid = list_grid()

        J_auto = occupied_space_jacobian(self.pose, self.points, grid, 1.5)
        J_numerical = numerical_jacobian(
            lambda p: occupied_space_residuals(p, self.points, grid, 1.5), self.pose
        )

        np.testing.assert_allclose(J_auto, J_numerical, rtol=1e-4, atol=1e-4)

    def test_grid_converted_once_per_jacobian(self):
        """Test that one Jacobian reads as_array() once, residuals never."""
        grid = list_grid()

        occupied_space_residuals(self.pose, self.points, grid, 1.0)
        assert grid.as_array_calls == 0

        occupied_space_jacobian(self.pose, self.points, grid, 1.0)
        assert grid.as_array_calls == 1

        occupied_space_jacobian(self.pose, self.points, grid, 1.0)
        assert grid.as_array_calls == 2


class TestOccupiedSpaceCostFunction2D:
    """Test suite for the cost function object and its factory."""

    def setup_method(self):
        self.grid = smooth_grid()
        self.points = np.random.default_rng(15).uniform(-2.0, 2.0, size=(9, 2))

    def test_sizes(self):
        """Test that residual and parameter counts are reported."""
        cost = create_occupied_space_cost_function_2d(1.0, self.points)
        assert cost.num_residuals == 9
        assert cost.num_parameters == 3

    def test_evaluate(self):
        """Test that evaluate returns residuals and Jacobian of matching sizes."""
        cost = create_occupied_space_cost_function_2d(0.5, self.points)
        pose = np.array([0.1, 0.0, -0.2])

        residuals, jacobian = cost.evaluate(pose, self.grid)

        np.testing.assert_allclose(
            residuals, occupied_space_residuals(pose, self.points, self.grid, 0.5)
        )
        assert jacobian.shape == (9, 3)

    def test_evaluate_without_jacobian(self):
        """Test that the Jacobian can be skipped."""
        cost = create_occupied_space_cost_function_2d(1.0, self.points)
        residuals, jacobian = cost.evaluate(np.zeros(3), self.grid, compute_jacobian=False)
        assert residuals.shape == (9,)
        assert jacobian is None

    def test_point_cloud_is_frozen(self):
        """Test that the bound scan is a read-only copy."""
        cost = OccupiedSpaceCostFunction2D(1.0, self.points)
        self.points[0, 0] = 99.0
        assert cost.point_cloud[0, 0] != 99.0
        with pytest.raises(ValueError):
            cost.point_cloud[0, 0] = 1.0

    def test_concurrent_evaluation(self):
        """Test that threads sharing one grid get the serial results."""
        cost = create_occupied_space_cost_function_2d(1.0, self.points)
        rng = np.random.default_rng(16)
        poses = rng.uniform([-1, -1, -np.pi], [1, 1, np.pi], size=(32, 3))

        serial = [cost.residuals(p, self.grid) for p in poses]
        with ThreadPoolExecutor(max_workers=4) as pool:
            parallel = list(pool.map(lambda p: cost.residuals(p, self.grid), poses))

        for expected, result in zip(serial, parallel):
            np.testing.assert_array_equal(result, expected)

    def test_factory_rejects_negative_scaling(self):
        """Test that a negative scaling factor raises ValueError."""
        with pytest.raises(ValueError, match="scaling_factor"):
            create_occupied_space_cost_function_2d(-1.0, self.points)

    def test_factory_rejects_bad_shape(self):
        """Test that a point cloud of the wrong shape raises ValueError."""
        with pytest.raises(ValueError, match="must have shape \\(N, 2\\)"):
            create_occupied_space_cost_function_2d(1.0, np.zeros((4, 3)))

    def test_factory_rejects_non_finite_points(self):
        """Test that NaN points raise ValueError."""
        points = self.points.copy()
        points[2, 1] = np.nan
        with pytest.raises(ValueError, match="finite"):
            create_occupied_space_cost_function_2d(1.0, points)
