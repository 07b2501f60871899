"""
test_optimization.py - Tests for Minimum-Variance Weights

Tests cover:
- Gradient heuristic: budget constraint, fixed points, convergence
- Closed-form solution
- Exact CVXPY solve, with and without constraints
- Error handling
"""

import pytest
import numpy as np

from rmt_lab import (
    DegenerateInputError,
    InvalidParameterError,
    MinimumVarianceOptimizer,
    analytic_minimum_variance,
    exact_minimum_variance,
    minimum_variance_weights,
    portfolio_variance,
)


class TestGradientHeuristic:
    """Tests for minimum_variance_weights."""

    def test_budget(self, default_correlation):
        """Test weights always sum to one."""
        w = minimum_variance_weights(default_correlation)

        assert w.shape == (50,)
        assert w.sum() == pytest.approx(1.0, abs=1e-12)

    def test_zero_steps_is_uniform(self, default_correlation):
        """Test no steps returns the equal-weight start."""
        w = minimum_variance_weights(default_correlation, n_steps=0)
        np.testing.assert_allclose(w, np.full(50, 1.0 / 50))

    def test_identity_fixed_point(self):
        """Test equal weights are optimal for the identity."""
        w = minimum_variance_weights(np.eye(8))
        np.testing.assert_allclose(w, np.full(8, 1.0 / 8), atol=1e-14)

    def test_converges_to_analytic(self, well_conditioned_covariance):
        """Test the heuristic lands near the closed form on a benign matrix."""
        w = minimum_variance_weights(well_conditioned_covariance)
        expected = analytic_minimum_variance(well_conditioned_covariance)

        np.testing.assert_allclose(w, expected, atol=0.02)

    def test_reduces_variance(self, default_correlation):
        """Test the result beats the uniform portfolio."""
        uniform = np.full(50, 1.0 / 50)
        w = minimum_variance_weights(default_correlation)

        assert portfolio_variance(w, default_correlation) < portfolio_variance(
            uniform, default_correlation
        )

    def test_deterministic(self, default_correlation):
        """Test repeated calls agree exactly."""
        a = minimum_variance_weights(default_correlation)
        b = minimum_variance_weights(default_correlation)
        assert np.array_equal(a, b)

    def test_nan_matrix(self):
        """Test a non-finite matrix collapses the weight sum."""
        C = np.full((3, 3), np.nan)
        with pytest.raises(DegenerateInputError, match="collapsed"):
            minimum_variance_weights(C)

    def test_negative_steps(self):
        """Test a negative step budget is rejected."""
        with pytest.raises(InvalidParameterError, match="n_steps"):
            minimum_variance_weights(np.eye(3), n_steps=-1)

    def test_not_square(self):
        """Test non-square input is rejected."""
        with pytest.raises(InvalidParameterError, match="square"):
            minimum_variance_weights(np.ones((3, 2)))


class TestAnalytic:
    """Tests for analytic_minimum_variance."""

    def test_diagonal(self):
        """Test inverse-variance weights for a diagonal matrix."""
        C = np.diag([1.0, 2.0, 4.0])
        w = analytic_minimum_variance(C)

        inv = np.array([1.0, 0.5, 0.25])
        np.testing.assert_allclose(w, inv / inv.sum())

    def test_first_order_condition(self, well_conditioned_covariance):
        """Test C w is proportional to the ones vector."""
        C = well_conditioned_covariance
        w = analytic_minimum_variance(C)
        Cw = C @ w

        assert w.sum() == pytest.approx(1.0)
        np.testing.assert_allclose(Cw, Cw[0])

    def test_singular(self):
        """Test a singular matrix is reported as degenerate."""
        with pytest.raises(DegenerateInputError):
            analytic_minimum_variance(np.zeros((3, 3)))


class TestMinimumVarianceOptimizer:
    """Tests for the CVXPY solve."""

    def test_unconstrained_matches_analytic(self, well_conditioned_covariance):
        """Test the exact solve reproduces the closed form."""
        C = well_conditioned_covariance
        result = MinimumVarianceOptimizer(C).solve()

        assert result.solved
        np.testing.assert_allclose(result.weights, analytic_minimum_variance(C), atol=1e-4)

    def test_risk_and_objective(self, well_conditioned_covariance):
        """Test reported risk is sqrt(w'Cw) and objective is half the variance."""
        C = well_conditioned_covariance
        result = exact_minimum_variance(C)
        variance = portfolio_variance(result.weights, C)

        assert result.risk == pytest.approx(np.sqrt(variance), rel=1e-3)
        assert result.objective == pytest.approx(0.5 * variance, rel=1e-3)

    def test_long_only(self, default_correlation):
        """Test the long-only constraint."""
        result = exact_minimum_variance(default_correlation, long_only=True)

        assert result.solved
        assert np.all(result.weights >= -1e-6)
        assert result.weights.sum() == pytest.approx(1.0, abs=1e-6)

    def test_max_weight(self, well_conditioned_covariance):
        """Test the per-asset cap binds."""
        result = exact_minimum_variance(well_conditioned_covariance, max_weight=0.3)

        assert result.solved
        assert np.all(result.weights <= 0.3 + 1e-6)

    def test_custom_equality(self):
        """Test an extra equality constraint is honoured."""
        optimizer = MinimumVarianceOptimizer(np.eye(3))
        optimizer.add_equality(np.array([[1.0, 0.0, 0.0]]), np.array([0.5]))
        result = optimizer.solve()

        assert result.solved
        np.testing.assert_allclose(result.weights, [0.5, 0.25, 0.25], atol=1e-5)

    def test_custom_inequality(self):
        """Test an extra inequality constraint is honoured."""
        optimizer = MinimumVarianceOptimizer(np.eye(4))
        optimizer.add_inequality(np.array([[0.0, 0.0, 0.0, 1.0]]), np.array([0.1]))
        result = optimizer.solve()

        assert result.solved
        assert result.weights[3] <= 0.1 + 1e-6
        np.testing.assert_allclose(result.weights[:3], 0.3, atol=1e-5)

    def test_infeasible(self):
        """Test an infeasible problem reports solved=False."""
        result = exact_minimum_variance(np.eye(4), long_only=True, max_weight=0.1)

        assert not result.solved
        assert result.weights is None
        assert "infeasible" in result.metadata["status"]

    def test_problem_available_after_solve(self):
        """Test the CVXPY problem is exposed once solved."""
        optimizer = MinimumVarianceOptimizer(np.eye(2))
        assert optimizer.problem is None
        optimizer.solve()
        assert optimizer.problem is not None
