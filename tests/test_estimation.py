"""
test_estimation.py - Tests for Correlation Estimation

Tests cover:
- Agreement with numpy's correlation estimator
- Structural properties (symmetry, unit diagonal, range)
- Degenerate and malformed panels
- Covariance rescaling
"""

import pytest
import numpy as np

from rmt_lab import (
    DegenerateInputError,
    InvalidParameterError,
    RMTLabError,
    correlation_matrix,
    covariance_to_correlation,
)


class TestCorrelationMatrix:
    """Tests for correlation_matrix."""

    def test_matches_numpy(self, small_panel):
        """Test agreement with np.corrcoef (the ddof factors cancel)."""
        C = correlation_matrix(small_panel.observations)
        expected = np.corrcoef(small_panel.observations, rowvar=False)

        np.testing.assert_allclose(C, expected, atol=1e-12)

    def test_structure(self, default_correlation):
        """Test symmetry, unit diagonal and range."""
        C = default_correlation

        assert C.shape == (50, 50)
        assert np.array_equal(C, C.T)
        assert np.all(np.diag(C) == 1.0)
        assert np.all(np.abs(C) <= 1.0)

    def test_scale_and_shift_invariant(self, rng):
        """Test affine rescaling of columns leaves C unchanged."""
        X = rng.standard_normal((40, 5))
        Y = X * np.array([1.0, 10.0, 0.1, 3.0, 7.0]) + 100.0

        np.testing.assert_allclose(
            correlation_matrix(X), correlation_matrix(Y), atol=1e-10
        )

    def test_perfectly_correlated_pair(self, rng):
        """Test a column and its negation give -1."""
        x = rng.standard_normal(30)
        C = correlation_matrix(np.column_stack([x, -2.0 * x]))

        assert C[0, 1] == pytest.approx(-1.0)

    def test_single_asset(self, rng):
        """Test N=1 gives the 1x1 identity."""
        C = correlation_matrix(rng.standard_normal((10, 1)))
        assert C.shape == (1, 1)
        assert C[0, 0] == 1.0

    def test_constant_column(self, rng):
        """Test a zero-variance column names the offending asset."""
        X = rng.standard_normal((20, 4))
        X[:, 2] = 3.0

        with pytest.raises(DegenerateInputError) as excinfo:
            correlation_matrix(X)

        assert excinfo.value.asset_index == 2
        assert "Asset 2" in str(excinfo.value)

    def test_constant_column_at_large_level(self, rng):
        """Test a constant column far from zero is still caught despite rounding."""
        X = rng.standard_normal((143, 3))
        X[:, 1] = 1e8 + 0.1

        with pytest.raises(DegenerateInputError) as excinfo:
            correlation_matrix(X)
        assert excinfo.value.asset_index == 1

    def test_small_variance_at_large_level_kept(self, rng):
        """Test genuine variation around a large level is not flagged."""
        X = rng.standard_normal((50, 2))
        X[:, 0] = 1e6 + 0.01 * X[:, 0]

        C = correlation_matrix(X)
        assert C.shape == (2, 2)

    def test_first_degenerate_column_reported(self, rng):
        """Test the lowest degenerate index is reported."""
        X = rng.standard_normal((20, 5))
        X[:, 1] = 0.0
        X[:, 4] = 0.0

        with pytest.raises(DegenerateInputError) as excinfo:
            correlation_matrix(X)
        assert excinfo.value.asset_index == 1

    def test_degenerate_is_library_and_value_error(self, rng):
        """Test DegenerateInputError can be caught generically."""
        X = np.ones((5, 2))
        with pytest.raises(RMTLabError):
            correlation_matrix(X)
        with pytest.raises(ValueError):
            correlation_matrix(X)

    def test_one_period(self):
        """Test T=1 is rejected."""
        with pytest.raises(InvalidParameterError, match="2 periods"):
            correlation_matrix(np.ones((1, 3)))

    def test_no_assets(self):
        """Test N=0 is rejected."""
        with pytest.raises(InvalidParameterError, match="1 asset"):
            correlation_matrix(np.empty((5, 0)))

    def test_wrong_rank(self):
        """Test 1D input is rejected."""
        with pytest.raises(InvalidParameterError, match="2D"):
            correlation_matrix(np.arange(5.0))


class TestCovarianceToCorrelation:
    """Tests for covariance_to_correlation."""

    def test_rescales(self):
        """Test a known covariance maps to its correlation."""
        cov = np.array([[4.0, 1.2], [1.2, 9.0]])
        corr = covariance_to_correlation(cov)

        np.testing.assert_allclose(corr, [[1.0, 0.2], [0.2, 1.0]])

    def test_correlation_is_fixed_point(self, default_correlation):
        """Test a correlation matrix is returned unchanged."""
        np.testing.assert_allclose(
            covariance_to_correlation(default_correlation),
            default_correlation,
            atol=1e-14,
        )

    def test_non_positive_diagonal(self):
        """Test a zero or negative variance is rejected with its index."""
        cov = np.diag([1.0, 2.0, -0.5])
        with pytest.raises(DegenerateInputError) as excinfo:
            covariance_to_correlation(cov)
        assert excinfo.value.asset_index == 2

    def test_not_square(self):
        """Test non-square input is rejected."""
        with pytest.raises(InvalidParameterError, match="square"):
            covariance_to_correlation(np.ones((2, 3)))
