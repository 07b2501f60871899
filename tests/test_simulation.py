"""
test_simulation.py - Tests for Synthetic Panel Generation

Tests cover:
- Output shapes and latent model consistency
- Draw order and reproducibility
- Pure-noise panels
- Parameter validation
"""

import pytest
import numpy as np

from rmt_lab import (
    DeterministicGenerator,
    GaussianSampler,
    InvalidParameterError,
    PanelSimulator,
    generate_panel,
)


class TestPanelSimulator:
    """Tests for PanelSimulator."""

    def test_shapes(self, small_panel):
        """Test observation, factor and loading shapes."""
        assert small_panel.observations.shape == (120, 20)
        assert small_panel.factors.shape == (120, 2)
        assert small_panel.loadings.shape == (20, 2)
        assert small_panel.n_periods == 120
        assert small_panel.n_assets == 20
        assert small_panel.n_factors == 2

    def test_draw_order(self):
        """Test idiosyncratic, factor and loading draws come in that order."""
        T, N, k, scale = 6, 4, 2, 0.6
        panel = PanelSimulator(N, k, scale).simulate(T, DeterministicGenerator(42))

        sampler = GaussianSampler(DeterministicGenerator(42))
        idio = sampler((T, N))
        factors = sampler((T, k))
        loadings = sampler((N, k)) * scale

        np.testing.assert_array_equal(panel.factors, factors)
        np.testing.assert_allclose(panel.loadings, loadings)
        np.testing.assert_allclose(panel.observations, idio + factors @ loadings.T)

    def test_reproducible(self):
        """Test the same seed gives a bit-identical panel."""
        sim = PanelSimulator(n_assets=8, num_factors=3)
        a = sim.simulate(30, DeterministicGenerator(5))
        b = sim.simulate(30, DeterministicGenerator(5))

        assert np.array_equal(a.observations, b.observations)

    def test_default_generator_is_seed_zero(self):
        """Test omitting the generator uses seed 0."""
        sim = PanelSimulator(n_assets=5)
        a = sim.simulate(10)
        b = sim.simulate(10, DeterministicGenerator(0))

        assert np.array_equal(a.observations, b.observations)

    def test_zero_factors_is_pure_noise(self):
        """Test k=0 leaves only the idiosyncratic draws."""
        panel = PanelSimulator(n_assets=5, num_factors=0).simulate(
            12, DeterministicGenerator(3)
        )
        idio = GaussianSampler(DeterministicGenerator(3))((12, 5))

        assert panel.factors.shape == (12, 0)
        assert panel.loadings.shape == (5, 0)
        np.testing.assert_array_equal(panel.observations, idio)

    def test_loading_scale(self):
        """Test loadings scale linearly with loading_scale."""
        a = PanelSimulator(6, 2, loading_scale=1.0).simulate(10, DeterministicGenerator(9))
        b = PanelSimulator(6, 2, loading_scale=0.25).simulate(10, DeterministicGenerator(9))

        np.testing.assert_allclose(b.loadings, 0.25 * a.loadings)

    def test_population_correlation(self, small_panel):
        """Test the implied correlation is a valid correlation matrix."""
        R = small_panel.population_correlation()

        assert R.shape == (20, 20)
        np.testing.assert_allclose(np.diag(R), 1.0)
        np.testing.assert_allclose(R, R.T)
        assert np.all(np.linalg.eigvalsh(R) > 0)

    @pytest.mark.parametrize("n_assets", [0, -3])
    def test_invalid_assets(self, n_assets):
        """Test non-positive asset counts are rejected."""
        with pytest.raises(InvalidParameterError, match="assets"):
            PanelSimulator(n_assets=n_assets)

    def test_invalid_factors(self):
        """Test negative factor counts are rejected."""
        with pytest.raises(InvalidParameterError, match="factors"):
            PanelSimulator(n_assets=5, num_factors=-1)

    @pytest.mark.parametrize("n_periods", [0, 1])
    def test_too_few_periods(self, n_periods):
        """Test fewer than two periods is rejected."""
        with pytest.raises(InvalidParameterError, match="periods"):
            PanelSimulator(n_assets=5).simulate(n_periods)


class TestGeneratePanel:
    """Tests for the generate_panel convenience function."""

    def test_matches_simulator(self):
        """Test the wrapper returns the simulator's observations."""
        X = generate_panel(20, 6, DeterministicGenerator(4), num_factors=1)
        panel = PanelSimulator(6, 1).simulate(20, DeterministicGenerator(4))

        assert np.array_equal(X, panel.observations)

    def test_shape(self):
        """Test default arguments produce a (T, N) array."""
        assert generate_panel(15, 7).shape == (15, 7)
