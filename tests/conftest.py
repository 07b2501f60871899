"""
conftest.py - Pytest Configuration and Shared Fixtures

This file contains fixtures used across all test modules. Fixtures are
organized by category:
- Random sources (deterministic generator and numpy RNG)
- Panels and correlation matrices
- Matrices with known spectra
"""

import pytest
import numpy as np

from rmt_lab import (
    DeterministicGenerator,
    PanelSimulator,
    PipelineConfig,
    correlation_matrix,
)


# =============================================================================
# RANDOM SOURCES
# =============================================================================

@pytest.fixture
def generator():
    """The library's deterministic uniform stream, seeded with 42."""
    return DeterministicGenerator(seed=42)


@pytest.fixture
def rng():
    """
    Seeded numpy generator for building test matrices.

    Only used to construct inputs; the library itself never touches it.
    """
    return np.random.default_rng(seed=42)


# =============================================================================
# PANELS AND CORRELATION MATRICES
# =============================================================================

@pytest.fixture
def small_panel():
    """
    A 120-period, 20-asset panel with 2 latent factors.

    Small enough that power iteration is quick in every test.
    """
    simulator = PanelSimulator(n_assets=20, num_factors=2, loading_scale=0.6)
    return simulator.simulate(n_periods=120, generator=DeterministicGenerator(7))


@pytest.fixture
def default_config():
    """The reference scenario: N=50, seed=42, q=0.35 (T=143)."""
    return PipelineConfig()


@pytest.fixture
def default_panel(default_config):
    """Panel drawn exactly as the pipeline draws it for the reference scenario."""
    simulator = PanelSimulator(
        n_assets=default_config.asset_count,
        num_factors=default_config.num_factors,
        loading_scale=default_config.loading_scale,
    )
    return simulator.simulate(
        default_config.n_periods,
        DeterministicGenerator(default_config.seed),
    )


@pytest.fixture
def default_correlation(default_panel):
    """Sample correlation of the reference panel (50 x 50)."""
    return correlation_matrix(default_panel.observations)


# =============================================================================
# MATRICES WITH KNOWN SPECTRA
# =============================================================================

@pytest.fixture
def separated_matrix(rng):
    """
    A 6x6 symmetric matrix with eigenvalues 1, 2, 4, 8, 16, 32.

    Consecutive eigenvalues differ by a factor of two, so power iteration
    converges to machine precision well inside 80 steps.

    Returns
    -------
    tuple
        (matrix, true eigenvalues ascending)
    """
    n = 6
    Q, _ = np.linalg.qr(rng.standard_normal((n, n)))
    values = 2.0 ** np.arange(n)
    matrix = (Q * values) @ Q.T
    matrix = 0.5 * (matrix + matrix.T)
    return matrix, values


@pytest.fixture
def well_conditioned_covariance():
    """
    A 4x4 covariance with variances 0.5..2 and 0.2 equicorrelation.

    Eigenvalues lie roughly in [0.4, 2.4], which keeps the gradient
    heuristic stable and close to the analytic solution.
    """
    std = np.sqrt(np.array([0.5, 1.0, 1.5, 2.0]))
    R = np.full((4, 4), 0.2)
    np.fill_diagonal(R, 1.0)
    return R * np.outer(std, std)
