"""
types.py - Core Data Structures for RMT Lab

This module defines the value objects passed between pipeline stages:
- EigenPair / Spectrum: Output of the spectral decomposer
- MPThresholds: Marchenko-Pastur noise band edges
- CleaningResult: Denoised correlation matrix with its partition counts
- SyntheticPanel: Simulated observations plus the latent model behind them
- HistogramBin / PipelineResult: What the presentation layer consumes
- OptimizationResult: Output of the exact reference optimizer

Design Principles:
-----------------
1. Immutability for results (frozen dataclasses)
2. Validation at construction time (fail-fast)
3. Numpy arrays for every vector and matrix (float64, C order)

Example Usage:
-------------
    >>> import numpy as np
    >>> from rmt_lab.types import Spectrum
    >>>
    >>> spectrum = Spectrum(
    ...     eigenvalues=np.array([0.5, 1.5]),
    ...     eigenvectors=np.eye(2),
    ... )
    >>> [pair.eigenvalue for pair in spectrum]
    [0.5, 1.5]
"""

from __future__ import annotations

import numpy as np
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple, Union


# =============================================================================
# TYPE ALIASES
# =============================================================================

# A sampler is a callable that takes a size (int or tuple) and returns samples.
SamplerCallable = Callable[[Union[int, Tuple[int, ...]]], np.ndarray]


# =============================================================================
# SPECTRAL TYPES
# =============================================================================

@dataclass(frozen=True)
class EigenPair:
    """
    A single eigenvalue with its eigenvector.

    Parameters
    ----------
    eigenvalue : float
        The eigenvalue (Rayleigh quotient at extraction time).
    eigenvector : np.ndarray
        Unit-norm vector with shape (N,).
    """
    eigenvalue: float
    eigenvector: np.ndarray


@dataclass(frozen=True)
class Spectrum:
    """
    All eigenpairs of an (N, N) symmetric matrix, ascending by eigenvalue.

    Parameters
    ----------
    eigenvalues : np.ndarray
        Shape (N,), sorted ascending.
    eigenvectors : np.ndarray
        Shape (N, N). Column ``i`` is the eigenvector of ``eigenvalues[i]``.

    Notes
    -----
    Vectors produced by power iteration are unit-norm but only approximately
    orthogonal to each other.
    """
    eigenvalues: np.ndarray
    eigenvectors: np.ndarray

    def __post_init__(self):
        """Validate shapes and ordering."""
        if self.eigenvalues.ndim != 1:
            raise ValueError(
                f"eigenvalues must be 1D, got shape {self.eigenvalues.shape}"
            )
        n = self.eigenvalues.shape[0]
        if self.eigenvectors.shape != (n, n):
            raise ValueError(
                f"eigenvectors shape mismatch: expected ({n}, {n}), "
                f"got {self.eigenvectors.shape}"
            )
        if n > 1 and np.any(np.diff(self.eigenvalues) < 0):
            raise ValueError("eigenvalues must be sorted ascending")

    def __len__(self) -> int:
        return self.eigenvalues.shape[0]

    def __iter__(self) -> Iterator[EigenPair]:
        for i in range(len(self)):
            yield EigenPair(
                eigenvalue=float(self.eigenvalues[i]),
                eigenvector=self.eigenvectors[:, i],
            )

    def __getitem__(self, index: int) -> EigenPair:
        return EigenPair(
            eigenvalue=float(self.eigenvalues[index]),
            eigenvector=self.eigenvectors[:, index],
        )

    @property
    def n(self) -> int:
        """Matrix dimension."""
        return len(self)

    def reconstruct(self, values: Optional[np.ndarray] = None) -> np.ndarray:
        """
        Rebuild sum_i values[i] * v_i v_i^T.

        Parameters
        ----------
        values : np.ndarray, optional
            Replacement eigenvalues with shape (N,). Defaults to the
            spectrum's own eigenvalues.

        Returns
        -------
        np.ndarray
            The (N, N) reconstruction. Symmetric up to rounding.
        """
        if values is None:
            values = self.eigenvalues
        values = np.asarray(values, dtype=float)
        if values.shape != self.eigenvalues.shape:
            raise ValueError(
                f"values must have shape {self.eigenvalues.shape}, "
                f"got {values.shape}"
            )
        V = self.eigenvectors
        return (V * values) @ V.T


# =============================================================================
# MARCHENKO-PASTUR TYPES
# =============================================================================

@dataclass(frozen=True)
class MPThresholds:
    """
    Edges of the Marchenko-Pastur noise band for aspect ratio q.

    lambda_minus = (1 - sqrt(q))^2, lambda_plus = (1 + sqrt(q))^2.
    """
    lambda_minus: float
    lambda_plus: float

    def __post_init__(self):
        if self.lambda_minus < 0 or self.lambda_plus < 0:
            raise ValueError("MP thresholds must be non-negative")
        if self.lambda_minus > self.lambda_plus:
            raise ValueError(
                f"lambda_minus ({self.lambda_minus}) must be <= "
                f"lambda_plus ({self.lambda_plus})"
            )

    @property
    def width(self) -> float:
        """Width of the noise band."""
        return self.lambda_plus - self.lambda_minus

    def contains(self, x: float) -> bool:
        """True if x lies inside the closed noise band."""
        return self.lambda_minus <= x <= self.lambda_plus


# =============================================================================
# CLEANING TYPES
# =============================================================================

@dataclass(frozen=True)
class CleaningResult:
    """
    Output of the eigenvalue clipping cleaner.

    Parameters
    ----------
    cleaned : np.ndarray
        Denoised (N, N) correlation matrix with unit diagonal.
    signal_count : int
        Eigenvalues strictly above lambda_plus.
    noise_count : int
        All remaining eigenvalues.
    spectrum : Spectrum
        The spectrum the reconstruction was built from.
    average_noise : float
        Value substituted for every noise eigenvalue.
    """
    cleaned: np.ndarray
    signal_count: int
    noise_count: int
    spectrum: Spectrum
    average_noise: float

    def __post_init__(self):
        n = self.cleaned.shape[0]
        if self.signal_count + self.noise_count != n:
            raise ValueError(
                f"signal_count ({self.signal_count}) + noise_count "
                f"({self.noise_count}) must equal N={n}"
            )


# =============================================================================
# SIMULATION TYPES
# =============================================================================

@dataclass(frozen=True)
class SyntheticPanel:
    """
    A simulated (T, N) observation panel and the latent model behind it.

    The panel follows X = E + G @ L.T where E is (T, N) idiosyncratic noise,
    G is (T, k) factor draws and L is (N, k) scaled loadings.

    Parameters
    ----------
    observations : np.ndarray
        Shape (T, N).
    factors : np.ndarray
        Shape (T, k).
    loadings : np.ndarray
        Shape (N, k), already multiplied by the loading scale.
    """
    observations: np.ndarray
    factors: np.ndarray
    loadings: np.ndarray

    @property
    def n_periods(self) -> int:
        """Number of rows T."""
        return self.observations.shape[0]

    @property
    def n_assets(self) -> int:
        """Number of columns N."""
        return self.observations.shape[1]

    @property
    def n_factors(self) -> int:
        """Number of latent factors k."""
        return self.loadings.shape[1]

    def population_correlation(self) -> np.ndarray:
        """
        Correlation implied by the generating model.

        Factors and idiosyncratic terms are unit-variance and independent,
        so the population covariance is L @ L.T + I.
        """
        cov = self.loadings @ self.loadings.T + np.eye(self.n_assets)
        std = np.sqrt(np.diag(cov))
        corr = cov / np.outer(std, std)
        np.fill_diagonal(corr, 1.0)
        return corr


# =============================================================================
# OPTIMIZATION TYPES
# =============================================================================

@dataclass(frozen=True)
class OptimizationResult:
    """
    Result container for the exact minimum-variance solve.

    Parameters
    ----------
    weights : Optional[np.ndarray]
        Optimal weights with shape (N,). None if the solver failed.
    risk : float
        Portfolio volatility at the optimum.
    objective : float
        Raw objective value (w' C w).
    solved : bool
        True if the solver reported an optimal solution.
    metadata : Dict[str, Any]
        Solver status and timings.
    """
    weights: Optional[np.ndarray]
    risk: float
    objective: float
    solved: bool
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.solved and self.weights is None:
            raise ValueError("solved=True but weights is None")


# =============================================================================
# PIPELINE RESULT TYPES
# =============================================================================

@dataclass(frozen=True)
class HistogramBin:
    """
    One bar of the eigenvalue histogram.

    Parameters
    ----------
    midpoint : float
        Centre of the bin.
    density : float
        Empirical density: count / (N * bin_width).
    mp_density : float
        Theoretical Marchenko-Pastur density at the midpoint.
    is_signal : bool
        True if the midpoint lies strictly above lambda_plus.
    count : int
        Raw number of eigenvalues in [low, high).
    """
    midpoint: float
    density: float
    mp_density: float
    is_signal: bool
    count: int = 0


@dataclass(frozen=True)
class PipelineResult:
    """
    Everything the presentation layer reads from one pipeline run.

    Volatility fields
    -----------------
    vol_raw : sigma(raw weights | raw matrix)
    vol_clean : sigma(cleaned weights | cleaned matrix)
    vol_realized : sigma(cleaned weights | raw matrix). This mixes two
        estimates to illustrate estimation error; it is not a ground truth.
        ``vol_truth`` is an alias.
    population_vol_raw / population_vol_clean : sigma under the correlation
        implied by the generating factor model.
    """
    aspect_ratio: float
    n_assets: int
    n_periods: int
    thresholds: "MPThresholds"
    eigenvalues: np.ndarray
    histogram: List[HistogramBin]
    signal_count: int
    noise_count: int
    weights_raw: np.ndarray
    weights_clean: np.ndarray
    vol_raw: float
    vol_clean: float
    vol_realized: float
    hhi_raw: float
    hhi_clean: float
    max_abs_raw: float
    max_abs_clean: float
    population_vol_raw: float
    population_vol_clean: float

    @property
    def lambda_plus(self) -> float:
        """Upper Marchenko-Pastur edge."""
        return self.thresholds.lambda_plus

    @property
    def lambda_minus(self) -> float:
        """Lower Marchenko-Pastur edge."""
        return self.thresholds.lambda_minus

    @property
    def vol_truth(self) -> float:
        """Alias for vol_realized."""
        return self.vol_realized

    def sorted_weights(self) -> List[Tuple[str, float, float]]:
        """
        (asset label, raw weight, cleaned weight) rows sorted by raw weight.

        Asset labels are 1-based strings.
        """
        rows = [
            (str(i + 1), float(raw), float(clean))
            for i, (raw, clean) in enumerate(zip(self.weights_raw, self.weights_clean))
        ]
        return sorted(rows, key=lambda row: row[1])
