"""
risk.py - Portfolio Risk and Concentration Measures
"""

from __future__ import annotations

import warnings

import numpy as np
from loguru import logger

from .errors import InvalidParameterError, NumericInstabilityWarning


def _check_shapes(weights: np.ndarray, matrix: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    w = np.asarray(weights, dtype=float)
    C = np.asarray(matrix, dtype=float)
    if w.ndim != 1:
        raise InvalidParameterError(f"Weights must be 1D, got shape {w.shape}")
    if C.shape != (w.shape[0], w.shape[0]):
        raise InvalidParameterError(
            f"Matrix shape {C.shape} does not match {w.shape[0]} weights"
        )
    return w, C


def portfolio_variance(weights: np.ndarray, matrix: np.ndarray) -> float:
    """Quadratic form w' C w. May be negative if C is not PSD."""
    w, C = _check_shapes(weights, matrix)
    return float(w @ C @ w)


def portfolio_volatility(weights: np.ndarray, matrix: np.ndarray) -> float:
    """
    Portfolio volatility sqrt(max(0, w' C w)).

    Parameters
    ----------
    weights : np.ndarray
        Shape (N,).
    matrix : np.ndarray
        Shape (N, N) covariance or correlation matrix.

    Returns
    -------
    float
        Non-negative volatility.

    Warns
    -----
    NumericInstabilityWarning
        If the quadratic form is negative (C not positive semi-definite,
        usually after an approximate reconstruction). The variance is
        clamped to zero.
    """
    variance = portfolio_variance(weights, matrix)
    if variance < 0.0:
        logger.warning(f"Negative portfolio variance {variance:.3e} clamped to 0")
        warnings.warn(
            f"Negative portfolio variance {variance:.3e} for "
            f"{len(weights)} assets clamped to zero",
            NumericInstabilityWarning,
            stacklevel=2,
        )
        variance = 0.0
    return float(np.sqrt(variance))


def herfindahl_index(weights: np.ndarray) -> float:
    """Concentration sum(w^2)."""
    w = np.asarray(weights, dtype=float)
    return float(np.sum(w * w))


def effective_positions(weights: np.ndarray) -> float:
    """Effective number of positions, 1 / HHI."""
    hhi = herfindahl_index(weights)
    return float("inf") if hhi == 0.0 else 1.0 / hhi
