"""
estimation.py - Sample Correlation Estimation

Reduces a (T, N) panel to its (N, N) sample correlation matrix using
population moments (divide by T, not T - 1).
"""

from __future__ import annotations

import numpy as np
from loguru import logger

from .errors import DegenerateInputError, InvalidParameterError


# Relative tolerance: a column is constant if std <= DEGENERATE_STD * max(1, |mean|)
DEGENERATE_STD = 1e-12


def correlation_matrix(panel: np.ndarray) -> np.ndarray:
    """
    Sample correlation matrix of a (T, N) panel.

    Each column is standardised with its population mean and standard
    deviation, and C[i, j] is the average over t of the product of the
    standardised columns i and j.

    Parameters
    ----------
    panel : np.ndarray
        Observations with T >= 2 rows (periods) and N >= 1 columns (assets).

    Returns
    -------
    np.ndarray
        Symmetric (N, N) matrix with unit diagonal and entries in [-1, 1].

    Raises
    ------
    InvalidParameterError
        If the panel is not 2D, has fewer than 2 rows or no columns.
    DegenerateInputError
        If any column has (near) zero variance. ``asset_index`` names the
        first such column.
    """
    panel = np.asarray(panel, dtype=float)
    if panel.ndim != 2:
        raise InvalidParameterError(
            f"Panel must be a 2D array, got shape {panel.shape}"
        )

    T, N = panel.shape
    if T < 2:
        raise InvalidParameterError(
            f"Panel must have at least 2 periods, got T={T}"
        )
    if N < 1:
        raise InvalidParameterError("Panel must have at least 1 asset, got N=0")

    logger.info(f"Estimating correlation matrix from {T}x{N} panel")

    means = panel.mean(axis=0)
    stds = panel.std(axis=0)  # ddof=0

    # Rounding in the mean leaves a constant column at level L with std ~ L * eps
    cutoff = DEGENERATE_STD * np.maximum(1.0, np.abs(means))
    degenerate = np.flatnonzero(stds <= cutoff)
    if degenerate.size:
        index = int(degenerate[0])
        logger.error(f"Asset {index} has zero variance; correlation undefined")
        raise DegenerateInputError(
            f"Asset {index} has zero variance over {T} periods "
            f"(panel shape {T}x{N}); {degenerate.size} degenerate column(s) in total",
            asset_index=index,
        )

    Z = (panel - means) / stds
    C = (Z.T @ Z) / T

    # Exact symmetry, unit diagonal and range guard against rounding
    C = 0.5 * (C + C.T)
    np.clip(C, -1.0, 1.0, out=C)
    np.fill_diagonal(C, 1.0)
    return C


def covariance_to_correlation(matrix: np.ndarray) -> np.ndarray:
    """
    Rescale a symmetric matrix to unit diagonal: M[i, j] / sqrt(M[i, i] M[j, j]).

    Parameters
    ----------
    matrix : np.ndarray
        Square matrix with a strictly positive diagonal.

    Returns
    -------
    np.ndarray
        Symmetric matrix with diagonal exactly 1.

    Raises
    ------
    InvalidParameterError
        If the input is not square.
    DegenerateInputError
        If any diagonal entry is not strictly positive.
    """
    matrix = np.asarray(matrix, dtype=float)
    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
        raise InvalidParameterError(
            f"Matrix must be square, got shape {matrix.shape}"
        )

    diag = np.diag(matrix)
    bad = np.flatnonzero(~(diag > 0))
    if bad.size:
        index = int(bad[0])
        raise DegenerateInputError(
            f"Diagonal entry {index} is {diag[index]:.3e}; cannot rescale "
            f"{matrix.shape[0]}x{matrix.shape[0]} matrix to unit diagonal",
            asset_index=index,
        )

    std = np.sqrt(diag)
    corr = matrix / np.outer(std, std)
    corr = 0.5 * (corr + corr.T)
    np.fill_diagonal(corr, 1.0)
    return corr
