"""
decomposition.py - Eigen-Decomposition of Symmetric Matrices
============================================================

Provides the full ascending spectrum of a symmetric (N, N) matrix.
Power iteration with deflation is the default; a dense LAPACK solver is
available for callers that need machine-precision eigenpairs.
"""

from __future__ import annotations
from enum import Enum
from typing import Tuple, Union
import numpy as np
import scipy.linalg
from loguru import logger

from .errors import InvalidParameterError
from .samplers import DeterministicGenerator
from .types import Spectrum

# =============================================================================
# ENUMS
# =============================================================================

class SpectralMethod(str, Enum):
    """Available eigen-decomposition methods."""
    POWER = "power"  # Power iteration with deflation
    EXACT = "exact"  # Dense symmetric solver (scipy.linalg.eigh)


DEFAULT_POWER_STEPS = 80
DEGENERATE_NORM = 1e-10
SYMMETRY_TOL = 1e-8

# =============================================================================
# HELPER: LOW-LEVEL SOLVERS
# =============================================================================

def _validate_symmetric(matrix: np.ndarray) -> np.ndarray:
    """Return a float copy of ``matrix`` after checking it is square and symmetric."""
    A = np.array(matrix, dtype=float, copy=True)
    if A.ndim != 2 or A.shape[0] != A.shape[1]:
        raise InvalidParameterError(f"Matrix must be square, got shape {A.shape}")
    if A.shape[0] == 0:
        raise InvalidParameterError("Matrix must have at least one row")
    scale = max(1.0, float(np.max(np.abs(A))))
    if not np.allclose(A, A.T, rtol=0.0, atol=SYMMETRY_TOL * scale):
        raise InvalidParameterError(
            f"Matrix of shape {A.shape} is not symmetric "
            f"(max asymmetry {np.max(np.abs(A - A.T)):.3e})"
        )
    return A


def _random_unit_vector(generator: DeterministicGenerator, n: int) -> np.ndarray:
    """Start vector with components uniform on [-0.5, 0.5), normalised."""
    v = generator.uniform(n) - 0.5
    norm = np.linalg.norm(v)
    if norm == 0.0:
        v = np.full(n, 1.0 / np.sqrt(n))
        return v
    return v / norm


def _dominant_pair(
    A: np.ndarray,
    v: np.ndarray,
    n_iter: int,
    tol: float,
) -> Tuple[float, np.ndarray, int]:
    """
    Power iteration on A from start vector v.

    Returns (eigenvalue, unit eigenvector, iterations used). The eigenvalue
    is the Rayleigh quotient of the last multiplied iterate. Stops early if
    A @ v collapses below ``tol``, which means the remaining spectrum is
    numerically zero along v.
    """
    eigenvalue = 0.0
    for iteration in range(n_iter):
        Av = A @ v
        eigenvalue = float(v @ Av)
        norm = float(np.linalg.norm(Av))
        if norm < tol:
            return eigenvalue, v, iteration + 1
        v = Av / norm
    return eigenvalue, v, n_iter

# =============================================================================
# MAIN DECOMPOSITION FUNCTIONS
# =============================================================================

def power_iteration_spectrum(
    matrix: np.ndarray,
    n_iter: int = DEFAULT_POWER_STEPS,
    seed: int = 0,
    tol: float = DEGENERATE_NORM,
) -> Spectrum:
    """
    All eigenpairs by repeated power iteration with rank-one deflation.

    For each of the N pairs a fresh start vector is drawn, iterated up to
    ``n_iter`` times against the working matrix, and the resulting
    lambda * v v^T is subtracted from the working matrix before the next
    pair is extracted.

    Parameters
    ----------
    matrix : ndarray (N, N)
        Symmetric input. Not modified.
    n_iter : int, default=80
        Iteration budget per eigenpair.
    seed : int, default=0
        Seed of the stream that draws the start vectors.
    tol : float, default=1e-10
        Iterate norm below which a direction is treated as degenerate.

    Returns
    -------
    spectrum : Spectrum
        N pairs sorted ascending by eigenvalue.

    Raises
    ------
    InvalidParameterError
        If the matrix is not square and symmetric, or n_iter < 1.

    Notes
    -----
    Power iteration converges to the eigenvalue of largest magnitude, so
    clustered eigenvalues come out approximate and the vectors are only
    approximately orthogonal. This is good enough for signal/noise
    classification and for the cleaning reconstruction.

    Intended for positive semi-definite input such as correlation matrices.
    On an indefinite matrix with eigenvalues of near-equal magnitude and
    opposite sign (lambda and -lambda) the iterate oscillates between the
    two eigenvectors instead of converging, and the eigenvalues no longer
    sum to the trace. Use ``eigh_spectrum`` (``method="exact"``) there.
    """
    if n_iter < 1:
        raise InvalidParameterError(f"n_iter must be >= 1, got {n_iter}")

    A = _validate_symmetric(matrix)
    n = A.shape[0]
    logger.info(f"Power iteration spectrum: N={n}, {n_iter} steps per pair")

    generator = DeterministicGenerator(seed)
    values = np.empty(n)
    vectors = np.empty((n, n))
    early_exits = 0

    for k in range(n):
        v0 = _random_unit_vector(generator, n)
        eigenvalue, v, used = _dominant_pair(A, v0, n_iter, tol)
        if used < n_iter:
            early_exits += 1
        values[k] = eigenvalue
        vectors[:, k] = v
        A -= eigenvalue * np.outer(v, v)

    if early_exits:
        logger.debug(f"{early_exits} of {n} pairs stopped on a degenerate direction")

    order = np.argsort(values, kind="stable")
    spectrum = Spectrum(eigenvalues=values[order], eigenvectors=vectors[:, order])
    logger.success(
        f"Extracted {n} eigenpairs. Range: [{spectrum.eigenvalues[0]:.4f}, "
        f"{spectrum.eigenvalues[-1]:.4f}]"
    )
    return spectrum


def eigh_spectrum(matrix: np.ndarray) -> Spectrum:
    """
    All eigenpairs from the dense symmetric solver (LAPACK via scipy).

    Parameters
    ----------
    matrix : ndarray (N, N)
        Symmetric input.

    Returns
    -------
    spectrum : Spectrum
        N orthonormal pairs sorted ascending by eigenvalue.
    """
    A = _validate_symmetric(matrix)
    logger.info(f"Dense eigensolver (scipy) for N={A.shape[0]}")
    vals, vecs = scipy.linalg.eigh(A)
    return Spectrum(eigenvalues=vals, eigenvectors=vecs)


def decompose(
    matrix: np.ndarray,
    method: Union[SpectralMethod, str] = SpectralMethod.POWER,
    n_iter: int = DEFAULT_POWER_STEPS,
    seed: int = 0,
) -> Spectrum:
    """
    Dispatch to the requested decomposition.

    Parameters
    ----------
    matrix : ndarray (N, N)
        Symmetric input.
    method : SpectralMethod or str, default='power'
        'power' for deflated power iteration, 'exact' for scipy.linalg.eigh.
    n_iter : int, default=80
        Power iteration budget (ignored by 'exact').
    seed : int, default=0
        Start-vector seed (ignored by 'exact').

    Raises
    ------
    InvalidParameterError
        If the method is unknown.

    Notes
    -----
    Use 'exact' for indefinite input; power iteration assumes a positive
    semi-definite matrix such as a correlation matrix.
    """
    try:
        method = SpectralMethod(method)
    except ValueError:
        raise InvalidParameterError(
            f"Unknown method: '{method}'. Valid methods are: "
            f"{[m.value for m in SpectralMethod]}"
        )

    if method == SpectralMethod.EXACT:
        return eigh_spectrum(matrix)
    return power_iteration_spectrum(matrix, n_iter=n_iter, seed=seed)


def eigenvalues(
    matrix: np.ndarray,
    method: Union[SpectralMethod, str] = SpectralMethod.POWER,
    n_iter: int = DEFAULT_POWER_STEPS,
    seed: int = 0,
) -> np.ndarray:
    """Ascending eigenvalues only."""
    return decompose(matrix, method=method, n_iter=n_iter, seed=seed).eigenvalues
