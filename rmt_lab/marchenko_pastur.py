"""
marchenko_pastur.py - Random-Matrix Noise Band and Signal Classification

For a correlation matrix estimated from T observations of N uncorrelated
unit-variance series, the eigenvalue density converges (N, T -> inf with
q = N / T fixed, q <= 1) to the Marchenko-Pastur law

    rho(x) = sqrt((lambda_+ - x)(x - lambda_-)) / (2 pi q x),
    lambda_+- = (1 +- sqrt(q))^2,

supported on [lambda_-, lambda_+]. Eigenvalues strictly above lambda_+
cannot be explained by sampling noise and are classified as signal.

Example Usage:
-------------
    >>> from rmt_lab.marchenko_pastur import mp_thresholds, classify_eigenvalues
    >>> mp_thresholds(0.35).lambda_plus
    2.533...
    >>> classify_eigenvalues([0.4, 1.2, 9.0], q=0.35)
    array([False, False,  True])
"""

from __future__ import annotations

import math
import numpy as np
from typing import Union

from loguru import logger

from .errors import InvalidParameterError
from .types import MPThresholds


ArrayLike = Union[float, np.ndarray]


def _check_ratio(q: float) -> float:
    q = float(q)
    if not (0.0 < q <= 1.0):
        logger.error(f"Aspect ratio outside (0, 1]: {q}")
        raise InvalidParameterError(f"Aspect ratio q must lie in (0, 1], got {q}")
    return q


def mp_thresholds(q: float) -> MPThresholds:
    """
    Edges of the Marchenko-Pastur support.

    Parameters
    ----------
    q : float
        Aspect ratio N / T in (0, 1].

    Returns
    -------
    MPThresholds
        (lambda_minus, lambda_plus). Both collapse to 1 as q -> 0;
        lambda_minus reaches 0 at q = 1.
    """
    q = _check_ratio(q)
    root = math.sqrt(q)
    return MPThresholds(
        lambda_minus=(1.0 - root) ** 2,
        lambda_plus=(1.0 + root) ** 2,
    )


def mp_density(x: ArrayLike, q: float) -> ArrayLike:
    """
    Marchenko-Pastur density at ``x``.

    Parameters
    ----------
    x : float or ndarray
        Evaluation point(s).
    q : float
        Aspect ratio in (0, 1].

    Returns
    -------
    float or ndarray
        Zero outside [lambda_minus, lambda_plus]; the MP density inside.
        Returns a float for scalar input.
    """
    bounds = mp_thresholds(q)
    lm, lp = bounds.lambda_minus, bounds.lambda_plus

    x_arr = np.asarray(x, dtype=float)
    inside = (x_arr >= lm) & (x_arr <= lp) & (x_arr > 0)
    out = np.zeros_like(x_arr)
    xi = x_arr[inside]
    out[inside] = np.sqrt(np.maximum((lp - xi) * (xi - lm), 0.0)) / (2.0 * np.pi * q * xi)

    if np.ndim(x) == 0:
        return float(out)
    return out


def classify_eigenvalues(eigenvalues: np.ndarray, q: float) -> np.ndarray:
    """
    Boolean signal mask: True where an eigenvalue exceeds lambda_plus.

    Values below lambda_minus are not special-cased; they count as noise.
    """
    lp = mp_thresholds(q).lambda_plus
    return np.asarray(eigenvalues, dtype=float) > lp


def count_signal(eigenvalues: np.ndarray, q: float) -> int:
    """Number of eigenvalues strictly above lambda_plus."""
    return int(np.count_nonzero(classify_eigenvalues(eigenvalues, q)))
