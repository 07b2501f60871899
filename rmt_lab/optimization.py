"""
optimization.py - Minimum-Variance Portfolio Weights

This module provides three ways to minimise w.T @ C @ w subject to
sum(w) = 1:
- minimum_variance_weights: Fixed-budget projected gradient heuristic.
  This is what the pipeline uses; it shows how a standard iterative
  optimizer behaves on noisy versus cleaned matrices.
- analytic_minimum_variance: Closed form C^-1 1 / (1' C^-1 1).
- MinimumVarianceOptimizer: Exact convex solve with CVXPY, optionally
  long-only or box-constrained.

Mathematical Background:
-----------------------
With the Lagrangian L = w'Cw - mu (1'w - 1), the gradient projected onto
the budget constraint is 2Cw - 2(w'Cw) 1, since mu = 2 w'Cw at any point
with 1'w = 1 and C w proportional to 1. The heuristic steps along it with
a decaying learning rate lr_i = lr / (1 + decay * i) and renormalises the
weights to sum to one after every step.

Example Usage:
-------------
    >>> from rmt_lab.optimization import minimum_variance_weights
    >>> w = minimum_variance_weights(C)
    >>> float(w.sum())
    1.0
    >>>
    >>> from rmt_lab.optimization import MinimumVarianceOptimizer
    >>> result = MinimumVarianceOptimizer(C, long_only=True).solve()
    >>> print(f"Risk: {result.risk:.4f}")
"""

from __future__ import annotations

import numpy as np
import cvxpy as cp
import scipy.linalg
from typing import List, Optional

from loguru import logger

from .errors import DegenerateInputError, InvalidParameterError
from .types import OptimizationResult


DEFAULT_OPTIMIZER_STEPS = 50
DEFAULT_LEARNING_RATE = 0.3
DEFAULT_DECAY = 0.1

# Renormalisation fails if the weight sum falls below this in magnitude
COLLAPSED_SUM = 1e-12


def _validate_square(matrix: np.ndarray) -> np.ndarray:
    C = np.asarray(matrix, dtype=float)
    if C.ndim != 2 or C.shape[0] != C.shape[1] or C.shape[0] == 0:
        raise InvalidParameterError(f"Matrix must be square and non-empty, got shape {C.shape}")
    return C


# =============================================================================
# GRADIENT HEURISTIC
# =============================================================================

def minimum_variance_weights(
    matrix: np.ndarray,
    n_steps: int = DEFAULT_OPTIMIZER_STEPS,
    learning_rate: float = DEFAULT_LEARNING_RATE,
    decay: float = DEFAULT_DECAY,
) -> np.ndarray:
    """
    Minimum-variance weights by projected gradient descent.

    Parameters
    ----------
    matrix : np.ndarray
        Symmetric (N, N) covariance or correlation matrix.
    n_steps : int, default=50
        Number of gradient steps. Zero returns the uniform portfolio.
    learning_rate : float, default=0.3
        Initial step size.
    decay : float, default=0.1
        Step i uses learning_rate / (1 + decay * i).

    Returns
    -------
    np.ndarray
        Weights with shape (N,) summing to 1. Not necessarily non-negative.

    Raises
    ------
    InvalidParameterError
        If the matrix is not square or n_steps < 0.
    DegenerateInputError
        If the weight sum collapses to zero so the budget cannot be
        restored.

    Notes
    -----
    Deterministic for a given matrix. Close to the analytic solution for
    well-conditioned matrices; on ill-conditioned ones the fixed budget
    stops short of it.
    """
    C = _validate_square(matrix)
    if n_steps < 0:
        raise InvalidParameterError(f"n_steps must be >= 0, got {n_steps}")

    n = C.shape[0]
    w = np.full(n, 1.0 / n)
    logger.debug(f"Gradient min-variance: N={n}, {n_steps} steps, lr={learning_rate}")

    for step in range(n_steps):
        Cw = C @ w
        variance = float(w @ Cw)
        lr = learning_rate / (1.0 + decay * step)
        w = w - lr * (2.0 * Cw - 2.0 * variance)

        total = float(w.sum())
        if abs(total) < COLLAPSED_SUM or not np.isfinite(total):
            logger.error(f"Weight sum collapsed to {total:.3e} at step {step}")
            raise DegenerateInputError(
                f"Weight sum collapsed to {total:.3e} at step {step} "
                f"for {n}x{n} matrix; cannot renormalise"
            )
        w = w / total

    return w


# =============================================================================
# CLOSED FORM
# =============================================================================

def analytic_minimum_variance(matrix: np.ndarray) -> np.ndarray:
    """
    Closed-form minimum-variance weights C^-1 1 / (1' C^-1 1).

    Parameters
    ----------
    matrix : np.ndarray
        Symmetric positive-definite (N, N) matrix.

    Returns
    -------
    np.ndarray
        Weights with shape (N,) summing to 1.

    Raises
    ------
    DegenerateInputError
        If the matrix is singular.
    """
    C = _validate_square(matrix)
    ones = np.ones(C.shape[0])
    try:
        x = scipy.linalg.solve(C, ones, assume_a="sym")
    except scipy.linalg.LinAlgError as exc:
        raise DegenerateInputError(
            f"{C.shape[0]}x{C.shape[0]} matrix is singular: {exc}"
        ) from exc
    denom = float(ones @ x)
    if abs(denom) < COLLAPSED_SUM:
        raise DegenerateInputError("1' C^-1 1 is zero; no minimum-variance solution")
    return x / denom


# =============================================================================
# EXACT CONVEX SOLVE
# =============================================================================

class MinimumVarianceOptimizer:
    """
    Exact minimum-variance solve through CVXPY.

    The objective 0.5 * w'Cw is written as 0.5 * ||R w||^2 with
    R = diag(sqrt(lambda)) V' from the eigen-decomposition of C, negative
    eigenvalues clipped to zero, so the problem is a valid SOCP even when
    C is only approximately positive semi-definite.

    Parameters
    ----------
    matrix : np.ndarray
        Symmetric (N, N) matrix.
    long_only : bool, default=False
        Restrict weights to be non-negative.
    max_weight : float, optional
        Upper bound on every weight.
    solver : str, optional
        CVXPY solver name. If None, CVXPY auto-selects.
    verbose : bool, default=False
        Print solver output.

    Examples
    --------
    >>> optimizer = MinimumVarianceOptimizer(C)
    >>> result = optimizer.solve()
    >>> if result.solved:
    ...     print(result.weights.sum())
    """

    def __init__(
        self,
        matrix: np.ndarray,
        long_only: bool = False,
        max_weight: Optional[float] = None,
        solver: Optional[str] = None,
        verbose: bool = False,
    ):
        C = _validate_square(matrix)
        self.matrix = C
        self.solver = solver
        self.verbose = verbose
        n = C.shape[0]

        vals, vecs = scipy.linalg.eigh(0.5 * (C + C.T))
        self._root = np.sqrt(np.clip(vals, 0.0, None))[:, None] * vecs.T

        self._w = cp.Variable(n, name="weights")
        self._constraints: List[cp.Constraint] = [cp.sum(self._w) == 1]
        if long_only:
            self._constraints.append(self._w >= 0)
        if max_weight is not None:
            self._constraints.append(self._w <= max_weight)
        self._problem: Optional[cp.Problem] = None
        logger.debug(f"Initialized MinimumVarianceOptimizer for N={n} assets.")

    @property
    def problem(self) -> Optional[cp.Problem]:
        """The CVXPY problem (available after solve())."""
        return self._problem

    def add_equality(self, A: np.ndarray, b: np.ndarray) -> None:
        """Add A @ w == b."""
        self._constraints.append(A @ self._w == b)

    def add_inequality(self, A: np.ndarray, b: np.ndarray) -> None:
        """Add A @ w <= b."""
        self._constraints.append(A @ self._w <= b)

    def solve(self) -> OptimizationResult:
        """
        Solve the problem.

        Returns
        -------
        OptimizationResult
            Weights, risk sqrt(w'Cw), objective and solver metadata.
        """
        logger.info(f"Solving min-variance QP with {len(self._constraints)} constraints...")
        objective = cp.Minimize(0.5 * cp.sum_squares(self._root @ self._w))
        self._problem = cp.Problem(objective, self._constraints)

        try:
            if self.solver:
                self._problem.solve(solver=self.solver, verbose=self.verbose)
            else:
                self._problem.solve(verbose=self.verbose)
        except cp.SolverError as e:
            logger.exception("Solver crashed!")
            return OptimizationResult(
                weights=None,
                risk=0.0,
                objective=0.0,
                solved=False,
                metadata={"status": "solver_error", "error": str(e)},
            )

        is_optimal = self._problem.status == cp.OPTIMAL
        if is_optimal:
            logger.success("Optimization Solved.")
            weights = np.asarray(self._w.value, dtype=float)
            obj_value = float(self._problem.value)
            risk = float(np.sqrt(max(0.0, 2.0 * obj_value)))
        else:
            logger.warning(f"Optimization finished with status: {self._problem.status}")
            weights = None
            obj_value = float(self._problem.value) if self._problem.value is not None else 0.0
            risk = 0.0

        stats = self._problem.solver_stats
        return OptimizationResult(
            weights=weights,
            risk=risk,
            objective=obj_value,
            solved=is_optimal,
            metadata={
                "status": self._problem.status,
                "solver": stats.solver_name if stats else None,
                "solve_time": stats.solve_time if stats else None,
                "iterations": stats.num_iters if stats else None,
            },
        )


def exact_minimum_variance(
    matrix: np.ndarray,
    long_only: bool = False,
    max_weight: Optional[float] = None,
    solver: Optional[str] = None,
) -> OptimizationResult:
    """
    Convenience wrapper around MinimumVarianceOptimizer.

    Examples
    --------
    >>> result = exact_minimum_variance(C, long_only=True)
    >>> result.solved
    True
    """
    optimizer = MinimumVarianceOptimizer(
        matrix, long_only=long_only, max_weight=max_weight, solver=solver
    )
    return optimizer.solve()
