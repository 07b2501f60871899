"""
errors.py - Exception and Warning Types for RMT Lab

All exceptions derive from RMTLabError and from the builtin type a caller
would naturally catch (ValueError for bad input, RuntimeError for sampling
failures), so ``except ValueError`` keeps working for generic callers.
"""

from __future__ import annotations

from typing import Optional


class RMTLabError(Exception):
    """Base class for all rmt_lab errors."""


class InvalidParameterError(RMTLabError, ValueError):
    """
    A parameter or input shape was rejected before any computation started.

    Raised for non-positive asset counts, aspect ratios outside (0, 1),
    panels with fewer than two periods, and non-square matrices.
    """


class DegenerateInputError(RMTLabError, ValueError):
    """
    The input is well-formed but numerically degenerate.

    Parameters
    ----------
    message : str
        Human-readable description.
    asset_index : int, optional
        Column of the offending asset, when one asset is to blame.
    """

    def __init__(self, message: str, asset_index: Optional[int] = None):
        super().__init__(message)
        self.asset_index = asset_index


class SamplingError(RMTLabError, RuntimeError):
    """The Gaussian sampler exhausted its rejection budget."""


class NumericInstabilityWarning(RuntimeWarning):
    """A quadratic form came out negative and was clamped to zero."""
