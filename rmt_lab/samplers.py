"""
samplers.py - Deterministic Random Streams and Gaussian Sampling

This module provides the only sources of randomness in rmt_lab:
- DeterministicGenerator: Seeded 32-bit uniform stream (mulberry32)
- GaussianSampler: Standard-normal draws via the Marsaglia polar method

Design Principles:
-----------------
1. Platform independence: the generator uses explicit 32-bit integer
   arithmetic, so a seed yields the same stream everywhere
2. Dependency Injection: samplers take their generator explicitly
3. Sampler convention: samplers are callables ``sampler(size) -> ndarray``

Example Usage:
-------------
    >>> from rmt_lab.samplers import DeterministicGenerator, GaussianSampler
    >>>
    >>> gen = DeterministicGenerator(seed=42)
    >>> gen.next_float()
    0.6011037519201636
    >>>
    >>> sampler = GaussianSampler(DeterministicGenerator(seed=42))
    >>> draws = sampler((3, 4))  # (3, 4) array filled row by row
"""

from __future__ import annotations

import math
import numpy as np
from typing import Iterator, Optional, Protocol, Tuple, Union

from loguru import logger

from .errors import InvalidParameterError, SamplingError


_MASK32 = 0xFFFFFFFF
_GOLDEN_INCREMENT = 0x6D2B79F5
_TWO_POW_32 = 4294967296.0


class UniformSource(Protocol):
    """Anything that yields floats in [0, 1) one at a time."""

    def next_float(self) -> float:
        ...


def _imul(a: int, b: int) -> int:
    """32-bit wrapping multiplication."""
    return (a * b) & _MASK32


# =============================================================================
# DETERMINISTIC GENERATOR
# =============================================================================

class DeterministicGenerator:
    """
    Seeded uniform generator with a single 32-bit state word.

    Each draw advances the state by a fixed odd increment and mixes it with
    two multiply-xorshift rounds (the mulberry32 recurrence). The output is
    the mixed word divided by 2^32, so values lie in [0, 1).

    Parameters
    ----------
    seed : int
        Any integer. Reduced modulo 2^32.

    Examples
    --------
    >>> gen = DeterministicGenerator(7)
    >>> first = [gen.next_float() for _ in range(3)]
    >>> gen.reseed(7)
    >>> first == [gen.next_float() for _ in range(3)]
    True

    Notes
    -----
    Not thread-safe. One generator should feed one pipeline invocation.
    """

    def __init__(self, seed: int = 0):
        self._seed = int(seed) & _MASK32
        self._state = self._seed

    @property
    def seed(self) -> int:
        """The (reduced) seed this stream started from."""
        return self._seed

    @property
    def state(self) -> int:
        """Current 32-bit state word."""
        return self._state

    def reseed(self, seed: Optional[int] = None) -> None:
        """Restart the stream, from ``seed`` or from the original seed."""
        if seed is not None:
            self._seed = int(seed) & _MASK32
        self._state = self._seed

    def next_uint32(self) -> int:
        """Advance the stream and return the raw 32-bit output."""
        self._state = (self._state + _GOLDEN_INCREMENT) & _MASK32
        t = self._state
        t = _imul(t ^ (t >> 15), t | 1)
        t ^= (t + _imul(t ^ (t >> 7), t | 61)) & _MASK32
        return (t ^ (t >> 14)) & _MASK32

    def next_float(self) -> float:
        """Next value in [0, 1)."""
        return self.next_uint32() / _TWO_POW_32

    def uniform(self, size: Union[int, Tuple[int, ...]]) -> np.ndarray:
        """
        Draw an array of uniforms, filled in C (row-major) order.

        Parameters
        ----------
        size : int or tuple of int
            Output shape.
        """
        shape = (size,) if isinstance(size, int) else tuple(size)
        count = int(np.prod(shape)) if shape else 1
        values = np.fromiter(
            (self.next_float() for _ in range(count)),
            dtype=float,
            count=count,
        )
        return values.reshape(shape)

    def __iter__(self) -> Iterator[float]:
        while True:
            yield self.next_float()

    def __repr__(self) -> str:
        return f"DeterministicGenerator(seed={self._seed}, state={self._state})"


# =============================================================================
# GAUSSIAN SAMPLER
# =============================================================================

class GaussianSampler:
    """
    Standard-normal sampler built on a uniform source.

    Each variate is produced by the Marsaglia polar method: draw u, v
    uniformly on [-1, 1), reject while s = u^2 + v^2 >= 1 or s == 0, then
    return u * sqrt(-2 ln(s) / s). Only ``u`` is used, so every accepted
    variate consumes exactly two uniforms per attempt.

    Parameters
    ----------
    generator : UniformSource
        Source of uniforms, typically a DeterministicGenerator.
    max_attempts : int, default=1000
        Rejection budget per variate. About 21% of attempts are rejected,
        so the budget is only reached by a degenerate source.

    Raises
    ------
    InvalidParameterError
        If max_attempts < 1.
    SamplingError
        If a variate cannot be produced within ``max_attempts``.

    Examples
    --------
    >>> sampler = GaussianSampler(DeterministicGenerator(42))
    >>> z = sampler(1000)
    >>> z.shape
    (1000,)
    """

    def __init__(self, generator: UniformSource, max_attempts: int = 1000):
        if max_attempts < 1:
            raise InvalidParameterError(f"max_attempts must be >= 1, got {max_attempts}")
        self.generator = generator
        self.max_attempts = max_attempts

    def sample(self) -> float:
        """Draw a single standard-normal variate."""
        for _ in range(self.max_attempts):
            u = 2.0 * self.generator.next_float() - 1.0
            v = 2.0 * self.generator.next_float() - 1.0
            s = u * u + v * v
            if 0.0 < s < 1.0:
                return u * math.sqrt(-2.0 * math.log(s) / s)
        logger.error(f"Polar sampler rejected {self.max_attempts} consecutive pairs")
        raise SamplingError(
            f"No point inside the unit disk after {self.max_attempts} attempts; "
            "the uniform source looks degenerate"
        )

    def __call__(self, size: Union[int, Tuple[int, ...]]) -> np.ndarray:
        """
        Draw an array of variates, filled in C (row-major) order.

        Parameters
        ----------
        size : int or tuple of int
            Output shape.
        """
        shape = (size,) if isinstance(size, int) else tuple(size)
        count = int(np.prod(shape)) if shape else 1
        values = np.fromiter(
            (self.sample() for _ in range(count)),
            dtype=float,
            count=count,
        )
        return values.reshape(shape)
