"""
config.py - Pipeline Configuration

A single frozen dataclass carries every option the pipeline recognises.
Values are validated on construction so an invalid configuration never
reaches the numerical stages.

Example Usage:
-------------
    >>> from rmt_lab.config import PipelineConfig
    >>> config = PipelineConfig(asset_count=50, aspect_ratio=0.35)
    >>> config.n_periods
    143
    >>> PipelineConfig.from_mapping({"assetCount": 20, "aspectRatio": 0.5}).n_periods
    40
"""

from __future__ import annotations

import math
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Mapping

from loguru import logger

from .decomposition import DEFAULT_POWER_STEPS, SpectralMethod
from .errors import InvalidParameterError
from .optimization import DEFAULT_OPTIMIZER_STEPS
from .simulation import DEFAULT_LOADING_SCALE, DEFAULT_NUM_FACTORS

DEFAULT_ASSET_COUNT = 50
DEFAULT_SEED = 42
DEFAULT_ASPECT_RATIO = 0.35
DEFAULT_NUM_BINS = 25


# camelCase spellings used by the presentation layer
_ALIASES: Dict[str, str] = {
    "assetCount": "asset_count",
    "aspectRatio": "aspect_ratio",
    "powerIterationSteps": "power_iteration_steps",
    "optimizerSteps": "optimizer_steps",
    "numFactors": "num_factors",
    "loadingScale": "loading_scale",
    "numBins": "num_bins",
    "spectralMethod": "spectral_method",
}


def periods_for(asset_count: int, aspect_ratio: float) -> int:
    """T = round(N / q), rounding halves up."""
    return int(math.floor(asset_count / aspect_ratio + 0.5))


@dataclass(frozen=True)
class PipelineConfig:
    """
    Options for one pipeline invocation.

    Parameters
    ----------
    asset_count : int, default=50
        Number of assets N.
    seed : int, default=42
        Seed of the deterministic generator.
    aspect_ratio : float, default=0.35
        q = N / T, strictly inside (0, 1).
    power_iteration_steps : int, default=80
        Iteration budget K per eigenpair.
    optimizer_steps : int, default=50
        Gradient steps of the minimum-variance heuristic.
    num_factors : int, default=3
        Latent factors in the synthetic panel.
    loading_scale : float, default=0.6
        Multiplier applied to every factor loading.
    num_bins : int, default=25
        Eigenvalue histogram bins.
    spectral_method : SpectralMethod, default=POWER
        Decomposition used for classification and cleaning.

    Raises
    ------
    InvalidParameterError
        If any value is out of range.
    """
    asset_count: int = DEFAULT_ASSET_COUNT
    seed: int = DEFAULT_SEED
    aspect_ratio: float = DEFAULT_ASPECT_RATIO
    power_iteration_steps: int = DEFAULT_POWER_STEPS
    optimizer_steps: int = DEFAULT_OPTIMIZER_STEPS
    num_factors: int = DEFAULT_NUM_FACTORS
    loading_scale: float = DEFAULT_LOADING_SCALE
    num_bins: int = DEFAULT_NUM_BINS
    spectral_method: SpectralMethod = SpectralMethod.POWER

    def __post_init__(self):
        """Coerce the method enum and validate ranges."""
        if not isinstance(self.spectral_method, SpectralMethod):
            try:
                method = SpectralMethod(self.spectral_method)
            except ValueError:
                raise InvalidParameterError(
                    f"Unknown spectral method: '{self.spectral_method}'. "
                    f"Valid methods are: {[m.value for m in SpectralMethod]}"
                )
            object.__setattr__(self, "spectral_method", method)
        self.validate()

    def validate(self) -> None:
        """
        Check every option.

        Raises
        ------
        InvalidParameterError
            On the first violated constraint.
        """
        if self.asset_count < 1:
            raise InvalidParameterError(
                f"asset_count must be >= 1, got {self.asset_count}"
            )
        if not (0.0 < self.aspect_ratio < 1.0):
            raise InvalidParameterError(
                f"aspect_ratio must lie in (0, 1), got {self.aspect_ratio}"
            )
        if self.n_periods < 2:
            raise InvalidParameterError(
                f"Derived period count T={self.n_periods} is below 2 "
                f"(asset_count={self.asset_count}, aspect_ratio={self.aspect_ratio})"
            )
        if self.power_iteration_steps < 1:
            raise InvalidParameterError(
                f"power_iteration_steps must be >= 1, got {self.power_iteration_steps}"
            )
        if self.optimizer_steps < 0:
            raise InvalidParameterError(
                f"optimizer_steps must be >= 0, got {self.optimizer_steps}"
            )
        if self.num_factors < 0:
            raise InvalidParameterError(
                f"num_factors must be >= 0, got {self.num_factors}"
            )
        if self.num_bins < 1:
            raise InvalidParameterError(
                f"num_bins must be >= 1, got {self.num_bins}"
            )

    @property
    def n_periods(self) -> int:
        """Panel length T derived from N and q."""
        return periods_for(self.asset_count, self.aspect_ratio)

    def with_aspect_ratio(self, aspect_ratio: float) -> "PipelineConfig":
        """Copy of this configuration with a different q."""
        return replace(self, aspect_ratio=aspect_ratio)

    def to_dict(self) -> Dict[str, Any]:
        """Plain dictionary of snake_case options."""
        out = {f.name: getattr(self, f.name) for f in fields(self)}
        out["spectral_method"] = self.spectral_method.value
        return out

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> "PipelineConfig":
        """
        Build a configuration from snake_case or camelCase keys.

        Parameters
        ----------
        options : Mapping[str, Any]
            Any subset of the recognised options.

        Raises
        ------
        InvalidParameterError
            If a key is not recognised or a value is out of range.
        """
        known = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, value in options.items():
            name = _ALIASES.get(key, key)
            if name not in known:
                logger.error(f"Unrecognised configuration option: {key}")
                raise InvalidParameterError(f"Unknown option: '{key}'")
            kwargs[name] = value
        return cls(**kwargs)
