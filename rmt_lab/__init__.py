"""
rmt_lab - Random-Matrix Noise Filtering for Correlation Matrices and Portfolios
"""

__version__ = "1.0.0"

# =============================================================================
# ERRORS
# =============================================================================
from .errors import (
    RMTLabError,
    InvalidParameterError,
    DegenerateInputError,
    SamplingError,
    NumericInstabilityWarning,
)

# =============================================================================
# CORE TYPES
# =============================================================================
from .types import (
    EigenPair,
    Spectrum,
    MPThresholds,
    CleaningResult,
    SyntheticPanel,
    OptimizationResult,
    HistogramBin,
    PipelineResult,
    SamplerCallable,
)

# =============================================================================
# SAMPLERS
# =============================================================================
from .samplers import (
    DeterministicGenerator,
    GaussianSampler,
)

# =============================================================================
# SIMULATION
# =============================================================================
from .simulation import (
    PanelSimulator,
    generate_panel,
)

# =============================================================================
# ESTIMATION
# =============================================================================
from .estimation import (
    correlation_matrix,
    covariance_to_correlation,
)

# =============================================================================
# DECOMPOSITION
# =============================================================================
from .decomposition import (
    SpectralMethod,
    power_iteration_spectrum,
    eigh_spectrum,
    decompose,
    eigenvalues,
)

# =============================================================================
# MARCHENKO-PASTUR
# =============================================================================
from .marchenko_pastur import (
    mp_thresholds,
    mp_density,
    classify_eigenvalues,
    count_signal,
)

# =============================================================================
# CLEANING
# =============================================================================
from .cleaning import clean_correlation

# =============================================================================
# OPTIMIZATION
# =============================================================================
from .optimization import (
    minimum_variance_weights,
    analytic_minimum_variance,
    MinimumVarianceOptimizer,
    exact_minimum_variance,
)

# =============================================================================
# RISK
# =============================================================================
from .risk import (
    portfolio_variance,
    portfolio_volatility,
    herfindahl_index,
    effective_positions,
)

# =============================================================================
# CONFIGURATION & PIPELINE
# =============================================================================
from .config import PipelineConfig
from .pipeline import (
    run_pipeline,
    sweep_aspect_ratios,
    eigenvalue_histogram,
)

# =============================================================================
# PUBLIC API
# =============================================================================
__all__ = [
    "__version__",
    "RMTLabError",
    "InvalidParameterError",
    "DegenerateInputError",
    "SamplingError",
    "NumericInstabilityWarning",
    "EigenPair",
    "Spectrum",
    "MPThresholds",
    "CleaningResult",
    "SyntheticPanel",
    "OptimizationResult",
    "HistogramBin",
    "PipelineResult",
    "SamplerCallable",
    "DeterministicGenerator",
    "GaussianSampler",
    "PanelSimulator",
    "generate_panel",
    "correlation_matrix",
    "covariance_to_correlation",
    "SpectralMethod",
    "power_iteration_spectrum",
    "eigh_spectrum",
    "decompose",
    "eigenvalues",
    "mp_thresholds",
    "mp_density",
    "classify_eigenvalues",
    "count_signal",
    "clean_correlation",
    "minimum_variance_weights",
    "analytic_minimum_variance",
    "MinimumVarianceOptimizer",
    "exact_minimum_variance",
    "portfolio_variance",
    "portfolio_volatility",
    "herfindahl_index",
    "effective_positions",
    "PipelineConfig",
    "run_pipeline",
    "sweep_aspect_ratios",
    "eigenvalue_histogram",
]
