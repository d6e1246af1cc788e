"""
Common data types for GLMM power analysis.

Enumerations, the building blocks of a study design, the parameter bundle
handed to the power engine and the result records coming back from it.
Each type is a pure, frozen data container.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import numpy as np
from numpy.typing import NDArray

from pyglmmpower.core.validation import as_matrix


# ---------------------------------------------------------------------
# Named matrices
# ---------------------------------------------------------------------

MATRIX_DESIGN = "design"
MATRIX_BETA = "beta"
MATRIX_BETA_RANDOM = "betaRandom"
MATRIX_BETWEEN_CONTRAST = "betweenSubjectContrast"
MATRIX_BETWEEN_CONTRAST_RANDOM = "betweenSubjectContrastRandom"
MATRIX_WITHIN_CONTRAST = "withinSubjectContrast"
MATRIX_THETA_NULL = "thetaNull"
MATRIX_SIGMA_ERROR = "sigmaError"
MATRIX_SIGMA_OUTCOME = "sigmaOutcome"
MATRIX_SIGMA_GAUSSIAN = "sigmaGaussianRandom"
MATRIX_SIGMA_OUTCOME_GAUSSIAN = "sigmaOutcomeGaussianRandom"

# Covariance entry describing the correlation between response variables
RESPONSES_COVARIANCE_LABEL = "__RESPONSE_COVARIANCE__"


# ---------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------


class ViewType(str, Enum):
    MATRIX_MODE = "MATRIX_MODE"
    GUIDED_MODE = "GUIDED_MODE"


class SolutionType(str, Enum):
    POWER = "POWER"
    SAMPLE_SIZE = "SAMPLE_SIZE"
    DETECTABLE_DIFFERENCE = "DETECTABLE_DIFFERENCE"


class HypothesisType(str, Enum):
    MAIN_EFFECT = "MAIN_EFFECT"
    INTERACTION = "INTERACTION"
    TREND = "TREND"
    MANOVA = "MANOVA"


class TrendType(str, Enum):
    NONE = "NONE"
    CHANGE_FROM_BASELINE = "CHANGE_FROM_BASELINE"
    ALL_POLYNOMIAL = "ALL_POLYNOMIAL"
    LINEAR = "LINEAR"
    QUADRATIC = "QUADRATIC"
    CUBIC = "CUBIC"


class PowerMethod(str, Enum):
    CONDITIONAL = "CONDITIONAL"
    UNCONDITIONAL = "UNCONDITIONAL"
    QUANTILE = "QUANTILE"


class StatisticalTest(str, Enum):
    UNIREP = "UNIREP"          # uncorrected univariate approach
    UNIREPBOX = "UNIREPBOX"    # Box conservative
    UNIREPGG = "UNIREPGG"      # Geisser-Greenhouse
    UNIREPHF = "UNIREPHF"      # Huynh-Feldt
    WL = "WL"                  # Wilks lambda
    PBT = "PBT"                # Pillai-Bartlett trace
    HLT = "HLT"                # Hotelling-Lawley trace


class CovarianceType(str, Enum):
    LEAR_CORRELATION = "LEAR_CORRELATION"
    UNSTRUCTURED_CORRELATION = "UNSTRUCTURED_CORRELATION"
    UNSTRUCTURED_COVARIANCE = "UNSTRUCTURED_COVARIANCE"


class ConfidenceIntervalType(str, Enum):
    BETA_KNOWN_SIGMA_ESTIMATED = "BETA_KNOWN_SIGMA_ESTIMATED"
    BETA_SIGMA_ESTIMATED = "BETA_SIGMA_ESTIMATED"


# ---------------------------------------------------------------------
# Study design building blocks
# ---------------------------------------------------------------------


@dataclass(frozen=True)
class BetweenParticipantFactor:
    """A between-participant predictor and its ordered categories."""
    predictor_name: str
    categories: tuple[str, ...]

    def __post_init__(self):
        object.__setattr__(self, 'categories', tuple(self.categories))

    @property
    def n_levels(self) -> int:
        return len(self.categories)


@dataclass(frozen=True)
class RepeatedMeasuresNode:
    """
    A repeated-measures (within-participant) factor.

    spacing holds the measurement times/values used for trend contrasts
    and LEAR covariance; None means equally spaced 1..n.
    """
    dimension: str
    number_of_measurements: int
    spacing: tuple[float, ...] | None = None

    def __post_init__(self):
        if self.spacing is not None:
            object.__setattr__(self, 'spacing', tuple(self.spacing))

    @property
    def levels(self) -> tuple[float, ...]:
        if self.spacing is not None:
            return self.spacing
        return tuple(float(i) for i in range(1, self.number_of_measurements + 1))


@dataclass(frozen=True)
class ClusterNode:
    """One level of a clustered sampling scheme."""
    group_name: str
    group_size: int
    intra_cluster_correlation: float = 0.0


@dataclass(frozen=True)
class ResponseNode:
    """A response (outcome) variable."""
    name: str


@dataclass(frozen=True)
class Covariance:
    """
    Declared covariance structure, keyed by name.

    The name is the repeated-measures dimension it describes, or
    RESPONSES_COVARIANCE_LABEL for the response variables.

    Attributes:
        name: Dimension name
        type: How the remaining fields are interpreted
        rho: Base correlation (LEAR)
        delta: Decay rate (LEAR)
        standard_deviations: Per-level standard deviations (correlation types)
        matrix: Literal correlation or covariance matrix (unstructured types)
    """
    name: str
    type: CovarianceType
    rho: float | None = None
    delta: float | None = None
    standard_deviations: tuple[float, ...] | None = None
    matrix: NDArray[np.floating[Any]] | None = field(default=None, compare=False)

    def __post_init__(self):
        object.__setattr__(self, 'type', CovarianceType(self.type))
        if self.standard_deviations is not None:
            object.__setattr__(self, 'standard_deviations',
                               tuple(float(s) for s in self.standard_deviations))
        if self.matrix is not None:
            object.__setattr__(self, 'matrix', as_matrix(self.matrix, f"covariance {self.name!r}"))


@dataclass(frozen=True)
class HypothesisBetweenMapping:
    """Maps a hypothesis onto a between-participant factor."""
    factor_name: str
    trend: TrendType = TrendType.NONE


@dataclass(frozen=True)
class HypothesisRepeatedMeasuresMapping:
    """Maps a hypothesis onto a repeated-measures factor."""
    dimension: str
    trend: TrendType = TrendType.NONE


@dataclass(frozen=True)
class Hypothesis:
    """The hypothesis under test and the factors it involves."""
    type: HypothesisType
    between_mappings: tuple[HypothesisBetweenMapping, ...] = ()
    within_mappings: tuple[HypothesisRepeatedMeasuresMapping, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, 'type', HypothesisType(self.type))
        object.__setattr__(self, 'between_mappings', tuple(self.between_mappings))
        object.__setattr__(self, 'within_mappings', tuple(self.within_mappings))


@dataclass(frozen=True)
class ConfidenceIntervalDescription:
    """How beta and sigma were obtained, for power confidence intervals."""
    beta_fixed: bool
    sigma_fixed: bool
    lower_tail_probability: float
    upper_tail_probability: float
    sample_size: int
    rank_of_design_matrix: int


# ---------------------------------------------------------------------
# Parameter bundle
# ---------------------------------------------------------------------


@dataclass(frozen=True)
class FixedRandomMatrix:
    """
    A fixed-effects matrix with an optional random-effects part.

    For beta the random part holds the Gaussian covariate's rows and is
    stacked below the fixed part (combine_horizontal=False). For the
    between contrast it holds the covariate's column and sits to the
    right of the fixed part (combine_horizontal=True).
    """
    fixed: NDArray[np.floating[Any]] | None
    random: NDArray[np.floating[Any]] | None = None
    combine_horizontal: bool = True

    @property
    def combined(self) -> NDArray[np.floating[Any]] | None:
        """Fixed and random parts joined."""
        if self.fixed is None:
            return self.random
        if self.random is None:
            return self.fixed
        if self.combine_horizontal:
            return np.hstack([self.fixed, self.random])
        return np.vstack([self.fixed, self.random])


@dataclass(frozen=True)
class ParameterBundle:
    """
    Numeric inputs for the GLMM power engine, assembled from one design.

    Either sigma_error is set (fixed predictors only) or the three
    sigma_outcome* / sigma_gaussian_random matrices are (Gaussian covariate).
    """
    solution_type: SolutionType
    tests: tuple[StatisticalTest, ...]
    alphas: tuple[float, ...]
    nominal_powers: tuple[float, ...]
    sample_sizes: tuple[int, ...]
    beta_scales: tuple[float, ...]
    sigma_scales: tuple[float, ...]
    power_methods: tuple[PowerMethod, ...]
    quantiles: tuple[float, ...]

    design_essence: NDArray[np.floating[Any]] | None
    beta: FixedRandomMatrix
    between_contrast: FixedRandomMatrix | None
    within_contrast: NDArray[np.floating[Any]] | None
    theta_null: NDArray[np.floating[Any]] | None

    sigma_error: NDArray[np.floating[Any]] | None = None
    sigma_outcome: NDArray[np.floating[Any]] | None = None
    sigma_gaussian_random: NDArray[np.floating[Any]] | None = None
    sigma_outcome_gaussian_random: NDArray[np.floating[Any]] | None = None

    confidence_interval_type: ConfidenceIntervalType | None = None
    alpha_lower_confidence_limit: float | None = None
    alpha_upper_confidence_limit: float | None = None
    sample_size_for_estimates: int | None = None
    design_matrix_rank_for_estimates: int | None = None

    @property
    def has_gaussian_covariate(self) -> bool:
        return self.sigma_gaussian_random is not None


# ---------------------------------------------------------------------
# Engine-native results
# ---------------------------------------------------------------------


@dataclass(frozen=True)
class EngineConfidenceInterval:
    lower_limit: float
    upper_limit: float
    alpha_lower: float
    alpha_upper: float


@dataclass(frozen=True)
class EngineResult:
    """
    One point of the sweep as reported by the engine.

    quantile is NaN when it does not apply (non-quantile power methods).
    """
    test: StatisticalTest
    alpha: float
    nominal_power: float
    actual_power: float
    total_sample_size: int
    beta_scale: float
    sigma_scale: float
    power_method: PowerMethod
    quantile: float = math.nan
    confidence_interval: EngineConfidenceInterval | None = None
    error_message: str | None = None


# ---------------------------------------------------------------------
# Caller-facing results
# ---------------------------------------------------------------------


@dataclass(frozen=True)
class ConfidenceInterval:
    lower_limit: float
    upper_limit: float
    lower_tail_probability: float
    upper_tail_probability: float


@dataclass(frozen=True)
class PowerResult:
    """One point of the power / sample size / detectable difference sweep."""
    test: StatisticalTest
    alpha: float
    nominal_power: float
    actual_power: float
    total_sample_size: int
    beta_scale: float
    sigma_scale: float
    power_method: PowerMethod
    quantile: float | None = None
    confidence_interval: ConfidenceInterval | None = None
    error_message: str | None = None


@dataclass(frozen=True)
class PowerSweepParams:
    """Payload for PowerSolution."""
    solution_type: SolutionType
    results: tuple[PowerResult, ...]
