"""
GLMM power analysis.

Public API:
    power(design, engine, ...) -> PowerSolution
    sample_size(design, engine, ...) -> PowerSolution
    detectable_difference(design, engine, ...) -> PowerSolution
    matrices(design) -> dict[str, ndarray]        # preview, no engine
    build_parameters(design) -> ParameterBundle   # validated engine inputs
    ComputationOrchestrator                        # deadline-bounded engine runs
"""

from pyglmmpower.power.solvers import (
    power,
    sample_size,
    detectable_difference,
    matrices,
)
from pyglmmpower.power.solution import PowerSolution
from pyglmmpower.power.design import StudyDesign
from pyglmmpower.power._params import build_parameters, named_matrices
from pyglmmpower.power._translate import translate
from pyglmmpower.power._validate import validate, count_cases, count_groups
from pyglmmpower.power.orchestrator import (
    ComputationOrchestrator,
    ComputationHandle,
    ComputationState,
    FunctionEngine,
)
from pyglmmpower.power._common import (
    BetweenParticipantFactor,
    ClusterNode,
    ConfidenceInterval,
    ConfidenceIntervalDescription,
    ConfidenceIntervalType,
    Covariance,
    CovarianceType,
    EngineConfidenceInterval,
    EngineResult,
    FixedRandomMatrix,
    Hypothesis,
    HypothesisBetweenMapping,
    HypothesisRepeatedMeasuresMapping,
    HypothesisType,
    ParameterBundle,
    PowerMethod,
    PowerResult,
    PowerSweepParams,
    RepeatedMeasuresNode,
    ResponseNode,
    SolutionType,
    StatisticalTest,
    TrendType,
    ViewType,
    RESPONSES_COVARIANCE_LABEL,
)

__all__ = [
    "power",
    "sample_size",
    "detectable_difference",
    "matrices",
    "PowerSolution",
    "StudyDesign",
    "build_parameters",
    "named_matrices",
    "translate",
    "validate",
    "count_cases",
    "count_groups",
    "ComputationOrchestrator",
    "ComputationHandle",
    "ComputationState",
    "FunctionEngine",
    "BetweenParticipantFactor",
    "ClusterNode",
    "ConfidenceInterval",
    "ConfidenceIntervalDescription",
    "ConfidenceIntervalType",
    "Covariance",
    "CovarianceType",
    "EngineConfidenceInterval",
    "EngineResult",
    "FixedRandomMatrix",
    "Hypothesis",
    "HypothesisBetweenMapping",
    "HypothesisRepeatedMeasuresMapping",
    "HypothesisType",
    "ParameterBundle",
    "PowerMethod",
    "PowerResult",
    "PowerSweepParams",
    "RepeatedMeasuresNode",
    "ResponseNode",
    "SolutionType",
    "StatisticalTest",
    "TrendType",
    "ViewType",
    "RESPONSES_COVARIANCE_LABEL",
]
