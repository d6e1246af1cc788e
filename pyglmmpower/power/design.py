"""
StudyDesign: declarative description of a GLMM power study.

A StudyDesign is consumed read-only for the duration of one request.
Literal matrices are converted to float64 2D arrays at construction so
every downstream builder works on validated numeric data. Structural
rules (duplicate names, size limits) are checked by the design validator,
not here.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any

import numpy as np
from numpy.typing import NDArray

from pyglmmpower.core.validation import as_matrix, check_finite
from pyglmmpower.power._common import (
    BetweenParticipantFactor,
    ClusterNode,
    ConfidenceIntervalDescription,
    Covariance,
    Hypothesis,
    PowerMethod,
    RepeatedMeasuresNode,
    ResponseNode,
    SolutionType,
    StatisticalTest,
    ViewType,
)


def _optional_tuple(values, convert=None):
    if values is None:
        return None
    if convert is None:
        return tuple(values)
    return tuple(convert(v) for v in values)


@dataclass(frozen=True)
class StudyDesign:
    """
    Immutable study design.

    Sweep lists (tests, alphas, ...) may be None to mean "not declared";
    an empty tuple is accepted as well and treated the same way by the
    size limits.

    Attributes:
        view_type: MATRIX_MODE (literal matrices) or GUIDED_MODE
        solution_type: What the engine solves for
        gaussian_covariate: True if the design has a Gaussian covariate
        between_factors: Between-participant factors, in order
        repeated_measures: Repeated-measures factors, in order
        clusters: Cluster levels, outermost first
        responses: Response variables
        covariances: Declared covariance structures
        relative_group_sizes: One entry per between-participant group, or None
        hypotheses: Hypotheses; only the first (primary) one is used
        matrices: Literal named matrices (see MATRIX_* constants)
        confidence_interval: Confidence interval description, or None
    """
    view_type: ViewType = ViewType.GUIDED_MODE
    solution_type: SolutionType = SolutionType.POWER
    gaussian_covariate: bool = False

    between_factors: tuple[BetweenParticipantFactor, ...] = ()
    repeated_measures: tuple[RepeatedMeasuresNode, ...] = ()
    clusters: tuple[ClusterNode, ...] = ()
    responses: tuple[ResponseNode, ...] = ()
    covariances: tuple[Covariance, ...] = ()
    relative_group_sizes: tuple[int, ...] | None = None
    hypotheses: tuple[Hypothesis, ...] = ()
    matrices: Mapping[str, NDArray[np.floating[Any]]] = field(default_factory=dict, compare=False)

    statistical_tests: tuple[StatisticalTest, ...] | None = None
    alphas: tuple[float, ...] | None = None
    nominal_powers: tuple[float, ...] | None = None
    sample_sizes: tuple[int, ...] | None = None
    beta_scales: tuple[float, ...] | None = None
    sigma_scales: tuple[float, ...] | None = None
    power_methods: tuple[PowerMethod, ...] | None = None
    quantiles: tuple[float, ...] | None = None

    confidence_interval: ConfidenceIntervalDescription | None = None

    def __post_init__(self):
        set_ = object.__setattr__
        set_(self, 'view_type', ViewType(self.view_type))
        set_(self, 'solution_type', SolutionType(self.solution_type))
        set_(self, 'between_factors', tuple(self.between_factors))
        set_(self, 'repeated_measures', tuple(self.repeated_measures))
        set_(self, 'clusters', tuple(self.clusters))
        set_(self, 'responses', tuple(self.responses))
        set_(self, 'covariances', tuple(self.covariances))
        set_(self, 'hypotheses', tuple(self.hypotheses))
        set_(self, 'relative_group_sizes', _optional_tuple(self.relative_group_sizes))

        set_(self, 'statistical_tests', _optional_tuple(self.statistical_tests, StatisticalTest))
        set_(self, 'alphas', _optional_tuple(self.alphas, float))
        set_(self, 'nominal_powers', _optional_tuple(self.nominal_powers, float))
        set_(self, 'sample_sizes', _optional_tuple(self.sample_sizes))
        set_(self, 'beta_scales', _optional_tuple(self.beta_scales, float))
        set_(self, 'sigma_scales', _optional_tuple(self.sigma_scales, float))
        set_(self, 'power_methods', _optional_tuple(self.power_methods, PowerMethod))
        set_(self, 'quantiles', _optional_tuple(self.quantiles, float))

        converted: dict[str, NDArray[np.floating[Any]]] = {}
        for name, data in dict(self.matrices).items():
            matrix = as_matrix(data, name)
            check_finite(matrix, name)
            converted[name] = matrix
        set_(self, 'matrices', converted)

    # --- Accessors ---

    @property
    def is_matrix_mode(self) -> bool:
        return self.view_type == ViewType.MATRIX_MODE

    @property
    def primary_hypothesis(self) -> Hypothesis | None:
        """The hypothesis under test; later hypotheses are ignored."""
        return self.hypotheses[0] if self.hypotheses else None

    def matrix(self, name: str) -> NDArray[np.floating[Any]] | None:
        """Copy of the literal matrix with this name, or None."""
        matrix = self.matrices.get(name)
        return None if matrix is None else matrix.copy()

    def covariance(self, name: str) -> Covariance | None:
        """Declared covariance with this name, or None."""
        for covariance in self.covariances:
            if covariance.name == name:
                return covariance
        return None

    def with_solution_type(self, solution_type: SolutionType) -> 'StudyDesign':
        """Copy of this design solving for a different quantity."""
        return replace(self, solution_type=solution_type)
