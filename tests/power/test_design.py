"""
Tests for StudyDesign and its building blocks.

Validates:
    - Enum coercion from strings
    - Sequence fields stored as tuples; None sweep lists preserved
    - Literal matrices converted to float64 2D arrays, non-finite rejected
    - matrix() returns copies
    - Accessors: is_matrix_mode, primary_hypothesis, covariance()
    - with_solution_type() leaves the original untouched
"""

import numpy as np
import pytest

from pyglmmpower.core.exceptions import ValidationError
from pyglmmpower.power import (
    BetweenParticipantFactor,
    Covariance,
    CovarianceType,
    Hypothesis,
    HypothesisType,
    PowerMethod,
    RepeatedMeasuresNode,
    SolutionType,
    StatisticalTest,
    StudyDesign,
    ViewType,
)


class TestBuildingBlocks:

    def test_factor_levels(self):
        factor = BetweenParticipantFactor("dose", ["low", "mid", "high"])
        assert factor.categories == ("low", "mid", "high")
        assert factor.n_levels == 3

    def test_repeated_measures_default_levels(self):
        node = RepeatedMeasuresNode("time", 4)
        assert node.levels == (1.0, 2.0, 3.0, 4.0)

    def test_repeated_measures_spacing(self):
        node = RepeatedMeasuresNode("time", 3, spacing=[0, 6, 12])
        assert node.levels == (0, 6, 12)

    def test_covariance_coerces(self):
        covariance = Covariance("time", "LEAR_CORRELATION", rho=0.4, delta=0.1,
                                standard_deviations=[1, 2])
        assert covariance.type is CovarianceType.LEAR_CORRELATION
        assert covariance.standard_deviations == (1.0, 2.0)

    def test_covariance_matrix_converted(self):
        covariance = Covariance("x", CovarianceType.UNSTRUCTURED_COVARIANCE, matrix=[[1, 0], [0, 1]])
        assert covariance.matrix.dtype == np.float64
        assert covariance.matrix.shape == (2, 2)

    def test_hypothesis_coerces(self):
        hypothesis = Hypothesis("TREND")
        assert hypothesis.type is HypothesisType.TREND
        assert hypothesis.between_mappings == ()


class TestStudyDesign:

    def test_defaults(self):
        design = StudyDesign()
        assert design.view_type is ViewType.GUIDED_MODE
        assert design.solution_type is SolutionType.POWER
        assert design.alphas is None
        assert design.primary_hypothesis is None
        assert not design.is_matrix_mode

    def test_coerces_enums_and_tuples(self):
        design = StudyDesign(
            view_type="MATRIX_MODE",
            statistical_tests=["WL", StatisticalTest.PBT],
            power_methods=["QUANTILE"],
            alphas=[0.05, 0.01],
            between_factors=[],
        )
        assert design.is_matrix_mode
        assert design.statistical_tests == (StatisticalTest.WL, StatisticalTest.PBT)
        assert design.power_methods == (PowerMethod.QUANTILE,)
        assert design.alphas == (0.05, 0.01)
        assert design.between_factors == ()

    def test_empty_sweep_list_kept(self):
        assert StudyDesign(alphas=[]).alphas == ()

    def test_unknown_enum_rejected(self):
        with pytest.raises(ValueError):
            StudyDesign(statistical_tests=["T_TEST"])

    def test_matrices_converted(self):
        design = StudyDesign(matrices={"beta": [[1, 2]], "sigmaGaussianRandom": 2})
        assert design.matrices["beta"].dtype == np.float64
        assert design.matrices["sigmaGaussianRandom"].shape == (1, 1)

    def test_non_finite_matrix_rejected(self):
        with pytest.raises(ValidationError, match="beta"):
            StudyDesign(matrices={"beta": [[np.nan]]})

    def test_matrix_returns_copy(self):
        design = StudyDesign(matrices={"beta": [[1.0]]})
        copy = design.matrix("beta")
        copy[0, 0] = 99.0
        assert design.matrix("beta")[0, 0] == 1.0

    def test_matrix_missing(self):
        assert StudyDesign().matrix("beta") is None

    def test_primary_hypothesis_is_first(self):
        first = Hypothesis(HypothesisType.MAIN_EFFECT)
        design = StudyDesign(hypotheses=[first, Hypothesis(HypothesisType.TREND)])
        assert design.primary_hypothesis is first

    def test_covariance_lookup(self):
        covariance = Covariance("time", CovarianceType.LEAR_CORRELATION, rho=0.5, delta=0.1)
        design = StudyDesign(covariances=[covariance])
        assert design.covariance("time") is covariance
        assert design.covariance("dose") is None

    def test_with_solution_type(self, two_group_design):
        changed = two_group_design.with_solution_type(SolutionType.SAMPLE_SIZE)
        assert changed.solution_type is SolutionType.SAMPLE_SIZE
        assert two_group_design.solution_type is SolutionType.POWER
        assert changed.between_factors == two_group_design.between_factors
