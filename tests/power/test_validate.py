"""
Tests for structural design validation and size limits.

Validates:
    - Duplicate repeated-measures dimensions and covariance names rejected
      before any matrix work
    - weight(): absent dimensions count as 1
    - Group limit: product of category counts, message lists each factor
    - Case limit: 72 passes, 96 fails, message lists each dimension
    - Units dimension depends on the solution type
    - Power method counting (UNCONDITIONAL, QUANTILE x quantiles)
    - design_warnings for non-fatal observations
"""

import pytest

from pyglmmpower.core.config import RequestLimits
from pyglmmpower.core.exceptions import CaseLimitError, ValidationError
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
)
from pyglmmpower.power._validate import (
    case_breakdown,
    count_cases,
    count_groups,
    count_power_methods,
    design_warnings,
    validate,
    weight,
)


def sweep_design(**kwargs):
    lists = dict(
        sample_sizes=[10, 20],
        statistical_tests=[StatisticalTest.HLT, StatisticalTest.WL],
        alphas=[0.05, 0.01],
        beta_scales=[0.5, 1.0, 1.5],
        sigma_scales=[0.5, 1.0, 2.0],
        power_methods=[PowerMethod.CONDITIONAL],
    )
    lists.update(kwargs)
    return StudyDesign(**lists)


# ═══════════════════════════════════════════════════════════════════════
# Duplicate names
# ═══════════════════════════════════════════════════════════════════════


class TestDuplicateNames:

    def test_duplicate_repeated_measures_dimension(self):
        design = StudyDesign(repeated_measures=[
            RepeatedMeasuresNode("time", 3), RepeatedMeasuresNode("time", 2),
        ])
        with pytest.raises(ValidationError, match="Duplicate repeated measures dimension 'time'"):
            validate(design)

    def test_duplicate_covariance_name(self):
        design = StudyDesign(covariances=[
            Covariance("error", CovarianceType.LEAR_CORRELATION, rho=0.5, delta=0.1),
            Covariance("error", CovarianceType.UNSTRUCTURED_COVARIANCE, matrix=[[1.0]]),
        ])
        with pytest.raises(ValidationError, match="Duplicate covariance name 'error'"):
            validate(design)

    def test_duplicates_checked_before_limits(self):
        design = sweep_design(
            repeated_measures=[RepeatedMeasuresNode("time", 3), RepeatedMeasuresNode("time", 3)],
            beta_scales=[1.0] * 50,
        )
        with pytest.raises(ValidationError) as exc_info:
            validate(design)
        assert not isinstance(exc_info.value, CaseLimitError)

    def test_distinct_names_pass(self):
        validate(StudyDesign(repeated_measures=[
            RepeatedMeasuresNode("time", 3), RepeatedMeasuresNode("site", 2),
        ]))


# ═══════════════════════════════════════════════════════════════════════
# Weights and group limit
# ═══════════════════════════════════════════════════════════════════════


class TestWeight:

    def test_zero_is_one(self):
        assert weight(0) == 1

    @pytest.mark.parametrize("n", [1, 2, 7])
    def test_positive_unchanged(self, n):
        assert weight(n) == n


class TestGroupLimit:

    def test_no_factors_is_one_group(self):
        assert count_groups(StudyDesign()) == 1

    def test_product_of_categories(self):
        design = StudyDesign(between_factors=[
            BetweenParticipantFactor("a", ["1", "2", "3"]),
            BetweenParticipantFactor("b", ["x", "y"]),
        ])
        assert count_groups(design) == 6

    def test_exactly_at_limit_passes(self):
        design = StudyDesign(between_factors=[
            BetweenParticipantFactor("a", [str(i) for i in range(10)]),
            BetweenParticipantFactor("b", [str(i) for i in range(10)]),
        ])
        validate(design)

    def test_over_limit_fails(self):
        design = StudyDesign(between_factors=[
            BetweenParticipantFactor("site", [str(i) for i in range(11)]),
            BetweenParticipantFactor("dose", [str(i) for i in range(10)]),
        ])
        with pytest.raises(CaseLimitError) as exc_info:
            validate(design)
        e = exc_info.value
        assert e.limit == 100
        assert e.actual == 110
        assert e.breakdown == (("site", 11), ("dose", 10))
        message = str(e)
        assert "no more than 100 groups" in message
        assert "110 groups (11 × 10)" in message
        assert "  - predictor 'site' has 11 values" in message
        assert "  - predictor 'dose' has 10 values" in message

    def test_custom_limit(self):
        design = StudyDesign(between_factors=[BetweenParticipantFactor("a", ["1", "2", "3"])])
        with pytest.raises(CaseLimitError):
            validate(design, RequestLimits(max_groups=2))


# ═══════════════════════════════════════════════════════════════════════
# Case limit
# ═══════════════════════════════════════════════════════════════════════


class TestCaseLimit:

    def test_72_cases_pass(self):
        design = sweep_design()
        assert count_cases(design) == 72
        validate(design)

    def test_over_72_fails_naming_each_dimension(self):
        design = sweep_design(beta_scales=[0.5, 1.0, 1.5, 2.0])
        with pytest.raises(CaseLimitError) as exc_info:
            validate(design)
        e = exc_info.value
        assert e.actual == 96
        assert e.limit == 72
        message = str(e)
        assert "no more than 72 cases" in message
        assert "96 cases (2 × 2 × 2 × 4 × 3)" in message
        assert "  - 2 Group Sizes" in message
        assert "  - 2 Statistical Tests" in message
        assert "  - 2 Type I Error Rates" in message
        assert "  - 4 Scale Factors for Means" in message
        assert "  - 3 Scale Factors for Variability" in message

    def test_empty_alpha_list_counts_as_one(self):
        design = sweep_design(alphas=[])
        assert count_cases(design) == 36

    def test_absent_alpha_list_counts_as_one(self):
        design = sweep_design(alphas=None)
        assert count_cases(design) == 36

    def test_nothing_declared_is_one_case(self):
        assert count_cases(StudyDesign()) == 1

    def test_singular_label(self):
        design = sweep_design(statistical_tests=[StatisticalTest.HLT], sample_sizes=[10] * 40)
        with pytest.raises(CaseLimitError) as exc_info:
            validate(design)
        assert "  - 1 Statistical Test\n" in str(exc_info.value)

    def test_sample_size_uses_nominal_powers(self):
        design = sweep_design(
            solution_type=SolutionType.SAMPLE_SIZE,
            sample_sizes=[10] * 100,
            nominal_powers=[0.8, 0.9],
        )
        assert case_breakdown(design)[0] == ("Desired Power", "Desired Powers", 2)
        assert count_cases(design) == 72

    def test_detectable_difference_has_no_units(self):
        design = sweep_design(solution_type=SolutionType.DETECTABLE_DIFFERENCE,
                              sample_sizes=[10] * 100)
        assert case_breakdown(design)[0][2] == 0
        assert count_cases(design) == 36


class TestPowerMethods:

    def test_conditional_only_adds_nothing(self):
        assert count_power_methods(sweep_design()) == 0

    def test_unconditional(self):
        design = sweep_design(power_methods=[PowerMethod.UNCONDITIONAL])
        assert count_power_methods(design) == 1

    def test_quantile_counts_quantiles(self):
        design = sweep_design(
            power_methods=[PowerMethod.UNCONDITIONAL, PowerMethod.QUANTILE],
            quantiles=[0.25, 0.5, 0.75],
        )
        assert count_power_methods(design) == 4

    def test_quantiles_without_quantile_method(self):
        design = sweep_design(power_methods=[PowerMethod.CONDITIONAL], quantiles=[0.5, 0.75])
        assert count_power_methods(design) == 0

    def test_power_methods_multiply(self):
        design = sweep_design(
            beta_scales=[1.0], sigma_scales=[1.0],
            power_methods=[PowerMethod.UNCONDITIONAL, PowerMethod.QUANTILE],
            quantiles=[0.5, 0.75],
        )
        assert count_cases(design) == 2 * 2 * 2 * 3


# ═══════════════════════════════════════════════════════════════════════
# Warnings
# ═══════════════════════════════════════════════════════════════════════


class TestDesignWarnings:

    def test_clean_design(self, two_group_design):
        assert design_warnings(two_group_design) == ()

    def test_multiple_hypotheses(self):
        design = StudyDesign(hypotheses=[Hypothesis(HypothesisType.MAIN_EFFECT),
                                         Hypothesis(HypothesisType.TREND)])
        assert any("only the first" in w for w in design_warnings(design))

    def test_quantiles_without_method(self):
        design = StudyDesign(gaussian_covariate=True, quantiles=[0.5],
                             power_methods=[PowerMethod.UNCONDITIONAL])
        assert any("Quantiles are ignored" in w for w in design_warnings(design))

    def test_non_conditional_without_covariate(self):
        design = StudyDesign(power_methods=[PowerMethod.UNCONDITIONAL])
        assert any("CONDITIONAL" in w for w in design_warnings(design))
