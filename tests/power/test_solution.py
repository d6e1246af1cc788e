"""
Tests for the PowerSolution wrapper.

Validates:
    - Accessors delegate to the wrapped Result
    - Iteration and length follow the sweep
    - summary() lists every result with CI, error and warning lines
    - to_dataframe() column layout
"""

import pytest

from pyglmmpower.core.result import Result
from pyglmmpower.power import (
    ConfidenceInterval,
    PowerMethod,
    PowerResult,
    PowerSolution,
    PowerSweepParams,
    SolutionType,
    StatisticalTest,
)


def make_result(actual_power=0.8, **overrides):
    fields = dict(
        test=StatisticalTest.WL,
        alpha=0.05,
        nominal_power=0.9,
        actual_power=actual_power,
        total_sample_size=24,
        beta_scale=1.0,
        sigma_scale=2.0,
        power_method=PowerMethod.CONDITIONAL,
    )
    fields.update(overrides)
    return PowerResult(**fields)


@pytest.fixture
def solution():
    results = (
        make_result(0.81),
        make_result(
            0.62,
            power_method=PowerMethod.QUANTILE,
            quantile=0.5,
            confidence_interval=ConfidenceInterval(0.55, 0.7, 0.025, 0.025),
        ),
        make_result(0.0, error_message="Failed to converge"),
    )
    return PowerSolution(_result=Result(
        params=PowerSweepParams(solution_type=SolutionType.POWER, results=results),
        info={'n_results': 3},
        timing={'total_seconds': 0.25},
        backend_name="fake",
        warnings=("1 of 3 results reported an error",),
    ))


# ═══════════════════════════════════════════════════════════════════════
# Accessors
# ═══════════════════════════════════════════════════════════════════════


class TestAccessors:

    def test_len_and_iter(self, solution):
        assert len(solution) == 3
        assert [r.actual_power for r in solution] == [0.81, 0.62, 0.0]

    def test_actual_powers(self, solution):
        assert solution.actual_powers == (0.81, 0.62, 0.0)

    def test_total_sample_sizes(self, solution):
        assert solution.total_sample_sizes == (24, 24, 24)

    def test_metadata(self, solution):
        assert solution.solution_type is SolutionType.POWER
        assert solution.backend_name == "fake"
        assert solution.info['n_results'] == 3
        assert solution.timing['total_seconds'] == 0.25
        assert solution.warnings == ("1 of 3 results reported an error",)

    def test_repr(self, solution):
        assert repr(solution) == "PowerSolution(type=POWER, n_results=3, engine='fake')"


# ═══════════════════════════════════════════════════════════════════════
# Summary
# ═══════════════════════════════════════════════════════════════════════


class TestSummary:

    def test_header(self, solution):
        text = solution.summary()
        assert text.startswith("GLMM Power Analysis (POWER)")
        assert "Engine: fake" in text
        assert "Results: 3" in text

    def test_rows(self, solution):
        text = solution.summary()
        assert "0.8100" in text
        assert "QUANTILE" in text
        assert "CI: [0.5500, 0.7000]" in text
        assert "Error: Failed to converge" in text

    def test_warnings(self, solution):
        lines = solution.summary().splitlines()
        assert "Warnings:" in lines
        assert lines[-1].strip() == "1 of 3 results reported an error"

    def test_no_warnings_section(self):
        clean = PowerSolution(_result=Result(
            params=PowerSweepParams(SolutionType.SAMPLE_SIZE, (make_result(),)),
            info={}, timing=None, backend_name="fake",
        ))
        text = clean.summary()
        assert "(SAMPLE_SIZE)" in text
        assert "Warnings:" not in text


# ═══════════════════════════════════════════════════════════════════════
# DataFrame export
# ═══════════════════════════════════════════════════════════════════════


class TestDataFrame:

    def test_columns(self, solution):
        pytest.importorskip("pandas")
        df = solution.to_dataframe()
        assert list(df.columns) == [
            'test', 'alpha', 'nominal_power', 'actual_power', 'total_sample_size',
            'beta_scale', 'sigma_scale', 'power_method', 'quantile',
            'ci_lower', 'ci_upper', 'error_message',
        ]
        assert len(df) == 3

    def test_values(self, solution):
        pytest.importorskip("pandas")
        df = solution.to_dataframe()
        assert df.loc[0, 'test'] == "WL"
        assert df.loc[1, 'power_method'] == "QUANTILE"
        assert df.loc[1, 'ci_lower'] == pytest.approx(0.55)
        assert df.loc[2, 'error_message'] == "Failed to converge"
