"""
User-facing power analysis solution.

PowerSolution wraps a Result[PowerSweepParams] and provides accessors,
a formatted summary table, iteration over the sweep and an optional
pandas export.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterator

from pyglmmpower.core.result import Result
from pyglmmpower.power._common import PowerResult, PowerSweepParams, SolutionType

if TYPE_CHECKING:
    import pandas as pd


_COLUMNS = (
    'test', 'alpha', 'nominal_power', 'actual_power', 'total_sample_size',
    'beta_scale', 'sigma_scale', 'power_method', 'quantile',
    'ci_lower', 'ci_upper', 'error_message',
)


def _optional(value: float | None, spec: str) -> str:
    return '' if value is None else format(value, spec)


@dataclass
class PowerSolution:
    """
    User-facing result of a power, sample size or detectable difference
    request.

    Produced by power(), sample_size() and detectable_difference().
    """
    _result: Result[PowerSweepParams]

    @property
    def results(self) -> tuple[PowerResult, ...]:
        """One record per sweep point, in engine order."""
        return self._result.params.results

    @property
    def solution_type(self) -> SolutionType:
        return self._result.params.solution_type

    @property
    def actual_powers(self) -> tuple[float, ...]:
        return tuple(r.actual_power for r in self.results)

    @property
    def total_sample_sizes(self) -> tuple[int, ...]:
        return tuple(r.total_sample_size for r in self.results)

    @property
    def info(self) -> dict[str, Any]:
        return self._result.info

    @property
    def timing(self) -> dict[str, float] | None:
        return self._result.timing

    @property
    def backend_name(self) -> str:
        return self._result.backend_name

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    def __len__(self) -> int:
        return len(self.results)

    def __iter__(self) -> Iterator[PowerResult]:
        return iter(self.results)

    def summary(self) -> str:
        """Tabular summary of the sweep."""
        width = 96
        lines = [
            f"GLMM Power Analysis ({self.solution_type.value})",
            "=" * width,
            f"Engine: {self.backend_name}",
            f"Results: {len(self)}",
            "",
            f"{'Test':<10} {'Alpha':>7} {'Nominal':>8} {'Power':>8} {'N':>7} "
            f"{'Beta sc':>8} {'Sigma sc':>8} {'Method':<14} {'Quantile':>8}",
            "-" * width,
        ]
        for r in self.results:
            lines.append(
                f"{r.test.value:<10} {r.alpha:>7.4f} {r.nominal_power:>8.4f} "
                f"{r.actual_power:>8.4f} {r.total_sample_size:>7} "
                f"{r.beta_scale:>8.4f} {r.sigma_scale:>8.4f} "
                f"{r.power_method.value:<14} {_optional(r.quantile, '>8.4f'):>8}"
            )
            if r.confidence_interval is not None:
                ci = r.confidence_interval
                lines.append(
                    f"{'':<10} CI: [{ci.lower_limit:.4f}, {ci.upper_limit:.4f}] "
                    f"(tails {ci.lower_tail_probability:g}, {ci.upper_tail_probability:g})"
                )
            if r.error_message:
                lines.append(f"{'':<10} Error: {r.error_message}")
        lines.append("-" * width)

        if self.warnings:
            lines.append("")
            lines.append("Warnings:")
            for message in self.warnings:
                lines.append(f"  {message}")

        return "\n".join(lines)

    def to_dataframe(self) -> 'pd.DataFrame':
        """
        Sweep results as a pandas DataFrame, one row per result.

        Requires the optional pandas dependency (``pip install
        pyglmmpower[dataframe]``).
        """
        import pandas as pd

        rows = []
        for r in self.results:
            ci = r.confidence_interval
            rows.append({
                'test': r.test.value,
                'alpha': r.alpha,
                'nominal_power': r.nominal_power,
                'actual_power': r.actual_power,
                'total_sample_size': r.total_sample_size,
                'beta_scale': r.beta_scale,
                'sigma_scale': r.sigma_scale,
                'power_method': r.power_method.value,
                'quantile': r.quantile,
                'ci_lower': None if ci is None else ci.lower_limit,
                'ci_upper': None if ci is None else ci.upper_limit,
                'error_message': r.error_message,
            })
        return pd.DataFrame(rows, columns=list(_COLUMNS))

    def __repr__(self) -> str:
        return (
            f"PowerSolution(type={self.solution_type.value}, "
            f"n_results={len(self)}, engine={self.backend_name!r})"
        )
