"""
Engine result translation.

Converts engine-native EngineResult records into caller-facing
PowerResult records, one for one and in order. A NaN quantile becomes
None; a confidence interval keeps its limits and tail probabilities.
"""

from __future__ import annotations

import math
from collections.abc import Iterable

from pyglmmpower.power._common import (
    ConfidenceInterval,
    EngineConfidenceInterval,
    EngineResult,
    PowerResult,
)


def _interval(ci: EngineConfidenceInterval | None) -> ConfidenceInterval | None:
    if ci is None:
        return None
    return ConfidenceInterval(
        lower_limit=ci.lower_limit,
        upper_limit=ci.upper_limit,
        lower_tail_probability=ci.alpha_lower,
        upper_tail_probability=ci.alpha_upper,
    )


def translate_one(result: EngineResult) -> PowerResult:
    """Translate a single engine result."""
    if not isinstance(result, EngineResult):
        raise TypeError(
            f"Expected EngineResult, got {type(result).__name__}"
        )
    quantile = result.quantile
    if quantile is not None and math.isnan(quantile):
        quantile = None
    return PowerResult(
        test=result.test,
        alpha=result.alpha,
        nominal_power=result.nominal_power,
        actual_power=result.actual_power,
        total_sample_size=result.total_sample_size,
        beta_scale=result.beta_scale,
        sigma_scale=result.sigma_scale,
        power_method=result.power_method,
        quantile=quantile,
        confidence_interval=_interval(result.confidence_interval),
        error_message=result.error_message,
    )


def translate(results: Iterable[EngineResult]) -> tuple[PowerResult, ...]:
    """
    Translate engine results, preserving their order.

    Raises:
        TypeError: If an element is not an EngineResult
    """
    return tuple(translate_one(result) for result in results)
