"""
Structural validation of study designs.

Runs before any matrix is built. Rules are checked in a fixed order and
the first violation raises:

    1. repeated-measures dimension names are distinct
    2. covariance names are distinct
    3. the number of between-participant groups is within limits
    4. the number of sweep cases is within limits

The size limits bound the combinatorial growth of the downstream sweep
before any expensive matrix work begins.
"""

from __future__ import annotations

import logging

from pyglmmpower.core.config import RequestLimits, DEFAULT_LIMITS
from pyglmmpower.core.exceptions import ValidationError, CaseLimitError
from pyglmmpower.power._common import PowerMethod, SolutionType
from pyglmmpower.power.design import StudyDesign

logger = logging.getLogger(__name__)

_TIMES = " × "


def validate(design: StudyDesign, limits: RequestLimits = DEFAULT_LIMITS) -> None:
    """
    Reject structurally invalid or excessively large designs.

    Args:
        design: Study design to check
        limits: Group and case limits

    Raises:
        ValidationError: On the first violated rule
        CaseLimitError: If a size limit is exceeded
    """
    try:
        _check_distinct(
            (node.dimension for node in design.repeated_measures),
            "Duplicate repeated measures dimension",
        )
        _check_distinct(
            (covariance.name for covariance in design.covariances),
            "Duplicate covariance name",
        )
        validate_number_of_groups(design, limits.max_groups)
        validate_number_of_cases(design, limits.max_cases)
    except ValidationError as e:
        logger.info("Rejected study design: %s", e)
        raise


def _check_distinct(names, message: str) -> None:
    seen: set[str] = set()
    for name in names:
        if name in seen:
            raise ValidationError(f"{message} {name!r}")
        seen.add(name)


def weight(n: int) -> int:
    """Multiplicative effect of a sweep dimension; absent (0) counts as 1."""
    return n if n != 0 else 1


def _size(values) -> int:
    return len(values) if values is not None else 0


def _plural(n: int, singular: str, plural: str) -> str:
    return f"1 {singular}" if n == 1 else f"{n} {plural}"


def count_groups(design: StudyDesign) -> int:
    """Product of category counts over between-participant factors (1 if none)."""
    n_groups = 1
    for factor in design.between_factors:
        n_groups *= factor.n_levels
    return n_groups


def validate_number_of_groups(design: StudyDesign, max_groups: int) -> None:
    """
    Raise CaseLimitError if the design has more than max_groups groups.
    """
    n_groups = count_groups(design)
    if n_groups <= max_groups:
        return

    breakdown = tuple(
        (factor.predictor_name, factor.n_levels) for factor in design.between_factors
    )
    lines = [
        "To better manage the load on our server, we ask that you limit your "
        f"request to no more than {max_groups} groups.",
        f"Your request currently includes {n_groups:,} groups "
        f"({_TIMES.join(str(count) for _, count in breakdown)}):",
    ]
    lines.extend(
        f"  - predictor '{name}' has {count} values" for name, count in breakdown
    )
    raise CaseLimitError("\n".join(lines), limit=max_groups, actual=n_groups,
                         breakdown=breakdown)


def count_power_methods(design: StudyDesign) -> int:
    """
    Number of power-method entries that multiply the sweep.

    UNCONDITIONAL contributes 1 and QUANTILE contributes one per quantile.
    CONDITIONAL never adds to the count.
    """
    methods = design.power_methods or ()
    n = 0
    if PowerMethod.UNCONDITIONAL in methods:
        n += 1
    if PowerMethod.QUANTILE in methods:
        n += _size(design.quantiles)
    return n


def case_breakdown(design: StudyDesign) -> tuple[tuple[str, str, int], ...]:
    """
    Sizes of every sweep dimension as (singular, plural, count) triples.

    The units dimension is the sample sizes when solving for power and the
    nominal powers when solving for sample size; it is empty otherwise.
    """
    if design.solution_type == SolutionType.POWER:
        units = ("Group Size", "Group Sizes", _size(design.sample_sizes))
    elif design.solution_type == SolutionType.SAMPLE_SIZE:
        units = ("Desired Power", "Desired Powers", _size(design.nominal_powers))
    else:
        units = ("Unit", "Units", 0)

    return (
        units,
        ("Statistical Test", "Statistical Tests", _size(design.statistical_tests)),
        ("Type I Error Rate", "Type I Error Rates", _size(design.alphas)),
        ("Scale Factor For Means", "Scale Factors for Means", _size(design.beta_scales)),
        ("Scale Factor for Variability", "Scale Factors for Variability",
         _size(design.sigma_scales)),
        ("Power Method", "Power Methods", count_power_methods(design)),
    )


def count_cases(design: StudyDesign) -> int:
    """Weighted product of the sweep dimension sizes."""
    n_cases = 1
    for _, _, count in case_breakdown(design):
        n_cases *= weight(count)
    return n_cases


def validate_number_of_cases(design: StudyDesign, max_cases: int) -> None:
    """
    Raise CaseLimitError if the sweep has more than max_cases points.
    """
    n_cases = count_cases(design)
    if n_cases <= max_cases:
        return

    present = [(s1, s, n) for s1, s, n in case_breakdown(design) if n > 0]
    lines = [
        "To better manage the load on our server, we ask that you limit your "
        f"request to no more than {max_cases} cases.",
        f"Your request currently includes {n_cases:,} cases "
        f"({_TIMES.join(str(n) for _, _, n in present)}):",
    ]
    lines.extend(f"  - {_plural(n, s1, s)}" for s1, s, n in present)
    raise CaseLimitError(
        "\n".join(lines),
        limit=max_cases,
        actual=n_cases,
        breakdown=tuple((s, n) for _, s, n in present),
    )


def design_warnings(design: StudyDesign) -> tuple[str, ...]:
    """
    Non-fatal observations about a design, as messages for Result.warnings.
    """
    messages = []
    if len(design.hypotheses) > 1:
        messages.append(
            f"Design declares {len(design.hypotheses)} hypotheses; "
            "only the first is tested"
        )
    methods = design.power_methods or ()
    if design.quantiles and PowerMethod.QUANTILE not in methods:
        messages.append("Quantiles are ignored without the QUANTILE power method")
    if not design.gaussian_covariate and any(
            method != PowerMethod.CONDITIONAL for method in methods):
        messages.append(
            "Designs without a Gaussian covariate always use CONDITIONAL power"
        )
    return tuple(messages)
