"""
Contrast matrices for guided study designs.

Builds the between-participant contrast C and the within-participant
contrast U from the factor structure of a design. Each factor contributes
one block; blocks are combined by Kronecker product in factor order, which
matches the cell ordering of the cell-means design matrix.

Key concepts:
    - Main effect block: (k-1) x k, row i compares level 0 with level i+1
    - Average block: 1 x k of 1/k, for factors not under test
    - Trend block: orthonormal polynomial rows, or change from baseline
    - Interaction: Kronecker product of the tested factors' blocks
    - Within contrasts are transposed blocks, times I_r for r responses
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import numpy as np
from numpy.typing import NDArray

from pyglmmpower.core.compute.linalg import kronecker, orthonormal_polynomials
from pyglmmpower.core.exceptions import ValidationError
from pyglmmpower.power._common import (
    BetweenParticipantFactor,
    HypothesisBetweenMapping,
    HypothesisRepeatedMeasuresMapping,
    RepeatedMeasuresNode,
    ResponseNode,
    TrendType,
)

_TREND_DEGREES = {
    TrendType.LINEAR: 1,
    TrendType.QUADRATIC: 2,
    TrendType.CUBIC: 3,
}


# =====================================================================
# Per-factor blocks
# =====================================================================


def main_effect_block(k: int) -> NDArray[np.floating[Any]]:
    """
    (k-1) x k contrast comparing the first level with each other level.

    Args:
        k: Number of levels (at least 2)
    """
    if k < 2:
        raise ValidationError(f"main effect contrast needs at least 2 levels, got {k}")
    block = np.zeros((k - 1, k), dtype=np.float64)
    block[:, 0] = 1.0
    block[np.arange(k - 1), np.arange(1, k)] = -1.0
    return block


def average_block(k: int) -> NDArray[np.floating[Any]]:
    """1 x k row averaging over the levels of a factor not under test."""
    if k < 1:
        raise ValidationError(f"factor must have at least 1 level, got {k}")
    return np.full((1, k), 1.0 / k, dtype=np.float64)


def change_from_baseline_block(k: int) -> NDArray[np.floating[Any]]:
    """(k-1) x k contrast of each later level minus the first level."""
    return -main_effect_block(k)


def polynomial_block(
    values: Sequence[float],
    degrees: Sequence[int],
) -> NDArray[np.floating[Any]]:
    """
    Orthonormal polynomial contrast rows evaluated at the given level values.

    Row j is the degree ``degrees[j]`` member of the orthonormal polynomial
    family on ``values``: orthogonal to all lower degrees (and so to the
    constant), unit length, positive leading coefficient.

    Args:
        values: Level values (spacing); need not be equally spaced
        degrees: Polynomial degrees to return, each in 1..k-1
    """
    x = np.asarray(values, dtype=np.float64)
    k = len(x)
    for degree in degrees:
        if degree < 1 or degree > k - 1:
            raise ValidationError(
                f"polynomial trend of degree {degree} needs at least "
                f"{degree + 1} levels, got {k}"
            )
    if len(np.unique(x)) != k:
        raise ValidationError(f"trend level values must be distinct, got {x.tolist()}")

    basis = orthonormal_polynomials(x)
    return basis[:, list(degrees)].T.copy()


def trend_block(
    trend: TrendType,
    values: Sequence[float],
) -> NDArray[np.floating[Any]]:
    """
    Contrast block for a factor tested for trend.

    NONE falls back to the main effect block.
    """
    trend = TrendType(trend)
    k = len(values)
    if trend == TrendType.NONE:
        return main_effect_block(k)
    if trend == TrendType.CHANGE_FROM_BASELINE:
        return change_from_baseline_block(k)
    if trend == TrendType.ALL_POLYNOMIAL:
        return polynomial_block(values, range(1, k))
    return polynomial_block(values, [_TREND_DEGREES[trend]])


# =====================================================================
# Between-participant contrasts (C)
# =====================================================================


def _between_values(factor: BetweenParticipantFactor) -> list[float]:
    return [float(i) for i in range(1, factor.n_levels + 1)]


def _lookup_factor(
    name: str,
    factors: Sequence[BetweenParticipantFactor],
) -> BetweenParticipantFactor:
    for factor in factors:
        if factor.predictor_name == name:
            return factor
    raise ValidationError(f"Hypothesis refers to unknown between-participant factor {name!r}")


def _between(
    tested: dict[str, NDArray[np.floating[Any]]],
    factors: Sequence[BetweenParticipantFactor],
) -> NDArray[np.floating[Any]]:
    blocks = [
        tested.get(factor.predictor_name, average_block(factor.n_levels))
        for factor in factors
    ]
    return kronecker(blocks)


def main_effect_between(
    factor_name: str,
    factors: Sequence[BetweenParticipantFactor],
) -> NDArray[np.floating[Any]]:
    """C for the main effect of one between-participant factor."""
    factor = _lookup_factor(factor_name, factors)
    return _between({factor_name: main_effect_block(factor.n_levels)}, factors)


def interaction_between(
    mappings: Sequence[HypothesisBetweenMapping],
    factors: Sequence[BetweenParticipantFactor],
) -> NDArray[np.floating[Any]]:
    """C for the interaction of the mapped between-participant factors."""
    tested = {}
    for mapping in mappings:
        factor = _lookup_factor(mapping.factor_name, factors)
        tested[mapping.factor_name] = trend_block(mapping.trend, _between_values(factor))
    return _between(tested, factors)


def trend_between(
    mapping: HypothesisBetweenMapping,
    factors: Sequence[BetweenParticipantFactor],
) -> NDArray[np.floating[Any]]:
    """C for a trend across the levels of one between-participant factor."""
    factor = _lookup_factor(mapping.factor_name, factors)
    return _between(
        {mapping.factor_name: trend_block(mapping.trend, _between_values(factor))},
        factors,
    )


def manova_between(
    factor_name: str,
    factors: Sequence[BetweenParticipantFactor],
) -> NDArray[np.floating[Any]]:
    """C for a MANOVA hypothesis: the main effect of the factor."""
    return main_effect_between(factor_name, factors)


def grand_mean_between(
    factors: Sequence[BetweenParticipantFactor],
) -> NDArray[np.floating[Any]]:
    """1 x K contrast averaging over every group."""
    return _between({}, factors)


# =====================================================================
# Within-participant contrasts (U)
# =====================================================================


def _lookup_node(
    dimension: str,
    nodes: Sequence[RepeatedMeasuresNode],
) -> RepeatedMeasuresNode:
    for node in nodes:
        if node.dimension == dimension:
            return node
    raise ValidationError(f"Hypothesis refers to unknown repeated measures dimension {dimension!r}")


def _n_responses(responses: Sequence[ResponseNode]) -> int:
    return max(len(responses), 1)


def _within(
    tested: dict[str, NDArray[np.floating[Any]]],
    nodes: Sequence[RepeatedMeasuresNode],
    responses: Sequence[ResponseNode],
) -> NDArray[np.floating[Any]]:
    blocks = [
        tested.get(node.dimension, average_block(node.number_of_measurements)).T
        for node in nodes
    ]
    blocks.append(np.eye(_n_responses(responses)))
    return kronecker(blocks)


def main_effect_within(
    dimension: str,
    nodes: Sequence[RepeatedMeasuresNode],
    responses: Sequence[ResponseNode],
) -> NDArray[np.floating[Any]]:
    """U for the main effect of one repeated-measures factor."""
    node = _lookup_node(dimension, nodes)
    return _within({dimension: main_effect_block(node.number_of_measurements)},
                   nodes, responses)


def interaction_within(
    mappings: Sequence[HypothesisRepeatedMeasuresMapping],
    nodes: Sequence[RepeatedMeasuresNode],
    responses: Sequence[ResponseNode],
) -> NDArray[np.floating[Any]]:
    """U for the interaction of the mapped repeated-measures factors."""
    tested = {}
    for mapping in mappings:
        node = _lookup_node(mapping.dimension, nodes)
        tested[mapping.dimension] = trend_block(mapping.trend, node.levels)
    return _within(tested, nodes, responses)


def trend_within(
    mapping: HypothesisRepeatedMeasuresMapping,
    nodes: Sequence[RepeatedMeasuresNode],
    responses: Sequence[ResponseNode],
) -> NDArray[np.floating[Any]]:
    """U for a trend over one repeated-measures factor, using its spacing."""
    node = _lookup_node(mapping.dimension, nodes)
    return _within({mapping.dimension: trend_block(mapping.trend, node.levels)},
                   nodes, responses)


def grand_mean_within(
    nodes: Sequence[RepeatedMeasuresNode],
    responses: Sequence[ResponseNode],
) -> NDArray[np.floating[Any]]:
    """U averaging over every repeated measurement, one column per response."""
    return _within({}, nodes, responses)


def manova_within(
    responses: Sequence[ResponseNode],
    nodes: Sequence[RepeatedMeasuresNode] = (),
) -> NDArray[np.floating[Any]]:
    """U for a MANOVA hypothesis: identity over every outcome column."""
    size = _n_responses(responses)
    for node in nodes:
        size *= node.number_of_measurements
    return np.eye(size, dtype=np.float64)
