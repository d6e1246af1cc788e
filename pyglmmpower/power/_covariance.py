"""
Covariance matrices for guided study designs.

Converts declared covariance structures into numeric matrices. The
assembler combines them into the full error covariance.

Supported structures:
    - UNSTRUCTURED_COVARIANCE: literal covariance matrix
    - UNSTRUCTURED_CORRELATION: literal correlation matrix scaled by S R S
    - LEAR_CORRELATION: linear exponent autoregressive correlation,
      rho ** (dmin + delta * (d - dmin) / (dmax - dmin)), scaled by S R S
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import numpy as np
from numpy.typing import NDArray

from pyglmmpower.power._common import Covariance, CovarianceType

logger = logging.getLogger(__name__)


def compound_symmetric(size: int, rho: float) -> NDArray[np.floating[Any]]:
    """size x size matrix with 1 on the diagonal and rho elsewhere."""
    matrix = np.full((size, size), float(rho), dtype=np.float64)
    np.fill_diagonal(matrix, 1.0)
    return matrix


def _scale(
    correlation: NDArray[np.floating[Any]],
    standard_deviations: Sequence[float] | None,
) -> NDArray[np.floating[Any]] | None:
    size = correlation.shape[0]
    if standard_deviations is None:
        return correlation
    if len(standard_deviations) != size:
        return None
    s = np.asarray(standard_deviations, dtype=np.float64)
    return correlation * np.outer(s, s)


def lear_correlation(
    rho: float,
    delta: float,
    spacing: Sequence[float],
) -> NDArray[np.floating[Any]]:
    """
    LEAR correlation matrix over measurements at the given spacing.

    The exponent runs linearly from dmin (closest pair) to dmin + delta
    (farthest pair). With a single distinct distance the exponent is dmin.
    """
    s = np.asarray(spacing, dtype=np.float64)
    size = len(s)
    if size == 1:
        return np.ones((1, 1), dtype=np.float64)

    distance = np.abs(s[:, None] - s[None, :])
    off_diagonal = distance[~np.eye(size, dtype=bool)]
    dmin = off_diagonal.min()
    dmax = off_diagonal.max()
    if dmax > dmin:
        exponent = dmin + delta * (distance - dmin) / (dmax - dmin)
    else:
        exponent = np.full_like(distance, dmin)

    correlation = np.power(rho, exponent)
    np.fill_diagonal(correlation, 1.0)
    return correlation


def covariance_to_matrix(
    covariance: Covariance | None,
    size: int,
    spacing: Sequence[float] | None = None,
) -> NDArray[np.floating[Any]] | None:
    """
    Convert a declared covariance structure into a size x size matrix.

    Args:
        covariance: Declared structure, or None
        size: Number of levels of the dimension it describes
        spacing: Level values for LEAR (default 1..size)

    Returns:
        The matrix, or None if the covariance is missing, incomplete, or
        does not match the dimension size
    """
    if covariance is None:
        return None

    if covariance.type == CovarianceType.UNSTRUCTURED_COVARIANCE:
        matrix = covariance.matrix
    elif covariance.type == CovarianceType.UNSTRUCTURED_CORRELATION:
        if covariance.matrix is None or covariance.matrix.shape != (size, size):
            logger.debug("covariance %r: correlation matrix missing or mis-sized",
                         covariance.name)
            return None
        matrix = _scale(covariance.matrix, covariance.standard_deviations)
    elif covariance.type == CovarianceType.LEAR_CORRELATION:
        if covariance.rho is None or covariance.delta is None:
            logger.debug("covariance %r: LEAR needs rho and delta", covariance.name)
            return None
        if spacing is None:
            spacing = [float(i) for i in range(1, size + 1)]
        if len(spacing) != size:
            return None
        matrix = _scale(
            lear_correlation(covariance.rho, covariance.delta, spacing),
            covariance.standard_deviations,
        )
    else:
        return None

    if matrix is None or matrix.shape != (size, size):
        logger.debug("covariance %r: expected %d x %d", covariance.name, size, size)
        return None
    return matrix.copy()
