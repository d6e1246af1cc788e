"""
Parameter assembly: StudyDesign -> ParameterBundle.

Each matrix builder derives one numeric matrix from a study design. In
matrix mode the literal named matrix is used; in guided mode the matrix is
built from the factor, clustering and covariance structure. Builders are
pure and deterministic.

build_parameters() validates the design, runs every builder, checks that
the resulting matrices conform, and returns the bundle the power engine
consumes. named_matrices() runs the same builders for preview without
requiring a complete design.
"""

from __future__ import annotations

import logging
from typing import Any

import numpy as np
from numpy.typing import NDArray

from pyglmmpower.core.compute.linalg import filled, force_symmetric, kronecker
from pyglmmpower.core.config import RequestLimits, DEFAULT_LIMITS
from pyglmmpower.core.exceptions import ValidationError, DimensionError
from pyglmmpower.core.validation import (
    check_conformable,
    check_non_negative_int,
    check_positive_int,
    check_positive_shape,
    check_square,
)
from pyglmmpower.power import _contrasts
from pyglmmpower.power._common import (
    ConfidenceIntervalType,
    FixedRandomMatrix,
    HypothesisType,
    ParameterBundle,
    PowerMethod,
    MATRIX_BETA,
    MATRIX_BETA_RANDOM,
    MATRIX_BETWEEN_CONTRAST,
    MATRIX_BETWEEN_CONTRAST_RANDOM,
    MATRIX_DESIGN,
    MATRIX_SIGMA_ERROR,
    MATRIX_SIGMA_GAUSSIAN,
    MATRIX_SIGMA_OUTCOME,
    MATRIX_SIGMA_OUTCOME_GAUSSIAN,
    MATRIX_THETA_NULL,
    MATRIX_WITHIN_CONTRAST,
    RESPONSES_COVARIANCE_LABEL,
)
from pyglmmpower.power._covariance import compound_symmetric, covariance_to_matrix
from pyglmmpower.power._validate import validate
from pyglmmpower.power.design import StudyDesign

logger = logging.getLogger(__name__)


def _debug(label: str, matrix: NDArray[np.floating[Any]] | None) -> None:
    if logger.isEnabledFor(logging.DEBUG):
        if matrix is None:
            logger.debug("%s: None", label)
        else:
            logger.debug("%s (%d x %d):\n%s", label, matrix.shape[0], matrix.shape[1],
                         np.array2string(matrix, precision=6))


# =====================================================================
# Clustering
# =====================================================================


def cluster_size(design: StudyDesign) -> int | None:
    """
    Product of the group sizes over all cluster levels.

    Returns:
        The total cluster size, or None if the design is not clustered

    Raises:
        ValidationError: If a group size is not a positive integer
    """
    if not design.clusters:
        return None
    total = 1
    for node in design.clusters:
        total *= check_positive_int(node.group_size, f"cluster {node.group_name!r} group size")
    return total


# =====================================================================
# Design matrix (X)
# =====================================================================


def design_matrix(design: StudyDesign) -> NDArray[np.floating[Any]] | None:
    """
    Design essence matrix.

    Guided designs use cell-means coding: one column per group, where the
    number of groups k is the product of the category counts. Without
    relative group sizes this is the k x k identity. With them, group g
    contributes sizes[g] consecutive rows with a 1 in column g.
    A single group always gives the 1 x 1 matrix [[1]].

    Raises:
        ValidationError: If the relative group sizes do not match the groups
    """
    if design.is_matrix_mode:
        return design.matrix(MATRIX_DESIGN)

    n_groups = 1
    for factor in design.between_factors:
        n_groups *= factor.n_levels
    if n_groups <= 0:
        raise DimensionError(
            "Unable to produce a valid design matrix: a between participant "
            "factor has no categories",
            matrix_name=MATRIX_DESIGN,
        )
    if n_groups == 1:
        return np.ones((1, 1), dtype=np.float64)

    sizes = design.relative_group_sizes
    if sizes is None:
        return np.eye(n_groups, dtype=np.float64)
    if len(sizes) != n_groups:
        raise ValidationError(
            f"Invalid list of relative group sizes: expected {n_groups} "
            f"entries (one per group), got {len(sizes)}"
        )
    sizes = [check_non_negative_int(size, f"relative group size {g + 1}")
             for g, size in enumerate(sizes)]

    return np.repeat(np.eye(n_groups, dtype=np.float64), sizes, axis=0)


# =====================================================================
# Beta (B)
# =====================================================================


def _expand_columns(matrix, n_cluster):
    if matrix is None or n_cluster is None:
        return matrix
    return np.kron(filled(1, n_cluster, 1.0), matrix)


def _expand_rows(matrix, n_cluster):
    if matrix is None or n_cluster is None:
        return matrix
    return np.kron(filled(n_cluster, 1, 1.0), matrix)


def beta_matrix(design: StudyDesign) -> FixedRandomMatrix:
    """
    Fixed/random beta matrix.

    The random part (Gaussian covariate rows) is stacked below the fixed
    part. Guided designs repeat beta once per clustered observation: both
    parts are Kronecker-multiplied by a 1 x C row of ones, C the cluster size.
    """
    fixed = design.matrix(MATRIX_BETA)
    random = design.matrix(MATRIX_BETA_RANDOM)
    if not design.is_matrix_mode:
        n_cluster = cluster_size(design)
        fixed = _expand_columns(fixed, n_cluster)
        random = _expand_columns(random, n_cluster)
    return FixedRandomMatrix(fixed=fixed, random=random, combine_horizontal=False)


# =====================================================================
# Between-participant contrast (C)
# =====================================================================


def between_contrast(design: StudyDesign) -> FixedRandomMatrix | None:
    """
    Fixed/random between-participant contrast.

    Guided designs build the fixed part from the primary hypothesis. A
    design with a Gaussian covariate gets a zero column as random part.

    Returns:
        The contrast, or None when there is nothing to test
    """
    if design.is_matrix_mode:
        fixed = design.matrix(MATRIX_BETWEEN_CONTRAST)
        random = design.matrix(MATRIX_BETWEEN_CONTRAST_RANDOM)
        if fixed is None and random is None:
            return None
        return FixedRandomMatrix(fixed=fixed, random=random)

    hypothesis = design.primary_hypothesis
    if hypothesis is None:
        return None

    factors = design.between_factors
    mappings = hypothesis.between_mappings
    if not mappings:
        fixed = _contrasts.grand_mean_between(factors)
    elif hypothesis.type == HypothesisType.MAIN_EFFECT:
        fixed = _contrasts.main_effect_between(mappings[0].factor_name, factors)
    elif hypothesis.type == HypothesisType.INTERACTION:
        fixed = _contrasts.interaction_between(mappings, factors)
    elif hypothesis.type == HypothesisType.TREND:
        fixed = _contrasts.trend_between(mappings[0], factors)
    elif hypothesis.type == HypothesisType.MANOVA:
        fixed = _contrasts.manova_between(mappings[0].factor_name, factors)
    else:
        raise ValidationError(f"Unknown hypothesis type {hypothesis.type!r}")

    random = None
    if design.gaussian_covariate:
        random = np.zeros((fixed.shape[0], 1), dtype=np.float64)
    return FixedRandomMatrix(fixed=fixed, random=random)


# =====================================================================
# Within-participant contrast (U)
# =====================================================================


def within_contrast(design: StudyDesign) -> NDArray[np.floating[Any]] | None:
    """
    Within-participant contrast.

    Guided designs build U from the primary hypothesis, then stack it once
    per clustered observation (Kronecker with a C x 1 column of ones).
    """
    if design.is_matrix_mode:
        return design.matrix(MATRIX_WITHIN_CONTRAST)

    hypothesis = design.primary_hypothesis
    if hypothesis is None:
        return None

    nodes = design.repeated_measures
    responses = design.responses
    mappings = hypothesis.within_mappings
    if hypothesis.type == HypothesisType.MANOVA:
        contrast = _contrasts.manova_within(responses, nodes)
    elif not mappings:
        contrast = _contrasts.grand_mean_within(nodes, responses)
    elif hypothesis.type == HypothesisType.MAIN_EFFECT:
        contrast = _contrasts.main_effect_within(mappings[0].dimension, nodes, responses)
    elif hypothesis.type == HypothesisType.INTERACTION:
        contrast = _contrasts.interaction_within(mappings, nodes, responses)
    elif hypothesis.type == HypothesisType.TREND:
        contrast = _contrasts.trend_within(mappings[0], nodes, responses)
    else:
        raise ValidationError(f"Unknown hypothesis type {hypothesis.type!r}")

    _debug("within contrast before clustering", contrast)
    return _expand_rows(contrast, cluster_size(design))


# =====================================================================
# Theta null
# =====================================================================


def theta_null_matrix(
    design: StudyDesign,
    between: FixedRandomMatrix | None,
    within: NDArray[np.floating[Any]] | None,
) -> NDArray[np.floating[Any]] | None:
    """
    Null hypothesis matrix: the literal one, else zeros of shape
    rows(C) x columns(U).
    """
    theta_null = design.matrix(MATRIX_THETA_NULL)
    if theta_null is not None:
        return theta_null
    if between is None or between.fixed is None or within is None:
        return None
    return np.zeros((between.fixed.shape[0], within.shape[1]), dtype=np.float64)


# =====================================================================
# Covariance matrices
# =====================================================================


def _guided_error_covariance(design: StudyDesign) -> NDArray[np.floating[Any]]:
    blocks = []

    for node in design.clusters:
        size = check_positive_int(node.group_size, f"cluster {node.group_name!r} group size")
        blocks.append(compound_symmetric(size, node.intra_cluster_correlation))

    for node in design.repeated_measures:
        covariance = design.covariance(node.dimension)
        if covariance is None:
            raise ValidationError(
                f"Missing covariance information for factor: {node.dimension}"
            )
        block = covariance_to_matrix(covariance, node.number_of_measurements, node.levels)
        if block is None:
            raise ValidationError(
                f"Invalid covariance information for factor: {node.dimension}"
            )
        blocks.append(block)

    block = covariance_to_matrix(
        design.covariance(RESPONSES_COVARIANCE_LABEL),
        max(len(design.responses), 1),
    )
    if block is None:
        raise ValidationError("Invalid covariance information for response variables")
    blocks.append(block)

    return kronecker(blocks)


def _symmetric(matrix, name):
    if matrix is None:
        return None
    check_square(matrix, name)
    return force_symmetric(matrix)


def sigma_error_matrix(design: StudyDesign) -> NDArray[np.floating[Any]] | None:
    """
    Error covariance, forced to exact symmetry.

    Guided designs take the Kronecker product of, in order: one compound
    symmetric block per cluster level, one block per repeated-measures
    factor, and the response covariance.

    Raises:
        ValidationError: If a required covariance is missing or invalid
    """
    if design.is_matrix_mode:
        matrix = design.matrix(MATRIX_SIGMA_ERROR)
    else:
        matrix = _guided_error_covariance(design)
    return _symmetric(matrix, MATRIX_SIGMA_ERROR)


def sigma_outcome_matrix(design: StudyDesign) -> NDArray[np.floating[Any]] | None:
    """Outcome covariance for Gaussian covariate designs."""
    if design.is_matrix_mode:
        return _symmetric(design.matrix(MATRIX_SIGMA_OUTCOME), MATRIX_SIGMA_OUTCOME)
    return sigma_error_matrix(design)


def sigma_covariate_matrix(design: StudyDesign) -> NDArray[np.floating[Any]] | None:
    """
    Covariate variance.

    Guided designs state the covariate's standard deviation; it is squared.
    """
    sigma_g = design.matrix(MATRIX_SIGMA_GAUSSIAN)
    if design.is_matrix_mode or sigma_g is None or sigma_g.size == 0:
        return sigma_g
    sigma_g[0, 0] = sigma_g[0, 0] ** 2
    return sigma_g


def sigma_outcome_covariate_matrix(
    design: StudyDesign,
    sigma_g: NDArray[np.floating[Any]] | None,
    sigma_y: NDArray[np.floating[Any]] | None,
) -> NDArray[np.floating[Any]] | None:
    """
    Outcome-covariate covariance.

    Guided designs state correlations, one per outcome row. Each becomes
    corr * sqrt(var_covariate * var_outcome[row]); the result is then
    stacked once per clustered observation like U.

    Args:
        design: Study design
        sigma_g: Covariate variance (already squared)
        sigma_y: Outcome covariance
    """
    sigma_yg = design.matrix(MATRIX_SIGMA_OUTCOME_GAUSSIAN)
    if design.is_matrix_mode or sigma_yg is None:
        return sigma_yg

    if sigma_g is None or sigma_g.size == 0:
        raise ValidationError("Invalid covariance for Gaussian covariate")
    if sigma_y is None:
        raise ValidationError("Invalid covariance for outcome: sigmaY is missing")
    if sigma_y.shape[0] < sigma_yg.shape[0] or sigma_y.shape[0] != sigma_y.shape[1]:
        raise DimensionError(
            "Invalid covariance for outcome: "
            f"sigmaY is {sigma_y.shape[0]} x {sigma_y.shape[1]}, "
            f"sigmaYG is {sigma_yg.shape[0]} x {sigma_yg.shape[1]}",
            matrix_name=MATRIX_SIGMA_OUTCOME,
            actual=sigma_y.shape,
        )

    var_g = sigma_g[0, 0]
    rows = sigma_yg.shape[0]
    var_y = np.diag(sigma_y)[:rows]
    sigma_yg[:, 0] = sigma_yg[:, 0] * np.sqrt(var_g * var_y)
    _debug("sigmaYG before clustering", sigma_yg)

    return _expand_rows(sigma_yg, cluster_size(design))


# =====================================================================
# Conformance
# =====================================================================


def _require(matrix, name):
    if matrix is None:
        raise ValidationError(f"Missing matrix {name!r}")
    check_positive_shape(matrix, name)
    return matrix


def check_conformance(bundle: ParameterBundle) -> None:
    """
    Verify the bundle's matrices can be multiplied together.

    X (N x q), B (q x p), C (a x q), U (p x b), theta-null (a x b),
    Sigma (p x p). The random beta rows (g x p) share B's columns; the
    random contrast columns (a x g) share C's rows and match them.

    Raises:
        DimensionError: On the first mismatch
    """
    x = bundle.design_essence
    beta = bundle.beta.fixed
    beta_random = bundle.beta.random
    check_conformable(x.shape[1], beta.shape[0],
                      left="columns of design", right="rows of beta")
    if beta_random is not None:
        check_conformable(beta.shape[1], beta_random.shape[1],
                          left="columns of beta", right="columns of betaRandom")

    between = bundle.between_contrast
    if between is not None and between.fixed is not None:
        check_conformable(between.fixed.shape[1], beta.shape[0],
                          left="columns of betweenSubjectContrast", right="rows of beta")
        if between.random is not None:
            check_conformable(between.fixed.shape[0], between.random.shape[0],
                              left="rows of betweenSubjectContrast",
                              right="rows of betweenSubjectContrastRandom")
            if beta_random is not None:
                check_conformable(between.random.shape[1], beta_random.shape[0],
                                  left="columns of betweenSubjectContrastRandom",
                                  right="rows of betaRandom")

    within = bundle.within_contrast
    if within is not None:
        check_conformable(beta.shape[1], within.shape[0],
                          left="columns of beta", right="rows of withinSubjectContrast")

    theta_null = bundle.theta_null
    if theta_null is not None and between is not None and between.fixed is not None \
            and within is not None:
        expected = (between.fixed.shape[0], within.shape[1])
        if theta_null.shape != expected:
            raise DimensionError(
                f"{MATRIX_THETA_NULL}: expected {expected[0]} x {expected[1]}, "
                f"got {theta_null.shape[0]} x {theta_null.shape[1]}",
                matrix_name=MATRIX_THETA_NULL,
                expected=expected,
                actual=theta_null.shape,
            )

    sigma = bundle.sigma_outcome if bundle.has_gaussian_covariate else bundle.sigma_error
    check_conformable(beta.shape[1], sigma.shape[0],
                      left="columns of beta", right="rows of the outcome covariance")


# =====================================================================
# Assembly
# =====================================================================


def _confidence_interval_type(description) -> ConfidenceIntervalType | None:
    if description.beta_fixed and not description.sigma_fixed:
        return ConfidenceIntervalType.BETA_KNOWN_SIGMA_ESTIMATED
    if not description.beta_fixed and not description.sigma_fixed:
        return ConfidenceIntervalType.BETA_SIGMA_ESTIMATED
    return None


def build_parameters(
    design: StudyDesign,
    limits: RequestLimits = DEFAULT_LIMITS,
) -> ParameterBundle:
    """
    Validate a study design and assemble the power engine's inputs.

    Args:
        design: Study design
        limits: Group and case limits for validation

    Returns:
        ParameterBundle with conforming matrices

    Raises:
        ValidationError: If the design is invalid, too large, or yields
            inconsistent matrices
    """
    validate(design, limits)

    x = _require(design_matrix(design), MATRIX_DESIGN)
    _debug("design", x)
    beta = beta_matrix(design)
    _require(beta.fixed, MATRIX_BETA)
    _debug("beta", beta.combined)
    between = between_contrast(design)
    _debug("between contrast", None if between is None else between.combined)
    within = within_contrast(design)
    _debug("within contrast", within)
    theta_null = theta_null_matrix(design, between, within)
    _debug("theta null", theta_null)

    covariance: dict[str, Any] = {}
    ci: dict[str, Any] = {}
    if design.gaussian_covariate:
        sigma_y = _require(sigma_outcome_matrix(design), MATRIX_SIGMA_OUTCOME)
        sigma_g = _require(sigma_covariate_matrix(design), MATRIX_SIGMA_GAUSSIAN)
        sigma_yg = _require(sigma_outcome_covariate_matrix(design, sigma_g, sigma_y),
                            MATRIX_SIGMA_OUTCOME_GAUSSIAN)
        covariance = dict(
            sigma_outcome=sigma_y,
            sigma_gaussian_random=sigma_g,
            sigma_outcome_gaussian_random=sigma_yg,
        )
        power_methods = tuple(design.power_methods or ())
        quantiles = tuple(design.quantiles or ())
    else:
        sigma_e = _require(sigma_error_matrix(design), MATRIX_SIGMA_ERROR)
        _debug("sigma error", sigma_e)
        covariance = dict(sigma_error=sigma_e)
        power_methods = (PowerMethod.CONDITIONAL,)
        quantiles = ()

        description = design.confidence_interval
        if description is not None:
            ci = dict(
                confidence_interval_type=_confidence_interval_type(description),
                alpha_lower_confidence_limit=description.lower_tail_probability,
                alpha_upper_confidence_limit=description.upper_tail_probability,
                sample_size_for_estimates=description.sample_size,
                design_matrix_rank_for_estimates=description.rank_of_design_matrix,
            )

    bundle = ParameterBundle(
        solution_type=design.solution_type,
        tests=tuple(design.statistical_tests or ()),
        alphas=tuple(design.alphas or ()),
        nominal_powers=tuple(design.nominal_powers or ()),
        sample_sizes=tuple(design.sample_sizes or ()),
        beta_scales=tuple(design.beta_scales or ()),
        sigma_scales=tuple(design.sigma_scales or ()),
        power_methods=power_methods,
        quantiles=quantiles,
        design_essence=x,
        beta=beta,
        between_contrast=between,
        within_contrast=within,
        theta_null=theta_null,
        **covariance,
        **ci,
    )
    check_conformance(bundle)
    return bundle


def named_matrices(
    design: StudyDesign,
    limits: RequestLimits = DEFAULT_LIMITS,
) -> dict[str, NDArray[np.floating[Any]]]:
    """
    Intermediate matrices for a design, keyed by MATRIX_* name.

    Runs the same builders as build_parameters() without calling the
    engine or requiring a complete design. Matrices that cannot be built
    (no hypothesis, no literal provided) are omitted. Random parts are
    included only for Gaussian covariate designs.

    Raises:
        ValidationError: If the design is invalid
    """
    validate(design, limits)
    matrices: dict[str, NDArray[np.floating[Any]] | None] = {}

    matrices[MATRIX_DESIGN] = design_matrix(design)

    beta = beta_matrix(design)
    matrices[MATRIX_BETA] = beta.fixed
    if design.gaussian_covariate:
        matrices[MATRIX_BETA_RANDOM] = beta.random

    between = between_contrast(design)
    if between is not None:
        matrices[MATRIX_BETWEEN_CONTRAST] = between.fixed
        if design.gaussian_covariate:
            matrices[MATRIX_BETWEEN_CONTRAST_RANDOM] = between.random

    within = within_contrast(design)
    matrices[MATRIX_WITHIN_CONTRAST] = within
    matrices[MATRIX_THETA_NULL] = theta_null_matrix(design, between, within)

    if design.gaussian_covariate:
        sigma_y = sigma_outcome_matrix(design)
        sigma_g = sigma_covariate_matrix(design)
        matrices[MATRIX_SIGMA_OUTCOME] = sigma_y
        matrices[MATRIX_SIGMA_GAUSSIAN] = sigma_g
        matrices[MATRIX_SIGMA_OUTCOME_GAUSSIAN] = \
            sigma_outcome_covariate_matrix(design, sigma_g, sigma_y)
    else:
        matrices[MATRIX_SIGMA_ERROR] = sigma_error_matrix(design)

    return {name: matrix for name, matrix in matrices.items() if matrix is not None}
