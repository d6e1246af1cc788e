"""
Input validation utilities for PyGLMMPower.

These validators follow the "fail fast, fail loud" principle. They raise
immediately with clear error messages rather than silently correcting
or making assumptions about user intent.

Design principles:
    - No silent type coercion (except np.asarray on array-likes)
    - Clear, actionable error messages with actual values
    - Each function validates ONE thing
    - Matrix names included in all error messages
"""

import numpy as np
from numpy.typing import ArrayLike, NDArray
from typing import Any

from pyglmmpower.core.exceptions import ValidationError, DimensionError


def check_array(
    array: ArrayLike,
    name: str,
) -> NDArray[np.floating[Any]]:
    """
    Validate and convert input to a float64 numpy array.

    Rejects inputs that result in object dtype (mixed types or
    ragged rows) or non-numeric dtypes.

    Args:
        array: Input to validate
        name: Matrix name for error messages

    Returns:
        numpy.ndarray of dtype float64 (always a copy)

    Raises:
        ValidationError: If input cannot be converted to a numeric array
    """
    try:
        result = np.array(array)
    except (ValueError, TypeError) as e:
        raise ValidationError(f"{name}: cannot convert to array: {e}") from e

    if result.dtype == object:
        raise ValidationError(
            f"{name}: converted to object dtype, indicating ragged rows or non-numeric data"
        )

    if not np.issubdtype(result.dtype, np.number) and result.dtype != np.bool_:
        raise ValidationError(
            f"{name}: non-numeric dtype {result.dtype}, expected numeric data"
        )

    return result.astype(np.float64)


def check_finite(array: NDArray[np.floating[Any]], name: str) -> None:
    """
    Verify array contains no NaN or Inf values.

    Raises:
        ValidationError: If array contains non-finite values
    """
    if not np.all(np.isfinite(array)):
        n_nan = int(np.sum(np.isnan(array)))
        n_inf = int(np.sum(np.isinf(array)))
        raise ValidationError(
            f"{name}: contains non-finite values ({n_nan} NaN, {n_inf} Inf)"
        )


def as_matrix(array: ArrayLike, name: str) -> NDArray[np.floating[Any]]:
    """
    Convert input to a 2D float64 matrix.

    Scalars become 1x1 matrices and 1D input becomes a single column,
    which is how single-column matrices (covariate correlations, a
    single standard deviation) are usually written by hand.

    Raises:
        DimensionError: If input has more than 2 dimensions
    """
    result = check_array(array, name)
    if result.ndim == 0:
        return result.reshape(1, 1)
    if result.ndim == 1:
        return result.reshape(-1, 1)
    check_2d(result, name)
    return result


def check_2d(array: NDArray[np.floating[Any]], name: str) -> None:
    """
    Verify array is 2-dimensional.

    Raises:
        DimensionError: If array is not 2D
    """
    if array.ndim != 2:
        raise DimensionError(
            f"{name}: expected 2D array, got {array.ndim}D with shape {array.shape}",
            matrix_name=name,
            actual=array.shape,
        )


def check_positive_shape(array: NDArray[np.floating[Any]], name: str) -> None:
    """
    Verify a matrix has at least one row and one column.

    Raises:
        DimensionError: If either dimension is zero
    """
    rows, columns = array.shape
    if rows <= 0 or columns <= 0:
        raise DimensionError(
            f"{name}: matrix dimensions must be positive, got {rows} x {columns}",
            matrix_name=name,
            actual=array.shape,
        )


def check_square(array: NDArray[np.floating[Any]], name: str) -> None:
    """
    Verify a matrix is square.

    Raises:
        DimensionError: If rows != columns
    """
    rows, columns = array.shape
    if rows != columns:
        raise DimensionError(
            f"{name}: expected a square matrix, got {rows} x {columns}",
            matrix_name=name,
            actual=array.shape,
        )


def check_positive_int(value: Any, name: str) -> int:
    """
    Verify a count (group size, number of measurements) is a positive integer.

    Returns:
        The value as a Python int

    Raises:
        ValidationError: If value is not an integer or is < 1
    """
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise ValidationError(
            f"{name}: expected a positive integer, got {type(value).__name__} {value!r}"
        )
    if value < 1:
        raise ValidationError(f"{name}: must be a positive integer, got {value}")
    return int(value)


def check_non_negative_int(value: Any, name: str) -> int:
    """Verify a relative size is an integer >= 0. Returns it as a Python int."""
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise ValidationError(
            f"{name}: expected a non-negative integer, got {type(value).__name__} {value!r}"
        )
    if value < 0:
        raise ValidationError(f"{name}: must be non-negative, got {value}")
    return int(value)


def check_conformable(
    left_size: int,
    right_size: int,
    *,
    left: str,
    right: str,
) -> None:
    """
    Verify two matrix dimensions that multiply against each other agree.

    Args:
        left_size: Size of the dimension on the left-hand matrix
        right_size: Size of the dimension on the right-hand matrix
        left: Description of the left dimension, e.g. 'columns of design'
        right: Description of the right dimension, e.g. 'rows of beta'

    Raises:
        DimensionError: If the sizes differ
    """
    if left_size != right_size:
        raise DimensionError(
            f"Inconsistent dimensions: {left} = {left_size}, {right} = {right_size}",
            expected=left_size,
            actual=right_size,
        )
