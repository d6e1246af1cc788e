"""
Linear algebra kernels for PyGLMMPower.

Small dense operations shared by the contrast and covariance builders.
All functions take and return float64 NumPy arrays and never modify
their inputs.
"""

from collections.abc import Sequence
from functools import reduce
from typing import Any

import numpy as np
import scipy.linalg as sla
from numpy.typing import ArrayLike, NDArray


def filled(rows: int, columns: int, value: float) -> NDArray[np.floating[Any]]:
    """rows x columns matrix with every entry equal to value."""
    return np.full((rows, columns), float(value), dtype=np.float64)


def kronecker(matrices: Sequence[NDArray[np.floating[Any]]]) -> NDArray[np.floating[Any]]:
    """
    Kronecker product of matrices, left to right.

    An empty sequence gives the 1x1 identity.
    """
    return reduce(np.kron, matrices, np.ones((1, 1), dtype=np.float64))


def force_symmetric(matrix: NDArray[np.floating[Any]]) -> NDArray[np.floating[Any]]:
    """
    Average a square matrix with its transpose.

    The result satisfies m[i, j] == m[j, i] exactly: both entries are the
    same floating point sum, and IEEE addition is commutative.
    """
    return (matrix + matrix.T) / 2.0


def orthonormal_polynomials(values: ArrayLike) -> NDArray[np.floating[Any]]:
    """
    Orthonormal polynomial basis evaluated at distinct points.

    Column d of the (k x k) result is the degree-d polynomial, orthogonal
    to all lower degrees, with unit length and positive leading
    coefficient. Column 0 is the normalized constant.

    Args:
        values: k distinct evaluation points
    """
    x = np.asarray(values, dtype=np.float64)
    k = len(x)
    x = x - x.mean()
    scale = np.max(np.abs(x)) if k > 0 else 0.0
    if scale > 0:
        x = x / scale
    q, r = sla.qr(np.vander(x, k, increasing=True), mode='economic')
    return q * np.sign(np.diag(r))
