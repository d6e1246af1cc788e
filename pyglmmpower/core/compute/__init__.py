"""
Shared compute infrastructure for PyGLMMPower.

Submodules:
    timing: Execution timing utilities
    linalg: Kronecker products, symmetrization, orthonormal polynomials
"""

from pyglmmpower.core.compute.timing import Timer, timed
from pyglmmpower.core.compute.linalg import (
    filled,
    kronecker,
    force_symmetric,
    orthonormal_polynomials,
)

__all__ = [
    "Timer",
    "timed",
    "filled",
    "kronecker",
    "force_symmetric",
    "orthonormal_polynomials",
]
