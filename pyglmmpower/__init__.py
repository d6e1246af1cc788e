"""
PyGLMMPower: study design compilation and bounded-time power computation
for the general linear multivariate model.

Submodules:
    core: Exceptions, validation, configuration, result envelope
    power: Study designs, matrix assembly, orchestration, solvers
"""

import logging

__version__ = "0.1.0"

from pyglmmpower import core
from pyglmmpower import power

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "__version__",
    "core",
    "power",
]
