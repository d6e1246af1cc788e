"""
Core infrastructure for PyGLMMPower.

Shared abstractions used by the power domain package.

Key components:
    protocols: PowerEngine protocol
    capabilities: Capability strings engines may advertise
    result: Generic Result[P] envelope
    exceptions: Exception hierarchy and message truncation
    validation: Input validators
    config: Request limits and orchestrator configuration
    compute: Timing utilities
"""

from pyglmmpower.core.protocols import PowerEngine
from pyglmmpower.core.result import Result
from pyglmmpower.core.config import (
    RequestLimits,
    OrchestratorConfig,
    DEFAULT_LIMITS,
    DEFAULT_ORCHESTRATOR_CONFIG,
    config_from_env,
)
from pyglmmpower.core.exceptions import (
    PyGLMMPowerError,
    ValidationError,
    DimensionError,
    CaseLimitError,
    EngineValidationError,
    ComputationError,
    ComputationTimeout,
    BadInputError,
    InternalComputationError,
    truncate_message,
)

__all__ = [
    # Protocols
    "PowerEngine",
    # Result
    "Result",
    # Configuration
    "RequestLimits",
    "OrchestratorConfig",
    "DEFAULT_LIMITS",
    "DEFAULT_ORCHESTRATOR_CONFIG",
    "config_from_env",
    # Exceptions
    "PyGLMMPowerError",
    "ValidationError",
    "DimensionError",
    "CaseLimitError",
    "EngineValidationError",
    "ComputationError",
    "ComputationTimeout",
    "BadInputError",
    "InternalComputationError",
    "truncate_message",
]
