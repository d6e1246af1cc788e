"""
Core protocols for PyGLMMPower.

The power engine (noncentral-F approximations, confidence intervals) is an
external collaborator. These protocols define what the orchestrator needs
from it. We use Protocol (structural typing) rather than ABC (nominal
typing) so any object with the right shape can be plugged in.

Design Principles:
    - Minimal contracts: prescribe only what's truly universal
    - Capability-driven: use supports() for optional features
"""

from typing import Protocol, TypeVar, Any, runtime_checkable

B = TypeVar('B', contravariant=True)  # Parameter bundle type
R = TypeVar('R', covariant=True)      # Engine result type


@runtime_checkable
class PowerEngine(Protocol[B, R]):
    """
    Protocol for power / sample size / detectable difference engines.

    An engine takes one fully assembled parameter bundle and returns one
    result record per point of the requested sweep.

    Engines may run for a long time on large inputs. They must not rely on
    the caller waiting: the orchestrator applies its own deadline.
    """

    @property
    def name(self) -> str:
        """Engine identifier, e.g. 'glmm_power'."""
        ...

    def supports(self, capability: str) -> bool:
        """
        Check if this engine supports a given capability.

        Unknown capabilities MUST return False, never raise.
        """
        ...

    def solve(self, bundle: B, **kwargs: Any) -> 'list[R]':
        """
        Run the computation.

        Engines advertising CAPABILITY_CANCELLATION receive a
        ``cancel_event`` keyword argument (a threading.Event) and should
        stop promptly once it is set.

        Raises:
            EngineValidationError: If the bundle is numerically malformed
            MemoryError: If the computation exhausts available memory
        """
        ...
