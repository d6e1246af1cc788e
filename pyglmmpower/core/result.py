"""
Generic result container for PyGLMMPower computations.

The Result class is the envelope returned by the computation orchestrator.
It carries the engine's payload together with timing, the engine name and
any non-fatal warnings collected while assembling the request.

Design decisions:
    - Generic over parameter payload P for type safety
    - info dict for flexible metadata (solution type, state, worker)
    - timing is optional (don't burden unit tests)
    - Immutable (frozen=True) for reproducibility
"""

from dataclasses import dataclass, field
from typing import TypeVar, Generic, Any

P = TypeVar('P')  # Payload type


@dataclass(frozen=True)
class Result(Generic[P]):
    """
    Immutable result envelope.

    Type Parameters:
        P: The payload type

    Attributes:
        params: Payload (engine results, translated power results, ...)
        info: Structured metadata
        timing: Execution timing breakdown, or None if not measured
        backend_name: Identifier of the engine that produced this result
        warnings: Non-fatal issues encountered along the way

    Examples:
        >>> Result(
        ...     params=(engine_result,),
        ...     info={'state': 'completed'},
        ...     timing={'total_seconds': 0.8, 'queued': 0.001},
        ...     backend_name='glmm_power'
        ... )
    """
    params: P
    info: dict[str, Any]
    timing: dict[str, float] | None
    backend_name: str
    warnings: tuple[str, ...] = field(default_factory=tuple)

    def has_warning(self, substring: str) -> bool:
        """Check if any warning contains the given substring."""
        return any(substring in w for w in self.warnings)
