"""
Capability string constants for PyGLMMPower engines.

This module is the SINGLE SOURCE OF TRUTH for capability strings.
Import from here, never use raw strings.

Usage:
    from pyglmmpower.core.capabilities import CAPABILITY_CANCELLATION

    if engine.supports(CAPABILITY_CANCELLATION):
        engine.solve(bundle, cancel_event=event)
"""

# Engine polls a threading.Event passed as ``cancel_event`` and stops early
CAPABILITY_CANCELLATION = 'cancellation'

# Engine may be called concurrently from several worker threads
CAPABILITY_THREAD_SAFE = 'thread_safe'

# Engine computes confidence intervals for power when requested
CAPABILITY_CONFIDENCE_INTERVALS = 'confidence_intervals'

# All capabilities as a frozenset for validation
ALL_CAPABILITIES = frozenset({
    CAPABILITY_CANCELLATION,
    CAPABILITY_THREAD_SAFE,
    CAPABILITY_CONFIDENCE_INTERVALS,
})

__all__ = [
    'CAPABILITY_CANCELLATION',
    'CAPABILITY_THREAD_SAFE',
    'CAPABILITY_CONFIDENCE_INTERVALS',
    'ALL_CAPABILITIES',
]
