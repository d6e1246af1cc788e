"""
Request limits and orchestrator configuration.

Defaults match the production service. Both objects are immutable; build a
new one with dataclasses.replace() to change a field.

- RequestLimits: how large a study design may be before it is rejected
- OrchestratorConfig: deadline, worker pool and error message settings
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass

from pyglmmpower.core.exceptions import MAX_MESSAGE_LENGTH

# Cap used when max_workers is None. Workers are only created when no idle
# worker is available, so below the cap this behaves like a cached pool.
UNBOUNDED_WORKERS = 1024

ENV_TIMEOUT_SECONDS = 'PYGLMMPOWER_TIMEOUT_SECONDS'
ENV_MAX_WORKERS = 'PYGLMMPOWER_MAX_WORKERS'
ENV_MAX_MESSAGE_LENGTH = 'PYGLMMPOWER_MAX_MESSAGE_LENGTH'


@dataclass(frozen=True)
class RequestLimits:
    """Upper bounds on the size of a single request."""
    max_groups: int = 100
    max_cases: int = 72


@dataclass(frozen=True)
class OrchestratorConfig:
    """
    Settings for the computation orchestrator.

    The worker pool is not unbounded: with max_workers=None it holds at most
    UNBOUNDED_WORKERS threads. Further requests wait in the queue, and that
    wait counts against their timeout, so a saturated pool can time out
    work that never started.

    Invalid values raise ValueError.

    Attributes:
        timeout_seconds: Deadline for one computation
        max_workers: Worker pool cap, or None for UNBOUNDED_WORKERS
        max_message_length: Engine messages longer than this are truncated
        thread_name_prefix: Name prefix for worker threads
    """
    timeout_seconds: float = 300.0
    max_workers: int | None = None
    max_message_length: int = MAX_MESSAGE_LENGTH
    thread_name_prefix: str = 'pyglmmpower-worker'

    def __post_init__(self):
        if not self.timeout_seconds > 0:
            raise ValueError(
                f"timeout_seconds must be > 0, got {self.timeout_seconds}"
            )
        if self.max_workers is not None and self.max_workers < 1:
            raise ValueError(
                f"max_workers must be >= 1 or None, got {self.max_workers}"
            )
        if self.max_message_length < 1:
            raise ValueError(
                f"max_message_length must be >= 1, got {self.max_message_length}"
            )

    @property
    def worker_cap(self) -> int:
        return self.max_workers if self.max_workers is not None else UNBOUNDED_WORKERS


DEFAULT_LIMITS = RequestLimits()
DEFAULT_ORCHESTRATOR_CONFIG = OrchestratorConfig()


def _parse(environ: Mapping[str, str], key: str, convert):
    raw = environ.get(key)
    if raw is None or raw.strip() == '':
        return None
    try:
        return convert(raw)
    except ValueError as e:
        raise ValueError(f"{key}: cannot parse {raw!r}: {e}") from e


def config_from_env(environ: Mapping[str, str] | None = None) -> OrchestratorConfig:
    """
    Build an OrchestratorConfig from environment variables.

    Unset variables keep their defaults:
        PYGLMMPOWER_TIMEOUT_SECONDS     float, > 0
        PYGLMMPOWER_MAX_WORKERS         int, >= 1
        PYGLMMPOWER_MAX_MESSAGE_LENGTH  int, >= 1

    Args:
        environ: Mapping to read from (default: os.environ)

    Raises:
        ValueError: If a variable is set but invalid
    """
    if environ is None:
        environ = os.environ

    overrides = {}
    timeout = _parse(environ, ENV_TIMEOUT_SECONDS, float)
    if timeout is not None:
        overrides['timeout_seconds'] = timeout
    max_workers = _parse(environ, ENV_MAX_WORKERS, int)
    if max_workers is not None:
        overrides['max_workers'] = max_workers
    max_length = _parse(environ, ENV_MAX_MESSAGE_LENGTH, int)
    if max_length is not None:
        overrides['max_message_length'] = max_length

    return OrchestratorConfig(**overrides)
