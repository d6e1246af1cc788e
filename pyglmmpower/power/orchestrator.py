"""
Bounded-time execution of the power engine.

A ComputationOrchestrator owns (or is handed) a worker pool. Each request
submits one parameter bundle as a single unit of work and waits for it up
to a deadline. The outcome is classified exactly once:

    success             -> Result[tuple[EngineResult, ...]]
    deadline expired    -> ComputationTimeout (cancellation is signalled)
    engine rejected it  -> BadInputError with a truncated message
    out of memory       -> BadInputError with a fixed message
    anything else       -> InternalComputationError with a fixed message

Full detail is always logged; only the client message is returned.

Cancellation is cooperative. Work that has not started is removed from the
queue. Work that is running gets its cancel_event set, which only engines
advertising CAPABILITY_CANCELLATION observe; other engines keep running
on their worker after the caller has been told the request timed out.
Failed or timed-out computations are never retried.

Worker threads are created on demand and reused while idle. Idle threads
are not retired before shutdown().
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterable
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_for_futures
from enum import Enum
from typing import Any

from pyglmmpower.core.capabilities import CAPABILITY_CANCELLATION
from pyglmmpower.core.config import OrchestratorConfig, DEFAULT_ORCHESTRATOR_CONFIG
from pyglmmpower.core.exceptions import (
    BadInputError,
    ComputationTimeout,
    EngineValidationError,
    InternalComputationError,
    ValidationError,
    truncate_message,
)
from pyglmmpower.core.protocols import PowerEngine
from pyglmmpower.core.result import Result
from pyglmmpower.power._common import EngineResult, ParameterBundle

logger = logging.getLogger(__name__)

INSUFFICIENT_MEMORY_MESSAGE = "Insufficient memory to process this study design"


class ComputationState(str, Enum):
    SUBMITTED = "SUBMITTED"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    TIMED_OUT = "TIMED_OUT"
    FAILED = "FAILED"


_TERMINAL = frozenset({
    ComputationState.COMPLETED,
    ComputationState.TIMED_OUT,
    ComputationState.FAILED,
})


class ComputationHandle:
    """
    One submitted computation.

    State moves SUBMITTED -> RUNNING -> {COMPLETED | TIMED_OUT | FAILED};
    a computation that times out while still queued skips RUNNING. Once a
    terminal state is reached it never changes.

    Attributes:
        future: Future of the engine call
        cancel_event: Set when the caller stops waiting
        submitted_at: perf_counter() at submission
        started_at: perf_counter() when a worker picked it up, or None
        finished_at: perf_counter() when a terminal state was reached, or None
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._state = ComputationState.SUBMITTED
        self.future: Future | None = None
        self.cancel_event = threading.Event()
        self.submitted_at = time.perf_counter()
        self.started_at: float | None = None
        self.finished_at: float | None = None

    @property
    def state(self) -> ComputationState:
        with self._lock:
            return self._state

    @property
    def done(self) -> bool:
        return self.state in _TERMINAL

    def _start(self) -> bool:
        """Worker side: SUBMITTED -> RUNNING. False if already terminal."""
        with self._lock:
            if self._state != ComputationState.SUBMITTED:
                return False
            self._state = ComputationState.RUNNING
            self.started_at = time.perf_counter()
            return True

    def _finish(self, state: ComputationState) -> None:
        with self._lock:
            if self._state in _TERMINAL:
                return
            self._state = state
            self.finished_at = time.perf_counter()

    def cancel(self) -> bool:
        """
        Signal cancellation.

        Returns:
            True if the work was still queued and will never run
        """
        self.cancel_event.set()
        return self.future.cancel() if self.future is not None else False

    def timing(self) -> dict[str, float]:
        """Seconds spent queued, computing, and in total (so far)."""
        end = self.finished_at if self.finished_at is not None else time.perf_counter()
        timing = {'total_seconds': end - self.submitted_at}
        if self.started_at is not None:
            timing['queued'] = self.started_at - self.submitted_at
            timing['compute'] = end - self.started_at
        else:
            timing['queued'] = end - self.submitted_at
        return timing

    def __repr__(self) -> str:
        return f"ComputationHandle(state={self.state.value})"


class FunctionEngine:
    """
    PowerEngine backed by a plain callable ``func(bundle, **kwargs)``.

    Args:
        func: Computes the engine results for one bundle
        name: Engine identifier
        capabilities: Capability strings the callable honours. With
            CAPABILITY_CANCELLATION, func receives ``cancel_event``.
    """

    def __init__(
        self,
        func: Callable[..., Iterable[EngineResult]],
        name: str = 'function',
        capabilities: Iterable[str] = (),
    ):
        self._func = func
        self._name = name
        self._capabilities = frozenset(capabilities)

    @property
    def name(self) -> str:
        return self._name

    def supports(self, capability: str) -> bool:
        return capability in self._capabilities

    def solve(self, bundle: ParameterBundle, **kwargs: Any) -> list[EngineResult]:
        return list(self._func(bundle, **kwargs))


class ComputationOrchestrator:
    """
    Runs a power engine on a worker pool with a deadline.

    Args:
        engine: The power engine
        config: Deadline, pool and message settings
        executor: Worker pool to use instead of an owned ThreadPoolExecutor.
            An injected executor is not shut down by shutdown().

    Usage:
        with ComputationOrchestrator(engine) as orchestrator:
            result = orchestrator.run(bundle)
            result.params   # tuple of EngineResult
    """

    def __init__(
        self,
        engine: PowerEngine,
        config: OrchestratorConfig = DEFAULT_ORCHESTRATOR_CONFIG,
        executor: Executor | None = None,
    ):
        self._engine = engine
        self._config = config
        self._owns_executor = executor is None
        if executor is None:
            executor = ThreadPoolExecutor(
                max_workers=config.worker_cap,
                thread_name_prefix=config.thread_name_prefix,
            )
        self._executor = executor

    @property
    def engine(self) -> PowerEngine:
        return self._engine

    @property
    def config(self) -> OrchestratorConfig:
        return self._config

    def _execute(self, handle: ComputationHandle, bundle: ParameterBundle) -> list[EngineResult]:
        if not handle._start() or handle.cancel_event.is_set():
            return []
        kwargs = {}
        if self._engine.supports(CAPABILITY_CANCELLATION):
            kwargs['cancel_event'] = handle.cancel_event
        return list(self._engine.solve(bundle, **kwargs))

    def submit(self, bundle: ParameterBundle) -> ComputationHandle:
        """
        Queue one computation without waiting for it.

        Raises:
            RuntimeError: If the orchestrator has been shut down
        """
        handle = ComputationHandle()
        handle.future = self._executor.submit(self._execute, handle, bundle)
        logger.debug("Submitted computation to engine %r", self._engine.name)
        return handle

    def wait(
        self,
        handle: ComputationHandle,
        timeout: float | None = None,
    ) -> Result[tuple[EngineResult, ...]]:
        """
        Wait for a submitted computation and classify its outcome.

        Args:
            handle: Handle returned by submit()
            timeout: Deadline in seconds (default: config.timeout_seconds)

        Returns:
            Result whose params are the engine results, in engine order

        Raises:
            ComputationTimeout: Deadline expired; cancellation was signalled
            BadInputError: Engine rejected the bundle or ran out of memory
            InternalComputationError: Any other engine failure
        """
        if timeout is None:
            timeout = self._config.timeout_seconds

        done, _ = wait_for_futures([handle.future], timeout=timeout)
        if not done:
            dequeued = handle.cancel()
            handle._finish(ComputationState.TIMED_OUT)
            logger.warning(
                "Computation on engine %r timed out after %.3fs (%s)",
                self._engine.name, timeout,
                "removed from queue" if dequeued else "worker signalled to stop",
            )
            raise ComputationTimeout(timeout_seconds=timeout, cancelled=dequeued)

        if handle.future.cancelled():
            handle._finish(ComputationState.FAILED)
            logger.error("Computation on engine %r was cancelled before it ran",
                         self._engine.name)
            raise InternalComputationError()

        error = handle.future.exception()
        if error is None:
            handle._finish(ComputationState.COMPLETED)
            results = tuple(handle.future.result())
            timing = handle.timing()
            logger.info(
                "Computation on engine %r completed: %d results in %.3fs",
                self._engine.name, len(results), timing['total_seconds'],
            )
            return Result(
                params=results,
                info={
                    'engine': self._engine.name,
                    'n_results': len(results),
                    'state': ComputationState.COMPLETED.value,
                },
                timing=timing,
                backend_name=self._engine.name,
            )

        handle._finish(ComputationState.FAILED)
        raise self._classify(error) from error

    def _classify(self, error: BaseException) -> Exception:
        if isinstance(error, (ValidationError, EngineValidationError)):
            logger.warning("Engine %r rejected the request: %s",
                           self._engine.name, error, exc_info=error)
            return BadInputError(
                truncate_message(str(error), self._config.max_message_length)
            )
        if isinstance(error, MemoryError):
            logger.error("Engine %r ran out of memory",
                         self._engine.name, exc_info=error)
            return BadInputError(INSUFFICIENT_MEMORY_MESSAGE)
        logger.error("Engine %r failed", self._engine.name, exc_info=error)
        return InternalComputationError()

    def run(
        self,
        bundle: ParameterBundle,
        timeout: float | None = None,
    ) -> Result[tuple[EngineResult, ...]]:
        """Submit a bundle and wait for it. See wait() for outcomes."""
        return self.wait(self.submit(bundle), timeout=timeout)

    def shutdown(self, wait: bool = False) -> None:
        """
        Release the owned worker pool. Queued work is cancelled; running
        work is abandoned unless wait is True.
        """
        if self._owns_executor:
            self._executor.shutdown(wait=wait, cancel_futures=True)

    def __enter__(self) -> 'ComputationOrchestrator':
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown(wait=False)
