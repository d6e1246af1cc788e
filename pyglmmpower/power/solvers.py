"""
Power analysis solver dispatch.

Public API:
    power(design, engine, ...) -> PowerSolution
    sample_size(design, engine, ...) -> PowerSolution
    detectable_difference(design, engine, ...) -> PowerSolution
    matrices(design) -> dict[str, ndarray]

Validation and matrix assembly run synchronously in the calling thread;
only the engine call is handed to the orchestrator. Design errors
therefore surface as ValidationError before any engine work starts.

Calls without an orchestrator share one process-wide worker pool, created
on first use with the configuration read from the environment
(config_from_env) and shut down at interpreter exit. The timeout and
message settings are re-read on every call.
"""

from __future__ import annotations

import atexit
import logging
import threading
import warnings
from concurrent.futures import ThreadPoolExecutor
from typing import Any

import numpy as np
from numpy.typing import NDArray

from pyglmmpower.core.compute.timing import Timer
from pyglmmpower.core.config import (
    DEFAULT_LIMITS,
    OrchestratorConfig,
    RequestLimits,
    config_from_env,
)
from pyglmmpower.core.exceptions import ValidationError
from pyglmmpower.core.protocols import PowerEngine
from pyglmmpower.core.result import Result
from pyglmmpower.power._common import PowerSweepParams, SolutionType
from pyglmmpower.power._params import build_parameters, named_matrices
from pyglmmpower.power._translate import translate
from pyglmmpower.power._validate import design_warnings
from pyglmmpower.power.design import StudyDesign
from pyglmmpower.power.orchestrator import ComputationOrchestrator
from pyglmmpower.power.solution import PowerSolution

logger = logging.getLogger(__name__)

_default_executor: ThreadPoolExecutor | None = None
_default_executor_lock = threading.Lock()


def _shared_executor(config: OrchestratorConfig) -> ThreadPoolExecutor:
    global _default_executor
    with _default_executor_lock:
        if _default_executor is None:
            _default_executor = ThreadPoolExecutor(
                max_workers=config.worker_cap,
                thread_name_prefix=config.thread_name_prefix,
            )
            atexit.register(_default_executor.shutdown, wait=False, cancel_futures=True)
            logger.debug("Created shared worker pool (cap %d)", config.worker_cap)
        return _default_executor


def _solve(
    design: StudyDesign,
    solution_type: SolutionType,
    engine: PowerEngine | None,
    orchestrator: ComputationOrchestrator | None,
    timeout: float | None,
    limits: RequestLimits,
) -> PowerSolution:
    if engine is None and orchestrator is None:
        raise ValidationError("Either an engine or an orchestrator is required")
    if engine is not None and orchestrator is not None and orchestrator.engine is not engine:
        raise ValidationError("engine and orchestrator.engine differ; pass only one")

    timer = Timer()
    timer.start()

    design = design.with_solution_type(solution_type)
    with timer.section('assemble'):
        bundle = build_parameters(design, limits)

    warn_list = list(design_warnings(design))
    for message in warn_list:
        warnings.warn(message, UserWarning, stacklevel=3)

    if orchestrator is None:
        config = config_from_env()
        orchestrator = ComputationOrchestrator(
            engine, config, executor=_shared_executor(config))
    with timer.section('compute'):
        computed = orchestrator.run(bundle, timeout=timeout)

    with timer.section('translate'):
        results = translate(computed.params)

    n_errors = sum(1 for r in results if r.error_message)
    if n_errors:
        warn_list.append(f"{n_errors} of {len(results)} results reported an error")

    timer.stop()
    timing = timer.result()
    if computed.timing is not None and 'queued' in computed.timing:
        timing['queued'] = computed.timing['queued']

    logger.info("%s request produced %d results in %.3fs",
                solution_type.value, len(results), timing['total_seconds'])

    result = Result(
        params=PowerSweepParams(solution_type=solution_type, results=results),
        info={
            'solution_type': solution_type.value,
            'view_type': design.view_type.value,
            'gaussian_covariate': design.gaussian_covariate,
            'n_results': len(results),
            'n_errors': n_errors,
        },
        timing=timing,
        backend_name=computed.backend_name,
        warnings=tuple(warn_list),
    )
    return PowerSolution(_result=result)


def power(
    design: StudyDesign,
    engine: PowerEngine | None = None,
    *,
    orchestrator: ComputationOrchestrator | None = None,
    timeout: float | None = None,
    limits: RequestLimits = DEFAULT_LIMITS,
) -> PowerSolution:
    """
    Compute power for every point of the design's sweep.

    Args:
        design: Study design; its solution type is overridden to POWER
        engine: Power engine, run on the shared worker pool with the
            environment configuration (see config_from_env)
        orchestrator: Long-lived orchestrator to run on instead of engine
        timeout: Deadline in seconds (default: orchestrator configuration,
            or PYGLMMPOWER_TIMEOUT_SECONDS on the shared pool)
        limits: Group and case limits

    Returns:
        PowerSolution with one PowerResult per sweep point

    Raises:
        ValidationError: Invalid or too large design (before any engine call)
        ComputationTimeout: The engine missed the deadline
        BadInputError: The engine rejected the bundle or ran out of memory
        InternalComputationError: Any other engine failure
        ValueError: Invalid PYGLMMPOWER_* environment configuration

    Examples:
        >>> solution = power(design, engine)
        >>> print(solution.summary())
        >>> solution.actual_powers
    """
    return _solve(design, SolutionType.POWER, engine, orchestrator, timeout, limits)


def sample_size(
    design: StudyDesign,
    engine: PowerEngine | None = None,
    *,
    orchestrator: ComputationOrchestrator | None = None,
    timeout: float | None = None,
    limits: RequestLimits = DEFAULT_LIMITS,
) -> PowerSolution:
    """
    Compute the total sample size needed to reach each nominal power.

    Arguments and errors as for power().
    """
    return _solve(design, SolutionType.SAMPLE_SIZE, engine, orchestrator, timeout, limits)


def detectable_difference(
    design: StudyDesign,
    engine: PowerEngine | None = None,
    *,
    orchestrator: ComputationOrchestrator | None = None,
    timeout: float | None = None,
    limits: RequestLimits = DEFAULT_LIMITS,
) -> PowerSolution:
    """
    Compute the smallest detectable difference for each sweep point.

    Arguments and errors as for power().
    """
    return _solve(design, SolutionType.DETECTABLE_DIFFERENCE, engine, orchestrator,
                  timeout, limits)


def matrices(
    design: StudyDesign,
    limits: RequestLimits = DEFAULT_LIMITS,
) -> dict[str, NDArray[np.floating[Any]]]:
    """
    Intermediate named matrices for a design, without running an engine.

    Keys are the MATRIX_* names (design, beta, betweenSubjectContrast,
    withinSubjectContrast, thetaNull, sigmaError, ...). Matrices that
    cannot be built for an incomplete design are left out.

    Raises:
        ValidationError: Invalid design
    """
    return named_matrices(design, limits)
