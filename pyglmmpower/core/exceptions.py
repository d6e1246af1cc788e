"""
Exception hierarchy for PyGLMMPower.

All exceptions inherit from PyGLMMPowerError to allow catching any
library-specific error. Two families matter to callers:

    - ValidationError and subclasses: the study design itself is wrong.
      Raised synchronously, before any computation is submitted.
    - ComputationError and subclasses: the power engine was invoked and the
      request failed there (timeout, rejected input, crash). These are
      classified exactly once, at the orchestrator boundary.

Design principles:
    - Exceptions carry diagnostic information as attributes
    - Error messages are actionable with actual vs expected values
    - Messages shown to callers after a computation failure are bounded
"""

MAX_MESSAGE_LENGTH = 50
TRUNCATION_SUFFIX = " ... (more text deleted) ..."


def truncate_message(message: str, max_length: int = MAX_MESSAGE_LENGTH) -> str:
    """
    Bound a caller-facing message to ``max_length`` characters.

    Messages longer than the limit keep their first ``max_length``
    characters followed by TRUNCATION_SUFFIX.
    """
    if len(message) <= max_length:
        return message
    return message[:max_length] + TRUNCATION_SUFFIX


class PyGLMMPowerError(Exception):
    """Base exception for all PyGLMMPower errors."""
    pass


class ValidationError(PyGLMMPowerError):
    """
    Input validation failed.

    Raised when a study design fails structural checks or when the
    matrices derived from it are inconsistent.
    """
    pass


class DimensionError(ValidationError):
    """
    Matrix dimensions are incorrect or inconsistent.

    Attributes:
        matrix_name: Name of the offending matrix, if known
        expected: Expected shape or size, if known
        actual: Actual shape or size, if known
    """

    def __init__(
        self,
        message: str,
        matrix_name: str | None = None,
        expected: tuple[int, ...] | int | None = None,
        actual: tuple[int, ...] | int | None = None,
    ):
        super().__init__(message)
        self.matrix_name = matrix_name
        self.expected = expected
        self.actual = actual


class CaseLimitError(ValidationError):
    """
    The request is too large to be served.

    Raised when the number of groups or the number of sweep cases exceeds
    the configured limit.

    Attributes:
        limit: The configured maximum
        actual: The size of this request
        breakdown: ``(label, count)`` pairs whose product is ``actual``
    """

    def __init__(
        self,
        message: str,
        limit: int,
        actual: int,
        breakdown: tuple[tuple[str, int], ...] = (),
    ):
        super().__init__(message)
        self.limit = limit
        self.actual = actual
        self.breakdown = breakdown


class EngineValidationError(PyGLMMPowerError):
    """
    The power engine rejected its numeric input.

    Engines raise this for malformed parameter bundles the design
    validator did not catch.

    Attributes:
        error_code: Engine-specific error code, if any
    """

    def __init__(self, message: str, error_code: str | None = None):
        super().__init__(message)
        self.error_code = error_code


class ComputationError(PyGLMMPowerError):
    """
    A submitted computation did not produce results.

    Attributes:
        client_message: Message safe to return to the caller
        client_error: True if the caller caused the failure
    """
    client_error = False

    def __init__(self, client_message: str):
        super().__init__(client_message)
        self.client_message = client_message


class ComputationTimeout(ComputationError):
    """The computation did not finish within its deadline."""
    client_error = True

    def __init__(
        self,
        client_message: str = "Request timed out during computation",
        timeout_seconds: float | None = None,
        cancelled: bool = False,
    ):
        super().__init__(client_message)
        self.timeout_seconds = timeout_seconds
        self.cancelled = cancelled


class BadInputError(ComputationError):
    """The engine rejected the request or ran out of memory processing it."""
    client_error = True


class InternalComputationError(ComputationError):
    """Unexpected failure inside the engine. Detail is logged, not returned."""
    client_error = False

    def __init__(self, client_message: str = "Exception during computation"):
        super().__init__(client_message)
