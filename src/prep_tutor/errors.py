"""Exception taxonomy for the practice engine."""
import asyncio
from typing import Optional

RETRYABLE_CODES = {"NETWORK_ERROR", "TIMEOUT", "CONNECTION_REFUSED"}


class TutorError(Exception):
    """Base class for every error raised by the engine."""


class ValidationError(TutorError):
    """Malformed or empty answer. Never changes session state."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class SessionStateError(TutorError):
    """Operation is not valid in the session's current state."""


class LoadError(TutorError):
    """The item provider failed or returned nothing to practice."""


class GradingError(TutorError):
    def __init__(self, message: str, status: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.code = code


class TransientGradingError(GradingError):
    """Offline, timeout or 5xx-class failure. Retried."""


class PermanentGradingError(GradingError):
    """4xx-class or validation failure from the grader. Not retried."""


class PersistenceError(TutorError):
    """Session or card store failure. Always non-fatal."""


def classify_grading_error(exc: BaseException) -> GradingError:
    """Map any grader failure onto the transient/permanent split."""
    if isinstance(exc, GradingError) and type(exc) is not GradingError:
        return exc
    status = getattr(exc, "status", None)
    code = getattr(exc, "code", None)
    message = str(exc) or type(exc).__name__
    if isinstance(exc, (asyncio.TimeoutError, TimeoutError, ConnectionError, OSError)):
        return TransientGradingError(message, status=status, code=code or "NETWORK_ERROR")
    if isinstance(status, int) and status >= 500:
        return TransientGradingError(message, status=status, code=code)
    if code in RETRYABLE_CODES:
        return TransientGradingError(message, status=status, code=code)
    return PermanentGradingError(message, status=status, code=code)
