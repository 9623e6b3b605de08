"""Typed exceptions for the remote workflow observation protocol."""

from __future__ import annotations


class ObservationError(Exception):
    """Base exception for observation phase failures.

    Attributes:
        phase: Name of the phase that raised the error.
    """

    def __init__(self, message: str, phase: str):
        super().__init__(message)
        self.phase = phase


class RunNotFoundError(ObservationError, TimeoutError):
    """No run matching the observation window and token appeared before the deadline."""


class ExecutorUnavailableError(ObservationError, TimeoutError):
    """Every job of the run stayed queued past the grace deadline.

    Attributes:
        job_counts: Last observed job counts keyed by job state.
    """

    HINT = "is the executor registered?"

    def __init__(self, message: str, phase: str, job_counts: dict[str, int] | None = None):
        super().__init__(f"{message} ({self.HINT})", phase=phase)
        self.job_counts = dict(job_counts or {})


class ObservationCancelledError(ObservationError):
    """The cancellation marker was observed; the phase aborted.

    Attributes:
        marker_path: Marker file that requested the abort.
    """

    def __init__(self, message: str, phase: str, marker_path: str):
        super().__init__(message, phase=phase)
        self.marker_path = marker_path


class ObservationSkippedError(ObservationError):
    """A human declined an interactive observation step."""


class RegistrationTimeoutError(ObservationError, TimeoutError):
    """No executor-processed run appeared before the registration deadline."""


class ObservationFailedError(ObservationError):
    """Orchestrator-level failure naming the phase that failed and why.

    Attributes:
        cause: Typed error raised by the failing phase.
    """

    def __init__(self, phase: str, cause: Exception):
        super().__init__(f"observation failed in phase={phase}: {type(cause).__name__}: {cause}", phase=phase)
        self.cause = cause

    def failure_is_cancellation(self) -> bool:
        """Return whether the failure was a user abort rather than an infrastructure failure."""

        return isinstance(self.cause, ObservationCancelledError)
