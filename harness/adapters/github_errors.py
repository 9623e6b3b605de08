"""Project-native typed exceptions for workflow API adapter failures."""

from __future__ import annotations


class WorkflowApiError(Exception):
    """Base exception for adapter-level workflow API failures.

    Attributes:
        status_code: Optional HTTP status code returned upstream.
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class WorkflowApiTransientError(WorkflowApiError, ConnectionError):
    """Retryable failure: network blip, rate limit, server error or not-yet-registered resource."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        retry_after_seconds: float | None = None,
    ):
        super().__init__(message=message, status_code=status_code)
        self.retry_after_seconds = retry_after_seconds


class WorkflowApiTimeoutError(WorkflowApiTransientError, TimeoutError):
    """Transport timeout while waiting for a workflow API response."""


class WorkflowApiRequestError(WorkflowApiError, ValueError):
    """Non-retryable request rejection such as bad credentials or invalid inputs."""


class WorkflowApiAuthenticationError(WorkflowApiRequestError):
    """Token missing, expired or lacking the required scopes (`401`/`403`)."""


class WorkflowApiResponseError(WorkflowApiError, RuntimeError):
    """Upstream response violated the expected JSON contract."""


class LogArchiveFetchError(WorkflowApiTransientError):
    """Log archive download failed; callers treat the archive as not yet available."""
