"""Canonical workflow API HTTP status semantics for adapter-layer routing."""

from __future__ import annotations

from enum import IntEnum
from typing import Final, Mapping


class GitHubStatusCode(IntEnum):
    """HTTP status codes the workflow API adapter routes on."""

    OK = 200
    CREATED = 201
    NO_CONTENT = 204
    FOUND = 302
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    GONE = 410
    UNPROCESSABLE_ENTITY = 422
    TOO_MANY_REQUESTS = 429
    INTERNAL_SERVER_ERROR = 500
    BAD_GATEWAY = 502
    SERVICE_UNAVAILABLE = 503
    GATEWAY_TIMEOUT = 504


GITHUB_SUCCESS_CODES: Final[frozenset[int]] = frozenset(
    {GitHubStatusCode.OK, GitHubStatusCode.CREATED, GitHubStatusCode.NO_CONTENT}
)

# 404 covers runs, jobs and logs that are not registered yet right after a dispatch.
GITHUB_RETRYABLE_CODES: Final[frozenset[int]] = frozenset(
    {
        GitHubStatusCode.NOT_FOUND,
        GitHubStatusCode.TOO_MANY_REQUESTS,
        GitHubStatusCode.INTERNAL_SERVER_ERROR,
        GitHubStatusCode.BAD_GATEWAY,
        GitHubStatusCode.SERVICE_UNAVAILABLE,
        GitHubStatusCode.GATEWAY_TIMEOUT,
    }
)

GITHUB_AUTHENTICATION_CODES: Final[frozenset[int]] = frozenset(
    {GitHubStatusCode.UNAUTHORIZED, GitHubStatusCode.FORBIDDEN}
)

GITHUB_DEFAULT_MESSAGES: Final[dict[int, str]] = {
    GitHubStatusCode.UNAUTHORIZED.value: "Bad credentials.",
    GitHubStatusCode.FORBIDDEN.value: "Resource not accessible with this token.",
    GitHubStatusCode.NOT_FOUND.value: "Resource not found (yet).",
    GitHubStatusCode.GONE.value: "Resource is gone.",
    GitHubStatusCode.UNPROCESSABLE_ENTITY.value: "Request validation failed.",
    GitHubStatusCode.TOO_MANY_REQUESTS.value: "Secondary rate limit exceeded.",
    GitHubStatusCode.INTERNAL_SERVER_ERROR.value: "Upstream server error.",
    GitHubStatusCode.BAD_GATEWAY.value: "Upstream bad gateway.",
    GitHubStatusCode.SERVICE_UNAVAILABLE.value: "Upstream unavailable.",
    GitHubStatusCode.GATEWAY_TIMEOUT.value: "Upstream gateway timeout.",
}


def github_status_default_message(status_code: int, fallback_message: str) -> str:
    """Return canonical default message for an HTTP status code.

    Args:
        status_code: Upstream HTTP status code.
        fallback_message: Fallback message when code is unknown.

    Returns:
        str: Canonical message for known code, else provided fallback message.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    return GITHUB_DEFAULT_MESSAGES.get(status_code, fallback_message)


def github_status_is_rate_limited(status_code: int, headers: Mapping[str, str]) -> bool:
    """Return whether a response signals primary or secondary rate limiting.

    A `403` only counts as rate limiting when the remaining-quota header is
    exhausted or a `Retry-After` header is present.

    Args:
        status_code: Upstream HTTP status code.
        headers: Response headers (case-insensitive mapping).

    Returns:
        bool: True when the response is a rate-limit rejection.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    if status_code == GitHubStatusCode.TOO_MANY_REQUESTS:
        return True
    if status_code != GitHubStatusCode.FORBIDDEN:
        return False
    return headers.get("x-ratelimit-remaining") == "0" or "retry-after" in headers


def github_status_retry_after_seconds(headers: Mapping[str, str]) -> float | None:
    """Return the server-requested retry delay, when one is provided.

    Args:
        headers: Response headers (case-insensitive mapping).

    Returns:
        float | None: Delay in seconds from `Retry-After`, else None.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    retry_after_value = headers.get("retry-after")
    if retry_after_value is None:
        return None
    try:
        return max(0.0, float(retry_after_value))
    except ValueError:
        return None
