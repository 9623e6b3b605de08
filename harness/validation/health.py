"""Health endpoint validator for the deployed control-plane service."""

from __future__ import annotations

import logging
import time
from typing import Callable

import httpx

from .validation_errors import ValidationAssertionError

logger = logging.getLogger(__name__)


def validation_health_url(service_url: str) -> str:
    """Return the `/ping` URL of a service given as host or URL."""

    normalized_url = service_url.strip().rstrip("/")
    if not normalized_url.startswith(("http://", "https://")):
        normalized_url = f"https://{normalized_url}"
    return f"{normalized_url}/ping"


def validation_service_healthy(
    service_url: str,
    max_attempts: int = 10,
    retry_interval_seconds: float = 30.0,
    request_timeout_seconds: float = 10.0,
    sleeper: Callable[[float], None] = time.sleep,
    transport: httpx.BaseTransport | None = None,
) -> int:
    """Poll `/ping` until it returns HTTP 200.

    Args:
        service_url: Service host name or base URL.
        max_attempts: Attempts before failing.
        retry_interval_seconds: Sleep after each failed attempt.
        request_timeout_seconds: Timeout of each request.
        sleeper: Sleep function.
        transport: Optional httpx transport override for tests.

    Returns:
        int: Number of attempts used.

    Raises:
        ValueError: Raised when `max_attempts` is not positive.
        ValidationAssertionError: Raised when no attempt returned 200.
    """

    if max_attempts <= 0:
        raise ValueError("max_attempts must be > 0")

    health_url = validation_health_url(service_url)
    last_failure = "no attempt made"
    with httpx.Client(timeout=request_timeout_seconds, transport=transport) as client:
        for attempt_number in range(1, max_attempts + 1):
            try:
                response = client.get(health_url)
            except httpx.HTTPError as error:
                last_failure = f"{type(error).__name__}: {error}"
                logger.info("Health check attempt %d/%d failed: %s", attempt_number, max_attempts, last_failure)
            else:
                if response.status_code == 200:
                    logger.info("Health check passed after %d attempts", attempt_number)
                    return attempt_number
                last_failure = f"unexpected status code: {response.status_code}"
                logger.info("Health check attempt %d/%d: status %d", attempt_number, max_attempts, response.status_code)
            if attempt_number < max_attempts:
                sleeper(retry_interval_seconds)

    raise ValidationAssertionError(
        f"Health check of {health_url} failed after {max_attempts} attempts: {last_failure}",
        check_name="service_health",
        resource=health_url,
    )
