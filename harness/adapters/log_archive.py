"""Capped HTTP log download adapter."""

from __future__ import annotations

import logging

import httpx

from .github_errors import LogArchiveFetchError
from .interfaces import LogArchiveFetcherPort

logger = logging.getLogger(__name__)


class HttpLogArchiveFetcher(LogArchiveFetcherPort):
    """Stream log archives from pre-signed URLs without reading past a byte cap.

    Log URLs returned by the workflow API are pre-signed, so requests carry no
    credentials. Archives are zip files for whole runs and plain text for
    single jobs; callers scan the raw bytes either way.
    """

    def __init__(self, request_timeout_seconds: float = 30.0, transport: httpx.BaseTransport | None = None):
        """Initialize fetcher.

        Args:
            request_timeout_seconds: HTTP request timeout in seconds.
            transport: Optional httpx transport, used by tests to fake upstream.

        Raises:
            ValueError: Raised when the timeout is not positive.
        """

        if request_timeout_seconds <= 0:
            raise ValueError("request_timeout_seconds must be > 0")
        self._client = httpx.Client(timeout=request_timeout_seconds, follow_redirects=True, transport=transport)

    def __enter__(self) -> "HttpLogArchiveFetcher":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.fetcher_close()

    def fetcher_close(self) -> None:
        """Close the underlying HTTP connection pool."""

        self._client.close()

    def fetcher_download(self, url: str, max_bytes: int) -> bytes:
        """Download at most `max_bytes` bytes from `url`.

        Args:
            url: Pre-signed download URL.
            max_bytes: Byte cap; the stream is closed once reached.

        Returns:
            bytes: Downloaded prefix of the body.

        Raises:
            ValueError: Raised when the URL is blank or the cap is not positive.
            LogArchiveFetchError: Raised for transport failures and non-2xx responses.
        """

        normalized_url = url.strip()
        if not normalized_url:
            raise ValueError("url must not be blank")
        if max_bytes < 1:
            raise ValueError("max_bytes must be >= 1")

        collected = bytearray()
        try:
            with self._client.stream("GET", normalized_url) as response:
                if response.status_code >= 400:
                    raise LogArchiveFetchError(
                        f"log download returned HTTP {response.status_code}",
                        status_code=response.status_code,
                    )
                for chunk in response.iter_bytes():
                    remaining = max_bytes - len(collected)
                    collected.extend(chunk[:remaining])
                    if len(collected) >= max_bytes:
                        logger.debug("Log download reached %d byte cap", max_bytes)
                        break
        except httpx.TimeoutException as error:
            raise LogArchiveFetchError("log download timed out") from error
        except httpx.TransportError as error:
            raise LogArchiveFetchError("log download transport failure") from error
        except httpx.RequestError as error:
            raise LogArchiveFetchError(f"log download failed: {type(error).__name__}") from error
        return bytes(collected)
