"""Regression tests for the GitHub Actions adapter and capped log downloads."""

from __future__ import annotations

from datetime import datetime, timezone
import json

import httpx
import pytest

from conftest import REPOSITORY
from harness.adapters import (
    GitHubActionsAdapter,
    HttpLogArchiveFetcher,
    LogArchiveFetchError,
    WorkflowApiAuthenticationError,
    WorkflowApiRequestError,
    WorkflowApiResponseError,
    WorkflowApiTimeoutError,
    WorkflowApiTransientError,
)
from harness.domain import JobState, RunConclusion, WorkflowRunStatus


def _build_adapter(handler) -> GitHubActionsAdapter:
    return GitHubActionsAdapter(token="ghp_test", transport=httpx.MockTransport(handler))


def test_adapters_github_list_runs_sends_filters_and_converts_payload() -> None:
    """Send event and page-size filters and convert run fields into domain values.

    Returns:
        None: Assertions validate request shape and conversion.

    Raises:
        AssertionError: Raised when request or conversion drifts.
    """

    captured_requests: list[httpx.Request] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        captured_requests.append(request)
        return httpx.Response(
            200,
            json={
                "total_count": 3,
                "workflow_runs": [
                    {
                        "id": 9001,
                        "name": "test",
                        "display_title": "Test 1772366400",
                        "event": "workflow_dispatch",
                        "status": "completed",
                        "conclusion": "failure",
                        "created_at": "2026-03-01T12:00:30Z",
                        "html_url": "https://github.com/acme/runner-tests/actions/runs/9001",
                    },
                    {"id": 9000, "status": "queued", "conclusion": None, "created_at": "not-a-date"},
                    {"id": 8999, "status": "completed", "conclusion": "quarantined", "created_at": None},
                ],
            },
        )

    runs = _build_adapter(_handler).workflow_list_runs(
        repository=REPOSITORY, workflow_file="test.yml", event="workflow_dispatch", per_page=5
    )

    request = captured_requests[0]
    assert request.url.path == "/repos/acme/runner-tests/actions/workflows/test.yml/runs"
    assert request.url.params["event"] == "workflow_dispatch"
    assert request.url.params["per_page"] == "5"
    assert request.headers["authorization"] == "Bearer ghp_test"
    assert runs[0].run_id == 9001
    assert runs[0].status is WorkflowRunStatus.COMPLETED
    assert runs[0].conclusion is RunConclusion.FAILURE
    assert runs[0].created_at == datetime(2026, 3, 1, 12, 0, 30, tzinfo=timezone.utc)
    assert runs[1].conclusion is None
    assert runs[1].created_at is None
    assert runs[2].conclusion is RunConclusion.UNRECOGNIZED
    assert [run.conclusion_raw for run in runs] == ["failure", "", "quarantined"]


def test_adapters_github_list_jobs_and_get_run() -> None:
    """Request latest-attempt jobs and fetch single runs.

    Returns:
        None: Assertions validate job conversion and single-run lookup.

    Raises:
        AssertionError: Raised when endpoint mapping drifts.
    """

    def _handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/jobs"):
            assert request.url.params["filter"] == "latest"
            return httpx.Response(
                200,
                json={
                    "jobs": [
                        {"id": 1, "name": "build", "status": "in_progress", "runner_name": "runs-on--i-1"},
                        {"id": 2, "name": "", "status": "waiting"},
                    ]
                },
            )
        assert request.url.path == "/repos/acme/runner-tests/actions/runs/501"
        return httpx.Response(200, json={"id": 501, "status": "in_progress", "conclusion": None})

    adapter = _build_adapter(_handler)
    jobs = adapter.workflow_list_jobs(repository=REPOSITORY, run_id=501)
    run = adapter.workflow_get_run(repository=REPOSITORY, run_id=501)

    assert [(job.name, job.state) for job in jobs] == [("build", JobState.IN_PROGRESS), ("job-2", JobState.OTHER)]
    assert jobs[0].runner_name == "runs-on--i-1"
    assert run.status is WorkflowRunStatus.IN_PROGRESS


def test_adapters_github_log_urls_return_redirect_location_or_none() -> None:
    """Return the redirect Location for logs and None while logs are absent or expired.

    Returns:
        None: Assertions validate redirect handling.

    Raises:
        AssertionError: Raised when redirects are followed or misread.
    """

    def _handler(request: httpx.Request) -> httpx.Response:
        if "/jobs/11/" in request.url.path:
            return httpx.Response(302, headers={"Location": "https://logs.example.com/job-11.txt"})
        if "/jobs/12/" in request.url.path:
            return httpx.Response(404, json={"message": "Not Found"})
        return httpx.Response(410, json={"message": "Gone"})

    adapter = _build_adapter(_handler)

    assert adapter.workflow_get_job_logs_url(REPOSITORY, 11) == "https://logs.example.com/job-11.txt"
    assert adapter.workflow_get_job_logs_url(REPOSITORY, 12) is None
    assert adapter.workflow_get_run_logs_url(REPOSITORY, 501) is None


@pytest.mark.parametrize(
    ("status_code", "headers", "expected_error"),
    [
        (429, {"Retry-After": "7"}, WorkflowApiTransientError),
        (403, {"x-ratelimit-remaining": "0"}, WorkflowApiTransientError),
        (403, {}, WorkflowApiAuthenticationError),
        (401, {}, WorkflowApiAuthenticationError),
        (404, {}, WorkflowApiTransientError),
        (503, {}, WorkflowApiTransientError),
        (422, {}, WorkflowApiRequestError),
    ],
)
def test_adapters_github_status_codes_map_to_typed_errors(
    status_code: int, headers: dict[str, str], expected_error: type[Exception]
) -> None:
    """Map upstream statuses onto transient, authentication and request errors.

    Args:
        status_code: Upstream status code.
        headers: Upstream response headers.
        expected_error: Expected exception type.

    Returns:
        None: Assertions validate error routing.

    Raises:
        AssertionError: Raised when a status is routed to the wrong error.
    """

    def _handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, headers=headers, json={"message": "upstream says no"})

    with pytest.raises(expected_error) as error_info:
        _build_adapter(_handler).workflow_get_run(REPOSITORY, 501)

    assert error_info.value.status_code == status_code
    if status_code == 429:
        assert error_info.value.retry_after_seconds == 7.0
    if expected_error is WorkflowApiAuthenticationError:
        assert not isinstance(error_info.value, WorkflowApiTransientError)


def test_adapters_github_transport_timeout_and_bad_payload() -> None:
    """Raise a transient timeout error for transport timeouts and a response error for bad JSON.

    Returns:
        None: Assertions validate transport and payload failure mapping.

    Raises:
        AssertionError: Raised when failures are misclassified.
    """

    def _raise_timeout(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(WorkflowApiTimeoutError) as timeout_info:
        _build_adapter(_raise_timeout).workflow_list_jobs(REPOSITORY, 501)
    assert isinstance(timeout_info.value, WorkflowApiTransientError)

    def _return_html(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>maintenance</html>")

    with pytest.raises(WorkflowApiResponseError):
        _build_adapter(_return_html).workflow_list_jobs(REPOSITORY, 501)

    def _return_wrong_shape(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"runs": []})

    with pytest.raises(WorkflowApiResponseError, match="workflow_runs"):
        _build_adapter(_return_wrong_shape).workflow_list_runs(REPOSITORY, "test.yml")


def test_adapters_github_dispatch_posts_ref_and_inputs() -> None:
    """Post the ref and inputs to the dispatch endpoint.

    Returns:
        None: Assertions validate dispatch request body.

    Raises:
        AssertionError: Raised when the dispatch payload drifts.
    """

    captured_requests: list[httpx.Request] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        captured_requests.append(request)
        return httpx.Response(204)

    _build_adapter(_handler).workflow_dispatch(
        repository=REPOSITORY, workflow_file="test.yml", ref="main", inputs={"test_id": "1772366400"}
    )

    request = captured_requests[0]
    assert request.method == "POST"
    assert request.url.path == "/repos/acme/runner-tests/actions/workflows/test.yml/dispatches"
    assert json.loads(request.content) == {"ref": "main", "inputs": {"test_id": "1772366400"}}


def test_adapters_github_rejects_blank_token_and_invalid_page_size() -> None:
    """Reject blank tokens and out-of-range page sizes before any request.

    Returns:
        None: Assertions validate input guards.

    Raises:
        AssertionError: Raised when invalid input is accepted.
    """

    with pytest.raises(ValueError, match="token"):
        GitHubActionsAdapter(token="  ")

    def _unexpected(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    with pytest.raises(ValueError, match="per_page"):
        _build_adapter(_unexpected).workflow_list_runs(REPOSITORY, "test.yml", per_page=101)


def test_adapters_log_archive_fetcher_stops_at_byte_cap() -> None:
    """Return only the first `max_bytes` bytes of a long body.

    Returns:
        None: Assertions validate truncation.

    Raises:
        AssertionError: Raised when the cap is exceeded.
    """

    def _handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"x" * 5000 + b"1772366400")

    fetcher = HttpLogArchiveFetcher(transport=httpx.MockTransport(_handler))

    assert fetcher.fetcher_download("https://logs.example.com/job.txt", max_bytes=100) == b"x" * 100
    assert fetcher.fetcher_download("https://logs.example.com/job.txt", max_bytes=10_000).endswith(b"1772366400")


def test_adapters_log_archive_fetcher_raises_fetch_error_for_http_failures() -> None:
    """Raise LogArchiveFetchError for expired pre-signed URLs and transport failures.

    Returns:
        None: Assertions validate failure mapping.

    Raises:
        AssertionError: Raised when failures leak as raw httpx errors.
    """

    def _expired(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, text="AuthenticationFailed")

    with pytest.raises(LogArchiveFetchError) as error_info:
        HttpLogArchiveFetcher(transport=httpx.MockTransport(_expired)).fetcher_download("https://logs/x", 100)
    assert error_info.value.status_code == 403

    def _refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(LogArchiveFetchError, match="transport"):
        HttpLogArchiveFetcher(transport=httpx.MockTransport(_refuse)).fetcher_download("https://logs/x", 100)
    with pytest.raises(ValueError, match="max_bytes"):
        HttpLogArchiveFetcher().fetcher_download("https://logs/x", 0)


def test_adapters_unreadable_bodies_map_to_retryable_errors() -> None:
    """Map corrupt compressed bodies and redirect loops onto typed errors.

    Returns:
        None: Assertions validate decoding and redirect failure mapping.

    Raises:
        AssertionError: Raised when raw httpx errors leak out of the adapters.
    """

    def _corrupt_gzip(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, headers={"content-encoding": "gzip"}, content=b"not-gzip")

    with pytest.raises(WorkflowApiTransientError, match="DecodingError"):
        _build_adapter(_corrupt_gzip).workflow_list_runs(REPOSITORY, "test.yml")
    with pytest.raises(LogArchiveFetchError, match="DecodingError"):
        HttpLogArchiveFetcher(transport=httpx.MockTransport(_corrupt_gzip)).fetcher_download("https://logs/x", 100)

    def _redirect_loop(request: httpx.Request) -> httpx.Response:
        return httpx.Response(302, headers={"Location": "https://logs/x"})

    with pytest.raises(LogArchiveFetchError, match="TooManyRedirects"):
        HttpLogArchiveFetcher(transport=httpx.MockTransport(_redirect_loop)).fetcher_download("https://logs/x", 100)
