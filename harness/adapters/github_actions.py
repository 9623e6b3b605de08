"""GitHub Actions REST adapter implementation for workflow run observation."""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import Any, Final, Mapping
from urllib.parse import quote

import httpx

from harness.domain import (
    JobState,
    RepositoryCoordinate,
    RunConclusion,
    WorkflowJob,
    WorkflowRun,
    WorkflowRunStatus,
)

from .github_errors import (
    WorkflowApiAuthenticationError,
    WorkflowApiRequestError,
    WorkflowApiResponseError,
    WorkflowApiTimeoutError,
    WorkflowApiTransientError,
)
from .github_status_codes import (
    GITHUB_AUTHENTICATION_CODES,
    GITHUB_RETRYABLE_CODES,
    GITHUB_SUCCESS_CODES,
    GitHubStatusCode,
    github_status_default_message,
    github_status_is_rate_limited,
    github_status_retry_after_seconds,
)
from .interfaces import WorkflowApiPort

logger = logging.getLogger(__name__)


class GitHubActionsAdapter(WorkflowApiPort):
    """Adapter for the GitHub Actions runs, jobs, logs and dispatch endpoints."""

    _USER_AGENT: Final[str] = "runner-stack-harness/1.0 (Python/httpx)"
    _API_VERSION: Final[str] = "2022-11-28"
    _LOG_UNAVAILABLE_CODES: Final[frozenset[int]] = frozenset({GitHubStatusCode.NOT_FOUND, GitHubStatusCode.GONE})

    def __init__(
        self,
        token: str,
        base_url: str = "https://api.github.com",
        request_timeout_seconds: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the GitHub Actions adapter.

        Args:
            token: API token with `actions:read` (and `actions:write` for dispatch).
            base_url: REST API base URL.
            request_timeout_seconds: HTTP request timeout in seconds.
            transport: Optional httpx transport, used by tests to fake upstream.

        Returns:
            None: Initializer does not return a value.

        Raises:
            ValueError: Raised when required config values are invalid.
        """

        normalized_token = token.strip()
        normalized_base_url = base_url.strip()

        if not normalized_token:
            raise ValueError("token must not be blank")
        if not normalized_base_url:
            raise ValueError("base_url must not be blank")
        if request_timeout_seconds <= 0:
            raise ValueError("request_timeout_seconds must be > 0")

        self._client = httpx.Client(
            base_url=normalized_base_url.rstrip("/"),
            headers={
                "Accept": "application/vnd.github+json",
                "Authorization": f"Bearer {normalized_token}",
                "User-Agent": self._USER_AGENT,
                "X-GitHub-Api-Version": self._API_VERSION,
            },
            timeout=request_timeout_seconds,
            follow_redirects=False,
            transport=transport,
        )

    def __enter__(self) -> "GitHubActionsAdapter":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.adapter_close()

    def adapter_close(self) -> None:
        """Close the underlying HTTP connection pool."""

        self._client.close()

    def workflow_list_runs(
        self,
        repository: RepositoryCoordinate,
        workflow_file: str,
        event: str | None = None,
        per_page: int = 10,
    ) -> list[WorkflowRun]:
        """List most recent runs of one workflow file, newest first.

        Args:
            repository: Target repository.
            workflow_file: Workflow file name.
            event: Optional trigger-event filter (e.g. `workflow_dispatch`).
            per_page: Page size, 1..100.

        Returns:
            list[WorkflowRun]: Converted runs in upstream listing order.

        Raises:
            WorkflowApiTransientError: Raised for retryable failures.
            WorkflowApiRequestError: Raised for rejected requests.
            WorkflowApiResponseError: Raised when the payload shape is unexpected.
        """

        normalized_workflow_file = workflow_file.strip()
        if not normalized_workflow_file:
            raise ValueError("workflow_file must not be blank")
        if per_page < 1 or per_page > 100:
            raise ValueError("per_page must be between 1 and 100")

        query_parameters: dict[str, str | int] = {"per_page": per_page}
        if event:
            query_parameters["event"] = event

        payload = self._adapter_request_json(
            method="GET",
            path=(
                f"{self._adapter_repository_path(repository)}/actions/workflows/"
                f"{quote(normalized_workflow_file, safe='')}/runs"
            ),
            query_parameters=query_parameters,
        )
        raw_runs = payload.get("workflow_runs")
        if not isinstance(raw_runs, list):
            raise WorkflowApiResponseError("workflow runs response missing 'workflow_runs' list")
        return [self._adapter_convert_run(raw_run) for raw_run in raw_runs]

    def workflow_get_run(self, repository: RepositoryCoordinate, run_id: int) -> WorkflowRun:
        """Fetch one run by id.

        Args:
            repository: Target repository.
            run_id: Remote run id.

        Returns:
            WorkflowRun: Converted run.

        Raises:
            WorkflowApiTransientError: Raised for retryable failures.
            WorkflowApiResponseError: Raised when the payload shape is unexpected.
        """

        payload = self._adapter_request_json(
            method="GET",
            path=f"{self._adapter_repository_path(repository)}/actions/runs/{int(run_id)}",
        )
        return self._adapter_convert_run(payload)

    def workflow_list_jobs(self, repository: RepositoryCoordinate, run_id: int) -> list[WorkflowJob]:
        """List jobs of one run (latest attempt).

        Args:
            repository: Target repository.
            run_id: Remote run id.

        Returns:
            list[WorkflowJob]: Converted jobs, possibly empty right after dispatch.

        Raises:
            WorkflowApiTransientError: Raised for retryable failures.
            WorkflowApiResponseError: Raised when the payload shape is unexpected.
        """

        payload = self._adapter_request_json(
            method="GET",
            path=f"{self._adapter_repository_path(repository)}/actions/runs/{int(run_id)}/jobs",
            query_parameters={"filter": "latest", "per_page": 100},
        )
        raw_jobs = payload.get("jobs")
        if not isinstance(raw_jobs, list):
            raise WorkflowApiResponseError("workflow jobs response missing 'jobs' list")
        return [self._adapter_convert_job(raw_job) for raw_job in raw_jobs]

    def workflow_get_job_logs_url(self, repository: RepositoryCoordinate, job_id: int) -> str | None:
        """Return the redirect target of one job's plain-text logs.

        Returns:
            str | None: Download URL, None while logs are not available.

        Raises:
            WorkflowApiTransientError: Raised for retryable failures other than absent logs.
        """

        return self._adapter_request_redirect_location(
            path=f"{self._adapter_repository_path(repository)}/actions/jobs/{int(job_id)}/logs",
        )

    def workflow_get_run_logs_url(self, repository: RepositoryCoordinate, run_id: int) -> str | None:
        """Return the redirect target of one run's zipped log archive.

        Returns:
            str | None: Download URL, None while the archive is not available.

        Raises:
            WorkflowApiTransientError: Raised for retryable failures other than absent logs.
        """

        return self._adapter_request_redirect_location(
            path=f"{self._adapter_repository_path(repository)}/actions/runs/{int(run_id)}/logs",
        )

    def workflow_dispatch(
        self,
        repository: RepositoryCoordinate,
        workflow_file: str,
        ref: str,
        inputs: Mapping[str, str],
    ) -> None:
        """Create one `workflow_dispatch` event.

        Args:
            repository: Target repository.
            workflow_file: Workflow file name.
            ref: Branch or tag to run on.
            inputs: Workflow inputs, e.g. `{"test_id": ...}`.

        Returns:
            None: Upstream responds with `204 No Content`.

        Raises:
            WorkflowApiRequestError: Raised when the dispatch is rejected.
            WorkflowApiTransientError: Raised for retryable failures.
        """

        normalized_ref = ref.strip()
        if not normalized_ref:
            raise ValueError("ref must not be blank")

        logger.info("Dispatching workflow %s on %s ref=%s", workflow_file, repository, normalized_ref)
        self._adapter_request(
            method="POST",
            path=(
                f"{self._adapter_repository_path(repository)}/actions/workflows/"
                f"{quote(workflow_file.strip(), safe='')}/dispatches"
            ),
            json_body={"ref": normalized_ref, "inputs": dict(inputs)},
        )

    def _adapter_request_json(
        self,
        method: str,
        path: str,
        query_parameters: Mapping[str, str | int] | None = None,
    ) -> dict[str, Any]:
        """Execute one request and decode a JSON object response.

        Raises:
            WorkflowApiResponseError: Raised when the body is not a JSON object.
        """

        response = self._adapter_request(method=method, path=path, query_parameters=query_parameters)
        try:
            payload = response.json()
        except ValueError as error:
            raise WorkflowApiResponseError(f"workflow API returned non-JSON body for {path}") from error
        if not isinstance(payload, dict):
            raise WorkflowApiResponseError(f"workflow API returned non-object JSON for {path}")
        return payload

    def _adapter_request_redirect_location(self, path: str) -> str | None:
        """Return the `Location` of a log redirect without following it.

        Args:
            path: Log endpoint path.

        Returns:
            str | None: Redirect target, None when logs are absent or expired.

        Raises:
            WorkflowApiTransientError: Raised for retryable failures.
            WorkflowApiResponseError: Raised when a redirect carries no location.
        """

        response = self._adapter_request(
            method="GET",
            path=path,
            accepted_status_codes=frozenset({GitHubStatusCode.FOUND}) | self._LOG_UNAVAILABLE_CODES,
        )
        if response.status_code in self._LOG_UNAVAILABLE_CODES:
            return None
        location = response.headers.get("location", "").strip()
        if not location:
            raise WorkflowApiResponseError(f"log redirect for {path} missing Location header")
        return location

    def _adapter_request(
        self,
        method: str,
        path: str,
        query_parameters: Mapping[str, str | int] | None = None,
        json_body: Mapping[str, object] | None = None,
        accepted_status_codes: frozenset[int] = GITHUB_SUCCESS_CODES,
    ) -> httpx.Response:
        """Execute one HTTP request and map failures onto typed errors.

        Args:
            method: HTTP method.
            path: Path relative to the API base URL.
            query_parameters: Optional query string parameters.
            json_body: Optional JSON request body.
            accepted_status_codes: Status codes returned to the caller as-is.

        Returns:
            httpx.Response: Response with an accepted status code.

        Raises:
            WorkflowApiTimeoutError: Raised when the transport times out.
            WorkflowApiTransientError: Raised for transport, decoding and redirect failures and retryable statuses.
            WorkflowApiAuthenticationError: Raised for credential failures.
            WorkflowApiRequestError: Raised for other client errors.
        """

        try:
            response = self._client.request(
                method,
                path,
                params=dict(query_parameters) if query_parameters else None,
                json=dict(json_body) if json_body is not None else None,
            )
        except httpx.TimeoutException as error:
            raise WorkflowApiTimeoutError(f"workflow API request timed out: {method} {path}") from error
        except httpx.TransportError as error:
            raise WorkflowApiTransientError(f"workflow API transport request failed: {method} {path}") from error
        except httpx.RequestError as error:
            raise WorkflowApiTransientError(
                f"workflow API response could not be read: {method} {path}: {type(error).__name__}"
            ) from error

        status_code = response.status_code
        if status_code in accepted_status_codes:
            return response

        error_message = self._adapter_extract_error_message(response)
        if github_status_is_rate_limited(status_code, response.headers):
            raise WorkflowApiTransientError(
                f"workflow API rate limited: HTTP {status_code}, message={error_message}",
                status_code=status_code,
                retry_after_seconds=github_status_retry_after_seconds(response.headers),
            )
        if status_code in GITHUB_AUTHENTICATION_CODES:
            raise WorkflowApiAuthenticationError(
                f"workflow API rejected credentials: HTTP {status_code}, message={error_message}",
                status_code=status_code,
            )
        if status_code in GITHUB_RETRYABLE_CODES or status_code >= 500:
            raise WorkflowApiTransientError(
                f"workflow API returned HTTP {status_code}: {error_message}",
                status_code=status_code,
            )
        raise WorkflowApiRequestError(
            f"workflow API rejected request: HTTP {status_code}, message={error_message}",
            status_code=status_code,
        )

    def _adapter_extract_error_message(self, response: httpx.Response) -> str:
        """Extract upstream `message`, falling back to canonical status text."""

        fallback_message = github_status_default_message(response.status_code, "unexpected upstream response")
        try:
            payload = response.json()
        except ValueError:
            return fallback_message
        if isinstance(payload, dict):
            upstream_message = str(payload.get("message") or "").strip()
            if upstream_message:
                return upstream_message
        return fallback_message

    def _adapter_repository_path(self, repository: RepositoryCoordinate) -> str:
        return f"/repos/{quote(repository.owner, safe='')}/{quote(repository.name, safe='')}"

    def _adapter_convert_run(self, raw_run: object) -> WorkflowRun:
        """Convert one raw run object into the domain contract.

        Raises:
            WorkflowApiResponseError: Raised when `id` is missing or not an integer.
        """

        if not isinstance(raw_run, dict):
            raise WorkflowApiResponseError("workflow run entry is not an object")
        run_id = raw_run.get("id")
        if not isinstance(run_id, int):
            raise WorkflowApiResponseError("workflow run entry missing integer 'id'")
        return WorkflowRun(
            run_id=run_id,
            name=str(raw_run.get("name") or ""),
            display_title=str(raw_run.get("display_title") or ""),
            event=str(raw_run.get("event") or ""),
            status=WorkflowRunStatus.status_from_api(raw_run.get("status")),
            conclusion=RunConclusion.conclusion_from_api(raw_run.get("conclusion")),
            created_at=self._adapter_parse_timestamp(raw_run.get("created_at")),
            html_url=str(raw_run.get("html_url") or ""),
            conclusion_raw=str(raw_run.get("conclusion") or ""),
        )

    def _adapter_convert_job(self, raw_job: object) -> WorkflowJob:
        """Convert one raw job object into the domain contract."""

        if not isinstance(raw_job, dict):
            raise WorkflowApiResponseError("workflow job entry is not an object")
        job_id = raw_job.get("id")
        if not isinstance(job_id, int):
            raise WorkflowApiResponseError("workflow job entry missing integer 'id'")
        return WorkflowJob(
            job_id=job_id,
            name=str(raw_job.get("name") or f"job-{job_id}"),
            state=JobState.state_from_api(raw_job.get("status")),
            runner_name=str(raw_job.get("runner_name") or ""),
        )

    def _adapter_parse_timestamp(self, raw_value: object) -> datetime | None:
        """Parse an ISO-8601 `Z` timestamp into an aware UTC datetime, None when absent or malformed."""

        if not isinstance(raw_value, str) or not raw_value.strip():
            return None
        normalized_value = raw_value.strip()
        if normalized_value.endswith("Z"):
            normalized_value = normalized_value[:-1] + "+00:00"
        try:
            parsed_value = datetime.fromisoformat(normalized_value)
        except ValueError:
            logger.warning("Ignoring malformed workflow timestamp %r", raw_value)
            return None
        if parsed_value.tzinfo is None:
            parsed_value = parsed_value.replace(tzinfo=timezone.utc)
        return parsed_value
