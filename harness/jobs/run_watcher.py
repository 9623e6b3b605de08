"""Run Watcher phase: discover the workflow run belonging to one test invocation."""

from __future__ import annotations

from enum import Enum
import logging
from typing import Final

from harness.adapters import LogArchiveFetchError, LogArchiveFetcherPort, WorkflowApiPort
from harness.domain import CorrelationToken, ObservationWindow, RepositoryCoordinate, RunHandle, WorkflowRun

from .cancellation import CancellationSignal
from .interfaces import PHASE_RUN_WATCHER
from .observation_errors import RunNotFoundError
from .polling import PollAttempt, PollingStrategy, job_poll_until

logger = logging.getLogger(__name__)

DISPATCH_EVENT: Final[str] = "workflow_dispatch"
DEFAULT_JOB_LOG_MAX_BYTES: Final[int] = 1024 * 1024


class _TokenEvidence(str, Enum):
    FOUND = "found"
    ABSENT = "absent"
    PENDING = "pending"


class RunWatcher:
    """Poll the run listing until a run inside the window matches the token.

    Matching is tried in listing order. A run whose display title echoes the
    token matches immediately. Otherwise the run's job logs are downloaded
    with a byte cap and scanned for the token; runs whose logs are not
    published yet are re-checked on the next poll.
    """

    def __init__(
        self,
        workflow_api: WorkflowApiPort,
        log_fetcher: LogArchiveFetcherPort,
        strategy: PollingStrategy,
        page_size: int = 10,
        job_log_max_bytes: int = DEFAULT_JOB_LOG_MAX_BYTES,
        verify_token_in_logs: bool = True,
    ):
        """Initialize watcher dependencies.

        Args:
            workflow_api: Workflow API port.
            log_fetcher: Capped log downloader.
            strategy: Polling interval, clock and sleeper.
            page_size: Number of newest runs listed per poll.
            job_log_max_bytes: Download cap per job log.
            verify_token_in_logs: When False, the first in-window run matches.

        Raises:
            ValueError: Raised when dependencies or numeric options are invalid.
        """

        if workflow_api is None:
            raise ValueError("workflow_api must not be None")
        if log_fetcher is None:
            raise ValueError("log_fetcher must not be None")
        if page_size <= 0:
            raise ValueError("page_size must be > 0")
        if job_log_max_bytes <= 0:
            raise ValueError("job_log_max_bytes must be > 0")

        self._workflow_api = workflow_api
        self._log_fetcher = log_fetcher
        self._strategy = strategy
        self._page_size = page_size
        self._job_log_max_bytes = job_log_max_bytes
        self._verify_token_in_logs = verify_token_in_logs

    def job_watch_for_run(
        self,
        repository: RepositoryCoordinate,
        workflow_file: str,
        token: CorrelationToken,
        window: ObservationWindow,
        timeout_seconds: float,
        cancellation: CancellationSignal | None = None,
    ) -> RunHandle:
        """Return the handle of the run belonging to this test invocation.

        Args:
            repository: Repository the workflow lives in.
            workflow_file: Workflow file name.
            token: Correlation token of this invocation.
            window: Observation window opened before the trigger.
            timeout_seconds: Phase timeout.
            cancellation: Optional cancellation signal.

        Returns:
            RunHandle: Handle of the matching run.

        Raises:
            ValueError: Raised when the workflow file name is blank.
            RunNotFoundError: Raised when no run matched before the deadline.
            ObservationCancelledError: Raised when cancellation was requested.
        """

        normalized_workflow_file = workflow_file.strip()
        if not normalized_workflow_file:
            raise ValueError("workflow_file must not be blank")

        logger.info(
            "[%s] watching %s/%s for token %s, earliest admitted %s",
            PHASE_RUN_WATCHER,
            repository.coordinate_slug(),
            normalized_workflow_file,
            token,
            window.window_earliest_admitted().isoformat(),
        )

        def _probe(attempt: PollAttempt) -> RunHandle | None:
            runs = self._workflow_api.workflow_list_runs(
                repository=repository,
                workflow_file=normalized_workflow_file,
                event=DISPATCH_EVENT,
                per_page=self._page_size,
            )
            matched_run = self._job_select_run(repository=repository, runs=runs, token=token, window=window)
            if matched_run is None:
                logger.info("[%s] attempt %d: %d runs listed, no match yet", PHASE_RUN_WATCHER, attempt.number, len(runs))
                return None
            logger.info("[%s] matched run %d (%s)", PHASE_RUN_WATCHER, matched_run.run_id, matched_run.html_url)
            return RunHandle(run_id=matched_run.run_id, repository=repository, html_url=matched_run.html_url)

        def _on_timeout(attempt: PollAttempt) -> RunHandle:
            raise RunNotFoundError(
                f"no {DISPATCH_EVENT} run of {normalized_workflow_file} matching token {token} "
                f"appeared within {timeout_seconds:.0f}s after {attempt.number} polls",
                phase=PHASE_RUN_WATCHER,
            )

        return job_poll_until(
            phase=PHASE_RUN_WATCHER,
            probe=_probe,
            timeout_seconds=timeout_seconds,
            strategy=self._strategy,
            on_timeout=_on_timeout,
            cancellation=cancellation,
        )

    def _job_select_run(
        self,
        repository: RepositoryCoordinate,
        runs: list[WorkflowRun],
        token: CorrelationToken,
        window: ObservationWindow,
    ) -> WorkflowRun | None:
        """Return the first listed run that matches, comparing timestamps explicitly.

        Listing order is not trusted to reflect creation order, so every run
        is filtered by the window before any token check.
        """

        in_window_runs = [run for run in runs if window.window_admits(run.created_at)]
        for run in in_window_runs:
            if token.value in run.display_title:
                return run

        if not self._verify_token_in_logs:
            return in_window_runs[0] if in_window_runs else None

        for run in in_window_runs:
            evidence = self._job_scan_run_logs(repository=repository, run=run, token=token)
            if evidence is _TokenEvidence.FOUND:
                return run
            logger.debug("[%s] run %d token evidence: %s", PHASE_RUN_WATCHER, run.run_id, evidence.value)
        return None

    def _job_scan_run_logs(
        self,
        repository: RepositoryCoordinate,
        run: WorkflowRun,
        token: CorrelationToken,
    ) -> _TokenEvidence:
        jobs = self._workflow_api.workflow_list_jobs(repository=repository, run_id=run.run_id)
        if not jobs:
            return _TokenEvidence.PENDING

        evidence = _TokenEvidence.ABSENT
        for job in jobs:
            logs_url = self._workflow_api.workflow_get_job_logs_url(repository=repository, job_id=job.job_id)
            if logs_url is None:
                evidence = _TokenEvidence.PENDING
                continue
            try:
                log_bytes = self._log_fetcher.fetcher_download(url=logs_url, max_bytes=self._job_log_max_bytes)
            except LogArchiveFetchError as error:
                logger.warning("[%s] job %d log download failed: %s", PHASE_RUN_WATCHER, job.job_id, error)
                evidence = _TokenEvidence.PENDING
                continue
            if token.token_bytes() in log_bytes:
                return _TokenEvidence.FOUND
        return evidence
