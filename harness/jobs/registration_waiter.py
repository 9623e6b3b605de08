"""Registration Waiter: wait until the executor app processes a workflow run."""

from __future__ import annotations

import logging
from typing import Final

from harness.adapters import LogArchiveFetchError, LogArchiveFetcherPort, WorkflowApiPort
from harness.domain import ObservationWindow, RepositoryCoordinate, RunHandle, WorkflowRun, WorkflowRunStatus

from .cancellation import CancellationSignal
from .interfaces import PHASE_REGISTRATION_WAITER
from .observation_errors import RegistrationTimeoutError
from .polling import PollAttempt, PollingStrategy, job_poll_until

logger = logging.getLogger(__name__)

EXECUTOR_LOG_MARKERS: Final[tuple[bytes, ...]] = (b"RunsOn", b"runs-on")
DEFAULT_RUN_LOG_MAX_BYTES: Final[int] = 10 * 1024 * 1024


class RegistrationWaiter:
    """Poll recent runs until a completed one carries the executor's log signature.

    Run log archives are zip files; the markers are searched in the raw
    bytes of the capped download.
    """

    def __init__(
        self,
        workflow_api: WorkflowApiPort,
        log_fetcher: LogArchiveFetcherPort,
        strategy: PollingStrategy,
        page_size: int = 5,
        run_log_max_bytes: int = DEFAULT_RUN_LOG_MAX_BYTES,
        log_markers: tuple[bytes, ...] = EXECUTOR_LOG_MARKERS,
    ):
        """Initialize waiter dependencies.

        Args:
            workflow_api: Workflow API port.
            log_fetcher: Capped log downloader.
            strategy: Polling interval, clock and sleeper.
            page_size: Number of newest runs inspected per poll.
            run_log_max_bytes: Download cap per run log archive.
            log_markers: Byte markers proving the executor handled the run.

        Raises:
            ValueError: Raised when dependencies or options are invalid.
        """

        if workflow_api is None:
            raise ValueError("workflow_api must not be None")
        if log_fetcher is None:
            raise ValueError("log_fetcher must not be None")
        if page_size <= 0:
            raise ValueError("page_size must be > 0")
        if run_log_max_bytes <= 0:
            raise ValueError("run_log_max_bytes must be > 0")
        if not log_markers:
            raise ValueError("log_markers must not be empty")

        self._workflow_api = workflow_api
        self._log_fetcher = log_fetcher
        self._strategy = strategy
        self._page_size = page_size
        self._run_log_max_bytes = run_log_max_bytes
        self._log_markers = log_markers

    def job_wait_for_registration(
        self,
        repository: RepositoryCoordinate,
        workflow_file: str,
        registration_url: str,
        window: ObservationWindow,
        timeout_seconds: float,
        cancellation: CancellationSignal | None = None,
    ) -> RunHandle:
        """Return the first completed in-window run processed by the executor.

        Args:
            repository: Repository the workflow lives in.
            workflow_file: Workflow file name.
            registration_url: URL a human opens to register the executor app.
            window: Runs created before the window are ignored.
            timeout_seconds: Registration deadline.
            cancellation: Optional cancellation signal.

        Returns:
            RunHandle: Handle of the run whose logs carry an executor marker.

        Raises:
            RegistrationTimeoutError: Raised when no such run appeared before the deadline.
            ObservationCancelledError: Raised when cancellation was requested.
        """

        logger.warning("REGISTER THE EXECUTOR APP AT: %s", registration_url)
        logger.info("Waiting for the executor to process a run of %s in %s", workflow_file, repository)

        def _probe(attempt: PollAttempt) -> RunHandle | None:
            runs = self._workflow_api.workflow_list_runs(
                repository=repository,
                workflow_file=workflow_file,
                per_page=self._page_size,
            )
            for run in runs:
                if not window.window_admits(run.created_at):
                    continue
                logger.info(
                    "[%s] run %d: status=%s conclusion=%s",
                    PHASE_REGISTRATION_WAITER,
                    run.run_id,
                    run.status.value,
                    run.conclusion.value if run.conclusion is not None else "",
                )
                if run.status is WorkflowRunStatus.COMPLETED and self._job_run_logs_carry_marker(repository, run):
                    logger.info("[%s] executor confirmed in run %d logs", PHASE_REGISTRATION_WAITER, run.run_id)
                    return RunHandle(run_id=run.run_id, repository=repository, html_url=run.html_url)
            logger.info(
                "[%s] attempt %d: executor not detected yet (register at: %s)",
                PHASE_REGISTRATION_WAITER,
                attempt.number,
                registration_url,
            )
            return None

        def _on_timeout(attempt: PollAttempt) -> RunHandle:
            raise RegistrationTimeoutError(
                f"executor did not process a run of {workflow_file} within {timeout_seconds:.0f}s; "
                f"register at: {registration_url}",
                phase=PHASE_REGISTRATION_WAITER,
            )

        return job_poll_until(
            phase=PHASE_REGISTRATION_WAITER,
            probe=_probe,
            timeout_seconds=timeout_seconds,
            strategy=self._strategy,
            on_timeout=_on_timeout,
            cancellation=cancellation,
        )

    def _job_run_logs_carry_marker(self, repository: RepositoryCoordinate, run: WorkflowRun) -> bool:
        logs_url = self._workflow_api.workflow_get_run_logs_url(repository=repository, run_id=run.run_id)
        if logs_url is None:
            logger.info("[%s] no log archive yet for run %d", PHASE_REGISTRATION_WAITER, run.run_id)
            return False
        try:
            archive_bytes = self._log_fetcher.fetcher_download(url=logs_url, max_bytes=self._run_log_max_bytes)
        except LogArchiveFetchError as error:
            logger.warning("[%s] log archive download failed for run %d: %s", PHASE_REGISTRATION_WAITER, run.run_id, error)
            return False
        return any(marker in archive_bytes for marker in self._log_markers)
