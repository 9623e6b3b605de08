"""Job-State Monitor phase: confirm an executor accepted the run's jobs."""

from __future__ import annotations

import logging

from harness.adapters import WorkflowApiPort
from harness.domain import JobStateSnapshot, RunHandle

from .cancellation import CancellationSignal
from .interfaces import PHASE_JOB_STATE_MONITOR
from .observation_errors import ExecutorUnavailableError
from .polling import PollAttempt, PollingStrategy, job_poll_until

logger = logging.getLogger(__name__)


class JobStateMonitor:
    """Poll a run's jobs until one is claimed by an executor."""

    def __init__(self, workflow_api: WorkflowApiPort, strategy: PollingStrategy):
        if workflow_api is None:
            raise ValueError("workflow_api must not be None")
        self._workflow_api = workflow_api
        self._strategy = strategy

    def job_monitor_run(
        self,
        run_handle: RunHandle,
        timeout_seconds: float,
        cancellation: CancellationSignal | None = None,
    ) -> JobStateSnapshot:
        """Wait until at least one job is `in_progress` or `completed`.

        Args:
            run_handle: Run discovered by the Run Watcher.
            timeout_seconds: Grace period for the executor to claim a job.
            cancellation: Optional cancellation signal.

        Returns:
            JobStateSnapshot: First snapshot containing a claimed job.

        Raises:
            ExecutorUnavailableError: Raised when no job was claimed before the deadline.
            ObservationCancelledError: Raised when cancellation was requested.
        """

        last_snapshot = JobStateSnapshot()

        def _probe(attempt: PollAttempt) -> JobStateSnapshot | None:
            nonlocal last_snapshot
            jobs = self._workflow_api.workflow_list_jobs(repository=run_handle.repository, run_id=run_handle.run_id)
            snapshot = JobStateSnapshot.snapshot_from_jobs(jobs)
            last_snapshot = snapshot
            logger.info(
                "[%s] run %d attempt %d: job counts %s",
                PHASE_JOB_STATE_MONITOR,
                run_handle.run_id,
                attempt.number,
                snapshot.snapshot_counts(),
            )
            if snapshot.snapshot_has_claimed_job():
                return snapshot
            return None

        def _on_timeout(attempt: PollAttempt) -> JobStateSnapshot:
            job_counts = last_snapshot.snapshot_counts()
            if last_snapshot.snapshot_is_empty():
                message = f"run {run_handle.run_id} registered no jobs within {timeout_seconds:.0f}s"
            else:
                message = f"all jobs of run {run_handle.run_id} stayed queued for {timeout_seconds:.0f}s"
            raise ExecutorUnavailableError(message, phase=PHASE_JOB_STATE_MONITOR, job_counts=job_counts)

        return job_poll_until(
            phase=PHASE_JOB_STATE_MONITOR,
            probe=_probe,
            timeout_seconds=timeout_seconds,
            strategy=self._strategy,
            on_timeout=_on_timeout,
            cancellation=cancellation,
        )
