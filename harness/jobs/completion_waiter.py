"""Completion Waiter phase: wait for a terminal run conclusion."""

from __future__ import annotations

import logging

from harness.adapters import WorkflowApiPort
from harness.domain import RunConclusion, RunHandle, WorkflowRunStatus

from .cancellation import CancellationSignal
from .interfaces import PHASE_COMPLETION_WAITER
from .polling import PollAttempt, PollingStrategy, job_poll_until

logger = logging.getLogger(__name__)


class CompletionWaiter:
    """Poll one run until it completes, returning its conclusion.

    A deadline without completion is reported as `RunConclusion.UNKNOWN`
    instead of an exception so callers pick the severity.
    """

    def __init__(self, workflow_api: WorkflowApiPort, strategy: PollingStrategy):
        if workflow_api is None:
            raise ValueError("workflow_api must not be None")
        self._workflow_api = workflow_api
        self._strategy = strategy
        self._last_conclusion_raw = ""

    def job_last_conclusion_raw(self) -> str:
        """Return the conclusion string of the last completed run, as the API sent it."""

        return self._last_conclusion_raw

    def job_wait_for_completion(
        self,
        run_handle: RunHandle,
        timeout_seconds: float,
        cancellation: CancellationSignal | None = None,
    ) -> RunConclusion:
        """Return the run's conclusion, or `RunConclusion.UNKNOWN` on deadline.

        Args:
            run_handle: Run to observe.
            timeout_seconds: Phase timeout.
            cancellation: Optional cancellation signal.

        Returns:
            RunConclusion: Remote conclusion verbatim, or the timeout sentinel.

        Raises:
            ObservationCancelledError: Raised when cancellation was requested.
        """

        def _probe(attempt: PollAttempt) -> RunConclusion | None:
            run = self._workflow_api.workflow_get_run(repository=run_handle.repository, run_id=run_handle.run_id)
            logger.info(
                "[%s] run %d attempt %d: status=%s elapsed=%.0fs remaining=%.0fs",
                PHASE_COMPLETION_WAITER,
                run_handle.run_id,
                attempt.number,
                run.status.value,
                attempt.elapsed_seconds,
                attempt.remaining_seconds,
            )
            if run.status is not WorkflowRunStatus.COMPLETED:
                return None
            self._last_conclusion_raw = run.conclusion_raw
            # Completed runs always carry a conclusion; treat a missing one as unrecognized.
            conclusion = run.conclusion if run.conclusion is not None else RunConclusion.UNRECOGNIZED
            if conclusion is RunConclusion.UNRECOGNIZED:
                logger.warning(
                    "[%s] run %d completed with unrecognized conclusion %r",
                    PHASE_COMPLETION_WAITER,
                    run_handle.run_id,
                    run.conclusion_raw,
                )
            return conclusion

        def _on_timeout(attempt: PollAttempt) -> RunConclusion:
            logger.warning(
                "[%s] run %d did not complete within %.0fs; conclusion unknown (%s)",
                PHASE_COMPLETION_WAITER,
                run_handle.run_id,
                timeout_seconds,
                run_handle.handle_browser_url(),
            )
            return RunConclusion.UNKNOWN

        return job_poll_until(
            phase=PHASE_COMPLETION_WAITER,
            probe=_probe,
            timeout_seconds=timeout_seconds,
            strategy=self._strategy,
            on_timeout=_on_timeout,
            cancellation=cancellation,
        )
