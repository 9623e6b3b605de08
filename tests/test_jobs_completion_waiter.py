"""Regression tests for Completion Waiter conclusion reporting."""

from __future__ import annotations

from conftest import WINDOW_START, build_run
from harness.domain import RunConclusion, WorkflowRunStatus
from harness.jobs import CompletionWaiter


def test_jobs_completion_waiter_returns_failure_conclusion_verbatim(fake_workflow_api, fake_clock, run_handle) -> None:
    """Return the literal failure conclusion after the run completes.

    Returns:
        None: Assertions validate conclusion passthrough.

    Raises:
        AssertionError: Raised when the conclusion is translated.
    """

    fake_workflow_api.run_fetches = {
        501: [
            build_run(501, WINDOW_START, status=WorkflowRunStatus.IN_PROGRESS),
            build_run(501, WINDOW_START, status=WorkflowRunStatus.COMPLETED, conclusion=RunConclusion.FAILURE),
        ]
    }
    waiter = CompletionWaiter(workflow_api=fake_workflow_api, strategy=fake_clock.clock_strategy(10))

    conclusion = waiter.job_wait_for_completion(run_handle=run_handle, timeout_seconds=600)

    assert conclusion is RunConclusion.FAILURE
    assert conclusion == "failure"
    assert fake_clock.sleep_calls == [10.0]


def test_jobs_completion_waiter_returns_unknown_sentinel_on_deadline(fake_workflow_api, fake_clock, run_handle) -> None:
    """Return the UNKNOWN sentinel, distinct from success and failure, on timeout.

    Returns:
        None: Assertions validate sentinel distinctness.

    Raises:
        AssertionError: Raised when the timeout is reported as a real conclusion.
    """

    fake_workflow_api.run_fetches = {501: [build_run(501, WINDOW_START, status=WorkflowRunStatus.IN_PROGRESS)]}
    waiter = CompletionWaiter(workflow_api=fake_workflow_api, strategy=fake_clock.clock_strategy(10))

    conclusion = waiter.job_wait_for_completion(run_handle=run_handle, timeout_seconds=30)

    assert conclusion is RunConclusion.UNKNOWN
    assert conclusion != "success"
    assert conclusion != "failure"
    assert conclusion.conclusion_was_observed() is False
    assert len(fake_workflow_api.calls) == 3


def test_jobs_completion_waiter_maps_missing_conclusion_to_unrecognized(
    fake_workflow_api, fake_clock, run_handle
) -> None:
    """Report a completed run without a conclusion as unrecognized, not unknown.

    Returns:
        None: Assertions validate the observed-but-unlabelled case.

    Raises:
        AssertionError: Raised when the timeout sentinel leaks into observed results.
    """

    fake_workflow_api.run_fetches = {501: [build_run(501, WINDOW_START, status=WorkflowRunStatus.COMPLETED)]}
    waiter = CompletionWaiter(workflow_api=fake_workflow_api, strategy=fake_clock.clock_strategy(10))

    assert waiter.job_wait_for_completion(run_handle=run_handle, timeout_seconds=30) is RunConclusion.UNRECOGNIZED


def test_jobs_completion_waiter_keeps_raw_unrecognized_conclusion(
    fake_workflow_api, fake_clock, run_handle, caplog
) -> None:
    """Keep and log the remote string behind an unrecognized conclusion.

    Args:
        fake_workflow_api: Scripted workflow API.
        fake_clock: Fake monotonic clock.
        run_handle: Run under observation.
        caplog: Pytest log capture fixture.

    Returns:
        None: Assertions validate the raw value and the warning.

    Raises:
        AssertionError: Raised when the remote string is lost.
    """

    fake_workflow_api.run_fetches = {
        501: [
            build_run(
                501,
                WINDOW_START,
                status=WorkflowRunStatus.COMPLETED,
                conclusion=RunConclusion.UNRECOGNIZED,
                conclusion_raw="quarantined",
            )
        ]
    }
    waiter = CompletionWaiter(workflow_api=fake_workflow_api, strategy=fake_clock.clock_strategy(10))

    with caplog.at_level("WARNING", logger="harness.jobs.completion_waiter"):
        conclusion = waiter.job_wait_for_completion(run_handle=run_handle, timeout_seconds=30)

    assert conclusion is RunConclusion.UNRECOGNIZED
    assert waiter.job_last_conclusion_raw() == "quarantined"
    assert "'quarantined'" in caplog.text
