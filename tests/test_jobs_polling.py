"""Regression tests for the shared poll-until utility and cancellation signal."""

from __future__ import annotations

from pathlib import Path

import pytest

from harness.adapters import WorkflowApiRequestError, WorkflowApiTransientError
from harness.jobs import (
    CancellationSignal,
    ObservationCancelledError,
    PollAttempt,
    PollingStrategy,
    job_poll_until,
)


def test_jobs_poll_until_returns_first_probe_value_without_sleeping(fake_clock) -> None:
    """Return immediately when the first probe yields a value.

    Returns:
        None: Assertions validate no sleep happens before success.

    Raises:
        AssertionError: Raised when the utility sleeps or re-probes.
    """

    attempts: list[PollAttempt] = []

    def _probe(attempt: PollAttempt) -> str:
        attempts.append(attempt)
        return "done"

    result = job_poll_until(
        phase="test_phase",
        probe=_probe,
        timeout_seconds=60,
        strategy=fake_clock.clock_strategy(15),
        on_timeout=lambda attempt: "timeout",
    )

    assert result == "done"
    assert [attempt.number for attempt in attempts] == [1]
    assert fake_clock.sleep_calls == []


def test_jobs_poll_until_times_out_after_four_polls_at_fifteen_second_interval(fake_clock) -> None:
    """Poll at 0, 15, 30 and 45 seconds for a 60 second timeout.

    Returns:
        None: Assertions validate poll count and timeout attempt payload.

    Raises:
        AssertionError: Raised when deadline arithmetic drifts.
    """

    elapsed_at_probe: list[float] = []
    timeout_attempts: list[PollAttempt] = []

    def _probe(attempt: PollAttempt) -> None:
        elapsed_at_probe.append(attempt.elapsed_seconds)
        return None

    def _on_timeout(attempt: PollAttempt) -> str:
        timeout_attempts.append(attempt)
        return "timeout"

    result = job_poll_until(
        phase="test_phase",
        probe=_probe,
        timeout_seconds=60,
        strategy=fake_clock.clock_strategy(15),
        on_timeout=_on_timeout,
    )

    assert result == "timeout"
    assert elapsed_at_probe == [0.0, 15.0, 30.0, 45.0]
    assert fake_clock.sleep_calls == [15.0, 15.0, 15.0, 15.0]
    assert timeout_attempts[0].number == 4
    assert timeout_attempts[0].remaining_seconds == 0.0


def test_jobs_poll_until_retries_transient_errors_and_propagates_fatal_errors(fake_clock) -> None:
    """Swallow transient API errors but let request errors escape.

    Returns:
        None: Assertions validate error classification inside the loop.

    Raises:
        AssertionError: Raised when error propagation policy is wrong.
    """

    outcomes: list[object] = [WorkflowApiTransientError("blip", status_code=502), None, "value"]

    def _probe(attempt: PollAttempt) -> object:
        outcome = outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    result = job_poll_until(
        phase="test_phase",
        probe=_probe,
        timeout_seconds=120,
        strategy=fake_clock.clock_strategy(10),
        on_timeout=lambda attempt: "timeout",
    )
    assert result == "value"
    assert fake_clock.sleep_calls == [10.0, 10.0]

    def _fatal_probe(attempt: PollAttempt) -> None:
        raise WorkflowApiRequestError("bad workflow", status_code=422)

    with pytest.raises(WorkflowApiRequestError):
        job_poll_until(
            phase="test_phase",
            probe=_fatal_probe,
            timeout_seconds=120,
            strategy=fake_clock.clock_strategy(10),
            on_timeout=lambda attempt: "timeout",
        )


def test_jobs_poll_until_checks_cancellation_before_probe(fake_clock, cancellation: CancellationSignal) -> None:
    """Abort before any probe call when the marker already exists, and consume it.

    Returns:
        None: Assertions validate cancellation precedence and marker deletion.

    Raises:
        AssertionError: Raised when the probe runs or the marker survives.
    """

    cancellation.marker_path.write_text("", encoding="utf-8")
    probe_calls: list[int] = []

    with pytest.raises(ObservationCancelledError) as error_info:
        job_poll_until(
            phase="test_phase",
            probe=lambda attempt: probe_calls.append(attempt.number),
            timeout_seconds=60,
            strategy=fake_clock.clock_strategy(15),
            on_timeout=lambda attempt: "timeout",
            cancellation=cancellation,
        )

    assert probe_calls == []
    assert error_info.value.phase == "test_phase"
    assert not isinstance(error_info.value, TimeoutError)
    assert not cancellation.marker_path.exists()


def test_jobs_poll_until_observes_marker_created_between_polls(fake_clock, cancellation: CancellationSignal) -> None:
    """Abort at the next iteration when the marker appears mid-phase.

    Returns:
        None: Assertions validate cooperative cancellation between polls.

    Raises:
        AssertionError: Raised when cancellation is not observed.
    """

    def _probe(attempt: PollAttempt) -> None:
        if attempt.number == 2:
            cancellation.marker_path.write_text("", encoding="utf-8")
        return None

    with pytest.raises(ObservationCancelledError):
        job_poll_until(
            phase="test_phase",
            probe=_probe,
            timeout_seconds=600,
            strategy=fake_clock.clock_strategy(15),
            on_timeout=lambda attempt: "timeout",
            cancellation=cancellation,
        )

    assert fake_clock.sleep_calls == [15.0, 15.0]


def test_jobs_poll_until_rejects_invalid_timing_values(fake_clock) -> None:
    """Reject non-positive timeouts and negative intervals.

    Returns:
        None: Assertions validate input guards.

    Raises:
        AssertionError: Raised when invalid values are accepted.
    """

    with pytest.raises(ValueError, match="timeout_seconds"):
        job_poll_until("phase", lambda attempt: None, 0, fake_clock.clock_strategy(1), lambda attempt: None)
    with pytest.raises(ValueError, match="interval_seconds"):
        PollingStrategy(interval_seconds=-1)


def test_jobs_cancellation_signal_for_test_id_renders_template(tmp_path: Path) -> None:
    """Render the marker path and expose abort instructions.

    Returns:
        None: Assertions validate path templating and validation.

    Raises:
        AssertionError: Raised when templating is incorrect.
    """

    signal = CancellationSignal.signal_for_test_id(str(tmp_path / "runson-{test_id}-abort"), " 42 ")

    assert signal.marker_path == tmp_path / "runson-42-abort"
    assert signal.signal_is_requested() is False
    assert signal.signal_instructions() == f"touch {tmp_path / 'runson-42-abort'}"
    with pytest.raises(ValueError, match="test_id"):
        CancellationSignal.signal_for_test_id("/tmp/runson-abort", "42")
    with pytest.raises(ValueError, match="blank"):
        CancellationSignal.signal_for_test_id("/tmp/runson-{test_id}-abort", " ")
