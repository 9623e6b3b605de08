"""Regression tests for Run Watcher window filtering and token matching."""

from __future__ import annotations

from datetime import timedelta

import pytest

from conftest import REPOSITORY, WINDOW_START, FakeLogFetcher, build_job, build_run
from harness.adapters import LogArchiveFetchError
from harness.domain import JobState
from harness.jobs import DISPATCH_EVENT, ObservationCancelledError, PollingStrategy, RunNotFoundError, RunWatcher


def _build_watcher(fake_workflow_api, fake_log_fetcher, fake_clock, verify_token_in_logs: bool = True) -> RunWatcher:
    return RunWatcher(
        workflow_api=fake_workflow_api,
        log_fetcher=fake_log_fetcher,
        strategy=fake_clock.clock_strategy(15),
        page_size=10,
        job_log_max_bytes=4096,
        verify_token_in_logs=verify_token_in_logs,
    )


def test_jobs_run_watcher_rejects_run_created_before_window_even_with_token(
    fake_workflow_api, fake_log_fetcher, fake_clock, correlation_token, observation_window
) -> None:
    """Ignore a run created two minutes before window start with one minute skew.

    Returns:
        None: Assertions validate the stale run is never selected.

    Raises:
        AssertionError: Raised when window filtering is bypassed.
    """

    stale_run = build_run(11, WINDOW_START - timedelta(minutes=2), display_title=f"Test {correlation_token}")
    fresh_run = build_run(12, WINDOW_START + timedelta(seconds=20), display_title=f"Test {correlation_token}")
    fake_workflow_api.run_listings = [[stale_run], [stale_run], [fresh_run, stale_run]]
    watcher = _build_watcher(fake_workflow_api, fake_log_fetcher, fake_clock)

    handle = watcher.job_watch_for_run(
        repository=REPOSITORY,
        workflow_file="test.yml",
        token=correlation_token,
        window=observation_window,
        timeout_seconds=300,
    )

    assert handle.run_id == 12
    assert handle.repository == REPOSITORY
    assert handle.html_url.endswith("/actions/runs/12")
    assert [name for name, _ in fake_workflow_api.calls] == ["list_runs", "list_runs", "list_runs"]
    assert fake_clock.sleep_calls == [15.0, 15.0]


def test_jobs_run_watcher_selects_run_whose_job_logs_contain_token(
    fake_workflow_api, fake_clock, correlation_token, observation_window
) -> None:
    """Pick the in-window run whose job logs contain the token over a newer foreign run.

    Returns:
        None: Assertions validate token precedence across concurrent runs.

    Raises:
        AssertionError: Raised when the wrong run is selected.
    """

    foreign_run = build_run(21, WINDOW_START + timedelta(seconds=40))
    own_run = build_run(22, WINDOW_START + timedelta(seconds=30))
    fake_workflow_api.run_listings = [[foreign_run, own_run]]
    fake_workflow_api.job_listings = {
        21: [[build_job(2101, JobState.IN_PROGRESS)]],
        22: [[build_job(2201, JobState.IN_PROGRESS)]],
    }
    fake_workflow_api.job_log_urls = {2101: "https://logs/2101", 2201: "https://logs/2201"}
    log_fetcher = FakeLogFetcher(
        {
            "https://logs/2101": b"Run echo 'Test ID: 1772360000'\n",
            "https://logs/2201": f"Run echo 'Test ID: {correlation_token}'\n".encode("utf-8"),
        }
    )
    watcher = _build_watcher(fake_workflow_api, log_fetcher, fake_clock)

    handle = watcher.job_watch_for_run(
        repository=REPOSITORY,
        workflow_file="test.yml",
        token=correlation_token,
        window=observation_window,
        timeout_seconds=300,
    )

    assert handle.run_id == 22
    assert log_fetcher.downloads == [("https://logs/2101", 4096), ("https://logs/2201", 4096)]
    assert fake_clock.sleep_calls == []


def test_jobs_run_watcher_matches_echoed_title_without_downloading_logs(
    fake_workflow_api, fake_log_fetcher, fake_clock, correlation_token, observation_window
) -> None:
    """Match on a display title that echoes the token before any log download.

    Returns:
        None: Assertions validate the cheap title check wins.

    Raises:
        AssertionError: Raised when logs are fetched unnecessarily.
    """

    fake_workflow_api.run_listings = [
        [build_run(31, WINDOW_START + timedelta(seconds=5), display_title=f"runs-on test {correlation_token}")]
    ]
    watcher = _build_watcher(fake_workflow_api, fake_log_fetcher, fake_clock)

    handle = watcher.job_watch_for_run(
        repository=REPOSITORY,
        workflow_file=" test.yml ",
        token=correlation_token,
        window=observation_window,
        timeout_seconds=60,
    )

    assert handle.run_id == 31
    assert fake_workflow_api.calls == [
        ("list_runs", {"workflow_file": "test.yml", "event": DISPATCH_EVENT, "per_page": 10})
    ]
    assert fake_log_fetcher.downloads == []


def test_jobs_run_watcher_keeps_polling_while_job_logs_are_unpublished(
    fake_workflow_api, fake_clock, correlation_token, observation_window
) -> None:
    """Treat missing job lists, missing log URLs and failed downloads as pending.

    Returns:
        None: Assertions validate the run is re-checked until logs arrive.

    Raises:
        AssertionError: Raised when pending evidence is treated as a mismatch or error.
    """

    run = build_run(41, WINDOW_START + timedelta(seconds=10))
    fake_workflow_api.run_listings = [[run]]
    fake_workflow_api.job_listings = {41: [[], [build_job(4101, JobState.QUEUED)]]}
    fake_workflow_api.job_log_urls = {4101: "https://logs/4101"}
    log_fetcher = FakeLogFetcher({"https://logs/4101": LogArchiveFetchError("not yet", status_code=404)})

    def _publish_logs(seconds: float) -> None:
        fake_clock.clock_sleep(seconds)
        if len(fake_clock.sleep_calls) == 2:
            log_fetcher.bodies["https://logs/4101"] = f"Test ID: {correlation_token}".encode("utf-8")

    watcher = RunWatcher(
        workflow_api=fake_workflow_api,
        log_fetcher=log_fetcher,
        strategy=PollingStrategy(interval_seconds=15, clock=fake_clock.clock_now, sleeper=_publish_logs),
        job_log_max_bytes=4096,
    )

    handle = watcher.job_watch_for_run(
        repository=REPOSITORY,
        workflow_file="test.yml",
        token=correlation_token,
        window=observation_window,
        timeout_seconds=300,
    )

    assert handle.run_id == 41
    assert fake_clock.sleep_calls == [15.0, 15.0]
    assert len(log_fetcher.downloads) == 2


def test_jobs_run_watcher_without_log_verification_takes_first_in_window_run(
    fake_workflow_api, fake_log_fetcher, fake_clock, correlation_token, observation_window
) -> None:
    """Select the first in-window run when log verification is disabled.

    Returns:
        None: Assertions validate the heuristic fallback.

    Raises:
        AssertionError: Raised when jobs are listed or an out-of-window run is chosen.
    """

    fake_workflow_api.run_listings = [
        [
            build_run(51, WINDOW_START - timedelta(minutes=5)),
            build_run(52, WINDOW_START + timedelta(seconds=1)),
        ]
    ]
    watcher = _build_watcher(fake_workflow_api, fake_log_fetcher, fake_clock, verify_token_in_logs=False)

    handle = watcher.job_watch_for_run(
        repository=REPOSITORY,
        workflow_file="test.yml",
        token=correlation_token,
        window=observation_window,
        timeout_seconds=60,
    )

    assert handle.run_id == 52
    assert [name for name, _ in fake_workflow_api.calls] == ["list_runs"]


def test_jobs_run_watcher_raises_run_not_found_after_four_polls_in_one_minute(
    fake_workflow_api, fake_log_fetcher, fake_clock, correlation_token, observation_window
) -> None:
    """Report RunNotFoundError after about four polls at a fifteen second interval.

    Returns:
        None: Assertions validate timeout classification and poll count.

    Raises:
        AssertionError: Raised when the timeout is misreported.
    """

    watcher = _build_watcher(fake_workflow_api, fake_log_fetcher, fake_clock)

    with pytest.raises(RunNotFoundError) as error_info:
        watcher.job_watch_for_run(
            repository=REPOSITORY,
            workflow_file="test.yml",
            token=correlation_token,
            window=observation_window,
            timeout_seconds=60,
        )

    assert error_info.value.phase == "run_watcher"
    assert isinstance(error_info.value, TimeoutError)
    assert [name for name, _ in fake_workflow_api.calls] == ["list_runs"] * 4


def test_jobs_run_watcher_cancelled_before_first_poll_makes_no_calls(
    fake_workflow_api, fake_log_fetcher, fake_clock, correlation_token, observation_window, cancellation
) -> None:
    """Abort before listing runs when the marker exists at call time.

    Returns:
        None: Assertions validate zero collaborator calls.

    Raises:
        AssertionError: Raised when any API call happens before the abort.
    """

    cancellation.marker_path.write_text("", encoding="utf-8")
    watcher = _build_watcher(fake_workflow_api, fake_log_fetcher, fake_clock)

    with pytest.raises(ObservationCancelledError):
        watcher.job_watch_for_run(
            repository=REPOSITORY,
            workflow_file="test.yml",
            token=correlation_token,
            window=observation_window,
            timeout_seconds=60,
            cancellation=cancellation,
        )

    assert fake_workflow_api.calls == []


def test_jobs_run_watcher_rejects_blank_workflow_and_invalid_options(
    fake_workflow_api, fake_log_fetcher, fake_clock, correlation_token, observation_window
) -> None:
    """Reject blank workflow names and non-positive numeric options.

    Returns:
        None: Assertions validate input guards.

    Raises:
        AssertionError: Raised when invalid inputs are accepted.
    """

    with pytest.raises(ValueError, match="page_size"):
        RunWatcher(fake_workflow_api, fake_log_fetcher, fake_clock.clock_strategy(), page_size=0)
    with pytest.raises(ValueError, match="job_log_max_bytes"):
        RunWatcher(fake_workflow_api, fake_log_fetcher, fake_clock.clock_strategy(), job_log_max_bytes=0)

    watcher = _build_watcher(fake_workflow_api, fake_log_fetcher, fake_clock)
    with pytest.raises(ValueError, match="workflow_file"):
        watcher.job_watch_for_run(REPOSITORY, "  ", correlation_token, observation_window, 60)
