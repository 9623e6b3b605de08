"""Shared fakes for observation protocol and validator tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from harness.domain import (
    CorrelationToken,
    JobState,
    ObservationWindow,
    RepositoryCoordinate,
    RunConclusion,
    RunHandle,
    WorkflowJob,
    WorkflowRun,
    WorkflowRunStatus,
)
from harness.jobs import CancellationSignal, PollingStrategy

WINDOW_START = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)
REPOSITORY = RepositoryCoordinate(owner="acme", name="runner-tests")


class FakeClock:
    """Monotonic clock advanced only by the recording sleeper."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleep_calls: list[float] = []

    def clock_now(self) -> float:
        return self.now

    def clock_sleep(self, seconds: float) -> None:
        self.sleep_calls.append(seconds)
        self.now += seconds

    def clock_strategy(self, interval_seconds: float = 15.0) -> PollingStrategy:
        return PollingStrategy(interval_seconds=interval_seconds, clock=self.clock_now, sleeper=self.clock_sleep)


class FakeWorkflowApi:
    """Scripted workflow API port recording every call.

    Sequences are consumed one entry per call; the last entry repeats.
    """

    def __init__(self):
        self.calls: list[tuple[str, object]] = []
        self.run_listings: list[list[WorkflowRun] | Exception] = [[]]
        self.job_listings: dict[int, list[list[WorkflowJob] | Exception]] = {}
        self.run_fetches: dict[int, list[WorkflowRun | Exception]] = {}
        self.job_log_urls: dict[int, str | None] = {}
        self.run_log_urls: dict[int, str | None] = {}
        self.dispatches: list[dict[str, object]] = []

    @staticmethod
    def _fake_next(sequence: list):
        value = sequence.pop(0) if len(sequence) > 1 else sequence[0]
        if isinstance(value, Exception):
            raise value
        return value

    def workflow_list_runs(self, repository, workflow_file, event=None, per_page=10):
        self.calls.append(("list_runs", {"workflow_file": workflow_file, "event": event, "per_page": per_page}))
        return list(self._fake_next(self.run_listings))

    def workflow_get_run(self, repository, run_id):
        self.calls.append(("get_run", run_id))
        return self._fake_next(self.run_fetches[run_id])

    def workflow_list_jobs(self, repository, run_id):
        self.calls.append(("list_jobs", run_id))
        return list(self._fake_next(self.job_listings.get(run_id, [[]])))

    def workflow_get_job_logs_url(self, repository, job_id):
        self.calls.append(("job_logs_url", job_id))
        return self.job_log_urls.get(job_id)

    def workflow_get_run_logs_url(self, repository, run_id):
        self.calls.append(("run_logs_url", run_id))
        return self.run_log_urls.get(run_id)

    def workflow_dispatch(self, repository, workflow_file, ref, inputs):
        self.calls.append(("dispatch", workflow_file))
        self.dispatches.append({"workflow_file": workflow_file, "ref": ref, "inputs": dict(inputs)})


class FakeLogFetcher:
    """Log downloader returning canned bodies truncated to the cap."""

    def __init__(self, bodies: dict[str, bytes | Exception] | None = None):
        self.bodies = dict(bodies or {})
        self.downloads: list[tuple[str, int]] = []

    def fetcher_download(self, url: str, max_bytes: int) -> bytes:
        self.downloads.append((url, max_bytes))
        body = self.bodies[url]
        if isinstance(body, Exception):
            raise body
        return body[:max_bytes]


def build_run(
    run_id: int,
    created_at: datetime,
    display_title: str = "Test workflow",
    status: WorkflowRunStatus = WorkflowRunStatus.QUEUED,
    conclusion: RunConclusion | None = None,
    conclusion_raw: str | None = None,
) -> WorkflowRun:
    """Build one workflow run contract for fakes; the raw conclusion defaults to the converted value."""

    if conclusion_raw is None:
        conclusion_raw = conclusion.value if conclusion is not None else ""

    return WorkflowRun(
        run_id=run_id,
        name="test",
        display_title=display_title,
        event="workflow_dispatch",
        status=status,
        conclusion=conclusion,
        created_at=created_at,
        html_url=f"https://github.com/acme/runner-tests/actions/runs/{run_id}",
        conclusion_raw=conclusion_raw,
    )


def build_job(job_id: int, state: JobState, name: str = "build") -> WorkflowJob:
    """Build one workflow job contract for fakes."""

    return WorkflowJob(job_id=job_id, name=name, state=state)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_workflow_api() -> FakeWorkflowApi:
    return FakeWorkflowApi()


@pytest.fixture
def fake_log_fetcher() -> FakeLogFetcher:
    return FakeLogFetcher()


@pytest.fixture
def correlation_token() -> CorrelationToken:
    return CorrelationToken("1772366400")


@pytest.fixture
def observation_window() -> ObservationWindow:
    return ObservationWindow(start_time=WINDOW_START, tolerance_skew=timedelta(minutes=1))


@pytest.fixture
def run_handle() -> RunHandle:
    return RunHandle(run_id=501, repository=REPOSITORY)


@pytest.fixture
def marker_template(tmp_path: Path) -> str:
    return str(tmp_path / "runson-{test_id}-abort")


@pytest.fixture
def cancellation(marker_template: str, correlation_token: CorrelationToken) -> CancellationSignal:
    return CancellationSignal.signal_for_test_id(marker_template, correlation_token.value)
