"""Typed domain models shared across harness layer boundaries.

The observation protocol passes these contracts between phases by value.
None of them is mutated after construction.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
import time

from .statuses import CommandInvocationStatus, JobState, RunConclusion, WorkflowRunStatus


def domain_generate_test_id() -> str:
    """Generate a time-based test identifier for resource naming.

    Returns:
        str: Current Unix timestamp in seconds.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    return str(int(time.time()))


@dataclass(frozen=True)
class CorrelationToken:
    """Opaque value associating a remote workflow run with one test invocation.

    Attributes:
        value: Token text searched for in run titles and job logs.
    """

    value: str

    def __post_init__(self) -> None:
        normalized_value = self.value.strip()
        if not normalized_value:
            raise ValueError("correlation token must not be blank")
        object.__setattr__(self, "value", normalized_value)

    @classmethod
    def token_generate(cls) -> "CorrelationToken":
        """Build a fresh time-based token.

        Returns:
            CorrelationToken: Token derived from the current Unix timestamp.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        return cls(value=domain_generate_test_id())

    def token_bytes(self) -> bytes:
        """Return the token encoded for raw log scanning."""

        return self.value.encode("utf-8")

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ObservationWindow:
    """Moment before which discovered runs are ignored.

    Attributes:
        start_time: Timezone-aware moment the test started waiting.
        tolerance_skew: Backward skew absorbing clock drift with the remote system.
    """

    start_time: datetime
    tolerance_skew: timedelta = timedelta(minutes=1)

    def __post_init__(self) -> None:
        if self.start_time.tzinfo is None:
            raise ValueError("start_time must be timezone-aware")
        if self.tolerance_skew < timedelta(0):
            raise ValueError("tolerance_skew must be >= 0")

    @classmethod
    def window_open_now(cls, tolerance_skew: timedelta = timedelta(minutes=1)) -> "ObservationWindow":
        """Open a window starting at the current UTC time."""

        return cls(start_time=datetime.now(timezone.utc), tolerance_skew=tolerance_skew)

    def window_earliest_admitted(self) -> datetime:
        """Return the earliest creation time the window admits."""

        return self.start_time - self.tolerance_skew

    def window_admits(self, created_at: datetime | None) -> bool:
        """Return whether a run created at `created_at` falls inside the window.

        Args:
            created_at: Remote creation timestamp, None when the API omitted it.

        Returns:
            bool: True when `created_at >= start_time - tolerance_skew`.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        if created_at is None:
            return False
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        return created_at >= self.window_earliest_admitted()


@dataclass(frozen=True)
class RepositoryCoordinate:
    """Source-hosting repository coordinate in `owner/repo` form.

    Attributes:
        owner: Repository owner or organization.
        name: Repository name.
    """

    owner: str
    name: str

    def __post_init__(self) -> None:
        if not self.owner.strip():
            raise ValueError("repository owner must not be blank")
        if not self.name.strip():
            raise ValueError("repository name must not be blank")

    @classmethod
    def coordinate_parse(cls, value: str) -> "RepositoryCoordinate":
        """Parse `owner/repo` text into a coordinate.

        Args:
            value: Repository text in `owner/repo` format.

        Returns:
            RepositoryCoordinate: Parsed coordinate.

        Raises:
            ValueError: Raised when the value is not exactly two non-blank parts.
        """

        parts = value.strip().split("/")
        if len(parts) != 2 or not parts[0].strip() or not parts[1].strip():
            raise ValueError(f"repository must be in 'owner/repo' format, got {value!r}")
        return cls(owner=parts[0].strip(), name=parts[1].strip())

    def coordinate_slug(self) -> str:
        """Return the `owner/repo` slug."""

        return f"{self.owner}/{self.name}"

    def __str__(self) -> str:
        return self.coordinate_slug()


@dataclass(frozen=True)
class RunHandle:
    """Identifies one discovered remote workflow run.

    Attributes:
        run_id: Remote run identifier.
        repository: Repository the run belongs to.
        html_url: Browser URL for humans watching test output.
    """

    run_id: int
    repository: RepositoryCoordinate
    html_url: str = ""

    def handle_browser_url(self) -> str:
        """Return a browser URL for the run, synthesizing one when absent."""

        if self.html_url:
            return self.html_url
        return f"https://github.com/{self.repository.coordinate_slug()}/actions/runs/{self.run_id}"


@dataclass(frozen=True)
class WorkflowRun:
    """Workflow run contract returned by the workflow API port.

    Attributes:
        run_id: Remote run identifier.
        name: Workflow name.
        display_title: Run title, echoes `run-name` when the workflow sets one.
        event: Trigger event type.
        status: Converted lifecycle status.
        conclusion: Converted conclusion, None while active.
        created_at: Remote creation timestamp.
        html_url: Browser URL for the run.
        conclusion_raw: Conclusion string as the API sent it, empty while active.
    """

    run_id: int
    name: str
    display_title: str
    event: str
    status: WorkflowRunStatus
    conclusion: RunConclusion | None
    created_at: datetime | None
    html_url: str = ""
    conclusion_raw: str = ""


@dataclass(frozen=True)
class WorkflowJob:
    """Workflow job contract returned by the workflow API port.

    Attributes:
        job_id: Remote job identifier.
        name: Job display name.
        state: Converted job state.
        runner_name: Executor-assigned runner name, empty until claimed.
    """

    job_id: int
    name: str
    state: JobState
    runner_name: str = ""


@dataclass(frozen=True)
class JobStateSnapshot:
    """Per-poll mapping from job name to job state.

    Attributes:
        job_states: Job name to classified state.
    """

    job_states: dict[str, JobState] = field(default_factory=dict)

    @classmethod
    def snapshot_from_jobs(cls, jobs: list[WorkflowJob]) -> "JobStateSnapshot":
        """Build one snapshot from listed jobs.

        Duplicate job names (matrix jobs share a base name) are disambiguated
        with the job id.
        """

        job_states: dict[str, JobState] = {}
        for job in jobs:
            job_key = job.name if job.name not in job_states else f"{job.name}#{job.job_id}"
            job_states[job_key] = job.state
        return cls(job_states=job_states)

    def snapshot_is_empty(self) -> bool:
        """Return whether no jobs are registered yet."""

        return not self.job_states

    def snapshot_has_claimed_job(self) -> bool:
        """Return whether at least one job is in progress or completed."""

        return any(state.state_is_claimed() for state in self.job_states.values())

    def snapshot_counts(self) -> dict[str, int]:
        """Return job counts keyed by state value, in a deterministic order."""

        counts = {state.value: 0 for state in JobState}
        for state in self.job_states.values():
            counts[state.value] += 1
        return counts


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one remote shell command.

    Attributes:
        command_id: Remote command identifier.
        status: Terminal invocation status.
        stdout: Captured standard output.
        stderr: Captured standard error.
    """

    command_id: str
    status: CommandInvocationStatus
    stdout: str
    stderr: str

    def command_succeeded(self) -> bool:
        """Return whether the command finished with `Success`."""

        return self.status is CommandInvocationStatus.SUCCESS
