"""Closed status vocabularies converted once at adapter boundaries."""

from __future__ import annotations

from enum import Enum
from typing import Final


class WorkflowRunStatus(str, Enum):
    """GitHub Actions workflow run lifecycle states."""

    REQUESTED = "requested"
    QUEUED = "queued"
    PENDING = "pending"
    WAITING = "waiting"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    OTHER = "other"

    @classmethod
    def status_from_api(cls, raw_value: str | None) -> "WorkflowRunStatus":
        """Convert one raw API status string to the closed enumeration.

        Args:
            raw_value: Raw `status` field from the workflow API.

        Returns:
            WorkflowRunStatus: Matching member, or `OTHER` for unknown values.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        normalized_value = (raw_value or "").strip().lower()
        for member in cls:
            if member.value == normalized_value:
                return member
        return cls.OTHER


class JobState(str, Enum):
    """Job state classification used by job-state snapshots."""

    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    OTHER = "other"

    @classmethod
    def state_from_api(cls, raw_value: str | None) -> "JobState":
        """Convert one raw job `status` value into a job state.

        Args:
            raw_value: Raw job status from the workflow API.

        Returns:
            JobState: `QUEUED`, `IN_PROGRESS`, `COMPLETED` or `OTHER`.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        normalized_value = (raw_value or "").strip().lower()
        if normalized_value == cls.QUEUED.value:
            return cls.QUEUED
        if normalized_value == cls.IN_PROGRESS.value:
            return cls.IN_PROGRESS
        if normalized_value == cls.COMPLETED.value:
            return cls.COMPLETED
        return cls.OTHER

    def state_is_claimed(self) -> bool:
        """Return whether an executor has picked up the job."""

        return self in (JobState.IN_PROGRESS, JobState.COMPLETED)


class RunConclusion(str, Enum):
    """Terminal run outcome labels plus the observation-timeout sentinel.

    `UNKNOWN` is never produced by the remote system. It marks a run whose
    completion was not observed before the deadline.
    """

    SUCCESS = "success"
    FAILURE = "failure"
    CANCELLED = "cancelled"
    NEUTRAL = "neutral"
    SKIPPED = "skipped"
    TIMED_OUT = "timed_out"
    ACTION_REQUIRED = "action_required"
    STALE = "stale"
    STARTUP_FAILURE = "startup_failure"
    UNRECOGNIZED = "unrecognized"
    UNKNOWN = "unknown"

    @classmethod
    def conclusion_from_api(cls, raw_value: str | None) -> "RunConclusion | None":
        """Convert one raw API conclusion string.

        Args:
            raw_value: Raw `conclusion` field, `None` while the run is active.

        Returns:
            RunConclusion | None: Converted conclusion, or None when absent.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        normalized_value = (raw_value or "").strip().lower()
        if not normalized_value:
            return None
        if normalized_value in (cls.UNKNOWN.value, cls.UNRECOGNIZED.value):
            return cls.UNRECOGNIZED
        for member in cls:
            if member.value == normalized_value:
                return member
        return cls.UNRECOGNIZED

    def conclusion_was_observed(self) -> bool:
        """Return whether this conclusion came from an observed completion."""

        return self is not RunConclusion.UNKNOWN


class CommandInvocationStatus(str, Enum):
    """Remote shell command invocation states reported by SSM."""

    PENDING = "Pending"
    IN_PROGRESS = "InProgress"
    DELAYED = "Delayed"
    SUCCESS = "Success"
    CANCELLED = "Cancelled"
    CANCELLING = "Cancelling"
    TIMED_OUT = "TimedOut"
    FAILED = "Failed"
    OTHER = "Other"

    @classmethod
    def status_from_api(cls, raw_value: str | None) -> "CommandInvocationStatus":
        """Convert one raw SSM invocation status."""

        normalized_value = (raw_value or "").strip()
        for member in cls:
            if member.value == normalized_value:
                return member
        return cls.OTHER

    def status_is_terminal(self) -> bool:
        """Return whether no further status transitions are expected."""

        return self in COMMAND_TERMINAL_STATUSES


COMMAND_TERMINAL_STATUSES: Final[frozenset[CommandInvocationStatus]] = frozenset(
    {
        CommandInvocationStatus.SUCCESS,
        CommandInvocationStatus.FAILED,
        CommandInvocationStatus.CANCELLED,
        CommandInvocationStatus.TIMED_OUT,
    }
)
