"""Domain models and status vocabularies used across harness layer boundaries."""

from .models import (
	CommandResult,
	CorrelationToken,
	JobStateSnapshot,
	ObservationWindow,
	RepositoryCoordinate,
	RunHandle,
	WorkflowJob,
	WorkflowRun,
	domain_generate_test_id,
)
from .statuses import (
	COMMAND_TERMINAL_STATUSES,
	CommandInvocationStatus,
	JobState,
	RunConclusion,
	WorkflowRunStatus,
)
from .timeline import domain_build_stage_event, domain_timeline_stage_statuses

__all__ = [
	"COMMAND_TERMINAL_STATUSES",
	"CommandInvocationStatus",
	"CommandResult",
	"CorrelationToken",
	"JobState",
	"JobStateSnapshot",
	"ObservationWindow",
	"RepositoryCoordinate",
	"RunConclusion",
	"RunHandle",
	"WorkflowJob",
	"WorkflowRun",
	"WorkflowRunStatus",
	"domain_build_stage_event",
	"domain_generate_test_id",
	"domain_timeline_stage_statuses",
]
