"""Typed interfaces for adapter-layer collaborator boundaries."""

from dataclasses import dataclass
from datetime import datetime
from typing import Mapping, Protocol

from harness.domain import CommandResult, RepositoryCoordinate, WorkflowJob, WorkflowRun


@dataclass(frozen=True)
class PublicAccessBlockState:
    """Bucket public-access-block flags.

    Attributes:
        block_public_acls: Reject requests carrying public ACLs.
        block_public_policy: Reject public bucket policies.
        ignore_public_acls: Ignore existing public ACLs.
        restrict_public_buckets: Restrict access to buckets with public policies.
    """

    block_public_acls: bool
    block_public_policy: bool
    ignore_public_acls: bool
    restrict_public_buckets: bool

    def access_fully_blocked(self) -> bool:
        """Return whether all four flags are enabled."""

        return all(
            (
                self.block_public_acls,
                self.block_public_policy,
                self.ignore_public_acls,
                self.restrict_public_buckets,
            )
        )


@dataclass(frozen=True)
class LogGroupState:
    """Log group name and retention setting.

    Attributes:
        name: Log group name.
        retention_days: Retention in days, None for never-expire.
    """

    name: str
    retention_days: int | None


@dataclass(frozen=True)
class MachineImage:
    """Machine image selected for functional test instances.

    Attributes:
        image_id: Image identifier.
        name: Image name.
        creation_date: ISO-8601 creation date string as reported upstream.
    """

    image_id: str
    name: str
    creation_date: str


@dataclass(frozen=True)
class InstanceState:
    """Compute instance facts used by functional validations.

    Attributes:
        instance_id: Instance identifier.
        state_name: Lifecycle state (`pending`, `running`, ...).
        public_ip_address: Public IPv4 address, None when not assigned.
        private_ip_address: Private IPv4 address.
        launch_time: Launch timestamp.
        tags: Instance tags.
    """

    instance_id: str
    state_name: str
    public_ip_address: str | None
    private_ip_address: str | None
    launch_time: datetime | None
    tags: dict[str, str]


@dataclass(frozen=True)
class InstanceLaunchRequest:
    """Parameters for launching one functional test instance.

    Attributes:
        launch_template_id: Launch template identifier.
        launch_template_version: Template version, `$Latest` by default.
        subnet_id: Subnet to place the network interface in.
        image_id: Image overriding the template's image.
        associate_public_ip: Assign a public IP (public subnets only).
        tags: Tags applied to the instance.
    """

    launch_template_id: str
    subnet_id: str
    image_id: str
    associate_public_ip: bool
    tags: Mapping[str, str]
    launch_template_version: str = "$Latest"


class WorkflowApiPort(Protocol):
    """Port definition for the source-hosting workflow API."""

    def workflow_list_runs(
        self,
        repository: RepositoryCoordinate,
        workflow_file: str,
        event: str | None = None,
        per_page: int = 10,
    ) -> list[WorkflowRun]:
        """List most recent runs of one workflow file.

        Args:
            repository: Target repository.
            workflow_file: Workflow file name (e.g. `test.yml`).
            event: Optional trigger-event filter.
            per_page: Page size of the newest-first listing.

        Returns:
            list[WorkflowRun]: Runs in upstream listing order.

        Raises:
            WorkflowApiTransientError: Raised for retryable failures.
            WorkflowApiRequestError: Raised for rejected requests.
        """

    def workflow_get_run(self, repository: RepositoryCoordinate, run_id: int) -> WorkflowRun:
        """Fetch one run by id.

        Raises:
            WorkflowApiTransientError: Raised for retryable failures.
        """

    def workflow_list_jobs(self, repository: RepositoryCoordinate, run_id: int) -> list[WorkflowJob]:
        """List jobs of one run.

        Raises:
            WorkflowApiTransientError: Raised for retryable failures.
        """

    def workflow_get_job_logs_url(self, repository: RepositoryCoordinate, job_id: int) -> str | None:
        """Return the short-lived download URL of one job's logs, None when unavailable."""

    def workflow_get_run_logs_url(self, repository: RepositoryCoordinate, run_id: int) -> str | None:
        """Return the short-lived download URL of one run's log archive, None when unavailable."""

    def workflow_dispatch(
        self,
        repository: RepositoryCoordinate,
        workflow_file: str,
        ref: str,
        inputs: Mapping[str, str],
    ) -> None:
        """Create one `workflow_dispatch` event.

        Raises:
            WorkflowApiRequestError: Raised when the dispatch is rejected.
        """


class LogArchiveFetcherPort(Protocol):
    """Port definition for capped log downloads."""

    def fetcher_download(self, url: str, max_bytes: int) -> bytes:
        """Download at most `max_bytes` bytes from `url`.

        Raises:
            LogArchiveFetchError: Raised when the download fails.
        """


class CloudResourceClient(Protocol):
    """Single capability interface over the cloud provider SDK."""

    def cloud_get_bucket_encryption_algorithms(self, bucket_name: str) -> list[str]:
        """Return default server-side encryption algorithms of a bucket's rules."""

    def cloud_get_bucket_logging_target(self, bucket_name: str) -> str | None:
        """Return the access-log target bucket, None when logging is disabled."""

    def cloud_get_public_access_block(self, bucket_name: str) -> PublicAccessBlockState:
        """Return a bucket's public-access-block configuration."""

    def cloud_get_bucket_versioning_status(self, bucket_name: str) -> str:
        """Return `Enabled`, `Suspended` or an empty string when never configured."""

    def cloud_put_object(self, bucket_name: str, key: str, body: bytes) -> None:
        """Store one object."""

    def cloud_delete_object(self, bucket_name: str, key: str) -> None:
        """Delete one object."""

    def cloud_get_table_encryption_status(self, table_name: str) -> str | None:
        """Return table SSE status, None when the default owned key is used."""

    def cloud_list_attached_role_policy_arns(self, role_name: str) -> list[str]:
        """Return managed policy ARNs attached to a role."""

    def cloud_describe_log_groups(self, name_prefix: str) -> list[LogGroupState]:
        """Return log groups whose name starts with `name_prefix`."""

    def cloud_find_latest_image(self, name_pattern: str, architecture: str, owner: str) -> MachineImage:
        """Return the newest available image matching the filters."""

    def cloud_launch_instance(self, request: InstanceLaunchRequest) -> str:
        """Launch one instance and return its id."""

    def cloud_terminate_instance(self, instance_id: str) -> None:
        """Terminate one instance."""

    def cloud_describe_instance(self, instance_id: str) -> InstanceState | None:
        """Return one instance's state, None when not found."""

    def cloud_describe_instances_by_tag(
        self,
        tag_key: str,
        tag_value: str,
        state_names: tuple[str, ...],
    ) -> list[InstanceState]:
        """Return instances carrying a tag, filtered by lifecycle state."""

    def cloud_get_ssm_ping_status(self, instance_id: str) -> str | None:
        """Return the SSM agent ping status, None when not registered."""


class RemoteCommandPort(Protocol):
    """Port definition for executing shell commands on a named host."""

    def command_run(self, instance_id: str, commands: list[str]) -> CommandResult:
        """Run commands and wait for a terminal status.

        Raises:
            RemoteCommandError: Raised when the command cannot be submitted or polled.
            RemoteCommandTimeoutError: Raised when no terminal status is observed.
        """


class InfrastructureProvisionerPort(Protocol):
    """Port definition for the infrastructure-as-code tool."""

    def provisioner_init_and_apply(self) -> None:
        """Initialize the working directory and apply the stack."""

    def provisioner_destroy(self) -> None:
        """Destroy the stack."""

    def provisioner_output(self, name: str) -> str:
        """Return one string output."""

    def provisioner_output_list(self, name: str) -> list[str]:
        """Return one list output."""
