"""Adapter layer package for workflow API, cloud SDK and provisioning boundaries."""

from .aws_errors import (
	CloudResourceError,
	CloudResourceNotFoundError,
	ProvisionerError,
	RemoteCommandError,
	RemoteCommandTimeoutError,
)
from .aws_resources import Boto3CloudResourceClient
from .github_actions import GitHubActionsAdapter
from .github_errors import (
	LogArchiveFetchError,
	WorkflowApiAuthenticationError,
	WorkflowApiError,
	WorkflowApiRequestError,
	WorkflowApiResponseError,
	WorkflowApiTimeoutError,
	WorkflowApiTransientError,
)
from .interfaces import (
	CloudResourceClient,
	InfrastructureProvisionerPort,
	InstanceLaunchRequest,
	InstanceState,
	LogArchiveFetcherPort,
	LogGroupState,
	MachineImage,
	PublicAccessBlockState,
	RemoteCommandPort,
	WorkflowApiPort,
)
from .log_archive import HttpLogArchiveFetcher
from .opentofu import OpenTofuProvisioner, opentofu_copy_module
from .ssm_commands import SsmRemoteCommandRunner

__all__ = [
	"Boto3CloudResourceClient",
	"CloudResourceClient",
	"CloudResourceError",
	"CloudResourceNotFoundError",
	"GitHubActionsAdapter",
	"HttpLogArchiveFetcher",
	"InfrastructureProvisionerPort",
	"InstanceLaunchRequest",
	"InstanceState",
	"LogArchiveFetchError",
	"LogArchiveFetcherPort",
	"LogGroupState",
	"MachineImage",
	"OpenTofuProvisioner",
	"ProvisionerError",
	"PublicAccessBlockState",
	"RemoteCommandError",
	"RemoteCommandPort",
	"RemoteCommandTimeoutError",
	"SsmRemoteCommandRunner",
	"WorkflowApiAuthenticationError",
	"WorkflowApiError",
	"WorkflowApiPort",
	"WorkflowApiRequestError",
	"WorkflowApiResponseError",
	"WorkflowApiTimeoutError",
	"WorkflowApiTransientError",
	"opentofu_copy_module",
]
