"""boto3-backed implementation of the cloud resource capability interface."""

from __future__ import annotations

import logging
from typing import Any, Callable, Final

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .aws_errors import CloudResourceError, CloudResourceNotFoundError
from .interfaces import (
    CloudResourceClient,
    InstanceLaunchRequest,
    InstanceState,
    LogGroupState,
    MachineImage,
    PublicAccessBlockState,
)

logger = logging.getLogger(__name__)


class Boto3CloudResourceClient(CloudResourceClient):
    """Cloud resource client over boto3 service clients sharing one session."""

    _NOT_FOUND_ERROR_CODES: Final[frozenset[str]] = frozenset(
        {
            "NoSuchBucket",
            "NoSuchEntity",
            "ResourceNotFoundException",
            "InvalidInstanceID.NotFound",
        }
    )

    def __init__(self, region_name: str = "us-east-1", session: boto3.session.Session | None = None):
        """Initialize the client.

        Args:
            region_name: Region used for every service client.
            session: Optional preconfigured boto3 session.

        Raises:
            ValueError: Raised when the region is blank.
        """

        normalized_region_name = region_name.strip()
        if not normalized_region_name:
            raise ValueError("region_name must not be blank")

        self._region_name = normalized_region_name
        self._session = session or boto3.session.Session(region_name=normalized_region_name)
        self._service_clients: dict[str, Any] = {}

    def cloud_get_bucket_encryption_algorithms(self, bucket_name: str) -> list[str]:
        """Return default SSE algorithms of a bucket's encryption rules.

        Returns:
            list[str]: Algorithms in rule order, empty when no configuration exists.

        Raises:
            CloudResourceError: Raised when the SDK call fails.
        """

        try:
            response = self._cloud_call("s3", "get_bucket_encryption", Bucket=bucket_name)
        except CloudResourceError as error:
            if error.error_code == "ServerSideEncryptionConfigurationNotFoundError":
                return []
            raise
        rules = response.get("ServerSideEncryptionConfiguration", {}).get("Rules", [])
        return [
            str(rule.get("ApplyServerSideEncryptionByDefault", {}).get("SSEAlgorithm", ""))
            for rule in rules
        ]

    def cloud_get_bucket_logging_target(self, bucket_name: str) -> str | None:
        response = self._cloud_call("s3", "get_bucket_logging", Bucket=bucket_name)
        logging_enabled = response.get("LoggingEnabled")
        if not logging_enabled:
            return None
        return str(logging_enabled.get("TargetBucket") or "") or None

    def cloud_get_public_access_block(self, bucket_name: str) -> PublicAccessBlockState:
        """Return the bucket's public-access-block flags.

        A bucket without a configuration reports every flag as disabled.

        Raises:
            CloudResourceError: Raised when the SDK call fails.
        """

        try:
            response = self._cloud_call("s3", "get_public_access_block", Bucket=bucket_name)
        except CloudResourceError as error:
            if error.error_code == "NoSuchPublicAccessBlockConfiguration":
                return PublicAccessBlockState(False, False, False, False)
            raise
        configuration = response.get("PublicAccessBlockConfiguration", {})
        return PublicAccessBlockState(
            block_public_acls=bool(configuration.get("BlockPublicAcls", False)),
            block_public_policy=bool(configuration.get("BlockPublicPolicy", False)),
            ignore_public_acls=bool(configuration.get("IgnorePublicAcls", False)),
            restrict_public_buckets=bool(configuration.get("RestrictPublicBuckets", False)),
        )

    def cloud_get_bucket_versioning_status(self, bucket_name: str) -> str:
        response = self._cloud_call("s3", "get_bucket_versioning", Bucket=bucket_name)
        return str(response.get("Status") or "")

    def cloud_put_object(self, bucket_name: str, key: str, body: bytes) -> None:
        self._cloud_call("s3", "put_object", Bucket=bucket_name, Key=key, Body=body)

    def cloud_delete_object(self, bucket_name: str, key: str) -> None:
        self._cloud_call("s3", "delete_object", Bucket=bucket_name, Key=key)

    def cloud_get_table_encryption_status(self, table_name: str) -> str | None:
        """Return table SSE status.

        Returns:
            str | None: `ENABLED`, `ENABLING`, ... or None when the table uses
                the default owned key and reports no SSE description.

        Raises:
            CloudResourceNotFoundError: Raised when the table does not exist.
        """

        response = self._cloud_call("dynamodb", "describe_table", TableName=table_name)
        sse_description = response.get("Table", {}).get("SSEDescription")
        if not sse_description:
            return None
        return str(sse_description.get("Status") or "") or None

    def cloud_list_attached_role_policy_arns(self, role_name: str) -> list[str]:
        policy_arns: list[str] = []
        for page in self._cloud_paginate("iam", "list_attached_role_policies", RoleName=role_name):
            policy_arns.extend(str(policy["PolicyArn"]) for policy in page.get("AttachedPolicies", []))
        return policy_arns

    def cloud_describe_log_groups(self, name_prefix: str) -> list[LogGroupState]:
        log_groups: list[LogGroupState] = []
        for page in self._cloud_paginate("logs", "describe_log_groups", logGroupNamePrefix=name_prefix):
            for raw_group in page.get("logGroups", []):
                retention_days = raw_group.get("retentionInDays")
                log_groups.append(
                    LogGroupState(
                        name=str(raw_group.get("logGroupName", "")),
                        retention_days=int(retention_days) if retention_days is not None else None,
                    )
                )
        return log_groups

    def cloud_find_latest_image(self, name_pattern: str, architecture: str, owner: str) -> MachineImage:
        """Return the newest available image matching name and architecture.

        Raises:
            CloudResourceNotFoundError: Raised when no image matches.
        """

        response = self._cloud_call(
            "ec2",
            "describe_images",
            Owners=[owner],
            Filters=[
                {"Name": "name", "Values": [name_pattern]},
                {"Name": "state", "Values": ["available"]},
                {"Name": "architecture", "Values": [architecture]},
            ],
        )
        images = response.get("Images", [])
        if not images:
            raise CloudResourceNotFoundError(
                f"no image matches name={name_pattern} architecture={architecture}",
                operation="describe_images",
            )
        # ISO-8601 strings in a single format sort chronologically.
        latest_image = max(images, key=lambda image: str(image.get("CreationDate", "")))
        return MachineImage(
            image_id=str(latest_image["ImageId"]),
            name=str(latest_image.get("Name", "")),
            creation_date=str(latest_image.get("CreationDate", "")),
        )

    def cloud_launch_instance(self, request: InstanceLaunchRequest) -> str:
        """Launch one instance from a launch template.

        The network interface is declared explicitly since launch templates may
        carry their own network interface configuration, which conflicts with a
        plain `SubnetId`.

        Returns:
            str: Launched instance id.

        Raises:
            CloudResourceError: Raised when the launch fails or returns no instance.
        """

        response = self._cloud_call(
            "ec2",
            "run_instances",
            LaunchTemplate={
                "LaunchTemplateId": request.launch_template_id,
                "Version": request.launch_template_version,
            },
            ImageId=request.image_id,
            MinCount=1,
            MaxCount=1,
            NetworkInterfaces=[
                {
                    "DeviceIndex": 0,
                    "SubnetId": request.subnet_id,
                    "AssociatePublicIpAddress": request.associate_public_ip,
                    "DeleteOnTermination": True,
                }
            ],
            TagSpecifications=[
                {
                    "ResourceType": "instance",
                    "Tags": [{"Key": key, "Value": value} for key, value in request.tags.items()],
                }
            ],
        )
        instances = response.get("Instances", [])
        if len(instances) != 1:
            raise CloudResourceError(
                f"expected exactly one launched instance, got {len(instances)}",
                operation="run_instances",
            )
        return str(instances[0]["InstanceId"])

    def cloud_terminate_instance(self, instance_id: str) -> None:
        self._cloud_call("ec2", "terminate_instances", InstanceIds=[instance_id])

    def cloud_describe_instance(self, instance_id: str) -> InstanceState | None:
        try:
            response = self._cloud_call("ec2", "describe_instances", InstanceIds=[instance_id])
        except CloudResourceNotFoundError:
            return None
        instances = self._cloud_flatten_reservations(response)
        if not instances:
            return None
        return instances[0]

    def cloud_describe_instances_by_tag(
        self,
        tag_key: str,
        tag_value: str,
        state_names: tuple[str, ...],
    ) -> list[InstanceState]:
        filters = [{"Name": f"tag:{tag_key}", "Values": [tag_value]}]
        if state_names:
            filters.append({"Name": "instance-state-name", "Values": list(state_names)})
        instances: list[InstanceState] = []
        for page in self._cloud_paginate("ec2", "describe_instances", Filters=filters):
            instances.extend(self._cloud_flatten_reservations(page))
        return instances

    def cloud_get_ssm_ping_status(self, instance_id: str) -> str | None:
        response = self._cloud_call(
            "ssm",
            "describe_instance_information",
            Filters=[{"Key": "InstanceIds", "Values": [instance_id]}],
        )
        information_list = response.get("InstanceInformationList", [])
        if not information_list:
            return None
        return str(information_list[0].get("PingStatus") or "") or None

    def _cloud_flatten_reservations(self, response: dict[str, Any]) -> list[InstanceState]:
        instances: list[InstanceState] = []
        for reservation in response.get("Reservations", []):
            for raw_instance in reservation.get("Instances", []):
                instances.append(
                    InstanceState(
                        instance_id=str(raw_instance["InstanceId"]),
                        state_name=str(raw_instance.get("State", {}).get("Name", "")),
                        public_ip_address=raw_instance.get("PublicIpAddress") or None,
                        private_ip_address=raw_instance.get("PrivateIpAddress") or None,
                        launch_time=raw_instance.get("LaunchTime"),
                        tags={str(tag["Key"]): str(tag["Value"]) for tag in raw_instance.get("Tags", [])},
                    )
                )
        return instances

    def _cloud_client(self, service_name: str) -> Any:
        if service_name not in self._service_clients:
            self._service_clients[service_name] = self._session.client(service_name, region_name=self._region_name)
        return self._service_clients[service_name]

    def _cloud_call(self, service_name: str, operation: str, **parameters: Any) -> dict[str, Any]:
        """Invoke one SDK operation and map SDK errors onto typed errors.

        Raises:
            CloudResourceNotFoundError: Raised for known not-found error codes.
            CloudResourceError: Raised for any other SDK failure.
        """

        operation_callable: Callable[..., dict[str, Any]] = getattr(self._cloud_client(service_name), operation)
        try:
            return operation_callable(**parameters)
        except ClientError as error:
            raise self._cloud_map_client_error(operation, error) from error
        except BotoCoreError as error:
            raise CloudResourceError(f"{service_name}.{operation} failed: {error}", operation=operation) from error

    def _cloud_paginate(self, service_name: str, operation: str, **parameters: Any):
        paginator = self._cloud_client(service_name).get_paginator(operation)
        try:
            yield from paginator.paginate(**parameters)
        except ClientError as error:
            raise self._cloud_map_client_error(operation, error) from error
        except BotoCoreError as error:
            raise CloudResourceError(f"{service_name}.{operation} failed: {error}", operation=operation) from error

    def _cloud_map_client_error(self, operation: str, error: ClientError) -> CloudResourceError:
        error_code = str(error.response.get("Error", {}).get("Code", "Unknown"))
        error_message = str(error.response.get("Error", {}).get("Message", ""))
        message = f"{operation} failed: code={error_code}, message={error_message}"
        if error_code in self._NOT_FOUND_ERROR_CODES:
            return CloudResourceNotFoundError(message, operation=operation, error_code=error_code)
        return CloudResourceError(message, operation=operation, error_code=error_code)
