"""Functional validators executed from a test instance launched in the stack.

Checks run shell commands over the remote command port and compare the
outcome with the permissions the stack's instance role is meant to grant.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Final, Mapping

from harness.adapters import (
    CloudResourceClient,
    CloudResourceError,
    InstanceLaunchRequest,
    MachineImage,
    RemoteCommandPort,
)
from harness.domain import CommandResult
from harness.jobs import PollAttempt, PollingStrategy, job_poll_until

from .validation_errors import ValidationAssertionError, validation_require

logger = logging.getLogger(__name__)

AMAZON_LINUX_2023_NAME_PATTERN: Final[str] = "al2023-ami-2023*-x86_64"
AMAZON_LINUX_2023_ARCHITECTURE: Final[str] = "x86_64"
AMAZON_IMAGE_OWNER: Final[str] = "amazon"
DEFAULT_TEST_INSTANCE_TAGS: Final[dict[str, str]] = {
    "Name": "harness-functional-test",
    "TestFramework": "harness",
    "AutoCleanup": "true",
}
ACCESS_DENIED_MARKERS: Final[tuple[str, ...]] = ("AccessDenied", "Access Denied", "403", "Forbidden")
INSTANCE_RUNNING_POLL_SECONDS: Final[float] = 10.0
SSM_ONLINE_POLL_SECONDS: Final[float] = 15.0
OTHER_RUNNER_USER_ID: Final[str] = "other-fake-userid"


def validation_latest_amazon_linux_image(cloud: CloudResourceClient) -> MachineImage:
    """Return the newest Amazon Linux 2023 x86_64 image."""

    image = cloud.cloud_find_latest_image(
        name_pattern=AMAZON_LINUX_2023_NAME_PATTERN,
        architecture=AMAZON_LINUX_2023_ARCHITECTURE,
        owner=AMAZON_IMAGE_OWNER,
    )
    logger.info("Using image %s (%s)", image.image_id, image.name)
    return image


def validation_parse_launch_template(launch_template: str) -> tuple[str, str]:
    """Split `lt-id[:version]` into id and version, `$Latest` by default.

    Raises:
        ValueError: Raised when the template id is blank.
    """

    template_id, _separator, version = launch_template.strip().partition(":")
    if not template_id.strip():
        raise ValueError("launch template id must not be blank")
    return template_id.strip(), version.strip() or "$Latest"


def validation_launch_test_instance(
    cloud: CloudResourceClient,
    launch_template: str,
    subnet_id: str,
    associate_public_ip: bool,
    tags: Mapping[str, str] | None = None,
) -> str:
    """Launch one test instance from a launch template.

    The template may not pin an image, so the latest Amazon Linux 2023 image
    overrides it.

    Args:
        cloud: Cloud resource client.
        launch_template: Template reference in `lt-id[:version]` form.
        subnet_id: Subnet for the primary network interface.
        associate_public_ip: Assign a public IP (public subnets need one for SSM).
        tags: Instance tags, a cleanup-friendly default set when omitted.

    Returns:
        str: Launched instance id.

    Raises:
        ValueError: Raised when the template or subnet is blank.
        CloudResourceError: Raised when the launch fails.
    """

    if not subnet_id.strip():
        raise ValueError("subnet_id must not be blank")
    template_id, template_version = validation_parse_launch_template(launch_template)
    image = validation_latest_amazon_linux_image(cloud)
    logger.info(
        "Launching test instance from template %s (version %s) in subnet %s with image %s",
        template_id,
        template_version,
        subnet_id,
        image.image_id,
    )
    instance_id = cloud.cloud_launch_instance(
        InstanceLaunchRequest(
            launch_template_id=template_id,
            launch_template_version=template_version,
            subnet_id=subnet_id.strip(),
            image_id=image.image_id,
            associate_public_ip=associate_public_ip,
            tags=dict(tags if tags is not None else DEFAULT_TEST_INSTANCE_TAGS),
        )
    )
    logger.info("Launched test instance %s", instance_id)
    return instance_id


def validation_terminate_test_instance(cloud: CloudResourceClient, instance_id: str) -> None:
    """Terminate a test instance, logging instead of raising on failure."""

    if not instance_id:
        return
    logger.info("Terminating test instance %s", instance_id)
    try:
        cloud.cloud_terminate_instance(instance_id)
    except CloudResourceError as error:
        logger.warning("Failed to terminate instance %s: %s", instance_id, error)


def validation_wait_for_instance_ready(
    cloud: CloudResourceClient,
    instance_id: str,
    timeout_seconds: float,
    clock: Callable[[], float] = time.monotonic,
    sleeper: Callable[[float], None] = time.sleep,
) -> bool:
    """Wait until the instance is running and its SSM agent reports `Online`.

    Both stages share one deadline.

    Args:
        cloud: Cloud resource client.
        instance_id: Instance to wait for.
        timeout_seconds: Overall timeout.
        clock: Monotonic clock.
        sleeper: Sleep function.

    Returns:
        bool: True when ready, False when the deadline passed first.

    Raises:
        ValueError: Raised when the timeout is not positive.
    """

    if timeout_seconds <= 0:
        raise ValueError("timeout_seconds must be > 0")
    deadline = clock() + timeout_seconds
    logger.info("Waiting for instance %s to be running and SSM-ready (timeout %.0fs)", instance_id, timeout_seconds)

    def _running_probe(attempt: PollAttempt) -> bool | None:
        try:
            instance = cloud.cloud_describe_instance(instance_id)
        except CloudResourceError as error:
            logger.info("Error describing instance %s: %s", instance_id, error)
            return None
        state_name = instance.state_name if instance is not None else "unknown"
        if state_name == "running":
            logger.info("Instance %s is running, checking SSM readiness", instance_id)
            return True
        logger.info("Instance %s state: %s", instance_id, state_name)
        return None

    def _ssm_probe(attempt: PollAttempt) -> bool | None:
        try:
            ping_status = cloud.cloud_get_ssm_ping_status(instance_id)
        except CloudResourceError as error:
            logger.info("Error checking SSM status of %s: %s", instance_id, error)
            return None
        if ping_status == "Online":
            logger.info("Instance %s is SSM-ready", instance_id)
            return True
        logger.info("Instance %s SSM ping status: %s", instance_id, ping_status or "not registered")
        return None

    def _not_ready(attempt: PollAttempt) -> bool:
        logger.warning("Timeout waiting for instance %s to become SSM-ready", instance_id)
        return False

    is_running = job_poll_until(
        phase="instance_running",
        probe=_running_probe,
        timeout_seconds=timeout_seconds,
        strategy=PollingStrategy(interval_seconds=INSTANCE_RUNNING_POLL_SECONDS, clock=clock, sleeper=sleeper),
        on_timeout=_not_ready,
    )
    remaining_seconds = deadline - clock()
    if not is_running or remaining_seconds <= 0:
        return False
    return job_poll_until(
        phase="instance_ssm_online",
        probe=_ssm_probe,
        timeout_seconds=remaining_seconds,
        strategy=PollingStrategy(interval_seconds=SSM_ONLINE_POLL_SECONDS, clock=clock, sleeper=sleeper),
        on_timeout=_not_ready,
    )


def validation_is_access_denied(output: str) -> bool:
    """Return whether command output reports an authorization failure."""

    return any(marker in output for marker in ACCESS_DENIED_MARKERS)


def _validation_run(commands: RemoteCommandPort, instance_id: str, command: str) -> CommandResult:
    return commands.command_run(instance_id=instance_id, commands=[command])


def validation_s3_access_from_instance(
    cloud: CloudResourceClient,
    commands: RemoteCommandPort,
    instance_id: str,
    cache_bucket: str,
    config_bucket: str,
    region_name: str,
    unique_suffix: str | None = None,
) -> None:
    """Verify the instance role's object storage permissions from the instance.

    Allowed: write and read `cache/*`, read `runners/<own userid>/*` in the
    cache bucket, read `agents/*` in the config bucket. Denied: write to
    `runners/*` and read `runners/<other userid>/*`.

    Args:
        cloud: Cloud client acting with the test operator's credentials.
        commands: Remote command port.
        instance_id: Instance to run checks from.
        cache_bucket: Cache bucket name.
        config_bucket: Config bucket name.
        region_name: Region passed to the remote CLI.
        unique_suffix: Object name suffix, time-based when omitted.

    Raises:
        ValidationAssertionError: Raised at the first permission mismatch.
    """

    test_file = f"functional-test-{unique_suffix or time.time_ns()}"
    test_content = f"test-content-{test_file}"

    identity_result = _validation_run(
        commands, instance_id, "aws sts get-caller-identity --query 'UserId' --output text"
    )
    user_id = identity_result.stdout.strip()
    validation_require(
        identity_result.command_succeeded() and bool(user_id),
        f"Failed to get caller identity. stderr: {identity_result.stderr}",
        "s3_access",
        instance_id,
    )
    logger.info("Instance %s aws:userid = %s", instance_id, user_id)

    cache_key = f"cache/{test_file}"
    write_result = _validation_run(
        commands,
        instance_id,
        f"echo '{test_content}' | aws s3 cp - s3://{cache_bucket}/{cache_key} --region {region_name} 2>&1",
    )
    validation_require(
        write_result.command_succeeded(),
        f"Should be able to write to cache/*: {write_result.stdout}",
        "s3_access",
        cache_bucket,
    )

    read_result = _validation_run(
        commands, instance_id, f"aws s3 cp s3://{cache_bucket}/{cache_key} - --region {region_name} 2>&1"
    )
    validation_require(
        read_result.command_succeeded() and test_content in read_result.stdout,
        f"Should be able to read back cache/*: {read_result.stdout}",
        "s3_access",
        cache_bucket,
    )
    cloud.cloud_delete_object(cache_bucket, cache_key)

    _validation_require_readable(
        cloud, commands, instance_id, cache_bucket, f"runners/{user_id}/{test_file}", "runners-test-content", region_name
    )
    _validation_require_readable(
        cloud, commands, instance_id, config_bucket, f"agents/{test_file}", "agents-test-content", region_name
    )

    denied_write_result = _validation_run(
        commands,
        instance_id,
        f"echo 'test' | aws s3 cp - s3://{cache_bucket}/runners/{test_file} --region {region_name} 2>&1",
    )
    validation_require(
        validation_is_access_denied(denied_write_result.stdout),
        f"Should NOT be able to write to runners/*, got: {denied_write_result.stdout}",
        "s3_access",
        cache_bucket,
    )

    other_key = f"runners/{OTHER_RUNNER_USER_ID}/{test_file}"
    cloud.cloud_put_object(cache_bucket, other_key, b"other-user-content")
    try:
        denied_read_result = _validation_run(
            commands, instance_id, f"aws s3 cp s3://{cache_bucket}/{other_key} - --region {region_name} 2>&1"
        )
    finally:
        cloud.cloud_delete_object(cache_bucket, other_key)
    validation_require(
        validation_is_access_denied(denied_read_result.stdout),
        f"Should NOT be able to read from other user's runners path, got: {denied_read_result.stdout}",
        "s3_access",
        cache_bucket,
    )
    logger.info("Object storage access matrix verified from instance %s", instance_id)


def _validation_require_readable(
    cloud: CloudResourceClient,
    commands: RemoteCommandPort,
    instance_id: str,
    bucket_name: str,
    key: str,
    content: str,
    region_name: str,
) -> None:
    cloud.cloud_put_object(bucket_name, key, content.encode("utf-8"))
    try:
        read_result = _validation_run(
            commands, instance_id, f"aws s3 cp s3://{bucket_name}/{key} - --region {region_name} 2>&1"
        )
    finally:
        cloud.cloud_delete_object(bucket_name, key)
    validation_require(
        read_result.command_succeeded() and content in read_result.stdout,
        f"Should be able to read s3://{bucket_name}/{key}, got: {read_result.stdout}",
        "s3_access",
        bucket_name,
    )


def validation_instance_has_no_public_ip(cloud: CloudResourceClient, instance_id: str) -> None:
    """Require a private address and no public address.

    Raises:
        ValidationAssertionError: Raised when the instance is missing or publicly addressed.
    """

    instance = cloud.cloud_describe_instance(instance_id)
    if instance is None:
        raise ValidationAssertionError(f"Instance {instance_id} not found", check_name="no_public_ip", resource=instance_id)
    validation_require(
        not instance.public_ip_address,
        f"Instance {instance_id} should not have a public IP, got: {instance.public_ip_address}",
        "no_public_ip",
        instance_id,
    )
    validation_require(
        bool(instance.private_ip_address),
        f"Instance {instance_id} should have a private IP",
        "no_public_ip",
        instance_id,
    )
    logger.info("Instance %s has private IP %s and no public IP", instance_id, instance.private_ip_address)


def validation_instance_cloudwatch_logs(
    cloud: CloudResourceClient,
    commands: RemoteCommandPort,
    instance_id: str,
    log_group_name: str,
    propagation_seconds: float = 10.0,
    sleeper: Callable[[float], None] = time.sleep,
) -> None:
    """Emit a syslog line on the instance and require its log group to exist.

    Raises:
        ValidationAssertionError: Raised when the log group is missing.
    """

    log_result = _validation_run(
        commands, instance_id, f"logger -t harness 'Functional test log entry from {instance_id}'"
    )
    if not log_result.command_succeeded():
        logger.warning("Emitting a log line on %s ended with %s", instance_id, log_result.status.value)
    sleeper(propagation_seconds)
    log_groups = cloud.cloud_describe_log_groups(log_group_name)
    validation_require(bool(log_groups), f"Log group {log_group_name} not found", "cloudwatch_logs", log_group_name)
    logger.info("Log group %s exists and is configured", log_group_name)


def validation_outbound_connectivity(
    commands: RemoteCommandPort,
    instance_id: str,
    probe_url: str = "https://api.github.com",
) -> None:
    """Require an HTTPS request from the instance to reach `probe_url`.

    From a private subnet this proves the NAT gateway routes egress.

    Raises:
        ValidationAssertionError: Raised when the request fails or returns a non-2xx/3xx code.
    """

    result = _validation_run(
        commands,
        instance_id,
        f"curl -sS -o /dev/null -w '%{{http_code}}' --max-time 15 {probe_url} 2>&1",
    )
    http_code = result.stdout.strip()[-3:]
    validation_require(
        result.command_succeeded() and http_code[:1] in ("2", "3"),
        f"Outbound request to {probe_url} failed: status={result.status.value} output={result.stdout.strip()}",
        "outbound_connectivity",
        instance_id,
    )


def validation_efs_mount(commands: RemoteCommandPort, instance_id: str, file_system_id: str) -> None:
    """Mount the file system, write and read a file, then unmount.

    Raises:
        ValidationAssertionError: Raised when any step fails or the content differs.
    """

    mount_point = "/mnt/harness-efs"
    test_content = f"efs-test-{file_system_id}"
    result = commands.command_run(
        instance_id=instance_id,
        commands=[
            "set -e",
            f"sudo mkdir -p {mount_point}",
            f"sudo mount -t efs -o tls {file_system_id}:/ {mount_point}",
            f"echo '{test_content}' | sudo tee {mount_point}/harness-test.txt > /dev/null",
            f"cat {mount_point}/harness-test.txt",
            f"sudo rm -f {mount_point}/harness-test.txt",
            f"sudo umount {mount_point}",
        ],
    )
    validation_require(
        result.command_succeeded() and test_content in result.stdout,
        f"EFS {file_system_id} mount/write/read failed: {result.stderr or result.stdout}",
        "efs_mount",
        file_system_id,
    )


def validation_ecr_push_pull(
    commands: RemoteCommandPort,
    instance_id: str,
    repository_url: str,
    region_name: str,
    source_image: str = "public.ecr.aws/docker/library/busybox:latest",
) -> None:
    """Log in to the registry, push a tagged image and pull it back.

    Raises:
        ValidationAssertionError: Raised when login, push or pull fails.
    """

    registry_host = repository_url.split("/", 1)[0]
    target_image = f"{repository_url}:harness-{int(time.time())}"
    result = commands.command_run(
        instance_id=instance_id,
        commands=[
            "set -e",
            f"aws ecr get-login-password --region {region_name} | "
            f"docker login --username AWS --password-stdin {registry_host}",
            f"docker pull {source_image}",
            f"docker tag {source_image} {target_image}",
            f"docker push {target_image}",
            f"docker rmi {target_image}",
            f"docker pull {target_image}",
            "echo harness-ecr-ok",
        ],
    )
    validation_require(
        result.command_succeeded() and "harness-ecr-ok" in result.stdout,
        f"ECR push/pull to {repository_url} failed: {result.stderr or result.stdout}",
        "ecr_push_pull",
        repository_url,
    )
