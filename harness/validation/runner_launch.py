"""Runner-launch validator: prove the executor started an instance for the stack."""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import Final

from harness.adapters import CloudResourceClient, InstanceState

from .validation_errors import ValidationAssertionError

logger = logging.getLogger(__name__)

STACK_NAME_TAG_KEY: Final[str] = "runs-on-stack-name"
RUNNER_STATE_NAMES: Final[tuple[str, ...]] = ("running", "terminated", "stopped")


def validation_find_launched_runner(
    cloud: CloudResourceClient,
    stack_name: str,
    since: datetime,
) -> InstanceState | None:
    """Return the first stack-tagged instance launched after `since`.

    Args:
        cloud: Cloud resource client.
        stack_name: Stack name the executor tags runner instances with.
        since: Observation start; naive values are treated as UTC.

    Returns:
        InstanceState | None: Matching instance, None when no runner launched.

    Raises:
        CloudResourceError: Raised when instances cannot be described.
    """

    since_utc = since if since.tzinfo is not None else since.replace(tzinfo=timezone.utc)
    instances = cloud.cloud_describe_instances_by_tag(
        tag_key=STACK_NAME_TAG_KEY,
        tag_value=stack_name,
        state_names=RUNNER_STATE_NAMES,
    )
    for instance in instances:
        launch_time = instance.launch_time
        if launch_time is None:
            continue
        if launch_time.tzinfo is None:
            launch_time = launch_time.replace(tzinfo=timezone.utc)
        if launch_time > since_utc:
            logger.info(
                "Found runner instance %s launched at %s (after %s)",
                instance.instance_id,
                launch_time.isoformat(),
                since_utc.isoformat(),
            )
            return instance
    logger.info("No runner instances found for stack %s launched after %s", stack_name, since_utc.isoformat())
    return None


def validation_runner_launched(cloud: CloudResourceClient, stack_name: str, since: datetime) -> InstanceState:
    """Require a runner instance launched for the stack after `since`.

    Raises:
        ValidationAssertionError: Raised when no such instance exists.
    """

    instance = validation_find_launched_runner(cloud=cloud, stack_name=stack_name, since=since)
    if instance is None:
        raise ValidationAssertionError(
            f"Runner instance should have been launched for stack {stack_name} after {since.isoformat()}",
            check_name="runner_launched",
            resource=stack_name,
        )
    return instance
