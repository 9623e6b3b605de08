"""Compliance validators: object versioning and log retention."""

from __future__ import annotations

import logging

from harness.adapters import CloudResourceClient

from .validation_errors import validation_require

logger = logging.getLogger(__name__)


def validation_bucket_versioning(cloud: CloudResourceClient, bucket_name: str, expected_status: str) -> None:
    """Require the bucket's versioning status to equal `expected_status`.

    Args:
        cloud: Cloud resource client.
        bucket_name: Bucket to inspect.
        expected_status: `Enabled`, `Suspended`, or empty for never configured.

    Raises:
        ValidationAssertionError: Raised when the status differs.
    """

    actual_status = cloud.cloud_get_bucket_versioning_status(bucket_name)
    validation_require(
        actual_status == expected_status,
        f"Bucket {bucket_name} versioning should be {expected_status}, got {actual_status}",
        "s3_versioning",
        bucket_name,
    )


def validation_log_retention(cloud: CloudResourceClient, log_group_prefix: str) -> None:
    """Require at least one log group under the prefix, each with retention set.

    Raises:
        ValidationAssertionError: Raised when no group exists or one never expires.
    """

    log_groups = cloud.cloud_describe_log_groups(log_group_prefix)
    validation_require(
        bool(log_groups),
        f"No log group found with prefix {log_group_prefix}",
        "log_retention",
        log_group_prefix,
    )
    for log_group in log_groups:
        validation_require(
            log_group.retention_days is not None,
            f"Log group {log_group.name} should have retention policy (not infinite)",
            "log_retention",
            log_group.name,
        )
        logger.info("Log group %s has retention of %s days", log_group.name, log_group.retention_days)
