"""Security posture validators for storage, table and role resources."""

from __future__ import annotations

import logging
from typing import Final

from harness.adapters import CloudResourceClient

from .validation_errors import validation_require

logger = logging.getLogger(__name__)

KMS_ENCRYPTION_ALGORITHM: Final[str] = "aws:kms"
ACCEPTED_TABLE_ENCRYPTION_STATUSES: Final[frozenset[str]] = frozenset({"ENABLED", "ENABLING"})
OVERLY_PERMISSIVE_POLICY_ARNS: Final[tuple[str, ...]] = (
    "arn:aws:iam::aws:policy/AdministratorAccess",
    "arn:aws:iam::aws:policy/PowerUserAccess",
    "arn:aws:iam::aws:policy/IAMFullAccess",
)


def validation_bucket_uses_kms(cloud: CloudResourceClient, bucket_name: str) -> None:
    """Require the bucket's first default encryption rule to use KMS.

    Raises:
        ValidationAssertionError: Raised when no rule exists or the algorithm differs.
        CloudResourceError: Raised when the configuration cannot be read.
    """

    algorithms = cloud.cloud_get_bucket_encryption_algorithms(bucket_name)
    validation_require(bool(algorithms), f"Bucket {bucket_name} has no encryption rules", "s3_encryption", bucket_name)
    validation_require(
        algorithms[0] == KMS_ENCRYPTION_ALGORITHM,
        f"Bucket {bucket_name} should use KMS encryption, got {algorithms[0]}",
        "s3_encryption",
        bucket_name,
    )
    logger.info("Bucket %s encryption verified (%s)", bucket_name, algorithms[0])


def validation_bucket_logs_to(cloud: CloudResourceClient, bucket_name: str, expected_target_bucket: str) -> None:
    """Require access logging into `expected_target_bucket`.

    Raises:
        ValidationAssertionError: Raised when logging is disabled or targets another bucket.
    """

    target_bucket = cloud.cloud_get_bucket_logging_target(bucket_name)
    validation_require(
        target_bucket is not None,
        f"Bucket {bucket_name} should have logging enabled",
        "s3_access_logging",
        bucket_name,
    )
    validation_require(
        expected_target_bucket in (target_bucket or ""),
        f"Bucket {bucket_name} should log to {expected_target_bucket}, got {target_bucket}",
        "s3_access_logging",
        bucket_name,
    )


def validation_bucket_public_access_blocked(cloud: CloudResourceClient, bucket_name: str) -> None:
    """Require all four public-access-block flags.

    Raises:
        ValidationAssertionError: Raised naming the first disabled flag.
    """

    block_state = cloud.cloud_get_public_access_block(bucket_name)
    flag_messages = (
        (block_state.block_public_acls, "block public ACLs"),
        (block_state.block_public_policy, "block public policy"),
        (block_state.ignore_public_acls, "ignore public ACLs"),
        (block_state.restrict_public_buckets, "restrict public buckets"),
    )
    for flag_enabled, description in flag_messages:
        validation_require(flag_enabled, f"Bucket {bucket_name} should {description}", "s3_public_access", bucket_name)


def validation_table_encrypted(cloud: CloudResourceClient, table_name: str) -> None:
    """Require table encryption at rest.

    A missing SSE description means the default owned key is in use, which
    is accepted.

    Raises:
        ValidationAssertionError: Raised when the SSE status is not enabled.
    """

    encryption_status = cloud.cloud_get_table_encryption_status(table_name)
    if encryption_status is not None:
        validation_require(
            encryption_status in ACCEPTED_TABLE_ENCRYPTION_STATUSES,
            f"DynamoDB table {table_name} encryption status should be ENABLED, got {encryption_status}",
            "dynamodb_encryption",
            table_name,
        )
    logger.info("DynamoDB table %s encryption verified (%s)", table_name, encryption_status or "default key")


def validation_role_not_overly_permissive(cloud: CloudResourceClient, role_name: str) -> None:
    """Require the role to carry none of the broad managed policies.

    Raises:
        ValidationAssertionError: Raised for the first broad policy found.
    """

    attached_policy_arns = set(cloud.cloud_list_attached_role_policy_arns(role_name))
    for policy_arn in OVERLY_PERMISSIVE_POLICY_ARNS:
        validation_require(
            policy_arn not in attached_policy_arns,
            f"Role {role_name} should not have {policy_arn} attached",
            "iam_minimal_permissions",
            role_name,
        )
    logger.info("IAM role %s has no overly permissive policies attached", role_name)
