"""Validation layer package for deployed-stack assertions."""

from .compliance import validation_bucket_versioning, validation_log_retention
from .functional import (
	validation_ecr_push_pull,
	validation_efs_mount,
	validation_instance_cloudwatch_logs,
	validation_instance_has_no_public_ip,
	validation_is_access_denied,
	validation_latest_amazon_linux_image,
	validation_launch_test_instance,
	validation_outbound_connectivity,
	validation_parse_launch_template,
	validation_s3_access_from_instance,
	validation_terminate_test_instance,
	validation_wait_for_instance_ready,
)
from .health import validation_health_url, validation_service_healthy
from .runner_launch import STACK_NAME_TAG_KEY, validation_find_launched_runner, validation_runner_launched
from .security import (
	OVERLY_PERMISSIVE_POLICY_ARNS,
	validation_bucket_logs_to,
	validation_bucket_public_access_blocked,
	validation_bucket_uses_kms,
	validation_role_not_overly_permissive,
	validation_table_encrypted,
)
from .validation_errors import ValidationAssertionError, validation_require

__all__ = [
	"OVERLY_PERMISSIVE_POLICY_ARNS",
	"STACK_NAME_TAG_KEY",
	"ValidationAssertionError",
	"validation_bucket_logs_to",
	"validation_bucket_public_access_blocked",
	"validation_bucket_uses_kms",
	"validation_bucket_versioning",
	"validation_ecr_push_pull",
	"validation_efs_mount",
	"validation_find_launched_runner",
	"validation_health_url",
	"validation_instance_cloudwatch_logs",
	"validation_instance_has_no_public_ip",
	"validation_is_access_denied",
	"validation_latest_amazon_linux_image",
	"validation_launch_test_instance",
	"validation_log_retention",
	"validation_outbound_connectivity",
	"validation_parse_launch_template",
	"validation_require",
	"validation_role_not_overly_permissive",
	"validation_runner_launched",
	"validation_s3_access_from_instance",
	"validation_service_healthy",
	"validation_table_encrypted",
	"validation_terminate_test_instance",
]
