"""Scenario configuration rendered into infrastructure module variables."""

from __future__ import annotations

from dataclasses import dataclass, replace

from harness.domain import domain_generate_test_id

from .settings import HarnessSettings


@dataclass(frozen=True)
class ScenarioConfig:
    """Common configuration for one deployment scenario.

    Attributes:
        test_id: Unique test identifier used for resource naming.
        github_org: GitHub organization the runner stack serves.
        license_key: Runner stack license key.
        aws_region: Deployment region.
        enable_nat: Deploy NAT gateways and private subnets.
        enable_efs: Deploy the shared EFS file system.
        enable_ecr: Deploy the ECR image cache repository.
    """

    test_id: str
    github_org: str
    license_key: str
    aws_region: str = "us-east-1"
    enable_nat: bool = False
    enable_efs: bool = False
    enable_ecr: bool = False

    @classmethod
    def scenario_default(cls, settings: HarnessSettings) -> "ScenarioConfig":
        """Build a config with test defaults and all optional features disabled.

        Args:
            settings: Loaded harness settings.

        Returns:
            ScenarioConfig: Fresh config with a new test id.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        return cls(
            test_id=domain_generate_test_id(),
            github_org=settings.settings_github_org(),
            license_key=settings.runs_on_license_key,
            aws_region=settings.aws_region,
        )

    def scenario_with_features(self, enable_nat: bool, enable_efs: bool, enable_ecr: bool) -> "ScenarioConfig":
        """Return a copy with the optional feature toggles replaced."""

        return replace(self, enable_nat=enable_nat, enable_efs=enable_efs, enable_ecr=enable_ecr)

    def scenario_stack_name(self) -> str:
        """Return the stack name deployed for this scenario."""

        return f"test-{self.test_id}"

    def scenario_vpc_variables(self) -> dict[str, object]:
        """Render VPC fixture variables.

        Returns:
            dict[str, object]: Variables for the VPC fixture module.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        return {
            "test_id": self.test_id,
            "aws_region": self.aws_region,
            "enable_nat": self.enable_nat,
        }

    def scenario_module_variables(
        self,
        vpc_id: str,
        public_subnet_ids: list[str],
        private_subnet_ids: list[str],
    ) -> dict[str, object]:
        """Render root module variables for the runner stack.

        Private subnets are passed only when NAT is enabled, since instances in
        private subnets need NAT egress to reach SSM and GitHub.

        Args:
            vpc_id: VPC fixture output.
            public_subnet_ids: Public subnet ids from the VPC fixture.
            private_subnet_ids: Private subnet ids from the VPC fixture.

        Returns:
            dict[str, object]: Variables for the root module.

        Raises:
            ValueError: Raised when vpc_id or public subnets are missing.
        """

        if not vpc_id.strip():
            raise ValueError("vpc_id must not be blank")
        if not public_subnet_ids:
            raise ValueError("public_subnet_ids must not be empty")

        module_variables: dict[str, object] = {
            "stack_name": self.scenario_stack_name(),
            "github_organization": self.github_org,
            "license_key": self.license_key,
            "vpc_id": vpc_id,
            "public_subnet_ids": list(public_subnet_ids),
            "enable_efs": self.enable_efs,
            "enable_ecr": self.enable_ecr,
            "environment": "test",
            "log_retention_days": 1,
            "cache_expiration_days": 1,
            "detailed_monitoring_enabled": False,
            "app_cpu": 1024,
            "app_memory": 2048,
            "force_destroy_buckets": True,
            "force_delete_ecr": True,
            "prevent_destroy_optional_resources": False,
        }
        if private_subnet_ids and self.enable_nat:
            module_variables["private_subnet_ids"] = list(private_subnet_ids)
        return module_variables


def config_resource_tags(test_name: str, test_id: str) -> dict[str, str]:
    """Return common tags applied to resources created directly by tests."""

    return {
        "TestFramework": "pytest",
        "TestName": test_name,
        "TestID": test_id,
        "ManagedBy": "runner-stack-harness",
        "AutoCleanup": "true",
    }
