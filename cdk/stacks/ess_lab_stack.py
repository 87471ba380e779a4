"""
External Security Services (ESS) Lab Source Account Stack
"""

import aws_cdk as cdk
from aws_cdk import (
    Aws,
    CfnMapping,
    CfnOutput,
    Tags,
    Token,
)
from constructs import Construct
from typing import Any, Dict, Optional

from .constructs.audit_logging import AuditLoggingConstruct
from .constructs.iam import SecurityRolesConstruct
from .constructs.inspector import InspectorConstruct
from .constructs.random_string import RandomStringConstruct
from .lab_config import LabConfig, LabConfigError, load_lab_config


class EssLabStack(cdk.Stack):
    """
    Sets up the lab's source account: a CloudTrail trail logging to a
    short-lived bucket, switch-role personas for security administrators and
    operators, and an Inspector assessment of the lab server.
    """

    def __init__(self, scope: Construct, construct_id: str,
                 lab_config: Optional[LabConfig] = None, **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)

        self.lab_config = lab_config or load_lab_config()

        # Concrete regions without rule packages are rejected at synth time
        self._check_region()

        # Create mappings matching the CloudFormation template
        self._create_mappings()

        # Create lab infrastructure in dependency order
        self._create_lab_infrastructure()

        # Create stack outputs
        self._create_outputs()

        Tags.of(self).add("Project", self.lab_config.project_tag)

        # Apply CDK-Nag suppressions for the lab environment
        self._apply_stack_suppressions()

    def _check_region(self) -> None:
        if Token.is_unresolved(self.region):
            return
        if not self.lab_config.supports_region(self.region):
            raise LabConfigError(
                f"Region {self.region} has no Inspector rule packages configured; "
                f"supported regions: {', '.join(sorted(self.lab_config.region_rule_packages))}")

    def _create_mappings(self) -> None:
        """Create the region map of Inspector rule packages"""
        self.region_map = CfnMapping(
            self, "RegionMap",
            mapping=self.lab_config.region_rule_packages
        )

    def _create_lab_infrastructure(self) -> None:
        """Create the lab constructs in proper order"""
        config = self.lab_config

        # 1. Random suffix for resource names
        self.random_string_construct = RandomStringConstruct(
            self, "RandomString",
            string_length=config.random_string_length,
            project_tag=config.project_tag
        )
        random_string = self.random_string_construct.random_string

        # 2. Logging bucket and trail
        self.audit_logging_construct = AuditLoggingConstruct(
            self, "AuditLogging",
            random_string=random_string,
            name_prefix=config.name_prefix,
            project_tag=config.project_tag,
            log_expiration_days=config.log_expiration_days,
            multipart_abort_days=config.multipart_abort_days
        )

        # 3. Security personas
        self.security_roles_construct = SecurityRolesConstruct(
            self, "SecurityRoles",
            administrator_managed_policies=config.administrator_managed_policies,
            operator_managed_policies=config.operator_managed_policies,
            max_session_duration_hours=config.max_session_duration_hours,
            project_tag=config.project_tag
        )

        # 4. Inspector assessment pipeline
        self.inspector_construct = InspectorConstruct(
            self, "Inspector",
            rules_package_arn=self.region_map.find_in_map(Aws.REGION, config.rule_package),
            random_string=random_string,
            name_prefix=config.name_prefix,
            project_tag=config.project_tag,
            duration_seconds=config.assessment_duration_seconds
        )

        # Store references for easy access
        self.logging_bucket = self.audit_logging_construct.logging_bucket
        self.trail = self.audit_logging_construct.trail
        self.administrator_role = self.security_roles_construct.administrator_role
        self.operator_role = self.security_roles_construct.operator_role

    def _create_outputs(self) -> None:
        """Create stack outputs matching the CloudFormation template"""
        roles = self.security_roles_construct

        CfnOutput(
            self, "SecAdministratorRoleURL",
            value=roles.switch_role_url(self.administrator_role, "SecAdministrator"),
            description="Switch to Security Administrator role"
        )

        CfnOutput(
            self, "SecOperatorRoleURL",
            value=roles.switch_role_url(self.operator_role, "SecOperator"),
            description="Switch to Security Operator role"
        )

        CfnOutput(
            self, "LoggingBucketName",
            value=self.logging_bucket.bucket_name,
            description="Logging bucket name"
        )

    def get_resource_summary(self) -> Dict[str, Any]:
        """Get a summary of the lab resources"""
        return {
            'name_prefix': self.lab_config.name_prefix,
            'project_tag': self.lab_config.project_tag,
            'supported_regions': sorted(self.lab_config.region_rule_packages),
            'logging': {
                'bucket_name': self.logging_bucket.bucket_name,
                'log_expiration_days': self.lab_config.log_expiration_days
            },
            'roles': {
                'administrator': self.administrator_role.role_name,
                'operator': self.operator_role.role_name
            },
            'inspector': {
                'rule_package': self.lab_config.rule_package,
                'duration_seconds': self.lab_config.assessment_duration_seconds
            }
        }

    def _apply_stack_suppressions(self) -> None:
        """Apply CDK-Nag suppressions at stack level for the lab environment"""
        from nag_suppressions import apply_common_suppressions

        apply_common_suppressions(self)
