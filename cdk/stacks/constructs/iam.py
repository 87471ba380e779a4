"""
IAM Construct for the security administrator and operator roles
"""

from aws_cdk import (
    aws_iam as iam,
    Duration,
    Fn,
    Stack,
    Tags,
)
from constructs import Construct
from typing import List, Optional

SWITCH_ROLE_URL = (
    "https://signin.aws.amazon.com/switchrole"
    "?account=${AWS::AccountId}&roleName=${RoleName}&displayName=${DisplayName}"
)


class SecurityRolesConstruct(Construct):
    """
    Manages the lab's Macie policies and the two switch-role personas.

    Both custom policies start out identical (full Macie access); the lab
    exercise narrows the operator policy from the console afterwards.
    """

    def __init__(self, scope: Construct, construct_id: str,
                 administrator_managed_policies: Optional[List[str]] = None,
                 operator_managed_policies: Optional[List[str]] = None,
                 max_session_duration_hours: int = 12,
                 project_tag: str = 'esslab',
                 **kwargs) -> None:
        super().__init__(scope, construct_id)

        self.project_tag = project_tag
        self.max_session_duration = Duration.hours(max_session_duration_hours)

        # Create the customer managed Macie policies
        self.administrator_macie_policy = self._create_macie_policy(
            "SecAdministratorMaciePolicy", "Policy for Security Administrator role")
        self.operator_macie_policy = self._create_macie_policy(
            "SecOperatorMaciePolicy", "Policy for Security Operator role")

        # Create the roles assumed from the same account
        self.administrator_role = self._create_security_role(
            "SecAdministratorRole",
            administrator_managed_policies or [],
            self.administrator_macie_policy
        )
        self.operator_role = self._create_security_role(
            "SecOperatorRole",
            operator_managed_policies or [],
            self.operator_macie_policy
        )

        self._apply_tags()

    def _create_macie_policy(self, construct_id: str, description: str) -> iam.ManagedPolicy:
        """Create a managed policy granting Amazon Macie access"""
        return iam.ManagedPolicy(
            self, construct_id,
            description=description,
            path="/",
            statements=[
                iam.PolicyStatement(
                    effect=iam.Effect.ALLOW,
                    actions=["macie:*"],
                    resources=["*"]
                )
            ]
        )

    def _create_security_role(self, construct_id: str, aws_managed_policy_names: List[str],
                              custom_policy: iam.ManagedPolicy) -> iam.Role:
        """Create a role trusted by the account with AWS managed and custom policies"""
        managed_policies = [
            iam.ManagedPolicy.from_aws_managed_policy_name(policy_name)
            for policy_name in aws_managed_policy_names
        ]
        managed_policies.append(custom_policy)

        return iam.Role(
            self, construct_id,
            assumed_by=iam.AccountPrincipal(Stack.of(self).account),
            managed_policies=managed_policies,
            max_session_duration=self.max_session_duration
        )

    def switch_role_url(self, role: iam.Role, display_name: str) -> str:
        """Console URL that switches the signed-in user into ``role``"""
        return Fn.sub(SWITCH_ROLE_URL, {
            "RoleName": role.role_name,
            "DisplayName": display_name
        })

    def _apply_tags(self) -> None:
        """Apply consistent tags to the roles"""
        Tags.of(self.administrator_role).add("Project", self.project_tag)
        Tags.of(self.operator_role).add("Project", self.project_tag)
