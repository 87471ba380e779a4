"""
Inspector Construct for the lab server assessment
"""

from aws_cdk import (
    aws_inspector as inspector,
    CfnTag,
    Fn,
)
from constructs import Construct


class InspectorConstruct(Construct):
    """
    Manages the Amazon Inspector (Classic) resource group, assessment target
    and assessment template for the lab's LAMP server.
    """

    def __init__(self, scope: Construct, construct_id: str,
                 rules_package_arn: str,
                 random_string: str,
                 name_prefix: str = 'esslab',
                 project_tag: str = 'esslab',
                 duration_seconds: int = 900,
                 **kwargs) -> None:
        super().__init__(scope, construct_id)

        self.name_prefix = name_prefix
        self.project_tag = project_tag

        # Instances are selected by tag, so the group only holds tag filters
        self.resource_group = inspector.CfnResourceGroup(
            self, "LampInspectorResourceGroup",
            resource_group_tags=[
                CfnTag(key="Name", value=f"{name_prefix}-server"),
                CfnTag(key="Project", value=project_tag)
            ]
        )

        self.assessment_target = inspector.CfnAssessmentTarget(
            self, "LampInspectorAssessmentTarget",
            resource_group_arn=self.resource_group.attr_arn
        )

        self.assessment_template = inspector.CfnAssessmentTemplate(
            self, "LampInspectorAssessmentTemplate",
            assessment_target_arn=self.assessment_target.attr_arn,
            duration_in_seconds=duration_seconds,
            rules_package_arns=[rules_package_arn],
            user_attributes_for_findings=[
                CfnTag(key="Name", value=Fn.join('-', [name_prefix, 'server', random_string])),
                CfnTag(key="Project", value=project_tag)
            ]
        )
