"""
Common CDK-Nag suppressions for the ESS lab
Use this file to centrally manage suppressions across all stacks
"""

from cdk_nag import NagSuppressions
from aws_cdk import Stack


def apply_common_suppressions(stack: Stack):
    """Apply suppressions that are acceptable for a short-lived training lab"""

    common_suppressions = [
        {
            "id": "AwsSolutions-IAM4",
            "reason": "The lab personas are built from AWS managed security service policies"
        },
        {
            "id": "AwsSolutions-IAM5",
            "reason": "The Macie policies grant macie:* so the lab can narrow them from the console; "
                      "the custom resource provider role invokes the generator function versions"
        },
        {
            "id": "AwsSolutions-L1",
            "reason": "The custom resource provider framework pins its own Lambda runtime"
        }
    ]

    NagSuppressions.add_stack_suppressions(stack, common_suppressions)

