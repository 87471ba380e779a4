"""
Random String Construct for the name-suffix custom resource
"""

import os

from aws_cdk import (
    aws_iam as iam,
    aws_lambda as lambda_,
    custom_resources as cr,
    CustomResource,
    Duration,
    Tags,
)
from constructs import Construct

LAMBDA_ASSET_PATH = os.path.join(
    os.path.dirname(__file__), '..', '..', 'lambda_functions', 'random_string')


class RandomStringConstruct(Construct):
    """
    Generates a random string of letters at deployment time.

    The string is used to make bucket, trail and finding names unique. It is
    produced by a Lambda function behind the CDK provider framework and
    surfaced through the ``RandomString`` attribute of a
    ``Custom::RandomCharString`` resource.
    """

    def __init__(self, scope: Construct, construct_id: str,
                 string_length: int = 12, project_tag: str = 'esslab', **kwargs) -> None:
        super().__init__(scope, construct_id)

        self.project_tag = project_tag

        self._create_execution_role()
        self._create_function()
        self._create_custom_resource(string_length)

        self._apply_tags()

    def _create_execution_role(self) -> None:
        """Create the Lambda execution role; the function only needs to write logs"""
        self.lambda_execution_role = iam.Role(
            self, "LambdaExecutionRole",
            assumed_by=iam.ServicePrincipal("lambda.amazonaws.com"),
            managed_policies=[
                iam.ManagedPolicy.from_aws_managed_policy_name(
                    "service-role/AWSLambdaBasicExecutionRole")
            ]
        )

    def _create_function(self) -> None:
        """Create the generator function from the local asset"""
        self.function = lambda_.Function(
            self, "RandomStrFunction",
            description="Generate a random string of characters",
            runtime=lambda_.Runtime.PYTHON_3_12,
            handler="index.handler",
            code=lambda_.Code.from_asset(os.path.normpath(LAMBDA_ASSET_PATH)),
            memory_size=128,
            timeout=Duration.seconds(30),
            role=self.lambda_execution_role
        )

        self.provider = cr.Provider(
            self, "RandomStrProvider",
            on_event_handler=self.function
        )

    def _create_custom_resource(self, string_length: int) -> None:
        """Create the custom resource that carries the generated string"""
        self.resource = CustomResource(
            self, "RandomCharString",
            service_token=self.provider.service_token,
            resource_type="Custom::RandomCharString",
            properties={
                'StringLength': str(string_length)
            }
        )

    def _apply_tags(self) -> None:
        Tags.of(self.function).add("Project", self.project_tag)

    @property
    def random_string(self) -> str:
        """Returns the generated string token"""
        return self.resource.get_att_string("RandomString")
