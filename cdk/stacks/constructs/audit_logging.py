"""
Audit Logging Construct for the CloudTrail bucket and trail
"""

from aws_cdk import (
    aws_cloudtrail as cloudtrail,
    aws_iam as iam,
    aws_s3 as s3,
    Duration,
    Fn,
    RemovalPolicy,
    Stack,
    Tags,
)
from cdk_nag import NagSuppressions
from constructs import Construct


class AuditLoggingConstruct(Construct):
    """
    Manages the logging bucket, its CloudTrail bucket policy and the trail.
    """

    def __init__(self, scope: Construct, construct_id: str,
                 random_string: str,
                 name_prefix: str = 'esslab',
                 project_tag: str = 'esslab',
                 log_expiration_days: int = 1,
                 multipart_abort_days: int = 1,
                 **kwargs) -> None:
        super().__init__(scope, construct_id)

        self.random_string = random_string
        self.name_prefix = name_prefix
        self.project_tag = project_tag

        self._create_logging_bucket(log_expiration_days, multipart_abort_days)

        # Bucket policy must exist before CloudTrail validates the bucket
        self._create_bucket_policy()
        self._create_trail()

        self._apply_tags()

    def _create_logging_bucket(self, expiration_days: int, multipart_abort_days: int) -> None:
        """Create the logging bucket with short-lived objects"""
        self.logging_bucket = s3.Bucket(
            self, "LoggingBucket",
            block_public_access=s3.BlockPublicAccess.BLOCK_ALL,
            enforce_ssl=True,
            removal_policy=RemovalPolicy.RETAIN,
            lifecycle_rules=[
                s3.LifecycleRule(
                    enabled=True,
                    expiration=Duration.days(expiration_days)
                ),
                s3.LifecycleRule(
                    enabled=True,
                    abort_incomplete_multipart_upload_after=Duration.days(multipart_abort_days)
                )
            ]
        )

        NagSuppressions.add_resource_suppressions(
            self.logging_bucket,
            [{"id": "AwsSolutions-S1", "reason": "The bucket is itself the CloudTrail log destination for the lab"}]
        )

    def _create_bucket_policy(self) -> None:
        """Allow CloudTrail to check the bucket ACL and write account logs"""
        account = Stack.of(self).account

        statements = [
            iam.PolicyStatement(
                sid="AWSCloudTrailAclCheckESSLab",
                effect=iam.Effect.ALLOW,
                principals=[iam.ServicePrincipal("cloudtrail.amazonaws.com")],
                actions=["s3:GetBucketAcl"],
                resources=[self.logging_bucket.bucket_arn]
            ),
            iam.PolicyStatement(
                sid="AWSCloudTrailWriteESSLab",
                effect=iam.Effect.ALLOW,
                principals=[iam.ServicePrincipal("cloudtrail.amazonaws.com")],
                actions=["s3:PutObject"],
                resources=[f"{self.logging_bucket.bucket_arn}/AWSLogs/{account}/*"],
                conditions={
                    "StringEquals": {
                        "s3:x-amz-acl": "bucket-owner-full-control"
                    }
                }
            )
        ]
        for statement in statements:
            self.logging_bucket.add_to_resource_policy(statement)

        # enforce_ssl already attached a policy to the bucket; CloudTrail statements join it
        self.bucket_policy = self.logging_bucket.policy

    def _create_trail(self) -> None:
        """Create a single-region trail that logs into the bucket"""
        self.trail = cloudtrail.CfnTrail(
            self, "LoggingTrail",
            is_logging=True,
            include_global_service_events=True,
            is_multi_region_trail=False,
            s3_bucket_name=self.logging_bucket.bucket_name
        )
        self.trail.node.add_dependency(self.bucket_policy)

    def _apply_tags(self) -> None:
        """Apply Name and Project tags carrying the random suffix"""
        Tags.of(self.logging_bucket).add(
            "Name", Fn.join('-', [self.name_prefix, 'loggingbucket', self.random_string]))
        Tags.of(self.trail).add(
            "Name", Fn.join('-', [self.name_prefix, 'trail', self.random_string]))

        Tags.of(self.logging_bucket).add("Project", self.project_tag)
        Tags.of(self.trail).add("Project", self.project_tag)
