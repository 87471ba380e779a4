"""Synth tests for the ESS lab source account stack."""

import json

import aws_cdk as cdk
import pytest
from aws_cdk.assertions import Match, Template

from stacks.ess_lab_stack import EssLabStack
from stacks.lab_config import LabConfigError, load_lab_config

ACCOUNT = "123456789012"


def _synth(region="us-west-2", **overrides):
    app = cdk.App()
    stack = EssLabStack(
        app, "TestEssLabStack",
        lab_config=load_lab_config(overrides=overrides),
        env=cdk.Environment(account=ACCOUNT, region=region)
    )
    return stack, Template.from_stack(stack)


@pytest.fixture(scope="module")
def synthesized():
    return _synth()


@pytest.fixture(scope="module")
def stack(synthesized):
    return synthesized[0]


@pytest.fixture(scope="module")
def template(synthesized):
    return synthesized[1]


def _single(template, resource_type, props=None):
    resources = template.find_resources(resource_type, props or {})
    assert len(resources) == 1, f"expected one {resource_type}, found {len(resources)}"
    return next(iter(resources.items()))


# ── random string custom resource ────────────────────────────────────

class TestRandomString:
    def test_custom_resource(self, template):
        template.has_resource_properties("Custom::RandomCharString", {
            "ServiceToken": Match.any_value(),
            "StringLength": "12"
        })

    def test_generator_function(self, template):
        template.has_resource_properties("AWS::Lambda::Function", {
            "Handler": "index.handler",
            "Runtime": "python3.12",
            "MemorySize": 128,
            "Timeout": 30,
            "Description": "Generate a random string of characters"
        })

    def test_length_from_context(self):
        _, template = _synth(randomStringLength="20")
        template.has_resource_properties("Custom::RandomCharString", {"StringLength": "20"})


# ── logging bucket and trail ─────────────────────────────────────────

class TestAuditLogging:
    def test_bucket_lifecycle(self, template):
        template.has_resource_properties("AWS::S3::Bucket", {
            "LifecycleConfiguration": {
                "Rules": Match.array_with([
                    Match.object_like({"ExpirationInDays": 1, "Status": "Enabled"}),
                    Match.object_like({
                        "AbortIncompleteMultipartUpload": {"DaysAfterInitiation": 1},
                        "Status": "Enabled"
                    })
                ])
            }
        })

    def test_bucket_retained(self, template):
        template.has_resource("AWS::S3::Bucket", {
            "DeletionPolicy": "Retain",
            "UpdateReplacePolicy": "Retain"
        })

    def test_bucket_tags(self, template):
        logical_id, bucket = _single(template, "AWS::S3::Bucket")
        tags = {tag["Key"]: tag["Value"] for tag in bucket["Properties"]["Tags"]}
        assert tags["Project"] == "esslab"

        name = json.dumps(tags["Name"])
        assert "loggingbucket" in name
        assert "RandomString" in name

    def test_cloudtrail_can_check_acl(self, template):
        template.has_resource_properties("AWS::S3::BucketPolicy", {
            "PolicyDocument": {
                "Statement": Match.array_with([
                    Match.object_like({
                        "Sid": "AWSCloudTrailAclCheckESSLab",
                        "Effect": "Allow",
                        "Principal": {"Service": "cloudtrail.amazonaws.com"},
                        "Action": "s3:GetBucketAcl"
                    })
                ])
            }
        })

    def test_cloudtrail_can_write_account_logs(self, template):
        template.has_resource_properties("AWS::S3::BucketPolicy", {
            "PolicyDocument": {
                "Statement": Match.array_with([
                    Match.object_like({
                        "Sid": "AWSCloudTrailWriteESSLab",
                        "Effect": "Allow",
                        "Principal": {"Service": "cloudtrail.amazonaws.com"},
                        "Action": "s3:PutObject",
                        "Condition": {
                            "StringEquals": {"s3:x-amz-acl": "bucket-owner-full-control"}
                        }
                    })
                ])
            }
        })

    def test_write_resource_is_scoped_to_account(self, template):
        _, policy = _single(template, "AWS::S3::BucketPolicy")
        statements = policy["Properties"]["PolicyDocument"]["Statement"]
        write = next(s for s in statements if s.get("Sid") == "AWSCloudTrailWriteESSLab")
        resource = json.dumps(write["Resource"])
        assert f"/AWSLogs/{ACCOUNT}/*" in resource

    def test_single_bucket_policy(self, template):
        template.resource_count_is("AWS::S3::BucketPolicy", 1)

    def test_trail(self, template):
        template.resource_count_is("AWS::CloudTrail::Trail", 1)
        template.has_resource_properties("AWS::CloudTrail::Trail", {
            "IsLogging": True,
            "IncludeGlobalServiceEvents": True,
            "IsMultiRegionTrail": False,
            "S3BucketName": {"Ref": Match.string_like_regexp("LoggingBucket")}
        })

    def test_trail_waits_for_bucket_policy(self, template):
        policy_id, _ = _single(template, "AWS::S3::BucketPolicy")
        _, trail = _single(template, "AWS::CloudTrail::Trail")
        assert policy_id in trail.get("DependsOn", [])

    def test_trail_name_tag(self, template):
        _, trail = _single(template, "AWS::CloudTrail::Trail")
        tags = {tag["Key"]: tag["Value"] for tag in trail["Properties"]["Tags"]}
        assert "trail" in json.dumps(tags["Name"])
        assert tags["Project"] == "esslab"


# ── security personas ────────────────────────────────────────────────

class TestSecurityRoles:
    def test_two_macie_policies(self, template):
        template.resource_count_is("AWS::IAM::ManagedPolicy", 2)
        for description in ("Policy for Security Administrator role", "Policy for Security Operator role"):
            template.has_resource_properties("AWS::IAM::ManagedPolicy", {
                "Description": description,
                "Path": "/",
                "PolicyDocument": {
                    "Statement": [
                        {"Action": "macie:*", "Effect": "Allow", "Resource": "*"}
                    ]
                }
            })

    def test_roles_have_twelve_hour_sessions(self, template):
        roles = template.find_resources("AWS::IAM::Role", {
            "Properties": {"MaxSessionDuration": 43200}
        })
        assert len(roles) == 2

    def _role(self, template, name):
        roles = template.find_resources("AWS::IAM::Role")
        matches = [role for logical_id, role in roles.items() if name in logical_id]
        assert len(matches) == 1
        return matches[0]

    def test_roles_trust_the_account(self, template):
        for name in ("SecAdministratorRole", "SecOperatorRole"):
            role = self._role(template, name)
            statement = role["Properties"]["AssumeRolePolicyDocument"]["Statement"][0]
            assert statement["Action"] == "sts:AssumeRole"
            assert ":root" in json.dumps(statement["Principal"]["AWS"])

    def test_administrator_policies(self, template):
        arns = json.dumps(self._role(template, "SecAdministratorRole")["Properties"]["ManagedPolicyArns"])
        for policy in ("AWSCloudTrailFullAccess", "AmazonGuardDutyFullAccess",
                       "AmazonInspectorFullAccess", "AmazonSNSFullAccess", "SecAdministratorMaciePolicy"):
            assert policy in arns
        assert "AmazonSNSReadOnlyAccess" not in arns

    def test_operator_policies(self, template):
        arns = json.dumps(self._role(template, "SecOperatorRole")["Properties"]["ManagedPolicyArns"])
        for policy in ("AWSCloudTrailFullAccess", "AmazonGuardDutyFullAccess",
                       "AmazonInspectorFullAccess", "AmazonSNSReadOnlyAccess", "SecOperatorMaciePolicy"):
            assert policy in arns
        assert "AmazonSNSFullAccess" not in arns


# ── inspector ────────────────────────────────────────────────────────

class TestInspector:
    def test_resource_group_tags(self, template):
        template.has_resource_properties("AWS::Inspector::ResourceGroup", {
            "ResourceGroupTags": Match.array_with([
                {"Key": "Name", "Value": "esslab-server"},
                {"Key": "Project", "Value": "esslab"}
            ])
        })

    def test_target_uses_resource_group(self, template):
        group_id, _ = _single(template, "AWS::Inspector::ResourceGroup")
        template.has_resource_properties("AWS::Inspector::AssessmentTarget", {
            "ResourceGroupArn": {"Fn::GetAtt": [group_id, "Arn"]}
        })

    def test_template_uses_region_cve_package(self, template):
        target_id, _ = _single(template, "AWS::Inspector::AssessmentTarget")
        template.has_resource_properties("AWS::Inspector::AssessmentTemplate", {
            "AssessmentTargetArn": {"Fn::GetAtt": [target_id, "Arn"]},
            "DurationInSeconds": 900,
            "RulesPackageArns": [
                {"Fn::FindInMap": ["RegionMap", {"Ref": "AWS::Region"}, "CVE"]}
            ]
        })

    def test_finding_attributes(self, template):
        _, assessment = _single(template, "AWS::Inspector::AssessmentTemplate")
        attributes = {a["Key"]: a["Value"] for a in assessment["Properties"]["UserAttributesForFindings"]}
        assert attributes["Project"] == "esslab"
        assert "server" in json.dumps(attributes["Name"])
        assert "RandomString" in json.dumps(attributes["Name"])

    def test_region_map(self, template):
        template.has_mapping("RegionMap", {
            "us-west-2": {"CVE": "arn:aws:inspector:us-west-2:758058086616:rulespackage/0-9hgA516p"},
            "us-east-1": {"CVE": "arn:aws:inspector:us-east-1:316112463485:rulespackage/0-gEjTy7T7"}
        })


# ── outputs ──────────────────────────────────────────────────────────

class TestOutputs:
    @pytest.mark.parametrize("output_id,display_name", [
        ("SecAdministratorRoleURL", "SecAdministrator"),
        ("SecOperatorRoleURL", "SecOperator"),
    ])
    def test_switch_role_urls(self, template, output_id, display_name):
        outputs = template.find_outputs(output_id)
        assert len(outputs) == 1
        value = json.dumps(outputs[output_id]["Value"])
        assert "https://signin.aws.amazon.com/switchrole" in value
        assert "${AWS::AccountId}" in value
        assert f'"DisplayName": "{display_name}"' in value

    def test_logging_bucket_name(self, template):
        template.has_output("LoggingBucketName", {
            "Value": {"Ref": Match.string_like_regexp("LoggingBucket")},
            "Description": "Logging bucket name"
        })


# ── stack level ──────────────────────────────────────────────────────

class TestStack:
    def test_unsupported_region_is_rejected(self):
        with pytest.raises(LabConfigError, match="eu-west-1"):
            _synth(region="eu-west-1")

    def test_region_agnostic_synth(self):
        app = cdk.App()
        stack = EssLabStack(app, "AgnosticStack", lab_config=load_lab_config())
        Template.from_stack(stack).resource_count_is("AWS::CloudTrail::Trail", 1)

    def test_custom_prefix(self):
        _, template = _synth(namePrefix="mylab", projectTag="myproject")
        template.has_resource_properties("AWS::Inspector::ResourceGroup", {
            "ResourceGroupTags": Match.array_with([
                {"Key": "Name", "Value": "mylab-server"},
                {"Key": "Project", "Value": "myproject"}
            ])
        })

    def test_resource_summary(self, stack):
        summary = stack.get_resource_summary()
        assert summary["name_prefix"] == "esslab"
        assert summary["supported_regions"] == ["us-east-1", "us-west-2"]
        assert summary["logging"]["log_expiration_days"] == 1
        assert summary["inspector"] == {"rule_package": "CVE", "duration_seconds": 900}

    def test_nag_suppressions_recorded(self, template):
        metadata = template.to_json()["Metadata"]["cdk_nag"]["rules_to_suppress"]
        rules = {rule["id"] for rule in metadata}
        assert {"AwsSolutions-IAM4", "AwsSolutions-IAM5", "AwsSolutions-L1"} <= rules
        assert "AwsSolutions-S1" not in rules

    def test_bucket_access_logging_suppressed_on_bucket_only(self, template):
        _, bucket = _single(template, "AWS::S3::Bucket")
        rules = {rule["id"] for rule in bucket["Metadata"]["cdk_nag"]["rules_to_suppress"]}
        assert rules == {"AwsSolutions-S1"}
