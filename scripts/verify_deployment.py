#!/usr/bin/env python3
"""
Post-deployment checks for the ESS lab source account stack

Reads the stack outputs and verifies that the logging bucket, the trail and
the two switch-role personas look the way the lab expects.
"""

import argparse
import logging
import sys
from dataclasses import dataclass
from typing import Dict, List, Optional
from urllib.parse import parse_qs, urlparse

import boto3
from botocore.exceptions import ClientError

# Configure logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger('verify_deployment')

DEFAULT_STACK_NAME = "EssLabSourceStack"
EXPECTED_LIFECYCLE_DAYS = 1
EXPECTED_MAX_SESSION_SECONDS = 43200

REQUIRED_OUTPUTS = ("LoggingBucketName", "SecAdministratorRoleURL", "SecOperatorRoleURL")


@dataclass
class CheckResult:
    name: str
    passed: bool
    detail: str = ""


def role_name_from_url(url: str) -> Optional[str]:
    """Extract the roleName query parameter from a switch-role URL"""
    values = parse_qs(urlparse(url).query).get("roleName")
    return values[0] if values else None


class DeploymentVerifier:
    """Verify a deployed lab stack"""

    def __init__(self, stack_name: str = DEFAULT_STACK_NAME, session: Optional[boto3.session.Session] = None,
                 region: Optional[str] = None):
        self.stack_name = stack_name
        self.results: List[CheckResult] = []

        session = session or boto3.session.Session(region_name=region)
        self.cloudformation = session.client('cloudformation')
        self.s3 = session.client('s3')
        self.cloudtrail = session.client('cloudtrail')
        self.iam = session.client('iam')

    def _record(self, result: CheckResult) -> CheckResult:
        self.results.append(result)
        if result.passed:
            logger.info(f"{result.name}: {result.detail}")
        else:
            logger.error(f"{result.name}: {result.detail}")
        return result

    def get_stack_outputs(self) -> Dict[str, str]:
        """Get outputs from the deployed stack"""
        response = self.cloudformation.describe_stacks(StackName=self.stack_name)
        stack = response['Stacks'][0]
        return {output['OutputKey']: output['OutputValue'] for output in stack.get('Outputs', [])}

    def check_outputs(self, outputs: Dict[str, str]) -> CheckResult:
        missing = [key for key in REQUIRED_OUTPUTS if not outputs.get(key)]
        if missing:
            return self._record(CheckResult("stack_outputs", False, f"Missing outputs: {', '.join(missing)}"))
        return self._record(CheckResult("stack_outputs", True, "All lab outputs present"))

    def check_bucket_lifecycle(self, bucket_name: str) -> CheckResult:
        """The logging bucket must expire objects and abort uploads after one day"""
        try:
            rules = self.s3.get_bucket_lifecycle_configuration(Bucket=bucket_name).get('Rules', [])
        except ClientError as e:
            return self._record(CheckResult("bucket_lifecycle", False, str(e)))

        enabled = [rule for rule in rules if rule.get('Status') == 'Enabled']
        expires = any(
            rule.get('Expiration', {}).get('Days') == EXPECTED_LIFECYCLE_DAYS for rule in enabled)
        aborts = any(
            rule.get('AbortIncompleteMultipartUpload', {}).get('DaysAfterInitiation') == EXPECTED_LIFECYCLE_DAYS
            for rule in enabled)

        problems = []
        if not expires:
            problems.append("no enabled 1-day expiration rule")
        if not aborts:
            problems.append("no enabled 1-day multipart abort rule")

        if problems:
            return self._record(CheckResult("bucket_lifecycle", False, "; ".join(problems)))
        return self._record(CheckResult("bucket_lifecycle", True, f"{bucket_name} lifecycle rules in place"))

    def check_trail(self, bucket_name: str) -> CheckResult:
        """A trail must deliver to the logging bucket and be logging"""
        try:
            trails = self.cloudtrail.describe_trails(includeShadowTrails=False).get('trailList', [])
            matching = [trail for trail in trails if trail.get('S3BucketName') == bucket_name]
            if not matching:
                return self._record(CheckResult("trail", False, f"No trail delivers to {bucket_name}"))

            trail = matching[0]
            status = self.cloudtrail.get_trail_status(Name=trail['Name'])
        except ClientError as e:
            return self._record(CheckResult("trail", False, str(e)))

        if not status.get('IsLogging'):
            return self._record(CheckResult("trail", False, f"Trail {trail['Name']} is not logging"))
        return self._record(CheckResult("trail", True, f"Trail {trail['Name']} is logging to {bucket_name}"))

    def check_role(self, output_key: str, role_url: str) -> CheckResult:
        """The switch-role URL must name an existing role with a 12 hour session"""
        role_name = role_name_from_url(role_url)
        if not role_name:
            return self._record(CheckResult(output_key, False, f"No roleName in {role_url}"))

        try:
            role = self.iam.get_role(RoleName=role_name)['Role']
        except ClientError as e:
            return self._record(CheckResult(output_key, False, str(e)))

        max_session = role.get('MaxSessionDuration')
        if max_session != EXPECTED_MAX_SESSION_SECONDS:
            return self._record(CheckResult(
                output_key, False, f"{role_name} max session is {max_session}s"))
        return self._record(CheckResult(output_key, True, f"{role_name} is ready for switch-role"))

    def run(self) -> bool:
        """Run every check and return True when all pass"""
        self.results = []
        try:
            outputs = self.get_stack_outputs()
        except ClientError as e:
            self._record(CheckResult("stack_outputs", False, str(e)))
            return False

        if not self.check_outputs(outputs).passed:
            return False

        bucket_name = outputs["LoggingBucketName"]
        self.check_bucket_lifecycle(bucket_name)
        self.check_trail(bucket_name)
        self.check_role("SecAdministratorRoleURL", outputs["SecAdministratorRoleURL"])
        self.check_role("SecOperatorRoleURL", outputs["SecOperatorRoleURL"])

        return all(result.passed for result in self.results)

    def generate_report(self) -> str:
        """Generate a Markdown report of the recorded checks"""
        report = f"# ESS Lab Deployment Report: {self.stack_name}\n\n"

        for result in self.results:
            report += f"## {result.name.replace('_', ' ').title()}\n"
            report += "✅ **Status**: PASSED\n\n" if result.passed else "❌ **Status**: FAILED\n\n"
            if result.detail:
                report += f"{result.detail}\n\n"

        return report


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    parser = argparse.ArgumentParser(description='Verify the deployed ESS lab stack')
    parser.add_argument('--stack-name', default=DEFAULT_STACK_NAME, help='CloudFormation stack name')
    parser.add_argument('--region', default=None, help='AWS region')
    parser.add_argument('--report', default=None, help='Write a Markdown report to this path')

    args = parser.parse_args(argv)

    verifier = DeploymentVerifier(args.stack_name, region=args.region)
    success = verifier.run()

    if args.report:
        with open(args.report, 'w', encoding='utf-8') as f:
            f.write(verifier.generate_report())
        logger.info(f"Report saved to {args.report}")

    print("\nVerification Summary:")
    for result in verifier.results:
        marker = "✅" if result.passed else "❌"
        print(f"{marker} {result.name}: {result.detail}")

    return 0 if success else 1


if __name__ == "__main__":
    sys.exit(main())
