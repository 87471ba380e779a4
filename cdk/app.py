#!/usr/bin/env python3
"""
External Security Services (ESS) Lab CDK App
Main entry point for CDK deployment of the lab source account
"""

import os
from typing import Any, Dict, Optional

import aws_cdk as cdk
from cdk_nag import AwsSolutionsChecks
from stacks.ess_lab_stack import EssLabStack
from stacks.lab_config import CONTEXT_OVERRIDES, load_lab_config

STACK_ID = "EssLabSourceStack"
DEFAULT_REGION = "us-west-2"


def build_app(context: Optional[Dict[str, Any]] = None) -> cdk.App:
    app = cdk.App(context=context)

    # Get environment from CDK context or environment variables
    account = app.node.try_get_context("account") or os.environ.get("CDK_DEFAULT_ACCOUNT")
    region = app.node.try_get_context("region") or os.environ.get("CDK_DEFAULT_REGION") or DEFAULT_REGION

    # Lab constants from lab_config.yaml, overridable with -c namePrefix=... etc.
    lab_config = load_lab_config(
        path=app.node.try_get_context("labConfigPath"),
        overrides={key: app.node.try_get_context(key) for key in CONTEXT_OVERRIDES}
    )

    EssLabStack(
        app,
        STACK_ID,
        lab_config=lab_config,
        description="Create ESS Workshop Stack",
        env=cdk.Environment(account=account, region=region)
    )

    # Add cdk-nag checks (unless explicitly skipped)
    if not os.environ.get("CDK_NAG_SKIP"):
        cdk.Aspects.of(app).add(AwsSolutionsChecks(verbose=True))

    return app


if __name__ == "__main__":
    build_app().synth()
