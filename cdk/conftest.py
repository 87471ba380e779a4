"""Conftest for CDK tests: adds cdk/ and the Lambda source to sys.path."""

import sys
from pathlib import Path

CDK_DIR = Path(__file__).resolve().parent

sys.path.insert(0, str(CDK_DIR))
sys.path.insert(0, str(CDK_DIR / "lambda_functions" / "random_string"))
