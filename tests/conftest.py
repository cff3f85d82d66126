"""Shared pytest fixtures for iamshadow tests."""
import json

import boto3
import pytest

from iamshadow.expansion import ActionCatalog

# moto is imported lazily inside fixtures so the import error surface is clear.

CATALOG_DATA = {
    "serviceMap": {
        "Amazon S3": {
            "StringPrefix": "s3",
            "Actions": ["GetObject", "PutObject", "ListBucket"],
        },
        "AWS Identity and Access Management": {
            "StringPrefix": "iam",
            "Actions": [
                "AttachUserPolicy",
                "CreateAccessKey",
                "GetUser",
                "GetRole",
                "ListUsers",
                "PassRole",
            ],
        },
        "AWS Lambda": {
            "StringPrefix": "lambda",
            "Actions": ["CreateFunction", "InvokeFunction", "UpdateFunctionCode"],
        },
    }
}


@pytest.fixture(autouse=True)
def aws_credentials(monkeypatch):
    """Prevent accidental real AWS calls by setting fake credentials."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")


@pytest.fixture
def moto_iam():
    """Yield a real boto3 IAM client inside a moto mock_aws context."""
    from moto import mock_aws

    with mock_aws():
        yield boto3.client("iam", region_name="us-east-1")


@pytest.fixture
def action_catalog():
    return ActionCatalog.from_dict(CATALOG_DATA)


@pytest.fixture
def catalog_file(tmp_path):
    path = tmp_path / "policies.json"
    path.write_text(json.dumps(CATALOG_DATA))
    return path


@pytest.fixture
def managed_policy_arn(moto_iam):
    """A customer managed policy with two versions; v2 is the default."""
    v1 = {
        "Version": "2012-10-17",
        "Statement": [{"Effect": "Allow", "Action": "s3:GetObject", "Resource": "*"}],
    }
    v2 = {
        "Version": "2012-10-17",
        "Statement": [
            {"Effect": "Allow", "Action": ["s3:GetObject", "iam:PassRole"], "Resource": "*"}
        ],
    }
    arn = moto_iam.create_policy(
        PolicyName="AppPolicy", PolicyDocument=json.dumps(v1)
    )["Policy"]["Arn"]
    moto_iam.create_policy_version(
        PolicyArn=arn, PolicyDocument=json.dumps(v2), SetAsDefault=True
    )
    return arn
