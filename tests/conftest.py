"""Shared fixtures: settings, manifests, mocked AWS clients."""

import base64
import json
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError
from moto import mock_aws

from lambda_perf.config import FAST_TIMINGS, Settings, Timings
from lambda_perf.manifest import Manifest

REGION = "us-east-1"


def client_error(code: str, operation: str = "Operation", message: str = "boom") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


def decode_client_context(encoded: str) -> dict:
    return json.loads(base64.b64decode(encoded).decode("utf-8"))


@pytest.fixture
def settings():
    return Settings(
        region=REGION,
        role_arn="arn:aws:iam::123456789012:role/lambda-perf-role",
        log_processor_arn="arn:aws:lambda:us-east-1:123456789012:function:log-processor",
        invoker_function="lambda-perf-invoker",
    )


@pytest.fixture
def timings() -> Timings:
    return FAST_TIMINGS


@pytest.fixture
def split_manifest() -> Manifest:
    """One x86-only runtime and one arm-only runtime."""
    return Manifest.from_dict(
        {
            "runtimes": [
                {"runtime": "n1", "handler": "index.handler", "architectures": ["x86"]},
                {"runtime": "n2", "handler": "index.handler", "architectures": ["arm"]},
            ],
            "memorySizes": [128],
        }
    )


@pytest.fixture
def snapstart_manifest() -> Manifest:
    return Manifest.from_dict(
        {
            "runtimes": [
                {
                    "runtime": "java11",
                    "handler": "io.github.Handler::handleRequest",
                    "path": "java11_snapstart",
                    "architectures": ["x86_64"],
                    "snapStart": {"SnapStart": {"ApplyOn": "PublishedVersions"}},
                }
            ],
            "memorySizes": [1024],
        }
    )


@pytest.fixture
def lambda_client():
    client = MagicMock()
    client.publish_version.side_effect = [{"Version": str(i)} for i in range(1, 100)]
    return client


@pytest.fixture
def logs_client():
    return MagicMock()


@pytest.fixture
def aws_credentials(monkeypatch):
    """Mock AWS credentials for moto."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", REGION)
    monkeypatch.delenv("AWS_ENDPOINT_URL", raising=False)


@pytest.fixture
def mock_dynamodb(aws_credentials):
    """Mock DynamoDB for tests."""
    with mock_aws():
        yield
