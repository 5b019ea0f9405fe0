"""Shared pytest configuration."""

import pytest


@pytest.fixture(autouse=True)
def aws_credentials(monkeypatch):
    """Dummy credentials so an unpatched boto3 call can never reach a real account."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
    for name in ("SPOT_ASG_CONFIG", "SPOT_ASG_COMMAND", "SPOT_ASG_TAGS", "SPOT_ASG_ROLE_ARN"):
        monkeypatch.delenv(name, raising=False)
