"""boto3 session construction with optional STS role assumption."""

from __future__ import annotations

import logging
from typing import Any, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .exceptions import TransportError

logger = logging.getLogger(__name__)


class RoleSettings(Protocol):
    """Anything carrying the role/region fields (AWSConfig, EventBridgeConfig)."""

    role_arn: str
    external_id: str
    region: str
    session_name: str


def create_session(settings: RoleSettings) -> boto3.Session:
    """Return a boto3 Session in the configured region, assuming the configured role if any."""
    session_kwargs: dict[str, Any] = {}
    if settings.region:
        session_kwargs["region_name"] = settings.region
    try:
        session = boto3.Session(**session_kwargs)
    except BotoCoreError as exc:
        raise TransportError(f"Failed to create AWS session: {exc}") from exc

    if not settings.role_arn:
        return session

    assume_kwargs: dict[str, str] = {
        "RoleArn": settings.role_arn,
        "RoleSessionName": settings.session_name,
    }
    if settings.external_id:
        assume_kwargs["ExternalId"] = settings.external_id

    logger.info("Assuming IAM role: %s", settings.role_arn)
    try:
        creds = session.client("sts").assume_role(**assume_kwargs)["Credentials"]
    except (BotoCoreError, ClientError) as exc:
        raise TransportError(f"Failed to assume role {settings.role_arn}: {exc}", operation="AssumeRole") from exc

    return boto3.Session(
        aws_access_key_id=creds["AccessKeyId"],
        aws_secret_access_key=creds["SecretAccessKey"],
        aws_session_token=creds["SessionToken"],
        **session_kwargs,
    )


def get_caller_identity(session: boto3.Session) -> dict[str, str]:
    """Return the STS caller identity (UserId, Account, Arn) for the session."""
    try:
        response = session.client("sts").get_caller_identity()
    except (BotoCoreError, ClientError) as exc:
        raise TransportError(f"Failed to get caller identity: {exc}", operation="GetCallerIdentity") from exc
    return {key: response[key] for key in ("UserId", "Account", "Arn")}
