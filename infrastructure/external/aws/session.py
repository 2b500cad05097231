"""boto3 session and client construction."""
from __future__ import annotations

from typing import Any, Optional

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import ProfileNotFound

from core.config import AwsClientSettings
from domain.common.exceptions import CredentialsError
from domain.deploy.config import AwsCredentialsConfig


def build_session(credentials: AwsCredentialsConfig, region: Optional[str] = None) -> boto3.Session:
    """Explicit keys win over the profile; otherwise the default chain applies."""
    if credentials.has_explicit_keys:
        return boto3.Session(
            aws_access_key_id=credentials.access_key_id,
            aws_secret_access_key=credentials.secret_access_key,
            region_name=region,
        )
    try:
        return boto3.Session(profile_name=credentials.profile or None, region_name=region)
    except ProfileNotFound as e:
        raise CredentialsError(credentials.profile, str(e)) from e


def build_client(
    session: boto3.Session,
    service_name: str,
    region: Optional[str],
    settings: AwsClientSettings,
) -> Any:
    config_args: dict[str, Any] = {
        "region_name": region,
        "retries": {
            "max_attempts": settings.max_retry_attempts,
            "mode": "standard",
        },
        "connect_timeout": settings.connect_timeout,
        "read_timeout": settings.read_timeout,
    }
    if service_name == "s3":
        config_args["signature_version"] = "s3v4"
    return session.client(service_name, config=BotoConfig(**config_args))
