"""Precondition checks run before any cloud mutation."""
from __future__ import annotations

from pathlib import Path
from typing import Optional

from application.ports.cloud import CloudError, IdentityClient
from core.logging_config import get_logger
from domain.common.exceptions import BuildOutputMissingError, CredentialsError

logger = get_logger(__name__)


def ensure_build_output(path: Path) -> None:
    if not path.is_dir():
        raise BuildOutputMissingError(str(path), "not found")
    if not any(path.iterdir()):
        raise BuildOutputMissingError(str(path), "is empty")
    logger.info("build_output_found", path=str(path))


async def verify_credentials(identity: IdentityClient, profile: Optional[str] = None) -> dict[str, str]:
    try:
        caller = await identity.caller_identity()
    except CloudError as exc:
        raise CredentialsError(profile, reason=str(exc)) from exc
    logger.info(
        "aws_credentials_valid",
        profile=profile,
        account=caller.get("account"),
        arn=caller.get("arn"),
    )
    return caller
