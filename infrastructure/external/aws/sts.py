"""AWS STS caller identity, used as the credential preflight."""
from __future__ import annotations

from .base import AwsAdapter


class StsIdentity(AwsAdapter):
    async def caller_identity(self) -> dict[str, str]:
        response = await self._call("get_caller_identity")
        return {
            "account": response.get("Account", ""),
            "arn": response.get("Arn", ""),
            "user_id": response.get("UserId", ""),
        }
