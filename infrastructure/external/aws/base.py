"""Shared plumbing for boto3-backed adapters."""
from __future__ import annotations

from functools import partial
from typing import Any, Callable

import anyio
from botocore.exceptions import BotoCoreError, ClientError

from .exceptions import translate_error


class AwsAdapter:
    """Runs synchronous boto3 calls in worker threads."""

    def __init__(self, client: Any):
        self.client = client

    async def _call(self, method: str, **kwargs: Any) -> dict:
        try:
            return await anyio.to_thread.run_sync(
                partial(getattr(self.client, method), **kwargs)
            )
        except (ClientError, BotoCoreError) as e:
            raise translate_error(e, method) from e

    async def _paginate(
        self,
        method: str,
        extract: Callable[[dict], list],
        **kwargs: Any,
    ) -> list:
        def _collect() -> list:
            items: list = []
            for page in self.client.get_paginator(method).paginate(**kwargs):
                items.extend(extract(page))
            return items

        try:
            return await anyio.to_thread.run_sync(_collect)
        except (ClientError, BotoCoreError) as e:
            raise translate_error(e, method) from e
