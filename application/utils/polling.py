"""Fixed-interval polling combinator shared by the bootstrap wait steps."""
from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_result,
    stop_after_attempt,
    wait_fixed,
)

from core.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class PollExhausted(Exception):
    """The probe never produced a result within the allowed attempts."""

    def __init__(self, what: str, attempts: int, interval: float):
        self.what = what
        self.attempts = attempts
        self.interval = interval
        super().__init__(f"{what}: not ready after {attempts} attempts")


async def poll_until(
    probe: Callable[[], Awaitable[Optional[T]]],
    *,
    interval: float,
    max_attempts: int,
    what: str = "condition",
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Call ``probe`` until it returns something other than ``None``.

    Sleeps ``interval`` seconds between attempts and gives up after
    ``max_attempts`` with :class:`PollExhausted`. Exceptions raised by the
    probe are not retried; they propagate immediately, so a probe signals a
    terminal failure by raising.
    """

    def _log_wait(state: RetryCallState) -> None:
        logger.info(
            "poll_waiting",
            what=what,
            attempt=state.attempt_number,
            max_attempts=max_attempts,
        )

    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_fixed(interval),
        retry=retry_if_result(lambda result: result is None),
        before_sleep=_log_wait,
        sleep=sleep,
    )
    try:
        return await retrying(probe)
    except RetryError as exc:
        raise PollExhausted(what, max_attempts, interval) from exc
