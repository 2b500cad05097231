import pytest

from application.utils.polling import PollExhausted, poll_until


@pytest.mark.asyncio
async def test_returns_first_ready_result(sleep):
    answers = iter([None, None, "ready"])

    async def probe():
        return next(answers)

    result = await poll_until(probe, interval=2.0, max_attempts=5, sleep=sleep)
    assert result == "ready"
    assert sleep.intervals == [2.0, 2.0]


@pytest.mark.asyncio
async def test_gives_up_after_max_attempts(sleep):
    calls = 0

    async def probe():
        nonlocal calls
        calls += 1
        return None

    with pytest.raises(PollExhausted) as exc_info:
        await poll_until(probe, interval=10.0, max_attempts=3, what="issuance", sleep=sleep)
    assert calls == 3
    assert sleep.intervals == [10.0, 10.0]
    assert exc_info.value.what == "issuance"
    assert exc_info.value.attempts == 3


@pytest.mark.asyncio
async def test_probe_exception_is_not_retried(sleep):
    calls = 0

    async def probe():
        nonlocal calls
        calls += 1
        raise RuntimeError("terminal")

    with pytest.raises(RuntimeError):
        await poll_until(probe, interval=1.0, max_attempts=5, sleep=sleep)
    assert calls == 1
    assert sleep.intervals == []
