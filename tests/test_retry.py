import asyncio

import pytest

from services.errors import FatalError, TransientError
from services.retry import backoff_delay, retry_with_backoff_async


def test_backoff_delay_doubles_and_caps():
    assert backoff_delay(1, base_delay=2, max_delay=300, jitter=False) == 2
    assert backoff_delay(3, base_delay=2, max_delay=300, jitter=False) == 8
    assert backoff_delay(20, base_delay=2, max_delay=300, jitter=False) == 300


def test_backoff_jitter_stays_within_a_quarter():
    for _ in range(50):
        assert 7.5 <= backoff_delay(3, base_delay=2.5, max_delay=300) <= 12.5


def test_async_retry_recovers_from_transient_errors():
    calls = []

    @retry_with_backoff_async(max_retries=2, base_delay=0, jitter=False)
    async def flaky():
        calls.append(1)
        if len(calls) < 3:
            raise TransientError("not yet")
        return "ok"

    assert asyncio.run(flaky()) == "ok"
    assert len(calls) == 3


def test_async_retry_does_not_retry_fatal_errors():
    calls = []

    @retry_with_backoff_async(max_retries=3, base_delay=0)
    async def rejected():
        calls.append(1)
        raise FatalError("bad request")

    with pytest.raises(FatalError):
        asyncio.run(rejected())
    assert len(calls) == 1


def test_async_retry_gives_up_after_max_retries():
    @retry_with_backoff_async(max_retries=1, base_delay=0, jitter=False)
    async def always_down():
        raise TransientError("down")

    with pytest.raises(TransientError):
        asyncio.run(always_down())
