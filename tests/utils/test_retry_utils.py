import pytest

from utils.retry_utils import fixed_backoff_retrying, with_exponential_backoff


def flaky(failures, error=ConnectionError):
    """Coroutine function that fails ``failures`` times before succeeding."""
    calls = []

    async def operation():
        calls.append(1)
        if len(calls) <= failures:
            raise error("transient")
        return "ok"

    return operation, calls


@pytest.mark.asyncio
async def test_exponential_backoff_retries_async():
    operation, calls = flaky(failures=1)
    wrapped = with_exponential_backoff(max_attempts=3, min_wait=0, max_wait=0)(operation)

    assert await wrapped() == "ok"
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_exponential_backoff_reraises_last_error():
    operation, calls = flaky(failures=5)
    wrapped = with_exponential_backoff(max_attempts=2, min_wait=0, max_wait=0)(operation)

    with pytest.raises(ConnectionError):
        await wrapped()
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_exponential_backoff_ignores_other_errors():
    operation, calls = flaky(failures=1, error=ValueError)
    wrapped = with_exponential_backoff(max_attempts=3, min_wait=0, max_wait=0)(operation)

    with pytest.raises(ValueError):
        await wrapped()
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_fixed_backoff_reports_attempt_number():
    operation, _ = flaky(failures=2)
    seen = []

    async for attempt in fixed_backoff_retrying(max_attempts=3, wait_time=0):
        with attempt:
            seen.append(attempt.retry_state.attempt_number)
            result = await operation()

    assert result == "ok"
    assert seen == [1, 2, 3]
