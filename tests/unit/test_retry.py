import asyncio

import pytest

from judgi_agent.clients.keyring import KeyRing
from judgi_agent.clients.retry import RetryingClient, RetryPolicy
from judgi_agent.errors import (
    ConfigurationError,
    ExhaustedRetriesError,
    ProviderError,
    RateLimitSignal,
)


class _FakeSleep:
    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def _client(keys: list[str], sleep: _FakeSleep, **policy: object) -> RetryingClient:
    return RetryingClient(
        KeyRing(keys, service="search"),
        RetryPolicy(sleep=sleep, **policy),  # type: ignore[arg-type]
    )


@pytest.mark.asyncio
async def test_all_rate_limited_attempts_exhaust_ring() -> None:
    sleep = _FakeSleep()
    client = _client(["k1", "k2", "k3"], sleep)
    used: list[str] = []

    async def _attempt(key: str) -> str:
        used.append(key)
        raise RateLimitSignal("search")

    with pytest.raises(ExhaustedRetriesError) as info:
        await client.call(_attempt)

    assert used == ["k1", "k2", "k3"]
    assert info.value.attempts == 3
    assert isinstance(info.value.__cause__, RateLimitSignal)
    assert sleep.calls == [1.0, 1.0]
    assert client.ring.active_index == 0


@pytest.mark.asyncio
async def test_hard_failure_propagates_without_rotation() -> None:
    sleep = _FakeSleep()
    client = _client(["k1", "k2"], sleep)
    calls = 0

    async def _attempt(key: str) -> str:
        nonlocal calls
        calls += 1
        raise ProviderError("search", "HTTP 500", status_code=500)

    with pytest.raises(ProviderError):
        await client.call(_attempt)

    assert calls == 1
    assert client.ring.active_index == 0
    assert sleep.calls == []


@pytest.mark.asyncio
async def test_rotates_until_a_key_succeeds() -> None:
    sleep = _FakeSleep()
    client = _client(["k1", "k2", "k3"], sleep, backoff_seconds=0.5)

    async def _attempt(key: str) -> str:
        if key != "k3":
            raise RateLimitSignal("search")
        return f"ok:{key}"

    assert await client.call(_attempt) == "ok:k3"
    assert client.ring.current() == "k3"
    assert sleep.calls == [0.5, 0.5]


@pytest.mark.asyncio
async def test_rotation_in_later_step_keeps_earlier_results() -> None:
    sleep = _FakeSleep()
    client = _client(["k1", "k2"], sleep)
    log: list[str] = []

    async def _first(key: str) -> str:
        log.append(f"first:{key}")
        return "upload"

    async def _second(key: str) -> str:
        log.append(f"second:{key}")
        if key == "k1":
            raise RateLimitSignal("search")
        return "done"

    await client.call(_first)
    await client.call(_second)

    assert log == ["first:k1", "second:k1", "second:k2"]


@pytest.mark.asyncio
async def test_empty_ring_fails_before_any_attempt() -> None:
    client = _client([], _FakeSleep())

    async def _attempt(key: str) -> str:
        raise AssertionError("attempt must not run")

    with pytest.raises(ConfigurationError):
        await client.call(_attempt)


@pytest.mark.asyncio
async def test_cancellation_stops_retrying() -> None:
    ring = KeyRing(["k1", "k2", "k3"], service="search")
    client = RetryingClient(ring, RetryPolicy(backoff_seconds=60.0))
    attempts = 0

    async def _attempt(key: str) -> str:
        nonlocal attempts
        attempts += 1
        raise RateLimitSignal("search")

    task = asyncio.create_task(client.call(_attempt))
    await asyncio.sleep(0.01)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert attempts == 1
