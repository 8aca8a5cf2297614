"""Rate-limit retry with key rotation, built on tenacity."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TypeVar

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception,
    stop_after_attempt,
    wait_fixed,
)

from judgi_agent.clients.keyring import KeyRing
from judgi_agent.config import RetryConfig
from judgi_agent.errors import ExhaustedRetriesError, RateLimitSignal

logger = structlog.get_logger(__name__)

T = TypeVar("T")
SleepFn = Callable[[float], Awaitable[None]]


def is_rate_limit(exc: BaseException) -> bool:
    return isinstance(exc, RateLimitSignal)


@dataclass(slots=True)
class RetryPolicy:
    """Retry knobs; `sleep` is injectable so tests never wait on real timers."""

    backoff_seconds: float = 1.0
    max_attempts: int | None = None
    is_retryable: Callable[[BaseException], bool] = is_rate_limit
    sleep: SleepFn = field(default=asyncio.sleep)

    @classmethod
    def from_config(cls, config: RetryConfig, **overrides: object) -> "RetryPolicy":
        return cls(
            backoff_seconds=config.backoff_seconds,
            max_attempts=config.max_attempts,
            **overrides,  # type: ignore[arg-type]
        )


class RetryingClient:
    """Runs one provider call per key until it stops being rate limited.

    Every rate-limited attempt rotates the ring, so `size()` exhausted
    attempts leave the ring back at its starting index. Anything the policy
    does not consider retryable propagates from the first attempt.
    """

    def __init__(self, ring: KeyRing, policy: RetryPolicy | None = None) -> None:
        self.ring = ring
        self.policy = policy or RetryPolicy()

    @property
    def service(self) -> str:
        return self.ring.service

    async def call(self, attempt: Callable[[str], Awaitable[T]]) -> T:
        self.ring.current()
        max_attempts = max(1, self.policy.max_attempts or self.ring.size())

        retrying = AsyncRetrying(
            stop=stop_after_attempt(max_attempts),
            wait=wait_fixed(self.policy.backoff_seconds),
            retry=retry_if_exception(self.policy.is_retryable),
            after=self._rotate_after_rate_limit,
            sleep=self.policy.sleep,
        )
        try:
            async for attempt_state in retrying:
                with attempt_state:
                    result = await attempt(self.ring.current())
        except RetryError as exc:
            logger.error(
                "retries_exhausted", service=self.service, attempts=max_attempts
            )
            raise ExhaustedRetriesError(self.service, max_attempts) from exc.last_attempt.exception()
        return result

    def _rotate_after_rate_limit(self, retry_state: RetryCallState) -> None:
        logger.warning(
            "rate_limited",
            service=self.service,
            attempt=retry_state.attempt_number,
            key_index=self.ring.active_index,
        )
        self.ring.rotate()
