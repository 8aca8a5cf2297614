"""Shared httpx plumbing for provider clients."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any, TypeVar

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from judgi_agent.errors import ProviderError, RateLimitSignal

logger = structlog.get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class HttpProvider:
    """Base for clients that talk to one provider over httpx.

    An injected `httpx.AsyncClient` is reused and never closed here; without
    one, a short-lived client is opened per request.
    """

    provider = "provider"

    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient | None = None,
        timeout_seconds: float = 30.0,
    ) -> None:
        self._http_client = http_client
        self._timeout = httpx.Timeout(timeout_seconds)

    @asynccontextmanager
    async def _client(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._http_client is not None:
            yield self._http_client
            return
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            yield client

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            async with self._client() as client:
                response = await client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            logger.error("provider_unreachable", provider=self.provider, url=url, error=str(exc))
            raise ProviderError(self.provider, f"network error: {exc}") from exc
        check_response(response, self.provider)
        return response

    def _decode(self, response: httpx.Response, model: type[ModelT]) -> ModelT:
        try:
            return model.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise ProviderError(
                self.provider,
                f"malformed response: {exc}",
                status_code=response.status_code,
            ) from exc


def check_response(response: httpx.Response, provider: str) -> None:
    """Map a provider status code onto the error taxonomy."""
    if response.is_success:
        return
    status = response.status_code
    if status == 429:
        raise RateLimitSignal(provider)
    if status == 401:
        raise ProviderError(
            provider,
            "authentication failed, check the configured API key",
            status_code=status,
        )
    logger.error(
        "provider_error",
        provider=provider,
        status=status,
        body=response.text[:200],
    )
    raise ProviderError(
        provider,
        f"HTTP {status} {response.reason_phrase}".strip(),
        status_code=status,
    )
