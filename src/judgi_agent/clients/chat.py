"""OpenAI-compatible chat-completion client with key rotation."""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable, Sequence
from typing import Any

import openai
import structlog
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from judgi_agent.clients.retry import RetryingClient
from judgi_agent.config import ChatConfig
from judgi_agent.errors import ProviderError, RateLimitSignal
from judgi_agent.types import ChatMessage, Role

logger = structlog.get_logger(__name__)

LLMFactory = Callable[[str, str], Any]

NO_RESPONSE = "No response from AI."


def is_chat_rate_limit(exc: BaseException) -> bool:
    return isinstance(exc, (RateLimitSignal, openai.RateLimitError))


def default_llm_factory(config: ChatConfig) -> LLMFactory:
    def _build(api_key: str, model: str) -> Any:
        from langchain_openai import ChatOpenAI

        # Rotation owns rate-limit handling; the SDK must not retry on its own.
        return ChatOpenAI(
            model=model,
            api_key=api_key,
            base_url=config.base_url,
            max_tokens=config.max_tokens,
            temperature=config.temperature,
            max_retries=0,
        )

    return _build


class ChatCompletionClient:
    """Fast-chat vs. thinking model selection over one key ring."""

    def __init__(
        self,
        retrying: RetryingClient,
        config: ChatConfig | None = None,
        *,
        llm_factory: LLMFactory | None = None,
    ) -> None:
        self.retrying = retrying
        self.config = config or ChatConfig()
        self._llm_factory = llm_factory or default_llm_factory(self.config)

    def model_for(self, deep_think: bool) -> str:
        return self.config.thinking_model if deep_think else self.config.chat_model

    async def complete(
        self, messages: Sequence[ChatMessage], *, deep_think: bool = False
    ) -> str:
        model = self.model_for(deep_think)
        lc_messages = to_langchain_messages(messages)

        async def _attempt(key: str) -> Any:
            try:
                return await self._llm_factory(key, model).ainvoke(lc_messages)
            except openai.APIError as exc:
                raise as_provider_error(exc) from exc

        response = await self.retrying.call(_attempt)
        return message_text(response) or NO_RESPONSE

    async def stream(
        self, messages: Sequence[ChatMessage], *, deep_think: bool = False
    ) -> AsyncIterator[str]:
        """Yield completion text deltas.

        Rotation only covers opening the stream (through the first chunk);
        failures after text has been yielded propagate to the caller.
        """
        model = self.model_for(deep_think)
        lc_messages = to_langchain_messages(messages)

        async def _open(key: str) -> tuple[AsyncIterator[Any], Any | None]:
            iterator = aiter(self._llm_factory(key, model).astream(lc_messages))
            try:
                first = await anext(iterator)
            except StopAsyncIteration:
                return iterator, None
            except openai.APIError as exc:
                raise as_provider_error(exc) from exc
            return iterator, first

        iterator, first = await self.retrying.call(_open)
        logger.info("chat_stream_opened", model=model, key_index=self.retrying.ring.active_index)
        if first is None:
            return
        text = message_text(first)
        if text:
            yield text
        try:
            async for chunk in iterator:
                text = message_text(chunk)
                if text:
                    yield text
        except openai.APIError as exc:
            raise ProviderError("chat", f"stream interrupted: {exc}", status_code=_status_of(exc)) from exc


def as_provider_error(exc: openai.APIError) -> Exception:
    """Keep SDK rate limits retryable; everything else is a hard chat failure."""
    if is_chat_rate_limit(exc):
        return exc
    logger.error("chat_provider_error", error_type=type(exc).__name__, status=_status_of(exc))
    return ProviderError("chat", str(exc), status_code=_status_of(exc))


def _status_of(exc: openai.APIError) -> int | None:
    return getattr(exc, "status_code", None)


def to_langchain_messages(messages: Sequence[ChatMessage]) -> list[BaseMessage]:
    converted: list[BaseMessage] = []
    for message in messages:
        if message.role is Role.SYSTEM:
            converted.append(SystemMessage(content=message.content))
        elif message.role is Role.ASSISTANT:
            converted.append(AIMessage(content=message.content))
        else:
            converted.append(HumanMessage(content=message.content))
    return converted


def message_text(message: Any) -> str:
    content = getattr(message, "content", message)
    if isinstance(content, list):
        parts: list[str] = []
        for item in content:
            if isinstance(item, dict) and "text" in item:
                parts.append(str(item["text"]))
            elif isinstance(item, str):
                parts.append(item)
        return "".join(parts)
    if content is None:
        return ""
    return str(content)
