"""Runs one streamed assistant turn and applies its document command."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

import structlog

from judgi_agent.agent.context import ContextBuilder
from judgi_agent.clients.chat import ChatCompletionClient
from judgi_agent.clients.retry import SleepFn
from judgi_agent.obs.timing import Timer
from judgi_agent.parsing.response_parser import ResponseTagParser
from judgi_agent.types import (
    CanvasDocument,
    ChatMessage,
    DocumentUpdateCommand,
    RankedResult,
    ResearchMode,
    Role,
)

logger = structlog.get_logger(__name__)

UpdateCallback = Callable[[str], Awaitable[None]]


@dataclass(slots=True)
class TurnResult:
    chat_text: str
    command: DocumentUpdateCommand | None
    message: ChatMessage
    document: CanvasDocument | None = None
    sources: list[RankedResult] = field(default_factory=list)
    latency_ms: float = 0.0


class ChatTurnRunner:
    """Streams a completion into the conversation.

    The growing assistant buffer is re-parsed after every chunk. Chat-visible
    text goes to `on_update`; the first complete document command is applied
    to the document once and never again for the same turn.
    """

    def __init__(
        self,
        chat: ChatCompletionClient,
        context: ContextBuilder,
        *,
        parser: ResponseTagParser | None = None,
        chunk_delay_seconds: float | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self.chat = chat
        self.context = context
        self.parser = parser or ResponseTagParser()
        self.chunk_delay_seconds = (
            chat.config.chunk_delay_seconds if chunk_delay_seconds is None else chunk_delay_seconds
        )
        self._sleep = sleep

    async def run(
        self,
        conversation: list[ChatMessage],
        *,
        research_mode: ResearchMode = ResearchMode.NONE,
        deep_think: bool = False,
        country_hint: str | None = None,
        document: CanvasDocument | None = None,
        on_update: UpdateCallback | None = None,
    ) -> TurnResult:
        prepared = await self.context.prepare(
            conversation,
            mode=research_mode,
            country_hint=country_hint,
            document=document,
        )

        message = ChatMessage(role=Role.ASSISTANT, content="", is_streaming=True)
        conversation.append(message)
        applied: DocumentUpdateCommand | None = None
        visible = ""

        try:
            with Timer() as timer:
                async for delta in self.chat.stream(prepared.messages, deep_think=deep_think):
                    message.content += delta
                    parsed = self.parser.parse(
                        message.content, prefer=applied.kind if applied else None
                    )
                    if parsed.command is not None and applied is None:
                        applied = parsed.command
                        if document is not None:
                            document.apply(applied)
                        logger.info(
                            "document_command_applied",
                            kind=applied.kind.value,
                            chars=len(applied.payload),
                        )
                    if on_update is not None and parsed.chat_text != visible:
                        visible = parsed.chat_text
                        await on_update(visible)
                    if self.chunk_delay_seconds:
                        await self._sleep(self.chunk_delay_seconds)
        finally:
            message.is_streaming = False

        final = self.parser.parse(
            message.content, final=True, prefer=applied.kind if applied else None
        )
        if on_update is not None and final.chat_text != visible:
            await on_update(final.chat_text)
        message.content = final.chat_text

        logger.info(
            "chat_turn_completed",
            research_mode=research_mode.value,
            deep_think=deep_think,
            sources=len(prepared.sources),
            command=applied.kind.value if applied else None,
            latency_ms=round(timer.elapsed_ms, 1),
        )
        return TurnResult(
            chat_text=final.chat_text,
            command=applied,
            message=message,
            document=document,
            sources=prepared.sources,
            latency_ms=timer.elapsed_ms,
        )
