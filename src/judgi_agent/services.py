"""Wires key rings, provider clients and the chat turn runner together."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

import httpx

from judgi_agent.agent.context import ContextBuilder
from judgi_agent.agent.turn import ChatTurnRunner
from judgi_agent.clients.chat import ChatCompletionClient, LLMFactory, is_chat_rate_limit
from judgi_agent.clients.keyring import KeyRing
from judgi_agent.clients.retry import RetryingClient, RetryPolicy, SleepFn
from judgi_agent.clients.transcription import TranscriptionClient
from judgi_agent.config import (
    ChatConfig,
    ProviderKeys,
    ResearchConfig,
    RetryConfig,
    SearchConfig,
    TranscriptionConfig,
)
from judgi_agent.retrieval.pipeline import RetrievalPipeline
from judgi_agent.retrieval.rerank import LangSearchReranker
from judgi_agent.retrieval.search import LangSearchClient


@dataclass(slots=True)
class Services:
    transcription_ring: KeyRing
    search_ring: KeyRing
    chat_ring: KeyRing
    transcription: TranscriptionClient
    pipeline: RetrievalPipeline
    chat: ChatCompletionClient
    context: ContextBuilder
    turns: ChatTurnRunner


def build_services(
    keys: ProviderKeys | None = None,
    *,
    retry_config: RetryConfig | None = None,
    transcription_config: TranscriptionConfig | None = None,
    search_config: SearchConfig | None = None,
    chat_config: ChatConfig | None = None,
    research_config: ResearchConfig | None = None,
    http_client: httpx.AsyncClient | None = None,
    llm_factory: LLMFactory | None = None,
    sleep: SleepFn = asyncio.sleep,
) -> Services:
    """Build one isolated set of rings and clients.

    Every ring belongs to the returned `Services`; nothing is process-global,
    so tests can build as many independent sets as they need.
    """
    keys = keys or ProviderKeys.from_env()
    retry_config = retry_config or RetryConfig()
    search_config = search_config or SearchConfig()

    transcription_ring = KeyRing(keys.transcription, service="transcription")
    search_ring = KeyRing(keys.search, service="search")
    chat_ring = KeyRing(keys.chat, service="chat")

    search_retrying = RetryingClient(search_ring, RetryPolicy.from_config(retry_config, sleep=sleep))
    pipeline = RetrievalPipeline(
        LangSearchClient(search_retrying, search_config, http_client=http_client),
        LangSearchReranker(search_retrying, search_config, http_client=http_client),
        search_config,
    )
    transcription = TranscriptionClient(
        RetryingClient(transcription_ring, RetryPolicy.from_config(retry_config, sleep=sleep)),
        transcription_config,
        http_client=http_client,
        sleep=sleep,
    )
    chat = ChatCompletionClient(
        RetryingClient(
            chat_ring,
            RetryPolicy.from_config(retry_config, sleep=sleep, is_retryable=is_chat_rate_limit),
        ),
        chat_config,
        llm_factory=llm_factory,
    )
    context = ContextBuilder(pipeline, research_config)
    return Services(
        transcription_ring=transcription_ring,
        search_ring=search_ring,
        chat_ring=chat_ring,
        transcription=transcription,
        pipeline=pipeline,
        chat=chat,
        context=context,
        turns=ChatTurnRunner(chat, context, sleep=sleep),
    )
