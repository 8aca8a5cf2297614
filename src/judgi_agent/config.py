"""Configuration models for provider clients and chat turns."""

from __future__ import annotations

import os

from pydantic import BaseModel, Field


class RetryConfig(BaseModel):
    """Configures rate-limit retry with key rotation."""

    backoff_seconds: float = Field(default=1.0, ge=0.0)
    max_attempts: int | None = Field(default=None, ge=1)


class TranscriptionConfig(BaseModel):
    base_url: str = "https://api.assemblyai.com/v2"
    poll_interval_seconds: float = Field(default=3.0, ge=0.0)
    timeout_seconds: float = Field(default=60.0, gt=0.0)


class SearchConfig(BaseModel):
    """Configures the search + rerank provider."""

    search_url: str = "https://api.langsearch.com/v1/web-search"
    rerank_url: str = "https://api.langsearch.com/v1/rerank"
    rerank_model: str = "langsearch-reranker-v1"
    document_pool_size: int = Field(default=10, ge=1)
    news_pool_size: int = Field(default=5, ge=1)
    news_freshness: str = "oneDay"
    timeout_seconds: float = Field(default=30.0, gt=0.0)


class ChatConfig(BaseModel):
    """Configures the OpenAI-compatible chat-completion provider."""

    base_url: str = "https://api.longcat.chat/openai"
    chat_model: str = "LongCat-Flash-Chat"
    thinking_model: str = "LongCat-Flash-Thinking"
    max_tokens: int = Field(default=1000, ge=1)
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    chunk_delay_seconds: float = Field(default=0.0, ge=0.0)


class ResearchConfig(BaseModel):
    """Top-N per research mode; each must stay below the search pool size."""

    moderate_top_n: int = Field(default=5, ge=1)
    deep_top_n: int = Field(default=8, ge=1)
    deep_news_top_n: int = Field(default=3, ge=1)


class ProviderKeys(BaseModel):
    transcription: list[str] = Field(default_factory=list)
    search: list[str] = Field(default_factory=list)
    chat: list[str] = Field(default_factory=list)

    @classmethod
    def from_env(cls) -> "ProviderKeys":
        return cls(
            transcription=split_keys(os.getenv("ASSEMBLYAI_API_KEYS", "")),
            search=split_keys(os.getenv("LANGSEARCH_API_KEYS", "")),
            chat=split_keys(os.getenv("LONGCAT_API_KEYS", "")),
        )


def split_keys(raw: str) -> list[str]:
    return [part.strip() for part in raw.split(",") if part.strip()]
