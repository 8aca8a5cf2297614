"""Second-stage rerank provider."""

from __future__ import annotations

from abc import ABC, abstractmethod

import httpx
from pydantic import BaseModel, Field

from judgi_agent.clients.http import HttpProvider
from judgi_agent.clients.retry import RetryingClient
from judgi_agent.config import SearchConfig
from judgi_agent.types import RerankHit


class Reranker(ABC):
    """Reranker interface used after first-stage search."""

    @abstractmethod
    async def rerank(self, query: str, documents: list[str], top_n: int) -> list[RerankHit]:
        """Return hits in descending relevance order."""


class _RerankDocument(BaseModel):
    text: str | None = None


class _RerankItem(BaseModel):
    index: int | None = None
    document: _RerankDocument | None = None
    relevance_score: float = 0.0


class _RerankResponse(BaseModel):
    results: list[_RerankItem] = Field(default_factory=list)


class LangSearchReranker(HttpProvider, Reranker):
    """Rerank over HTTP, sharing the search provider's key ring."""

    provider = "rerank"

    def __init__(
        self,
        retrying: RetryingClient,
        config: SearchConfig | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config or SearchConfig()
        super().__init__(http_client=http_client, timeout_seconds=self.config.timeout_seconds)
        self.retrying = retrying

    async def rerank(self, query: str, documents: list[str], top_n: int) -> list[RerankHit]:
        payload = {
            "model": self.config.rerank_model,
            "query": query,
            "documents": documents,
            "top_n": top_n,
            "return_documents": True,
        }

        async def _attempt(key: str) -> list[RerankHit]:
            response = await self._request(
                "POST",
                self.config.rerank_url,
                json=payload,
                headers={"Authorization": f"Bearer {key}"},
            )
            parsed = self._decode(response, _RerankResponse)
            return [
                RerankHit(
                    index=item.index,
                    text=item.document.text if item.document else None,
                    relevance_score=item.relevance_score,
                )
                for item in parsed.results
            ]

        return await self.retrying.call(_attempt)
