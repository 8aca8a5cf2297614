"""First-stage web/news search provider."""

from __future__ import annotations

import uuid
from typing import Any, Protocol

import httpx
import structlog
from pydantic import BaseModel, Field

from judgi_agent.clients.http import HttpProvider
from judgi_agent.clients.retry import RetryingClient
from judgi_agent.config import SearchConfig
from judgi_agent.types import CandidateKind, SearchCandidate, SearchMode

logger = structlog.get_logger(__name__)


class SearchProvider(Protocol):
    """Minimal search contract used by the retrieval pipeline."""

    async def search(self, query: str, *, mode: SearchMode) -> list[SearchCandidate]:
        """Return the candidate pool for `query`."""


class _WebPage(BaseModel):
    id: str | None = None
    name: str | None = None
    summary: str | None = None
    snippet: str | None = None
    url: str | None = None
    datePublished: str | None = None


class _WebPages(BaseModel):
    value: list[_WebPage] = Field(default_factory=list)


class _SearchData(BaseModel):
    webPages: _WebPages | None = None


class _SearchResponse(BaseModel):
    data: _SearchData


class LangSearchClient(HttpProvider):
    """Web search over HTTP; news mode adds a freshness filter."""

    provider = "search"

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

    def build_payload(self, query: str, mode: SearchMode) -> dict[str, Any]:
        if mode is SearchMode.NEWS:
            return {
                "query": query,
                "count": self.config.news_pool_size,
                "freshness": self.config.news_freshness,
            }
        return {"query": query, "count": self.config.document_pool_size, "summary": True}

    async def search(self, query: str, *, mode: SearchMode) -> list[SearchCandidate]:
        payload = self.build_payload(query, mode)

        async def _attempt(key: str) -> list[SearchCandidate]:
            response = await self._request(
                "POST",
                self.config.search_url,
                json=payload,
                headers={"Authorization": f"Bearer {key}"},
            )
            return _to_candidates(self._decode(response, _SearchResponse), mode)

        candidates = await self.retrying.call(_attempt)
        logger.info("search_completed", mode=mode.value, candidates=len(candidates))
        return candidates


def _to_candidates(response: _SearchResponse, mode: SearchMode) -> list[SearchCandidate]:
    pages = response.data.webPages.value if response.data.webPages else []
    kind = CandidateKind.NEWS if mode is SearchMode.NEWS else CandidateKind.WEBPAGE
    return [
        SearchCandidate(
            id=page.id or uuid.uuid4().hex[:13],
            title=page.name or "Untitled Document",
            content=page.summary or page.snippet or "",
            citation_url=page.url,
            kind=kind,
            publication_date=page.datePublished,
        )
        for page in pages
    ]
