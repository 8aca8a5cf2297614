"""Two-stage search-then-rerank retrieval."""

from __future__ import annotations

import structlog

from judgi_agent.config import SearchConfig
from judgi_agent.retrieval.rerank import Reranker
from judgi_agent.retrieval.search import SearchProvider
from judgi_agent.types import RankedResult, RerankHit, SearchCandidate, SearchMode

logger = structlog.get_logger(__name__)


class RetrievalPipeline:
    """Search a candidate pool, then let the reranker pick the top N.

    The pool is deliberately larger than `top_n` so the reranker has
    material to choose from. The reranker's order is authoritative.
    """

    def __init__(
        self,
        search: SearchProvider,
        reranker: Reranker,
        config: SearchConfig | None = None,
    ) -> None:
        self.search = search
        self.reranker = reranker
        self.config = config or SearchConfig()

    async def retrieve(
        self,
        query: str,
        top_n: int,
        mode: SearchMode = SearchMode.WEB,
        country_hint: str | None = None,
    ) -> list[RankedResult]:
        if top_n <= 0:
            raise ValueError(f"top_n must be positive, got {top_n}")
        if not query.strip():
            logger.info("retrieval_skipped_blank_query", mode=mode.value)
            return []

        search_query = build_search_query(query, country_hint)
        candidates = await self.search.search(search_query, mode=mode)
        if not candidates:
            logger.info("retrieval_empty", mode=mode.value)
            return []

        hits = await self.reranker.rerank(
            search_query,
            [candidate.content for candidate in candidates],
            min(top_n, len(candidates)),
        )
        results = join_reranked(candidates, hits)
        logger.info(
            "retrieval_completed",
            mode=mode.value,
            candidates=len(candidates),
            reranked=len(hits),
            returned=len(results),
        )
        return results


def build_search_query(query: str, country_hint: str | None) -> str:
    if not country_hint:
        return query
    if country_hint == "India":
        return f"Indian legal cases and statutes about {query}"
    return f"{query} in {country_hint} law"


def join_reranked(
    candidates: list[SearchCandidate], hits: list[RerankHit]
) -> list[RankedResult]:
    """Attach rerank scores to their source candidates, keeping rerank order.

    The provider's `index` is trusted when it points at a candidate with the
    same text (or no text was echoed back). Otherwise the first candidate
    with identical content is used. Hits matching nothing are dropped.
    """
    by_content: dict[str, SearchCandidate] = {}
    for candidate in candidates:
        by_content.setdefault(candidate.content, candidate)

    results: list[RankedResult] = []
    for hit in hits:
        match: SearchCandidate | None = None
        if hit.index is not None and 0 <= hit.index < len(candidates):
            indexed = candidates[hit.index]
            if hit.text is None or hit.text == indexed.content:
                match = indexed
        if match is None and hit.text is not None:
            match = by_content.get(hit.text)
        if match is None:
            logger.warning("rerank_hit_unmatched", index=hit.index)
            continue
        results.append(
            RankedResult(
                candidate=match,
                relevance_score=hit.relevance_score,
                rank=len(results) + 1,
            )
        )
    return results
