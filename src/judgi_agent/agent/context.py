"""Research-mode retrieval and system-message assembly for a chat turn."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

import structlog

from judgi_agent.config import ResearchConfig
from judgi_agent.errors import ConfigurationError
from judgi_agent.retrieval.pipeline import RetrievalPipeline
from judgi_agent.types import (
    CanvasDocument,
    ChatMessage,
    RankedResult,
    ResearchMode,
    Role,
    SearchMode,
)

logger = structlog.get_logger(__name__)

_SYSTEM_PROMPT = """
You are JudgiAI, a legal research and drafting assistant.

Rules:
1) Ground legal statements in the research context when one is provided.
2) Cite sources as Markdown links, e.g. [Case name](https://example.org/doc).
3) If the context does not support an answer, say so instead of guessing.
""".strip()

_CANVAS_INSTRUCTIONS = """
You can edit the user's document. Explain what you did in plain prose, and put
the document text inside exactly one of these blocks:
- <DOCUMENT_REPLACE>full new document</DOCUMENT_REPLACE> to overwrite it.
- <DOCUMENT_WRITE>new section</DOCUMENT_WRITE> to append to the end.
Only emit a block when the user asks for a change to the document.
""".strip()


@dataclass(slots=True)
class PreparedTurn:
    messages: list[ChatMessage]
    sources: list[RankedResult] = field(default_factory=list)


class ContextBuilder:
    """Gathers research context and injects it into the system message."""

    def __init__(
        self,
        pipeline: RetrievalPipeline | None = None,
        config: ResearchConfig | None = None,
    ) -> None:
        self.pipeline = pipeline
        self.config = config or ResearchConfig()

    async def gather(
        self,
        query: str,
        mode: ResearchMode,
        *,
        country_hint: str | None = None,
    ) -> list[RankedResult]:
        if mode is ResearchMode.NONE:
            return []
        if self.pipeline is None:
            raise ConfigurationError("Research mode requested but no retrieval pipeline is configured.")

        top_n = self.config.moderate_top_n if mode is ResearchMode.MODERATE else self.config.deep_top_n
        sources = await self.pipeline.retrieve(query, top_n, SearchMode.WEB, country_hint)
        if mode is ResearchMode.DEEP:
            sources.extend(
                await self.pipeline.retrieve(
                    query, self.config.deep_news_top_n, SearchMode.NEWS, country_hint
                )
            )
        logger.info("research_context_gathered", mode=mode.value, sources=len(sources))
        return sources

    async def prepare(
        self,
        history: Sequence[ChatMessage],
        *,
        mode: ResearchMode = ResearchMode.NONE,
        country_hint: str | None = None,
        document: CanvasDocument | None = None,
    ) -> PreparedTurn:
        query = latest_user_text(history)
        sources = await self.gather(query, mode, country_hint=country_hint) if query else []
        messages = build_messages(history, sources=sources, document=document)
        return PreparedTurn(messages=messages, sources=sources)


def latest_user_text(history: Sequence[ChatMessage]) -> str:
    for message in reversed(history):
        if message.role is Role.USER:
            return message.content.strip()
    return ""


def build_messages(
    history: Sequence[ChatMessage],
    *,
    sources: Sequence[RankedResult] = (),
    document: CanvasDocument | None = None,
) -> list[ChatMessage]:
    """Return a copy of `history` with one system message carrying the context.

    An existing leading system message is extended rather than duplicated.
    """
    sections: list[str] = []
    if document is not None:
        sections.append(_CANVAS_INSTRUCTIONS)
        sections.append(render_document(document))
    if sources:
        sections.append(render_sources(sources))

    messages = [
        ChatMessage(role=message.role, content=message.content) for message in history
    ]
    if messages and messages[0].role is Role.SYSTEM:
        if sections:
            messages[0].content = "\n\n".join([messages[0].content, *sections])
        return messages
    return [ChatMessage(role=Role.SYSTEM, content="\n\n".join([_SYSTEM_PROMPT, *sections])), *messages]


def render_document(document: CanvasDocument) -> str:
    body = document.content.strip() or "(the document is empty)"
    return (
        f'The user is currently working on a document titled "{document.title}". '
        f"Here is its current content:\n\n{body}"
    )


def render_sources(sources: Sequence[RankedResult]) -> str:
    lines = ["Research context (most relevant first):"]
    for position, result in enumerate(sources, start=1):
        candidate = result.candidate
        heading = (
            f"[{candidate.title}]({candidate.citation_url})"
            if candidate.citation_url
            else candidate.title
        )
        meta = [candidate.kind.value, f"relevance={result.relevance_score:.3f}"]
        if candidate.publication_date:
            meta.append(f"published {candidate.publication_date}")
        lines.append(f"{position}. {heading} ({', '.join(meta)})")
        if candidate.content:
            lines.append(f"   {candidate.content}")
    return "\n".join(lines)
