"""Shared domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class UpdateKind(str, Enum):
    APPEND = "append"
    REPLACE = "replace"


class SearchMode(str, Enum):
    """Search flavour; news search is freshness filtered."""

    WEB = "webSearch"
    NEWS = "newsSearch"


class CandidateKind(str, Enum):
    WEBPAGE = "webpage"
    NEWS = "news"


class ResearchMode(str, Enum):
    NONE = "none"
    MODERATE = "moderate"
    DEEP = "deep"


@dataclass(slots=True)
class ChatMessage:
    """One conversation message; `content` grows while streaming."""

    role: Role
    content: str
    is_streaming: bool = False


@dataclass(slots=True, frozen=True)
class DocumentUpdateCommand:
    """Instruction extracted from a tagged AI response."""

    kind: UpdateKind
    payload: str


@dataclass(slots=True, frozen=True)
class ParsedResponse:
    chat_text: str
    command: DocumentUpdateCommand | None = None


@dataclass(slots=True)
class SearchCandidate:
    """A first-stage search hit, held only for one retrieval call."""

    id: str
    title: str
    content: str
    citation_url: str | None
    kind: CandidateKind
    publication_date: str | None = None


@dataclass(slots=True)
class RankedResult:
    """A search candidate with the reranker's relevance score attached."""

    candidate: SearchCandidate
    relevance_score: float
    rank: int = 0


@dataclass(slots=True)
class RerankHit:
    index: int | None
    text: str | None
    relevance_score: float


@dataclass(slots=True)
class CanvasDocument:
    """Markdown drafting document mutated by AI commands."""

    content: str = ""
    title: str = "Untitled Document"
    revisions: list[UpdateKind] = field(default_factory=list)

    def apply(self, command: DocumentUpdateCommand) -> None:
        if command.kind is UpdateKind.REPLACE:
            self.content = command.payload
        elif self.content:
            self.content = f"{self.content}\n\n{command.payload}"
        else:
            self.content = command.payload
        self.revisions.append(command.kind)
