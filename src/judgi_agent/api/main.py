"""FastAPI entrypoint for search/parse/transcribe/chat endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel, Field

from judgi_agent.errors import (
    ConfigurationError,
    ExhaustedRetriesError,
    JudgiAgentError,
    ProviderError,
    TranscriptionFailedError,
)
from judgi_agent.obs.log import configure_logging
from judgi_agent.parsing.response_parser import parse_response
from judgi_agent.services import Services, build_services
from judgi_agent.types import (
    CanvasDocument,
    ChatMessage,
    DocumentUpdateCommand,
    RankedResult,
    ResearchMode,
    Role,
    SearchMode,
)


class SearchRequest(BaseModel):
    query: str = Field(min_length=1)
    top_n: int = Field(default=5, ge=1, le=20)
    mode: SearchMode = SearchMode.WEB
    country_hint: str | None = None


class ParseRequest(BaseModel):
    buffer: str
    final: bool = False


class MessageIn(BaseModel):
    role: Role
    content: str


class DocumentIn(BaseModel):
    title: str = "Untitled Document"
    content: str = ""


class ChatRequest(BaseModel):
    messages: list[MessageIn] = Field(min_length=1)
    research_mode: ResearchMode = ResearchMode.NONE
    deep_think: bool = False
    country_hint: str | None = None
    document: DocumentIn | None = None


def create_app(services: Services | None = None) -> FastAPI:
    """Build the API around one set of services (built from env by default)."""
    configure_logging()
    services = services or build_services()
    app = FastAPI(title="JudgiAI Agent", version="0.1.0")

    @app.get("/health")
    def health() -> dict[str, Any]:
        return {
            "status": "ok",
            "keys_configured": {
                "transcription": services.transcription_ring.size(),
                "search": services.search_ring.size(),
                "chat": services.chat_ring.size(),
            },
        }

    @app.post("/search")
    async def search(request: SearchRequest) -> dict[str, Any]:
        try:
            results = await services.pipeline.retrieve(
                request.query, request.top_n, request.mode, request.country_hint
            )
        except JudgiAgentError as exc:
            raise _http_error(exc) from exc
        return {"items": [_result_payload(result) for result in results]}

    @app.post("/parse")
    def parse(request: ParseRequest) -> dict[str, Any]:
        parsed = parse_response(request.buffer, final=request.final)
        return {"chat_text": parsed.chat_text, "command": _command_payload(parsed.command)}

    @app.post("/transcribe")
    async def transcribe(request: Request) -> dict[str, Any]:
        audio = await request.body()
        if not audio:
            raise HTTPException(status_code=400, detail="Empty audio body.")
        try:
            text = await services.transcription.transcribe(audio)
        except JudgiAgentError as exc:
            raise _http_error(exc) from exc
        return {"text": text}

    @app.post("/chat")
    async def chat(request: ChatRequest) -> dict[str, Any]:
        conversation = [
            ChatMessage(role=message.role, content=message.content)
            for message in request.messages
        ]
        document = (
            CanvasDocument(title=request.document.title, content=request.document.content)
            if request.document is not None
            else None
        )
        try:
            result = await services.turns.run(
                conversation,
                research_mode=request.research_mode,
                deep_think=request.deep_think,
                country_hint=request.country_hint,
                document=document,
            )
        except JudgiAgentError as exc:
            raise _http_error(exc) from exc
        return {
            "chat_text": result.chat_text,
            "command": _command_payload(result.command),
            "document": (
                {"title": document.title, "content": document.content}
                if document is not None
                else None
            ),
            "sources": [_result_payload(source) for source in result.sources],
            "latency_ms": result.latency_ms,
        }

    return app


def _http_error(exc: JudgiAgentError) -> HTTPException:
    if isinstance(exc, ConfigurationError):
        return HTTPException(status_code=503, detail=str(exc))
    if isinstance(exc, ExhaustedRetriesError):
        return HTTPException(status_code=429, detail=str(exc))
    if isinstance(exc, TranscriptionFailedError):
        return HTTPException(status_code=422, detail=str(exc))
    if isinstance(exc, ProviderError):
        return HTTPException(status_code=502, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


def _command_payload(command: DocumentUpdateCommand | None) -> dict[str, str] | None:
    if command is None:
        return None
    return {"kind": command.kind.value, "payload": command.payload}


def _result_payload(result: RankedResult) -> dict[str, Any]:
    candidate = result.candidate
    return {
        "id": candidate.id,
        "title": candidate.title,
        "content": candidate.content,
        "citation_url": candidate.citation_url,
        "kind": candidate.kind.value,
        "publication_date": candidate.publication_date,
        "relevance_score": result.relevance_score,
        "rank": result.rank,
    }


app = create_app()
