import pytest

from judgi_agent.agent.context import ContextBuilder, build_messages, latest_user_text
from judgi_agent.config import ResearchConfig
from judgi_agent.errors import ConfigurationError
from judgi_agent.types import (
    CandidateKind,
    CanvasDocument,
    ChatMessage,
    RankedResult,
    ResearchMode,
    Role,
    SearchCandidate,
    SearchMode,
)


def _result(title: str, kind: CandidateKind = CandidateKind.WEBPAGE) -> RankedResult:
    return RankedResult(
        candidate=SearchCandidate(
            id=title,
            title=title,
            content=f"{title} summary",
            citation_url=f"https://law.test/{title}",
            kind=kind,
            publication_date="2023-01-02",
        ),
        relevance_score=0.5,
        rank=1,
    )


class _RecordingPipeline:
    def __init__(self) -> None:
        self.calls: list[tuple[str, int, SearchMode, str | None]] = []

    async def retrieve(self, query, top_n, mode=SearchMode.WEB, country_hint=None):
        self.calls.append((query, top_n, mode, country_hint))
        kind = CandidateKind.NEWS if mode is SearchMode.NEWS else CandidateKind.WEBPAGE
        return [_result(f"{mode.value}-{i}", kind) for i in range(top_n)]


@pytest.mark.asyncio
async def test_research_modes_drive_retrieval() -> None:
    pipeline = _RecordingPipeline()
    builder = ContextBuilder(pipeline, ResearchConfig())  # type: ignore[arg-type]

    assert await builder.gather("q", ResearchMode.NONE) == []
    moderate = await builder.gather("q", ResearchMode.MODERATE, country_hint="India")
    deep = await builder.gather("q", ResearchMode.DEEP)

    assert len(moderate) == 5
    assert len(deep) == 8 + 3
    assert deep[-1].candidate.kind is CandidateKind.NEWS
    assert pipeline.calls == [
        ("q", 5, SearchMode.WEB, "India"),
        ("q", 8, SearchMode.WEB, None),
        ("q", 3, SearchMode.NEWS, None),
    ]


@pytest.mark.asyncio
async def test_research_without_pipeline_is_configuration_error() -> None:
    with pytest.raises(ConfigurationError):
        await ContextBuilder().gather("q", ResearchMode.MODERATE)


def test_context_is_prepended_when_no_system_message() -> None:
    history = [ChatMessage(role=Role.USER, content="Is adultery a crime?")]

    messages = build_messages(history, sources=[_result("Joseph-Shine")])

    assert [m.role for m in messages] == [Role.SYSTEM, Role.USER]
    assert "[Joseph-Shine](https://law.test/Joseph-Shine)" in messages[0].content
    assert "published 2023-01-02" in messages[0].content
    assert history[0].content == "Is adultery a crime?"


def test_context_is_injected_into_existing_system_message() -> None:
    history = [
        ChatMessage(role=Role.SYSTEM, content="Custom rules."),
        ChatMessage(role=Role.USER, content="Summarize my draft."),
    ]
    document = CanvasDocument(title="Petition", content="# Facts\n\nThe petitioner...")

    messages = build_messages(history, document=document)

    assert [m.role for m in messages] == [Role.SYSTEM, Role.USER]
    assert messages[0].content.startswith("Custom rules.")
    assert "<DOCUMENT_REPLACE>" in messages[0].content
    assert "The petitioner..." in messages[0].content
    assert history[0].content == "Custom rules."


def test_latest_user_text_skips_assistant_messages() -> None:
    history = [
        ChatMessage(role=Role.USER, content=" first "),
        ChatMessage(role=Role.ASSISTANT, content="reply"),
        ChatMessage(role=Role.USER, content=" second "),
        ChatMessage(role=Role.ASSISTANT, content="", is_streaming=True),
    ]

    assert latest_user_text(history) == "second"
