import pytest

from judgi_agent.agent.context import ContextBuilder
from judgi_agent.agent.turn import ChatTurnRunner
from judgi_agent.config import ChatConfig
from judgi_agent.types import CanvasDocument, ChatMessage, Role, UpdateKind


class _ScriptedChat:
    def __init__(self, chunks: list[str]) -> None:
        self.config = ChatConfig()
        self.chunks = chunks

    async def stream(self, messages, *, deep_think: bool = False):
        for chunk in self.chunks:
            yield chunk


@pytest.mark.asyncio
async def test_later_replace_does_not_rewrite_text_of_applied_append() -> None:
    chat = _ScriptedChat(
        [
            "Intro <DOCUMENT_WRITE>W</DOCUMENT_WRITE>",
            " middle <DOCUMENT_REPLACE>R",
            "</DOCUMENT_REPLACE> end",
        ]
    )
    runner = ChatTurnRunner(chat, ContextBuilder())  # type: ignore[arg-type]
    document = CanvasDocument(content="# Draft")
    updates: list[str] = []

    async def _on_update(text: str) -> None:
        updates.append(text)

    result = await runner.run(
        [ChatMessage(role=Role.USER, content="Add a clause.")],
        document=document,
        on_update=_on_update,
    )

    assert result.command is not None
    assert result.command.kind is UpdateKind.APPEND
    assert document.content == "# Draft\n\nW"
    assert document.revisions == [UpdateKind.APPEND]
    assert result.chat_text == "Intro  middle"
    assert result.message.content == "Intro  middle"
    assert all(later.startswith(earlier) for earlier, later in zip(updates, updates[1:]))
