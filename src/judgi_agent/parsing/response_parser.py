"""Split a (possibly partial) AI response into chat text and a document command.

The model may embed one command block in its prose::

    Sure, here is the revised clause.
    <DOCUMENT_REPLACE>...new document...</DOCUMENT_REPLACE>

Streaming callers pass the whole buffer received so far on every update, so
`parse` is pure: the same buffer always yields the same result, and a block
whose closing tag has not arrived yet is hidden rather than leaked into chat.

Rules, in order:

1. The first complete ``<DOCUMENT_REPLACE>`` block with a non-empty body
   becomes a ``replace`` command and is cut from the text.
2. Otherwise the first complete ``<DOCUMENT_WRITE>`` block with a non-empty
   body becomes an ``append`` command and is cut from the text.
3. Whatever remains is truncated at the first opening tag of either kind, so
   an unfinished block (or a second, ignored block) never reaches the chat.
4. Unless `final` is set, a trailing fragment that could still grow into an
   opening tag (``"<DOC"``) is held back as well, so chat text only ever
   grows as the buffer grows.

A caller that has already acted on one block passes its kind as `prefer`.
That kind is then looked up first, so the chat text stays cut around the
applied block even when a block of the other kind closes later in the same
buffer.

Tags are matched exactly (case sensitive) and bodies may span lines.
"""

from __future__ import annotations

from judgi_agent.types import DocumentUpdateCommand, ParsedResponse, UpdateKind

_TAGS: dict[UpdateKind, tuple[str, str]] = {
    UpdateKind.REPLACE: ("<DOCUMENT_REPLACE>", "</DOCUMENT_REPLACE>"),
    UpdateKind.APPEND: ("<DOCUMENT_WRITE>", "</DOCUMENT_WRITE>"),
}

# Replace is checked first and wins when both blocks are complete.
_PRIORITY = (UpdateKind.REPLACE, UpdateKind.APPEND)


class ResponseTagParser:
    """Stateless parser; one instance can be shared by every stream."""

    def parse(
        self, buffer: str, *, final: bool = False, prefer: UpdateKind | None = None
    ) -> ParsedResponse:
        return parse_response(buffer, final=final, prefer=prefer)


def parse_response(
    buffer: str, *, final: bool = False, prefer: UpdateKind | None = None
) -> ParsedResponse:
    text = buffer
    command: DocumentUpdateCommand | None = None

    for kind in _lookup_order(prefer):
        span = _find_complete_block(buffer, kind)
        if span is None:
            continue
        start, end, body = span
        if not body:
            continue
        command = DocumentUpdateCommand(kind=kind, payload=body.strip())
        text = buffer[:start] + buffer[end:]
        break

    text = _strip_open_block(text)
    if not final:
        text = _strip_partial_tag(text)
    return ParsedResponse(chat_text=text.strip(), command=command)


def _lookup_order(prefer: UpdateKind | None) -> tuple[UpdateKind, ...]:
    if prefer is None:
        return _PRIORITY
    return (prefer,) + tuple(kind for kind in _PRIORITY if kind is not prefer)


def _find_complete_block(text: str, kind: UpdateKind) -> tuple[int, int, str] | None:
    """Return (start, end, body) of the first closed block of `kind`."""
    open_tag, close_tag = _TAGS[kind]
    start = text.find(open_tag)
    if start < 0:
        return None
    body_start = start + len(open_tag)
    close_at = text.find(close_tag, body_start)
    if close_at < 0:
        return None
    return start, close_at + len(close_tag), text[body_start:close_at]


def _strip_open_block(text: str) -> str:
    """Cut `text` at the first opening tag of any kind.

    Scans left to right in the outside-tag state; the first opening tag
    switches to inside-tag, after which nothing is chat-visible.
    """
    cut = len(text)
    for open_tag, _ in _TAGS.values():
        at = text.find(open_tag)
        if 0 <= at < cut:
            cut = at
    return text[:cut]


def _strip_partial_tag(text: str) -> str:
    longest = 0
    for open_tag, _ in _TAGS.values():
        for size in range(len(open_tag) - 1, longest, -1):
            if text.endswith(open_tag[:size]):
                longest = size
                break
    return text[: len(text) - longest] if longest else text
