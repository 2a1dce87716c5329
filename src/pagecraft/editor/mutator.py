"""Position-aware edits over the content string.

Every function here is pure: it takes the current document plus explicit
offsets and returns a :class:`MutationResult` describing the new text and
where the selection lands. Offsets that no longer fit the document are
clamped into ``[0, len(document)]``.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..core.ranges import TextRange, clamp_offset
from .document_model import Selection


@dataclass(slots=True, frozen=True)
class MutationResult:
    """New document text plus the selection the caller should apply."""

    text: str
    selection: TextRange
    changed: bool = True

    @property
    def caret(self) -> int:
        return self.selection.end


def _clamped(document: str, start: int, end: int) -> tuple[int, int]:
    length = len(document)
    begin = clamp_offset(start, length)
    finish = clamp_offset(end, length)
    if finish < begin:
        begin, finish = finish, begin
    return begin, finish


def insert_at_cursor(document: str, text: str, position: int) -> MutationResult:
    """Splice ``text`` into ``document`` at ``position``."""

    offset = clamp_offset(position, len(document))
    new_text = document[:offset] + text + document[offset:]
    caret = offset + len(text)
    return MutationResult(new_text, TextRange.caret(caret), changed=bool(text))


def replace_range(document: str, start: int, end: int, replacement: str) -> MutationResult:
    """Replace ``[start, end)`` with ``replacement`` and select the inserted text."""

    begin, finish = _clamped(document, start, end)
    new_text = document[:begin] + replacement + document[finish:]
    return MutationResult(new_text, TextRange(begin, begin + len(replacement)), changed=new_text != document)


def delete_range(document: str, start: int, end: int) -> MutationResult:
    begin, finish = _clamped(document, start, end)
    new_text = document[:begin] + document[finish:]
    return MutationResult(new_text, TextRange.caret(begin), changed=finish > begin)


def wrap_selection(document: str, opening: str, closing: str, selection: Selection | TextRange) -> MutationResult:
    """Surround the selected text with ``opening`` and ``closing``.

    The selected characters are re-read from ``document`` so a stale
    ``selection.text`` cannot corrupt the result. An empty selection inserts
    the empty pair ``opening + closing`` and parks the caret between them.
    """

    begin, finish = _clamped(document, selection.start, selection.end)
    if begin == finish:
        new_text = document[:begin] + opening + closing + document[begin:]
        return MutationResult(new_text, TextRange.caret(begin + len(opening)))
    wrapped = opening + document[begin:finish] + closing
    new_text = document[:begin] + wrapped + document[finish:]
    return MutationResult(new_text, TextRange(begin, begin + len(wrapped)))


def remove_span(document: str, span: TextRange, *, collapse_blank_lines: bool = True) -> MutationResult:
    """Remove ``span`` and optionally collapse the blank lines it leaves behind."""

    begin, finish = _clamped(document, span.start, span.end)
    head = document[:begin]
    tail = document[finish:]
    if collapse_blank_lines and head.endswith("\n") and tail.startswith("\n"):
        head_body = head.rstrip("\n")
        tail_body = tail.lstrip("\n")
        newlines = (len(head) - len(head_body)) + (len(tail) - len(tail_body))
        new_text = head_body + "\n" * min(newlines, 2) + tail_body
    else:
        new_text = head + tail
    caret = min(begin, len(new_text))
    return MutationResult(new_text, TextRange.caret(caret), changed=new_text != document)


__all__ = [
    "MutationResult",
    "delete_range",
    "insert_at_cursor",
    "remove_span",
    "replace_range",
    "wrap_selection",
]
