"""Dataclasses representing the editable content string and its selection."""

from __future__ import annotations

import hashlib
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict

from ..core.ranges import TextRange, clamp_offset


def _utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""

    return datetime.now(timezone.utc)


def _hash_text(text: str) -> str:
    return hashlib.sha1(text.encode("utf-8")).hexdigest()


@dataclass(slots=True, frozen=True)
class Selection:
    """Selected span of the document together with the text it covers."""

    start: int = 0
    end: int = 0
    text: str = ""

    @classmethod
    def from_document(cls, document: str, start: int, end: int | None = None) -> Selection:
        """Build a selection for ``document``, clamping stale offsets."""

        length = len(document)
        begin = clamp_offset(start, length)
        finish = clamp_offset(begin if end is None else end, length)
        if finish < begin:
            begin, finish = finish, begin
        return cls(begin, finish, document[begin:finish])

    @property
    def is_empty(self) -> bool:
        return self.start == self.end

    def as_range(self) -> TextRange:
        return TextRange(self.start, self.end)

    def as_tuple(self) -> tuple[int, int]:
        return (self.start, self.end)


@dataclass(slots=True)
class DocumentState:
    """Full snapshot of the content being edited."""

    text: str = ""
    selection: Selection = field(default_factory=Selection)
    dirty: bool = False
    document_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    version_id: int = 1
    content_hash: str = field(default_factory=str)
    updated_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        if not self.content_hash:
            self.content_hash = _hash_text(self.text)

    def update_text(self, new_text: str) -> None:
        """Update the document text and mark it dirty."""

        self.text = new_text
        self.dirty = True
        self.updated_at = _utcnow()
        self.version_id += 1
        self.content_hash = _hash_text(new_text)
        self.selection = Selection.from_document(new_text, self.selection.start, self.selection.end)

    def select(self, start: int, end: int | None = None) -> Selection:
        """Move the selection, clamping offsets into the current text."""

        self.selection = Selection.from_document(self.text, start, end)
        return self.selection

    def snapshot(self) -> Dict[str, Any]:
        """Return a serializable view of the document for hosts and logs."""

        return {
            "text": self.text,
            "selection": self.selection.as_tuple(),
            "dirty": self.dirty,
            "document_id": self.document_id,
            "version_id": self.version_id,
            "content_hash": self.content_hash,
        }

    def version_signature(self) -> str:
        return f"{self.document_id}:{self.version_id}:{self.content_hash}"
