"""Linear undo/redo history built from full-text snapshots."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

LOGGER = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 100


@dataclass(slots=True, frozen=True)
class HistorySnapshot:
    """Immutable copy of the document at one point in the edit session."""

    text: str
    label: str = "edit"
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class HistoryManager:
    """Ordered snapshots plus a cursor pointing at the current one.

    The list is never empty, so ``0 <= index < len(self)`` always holds.
    Pushing while the cursor is not at the tail drops the forward branch.
    """

    def __init__(self, initial_text: str = "", *, limit: int = DEFAULT_HISTORY_LIMIT) -> None:
        if limit < 1:
            raise ValueError("History limit must be at least 1")
        self._limit = limit
        self._snapshots: list[HistorySnapshot] = [HistorySnapshot(initial_text, label="initial")]
        self._index = 0

    def __len__(self) -> int:
        return len(self._snapshots)

    @property
    def index(self) -> int:
        return self._index

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def current(self) -> HistorySnapshot:
        return self._snapshots[self._index]

    @property
    def can_undo(self) -> bool:
        return self._index > 0

    @property
    def can_redo(self) -> bool:
        return self._index < len(self._snapshots) - 1

    def snapshots(self) -> tuple[HistorySnapshot, ...]:
        return tuple(self._snapshots)

    def push(self, text: str, *, label: str = "edit") -> bool:
        """Record ``text`` as the newest snapshot.

        Returns ``False`` without touching the history when ``text`` equals the
        current snapshot.
        """

        if text == self.current.text:
            return False
        discarded = len(self._snapshots) - self._index - 1
        del self._snapshots[self._index + 1 :]
        self._snapshots.append(HistorySnapshot(text, label=label))
        overflow = len(self._snapshots) - self._limit
        if overflow > 0:
            del self._snapshots[:overflow]
        self._index = len(self._snapshots) - 1
        if discarded:
            LOGGER.debug("History branch truncated (%d snapshot(s) discarded)", discarded)
        return True

    def undo(self) -> HistorySnapshot | None:
        if not self.can_undo:
            return None
        self._index -= 1
        return self._snapshots[self._index]

    def redo(self) -> HistorySnapshot | None:
        if not self.can_redo:
            return None
        self._index += 1
        return self._snapshots[self._index]

    def reset(self, text: str = "") -> None:
        """Discard every snapshot and reseed the history with ``text``."""

        self._snapshots = [HistorySnapshot(text, label="initial")]
        self._index = 0


__all__ = ["DEFAULT_HISTORY_LIMIT", "HistoryManager", "HistorySnapshot"]
