"""Character spans over the content string."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


def clamp_offset(value: Any, length: int) -> int:
    """Clamp ``value`` into ``[0, length]``, treating garbage as ``0``."""

    try:
        number = int(value)
    except (TypeError, ValueError):
        return 0
    return max(0, min(number, max(0, length)))


@dataclass(slots=True, frozen=True)
class TextRange:
    """Half-open ``[start, end)`` span; offsets are sorted and never negative."""

    start: int
    end: int

    def __post_init__(self) -> None:
        try:
            start, end = int(self.start), int(self.end)
        except (TypeError, ValueError) as exc:
            raise ValueError("TextRange offsets must be integers") from exc
        start, end = sorted((max(0, start), max(0, end)))
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)

    @classmethod
    def caret(cls, position: int) -> TextRange:
        return cls(position, position)

    @property
    def length(self) -> int:
        return self.end - self.start

    @property
    def is_caret(self) -> bool:
        return self.start == self.end

    def to_tuple(self) -> tuple[int, int]:
        return (self.start, self.end)

    def within(self, length: int) -> TextRange:
        """Return the span clamped into a document of ``length`` characters."""

        return TextRange(clamp_offset(self.start, length), clamp_offset(self.end, length))

    def slice(self, text: str) -> str:
        bounded = self.within(len(text))
        return text[bounded.start : bounded.end]
