"""Core domain types shared by the editor modules."""

from .ranges import TextRange, clamp_offset

__all__ = ["TextRange", "clamp_offset"]
