"""Exception types raised by the strict directive APIs."""

from __future__ import annotations


class DirectiveError(ValueError):
    """Base class for malformed directive input."""


class IslandPayloadError(DirectiveError):
    """Raised when an inline image island cannot be decoded or validated."""

    def __init__(
        self,
        message: str,
        *,
        reason: str = "invalid_payload",
        payload: str | None = None,
        path: str | None = None,
    ) -> None:
        super().__init__(message)
        self.reason = reason
        self.payload = payload
        self.path = path

    def details(self) -> dict[str, str | None]:
        return {
            "reason": self.reason,
            "payload": self.payload,
            "path": self.path,
        }


class InvalidImagePositionError(DirectiveError):
    """Raised when an image position is not one of the supported values."""

    def __init__(self, position: object) -> None:
        super().__init__(f"Unsupported image position: {position!r}")
        self.position = position


class UnknownCommandError(KeyError):
    """Raised when a command name is not part of the toolbar vocabulary."""

    def __init__(self, name: object) -> None:
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Unknown editor command: {self.name!r}"


__all__ = [
    "DirectiveError",
    "InvalidImagePositionError",
    "IslandPayloadError",
    "UnknownCommandError",
]
