"""Toolbar command vocabulary and the dispatcher that maps it onto a session."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional, Protocol

from ..core.ranges import TextRange
from .errors import InvalidImagePositionError, UnknownCommandError
from .gallery import ImageDescriptor
from .session import EditorSession
from .syntax import directives as grammar
from .syntax.directives import Alignment, ImagePosition, ListStyle

LOGGER = logging.getLogger(__name__)

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


class Command(str, Enum):
    """Commands exposed by the editor toolbar."""

    BOLD = "bold"
    ITALIC = "italic"
    UNDERLINE = "underline"
    HEADING1 = "heading1"
    HEADING2 = "heading2"
    BULLET_LIST = "bulletList"
    NUMBERED_LIST = "numberedList"
    ALIGN_LEFT = "alignLeft"
    ALIGN_CENTER = "alignCenter"
    ALIGN_RIGHT = "alignRight"
    ALIGN_JUSTIFY = "alignJustify"
    LINK = "link"
    QUOTE = "quote"
    INSERT_IMAGE = "insertImage"
    INSERT_PHONE = "insertPhone"
    INSERT_MAP = "insertMap"
    UNDO = "undo"
    REDO = "redo"
    INSERT_FROM_GALLERY = "insertFromGallery"

    @classmethod
    def parse(cls, value: Command | str) -> Command:
        """Resolve ``value`` by wire name, ``snake_case`` alias or enum name."""

        if isinstance(value, Command):
            return value
        raw = str(value).strip()
        key = _CAMEL_BOUNDARY.sub("_", raw).replace("-", "_").lower()
        for command in cls:
            if key in {_CAMEL_BOUNDARY.sub("_", command.value).lower(), command.name.lower()}:
                return command
        raise UnknownCommandError(value)


class CommandStatus(str, Enum):
    APPLIED = "applied"
    UNCHANGED = "unchanged"
    CANCELLED = "cancelled"
    BLOCKED = "blocked"


@dataclass(slots=True, frozen=True)
class PromptField:
    """One question asked by a command before it can run."""

    key: str
    label: str
    default: str = ""
    required: bool = True
    choices: tuple[str, ...] = ()


class MetadataPrompt(Protocol):
    """Synchronous prompt; ``None`` means the user cancelled."""

    def ask(self, field: PromptField) -> Optional[str]:
        ...


@dataclass(slots=True, frozen=True)
class CommandResult:
    command: Command
    status: CommandStatus
    content: str = ""

    @property
    def applied(self) -> bool:
        return self.status is CommandStatus.APPLIED


class _Cancelled(Exception):
    """Internal signal raised when a prompt is dismissed."""


_ALIGNMENTS: Dict[Command, Alignment] = {
    Command.ALIGN_LEFT: Alignment.LEFT,
    Command.ALIGN_CENTER: Alignment.CENTER,
    Command.ALIGN_RIGHT: Alignment.RIGHT,
    Command.ALIGN_JUSTIFY: Alignment.JUSTIFY,
}


class CommandDispatcher:
    """Run toolbar commands against an :class:`EditorSession`.

    Each command performs exactly one mutator or history call. Commands that
    need extra metadata ask ``prompt`` first; while a prompt is open every
    other dispatch is refused with :attr:`CommandStatus.BLOCKED`.
    """

    def __init__(self, session: EditorSession, prompt: MetadataPrompt | None = None) -> None:
        self._session = session
        self._prompt = prompt
        self._prompt_open = False
        self._handlers: Dict[Command, Callable[[Command], bool]] = {
            Command.BOLD: self._inline,
            Command.ITALIC: self._inline,
            Command.UNDERLINE: self._inline,
            Command.HEADING1: self._heading,
            Command.HEADING2: self._heading,
            Command.BULLET_LIST: self._list,
            Command.NUMBERED_LIST: self._list,
            Command.ALIGN_LEFT: self._align,
            Command.ALIGN_CENTER: self._align,
            Command.ALIGN_RIGHT: self._align,
            Command.ALIGN_JUSTIFY: self._align,
            Command.QUOTE: self._quote,
            Command.LINK: self._link,
            Command.INSERT_IMAGE: self._insert_image,
            Command.INSERT_PHONE: self._insert_phone,
            Command.INSERT_MAP: self._insert_map,
            Command.UNDO: lambda _command: self._session.undo(),
            Command.REDO: lambda _command: self._session.redo(),
            Command.INSERT_FROM_GALLERY: self._insert_from_gallery,
        }

    @property
    def session(self) -> EditorSession:
        return self._session

    @property
    def prompt_open(self) -> bool:
        return self._prompt_open

    def dispatch(self, command: Command | str) -> CommandResult:
        """Execute ``command``; unknown names raise :class:`UnknownCommandError`."""

        resolved = Command.parse(command)
        if self._prompt_open:
            LOGGER.debug("Refusing %s while a prompt is open", resolved.value)
            return CommandResult(resolved, CommandStatus.BLOCKED, self._session.text)
        try:
            changed = self._handlers[resolved](resolved)
        except _Cancelled:
            LOGGER.debug("%s cancelled from the prompt", resolved.value)
            return CommandResult(resolved, CommandStatus.CANCELLED, self._session.text)
        finally:
            self._session.forget_cursor()
        status = CommandStatus.APPLIED if changed else CommandStatus.UNCHANGED
        return CommandResult(resolved, status, self._session.text)

    # ------------------------------------------------------------------
    # Prompting
    # ------------------------------------------------------------------
    def _ask(self, field: PromptField) -> str:
        if self._prompt is None:
            raise _Cancelled()
        self._prompt_open = True
        try:
            answer = self._prompt.ask(field)
        finally:
            self._prompt_open = False
        if answer is None:
            raise _Cancelled()
        value = answer.strip()
        if not value and field.required:
            raise _Cancelled()
        return value or field.default

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------
    def _inline(self, command: Command) -> bool:
        opening, closing = grammar.INLINE_MARKERS[command.value]
        return self._session.wrap_selection(opening, closing, label=command.value).changed

    def _heading(self, command: Command) -> bool:
        level = 1 if command is Command.HEADING1 else 2
        opening, closing = grammar.heading_markers(level)
        return self._session.wrap_selection(opening, closing, label=command.value).changed

    def _align(self, command: Command) -> bool:
        opening, closing = grammar.alignment_markers(_ALIGNMENTS[command])
        return self._session.wrap_selection(opening, closing, label=command.value).changed

    def _quote(self, command: Command) -> bool:
        opening, closing = grammar.quote_markers()
        return self._session.wrap_selection(opening, closing, label=command.value).changed

    def _list(self, command: Command) -> bool:
        style = ListStyle.BULLET if command is Command.BULLET_LIST else ListStyle.NUMBERED
        items = grammar.list_items(self._session.selection.text)
        if not items:
            marker = "- " if style is ListStyle.BULLET else "1. "
            opening = grammar.list_sentinel(style) + marker
            return self._session.wrap_selection(opening, "\n", label=command.value).changed
        block = grammar.bullet_list(items) if style is ListStyle.BULLET else grammar.numbered_list(items)
        return self._session.replace_selection(block, label=command.value).changed

    def _link(self, command: Command) -> bool:
        selection = self._session.selection
        url = self._ask(PromptField("url", "Link URL", default="https://"))
        label = selection.text.strip()
        target = selection.as_range()
        if label:
            # Surrounding whitespace stays outside the brackets.
            start = selection.start + selection.text.index(label)
            target = TextRange(start, start + len(label))
        else:
            label = self._ask(PromptField("label", "Link text", default=url, required=False))
        return self._session.replace_selection(grammar.link(label, url), target, label=command.value).changed

    def _insert_phone(self, command: Command) -> bool:
        position = self._session.remember_cursor()
        number = self._ask(PromptField("number", "Phone number"))
        label = self._ask(PromptField("label", "Label shown for the number", default=number, required=False))
        embed = grammar.phone(number, label, encoding=self._session.settings.embed_encoding)  # type: ignore[arg-type]
        return self._session.insert_at_cursor(embed, position, label=command.value).changed

    def _insert_map(self, command: Command) -> bool:
        position = self._session.remember_cursor()
        settings = self._session.settings
        url = self._ask(PromptField("url", "Google Maps URL"))
        label = self._ask(PromptField("label", "Map link text", default=settings.default_map_label, required=False))
        embed = grammar.map_link(url, label, encoding=settings.embed_encoding)  # type: ignore[arg-type]
        return self._session.insert_at_cursor(embed, position, label=command.value).changed

    def _insert_image(self, command: Command) -> bool:
        position = self._session.remember_cursor()
        settings = self._session.settings
        url = self._ask(PromptField("url", "Image URL"))
        placement = self._ask(
            PromptField(
                "position",
                "Image position",
                default=settings.default_image_position,
                required=False,
                choices=tuple(item.value for item in ImagePosition),
            )
        )
        caption = self._ask(PromptField("caption", "Caption", required=False))
        try:
            resolved = ImagePosition.coerce(placement)
        except InvalidImagePositionError as exc:
            LOGGER.warning("%s; falling back to %s", exc, settings.default_image_position)
            resolved = ImagePosition.coerce(settings.default_image_position)
        descriptor = ImageDescriptor(
            url=url,
            position=resolved,
            caption=caption or None,
            width=settings.default_image_width,
        )
        before = self._session.text
        self._session.add_image(descriptor, insert=True, position=position)
        return self._session.text != before

    def _insert_from_gallery(self, command: Command) -> bool:
        return bool(self._session.insert_from_gallery(self._session.selection.end))


__all__ = [
    "Command",
    "CommandDispatcher",
    "CommandResult",
    "CommandStatus",
    "MetadataPrompt",
    "PromptField",
]
