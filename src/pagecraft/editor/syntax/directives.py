"""Text encodings of the content directives and helpers to build or scan them.

The directive grammar is the at-rest format of page content: whatever the
builders below emit is stored verbatim by the host, so every encoding here
must stay byte-for-byte stable.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from enum import Enum
from json import JSONDecodeError
from typing import Any, Dict, Iterable, Literal, Mapping, Sequence

from jsonschema import Draft7Validator, ValidationError

from ...core.ranges import TextRange
from ..errors import InvalidImagePositionError, IslandPayloadError

LOGGER = logging.getLogger(__name__)

EmbedEncoding = Literal["shorthand", "comment"]
ImageEncoding = Literal["island", "comment"]

DEFAULT_IMAGE_WIDTH = "50%"
PHONE_GLYPH = "\U0001f4de"
MAP_GLYPH = "\U0001f4cd"
IMAGE_COMMENT_LABEL = "Immagine"


class Alignment(str, Enum):
    """Paragraph alignment carried by ``FORMAT`` regions."""

    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"
    JUSTIFY = "justify"


class ListStyle(str, Enum):
    BULLET = "bullet"
    NUMBERED = "numbered"


class ImagePosition(str, Enum):
    """Placement of an image relative to the surrounding text."""

    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"
    FULL = "full"

    @classmethod
    def coerce(cls, value: Any) -> ImagePosition:
        if isinstance(value, ImagePosition):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            raise InvalidImagePositionError(value) from exc


INLINE_MARKERS: Dict[str, tuple[str, str]] = {
    "bold": ("**", "**"),
    "italic": ("*", "*"),
    "underline": ("__", "__"),
}

SENTINEL_PREFIX = "<!-- "
_SENTINEL_FMT = "<!-- {} -->\n"


def sentinel(tag: str) -> str:
    """Return the opening sentinel line for a region tag such as ``QUOTE``."""

    return _SENTINEL_FMT.format(tag)


def heading_markers(level: int) -> tuple[str, str]:
    if level not in (1, 2):
        raise ValueError(f"Heading level must be 1 or 2, got {level!r}")
    return sentinel(f"HEADING:{level}"), "\n"


def alignment_markers(alignment: Alignment | str) -> tuple[str, str]:
    resolved = Alignment(str(getattr(alignment, "value", alignment)).lower())
    return sentinel(f"FORMAT:{resolved.value.upper()}"), "\n"


def quote_markers() -> tuple[str, str]:
    return sentinel("QUOTE"), "\n"


def list_sentinel(style: ListStyle | str) -> str:
    resolved = ListStyle(str(getattr(style, "value", style)).lower())
    return sentinel(f"LIST:{resolved.value.upper()}")


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------
def bold(text: str) -> str:
    return "**" + text + "**"


def italic(text: str) -> str:
    return "*" + text + "*"


def underline(text: str) -> str:
    return "__" + text + "__"


def heading(level: int, text: str) -> str:
    opening, closing = heading_markers(level)
    return opening + text + closing


def alignment(value: Alignment | str, text: str) -> str:
    opening, closing = alignment_markers(value)
    return opening + text + closing


def quote(text: str) -> str:
    opening, closing = quote_markers()
    return opening + text + closing


def list_items(text: str) -> list[str]:
    """Split ``text`` into list item bodies, dropping blank lines."""

    return [line.strip() for line in text.splitlines() if line.strip()]


def bullet_list(items: Iterable[str]) -> str:
    body = "".join(f"- {item}\n" for item in items)
    return list_sentinel(ListStyle.BULLET) + body


def numbered_list(items: Iterable[str]) -> str:
    body = "".join(f"{index}. {item}\n" for index, item in enumerate(items, start=1))
    return list_sentinel(ListStyle.NUMBERED) + body


def link(label: str, url: str) -> str:
    return f"[{_clean(label, ']')}]({url.strip()})"


def phone(number: str, label: str | None = None, *, encoding: EmbedEncoding = "shorthand") -> str:
    """Return a click-to-call embed; whitespace inside ``number`` is dropped."""

    compact = re.sub(r"\s+", "", number)
    display = (label or "").strip() or number.strip()
    if encoding == "comment":
        return f"<!-- PHONE: {compact} -->\n[{PHONE_GLYPH} {_clean(display, ']')}]\n"
    return f"[PHONE:{_clean(compact, ']:')}:{_clean(display, ']')}]"


def map_link(url: str, label: str, *, encoding: EmbedEncoding = "shorthand") -> str:
    """Return a map embed. Shorthand labels cannot carry ``:`` so it is replaced."""

    target = url.strip()
    if encoding == "comment":
        return f"<!-- MAP: {target} -->\n[{MAP_GLYPH} {_clean(label, ']')}]\n"
    return f"[MAP:{_clean(target, ']')}:{_clean(label, ']:')}]"


@dataclass(slots=True, frozen=True)
class ImageIsland:
    """Structured image payload serialized inline in the document."""

    url: str
    position: ImagePosition = ImagePosition.CENTER
    caption: str = ""
    width: str = DEFAULT_IMAGE_WIDTH

    def to_payload(self) -> Dict[str, str]:
        return {
            "type": "image",
            "url": self.url,
            "position": self.position.value,
            "caption": self.caption,
            "width": self.width,
        }

    def to_text(self) -> str:
        return json.dumps(self.to_payload(), separators=(",", ":"), ensure_ascii=False)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> ImageIsland:
        return cls(
            url=str(payload["url"]),
            position=ImagePosition.coerce(payload.get("position") or ImagePosition.CENTER),
            caption=str(payload.get("caption") or ""),
            width=str(payload.get("width") or DEFAULT_IMAGE_WIDTH),
        )


def image_island(
    url: str,
    position: ImagePosition | str = ImagePosition.CENTER,
    caption: str = "",
    width: str = DEFAULT_IMAGE_WIDTH,
) -> str:
    return ImageIsland(url, ImagePosition.coerce(position), caption or "", width or DEFAULT_IMAGE_WIDTH).to_text()


def image_comment(url: str, name: str) -> str:
    return f"<!-- IMAGE: {url.strip()} -->\n[{IMAGE_COMMENT_LABEL}: {_clean(name, ']')}]\n"


def _clean(value: str, forbidden: str) -> str:
    cleaned = value.replace("\n", " ")
    for char in forbidden:
        cleaned = cleaned.replace(char, "-" if char == ":" else "")
    return cleaned.strip()


# ---------------------------------------------------------------------------
# Patterns shared by the renderer, the normalizer and the gallery
# ---------------------------------------------------------------------------
# Region bodies stop at the next sentinel, a blank line or the end of text.
_REGION_END = r"(?=\n?<!-- |\n\n|\n?\Z)"

FORMAT_RE = re.compile(
    r"<!-- FORMAT:(?P<align>LEFT|CENTER|RIGHT|JUSTIFY) -->\n(?P<body>.*?)" + _REGION_END + r"(?:\n(?!\n))?",
    re.DOTALL,
)
QUOTE_RE = re.compile(r"<!-- QUOTE -->\n(?P<body>.*?)" + _REGION_END + r"(?:\n(?!\n))?", re.DOTALL)
HEADING_RE = re.compile(r"<!-- HEADING:(?P<level>[12]) -->\n(?P<body>[^\n]*)(?:\n|\Z)")
BULLET_LIST_RE = re.compile(r"<!-- LIST:BULLET -->\n(?P<items>(?:- [^\n]*(?:\n|\Z))+)")
NUMBERED_LIST_RE = re.compile(r"<!-- LIST:NUMBERED -->\n(?P<items>(?:\d+\. [^\n]*(?:\n|\Z))+)")
BULLET_ITEM_RE = re.compile(r"^- (?P<item>[^\n]*)$", re.MULTILINE)
NUMBERED_ITEM_RE = re.compile(r"^\d+\. (?P<item>[^\n]*)$", re.MULTILINE)

PHONE_COMMENT_RE = re.compile(
    r"<!-- PHONE: (?P<number>[^\n]*?) -->\n\[" + PHONE_GLYPH + r" ?(?P<label>[^\]\n]*)\]\n?"
)
MAP_COMMENT_RE = re.compile(r"<!-- MAP: (?P<url>[^\n]*?) -->\n\[" + MAP_GLYPH + r" ?(?P<label>[^\]\n]*)\]\n?")
PHONE_SHORTHAND_RE = re.compile(r"\[PHONE:(?P<number>[^\]:\n]*):(?P<label>[^\]\n]*)\]")
MAP_SHORTHAND_RE = re.compile(r"\[MAP:(?P<url>[^\]\n]*):(?P<label>[^\]:\n]*)\]")
IMAGE_COMMENT_RE = re.compile(
    r"<!-- IMAGE: (?P<url>[^\n]*?) -->\n\[" + IMAGE_COMMENT_LABEL + r": ?(?P<name>[^\]\n]*)\]\n?"
)
IMAGE_PLACEHOLDER_RE = re.compile(r"\[IMAGE_(?P<index>\d+)\]")
LEGACY_PLACEHOLDER = "[IMMAGINE]"
LINK_RE = re.compile(r"\[(?P<label>[^\]\n]+)\]\((?P<url>[^)\s]+)\)")

_ISLAND_START_RE = re.compile(r'\{\s*"type"\s*:\s*"image"')
_JSON_DECODER = json.JSONDecoder()

ISLAND_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "type": {"const": "image"},
        "url": {"type": "string", "minLength": 1},
        "position": {"enum": [position.value for position in ImagePosition]},
        "caption": {"type": ["string", "null"]},
        "width": {"type": ["string", "null"]},
    },
    "required": ["type", "url"],
    "additionalProperties": True,
}

_ISLAND_VALIDATOR = Draft7Validator(ISLAND_SCHEMA)


def parse_image_island(text: str) -> ImageIsland:
    """Decode a complete island payload, raising :class:`IslandPayloadError`."""

    raw = text.strip()
    try:
        payload = json.loads(raw)
    except JSONDecodeError as exc:
        raise IslandPayloadError(f"Image island is not valid JSON: {exc.msg}", reason="invalid_json", payload=raw) from exc
    return _validate_island(payload, raw)


def _validate_island(payload: Any, raw: str) -> ImageIsland:
    try:
        _ISLAND_VALIDATOR.validate(payload)
    except ValidationError as error:
        path = ".".join(str(part) for part in error.path) or None
        raise IslandPayloadError(error.message, reason="schema_violation", payload=raw, path=path) from error
    return ImageIsland.from_payload(payload)


@dataclass(slots=True, frozen=True)
class ImageEmbed:
    """Location and content of one image embed found in a document."""

    span: TextRange
    encoding: ImageEncoding
    island: ImageIsland
    name: str = ""


def scan_image_islands(text: str) -> list[ImageEmbed]:
    """Return every valid JSON island in ``text``; broken payloads are skipped."""

    embeds: list[ImageEmbed] = []
    cursor = 0
    while True:
        match = _ISLAND_START_RE.search(text, cursor)
        if match is None:
            break
        start = match.start()
        try:
            payload, end = _JSON_DECODER.raw_decode(text, start)
            island = _validate_island(payload, text[start:end])
        except (JSONDecodeError, IslandPayloadError) as exc:
            LOGGER.debug("Skipping malformed image island at offset %s: %s", start, exc)
            cursor = start + 1
            continue
        embeds.append(ImageEmbed(span=TextRange(start, end), encoding="island", island=island))
        cursor = end
    return embeds


def scan_image_comments(text: str) -> list[ImageEmbed]:
    embeds: list[ImageEmbed] = []
    for match in IMAGE_COMMENT_RE.finditer(text):
        url = match.group("url").strip()
        if not url:
            continue
        name = match.group("name").strip()
        island = ImageIsland(url=url, caption=name)
        embeds.append(ImageEmbed(span=TextRange(match.start(), match.end()), encoding="comment", island=island, name=name))
    return embeds


def scan_image_embeds(text: str) -> list[ImageEmbed]:
    """Return image embeds of both encodings in document order."""

    embeds = scan_image_islands(text) + scan_image_comments(text)
    embeds.sort(key=lambda embed: embed.span.start)
    return embeds


def parse_list_items(block: str, style: ListStyle) -> list[str]:
    pattern = BULLET_ITEM_RE if style is ListStyle.BULLET else NUMBERED_ITEM_RE
    return [match.group("item") for match in pattern.finditer(block)]


def count_directives(text: str) -> Dict[str, int]:
    """Return how many directives of each embed/region kind ``text`` contains."""

    patterns: Sequence[tuple[str, re.Pattern[str]]] = (
        ("format", FORMAT_RE),
        ("heading", HEADING_RE),
        ("bullet_list", BULLET_LIST_RE),
        ("numbered_list", NUMBERED_LIST_RE),
        ("quote", QUOTE_RE),
        ("link", LINK_RE),
        ("placeholder", IMAGE_PLACEHOLDER_RE),
    )
    counts = {name: len(pattern.findall(text)) for name, pattern in patterns}
    counts["phone"] = len(PHONE_COMMENT_RE.findall(text)) + len(PHONE_SHORTHAND_RE.findall(text))
    counts["map"] = len(MAP_COMMENT_RE.findall(text)) + len(MAP_SHORTHAND_RE.findall(text))
    counts["image"] = len(scan_image_embeds(text))
    return counts


__all__ = [
    "Alignment",
    "DEFAULT_IMAGE_WIDTH",
    "EmbedEncoding",
    "INLINE_MARKERS",
    "ISLAND_SCHEMA",
    "ImageEmbed",
    "ImageEncoding",
    "ImageIsland",
    "ImagePosition",
    "ListStyle",
    "alignment",
    "alignment_markers",
    "bold",
    "bullet_list",
    "count_directives",
    "heading",
    "heading_markers",
    "image_comment",
    "image_island",
    "italic",
    "link",
    "list_items",
    "map_link",
    "numbered_list",
    "parse_image_island",
    "parse_list_items",
    "phone",
    "quote",
    "quote_markers",
    "scan_image_comments",
    "scan_image_embeds",
    "scan_image_islands",
    "underline",
]
