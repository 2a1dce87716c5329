"""Directive rendering and preview helpers.

Rendering is an ordered rule table applied to the raw content string:

1. regions (``FORMAT``, ``LIST``, ``HEADING``, ``QUOTE``)
2. embeds (images in both encodings, maps, phones, gallery placeholders)
3. inline emphasis (bold, italic, underline)
4. links
5. paragraph and line-break normalization

Embed markup is parked behind opaque tokens between steps 2 and 5 so the
emphasis rules never rewrite URLs or attributes. Nothing here escapes text:
labels, captions and URLs are trusted editor input.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Protocol, Sequence

from . import directives as grammar
from .directives import Alignment, ImagePosition, ListStyle

LOGGER = logging.getLogger(__name__)

_WORD_PATTERN = re.compile(r"\b[\w'-]+\b")
_SLUG_PATTERN = re.compile(r"[^a-z0-9]+")
_SENTINEL_STRIP = re.compile(r"<!--.*?-->\n?", re.DOTALL)
_STASH_TOKEN = "\x00{}\x00"
_STASH_RE = re.compile(r"\x00(\d+)\x00")
_PARAGRAPH_SPLIT = re.compile(r"\n\s*\n")
_BLOCK_RE = re.compile(
    r"<(?P<tag>h1|h2|ul|ol|div|blockquote|figure)\b[^>]*>.*?</(?P=tag)>",
    re.DOTALL,
)

_BOLD_RE = re.compile(r"\*\*(?P<body>[^\n]+?)\*\*")
_ITALIC_RE = re.compile(r"(?<!\*)\*(?P<body>[^*\n]+?)\*(?!\*)")
_UNDERLINE_RE = re.compile(r"__(?P<body>[^\n]+?)__")

PARAGRAPH_OPEN = '<p class="mb-4">'

_ALIGN_CLASSES: Dict[Alignment, str] = {
    Alignment.LEFT: "text-left",
    Alignment.CENTER: "text-center",
    Alignment.RIGHT: "text-right",
    Alignment.JUSTIFY: "text-justify",
}
_POSITION_CLASSES: Dict[ImagePosition, str] = {
    ImagePosition.LEFT: "float-left mr-4",
    ImagePosition.RIGHT: "float-right ml-4",
    ImagePosition.FULL: "w-full block",
    ImagePosition.CENTER: "mx-auto block",
}
_PHONE_ICON = (
    '<svg xmlns="http://www.w3.org/2000/svg" width="16" height="16" viewBox="0 0 24 24" fill="none" '
    'stroke="currentColor" stroke-width="2" stroke-linecap="round" stroke-linejoin="round">'
    '<path d="M22 16.92v3a2 2 0 0 1-2.18 2 19.79 19.79 0 0 1-8.63-3.07 19.5 19.5 0 0 1-6-6 '
    "19.79 19.79 0 0 1-3.07-8.67A2 2 0 0 1 4.11 2h3a2 2 0 0 1 2 1.72 12.84 12.84 0 0 0 .7 2.81 "
    "2 2 0 0 1-.45 2.11L8.09 9.91a16 16 0 0 0 6 6l1.27-1.27a2 2 0 0 1 2.11-.45 12.84 12.84 0 0 0 "
    '2.81.7A2 2 0 0 1 22 16.92z"></path></svg>'
)
_MAP_ICON = (
    '<svg xmlns="http://www.w3.org/2000/svg" width="16" height="16" viewBox="0 0 24 24" fill="none" '
    'stroke="currentColor" stroke-width="2" stroke-linecap="round" stroke-linejoin="round">'
    '<path d="M21 10c0 7-9 13-9 13s-9-6-9-13a9 9 0 0 1 18 0z"></path>'
    '<circle cx="12" cy="10" r="3"></circle></svg>'
)


class ImageLike(Protocol):
    """Attributes the renderer reads from gallery entries."""

    url: str
    position: Any
    caption: Optional[str]
    width: str


@dataclass(slots=True)
class ContentPreview:
    """Container holding rendered preview markup and metadata."""

    html: str
    metadata: Dict[str, Any]


class _Stash:
    """Holds rendered embed markup behind tokens until the final pass."""

    def __init__(self) -> None:
        self._items: list[str] = []

    def park(self, markup: str) -> str:
        self._items.append(markup)
        return _STASH_TOKEN.format(len(self._items) - 1)

    def restore(self, text: str) -> str:
        return _STASH_RE.sub(self._lookup, text)

    def _lookup(self, match: re.Match[str]) -> str:
        index = int(match.group(1))
        if index >= len(self._items):
            return match.group(0)
        return self._items[index]


def render(document: str, images: Sequence[ImageLike] = ()) -> str:
    """Render ``document`` into presentational markup.

    Pure: neither ``document`` nor ``images`` is modified, and the same pair
    always yields the same output.
    """

    # NUL is reserved for stash tokens.
    text = (document or "").replace("\x00", "")
    gallery = tuple(images or ())
    stash = _Stash()
    for _name, rule in _REGION_RULES:
        text = rule(text)
    for _name, embed_rule in _EMBED_RULES:
        text = embed_rule(text, gallery, stash)
    text = _render_emphasis(text)
    text = _render_links(text)
    text = stash.restore(text)
    return _normalize_paragraphs(text)


def render_preview(document: str, images: Sequence[ImageLike] = ()) -> ContentPreview:
    """Render ``document`` and collect metadata useful to the host preview pane."""

    raw_text = document or ""
    html_body = render(raw_text, images)
    metadata = {
        "length": len(raw_text),
        "headings": _extract_headings(raw_text),
        "stats": _calculate_stats(_SENTINEL_STRIP.sub("", raw_text)),
        "directives": grammar.count_directives(raw_text),
        "gallery_size": len(images or ()),
    }
    return ContentPreview(html=f'<div class="pc-content-preview">{html_body}</div>', metadata=metadata)


# ---------------------------------------------------------------------------
# Region rules
# ---------------------------------------------------------------------------
def _render_format(text: str) -> str:
    def _replace(match: re.Match[str]) -> str:
        alignment = Alignment(match.group("align").lower())
        return f'<div class="{_ALIGN_CLASSES[alignment]}">{match.group("body")}</div>'

    return grammar.FORMAT_RE.sub(_replace, text)


def _render_lists(text: str) -> str:
    def _bullets(match: re.Match[str]) -> str:
        items = grammar.parse_list_items(match.group("items"), ListStyle.BULLET)
        body = "".join(f"<li>{item}</li>" for item in items)
        return f'<ul class="list-disc pl-5 my-2">{body}</ul>'

    def _numbered(match: re.Match[str]) -> str:
        items = grammar.parse_list_items(match.group("items"), ListStyle.NUMBERED)
        body = "".join(f"<li>{item}</li>" for item in items)
        return f'<ol class="list-decimal pl-5 my-2">{body}</ol>'

    text = grammar.BULLET_LIST_RE.sub(_bullets, text)
    return grammar.NUMBERED_LIST_RE.sub(_numbered, text)


def _render_headings(text: str) -> str:
    def _replace(match: re.Match[str]) -> str:
        if match.group("level") == "1":
            return f'<h1 class="text-2xl font-bold my-4">{match.group("body")}</h1>'
        return f'<h2 class="text-xl font-bold my-3">{match.group("body")}</h2>'

    return grammar.HEADING_RE.sub(_replace, text)


def _render_quotes(text: str) -> str:
    return grammar.QUOTE_RE.sub(
        lambda match: f'<blockquote class="border-l-4 pl-4 italic my-3">{match.group("body")}</blockquote>',
        text,
    )


_REGION_RULES: Sequence[tuple[str, Callable[[str], str]]] = (
    ("format", _render_format),
    ("list", _render_lists),
    ("heading", _render_headings),
    ("quote", _render_quotes),
)


# ---------------------------------------------------------------------------
# Embed rules
# ---------------------------------------------------------------------------
def _figure(url: str, position: Any, caption: str | None, width: str | None, *, alt: str, extra: str = "") -> str:
    try:
        resolved = ImagePosition.coerce(position or ImagePosition.CENTER)
    except ValueError:
        resolved = ImagePosition.CENTER
    figcaption = f'<figcaption class="text-sm text-gray-500 mt-1">{caption}</figcaption>' if caption else ""
    return (
        f'<figure class="{_POSITION_CLASSES[resolved]}" '
        f'style="width: {width or grammar.DEFAULT_IMAGE_WIDTH}; margin-bottom: 1rem;">'
        f'<img src="{url}" alt="{caption or alt}" class="w-full h-auto rounded-md"{extra} />'
        f"{figcaption}</figure>"
    )


def _render_image_islands(text: str, _gallery: Sequence[ImageLike], stash: _Stash) -> str:
    embeds = grammar.scan_image_islands(text)
    if not embeds:
        return text
    pieces: list[str] = []
    cursor = 0
    for embed in embeds:
        island = embed.island
        pieces.append(text[cursor : embed.span.start])
        pieces.append(stash.park(_figure(island.url, island.position, island.caption, island.width, alt="Image")))
        cursor = embed.span.end
    pieces.append(text[cursor:])
    return "".join(pieces)


def _render_image_comments(text: str, _gallery: Sequence[ImageLike], stash: _Stash) -> str:
    def _replace(match: re.Match[str]) -> str:
        url = match.group("url").strip()
        if not url:
            return match.group(0)
        name = match.group("name").strip()
        return stash.park(_figure(url, ImagePosition.CENTER, None, None, alt=name or "Image"))

    return grammar.IMAGE_COMMENT_RE.sub(_replace, text)


def _map_anchor(url: str, label: str) -> str:
    return (
        f'<a href="{url.strip()}" target="_blank" class="inline-flex items-center px-3 py-1 bg-blue-100 '
        f'text-blue-800 rounded-md hover:bg-blue-200"><span class="mr-1">{_MAP_ICON}</span>{label.strip()}</a>'
    )


def _phone_anchor(number: str, label: str) -> str:
    return (
        f'<a href="tel:{number.strip()}" class="inline-flex items-center px-3 py-1 bg-green-100 '
        f'text-green-800 rounded-md hover:bg-green-200"><span class="mr-1">{_PHONE_ICON}</span>{label.strip()}</a>'
    )


def _render_maps(text: str, _gallery: Sequence[ImageLike], stash: _Stash) -> str:
    text = grammar.MAP_COMMENT_RE.sub(lambda m: stash.park(_map_anchor(m.group("url"), m.group("label"))), text)
    return grammar.MAP_SHORTHAND_RE.sub(lambda m: stash.park(_map_anchor(m.group("url"), m.group("label"))), text)


def _render_phones(text: str, _gallery: Sequence[ImageLike], stash: _Stash) -> str:
    text = grammar.PHONE_COMMENT_RE.sub(lambda m: stash.park(_phone_anchor(m.group("number"), m.group("label"))), text)
    return grammar.PHONE_SHORTHAND_RE.sub(
        lambda m: stash.park(_phone_anchor(m.group("number"), m.group("label"))), text
    )


def _gallery_figure(image: ImageLike, index: int) -> str:
    return _figure(
        image.url,
        image.position,
        image.caption,
        image.width,
        alt=f"Image {index + 1}",
        extra=f' data-image-index="{index}"',
    )


def _render_placeholders(text: str, gallery: Sequence[ImageLike], stash: _Stash) -> str:
    def _replace(match: re.Match[str]) -> str:
        index = int(match.group("index")) - 1
        if not 0 <= index < len(gallery):
            return match.group(0)
        return stash.park(_gallery_figure(gallery[index], index))

    text = grammar.IMAGE_PLACEHOLDER_RE.sub(_replace, text)
    for index, image in enumerate(gallery):
        if grammar.LEGACY_PLACEHOLDER not in text:
            break
        text = text.replace(grammar.LEGACY_PLACEHOLDER, stash.park(_gallery_figure(image, index)), 1)
    return text


_EMBED_RULES: Sequence[tuple[str, Callable[[str, Sequence[ImageLike], _Stash], str]]] = (
    ("image_island", _render_image_islands),
    ("image_comment", _render_image_comments),
    ("map", _render_maps),
    ("phone", _render_phones),
    ("placeholder", _render_placeholders),
)


# ---------------------------------------------------------------------------
# Inline rules
# ---------------------------------------------------------------------------
def _render_emphasis(text: str) -> str:
    text = _BOLD_RE.sub(r"<strong>\g<body></strong>", text)
    text = _ITALIC_RE.sub(r"<em>\g<body></em>", text)
    return _UNDERLINE_RE.sub(r"<u>\g<body></u>", text)


def _render_links(text: str) -> str:
    return grammar.LINK_RE.sub(
        r'<a href="\g<url>" class="text-blue-600 hover:underline">\g<label></a>',
        text,
    )


def _normalize_paragraphs(text: str) -> str:
    """Turn blank lines into paragraphs and single newlines into ``<br>``."""

    output: list[str] = []
    cursor = 0
    for match in _BLOCK_RE.finditer(text):
        output.extend(_paragraphs(text[cursor : match.start()]))
        output.append(match.group(0).replace("\n", "<br>"))
        cursor = match.end()
    output.extend(_paragraphs(text[cursor:]))
    return "".join(output)


def _paragraphs(segment: str) -> list[str]:
    rendered: list[str] = []
    for chunk in _PARAGRAPH_SPLIT.split(segment.strip("\n")):
        if not chunk.strip():
            continue
        body = chunk.strip("\n").replace("\n", "<br>")
        rendered.append(f"{PARAGRAPH_OPEN}{body}</p>")
    return rendered


# ---------------------------------------------------------------------------
# Metadata helpers
# ---------------------------------------------------------------------------
def _extract_headings(text: str) -> list[Dict[str, Any]]:
    headings: list[Dict[str, Any]] = []
    for match in grammar.HEADING_RE.finditer(text):
        title = match.group("body").strip()
        if not title:
            continue
        headings.append({"level": int(match.group("level")), "text": title, "anchor": _slugify(title)})
    return headings


def _slugify(value: str) -> str:
    slug = _SLUG_PATTERN.sub("-", value.lower()).strip("-")
    return slug or "section"


def _calculate_stats(text: str) -> Dict[str, Any]:
    words = _WORD_PATTERN.findall(text)
    word_count = len(words)
    line_count = 0 if not text else text.count("\n") + 1
    reading_time_minutes = round(word_count / 200, 2) if word_count else 0.0
    return {
        "word_count": word_count,
        "char_count": len(text),
        "line_count": line_count,
        "reading_time_minutes": reading_time_minutes,
    }


__all__ = ["ContentPreview", "ImageLike", "render", "render_preview"]
