"""One-time migration of legacy directive encodings to the canonical grammar.

Canonical forms: shorthand ``[PHONE:n:label]`` / ``[MAP:url:label]`` embeds,
JSON image islands, ``FORMAT`` and ``HEADING`` regions and numbered
``[IMAGE_n]`` placeholders. Content already in canonical form passes through
unchanged, so running the pass twice is harmless.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, Sequence

from . import directives as grammar

LOGGER = logging.getLogger(__name__)

_ALIGN_TAG_RE = re.compile(r"\[ALIGN:(?P<align>left|center|right|justify)\](?P<body>.*?)\[/ALIGN\]", re.DOTALL)
_MARKDOWN_HEADING_RE = re.compile(r"^(?P<hashes>#{1,2}) (?P<title>[^\n]+?)[ \t]*(?:\n|\Z)", re.MULTILINE)


@dataclass(slots=True)
class NormalizationReport:
    """Result of :func:`normalize_legacy`."""

    text: str
    conversions: Dict[str, int] = field(default_factory=dict)

    @property
    def changed(self) -> bool:
        return any(self.conversions.values())

    @property
    def total(self) -> int:
        return sum(self.conversions.values())


def _keep_newline(match: re.Match[str], replacement: str) -> str:
    if match.group(0).endswith("\n") and not replacement.endswith("\n"):
        return replacement + "\n"
    return replacement


def _phone_comments(text: str) -> tuple[str, int]:
    return grammar.PHONE_COMMENT_RE.subn(
        lambda m: _keep_newline(m, grammar.phone(m.group("number"), m.group("label"))),
        text,
    )


def _map_comments(text: str) -> tuple[str, int]:
    return grammar.MAP_COMMENT_RE.subn(
        lambda m: _keep_newline(m, grammar.map_link(m.group("url"), m.group("label"))),
        text,
    )


def _image_comments(text: str) -> tuple[str, int]:
    def _replace(match: re.Match[str]) -> str:
        url = match.group("url").strip()
        if not url:
            return match.group(0)
        return _keep_newline(match, grammar.image_island(url, caption=match.group("name").strip()))

    converted, _ = grammar.IMAGE_COMMENT_RE.subn(_replace, text)
    count = len(grammar.scan_image_comments(text)) - len(grammar.scan_image_comments(converted))
    return converted, count


def _align_tags(text: str) -> tuple[str, int]:
    return _ALIGN_TAG_RE.subn(lambda m: grammar.alignment(m.group("align"), m.group("body").strip("\n")), text)


def _markdown_headings(text: str) -> tuple[str, int]:
    return _MARKDOWN_HEADING_RE.subn(lambda m: grammar.heading(len(m.group("hashes")), m.group("title")), text)


def _legacy_placeholders(text: str) -> tuple[str, int]:
    count = 0
    while grammar.LEGACY_PLACEHOLDER in text:
        count += 1
        text = text.replace(grammar.LEGACY_PLACEHOLDER, f"[IMAGE_{count}]", 1)
    return text, count


_PASSES: Sequence[tuple[str, Callable[[str], tuple[str, int]]]] = (
    ("phone_comment", _phone_comments),
    ("map_comment", _map_comments),
    ("image_comment", _image_comments),
    ("align_tag", _align_tags),
    ("markdown_heading", _markdown_headings),
    ("legacy_placeholder", _legacy_placeholders),
)


def normalize_legacy(text: str) -> NormalizationReport:
    """Rewrite every legacy encoding in ``text`` into its canonical form."""

    working = text or ""
    conversions: Dict[str, int] = {}
    for name, step in _PASSES:
        working, count = step(working)
        conversions[name] = count
    report = NormalizationReport(text=working, conversions=conversions)
    if report.changed:
        LOGGER.info("Normalized %d legacy directive(s): %s", report.total, conversions)
    return report


__all__ = ["NormalizationReport", "normalize_legacy"]
