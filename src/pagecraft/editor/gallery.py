"""Ordered image gallery kept alongside, but independent of, the content.

The gallery and the inline image embeds are only loosely coupled: entry *i*
is assumed to correspond to the *i*-th image embed of the document when an
entry is deleted, and nothing keeps the two in sync after the user reorders
either side. ``order`` and ``insert_in_content`` record intent only.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, Iterable, Iterator, Mapping, Optional, Sequence

from jsonschema import Draft7Validator, ValidationError

from ..core.ranges import TextRange
from . import mutator
from .errors import DirectiveError
from .syntax import directives as grammar
from .syntax.directives import DEFAULT_IMAGE_WIDTH, ImageEncoding, ImagePosition

LOGGER = logging.getLogger(__name__)

GALLERY_SCHEMA: Dict[str, Any] = {
    "type": "array",
    "items": {
        "type": "object",
        "properties": {
            "url": {"type": "string", "minLength": 1},
            "position": {"enum": [position.value for position in ImagePosition]},
            "caption": {"type": ["string", "null"]},
            "order": {"type": "integer"},
            "insert_in_content": {"type": "boolean"},
            "insertInContent": {"type": "boolean"},
            "width": {"type": "string"},
        },
        "required": ["url"],
    },
}

_GALLERY_VALIDATOR = Draft7Validator(GALLERY_SCHEMA)


@dataclass(slots=True, frozen=True)
class ImageDescriptor:
    """One gallery entry."""

    url: str
    position: ImagePosition = ImagePosition.CENTER
    caption: Optional[str] = None
    order: int = 0
    insert_in_content: bool = False
    width: str = DEFAULT_IMAGE_WIDTH

    def __post_init__(self) -> None:
        object.__setattr__(self, "position", ImagePosition.coerce(self.position))

    def to_island(self, encoding: ImageEncoding = "island") -> str:
        """Return the inline embed text for this image."""

        if encoding == "comment":
            return grammar.image_comment(self.url, self.caption or self.url.rsplit("/", 1)[-1])
        return grammar.image_island(self.url, self.position, self.caption or "", self.width)

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["position"] = self.position.value
        return payload

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any], *, order: int = 0) -> ImageDescriptor:
        flag = payload.get("insert_in_content", payload.get("insertInContent", False))
        return cls(
            url=str(payload["url"]),
            position=ImagePosition.coerce(payload.get("position") or ImagePosition.CENTER),
            caption=payload.get("caption") or None,
            order=int(payload.get("order", order)),
            insert_in_content=bool(flag),
            width=str(payload.get("width") or DEFAULT_IMAGE_WIDTH),
        )


@dataclass(slots=True, frozen=True)
class GalleryDeletion:
    """Outcome of deleting a gallery entry and its matching embed."""

    descriptor: ImageDescriptor
    text: str
    removed_span: TextRange | None = None

    @property
    def document_changed(self) -> bool:
        return self.removed_span is not None


class ImageGallery:
    """Mutable ordered list of :class:`ImageDescriptor`."""

    def __init__(self, images: Iterable[ImageDescriptor] = ()) -> None:
        self._images: list[ImageDescriptor] = list(images)

    def __len__(self) -> int:
        return len(self._images)

    def __iter__(self) -> Iterator[ImageDescriptor]:
        return iter(tuple(self._images))

    def __getitem__(self, index: int) -> ImageDescriptor:
        return self._images[index]

    def images(self) -> tuple[ImageDescriptor, ...]:
        return tuple(self._images)

    def _valid(self, index: int) -> bool:
        return 0 <= index < len(self._images)

    def add(self, descriptor: ImageDescriptor) -> ImageDescriptor:
        """Append ``descriptor`` at the end of the gallery, assigning its order."""

        entry = replace(descriptor, order=len(self._images))
        self._images.append(entry)
        return entry

    def move_up(self, index: int) -> bool:
        if not self._valid(index) or index == 0:
            return False
        self._images[index - 1], self._images[index] = self._images[index], self._images[index - 1]
        return True

    def move_down(self, index: int) -> bool:
        if not self._valid(index) or index == len(self._images) - 1:
            return False
        self._images[index + 1], self._images[index] = self._images[index], self._images[index + 1]
        return True

    def remove(self, index: int) -> ImageDescriptor | None:
        if not self._valid(index):
            return None
        return self._images.pop(index)

    def delete(self, index: int, document: str) -> GalleryDeletion | None:
        """Remove entry ``index`` and the ``index``-th image embed of ``document``.

        Returns ``None`` for an out-of-range index. When the document holds
        fewer embeds than ``index + 1`` only the gallery entry goes away.
        """

        descriptor = self.remove(index)
        if descriptor is None:
            return None
        embeds = grammar.scan_image_embeds(document)
        if index >= len(embeds):
            LOGGER.debug("Gallery entry %d has no matching embed in the document", index)
            return GalleryDeletion(descriptor=descriptor, text=document)
        span = embeds[index].span
        result = mutator.remove_span(document, span)
        return GalleryDeletion(descriptor=descriptor, text=result.text, removed_span=span)

    def toggle_insert(self, index: int) -> bool | None:
        """Flip ``insert_in_content`` for entry ``index``; the document is untouched."""

        if not self._valid(index):
            return None
        entry = self._images[index]
        self._images[index] = replace(entry, insert_in_content=not entry.insert_in_content)
        return self._images[index].insert_in_content

    def set_position(self, index: int, position: ImagePosition | str) -> ImageDescriptor | None:
        return self._update(index, position=ImagePosition.coerce(position))

    def set_width(self, index: int, width: int | str) -> ImageDescriptor | None:
        value = f"{width}%" if isinstance(width, int) else str(width).strip()
        if not value:
            raise DirectiveError("Image width cannot be empty")
        return self._update(index, width=value)

    def set_caption(self, index: int, caption: str | None) -> ImageDescriptor | None:
        return self._update(index, caption=(caption or None))

    def _update(self, index: int, **changes: Any) -> ImageDescriptor | None:
        if not self._valid(index):
            return None
        self._images[index] = replace(self._images[index], **changes)
        return self._images[index]

    def renumber(self) -> None:
        """Rewrite ``order`` so it matches list position."""

        self._images = [replace(entry, order=position) for position, entry in enumerate(self._images)]

    def pending_insertions(self) -> list[tuple[int, ImageDescriptor]]:
        """Return flagged entries with their list index, sorted by ``order``."""

        flagged = [(index, entry) for index, entry in enumerate(self._images) if entry.insert_in_content]
        return sorted(flagged, key=lambda item: (item[1].order, item[0]))

    def consume_insertions(self, *, encoding: ImageEncoding = "island", pad: bool = True) -> tuple[str, list[ImageDescriptor]]:
        """Materialize every flagged entry as embed text and clear the flags."""

        pending = self.pending_insertions()
        if not pending:
            return "", []
        pieces = [materialize_embed(entry, encoding=encoding, pad=pad) for _, entry in pending]
        for index, _ in pending:
            self._images[index] = replace(self._images[index], insert_in_content=False)
        return "".join(pieces), [entry for _, entry in pending]

    def to_json(self) -> str:
        return json.dumps([entry.to_dict() for entry in self._images], indent=2, ensure_ascii=False)

    @classmethod
    def from_payload(cls, payload: Sequence[Mapping[str, Any]]) -> ImageGallery:
        """Build a gallery from decoded JSON, validating it first."""

        try:
            _GALLERY_VALIDATOR.validate(payload)
        except ValidationError as error:
            path = ".".join(str(part) for part in error.path)
            message = f"{path}: {error.message}" if path else error.message
            raise DirectiveError(f"Invalid gallery payload: {message}") from error
        return cls(ImageDescriptor.from_mapping(item, order=position) for position, item in enumerate(payload))


def materialize_embed(descriptor: ImageDescriptor, *, encoding: ImageEncoding = "island", pad: bool = True) -> str:
    """Return the text inserted for ``descriptor``, padded with blank lines when ``pad``."""

    embed = descriptor.to_island(encoding)
    if not pad:
        return embed
    return "\n\n" + embed.rstrip("\n") + "\n\n"


__all__ = [
    "GALLERY_SCHEMA",
    "GalleryDeletion",
    "ImageDescriptor",
    "ImageGallery",
    "materialize_embed",
]
