"""Headless editing session that owns one content string and its history."""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional

from ..core.ranges import TextRange
from ..services.settings import EditorSettings
from . import mutator
from .document_model import DocumentState, Selection
from .gallery import ImageDescriptor, ImageGallery, materialize_embed
from .history import HistoryManager
from .mutator import MutationResult
from .syntax.directives import ImagePosition
from .syntax.normalize import NormalizationReport, normalize_legacy
from .syntax.renderer import ContentPreview, render, render_preview

LOGGER = logging.getLogger(__name__)

ChangeListener = Callable[[str], None]
ImageListener = Callable[[ImageDescriptor], None]
GalleryListener = Callable[[tuple[ImageDescriptor, ...]], None]


class EditorSession:
    """Compose the mutator, history and gallery around one document.

    Every committed mutation pushes exactly one history snapshot and notifies
    the change listeners with the new content. Typing goes through
    :meth:`stage_text` and is only recorded once :meth:`commit_pending` runs,
    so a burst of keystrokes lands as a single snapshot.
    """

    def __init__(
        self,
        content: str = "",
        *,
        images: Iterable[ImageDescriptor] = (),
        settings: EditorSettings | None = None,
        on_change: ChangeListener | None = None,
        on_image_add: ImageListener | None = None,
    ) -> None:
        self._settings = settings or EditorSettings()
        text = content or ""
        if self._settings.normalize_on_load:
            text = normalize_legacy(text).text
        self._state = DocumentState(text=text)
        self._history = HistoryManager(text, limit=self._settings.history_limit)
        self._gallery = ImageGallery(images)
        self._remembered: Optional[int] = None
        self._pending_label: Optional[str] = None
        self._preview_cache: ContentPreview | None = None
        self._preview_key: tuple[int, tuple[ImageDescriptor, ...]] | None = None
        self._change_listeners: list[ChangeListener] = []
        self._image_listeners: list[ImageListener] = []
        self._gallery_listeners: list[GalleryListener] = []
        if on_change is not None:
            self._change_listeners.append(on_change)
        if on_image_add is not None:
            self._image_listeners.append(on_image_add)

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------
    def add_change_listener(self, listener: ChangeListener) -> None:
        """Register a callback receiving the content after every change."""

        self._change_listeners.append(listener)

    def add_image_listener(self, listener: ImageListener) -> None:
        self._image_listeners.append(listener)

    def add_gallery_listener(self, listener: GalleryListener) -> None:
        """Register a callback fired whenever the gallery list changes."""

        self._gallery_listeners.append(listener)

    # ------------------------------------------------------------------
    # Derived properties
    # ------------------------------------------------------------------
    @property
    def text(self) -> str:
        return self._state.text

    @property
    def state(self) -> DocumentState:
        return self._state

    @property
    def selection(self) -> Selection:
        return self._state.selection

    @property
    def settings(self) -> EditorSettings:
        return self._settings

    @property
    def history(self) -> HistoryManager:
        return self._history

    @property
    def gallery(self) -> ImageGallery:
        return self._gallery

    @property
    def remembered_cursor(self) -> Optional[int]:
        return self._remembered

    @property
    def has_pending_edit(self) -> bool:
        return self._pending_label is not None

    @property
    def can_undo(self) -> bool:
        return self._history.can_undo or self.has_pending_edit

    @property
    def can_redo(self) -> bool:
        return self._history.can_redo and not self.has_pending_edit

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------
    def set_selection(self, start: int, end: int | None = None) -> Selection:
        """Move the selection; stale offsets are clamped into the document."""

        return self._state.select(start, end)

    def selection_range(self) -> TextRange:
        return self._state.selection.as_range()

    def remember_cursor(self, position: int | None = None) -> int:
        """Capture the caret so a later insertion lands where the prompt opened."""

        caret = self._state.selection.end if position is None else position
        self._remembered = max(0, min(int(caret), len(self._state.text)))
        return self._remembered

    def forget_cursor(self) -> None:
        self._remembered = None

    # ------------------------------------------------------------------
    # Typing batches
    # ------------------------------------------------------------------
    def stage_text(self, text: str, *, selection: tuple[int, int] | None = None) -> bool:
        """Apply free typing without recording a snapshot yet."""

        if text == self._state.text:
            if selection is not None:
                self._state.select(*selection)
            return False
        self._state.update_text(text)
        if selection is not None:
            self._state.select(*selection)
        self._pending_label = "typing"
        self._emit_change()
        return True

    def commit_pending(self) -> bool:
        """Record staged typing as one history snapshot."""

        if self._pending_label is None:
            return False
        label = self._pending_label
        self._pending_label = None
        pushed = self._history.push(self._state.text, label=label)
        if pushed:
            LOGGER.debug("Committed %s batch (version=%s)", label, self._state.version_id)
        return pushed

    def edit_text(self, text: str) -> bool:
        """Replace the whole content as a single committed edit."""

        self.commit_pending()
        staged = self.stage_text(text)
        self.commit_pending()
        return staged

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def insert_at_cursor(self, text: str, position: int | None = None, *, label: str = "insert") -> MutationResult:
        """Insert ``text`` at ``position`` (default: the caret)."""

        self.commit_pending()
        offset = self._state.selection.end if position is None else position
        return self._apply(mutator.insert_at_cursor(self._state.text, text, offset), label)

    def append_block(self, text: str, *, label: str = "insert") -> MutationResult:
        """Append ``text`` as a new block, separated by a blank line."""

        self.commit_pending()
        document = self._state.text
        separator = "\n\n" if document and not document.endswith("\n\n") else ""
        return self._apply(mutator.insert_at_cursor(document, separator + text, len(document)), label)

    def wrap_selection(
        self,
        opening: str,
        closing: str,
        selection: Selection | TextRange | None = None,
        *,
        label: str = "wrap",
    ) -> MutationResult:
        self.commit_pending()
        target = selection if selection is not None else self._state.selection
        return self._apply(mutator.wrap_selection(self._state.text, opening, closing, target), label)

    def replace_selection(
        self,
        replacement: str,
        selection: Selection | TextRange | None = None,
        *,
        label: str = "replace",
    ) -> MutationResult:
        self.commit_pending()
        target = selection if selection is not None else self._state.selection
        result = mutator.replace_range(self._state.text, target.start, target.end, replacement)
        return self._apply(result, label)

    def delete_range(self, start: int, end: int, *, label: str = "delete") -> MutationResult:
        self.commit_pending()
        return self._apply(mutator.delete_range(self._state.text, start, end), label)

    def normalize(self) -> NormalizationReport:
        """Rewrite legacy encodings in place as one undoable edit."""

        self.commit_pending()
        report = normalize_legacy(self._state.text)
        if report.changed:
            caret = min(self._state.selection.end, len(report.text))
            self._apply(MutationResult(report.text, TextRange.caret(caret)), "normalize")
        return report

    def _apply(self, result: MutationResult, label: str) -> MutationResult:
        if not result.changed or result.text == self._state.text:
            self._state.select(result.selection.start, result.selection.end)
            return result
        self._state.update_text(result.text)
        self._state.select(result.selection.start, result.selection.end)
        self._history.push(result.text, label=label)
        LOGGER.debug(
            "Committed %s (version=%s, length=%d)",
            label,
            self._state.version_id,
            len(result.text),
        )
        self._emit_change()
        return result

    # ------------------------------------------------------------------
    # Undo/redo
    # ------------------------------------------------------------------
    def undo(self) -> bool:
        """Restore the previous snapshot; pending typing is committed first."""

        self.commit_pending()
        snapshot = self._history.undo()
        if snapshot is None:
            LOGGER.debug("Undo ignored at the start of history")
            return False
        self._restore(snapshot.text)
        return True

    def redo(self) -> bool:
        self.commit_pending()
        snapshot = self._history.redo()
        if snapshot is None:
            LOGGER.debug("Redo ignored at the end of history")
            return False
        self._restore(snapshot.text)
        return True

    def _restore(self, text: str) -> None:
        self._state.update_text(text)
        self._state.select(len(text))
        self._emit_change()

    # ------------------------------------------------------------------
    # Gallery
    # ------------------------------------------------------------------
    def add_image(
        self,
        descriptor: ImageDescriptor,
        *,
        insert: bool = False,
        position: int | None = None,
    ) -> ImageDescriptor:
        """Append ``descriptor`` to the gallery, optionally embedding it at ``position``."""

        entry = self._gallery.add(descriptor)
        if insert:
            embed = materialize_embed(
                entry,
                encoding=self._settings.image_encoding,  # type: ignore[arg-type]
                pad=self._settings.pad_image_embeds,
            )
            self.insert_at_cursor(embed, position, label="insertImage")
        for listener in list(self._image_listeners):
            listener(entry)
        self._emit_gallery()
        return entry

    def delete_image(self, index: int) -> bool:
        """Remove gallery entry ``index`` and the matching embed as one edit."""

        self.commit_pending()
        deletion = self._gallery.delete(index, self._state.text)
        if deletion is None:
            LOGGER.debug("Gallery delete ignored for index %s", index)
            return False
        if deletion.document_changed:
            caret = deletion.removed_span.start if deletion.removed_span is not None else 0
            self._apply(MutationResult(deletion.text, TextRange.caret(caret)), "deleteImage")
        self._emit_gallery()
        return True

    def move_image_up(self, index: int) -> bool:
        return self._gallery_changed(self._gallery.move_up(index))

    def move_image_down(self, index: int) -> bool:
        return self._gallery_changed(self._gallery.move_down(index))

    def toggle_image_insert(self, index: int) -> bool | None:
        flag = self._gallery.toggle_insert(index)
        self._gallery_changed(flag is not None)
        return flag

    def set_image_position(self, index: int, position: ImagePosition | str) -> ImageDescriptor | None:
        entry = self._gallery.set_position(index, position)
        self._gallery_changed(entry is not None)
        return entry

    def set_image_width(self, index: int, width: int | str) -> ImageDescriptor | None:
        entry = self._gallery.set_width(index, width)
        self._gallery_changed(entry is not None)
        return entry

    def set_image_caption(self, index: int, caption: str | None) -> ImageDescriptor | None:
        entry = self._gallery.set_caption(index, caption)
        self._gallery_changed(entry is not None)
        return entry

    def insert_from_gallery(self, position: int | None = None) -> list[ImageDescriptor]:
        """Embed every flagged gallery entry (in ``order``) at ``position``."""

        text, inserted = self._gallery.consume_insertions(
            encoding=self._settings.image_encoding,  # type: ignore[arg-type]
            pad=self._settings.pad_image_embeds,
        )
        if not inserted:
            return []
        self.insert_at_cursor(text, position, label="insertFromGallery")
        self._emit_gallery()
        return inserted

    def _gallery_changed(self, changed: bool) -> bool:
        if changed:
            self._emit_gallery()
        return changed

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------
    def render(self) -> str:
        return render(self._state.text, self._gallery.images())

    def preview(self) -> ContentPreview:
        """Return the preview for the current content, reusing the cached one."""

        key = (self._state.version_id, self._gallery.images())
        if self._preview_cache is None or self._preview_key != key:
            self._preview_cache = render_preview(self._state.text, key[1])
            self._preview_key = key
        return self._preview_cache

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------
    def _emit_change(self) -> None:
        content = self._state.text
        for listener in list(self._change_listeners):
            listener(content)

    def _emit_gallery(self) -> None:
        images = self._gallery.images()
        for listener in list(self._gallery_listeners):
            listener(images)


__all__ = ["ChangeListener", "EditorSession", "GalleryListener", "ImageListener"]
