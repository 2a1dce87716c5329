"""Qt presentation of an :class:`EditorSession`.

The widget owns no editing logic: keystrokes are staged on the session and
committed in batches by a timer, toolbar actions go through the
:class:`CommandDispatcher`, and the text box is refreshed from the session's
change notifications.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional

from PySide6.QtCore import QTimer
from PySide6.QtGui import QAction, QTextCursor
from PySide6.QtWidgets import (
    QInputDialog,
    QLineEdit,
    QPlainTextEdit,
    QStackedWidget,
    QTextBrowser,
    QToolBar,
    QVBoxLayout,
    QWidget,
)

from ..services.settings import EditorSettings
from .commands import Command, CommandDispatcher, CommandResult, MetadataPrompt, PromptField
from .session import EditorSession

LOGGER = logging.getLogger(__name__)

TOOLBAR_LAYOUT: tuple[tuple[Command, str] | None, ...] = (
    (Command.UNDO, "Undo"),
    (Command.REDO, "Redo"),
    None,
    (Command.BOLD, "B"),
    (Command.ITALIC, "I"),
    (Command.UNDERLINE, "U"),
    None,
    (Command.HEADING1, "H1"),
    (Command.HEADING2, "H2"),
    (Command.BULLET_LIST, "List"),
    (Command.NUMBERED_LIST, "1. List"),
    (Command.QUOTE, "Quote"),
    None,
    (Command.ALIGN_LEFT, "Left"),
    (Command.ALIGN_CENTER, "Center"),
    (Command.ALIGN_RIGHT, "Right"),
    (Command.ALIGN_JUSTIFY, "Justify"),
    None,
    (Command.LINK, "Link"),
    (Command.INSERT_IMAGE, "Image"),
    (Command.INSERT_PHONE, "Phone"),
    (Command.INSERT_MAP, "Map"),
    (Command.INSERT_FROM_GALLERY, "From gallery"),
)


def _to_qt_offset(text: str, index: int) -> int:
    """Convert a Python string index into a Qt (UTF-16) cursor position."""

    return len(text[:index].encode("utf-16-le")) // 2


def _from_qt_offset(text: str, position: int) -> int:
    units = 0
    for index, char in enumerate(text):
        if units >= position:
            return index
        units += 2 if ord(char) > 0xFFFF else 1
    return len(text)


class QtMetadataPrompt:
    """Modal :class:`MetadataPrompt` backed by ``QInputDialog``."""

    def __init__(self, parent: QWidget | None = None, *, title: str = "Pagecraft") -> None:
        self._parent = parent
        self._title = title

    def ask(self, field: PromptField) -> Optional[str]:
        if field.choices:
            items = list(field.choices)
            current = items.index(field.default) if field.default in items else 0
            value, accepted = QInputDialog.getItem(self._parent, self._title, field.label, items, current, False)
        else:
            value, accepted = QInputDialog.getText(
                self._parent,
                self._title,
                field.label,
                QLineEdit.EchoMode.Normal,
                field.default,
            )
        if not accepted:
            return None
        return str(value)


class ContentEditorWidget(QWidget):
    """Toolbar + plain-text editor + HTML preview bound to one session."""

    def __init__(
        self,
        session: EditorSession | None = None,
        *,
        settings: EditorSettings | None = None,
        prompt: MetadataPrompt | None = None,
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self._session = session or EditorSession(settings=settings)
        self._dispatcher = CommandDispatcher(self._session, prompt or QtMetadataPrompt(self))
        self._syncing = False
        self._preview_enabled = False
        self._actions: Dict[Command, QAction] = {}

        self._editor = QPlainTextEdit(self)
        self._editor.setObjectName("contentEditor")
        self._preview = QTextBrowser(self)
        self._preview.setObjectName("contentPreview")
        self._preview.setOpenExternalLinks(False)
        self._stack = QStackedWidget(self)
        self._stack.addWidget(self._editor)
        self._stack.addWidget(self._preview)
        self._toolbar = self._build_toolbar()

        layout = QVBoxLayout(self)
        layout.addWidget(self._toolbar)
        layout.addWidget(self._stack)

        self._batch_timer = QTimer(self)
        self._batch_timer.setSingleShot(True)
        self._batch_timer.setInterval(self._session.settings.typing_batch_ms)
        self._batch_timer.timeout.connect(self._commit_typing)

        self._write_editor(self._session.text)
        self._editor.textChanged.connect(self._handle_text_changed)
        self._editor.cursorPositionChanged.connect(self._handle_selection_changed)
        self._editor.selectionChanged.connect(self._handle_selection_changed)
        self._session.add_change_listener(self._handle_session_change)
        self._refresh_actions()
        if self._session.settings.preview_on_open:
            self.set_preview_mode(True)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def session(self) -> EditorSession:
        return self._session

    @property
    def dispatcher(self) -> CommandDispatcher:
        return self._dispatcher

    @property
    def editor(self) -> QPlainTextEdit:
        return self._editor

    @property
    def preview_widget(self) -> QTextBrowser:
        return self._preview

    @property
    def preview_enabled(self) -> bool:
        return self._preview_enabled

    def action(self, command: Command) -> QAction:
        return self._actions[command]

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    def trigger(self, command: Command | str) -> CommandResult:
        """Run ``command`` against the current editor selection."""

        self._batch_timer.stop()
        self._sync_selection_from_editor()
        result = self._dispatcher.dispatch(command)
        LOGGER.debug("Toolbar %s -> %s", result.command.value, result.status.value)
        self._refresh_actions()
        return result

    def set_preview_mode(self, enabled: bool) -> None:
        """Switch between the text editor and the rendered preview."""

        if self._preview_enabled == enabled:
            return
        self._preview_enabled = enabled
        if enabled:
            self._batch_timer.stop()
            self._session.commit_pending()
            self._preview.setHtml(self._session.preview().html)
        self._stack.setCurrentIndex(1 if enabled else 0)

    def toggle_preview(self) -> None:
        self.set_preview_mode(not self._preview_enabled)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _build_toolbar(self) -> QToolBar:
        toolbar = QToolBar(self)
        toolbar.setObjectName("contentToolbar")
        for entry in TOOLBAR_LAYOUT:
            if entry is None:
                toolbar.addSeparator()
                continue
            command, label = entry
            action = QAction(label, self)
            action.setObjectName(f"action_{command.value}")
            action.triggered.connect(lambda _checked=False, cmd=command: self.trigger(cmd))
            toolbar.addAction(action)
            self._actions[command] = action
        preview = QAction("Preview", self)
        preview.setCheckable(True)
        preview.toggled.connect(self.set_preview_mode)
        toolbar.addSeparator()
        toolbar.addAction(preview)
        return toolbar

    def _refresh_actions(self) -> None:
        self._actions[Command.UNDO].setEnabled(self._session.can_undo)
        self._actions[Command.REDO].setEnabled(self._session.can_redo)

    def _commit_typing(self) -> None:
        if self._session.commit_pending():
            self._refresh_actions()

    def _sync_selection_from_editor(self) -> None:
        cursor = self._editor.textCursor()
        text = self._editor.toPlainText()
        start = _from_qt_offset(text, cursor.selectionStart())
        end = _from_qt_offset(text, cursor.selectionEnd())
        self._session.set_selection(start, end)

    def _write_editor(self, content: str) -> None:
        self._syncing = True
        try:
            self._editor.setPlainText(content)
            selection = self._session.selection
            cursor = self._editor.textCursor()
            cursor.setPosition(_to_qt_offset(content, selection.start))
            cursor.setPosition(_to_qt_offset(content, selection.end), QTextCursor.MoveMode.KeepAnchor)
            self._editor.setTextCursor(cursor)
        finally:
            self._syncing = False

    def _handle_text_changed(self) -> None:
        if self._syncing:
            return
        text = self._editor.toPlainText()
        cursor = self._editor.textCursor()
        selection = (
            _from_qt_offset(text, cursor.selectionStart()),
            _from_qt_offset(text, cursor.selectionEnd()),
        )
        if self._session.stage_text(text, selection=selection):
            self._batch_timer.start()
            self._refresh_actions()

    def _handle_selection_changed(self) -> None:
        if self._syncing:
            return
        self._sync_selection_from_editor()

    def _handle_session_change(self, content: str) -> None:
        if content != self._editor.toPlainText():
            self._write_editor(content)
        if self._preview_enabled:
            self._preview.setHtml(self._session.preview().html)
        self._refresh_actions()


__all__ = ["ContentEditorWidget", "QtMetadataPrompt", "TOOLBAR_LAYOUT"]
