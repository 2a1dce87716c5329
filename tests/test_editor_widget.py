"""Qt editor widget tests (offscreen platform)."""

from __future__ import annotations

import pytest

pytest.importorskip("PySide6.QtWidgets")

from PySide6.QtGui import QTextCursor  # noqa: E402
from PySide6.QtWidgets import QInputDialog  # noqa: E402

from pagecraft.editor.commands import Command, CommandStatus, PromptField  # noqa: E402
from pagecraft.editor.editor_widget import ContentEditorWidget, QtMetadataPrompt, _from_qt_offset, _to_qt_offset  # noqa: E402
from pagecraft.editor.session import EditorSession  # noqa: E402
from pagecraft.services.settings import EditorSettings  # noqa: E402


def _select(widget: ContentEditorWidget, start: int, end: int) -> None:
    cursor = widget.editor.textCursor()
    cursor.setPosition(start)
    cursor.setPosition(end, QTextCursor.MoveMode.KeepAnchor)
    widget.editor.setTextCursor(cursor)


def test_widget_shows_session_content(qtbot):
    widget = ContentEditorWidget(EditorSession("Hello"))
    qtbot.addWidget(widget)

    assert widget.editor.toPlainText() == "Hello"
    assert not widget.action(Command.UNDO).isEnabled()


def test_toolbar_command_updates_editor_and_history(qtbot):
    widget = ContentEditorWidget(EditorSession("hello world"))
    qtbot.addWidget(widget)
    _select(widget, 0, 5)

    result = widget.trigger(Command.BOLD)

    assert result.applied
    assert widget.editor.toPlainText() == "**hello** world"
    assert widget.action(Command.UNDO).isEnabled()
    widget.trigger(Command.UNDO)
    assert widget.editor.toPlainText() == "hello world"


def test_typing_is_batched_into_one_snapshot(qtbot):
    session = EditorSession(settings=EditorSettings(typing_batch_ms=10))
    widget = ContentEditorWidget(session)
    qtbot.addWidget(widget)

    widget.editor.insertPlainText("abc")

    assert session.text == "abc"
    assert session.has_pending_edit
    qtbot.waitUntil(lambda: not session.has_pending_edit, timeout=2000)
    assert len(session.history) == 2


def test_prompted_command_uses_injected_prompt(qtbot, scripted_prompt):
    prompt = scripted_prompt("0612", "Front desk")
    widget = ContentEditorWidget(EditorSession("Tel "), prompt=prompt)
    qtbot.addWidget(widget)
    _select(widget, 4, 4)

    widget.trigger("insertPhone")

    assert widget.editor.toPlainText() == "Tel [PHONE:0612:Front desk]"


def test_cancelled_prompt_leaves_editor_untouched(qtbot, scripted_prompt):
    widget = ContentEditorWidget(EditorSession("Tel "), prompt=scripted_prompt(None))
    qtbot.addWidget(widget)

    result = widget.trigger("insertMap")

    assert result.status is CommandStatus.CANCELLED
    assert widget.editor.toPlainText() == "Tel "
    assert len(widget.session.history) == 1


def test_preview_mode_renders_html(qtbot):
    widget = ContentEditorWidget(EditorSession("Hello **world**"))
    qtbot.addWidget(widget)

    widget.set_preview_mode(True)

    assert widget.preview_enabled
    assert "Hello world" in widget.preview_widget.toPlainText()
    widget.toggle_preview()
    assert not widget.preview_enabled


def test_qt_prompt_maps_rejection_to_none(qtbot, monkeypatch):
    monkeypatch.setattr(QInputDialog, "getText", staticmethod(lambda *args, **kwargs: ("ignored", False)))
    monkeypatch.setattr(QInputDialog, "getItem", staticmethod(lambda *args, **kwargs: ("right", True)))
    prompt = QtMetadataPrompt()

    assert prompt.ask(PromptField("url", "URL")) is None
    assert prompt.ask(PromptField("position", "Position", default="center", choices=("left", "right"))) == "right"


def test_offsets_account_for_surrogate_pairs():
    text = "\U0001f4de call"

    assert _to_qt_offset(text, 1) == 2
    assert _from_qt_offset(text, 2) == 1
    assert _from_qt_offset(text, 99) == len(text)
