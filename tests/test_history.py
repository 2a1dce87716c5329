"""Tests for the snapshot history manager."""

import pytest

from pagecraft.editor.history import HistoryManager


def test_undo_and_redo_walk_the_snapshot_list():
    history = HistoryManager("a")
    history.push("ab")
    history.push("abc")

    assert history.undo().text == "ab"
    assert history.undo().text == "a"
    assert history.undo() is None
    assert history.index == 0

    assert history.redo().text == "ab"
    assert history.redo().text == "abc"
    assert history.redo() is None


def test_push_after_undo_discards_forward_branch():
    history = HistoryManager("a")
    history.push("b")
    history.push("c")
    history.undo()

    history.push("d")

    assert [snapshot.text for snapshot in history.snapshots()] == ["a", "b", "d"]
    assert not history.can_redo
    assert history.current.text == "d"


def test_push_ignores_text_equal_to_current_snapshot():
    history = HistoryManager("same")

    assert history.push("same") is False
    assert len(history) == 1


def test_limit_drops_oldest_snapshots():
    history = HistoryManager("a", limit=3)
    for text in ("b", "c", "d"):
        history.push(text, label="typing")

    assert len(history) == 3
    assert history.snapshots()[0].text == "b"
    assert history.index == 2
    assert history.current.label == "typing"


def test_reset_reseeds_history():
    history = HistoryManager("a")
    history.push("b")
    history.reset("fresh")

    assert len(history) == 1
    assert history.current.text == "fresh"
    assert not history.can_undo


def test_limit_must_be_positive():
    with pytest.raises(ValueError):
        HistoryManager(limit=0)
