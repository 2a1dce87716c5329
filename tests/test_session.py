"""Tests for the headless editing session."""

from pagecraft.editor.gallery import ImageDescriptor
from pagecraft.editor.session import EditorSession
from pagecraft.editor.syntax import directives as grammar
from pagecraft.services.settings import EditorSettings


def _recording_session(content: str = "", **kwargs):
    changes: list[str] = []
    session = EditorSession(content, on_change=changes.append, **kwargs)
    return session, changes


def test_each_mutation_pushes_one_snapshot_and_notifies():
    session, changes = _recording_session("abc")

    session.insert_at_cursor("X", 1)
    session.set_selection(0, 2)
    session.wrap_selection("**", "**")

    assert session.text == "**aX**bc"
    assert changes == ["aXbc", "**aX**bc"]
    assert len(session.history) == 3


def test_undo_restores_previous_text_and_redo_reapplies():
    session, changes = _recording_session("abc")
    session.insert_at_cursor("X", 1)

    assert session.undo() is True
    assert session.text == "abc"
    assert session.redo() is True
    assert session.text == "aXbc"
    assert changes == ["aXbc", "abc", "aXbc"]


def test_undo_at_start_is_a_noop():
    session, changes = _recording_session("abc")

    assert session.undo() is False
    assert session.redo() is False
    assert changes == []


def test_typing_is_committed_in_batches():
    session, changes = _recording_session()
    for text in ("h", "he", "hey"):
        session.stage_text(text)

    assert len(session.history) == 1
    assert session.has_pending_edit
    assert session.commit_pending() is True
    assert len(session.history) == 2
    assert changes == ["h", "he", "hey"]

    session.undo()
    assert session.text == ""


def test_undo_flushes_pending_typing_first():
    session, _ = _recording_session("base")
    session.stage_text("base!")

    session.undo()

    assert session.text == "base"
    assert session.can_redo


def test_command_after_typing_keeps_typing_as_its_own_snapshot():
    session, _ = _recording_session()
    session.stage_text("hello", selection=(0, 5))

    session.wrap_selection("*", "*")
    session.undo()

    assert session.text == "hello"


def test_selection_is_clamped():
    session, _ = _recording_session("abc")

    selection = session.set_selection(-4, 100)

    assert selection.as_tuple() == (0, 3)
    assert selection.text == "abc"


def test_insert_defaults_to_caret_and_append_block_separates():
    session, _ = _recording_session("Intro")
    session.set_selection(0)
    session.insert_at_cursor(">")
    session.append_block("Outro")

    assert session.text == ">Intro\n\nOutro"


def test_add_image_with_insert_embeds_and_notifies():
    added = []
    session, changes = _recording_session("Hello", on_image_add=added.append)

    entry = session.add_image(ImageDescriptor("https://x/a.jpg", caption="A"), insert=True, position=5)

    assert added == [entry]
    assert session.text == "Hello\n\n" + grammar.image_island("https://x/a.jpg", caption="A") + "\n\n"
    assert len(changes) == 1
    assert len(session.history) == 2


def test_delete_image_removes_embed_as_one_snapshot():
    images = [ImageDescriptor(f"https://x/{name}.jpg") for name in "abc"]
    islands = [grammar.image_island(image.url) for image in images]
    session, changes = _recording_session("\n\n".join(islands), images=images)

    assert session.delete_image(1) is True

    assert session.text == islands[0] + "\n\n" + islands[2]
    assert len(session.gallery) == 2
    assert len(session.history) == 2
    assert session.delete_image(7) is False
    session.undo()
    assert session.text == "\n\n".join(islands)


def test_gallery_edits_notify_gallery_listeners_without_history():
    session, changes = _recording_session(images=[ImageDescriptor("https://x/a.jpg")])
    snapshots = []
    session.add_gallery_listener(snapshots.append)

    session.toggle_image_insert(0)
    session.set_image_width(0, 30)

    assert len(snapshots) == 2
    assert snapshots[-1][0].width == "30%"
    assert changes == []
    assert len(session.history) == 1


def test_insert_from_gallery_consumes_flagged_entries():
    session, _ = _recording_session(
        "Text", images=[ImageDescriptor("https://x/a.jpg", insert_in_content=True)]
    )

    inserted = session.insert_from_gallery(position=4)

    assert [entry.url for entry in inserted] == ["https://x/a.jpg"]
    assert grammar.image_island("https://x/a.jpg") in session.text
    assert session.insert_from_gallery() == []


def test_comment_image_encoding_setting():
    settings = EditorSettings(image_encoding="comment", pad_image_embeds=False)
    session, _ = _recording_session(settings=settings)

    session.add_image(ImageDescriptor("https://x/room.jpg"), insert=True)

    assert session.text == "<!-- IMAGE: https://x/room.jpg -->\n[Immagine: room.jpg]\n"


def test_normalize_on_load_and_explicit_normalize():
    settings = EditorSettings(normalize_on_load=True)
    loaded, _ = _recording_session("[IMMAGINE]", settings=settings)
    assert loaded.text == "[IMAGE_1]"

    session, changes = _recording_session("# Title")
    report = session.normalize()
    assert report.changed
    assert session.text == "<!-- HEADING:1 -->\nTitle\n"
    assert len(changes) == 1


def test_history_limit_comes_from_settings():
    session, _ = _recording_session(settings=EditorSettings(history_limit=2))
    for text in ("a", "b", "c"):
        session.edit_text(text)

    assert len(session.history) == 2


def test_preview_is_cached_until_content_changes():
    session, _ = _recording_session("Hello **world**")

    first = session.preview()

    assert session.preview() is first
    assert "<strong>world</strong>" in first.html
    session.insert_at_cursor("!", 0)
    assert session.preview() is not first
    assert session.render().startswith('<p class="mb-4">!Hello')


def test_insert_after_two_undos_truncates_redo_branch():
    session, _ = _recording_session()
    session.edit_text("a")
    session.edit_text("ab")

    session.undo()
    session.undo()
    session.insert_at_cursor("y", 0)

    assert session.text == "y"
    assert not session.can_redo
    assert session.redo() is False
    assert session.undo() is True
    assert session.text == ""
