"""Tests for the toolbar command dispatcher."""

import pytest

from pagecraft.editor.commands import Command, CommandDispatcher, CommandStatus
from pagecraft.editor.errors import UnknownCommandError
from pagecraft.editor.session import EditorSession
from pagecraft.editor.syntax import directives as grammar


def _dispatcher(content: str = "", prompt=None, **kwargs):
    changes: list[str] = []
    session = EditorSession(content, on_change=changes.append, **kwargs)
    return CommandDispatcher(session, prompt), session, changes


def test_bold_wraps_current_selection():
    dispatcher, session, _ = _dispatcher("hello world")
    session.set_selection(0, 5)

    result = dispatcher.dispatch("bold")

    assert result.status is CommandStatus.APPLIED
    assert session.text == "**hello** world"
    assert session.selection.as_tuple() == (0, 9)


def test_region_commands_use_sentinels():
    dispatcher, session, _ = _dispatcher("Title")
    session.set_selection(0, 5)
    dispatcher.dispatch(Command.HEADING1)
    assert session.text == "<!-- HEADING:1 -->\nTitle\n"

    dispatcher, session, _ = _dispatcher("Hi")
    session.set_selection(0, 2)
    dispatcher.dispatch("alignCenter")
    assert session.text == "<!-- FORMAT:CENTER -->\nHi\n"


def test_list_command_converts_selected_lines():
    dispatcher, session, _ = _dispatcher("a\nb")
    session.set_selection(0, 3)

    dispatcher.dispatch("bulletList")

    assert session.text == "<!-- LIST:BULLET -->\n- a\n- b\n"


def test_list_command_on_empty_selection_starts_a_list():
    dispatcher, session, _ = _dispatcher()

    dispatcher.dispatch("numberedList")

    assert session.text == "<!-- LIST:NUMBERED -->\n1. \n"
    caret = len("<!-- LIST:NUMBERED -->\n1. ")
    assert session.selection.as_tuple() == (caret, caret)


def test_command_names_accept_aliases():
    assert Command.parse("bullet_list") is Command.BULLET_LIST
    assert Command.parse("INSERT_FROM_GALLERY") is Command.INSERT_FROM_GALLERY
    assert Command.parse("alignJustify") is Command.ALIGN_JUSTIFY


def test_unknown_command_raises():
    dispatcher, _, _ = _dispatcher()

    with pytest.raises(UnknownCommandError):
        dispatcher.dispatch("strikethrough")


def test_insert_phone_uses_remembered_cursor_and_default_label(scripted_prompt):
    prompt = scripted_prompt("+39 06 1234", "")
    dispatcher, session, _ = _dispatcher("Call: ", prompt)
    session.set_selection(6)

    result = dispatcher.dispatch("insertPhone")

    assert result.applied
    assert session.text == "Call: [PHONE:+39061234:+39 06 1234]"
    assert [field.key for field in prompt.fields] == ["number", "label"]
    assert session.remembered_cursor is None


def test_cancelled_prompt_leaves_document_and_history_untouched(scripted_prompt):
    dispatcher, session, changes = _dispatcher("text", scripted_prompt("123", None))

    result = dispatcher.dispatch("insertPhone")

    assert result.status is CommandStatus.CANCELLED
    assert session.text == "text"
    assert len(session.history) == 1
    assert changes == []


def test_empty_required_answer_cancels(scripted_prompt):
    dispatcher, session, _ = _dispatcher("text", scripted_prompt("   "))

    assert dispatcher.dispatch("insertMap").status is CommandStatus.CANCELLED
    assert session.text == "text"


def test_insert_map_falls_back_to_default_label(scripted_prompt):
    dispatcher, session, _ = _dispatcher("", scripted_prompt("https://maps.example/?q=Roma", ""))

    dispatcher.dispatch("insertMap")

    assert session.text == "[MAP:https://maps.example/?q=Roma:Visualizza su Google Maps]"


def test_commands_without_prompt_are_cancelled():
    dispatcher, session, _ = _dispatcher("x")

    assert dispatcher.dispatch("link").status is CommandStatus.CANCELLED
    assert session.text == "x"


def test_link_uses_selection_as_label(scripted_prompt):
    prompt = scripted_prompt("https://example.com/book")
    dispatcher, session, _ = _dispatcher("Book now", prompt)
    session.set_selection(0, 8)

    dispatcher.dispatch("link")

    assert session.text == "[Book now](https://example.com/book)"
    assert len(prompt.fields) == 1


def test_link_without_selection_defaults_label_to_url(scripted_prompt):
    dispatcher, session, _ = _dispatcher("", scripted_prompt("https://example.com", ""))

    dispatcher.dispatch("link")

    assert session.text == "[https://example.com](https://example.com)"


def test_insert_image_adds_gallery_entry_and_island(scripted_prompt):
    added = []
    dispatcher, session, _ = _dispatcher(
        "", scripted_prompt("https://x/pool.jpg", "left", "Pool"), on_image_add=added.append
    )

    result = dispatcher.dispatch("insertImage")

    island = grammar.image_island("https://x/pool.jpg", "left", "Pool", "50%")
    assert result.applied
    assert session.text == "\n\n" + island + "\n\n"
    assert len(session.gallery) == 1
    assert added[0].caption == "Pool"
    assert len(session.history) == 2


def test_insert_image_with_unknown_position_uses_default(scripted_prompt):
    dispatcher, session, _ = _dispatcher("", scripted_prompt("https://x/a.jpg", "top", ""))

    dispatcher.dispatch("insertImage")

    assert session.gallery[0].position.value == "center"


def test_dispatch_is_refused_while_prompt_is_open():
    outcomes = []

    class ReentrantPrompt:
        def ask(self, field):
            outcomes.append(dispatcher.dispatch("bold"))
            return None

    dispatcher, session, _ = _dispatcher("text", ReentrantPrompt())

    result = dispatcher.dispatch("insertPhone")

    assert result.status is CommandStatus.CANCELLED
    assert outcomes[0].status is CommandStatus.BLOCKED
    assert session.text == "text"
    assert not dispatcher.prompt_open


def test_undo_and_redo_commands(scripted_prompt):
    dispatcher, session, _ = _dispatcher("ab")
    session.set_selection(1)
    dispatcher.dispatch("italic")

    assert dispatcher.dispatch("undo").applied
    assert session.text == "ab"
    assert dispatcher.dispatch("redo").applied
    assert session.text == "a**b"
    assert dispatcher.dispatch("redo").status is CommandStatus.UNCHANGED


def test_insert_from_gallery_command():
    from pagecraft.editor.gallery import ImageDescriptor

    dispatcher, session, _ = _dispatcher("", images=[ImageDescriptor("https://x/a.jpg", insert_in_content=True)])

    assert dispatcher.dispatch("insertFromGallery").applied
    assert dispatcher.dispatch("insertFromGallery").status is CommandStatus.UNCHANGED
    assert len(session.history) == 2


class _WanderingPrompt:
    """Answers from a script but moves the caret while the dialog is open."""

    def __init__(self, session, *answers):
        self.session = session
        self.answers = list(answers)

    def ask(self, field):
        self.session.set_selection(8)
        return self.answers.pop(0)


@pytest.mark.parametrize(
    ("command", "answers", "embed"),
    [
        ("insertPhone", ("123", "x"), "[PHONE:123:x]"),
        ("insertMap", ("https://maps.example/?q=Roma", "Here"), "[MAP:https://maps.example/?q=Roma:Here]"),
        (
            "insertImage",
            ("https://x/pool.jpg", "left", "Pool"),
            "\n\n" + grammar.image_island("https://x/pool.jpg", "left", "Pool", "50%") + "\n\n",
        ),
    ],
)
def test_embeds_land_where_the_prompt_opened(command, answers, embed):
    session = EditorSession("0123456789")
    dispatcher = CommandDispatcher(session, _WanderingPrompt(session, *answers))
    session.set_selection(2)

    assert dispatcher.dispatch(command).applied
    assert session.text == "01" + embed + "23456789"


def test_link_keeps_surrounding_whitespace_outside_the_brackets(scripted_prompt):
    dispatcher, session, _ = _dispatcher("Book now more", scripted_prompt("https://example.com"))
    session.set_selection(0, 9)

    dispatcher.dispatch("link")

    assert session.text == "[Book now](https://example.com) more"


def test_new_command_after_two_undos_discards_redo_branch():
    dispatcher, session, _ = _dispatcher("ab")
    session.set_selection(0, 1)
    dispatcher.dispatch("bold")
    session.set_selection(0)
    dispatcher.dispatch("italic")

    assert dispatcher.dispatch("undo").applied
    assert dispatcher.dispatch("undo").applied
    assert session.text == "ab"
    session.set_selection(0, 2)
    dispatcher.dispatch("underline")

    assert session.text == "__ab__"
    assert not session.can_redo
    assert dispatcher.dispatch("redo").status is CommandStatus.UNCHANGED
