"""Rendering fixtures for the directive renderer."""

from pagecraft.editor.gallery import ImageDescriptor
from pagecraft.editor.syntax.renderer import render, render_preview

ISLAND = '{"type":"image","url":"https://cdn.example/pool.jpg","position":"left","caption":"Pool","width":"40%"}'


def test_bold_inside_paragraph():
    html = render("Hello **world**")

    assert "Hello <strong>world</strong>" in html
    assert html == '<p class="mb-4">Hello <strong>world</strong></p>'


def test_bullet_list_renders_items():
    html = render("<!-- LIST:BULLET -->\n- a\n- b\n")

    assert html == '<ul class="list-disc pl-5 my-2"><li>a</li><li>b</li></ul>'


def test_numbered_list_and_heading():
    html = render("<!-- HEADING:1 -->\nWelcome\n<!-- LIST:NUMBERED -->\n1. one\n2. two\n")

    assert '<h1 class="text-2xl font-bold my-4">Welcome</h1>' in html
    assert '<ol class="list-decimal pl-5 my-2"><li>one</li><li>two</li></ol>' in html


def test_heading_body_is_a_single_line():
    html = render("<!-- HEADING:2 -->\nRooms\nBody text")

    assert html == '<h2 class="text-xl font-bold my-3">Rooms</h2><p class="mb-4">Body text</p>'


def test_format_and_quote_regions():
    html = render("<!-- FORMAT:CENTER -->\nHi\n\n<!-- QUOTE -->\nNice stay\n\nAfter")

    assert '<div class="text-center">Hi</div>' in html
    assert '<blockquote class="border-l-4 pl-4 italic my-3">Nice stay</blockquote>' in html
    assert html.endswith('<p class="mb-4">After</p>')


def test_inline_emphasis_and_links():
    html = render("*soft* __under__ [Book](https://example.com/book)")

    assert "<em>soft</em>" in html
    assert "<u>under</u>" in html
    assert '<a href="https://example.com/book" class="text-blue-600 hover:underline">Book</a>' in html


def test_phone_and_map_embeds_in_both_encodings():
    document = (
        "[PHONE:+39061234:Call us]\n"
        "<!-- PHONE: 06 1234 -->\n[\U0001f4de Reception]\n"
        "[MAP:https://maps.example/?q=Roma:Find us]"
    )

    html = render(document)

    assert 'href="tel:+39061234"' in html
    assert "Call us</a>" in html
    assert 'href="tel:06 1234"' in html
    assert 'href="https://maps.example/?q=Roma"' in html
    assert "Find us</a>" in html
    assert "[PHONE:" not in html


def test_image_island_renders_figure():
    html = render("Before\n\n" + ISLAND + "\n\nAfter")

    assert '<figure class="float-left mr-4" style="width: 40%; margin-bottom: 1rem;">' in html
    assert '<img src="https://cdn.example/pool.jpg" alt="Pool"' in html
    assert "<figcaption" in html
    assert html.startswith('<p class="mb-4">Before</p>')
    assert html.endswith('<p class="mb-4">After</p>')


def test_image_comment_renders_figure():
    html = render("<!-- IMAGE: https://cdn.example/lobby.jpg -->\n[Immagine: lobby.jpg]\n")

    assert '<img src="https://cdn.example/lobby.jpg" alt="lobby.jpg"' in html


def test_placeholders_resolve_against_gallery():
    images = [ImageDescriptor("https://x/1.jpg"), ImageDescriptor("https://x/2.jpg", caption="Two")]

    html = render("[IMAGE_2] [IMAGE_3] [IMMAGINE]", images)

    assert 'data-image-index="1"' in html
    assert "[IMAGE_3]" in html
    assert 'data-image-index="0"' in html


def test_malformed_directives_stay_literal():
    html = render('<!-- HEADING:3 -->\nTitle\n**open {"type":"image","url":')

    assert "<!-- HEADING:3 -->" in html
    assert "<h1" not in html
    assert "**open" in html
    assert '{"type":"image","url":' in html
    assert "<figure" not in html


def test_paragraph_and_line_breaks():
    assert render("a\nb\n\nc") == '<p class="mb-4">a<br>b</p><p class="mb-4">c</p>'


def test_render_is_pure_and_idempotent():
    images = [ImageDescriptor("https://x/1.jpg")]
    document = "Hello **world**\n\n[IMAGE_1]"

    first = render(document, images)

    assert render(document, images) == first
    assert document == "Hello **world**\n\n[IMAGE_1]"
    assert images == [ImageDescriptor("https://x/1.jpg")]


def test_render_preview_collects_metadata():
    preview = render_preview("<!-- HEADING:1 -->\nOur Rooms\nSome text here.", [ImageDescriptor("https://x/1.jpg")])

    assert preview.html.startswith('<div class="pc-content-preview">')
    assert preview.metadata["headings"][0]["anchor"] == "our-rooms"
    assert preview.metadata["stats"]["word_count"] == 5
    assert preview.metadata["directives"]["heading"] == 1
    assert preview.metadata["gallery_size"] == 1


def test_nul_bytes_in_document_cannot_forge_stash_tokens():
    assert render("a\x000\x00b") == '<p class="mb-4">a0b</p>'

    html = render("[PHONE:1:x] \x000\x00")

    assert html.count("tel:1") == 1
    assert "\x00" not in html
