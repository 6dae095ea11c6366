"""
Smart Scribbler Backend — Markdown Rendering & Preview Tests
==============================================================

What we test:
    ✅ Markdown becomes HTML with active content stripped
    ✅ Markdown becomes layout blocks (headings, lists, code, emphasis)
    ✅ Preview shows badges and labelled diagrams, escapes titles
"""

from scribbler.schemas.notes import ProcessedNotes, Section
from scribbler.services.markdown_render import markdown_blocks, render_markdown, sanitize_html
from scribbler.services.preview_service import DIAGRAM_LABEL, ELABORATED_BADGE, render_preview


class TestSanitize:

    def test_script_removed(self):
        html = render_markdown("Hello <script>alert(1)</script> world")
        assert "<script" not in html
        assert "alert(1)" not in html
        assert "Hello" in html

    def test_event_handlers_removed(self):
        html = sanitize_html('<img src="x.png" onerror="alert(1)"><p onclick="x()">hi</p>')
        assert "onerror" not in html
        assert "onclick" not in html
        assert 'src="x.png"' in html

    def test_javascript_links_removed(self):
        html = render_markdown("[click](javascript:alert(1))")
        assert "javascript:" not in html
        assert "click" in html

    def test_iframe_and_style_removed(self):
        html = sanitize_html("<iframe src='https://evil'></iframe><style>p{}</style><p>ok</p>")
        assert "iframe" not in html
        assert "<style" not in html
        assert "<p>ok</p>" in html

    def test_image_data_uri_kept(self):
        html = sanitize_html('<img src="data:image/png;base64,AAAA"><a href="data:text/html,x">d</a>')
        assert 'src="data:image/png;base64,AAAA"' in html
        assert "data:text/html" not in html

    def test_obfuscated_javascript_scheme_removed(self):
        html = render_markdown('<a href="java&#x09;script:alert(1)">click</a>')
        assert "href" not in html
        assert "script:" not in html.replace("\t", "")
        assert "click" in html

    def test_control_characters_and_entities_in_scheme(self):
        html = sanitize_html(
            '<a href=" &#x0A;JaVa&#x0D;Script&colon;alert(1)">a</a>'
            '<a href="\x01javascript:alert(1)">b</a>'
        )
        assert "href" not in html
        assert "alert" not in html

    def test_svg_removed_with_content(self):
        html = render_markdown(
            '<svg><a><animate attributeName="href" values="javascript:alert(1)"/>'
            '<text x="20" y="20">click</text></a></svg>'
        )
        assert "javascript:" not in html
        assert "<svg" not in html
        assert "animate" not in html

    def test_math_removed(self):
        html = sanitize_html('<math><mi xlink:href="javascript:alert(1)">x</mi></math><p>ok</p>')
        assert "<math" not in html
        assert "javascript:" not in html
        assert "<p>ok</p>" in html

    def test_unknown_attributes_dropped(self):
        html = sanitize_html(
            '<p style="background:url(javascript:x)" class="c" id="i">a</p>'
            '<ol start="3" type="a"><li>b</li></ol>'
        )
        assert "style" not in html
        assert "class" not in html
        assert "id=" not in html
        assert "type=" not in html
        assert 'start="3"' in html

    def test_unknown_tags_unwrapped(self):
        html = sanitize_html('<div><span title="t">kept text</span></div><details><summary>s</summary></details>')
        assert "<div" not in html
        assert "<span" not in html
        assert "<details" not in html
        assert "kept text" in html

    def test_safe_links_kept(self):
        html = sanitize_html(
            '<a href="https://example.com/a?b=c" title="t">web</a>'
            '<a href="mailto:me@example.com">mail</a>'
            '<a href="#fn:1">note</a>'
            '<a href="/relative/path">rel</a>'
        )
        assert 'href="https://example.com/a?b=c"' in html
        assert 'title="t"' in html
        assert 'href="mailto:me@example.com"' in html
        assert 'href="#fn:1"' in html
        assert 'href="/relative/path"' in html

    def test_svg_image_data_uri_removed(self):
        html = sanitize_html('<img src="data:image/svg+xml;base64,PHN2Zz4=" alt="d">')
        assert "data:" not in html
        assert 'alt="d"' in html


class TestMarkdownBlocks:

    def test_structure(self):
        blocks = markdown_blocks(
            "## Key idea\n\n"
            "Some **bold** and *italic* text.\n\n"
            "- one\n"
            "- two\n"
            "    - nested\n\n"
            "1. first\n"
            "2. second\n\n"
            "```\ncode line\n```\n"
        )
        kinds = [b.kind for b in blocks]
        assert kinds == ["heading", "paragraph", "bullet", "bullet", "bullet", "number", "number", "code"]

        heading, paragraph = blocks[0], blocks[1]
        assert heading.text == "Key idea"
        assert heading.level == 2
        assert paragraph.text == "Some bold and italic text."
        assert "<b>bold</b>" in paragraph.markup
        assert "<i>italic</i>" in paragraph.markup

        assert [b.level for b in blocks[2:5]] == [0, 0, 1]
        assert blocks[4].text == "nested"
        assert [b.number for b in blocks[5:7]] == [1, 2]
        assert blocks[7].text == "code line"

    def test_markup_escapes_text(self):
        block = markdown_blocks("a < b & c")[0]
        assert block.text == "a < b & c"
        assert "&lt;" in block.markup
        assert "&amp;" in block.markup

    def test_inline_code(self):
        block = markdown_blocks("run `pip install`")[0]
        assert '<font face="Courier">pip install</font>' in block.markup

    def test_empty(self):
        assert markdown_blocks("") == []


class TestRenderPreview:

    def test_sections_badge_and_diagram(self, sample_notes):
        html = render_preview(sample_notes)

        assert "<h1>Cell Biology: Week 3</h1>" in html
        assert html.count(ELABORATED_BADGE) == 1
        assert html.count(f"<figcaption>{DIAGRAM_LABEL}</figcaption>") == 1
        assert "<strong>powerhouse</strong>" in html
        assert "<li>" in html

    def test_title_and_heading_escaped(self):
        notes = ProcessedNotes(
            title="<b>Title</b>",
            sections=[Section(heading="<img src=x onerror=alert(1)>", content="ok")],
        )
        html = render_preview(notes)
        assert "&lt;b&gt;Title&lt;/b&gt;" in html
        assert "<img src=x" not in html

    def test_non_image_diagram_skipped(self):
        notes = ProcessedNotes(
            title="T",
            sections=[Section(heading="H", content="c", diagram_images=["javascript:alert(1)"])],
        )
        html = render_preview(notes)
        assert "javascript:" not in html
        assert DIAGRAM_LABEL not in html
