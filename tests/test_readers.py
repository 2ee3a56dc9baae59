"""Tests for binary sniffing and HTML conversion."""

import pytest

from refer.readers import (
    extract_title,
    html_to_markdown,
    is_printable,
    is_text_file,
    looks_binary,
)


class TestPrintable:
    @pytest.mark.parametrize("b,expected", [
        (32, True),
        (126, True),
        (127, False),
        (150, False),
        (191, False),
        (192, True),
        (255, True),
        (10, False),
    ])
    def test_ranges(self, b, expected):
        assert is_printable(b) is expected


class TestLooksBinary:
    def test_plain_ascii_is_text(self):
        assert looks_binary(b"hello world\n\tindented\r\n") is False

    def test_nul_byte_is_binary(self):
        assert looks_binary(b"abc\x00def") is True

    def test_high_control_byte_is_binary(self):
        assert looks_binary(bytes([0x41, 0x85, 0x42])) is True

    def test_latin1_letters_are_text(self):
        assert looks_binary("café déjà vu".encode("latin-1")) is False

    def test_only_first_512_bytes_inspected(self):
        assert looks_binary(b"a" * 512 + b"\x00") is False
        assert looks_binary(b"a" * 511 + b"\x00") is True

    def test_empty_is_text(self):
        assert looks_binary(b"") is False


class TestIsTextFile:
    def test_text_file(self, tmp_path):
        f = tmp_path / "notes.txt"
        f.write_text("plain notes")
        assert is_text_file(f) is True

    def test_empty_file(self, tmp_path):
        f = tmp_path / "empty.txt"
        f.write_bytes(b"")
        assert is_text_file(f) is True

    def test_png_header(self, tmp_path):
        f = tmp_path / "img.png"
        f.write_bytes(b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR")
        assert is_text_file(f) is False


class TestExtractTitle:
    def test_title_tag(self):
        assert extract_title("<html><head><title> Hello Page </title></head></html>") == "Hello Page"

    def test_missing_title(self):
        assert extract_title("<html><body><p>no title</p></body></html>") == ""


class TestHtmlToMarkdown:
    def test_headings_paragraphs_lists(self):
        html = (
            "<html><body><h1>Guide</h1><p>Intro text.</p>"
            "<h2>Steps</h2><ul><li>first</li><li>second</li></ul></body></html>"
        )
        md = html_to_markdown(html)
        assert "# Guide" in md
        assert "## Steps" in md
        assert "Intro text." in md
        assert "- first" in md
        assert "- second" in md

    def test_scripts_and_nav_removed(self):
        html = (
            "<html><body><nav>menu</nav><script>var x = 1;</script>"
            "<p>Body copy</p><footer>legal</footer></body></html>"
        )
        md = html_to_markdown(html)
        assert "Body copy" in md
        assert "var x" not in md
        assert "menu" not in md
        assert "legal" not in md

    def test_code_and_tables(self):
        html = (
            "<pre>print('hi')</pre>"
            "<table><tr><th>Name</th><th>Age</th></tr><tr><td>Ann</td><td>3</td></tr></table>"
        )
        md = html_to_markdown(html)
        assert "```\nprint('hi')\n```" in md
        assert "| Name | Age |" in md
        assert "| Ann | 3 |" in md

    def test_bare_text_fallback(self):
        assert html_to_markdown("<html><body>just some text</body></html>") == "just some text"

    def test_nested_blocks_emitted_once(self):
        md = html_to_markdown("<ul><li><p>feed the cat</p></li></ul>")
        assert md == "- feed the cat"

    def test_inline_code_stays_in_paragraph(self):
        md = html_to_markdown("<p>run <code>pip install</code> first</p>")
        assert md == "run pip install first"

    def test_nested_list_items_not_repeated(self):
        md = html_to_markdown("<ul><li>outer<ul><li>inner</li></ul></li></ul>")
        assert md.count("inner") == 1
