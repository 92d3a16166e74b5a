"""Tests for docvision.text_render."""

from __future__ import annotations

import unittest
from io import BytesIO

from PIL import Image

from docvision.text_render import (
    CANVAS_HEIGHT,
    CANVAS_WIDTH,
    escape_markup,
    render_text_page,
    sanitize_text,
)


class TestSanitize(unittest.TestCase):
    def test_escapes_markup(self) -> None:
        self.assertEqual(escape_markup("a<b & \"c\" 'd'>"), "a&lt;b &amp; &quot;c&quot; &apos;d&apos;&gt;")

    def test_strips_controls_and_replacement_char(self) -> None:
        self.assertEqual(sanitize_text("a\x00b\x07c\ufffd\td\n"), "abc\td\n")

    def test_truncates(self) -> None:
        self.assertEqual(len(sanitize_text("x" * 5000, limit=3000)), 3000)


class TestRenderTextPage(unittest.TestCase):
    def test_page_geometry(self) -> None:
        page = render_text_page("Question 1: solve 2x + 3 = 7", 2, 5)
        self.assertEqual((page.width, page.height), (CANVAS_WIDTH, CANVAS_HEIGHT))
        self.assertEqual(page.page_number, 2)
        self.assertEqual(page.source, "text")
        self.assertEqual(Image.open(BytesIO(page.data)).format, "JPEG")

    def test_blank_text_renders_placeholder(self) -> None:
        page = render_text_page("   \n\x00 ", 1, 1)
        self.assertGreater(page.size_bytes, 0)

    def test_bounded_by_max_size(self) -> None:
        page = render_text_page("hello", 1, 1, max_width=512, max_height=512)
        self.assertLessEqual(page.width, 512)
        self.assertLessEqual(page.height, 512)

    def test_long_and_non_latin_text(self) -> None:
        text = ("Ecuación α + β = γ <tag> & " * 400)
        page = render_text_page(text, 1, 1)
        self.assertGreater(page.size_bytes, 0)


if __name__ == "__main__":
    unittest.main()
