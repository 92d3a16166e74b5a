"""Synthesize a raster page from plain text when no true rendering is available.

This is a lossy fallback: the text is cleaned, cut to a fixed ceiling and
laid out on a blank page so that a vision model can still read it.
"""

from __future__ import annotations

import html
import logging
import re
import textwrap

from PIL import Image, ImageDraw, ImageFont

from .config import JPEG_QUALITY, MAX_PAGE_HEIGHT, MAX_PAGE_WIDTH, MAX_RENDER_CHARS
from .encode import encode_image
from .schema import Page

logger = logging.getLogger(__name__)

CANVAS_WIDTH = 1024
CANVAS_HEIGHT = 1448
MARGIN_X = 20
BODY_TOP = 50
BODY_BOTTOM_MARGIN = 40
HEADER_COLOR = (153, 153, 153)
BODY_COLOR = (51, 51, 51)
BODY_FONT_SIZE = 12
HEADER_FONT_SIZE = 12
FOOTER_FONT_SIZE = 10
LINE_SPACING = 1.6
EMPTY_PLACEHOLDER = "Empty PDF or could not extract text"
FOOTER_TEXT = "Generated from PDF text extraction"

# C0 controls except \t \n \r, plus DEL
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
_MARKUP_ESCAPES = {
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&apos;",
}
_MARKUP_CHARS = re.compile(r"[&<>\"']")
_FONT_CANDIDATES = ("DejaVuSans.ttf", "Arial.ttf", "LiberationSans-Regular.ttf")


def escape_markup(text: str) -> str:
    """Escape ``& < > " '`` as XML entities."""

    return _MARKUP_CHARS.sub(lambda m: _MARKUP_ESCAPES[m.group(0)], text)


def sanitize_text(text: str, limit: int = MAX_RENDER_CHARS) -> str:
    """Strip control characters and U+FFFD, escape markup, cut to *limit* chars."""

    cleaned = _CONTROL_CHARS.sub("", text or "")
    cleaned = cleaned.replace("\ufffd", "")
    return escape_markup(cleaned)[:limit]


def _load_font(size: int) -> ImageFont.ImageFont:
    for name in _FONT_CANDIDATES:
        try:
            return ImageFont.truetype(name, size=size)
        except OSError:
            continue
    try:
        return ImageFont.load_default(size=size)
    except TypeError:
        # Pillow < 10.1 has a fixed-size bitmap default
        return ImageFont.load_default()


def _text_width(draw: ImageDraw.ImageDraw, text: str, font: ImageFont.ImageFont) -> float:
    left, _, right, _ = draw.textbbox((0, 0), text, font=font)
    return right - left


def _wrap(
    body: str,
    draw: ImageDraw.ImageDraw,
    font: ImageFont.ImageFont,
    max_width: int,
) -> list[str]:
    """Greedy word wrap that keeps explicit newlines (pre-wrap semantics)."""

    avg_char = max(1.0, _text_width(draw, "abcdefghijklmnopqrstuvwxyz", font) / 26)
    width_chars = max(10, int(max_width / avg_char))
    lines: list[str] = []
    for paragraph in body.replace("\r\n", "\n").replace("\r", "\n").split("\n"):
        paragraph = paragraph.expandtabs(4)
        if not paragraph.strip():
            lines.append("")
            continue
        wrapped = textwrap.wrap(
            paragraph,
            width=width_chars,
            break_long_words=True,
            replace_whitespace=False,
            drop_whitespace=True,
        )
        for line in wrapped:
            # average-width estimate can overshoot on wide glyphs
            while len(line) > 1 and _text_width(draw, line, font) > max_width:
                cut = max(1, int(len(line) * max_width / _text_width(draw, line, font)))
                lines.append(line[:cut])
                line = line[cut:]
            lines.append(line)
    return lines


def render_text_page(
    text: str,
    page_number: int,
    total_pages: int,
    max_chars: int = MAX_RENDER_CHARS,
    max_width: int = MAX_PAGE_WIDTH,
    max_height: int = MAX_PAGE_HEIGHT,
    quality: int = JPEG_QUALITY,
) -> Page:
    """Render *text* onto a fixed-size page with a "Page N of M" header.

    Empty or whitespace-only text renders a placeholder page instead.
    """

    sanitized = sanitize_text(text, limit=max_chars)
    if not sanitized.strip():
        sanitized = EMPTY_PLACEHOLDER
    # PIL draws glyphs, not markup: decode entities after the bounded cut.
    body = html.unescape(sanitized)

    canvas = Image.new("RGB", (CANVAS_WIDTH, CANVAS_HEIGHT), (255, 255, 255))
    draw = ImageDraw.Draw(canvas)
    header_font = _load_font(HEADER_FONT_SIZE)
    body_font = _load_font(BODY_FONT_SIZE)
    footer_font = _load_font(FOOTER_FONT_SIZE)
    if not isinstance(body_font, ImageFont.FreeTypeFont):
        # bitmap fallback font only covers latin-1
        body = body.encode("latin-1", "replace").decode("latin-1")

    draw.text(
        (MARGIN_X, 30 - HEADER_FONT_SIZE),
        f"Page {page_number} of {total_pages}",
        fill=HEADER_COLOR,
        font=header_font,
    )

    line_height = int(BODY_FONT_SIZE * LINE_SPACING)
    bottom = CANVAS_HEIGHT - BODY_BOTTOM_MARGIN
    y = BODY_TOP
    lines = _wrap(body, draw, body_font, CANVAS_WIDTH - 2 * MARGIN_X)
    for index, line in enumerate(lines):
        if y + line_height > bottom:
            logger.debug(
                "Page %d: %d wrapped lines do not fit; dropped %d",
                page_number, len(lines), len(lines) - index,
            )
            break
        if line:
            draw.text((MARGIN_X, y), line, fill=BODY_COLOR, font=body_font)
        y += line_height

    draw.text(
        (MARGIN_X, CANVAS_HEIGHT - 20 - FOOTER_FONT_SIZE),
        FOOTER_TEXT,
        fill=HEADER_COLOR,
        font=footer_font,
    )

    return encode_image(
        canvas,
        max_width=max_width,
        max_height=max_height,
        quality=quality,
        page_number=page_number,
        source="text",
    )
