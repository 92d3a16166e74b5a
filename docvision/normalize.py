"""Document normalizer: turn an uploaded PDF or image into bounded raster pages."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

from .config import (
    IMAGE_MAX_HEIGHT,
    IMAGE_MAX_WIDTH,
    JPEG_QUALITY,
    MAX_FILE_SIZE_BYTES,
    MAX_PAGE_HEIGHT,
    MAX_PAGE_WIDTH,
    MAX_PDF_PAGES,
    MAX_RENDER_CHARS,
    RASTER_RETRIES,
    TEXT_CHARS_PER_PAGE,
)
from .encode import encode_image
from .pdf_pages import extract_pdf_pages
from .pdf_text import extract_full_text
from .rasterize import PageRasterizer
from .schema import PageSequence, RawDocument
from .utils import DocumentProcessingError, EncodingError, UnsupportedFileKindError

logger = logging.getLogger(__name__)


def _normalize_image(
    document: RawDocument,
    max_width: int,
    max_height: int,
    quality: int,
) -> PageSequence:
    try:
        page = encode_image(
            document.data,
            max_width=max_width,
            max_height=max_height,
            quality=quality,
            page_number=1,
            source="image",
        )
    except EncodingError as exc:
        raise DocumentProcessingError(
            f"Failed to process image file {document.name!r}: {exc}",
            kind="image",
            stage="encode",
        ) from exc
    return PageSequence(pages=[page], method="image", source_kind="image")


def normalize(
    document: RawDocument,
    *,
    max_pages: int = MAX_PDF_PAGES,
    rasterizer: PageRasterizer | None = None,
    text_extractor: Callable[[bytes], str] = extract_full_text,
    chars_per_page: int = TEXT_CHARS_PER_PAGE,
    max_chars: int = MAX_RENDER_CHARS,
    retries: int = RASTER_RETRIES,
    page_width: int = MAX_PAGE_WIDTH,
    page_height: int = MAX_PAGE_HEIGHT,
    image_width: int = IMAGE_MAX_WIDTH,
    image_height: int = IMAGE_MAX_HEIGHT,
    quality: int = JPEG_QUALITY,
    workers: int | None = None,
) -> PageSequence:
    """Convert *document* into an ordered sequence of bounded JPEG pages.

    Dispatches on ``document.kind``: PDFs go through the tiered page
    extractor, images become a single page. At most ``max_pages`` pages are
    returned whichever path produced them; ``dropped_pages`` counts the rest.

    Raises ``ValueError`` when ``max_pages < 1``,
    ``UnsupportedFileKindError`` for any other kind and
    ``DocumentProcessingError`` when no usable page can be produced.
    """

    if max_pages < 1:
        raise ValueError(f"max_pages must be at least 1, got {max_pages}")
    kind = (document.kind or "").strip().lower()
    if kind == "pdf":
        sequence = extract_pdf_pages(
            document.data,
            rasterizer=rasterizer,
            text_extractor=text_extractor,
            max_pages=max_pages,
            chars_per_page=chars_per_page,
            max_chars=max_chars,
            retries=retries,
            max_width=page_width,
            max_height=page_height,
            quality=quality,
            workers=workers,
        )
    elif kind == "image":
        sequence = _normalize_image(document, image_width, image_height, quality)
    else:
        raise UnsupportedFileKindError(document.kind)

    logger.info(
        "Normalized %s (%s) into %d page(s) via %s (%d dropped)",
        document.name, kind, len(sequence.pages), sequence.method, sequence.dropped_pages,
    )
    return sequence


def normalize_path(
    path: str | Path,
    kind: str | None = None,
    max_bytes: int | None = MAX_FILE_SIZE_BYTES,
    **kwargs,
) -> PageSequence:
    """Read *path* from disk and normalize it; see ``normalize`` for kwargs."""

    return normalize(RawDocument.from_path(path, kind=kind, max_bytes=max_bytes), **kwargs)
