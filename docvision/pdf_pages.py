"""PDF page extraction with a tiered fallback.

Tiers are strategy objects tried in order; the first one that yields pages
wins:

1. ``RasterStrategy``: true page rasterization, page 1 upward, stopping at
   the first page that does not render.
2. ``TextFallbackStrategy``: extract the text layer, cut it into fixed-size
   chunks and synthesize one page per chunk.

Rasterization errors never reach the caller; they only move control to the
next tier. If every tier fails, ``DocumentProcessingError`` is raised.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Protocol, Sequence

from .config import (
    JPEG_QUALITY,
    MAX_PAGE_HEIGHT,
    MAX_PAGE_WIDTH,
    MAX_PDF_PAGES,
    MAX_RENDER_CHARS,
    RASTER_RETRIES,
    TEXT_CHARS_PER_PAGE,
)
from .encode import encode_many
from .pdf_text import extract_full_text
from .rasterize import PageRasterizer, RasterBuffer, resolve_rasterizer
from .schema import Page, PageSequence
from .text_render import EMPTY_PLACEHOLDER, render_text_page
from .utils import DocumentProcessingError, chunk_text

logger = logging.getLogger(__name__)


@dataclass
class StrategyResult:
    """Outcome of one tier: pages on success, otherwise a reason."""

    strategy: str
    pages: list[Page] = field(default_factory=list)
    reason: str | None = None
    error: BaseException | None = None
    dropped: int = 0  # pages cut by the page-count ceiling

    @property
    def ok(self) -> bool:
        return bool(self.pages) and self.reason is None


class PdfStrategy(Protocol):
    name: str

    def attempt(self, pdf_bytes: bytes) -> StrategyResult:
        ...


class RasterStrategy:
    """Tier 1: rasterize pages in strict order until the first missing page.

    A page that raises is retried ``retries`` times before it is taken as
    the end of the document; a ``None`` result ends the loop at once.
    Rendering stays sequential so the stopping index is always the lowest
    failing page; only the encoding of collected buffers runs in parallel.
    """

    name = "raster"

    def __init__(
        self,
        rasterizer: PageRasterizer | None = None,
        max_pages: int = MAX_PDF_PAGES,
        retries: int = RASTER_RETRIES,
        max_width: int = MAX_PAGE_WIDTH,
        max_height: int = MAX_PAGE_HEIGHT,
        quality: int = JPEG_QUALITY,
        workers: int | None = None,
    ) -> None:
        self.rasterizer = rasterizer
        self.max_pages = max_pages
        self.retries = max(0, retries)
        self.max_width = max_width
        self.max_height = max_height
        self.quality = quality
        self.workers = workers

    def attempt(self, pdf_bytes: bytes) -> StrategyResult:
        if self.rasterizer is not None:
            rasterizer = self.rasterizer
            unavailable = rasterizer.unavailable_reason()
            if unavailable:
                return StrategyResult(self.name, reason=f"{rasterizer.name} unavailable: {unavailable}")
        else:
            try:
                rasterizer, reasons = resolve_rasterizer()
            except ValueError as exc:
                return StrategyResult(self.name, reason=str(exc), error=exc)
            if rasterizer is None:
                return StrategyResult(self.name, reason="; ".join(reasons))

        buffers, stop_error = self._collect(rasterizer, pdf_bytes)
        if not buffers:
            reason = f"no pages rasterized ({stop_error})" if stop_error else "no pages rasterized"
            return StrategyResult(self.name, reason=reason, error=stop_error)

        encoded = encode_many(
            buffers,
            max_width=self.max_width,
            max_height=self.max_height,
            quality=self.quality,
            source="raster",
            workers=self.workers,
        )
        pages = [page for page in encoded if page is not None]
        if not pages:
            return StrategyResult(self.name, reason="no rasterized page could be encoded")
        dropped = self._dropped(rasterizer, pdf_bytes) if len(buffers) >= self.max_pages else 0
        logger.info("Rasterized %d page(s) with %s", len(pages), rasterizer.name)
        return StrategyResult(self.name, pages=pages, dropped=dropped)

    def _dropped(self, rasterizer: PageRasterizer, pdf_bytes: bytes) -> int:
        """Pages past the ceiling, or 0 when the engine cannot count them."""

        counter = getattr(rasterizer, "page_count", None)
        if counter is None:
            return 0
        try:
            total = int(counter(pdf_bytes))
        except Exception as exc:  # counting is informational only
            logger.debug("Could not count pages with %s: %s", rasterizer.name, exc)
            return 0
        return max(0, total - self.max_pages)

    def _collect(
        self, rasterizer: PageRasterizer, pdf_bytes: bytes
    ) -> tuple[list[tuple[int, RasterBuffer]], BaseException | None]:
        buffers: list[tuple[int, RasterBuffer]] = []
        for page_number in range(1, self.max_pages + 1):
            buffer, error = self._render_page(rasterizer, pdf_bytes, page_number)
            if buffer is None:
                return buffers, error
            buffers.append((page_number, buffer))
        return buffers, None

    def _render_page(
        self, rasterizer: PageRasterizer, pdf_bytes: bytes, page_number: int
    ) -> tuple[RasterBuffer | None, BaseException | None]:
        last_err: BaseException | None = None
        for attempt in range(self.retries + 1):
            try:
                return rasterizer.rasterize(pdf_bytes, page_number), None
            except Exception as exc:  # renderer failures only end this tier
                last_err = exc
                logger.debug(
                    "Rasterizing page %d failed (attempt %d/%d): %s",
                    page_number, attempt + 1, self.retries + 1, exc,
                )
        logger.info(
            "Page %d did not rasterize after %d attempt(s); treating as end of document",
            page_number, self.retries + 1,
        )
        return None, last_err


class TextFallbackStrategy:
    """Tier 2: synthesize pages from the PDF text layer.

    The text is split into ``chars_per_page`` chunks; at most ``max_pages``
    chunks are rendered but headers report the full chunk count.
    """

    name = "text"

    def __init__(
        self,
        text_extractor: Callable[[bytes], str] = extract_full_text,
        chars_per_page: int = TEXT_CHARS_PER_PAGE,
        max_pages: int | None = MAX_PDF_PAGES,
        max_chars: int = MAX_RENDER_CHARS,
        max_width: int = MAX_PAGE_WIDTH,
        max_height: int = MAX_PAGE_HEIGHT,
        quality: int = JPEG_QUALITY,
    ) -> None:
        self.text_extractor = text_extractor
        self.chars_per_page = chars_per_page
        self.max_pages = max_pages
        self.max_chars = max_chars
        self.max_width = max_width
        self.max_height = max_height
        self.quality = quality

    def attempt(self, pdf_bytes: bytes) -> StrategyResult:
        try:
            text = self.text_extractor(pdf_bytes) or ""
        except Exception as exc:
            return StrategyResult(self.name, reason=f"text extraction failed: {exc}", error=exc)

        chunks = chunk_text(text, self.chars_per_page) or [EMPTY_PLACEHOLDER]
        total = len(chunks)
        dropped = 0
        if self.max_pages is not None and total > self.max_pages:
            logger.info("Text fallback: rendering %d of %d chunks", self.max_pages, total)
            dropped = total - self.max_pages
            chunks = chunks[: self.max_pages]
        pages = [
            render_text_page(
                chunk,
                page_number,
                total,
                max_chars=self.max_chars,
                max_width=self.max_width,
                max_height=self.max_height,
                quality=self.quality,
            )
            for page_number, chunk in enumerate(chunks, start=1)
        ]
        logger.info("Synthesized %d page(s) from %d extracted chars", len(pages), len(text))
        return StrategyResult(self.name, pages=pages, dropped=dropped)


def default_strategies(
    rasterizer: PageRasterizer | None = None,
    text_extractor: Callable[[bytes], str] = extract_full_text,
    max_pages: int = MAX_PDF_PAGES,
    chars_per_page: int = TEXT_CHARS_PER_PAGE,
    max_chars: int = MAX_RENDER_CHARS,
    retries: int = RASTER_RETRIES,
    max_width: int = MAX_PAGE_WIDTH,
    max_height: int = MAX_PAGE_HEIGHT,
    quality: int = JPEG_QUALITY,
    workers: int | None = None,
) -> list[PdfStrategy]:
    """Return the raster tier followed by the text tier."""

    return [
        RasterStrategy(
            rasterizer=rasterizer,
            max_pages=max_pages,
            retries=retries,
            max_width=max_width,
            max_height=max_height,
            quality=quality,
            workers=workers,
        ),
        TextFallbackStrategy(
            text_extractor=text_extractor,
            chars_per_page=chars_per_page,
            max_pages=max_pages,
            max_chars=max_chars,
            max_width=max_width,
            max_height=max_height,
            quality=quality,
        ),
    ]


def run_strategies(pdf_bytes: bytes, strategies: Sequence[PdfStrategy]) -> PageSequence:
    """Try each strategy in order and return the first page sequence produced."""

    failures: list[StrategyResult] = []
    for strategy in strategies:
        result = strategy.attempt(pdf_bytes)
        if result.ok:
            if result.dropped:
                logger.warning(
                    "PDF %s tier: dropped %d page(s) beyond the %d-page limit",
                    result.strategy, result.dropped, len(result.pages),
                )
            return PageSequence(
                pages=result.pages,
                method=result.strategy,
                source_kind="pdf",
                dropped_pages=result.dropped,
            )
        logger.warning("PDF %s tier failed: %s", strategy.name, result.reason)
        failures.append(result)

    if not failures:
        raise DocumentProcessingError("no extraction strategies configured", kind="pdf")
    last = failures[-1]
    detail = "; ".join(f"{r.strategy}: {r.reason}" for r in failures)
    raise DocumentProcessingError(
        f"Failed to process PDF file: {detail}", kind="pdf", stage=last.strategy
    ) from last.error


def extract_pdf_pages(
    pdf_bytes: bytes,
    *,
    rasterizer: PageRasterizer | None = None,
    text_extractor: Callable[[bytes], str] = extract_full_text,
    strategies: Sequence[PdfStrategy] | None = None,
    max_pages: int = MAX_PDF_PAGES,
    chars_per_page: int = TEXT_CHARS_PER_PAGE,
    max_chars: int = MAX_RENDER_CHARS,
    retries: int = RASTER_RETRIES,
    max_width: int = MAX_PAGE_WIDTH,
    max_height: int = MAX_PAGE_HEIGHT,
    quality: int = JPEG_QUALITY,
    workers: int | None = None,
) -> PageSequence:
    """Convert PDF bytes into an ordered page sequence.

    Parameters
    ----------
    rasterizer:
        Engine for the raster tier; defaults to ``RASTER_ENGINE``.
    text_extractor:
        ``bytes -> str`` used by the text tier.
    strategies:
        Explicit tier list; overrides everything above when given.
    """

    if max_pages < 1:
        raise ValueError(f"max_pages must be at least 1, got {max_pages}")
    if strategies is None:
        strategies = default_strategies(
            rasterizer=rasterizer,
            text_extractor=text_extractor,
            max_pages=max_pages,
            chars_per_page=chars_per_page,
            max_chars=max_chars,
            retries=retries,
            max_width=max_width,
            max_height=max_height,
            quality=quality,
            workers=workers,
        )
    return run_strategies(pdf_bytes, strategies)
