"""Page rasterization engines for the preferred PDF tier.

An engine renders one 1-based page of a PDF to a raster image, or returns
``None`` when the page does not exist. Engines report their own
availability so that a missing renderer downgrades to the text tier
instead of failing the process.
"""

from __future__ import annotations

import logging
from io import BytesIO
from typing import Protocol, Union

from PIL import Image

from .config import RASTER_DPI, RASTER_ENGINE
from .utils import missing_binaries

logger = logging.getLogger(__name__)

RasterBuffer = Union[bytes, Image.Image]

POPPLER_BINARIES = ("pdftoppm", "pdfinfo")


class PageRasterizer(Protocol):
    name: str

    def unavailable_reason(self) -> str | None:
        """Return why the engine cannot run here, or ``None`` if it can."""

    def rasterize(self, pdf_bytes: bytes, page_number: int) -> RasterBuffer | None:
        """Render one page; ``None`` means there is no such page."""

    def page_count(self, pdf_bytes: bytes) -> int:
        """Total pages in the document."""


class Pdf2ImageRasterizer:
    """Poppler ``pdftoppm`` via pdf2image."""

    name = "pdf2image"

    def __init__(self, dpi: int = RASTER_DPI) -> None:
        self.dpi = dpi

    def unavailable_reason(self) -> str | None:
        try:
            import pdf2image  # noqa: F401
        except ImportError:
            return "pdf2image is not installed"
        missing = missing_binaries(POPPLER_BINARIES)
        if missing:
            return f"missing poppler binaries: {', '.join(missing)}"
        return None

    def rasterize(self, pdf_bytes: bytes, page_number: int) -> RasterBuffer | None:
        from pdf2image import convert_from_bytes

        images = convert_from_bytes(
            pdf_bytes,
            dpi=self.dpi,
            first_page=page_number,
            last_page=page_number,
            fmt="png",
        )
        # pdf2image clamps last_page to the page count and returns [] past the end
        if not images:
            return None
        return images[0]

    def page_count(self, pdf_bytes: bytes) -> int:
        from pdf2image import pdfinfo_from_bytes

        return int(pdfinfo_from_bytes(pdf_bytes)["Pages"])


class PyMuPDFRasterizer:
    """In-process rendering with PyMuPDF (no system binaries)."""

    name = "pymupdf"

    def __init__(self, dpi: int = RASTER_DPI) -> None:
        self.dpi = dpi

    def unavailable_reason(self) -> str | None:
        try:
            import fitz  # noqa: F401
        except ImportError:
            return "PyMuPDF is not installed"
        return None

    def rasterize(self, pdf_bytes: bytes, page_number: int) -> RasterBuffer | None:
        import fitz  # PyMuPDF

        doc = fitz.open(stream=pdf_bytes, filetype="pdf")
        try:
            if page_number < 1 or page_number > doc.page_count:
                return None
            pix = doc[page_number - 1].get_pixmap(dpi=self.dpi)
            return Image.open(BytesIO(pix.tobytes("png")))
        finally:
            doc.close()

    def page_count(self, pdf_bytes: bytes) -> int:
        import fitz  # PyMuPDF

        doc = fitz.open(stream=pdf_bytes, filetype="pdf")
        try:
            return doc.page_count
        finally:
            doc.close()


RASTERIZERS: dict[str, type] = {
    Pdf2ImageRasterizer.name: Pdf2ImageRasterizer,
    PyMuPDFRasterizer.name: PyMuPDFRasterizer,
}


def get_rasterizer(engine: str | None = None, dpi: int = RASTER_DPI) -> PageRasterizer:
    """Return the configured rasterization engine (``RASTER_ENGINE`` by default)."""

    name = (engine or RASTER_ENGINE).strip().lower()
    try:
        cls = RASTERIZERS[name]
    except KeyError:
        raise ValueError(
            f"Unknown raster engine {name!r}; choose one of {', '.join(sorted(RASTERIZERS))}"
        ) from None
    return cls(dpi=dpi)


def resolve_rasterizer(
    engine: str | None = None, dpi: int = RASTER_DPI
) -> tuple[PageRasterizer | None, list[str]]:
    """Return the first available engine, the configured one first.

    The second item says why each skipped engine could not run; the engine
    is ``None`` when none is available.
    """

    preferred = get_rasterizer(engine, dpi=dpi)
    candidates = [preferred] + [
        cls(dpi=dpi) for name, cls in RASTERIZERS.items() if name != preferred.name
    ]
    reasons: list[str] = []
    for candidate in candidates:
        unavailable = candidate.unavailable_reason()
        if unavailable is None:
            if candidate is not preferred:
                logger.info(
                    "%s; rasterizing with %s instead", "; ".join(reasons), candidate.name
                )
            return candidate, reasons
        reasons.append(f"{candidate.name} unavailable: {unavailable}")
    return None, reasons
