"""PDF text layer for the text fallback tier (PyMuPDF)."""

from __future__ import annotations

import fitz  # PyMuPDF


def extract_full_text(pdf_bytes: bytes) -> str:
    """Return the embedded text of every non-blank page, newline-joined.

    Scanned PDFs without a text layer give an empty string.
    """

    with fitz.open(stream=pdf_bytes, filetype="pdf") as doc:
        texts = (page.get_text().strip() for page in doc)
        return "\n".join(text for text in texts if text)
