"""Error taxonomy and small helpers shared by normalization and recovery."""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Iterable

PDF_EXTENSIONS = frozenset({".pdf"})
IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png"})
MIME_KINDS = {
    "application/pdf": "pdf",
    "image/jpeg": "image",
    "image/jpg": "image",
    "image/png": "image",
}


class DocVisionError(Exception):
    """Base exception for normalization and model-boundary errors."""


class EncodingError(DocVisionError):
    """Raised when a single raster input cannot be decoded or re-encoded."""


class UnsupportedFileKindError(DocVisionError):
    """Raised when a document kind is neither ``pdf`` nor ``image``."""

    def __init__(self, kind: str) -> None:
        self.kind = kind
        super().__init__(f"Unsupported file kind: {kind!r} (expected 'pdf' or 'image')")


class DocumentProcessingError(DocVisionError):
    """Raised when no usable page sequence can be produced for a document."""

    def __init__(self, message: str, kind: str = "pdf", stage: str = "") -> None:
        self.kind = kind
        self.stage = stage
        prefix = f"[{kind}:{stage}] " if stage else f"[{kind}] "
        super().__init__(prefix + message)


class ExternalCapabilityError(DocVisionError):
    """Raised when the generative model call fails or returns an unusable envelope.

    ``reason`` is one of ``no_response``, ``invalid_envelope`` or
    ``empty_content``.
    """

    NO_RESPONSE = "no_response"
    INVALID_ENVELOPE = "invalid_envelope"
    EMPTY_CONTENT = "empty_content"

    def __init__(self, reason: str, message: str) -> None:
        self.reason = reason
        super().__init__(f"{reason}: {message}")


class FileTooLargeError(DocVisionError):
    """Raised when an input file exceeds the configured size limit."""


def detect_kind(filename: str, mimetype: str | None = None) -> str:
    """Return ``pdf`` or ``image`` for known inputs, else the bare extension.

    Unknown kinds are returned rather than rejected here so that the
    normalizer can fail with the offending kind in its message.
    """

    if mimetype and mimetype.lower() in MIME_KINDS:
        return MIME_KINDS[mimetype.lower()]
    suffix = Path(filename).suffix.lower()
    if suffix in PDF_EXTENSIONS:
        return "pdf"
    if suffix in IMAGE_EXTENSIONS:
        return "image"
    return suffix.lstrip(".") or "unknown"


def guard_file_size(size: int, max_bytes: int | None) -> None:
    """Raise if size exceeds max_bytes."""

    if max_bytes is None:
        return
    if size > max_bytes:
        raise FileTooLargeError(
            f"File is {size} bytes, exceeds limit of {max_bytes} bytes."
        )


def check_binary_exists(binary_name: str) -> bool:
    """Return True if a binary is available on PATH."""

    return shutil.which(binary_name) is not None


def missing_binaries(binaries: Iterable[str]) -> list[str]:
    """Return the subset of binaries that are not on PATH."""

    return [binary for binary in binaries if not check_binary_exists(binary)]


def chunk_text(text: str, size: int) -> list[str]:
    """Split text into consecutive chunks of at most ``size`` characters."""

    if size < 1:
        raise ValueError("chunk size must be positive")
    return [text[i : i + size] for i in range(0, len(text), size)]
