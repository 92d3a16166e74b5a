"""Centralized configuration for page limits, encoding and model settings.

All env-driven settings live here so there is a single source of truth.
Public functions take these values as keyword defaults, so callers can
override any of them per call without touching the environment.
"""

from __future__ import annotations

import logging
import os

logger = logging.getLogger(__name__)


def _env_bool(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in ("1", "true", "yes")


def _env_int(name: str, default: int, lo: int = 1, hi: int = 10_000) -> int:
    try:
        return max(lo, min(hi, int(os.environ.get(name, str(default)))))
    except (TypeError, ValueError):
        return default


def _env_str(name: str, default: str) -> str:
    value = os.environ.get(name, "").strip()
    return value or default


# ---------------------------------------------------------------------------
# Page geometry and encoding
# ---------------------------------------------------------------------------
MAX_PAGE_WIDTH: int = _env_int("MAX_PAGE_WIDTH", default=1024, lo=16, hi=8192)
MAX_PAGE_HEIGHT: int = _env_int("MAX_PAGE_HEIGHT", default=1448, lo=16, hi=8192)
IMAGE_MAX_WIDTH: int = _env_int("IMAGE_MAX_WIDTH", default=1024, lo=16, hi=8192)
IMAGE_MAX_HEIGHT: int = _env_int("IMAGE_MAX_HEIGHT", default=1024, lo=16, hi=8192)
JPEG_QUALITY: int = _env_int("JPEG_QUALITY", default=85, lo=1, hi=95)
PAGE_ENCODING = "jpeg"

# ---------------------------------------------------------------------------
# PDF limits
# ---------------------------------------------------------------------------
MAX_PDF_PAGES: int = _env_int("MAX_PDF_PAGES", default=20, hi=500)
TEXT_CHARS_PER_PAGE: int = _env_int("TEXT_CHARS_PER_PAGE", default=2000, lo=100, hi=100_000)
MAX_RENDER_CHARS: int = _env_int("MAX_RENDER_CHARS", default=3000, lo=100, hi=100_000)
RASTER_DPI: int = _env_int("RASTER_DPI", default=100, lo=36, hi=600)
RASTER_RETRIES: int = _env_int("RASTER_RETRIES", default=1, lo=0, hi=5)
RASTER_ENGINE: str = _env_str("RASTER_ENGINE", "pdf2image").lower()
ENCODE_WORKERS: int = _env_int("ENCODE_WORKERS", default=4, hi=32)
MAX_FILE_SIZE_BYTES: int = _env_int(
    "MAX_FILE_SIZE_BYTES", default=10 * 1024 * 1024, lo=1, hi=500 * 1024 * 1024,
)

# ---------------------------------------------------------------------------
# Generative model endpoint (OpenAI-compatible, OpenRouter by default)
# ---------------------------------------------------------------------------
OPENROUTER_API_KEY: str = os.environ.get("OPENROUTER_API_KEY", "")
OPENROUTER_BASE_URL: str = _env_str("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1")
VISION_MODEL: str = _env_str("VISION_MODEL", "google/gemini-2.0-flash-001")
ANALYSIS_MODEL: str = _env_str("ANALYSIS_MODEL", "google/gemini-2.0-flash-001")
MODEL_TIMEOUT: int = _env_int("MODEL_TIMEOUT", default=120, hi=1800)
MODEL_MAX_RETRIES: int = _env_int("MODEL_MAX_RETRIES", default=2, lo=0, hi=10)
MODEL_MAX_TOKENS: int = _env_int("MODEL_MAX_TOKENS", default=8000, lo=256, hi=200_000)
APP_TITLE: str = _env_str("APP_TITLE", "Course Checker")

LOG_LEVEL: str = _env_str("LOG_LEVEL", "INFO").upper()
DEBUG_RAW_RESPONSES: bool = _env_bool("DEBUG_RAW_RESPONSES")


def log_startup_config() -> None:
    """Log one line summarising active configuration."""
    logger.info(
        "docvision config: MAX_PAGE=%dx%d IMAGE_MAX=%dx%d JPEG_QUALITY=%d "
        "MAX_PDF_PAGES=%d TEXT_CHARS_PER_PAGE=%d MAX_RENDER_CHARS=%d "
        "RASTER_ENGINE=%s RASTER_DPI=%d RASTER_RETRIES=%d ENCODE_WORKERS=%d "
        "VISION_MODEL=%s ANALYSIS_MODEL=%s API_KEY_SET=%s",
        MAX_PAGE_WIDTH, MAX_PAGE_HEIGHT, IMAGE_MAX_WIDTH, IMAGE_MAX_HEIGHT,
        JPEG_QUALITY, MAX_PDF_PAGES, TEXT_CHARS_PER_PAGE, MAX_RENDER_CHARS,
        RASTER_ENGINE, RASTER_DPI, RASTER_RETRIES, ENCODE_WORKERS,
        VISION_MODEL, ANALYSIS_MODEL, bool(OPENROUTER_API_KEY),
    )
