"""Raster page encoder: bound the size and re-encode one image for a vision model."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from io import BytesIO
from typing import Sequence, Union

from PIL import Image, ImageOps, UnidentifiedImageError

from .config import ENCODE_WORKERS, JPEG_QUALITY, MAX_PAGE_HEIGHT, MAX_PAGE_WIDTH, PAGE_ENCODING
from .schema import Page
from .utils import EncodingError

logger = logging.getLogger(__name__)

RasterInput = Union[bytes, bytearray, Image.Image]


def _open_image(raw: RasterInput) -> Image.Image:
    if isinstance(raw, Image.Image):
        return raw
    if not raw:
        raise EncodingError("Empty image buffer.")
    try:
        image = Image.open(BytesIO(bytes(raw)))
        image.load()
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as exc:
        raise EncodingError(f"Not a decodable raster image: {exc}") from exc
    return image


def _to_rgb(image: Image.Image) -> Image.Image:
    """Convert to RGB, flattening any transparency onto white."""

    if image.mode == "P" and "transparency" in image.info:
        image = image.convert("RGBA")
    if image.mode in ("RGBA", "LA"):
        background = Image.new("RGB", image.size, (255, 255, 255))
        background.paste(image, mask=image.getchannel("A"))
        return background
    if image.mode != "RGB":
        return image.convert("RGB")
    return image


def encode_image(
    raw: RasterInput,
    max_width: int = MAX_PAGE_WIDTH,
    max_height: int = MAX_PAGE_HEIGHT,
    quality: int = JPEG_QUALITY,
    page_number: int = 1,
    source: str = "image",
) -> Page:
    """Downscale *raw* to fit ``max_width x max_height`` and re-encode as JPEG.

    Aspect ratio is preserved and smaller images are never upscaled. Raises
    ``EncodingError`` if *raw* is not a decodable raster image.
    """

    image = _open_image(raw)
    try:
        image = ImageOps.exif_transpose(image)
        image = _to_rgb(image)
        if image.width > max_width or image.height > max_height:
            # thumbnail() mutates in place; keep caller-owned images intact
            image = image.copy()
            image.thumbnail((max_width, max_height), Image.LANCZOS)
        buf = BytesIO()
        image.save(buf, format="JPEG", quality=max(1, min(95, quality)), optimize=True)
    except (OSError, ValueError) as exc:
        raise EncodingError(f"Failed to re-encode image: {exc}") from exc
    return Page(
        data=buf.getvalue(),
        encoding=PAGE_ENCODING,
        width=image.width,
        height=image.height,
        page_number=page_number,
        source=source,
    )


def _default_encode_workers() -> int:
    return max(1, min(32, ENCODE_WORKERS))


def encode_many(
    raws: Sequence[tuple[int, RasterInput]],
    max_width: int = MAX_PAGE_WIDTH,
    max_height: int = MAX_PAGE_HEIGHT,
    quality: int = JPEG_QUALITY,
    source: str = "raster",
    workers: int | None = None,
) -> list[Page | None]:
    """Encode ``(page_number, raw)`` pairs, returning results in input order.

    A page that fails to encode yields ``None`` in its slot and a warning;
    the remaining pages are unaffected.
    """

    def _one(item: tuple[int, RasterInput]) -> Page | None:
        page_number, raw = item
        try:
            return encode_image(
                raw,
                max_width=max_width,
                max_height=max_height,
                quality=quality,
                page_number=page_number,
                source=source,
            )
        except EncodingError as exc:
            logger.warning("Skipping page %d: %s", page_number, exc)
            return None

    if not raws:
        return []
    n_workers = workers if workers is not None else _default_encode_workers()
    n_workers = min(n_workers, len(raws))
    if n_workers <= 1:
        return [_one(item) for item in raws]
    with ThreadPoolExecutor(max_workers=n_workers) as executor:
        return list(executor.map(_one, raws))
