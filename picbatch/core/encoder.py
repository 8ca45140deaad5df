"""
Encoder / Decoder
=================
Byte-level boundary of the pipeline: encoded bytes in, encoded bytes out.

Technical Notes:
- jpeg has no alpha, transparent pixels are flattened onto white
- png is lossless, the quality value is ignored
- webp receives the quality value unchanged (Pillow's lossy factor)
- Decoding is eager: a truncated or corrupt file fails here, not later
  inside a pipeline stage
"""

import io
import logging
from typing import Optional

from PIL import Image, ImageOps, UnidentifiedImageError

from .settings import OUTPUT_FORMATS

logger = logging.getLogger(__name__)

_PIL_FORMATS = {"jpeg": "JPEG", "png": "PNG", "webp": "WEBP"}
_EXTENSIONS = {"jpeg": ".jpeg", "png": ".png", "webp": ".webp"}
_MIME_TYPES = {"jpeg": "image/jpeg", "png": "image/png", "webp": "image/webp"}


class ImageDecodeError(ValueError):
    """Raised when source bytes cannot be decoded into a bitmap."""


class UnsupportedFormatError(ValueError):
    """Raised for an output format other than jpeg, png or webp."""


def normalize_format(fmt: str) -> str:
    """
    Validate an output format name.

    Raises:
        UnsupportedFormatError: If the format is not supported.
    """
    key = str(fmt).strip().lower()
    if key not in OUTPUT_FORMATS:
        raise UnsupportedFormatError(
            f"Unsupported output format: {fmt!r}. Available: {', '.join(OUTPUT_FORMATS)}"
        )
    return key


def file_extension(fmt: str) -> str:
    return _EXTENSIONS[normalize_format(fmt)]


def mime_type(fmt: str) -> str:
    return _MIME_TYPES[normalize_format(fmt)]


def jpeg_quality_factor(quality: float) -> float:
    """Map a 1-100 quality to the encoder's real-valued [0.01, 1.0] factor."""
    return max(0.01, min(1.0, quality / 100.0))


def _flatten(image: Image.Image, background=(255, 255, 255)) -> Image.Image:
    """Composite an image with alpha onto an opaque background (RGB)."""
    if image.mode == "RGB":
        return image
    if image.mode != "RGBA":
        image = image.convert("RGBA")
    rgb = Image.new("RGB", image.size, background)
    rgb.paste(image, mask=image.getchannel("A"))
    return rgb


def encode(image: Image.Image, fmt: str, quality: int = 92) -> bytes:
    """
    Serialise an image to bytes in the requested format.

    Args:
        image: Image to encode (RGBA or RGB).
        fmt: "jpeg", "png" or "webp".
        quality: 1-100. Used as the lossy factor for jpeg and webp,
                 ignored for png.

    Returns:
        The encoded byte stream.

    Raises:
        UnsupportedFormatError: If the format is not supported.
    """
    fmt = normalize_format(fmt)
    buffer = io.BytesIO()

    if fmt == "jpeg":
        factor = jpeg_quality_factor(quality)
        _flatten(image).save(buffer, "JPEG", quality=max(1, int(round(factor * 100))))
    elif fmt == "png":
        image.save(buffer, "PNG")
    else:
        image.save(buffer, "WEBP", quality=max(1, min(100, int(round(quality)))))

    data = buffer.getvalue()
    logger.debug("Encoded %dx%d as %s: %d bytes", image.width, image.height, fmt, len(data))
    return data


def decode(data: bytes) -> Image.Image:
    """
    Decode image bytes into an RGBA bitmap.

    EXIF orientation is applied, so phone photos come out upright.

    Raises:
        ImageDecodeError: If the bytes are empty, truncated or not an image.
    """
    if not data:
        raise ImageDecodeError("Empty image data")

    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            img = ImageOps.exif_transpose(img)
            return img.convert("RGBA")
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as e:
        raise ImageDecodeError(f"Cannot decode image: {e}") from e


def load_watermark(data: Optional[bytes]) -> Optional[Image.Image]:
    """
    Decode a watermark source, returning None when it is missing or broken.

    A broken watermark is never fatal: the failure is logged and the
    caller renders without it.
    """
    if data is None:
        return None
    try:
        return decode(data)
    except ImageDecodeError as e:
        logger.warning("Could not load watermark image, skipping it: %s", e)
        return None
