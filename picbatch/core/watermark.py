"""
Watermark Renderer
==================
Composites text and image watermarks onto a working canvas using Pillow.

Technical Notes:
- Each watermark is drawn onto its own transparent overlay which is then
  alpha-composited over the canvas, so the canvas is never drawn on in place
- Opacity multiplies the overlay's alpha channel (0.0 - 1.0)
- Text is single line, left aligned, with the top of the ascender at y
- Positions are absolute pixels, negative or out-of-bounds positions clip
"""

import logging
import threading
from pathlib import Path
from typing import Optional

import numpy as np
from PIL import Image, ImageDraw, ImageFont

from .color import parse_color
from .position import resolve_position
from .settings import ImageWatermark, TextWatermark

logger = logging.getLogger(__name__)

# Tried in order when no custom font is configured
SYSTEM_FONT_CANDIDATES = (
    "arial.ttf",  # Windows
    "/System/Library/Fonts/Helvetica.ttc",  # macOS
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",  # Linux
    "DejaVuSans.ttf",
)


def _apply_opacity(layer: Image.Image, opacity: float) -> Image.Image:
    """Scale the alpha channel of an RGBA layer by `opacity`."""
    if opacity >= 1.0:
        return layer
    arr = np.array(layer, dtype=np.uint8)
    arr[..., 3] = np.rint(arr[..., 3].astype(np.float32) * opacity).astype(np.uint8)
    return Image.fromarray(arr)


class WatermarkRenderer:
    """
    Draws text and image watermarks.

    Fonts are loaded lazily and cached per pixel size, since loading a
    TrueType face is far more expensive than rendering a single line.
    One renderer is shared by all batch threads, so font lookup and text
    rasterisation run under a lock.
    """

    def __init__(self, font_path: Optional[str] = None):
        """
        Args:
            font_path: Optional path to a custom TTF font file.
                      If None, the first available system font is used.
        """
        self._font_path = font_path
        self._cached_fonts: dict[int, ImageFont.ImageFont] = {}
        self._font_lock = threading.RLock()

    def clear_cache(self):
        with self._font_lock:
            self._cached_fonts.clear()

    def _get_font(self, size: int):
        """Get or create a cached font object for the given pixel size."""
        with self._font_lock:
            return self._load_font(size)

    def _load_font(self, size: int):
        if size not in self._cached_fonts:
            candidates = list(SYSTEM_FONT_CANDIDATES)
            if self._font_path and Path(self._font_path).exists():
                candidates.insert(0, self._font_path)

            font = None
            for candidate in candidates:
                try:
                    font = ImageFont.truetype(candidate, size)
                    break
                except OSError:
                    continue

            if font is None:
                # Pillow's bundled scalable font
                font = ImageFont.load_default(size)

            self._cached_fonts[size] = font

        return self._cached_fonts[size]

    def draw_text(
            self,
            canvas: Image.Image,
            text_wm: TextWatermark,
            font_size: float
    ) -> Image.Image:
        """
        Draw a single line of text onto the canvas.

        Args:
            canvas: RGBA working canvas.
            text_wm: Text watermark settings (already clamped).
            font_size: Font size in pixels.

        Returns:
            New RGBA image with the text composited.

        Raises:
            ValueError: If the colour string cannot be parsed.
        """
        r, g, b, a = parse_color(text_wm.color)
        alpha = int(round(a * text_wm.opacity))
        layer = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
        draw = ImageDraw.Draw(layer)

        with self._font_lock:
            font = self._get_font(max(1, int(round(font_size))))
            x, y = resolve_position(
                canvas.width, canvas.height,
                font.getlength(text_wm.text), font_size,
                text_wm.position
            )
            draw.text((x, y), text_wm.text, font=font, fill=(r, g, b, alpha), anchor="la")

        return Image.alpha_composite(canvas, layer)

    def draw_image(
            self,
            canvas: Image.Image,
            image_wm: ImageWatermark,
            bitmap: Image.Image,
            main_width: int
    ) -> Image.Image:
        """
        Scale a watermark bitmap and composite it onto the canvas.

        The watermark is resized so its width is `size_percent` % of
        `main_width`, keeping its aspect ratio.

        Args:
            canvas: RGBA working canvas.
            image_wm: Image watermark settings (already clamped).
            bitmap: Decoded watermark image.
            main_width: Width of the main image in pixels.

        Returns:
            New RGBA image with the watermark composited.
        """
        if bitmap.mode != "RGBA":
            bitmap = bitmap.convert("RGBA")

        scale = (image_wm.size_percent / 100.0) * (main_width / bitmap.width)
        wm_width = max(1, int(round(bitmap.width * scale)))
        wm_height = max(1, int(round(bitmap.height * scale)))

        if (wm_width, wm_height) != bitmap.size:
            bitmap = bitmap.resize((wm_width, wm_height), Image.Resampling.LANCZOS)

        bitmap = _apply_opacity(bitmap, image_wm.opacity)

        x, y = resolve_position(
            canvas.width, canvas.height, wm_width, wm_height, image_wm.position
        )

        layer = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
        # Straight copy: the layer is empty, so no mask blending is wanted
        layer.paste(bitmap, (int(round(x)), int(round(y))))

        logger.debug("Image watermark %dx%d at (%s, %s)", wm_width, wm_height, x, y)
        return Image.alpha_composite(canvas, layer)
