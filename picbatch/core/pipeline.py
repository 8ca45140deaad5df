"""
Transform Pipeline
==================
Turns a source bitmap plus an EditorSettings value into a new bitmap.

Stage order (fixed):
1. Canvas allocation at the source size
2. Opaque white background for jpeg output
3. Brightness / contrast / saturation on the source and the jpeg background
4. Rotation about the centre, clipped to the original canvas
5. Noise on every non-transparent pixel
6. (filter reset, adjustments never reach the watermarks)
7. Text watermark
8. Image watermark
9. Padding / letterbox to the target box

Technical Notes:
- Every stage takes and returns an explicit PIL image, no stage keeps
  drawing state between calls
- The source image is never modified
- The noise random source is injectable (anything with numpy's
  Generator.uniform(low, high, size) signature)
"""

import logging
from typing import Optional, Tuple

import numpy as np
from PIL import Image

from .color import adjust_colors, parse_color
from .settings import EditorSettings, PaddingSettings
from .watermark import WatermarkRenderer

logger = logging.getLogger(__name__)

JPEG_BACKGROUND = (255, 255, 255, 255)
CLEAR = (0, 0, 0, 0)
# Default canvas fill style, used when the padding colour does not parse
PADDING_FALLBACK = (0, 0, 0, 255)


# =============================================================================
# STAGES
# =============================================================================

def allocate_canvas(
        size: Tuple[int, int],
        output_format: str
) -> Image.Image:
    """
    Create the working canvas.

    jpeg has no alpha channel, so its canvas starts opaque white and
    transparent source regions end up white instead of black.
    """
    fill = JPEG_BACKGROUND if output_format == "jpeg" else CLEAR
    return Image.new("RGBA", size, fill)


def rotate_about_center(
        canvas: Image.Image,
        content: Image.Image,
        degrees: float
) -> Image.Image:
    """
    Rotate `content` about its centre and draw it onto `canvas`.

    Positive degrees rotate clockwise. The canvas size never changes, so
    rotated corners are clipped and newly exposed corners keep whatever
    the canvas held.
    """
    # PIL rotates counter-clockwise; 0 degrees returns an exact copy
    rotated = content.rotate(
        -degrees,
        resample=Image.Resampling.BICUBIC,
        expand=False,
        fillcolor=CLEAR
    )

    if canvas.getextrema()[3] == (0, 0):
        # Drawing onto a fully transparent canvas leaves the layer as is
        return rotated

    return Image.alpha_composite(canvas, rotated)


def apply_noise(
        image: Image.Image,
        amount: float,
        rng=None
) -> Image.Image:
    """
    Add uniform noise in [-amount/2, +amount/2] to every visible pixel.

    One offset is drawn per pixel and added to R, G and B alike. Pixels
    whose alpha is exactly 0 are left untouched.

    Args:
        image: RGBA image.
        amount: Noise amount, 0 disables the stage.
        rng: Random source, defaults to numpy.random.default_rng().

    Returns:
        New RGBA image (or a copy of the input when amount is 0).
    """
    if amount <= 0:
        return image.copy()

    if rng is None:
        rng = np.random.default_rng()

    arr = np.array(image, dtype=np.uint8)
    height, width = arr.shape[:2]

    offsets = np.asarray(
        rng.uniform(-amount / 2.0, amount / 2.0, size=(height, width)),
        dtype=np.float32
    )
    visible = arr[..., 3] != 0

    rgb = arr[..., :3].astype(np.float32) + offsets[..., np.newaxis]
    rgb = np.clip(np.rint(rgb), 0, 255).astype(np.uint8)

    arr[..., :3] = np.where(visible[..., np.newaxis], rgb, arr[..., :3])
    return Image.fromarray(arr)


def apply_padding(
        image: Image.Image,
        padding: PaddingSettings
) -> Image.Image:
    """
    Letterbox the image into a target_width x target_height canvas.

    The content is scaled by min(W / w, H / h), which enlarges small
    images as well as shrinking large ones, and centred on a canvas
    filled with the background colour. Aspect ratio is always kept.
    """
    if not padding.enabled:
        return image

    target_w, target_h = padding.target_width, padding.target_height
    try:
        background = parse_color(padding.background_color)
    except ValueError:
        logger.warning("Invalid padding colour %r, using black", padding.background_color)
        background = PADDING_FALLBACK
    padded = Image.new("RGBA", (target_w, target_h), background)

    scale = min(target_w / image.width, target_h / image.height)
    scaled_w = max(1, int(round(image.width * scale)))
    scaled_h = max(1, int(round(image.height * scale)))

    content = image
    if (scaled_w, scaled_h) != image.size:
        content = image.resize((scaled_w, scaled_h), Image.Resampling.LANCZOS)

    offset_x = (target_w - scaled_w) // 2
    offset_y = (target_h - scaled_h) // 2

    layer = Image.new("RGBA", (target_w, target_h), CLEAR)
    layer.paste(content, (offset_x, offset_y))

    logger.debug(
        "Padding %dx%d -> %dx%d (scale %.4f, offset %d,%d)",
        image.width, image.height, target_w, target_h, scale, offset_x, offset_y
    )
    return Image.alpha_composite(padded, layer)


# =============================================================================
# PIPELINE
# =============================================================================

class ImageTransformer:
    """
    Runs the fixed stage order for one image.

    The transformer itself holds no per-image state, only a font cache,
    so one instance can be reused for every image of a batch.
    """

    def __init__(self, font_path: Optional[str] = None, rng=None):
        """
        Args:
            font_path: Optional custom TTF font for text watermarks.
            rng: Optional random source for the noise stage.
        """
        self._renderer = WatermarkRenderer(font_path)
        self._rng = rng

    def clear_cache(self):
        self._renderer.clear_cache()

    def transform(
            self,
            source: Image.Image,
            settings: EditorSettings,
            watermark: Optional[Image.Image] = None
    ) -> Image.Image:
        """
        Apply every enabled stage to `source`.

        Args:
            source: Decoded source image, left unmodified.
            settings: Settings for this request. Out-of-range values are
                      clamped, never rejected. An unparseable text colour
                      skips the text watermark.
            watermark: Watermark bitmap, falls back to
                       settings.image_watermark.source when None.

        Returns:
            A new RGBA image.
        """
        settings = settings.clamped()

        if source.mode != "RGBA":
            source = source.convert("RGBA")

        width, height = source.size

        # Stage 1-2: canvas + background
        canvas = allocate_canvas(source.size, settings.output_format)

        # Stage 3: colour adjustment, the jpeg white fill is filtered too
        adjustment = (settings.brightness, settings.contrast, settings.saturation)
        if settings.output_format == "jpeg" and settings.has_color_adjustment:
            canvas = adjust_colors(canvas, *adjustment)
        content = adjust_colors(source, *adjustment)

        # Stage 4: rotation
        canvas = rotate_about_center(canvas, content, settings.rotation)

        # Stage 5: noise
        if settings.noise > 0:
            canvas = apply_noise(canvas, settings.noise, self._rng)

        # Stage 6: nothing carries over, watermarks are drawn unfiltered

        # Stage 7: text watermark
        text_wm = settings.text_watermark
        if text_wm.enabled and text_wm.text:
            font_size = (text_wm.font_size_units / 1000.0) * min(width, height)
            try:
                canvas = self._renderer.draw_text(canvas, text_wm, font_size)
            except ValueError as e:
                logger.warning("Skipping text watermark: %s", e)

        # Stage 8: image watermark
        image_wm = settings.image_watermark
        if watermark is None:
            watermark = image_wm.source
        if image_wm.enabled and watermark is not None:
            try:
                canvas = self._renderer.draw_image(canvas, image_wm, watermark, width)
            except (OSError, ValueError) as e:
                logger.warning("Could not apply image watermark: %s", e)

        # Stage 9: padding
        return apply_padding(canvas, settings.padding)


def transform(
        source: Image.Image,
        settings: EditorSettings,
        watermark: Optional[Image.Image] = None,
        rng=None
) -> Image.Image:
    """Convenience wrapper around a one-off ImageTransformer."""
    return ImageTransformer(rng=rng).transform(source, settings, watermark)
