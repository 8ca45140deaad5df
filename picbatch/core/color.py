"""
Color Helpers
=============
Colour string parsing and the brightness/contrast/saturation transform.

Technical Notes:
- The adjustment follows CSS filter semantics:
  brightness(b) -> v * b
  contrast(c)   -> (v - 0.5) * c + 0.5
  saturate(s)   -> luminance-preserving matrix (Rec. 709 weights)
- Functions are applied in that order and the result is clamped to
  [0, 255] after every step, the same way a filter chain is composed
- Alpha is never touched
"""

from typing import Tuple

import numpy as np
from PIL import Image, ImageColor


def parse_color(value: str) -> Tuple[int, int, int, int]:
    """
    Parse a CSS-style colour string into an RGBA tuple.

    Accepts "#rgb", "#rrggbb", "#rrggbbaa", named colours and rgb()/hsl().

    Raises:
        ValueError: If the string is not a recognised colour.
    """
    return ImageColor.getcolor(str(value).strip(), "RGBA")


def _saturation_matrix(s: float) -> np.ndarray:
    return np.array([
        [0.213 + 0.787 * s, 0.715 - 0.715 * s, 0.072 - 0.072 * s],
        [0.213 - 0.213 * s, 0.715 + 0.285 * s, 0.072 - 0.072 * s],
        [0.213 - 0.213 * s, 0.715 - 0.715 * s, 0.072 + 0.928 * s],
    ], dtype=np.float32)


def adjust_colors(
        image: Image.Image,
        brightness: float = 100,
        contrast: float = 100,
        saturation: float = 100
) -> Image.Image:
    """
    Apply brightness, contrast and saturation as one per-pixel transform.

    Args:
        image: Source image (any mode, converted to RGBA).
        brightness: Percentage, 100 = identity.
        contrast: Percentage, 100 = identity.
        saturation: Percentage, 100 = identity.

    Returns:
        A new RGBA image. When all three values are 100 the pixels are
        returned untouched (a copy of the input, no arithmetic applied).
    """
    if image.mode != "RGBA":
        image = image.convert("RGBA")

    if brightness == 100 and contrast == 100 and saturation == 100:
        return image.copy()

    arr = np.asarray(image, dtype=np.float32)
    rgb = arr[..., :3]

    if brightness != 100:
        rgb = np.clip(rgb * (brightness / 100.0), 0, 255)

    if contrast != 100:
        c = contrast / 100.0
        rgb = np.clip((rgb - 127.5) * c + 127.5, 0, 255)

    if saturation != 100:
        matrix = _saturation_matrix(saturation / 100.0)
        rgb = np.clip(rgb @ matrix.T, 0, 255)

    out = np.empty(arr.shape, dtype=np.uint8)
    out[..., :3] = np.rint(rgb).astype(np.uint8)
    out[..., 3] = arr[..., 3].astype(np.uint8)
    return Image.fromarray(out)
