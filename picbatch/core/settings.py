"""
Editor Settings
===============
Immutable value objects describing one edit/preview request.

Technical Notes:
- A settings object is built once per request and never mutated
- Ranges are enforced by the producer, `clamped()` re-applies them
  so out-of-range input degrades to the nearest bound instead of failing
- `from_dict()` / `to_dict()` speak the camelCase preset shape used by
  the web editor, so exported presets load unchanged
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional

from PIL import Image

OUTPUT_FORMATS = ("jpeg", "png", "webp")

ROTATION_RANGE = (-5.0, 5.0)
ADJUSTMENT_RANGE = (0.0, 200.0)
NOISE_RANGE = (0.0, 100.0)
FONT_SIZE_UNITS_RANGE = (10.0, 100.0)
OPACITY_RANGE = (0.0, 1.0)
SIZE_PERCENT_RANGE = (1.0, 50.0)
QUALITY_RANGE = (1, 100)
PADDING_SIZE_RANGE = (1, 5000)


def _clamp(value, bounds):
    low, high = bounds
    return max(low, min(high, value))


@dataclass(frozen=True)
class Position:
    """Absolute top-left pixel coordinate in source image space."""
    x: float = 0
    y: float = 0


@dataclass(frozen=True)
class TextWatermark:
    enabled: bool = False
    text: str = "© Your Brand"
    color: str = "#ffffff"
    font_size_units: float = 48  # font px = units / 1000 * min(w, h)
    opacity: float = 0.7
    position: Position = field(default_factory=lambda: Position(400, 400))


@dataclass(frozen=True, eq=False)
class ImageWatermark:
    enabled: bool = False
    source: Optional[Image.Image] = None
    size_percent: float = 15  # watermark width as % of main image width
    opacity: float = 0.7
    position: Position = field(default_factory=lambda: Position(200, 200))


@dataclass(frozen=True)
class PaddingSettings:
    enabled: bool = False
    target_width: int = 1200
    target_height: int = 1600
    background_color: str = "#ffffff"


@dataclass(frozen=True, eq=False)
class EditorSettings:
    """
    Complete settings for a single transform + encode request.

    brightness, contrast and saturation are percentages where 100 is
    identity. noise is an amount in [0, 100] where 0 disables the stage.
    """
    rotation: float = 0.0
    brightness: float = 100.0
    contrast: float = 100.0
    saturation: float = 100.0
    noise: float = 0.0
    text_watermark: TextWatermark = field(default_factory=TextWatermark)
    image_watermark: ImageWatermark = field(default_factory=ImageWatermark)
    output_format: str = "jpeg"
    output_quality: int = 92
    padding: PaddingSettings = field(default_factory=PaddingSettings)

    @property
    def has_color_adjustment(self) -> bool:
        return not (self.brightness == 100 and self.contrast == 100 and self.saturation == 100)

    def clamped(self) -> "EditorSettings":
        """
        Return a copy with every numeric field clamped to its valid range.

        The output format is only normalised to lower case here; an
        unknown format is rejected by the encoder, not silently replaced.
        """
        text_wm = self.text_watermark
        image_wm = self.image_watermark
        padding = self.padding

        return replace(
            self,
            rotation=_clamp(self.rotation, ROTATION_RANGE),
            brightness=_clamp(self.brightness, ADJUSTMENT_RANGE),
            contrast=_clamp(self.contrast, ADJUSTMENT_RANGE),
            saturation=_clamp(self.saturation, ADJUSTMENT_RANGE),
            noise=_clamp(self.noise, NOISE_RANGE),
            text_watermark=replace(
                text_wm,
                font_size_units=_clamp(text_wm.font_size_units, FONT_SIZE_UNITS_RANGE),
                opacity=_clamp(text_wm.opacity, OPACITY_RANGE),
            ),
            image_watermark=replace(
                image_wm,
                size_percent=_clamp(image_wm.size_percent, SIZE_PERCENT_RANGE),
                opacity=_clamp(image_wm.opacity, OPACITY_RANGE),
            ),
            output_format=str(self.output_format).lower(),
            output_quality=int(_clamp(round(self.output_quality), QUALITY_RANGE)),
            padding=replace(
                padding,
                target_width=int(_clamp(round(padding.target_width), PADDING_SIZE_RANGE)),
                target_height=int(_clamp(round(padding.target_height), PADDING_SIZE_RANGE)),
            ),
        )

    # ------------------------------------------------------------------
    # Preset (de)serialisation
    # ------------------------------------------------------------------

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EditorSettings":
        """
        Build settings from the editor's camelCase preset shape.

        Missing keys keep their defaults, unknown keys are ignored.
        """
        defaults = cls()
        text_data = data.get("textWatermark") or {}
        image_data = data.get("imageWatermark") or {}
        padding_data = data.get("padding") or {}

        def _position(raw, fallback: Position) -> Position:
            if not raw:
                return fallback
            return Position(raw.get("x", fallback.x), raw.get("y", fallback.y))

        dt = defaults.text_watermark
        text_wm = TextWatermark(
            enabled=bool(data.get("isTextWatermarkEnabled", dt.enabled)),
            text=text_data.get("text", dt.text),
            color=text_data.get("color", dt.color),
            font_size_units=text_data.get("size", dt.font_size_units),
            opacity=text_data.get("opacity", dt.opacity),
            position=_position(text_data.get("position"), dt.position),
        )

        di = defaults.image_watermark
        image_wm = ImageWatermark(
            enabled=bool(data.get("isImageWatermarkEnabled", di.enabled)),
            size_percent=image_data.get("size", di.size_percent),
            opacity=image_data.get("opacity", di.opacity),
            position=_position(image_data.get("position"), di.position),
        )

        dp = defaults.padding
        padding = PaddingSettings(
            enabled=bool(padding_data.get("enabled", dp.enabled)),
            target_width=padding_data.get("width", dp.target_width),
            target_height=padding_data.get("height", dp.target_height),
            background_color=padding_data.get("color", dp.background_color),
        )

        return cls(
            rotation=data.get("rotation", defaults.rotation),
            brightness=data.get("brightness", defaults.brightness),
            contrast=data.get("contrast", defaults.contrast),
            saturation=data.get("saturation", defaults.saturation),
            noise=data.get("noise", defaults.noise),
            text_watermark=text_wm,
            image_watermark=image_wm,
            output_format=data.get("outputFormat", defaults.output_format),
            output_quality=data.get("outputQuality", defaults.output_quality),
            padding=padding,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialise to the camelCase preset shape (without bitmaps)."""
        text_wm = self.text_watermark
        image_wm = self.image_watermark
        return {
            "rotation": self.rotation,
            "isTextWatermarkEnabled": text_wm.enabled,
            "textWatermark": {
                "text": text_wm.text,
                "color": text_wm.color,
                "size": text_wm.font_size_units,
                "opacity": text_wm.opacity,
                "position": {"x": text_wm.position.x, "y": text_wm.position.y},
            },
            "isImageWatermarkEnabled": image_wm.enabled,
            "imageWatermark": {
                "size": image_wm.size_percent,
                "opacity": image_wm.opacity,
                "position": {"x": image_wm.position.x, "y": image_wm.position.y},
            },
            "brightness": self.brightness,
            "contrast": self.contrast,
            "saturation": self.saturation,
            "noise": self.noise,
            "outputQuality": self.output_quality,
            "outputFormat": self.output_format,
            "padding": {
                "enabled": self.padding.enabled,
                "width": self.padding.target_width,
                "height": self.padding.target_height,
                "color": self.padding.background_color,
            },
        }
