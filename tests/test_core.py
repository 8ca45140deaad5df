"""
Tests for the core image pipeline.

Run with: python -m pytest tests/test_core.py -v
"""

import io
import sys
import zipfile
from dataclasses import replace
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import numpy as np
import pytest
from PIL import Image

from picbatch.core import (
    ANCHOR_PRESETS, ArchiveEntry, EditorSettings, ImageDecodeError, ImageJob,
    ImageTransformer, ImageWatermark, PaddingSettings, Position, TextWatermark,
    UnsupportedFormatError, adjust_colors, archive_entries, bundle_zip, decode,
    encode, file_extension, load_watermark, output_filename, parse_color,
    preset_position, process_batch, process_image, resolve_position, transform
)
from picbatch.core.pipeline import apply_noise, apply_padding, rotate_about_center, allocate_canvas


# =============================================================================
# HELPERS
# =============================================================================

class FixedSource:
    """Random source returning the same offset for every pixel."""

    def __init__(self, value: float):
        self.value = value
        self.calls = []

    def uniform(self, low, high, size):
        self.calls.append((low, high, size))
        return np.full(size, self.value, dtype=np.float64)


def create_test_image(width: int = 120, height: int = 80) -> Image.Image:
    """Create an opaque RGBA gradient."""
    arr = np.zeros((height, width, 4), dtype=np.uint8)
    arr[..., 0] = np.linspace(0, 255, width, dtype=np.uint8)[np.newaxis, :]
    arr[..., 1] = np.linspace(0, 255, height, dtype=np.uint8)[:, np.newaxis]
    arr[..., 2] = 128
    arr[..., 3] = 255
    return Image.fromarray(arr)


def solid(size, color) -> Image.Image:
    return Image.new("RGBA", size, color)


def to_bytes(image: Image.Image, fmt: str = "PNG") -> bytes:
    buffer = io.BytesIO()
    if fmt == "JPEG":
        image = image.convert("RGB")
    image.save(buffer, fmt)
    return buffer.getvalue()


def png_settings(**kwargs) -> EditorSettings:
    return replace(EditorSettings(output_format="png"), **kwargs)


# =============================================================================
# SETTINGS
# =============================================================================

def test_default_settings_match_editor_defaults():
    settings = EditorSettings()
    assert settings.rotation == 0
    assert settings.output_format == "jpeg"
    assert settings.output_quality == 92
    assert settings.text_watermark.font_size_units == 48
    assert settings.text_watermark.position == Position(400, 400)
    assert settings.image_watermark.size_percent == 15
    assert settings.padding.target_width == 1200
    assert settings.padding.target_height == 1600
    assert not settings.text_watermark.enabled
    assert not settings.image_watermark.enabled
    assert not settings.padding.enabled


def test_clamped_pulls_values_into_range():
    settings = EditorSettings(
        rotation=45,
        brightness=-20,
        contrast=900,
        saturation=250,
        noise=150,
        text_watermark=TextWatermark(font_size_units=1, opacity=3),
        image_watermark=ImageWatermark(size_percent=90, opacity=-1),
        output_format="PNG",
        output_quality=500,
        padding=PaddingSettings(target_width=0, target_height=99999),
    ).clamped()

    assert settings.rotation == 5
    assert settings.brightness == 0
    assert settings.contrast == 200
    assert settings.saturation == 200
    assert settings.noise == 100
    assert settings.text_watermark.font_size_units == 10
    assert settings.text_watermark.opacity == 1
    assert settings.image_watermark.size_percent == 50
    assert settings.image_watermark.opacity == 0
    assert settings.output_format == "png"
    assert settings.output_quality == 100
    assert settings.padding.target_width == 1
    assert settings.padding.target_height == 5000


def test_settings_from_dict_reads_editor_preset():
    settings = EditorSettings.from_dict({
        "rotation": -2.5,
        "isTextWatermarkEnabled": True,
        "textWatermark": {"text": "hello", "size": 30, "position": {"x": 5, "y": 6}},
        "brightness": 120,
        "outputFormat": "webp",
        "padding": {"enabled": True, "width": 300, "height": 200, "color": "#000000"},
        "somethingElse": 1,
    })

    assert settings.rotation == -2.5
    assert settings.text_watermark.enabled
    assert settings.text_watermark.text == "hello"
    assert settings.text_watermark.font_size_units == 30
    assert settings.text_watermark.position == Position(5, 6)
    # Missing keys keep their defaults
    assert settings.text_watermark.color == "#ffffff"
    assert settings.brightness == 120
    assert settings.contrast == 100
    assert settings.output_format == "webp"
    assert settings.padding == PaddingSettings(True, 300, 200, "#000000")


def test_settings_to_dict_round_trips_through_from_dict():
    original = EditorSettings(rotation=1.5, noise=20, output_format="png",
                              padding=PaddingSettings(True, 640, 480, "#123456"))
    restored = EditorSettings.from_dict(original.to_dict())
    assert restored.to_dict() == original.to_dict()
    assert "src" not in original.to_dict()["imageWatermark"]


# =============================================================================
# COLOR / POSITION
# =============================================================================

def test_parse_color_formats():
    assert parse_color("#ff0000") == (255, 0, 0, 255)
    assert parse_color("#0f0") == (0, 255, 0, 255)
    assert parse_color("#00000080") == (0, 0, 0, 128)
    assert parse_color("white") == (255, 255, 255, 255)
    with pytest.raises(ValueError):
        parse_color("not-a-colour")


def test_adjust_colors_identity_is_bit_exact():
    image = create_test_image()
    result = adjust_colors(image, 100, 100, 100)
    assert result is not image
    assert result.tobytes() == image.tobytes()


def test_adjust_colors_brightness_contrast_saturation():
    red = solid((4, 4), (200, 100, 50, 255))

    darker = np.asarray(adjust_colors(red, brightness=50))
    assert tuple(darker[0, 0]) == (100, 50, 25, 255)

    flat = np.asarray(adjust_colors(red, contrast=0))
    assert tuple(flat[0, 0]) == (128, 128, 128, 255)

    gray = np.asarray(adjust_colors(solid((2, 2), (255, 0, 0, 255)), saturation=0))
    r, g, b, a = gray[0, 0]
    assert r == g == b == 54
    assert a == 255


def test_adjust_colors_keeps_alpha():
    image = solid((3, 3), (10, 20, 30, 77))
    result = np.asarray(adjust_colors(image, brightness=180, contrast=40, saturation=150))
    assert (result[..., 3] == 77).all()


def test_resolve_position_is_identity():
    assert resolve_position(1000, 800, 50, 20, Position(12, 34)) == (12, 34)
    assert resolve_position(10, 10, 500, 500, Position(-5, 900)) == (-5, 900)


def test_preset_positions():
    assert preset_position("top-left") == Position(20, 20)
    assert preset_position("Bottom_Right") == Position(400, 400)
    assert len(ANCHOR_PRESETS) == 7
    with pytest.raises(KeyError):
        preset_position("middle-earth")


# =============================================================================
# PIPELINE STAGES
# =============================================================================

def test_allocate_canvas_jpeg_is_white():
    assert allocate_canvas((3, 2), "jpeg").getpixel((0, 0)) == (255, 255, 255, 255)
    assert allocate_canvas((3, 2), "png").getpixel((0, 0)) == (0, 0, 0, 0)


def test_rotation_zero_is_exact_and_keeps_size():
    image = create_test_image()
    canvas = allocate_canvas(image.size, "png")
    result = rotate_about_center(canvas, image, 0)
    assert result.size == image.size
    assert result.tobytes() == image.tobytes()


def test_rotation_clips_and_exposes_corners():
    image = solid((101, 101), (255, 0, 0, 255))

    result = rotate_about_center(allocate_canvas(image.size, "png"), image, 5)
    assert result.size == (101, 101)
    assert result.getpixel((0, 0))[3] == 0
    assert result.getpixel((50, 50)) == (255, 0, 0, 255)

    result = rotate_about_center(allocate_canvas(image.size, "jpeg"), image, -5)
    assert result.getpixel((0, 0)) == (255, 255, 255, 255)


def test_noise_zero_leaves_image_unchanged():
    image = create_test_image()
    assert apply_noise(image, 0).tobytes() == image.tobytes()


def test_noise_uses_one_offset_per_pixel_and_clamps():
    image = solid((4, 3), (100, 250, 5, 255))
    source = FixedSource(10.0)

    result = np.asarray(apply_noise(image, 40, source))

    assert source.calls == [(-20.0, 20.0, (3, 4))]
    assert tuple(result[0, 0]) == (110, 255, 15, 255)


def test_noise_skips_fully_transparent_pixels():
    arr = np.zeros((2, 2, 4), dtype=np.uint8)
    arr[0, 0] = (10, 20, 30, 0)
    arr[0, 1] = (10, 20, 30, 1)
    arr[1, :] = (10, 20, 30, 255)
    image = Image.fromarray(arr)

    result = np.asarray(apply_noise(image, 50, FixedSource(-8.0)))

    assert tuple(result[0, 0]) == (10, 20, 30, 0)
    assert tuple(result[0, 1]) == (2, 12, 22, 1)
    assert tuple(result[1, 1]) == (2, 12, 22, 255)


def test_noise_with_seeded_generator_is_reproducible():
    image = create_test_image()
    a = apply_noise(image, 30, np.random.default_rng(7))
    b = apply_noise(image, 30, np.random.default_rng(7))
    assert a.tobytes() == b.tobytes()
    assert a.tobytes() != image.tobytes()

    diff = np.asarray(a, dtype=np.int16) - np.asarray(image, dtype=np.int16)
    assert np.abs(diff[..., :3]).max() <= 15


def test_padding_scales_and_centres():
    image = solid((100, 100), (255, 0, 0, 255))
    padded = apply_padding(image, PaddingSettings(True, 200, 100, "#000000"))

    assert padded.size == (200, 100)
    arr = np.asarray(padded)
    assert (arr[:, 50:150] == (255, 0, 0, 255)).all()
    assert (arr[:, :50] == (0, 0, 0, 255)).all()
    assert (arr[:, 150:] == (0, 0, 0, 255)).all()


def test_padding_downscales_without_cropping():
    image = solid((400, 200), (0, 0, 255, 255))
    padded = np.asarray(apply_padding(image, PaddingSettings(True, 100, 100, "#ffffff")))

    # Content is 100x50, centred vertically at y=25..75
    assert (padded[:25] == (255, 255, 255, 255)).all()
    assert (padded[75:] == (255, 255, 255, 255)).all()
    assert tuple(padded[50, 50]) == (0, 0, 255, 255)


def test_padding_enlarges_small_images_to_fit():
    image = solid((50, 50), (0, 255, 0, 255))
    padded = np.asarray(apply_padding(image, PaddingSettings(True, 200, 100, "#000000")))

    assert padded.shape[:2] == (100, 200)
    assert (padded[:, 55:145] == (0, 255, 0, 255)).all()
    assert (padded[:, :45] == (0, 0, 0, 255)).all()


def test_padding_disabled_returns_input():
    image = create_test_image()
    assert apply_padding(image, PaddingSettings(enabled=False)) is image


# =============================================================================
# TRANSFORM
# =============================================================================

def test_identity_transform_png_is_pixel_identical():
    arr = np.asarray(create_test_image()).copy()
    arr[0, 0] = (10, 20, 30, 0)
    arr[1, 1] = (200, 100, 50, 90)
    image = Image.fromarray(arr)

    result = transform(image, png_settings())

    assert result is not image
    assert result.size == image.size
    assert result.tobytes() == image.tobytes()


def test_identity_transform_jpeg_opaque_is_pixel_identical():
    image = create_test_image()
    result = transform(image, EditorSettings(output_format="jpeg"))
    assert result.tobytes() == image.tobytes()


def test_jpeg_turns_transparent_regions_white():
    image = solid((10, 10), (0, 0, 0, 0))
    result = transform(image, EditorSettings(output_format="jpeg"))
    assert result.getpixel((5, 5)) == (255, 255, 255, 255)


def test_jpeg_background_takes_colour_adjustment():
    image = solid((10, 10), (0, 0, 0, 0))

    dimmed = transform(image, EditorSettings(output_format="jpeg", brightness=50))
    assert dimmed.getpixel((5, 5)) == (128, 128, 128, 255)

    # Without a jpeg fill there is nothing behind the source to adjust
    clear = transform(image, png_settings(brightness=50))
    assert clear.getpixel((5, 5)) == (0, 0, 0, 0)


def test_invalid_text_colour_skips_text_watermark():
    image = create_test_image()
    settings = png_settings(text_watermark=TextWatermark(
        enabled=True, text="hi", color="not-a-colour", position=Position(5, 5)
    ))

    result = transform(image, settings)

    assert result.tobytes() == image.tobytes()


def test_invalid_padding_colour_falls_back_to_black():
    image = solid((100, 100), (255, 0, 0, 255))
    settings = png_settings(padding=PaddingSettings(True, 200, 100, "bogus"))

    result = np.asarray(transform(image, settings))

    assert result.shape[:2] == (100, 200)
    assert (result[:, 50:150] == (255, 0, 0, 255)).all()
    assert (result[:, :50] == (0, 0, 0, 255)).all()
    assert (result[:, 150:] == (0, 0, 0, 255)).all()



def test_transform_does_not_modify_source():
    image = create_test_image()
    before = image.tobytes()
    settings = png_settings(
        rotation=3, brightness=150, noise=40,
        text_watermark=TextWatermark(enabled=True, text="Hi", position=Position(5, 5)),
        padding=PaddingSettings(True, 300, 300, "#000000"),
    )
    transform(image, settings, rng=np.random.default_rng(1))
    assert image.tobytes() == before


def test_noise_zero_output_independent_of_rng():
    image = create_test_image()
    settings = png_settings(rotation=2, contrast=130)
    a = transform(image, settings, rng=FixedSource(50))
    b = transform(image, settings, rng=FixedSource(-50))
    assert a.tobytes() == b.tobytes()


def test_out_of_range_settings_are_tolerated():
    image = create_test_image()
    settings = png_settings(rotation=720, brightness=-5, noise=-3, output_quality=0)
    result = transform(image, settings)
    assert result.size == image.size


def test_text_watermark_draws_pixels():
    image = solid((200, 200), (0, 0, 0, 255))
    settings = png_settings(text_watermark=TextWatermark(
        enabled=True, text="WATERMARK", color="#ffffff",
        font_size_units=100, opacity=1.0, position=Position(10, 10)
    ))

    result = np.asarray(transform(image, settings))

    region = result[5:60, 5:195, :3]
    assert region.max() > 0
    # Nothing is drawn above/left of the requested position
    assert result[:5, :, :3].max() == 0


def test_text_watermark_skipped_when_empty_or_disabled():
    image = create_test_image()
    for text_wm in (TextWatermark(enabled=True, text=""),
                    TextWatermark(enabled=False, text="Hidden", position=Position(0, 0))):
        result = transform(image, png_settings(text_watermark=text_wm))
        assert result.tobytes() == image.tobytes()


def test_text_watermark_unaffected_by_color_filters():
    image = solid((400, 400), (100, 100, 100, 255))
    text_wm = TextWatermark(enabled=True, text="WWW", color="#ffffff",
                            font_size_units=100, opacity=1.0, position=Position(10, 10))

    dimmed = np.asarray(transform(image, png_settings(text_watermark=text_wm, brightness=0)))

    # Background is filtered to black, the text itself keeps its full colour
    assert tuple(dimmed[300, 300]) == (0, 0, 0, 255)
    assert dimmed[10:60, 10:200, :3].max() == 255


def test_image_watermark_is_scaled_to_width_percent():
    image = solid((200, 100), (0, 0, 0, 255))
    mark = solid((40, 20), (255, 0, 0, 255))
    settings = png_settings(image_watermark=ImageWatermark(
        enabled=True, size_percent=10, opacity=1.0, position=Position(30, 40)
    ))

    result = np.asarray(transform(image, settings, mark))

    # 10% of 200px -> 20x10 watermark at (30, 40)
    assert (result[40:50, 30:50] == (255, 0, 0, 255)).all()
    assert tuple(result[40, 29]) == (0, 0, 0, 255)
    assert tuple(result[50, 30]) == (0, 0, 0, 255)
    assert tuple(result[39, 30]) == (0, 0, 0, 255)


def test_image_watermark_opacity_and_settings_source():
    image = solid((100, 100), (0, 0, 0, 255))
    mark = solid((10, 10), (255, 255, 255, 255))
    settings = png_settings(image_watermark=ImageWatermark(
        enabled=True, source=mark, size_percent=10, opacity=0.5, position=Position(0, 0)
    ))

    result = transform(image, settings)

    r, g, b, a = result.getpixel((5, 5))
    assert 125 <= r <= 130 and r == g == b
    assert a == 255


def test_image_watermark_clips_at_edges():
    image = solid((50, 50), (0, 0, 0, 255))
    mark = solid((10, 10), (0, 255, 0, 255))
    settings = png_settings(image_watermark=ImageWatermark(
        enabled=True, size_percent=20, opacity=1.0, position=Position(-5, 45)
    ))

    result = transform(image, settings, mark)

    assert result.size == (50, 50)
    assert result.getpixel((0, 49)) == (0, 255, 0, 255)


def test_disabled_image_watermark_is_ignored():
    image = create_test_image()
    mark = solid((10, 10), (255, 255, 255, 255))
    result = transform(image, png_settings(), mark)
    assert result.tobytes() == image.tobytes()


def test_padding_is_applied_after_watermarks():
    image = solid((100, 100), (255, 0, 0, 255))
    mark = solid((10, 10), (0, 0, 255, 255))
    settings = png_settings(
        image_watermark=ImageWatermark(enabled=True, size_percent=10, opacity=1.0,
                                       position=Position(0, 0)),
        padding=PaddingSettings(True, 200, 100, "#000000"),
    )

    result = transform(image, settings, mark)

    assert result.size == (200, 100)
    assert result.getpixel((55, 5)) == (0, 0, 255, 255)
    assert result.getpixel((10, 5)) == (0, 0, 0, 255)


def test_transformer_is_reusable():
    transformer = ImageTransformer()
    image = create_test_image()
    settings = png_settings(text_watermark=TextWatermark(enabled=True, text="A",
                                                         position=Position(2, 2)))
    first = transformer.transform(image, settings)
    second = transformer.transform(image, settings)
    assert first.tobytes() == second.tobytes()


# =============================================================================
# ENCODER
# =============================================================================

def test_png_round_trip_is_lossless():
    arr = np.asarray(create_test_image()).copy()
    arr[3, 3] = (1, 2, 3, 4)
    image = Image.fromarray(arr)

    decoded = decode(encode(image, "png"))

    assert decoded.mode == "RGBA"
    assert decoded.tobytes() == image.tobytes()


def test_jpeg_quality_100_is_close():
    image = create_test_image()
    decoded = decode(encode(image, "jpeg", 100))
    diff = np.abs(np.asarray(decoded, dtype=np.int16) - np.asarray(image, dtype=np.int16))
    assert decoded.size == image.size
    assert diff.mean() < 3


def test_jpeg_size_grows_with_quality():
    rng = np.random.default_rng(3)
    arr = rng.integers(0, 256, size=(64, 64, 3), dtype=np.uint8)
    image = Image.fromarray(arr).convert("RGBA")

    sizes = [len(encode(image, "jpeg", q)) for q in (10, 40, 70, 100)]
    assert sizes == sorted(sizes)


def test_jpeg_flattens_alpha_onto_white():
    image = solid((16, 16), (0, 0, 0, 0))
    decoded = decode(encode(image, "jpeg", 90))
    assert min(decoded.getpixel((8, 8))[:3]) >= 250


def test_webp_keeps_dimensions_and_alpha():
    image = solid((30, 20), (0, 0, 255, 0))
    decoded = decode(encode(image, "webp", 80))
    assert decoded.size == (30, 20)
    assert decoded.getpixel((5, 5))[3] == 0


def test_unsupported_format_raises():
    with pytest.raises(UnsupportedFormatError):
        encode(create_test_image(), "gif")
    with pytest.raises(UnsupportedFormatError):
        file_extension("bmp")
    assert file_extension("JPEG") == ".jpeg"


def test_decode_rejects_garbage():
    with pytest.raises(ImageDecodeError):
        decode(b"definitely not an image")
    with pytest.raises(ImageDecodeError):
        decode(b"")
    truncated = to_bytes(create_test_image())[:60]
    with pytest.raises(ImageDecodeError):
        decode(truncated)


def test_load_watermark_returns_none_on_failure():
    assert load_watermark(None) is None
    assert load_watermark(b"broken") is None
    mark = load_watermark(to_bytes(solid((4, 4), (1, 2, 3, 255))))
    assert mark.size == (4, 4)


# =============================================================================
# SCENARIOS
# =============================================================================

def test_red_square_jpeg_scenario():
    data = to_bytes(solid((100, 100), (255, 0, 0, 255)))
    output = decode(process_image(data, EditorSettings(output_format="jpeg", output_quality=92)))

    assert output.size == (100, 100)
    arr = np.asarray(output, dtype=np.int16)
    assert np.abs(arr[..., 0] - 255).max() <= 8
    assert arr[..., 1].max() <= 8
    assert arr[..., 2].max() <= 8


def test_red_square_padding_scenario():
    data = to_bytes(solid((100, 100), (255, 0, 0, 255)))
    settings = EditorSettings(
        output_format="png",
        padding=PaddingSettings(True, 200, 100, "#000000"),
    )

    output = np.asarray(decode(process_image(data, settings)))

    assert output.shape[:2] == (100, 200)
    assert (output[:, 50:150] == (255, 0, 0, 255)).all()
    assert (output[:, :50] == (0, 0, 0, 255)).all()
    assert (output[:, 150:] == (0, 0, 0, 255)).all()


# =============================================================================
# EXPORT / BATCH
# =============================================================================

def test_output_filename():
    assert output_filename(0, 5, "beach.png", "jpeg") == "1_beach.jpeg"
    assert output_filename(2, 12, "a.b.png", "webp") == "03_a.b.webp"
    assert output_filename(9, 100, ".hidden", "png") == "010_.hidden.png"
    assert output_filename(0, 3, "raw.heic", "png", processed=False) == "1_raw.heic"


def test_bundle_zip():
    data = bundle_zip([ArchiveEntry("1_a.png", b"abc"), ArchiveEntry("2_b.png", b"de")])
    with zipfile.ZipFile(io.BytesIO(data)) as archive:
        assert archive.namelist() == ["1_a.png", "2_b.png"]
        assert archive.read("2_b.png") == b"de"


def test_process_batch_keeps_order_and_isolates_failures():
    jobs = [
        ImageJob("first.png", to_bytes(solid((20, 10), (255, 0, 0, 255)))),
        ImageJob("broken.png", b"not an image"),
        ImageJob("third.jpg", to_bytes(solid((10, 30), (0, 0, 255, 255)), "JPEG")),
    ]
    progress = []

    results = process_batch(jobs, png_settings(), max_in_flight=2,
                            progress=lambda c, t, n: progress.append((c, t)))

    assert [r.name for r in results] == ["first.png", "broken.png", "third.jpg"]
    assert [r.success for r in results] == [True, False, True]
    assert results[1].error_message
    assert results[0].output_name == "1_first.png"
    assert results[2].output_name == "3_third.png"
    assert decode(results[2].output).size == (10, 30)
    assert sorted(progress) == [(1, 3), (2, 3), (3, 3)]


def test_process_batch_with_broken_watermark_still_succeeds():
    jobs = [ImageJob("a.png", to_bytes(create_test_image()))]
    settings = png_settings(image_watermark=ImageWatermark(enabled=True))

    results = process_batch(jobs, settings, watermark_data=b"garbage")

    assert results[0].success
    assert decode(results[0].output).tobytes() == create_test_image().tobytes()


def test_process_batch_survives_invalid_colours():
    jobs = [ImageJob(f"{i}.png", to_bytes(create_test_image())) for i in range(3)]
    settings = png_settings(
        text_watermark=TextWatermark(enabled=True, text="hi", color="nope"),
        padding=PaddingSettings(True, 200, 200, "bogus"),
    )

    results = process_batch(jobs, settings)

    assert all(r.success for r in results)
    assert decode(results[0].output).size == (200, 200)


def test_process_batch_shares_one_renderer_across_threads():
    transformer = ImageTransformer()
    data = to_bytes(solid((300, 200), (40, 80, 120, 255)))
    settings = png_settings(text_watermark=TextWatermark(
        enabled=True, text="Shared font", color="#ffcc00",
        font_size_units=120, opacity=0.8, position=Position(10, 20)
    ))
    expected = process_image(data, settings, transformer=ImageTransformer())

    jobs = [ImageJob(f"{i}.png", data) for i in range(12)]
    results = process_batch(jobs, settings, max_in_flight=4, transformer=transformer)

    assert all(r.success for r in results)
    assert all(r.output == expected for r in results)



def test_process_batch_unsupported_format_is_fatal():
    jobs = [ImageJob("a.png", to_bytes(create_test_image()))]
    with pytest.raises(UnsupportedFormatError):
        process_batch(jobs, EditorSettings(output_format="tiff"))


def test_process_batch_cancelled():
    jobs = [ImageJob("a.png", to_bytes(create_test_image()))]
    results = process_batch(jobs, png_settings(), is_cancelled=lambda: True)
    assert not results[0].success
    assert results[0].error_message == "Cancelled"


def test_archive_entries_fall_back_to_original_bytes():
    good = to_bytes(create_test_image())
    jobs = [ImageJob("good.png", good), ImageJob("bad.gif", b"xx")]

    results = process_batch(jobs, EditorSettings(output_format="webp"))
    entries = archive_entries(results)

    assert [e.filename for e in entries] == ["1_good.webp", "2_bad.gif"]
    assert entries[1].data == b"xx"
