"""
Core Module - Pure Image Logic
==============================
This module contains no UI or Qt dependencies.
The transform pipeline, encoder and batch helpers are implemented here.
"""

from .batch import BatchResult, ImageJob, archive_entries, process_batch, process_image
from .color import adjust_colors, parse_color
from .encoder import (
    ImageDecodeError, UnsupportedFormatError,
    decode, encode, file_extension, load_watermark, mime_type
)
from .export import ArchiveEntry, bundle_zip, output_filename, write_zip
from .pipeline import ImageTransformer, transform
from .position import ANCHOR_PRESETS, preset_position, resolve_position
from .settings import (
    OUTPUT_FORMATS, EditorSettings, ImageWatermark, PaddingSettings,
    Position, TextWatermark
)
from .watermark import WatermarkRenderer

__all__ = [
    # Settings
    "OUTPUT_FORMATS",
    "EditorSettings",
    "TextWatermark",
    "ImageWatermark",
    "PaddingSettings",
    "Position",
    # Pipeline
    "ImageTransformer",
    "WatermarkRenderer",
    "transform",
    "adjust_colors",
    "parse_color",
    "resolve_position",
    "preset_position",
    "ANCHOR_PRESETS",
    # Encoder
    "encode",
    "decode",
    "load_watermark",
    "file_extension",
    "mime_type",
    "ImageDecodeError",
    "UnsupportedFormatError",
    # Batch / export
    "ImageJob",
    "BatchResult",
    "process_image",
    "process_batch",
    "archive_entries",
    "ArchiveEntry",
    "output_filename",
    "bundle_zip",
    "write_zip",
]
