"""
PicBatch Application Package
============================
Batch image editing with deterministic transforms: fine rotation,
colour adjustment, noise, text/image watermarks and letterbox padding,
exported as jpeg, png or webp.

Modules:
    - core: Pure image logic (no Qt dependencies)
    - workers: QThread workers for async batch and preview processing

Usage:
    from picbatch.core import EditorSettings, ImageTransformer, encode
    from picbatch.workers import BatchWorker, BatchConfig
"""

__version__ = "1.0.0"
__app_name__ = "PicBatch"

# Core exports
from .core import (
    EditorSettings, TextWatermark, ImageWatermark, PaddingSettings, Position,
    ImageTransformer, transform, encode, decode,
    ImageDecodeError, UnsupportedFormatError,
    ImageJob, BatchResult, process_image, process_batch
)

__all__ = [
    # Version info
    "__version__",
    "__app_name__",

    # Core
    "EditorSettings",
    "TextWatermark",
    "ImageWatermark",
    "PaddingSettings",
    "Position",
    "ImageTransformer",
    "transform",
    "encode",
    "decode",
    "ImageDecodeError",
    "UnsupportedFormatError",
    "ImageJob",
    "BatchResult",
    "process_image",
    "process_batch",
]
