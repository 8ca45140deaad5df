"""
Workers Module - Async Thread Management
========================================
Contains QThread workers for non-blocking image processing.

All heavy computations run in separate threads to keep the caller responsive.

Components:
- BatchWorker: Batch transform + export with progress tracking
- PreviewWorker: Single-image preview rendering
- PreviewManager: Debounced preview requests, latest settings win
"""

from .batch_worker import BatchWorker, BatchConfig
from .preview_worker import (
    PreviewWorker, PreviewConfig, PreviewDebouncer, PreviewManager,
    render_preview, clear_source_cache
)

__all__ = [
    # Batch
    "BatchWorker",
    "BatchConfig",
    # Preview
    "PreviewWorker",
    "PreviewConfig",
    "PreviewDebouncer",
    "PreviewManager",
    "render_preview",
    "clear_source_cache",
]
