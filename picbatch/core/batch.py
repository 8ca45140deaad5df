"""
Batch Processing
================
Runs decode -> transform -> encode for many images.

Technical Notes:
- Each image is an independent pipeline run, no state is shared between
  them apart from the read-only watermark bitmap and the font cache
- At most `max_in_flight` images are decoded at once, since every image
  in flight holds one full-resolution bitmap
- Results always come back in input order, one per job
- A failing image is recorded in its BatchResult and never aborts the batch
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from PIL import Image

from .encoder import ImageDecodeError, decode, encode, load_watermark, normalize_format
from .export import ArchiveEntry, output_filename
from .pipeline import ImageTransformer
from .settings import EditorSettings

logger = logging.getLogger(__name__)

DEFAULT_MAX_IN_FLIGHT = 4

ProgressCallback = Callable[[int, int, str], None]


@dataclass
class ImageJob:
    """A source image as imported: its file name and encoded bytes."""
    name: str
    data: bytes


@dataclass
class BatchResult:
    """Result of processing a single image."""
    name: str
    index: int
    source_data: bytes = b""
    output: Optional[bytes] = None
    output_name: str = ""
    fmt: str = ""
    success: bool = False
    error_message: str = ""


def process_image(
        data: bytes,
        settings: EditorSettings,
        watermark: Optional[Image.Image] = None,
        transformer: Optional[ImageTransformer] = None
) -> bytes:
    """
    Decode, transform and encode one image.

    Raises:
        ImageDecodeError: If the source bytes are unreadable.
        UnsupportedFormatError: If the output format is invalid.
    """
    if transformer is None:
        transformer = ImageTransformer()

    settings = settings.clamped()
    source = decode(data)
    try:
        result = transformer.transform(source, settings, watermark)
        return encode(result, settings.output_format, settings.output_quality)
    finally:
        source.close()


def process_batch(
        jobs: Sequence[ImageJob],
        settings: EditorSettings,
        watermark_data: Optional[bytes] = None,
        max_in_flight: int = DEFAULT_MAX_IN_FLIGHT,
        progress: Optional[ProgressCallback] = None,
        is_cancelled: Optional[Callable[[], bool]] = None,
        transformer: Optional[ImageTransformer] = None
) -> List[BatchResult]:
    """
    Process every job with the same settings.

    Args:
        jobs: Images to process, in output order.
        settings: Shared settings for the whole batch.
        watermark_data: Encoded watermark image. Decoded once, a broken
                        watermark is logged and left out of every image.
        max_in_flight: Upper bound on images processed concurrently.
        progress: Called as progress(completed, total, name) after each image.
        is_cancelled: Polled before each image starts; cancelled images
                      come back unprocessed.
        transformer: Optional shared ImageTransformer.

    Returns:
        One BatchResult per job, in input order.

    Raises:
        UnsupportedFormatError: If the output format is invalid. This is
                                fatal for the whole batch.
    """
    settings = settings.clamped()
    normalize_format(settings.output_format)
    total = len(jobs)
    if total == 0:
        return []

    if transformer is None:
        transformer = ImageTransformer()

    watermark = None
    if settings.image_watermark.enabled:
        watermark = load_watermark(watermark_data)
        if watermark is None:
            watermark = settings.image_watermark.source

    completed = 0
    lock = threading.Lock()

    def _run(index: int, job: ImageJob) -> BatchResult:
        nonlocal completed
        result = BatchResult(name=job.name, index=index, source_data=job.data,
                             fmt=settings.output_format)

        if is_cancelled is not None and is_cancelled():
            result.error_message = "Cancelled"
            return result

        try:
            result.output = process_image(job.data, settings, watermark, transformer)
            result.output_name = output_filename(index, total, job.name, settings.output_format)
            result.success = True
        except ImageDecodeError as e:
            result.error_message = str(e)
            logger.error("Skipping unreadable image %s: %s", job.name, e)
        except Exception as e:
            result.error_message = str(e)
            logger.error("Error processing image %s", job.name, exc_info=True)

        with lock:
            completed += 1
            done = completed
        if progress is not None:
            progress(done, total, job.name)
        return result

    workers = max(1, min(int(max_in_flight), total))
    with ThreadPoolExecutor(max_workers=workers) as executor:
        results = list(executor.map(_run, range(total), jobs))

    failed = sum(1 for r in results if not r.success)
    logger.info("Batch finished: %d/%d succeeded", total - failed, total)
    return results


def archive_entries(results: Sequence[BatchResult]) -> List[ArchiveEntry]:
    """
    Turn batch results into archive entries.

    Images that failed fall back to their original bytes under their
    original name, so every imported image ends up in the archive.
    """
    total = len(results)
    entries = []
    for result in results:
        if result.success and result.output is not None:
            entries.append(ArchiveEntry(result.output_name, result.output))
        elif result.source_data:
            name = output_filename(result.index, total, result.name, result.fmt,
                                   processed=False)
            entries.append(ArchiveEntry(name, result.source_data))
    return entries
