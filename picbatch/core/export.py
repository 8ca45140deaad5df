"""
Output naming and archive packaging for a processed batch.

Naming Convention:
- Processed: {index}_{stem}.{format}, e.g. 03_holiday.jpeg
- Not processed: {index}_{original name}, original bytes are kept

The index is 1-based and zero-padded to the digit count of the batch size,
so archive listings sort in batch order.
"""

import io
import logging
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Union

from .encoder import normalize_format

logger = logging.getLogger(__name__)

DEFAULT_ARCHIVE_NAME = "processed_images.zip"


@dataclass
class ArchiveEntry:
    """One file inside the output archive."""
    filename: str
    data: bytes


def output_filename(
        index: int,
        total: int,
        original_name: str,
        fmt: str,
        processed: bool = True
) -> str:
    """
    Build the download name for the image at position `index` (0-based).

    Args:
        index: 0-based position in the batch.
        total: Number of images in the batch.
        original_name: File name the image was imported with.
        fmt: Output format of the processed image.
        processed: False when the original bytes are exported instead.
    """
    width = len(str(max(total, 1)))
    prefix = str(index + 1).zfill(width)
    name = Path(original_name).name

    if not processed:
        return f"{prefix}_{name}"

    dot = name.rfind(".")
    stem = name[:dot] if dot > 0 else name
    return f"{prefix}_{stem}.{normalize_format(fmt)}"


def bundle_zip(entries: Iterable[ArchiveEntry]) -> bytes:
    """Pack the entries into an in-memory zip archive."""
    buffer = io.BytesIO()
    count = 0
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for entry in entries:
            archive.writestr(entry.filename, entry.data)
            count += 1
    logger.info("Packed %d file(s) into archive", count)
    return buffer.getvalue()


def write_zip(entries: Iterable[ArchiveEntry], path: Union[str, Path]) -> Path:
    """Write the archive to `path`, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(bundle_zip(entries))
    return path
