"""
Batch Worker - Async Batch Processing
=====================================
QThread worker that runs the transform pipeline over a list of images.

Workflow:
1. Read every source file (unreadable files become failed results)
2. Run process_batch with a bounded number of images in flight
3. Optionally write each output to output_dir and/or an archive
4. Emit progress signals during processing
5. Emit finished signal with results (always in input order)

Naming Convention:
- {index}_{stem}.{format}, e.g. 01_beach.jpeg
- Archive default: processed_images.zip
"""

import logging
import traceback
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from PyQt6.QtCore import QThread, pyqtSignal

from picbatch.core.batch import (
    DEFAULT_MAX_IN_FLIGHT, BatchResult, ImageJob, archive_entries, process_batch
)
from picbatch.core.export import DEFAULT_ARCHIVE_NAME, write_zip
from picbatch.core.pipeline import ImageTransformer
from picbatch.core.settings import EditorSettings

logger = logging.getLogger(__name__)


@dataclass
class BatchConfig:
    """Complete configuration for one batch run."""
    image_paths: List[Path] = field(default_factory=list)
    settings: EditorSettings = field(default_factory=EditorSettings)
    watermark_path: Optional[Path] = None
    output_dir: Optional[Path] = None
    archive_path: Optional[Path] = None
    max_in_flight: int = DEFAULT_MAX_IN_FLIGHT
    font_path: Optional[str] = None

    def default_archive_path(self) -> Path:
        base = self.output_dir if self.output_dir is not None else Path.cwd()
        return base / DEFAULT_ARCHIVE_NAME


class BatchWorker(QThread):
    """
    Worker thread for processing a batch of images.

    Signals:
        progress(int, int, str): (completed, total, current_file_name)
        image_completed(BatchResult): Emitted when each image is processed
        finished_all(list[BatchResult]): Emitted when all images are done
        error(str): Emitted on critical errors
    """

    # Signals
    progress = pyqtSignal(int, int, str)  # completed, total, filename
    image_completed = pyqtSignal(object)  # BatchResult
    finished_all = pyqtSignal(list)  # List[BatchResult]
    error = pyqtSignal(str)  # Error message

    def __init__(self, config: BatchConfig, parent=None):
        """
        Initialize the batch worker.

        Args:
            config: BatchConfig with images, settings and output options.
            parent: Optional parent QObject.
        """
        super().__init__(parent)
        self.config = config
        self._is_cancelled = False
        self._transformer: Optional[ImageTransformer] = None

    def cancel(self):
        """Request cancellation. Images already in flight still finish."""
        self._is_cancelled = True

    def is_cancelled(self) -> bool:
        return self._is_cancelled

    def _read_jobs(self) -> List[ImageJob]:
        """Read source files. A missing file yields an empty job that fails to decode."""
        jobs = []
        for path in self.config.image_paths:
            path = Path(path)
            try:
                data = path.read_bytes()
            except OSError as e:
                logger.error("Cannot read %s: %s", path, e)
                data = b""
            jobs.append(ImageJob(name=path.name, data=data))
        return jobs

    def _read_watermark(self) -> Optional[bytes]:
        path = self.config.watermark_path
        if path is None:
            return None
        try:
            return Path(path).read_bytes()
        except OSError as e:
            logger.warning("Cannot read watermark %s: %s", path, e)
            return None

    def _on_progress(self, completed: int, total: int, name: str):
        self.progress.emit(completed, total, name)

    def _write_outputs(self, results: List[BatchResult]):
        """Write successful outputs to output_dir and/or the archive."""
        if self.config.output_dir is not None:
            output_dir = Path(self.config.output_dir)
            output_dir.mkdir(parents=True, exist_ok=True)
            for result in results:
                if result.success and result.output is not None:
                    (output_dir / result.output_name).write_bytes(result.output)

        if self.config.archive_path is not None:
            write_zip(archive_entries(results), self.config.archive_path)

    def run(self):
        """
        Main worker execution.

        Processes all images in the config and emits progress signals.
        """
        results: List[BatchResult] = []
        total = len(self.config.image_paths)

        if total == 0:
            self.error.emit("No images to process")
            self.finished_all.emit(results)
            return

        try:
            self._transformer = ImageTransformer(font_path=self.config.font_path)

            results = process_batch(
                self._read_jobs(),
                self.config.settings,
                watermark_data=self._read_watermark(),
                max_in_flight=self.config.max_in_flight,
                progress=self._on_progress,
                is_cancelled=self.is_cancelled,
                transformer=self._transformer,
            )

            for result in results:
                self.image_completed.emit(result)

            self._write_outputs(results)

        except Exception as e:
            self.error.emit(f"Critical error: {str(e)}")
            traceback.print_exc()

        finally:
            if self._transformer is not None:
                self._transformer.clear_cache()
                self._transformer = None

        # Emit final results
        self.finished_all.emit(results)
