"""
Preview Worker - Debounced Single-Image Preview
===============================================

The preview is re-rendered on every settings change, so slider drags
produce a storm of requests. Only the latest settings matter:

1. PreviewDebouncer collapses rapid requests into one (latest wins)
2. PreviewManager supersedes the in-flight worker when a new request fires:
   its signals are disconnected and its result is dropped
3. PreviewWorker renders the FULL pipeline (decode -> transform -> encode)
   at original resolution, so the preview shows exactly what export
   writes, including jpeg artifacts, then shrinks the decoded result to
   max_preview_size for display

CRITICAL NOTE:
--------------
Watermark positions and the padding box are absolute pixel values in
source space. Rendering on a downscaled proxy would misplace them, so
only the finished result is downscaled.
"""

import logging
import traceback
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from PIL import Image
from PyQt6.QtCore import QThread, pyqtSignal, QTimer, QObject, QMutex, QMutexLocker

from picbatch.core.batch import process_image
from picbatch.core.encoder import decode, load_watermark
from picbatch.core.pipeline import ImageTransformer
from picbatch.core.settings import EditorSettings

logger = logging.getLogger(__name__)

# Same delay the web editor waits before regenerating its preview
DEFAULT_DEBOUNCE_MS = 200


# =============================================================================
# CONFIGURATION
# =============================================================================

@dataclass
class PreviewConfig:
    """Configuration for one preview render."""
    image_path: Optional[Path] = None
    settings: EditorSettings = field(default_factory=EditorSettings)
    watermark_path: Optional[Path] = None
    max_preview_size: int = 800  # Maximum displayed dimension


# =============================================================================
# SOURCE CACHE (Shared across workers)
# =============================================================================

# Maps path -> encoded source bytes, avoids re-reading the same file on
# every slider tick
_source_cache: Dict[str, bytes] = {}
_source_cache_lock = QMutex()

MAX_SOURCE_CACHE_SIZE = 10


def _get_cached_source(image_path: Path) -> bytes:
    """Read (or reuse) the encoded bytes of a source image."""
    cache_key = str(image_path)

    with QMutexLocker(_source_cache_lock):
        if cache_key in _source_cache:
            return _source_cache[cache_key]

    data = Path(image_path).read_bytes()

    with QMutexLocker(_source_cache_lock):
        if len(_source_cache) >= MAX_SOURCE_CACHE_SIZE:
            oldest_key = next(iter(_source_cache))
            del _source_cache[oldest_key]
        _source_cache[cache_key] = data

    return data


def clear_source_cache():
    """Clear the source cache (call when images are removed/changed)."""
    with QMutexLocker(_source_cache_lock):
        _source_cache.clear()


def render_preview(config: PreviewConfig, transformer: Optional[ImageTransformer] = None) -> Image.Image:
    """
    Render a preview image synchronously.

    Raises:
        FileNotFoundError: If no source image is configured.
        ImageDecodeError: If the source cannot be decoded.
        UnsupportedFormatError: If the output format is invalid.
    """
    if not config.image_path or not Path(config.image_path).exists():
        raise FileNotFoundError(f"Image not found: {config.image_path}")

    data = _get_cached_source(Path(config.image_path))

    watermark = None
    if config.settings.image_watermark.enabled and config.watermark_path is not None:
        try:
            watermark = load_watermark(Path(config.watermark_path).read_bytes())
        except OSError as e:
            logger.warning("Cannot read watermark %s: %s", config.watermark_path, e)

    encoded = process_image(data, config.settings, watermark, transformer)
    preview = decode(encoded)

    max_size = max(1, config.max_preview_size)
    if preview.width > max_size or preview.height > max_size:
        preview.thumbnail((max_size, max_size), Image.Resampling.BILINEAR)

    return preview


# =============================================================================
# PREVIEW WORKER
# =============================================================================

class PreviewWorker(QThread):
    """
    Worker thread that renders one preview.

    The pipeline has no suspension points, so cancellation is coarse:
    the flag is checked before and after rendering, and a cancelled
    worker never emits a result.

    SIGNALS:
    - preview_ready(PIL.Image.Image): Emitted when preview is complete
    - preview_error(str): Emitted on error
    """

    preview_ready = pyqtSignal(object)
    preview_error = pyqtSignal(str)

    def __init__(self, config: PreviewConfig, parent=None):
        super().__init__(parent)
        self.config = config
        self._is_cancelled = False

    def cancel(self):
        """Request cancellation of this worker."""
        self._is_cancelled = True

    def run(self):
        try:
            if self._is_cancelled:
                return

            if not self.config.image_path or not Path(self.config.image_path).exists():
                self.preview_error.emit("No image selected")
                return

            preview = render_preview(self.config)

            if self._is_cancelled:
                return

            self.preview_ready.emit(preview)

        except Exception as e:
            if not self._is_cancelled:
                self.preview_error.emit(f"Preview failed: {str(e)}")
                traceback.print_exc()


# =============================================================================
# DEBOUNCER
# =============================================================================

class PreviewDebouncer(QObject):
    """
    Collapses slider-drag bursts into one preview render.

    Each request restarts a single-shot timer and replaces the stored
    PreviewConfig, so a render starts only once the settings have been
    still for delay_ms and always uses the newest values. The 200 ms
    default is the web editor's preview delay.
    preview_requested is emitted after the lock is released, so a
    receiver may call request_preview() again without deadlocking.
    """

    preview_requested = pyqtSignal(object)

    def __init__(self, delay_ms: int = DEFAULT_DEBOUNCE_MS, parent=None):
        super().__init__(parent)
        self._delay_ms = delay_ms
        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.timeout.connect(self._on_timeout)
        self._pending_config: Optional[PreviewConfig] = None
        self._mutex = QMutex()

    def request_preview(self, config: PreviewConfig):
        """Store `config` as the pending request and restart the delay."""
        with QMutexLocker(self._mutex):
            self._pending_config = config
            self._timer.stop()
            self._timer.start(self._delay_ms)

    def cancel(self):
        """Drop the pending request, if any."""
        with QMutexLocker(self._mutex):
            self._timer.stop()
            self._pending_config = None

    def _on_timeout(self):
        """Hand the newest config to the manager."""
        with QMutexLocker(self._mutex):
            config = self._pending_config
            self._pending_config = None
        if config is not None:
            self.preview_requested.emit(config)


# =============================================================================
# PREVIEW MANAGER (High-Level Controller)
# =============================================================================

class PreviewManager(QObject):
    """
    High-level manager for preview generation.

    RESPONSIBILITIES:
    1. Debounce incoming requests (via PreviewDebouncer)
    2. Supersede old workers when new requests arrive
    3. Keep superseded workers alive until they finish, then delete them
    4. Forward signals of the current worker only

    USAGE:
        manager = PreviewManager()
        manager.preview_updated.connect(on_preview_ready)
        manager.request_preview(config)
    """

    preview_updated = pyqtSignal(object)  # PIL.Image.Image
    preview_error = pyqtSignal(str)
    preview_started = pyqtSignal()

    def __init__(self, debounce_ms: int = DEFAULT_DEBOUNCE_MS, parent=None):
        super().__init__(parent)

        self._debouncer = PreviewDebouncer(debounce_ms, self)
        self._debouncer.preview_requested.connect(self._start_preview_worker)

        self._current_worker: Optional[PreviewWorker] = None
        # Superseded workers still running; a QThread must not be
        # destroyed while its run() is executing
        self._retired: List[PreviewWorker] = []
        self._mutex = QMutex()

    def request_preview(self, config: PreviewConfig):
        """
        Request a preview generation.

        The request will be debounced - rapid successive calls
        will be collapsed into a single preview generation.
        """
        self._debouncer.request_preview(config)

    def cancel(self):
        """Cancel all pending and in-progress preview work."""
        self._debouncer.cancel()
        self._retire_current_worker()

    def clear_cache(self):
        """Clear cached sources (call when image list changes)."""
        clear_source_cache()

    def is_busy(self) -> bool:
        with QMutexLocker(self._mutex):
            return self._current_worker is not None or bool(self._retired)

    def _retire_current_worker(self):
        """Cancel the current worker and drop interest in its result."""
        with QMutexLocker(self._mutex):
            worker = self._current_worker
            self._current_worker = None
            if worker is None:
                return

            worker.cancel()
            try:
                worker.preview_ready.disconnect(self._on_preview_ready)
                worker.preview_error.disconnect(self._on_preview_error)
            except (TypeError, RuntimeError):
                pass  # Already disconnected

            if worker.isRunning():
                self._retired.append(worker)
            else:
                worker.deleteLater()

    def _start_preview_worker(self, config: PreviewConfig):
        """Start a new preview worker, superseding any existing one."""
        self._retire_current_worker()

        self.preview_started.emit()

        with QMutexLocker(self._mutex):
            worker = PreviewWorker(config)
            worker.preview_ready.connect(self._on_preview_ready)
            worker.preview_error.connect(self._on_preview_error)
            worker.finished.connect(lambda w=worker: self._on_worker_finished(w))
            self._current_worker = worker
            worker.start()

    def _on_preview_ready(self, image: Image.Image):
        """Forward preview result to subscribers."""
        self.preview_updated.emit(image)

    def _on_preview_error(self, error: str):
        """Forward preview error to subscribers."""
        self.preview_error.emit(error)

    def _on_worker_finished(self, worker: PreviewWorker):
        """Cleanup a worker after completion."""
        with QMutexLocker(self._mutex):
            if worker is self._current_worker:
                self._current_worker = None
            elif worker in self._retired:
                self._retired.remove(worker)
            worker.deleteLater()
