"""
PicBatch - Main Entry Point
===========================
Headless batch runner for the image transform pipeline.

Usage:
    python main.py photo1.jpg photo2.png --settings preset.json \
        --output-dir out --zip out/processed_images.zip

Architecture:
    - Model: picbatch/core/ (pure image logic)
    - Workers: picbatch/workers/ (QThread batch processing)
    - Controller: This file (argument parsing, signal/slot connections)

The preset file uses the editor's JSON shape (rotation, brightness,
textWatermark, padding, outputFormat, ...). Command-line flags override
the preset's output format and quality.
"""

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from PyQt6.QtCore import QCoreApplication

from picbatch.core.batch import DEFAULT_MAX_IN_FLIGHT, BatchResult
from picbatch.core.settings import OUTPUT_FORMATS, EditorSettings
from picbatch.workers import BatchWorker, BatchConfig

logger = logging.getLogger("picbatch")


def load_settings(path: Optional[Path]) -> EditorSettings:
    """Load a JSON preset, or the defaults when no path is given."""
    if path is None:
        return EditorSettings()
    with open(path, "r", encoding="utf-8") as f:
        return EditorSettings.from_dict(json.load(f))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="picbatch",
        description="Batch-edit images with rotation, colour, noise, watermarks and padding."
    )
    parser.add_argument("images", nargs="+", type=Path, help="Source image files")
    parser.add_argument("--settings", type=Path, help="JSON preset in the editor's format")
    parser.add_argument("--watermark", type=Path, help="Image watermark source file")
    parser.add_argument("--output-dir", type=Path, help="Directory for processed images")
    parser.add_argument("--zip", dest="archive", type=Path, help="Write all outputs to this archive")
    parser.add_argument("--format", choices=OUTPUT_FORMATS, help="Override the output format")
    parser.add_argument("--quality", type=int, help="Override the output quality (1-100)")
    parser.add_argument("--jobs", type=int, default=DEFAULT_MAX_IN_FLIGHT,
                        help="Maximum images processed at once")
    parser.add_argument("--font", help="TTF font for the text watermark")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


class BatchController:
    """
    Connects a BatchWorker to console output.

    Responsibilities:
    - Build the worker configuration from parsed arguments
    - Report progress and per-image failures
    - Stop the event loop once the batch is done
    """

    def __init__(self, app: QCoreApplication, config: BatchConfig):
        self.app = app
        self.config = config
        self.results: List[BatchResult] = []

        self._worker = BatchWorker(config)
        self._worker.progress.connect(self._on_progress)
        self._worker.image_completed.connect(self._on_image_completed)
        self._worker.error.connect(self._on_error)
        self._worker.finished_all.connect(self._on_finished)

    def start(self):
        self._worker.start()

    def _on_progress(self, current: int, total: int, filename: str):
        logger.info("Processing images... (%d%%) %s", round(current / total * 100), filename)

    def _on_image_completed(self, result: BatchResult):
        if not result.success:
            logger.warning("Failed: %s (%s)", result.name, result.error_message)

    def _on_error(self, message: str):
        logger.error(message)

    def _on_finished(self, results: list):
        self.results = results
        self._worker.wait()
        self.app.quit()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    try:
        settings = load_settings(args.settings)
    except (OSError, ValueError) as e:
        logger.error("Cannot load settings %s: %s", args.settings, e)
        return 2

    if args.format:
        settings = replace(settings, output_format=args.format)
    if args.quality is not None:
        settings = replace(settings, output_quality=args.quality)
    if args.watermark is not None:
        settings = replace(
            settings,
            image_watermark=replace(settings.image_watermark, enabled=True)
        )

    output_dir = args.output_dir
    if output_dir is None and args.archive is None:
        output_dir = Path.cwd() / "output"

    config = BatchConfig(
        image_paths=list(args.images),
        settings=settings,
        watermark_path=args.watermark,
        output_dir=output_dir,
        archive_path=args.archive,
        max_in_flight=args.jobs,
        font_path=args.font,
    )

    app = QCoreApplication(sys.argv[:1])
    controller = BatchController(app, config)
    controller.start()
    app.exec()

    failed = [r for r in controller.results if not r.success]
    logger.info("Done: %d processed, %d failed",
                len(controller.results) - len(failed), len(failed))
    return 1 if failed or not controller.results else 0


if __name__ == "__main__":
    sys.exit(main())
