"""
Watermark Eraser - Main Entry Point
===================================
Command-line tool that removes the logo watermark from image files.

Usage:
    python main.py photo1.png photo2.jpg -o cleaned/ [--mode auto] [--gain 1.0]

Architecture:
    - Model: eraser/core/ (pure algorithms)
    - Workers: eraser/workers/ (QThread offloading)
    - Controller: This file (signal/slot connections)

Flow:
    1. Calibrate both masks on a worker thread
    2. Clean every image on a second worker thread
    3. Save results as <name>_clean.png and exit
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from PyQt6.QtCore import QCoreApplication

from eraser import __app_name__, __version__
from eraser.core import ForceMode, MaskSet, UnblendConfig
from eraser.workers import (
    MaskLoadWorker, BatchRemoveWorker, BatchRemoveConfig, RemoveResult
)

logger = logging.getLogger("eraser")

ASSETS_DIR = Path(__file__).resolve().parent / "assets"


class RemoveController:
    """
    Controller class that chains the calibration and removal workers.

    Responsibilities:
    - Start mask calibration
    - Start the batch once masks are available
    - Report per-image outcomes and set the exit code
    """

    def __init__(self, app: QCoreApplication, config: BatchRemoveConfig,
                 small_path: Path, large_path: Path):
        self.app = app
        self.config = config
        self.exit_code = 1

        # Worker references (to prevent garbage collection)
        self._mask_worker = MaskLoadWorker(small_path, large_path)
        self._remove_worker: Optional[BatchRemoveWorker] = None

        self._mask_worker.asset_error.connect(self._on_asset_error)
        self._mask_worker.masks_ready.connect(self._on_masks_ready)

    def start(self):
        self._mask_worker.start()

    # ===== Calibration =====

    def _on_asset_error(self, variant: str, message: str):
        logger.error("Watermark asset for %s mask unavailable: %s", variant, message)

    def _on_masks_ready(self, masks: MaskSet):
        self._remove_worker = BatchRemoveWorker(self.config, masks)
        self._remove_worker.progress.connect(self._on_progress)
        self._remove_worker.image_completed.connect(self._on_image_completed)
        self._remove_worker.finished_all.connect(self._on_finished)
        self._remove_worker.error.connect(self._on_error)
        self._remove_worker.start()

    # ===== Removal =====

    def _on_progress(self, current: int, total: int, filename: str):
        logger.info("[%d/%d] %s", current, total, filename)

    def _on_image_completed(self, result: RemoveResult):
        if result.success:
            print(f"{result.source_path} -> {result.output_path}")
        else:
            logger.error("%s: %s", result.source_path, result.error_message)

    def _on_error(self, message: str):
        logger.error(message)

    def _on_finished(self, results: list):
        total = len(self.config.image_paths)
        succeeded = sum(1 for r in results if r.success)
        logger.info("Cleaned %d/%d images", succeeded, total)

        self.exit_code = 0 if total and succeeded == total else 1

        self._mask_worker.wait()
        if self._remove_worker is not None:
            self._remove_worker.wait()
        self.app.exit(self.exit_code)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="watermark-eraser",
        description="Remove the corner logo watermark by reversing its alpha blend."
    )
    parser.add_argument("images", nargs="+", type=Path, help="Images to clean")
    parser.add_argument("-o", "--output-dir", type=Path, default=Path("output"),
                        help="Where to write <name>_clean.png (default: ./output)")
    parser.add_argument("--mode", choices=[m.value for m in ForceMode],
                        default=ForceMode.AUTO.value,
                        help="Watermark size: auto picks large above 1024x1024")
    parser.add_argument("--gain", type=float, default=1.0,
                        help="Alpha gain, raise if traces remain (default: 1.0)")
    parser.add_argument("--mask-small", type=Path, default=ASSETS_DIR / "mask_48.png",
                        help="Reference asset for the 48px watermark")
    parser.add_argument("--mask-large", type=Path, default=ASSETS_DIR / "mask_96.png",
                        help="Reference asset for the 96px watermark")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--version", action="version",
                        version=f"{__app_name__} {__version__}")
    return parser


def main(argv=None) -> int:
    """Application entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    try:
        unblend = UnblendConfig(force_mode=ForceMode(args.mode), alpha_gain=args.gain)
    except ValueError as e:
        parser.error(str(e))

    config = BatchRemoveConfig(
        image_paths=list(args.images),
        output_dir=args.output_dir,
        unblend=unblend
    )

    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])
    app.setApplicationName(__app_name__)
    app.setApplicationVersion(__version__)

    controller = RemoveController(app, config, args.mask_small, args.mask_large)
    controller.start()

    app.exec()
    return controller.exit_code


if __name__ == "__main__":
    sys.exit(main())
