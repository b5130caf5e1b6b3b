"""
Mask Worker - Async Mask Calibration
====================================
QThread worker that calibrates both watermark masks at startup.

Workflow:
1. Decode and calibrate the small (48px) and large (96px) references
2. Emit asset_error for each variant that failed
3. Emit masks_ready with the resulting MaskSet (possibly partial)
"""

import logging
from pathlib import Path

from PyQt6.QtCore import QThread, pyqtSignal

from eraser.core.mask import MaskSet, load_mask_set

logger = logging.getLogger(__name__)


class MaskLoadWorker(QThread):
    """
    Worker thread for calibrating the watermark masks.

    Signals:
        asset_error(str, str): (variant, message) for each failed asset
        masks_ready(MaskSet): Emitted once both variants were attempted
    """

    # Signals
    asset_error = pyqtSignal(str, str)  # variant, message
    masks_ready = pyqtSignal(object)  # MaskSet

    def __init__(self, small_path: Path, large_path: Path, parent=None):
        """
        Initialize the mask worker.

        Args:
            small_path: Reference asset for the small mask.
            large_path: Reference asset for the large mask.
            parent: Optional parent QObject.
        """
        super().__init__(parent)
        self.small_path = Path(small_path)
        self.large_path = Path(large_path)

    def run(self):
        """Calibrate both masks and report the outcome."""
        try:
            masks = load_mask_set(self.small_path, self.large_path)
        except Exception as e:
            # load_mask_set handles asset errors itself; anything else is a bug
            logger.exception("Mask calibration crashed")
            masks = MaskSet()
            for variant in ("small", "large"):
                self.asset_error.emit(variant, f"Critical error: {e}")
            self.masks_ready.emit(masks)
            return

        for variant, message in masks.errors.items():
            self.asset_error.emit(variant.value, message)

        if masks.ready:
            logger.info("Watermark masks loaded")

        self.masks_ready.emit(masks)
