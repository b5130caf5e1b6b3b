"""
Remove Worker - Async Watermark Removal
=======================================
QThread workers that run the unblend engine off the caller's thread.

Buffer Handoff:
- UnblendWorker takes ownership of the PixelBuffer it is given; the caller
  must not read or write it until it comes back through finished_buffer
  (cleaned) or failed_buffer (untouched)
- Masks are shared read-only between any number of workers

Naming Convention:
- Batch output: filename_clean.png
- Later images sharing a stem in the same batch: filename_clean_1.png, ...
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from PIL import Image, ImageOps
from PyQt6.QtCore import QThread, pyqtSignal

from eraser.core.buffer import PixelBuffer
from eraser.core.errors import MasksNotReadyError
from eraser.core.mask import MaskSet, MaskVariant
from eraser.core.unblend import ForceMode, UnblendConfig, remove_watermark

logger = logging.getLogger(__name__)


class UnblendWorker(QThread):
    """
    Worker thread that cleans a single buffer.

    Used for re-running removal whenever the mode or gain changes.

    Signals:
        finished_buffer(PixelBuffer): The cleaned buffer, handed back
        failed_buffer(PixelBuffer): The untouched buffer, after an error
        error(str): Emitted on errors
    """

    # Signals
    finished_buffer = pyqtSignal(object)  # PixelBuffer
    failed_buffer = pyqtSignal(object)  # PixelBuffer
    error = pyqtSignal(str)  # Error message

    def __init__(self, buffer: PixelBuffer, config: UnblendConfig,
                 masks: MaskSet, parent=None):
        super().__init__(parent)
        self._buffer: Optional[PixelBuffer] = buffer
        self.config = config
        self.masks = masks

    def run(self):
        buffer, self._buffer = self._buffer, None
        if buffer is None:
            self.error.emit("Worker has no buffer (already run?)")
            return

        try:
            remove_watermark(buffer, self.config, self.masks)
        except MasksNotReadyError as e:
            self.error.emit(str(e))
            self.failed_buffer.emit(buffer)
            return
        except Exception as e:
            logger.exception("Unblend failed")
            self.error.emit(f"Removal failed: {e}")
            self.failed_buffer.emit(buffer)
            return

        self.finished_buffer.emit(buffer)


@dataclass
class BatchRemoveConfig:
    """Configuration for cleaning a batch of image files."""
    image_paths: List[Path] = field(default_factory=list)
    output_dir: Path = field(default_factory=lambda: Path.cwd() / "output")
    unblend: UnblendConfig = field(default_factory=UnblendConfig)


@dataclass
class RemoveResult:
    """Result of removal for a single image."""
    source_path: Path
    output_path: Optional[Path] = None
    success: bool = False
    error_message: str = ""


def clean_filename(source_path: Path, index: int = 0) -> str:
    """
    Output name for a cleaned image: photo.jpg -> photo_clean.png

    A non-zero index disambiguates sources sharing a stem:
    photo.png -> photo_clean_1.png
    """
    if index:
        return f"{source_path.stem}_clean_{index}.png"
    return f"{source_path.stem}_clean.png"


class BatchRemoveWorker(QThread):
    """
    Worker thread for removing the watermark from many image files.

    Signals:
        progress(int, int, str): (current, total, current_file_name)
        image_completed(RemoveResult): Emitted when each image is processed
        finished_all(list[RemoveResult]): Emitted when all images are done
        error(str): Emitted on critical errors
    """

    # Signals
    progress = pyqtSignal(int, int, str)  # current, total, filename
    image_completed = pyqtSignal(object)  # RemoveResult
    finished_all = pyqtSignal(list)  # List[RemoveResult]
    error = pyqtSignal(str)  # Error message

    def __init__(self, config: BatchRemoveConfig, masks: MaskSet, parent=None):
        """
        Initialize the batch worker.

        Args:
            config: Files, output directory and unblend settings.
            masks: Calibrated masks, shared read-only.
            parent: Optional parent QObject.
        """
        super().__init__(parent)
        self.config = config
        self.masks = masks
        self._is_cancelled = False

    def cancel(self):
        """Request cancellation; the image in progress still completes."""
        self._is_cancelled = True

    def _check_masks(self) -> Optional[str]:
        """Return an error message if the masks cannot serve this batch."""
        mode = self.config.unblend.force_mode
        if mode is ForceMode.AUTO:
            if not self.masks.ready:
                return "Masks not loaded yet: auto mode needs both sizes"
            return None

        variant = MaskVariant(mode.value)
        if not self.masks.has(variant):
            return f"Mask '{variant.value}' not loaded yet"
        return None

    def _unique_output_name(self, image_path: Path, used_names: set[str]) -> str:
        """Pick an output name no earlier image in this batch has taken."""
        index = 0
        name = clean_filename(image_path)
        while name.lower() in used_names:
            index += 1
            name = clean_filename(image_path, index)
        used_names.add(name.lower())
        return name

    def _process_single_image(self, image_path: Path, output_name: str) -> RemoveResult:
        result = RemoveResult(source_path=image_path)

        try:
            with Image.open(image_path) as image:
                image = ImageOps.exif_transpose(image)
                buffer = PixelBuffer.from_image(image)

            remove_watermark(buffer, self.config.unblend, self.masks)

            self.config.output_dir.mkdir(parents=True, exist_ok=True)
            output_path = self.config.output_dir / output_name
            buffer.to_image().save(output_path)

            result.output_path = output_path
            result.success = True

        except Exception as e:
            logger.warning("Failed to clean %s: %s", image_path, e)
            result.success = False
            result.error_message = str(e)

        return result

    def run(self):
        """
        Main worker execution.

        Cleans every image in the config and emits progress signals.
        """
        results: List[RemoveResult] = []
        used_names: set[str] = set()
        total = len(self.config.image_paths)

        if total == 0:
            self.error.emit("No images to process")
            self.finished_all.emit(results)
            return

        problem = self._check_masks()
        if problem:
            self.error.emit(problem)
            self.finished_all.emit(results)
            return

        try:
            for idx, image_path in enumerate(self.config.image_paths):
                if self._is_cancelled:
                    break

                self.progress.emit(idx + 1, total, image_path.name)

                output_name = self._unique_output_name(image_path, used_names)
                result = self._process_single_image(image_path, output_name)
                results.append(result)

                self.image_completed.emit(result)

        except Exception as e:
            logger.exception("Batch removal crashed")
            self.error.emit(f"Critical error: {e}")

        self.finished_all.emit(results)
