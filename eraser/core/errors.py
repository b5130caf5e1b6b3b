"""
Error Types
===========
Exceptions raised by the core. Only real failures live here: an image that
is too small for the watermark, or a mask pixel below the alpha threshold,
are normal inputs and never raise.
"""

from pathlib import Path
from typing import Union


class EraserError(Exception):
    """Base class for all watermark eraser errors."""


class AssetLoadError(EraserError):
    """
    A reference watermark asset could not be read or decoded.

    Raised during mask calibration. The caller should not use the affected
    size variant.
    """

    def __init__(self, path: Union[str, Path], reason: str):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Failed to load watermark asset {self.path}: {reason}")


class MasksNotReadyError(EraserError):
    """The mask needed for an unblend has not been calibrated."""

    def __init__(self, variant: str):
        self.variant = variant
        super().__init__(f"Watermark mask '{variant}' is not loaded yet")
