"""
Watermark Eraser Package
========================
Removes a fixed semi-transparent logo watermark by inverting alpha blending.

Modules:
    - core: Pure algorithm logic (no Qt dependencies)
    - workers: QThread workers for async processing

Usage:
    from eraser.core import load_mask_set, remove_watermark, UnblendConfig
    from eraser.workers import MaskLoadWorker, BatchRemoveWorker
"""

__version__ = "1.0.0"
__app_name__ = "Watermark Eraser"

# Core exports
from .core import (
    AssetLoadError,
    ForceMode,
    MaskSet,
    MasksNotReadyError,
    OpacityMask,
    PixelBuffer,
    UnblendConfig,
    calibrate,
    load_mask_set,
    remove_watermark,
)

__all__ = [
    # Version info
    "__version__",
    "__app_name__",

    # Core
    "AssetLoadError",
    "ForceMode",
    "MaskSet",
    "MasksNotReadyError",
    "OpacityMask",
    "PixelBuffer",
    "UnblendConfig",
    "calibrate",
    "load_mask_set",
    "remove_watermark",
]
