"""
Core Module - Pure Algorithm Logic
==================================
This module contains no Qt dependencies.
Mask calibration and watermark unblending are implemented here.
"""

from .buffer import PixelBuffer
from .errors import AssetLoadError, EraserError, MasksNotReadyError
from .mask import MaskSet, MaskVariant, OpacityMask, calibrate, load_mask, load_mask_set
from .unblend import (
    ForceMode, UnblendConfig, remove_watermark, remove_watermark_from_image,
    resolve_variant, watermark_position
)

__all__ = [
    "PixelBuffer",
    "EraserError",
    "AssetLoadError",
    "MasksNotReadyError",
    "MaskSet",
    "MaskVariant",
    "OpacityMask",
    "calibrate",
    "load_mask",
    "load_mask_set",
    "ForceMode",
    "UnblendConfig",
    "remove_watermark",
    "remove_watermark_from_image",
    "resolve_variant",
    "watermark_position",
]
