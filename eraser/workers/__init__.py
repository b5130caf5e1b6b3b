"""
Workers Module - Async Thread Management
========================================
Contains QThread workers for non-blocking calibration and removal.

Components:
- MaskLoadWorker: Startup calibration of both watermark masks
- UnblendWorker: Single-buffer removal with explicit buffer handoff
- BatchRemoveWorker: File batch removal with progress tracking
"""

from .mask_worker import MaskLoadWorker
from .remove_worker import (
    UnblendWorker, BatchRemoveWorker, BatchRemoveConfig, RemoveResult,
    clean_filename
)

__all__ = [
    # Masks
    "MaskLoadWorker",
    # Removal
    "UnblendWorker",
    "BatchRemoveWorker",
    "BatchRemoveConfig",
    "RemoveResult",
    "clean_filename",
]
