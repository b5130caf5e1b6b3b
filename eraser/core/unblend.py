"""
Unblend Engine
==============
Removes the logo watermark by inverting source-over compositing.

Technical Notes:
- The watermark was composited as
      observed = alpha * 255 + (1 - alpha) * original
  with a pure white glyph, so
      original = (observed - alpha * 255) / (1 - alpha)
- The logo sits at a fixed margin from the bottom-right corner
- Images larger than 1024px on BOTH sides carry the large (96px) logo
- Only the R, G, B channels are restored; the image alpha is left alone
- Results are clamped to [0, 255] and rounded like a clamped byte store
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

import numpy as np
from PIL import Image

from .buffer import PixelBuffer
from .mask import MaskSet, MaskVariant, OpacityMask

logger = logging.getLogger(__name__)

# Both sides must exceed this for auto mode to pick the large logo
LARGE_THRESHOLD = 1024
# Mask contributions below this are treated as noise
ALPHA_THRESHOLD = 0.002
# Cap to keep 1 / (1 - alpha) finite
MAX_ALPHA = 0.99
# Glyph color (white) in every channel
LOGO_VALUE = 255.0


class ForceMode(Enum):
    """Which mask to use: picked from image size, or forced."""
    AUTO = "auto"
    SMALL = "small"
    LARGE = "large"


@dataclass
class UnblendConfig:
    """Per-image removal settings."""
    force_mode: ForceMode = ForceMode.AUTO
    alpha_gain: float = 1.0  # multiplier on calibrated alpha, UI range 0.5-3.0

    def __post_init__(self):
        if not isinstance(self.force_mode, ForceMode):
            try:
                self.force_mode = ForceMode(str(self.force_mode).lower())
            except ValueError:
                raise ValueError(
                    f"Unknown force mode {self.force_mode!r}, "
                    f"expected one of {[m.value for m in ForceMode]}"
                ) from None

        try:
            self.alpha_gain = float(self.alpha_gain)
        except (TypeError, ValueError):
            raise ValueError(
                f"Alpha gain must be a positive number, got {self.alpha_gain!r}"
            ) from None

        if not math.isfinite(self.alpha_gain) or self.alpha_gain <= 0:
            raise ValueError(f"Alpha gain must be a positive number, got {self.alpha_gain}")


def resolve_variant(width: int, height: int,
                    force_mode: ForceMode = ForceMode.AUTO) -> MaskVariant:
    """
    Pick the mask variant for an image.

    In auto mode the large mask is used only when both dimensions are
    strictly greater than LARGE_THRESHOLD.
    """
    if force_mode is ForceMode.LARGE:
        return MaskVariant.LARGE
    if force_mode is ForceMode.SMALL:
        return MaskVariant.SMALL

    if width > LARGE_THRESHOLD and height > LARGE_THRESHOLD:
        return MaskVariant.LARGE
    return MaskVariant.SMALL


def watermark_position(width: int, height: int, mask: OpacityMask,
                       variant: MaskVariant) -> Optional[Tuple[int, int]]:
    """
    Top-left corner of the watermark in image pixels.

    Returns:
        (pos_x, pos_y), or None when the image is too small to hold the
        mask plus its margin.
    """
    pos_x = width - variant.margin - mask.width
    pos_y = height - variant.margin - mask.height
    if pos_x < 0 or pos_y < 0:
        return None
    return pos_x, pos_y


def remove_watermark(buffer: PixelBuffer, config: UnblendConfig,
                     masks: MaskSet) -> None:
    """
    Remove the watermark from a buffer in place.

    Args:
        buffer: RGBA pixels to clean. Mutated in place.
        config: Mode and alpha gain.
        masks: Calibrated masks. Only read.

    Raises:
        MasksNotReadyError: If the needed mask is missing. Raised before
                            any pixel is touched.
    """
    width, height = buffer.width, buffer.height
    variant = resolve_variant(width, height, config.force_mode)
    mask = masks.get(variant)

    position = watermark_position(width, height, mask, variant)
    if position is None:
        # Nothing to remove: the logo cannot fit in this image
        logger.debug(
            "%dx%d image too small for the %s watermark, leaving it unchanged",
            width, height, variant.value
        )
        return
    pos_x, pos_y = position

    # Crop the mask to the buffer in case a mask is larger than advertised
    region_w = min(mask.width, width - pos_x)
    region_h = min(mask.height, height - pos_y)
    if region_w <= 0 or region_h <= 0:
        return

    alpha = mask.grid()[:region_h, :region_w].astype(np.float64) * config.alpha_gain
    covered = alpha >= ALPHA_THRESHOLD
    if not covered.any():
        return
    alpha = np.minimum(alpha, MAX_ALPHA)

    region = buffer.pixels()[pos_y:pos_y + region_h, pos_x:pos_x + region_w, :3]
    observed = region[covered].astype(np.float64)
    a = alpha[covered][:, np.newaxis]

    original = (observed - a * LOGO_VALUE) / (1.0 - a)
    region[covered] = np.rint(np.clip(original, 0.0, 255.0)).astype(np.uint8)

    logger.debug(
        "Unblended %d pixels with the %s mask at (%d, %d), gain %.2f",
        int(covered.sum()), variant.value, pos_x, pos_y, config.alpha_gain
    )


def remove_watermark_from_image(image: Image.Image,
                                config: Optional[UnblendConfig],
                                masks: MaskSet) -> Image.Image:
    """
    Convenience wrapper for Pillow images.

    Args:
        image: Source image. Not modified.
        config: Removal settings (defaults when None).
        masks: Calibrated masks.

    Returns:
        New RGBA image with the watermark removed.
    """
    buffer = PixelBuffer.from_image(image)
    remove_watermark(buffer, config or UnblendConfig(), masks)
    return buffer.to_image()
