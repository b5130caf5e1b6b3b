"""
Mask Calibrator
===============
Turns a reference watermark image into an opacity mask.

Technical Notes:
- The reference assets are a white glyph over a black backdrop, so the
  brightest channel of each pixel equals alpha * 255
- alpha = max(R, G, B) / 255, no further normalization
- This only holds for a colorless glyph; a colored watermark needs a
  different calibration
- Masks are immutable once built and can be shared across threads
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Union

import numpy as np
from PIL import Image, UnidentifiedImageError

from .buffer import PixelBuffer, as_pixel_buffer
from .errors import AssetLoadError, MasksNotReadyError

logger = logging.getLogger(__name__)


class MaskVariant(Enum):
    """The two calibrated watermark sizes."""
    SMALL = "small"
    LARGE = "large"

    @property
    def margin(self) -> int:
        """Distance in pixels from the bottom-right corner."""
        return VARIANT_TABLE[self][0]

    @property
    def expected_size(self) -> int:
        """Side length of the reference asset in pixels."""
        return VARIANT_TABLE[self][1]


# variant -> (margin_px, expected_size)
VARIANT_TABLE = {
    MaskVariant.SMALL: (32, 48),
    MaskVariant.LARGE: (64, 96),
}


@dataclass(frozen=True, eq=False)
class OpacityMask:
    """
    Per-pixel watermark opacity, row-major, values in [0, 1].

    The alphas array is flagged read-only so one instance can back any
    number of concurrent unblends.
    """
    width: int
    height: int
    alphas: np.ndarray

    def __post_init__(self):
        alphas = np.array(self.alphas, dtype=np.float32).reshape(-1)
        if alphas.size != self.width * self.height:
            raise ValueError(
                f"Mask {self.width}x{self.height} needs {self.width * self.height} "
                f"alphas, got {alphas.size}"
            )
        if not np.isfinite(alphas).all():
            raise ValueError("Mask alphas must be finite")
        if alphas.size and (alphas.min() < 0.0 or alphas.max() > 1.0):
            raise ValueError("Mask alphas must lie in [0, 1]")

        alphas.flags.writeable = False
        object.__setattr__(self, "alphas", alphas)

    def grid(self) -> np.ndarray:
        """Return the alphas as a read-only (height, width) array."""
        return self.alphas.reshape(self.height, self.width)


def calibrate(reference: Union[PixelBuffer, Image.Image]) -> OpacityMask:
    """
    Build an opacity mask from a decoded reference watermark.

    Args:
        reference: RGBA pixels of the reference asset. Its dimensions
                   become the mask dimensions.

    Returns:
        OpacityMask with alpha = max(R, G, B) / 255 for every pixel.
    """
    buffer = as_pixel_buffer(reference)
    rgb = buffer.pixels()[:, :, :3]
    alphas = rgb.max(axis=2).astype(np.float32) / 255.0
    return OpacityMask(buffer.width, buffer.height, alphas)


def load_mask(path: Union[str, Path],
              variant: Optional[MaskVariant] = None) -> OpacityMask:
    """
    Decode a reference asset from disk and calibrate it.

    Args:
        path: Path to the reference image (PNG).
        variant: Optional variant, only used to check the decoded size.

    Returns:
        The calibrated OpacityMask.

    Raises:
        AssetLoadError: If the file is missing or cannot be decoded.
    """
    path = Path(path)
    if not path.exists():
        raise AssetLoadError(path, "file not found")

    try:
        with Image.open(path) as image:
            image.load()
            reference = PixelBuffer.from_image(image)
    except UnidentifiedImageError as e:
        raise AssetLoadError(path, "not a recognized image") from e
    except OSError as e:
        raise AssetLoadError(path, str(e)) from e

    if variant is not None:
        size = variant.expected_size
        if (reference.width, reference.height) != (size, size):
            logger.warning(
                "Asset %s is %dx%d, expected %dx%d for the %s mask",
                path, reference.width, reference.height, size, size, variant.value
            )

    mask = calibrate(reference)
    logger.debug("Calibrated %s: %dx%d", path.name, mask.width, mask.height)
    return mask


@dataclass
class MaskSet:
    """
    The process-wide pair of masks.

    Either slot may be empty when its asset failed to load. A set with one
    mask can still serve requests that force that size; auto mode needs
    both.
    """
    small: Optional[OpacityMask] = None
    large: Optional[OpacityMask] = None
    errors: dict[MaskVariant, str] = field(default_factory=dict)

    @property
    def ready(self) -> bool:
        """True when both variants are calibrated."""
        return self.small is not None and self.large is not None

    def has(self, variant: MaskVariant) -> bool:
        return self._slot(variant) is not None

    def get(self, variant: MaskVariant) -> OpacityMask:
        """
        Return the mask for a variant.

        Raises:
            MasksNotReadyError: If that variant is not calibrated.
        """
        mask = self._slot(variant)
        if mask is None:
            raise MasksNotReadyError(variant.value)
        return mask

    def _slot(self, variant: MaskVariant) -> Optional[OpacityMask]:
        return self.large if variant is MaskVariant.LARGE else self.small


def load_mask_set(small_path: Union[str, Path],
                  large_path: Union[str, Path]) -> MaskSet:
    """
    Calibrate both variants from their reference assets.

    A failure on one variant is logged and recorded in `MaskSet.errors`;
    the other variant is still loaded.

    Args:
        small_path: Path to the 48x48 reference.
        large_path: Path to the 96x96 reference.

    Returns:
        MaskSet with whichever masks loaded.
    """
    masks = MaskSet()
    paths = {MaskVariant.SMALL: small_path, MaskVariant.LARGE: large_path}

    for variant, path in paths.items():
        try:
            mask = load_mask(path, variant)
        except AssetLoadError as e:
            logger.error("Could not calibrate %s mask: %s", variant.value, e)
            masks.errors[variant] = str(e)
            continue

        if variant is MaskVariant.LARGE:
            masks.large = mask
        else:
            masks.small = mask

    return masks
