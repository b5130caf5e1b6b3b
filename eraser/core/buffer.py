"""
Pixel Buffer
============
Flat interleaved RGBA sample storage shared by the calibrator and the
unblend engine.

Technical Notes:
- Samples are a 1-D uint8 numpy array of length width * height * 4
- `pixels()` returns a (height, width, 4) view, so writes go straight
  into the buffer
- Pillow is only used at the edges (from_image / to_image)
"""

from dataclasses import dataclass
from typing import Union

import numpy as np
from PIL import Image

CHANNELS = 4


@dataclass
class PixelBuffer:
    """
    A decoded RGBA image as a mutable flat sample array.

    The unblend engine mutates `samples` in place. Whoever holds the buffer
    owns it; hand it to a worker and take it back from the worker's signal
    rather than touching it from two threads.
    """
    width: int
    height: int
    samples: np.ndarray

    def __post_init__(self):
        if self.width < 0 or self.height < 0:
            raise ValueError(
                f"Buffer dimensions must be non-negative, got {self.width}x{self.height}"
            )

        if isinstance(self.samples, (bytes, bytearray, memoryview)):
            self.samples = np.frombuffer(self.samples, dtype=np.uint8).copy()
        elif not isinstance(self.samples, np.ndarray):
            self.samples = np.array(self.samples, dtype=np.uint8)
        elif self.samples.dtype != np.uint8:
            raise ValueError(f"Samples must be uint8, got {self.samples.dtype}")

        expected = self.width * self.height * CHANNELS
        if self.samples.size != expected:
            raise ValueError(
                f"Expected {expected} samples for {self.width}x{self.height} RGBA, "
                f"got {self.samples.size}"
            )

        self.samples = self.samples.reshape(-1)

    @classmethod
    def blank(cls, width: int, height: int,
              color: tuple[int, int, int, int] = (0, 0, 0, 255)) -> "PixelBuffer":
        """Create a buffer filled with a single RGBA color."""
        pixels = np.empty((height, width, CHANNELS), dtype=np.uint8)
        pixels[...] = color
        return cls(width, height, pixels.reshape(-1))

    @classmethod
    def from_image(cls, image: Image.Image) -> "PixelBuffer":
        """
        Decode a Pillow image into a new buffer.

        Args:
            image: Any Pillow image; it is converted to RGBA if needed.

        Returns:
            PixelBuffer owning a private copy of the pixels.
        """
        if image.mode != "RGBA":
            image = image.convert("RGBA")

        width, height = image.size
        samples = np.array(image, dtype=np.uint8).reshape(-1)
        return cls(width, height, samples)

    def pixels(self) -> np.ndarray:
        """Return a writable (height, width, 4) view of the samples."""
        return self.samples.reshape(self.height, self.width, CHANNELS)

    def to_image(self) -> Image.Image:
        """Encode the buffer as a new RGBA Pillow image (data is copied)."""
        return Image.fromarray(self.pixels().copy())


def as_pixel_buffer(source: Union[PixelBuffer, Image.Image]) -> PixelBuffer:
    """Accept either a PixelBuffer or a Pillow image."""
    if isinstance(source, PixelBuffer):
        return source
    return PixelBuffer.from_image(source)
