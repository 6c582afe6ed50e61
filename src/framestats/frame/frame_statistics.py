from typing import Tuple

import numpy as np

from framestats.constants import CHANNELS
from framestats.errors import BufferMapError, EmptyFrameError


class FrameStatistics:
    """
    Reduces a packed pixel buffer to per-channel mean intensities.
    """

    @staticmethod
    def channel_means(buffer, channels: int = CHANNELS) -> Tuple[int, ...]:
        """
        Mean of each channel across all whole pixels, truncated toward zero.

        Args:
            buffer: Packed 8-bit samples (bytes, bytearray, memoryview or uint8 ndarray),
                one sample per channel per pixel in fixed channel order
            channels: Samples per pixel

        Returns:
            Tuple with one mean (0-255) per channel

        Raises:
            EmptyFrameError: If the buffer holds less than one whole pixel
            BufferMapError: If the buffer cannot be read as 8-bit samples
            ValueError: If channels is less than 1
        """
        if channels < 1:
            raise ValueError(f"channels must be >= 1, got {channels}")

        samples = FrameStatistics._as_samples(buffer)

        # Trailing bytes of a partial pixel are ignored
        pixel_count = samples.size // channels
        if pixel_count == 0:
            raise EmptyFrameError(
                f"Frame of {samples.size} bytes holds no whole {channels}-channel pixel"
            )

        pixels = samples[: pixel_count * channels].reshape(pixel_count, channels)
        sums = pixels.sum(axis=0, dtype=np.uint64)
        means = sums // np.uint64(pixel_count)
        return tuple(int(m) for m in means)

    @staticmethod
    def _as_samples(buffer) -> np.ndarray:
        """Flat uint8 view over the buffer, without copying where possible."""
        if isinstance(buffer, np.ndarray):
            if buffer.dtype != np.uint8:
                raise BufferMapError(f"Expected uint8 samples, got {buffer.dtype}")
            return buffer.reshape(-1)

        try:
            return np.frombuffer(buffer, dtype=np.uint8)
        except (TypeError, ValueError, BufferError) as e:
            raise BufferMapError(f"Could not map frame buffer: {e}") from e
