import logging

import av
from av.error import FFmpegError

from framestats.errors import SourceOpenError
from framestats.sources.base import FrameSource
from framestats.utils.logger import LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)

PIXEL_FORMAT = "rgb24"


class AvFrameSource(FrameSource):
    """Decode a media file with PyAV and deliver every frame as packed rgb24."""

    name = "av"

    def __init__(
        self,
        path: str,
        width: int | None = None,
        height: int | None = None,
        delivery_threads: int = 1,
    ):
        """
        Args:
            path: Local path or URL of the media to decode
            width: Optional output width; native width when None
            height: Optional output height; native height when None
            delivery_threads: Number of threads invoking the frame callback
        """
        super().__init__(delivery_threads=delivery_threads)
        self.path = path
        self.width = width
        self.height = height
        self._container = None
        self._stream = None

    def _open(self):
        try:
            self._container = av.open(self.path)
        except (FFmpegError, OSError) as e:
            raise SourceOpenError(f"Could not open {self.path}: {e}") from e

        if not self._container.streams.video:
            self._container.close()
            self._container = None
            raise SourceOpenError(f"No video stream found in {self.path}")

        self._stream = self._container.streams.video[0]
        logger.info(
            f"Decoding {self.path} ({self._stream.codec_context.name}, "
            f"{self._stream.codec_context.width}x{self._stream.codec_context.height})"
        )

    def _frames(self):
        for frame in self._container.decode(self._stream):
            frame = frame.reformat(
                width=self.width, height=self.height, format=PIXEL_FORMAT
            )
            # (height, width, 3) uint8, rows without padding
            yield frame.to_ndarray()

    def _close(self):
        if self._container is not None:
            self._container.close()
            self._container = None
