import logging
from typing import Any, Dict, Optional

import ffmpeg

from framestats.constants import FFMPEG_PIX_FMT, FFMPEG_TERMINATE_TIMEOUT_SEC
from framestats.errors import DecodeError, SourceOpenError
from framestats.sources.base import FrameSource
from framestats.utils.logger import LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)

BYTES_PER_PIXEL = 3


class FfmpegPipeFrameSource(FrameSource):
    """
    Run ffmpeg as a subprocess and read fixed-size rgb24 frames from its stdout.

    The frame size is taken from ffprobe unless width and height are given,
    in which case ffmpeg scales to that size.
    """

    name = "ffmpeg"

    def __init__(
        self,
        path: str,
        width: int | None = None,
        height: int | None = None,
        ffmpeg_options: Optional[Dict[str, Any]] = None,
        delivery_threads: int = 1,
    ):
        super().__init__(delivery_threads=delivery_threads)
        self.path = path
        self.width = width
        self.height = height
        self.ffmpeg_options = ffmpeg_options
        self._process = None

    @property
    def frame_size(self) -> int:
        return self.width * self.height * BYTES_PER_PIXEL

    def _probe_size(self):
        try:
            probe = ffmpeg.probe(self.path)
        except ffmpeg.Error as e:
            stderr = (e.stderr or b"").decode("utf-8", errors="replace").strip()
            raise SourceOpenError(f"ffprobe failed for {self.path}: {stderr}") from e
        except OSError as e:
            raise SourceOpenError(f"Could not run ffprobe: {e}") from e

        video = next(
            (s for s in probe.get("streams", []) if s.get("codec_type") == "video"),
            None,
        )
        if video is None:
            raise SourceOpenError(f"No video stream found in {self.path}")
        return int(video["width"]), int(video["height"])

    def _open(self):
        options = self.ffmpeg_options
        if self.width is None or self.height is None:
            self.width, self.height = self._probe_size()
            if options is None:
                options = {"an": None}
        elif options is None:
            options = {"an": None, "s": f"{self.width}x{self.height}"}

        try:
            self._process = (
                ffmpeg.input(self.path)
                .output("pipe:", format="rawvideo", pix_fmt=FFMPEG_PIX_FMT, **options)
                .global_args("-hide_banner", "-loglevel", "error")
                .run_async(pipe_stdout=True)
            )
        except OSError as e:
            raise SourceOpenError(f"Could not start ffmpeg: {e}") from e

        logger.info(f"Reading {self.path} through ffmpeg ({self.width}x{self.height})")

    def _frames(self):
        frame_size = self.frame_size
        while True:
            raw = self._process.stdout.read(frame_size)
            if len(raw) < frame_size:
                # A short trailing read is a truncated frame; drop it
                if raw:
                    logger.debug(f"Dropping {len(raw)} trailing bytes from ffmpeg")
                break
            yield raw

        returncode = self._process.wait()
        if returncode != 0 and not self._stop_event.is_set():
            raise DecodeError(f"ffmpeg exited with code {returncode} for {self.path}")

    def _interrupt(self):
        if self._process and self._process.poll() is None:
            self._process.terminate()

    def _close(self):
        process = self._process
        if process is None:
            return
        self._process = None
        if process.poll() is None:
            process.terminate()
            process.wait(timeout=FFMPEG_TERMINATE_TIMEOUT_SEC)
        if process.stdout:
            process.stdout.close()
