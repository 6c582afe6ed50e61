from framestats.constants import DECODER_FFMPEG
from framestats.sources.base import FrameSource
from framestats.sources.buffer_source import BufferFrameSource


def create_source(config) -> FrameSource:
    """Build the decoder-backed source selected by a RunConfig."""
    if config.decoder == DECODER_FFMPEG:
        from framestats.sources.ffmpeg_source import FfmpegPipeFrameSource

        return FfmpegPipeFrameSource(
            config.video_path,
            width=config.width,
            height=config.height,
            delivery_threads=config.delivery_threads,
        )

    from framestats.sources.av_source import AvFrameSource

    return AvFrameSource(
        config.video_path,
        width=config.width,
        height=config.height,
        delivery_threads=config.delivery_threads,
    )


__all__ = ["FrameSource", "BufferFrameSource", "create_source"]
