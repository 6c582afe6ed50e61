class FrameStatsError(Exception):
    """Base error for the frame statistics pipeline."""


class SetupError(FrameStatsError):
    """Raised before streaming starts; the run cannot proceed."""


class ConfigError(SetupError):
    """Configuration is missing or invalid."""


class SourceOpenError(SetupError):
    """The input video could not be opened or probed."""


class SinkOpenError(SetupError, OSError):
    """The output log could not be opened for appending."""


class FrameExtractionError(FrameStatsError):
    """A single frame could not be reduced to channel statistics."""


class EmptyFrameError(FrameExtractionError):
    """The frame holds fewer bytes than one pixel, so its mean is undefined."""


class BufferMapError(FrameExtractionError):
    """The frame buffer could not be read as 8-bit samples."""


class SinkWriteError(FrameStatsError, OSError):
    """Writing or syncing a record to the output log failed."""


class PipelineStateError(FrameStatsError):
    """A controller operation was called in the wrong state."""


class DecodeError(FrameStatsError):
    """The decoder failed after streaming started."""
