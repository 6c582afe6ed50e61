import logging
from dataclasses import dataclass

from framestats.constants import CHANNELS, PROGRESS_LOG_INTERVAL_FRAMES
from framestats.errors import FrameExtractionError, SinkWriteError
from framestats.frame.frame_record import FrameRecord
from framestats.frame.frame_statistics import FrameStatistics
from framestats.record_sink import RecordSink
from framestats.sequencer import FrameSequencer
from framestats.utils.app_types import ErrorPolicy, FlowStatus
from framestats.utils.logger import LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)


@dataclass(frozen=True)
class FrameResult:
    """Outcome of one frame callback."""

    status: FlowStatus
    record: FrameRecord | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.status is FlowStatus.OK


class FrameProcessor:
    """
    The per-frame callback handed to a FrameSource.

    Reduces the buffer, stamps an index and appends the record. The
    sequencer and sink are shared across all invocations; both guard
    themselves, so this class holds no lock of its own.
    """

    def __init__(
        self,
        sequencer: FrameSequencer,
        sink: RecordSink,
        channels: int = CHANNELS,
        error_policy: ErrorPolicy = ErrorPolicy.SKIP,
    ):
        if channels < 1:
            raise ValueError(f"channels must be >= 1, got {channels}")
        self.sequencer = sequencer
        self.sink = sink
        self.channels = channels
        self.error_policy = error_policy

    def __call__(self, buffer) -> FrameResult:
        return self.process_frame(buffer)

    def process_frame(self, buffer) -> FrameResult:
        """
        Consume one decoded frame.

        Args:
            buffer: Packed pixel samples for one frame, borrowed for this call only

        Returns:
            FrameResult with status OK (record written), SKIPPED (frame could not
            be reduced under the skip policy) or ERROR (the run must stop)
        """
        try:
            means = FrameStatistics.channel_means(buffer, self.channels)
        except FrameExtractionError as e:
            if self.error_policy is ErrorPolicy.SKIP:
                logger.warning(f"Skipping frame: {e}")
                return FrameResult(status=FlowStatus.SKIPPED, error=e)
            logger.error(f"Aborting on bad frame: {e}")
            return FrameResult(status=FlowStatus.ERROR, error=e)

        # Index is only assigned once the frame is known to produce a record
        record = FrameRecord(index=self.sequencer.next_index(), means=means)

        try:
            self.sink.append(record)
        except SinkWriteError as e:
            logger.error(f"Could not persist {record}: {e}")
            return FrameResult(status=FlowStatus.ERROR, record=record, error=e)

        if record.index and record.index % PROGRESS_LOG_INTERVAL_FRAMES == 0:
            logger.info(f"Processed {record.index} frames")
        logger.debug(f"{record}")
        return FrameResult(status=FlowStatus.OK, record=record)
