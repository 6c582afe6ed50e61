import logging
import time

from framestats.bus import Error
from framestats.config.run_config import RunConfig
from framestats.errors import SinkWriteError
from framestats.frame_processor import FrameProcessor
from framestats.pipeline_controller import PipelineController, RunResult
from framestats.record_sink import RecordSink
from framestats.sequencer import FrameSequencer
from framestats.sources import FrameSource, create_source
from framestats.utils.app_types import PipelineState
from framestats.utils.logger import LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)


class Main:
    """
    Wires one run together: sink, sequencer, frame callback, source and controller.

    The sequencer and sink are created here and injected into the frame
    processor; nothing is shared through module state.
    """

    def __init__(self, config: RunConfig, source: FrameSource | None = None):
        self.config = config
        self.source = source
        self.sequencer = FrameSequencer()
        self.sink: RecordSink | None = None
        self.processor: FrameProcessor | None = None
        self.controller: PipelineController | None = None

    def run(self) -> RunResult:
        """
        Process the whole stream and return how the run ended.

        A failure to close the output log is reported as an ERROR result
        rather than raised.

        Raises:
            SetupError: If configuration, the output log or the input cannot be opened
        """
        config = self.config.validate(require_input=self.source is None)

        self.sink = RecordSink.open(config.output_path)
        start = time.time()
        try:
            self.processor = FrameProcessor(
                sequencer=self.sequencer,
                sink=self.sink,
                channels=config.channels,
                error_policy=config.error_policy,
            )

            source = self.source or create_source(config)
            source.set_callback(self.processor.process_frame)
            self.source = source
            self.controller = PipelineController(source)

            result = self.controller.run()
        finally:
            close_error = self._close_sink()

        if close_error is not None and result.ok:
            result = RunResult(
                state=PipelineState.ERROR,
                error=Error(details=str(close_error), source="sink", exception=close_error),
                frames_delivered=result.frames_delivered,
            )

        logger.info(
            f"TIME - {self.sequencer.count} records from {result.frames_delivered} frames "
            f"written to {config.output_path}: {time.time() - start:.2f} seconds"
        )
        return result

    def _close_sink(self) -> SinkWriteError | None:
        try:
            self.sink.close()
        except SinkWriteError as e:
            logger.error(f"{e}")
            return e
        return None

    def stop(self):
        """Ask an active run to finish early."""
        if self.controller:
            self.controller.request_stop()

    @property
    def frames_processed(self) -> int:
        return self.sequencer.count


def run_pipeline(config: RunConfig, source: FrameSource | None = None) -> RunResult:
    return Main(config, source=source).run()
