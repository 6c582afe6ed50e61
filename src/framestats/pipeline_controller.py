import logging
import threading
from dataclasses import dataclass

from framestats.bus import EndOfStream, Error
from framestats.errors import PipelineStateError
from framestats.sources.base import FrameSource
from framestats.utils.app_types import PipelineState
from framestats.utils.logger import LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)


@dataclass(frozen=True)
class RunResult:
    state: PipelineState
    error: Error | None
    frames_delivered: int

    @property
    def ok(self) -> bool:
        return self.state is PipelineState.END_OF_STREAM


class PipelineController:
    """
    Owns the start/wait/stop lifecycle of one FrameSource.

    IDLE -> PLAYING -> (END_OF_STREAM | ERROR) -> STOPPED

    The only blocking call is `wait`, which returns when the source posts
    EndOfStream or Error. Both lead to the same shutdown.
    """

    def __init__(self, source: FrameSource):
        self.source = source
        self._state = PipelineState.IDLE
        self._state_lock = threading.Lock()
        self._terminal_state: PipelineState | None = None
        self.error: Error | None = None

    @property
    def state(self) -> PipelineState:
        return self._state

    def _transition(self, expected, new_state: PipelineState):
        with self._state_lock:
            if self._state not in expected:
                raise PipelineStateError(
                    f"Cannot move to {new_state.value} from {self._state.value}"
                )
            logger.debug(f"Pipeline {self._state.value} -> {new_state.value}")
            self._state = new_state

    def start(self):
        """Start delivery. Setup errors from the source propagate unchanged."""
        self._transition((PipelineState.IDLE,), PipelineState.PLAYING)
        try:
            self.source.start()
        except Exception:
            with self._state_lock:
                self._state = PipelineState.ERROR
                self._terminal_state = PipelineState.ERROR
            raise
        logger.info(f"Pipeline playing ({self.source.name})")

    def wait(self, timeout: float | None = None) -> PipelineState:
        """
        Block until the source signals termination.

        Args:
            timeout: Optional limit in seconds; None waits for the event

        Returns:
            The state after the wait (PLAYING if the timeout elapsed)
        """
        if self._state is not PipelineState.PLAYING:
            raise PipelineStateError(f"Cannot wait in state {self._state.value}")

        message = self.source.bus.wait_for_termination(timeout=timeout)
        if message is None:
            return self._state

        if isinstance(message, EndOfStream):
            logger.info("End of stream reached")
            new_state = PipelineState.END_OF_STREAM
        else:
            self.error = message
            logger.error(f"Pipeline error: {message.details}")
            new_state = PipelineState.ERROR

        with self._state_lock:
            # stop() may already have run from another thread
            if self._state is PipelineState.PLAYING:
                self._state = new_state
                self._terminal_state = new_state
            return self._state

    def request_stop(self):
        """Ask the source to stop early; a blocked `wait` then sees EndOfStream."""
        self.source.stop()

    def stop(self):
        """Stop the source. Reached exactly once per run; later calls do nothing."""
        with self._state_lock:
            if self._state is PipelineState.STOPPED:
                return
            if self._terminal_state is None and self._state is not PipelineState.IDLE:
                # Stopped before the source signalled termination
                self._terminal_state = PipelineState.END_OF_STREAM
            self._state = PipelineState.STOPPED

        self.source.stop()
        logger.info(f"Pipeline stopped after {self.source.frames_delivered} frames")

    def run(self) -> RunResult:
        """Start, wait for termination and stop."""
        try:
            self.start()
            self.wait()
        finally:
            self.stop()

        return RunResult(
            state=self._terminal_state or PipelineState.STOPPED,
            error=self.error,
            frames_delivered=self.source.frames_delivered,
        )
