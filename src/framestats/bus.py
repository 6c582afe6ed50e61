import logging
import queue
import time
from dataclasses import dataclass

from framestats.utils.logger import LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)


@dataclass(frozen=True)
class EndOfStream:
    """The source has no further frames and finished without error."""

    source: str = ""


@dataclass(frozen=True)
class Error:
    """The source (or a frame callback) failed; the run must stop."""

    details: str
    source: str = ""
    exception: BaseException | None = None


@dataclass(frozen=True)
class StateChanged:
    """Informational; ignored while waiting for termination."""

    state: str
    source: str = ""


TERMINAL_MESSAGES = (EndOfStream, Error)


class MessageBus:
    """Thread-safe FIFO carrying messages from a FrameSource to its controller."""

    def __init__(self):
        self._queue: queue.Queue = queue.Queue()

    def post(self, message) -> None:
        self._queue.put(message)

    def wait_for_termination(self, timeout: float | None = None):
        """
        Block until an EndOfStream or Error message arrives.

        Args:
            timeout: Seconds to wait overall; None waits indefinitely

        Returns:
            The terminal message, or None if the timeout elapsed first
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            try:
                message = self._queue.get(timeout=remaining)
            except queue.Empty:
                return None

            if isinstance(message, TERMINAL_MESSAGES):
                return message
            logger.debug(f"Bus message: {message}")
