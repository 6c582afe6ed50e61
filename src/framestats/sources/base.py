import logging
import threading
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterator

from framestats.bus import EndOfStream, Error, MessageBus, StateChanged
from framestats.constants import DEFAULT_DELIVERY_THREADS
from framestats.errors import PipelineStateError
from framestats.utils.app_types import FlowStatus
from framestats.utils.logger import LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)


class FrameSource(ABC):
    """
    Delivers decoded frames to a registered callback from its own thread(s).

    Subclasses only decode: `_open` prepares the decoder (raising a
    SetupError on failure), `_frames` yields one packed pixel buffer per
    frame and `_close` releases the decoder. This class owns delivery and
    posts exactly one EndOfStream or Error message on `bus` per run.

    With `delivery_threads > 1` frames are handed to a thread pool, so the
    callback runs concurrently on up to that many frames.
    """

    name = "source"

    def __init__(self, delivery_threads: int = DEFAULT_DELIVERY_THREADS):
        if delivery_threads < 1:
            raise ValueError(f"delivery_threads must be >= 1, got {delivery_threads}")
        self.bus = MessageBus()
        self.delivery_threads = delivery_threads
        self._callback: Callable | None = None
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()
        self._stopped = threading.Event()
        self._post_lock = threading.Lock()
        self._stop_lock = threading.Lock()
        self._terminated = False
        self._closed = False
        self._frames_delivered = 0

    @abstractmethod
    def _open(self) -> None:
        """Open the decoder. Raise a SetupError if the input is unusable."""

    @abstractmethod
    def _frames(self) -> Iterator:
        """Yield one packed pixel buffer per decoded frame."""

    @abstractmethod
    def _close(self) -> None:
        """Release decoder resources."""

    def _interrupt(self) -> None:
        """Unblock a pending read so the streaming thread can exit."""

    def set_callback(self, callback: Callable) -> None:
        """Register the frame callback. Must be called before start()."""
        if self._thread is not None:
            raise PipelineStateError("Cannot change the frame callback while streaming")
        self._callback = callback

    def start(self) -> None:
        """Open the decoder and begin delivering frames in the background."""
        if self._callback is None:
            raise PipelineStateError(f"{self.name}: no frame callback registered")
        if self._thread is not None or self._closed:
            raise PipelineStateError(f"{self.name}: source was already started")

        self._open()
        self.bus.post(StateChanged(state="playing", source=self.name))

        self._thread = threading.Thread(
            target=self._streaming_loop,
            name=f"{self.name}-streaming",
            daemon=True,
        )
        self._thread.start()

    def stop(self) -> None:
        """
        Stop delivery and release the decoder.

        Waits for in-flight callbacks to finish. Posts EndOfStream if no
        terminal message was posted yet. Safe to call more than once and from
        several threads: a caller that finds a stop already under way blocks
        until that stop has completed.
        """
        with self._stop_lock:
            owner = not self._closed
            self._closed = True
        if not owner:
            if threading.current_thread() is not self._thread:
                self._stopped.wait()
            return

        try:
            self._stop_event.set()

            if self._thread is not None:
                self._interrupt()
                if self._thread is not threading.current_thread():
                    self._thread.join()

            self._close()
            self._post_terminal(EndOfStream(source=self.name))
            logger.debug(f"{self.name}: stopped after {self._frames_delivered} frames")
        finally:
            self._stopped.set()

    @property
    def frames_delivered(self) -> int:
        return self._frames_delivered

    def _post_terminal(self, message) -> bool:
        with self._post_lock:
            if self._terminated:
                return False
            self._terminated = True
        self.bus.post(message)
        return True

    def _streaming_loop(self):
        frames = self._frames()
        try:
            if self.delivery_threads == 1:
                self._deliver_serial(frames)
            else:
                self._deliver_pooled(frames)
        except Exception as e:
            if self._stop_event.is_set():
                # Decoder torn down by stop(); not a stream failure
                logger.debug(f"{self.name}: streaming ended during stop: {e}")
            else:
                logger.error(f"{self.name}: decoding failed: {e}")
                self._post_terminal(
                    Error(details=f"{self.name}: {e}", source=self.name, exception=e)
                )
                return
        finally:
            close = getattr(frames, "close", None)
            if close:
                close()

        self._post_terminal(EndOfStream(source=self.name))

    def _deliver_serial(self, frames):
        for buffer in frames:
            if self._stop_event.is_set():
                return
            self._frames_delivered += 1
            if not self._deliver_one(buffer):
                return

    def _deliver_pooled(self, frames):
        # Bounded so a slow sink stalls decoding instead of queueing frames
        slots = threading.BoundedSemaphore(self.delivery_threads)

        with ThreadPoolExecutor(
            max_workers=self.delivery_threads,
            thread_name_prefix=f"{self.name}-callback",
        ) as pool:
            for buffer in frames:
                slots.acquire()
                if self._stop_event.is_set():
                    slots.release()
                    return
                self._frames_delivered += 1
                future = pool.submit(self._deliver_one, buffer)
                future.add_done_callback(lambda _: slots.release())

    def _deliver_one(self, buffer) -> bool:
        """Run the callback on one frame; returns False when the run must stop."""
        try:
            result = self._callback(buffer)
        except Exception as e:
            logger.exception(f"{self.name}: frame callback raised")
            self._fail(f"frame callback raised: {e}", e)
            return False

        if result.status is FlowStatus.ERROR:
            self._fail(f"frame callback failed: {result.error}", result.error)
            return False
        return True

    def _fail(self, details: str, exception: BaseException | None):
        self._stop_event.set()
        self._post_terminal(
            Error(details=f"{self.name}: {details}", source=self.name, exception=exception)
        )
