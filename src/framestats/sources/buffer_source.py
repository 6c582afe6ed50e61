from typing import Iterable

from framestats.sources.base import FrameSource


class BufferFrameSource(FrameSource):
    """Deliver an in-memory sequence of pixel buffers, e.g. frames decoded elsewhere."""

    name = "buffers"

    def __init__(self, buffers: Iterable, delivery_threads: int = 1):
        super().__init__(delivery_threads=delivery_threads)
        self._buffers = buffers

    def _open(self):
        pass

    def _frames(self):
        yield from self._buffers

    def _close(self):
        pass
