import threading

from framestats.constants import INDEX_MODULUS


class FrameSequencer:
    """
    Hands out zero-based frame indices, one per processed frame.

    Safe to call from several delivery threads: every index is issued
    exactly once and the issued set has no gaps.
    """

    def __init__(self, start: int = 0):
        self._lock = threading.Lock()
        self._next = start % INDEX_MODULUS
        self._issued = 0

    def next_index(self) -> int:
        """Return the current counter value and advance it (wraps at 2**64)."""
        with self._lock:
            index = self._next
            self._next = (self._next + 1) % INDEX_MODULUS
            self._issued = (self._issued + 1) % INDEX_MODULUS
            return index

    @property
    def count(self) -> int:
        """Number of indices issued so far."""
        with self._lock:
            return self._issued
