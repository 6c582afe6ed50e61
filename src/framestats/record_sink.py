import csv
import io
import logging
import os
import threading
from pathlib import Path

from framestats.constants import RECORD_DELIMITER, RECORD_LINE_TERMINATOR
from framestats.errors import SinkOpenError, SinkWriteError
from framestats.frame.frame_record import FrameRecord
from framestats.utils.logger import LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)


class RecordSink:
    """
    Append-only CSV log of frame records.

    Each record is encoded to one line up front and handed to an unbuffered
    binary file under a lock, then fsynced before the lock is released. The
    sink keeps no pending bytes between calls: a failed append never reaches
    the log later through another append or close. Appends from concurrent
    callbacks never interleave, but the physical line order may differ from
    index order.
    """

    def __init__(self, file, path: str = "<stream>", fsync: bool = True):
        """
        Wrap an already open binary file.

        Args:
            file: Binary file opened for appending, unbuffered (buffering=0)
            path: Destination name, for logging
            fsync: Whether to fsync after every write
        """
        self.path = path
        self._file = file
        self._fsync = fsync
        self._lock = threading.Lock()
        self._closed = False
        self._torn = False
        self._records_written = 0

    @classmethod
    def open(cls, path: str, fsync: bool = True) -> "RecordSink":
        """
        Open `path` for appending, creating it (and its parent directory) if absent.

        Raises:
            SinkOpenError: If the destination cannot be opened
        """
        try:
            Path(path).parent.mkdir(parents=True, exist_ok=True)
            file = open(path, "ab", buffering=0)
        except OSError as e:
            raise SinkOpenError(f"Could not open output log {path}: {e}") from e

        logger.info(f"Appending frame records to {path}")
        return cls(file, path=str(path), fsync=fsync)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @staticmethod
    def encode(record: FrameRecord) -> bytes:
        line = io.StringIO()
        writer = csv.writer(
            line,
            delimiter=RECORD_DELIMITER,
            lineterminator=RECORD_LINE_TERMINATOR,
        )
        writer.writerow(record.to_row())
        return line.getvalue().encode("utf-8")

    def append(self, record: FrameRecord) -> None:
        """
        Write one record and sync it before returning. Nothing is retried.

        Raises:
            SinkWriteError: If the sink is closed, an earlier record was left
                half-written, or the write/sync fails
        """
        data = self.encode(record)

        with self._lock:
            if self._closed:
                raise SinkWriteError(f"Output log {self.path} is closed")
            if self._torn:
                raise SinkWriteError(
                    f"Output log {self.path} ends in a partial record; refusing to append"
                )
            written = 0
            try:
                view = memoryview(data)
                while written < len(data):
                    written += self._file.write(view[written:])
                if self._fsync:
                    os.fsync(self._file.fileno())
            except (OSError, ValueError) as e:
                if 0 < written < len(data):
                    self._torn = True
                raise SinkWriteError(
                    f"Failed to write frame {record.index} to {self.path}: {e}"
                ) from e
            self._records_written += 1

    def close(self) -> None:
        """Close the destination. Safe to call more than once."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            try:
                self._file.close()
            except OSError as e:
                raise SinkWriteError(f"Failed to close output log {self.path}: {e}") from e
            logger.debug(f"Closed {self.path} after {self._records_written} records")

    @property
    def records_written(self) -> int:
        with self._lock:
            return self._records_written

    @property
    def closed(self) -> bool:
        return self._closed
