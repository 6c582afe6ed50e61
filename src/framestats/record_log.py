import csv
from typing import Iterator, List

from framestats.constants import CHANNELS, RECORD_DELIMITER
from framestats.frame.frame_record import FrameRecord


def iter_records(path: str, channels: int = CHANNELS) -> Iterator[FrameRecord]:
    """
    Parse an output log line by line.

    Args:
        path: Log written by RecordSink
        channels: Number of mean fields expected after the index

    Yields:
        FrameRecord per line, in physical file order

    Raises:
        ValueError: If a line does not hold an index and `channels` means in range
    """
    with open(path, "r", newline="", encoding="utf-8") as f:
        for line_no, row in enumerate(csv.reader(f, delimiter=RECORD_DELIMITER), 1):
            if len(row) != channels + 1:
                raise ValueError(
                    f"{path}:{line_no}: expected {channels + 1} fields, got {len(row)}"
                )
            try:
                index, *means = (int(field) for field in row)
                yield FrameRecord(index=index, means=tuple(means))
            except ValueError as e:
                raise ValueError(f"{path}:{line_no}: {e}") from e


def read_records(path: str, channels: int = CHANNELS) -> List[FrameRecord]:
    """Returns every record in the log, in file order."""
    return list(iter_records(path, channels))
