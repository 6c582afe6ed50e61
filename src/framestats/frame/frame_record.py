from dataclasses import dataclass
from typing import List, Tuple

from framestats.constants import INDEX_MODULUS


@dataclass(frozen=True)
class FrameRecord:
    """
    One line of the output log: a frame index and its per-channel means.

    Attributes:
        index: Zero-based frame index (unsigned 64-bit)
        means: Mean intensity of each channel, each 0-255
    """

    index: int
    means: Tuple[int, ...]

    def __post_init__(self):
        if not 0 <= self.index < INDEX_MODULUS:
            raise ValueError(f"Frame index out of range: {self.index}")
        if not self.means or not all(0 <= m <= 255 for m in self.means):
            raise ValueError(
                f"Channel means must be integers between 0-255, got {self.means}"
            )

    def to_row(self) -> List[str]:
        return [str(self.index), *(str(m) for m in self.means)]

    def __repr__(self) -> str:
        return f"FrameRecord(index={self.index}, means={list(self.means)})"
