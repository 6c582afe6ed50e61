from __future__ import annotations

from pathlib import Path

import pytest

from framestats.errors import EmptyFrameError, SinkWriteError
from framestats.frame_processor import FrameProcessor
from framestats.record_sink import RecordSink
from framestats.sequencer import FrameSequencer
from framestats.utils.app_types import ErrorPolicy, FlowStatus


class _FailingSink:
    def append(self, record):
        raise SinkWriteError("disk full")


def _processor(tmp_path: Path, **kwargs) -> tuple[FrameProcessor, RecordSink, Path]:
    out = tmp_path / "out.csv"
    sink = RecordSink.open(str(out))
    return FrameProcessor(FrameSequencer(), sink, **kwargs), sink, out


def test_sequential_frames_get_consecutive_indices(tmp_path: Path) -> None:
    processor, sink, out = _processor(tmp_path)

    first = processor.process_frame(bytes([10, 20, 30]))
    second = processor.process_frame(bytes([20, 30, 40]))
    sink.close()

    assert first.ok and second.ok
    assert (first.record.index, first.record.means) == (0, (10, 20, 30))
    assert out.read_text() == "0,10,20,30\n1,20,30,40\n"


def test_two_pixel_frame_records_truncated_mean(tmp_path: Path) -> None:
    processor, sink, out = _processor(tmp_path)
    result = processor(bytes([0, 0, 0, 255, 255, 255]))
    sink.close()

    assert result.status is FlowStatus.OK
    assert out.read_text() == "0,127,127,127\n"


def test_skip_policy_drops_empty_frame_without_consuming_an_index(tmp_path: Path) -> None:
    processor, sink, out = _processor(tmp_path, error_policy=ErrorPolicy.SKIP)

    skipped = processor.process_frame(b"")
    kept = processor.process_frame(bytes([1, 2, 3]))
    sink.close()

    assert skipped.status is FlowStatus.SKIPPED
    assert isinstance(skipped.error, EmptyFrameError)
    assert skipped.record is None
    assert kept.record.index == 0
    assert out.read_text() == "0,1,2,3\n"


def test_abort_policy_reports_empty_frame_as_fatal(tmp_path: Path) -> None:
    processor, sink, out = _processor(tmp_path, error_policy=ErrorPolicy.ABORT)

    result = processor.process_frame(b"\x01\x02")
    sink.close()

    assert result.status is FlowStatus.ERROR
    assert isinstance(result.error, EmptyFrameError)
    assert processor.sequencer.count == 0
    assert out.read_text() == ""


def test_sink_failure_is_always_fatal() -> None:
    processor = FrameProcessor(FrameSequencer(), _FailingSink(), error_policy=ErrorPolicy.SKIP)
    result = processor.process_frame(bytes([1, 2, 3]))

    assert result.status is FlowStatus.ERROR
    assert isinstance(result.error, SinkWriteError)


def test_configured_channel_count_changes_record_width(tmp_path: Path) -> None:
    processor, sink, out = _processor(tmp_path, channels=4)
    processor.process_frame(bytes([4, 8, 12, 16]))
    sink.close()
    assert out.read_text() == "0,4,8,12,16\n"


def test_invalid_channel_count_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        FrameProcessor(FrameSequencer(), _FailingSink(), channels=0)
