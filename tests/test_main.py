from __future__ import annotations

import errno
import io
from pathlib import Path

import pytest

from framestats import run
from framestats.bus import Error
from framestats.config.run_config import RunConfig
from framestats.constants import EXIT_OK, EXIT_RUN_FAILED, EXIT_SETUP_FAILED
from framestats.errors import PipelineStateError, SetupError
from framestats.main import Main, run_pipeline
from framestats.pipeline_controller import RunResult
from framestats.record_log import read_records
from framestats.record_sink import RecordSink
from framestats.sources import BufferFrameSource
from framestats.utils.app_types import PipelineState


def _no_logging(*args, **kwargs):
    return None


class _FillingFile(io.FileIO):
    """A real append-mode file that runs out of space after `room` writes."""

    def __init__(self, path: str, room: int, fail_close: bool = False):
        super().__init__(path, "ab")
        self.room = room
        self.fail_close = fail_close

    def write(self, b) -> int:
        if self.room == 0:
            raise OSError(errno.ENOSPC, "No space left on device")
        self.room -= 1
        return super().write(b)

    def close(self) -> None:
        super().close()
        if self.fail_close:
            self.fail_close = False
            raise OSError(errno.EIO, "Input/output error")


def _filling_sink(monkeypatch, room: int, fail_close: bool = False) -> None:
    def open_filling(cls, path, fsync=True):
        return cls(_FillingFile(path, room, fail_close), path=path, fsync=fsync)

    monkeypatch.setattr(RecordSink, "open", classmethod(open_filling))


def test_run_pipeline_appends_one_line_per_frame(tmp_path: Path) -> None:
    out = tmp_path / "out.csv"
    config = RunConfig(video_path=None, output_path=str(out))
    source = BufferFrameSource([bytes([10, 20, 30]), bytes([20, 30, 40])])

    result = run_pipeline(config, source=source)

    assert result.ok
    assert out.read_text() == "0,10,20,30\n1,20,30,40\n"


def test_second_run_appends_after_first_run(tmp_path: Path) -> None:
    out = tmp_path / "out.csv"
    config = RunConfig(video_path=None, output_path=str(out))

    run_pipeline(config, source=BufferFrameSource([bytes([1, 1, 1]), bytes([2, 2, 2])]))
    first = out.read_text()
    run_pipeline(config, source=BufferFrameSource([bytes([3, 3, 3])]))

    assert out.read_text().startswith(first)
    assert [(r.index, r.means[0]) for r in read_records(str(out))] == [(0, 1), (1, 2), (0, 3)]


def test_main_tracks_frames_processed(tmp_path: Path) -> None:
    config = RunConfig(
        video_path=None,
        output_path=str(tmp_path / "out.csv"),
        delivery_threads=3,
    )
    main = Main(config, source=BufferFrameSource([bytes([i, i, i]) for i in range(50)], delivery_threads=3))

    result = main.run()

    assert result.ok
    assert main.frames_processed == 50
    assert main.sink.closed


def test_unwritable_output_is_a_setup_error(tmp_path: Path) -> None:
    config = RunConfig(video_path=None, output_path=str(tmp_path))
    with pytest.raises(SetupError):
        run_pipeline(config, source=BufferFrameSource([]))


def test_cli_exits_with_setup_code_without_video(clean_env, tmp_path: Path) -> None:
    clean_env.chdir(tmp_path)
    clean_env.setattr(run, "configure_logging", _no_logging)
    assert run.main([]) == EXIT_SETUP_FAILED


def test_cli_passes_arguments_and_exits_cleanly(clean_env, tmp_path: Path) -> None:
    clean_env.chdir(tmp_path)
    clean_env.setattr(run, "configure_logging", _no_logging)
    seen = {}

    def fake_run_pipeline(config):
        seen["config"] = config
        return RunResult(state=PipelineState.END_OF_STREAM, error=None, frames_delivered=3)

    clean_env.setattr(run, "run_pipeline", fake_run_pipeline)

    code = run.main(["movie.mp4", "stats.csv", "--error-policy", "abort", "--delivery-threads", "2"])

    assert code == EXIT_OK
    assert seen["config"].video_path == "movie.mp4"
    assert seen["config"].output_path == "stats.csv"
    assert seen["config"].error_policy.value == "abort"
    assert seen["config"].delivery_threads == 2


def test_cli_reports_run_errors(clean_env, tmp_path: Path) -> None:
    clean_env.chdir(tmp_path)
    clean_env.setattr(run, "configure_logging", _no_logging)
    clean_env.setattr(
        run,
        "run_pipeline",
        lambda config: RunResult(
            state=PipelineState.ERROR, error=Error(details="decoder crashed"), frames_delivered=1
        ),
    )

    assert run.main(["movie.mp4"]) == EXIT_RUN_FAILED


@pytest.mark.parametrize("delivery_threads", [1, 4])
def test_sink_failure_ends_the_run_in_error_and_keeps_earlier_records(
    monkeypatch, tmp_path: Path, delivery_threads: int
) -> None:
    out = tmp_path / "out.csv"
    _filling_sink(monkeypatch, room=10)
    config = RunConfig(video_path=None, output_path=str(out), delivery_threads=delivery_threads)
    frames = [bytes([i, i, i]) for i in range(50)]

    result = run_pipeline(config, source=BufferFrameSource(frames, delivery_threads=delivery_threads))

    assert result.state is PipelineState.ERROR
    assert "No space left" in result.error.details
    records = read_records(str(out))
    assert len(records) == 10
    assert len({r.index for r in records}) == 10
    assert all(r.means == (r.means[0],) * 3 for r in records)


def test_close_failure_is_reported_in_the_result(monkeypatch, tmp_path: Path) -> None:
    out = tmp_path / "out.csv"
    _filling_sink(monkeypatch, room=100, fail_close=True)
    config = RunConfig(video_path=None, output_path=str(out))

    result = run_pipeline(config, source=BufferFrameSource([bytes([1, 2, 3])]))

    assert result.state is PipelineState.ERROR
    assert result.error.source == "sink"
    assert "Input/output error" in result.error.details
    assert out.read_text() == "0,1,2,3\n"


def test_cli_exits_with_run_code_when_the_output_fills_up(clean_env, tmp_path: Path) -> None:
    clean_env.chdir(tmp_path)
    clean_env.setattr(run, "configure_logging", _no_logging)
    _filling_sink(clean_env, room=1)
    real_run_pipeline = run.run_pipeline
    clean_env.setattr(
        run,
        "run_pipeline",
        lambda config: real_run_pipeline(
            config, source=BufferFrameSource([bytes([1, 1, 1]), bytes([2, 2, 2])])
        ),
    )

    assert run.main(["movie.mp4", "stats.csv"]) == EXIT_RUN_FAILED
    assert (tmp_path / "stats.csv").read_text() == "0,1,1,1\n"


def test_cli_exits_with_run_code_on_unexpected_pipeline_errors(clean_env, tmp_path: Path) -> None:
    clean_env.chdir(tmp_path)
    clean_env.setattr(run, "configure_logging", _no_logging)

    def broken_run_pipeline(config):
        raise PipelineStateError("Cannot wait in state stopped")

    clean_env.setattr(run, "run_pipeline", broken_run_pipeline)

    assert run.main(["movie.mp4"]) == EXIT_RUN_FAILED
