from enum import Enum


class InstanceStatus(Enum):
    """Enum representing the possible states of the HTTP service."""

    STOPPED = "stopped"
    RUNNING = "running"
    FINISHED = "finished"
    FAILED = "failed"


class PipelineState(Enum):
    """Lifecycle of a single pipeline run."""

    IDLE = "idle"
    PLAYING = "playing"
    END_OF_STREAM = "end_of_stream"
    ERROR = "error"
    STOPPED = "stopped"


class FlowStatus(Enum):
    """Result of handing one frame to the frame callback."""

    OK = "ok"
    SKIPPED = "skipped"
    ERROR = "error"


class ErrorPolicy(Enum):
    """What to do when a single frame cannot be reduced."""

    SKIP = "skip"
    ABORT = "abort"
