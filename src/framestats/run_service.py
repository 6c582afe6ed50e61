import logging
import threading

from framestats.config.run_config import RunConfig
from framestats.errors import FrameStatsError
from framestats.main import Main
from framestats.utils.app_types import InstanceStatus
from framestats.utils.logger import LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)

RUN_THREAD_NAME = "PipelineRunThread"


class RunAlreadyActiveError(FrameStatsError):
    """A run was requested while another one is still streaming."""


class RunService:
    """Runs one pipeline at a time on a background thread for the HTTP API."""

    def __init__(self, base_config: RunConfig, source_factory=None):
        """
        Args:
            base_config: Settings each run starts from
            source_factory: Optional callable(RunConfig) -> FrameSource used
                instead of the configured decoder
        """
        self.base_config = base_config
        self.source_factory = source_factory
        self.status = InstanceStatus.STOPPED
        self.error: str | None = None
        self.main_service: Main | None = None
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()

    def start(self, overrides: dict | None = None) -> RunConfig:
        """
        Start a run in the background.

        Args:
            overrides: RunConfig fields that replace the base configuration

        Raises:
            RunAlreadyActiveError: If a run is still in progress
            ConfigError: If the resulting configuration is invalid
        """
        config = self.base_config.merged(overrides or {}).validate(
            require_input=self.source_factory is None
        )

        with self._lock:
            if self.status == InstanceStatus.RUNNING:
                raise RunAlreadyActiveError("A run is already in progress")
            source = self.source_factory(config) if self.source_factory else None
            self.main_service = Main(config, source=source)
            self.status = InstanceStatus.RUNNING
            self.error = None
            self._thread = threading.Thread(
                target=self._run, name=RUN_THREAD_NAME, daemon=True
            )
            self._thread.start()

        logger.info(f"Started run for {config.video_path}")
        return config

    def _run(self):
        try:
            result = self.main_service.run()
        except Exception as e:
            logger.error(f"Run failed during setup: {e}")
            self._finish(InstanceStatus.FAILED, str(e))
            return

        if result.ok:
            self._finish(InstanceStatus.FINISHED, None)
        else:
            self._finish(
                InstanceStatus.FAILED,
                result.error.details if result.error else result.state.value,
            )

    def _finish(self, status: InstanceStatus, error: str | None):
        with self._lock:
            self.status = status
            self.error = error

    def stop(self, timeout: float | None = None) -> bool:
        """Stop the active run. Returns False if nothing was running."""
        with self._lock:
            if self.status != InstanceStatus.RUNNING:
                return False
            main_service, thread = self.main_service, self._thread

        main_service.stop()
        if thread:
            thread.join(timeout)
        return True

    def to_json(self) -> dict:
        with self._lock:
            result = {"status": self.status.value, "error": self.error}
            main_service = self.main_service
        result["frames_processed"] = main_service.frames_processed if main_service else 0
        return result
