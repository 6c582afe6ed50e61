import os
from dataclasses import dataclass

from dotenv import load_dotenv

from framestats.constants import (
    CHANNELS,
    DECODER_AV,
    DECODER_FFMPEG,
    DEFAULT_DECODER,
    DEFAULT_DELIVERY_THREADS,
    DEFAULT_LOG_DIR,
    DEFAULT_OUTPUT_PATH,
)
from framestats.errors import ConfigError
from framestats.utils.app_types import ErrorPolicy

ENV_PREFIX = "FRAMESTATS_"
DECODERS = (DECODER_AV, DECODER_FFMPEG)


@dataclass
class RunConfig:
    video_path: str | None
    output_path: str = DEFAULT_OUTPUT_PATH
    decoder: str = DEFAULT_DECODER
    channels: int = CHANNELS
    error_policy: ErrorPolicy = ErrorPolicy.SKIP
    delivery_threads: int = DEFAULT_DELIVERY_THREADS
    width: int | None = None
    height: int | None = None
    log_dir: str = DEFAULT_LOG_DIR

    @classmethod
    def from_env(cls, dotenv_path: str | None = None) -> "RunConfig":
        """Read settings from FRAMESTATS_* environment variables (and a .env file)."""
        load_dotenv(dotenv_path)
        data = {}
        for field in (
            "video_path",
            "output_path",
            "decoder",
            "channels",
            "error_policy",
            "delivery_threads",
            "width",
            "height",
            "log_dir",
        ):
            value = os.getenv(ENV_PREFIX + field.upper())
            if value not in (None, ""):
                data[field] = value
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict) -> "RunConfig":
        """Use this when a caller sends settings as a plain mapping (env, JSON body)."""
        defaults = cls(video_path=None)
        try:
            return cls(
                video_path=data.get("video_path"),
                output_path=data.get("output_path") or defaults.output_path,
                decoder=str(data.get("decoder") or defaults.decoder).lower(),
                channels=_to_int(data.get("channels"), defaults.channels),
                error_policy=_to_policy(data.get("error_policy"), defaults.error_policy),
                delivery_threads=_to_int(
                    data.get("delivery_threads"), defaults.delivery_threads
                ),
                width=_to_int(data.get("width"), None),
                height=_to_int(data.get("height"), None),
                log_dir=data.get("log_dir") or defaults.log_dir,
            )
        except ValueError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

    def to_dict(self) -> dict:
        return {
            "video_path": self.video_path,
            "output_path": self.output_path,
            "decoder": self.decoder,
            "channels": self.channels,
            "error_policy": self.error_policy.value,
            "delivery_threads": self.delivery_threads,
            "width": self.width,
            "height": self.height,
            "log_dir": self.log_dir,
        }

    def merged(self, overrides: dict) -> "RunConfig":
        """Return a copy with the non-empty keys of `overrides` applied."""
        data = self.to_dict()
        data.update({k: v for k, v in overrides.items() if v is not None})
        return RunConfig.from_dict(data)

    def validate(self, require_input: bool = True) -> "RunConfig":
        """
        Check settings before anything is opened.

        Args:
            require_input: Whether video_path must be set (False when frames
                come from a caller-supplied source)

        Raises:
            ConfigError: If a required setting is missing or out of range
        """
        if require_input and not self.video_path:
            raise ConfigError(f"{ENV_PREFIX}VIDEO_PATH is not configured")
        if not self.output_path:
            raise ConfigError(f"{ENV_PREFIX}OUTPUT_PATH is not configured")
        if self.decoder not in DECODERS:
            raise ConfigError(
                f"Unknown decoder {self.decoder!r}, expected one of {DECODERS}"
            )
        if self.channels < 1:
            raise ConfigError(f"channels must be >= 1, got {self.channels}")
        if self.delivery_threads < 1:
            raise ConfigError(
                f"delivery_threads must be >= 1, got {self.delivery_threads}"
            )
        if (self.width is None) != (self.height is None):
            raise ConfigError("width and height must be set together")
        if self.width is not None and (self.width < 1 or self.height < 1):
            raise ConfigError(f"Invalid frame size {self.width}x{self.height}")
        return self


def _to_int(value, default):
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise ValueError(f"expected an integer, got {value!r}")
    return int(value)


def _to_policy(value, default: ErrorPolicy) -> ErrorPolicy:
    if value is None or value == "":
        return default
    if isinstance(value, ErrorPolicy):
        return value
    try:
        return ErrorPolicy(str(value).lower())
    except ValueError:
        raise ValueError(
            f"unknown error policy {value!r}, expected one of "
            f"{[p.value for p in ErrorPolicy]}"
        ) from None
