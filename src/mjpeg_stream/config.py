"""
MJPEG Stream Configuration
==========================

This module handles configuration loading for the MJPEG streaming service.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    MJPEG_FRAMES_ROOT    -> frames.root
    MJPEG_FRAME_RATE     -> stream.frame_rate
    MJPEG_BOUNDARY       -> stream.boundary
    MJPEG_TIME_LIMIT_MS  -> stream.time_limit_ms
    MJPEG_LOOP           -> stream.loop
    MJPEG_DIRECTION      -> stream.direction
    MJPEG_PORT           -> server.port
    MJPEG_LOG_LEVEL      -> logging.level
    PORT                 -> server.port (takes precedence)

Example:
    from mjpeg_stream.config import settings

    print(settings.frames.root)
    print(settings.stream.frame_rate)
"""

import os
import logging
from enum import Enum
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class FrameErrorPolicy(str, Enum):
    """
    What a session does when a frame cannot be read mid-stream.

    Attributes:
        END: Report the error and end the session
        STALL: Report the error and stop ticking, leaving the session open
    """

    END = "end"
    STALL = "stall"


class StreamOptions(BaseModel):
    """
    Per-session streaming options.

    Immutable: a session keeps the instance it was created with.
    """

    model_config = ConfigDict(frozen=True)

    frame_rate: float = Field(
        default=10.0,
        gt=0,
        description="Frames per second; inter-frame delay is 1000/frame_rate ms",
    )
    boundary: str = Field(
        default="mjpeg-frame-boundary",
        min_length=1,
        max_length=70,
        description="Multipart boundary token",
    )
    time_limit_ms: float = Field(
        default=0,
        ge=0,
        description="Hard cap on session duration in ms (0 = unlimited)",
    )
    loop: bool = Field(
        default=True,
        description="Restart from the first frame after the last",
    )
    direction: Literal["forward", "reverse"] = Field(
        default="forward",
        description="Listing order: 'forward' (descending) or 'reverse' (ascending)",
    )
    frame_error_policy: FrameErrorPolicy = Field(
        default=FrameErrorPolicy.END,
        description="Mid-stream frame read failure handling: 'end' or 'stall'",
    )

    @field_validator("boundary")
    @classmethod
    def _check_boundary(cls, value: str) -> str:
        if any(ch.isspace() for ch in value):
            raise ValueError("boundary must not contain whitespace")
        return value

    @property
    def delay_ms(self) -> float:
        """Delay between frames in milliseconds."""
        return 1000.0 / self.frame_rate


class FramesConfig(BaseModel):
    """Frame storage configuration."""

    root: str = Field(
        default="./frames",
        description="Directory holding one sub-directory per stream",
    )


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=8080, ge=1, le=65535, description="Bind port")
    output_queue_size: int = Field(
        default=32,
        ge=1,
        description="Maximum buffered chunks per connection",
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="text", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for the MJPEG streaming service.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    stream: StreamOptions = Field(default_factory=StreamOptions)
    frames: FramesConfig = Field(default_factory=FramesConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file and environment variables.

    Priority (highest to lowest):
        1. Environment variables
        2. YAML config file
        3. Default values

    Args:
        config_path: Path to config.yaml. If None, searches common locations.

    Returns:
        Settings: Loaded configuration

    Raises:
        pydantic.ValidationError: If any value is invalid
    """
    if config_path is None:
        search_paths = [
            Path("config.yaml"),
            Path("config.yml"),
            Path(__file__).parent.parent.parent / "config.yaml",
        ]
        for path in search_paths:
            if path.exists():
                config_path = str(path)
                break

    config_data = {}
    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    else:
        logger.warning("No config file found, using defaults and environment variables")

    _apply_env_overrides(config_data)

    return Settings.model_validate(config_data)


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Frames
    if env_root := os.environ.get("MJPEG_FRAMES_ROOT"):
        config_data.setdefault("frames", {})["root"] = env_root

    # Stream defaults
    if env_rate := os.environ.get("MJPEG_FRAME_RATE"):
        config_data.setdefault("stream", {})["frame_rate"] = float(env_rate)
    if env_boundary := os.environ.get("MJPEG_BOUNDARY"):
        config_data.setdefault("stream", {})["boundary"] = env_boundary
    if env_limit := os.environ.get("MJPEG_TIME_LIMIT_MS"):
        config_data.setdefault("stream", {})["time_limit_ms"] = float(env_limit)
    if env_loop := os.environ.get("MJPEG_LOOP"):
        config_data.setdefault("stream", {})["loop"] = _parse_bool(env_loop)
    if env_direction := os.environ.get("MJPEG_DIRECTION"):
        config_data.setdefault("stream", {})["direction"] = env_direction

    # Server settings (PORT wins, for container platforms)
    if env_port := os.environ.get("PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)
    elif env_port := os.environ.get("MJPEG_PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)

    # Logging settings
    if env_log := os.environ.get("MJPEG_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings."""
    log_level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    if settings.logging.format == "json":
        log_format = '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "message": "%(message)s"}'
    else:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
    )


# =============================================================================
# Global Settings Instance
# =============================================================================

# Global settings instance - loaded on import
settings = load_config()
setup_logging(settings)
