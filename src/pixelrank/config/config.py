"""
Configuration management for PixelRank using Pydantic.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

log = logging.getLogger(__name__)

# Image list used when no input location is configured.
DEFAULT_INPUT_LOCATION = (
    "https://gist.githubusercontent.com/ehmo/e736c827ca73d84581d812b3a27bb132/raw/"
    "77680b283d7db4e7447dbf8903731bb63bf43258/input.txt"
)

CONFIG_FILE_NAMES = ("pixelrank.yaml", "pixelrank.yml")

# --- Nested Configuration Models ---


class FetchConfig(BaseModel):
    """HTTP fetch configuration."""

    timeout: float = Field(default=30.0, gt=0, description="Total timeout for one request in seconds.")
    max_retries: int = Field(default=2, ge=0, description="Retry attempts for timeouts and retryable statuses.")
    backoff_multiplier: float = Field(default=1.0, ge=0, description="Exponential backoff multiplier in seconds.")
    backoff_max: float = Field(default=10.0, ge=0, description="Upper bound for a single backoff delay.")
    user_agent: str = Field(
        default="PixelRank/0.1.0 (+https://github.com/pixelrank/pixelrank)",
        description="User-Agent header sent with every request.",
    )
    max_connections: int = Field(default=100, ge=0, description="Connection pool size. 0 means unlimited.")


class PipelineConfig(BaseModel):
    """Input, output and concurrency settings for a run."""

    input_location: str = Field(
        default=DEFAULT_INPUT_LOCATION,
        description="Local path or URL of the text file listing one image URL per line.",
    )
    output_path: Path = Field(default=Path("pixels.txt"), description="Where result lines are written.")
    concurrency_limit: int = Field(default=10, ge=1, description="Maximum number of images in flight.")
    queue_factor: int = Field(default=2, ge=1, description="Work queue size as a multiple of concurrency_limit.")

    @field_validator("input_location")
    @classmethod
    def validate_input_location(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("input_location must not be empty")
        return v


class MonitoringConfig(BaseModel):
    """Configuration for logging and metrics."""

    log_level: str = Field(default="INFO", description="Logging level (e.g., DEBUG, INFO, WARNING).")
    log_file: Optional[str] = Field(default=None, description="Path to log file. If None, logs to console.")
    json_logs: bool = Field(default=False, description="Render log events as JSON.")
    prometheus_port: Optional[int] = Field(default=None, description="Port for the Prometheus exporter.")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level: {v}")
        return level

    @field_validator("log_file", mode="before")
    @classmethod
    def create_parent_dir(cls, v: str | Path | None) -> str | None:
        if v is None:
            return None
        path = Path(v)
        path.parent.mkdir(parents=True, exist_ok=True)
        return str(path)


# --- Main Configuration Class ---


class Config(BaseSettings):
    project_name: str = "PixelRank"
    fetch: FetchConfig = Field(default_factory=FetchConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)

    model_config = SettingsConfigDict(env_prefix="PIXELRANK_", env_nested_delimiter="__", case_sensitive=False)

    @classmethod
    def from_yaml(cls, path: Path) -> Config:
        log.debug("Loading configuration from YAML file: %s", path)
        if not path.is_file():
            raise FileNotFoundError(f"Configuration file not found or is not a file: {path}")
        with open(path, "r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f)
        if not yaml_data:
            log.warning("Configuration file is empty: %s. Using default settings.", path)
        # Keyword arguments take precedence over PIXELRANK_* environment variables.
        return cls(**(yaml_data or {}))


def find_config_file() -> Path | None:
    current_dir = Path.cwd()
    for name in CONFIG_FILE_NAMES:
        path = current_dir / name
        if path.exists():
            return path
    return None


def load_config(path: Optional[Path] = None) -> Config:
    """Load configuration from an explicit file, a discovered file, or defaults."""
    config_path = path or find_config_file()
    if config_path:
        log.info("Loading configuration from: %s", config_path)
        return Config.from_yaml(config_path)
    return Config()
