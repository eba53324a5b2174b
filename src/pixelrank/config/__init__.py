"""Configuration models and loaders."""

from .config import (
    DEFAULT_INPUT_LOCATION,
    Config,
    FetchConfig,
    MonitoringConfig,
    PipelineConfig,
    find_config_file,
    load_config,
)

__all__ = [
    "DEFAULT_INPUT_LOCATION",
    "Config",
    "FetchConfig",
    "MonitoringConfig",
    "PipelineConfig",
    "find_config_file",
    "load_config",
]
