"""Configuration: schema, loading from env/file, and shared constants."""

from .schema import (
    DEFAULT_CONFIG,
    CodemateConfig,
    ExecutorConfig,
    ModelConfig,
    ShellConfig,
    TelemetryConfig,
    WebConfig,
    WorkspaceConfig,
)
from .loader import load_config

get_config = load_config  # alias

__all__ = [
    "DEFAULT_CONFIG", "CodemateConfig", "ExecutorConfig", "ModelConfig",
    "ShellConfig", "TelemetryConfig", "WebConfig", "WorkspaceConfig",
    "load_config", "get_config",
]
