"""Configuration loading and management."""

from .config_manager import (
    ConfigManager, Config, StorageConfig, SimulatorConfig, OutputConfig, LoggingConfig,
)

__all__ = [
    'ConfigManager', 'Config', 'StorageConfig', 'SimulatorConfig', 'OutputConfig', 'LoggingConfig',
]
