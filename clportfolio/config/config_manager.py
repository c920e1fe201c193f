"""Configuration management with validation and type safety."""

import os
import re
import yaml
import logging
from typing import Dict, Any, Optional
from dataclasses import dataclass, field
from pathlib import Path

from ..core.exceptions import ConfigError
from ..core.interfaces import AssetOverride

DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class StorageConfig:
    """Ledger and price snapshot locations."""
    ledger_path: str = "data/ledger.json"
    prices_path: str = "data/prices.json"
    price_ttl: int = 3600


@dataclass
class SimulatorConfig:
    """Defaults for CL position simulations."""
    deposit_value: float = 1000.0
    range_lower_factor: float = 0.9
    range_upper_factor: float = 1.4
    target_factor: float = 1.1
    fee_apr: float = 20.0
    duration_days: float = 30.0
    solver_iterations: int = 20
    scenario_points: int = 50


@dataclass
class OutputConfig:
    """Output configuration."""
    directory: str = "output"
    formats: list = field(default_factory=lambda: ['png', 'csv'])


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    format: str = DEFAULT_LOG_FORMAT
    file: Optional[str] = None


@dataclass
class Config:
    """Main configuration container."""
    storage: StorageConfig
    simulator: SimulatorConfig
    assets: Dict[str, AssetOverride]
    output: OutputConfig
    logging: LoggingConfig


class ConfigManager:
    """Manages application configuration."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration manager.

        Args:
            config_path: Path to configuration file. Defaults to config.yaml
        """
        self.config_path = Path(config_path or "config.yaml")
        self._config_data: Optional[Dict[str, Any]] = None
        self._config: Optional[Config] = None
        self.logger = logging.getLogger(__name__)

    def load(self, allow_missing: bool = False) -> Config:
        """Load and parse configuration.

        Args:
            allow_missing: Fall back to defaults when the file does not exist

        Returns:
            Parsed configuration object

        Raises:
            FileNotFoundError: If config file not found and allow_missing is False
            ConfigError: If config is invalid
        """
        if self._config:
            return self._config

        if self.config_path.exists():
            with open(self.config_path, 'r') as f:
                try:
                    self._config_data = yaml.safe_load(f) or {}
                except yaml.YAMLError as e:
                    raise ConfigError(f"Invalid YAML in {self.config_path}: {e}") from e
        elif allow_missing:
            self.logger.debug(f"No configuration at {self.config_path}, using defaults")
            self._config_data = {}
        else:
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

        if not isinstance(self._config_data, dict):
            raise ConfigError(f"Configuration root must be a mapping: {self.config_path}")

        # Substitute environment variables
        self._substitute_env_vars()

        # Parse configuration
        self._config = self._parse_config(self._config_data)

        # Setup logging
        self._setup_logging(self._config.logging)

        return self._config

    def _substitute_env_vars(self):
        """Substitute environment variables in config."""
        def _substitute(obj):
            if isinstance(obj, str):
                # Look for ${VAR_NAME} pattern
                pattern = r'\$\{([^}]+)\}'
                matches = re.findall(pattern, obj)
                for var_name in matches:
                    env_value = os.getenv(var_name)
                    if env_value is None:
                        raise ConfigError(f"Environment variable {var_name} not set")
                    obj = obj.replace(f"${{{var_name}}}", env_value)
                return obj
            elif isinstance(obj, dict):
                return {k: _substitute(v) for k, v in obj.items()}
            elif isinstance(obj, list):
                return [_substitute(item) for item in obj]
            return obj

        self._config_data = _substitute(self._config_data)

    @staticmethod
    def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
        section = data.get(name) or {}
        if not isinstance(section, dict):
            raise ConfigError(f"Section '{name}' must be a mapping")
        return section

    def _parse_config(self, data: Dict[str, Any]) -> Config:
        """Parse raw config data into typed configuration.

        Args:
            data: Raw configuration dictionary

        Returns:
            Parsed Config object
        """
        try:
            # Parse storage config
            storage_data = self._section(data, 'storage')
            storage_config = StorageConfig(
                ledger_path=str(storage_data.get('ledger_path', StorageConfig.ledger_path)),
                prices_path=str(storage_data.get('prices_path', StorageConfig.prices_path)),
                price_ttl=int(storage_data.get('price_ttl', StorageConfig.price_ttl))
            )

            # Parse simulator defaults
            sim_data = self._section(data, 'simulator')
            simulator_config = SimulatorConfig(
                deposit_value=float(sim_data.get('deposit_value', SimulatorConfig.deposit_value)),
                range_lower_factor=float(sim_data.get('range_lower_factor', SimulatorConfig.range_lower_factor)),
                range_upper_factor=float(sim_data.get('range_upper_factor', SimulatorConfig.range_upper_factor)),
                target_factor=float(sim_data.get('target_factor', SimulatorConfig.target_factor)),
                fee_apr=float(sim_data.get('fee_apr', SimulatorConfig.fee_apr)),
                duration_days=float(sim_data.get('duration_days', SimulatorConfig.duration_days)),
                solver_iterations=int(sim_data.get('solver_iterations', SimulatorConfig.solver_iterations)),
                scenario_points=int(sim_data.get('scenario_points', SimulatorConfig.scenario_points))
            )

            # Parse per-asset overrides
            assets = {}
            for symbol, override in self._section(data, 'assets').items():
                override = override or {}
                avg_buy_price = override.get('avg_buy_price')
                reward_tokens = override.get('reward_tokens')
                assets[str(symbol).strip().upper()] = AssetOverride(
                    avg_buy_price=float(avg_buy_price) if avg_buy_price is not None else None,
                    reward_tokens=[str(t) for t in reward_tokens] if reward_tokens else None
                )
        except (TypeError, ValueError, AttributeError) as e:
            raise ConfigError(f"Invalid configuration value: {e}") from e

        if simulator_config.range_lower_factor >= simulator_config.range_upper_factor:
            raise ConfigError("simulator.range_lower_factor must be below range_upper_factor")
        if simulator_config.range_lower_factor <= 0:
            raise ConfigError("simulator.range_lower_factor must be positive")
        if simulator_config.solver_iterations < 1:
            raise ConfigError("simulator.solver_iterations must be at least 1")

        # Parse output config
        output_data = self._section(data, 'output')
        output_config = OutputConfig(
            directory=output_data.get('directory', 'output'),
            formats=output_data.get('formats', ['png', 'csv'])
        )

        # Parse logging config
        logging_data = self._section(data, 'logging')
        logging_config = LoggingConfig(
            level=str(logging_data.get('level', 'INFO')).upper(),
            format=logging_data.get('format', DEFAULT_LOG_FORMAT),
            file=logging_data.get('file')
        )
        if not isinstance(logging.getLevelName(logging_config.level), int):
            raise ConfigError(f"Unknown logging level: {logging_config.level}")

        return Config(
            storage=storage_config,
            simulator=simulator_config,
            assets=assets,
            output=output_config,
            logging=logging_config
        )

    def _setup_logging(self, logging_config: LoggingConfig):
        """Setup logging based on configuration."""
        handlers = [logging.StreamHandler()]

        if logging_config.file:
            handlers.append(logging.FileHandler(logging_config.file))

        logging.basicConfig(
            level=getattr(logging, logging_config.level),
            format=logging_config.format,
            handlers=handlers
        )

    def get_asset_override(self, symbol: str) -> Optional[AssetOverride]:
        """Get the override configured for an asset, if any."""
        if not self._config:
            self.load()

        return self._config.assets.get(symbol.strip().upper())
