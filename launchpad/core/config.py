"""
Configuration for the launchpad engine
Loads curve, AMM, logging and metrics settings from YAML with environment variable support
"""

import os
import re
import yaml
from typing import Dict, Any, Optional
from dataclasses import dataclass, field
from pathlib import Path

from launchpad.core.address import DEAD_ADDRESS
from launchpad.core.errors import InvalidConfig
from launchpad.core.fixed_point import Wad, WAD, BPS_DENOMINATOR


DEFAULT_DECIMALS = 18
DEFAULT_TOTAL_SUPPLY = 1_000_000_000 * 10**DEFAULT_DECIMALS


@dataclass(frozen=True)
class CurveConfig:
    """Global curve parameters, applied to every token launched while active"""
    total_supply: int = DEFAULT_TOTAL_SUPPLY
    trade_fee_rate: int = 100  # parts per fee_denominator (1%)
    fee_denominator: int = BPS_DENOMINATOR
    migration_fee: Wad = field(default_factory=lambda: Wad.from_decimal("0.02"))
    decimals: int = DEFAULT_DECIMALS
    initialized: bool = False

    def validate(self) -> "CurveConfig":
        """
        Check parameter ranges

        Returns:
            self, so calls can be chained

        Raises:
            InvalidConfig: If any parameter is out of range
        """
        if self.fee_denominator <= 0:
            raise InvalidConfig("fee denominator must be positive", fee_denominator=self.fee_denominator)
        if not 0 <= self.trade_fee_rate < self.fee_denominator:
            raise InvalidConfig(
                "trade fee rate must be below the denominator",
                trade_fee_rate=self.trade_fee_rate,
                fee_denominator=self.fee_denominator
            )
        if self.migration_fee.raw >= WAD:
            raise InvalidConfig("migration fee must be below 1.0", migration_fee=str(self.migration_fee))
        if self.total_supply <= 0:
            raise InvalidConfig("total supply must be positive", total_supply=self.total_supply)
        if not 0 <= self.decimals <= 77:
            raise InvalidConfig("decimals out of range", decimals=self.decimals)
        return self


@dataclass(frozen=True)
class AmmConfig:
    """Liquidity migration settings"""
    slippage_bps: int = 100  # 1% tolerance on both deposit legs
    deadline_seconds: int = 300
    lp_recipient: str = DEAD_ADDRESS

    def validate(self) -> "AmmConfig":
        if not 0 <= self.slippage_bps < BPS_DENOMINATOR:
            raise InvalidConfig("slippage must be below 100%", slippage_bps=self.slippage_bps)
        if self.deadline_seconds <= 0:
            raise InvalidConfig("deadline must be positive", deadline_seconds=self.deadline_seconds)
        return self


@dataclass
class LogConfig:
    """Logging configuration"""
    level: str = "INFO"
    format: str = "json"
    output_file: Optional[str] = None


@dataclass
class MetricsConfig:
    """Metrics configuration"""
    enable_histogram: bool = True


@dataclass
class LaunchpadConfig:
    """Complete engine configuration"""
    curve_config: CurveConfig
    amm_config: AmmConfig
    log_config: LogConfig
    metrics_config: MetricsConfig


class ConfigurationManager:
    """Manages engine configuration from YAML files and environment variables"""

    def __init__(self, config_path: str):
        """
        Initialize configuration manager

        Args:
            config_path: Path to YAML configuration file
        """
        self.config_path = Path(config_path)
        self._config_data: Optional[Dict[str, Any]] = None
        self._launchpad_config: Optional[LaunchpadConfig] = None

    def load_config(self) -> LaunchpadConfig:
        """
        Load and validate configuration from file

        Returns:
            LaunchpadConfig: Validated configuration object

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is malformed
            InvalidConfig: If curve or AMM parameters are out of range
        """
        if not self.config_path.exists():
            raise FileNotFoundError(
                f"Configuration file not found: {self.config_path}"
            )

        with open(self.config_path, 'r') as f:
            raw_config = yaml.safe_load(f) or {}

        if not isinstance(raw_config, dict):
            raise ValueError("Configuration root must be a mapping")

        self._config_data = self._substitute_env_vars(raw_config)
        self._launchpad_config = self._parse_config(self._config_data)

        return self._launchpad_config

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by dot-notation key

        Args:
            key: Dot-notation key (e.g., "curve.trade_fee_rate")
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        if self._config_data is None:
            raise RuntimeError("Configuration not loaded. Call load_config() first.")

        value = self._config_data
        for k in key.split('.'):
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default

        return value

    def _substitute_env_vars(self, config: Any) -> Any:
        """
        Recursively substitute ${VAR_NAME} environment variables

        Raises:
            ValueError: If a referenced variable is not set
        """
        if isinstance(config, dict):
            return {k: self._substitute_env_vars(v) for k, v in config.items()}
        elif isinstance(config, list):
            return [self._substitute_env_vars(item) for item in config]
        elif isinstance(config, str):
            def replace_var(match):
                var_name = match.group(1)
                value = os.getenv(var_name)
                if value is None:
                    raise ValueError(
                        f"Environment variable {var_name} not found"
                    )
                return value

            return re.sub(r'\$\{([^}]+)\}', replace_var, config)
        else:
            return config

    @staticmethod
    def _as_int(section: Dict[str, Any], key: str, default: int) -> int:
        """Read an integer, accepting strings like "1_000" from env substitution"""
        value = section.get(key, default)
        try:
            return int(str(value).replace("_", ""))
        except ValueError as e:
            raise ValueError(f"{key} must be an integer, got {value!r}") from e

    def _parse_config(self, config: Dict[str, Any]) -> LaunchpadConfig:
        """
        Parse raw configuration into typed objects

        Args:
            config: Raw configuration dictionary

        Returns:
            LaunchpadConfig: Typed configuration object
        """
        curve_data = config.get('curve', {})
        decimals = self._as_int(curve_data, 'decimals', DEFAULT_DECIMALS)
        if 'total_supply' in curve_data:
            total_supply = self._as_int(curve_data, 'total_supply', 0)
        else:
            # Whole-token supply, scaled by decimals
            total_supply = self._as_int(curve_data, 'total_supply_tokens', 1_000_000_000) * 10**decimals

        curve_config = CurveConfig(
            total_supply=total_supply,
            trade_fee_rate=self._as_int(curve_data, 'trade_fee_rate', 100),
            fee_denominator=self._as_int(curve_data, 'fee_denominator', BPS_DENOMINATOR),
            migration_fee=Wad.from_decimal(curve_data.get('migration_fee', "0.02")),
            decimals=decimals,
            initialized=True
        ).validate()

        amm_data = config.get('amm', {})
        amm_config = AmmConfig(
            slippage_bps=self._as_int(amm_data, 'slippage_bps', 100),
            deadline_seconds=self._as_int(amm_data, 'deadline_seconds', 300),
            lp_recipient=amm_data.get('lp_recipient', DEAD_ADDRESS)
        ).validate()

        log_data = config.get('logging', {})
        log_config = LogConfig(
            level=log_data.get('level', 'INFO'),
            format=log_data.get('format', 'json'),
            output_file=log_data.get('output_file')
        )

        metrics_data = config.get('metrics', {})
        metrics_config = MetricsConfig(
            enable_histogram=metrics_data.get('enable_histogram', True)
        )

        return LaunchpadConfig(
            curve_config=curve_config,
            amm_config=amm_config,
            log_config=log_config,
            metrics_config=metrics_config
        )
