"""Configuration management for statement imports."""

import json
import logging
import os
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

import yaml

from ..models.core import ImportConfig
from .sign_detector import SIGN_CONVENTIONS


logger = logging.getLogger(__name__)


NUMERIC_KEYS = ('balance_threshold', 'amount_tolerance', 'similarity_threshold', 'cashflow_tolerance')
INTEGER_KEYS = ('long_field_length', 'auto_fill_threshold')


class ConfigManager:
    """Manages loading and validation of import configuration"""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration manager

        Args:
            config_path: Path to configuration file. If None, searches for default locations.
        """
        self.config_path = config_path
        self._config_cache: Optional[ImportConfig] = None

    def load_config(self, force_reload: bool = False) -> ImportConfig:
        """Load import configuration from file or return default

        Args:
            force_reload: Force reload from file even if cached

        Returns:
            ImportConfig instance with loaded or default configuration
        """
        if self._config_cache is not None and not force_reload:
            return self._config_cache

        config_data = self._load_config_file()

        try:
            self._config_cache = self._build_config(config_data)
            logger.info(f"Configuration loaded successfully from {self.config_path or 'defaults'}")
        except (ValueError, TypeError, InvalidOperation) as e:
            logger.warning(f"Error loading configuration: {e}. Using defaults.")
            self._config_cache = ImportConfig()

        return self._config_cache

    def _build_config(self, data: Dict[str, Any]) -> ImportConfig:
        defaults = ImportConfig()
        return ImportConfig(
            date_formats=data.get('date_formats'),
            balance_threshold=Decimal(str(data.get('balance_threshold', defaults.balance_threshold))),
            long_field_length=int(data.get('long_field_length', defaults.long_field_length)),
            amount_tolerance=Decimal(str(data.get('amount_tolerance', defaults.amount_tolerance))),
            similarity_threshold=float(data.get('similarity_threshold', defaults.similarity_threshold)),
            cashflow_tolerance=float(data.get('cashflow_tolerance', defaults.cashflow_tolerance)),
            auto_fill_threshold=int(data.get('auto_fill_threshold', defaults.auto_fill_threshold)),
            auto_fill_categories=data.get('auto_fill_categories', defaults.auto_fill_categories),
            sign_convention=data.get('sign_convention', defaults.sign_convention),
            default_household_id=data.get('default_household_id', defaults.default_household_id),
        )

    def _load_config_file(self) -> Dict[str, Any]:
        """Load configuration from file

        Returns:
            Dictionary with configuration data or empty dict if no file found
        """
        config_file = self._find_config_file()

        if not config_file or not os.path.exists(config_file):
            logger.info("No configuration file found, using defaults")
            return {}

        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                if config_file.endswith('.json'):
                    data = json.load(f)
                elif config_file.endswith(('.yml', '.yaml')):
                    data = yaml.safe_load(f)
                else:
                    logger.warning(f"Unsupported config file format: {config_file}")
                    return {}

            self._validate_config_data(data)
            logger.info(f"Configuration loaded from {config_file}")
            return data

        except (OSError, ValueError, yaml.YAMLError) as e:
            logger.error(f"Error reading configuration file {config_file}: {e}")
            return {}

    def _find_config_file(self) -> Optional[str]:
        """Find configuration file in standard locations"""
        if self.config_path:
            return self.config_path

        search_paths = [
            'household_budget.json',
            'household_budget.yml',
            'household_budget.yaml',
            'config/household_budget.json',
            'config/household_budget.yml',
            'config/household_budget.yaml',
            os.path.expanduser('~/.household_budget/config.json'),
            os.path.expanduser('~/.household_budget/config.yml'),
        ]

        for path in search_paths:
            if os.path.exists(path):
                return path

        return None

    def _validate_config_data(self, data: Any) -> None:
        """Validate configuration data structure

        Raises:
            ValueError: If configuration data is invalid
        """
        if not isinstance(data, dict):
            raise ValueError("Configuration must be a dictionary")

        if 'date_formats' in data:
            if not isinstance(data['date_formats'], list):
                raise ValueError("date_formats must be a list")
            for fmt in data['date_formats']:
                if not isinstance(fmt, str):
                    raise ValueError("All date formats must be strings")

        for key in NUMERIC_KEYS:
            if key in data and (isinstance(data[key], bool) or not isinstance(data[key], (int, float, str))):
                raise ValueError(f"{key} must be a number")

        for key in INTEGER_KEYS:
            if key in data and (isinstance(data[key], bool) or not isinstance(data[key], int)):
                raise ValueError(f"{key} must be an integer")

        if 'auto_fill_threshold' in data and not 0 <= data['auto_fill_threshold'] <= 100:
            raise ValueError("auto_fill_threshold must be between 0 and 100")

        if 'auto_fill_categories' in data and not isinstance(data['auto_fill_categories'], bool):
            raise ValueError("auto_fill_categories must be a boolean")

        if 'sign_convention' in data and data['sign_convention'] not in SIGN_CONVENTIONS:
            raise ValueError(f"sign_convention must be one of {', '.join(SIGN_CONVENTIONS)}")

        if 'default_household_id' in data:
            value = data['default_household_id']
            if not isinstance(value, str) or not value.strip():
                raise ValueError("default_household_id must be a non-empty string")

    def save_config_template(self, output_path: str) -> None:
        """Generate and save a configuration file template

        Args:
            output_path: Path where to save the template
        """
        defaults = ImportConfig()
        template = {
            "date_formats": defaults.date_formats,
            "balance_threshold": float(defaults.balance_threshold),
            "long_field_length": defaults.long_field_length,
            "amount_tolerance": float(defaults.amount_tolerance),
            "similarity_threshold": defaults.similarity_threshold,
            "cashflow_tolerance": defaults.cashflow_tolerance,
            "auto_fill_threshold": defaults.auto_fill_threshold,
            "auto_fill_categories": defaults.auto_fill_categories,
            "sign_convention": defaults.sign_convention,
            "default_household_id": defaults.default_household_id,
        }

        output_dir = os.path.dirname(output_path)
        if output_dir:
            os.makedirs(output_dir, exist_ok=True)

        with open(output_path, 'w', encoding='utf-8') as f:
            if output_path.endswith(('.yml', '.yaml')):
                yaml.dump(template, f, default_flow_style=False, indent=2)
            else:
                json.dump(template, f, indent=2)

        logger.info(f"Configuration template saved to {output_path}")

    def update_config(self, updates: Dict[str, Any]) -> None:
        """Update the cached configuration with new values"""
        if self._config_cache is None:
            self.load_config()

        for key, value in updates.items():
            if hasattr(self._config_cache, key):
                setattr(self._config_cache, key, value)
                logger.debug(f"Updated configuration: {key} = {value}")
            else:
                logger.warning(f"Unknown configuration key: {key}")

    def reset_config(self) -> None:
        """Reset configuration cache, forcing reload on next access"""
        self._config_cache = None
        logger.debug("Configuration cache reset")
