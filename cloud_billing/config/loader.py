"""
Configuration management and loading.

Handles application settings, pricing overrides and environment variables.
"""

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, Optional

import yaml

from cloud_billing.core.catalog import (
    InstanceSpec,
    PricingCatalog,
    StorageClass,
    default_catalog
)
from cloud_billing.storage.db import DEFAULT_DB_PATH

DB_PATH_ENV_VAR = "CLOUD_BILLING_DB_PATH"

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass(frozen=True)
class AppConfig:
    """Complete application configuration."""
    db_path: str = DEFAULT_DB_PATH
    default_user_id: Optional[str] = None
    log_level: str = "INFO"
    structured_logs: bool = False
    catalog: PricingCatalog = field(default_factory=default_catalog)

    def __post_init__(self):
        """Validate settings."""
        if not self.db_path:
            raise ValueError("db_path cannot be empty")
        if self.log_level.upper() not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of: {sorted(_LOG_LEVELS)}")


def load_app_config(path: str) -> AppConfig:
    """Load and validate application configuration from YAML file.

    A `pricing` section replaces the built-in catalog entirely; both its
    `instances` and `storage_classes` tables are then required.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated AppConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if not raw_config:
        raise ValueError("Configuration file is empty")
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration must be a dictionary")

    allowed_top_keys = {'db_path', 'default_user_id', 'logging', 'pricing'}
    unknown_keys = set(raw_config.keys()) - allowed_top_keys
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    settings = {}

    if 'db_path' in raw_config:
        db_path = raw_config['db_path']
        if not isinstance(db_path, str) or not db_path:
            raise ValueError("'db_path' must be a non-empty string")
        settings['db_path'] = db_path

    if raw_config.get('default_user_id') is not None:
        settings['default_user_id'] = str(raw_config['default_user_id'])

    if 'logging' in raw_config:
        settings.update(_parse_logging(raw_config['logging']))

    if 'pricing' in raw_config:
        settings['catalog'] = _parse_pricing(raw_config['pricing'])

    return AppConfig(**settings)


def resolve_config(path: Optional[str] = None) -> AppConfig:
    """Load configuration from a file (or defaults) and apply the environment.

    CLOUD_BILLING_DB_PATH, when set, overrides the configured db_path.
    """
    config = load_app_config(path) if path else AppConfig()
    env_db_path = os.environ.get(DB_PATH_ENV_VAR)
    if env_db_path:
        config = replace(config, db_path=env_db_path)
    return config


def _parse_logging(data) -> Dict:
    if not isinstance(data, dict):
        raise ValueError("'logging' must be a dictionary")

    allowed_keys = {'level', 'structured'}
    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown logging keys: {unknown_keys}")

    settings = {}
    if 'level' in data:
        if not isinstance(data['level'], str):
            raise ValueError("'logging.level' must be a string")
        settings['log_level'] = data['level'].upper()
    if 'structured' in data:
        if not isinstance(data['structured'], bool):
            raise ValueError("'logging.structured' must be true or false")
        settings['structured_logs'] = data['structured']
    return settings


def _parse_pricing(data) -> PricingCatalog:
    """Parse and validate a replacement pricing catalog.

    Raises:
        ValueError: If the pricing section is invalid
    """
    if not isinstance(data, dict):
        raise ValueError("'pricing' must be a dictionary")

    allowed_keys = {'instances', 'storage_classes'}
    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown pricing keys: {unknown_keys}")

    for section in ('instances', 'storage_classes'):
        if section not in data:
            raise ValueError(f"Missing required 'pricing.{section}' section")
        if not isinstance(data[section], dict) or not data[section]:
            raise ValueError(f"'pricing.{section}' must be a non-empty dictionary")

    instances = [
        _parse_instance(str(identifier), spec)
        for identifier, spec in data['instances'].items()
    ]
    storage_classes = [
        _parse_storage_class(str(identifier), spec)
        for identifier, spec in data['storage_classes'].items()
    ]
    return PricingCatalog.from_specs(instances, storage_classes)


def _parse_instance(identifier: str, data) -> InstanceSpec:
    path = f"pricing.instances.{identifier}"
    if not isinstance(data, dict):
        raise ValueError(f"'{path}' must be a dictionary")

    required_keys = {'name', 'vcpu', 'memory_gib', 'hourly_rate'}
    unknown_keys = set(data.keys()) - required_keys - {'monthly_price'}
    if unknown_keys:
        raise ValueError(f"Unknown keys in {path}: {unknown_keys}")
    missing_keys = required_keys - set(data.keys())
    if missing_keys:
        raise ValueError(f"Missing keys in {path}: {missing_keys}")

    try:
        return InstanceSpec(
            identifier=identifier,
            display_name=str(data['name']),
            vcpu=data['vcpu'],
            memory_gib=data['memory_gib'],
            hourly_rate=data['hourly_rate'],
            monthly_price=data.get('monthly_price')
        )
    except ValueError as e:
        raise ValueError(f"Invalid {path}: {e}")


def _parse_storage_class(identifier: str, data) -> StorageClass:
    """Accepts either a bare monthly rate or a mapping with a description."""
    path = f"pricing.storage_classes.{identifier}"
    if isinstance(data, dict):
        allowed_keys = {'monthly_rate', 'description'}
        unknown_keys = set(data.keys()) - allowed_keys
        if unknown_keys:
            raise ValueError(f"Unknown keys in {path}: {unknown_keys}")
        if 'monthly_rate' not in data:
            raise ValueError(f"Missing required 'monthly_rate' in {path}")
        rate = data['monthly_rate']
        description = str(data.get('description', ""))
    else:
        rate = data
        description = ""

    try:
        return StorageClass(
            identifier=identifier,
            monthly_rate_per_unit=rate,
            description=description
        )
    except ValueError as e:
        raise ValueError(f"Invalid {path}: {e}")
