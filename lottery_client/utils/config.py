"""
Configuration Management
"""

import copy
import json
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

from dotenv import load_dotenv

from lottery_client.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_FILE = Path.cwd() / "config" / "lottery.conf"

DEFAULT_CONFIG: Dict[str, Any] = {
    "blockchain": {
        "rpc_url": "https://rpc-mumbai.maticvigil.com",
        "chain_id": 80001,
        "network_name": "Mumbai",
        "contract_address": None,
        "rpc_timeout": 10.0,
        "gas_multiplier": 1.15,
        "tx_timeout": 180,
    },
    "indexer": {
        "endpoint": None,
        "timeout": 10.0,
    },
    "poller": {
        "interval_sec": 2.0,
    },
    "wallet": {
        "private_key": None,
        "address": None,
    },
}

_ENV_SECTIONS = {
    "BLOCKCHAIN_": "blockchain",
    "INDEXER_": "indexer",
    "POLLER_": "poller",
    "WALLET_": "wallet",
}


def load_config(config_file: Optional[Union[str, Path]] = None, env_file: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """Load configuration from defaults, a JSON file, .env and environment variables"""
    config = copy.deepcopy(DEFAULT_CONFIG)

    if config_file is None:
        config_file = os.getenv("LOTTERY_CONFIG_FILE") or DEFAULT_CONFIG_FILE
    config_file = Path(config_file)
    if config_file.exists():
        with open(config_file, 'r') as f:
            file_config = json.load(f)
        _merge(config, file_config)
        logger.info(f"Loaded configuration from {config_file}")
    else:
        logger.debug(f"Config file {config_file} not found. Will only use defaults and environment variables.")

    # .env values never override variables already present in the environment
    load_dotenv(env_file)

    config = _apply_env_overrides(config)
    _coerce_types(config)

    logger.debug("Configuration loaded: %s", json.dumps(_redacted(config), indent=2))
    return config


def _merge(config: Dict[str, Any], overrides: Dict[str, Any]) -> None:
    """Deep merge configuration sections"""
    for section, values in overrides.items():
        if section in config and isinstance(config[section], dict) and isinstance(values, dict):
            config[section].update(values)
        else:
            config[section] = values


def _apply_env_overrides(config: Dict[str, Any]) -> Dict[str, Any]:
    """Apply environment variable overrides to configuration"""
    for key, value in os.environ.items():
        for prefix, section in _ENV_SECTIONS.items():
            if key.startswith(prefix):
                config.setdefault(section, {})[key[len(prefix):].lower()] = value
                break

    return config


def _coerce_types(config: Dict[str, Any]) -> None:
    """Environment values arrive as strings; restore the types the defaults use."""
    for section, defaults in DEFAULT_CONFIG.items():
        values = config.get(section, {})
        for key, default in defaults.items():
            value = values.get(key)
            if value is None or default is None or not isinstance(value, str):
                continue
            try:
                values[key] = type(default)(value)
            except ValueError:
                raise ValueError(f"Invalid value for {section}.{key}: {value!r}") from None


def _redacted(config: Dict[str, Any]) -> Dict[str, Any]:
    shown = copy.deepcopy(config)
    if shown.get("wallet", {}).get("private_key"):
        shown["wallet"]["private_key"] = "***"
    return shown


def get_config_value(config: Dict[str, Any], key_path: str, default=None):
    """Get configuration value by dot-separated key path"""
    keys = key_path.split('.')
    value = config

    try:
        for key in keys:
            value = value[key]
        return value
    except (KeyError, TypeError):
        return default
