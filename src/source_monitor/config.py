# src/source_monitor/config.py
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
import logging

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent

def deep_merge_dicts(base: Dict, update: Dict) -> Dict:
    """Recursively merge two dictionaries. Update values override base values."""
    merged = base.copy()
    for key, value in update.items():
        if isinstance(value, dict) and key in merged and isinstance(merged[key], dict):
            merged[key] = deep_merge_dicts(merged[key], value)
        else:
            merged[key] = value
    return merged

def _read_yaml_mapping(path: Path) -> Dict[str, Any]:
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Error parsing YAML configuration from {path}: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Error reading configuration file {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file {path} is not a valid YAML dictionary.")
    return data

def _resolve_path(value: str) -> str:
    path = Path(value)
    if not path.is_absolute():
        path = PROJECT_ROOT / path
    return str(path)

def load_config(config_path: Optional[str] = None, env: Optional[str] = None) -> Dict[str, Any]:
    """
    Loads configuration from YAML files.
    It loads a default config, then merges an optional environment-specific config
    (``<env>.yaml`` next to the primary file).
    """
    if config_path:
        primary_config_file = Path(config_path)
        if not primary_config_file.is_absolute():
            primary_config_file = PROJECT_ROOT / primary_config_file
    else:
        primary_config_file = PROJECT_ROOT / "config/default.yaml"

    if not primary_config_file.exists():
        raise ConfigurationError(f"Primary configuration file not found: {primary_config_file}")

    config_data = _read_yaml_mapping(primary_config_file)

    if env and env != "default":
        env_config_file = primary_config_file.parent / f"{env}.yaml"
        if env_config_file.exists() and env_config_file != primary_config_file:
            config_data = deep_merge_dicts(config_data, _read_yaml_mapping(env_config_file))
            logger.info(f"Loaded and merged environment configuration from: {env_config_file}")
        else:
            logger.debug(f"No environment configuration for '{env}' at {env_config_file}. Using primary config only.")

    database_config = config_data.get("database") or {}
    if database_config.get("path") and database_config["path"] != ":memory:":
        database_config["path"] = _resolve_path(database_config["path"])

    logging_config = config_data.get("logging") or {}
    if logging_config.get("file"):
        logging_config["file"] = _resolve_path(logging_config["file"])

    caching_config = (config_data.get("advanced") or {}).get("caching") or {}
    if caching_config.get("cache_name"):
        caching_config["cache_name"] = _resolve_path(caching_config["cache_name"])

    monitors = config_data.get("monitors", [])
    if monitors is not None and not isinstance(monitors, list):
        raise ConfigurationError("'monitors' must be a list of monitor definitions.")

    logger.debug(f"Final configuration loaded from {primary_config_file}")
    return config_data
