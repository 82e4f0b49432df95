"""
Configuration loading utilities for the records desk webapp.

This module loads and validates the application configuration (API
endpoint, upload limits, logging) with fallback to defaults.
"""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
import logging
from copy import deepcopy

logger = logging.getLogger(__name__)

CONFIG_FILE = Path("config.yaml")

# Environment variables that take precedence over config.yaml
ENV_OVERRIDES = {
    'TTO_API_BASE_URL': ('api', 'base_url'),
    'TTO_API_TIMEOUT': ('api', 'timeout'),
    'TTO_LOG_LEVEL': ('logging', 'level'),
}

# Global configuration cache
_config_cache: Optional[Dict[str, Any]] = None


def deep_merge(base_dict: Dict[str, Any], update_dict: Dict[str, Any]) -> Dict[str, Any]:
    """
    Deep merge two dictionaries, with update_dict taking precedence.

    Args:
        base_dict: Base dictionary (defaults)
        update_dict: Dictionary to merge in (user config)

    Returns:
        Merged dictionary
    """
    result = deepcopy(base_dict)

    for key, value in update_dict.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = deepcopy(value)

    return result


def get_default_config() -> Dict[str, Any]:
    """
    Get default configuration.

    Returns:
        Dictionary with default configuration
    """
    return {
        'app': {
            'name': 'Tech Transfer Records Desk',
            'version': '1.0.0',
            'role': 'user'
        },
        'api': {
            'base_url': 'http://localhost:8000/api',
            'asset_base_url': '',
            'timeout': 30
        },
        'uploads': {
            'attachment_max_mb': 10,
            'logo_max_mb': 2
        },
        'schemas': {
            'directory': 'schemas'
        },
        'logging': {
            'level': 'INFO',
            'format': '%(asctime)s %(levelname)s %(name)s: %(message)s'
        },
        'ui': {
            'page_title': 'Tech Transfer Records',
            'sidebar_title': 'Navigation',
            'page_size': 25
        }
    }


def _apply_env_overrides(config: Dict[str, Any]) -> Dict[str, Any]:
    """Apply TTO_* environment variables on top of the loaded configuration."""
    for env_name, (section, key) in ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value:
            config.setdefault(section, {})[key] = value
            logger.debug(f"Configuration override from {env_name}: {section}.{key}")
    return config


def load_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load application configuration.

    Args:
        config_path: Optional path to config file (defaults to config.yaml)

    Returns:
        Complete configuration dictionary
    """
    if config_path is None:
        config_path = CONFIG_FILE

    default_config = get_default_config()

    if not config_path.exists():
        logger.warning(f"Configuration file not found: {config_path}")
        logger.info("Using default configuration")
        return _apply_env_overrides(default_config)

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            user_config = yaml.safe_load(f)

        if user_config is None:
            logger.warning(f"Configuration file is empty: {config_path}")
            return _apply_env_overrides(default_config)

        if not isinstance(user_config, dict):
            logger.error(f"Configuration file is not a valid dictionary: {config_path}")
            logger.info("Using default configuration")
            return _apply_env_overrides(default_config)

        config = deep_merge(default_config, user_config)

        logger.info(f"Successfully loaded configuration from {config_path}")
        return _apply_env_overrides(config)

    except yaml.YAMLError as e:
        logger.error(f"YAML parsing error in {config_path}: {e}")
        logger.info("Using default configuration")
        return _apply_env_overrides(default_config)

    except (IOError, OSError) as e:
        logger.error(f"Failed to read configuration file {config_path}: {e}")
        logger.info("Using default configuration")
        return _apply_env_overrides(default_config)


def validate_config(config: Dict[str, Any]) -> bool:
    """
    Validate configuration structure and required fields.

    Args:
        config: Configuration dictionary to validate

    Returns:
        True if configuration is valid, False otherwise
    """
    required_sections = ['app', 'api', 'uploads', 'logging', 'ui']

    for section in required_sections:
        if section not in config:
            logger.warning(f"Missing required configuration section: {section}")
            return False

    api = config.get('api', {})
    base_url = api.get('base_url')
    if not isinstance(base_url, str) or not base_url.startswith(('http://', 'https://')):
        logger.warning(f"api.base_url must be an http(s) URL, got: {base_url!r}")
        return False

    try:
        timeout = float(api.get('timeout', 30))
        if timeout <= 0:
            logger.warning("api.timeout must be positive")
            return False
    except (ValueError, TypeError):
        logger.warning("api.timeout must be a valid number")
        return False

    uploads = config.get('uploads', {})
    for key in ('attachment_max_mb', 'logo_max_mb'):
        if key in uploads:
            try:
                size = float(uploads[key])
                if size <= 0:
                    logger.warning(f"uploads.{key} must be positive")
                    return False
            except (ValueError, TypeError):
                logger.warning(f"uploads.{key} must be a valid number")
                return False

    app = config.get('app', {})
    if 'name' not in app or 'version' not in app:
        logger.warning("Missing required app configuration (name or version)")
        return False

    return True


def get_config() -> Dict[str, Any]:
    """Return the cached application configuration, loading it on first use."""
    global _config_cache

    if _config_cache is None:
        _config_cache = load_config()
    return _config_cache


def get_config_value(section: str, key: str, default: Any = None) -> Any:
    """
    Get a specific configuration value.

    Args:
        section: Configuration section name
        key: Key within the section
        default: Default value if not found

    Returns:
        Configuration value or default
    """
    config = get_config()
    return config.get(section, {}).get(key, default)


def get_logging_level(level_str: Any) -> int:
    """Map string logging level to logging constant."""
    level_map = {
        'DEBUG': logging.DEBUG,
        'INFO': logging.INFO,
        'WARNING': logging.WARNING,
        'ERROR': logging.ERROR,
        'CRITICAL': logging.CRITICAL
    }
    if not isinstance(level_str, str):
        return logging.INFO
    return level_map.get(level_str.upper(), logging.INFO)


def get_config_summary(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Get a summary of the current configuration.

    Args:
        config: Configuration dictionary

    Returns:
        Dictionary with configuration summary
    """
    return {
        'app_name': config.get('app', {}).get('name', 'Unknown'),
        'app_version': config.get('app', {}).get('version', 'Unknown'),
        'api_base_url': config.get('api', {}).get('base_url', 'Unknown'),
        'api_timeout': config.get('api', {}).get('timeout', 30),
        'attachment_max_mb': config.get('uploads', {}).get('attachment_max_mb', 10),
        'logo_max_mb': config.get('uploads', {}).get('logo_max_mb', 2),
        'log_level': config.get('logging', {}).get('level', 'INFO')
    }
