"""Provides functions for loading and accessing configuration settings.

Supports loading from a YAML configuration file (~/.campfin/config.yaml),
a .env file and environment variables. Dotted keys such as
``campfin.retry.delay_seconds`` resolve against nested YAML sections and
against the environment variable ``CAMPFIN_RETRY_DELAY_SECONDS``.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import yaml
from dotenv import load_dotenv

from campfin.domain.models.common import DEFAULT_BASE_URL, DEFAULT_CONCURRENCY_LIMIT
from campfin.domain.models.errors import ConfigurationError
from campfin.infrastructure.http.httpx_transport import DEFAULT_TIMEOUT_SECONDS
from campfin.infrastructure.resilience.retry_policy import (
    DEFAULT_MAX_ATTEMPTS, DEFAULT_RETRY_DELAY_SECONDS,
)

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".campfin"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
ENV_FILE_NAME = ".env"

# --- Global Configuration Store ---
_config: Dict[str, Any] = {}
_test_config: Dict[str, Any] = {}
_loaded = False


def load_configuration(config_file: Optional[Path] = None, env_file: Optional[Path] = None) -> None:
    """Loads configuration from the YAML file and the .env file.

    Priority order (highest to lowest):
    1. Test overrides (set_config_for_testing)
    2. Environment Variables
    3. .env file (never overrides variables already set)
    4. YAML configuration file
    5. Default values passed to get_config

    Args:
        config_file: Path to the YAML configuration file (DEFAULT_CONFIG_FILE if None).
        env_file: Path to the .env file (searches upwards from cwd if None).
    """
    global _config, _loaded
    if _loaded:
        logger.debug("Configuration already loaded.")
        return

    _config = {}
    config_file = config_file or DEFAULT_CONFIG_FILE

    # 1. YAML file (Lowest priority)
    if config_file.exists():
        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                yaml_config = yaml.safe_load(f)
            if isinstance(yaml_config, dict):
                _config.update(yaml_config)
                logger.info(f"Loaded configuration from YAML: {config_file}")
            elif yaml_config is not None:
                logger.warning(f"YAML config file {config_file} did not contain a dictionary.")
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load or parse YAML config {config_file}: {e}")
    else:
        logger.debug(f"YAML config file not found: {config_file}")

    # 2. .env file (Medium priority); override=False keeps real ENV VARS on top
    dotenv_path = env_file or find_dotenv_path()
    if dotenv_path:
        if load_dotenv(dotenv_path=dotenv_path, override=False):
            logger.info(f"Loaded environment variables from: {dotenv_path}")
    else:
        logger.debug("No .env file found at or above current directory.")

    _loaded = True
    logger.debug("Configuration loading process completed.")


def reset_configuration() -> None:
    """Forgets loaded configuration so the next access reloads it."""
    global _config, _loaded
    _config = {}
    _loaded = False


def get_config(key: str, default: Any = None, coerce: bool = True) -> Any:
    """
    Get a configuration value by key.

    Priority:
    1. Test configuration
    2. Environment variable (dots become underscores, upper case)
    3. YAML config (dotted keys walk nested sections)
    4. Default value

    Args:
        key: The configuration key, e.g. 'campfin.timeout_seconds'
        default: Default value if the key is not found
        coerce: Convert environment strings to bool/int/float/None. Disable for
            opaque values such as API keys.

    Returns:
        The configuration value
    """
    if key in _test_config:
        return _test_config[key]

    if not _loaded:
        load_configuration()

    env_key = key.upper().replace('.', '_')
    if env_key in os.environ:
        value = os.environ[env_key]
        return _coerce(value) if coerce else value

    value = _lookup(_config, key)
    if value is not None:
        return value

    logger.debug(f"Config key '{key}' not found in environment or loaded config. Returning default: {default}")
    return default


def _lookup(section: Dict[str, Any], key: str) -> Any:
    if key in section:
        return section[key]
    head, _, rest = key.partition('.')
    if rest and isinstance(section.get(head), dict):
        return _lookup(section[head], rest)
    return None


def _coerce(value: str) -> Any:
    """Converts common scalar spellings from environment strings."""
    lowered = value.lower()
    if lowered == 'true':
        return True
    if lowered == 'false':
        return False
    if lowered in ('none', 'null'):
        return None
    try:
        if '.' in value:
            return float(value)
        return int(value)
    except (ValueError, TypeError):
        return value


def find_dotenv_path() -> Optional[Path]:
    """Searches for the .env file upwards from the current directory."""
    cwd = Path.cwd()
    for path in [cwd] + list(cwd.parents):
        env_path = path / ENV_FILE_NAME
        if env_path.is_file():
            return env_path
    return None

# --- Convenience Functions ---

def get_api_key() -> Optional[str]:
    """Gets the ProPublica API key (ENV PROPUBLICA_API_KEY or yaml propublica.api_key).

    The key is returned exactly as written; environment values are not coerced.

    Raises:
        ConfigurationError: If the YAML value is not a string. An unquoted
            numeric key has already lost its original spelling.
    """
    key = get_config('PROPUBLICA_API_KEY', coerce=False) or get_config('propublica.api_key', coerce=False)
    if not key:
        return None
    if not isinstance(key, str):
        raise ConfigurationError("propublica.api_key must be a quoted string in the YAML config")
    return key

def _number(key: str, default: Any, convert: Callable[[Any], Any], minimum: float) -> Any:
    """Reads a numeric setting and checks it against a lower bound."""
    value = get_config(key, default)
    try:
        number = convert(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{key} must be a number, got {value!r}") from None
    if number < minimum:
        raise ConfigurationError(f"{key} must be at least {minimum}, got {number}")
    return number

def get_base_url() -> str:
    return str(get_config('campfin.base_url', DEFAULT_BASE_URL))

def get_concurrency_limit() -> int:
    return _number('campfin.concurrency', DEFAULT_CONCURRENCY_LIMIT, int, 1)

def get_retry_delay() -> float:
    return _number('campfin.retry.delay_seconds', DEFAULT_RETRY_DELAY_SECONDS, float, 0)

def get_max_attempts() -> Optional[int]:
    """Gets the retry cap; None (the default) means retry until a terminal status."""
    value = get_config('campfin.retry.max_attempts', DEFAULT_MAX_ATTEMPTS)
    if value is None or value == '':
        return None
    return _number('campfin.retry.max_attempts', value, int, 1)

def get_request_timeout() -> float:
    return _number('campfin.timeout_seconds', DEFAULT_TIMEOUT_SECONDS, float, 0)


@dataclass(frozen=True)
class ClientSettings:
    """Settings needed to build a CampaignFinanceClient."""

    api_key: Optional[str]
    base_url: str = DEFAULT_BASE_URL
    concurrency: int = DEFAULT_CONCURRENCY_LIMIT
    retry_delay_seconds: float = DEFAULT_RETRY_DELAY_SECONDS
    max_attempts: Optional[int] = DEFAULT_MAX_ATTEMPTS
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS


def load_client_settings(api_key: Optional[str] = None) -> ClientSettings:
    """Builds ClientSettings from configuration; an explicit api_key wins."""
    return ClientSettings(
        api_key=api_key or get_api_key(),
        base_url=get_base_url(),
        concurrency=get_concurrency_limit(),
        retry_delay_seconds=get_retry_delay(),
        max_attempts=get_max_attempts(),
        timeout_seconds=get_request_timeout(),
    )


def set_config_for_testing(config_dict: Dict[str, Any]) -> None:
    """
    Set configuration values for testing purposes.
    These values will override any existing configuration.

    Args:
        config_dict: Dictionary of configuration values to set
    """
    _test_config.update(config_dict)
    logger.debug(f"Set testing configuration: {config_dict}")

def clear_test_config() -> None:
    """Clear all testing configuration values."""
    _test_config.clear()
    logger.debug("Cleared testing configuration")
