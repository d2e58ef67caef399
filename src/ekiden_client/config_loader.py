from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import appdirs  # type: ignore[import-untyped]
import yaml  # type: ignore[import-untyped]

from ekiden_client.config import EkidenConfig, Environment
from ekiden_client.exceptions import ConfigError

logger = logging.getLogger(__name__)

APP_NAME = "ekiden_client"
CONFIG_FILENAME = "config.yaml"


def get_config_dir() -> Path:
    """
    Returns the OS-specific configuration directory for the client using appdirs.
    """
    return Path(appdirs.user_config_dir(APP_NAME))


def _read_yaml(path: Path) -> Dict[str, Any]:
    with open(path, "r") as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Error loading {path}: {exc}") from exc
    if not isinstance(data, dict):
        logger.warning(
            "Configuration file is not a mapping; falling back to defaults",
            extra={"event": "config_invalid_format", "config_path": str(path)},
        )
        return {}
    return data


def _resolve_environment(value: Optional[str], config_path: Path) -> Environment:
    if value is None:
        return Environment.LOCAL
    try:
        return Environment(value.lower())
    except ValueError:
        logger.warning(
            "Invalid environment '%s'; defaulting to 'local'",
            value,
            extra={"event": "config_invalid_env", "config_path": str(config_path)},
        )
        return Environment.LOCAL


def load_config(
    config_path: Optional[Path] = None, env: Optional[str] = None
) -> EkidenConfig:
    """
    Loads client configuration from YAML and the environment.

    Precedence (lowest first): environment preset, ``config.yaml`` keys,
    ``EKIDEN_BASE_URL`` / ``EKIDEN_WS_URL`` environment variables. The preset is
    picked from ``env``, then ``EKIDEN_ENV``, then the file's ``environment`` key.
    """

    def _validated_number(value: Any, default: float, field_name: str, min_value: float) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool) and value >= min_value:
            return value

        logger.warning(
            "%s is invalid; using default",
            field_name,
            extra={"event": field_name, "config_path": str(config_path)},
        )
        return default

    if config_path is None:
        config_path = get_config_dir() / CONFIG_FILENAME
    config_path = config_path.expanduser()

    if config_path.exists():
        raw_config = _read_yaml(config_path)
    else:
        logger.debug(
            "Configuration file not found; using defaults",
            extra={"event": "config_missing_file", "config_path": str(config_path)},
        )
        raw_config = {}

    env_name = env or os.environ.get("EKIDEN_ENV") or raw_config.get("environment")
    environment = _resolve_environment(env_name, config_path)
    config = environment.config()

    base_url = os.environ.get("EKIDEN_BASE_URL") or raw_config.get("base_url")
    if base_url:
        config = EkidenConfig.new(str(base_url))

    ws_url = os.environ.get("EKIDEN_WS_URL") or raw_config.get("ws_url")
    if ws_url:
        config = config.with_ws_url(str(ws_url))

    defaults = EkidenConfig()
    if "timeout" in raw_config:
        config.timeout = float(
            _validated_number(raw_config["timeout"], defaults.timeout, "timeout", 0.001)
        )
    if "max_retries" in raw_config:
        config.max_retries = int(
            _validated_number(raw_config["max_retries"], defaults.max_retries, "max_retries", 0)
        )
    if "retry_delay" in raw_config:
        config.retry_delay = float(
            _validated_number(raw_config["retry_delay"], defaults.retry_delay, "retry_delay", 0)
        )
    if "ws_capacity" in raw_config:
        config.ws_capacity = int(
            _validated_number(raw_config["ws_capacity"], defaults.ws_capacity, "ws_capacity", 1)
        )
    if "user_agent" in raw_config:
        config.user_agent = str(raw_config["user_agent"])
    if "api_version" in raw_config:
        config.api_version = str(raw_config["api_version"])
    if "enable_logging" in raw_config:
        config.enable_logging = bool(raw_config["enable_logging"])

    return config
