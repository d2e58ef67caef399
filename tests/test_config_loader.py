# tests/test_config_loader.py

import logging

import pytest
import yaml

from ekiden_client import config_loader
from ekiden_client.config import LOCAL_BASE_URL, Environment
from ekiden_client.config_loader import load_config
from ekiden_client.exceptions import ConfigError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("EKIDEN_ENV", "EKIDEN_BASE_URL", "EKIDEN_WS_URL"):
        monkeypatch.delenv(name, raising=False)


def _write(path, data):
    path.write_text(yaml.safe_dump(data))
    return path


def test_missing_file_uses_local_defaults(tmp_path):
    config = load_config(tmp_path / "missing.yaml")

    assert config.base_url == LOCAL_BASE_URL
    assert config.max_retries == 3


def test_default_path_uses_appdirs(tmp_path, monkeypatch):
    monkeypatch.setattr(config_loader.appdirs, "user_config_dir", lambda app_name: str(tmp_path / app_name))
    (tmp_path / "ekiden_client").mkdir()
    _write(tmp_path / "ekiden_client" / "config.yaml", {"environment": "production"})

    assert config_loader.get_config_dir() == tmp_path / "ekiden_client"
    assert load_config().base_url == Environment.PRODUCTION.base_url


def test_file_values_override_preset(tmp_path):
    path = _write(
        tmp_path / "config.yaml",
        {
            "environment": "staging",
            "timeout": 5,
            "max_retries": 1,
            "retry_delay": 0.5,
            "ws_capacity": 64,
            "user_agent": "tests/1.0",
            "enable_logging": True,
        },
    )

    config = load_config(path)

    assert config.base_url == Environment.STAGING.base_url
    assert config.timeout == 5.0
    assert config.max_retries == 1
    assert config.retry_delay == 0.5
    assert config.ws_capacity == 64
    assert config.user_agent == "tests/1.0"
    assert config.enable_logging is True


def test_environment_variables_take_precedence(tmp_path, monkeypatch):
    path = _write(tmp_path / "config.yaml", {"environment": "staging", "base_url": "https://file.example/api/v1"})
    monkeypatch.setenv("EKIDEN_BASE_URL", "https://env.example/api/v1")
    monkeypatch.setenv("EKIDEN_WS_URL", "wss://stream.example/ws")

    config = load_config(path)

    assert config.base_url == "https://env.example/api/v1"
    assert config.ws_url == "wss://stream.example/ws"


def test_env_argument_selects_preset(tmp_path, monkeypatch):
    monkeypatch.setenv("EKIDEN_ENV", "staging")
    assert load_config(tmp_path / "none.yaml", env="production").base_url == Environment.PRODUCTION.base_url
    assert load_config(tmp_path / "none.yaml").base_url == Environment.STAGING.base_url


def test_invalid_values_fall_back_with_warning(tmp_path, caplog):
    path = _write(tmp_path / "config.yaml", {"environment": "mars", "timeout": -1, "max_retries": "many"})

    with caplog.at_level(logging.WARNING, logger="ekiden_client.config_loader"):
        config = load_config(path)

    assert config.base_url == LOCAL_BASE_URL
    assert config.timeout == 30.0
    assert config.max_retries == 3
    events = {getattr(r, "event", None) for r in caplog.records}
    assert {"config_invalid_env", "timeout", "max_retries"} <= events


def test_non_mapping_file_is_ignored(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("- just\n- a list\n")
    assert load_config(path).base_url == LOCAL_BASE_URL


def test_broken_yaml_raises_config_error(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("key: [unclosed")
    with pytest.raises(ConfigError):
        load_config(path)
