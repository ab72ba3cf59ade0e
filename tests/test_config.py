"""Tests for configuration loading."""

import pytest
from pydantic import ValidationError

from form_api_client.config import ClientConfig, Settings
from form_api_client.exceptions import ConfigError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv("FORM_API_BASE_URL", raising=False)
    monkeypatch.delenv("FORM_API_LOG_LEVEL", raising=False)


def test_defaults_without_config_file(tmp_path):
    settings = Settings(tmp_path / "missing.yaml")

    assert settings.client.max_retries == 2
    assert settings.client.prompt_cancelable is False
    assert settings.log_level == "INFO"
    assert str(settings.storage_path) == "data/session.json"


def test_loads_yaml(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "api:\n"
        "  base_url: https://forms.example.com/api/\n"
        "  timeout_seconds: 10\n"
        "storage:\n"
        f"  path: {tmp_path / 'session.json'}\n"
        "logging:\n"
        "  level: debug\n"
    )

    settings = Settings(path)

    assert settings.client.base_url == "https://forms.example.com/api"
    assert settings.client.timeout_seconds == 10
    assert settings.storage_path == tmp_path / "session.json"
    assert settings.log_level == "DEBUG"


def test_environment_overrides_file(tmp_path, monkeypatch):
    path = tmp_path / "config.yaml"
    path.write_text("api:\n  base_url: https://file.example.com\n")
    monkeypatch.setenv("FORM_API_BASE_URL", "https://env.example.com")
    monkeypatch.setenv("FORM_API_LOG_LEVEL", "WARNING")

    settings = Settings(path)

    assert settings.client.base_url == "https://env.example.com"
    assert settings.log_level == "WARNING"


def test_invalid_config_raises(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("api:\n  base_url: ftp://nope\n")

    with pytest.raises(ConfigError):
        Settings(path)


def test_non_mapping_config_raises(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("- just\n- a list\n")

    with pytest.raises(ConfigError):
        Settings(path)


def test_client_config_is_frozen():
    config = ClientConfig(base_url="https://api.example.com")

    with pytest.raises(ValidationError):
        config.max_retries = 5


def test_url_for_joins_paths():
    config = ClientConfig(base_url="https://api.example.com/v1/")

    assert config.url_for("/orders") == "https://api.example.com/v1/orders"
    assert config.url_for("orders/1") == "https://api.example.com/v1/orders/1"
    assert config.url_for("https://other.example.com/x") == "https://other.example.com/x"
