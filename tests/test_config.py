"""
Tests for credentials and settings resolution.
"""

import pytest

from prestclient import ConfigurationError, basic_auth_header, resolve_auth_header
from prestclient.config import (
    DEFAULT_URL,
    clear_config,
    load_config,
    load_settings,
    save_config,
    setting_source,
)


class TestAuth:
    """Tests for Authorization header construction."""

    def test_basic_auth_header(self):
        assert basic_auth_header("prest", "prest") == "Basic cHJlc3Q6cHJlc3Q="

    def test_basic_auth_unicode(self):
        assert basic_auth_header("josé", "") == "Basic am9zw6k6"

    def test_header_wins(self):
        assert resolve_auth_header("u", "p", "Bearer xyz") == "Bearer xyz"

    def test_username_without_password(self):
        assert resolve_auth_header("prest") == basic_auth_header("prest", "")

    def test_nothing_configured(self):
        with pytest.raises(ConfigurationError):
            resolve_auth_header()


class TestLoadSettings:
    """Tests for argument > env > file > default precedence."""

    def test_defaults(self):
        settings = load_settings()
        assert settings.url == DEFAULT_URL
        assert settings.username is None
        assert settings.timeout is None

    def test_config_file(self, isolated_config):
        isolated_config.write_text(
            "url: http://file.test\nusername: alice\npassword: secret\ntimeout: 2.5\n",
            encoding="utf-8"
        )
        settings = load_settings()
        assert settings.url == "http://file.test"
        assert settings.username == "alice"
        assert settings.timeout == 2.5

    def test_env_overrides_file(self, isolated_config, monkeypatch):
        save_config({"url": "http://file.test", "username": "alice"})
        monkeypatch.setenv("PREST_URL", "http://env.test")

        settings = load_settings()

        assert settings.url == "http://env.test"
        assert settings.username == "alice"
        assert setting_source("url") == "env"
        assert setting_source("username") == "config"
        assert setting_source("password") == "default"

    def test_arguments_override_env(self, monkeypatch):
        monkeypatch.setenv("PREST_URL", "http://env.test")
        monkeypatch.setenv("PREST_TIMEOUT", "10")

        settings = load_settings(url="http://arg.test")

        assert settings.url == "http://arg.test"
        assert settings.timeout == 10.0

    def test_invalid_timeout(self, monkeypatch):
        monkeypatch.setenv("PREST_TIMEOUT", "soon")
        with pytest.raises(ConfigurationError):
            load_settings()

    def test_to_options(self):
        options = load_settings(url="http://arg.test/", username="prest", password="prest").to_options()
        assert options.base_url == "http://arg.test"
        assert options.auth_token == "Basic cHJlc3Q6cHJlc3Q="

    def test_to_options_without_credentials(self):
        with pytest.raises(ConfigurationError):
            load_settings().to_options()


class TestConfigFile:
    def test_save_and_clear(self, isolated_config):
        save_config({"url": "http://saved.test"})
        assert isolated_config.exists()
        assert load_config() == {"url": "http://saved.test"}

        assert clear_config() is True
        assert load_config() == {}
        assert clear_config() is False

    def test_invalid_yaml(self, isolated_config):
        isolated_config.write_text("url: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            load_config()

    def test_non_mapping(self, isolated_config):
        isolated_config.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            load_config()

    def test_empty_file(self, isolated_config):
        isolated_config.write_text("", encoding="utf-8")
        assert load_config() == {}
