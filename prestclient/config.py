"""
prestclient Configuration

Settings are resolved per key from, in order: explicit arguments,
environment variables, the YAML config file, built-in defaults.

Environment Variables:
    PREST_URL          - Gateway URL (default: http://localhost:3000)
    PREST_USERNAME     - Basic auth user
    PREST_PASSWORD     - Basic auth password
    PREST_AUTH_HEADER  - Complete Authorization header value
    PREST_TIMEOUT      - Request timeout in seconds
    PREST_CONFIG       - Config file path (default: ~/.prest/config.yaml)
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .auth import resolve_auth_header
from .exceptions import ConfigurationError
from .models import ClientOptions

logger = logging.getLogger(__name__)

DEFAULT_URL = "http://localhost:3000"
DEFAULT_CONFIG_FILE = os.path.join("~", ".prest", "config.yaml")

CONFIG_KEYS = ("url", "username", "password", "auth_header", "timeout")

ENV_VARS = {
    "url": "PREST_URL",
    "username": "PREST_USERNAME",
    "password": "PREST_PASSWORD",
    "auth_header": "PREST_AUTH_HEADER",
    "timeout": "PREST_TIMEOUT",
}


@dataclass
class Settings:
    """Resolved connection settings."""
    url: str = DEFAULT_URL
    username: Optional[str] = None
    password: Optional[str] = None
    auth_header: Optional[str] = None
    timeout: Optional[float] = None
    verify_ssl: bool = True

    def to_options(self) -> ClientOptions:
        """
        Build ClientOptions, encoding basic credentials if needed.

        Raises:
            ConfigurationError: when no URL or no credentials are set
        """
        if not self.url:
            raise ConfigurationError("No gateway URL configured")
        return ClientOptions(
            base_url=self.url,
            auth_token=resolve_auth_header(self.username, self.password, self.auth_header),
            timeout=self.timeout,
            verify_ssl=self.verify_ssl
        )


def config_path(path: Union[str, Path, None] = None) -> Path:
    """Location of the YAML config file."""
    raw = path or os.environ.get("PREST_CONFIG") or DEFAULT_CONFIG_FILE
    return Path(os.path.expanduser(str(raw)))


def load_config(path: Union[str, Path, None] = None) -> Dict[str, Any]:
    """Load the YAML config file; a missing or empty file gives ``{}``."""
    path = config_path(path)
    if not path.exists():
        return {}
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid config file {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    return data


def save_config(values: Dict[str, Any], path: Union[str, Path, None] = None) -> Path:
    """Write ``values`` to the YAML config file, creating its directory."""
    path = config_path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(values, f, default_flow_style=False)
    logger.info("Saved prest config to %s", path)
    return path


def clear_config(path: Union[str, Path, None] = None) -> bool:
    """Delete the config file. Returns False when there was none."""
    path = config_path(path)
    if not path.exists():
        return False
    path.unlink()
    return True


def _parse_timeout(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid timeout: {value!r}") from e


def load_settings(
    url: Optional[str] = None,
    username: Optional[str] = None,
    password: Optional[str] = None,
    auth_header: Optional[str] = None,
    timeout: Optional[float] = None,
    config_file: Union[str, Path, None] = None
) -> Settings:
    """Resolve settings from arguments, environment and config file."""
    explicit = {
        "url": url,
        "username": username,
        "password": password,
        "auth_header": auth_header,
        "timeout": timeout,
    }
    file_values = load_config(config_file)

    resolved = {}
    for key in CONFIG_KEYS:
        value = explicit[key]
        if value is None:
            value = os.environ.get(ENV_VARS[key]) or None
        if value is None:
            value = file_values.get(key)
        resolved[key] = value

    return Settings(
        url=resolved["url"] or DEFAULT_URL,
        username=resolved["username"],
        password=resolved["password"],
        auth_header=resolved["auth_header"],
        timeout=_parse_timeout(resolved["timeout"]),
        verify_ssl=bool(file_values.get("verify_ssl", True))
    )


def setting_source(key: str, config_file: Union[str, Path, None] = None) -> str:
    """Where a setting currently comes from: env, config or default."""
    if os.environ.get(ENV_VARS[key]):
        return "env"
    if key in load_config(config_file):
        return "config"
    return "default"
