"""
Authorization header construction.

The gateway accepts a single ``Authorization`` value: either HTTP basic
credentials or a token the caller already holds (for example
``"Bearer <jwt>"``).
"""

import base64
from typing import Optional

from .exceptions import ConfigurationError


def basic_auth_header(username: str, password: str) -> str:
    """Encode ``username:password`` as an HTTP basic ``Authorization`` value."""
    raw = f"{username}:{password}".encode("utf-8")
    return "Basic " + base64.b64encode(raw).decode("ascii")


def resolve_auth_header(
    username: Optional[str] = None,
    password: Optional[str] = None,
    auth_header: Optional[str] = None
) -> str:
    """
    Pick the ``Authorization`` value for a client.

    Args:
        username: Basic auth user name
        password: Basic auth password
        auth_header: Pre-built header value; wins over username/password

    Returns:
        The header value

    Raises:
        ConfigurationError: when neither a header nor a username is given
    """
    if auth_header:
        return auth_header
    if username:
        return basic_auth_header(username, password or "")
    raise ConfigurationError(
        "No credentials configured: pass auth_header or username/password"
    )
