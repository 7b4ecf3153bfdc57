"""
Pytest configuration and shared fixtures for prestclient tests.
"""

import json

import pytest

from prestclient import TransportResponse, connect
from prestclient.exceptions import TransportError

BASE_URL = "http://prest.test"

# base64("prest:prest")
BASIC_AUTH = "Basic cHJlc3Q6cHJlc3Q="


def json_response(data, status_code=200, reason="OK"):
    """Build a TransportResponse carrying a JSON body."""
    return TransportResponse(
        status_code=status_code,
        reason=reason,
        content=json.dumps(data).encode("utf-8"),
        headers={"Content-Type": "application/json"}
    )


class RecordingTransport:
    """In-memory transport that records calls and replays queued responses."""

    def __init__(self):
        self.calls = []
        self.responses = []
        self.closed = False

    def queue(self, response: TransportResponse):
        self.responses.append(response)
        return self

    def send(self, method, url, body=None, headers=None):
        self.calls.append({
            "method": method,
            "url": url,
            "body": body,
            "headers": dict(headers or {}),
        })
        if self.responses:
            return self.responses.pop(0)
        return json_response([])

    def close(self):
        self.closed = True


class FailingTransport(RecordingTransport):
    """Transport whose every call fails before a response arrives."""

    def __init__(self, error: TransportError):
        super().__init__()
        self.error = error

    def send(self, method, url, body=None, headers=None):
        super().send(method, url, body, headers)
        raise self.error


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Keep tests away from the real environment and ~/.prest."""
    for name in (
        "PREST_URL",
        "PREST_USERNAME",
        "PREST_PASSWORD",
        "PREST_AUTH_HEADER",
        "PREST_TIMEOUT",
    ):
        monkeypatch.delenv(name, raising=False)
    path = tmp_path / "config.yaml"
    monkeypatch.setenv("PREST_CONFIG", str(path))
    return path


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def client(transport):
    """A PrestClient wired to the recording transport."""
    return connect(BASE_URL, username="prest", password="prest", transport=transport)


@pytest.fixture
def categories():
    """Sample rows of public.categories."""
    return [
        {"category_id": 1, "category_name": "Beverages", "description": "Soft drinks"},
        {"category_id": 2, "category_name": "Condiments", "description": "Sauces"},
    ]


@pytest.fixture
def category_columns():
    """Sample output of GET /show/public/categories."""
    return [
        {
            "position": 1,
            "data_type": "smallint",
            "max_length": 0,
            "table_name": "categories",
            "column_name": "category_id",
            "is_nullable": "NO",
            "is_generated": "NEVER",
            "is_updatable": "YES",
            "table_schema": "public",
            "default_value": "",
        },
        {
            "position": 2,
            "data_type": "character varying",
            "max_length": 15,
            "table_name": "categories",
            "column_name": "category_name",
            "is_nullable": "YES",
            "is_generated": "NEVER",
            "is_updatable": "YES",
            "table_schema": "public",
            "default_value": "",
        },
    ]
