"""
prestclient Transports

A transport performs exactly one HTTP round trip and returns a
TransportResponse. It does not interpret status codes; that is the
client's job.
"""

from typing import Any, Mapping, Optional, Protocol

import httpx
import requests

from .exceptions import TimeoutError, TransportError
from .models import TransportResponse


class Transport(Protocol):
    """Synchronous transport interface."""

    def send(
        self,
        method: str,
        url: str,
        body: Any = None,
        headers: Mapping[str, str] = None
    ) -> TransportResponse:
        ...

    def close(self) -> None:
        ...


class AsyncTransportProtocol(Protocol):
    """Asynchronous transport interface."""

    async def send(
        self,
        method: str,
        url: str,
        body: Any = None,
        headers: Mapping[str, str] = None
    ) -> TransportResponse:
        ...

    async def aclose(self) -> None:
        ...


class RequestsTransport:
    """Transport backed by a ``requests.Session``."""

    def __init__(
        self,
        timeout: Optional[float] = None,
        verify_ssl: bool = True,
        session: Optional[requests.Session] = None
    ):
        self.timeout = timeout
        self.verify_ssl = verify_ssl
        self._session = session

    def _get_session(self) -> requests.Session:
        """Get or create requests session."""
        if self._session is None:
            self._session = requests.Session()
        return self._session

    def send(
        self,
        method: str,
        url: str,
        body: Any = None,
        headers: Mapping[str, str] = None
    ) -> TransportResponse:
        session = self._get_session()
        kwargs = {
            "headers": dict(headers or {}),
            "timeout": self.timeout,
            "verify": self.verify_ssl,
        }
        if body is not None:
            kwargs["json"] = body

        try:
            response = session.request(method, url, **kwargs)
        except requests.exceptions.Timeout as e:
            raise TimeoutError(f"Request timed out after {self.timeout}s: {e}", url=url) from e
        except requests.exceptions.ConnectionError as e:
            raise TransportError(f"Failed to connect to {url}: {e}", url=url) from e
        except requests.exceptions.RequestException as e:
            raise TransportError(f"Request failed: {e}", url=url) from e

        return TransportResponse(
            status_code=response.status_code,
            reason=response.reason or "",
            content=response.content,
            headers=dict(response.headers)
        )

    def close(self) -> None:
        """Close the underlying session."""
        if self._session:
            self._session.close()
            self._session = None


class AsyncTransport:
    """Transport backed by an ``httpx.AsyncClient``."""

    def __init__(
        self,
        timeout: Optional[float] = None,
        verify_ssl: bool = True,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.timeout = timeout
        self.verify_ssl = verify_ssl
        self._client = client

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create httpx client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, verify=self.verify_ssl)
        return self._client

    async def send(
        self,
        method: str,
        url: str,
        body: Any = None,
        headers: Mapping[str, str] = None
    ) -> TransportResponse:
        client = self._get_client()
        kwargs = {"headers": dict(headers or {})}
        if body is not None:
            kwargs["json"] = body

        try:
            response = await client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise TimeoutError(f"Request timed out after {self.timeout}s: {e}", url=url) from e
        except httpx.ConnectError as e:
            raise TransportError(f"Failed to connect to {url}: {e}", url=url) from e
        except httpx.HTTPError as e:
            raise TransportError(f"Request failed: {e}", url=url) from e

        return TransportResponse(
            status_code=response.status_code,
            reason=response.reason_phrase or "",
            content=response.content,
            headers=dict(response.headers)
        )

    async def aclose(self) -> None:
        """Close the underlying client."""
        if self._client:
            await self._client.aclose()
            self._client = None
