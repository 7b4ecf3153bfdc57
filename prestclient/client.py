"""
prestclient Client

Synchronous and asynchronous clients for a pREST-style gateway.
"""

import logging
from typing import Dict, List, Optional

from .accessors import QueryAccessor, TableAccessor
from .auth import resolve_auth_header
from .exceptions import ClientNotInitializedError, TransportError
from .models import (
    ClientOptions,
    ColumnInfo,
    PreparedRequest,
    RequestType,
    ScriptReference,
    TableReference,
)
from .query import decode_response
from .transport import AsyncTransport, AsyncTransportProtocol, RequestsTransport, Transport

logger = logging.getLogger(__name__)


class _BaseClient:
    """Identifier resolution and header wiring shared by both clients."""

    def __init__(self, options: ClientOptions, transport):
        self.options = options
        self._transport = transport

    @classmethod
    def from_settings(cls, settings):
        """Build a client from a ``prestclient.config.Settings``."""
        return cls(settings.to_options())

    @property
    def closed(self) -> bool:
        return self._transport is None

    def _require_transport(self):
        if self._transport is None:
            raise ClientNotInitializedError()
        return self._transport

    def table(self, identifier: Optional[str]) -> TableAccessor:
        """
        Resolve a ``schema.table`` identifier.

        Args:
            identifier: ``"orders"`` (public schema), ``"sales.orders"``, or
                ``"sales."`` to address the schema itself

        Raises:
            ClientNotInitializedError: the client is closed
            MissingIdentifierError: identifier is empty
        """
        self._require_transport()
        return TableAccessor(self, TableReference.parse(identifier))

    def query(self, identifier: Optional[str]) -> QueryAccessor:
        """Resolve a ``path.script`` stored-query identifier."""
        self._require_transport()
        return QueryAccessor(self, ScriptReference.parse(identifier))

    def _headers_for(self, request: PreparedRequest) -> Dict[str, str]:
        headers = {"Authorization": self.options.auth_token}
        if request.request_type.sends_body:
            headers["Content-Type"] = "application/json"
        if request.request_type is RequestType.EXPORT:
            headers["Accept"] = "text/csv"
        return headers

    def _transport_failed(self, request: PreparedRequest, error: TransportError) -> TransportError:
        logger.error("%s %s failed: %s", request.method, request.url, error.message)
        return type(error)(
            f"Failed to {request.operation}: {error.message}",
            operation=request.operation,
            url=request.url
        )

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"<{type(self).__name__} {self.options.base_url} ({state})>"


class PrestClient(_BaseClient):
    """
    Synchronous client.

    Example:
        with connect("http://localhost:3000", username="prest", password="prest") as client:
            rows = client.table("public.categories").list().page(1).page_size(10).execute()
    """

    def __init__(self, options: ClientOptions, transport: Optional[Transport] = None):
        super().__init__(
            options,
            transport or RequestsTransport(timeout=options.timeout, verify_ssl=options.verify_ssl)
        )

    def dispatch(self, request: PreparedRequest):
        """Send a prepared request and decode its response."""
        transport = self._require_transport()
        logger.debug("%s %s", request.method, request.url)
        try:
            response = transport.send(
                request.method, request.url, request.body, self._headers_for(request)
            )
        except TransportError as e:
            raise self._transport_failed(request, e) from e
        return decode_response(request, response)

    def describe(self, identifier: str) -> List[ColumnInfo]:
        """Column metadata of a table as ColumnInfo objects."""
        rows = self.table(identifier).show().execute()
        return [ColumnInfo.from_dict(row) for row in rows or []]

    def close(self):
        """Release the transport. Further requests raise ClientNotInitializedError."""
        if self._transport:
            self._transport.close()
            self._transport = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class AsyncPrestClient(_BaseClient):
    """
    Asynchronous client; ``execute()`` on its queries returns a coroutine.

    Example:
        async with await connect_async("http://localhost:3000", auth_header=token) as client:
            rows = await client.table("orders").list().eq("status", "open").execute()
    """

    def __init__(self, options: ClientOptions, transport: Optional[AsyncTransportProtocol] = None):
        super().__init__(
            options,
            transport or AsyncTransport(timeout=options.timeout, verify_ssl=options.verify_ssl)
        )

    async def dispatch(self, request: PreparedRequest):
        """Send a prepared request and decode its response."""
        transport = self._require_transport()
        logger.debug("%s %s", request.method, request.url)
        try:
            response = await transport.send(
                request.method, request.url, request.body, self._headers_for(request)
            )
        except TransportError as e:
            raise self._transport_failed(request, e) from e
        return decode_response(request, response)

    async def describe(self, identifier: str) -> List[ColumnInfo]:
        rows = await self.table(identifier).show().execute()
        return [ColumnInfo.from_dict(row) for row in rows or []]

    async def aclose(self):
        if self._transport:
            await self._transport.aclose()
            self._transport = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()


def _build_options(base_url, username, password, auth_header, timeout, verify_ssl) -> ClientOptions:
    return ClientOptions(
        base_url=base_url,
        auth_token=resolve_auth_header(username, password, auth_header),
        timeout=timeout,
        verify_ssl=verify_ssl
    )


def connect(
    base_url: str,
    *,
    username: Optional[str] = None,
    password: Optional[str] = None,
    auth_header: Optional[str] = None,
    timeout: Optional[float] = None,
    verify_ssl: bool = True,
    transport: Optional[Transport] = None
) -> PrestClient:
    """
    Create a ready-to-use synchronous client.

    Args:
        base_url: Gateway root, e.g. ``http://localhost:3000``
        username: Basic auth user
        password: Basic auth password
        auth_header: Complete ``Authorization`` value; wins over username/password
        timeout: Transport timeout in seconds (None waits indefinitely)
        verify_ssl: Whether to verify SSL certificates
        transport: Replacement transport (tests, custom sessions)

    Raises:
        ConfigurationError: no credentials were given
    """
    options = _build_options(base_url, username, password, auth_header, timeout, verify_ssl)
    return PrestClient(options, transport)


async def connect_async(
    base_url: str,
    *,
    username: Optional[str] = None,
    password: Optional[str] = None,
    auth_header: Optional[str] = None,
    timeout: Optional[float] = None,
    verify_ssl: bool = True,
    transport: Optional[AsyncTransportProtocol] = None
) -> AsyncPrestClient:
    """Create a ready-to-use asynchronous client. Arguments match ``connect``."""
    options = _build_options(base_url, username, password, auth_header, timeout, verify_ssl)
    return AsyncPrestClient(options, transport)
