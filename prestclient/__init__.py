"""
prestclient

A Python client for pREST-style REST gateways over PostgreSQL.

Example:
    from prestclient import connect

    client = connect(
        "http://localhost:3000",
        username="prest",
        password="prest"
    )

    # Rows of public.categories, second page of 10
    rows = client.table("categories").list().page(2).page_size(10).execute()

    # Grouped aggregate
    totals = (
        client.table("sales.orders")
        .list()
        .group_by("city")
        .sum("total")
        .execute()
    )

    # CSV export
    csv_bytes = client.table("sales.orders").export().execute()
"""

from .accessors import QueryAccessor, TableAccessor
from .auth import basic_auth_header, resolve_auth_header
from .client import AsyncPrestClient, PrestClient, connect, connect_async
from .config import Settings, load_settings
from .exceptions import (
    AuthenticationError,
    ClientNotInitializedError,
    ConfigurationError,
    DecodeError,
    HttpError,
    MissingIdentifierError,
    NotFoundError,
    PrestError,
    TimeoutError,
    TransportError,
)
from .models import (
    AggregateFunction,
    ClientOptions,
    ColumnInfo,
    FilterOperator,
    JoinType,
    PreparedRequest,
    RenderMode,
    RequestType,
    ScriptReference,
    TableReference,
    TransportResponse,
)
from .query import ChainedQuery
from .transport import AsyncTransport, RequestsTransport

__version__ = "1.0.0"
__all__ = [
    "connect",
    "connect_async",
    "PrestClient",
    "AsyncPrestClient",
    "ChainedQuery",
    "TableAccessor",
    "QueryAccessor",
    "Settings",
    "load_settings",
    "basic_auth_header",
    "resolve_auth_header",
    "RequestsTransport",
    "AsyncTransport",
    # Models
    "ClientOptions",
    "TableReference",
    "ScriptReference",
    "PreparedRequest",
    "TransportResponse",
    "ColumnInfo",
    "RequestType",
    "RenderMode",
    "FilterOperator",
    "AggregateFunction",
    "JoinType",
    # Errors
    "PrestError",
    "ClientNotInitializedError",
    "MissingIdentifierError",
    "ConfigurationError",
    "HttpError",
    "AuthenticationError",
    "NotFoundError",
    "TransportError",
    "TimeoutError",
    "DecodeError",
]
