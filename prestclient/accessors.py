"""
prestclient Accessors

TableAccessor and QueryAccessor turn a resolved table or stored-query
reference into ChainedQuery factories bound to the right URL and verb.
"""

import dataclasses
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .models import RequestType, ScriptReference, TableReference
from .query import ChainedQuery


def to_record(data: Any) -> Dict[str, Any]:
    """
    Convert a row payload into a JSON-ready dict.

    Accepts mappings and dataclass instances; anything else is rejected so
    that bodies keep a column-name -> value shape.
    """
    if isinstance(data, Mapping):
        return dict(data)
    if dataclasses.is_dataclass(data) and not isinstance(data, type):
        return dataclasses.asdict(data)
    raise TypeError(
        f"Expected a mapping or dataclass instance as row data, got {type(data).__name__}"
    )


def to_records(rows: Iterable[Any]) -> List[Dict[str, Any]]:
    if isinstance(rows, (Mapping, str, bytes)):
        raise TypeError("batch_insert expects an iterable of rows")
    return [to_record(row) for row in rows]


class TableAccessor:
    """
    Operations on one table (or, with an empty table name, one schema).

    Example:
        orders = client.table("sales.orders")
        rows = orders.list().eq("status", "open").execute()
        orders.insert({"id": 7, "status": "open"}).execute()
    """

    def __init__(self, client, reference: TableReference):
        self._client = client
        self.reference = reference

    def _url(self, prefix: Optional[str] = None) -> str:
        base = self._client.options.base_url
        if prefix:
            return f"{base}/{prefix}/{self.reference.path}"
        return f"{base}/{self.reference.path}"

    def _query(
        self,
        action: str,
        request_type: RequestType,
        prefix: Optional[str] = None,
        body: Any = None
    ) -> ChainedQuery:
        return ChainedQuery(
            self._client,
            self._url(prefix),
            request_type,
            body,
            operation=f"{action} {self.reference}"
        )

    def list(self) -> ChainedQuery:
        """Rows of the table, or the tables of the schema when the name is empty."""
        return self._query("list", RequestType.GET)

    def show(self) -> ChainedQuery:
        """Column metadata of the table."""
        return self._query("show", RequestType.GET, prefix="show")

    def export(self, data: Any = None) -> ChainedQuery:
        """
        Export the table; ``execute()`` returns the raw payload bytes (CSV).

        Args:
            data: Optional record sent as the request body
        """
        body = to_record(data) if data is not None else None
        return self._query("export", RequestType.EXPORT, prefix="export", body=body)

    def insert(self, data: Any) -> ChainedQuery:
        return self._query("insert into", RequestType.POST, body=to_record(data))

    def batch_insert(self, rows: Iterable[Any]) -> ChainedQuery:
        return self._query("batch insert into", RequestType.POST, prefix="batch", body=to_records(rows))

    def update(self, data: Any) -> ChainedQuery:
        """Update rows matching the filters chained on the returned query."""
        return self._query("update", RequestType.PUT, body=to_record(data))

    def delete(self) -> ChainedQuery:
        """Delete rows matching the filters chained on the returned query."""
        return self._query("delete from", RequestType.DELETE)

    def __repr__(self) -> str:
        return f"<TableAccessor {self.reference}>"


class QueryAccessor:
    """Read-only access to a stored query (``_queries/{path}/{script}``)."""

    def __init__(self, client, reference: ScriptReference):
        self._client = client
        self.reference = reference

    def list(self) -> ChainedQuery:
        url = f"{self._client.options.base_url}/_queries/{self.reference.route}"
        return ChainedQuery(
            self._client, url, RequestType.GET, operation=f"run query {self.reference}"
        )

    def export(self, data: Any = None) -> ChainedQuery:
        url = f"{self._client.options.base_url}/_queries/export/{self.reference.route}"
        body = to_record(data) if data is not None else None
        return ChainedQuery(
            self._client, url, RequestType.EXPORT, body, operation=f"export query {self.reference}"
        )

    def __repr__(self) -> str:
        return f"<QueryAccessor {self.reference}>"
