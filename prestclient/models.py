"""
prestclient Data Models
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from .exceptions import MissingIdentifierError

DEFAULT_SCHEMA = "public"


class RequestType(str, Enum):
    """Request kinds understood by the gateway."""
    GET = "get"
    POST = "post"
    PUT = "put"
    DELETE = "delete"
    EXPORT = "export"

    @property
    def http_method(self) -> str:
        if self is RequestType.EXPORT:
            return "POST"
        return self.value.upper()

    @property
    def sends_body(self) -> bool:
        return self in (RequestType.POST, RequestType.PUT, RequestType.EXPORT)


class RenderMode(str, Enum):
    """How the gateway renders (and the client decodes) response bodies."""
    JSON = "json"
    XML = "xml"


class FilterOperator(str, Enum):
    """Comparison operators and their wire tokens."""
    EQ = ""
    GT = "$gt"
    GTE = "$gte"
    LT = "$lt"
    LTE = "$lte"
    NE = "$ne"
    IN = "$in"
    NOT_IN = "$nin"
    NULL = "$null"
    NOT_NULL = "$notnull"
    LIKE = "$like"
    ILIKE = "$ilike"
    NOT_LIKE = "$notlike"

    @property
    def takes_value(self) -> bool:
        return self not in (FilterOperator.NULL, FilterOperator.NOT_NULL)

    @property
    def takes_list(self) -> bool:
        return self in (FilterOperator.IN, FilterOperator.NOT_IN)


class AggregateFunction(str, Enum):
    """SQL aggregate functions accepted inside ``_select``."""
    SUM = "sum"
    AVG = "avg"
    MAX = "max"
    MIN = "min"
    STDDEV = "stddev"
    VARIANCE = "variance"


class JoinType(str, Enum):
    INNER = "inner"
    LEFT = "left"
    RIGHT = "right"
    OUTER = "outer"


@dataclass(frozen=True)
class ClientOptions:
    """Connection settings shared read-only by every query of a client."""
    base_url: str
    auth_token: str
    timeout: Optional[float] = None
    verify_ssl: bool = True

    def __post_init__(self):
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))


def _split_identifier(identifier: Optional[str], kind: str):
    if not identifier:
        raise MissingIdentifierError(kind)
    head, dot, tail = identifier.partition(".")
    if not dot:
        return DEFAULT_SCHEMA, identifier
    return head or DEFAULT_SCHEMA, tail


@dataclass(frozen=True)
class TableReference:
    """
    A ``schema.table`` pair.

    ``"orders"`` resolves to ``public.orders``. ``"sales."`` has an empty
    name and addresses the schema itself (listing its tables).
    """
    schema: str
    name: str

    @classmethod
    def parse(cls, identifier: Optional[str]) -> "TableReference":
        schema, name = _split_identifier(identifier, "table")
        return cls(schema=schema, name=name)

    @property
    def lists_schema(self) -> bool:
        return self.name == ""

    @property
    def path(self) -> str:
        return f"{self.schema}/{self.name}"

    def __str__(self) -> str:
        return f"{self.schema}.{self.name}"


@dataclass(frozen=True)
class ScriptReference:
    """A stored query addressed as ``path.script``."""
    path: str
    name: str

    @classmethod
    def parse(cls, identifier: Optional[str]) -> "ScriptReference":
        path, name = _split_identifier(identifier, "script")
        return cls(path=path, name=name)

    @property
    def route(self) -> str:
        return f"{self.path}/{self.name}"

    def __str__(self) -> str:
        return f"{self.path}.{self.name}"


@dataclass(frozen=True)
class PreparedRequest:
    """Everything needed to send one query, frozen at build time."""
    request_type: RequestType
    url: str
    body: Any = None
    render_mode: RenderMode = RenderMode.JSON
    operation: str = ""

    @property
    def method(self) -> str:
        return self.request_type.http_method


@dataclass
class TransportResponse:
    """Raw HTTP response handed back by a transport."""
    status_code: int
    reason: str = ""
    content: bytes = b""
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def encoding(self) -> str:
        content_type = next(
            (value for key, value in self.headers.items() if key.lower() == "content-type"),
            ""
        )
        for part in content_type.split(";")[1:]:
            key, _, value = part.strip().partition("=")
            if key.lower() == "charset" and value:
                return value.strip('"')
        return "utf-8"


@dataclass
class ColumnInfo:
    """A column description returned by the ``show`` endpoint."""
    column_name: str
    data_type: str
    position: Optional[int] = None
    max_length: Optional[int] = None
    table_name: Optional[str] = None
    table_schema: Optional[str] = None
    is_nullable: Optional[str] = None
    is_generated: Optional[str] = None
    is_updatable: Optional[str] = None
    default_value: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ColumnInfo":
        return cls(
            column_name=data["column_name"],
            data_type=data.get("data_type", ""),
            position=data.get("position"),
            max_length=data.get("max_length"),
            table_name=data.get("table_name"),
            table_schema=data.get("table_schema"),
            is_nullable=data.get("is_nullable"),
            is_generated=data.get("is_generated"),
            is_updatable=data.get("is_updatable"),
            default_value=data.get("default_value")
        )

    @property
    def nullable(self) -> bool:
        return (self.is_nullable or "").upper() == "YES"
