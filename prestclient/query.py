"""
prestclient Query Builder

ChainedQuery accumulates filter and format directives, serializes them into
the gateway's query-string dialect and hands the prepared request to the
client that created it.

Example:
    rows = (
        client.table("public.orders")
        .list()
        .select("id", "city", "total")
        .gte("total", 100)
        .in_("city", ["Pune", "Mumbai"])
        .order("-total")
        .page(1)
        .page_size(50)
        .execute()
    )
"""

import json
import logging
import numbers
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Mapping, Optional, Tuple, Union
from urllib.parse import quote

from .exceptions import (
    AuthenticationError,
    DecodeError,
    HttpError,
    NotFoundError,
)
from .models import (
    AggregateFunction,
    FilterOperator,
    JoinType,
    PreparedRequest,
    RenderMode,
    RequestType,
    TransportResponse,
)

logger = logging.getLogger(__name__)

# Characters encodeURIComponent leaves alone on top of quote()'s own set.
_COMPONENT_SAFE = "!*'()"
_DIRECTIVE_SAFE = _COMPONENT_SAFE + ",:"


def format_value(value: Any) -> str:
    """Render a Python value the way the gateway expects it in a URL."""
    if value is True:
        return "true"
    if value is False:
        return "false"
    if value is None:
        return "null"
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def encode_value(value: Any, safe: str = _COMPONENT_SAFE) -> str:
    return quote(format_value(value), safe=safe)


def _is_bound(value: Any) -> bool:
    # Zero is a real bound; None, False and "" are not.
    if value is None or isinstance(value, bool):
        return bool(value)
    if isinstance(value, numbers.Number):
        return value == value
    return bool(value)


def _members(values: Iterable[Any]) -> Tuple[Any, ...]:
    if isinstance(values, (str, bytes, Mapping)):
        raise TypeError(
            f"Expected an iterable of values, got {type(values).__name__}; "
            "wrap a single value in a list"
        )
    return tuple(values)


def _field_list(directive: str, fields: Tuple[str, ...]) -> str:
    if not fields:
        raise ValueError(f"{directive} needs at least one field")
    return ",".join(fields)


# =============================================================================
# CLAUSES
# =============================================================================

class Clause:
    """One ``&``-separated fragment of the query string."""

    def render(self) -> str:
        raise NotImplementedError


@dataclass(frozen=True)
class Directive(Clause):
    """A ``_name=value`` formatting directive."""
    name: str
    value: Any

    def render(self) -> str:
        return f"{self.name}={encode_value(self.value, _DIRECTIVE_SAFE)}"


@dataclass(frozen=True)
class Filter(Clause):
    """A ``field=$op.value`` comparison."""
    field: str
    operator: FilterOperator
    value: Any = None

    def render(self) -> str:
        op = self.operator
        if not op.takes_value:
            return f"{self.field}={op.value}"
        if op.takes_list:
            # Members are sent as-is, without percent-encoding.
            members = ",".join(format_value(v) for v in self.value)
            return f"{self.field}={op.value}.{members}"
        if op is FilterOperator.EQ:
            return f"{self.field}={encode_value(self.value)}"
        return f"{self.field}={op.value}.{encode_value(self.value)}"


@dataclass(frozen=True)
class Join(Clause):
    join_type: JoinType
    table: str
    local_field: str
    operator: str
    foreign_field: str

    def render(self) -> str:
        return (
            f"_join={self.join_type.value}:{self.table}:"
            f"{self.local_field}:{self.operator}:{self.foreign_field}"
        )


@dataclass(frozen=True)
class JsonbFilter(Clause):
    field: str
    path: str
    value: Any

    def render(self) -> str:
        return f"{self.field}->>{self.path}:jsonb={encode_value(self.value)}"


@dataclass(frozen=True)
class TextSearch(Clause):
    field: str
    query: str
    language: Optional[str] = None

    def render(self) -> str:
        lang = f"${self.language}" if self.language else ""
        return f"{self.field}{lang}:tsquery={encode_value(self.query)}"


@dataclass(frozen=True)
class Having(Clause):
    function: str
    field: str
    condition: str
    value: Any

    def render(self) -> str:
        return f"having:{self.function}:{self.field}:{self.condition}:{encode_value(self.value)}"


@dataclass(frozen=True)
class Aggregate:
    """A ``function:field`` token collected into the trailing ``_select``."""
    function: AggregateFunction
    field: str

    def render(self) -> str:
        return f"{self.function.value}:{self.field}"


# =============================================================================
# CHAINED QUERY
# =============================================================================

class ChainedQuery:
    """
    Immutable builder for one gateway request.

    Every builder method returns a new ChainedQuery with one more clause; the
    receiver is left untouched, so a partially built query can be shared and
    branched. Nothing touches the network until ``execute()``.

    Clauses are emitted in call order. Aggregate functions (``sum``, ``avg``,
    ...) are collected apart and appended as a single ``_select`` directive
    after every other clause.
    """

    def __init__(
        self,
        dispatcher,
        base_url: str,
        request_type: Union[RequestType, str],
        body: Any = None,
        operation: str = "",
        *,
        clauses: Tuple[Clause, ...] = (),
        aggregates: Tuple[Aggregate, ...] = (),
        render_mode: RenderMode = RenderMode.JSON
    ):
        """
        Args:
            dispatcher: Client whose ``dispatch(PreparedRequest)`` sends the request
            base_url: Full endpoint URL without query string
            request_type: get, post, put, delete or export
            body: JSON-serializable payload for post/put/export
            operation: Label used in logs and error messages
        """
        self._dispatcher = dispatcher
        self._base_url = base_url
        self._request_type = RequestType(request_type)
        self._body = body
        self._operation = operation or f"{self._request_type.value} {base_url}"
        self._clauses = tuple(clauses)
        self._aggregates = tuple(aggregates)
        self._render_mode = render_mode

    def _extend(
        self,
        *clauses: Clause,
        aggregate: Optional[Aggregate] = None,
        render_mode: Optional[RenderMode] = None
    ) -> "ChainedQuery":
        return ChainedQuery(
            self._dispatcher,
            self._base_url,
            self._request_type,
            self._body,
            self._operation,
            clauses=self._clauses + clauses,
            aggregates=self._aggregates + ((aggregate,) if aggregate else ()),
            render_mode=render_mode or self._render_mode
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def request_type(self) -> RequestType:
        return self._request_type

    @property
    def body(self) -> Any:
        return self._body

    @property
    def operation(self) -> str:
        return self._operation

    @property
    def clauses(self) -> Tuple[Clause, ...]:
        return self._clauses

    @property
    def aggregates(self) -> Tuple[Aggregate, ...]:
        return self._aggregates

    @property
    def render_mode(self) -> RenderMode:
        return self._render_mode

    # =========================================================================
    # Pagination, projection and shape
    # =========================================================================

    def page(self, page_number: int) -> "ChainedQuery":
        """
        Select which page of results to return (``_page``).

        Use together with ``page_size`` to walk large tables.
        """
        return self._extend(Directive("_page", page_number))

    def page_size(self, size: int) -> "ChainedQuery":
        """Number of rows per page (``_page_size``)."""
        return self._extend(Directive("_page_size", size))

    def select(self, *fields: str) -> "ChainedQuery":
        """
        Restrict the returned columns (``_select``).

        Accepts several names or one pre-joined string:
        ``select("id", "name")`` and ``select("id,name")`` are equivalent.
        """
        return self._extend(Directive("_select", _field_list("_select", fields)))

    def count(self, field: Optional[str] = None) -> "ChainedQuery":
        """Return a row count instead of rows; counts ``*`` when no field is given."""
        return self._extend(Directive("_count", field or "*"))

    def count_first(self, enabled: bool = True) -> "ChainedQuery":
        return self._extend(Directive("_count_first", enabled))

    def distinct(self, enabled: bool = True) -> "ChainedQuery":
        return self._extend(Directive("_distinct", enabled))

    def renderer(self, mode: Union[RenderMode, str]) -> "ChainedQuery":
        """
        Ask the gateway for ``json`` or ``xml`` output.

        Also switches how ``execute()`` decodes the body: json is parsed,
        anything else is returned as text. Export requests always return
        bytes regardless of this setting.

        Only the modes in RenderMode are accepted; other names raise
        ValueError.
        """
        mode = RenderMode(mode)
        return self._extend(Directive("_renderer", mode.value), render_mode=mode)

    def order(self, *fields: str) -> "ChainedQuery":
        """
        Sort the result (``_order``). Prefix a field with ``-`` for descending.

        Example:
            query.order("-created_at", "id")
        """
        return self._extend(Directive("_order", _field_list("_order", fields)))

    def group_by(self, *fields: str) -> "ChainedQuery":
        return self._extend(Directive("_groupby", _field_list("_groupby", fields)))

    def join(
        self,
        join_type: Union[JoinType, str],
        table: str,
        local_field: str,
        operator: str,
        foreign_field: str
    ) -> "ChainedQuery":
        """
        Join another table (``_join=type:table:local:op:foreign``).

        Example:
            query.join("inner", "public.customers", "orders.customer_id", "$eq", "customers.id")
        """
        return self._extend(
            Join(JoinType(join_type), table, local_field, operator, foreign_field)
        )

    # =========================================================================
    # Filters
    # =========================================================================

    def _filter(self, field: str, operator: FilterOperator, value: Any = None) -> "ChainedQuery":
        return self._extend(Filter(field, operator, value))

    def eq(self, field: str, value: Any) -> "ChainedQuery":
        return self._filter(field, FilterOperator.EQ, value)

    def gt(self, field: str, value: Any) -> "ChainedQuery":
        return self._filter(field, FilterOperator.GT, value)

    def gte(self, field: str, value: Any) -> "ChainedQuery":
        return self._filter(field, FilterOperator.GTE, value)

    def lt(self, field: str, value: Any) -> "ChainedQuery":
        return self._filter(field, FilterOperator.LT, value)

    def lte(self, field: str, value: Any) -> "ChainedQuery":
        return self._filter(field, FilterOperator.LTE, value)

    def ne(self, field: str, value: Any) -> "ChainedQuery":
        return self._filter(field, FilterOperator.NE, value)

    def in_(self, field: str, values: Iterable[Any]) -> "ChainedQuery":
        """Match any of ``values`` (``field=$in.a,b,c``). Values are not percent-encoded."""
        return self._filter(field, FilterOperator.IN, _members(values))

    def not_in(self, field: str, values: Iterable[Any]) -> "ChainedQuery":
        return self._filter(field, FilterOperator.NOT_IN, _members(values))

    def null(self, field: str) -> "ChainedQuery":
        return self._filter(field, FilterOperator.NULL)

    def not_null(self, field: str) -> "ChainedQuery":
        return self._filter(field, FilterOperator.NOT_NULL)

    def like(self, field: str, pattern: str) -> "ChainedQuery":
        return self._filter(field, FilterOperator.LIKE, pattern)

    def ilike(self, field: str, pattern: str) -> "ChainedQuery":
        return self._filter(field, FilterOperator.ILIKE, pattern)

    def not_like(self, field: str, pattern: str) -> "ChainedQuery":
        return self._filter(field, FilterOperator.NOT_LIKE, pattern)

    def filter_range(self, field: str, start: Any = None, end: Any = None) -> "ChainedQuery":
        """
        Inclusive range filter.

        Emits ``field=$gte.start`` and/or ``field=$lte.end``. A bound of ``0``
        is kept; ``None`` (or another empty value) leaves that side open.
        """
        clauses = []
        if _is_bound(start):
            clauses.append(Filter(field, FilterOperator.GTE, start))
        if _is_bound(end):
            clauses.append(Filter(field, FilterOperator.LTE, end))
        return self._extend(*clauses)

    def jsonb_filter(self, field: str, path: str, value: Any) -> "ChainedQuery":
        """Compare a key inside a jsonb column (``field->>path:jsonb=value``)."""
        return self._extend(JsonbFilter(field, path, value))

    def text_search(self, field: str, query: str, language: Optional[str] = None) -> "ChainedQuery":
        """Full-text search on ``field`` (``field$language:tsquery=query``)."""
        return self._extend(TextSearch(field, query, language))

    # =========================================================================
    # Aggregates
    # =========================================================================

    def _aggregate(self, function: AggregateFunction, field: str) -> "ChainedQuery":
        return self._extend(aggregate=Aggregate(function, field))

    def sum(self, field: str) -> "ChainedQuery":
        return self._aggregate(AggregateFunction.SUM, field)

    def avg(self, field: str) -> "ChainedQuery":
        return self._aggregate(AggregateFunction.AVG, field)

    def max(self, field: str) -> "ChainedQuery":
        return self._aggregate(AggregateFunction.MAX, field)

    def min(self, field: str) -> "ChainedQuery":
        return self._aggregate(AggregateFunction.MIN, field)

    def std_dev(self, field: str) -> "ChainedQuery":
        return self._aggregate(AggregateFunction.STDDEV, field)

    def variance(self, field: str) -> "ChainedQuery":
        return self._aggregate(AggregateFunction.VARIANCE, field)

    def having(
        self,
        function: Union[AggregateFunction, str],
        field: str,
        condition: str,
        value: Any
    ) -> "ChainedQuery":
        """
        Filter grouped rows (``having:func:field:condition:value``).

        Example:
            query.group_by("city").sum("total").having("sum", "total", "$gt", 500)
        """
        return self._extend(Having(format_value(function), field, condition, value))

    # =========================================================================
    # Execution
    # =========================================================================

    def build(self) -> PreparedRequest:
        """Serialize the accumulated clauses into a frozen PreparedRequest."""
        parts = [clause.render() for clause in self._clauses]
        if self._aggregates:
            # Sent even if select() already added a _select; the gateway decides.
            parts.append("_select=" + ",".join(a.render() for a in self._aggregates))

        url = self._base_url
        if parts:
            url += "?" + "&".join(parts)

        return PreparedRequest(
            request_type=self._request_type,
            url=url,
            body=self._body,
            render_mode=self._render_mode,
            operation=self._operation
        )

    def execute(self) -> Any:
        """
        Send the request and decode the response.

        Returns parsed JSON, text (non-json renderer) or bytes (export). On an
        AsyncPrestClient the return value is a coroutine and must be awaited.

        Raises:
            HttpError: non-success status
            TransportError: the request never got a response
            DecodeError: body does not match the render mode
        """
        return self._dispatcher.dispatch(self.build())

    def __repr__(self) -> str:
        return f"<ChainedQuery {self._request_type.value.upper()} {self.build().url}>"


# =============================================================================
# RESPONSE DECODING
# =============================================================================

def _error_message(response: TransportResponse) -> str:
    try:
        data = json.loads(response.content)
    except ValueError:
        data = None
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return response.reason or f"HTTP {response.status_code}"


def raise_for_status(request: PreparedRequest, response: TransportResponse) -> None:
    """Raise the HttpError subclass matching a non-success response."""
    if response.ok:
        return

    message = f"Failed to {request.operation}: {_error_message(response)}"
    kwargs = dict(
        status_code=response.status_code,
        reason=response.reason,
        operation=request.operation,
        url=request.url,
        details={"body": response.content[:500].decode("utf-8", "replace")}
    )
    logger.error("%s %s -> %s", request.method, request.url, response.status_code)

    if response.status_code in (401, 403):
        raise AuthenticationError(message, **kwargs)
    if response.status_code == 404:
        raise NotFoundError(message, **kwargs)
    raise HttpError(message, **kwargs)


def decode_response(request: PreparedRequest, response: TransportResponse) -> Any:
    """
    Turn a transport response into the caller's result.

    Export requests return the raw bytes. Otherwise json render mode parses
    the body (an empty body gives None) and any other mode returns text.
    """
    raise_for_status(request, response)

    if request.request_type is RequestType.EXPORT:
        return response.content

    if request.render_mode is RenderMode.JSON:
        if not response.content.strip():
            return None
        try:
            return json.loads(response.content)
        except ValueError as e:
            logger.warning("Invalid JSON from %s", request.url)
            raise DecodeError(
                f"Failed to {request.operation}: response is not valid JSON ({e})",
                operation=request.operation,
                body=response.content[:200].decode("utf-8", "replace")
            ) from e

    try:
        return response.content.decode(response.encoding)
    except (UnicodeDecodeError, LookupError) as e:
        logger.warning("Undecodable text body from %s", request.url)
        raise DecodeError(
            f"Failed to {request.operation}: response is not valid {response.encoding} text",
            operation=request.operation
        ) from e
