"""
Generic CRUD statement builders driven by runtime field maps.

A *runner* is anything with ``execute(statement) -> QueryResult`` and a
``tables`` registry: the ``Database`` facade (one pooled connection per
statement) or a ``Transaction`` (one connection for the whole unit).

Only identifiers registered in the table allow-list reach the SQL text;
every value travels as a ``%s`` argument.
"""

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from app.core.errors import InvalidRequestError, NotFoundError

from .statement import QueryResult, Statement
from .tables import TENANT_COLUMN, FieldMap, TableSpec, get_table, quote_ident

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20
DEFAULT_ORDER_BY = "created_at"
DEFAULT_ORDER = "DESC"

Row = dict[str, Any]


class Runner(Protocol):
    tables: Mapping[str, TableSpec]

    def execute(self, sql: str | Statement, args: Any = None) -> QueryResult: ...


class ConcurrentRunner(Runner, Protocol):
    def execute_concurrently(self, *statements: Statement) -> list[QueryResult]: ...


@dataclass
class Page:
    data: list[Row] = field(default_factory=list)
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT
    total: int = 0
    pages: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "data": self.data,
            "pagination": {
                "page": self.page,
                "limit": self.limit,
                "total": self.total,
                "pages": self.pages,
            },
        }


def _resource_name(spec: TableSpec) -> str:
    return spec.name.rstrip("s").replace("_", " ").capitalize() or "Resource"


def _where(
    spec: TableSpec, filters: FieldMap | None
) -> tuple[str, tuple[Any, ...]]:
    """Build ``WHERE a = %s AND b IS NULL`` from an equality filter map."""
    if not filters:
        return "", ()
    clauses: list[str] = []
    args: list[Any] = []
    for column, value in spec.pairs(filters):
        if value is None:
            clauses.append(f"{quote_ident(column)} IS NULL")
        else:
            clauses.append(f"{quote_ident(column)} = %s")
            args.append(value)
    return "WHERE " + " AND ".join(clauses), tuple(args)


def _by_id(
    spec: TableSpec, id: Any, organization_id: Any | None
) -> tuple[str, tuple[Any, ...]]:
    if organization_id is None:
        return 'WHERE "id" = %s', (id,)
    if not spec.tenant_scoped:
        raise InvalidRequestError(f"Table {spec.name} is not tenant-scoped")
    return f'WHERE "id" = %s AND {quote_ident(TENANT_COLUMN)} = %s', (id, organization_id)


def _order(spec: TableSpec, order_by: str, order: str) -> str:
    direction = (order or DEFAULT_ORDER).upper()
    if direction not in ("ASC", "DESC"):
        raise InvalidRequestError(f"Invalid sort order: {order!r}")
    return f"ORDER BY {quote_ident(spec.check_column(order_by))} {direction}"


def _select_list(spec: TableSpec, fields: str | Sequence[str]) -> str:
    if fields == "*":
        return "*"
    if isinstance(fields, str):
        fields = [f.strip() for f in fields.split(",")]
    if not fields:
        raise InvalidRequestError("fields must not be empty")
    return ", ".join(quote_ident(spec.check_column(f)) for f in fields)


def build_insert(spec: TableSpec, fields: FieldMap) -> Statement:
    pairs = spec.pairs(fields)
    if spec.tenant_scoped and dict(pairs).get(TENANT_COLUMN) is None:
        raise InvalidRequestError(f"{TENANT_COLUMN} is required for {spec.name}")
    table = quote_ident(spec.name)
    if not pairs:
        return Statement(f"INSERT INTO {table} DEFAULT VALUES RETURNING *")
    columns = ", ".join(quote_ident(c) for c, _ in pairs)
    placeholders = ", ".join(["%s"] * len(pairs))
    return Statement(
        f"INSERT INTO {table} ({columns}) VALUES ({placeholders}) RETURNING *",
        tuple(v for _, v in pairs),
    )


def build_update(
    spec: TableSpec,
    id: Any,
    fields: FieldMap,
    organization_id: Any | None = None,
) -> Statement:
    pairs = spec.pairs(fields)
    for column, _ in pairs:
        if column in ("id", TENANT_COLUMN, "updated_at"):
            raise InvalidRequestError(f"Column {column!r} cannot be updated")
    assignments = [f"{quote_ident(c)} = %s" for c, _ in pairs]
    if spec.has_updated_at:
        assignments.append('"updated_at" = now()')
    if not assignments:
        raise InvalidRequestError("Nothing to update")
    where, where_args = _by_id(spec, id, organization_id)
    return Statement(
        f"UPDATE {quote_ident(spec.name)} SET {', '.join(assignments)} {where} RETURNING *",
        tuple(v for _, v in pairs) + where_args,
    )


def insert(runner: Runner, table: str, fields: FieldMap) -> Row:
    """INSERT the field map into *table* and return the created row."""
    spec = get_table(runner.tables, table)
    return runner.execute(build_insert(spec, fields)).rows[0]


def update(
    runner: Runner,
    table: str,
    id: Any,
    fields: FieldMap,
    *,
    organization_id: Any | None = None,
) -> Row:
    """
    UPDATE the row with *id*, stamping ``updated_at``; return the new row.

    Without *organization_id* only ``id`` is matched, so callers must have
    checked tenant ownership first. Raises NotFoundError when no row matched.
    """
    spec = get_table(runner.tables, table)
    result = runner.execute(build_update(spec, id, fields, organization_id))
    if not result.rows:
        raise NotFoundError(_resource_name(spec))
    return result.rows[0]


def delete(
    runner: Runner,
    table: str,
    id: Any,
    *,
    organization_id: Any | None = None,
) -> Row:
    """DELETE the row with *id* and return it; NotFoundError when absent."""
    spec = get_table(runner.tables, table)
    where, args = _by_id(spec, id, organization_id)
    result = runner.execute(
        Statement(f"DELETE FROM {quote_ident(spec.name)} {where} RETURNING *", args)
    )
    if not result.rows:
        raise NotFoundError(_resource_name(spec))
    return result.rows[0]


def find_by_id(
    runner: Runner,
    table: str,
    id: Any,
    *,
    organization_id: Any | None = None,
) -> Row:
    spec = get_table(runner.tables, table)
    where, args = _by_id(spec, id, organization_id)
    row = runner.execute(
        Statement(f"SELECT * FROM {quote_ident(spec.name)} {where}", args)
    ).first()
    if row is None:
        raise NotFoundError(_resource_name(spec))
    return row


def find_all(
    runner: Runner,
    table: str,
    filters: FieldMap | None = None,
    *,
    order_by: str | None = None,
    order: str = "ASC",
) -> list[Row]:
    """SELECT every row matching the equality *filters*."""
    spec = get_table(runner.tables, table)
    where, args = _where(spec, filters)
    parts = [f"SELECT * FROM {quote_ident(spec.name)}", where]
    if order_by is not None:
        parts.append(_order(spec, order_by, order))
    return runner.execute(Statement(" ".join(p for p in parts if p), args)).rows


def build_pagination(
    spec: TableSpec,
    filters: FieldMap | None,
    *,
    page: int,
    limit: int,
    order_by: str,
    order: str,
    fields: str | Sequence[str],
) -> tuple[Statement, Statement]:
    """Return the (COUNT, SELECT) pair sharing one WHERE predicate."""
    if page < 1:
        raise InvalidRequestError("page must be >= 1")
    if limit < 1:
        raise InvalidRequestError("limit must be >= 1")
    if spec.tenant_scoped:
        if dict(spec.pairs(filters or ())).get(TENANT_COLUMN) is None:
            raise InvalidRequestError(f"{TENANT_COLUMN} filter is required for {spec.name}")

    table = quote_ident(spec.name)
    where, args = _where(spec, filters)
    count = Statement(
        " ".join(p for p in (f"SELECT COUNT(*) AS total FROM {table}", where) if p),
        args,
    )
    select = Statement(
        " ".join(
            p
            for p in (
                f"SELECT {_select_list(spec, fields)} FROM {table}",
                where,
                _order(spec, order_by, order),
                "LIMIT %s OFFSET %s",
            )
            if p
        ),
        args + (limit, (page - 1) * limit),
    )
    return count, select


def find_with_pagination(
    runner: ConcurrentRunner,
    table: str,
    filters: FieldMap | None = None,
    *,
    page: int = DEFAULT_PAGE,
    limit: int = DEFAULT_LIMIT,
    order_by: str = DEFAULT_ORDER_BY,
    order: str = DEFAULT_ORDER,
    fields: str | Sequence[str] = "*",
) -> Page:
    """
    One page of rows plus the total count for the same filters.

    The COUNT and SELECT run concurrently on separate connections and are
    not a consistent snapshot: under concurrent writes ``total`` may not
    match the returned page.
    """
    spec = get_table(runner.tables, table)
    page, limit = int(page), int(limit)
    count, select = build_pagination(
        spec,
        filters,
        page=page,
        limit=limit,
        order_by=order_by,
        order=order,
        fields=fields,
    )
    count_result, data_result = runner.execute_concurrently(count, select)
    total = int(count_result.rows[0]["total"])
    return Page(
        data=data_result.rows,
        page=page,
        limit=limit,
        total=total,
        pages=math.ceil(total / limit),
    )


class CrudMixin:
    """Builder operations as methods on a runner."""

    tables: Mapping[str, TableSpec]

    def insert(self, table: str, fields: FieldMap) -> Row:
        return insert(self, table, fields)  # type: ignore[arg-type]

    def update(
        self, table: str, id: Any, fields: FieldMap, *, organization_id: Any | None = None
    ) -> Row:
        return update(self, table, id, fields, organization_id=organization_id)  # type: ignore[arg-type]

    def delete(self, table: str, id: Any, *, organization_id: Any | None = None) -> Row:
        return delete(self, table, id, organization_id=organization_id)  # type: ignore[arg-type]

    def find_by_id(self, table: str, id: Any, *, organization_id: Any | None = None) -> Row:
        return find_by_id(self, table, id, organization_id=organization_id)  # type: ignore[arg-type]

    def find_all(
        self,
        table: str,
        filters: FieldMap | None = None,
        *,
        order_by: str | None = None,
        order: str = "ASC",
    ) -> list[Row]:
        return find_all(self, table, filters, order_by=order_by, order=order)  # type: ignore[arg-type]
