"""
Column allow-lists for the generic CRUD builders.

Table and column names are never taken from callers verbatim: every
identifier that ends up in generated SQL must be registered here first.
"""

import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from app.core.errors import InvalidRequestError

_IDENT_RE = re.compile(r"^[a-z_][a-z0-9_]*$")

TENANT_COLUMN = "organization_id"

FieldMap = Mapping[str, Any] | Sequence[tuple[str, Any]]


def quote_ident(name: str) -> str:
    """Double-quote a validated identifier."""
    if not _IDENT_RE.match(name):
        raise InvalidRequestError(f"Invalid identifier: {name!r}")
    return f'"{name}"'


@dataclass(frozen=True)
class TableSpec:
    name: str
    columns: frozenset[str]
    tenant_scoped: bool = True

    def __post_init__(self) -> None:
        for ident in (self.name, *self.columns):
            if not _IDENT_RE.match(ident):
                raise ValueError(f"Invalid identifier in table spec: {ident!r}")
        if self.tenant_scoped and TENANT_COLUMN not in self.columns:
            raise ValueError(f"Tenant-scoped table {self.name} lacks {TENANT_COLUMN}")

    @property
    def has_updated_at(self) -> bool:
        return "updated_at" in self.columns

    def check_column(self, column: str) -> str:
        if column not in self.columns:
            raise InvalidRequestError(f"Unknown column {column!r} for table {self.name}")
        return column

    def pairs(self, fields: FieldMap) -> list[tuple[str, Any]]:
        """Validate a field map and return it as ordered (column, value) pairs."""
        items = fields.items() if isinstance(fields, Mapping) else fields
        out: list[tuple[str, Any]] = []
        seen: set[str] = set()
        for column, value in items:
            self.check_column(column)
            if column in seen:
                raise InvalidRequestError(f"Duplicate column {column!r}")
            seen.add(column)
            out.append((column, value))
        return out


def _spec(name: str, columns: Iterable[str], *, tenant_scoped: bool = True) -> TableSpec:
    return TableSpec(name=name, columns=frozenset(columns), tenant_scoped=tenant_scoped)


_TIMESTAMPS = ("created_at", "updated_at")

TABLES: dict[str, TableSpec] = {
    t.name: t
    for t in (
        _spec(
            "organizations",
            ("id", "name", "industry", "website", "phone", "address", *_TIMESTAMPS),
            tenant_scoped=False,
        ),
        _spec(
            "contacts",
            (
                "id", "organization_id", "first_name", "last_name", "email",
                "phone", "address", "city", "state", "zip_code", "country",
                "status", "source", "custom_fields", *_TIMESTAMPS,
            ),
        ),
        _spec("tags", ("id", "organization_id", "name", "color", *_TIMESTAMPS)),
        _spec(
            "contact_tags",
            ("id", "contact_id", "tag_id", "created_at"),
            tenant_scoped=False,
        ),
        _spec(
            "pipelines",
            ("id", "organization_id", "name", "description", *_TIMESTAMPS),
        ),
        _spec(
            "pipeline_stages",
            ("id", "pipeline_id", "name", "description", "order_index", *_TIMESTAMPS),
            tenant_scoped=False,
        ),
        _spec(
            "deals",
            (
                "id", "organization_id", "pipeline_id", "stage_id", "contact_id",
                "title", "description", "value", "currency",
                "expected_close_date", "status", *_TIMESTAMPS,
            ),
        ),
        _spec(
            "forms",
            (
                "id", "organization_id", "name", "description", "fields",
                "settings", "status", "form_type", "is_public", *_TIMESTAMPS,
            ),
        ),
        _spec(
            "form_submissions",
            ("id", "form_id", "data", "ip_address", "status", "created_at"),
            tenant_scoped=False,
        ),
        _spec(
            "email_campaigns",
            (
                "id", "organization_id", "name", "subject", "content",
                "sender_name", "sender_email", "reply_to", "template_id",
                "status", "scheduled_at", "sent_at", *_TIMESTAMPS,
            ),
        ),
        _spec(
            "campaign_recipients",
            (
                "id", "campaign_id", "contact_id", "status", "sent_at",
                "opened_at", "clicked_at", *_TIMESTAMPS,
            ),
            tenant_scoped=False,
        ),
        _spec(
            "workflows",
            (
                "id", "organization_id", "name", "description", "trigger_type",
                "trigger_config", "is_active", *_TIMESTAMPS,
            ),
        ),
        _spec(
            "workflow_steps",
            ("id", "workflow_id", "step_type", "step_config", "order_index", *_TIMESTAMPS),
            tenant_scoped=False,
        ),
    )
}


def get_table(tables: Mapping[str, TableSpec], name: str) -> TableSpec:
    try:
        return tables[name]
    except KeyError:
        raise InvalidRequestError(f"Unknown table {name!r}") from None
