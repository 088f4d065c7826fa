"""
Contacts: people tracked by an organization.
"""

from typing import Any

from psycopg.types.json import Jsonb

from app.core.database import Database
from app.engines.sql import Page
from app.schemas_crm import ContactCreate, ContactUpdate

from .common import field_map, new_id

TABLE = "contacts"


def create_contact(db: Database, organization_id: str, data: ContactCreate) -> dict[str, Any]:
    fields = {
        "id": new_id(),
        "organization_id": organization_id,
        **field_map(data, json_fields=("custom_fields",)),
    }
    return db.insert(TABLE, fields)


def get_contact(db: Database, id: str, organization_id: str) -> dict[str, Any]:
    return db.find_by_id(TABLE, id, organization_id=organization_id)


def list_contacts(
    db: Database,
    organization_id: str,
    *,
    page: int = 1,
    limit: int = 50,
    status: str | None = None,
    source: str | None = None,
    order_by: str = "created_at",
    order: str = "DESC",
) -> Page:
    filters: dict[str, Any] = {"organization_id": organization_id}
    if status:
        filters["status"] = status
    if source:
        filters["source"] = source
    return db.find_with_pagination(
        TABLE, filters, page=page, limit=limit, order_by=order_by, order=order
    )


def search_contacts(
    db: Database, organization_id: str, term: str, *, limit: int = 50
) -> list[dict[str, Any]]:
    """Case-insensitive substring match on name, email and phone."""
    pattern = f"%{term}%"
    result = db.execute(
        """
        SELECT * FROM contacts
        WHERE organization_id = %s
          AND (first_name ILIKE %s OR last_name ILIKE %s
               OR email ILIKE %s OR phone ILIKE %s)
        ORDER BY created_at DESC
        LIMIT %s
        """,
        (organization_id, pattern, pattern, pattern, pattern, limit),
    )
    return result.rows


def update_contact(
    db: Database, id: str, organization_id: str, data: ContactUpdate
) -> dict[str, Any]:
    contact = get_contact(db, id, organization_id)
    fields = field_map(data, exclude_unset=True, exclude=("custom_fields",))
    if data.custom_fields is not None:
        merged = {**(contact.get("custom_fields") or {}), **data.custom_fields}
        fields["custom_fields"] = Jsonb(merged) if merged else None
    return db.update(TABLE, id, fields, organization_id=organization_id)


def delete_contact(db: Database, id: str, organization_id: str) -> dict[str, Any]:
    return db.delete(TABLE, id, organization_id=organization_id)


def count_contacts(db: Database, organization_id: str) -> int:
    row = db.execute(
        "SELECT COUNT(*) AS count FROM contacts WHERE organization_id = %s",
        (organization_id,),
    ).first()
    return row["count"] if row else 0


def count_contacts_by_status(db: Database, organization_id: str) -> dict[str, int]:
    """Map each status present for the organization to its contact count."""
    rows = db.execute(
        "SELECT status, COUNT(*) AS count FROM contacts WHERE organization_id = %s "
        "GROUP BY status",
        (organization_id,),
    ).rows
    return {r["status"]: r["count"] for r in rows}
