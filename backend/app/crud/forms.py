"""
Forms and their public submissions.
"""

from typing import Any

from psycopg.types.json import Jsonb

from app.core.database import Database
from app.core.errors import InvalidRequestError, NotFoundError
from app.engines.sql import Page, Transaction
from app.schemas_crm import FormCreate, FormSubmissionIn, FormUpdate

from .common import field_map, new_id

TABLE = "forms"
SUBMISSIONS = "form_submissions"
_JSON = ("fields", "settings")


def create_form(db: Database, organization_id: str, data: FormCreate) -> dict[str, Any]:
    if not data.fields:
        raise InvalidRequestError("Form must have at least one field")
    fields = {
        "id": new_id(),
        "organization_id": organization_id,
        **field_map(data, json_fields=_JSON),
    }
    return db.insert(TABLE, fields)


def get_form(db: Database, id: str, organization_id: str) -> dict[str, Any]:
    return db.find_by_id(TABLE, id, organization_id=organization_id)


def get_public_form(db: Database, id: str) -> dict[str, Any]:
    """Active forms only; no tenant, used by the public submit endpoint."""
    rows = db.find_all(TABLE, {"id": id, "status": "active"})
    if not rows:
        raise NotFoundError("Form")
    return rows[0]


def list_forms(
    db: Database,
    organization_id: str,
    *,
    page: int = 1,
    limit: int = 100,
    status: str | None = "active",
) -> Page:
    filters: dict[str, Any] = {"organization_id": organization_id}
    if status:
        filters["status"] = status
    return db.find_with_pagination(TABLE, filters, page=page, limit=limit)


def update_form(
    db: Database, id: str, organization_id: str, data: FormUpdate
) -> dict[str, Any]:
    get_form(db, id, organization_id)
    fields = field_map(data, exclude_unset=True, json_fields=_JSON)
    return db.update(TABLE, id, fields, organization_id=organization_id)


def delete_form(db: Database, id: str, organization_id: str) -> None:
    def work(tx: Transaction) -> None:
        tx.find_by_id(TABLE, id, organization_id=organization_id)
        tx.execute("DELETE FROM form_submissions WHERE form_id = %s", (id,))
        tx.delete(TABLE, id, organization_id=organization_id)

    db.run_in_transaction(work)


def submit_form(db: Database, form_id: str, data: FormSubmissionIn) -> dict[str, Any]:
    get_public_form(db, form_id)
    return db.insert(
        SUBMISSIONS,
        {
            "id": new_id(),
            "form_id": form_id,
            "data": Jsonb(data.data),
            "ip_address": data.ip_address,
            "status": "new",
        },
    )


def list_submissions(
    db: Database,
    form_id: str,
    organization_id: str,
    *,
    page: int = 1,
    limit: int = 50,
) -> Page:
    get_form(db, form_id, organization_id)
    return db.find_with_pagination(
        SUBMISSIONS, {"form_id": form_id}, page=page, limit=limit
    )
