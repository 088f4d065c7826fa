"""
Tags: organization-wide labels and their links to contacts.

``contact_tags`` rows carry no organization id, so every link operation
checks that both the contact and the tag belong to the caller first.
"""

from typing import Any

from app.core.database import Database
from app.core.errors import ConflictError, NotFoundError
from app.engines.sql import Transaction
from app.schemas_crm import TagCreate, TagUpdate

from .common import field_map, new_id

TABLE = "tags"
LINKS = "contact_tags"
CONTACTS = "contacts"


def _name_taken(
    runner: Database | Transaction,
    organization_id: str,
    name: str,
    exclude_id: str | None = None,
) -> bool:
    rows = runner.find_all(TABLE, {"organization_id": organization_id, "name": name})
    return any(r["id"] != exclude_id for r in rows)


def create_tag(db: Database, organization_id: str, data: TagCreate) -> dict[str, Any]:
    if _name_taken(db, organization_id, data.name):
        raise ConflictError("Tag with this name already exists")
    return db.insert(
        TABLE, {"id": new_id(), "organization_id": organization_id, **field_map(data)}
    )


def get_tag(db: Database, id: str, organization_id: str) -> dict[str, Any]:
    return db.find_by_id(TABLE, id, organization_id=organization_id)


def list_tags(db: Database, organization_id: str) -> list[dict[str, Any]]:
    return db.find_all(TABLE, {"organization_id": organization_id}, order_by="name")


def update_tag(db: Database, id: str, organization_id: str, data: TagUpdate) -> dict[str, Any]:
    tag = get_tag(db, id, organization_id)
    if data.name and data.name != tag["name"] and _name_taken(db, organization_id, data.name, id):
        raise ConflictError("Tag with this name already exists")
    fields = field_map(data, exclude_unset=True)
    return db.update(TABLE, id, fields, organization_id=organization_id)


def delete_tag(db: Database, id: str, organization_id: str) -> None:
    """Delete a tag together with its contact links."""

    def work(tx: Transaction) -> None:
        tx.find_by_id(TABLE, id, organization_id=organization_id)
        tx.execute("DELETE FROM contact_tags WHERE tag_id = %s", (id,))
        tx.delete(TABLE, id, organization_id=organization_id)

    db.run_in_transaction(work)


def add_tag_to_contact(
    db: Database, contact_id: str, tag_id: str, organization_id: str
) -> dict[str, Any]:
    db.find_by_id(CONTACTS, contact_id, organization_id=organization_id)
    tag = get_tag(db, tag_id, organization_id)
    if db.find_all(LINKS, {"contact_id": contact_id, "tag_id": tag_id}):
        raise ConflictError("Contact already has this tag")
    link = db.insert(LINKS, {"id": new_id(), "contact_id": contact_id, "tag_id": tag_id})
    return {**link, "tag_name": tag["name"], "tag_color": tag["color"]}


def remove_tag_from_contact(
    db: Database, contact_id: str, tag_id: str, organization_id: str
) -> None:
    db.find_by_id(CONTACTS, contact_id, organization_id=organization_id)
    get_tag(db, tag_id, organization_id)
    result = db.execute(
        "DELETE FROM contact_tags WHERE contact_id = %s AND tag_id = %s",
        (contact_id, tag_id),
    )
    if result.row_count == 0:
        raise NotFoundError("Contact tag")


def get_contact_tags(db: Database, contact_id: str, organization_id: str) -> list[dict[str, Any]]:
    db.find_by_id(CONTACTS, contact_id, organization_id=organization_id)
    return db.execute(
        """
        SELECT t.*
        FROM tags t
        JOIN contact_tags ct ON ct.tag_id = t.id
        WHERE ct.contact_id = %s AND t.organization_id = %s
        ORDER BY t.name
        """,
        (contact_id, organization_id),
    ).rows
