"""Tests for crud.tags over the in-memory connection fake."""

from typing import Any

import pytest

from app.core.database import Database
from app.core.errors import ConflictError, NotFoundError
from app.crud import tags
from app.schemas_crm import TagCreate, TagUpdate
from tests.utils.fake_db import FakeServer, echo_insert

ORG = "org-1"
TAG = {"id": "t1", "organization_id": ORG, "name": "vip", "color": "#F59E0B"}


def test_create_tag_uses_default_color(server: FakeServer, db: Database) -> None:
    server.on("INSERT INTO", echo_insert)

    row = tags.create_tag(db, ORG, TagCreate(name="vip"))

    assert row["organization_id"] == ORG
    assert row["name"] == "vip"
    assert row["color"] == "#6366F1"
    assert server.args_for('SELECT * FROM "tags"') == (ORG, "vip")


def test_create_tag_duplicate_name(server: FakeServer, db: Database) -> None:
    server.on('SELECT * FROM "tags"', [TAG])

    with pytest.raises(ConflictError, match="already exists"):
        tags.create_tag(db, ORG, TagCreate(name="vip"))
    assert not any(s.startswith("INSERT") for s in server.statements)


def test_list_tags_ordered_by_name(server: FakeServer, db: Database) -> None:
    server.on('SELECT * FROM "tags"', [TAG])

    assert tags.list_tags(db, ORG) == [TAG]
    assert server.statements == [
        'SELECT * FROM "tags" WHERE "organization_id" = %s ORDER BY "name" ASC'
    ]


def test_update_tag_rename_to_taken_name(server: FakeServer, db: Database) -> None:
    server.on('"name" = %s', [{"id": "t2", "name": "gold"}])
    server.on('SELECT * FROM "tags"', [TAG])

    with pytest.raises(ConflictError):
        tags.update_tag(db, "t1", ORG, TagUpdate(name="gold"))
    assert not any(s.startswith("UPDATE") for s in server.statements)


def test_update_tag_color_only(server: FakeServer, db: Database) -> None:
    server.on('SELECT * FROM "tags"', [TAG])
    server.on('UPDATE "tags"', [{**TAG, "color": "#000000"}])

    row = tags.update_tag(db, "t1", ORG, TagUpdate(color="#000000"))

    assert row["color"] == "#000000"
    assert server.args_for('UPDATE "tags"') == ("#000000", "t1", ORG)


def test_update_tag_missing(db: Database) -> None:
    with pytest.raises(NotFoundError, match="Tag not found"):
        tags.update_tag(db, "missing", ORG, TagUpdate(name="x"))


def test_delete_tag_removes_links_in_one_transaction(server: FakeServer, db: Database) -> None:
    server.on('SELECT * FROM "tags"', [TAG])
    server.on('DELETE FROM "tags"', [TAG])

    tags.delete_tag(db, "t1", ORG)

    assert server.statements[0] == "BEGIN"
    assert server.statements[2] == "DELETE FROM contact_tags WHERE tag_id = %s"
    assert server.args_for("DELETE FROM contact_tags") == ("t1",)
    assert server.statements[-1] == "COMMIT"


def test_delete_tag_of_other_tenant_touches_nothing(server: FakeServer, db: Database) -> None:
    with pytest.raises(NotFoundError):
        tags.delete_tag(db, "t1", "org-2")
    assert not any(s.startswith("DELETE") for s in server.statements)
    assert server.statements[-1] == "ROLLBACK"


def _parents(server: FakeServer) -> None:
    server.on('SELECT * FROM "contacts"', [{"id": "c1", "organization_id": ORG}])
    server.on('SELECT * FROM "tags"', [TAG])


def test_add_tag_to_contact(server: FakeServer, db: Database) -> None:
    _parents(server)
    server.on("INSERT INTO", echo_insert)

    link = tags.add_tag_to_contact(db, "c1", "t1", ORG)

    assert link["contact_id"] == "c1"
    assert link["tag_id"] == "t1"
    assert (link["tag_name"], link["tag_color"]) == ("vip", "#F59E0B")
    assert server.args_for('SELECT * FROM "contacts"') == ("c1", ORG)
    assert server.args_for('SELECT * FROM "tags"') == ("t1", ORG)


def test_add_tag_to_contact_already_linked(server: FakeServer, db: Database) -> None:
    _parents(server)
    server.on('SELECT * FROM "contact_tags"', [{"id": "ct1"}])

    with pytest.raises(ConflictError, match="already has this tag"):
        tags.add_tag_to_contact(db, "c1", "t1", ORG)
    assert not any(s.startswith("INSERT") for s in server.statements)


def test_add_tag_to_contact_of_other_tenant(server: FakeServer, db: Database) -> None:
    server.on('SELECT * FROM "tags"', [TAG])

    with pytest.raises(NotFoundError, match="Contact not found"):
        tags.add_tag_to_contact(db, "c1", "t1", ORG)
    assert not any('"tags"' in s or "contact_tags" in s for s in server.statements)


def test_add_foreign_tag_to_contact(server: FakeServer, db: Database) -> None:
    server.on('SELECT * FROM "contacts"', [{"id": "c1"}])

    with pytest.raises(NotFoundError, match="Tag not found"):
        tags.add_tag_to_contact(db, "c1", "t-other", ORG)
    assert not any(s.startswith("INSERT") for s in server.statements)


def test_remove_tag_from_contact(server: FakeServer, db: Database) -> None:
    _parents(server)
    server.on("DELETE FROM contact_tags", [{"id": "ct1"}])

    tags.remove_tag_from_contact(db, "c1", "t1", ORG)

    assert server.args_for("DELETE FROM contact_tags") == ("c1", "t1")


def test_remove_tag_not_linked(server: FakeServer, db: Database) -> None:
    _parents(server)

    with pytest.raises(NotFoundError, match="Contact tag not found"):
        tags.remove_tag_from_contact(db, "c1", "t1", ORG)


def test_get_contact_tags(server: FakeServer, db: Database) -> None:
    server.on('SELECT * FROM "contacts"', [{"id": "c1"}])

    def joined(sql: str, args: tuple[Any, ...]) -> list[dict[str, Any]]:
        assert args == ("c1", ORG)
        return [TAG]

    server.on("JOIN contact_tags", joined)

    assert tags.get_contact_tags(db, "c1", ORG) == [TAG]


def test_get_contact_tags_missing_contact(server: FakeServer, db: Database) -> None:
    with pytest.raises(NotFoundError, match="Contact not found"):
        tags.get_contact_tags(db, "c1", ORG)
    assert not any("JOIN" in s for s in server.statements)
