"""Tests for crud.deals."""

from decimal import Decimal

import pytest

from app.core.database import Database
from app.core.errors import NotFoundError
from app.crud import deals
from app.schemas_crm import DealCreate, DealUpdate
from tests.utils.fake_db import FakeServer, echo_insert

ORG = "org-1"


def _pipeline_with_stage(server: FakeServer) -> None:
    server.on('FROM "pipelines"', [{"id": "p1", "organization_id": ORG}])
    server.on("JOIN pipelines", [{"id": "s1"}])


def test_create_deal_checks_pipeline_and_stage(server: FakeServer, db: Database) -> None:
    _pipeline_with_stage(server)
    server.on("INSERT INTO", echo_insert)

    row = deals.create_deal(
        db,
        ORG,
        DealCreate(pipeline_id="p1", stage_id="s1", title="Renewal", value=Decimal("1200.50")),
    )

    assert row["status"] == "open"
    assert row["value"] == Decimal("1200.50")
    assert server.args_for("JOIN pipelines") == ("s1", "p1", ORG)


def test_create_deal_stage_outside_pipeline(server: FakeServer, db: Database) -> None:
    server.on('FROM "pipelines"', [{"id": "p1"}])
    server.on("JOIN pipelines", [])

    with pytest.raises(NotFoundError, match="Pipeline stage not found"):
        deals.create_deal(db, ORG, DealCreate(pipeline_id="p1", stage_id="other", title="x"))
    assert not any(s.startswith("INSERT") for s in server.statements)


def test_create_deal_unknown_contact(server: FakeServer, db: Database) -> None:
    _pipeline_with_stage(server)

    with pytest.raises(NotFoundError, match="Contact not found"):
        deals.create_deal(
            db, ORG, DealCreate(pipeline_id="p1", stage_id="s1", contact_id="c9", title="x")
        )


def test_update_deal_revalidates_stage(server: FakeServer, db: Database) -> None:
    server.on('SELECT * FROM "deals"', [{"id": "d1", "pipeline_id": "p1", "stage_id": "s1"}])
    server.on("JOIN pipelines", [{"id": "s2"}])
    server.on('UPDATE "deals"', [{"id": "d1", "stage_id": "s2"}])

    row = deals.update_deal(db, "d1", ORG, DealUpdate(stage_id="s2"))

    assert row["stage_id"] == "s2"
    assert server.args_for("JOIN pipelines") == ("s2", "p1", ORG)


def test_update_deal_without_stage_change_skips_check(server: FakeServer, db: Database) -> None:
    server.on('SELECT * FROM "deals"', [{"id": "d1", "pipeline_id": "p1", "stage_id": "s1"}])
    server.on('UPDATE "deals"', [{"id": "d1"}])

    deals.update_deal(db, "d1", ORG, DealUpdate(title="Bigger"))

    assert not any("JOIN pipelines" in s for s in server.statements)


def test_move_deal_to_stage(server: FakeServer, db: Database) -> None:
    server.on('SELECT * FROM "deals"', [{"id": "d1", "pipeline_id": "p1", "stage_id": "s1"}])
    server.on("JOIN pipelines", [{"id": "s3"}])
    server.on('UPDATE "deals"', [{"id": "d1", "stage_id": "s3"}])

    assert deals.move_deal_to_stage(db, "d1", ORG, "s3")["stage_id"] == "s3"
    assert server.args_for('UPDATE "deals"') == ("s3", "d1", ORG)


def test_list_deals_by_pipeline(server: FakeServer, db: Database) -> None:
    server.on("COUNT(*)", [{"total": 0}])
    page = deals.list_deals(db, ORG, pipeline_id="p1", status="won")
    assert page.data == []
    assert server.args_for("COUNT(*)") == (ORG, "p1", "won")


def test_get_deal_value_sum(server: FakeServer, db: Database) -> None:
    server.on("SUM(value)", [{"total": Decimal("3400.00")}])

    total = deals.get_deal_value_sum(db, ORG, pipeline_id="p1", status="won")

    assert total == Decimal("3400.00")
    sql = next(s for s in server.statements if "SUM(value)" in s)
    assert sql.endswith("AND pipeline_id = %s AND status = %s")
    assert server.args_for("SUM(value)") == (ORG, "p1", "won")
