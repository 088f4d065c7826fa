"""
Deals: opportunities moving through a pipeline's stages.
"""

from decimal import Decimal
from typing import Any

from app.core.database import Database
from app.core.errors import NotFoundError
from app.engines.sql import Page
from app.schemas_crm import DealCreate, DealUpdate

from .common import field_map, new_id

TABLE = "deals"


def _check_stage(db: Database, organization_id: str, pipeline_id: str, stage_id: str) -> None:
    """The stage must belong to the pipeline, and the pipeline to the tenant."""
    row = db.execute(
        """
        SELECT s.id FROM pipeline_stages s
        JOIN pipelines p ON p.id = s.pipeline_id
        WHERE s.id = %s AND p.id = %s AND p.organization_id = %s
        """,
        (stage_id, pipeline_id, organization_id),
    ).first()
    if row is None:
        raise NotFoundError("Pipeline stage")


def _check_contact(db: Database, organization_id: str, contact_id: str) -> None:
    db.find_by_id("contacts", contact_id, organization_id=organization_id)


def create_deal(db: Database, organization_id: str, data: DealCreate) -> dict[str, Any]:
    db.find_by_id("pipelines", data.pipeline_id, organization_id=organization_id)
    _check_stage(db, organization_id, data.pipeline_id, data.stage_id)
    if data.contact_id:
        _check_contact(db, organization_id, data.contact_id)

    fields = {"id": new_id(), "organization_id": organization_id, **field_map(data)}
    return db.insert(TABLE, fields)


def get_deal(db: Database, id: str, organization_id: str) -> dict[str, Any]:
    return db.find_by_id(TABLE, id, organization_id=organization_id)


def list_deals(
    db: Database,
    organization_id: str,
    *,
    page: int = 1,
    limit: int = 50,
    pipeline_id: str | None = None,
    stage_id: str | None = None,
    status: str | None = None,
    order_by: str = "created_at",
    order: str = "DESC",
) -> Page:
    filters: dict[str, Any] = {"organization_id": organization_id}
    for column, value in (
        ("pipeline_id", pipeline_id),
        ("stage_id", stage_id),
        ("status", status),
    ):
        if value:
            filters[column] = value
    return db.find_with_pagination(
        TABLE, filters, page=page, limit=limit, order_by=order_by, order=order
    )


def update_deal(
    db: Database, id: str, organization_id: str, data: DealUpdate
) -> dict[str, Any]:
    deal = get_deal(db, id, organization_id)
    fields = field_map(data, exclude_unset=True)

    pipeline_id = fields.get("pipeline_id", deal["pipeline_id"])
    stage_id = fields.get("stage_id", deal["stage_id"])
    if "pipeline_id" in fields or "stage_id" in fields:
        _check_stage(db, organization_id, pipeline_id, stage_id)
    if fields.get("contact_id"):
        _check_contact(db, organization_id, fields["contact_id"])

    return db.update(TABLE, id, fields, organization_id=organization_id)


def move_deal_to_stage(
    db: Database, id: str, organization_id: str, stage_id: str
) -> dict[str, Any]:
    deal = get_deal(db, id, organization_id)
    _check_stage(db, organization_id, deal["pipeline_id"], stage_id)
    return db.update(TABLE, id, {"stage_id": stage_id}, organization_id=organization_id)


def delete_deal(db: Database, id: str, organization_id: str) -> dict[str, Any]:
    return db.delete(TABLE, id, organization_id=organization_id)


def get_deal_value_sum(
    db: Database,
    organization_id: str,
    *,
    pipeline_id: str | None = None,
    status: str | None = None,
) -> Decimal:
    sql = "SELECT COALESCE(SUM(value), 0) AS total FROM deals WHERE organization_id = %s"
    args: list[Any] = [organization_id]
    if pipeline_id:
        sql += " AND pipeline_id = %s"
        args.append(pipeline_id)
    if status:
        sql += " AND status = %s"
        args.append(status)
    row = db.execute(sql, args).first()
    return Decimal(row["total"]) if row else Decimal(0)
