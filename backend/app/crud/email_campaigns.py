"""
Email campaigns: draft -> scheduled -> sent.

A sent campaign is frozen: it can no longer be edited, rescheduled or
deleted.
"""

from datetime import datetime, timezone
from typing import Any

from app.core.database import Database
from app.core.errors import InvalidRequestError, NotFoundError
from app.engines.sql import Page, Transaction
from app.schemas_crm import (
    CampaignStatusEnum,
    EmailCampaignCreate,
    EmailCampaignUpdate,
    RecipientStatusEnum,
)

from .common import field_map, new_id

TABLE = "email_campaigns"
RECIPIENTS = "campaign_recipients"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _ensure_not_sent(campaign: dict[str, Any], action: str) -> None:
    if campaign["status"] == CampaignStatusEnum.SENT.value:
        raise InvalidRequestError(f"Cannot {action} a sent campaign")


def create_campaign(
    db: Database, organization_id: str, data: EmailCampaignCreate
) -> dict[str, Any]:
    fields = {
        "id": new_id(),
        "organization_id": organization_id,
        **field_map(data),
        "status": CampaignStatusEnum.DRAFT.value,
    }
    return db.insert(TABLE, fields)


def get_campaign(db: Database, id: str, organization_id: str) -> dict[str, Any]:
    return db.find_by_id(TABLE, id, organization_id=organization_id)


def list_campaigns(
    db: Database,
    organization_id: str,
    *,
    page: int = 1,
    limit: int = 50,
    status: str | None = None,
) -> Page:
    filters: dict[str, Any] = {"organization_id": organization_id}
    if status:
        filters["status"] = status
    return db.find_with_pagination(TABLE, filters, page=page, limit=limit)


def update_campaign(
    db: Database, id: str, organization_id: str, data: EmailCampaignUpdate
) -> dict[str, Any]:
    _ensure_not_sent(get_campaign(db, id, organization_id), "update")
    return db.update(
        TABLE, id, field_map(data, exclude_unset=True), organization_id=organization_id
    )


def delete_campaign(db: Database, id: str, organization_id: str) -> None:
    def work(tx: Transaction) -> None:
        _ensure_not_sent(tx.find_by_id(TABLE, id, organization_id=organization_id), "delete")
        tx.execute("DELETE FROM campaign_recipients WHERE campaign_id = %s", (id,))
        tx.delete(TABLE, id, organization_id=organization_id)

    db.run_in_transaction(work)


def schedule_campaign(
    db: Database, id: str, organization_id: str, scheduled_at: datetime
) -> dict[str, Any]:
    _ensure_not_sent(get_campaign(db, id, organization_id), "schedule")
    return db.update(
        TABLE,
        id,
        {"status": CampaignStatusEnum.SCHEDULED.value, "scheduled_at": scheduled_at},
        organization_id=organization_id,
    )


def cancel_schedule(db: Database, id: str, organization_id: str) -> dict[str, Any]:
    campaign = get_campaign(db, id, organization_id)
    if campaign["status"] != CampaignStatusEnum.SCHEDULED.value:
        raise InvalidRequestError("Can only cancel scheduled campaigns")
    return db.update(
        TABLE,
        id,
        {"status": CampaignStatusEnum.DRAFT.value, "scheduled_at": None},
        organization_id=organization_id,
    )


def send_campaign(
    db: Database, id: str, organization_id: str, contact_ids: list[str]
) -> dict[str, Any]:
    """Mark the campaign sent and record one recipient row per contact, atomically."""
    if not contact_ids:
        raise InvalidRequestError("At least one recipient is required")

    def work(tx: Transaction) -> dict[str, Any]:
        campaign = tx.find_by_id(TABLE, id, organization_id=organization_id)
        if campaign["status"] == CampaignStatusEnum.SENT.value:
            raise InvalidRequestError("Campaign has already been sent")
        sent_at = _utc_now()
        for contact_id in dict.fromkeys(contact_ids):
            tx.find_by_id("contacts", contact_id, organization_id=organization_id)
            tx.insert(
                RECIPIENTS,
                {
                    "id": new_id(),
                    "campaign_id": id,
                    "contact_id": contact_id,
                    "status": RecipientStatusEnum.SENT.value,
                    "sent_at": sent_at,
                },
            )
        return tx.update(
            TABLE,
            id,
            {"status": CampaignStatusEnum.SENT.value, "sent_at": sent_at},
            organization_id=organization_id,
        )

    return db.run_in_transaction(work)


def list_recipients(db: Database, id: str, organization_id: str) -> list[dict[str, Any]]:
    get_campaign(db, id, organization_id)
    return db.execute(
        """
        SELECT r.*, c.first_name, c.last_name, c.email
        FROM campaign_recipients r
        JOIN contacts c ON c.id = r.contact_id
        WHERE r.campaign_id = %s
        ORDER BY r.created_at
        """,
        (id,),
    ).rows


def update_recipient_status(
    db: Database,
    campaign_id: str,
    contact_id: str,
    organization_id: str,
    status: RecipientStatusEnum,
) -> dict[str, Any]:
    """Record an open/click; the first timestamp of each kind is kept."""
    get_campaign(db, campaign_id, organization_id)
    rows = db.find_all(RECIPIENTS, {"campaign_id": campaign_id, "contact_id": contact_id})
    if not rows:
        raise NotFoundError("Recipient")
    recipient = rows[0]
    fields: dict[str, Any] = {"status": status.value}
    if status == RecipientStatusEnum.OPENED and recipient.get("opened_at") is None:
        fields["opened_at"] = _utc_now()
    elif status == RecipientStatusEnum.CLICKED and recipient.get("clicked_at") is None:
        fields["clicked_at"] = _utc_now()
    return db.update(RECIPIENTS, recipient["id"], fields)


def get_campaign_statistics(db: Database, id: str, organization_id: str) -> dict[str, int]:
    get_campaign(db, id, organization_id)
    rows = db.execute(
        """
        SELECT status, COUNT(*) AS count
        FROM campaign_recipients
        WHERE campaign_id = %s
        GROUP BY status
        """,
        (id,),
    ).rows
    stats = {s.value: 0 for s in RecipientStatusEnum}
    for row in rows:
        stats[row["status"]] = int(row["count"])
    stats["total"] = sum(int(r["count"]) for r in rows)
    return stats
