"""
Pydantic schemas for CRM model functions.

Contacts, deals, pipelines, forms, email campaigns, workflows, tags.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import Field
from sqlmodel import SQLModel

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class ContactStatusEnum(str, Enum):
    LEAD = "lead"
    PROSPECT = "prospect"
    CUSTOMER = "customer"
    INACTIVE = "inactive"


class DealStatusEnum(str, Enum):
    OPEN = "open"
    WON = "won"
    LOST = "lost"


class CampaignStatusEnum(str, Enum):
    DRAFT = "draft"
    SCHEDULED = "scheduled"
    SENT = "sent"


class RecipientStatusEnum(str, Enum):
    SENT = "sent"
    OPENED = "opened"
    CLICKED = "clicked"
    BOUNCED = "bounced"


# ---------------------------------------------------------------------------
# Contacts
# ---------------------------------------------------------------------------


class ContactCreate(SQLModel):
    first_name: str = Field(..., min_length=1, max_length=255)
    last_name: str = Field(..., min_length=1, max_length=255)
    email: str | None = Field(default=None, max_length=255)
    phone: str | None = Field(default=None, max_length=64)
    address: str | None = None
    city: str | None = Field(default=None, max_length=255)
    state: str | None = Field(default=None, max_length=255)
    zip_code: str | None = Field(default=None, max_length=32)
    country: str | None = Field(default=None, max_length=255)
    status: ContactStatusEnum = ContactStatusEnum.LEAD
    source: str | None = Field(default=None, max_length=255)
    custom_fields: dict[str, Any] | None = None


class ContactUpdate(SQLModel):
    """All fields optional; ``custom_fields`` is merged into the stored map."""

    first_name: str | None = Field(default=None, min_length=1, max_length=255)
    last_name: str | None = Field(default=None, min_length=1, max_length=255)
    email: str | None = Field(default=None, max_length=255)
    phone: str | None = Field(default=None, max_length=64)
    address: str | None = None
    city: str | None = Field(default=None, max_length=255)
    state: str | None = Field(default=None, max_length=255)
    zip_code: str | None = Field(default=None, max_length=32)
    country: str | None = Field(default=None, max_length=255)
    status: ContactStatusEnum | None = None
    source: str | None = Field(default=None, max_length=255)
    custom_fields: dict[str, Any] | None = None


# ---------------------------------------------------------------------------
# Deals
# ---------------------------------------------------------------------------


class DealCreate(SQLModel):
    pipeline_id: str
    stage_id: str
    contact_id: str | None = None
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    value: Decimal | None = Field(default=None, ge=0)
    currency: str = Field(default="USD", min_length=3, max_length=3)
    expected_close_date: date | None = None
    status: DealStatusEnum = DealStatusEnum.OPEN


class DealUpdate(SQLModel):
    pipeline_id: str | None = None
    stage_id: str | None = None
    contact_id: str | None = None
    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    value: Decimal | None = Field(default=None, ge=0)
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    expected_close_date: date | None = None
    status: DealStatusEnum | None = None


# ---------------------------------------------------------------------------
# Pipelines
# ---------------------------------------------------------------------------


class PipelineStageIn(SQLModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None


class PipelineCreate(SQLModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    stages: list[PipelineStageIn] = Field(default_factory=list)


class PipelineUpdate(SQLModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None


class PipelineStageUpdate(SQLModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None


# ---------------------------------------------------------------------------
# Forms
# ---------------------------------------------------------------------------


class FormCreate(SQLModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    fields: list[dict[str, Any]] = Field(..., min_length=1)
    settings: dict[str, Any] = Field(default_factory=dict)
    status: str = Field(default="active", max_length=32)
    form_type: str = Field(default="standard", max_length=32)
    is_public: bool = False


class FormUpdate(SQLModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    fields: list[dict[str, Any]] | None = Field(default=None, min_length=1)
    settings: dict[str, Any] | None = None
    status: str | None = Field(default=None, max_length=32)
    is_public: bool | None = None


class FormSubmissionIn(SQLModel):
    data: dict[str, Any]
    ip_address: str | None = Field(default=None, max_length=64)


# ---------------------------------------------------------------------------
# Email campaigns
# ---------------------------------------------------------------------------


class EmailCampaignCreate(SQLModel):
    name: str = Field(..., min_length=1, max_length=255)
    subject: str = Field(..., min_length=1, max_length=512)
    content: str
    sender_name: str | None = Field(default=None, max_length=255)
    sender_email: str | None = Field(default=None, max_length=255)
    reply_to: str | None = Field(default=None, max_length=255)
    template_id: str | None = None


class EmailCampaignUpdate(SQLModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    subject: str | None = Field(default=None, min_length=1, max_length=512)
    content: str | None = None
    sender_name: str | None = Field(default=None, max_length=255)
    sender_email: str | None = Field(default=None, max_length=255)
    reply_to: str | None = Field(default=None, max_length=255)
    template_id: str | None = None


class EmailCampaignSchedule(SQLModel):
    scheduled_at: datetime


# ---------------------------------------------------------------------------
# Workflows
# ---------------------------------------------------------------------------


class WorkflowStepIn(SQLModel):
    step_type: str = Field(..., min_length=1, max_length=64)
    step_config: dict[str, Any] = Field(default_factory=dict)


class WorkflowCreate(SQLModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    trigger_type: str = Field(..., min_length=1, max_length=64)
    trigger_config: dict[str, Any] | None = None
    steps: list[WorkflowStepIn] = Field(default_factory=list)


class WorkflowUpdate(SQLModel):
    """``steps`` replaces the whole step list when given."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    trigger_type: str | None = Field(default=None, min_length=1, max_length=64)
    trigger_config: dict[str, Any] | None = None
    steps: list[WorkflowStepIn] | None = None


# ---------------------------------------------------------------------------
# Tags
# ---------------------------------------------------------------------------


class TagCreate(SQLModel):
    name: str = Field(..., min_length=1, max_length=255)
    color: str = Field(default="#6366F1", max_length=32)


class TagUpdate(SQLModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    color: str | None = Field(default=None, max_length=32)
