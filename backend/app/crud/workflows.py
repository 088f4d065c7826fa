"""
Workflows: a trigger plus an ordered list of steps.
"""

from typing import Any

from psycopg.types.json import Jsonb

from app.core.database import Database
from app.engines.sql import Page, Transaction
from app.schemas_crm import WorkflowCreate, WorkflowStepIn, WorkflowUpdate

from .common import field_map, new_id

TABLE = "workflows"
STEPS = "workflow_steps"


def _insert_steps(
    tx: Transaction, workflow_id: str, steps: list[WorkflowStepIn]
) -> list[dict[str, Any]]:
    return [
        tx.insert(
            STEPS,
            {
                "id": new_id(),
                "workflow_id": workflow_id,
                "step_type": step.step_type,
                "step_config": Jsonb(step.step_config),
                "order_index": i,
            },
        )
        for i, step in enumerate(steps)
    ]


def _steps(runner: Database | Transaction, workflow_id: str) -> list[dict[str, Any]]:
    return runner.find_all(STEPS, {"workflow_id": workflow_id}, order_by="order_index")


def create_workflow(db: Database, organization_id: str, data: WorkflowCreate) -> dict[str, Any]:
    """New workflows start inactive."""

    def work(tx: Transaction) -> dict[str, Any]:
        workflow = tx.insert(
            TABLE,
            {
                "id": new_id(),
                "organization_id": organization_id,
                **field_map(data, exclude=("steps",), json_fields=("trigger_config",)),
                "is_active": False,
            },
        )
        workflow["steps"] = _insert_steps(tx, workflow["id"], data.steps)
        return workflow

    return db.run_in_transaction(work)


def get_workflow(db: Database, id: str, organization_id: str) -> dict[str, Any]:
    workflow = db.find_by_id(TABLE, id, organization_id=organization_id)
    workflow["steps"] = _steps(db, id)
    return workflow


def list_workflows(
    db: Database,
    organization_id: str,
    *,
    page: int = 1,
    limit: int = 50,
    is_active: bool | None = None,
    trigger_type: str | None = None,
) -> Page:
    filters: dict[str, Any] = {"organization_id": organization_id}
    if is_active is not None:
        filters["is_active"] = is_active
    if trigger_type:
        filters["trigger_type"] = trigger_type
    return db.find_with_pagination(TABLE, filters, page=page, limit=limit)


def update_workflow(
    db: Database, id: str, organization_id: str, data: WorkflowUpdate
) -> dict[str, Any]:
    """Update workflow columns; when ``steps`` is given, replace all steps."""

    def work(tx: Transaction) -> dict[str, Any]:
        tx.find_by_id(TABLE, id, organization_id=organization_id)
        fields = field_map(
            data, exclude_unset=True, exclude=("steps",), json_fields=("trigger_config",)
        )
        workflow = tx.update(TABLE, id, fields, organization_id=organization_id)
        if data.steps is not None:
            tx.execute("DELETE FROM workflow_steps WHERE workflow_id = %s", (id,))
            workflow["steps"] = _insert_steps(tx, id, data.steps)
        else:
            workflow["steps"] = _steps(tx, id)
        return workflow

    return db.run_in_transaction(work)


def set_workflow_active(
    db: Database, id: str, organization_id: str, active: bool
) -> dict[str, Any]:
    return db.update(TABLE, id, {"is_active": active}, organization_id=organization_id)


def activate_workflow(db: Database, id: str, organization_id: str) -> dict[str, Any]:
    return set_workflow_active(db, id, organization_id, True)


def deactivate_workflow(db: Database, id: str, organization_id: str) -> dict[str, Any]:
    return set_workflow_active(db, id, organization_id, False)


def delete_workflow(db: Database, id: str, organization_id: str) -> None:
    def work(tx: Transaction) -> None:
        tx.find_by_id(TABLE, id, organization_id=organization_id)
        tx.execute("DELETE FROM workflow_steps WHERE workflow_id = %s", (id,))
        tx.delete(TABLE, id, organization_id=organization_id)

    db.run_in_transaction(work)


def get_active_workflows_by_trigger(
    db: Database, organization_id: str, trigger_type: str
) -> list[dict[str, Any]]:
    workflows = db.find_all(
        TABLE,
        {"organization_id": organization_id, "trigger_type": trigger_type, "is_active": True},
        order_by="created_at",
    )
    for workflow in workflows:
        workflow["steps"] = _steps(db, workflow["id"])
    return workflows
