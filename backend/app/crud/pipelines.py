"""
Pipelines and their ordered stages.

Multi-row changes (create with stages, delete, reorder) run in one
transaction so a failure leaves no partial pipeline behind.
"""

from typing import Any

from app.core.database import Database
from app.core.errors import InvalidRequestError, NotFoundError
from app.engines.sql import Transaction
from app.schemas_crm import (
    PipelineCreate,
    PipelineStageIn,
    PipelineStageUpdate,
    PipelineUpdate,
)

from .common import field_map, new_id

TABLE = "pipelines"
STAGES = "pipeline_stages"


def _stages(runner: Database | Transaction, pipeline_id: str) -> list[dict[str, Any]]:
    return runner.find_all(STAGES, {"pipeline_id": pipeline_id}, order_by="order_index")


def create_pipeline(db: Database, organization_id: str, data: PipelineCreate) -> dict[str, Any]:
    """Insert the pipeline and its stages atomically; a duplicate name is a Conflict."""

    def work(tx: Transaction) -> dict[str, Any]:
        pipeline = tx.insert(
            TABLE,
            {
                "id": new_id(),
                "organization_id": organization_id,
                "name": data.name,
                "description": data.description,
            },
        )
        pipeline["stages"] = [
            tx.insert(
                STAGES,
                {
                    "id": new_id(),
                    "pipeline_id": pipeline["id"],
                    "name": stage.name,
                    "description": stage.description,
                    "order_index": i,
                },
            )
            for i, stage in enumerate(data.stages)
        ]
        return pipeline

    return db.run_in_transaction(work)


def get_pipeline(db: Database, id: str, organization_id: str) -> dict[str, Any]:
    pipeline = db.find_by_id(TABLE, id, organization_id=organization_id)
    pipeline["stages"] = _stages(db, id)
    return pipeline


def list_pipelines(db: Database, organization_id: str) -> list[dict[str, Any]]:
    pipelines = db.find_all(TABLE, {"organization_id": organization_id}, order_by="name")
    for pipeline in pipelines:
        pipeline["stages"] = _stages(db, pipeline["id"])
    return pipelines


def update_pipeline(
    db: Database, id: str, organization_id: str, data: PipelineUpdate
) -> dict[str, Any]:
    db.update(TABLE, id, field_map(data, exclude_unset=True), organization_id=organization_id)
    return get_pipeline(db, id, organization_id)


def delete_pipeline(db: Database, id: str, organization_id: str) -> None:
    def work(tx: Transaction) -> None:
        tx.find_by_id(TABLE, id, organization_id=organization_id)
        tx.execute("DELETE FROM pipeline_stages WHERE pipeline_id = %s", (id,))
        tx.delete(TABLE, id, organization_id=organization_id)

    db.run_in_transaction(work)


def add_stage(
    db: Database, pipeline_id: str, organization_id: str, data: PipelineStageIn
) -> dict[str, Any]:
    """Append a stage after the current last one."""

    def work(tx: Transaction) -> dict[str, Any]:
        tx.find_by_id(TABLE, pipeline_id, organization_id=organization_id)
        row = tx.execute(
            "SELECT MAX(order_index) AS max_order FROM pipeline_stages WHERE pipeline_id = %s",
            (pipeline_id,),
        ).first()
        max_order = row["max_order"] if row else None
        return tx.insert(
            STAGES,
            {
                "id": new_id(),
                "pipeline_id": pipeline_id,
                "name": data.name,
                "description": data.description,
                "order_index": 0 if max_order is None else max_order + 1,
            },
        )

    return db.run_in_transaction(work)


def _get_stage(
    runner: Database | Transaction, id: str, pipeline_id: str, organization_id: str
) -> dict[str, Any]:
    runner.find_by_id(TABLE, pipeline_id, organization_id=organization_id)
    stage = runner.find_by_id(STAGES, id)
    if stage["pipeline_id"] != pipeline_id:
        raise NotFoundError("Pipeline stage")
    return stage


def update_stage(
    db: Database,
    id: str,
    pipeline_id: str,
    organization_id: str,
    data: PipelineStageUpdate,
) -> dict[str, Any]:
    _get_stage(db, id, pipeline_id, organization_id)
    return db.update(STAGES, id, field_map(data, exclude_unset=True))


def delete_stage(db: Database, id: str, pipeline_id: str, organization_id: str) -> None:
    """Delete a stage and close the gap in the remaining order indexes."""

    def work(tx: Transaction) -> None:
        _get_stage(tx, id, pipeline_id, organization_id)
        tx.delete(STAGES, id)
        for i, stage in enumerate(_stages(tx, pipeline_id)):
            if stage["order_index"] != i:
                tx.update(STAGES, stage["id"], {"order_index": i})

    db.run_in_transaction(work)


def reorder_stages(
    db: Database, pipeline_id: str, organization_id: str, stage_ids: list[str]
) -> list[dict[str, Any]]:
    """Set each stage's order index to its position in *stage_ids*."""

    def work(tx: Transaction) -> list[dict[str, Any]]:
        tx.find_by_id(TABLE, pipeline_id, organization_id=organization_id)
        current = {s["id"] for s in _stages(tx, pipeline_id)}
        if set(stage_ids) != current or len(stage_ids) != len(current):
            raise InvalidRequestError("stage_ids must list every stage of the pipeline once")
        for i, stage_id in enumerate(stage_ids):
            tx.update(STAGES, stage_id, {"order_index": i})
        return _stages(tx, pipeline_id)

    return db.run_in_transaction(work)
