import uuid
from collections.abc import Iterable
from enum import Enum
from typing import Any

from psycopg.types.json import Jsonb
from sqlmodel import SQLModel


def new_id() -> str:
    return str(uuid.uuid4())


def field_map(
    model: SQLModel,
    *,
    exclude_unset: bool = False,
    exclude: Iterable[str] = (),
    json_fields: Iterable[str] = (),
) -> dict[str, Any]:
    """Dump a schema into a column -> value map ready for the CRUD builders."""
    json_cols = set(json_fields)
    data = model.model_dump(exclude_unset=exclude_unset, exclude=set(exclude))
    for column, value in data.items():
        if isinstance(value, Enum):
            data[column] = value.value
        elif column in json_cols and value is not None:
            data[column] = Jsonb(value)
    return data
