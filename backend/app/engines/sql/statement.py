from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Statement:
    """SQL text with ``%s`` placeholders plus its ordered arguments."""

    sql: str
    args: tuple[Any, ...] = ()

    @classmethod
    def of(cls, sql: "str | Statement", args: Any = None) -> "Statement":
        if isinstance(sql, Statement):
            if args:
                raise TypeError("args must not be passed together with a Statement")
            return sql
        return cls(sql=sql, args=tuple(args) if args else ())


@dataclass
class QueryResult:
    rows: list[dict[str, Any]] = field(default_factory=list)
    row_count: int = 0

    def first(self) -> dict[str, Any] | None:
        return self.rows[0] if self.rows else None
