"""In-memory stand-in for the Supabase client's table query builder.

Supports the subset of the postgrest fluent API the stores use: select,
insert, update, eq, in_, order, limit and execute. Inserting a duplicate
(session_id, asset_type, version_number) into session_versions raises the
same APIError the real unique index produces.
"""

import copy
from dataclasses import dataclass, field
from typing import Any
from uuid import uuid4

from postgrest.exceptions import APIError

UNIQUE_KEYS: dict[str, tuple[str, ...]] = {
    "session_versions": ("session_id", "asset_type", "version_number"),
}


@dataclass
class FakeResponse:
    data: list[dict[str, Any]]


@dataclass
class FakeQuery:
    db: "FakeSupabase"
    table_name: str
    operation: str = "select"
    payload: Any = None
    filters: list[tuple[str, str, Any]] = field(default_factory=list)
    order_by: tuple[str, bool] | None = None
    row_limit: int | None = None

    def select(self, *_columns: str) -> "FakeQuery":
        self.operation = "select"
        return self

    def insert(self, payload: dict[str, Any] | list[dict[str, Any]]) -> "FakeQuery":
        self.operation = "insert"
        self.payload = payload
        return self

    def update(self, payload: dict[str, Any]) -> "FakeQuery":
        self.operation = "update"
        self.payload = payload
        return self

    def eq(self, column: str, value: Any) -> "FakeQuery":
        self.filters.append(("eq", column, value))
        return self

    def in_(self, column: str, values: list[Any]) -> "FakeQuery":
        self.filters.append(("in", column, list(values)))
        return self

    def order(self, column: str, desc: bool = False) -> "FakeQuery":
        self.order_by = (column, desc)
        return self

    def limit(self, count: int) -> "FakeQuery":
        self.row_limit = count
        return self

    def _matches(self, row: dict[str, Any]) -> bool:
        for kind, column, value in self.filters:
            if kind == "eq" and row.get(column) != value:
                return False
            if kind == "in" and row.get(column) not in value:
                return False
        return True

    def execute(self) -> FakeResponse:
        rows = self.db.tables.setdefault(self.table_name, [])

        if self.operation == "insert":
            items = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = []
            for item in items:
                row = {"id": str(uuid4()), "created_at": self.db.tick(), **item}
                self.db.check_unique(self.table_name, row)
                rows.append(row)
                inserted.append(copy.deepcopy(row))
            return FakeResponse(data=inserted)

        matched = [r for r in rows if self._matches(r)]

        if self.operation == "update":
            for row in matched:
                row.update(copy.deepcopy(self.payload))
            return FakeResponse(data=copy.deepcopy(matched))

        if self.order_by:
            column, desc = self.order_by
            matched.sort(key=lambda r: (r.get(column) is None, r.get(column)), reverse=desc)
        if self.row_limit is not None:
            matched = matched[: self.row_limit]
        return FakeResponse(data=copy.deepcopy(matched))


class FakeSupabase:
    """Drop-in for the object get_supabase() returns."""

    def __init__(self):
        self.tables: dict[str, list[dict[str, Any]]] = {}
        self._clock = 0

    def tick(self) -> str:
        self._clock += 1
        return f"2026-01-01T00:00:{self._clock:06d}"

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(db=self, table_name=name)

    def check_unique(self, table_name: str, row: dict[str, Any]) -> None:
        keys = UNIQUE_KEYS.get(table_name)
        if not keys:
            return
        for existing in self.tables.get(table_name, []):
            if all(existing.get(k) == row.get(k) for k in keys):
                raise APIError(
                    {
                        "code": "23505",
                        "message": f"duplicate key value violates unique constraint on {table_name}",
                        "details": None,
                        "hint": None,
                    }
                )

    def seed(self, table_name: str, row: dict[str, Any]) -> dict[str, Any]:
        row = {"id": str(uuid4()), "created_at": self.tick(), **row}
        self.tables.setdefault(table_name, []).append(row)
        return row

    def rows(self, table_name: str) -> list[dict[str, Any]]:
        return self.tables.get(table_name, [])
