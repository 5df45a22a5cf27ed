# -*- coding: utf-8 -*-
"""Record store: table-scoped query builder shared by every backend.

A ``Query`` collects a column projection, filters, ordering and a row window,
then hands itself to the owning ``Store`` for execution. Mutations go through
the store so that every insert/update/delete is announced to change listeners
(the realtime hub).
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Union
from uuid import uuid4

from ..errors import StoreError

logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

FILTER_OPS = {"eq", "neq", "gt", "gte", "lt", "lte", "in", "ilike", "is"}

Row = Dict[str, Any]


def check_identifier(name: str) -> str:
    if not isinstance(name, str) or not _IDENTIFIER.match(name):
        raise StoreError(f"Invalid identifier: {name!r}")
    return name


@dataclass(frozen=True)
class Filter:
    column: str
    op: str
    value: Any = None


@dataclass(frozen=True)
class Order:
    column: str
    desc: bool = False


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    event_type: str  # INSERT | UPDATE | DELETE
    record: Row


ChangeListener = Callable[[ChangeEvent], None]


class Query:
    """Builder for one table. Filter methods return ``self`` for chaining."""

    def __init__(self, store: "Store", table: str) -> None:
        self.store = store
        self.table = check_identifier(table)
        self.columns: List[str] = []
        self.filters: List[Filter] = []
        self.orders: List[Order] = []
        self.row_limit: Optional[int] = None
        self.row_offset: int = 0

    def select(self, *columns: str) -> "Query":
        for spec in columns:
            for col in str(spec).split(","):
                col = col.strip()
                if col and col != "*":
                    self.columns.append(check_identifier(col))
        return self

    def _where(self, column: str, op: str, value: Any) -> "Query":
        self.filters.append(Filter(check_identifier(column), op, value))
        return self

    def eq(self, column: str, value: Any) -> "Query":
        return self._where(column, "eq", value)

    def neq(self, column: str, value: Any) -> "Query":
        return self._where(column, "neq", value)

    def gt(self, column: str, value: Any) -> "Query":
        return self._where(column, "gt", value)

    def gte(self, column: str, value: Any) -> "Query":
        return self._where(column, "gte", value)

    def lt(self, column: str, value: Any) -> "Query":
        return self._where(column, "lt", value)

    def lte(self, column: str, value: Any) -> "Query":
        return self._where(column, "lte", value)

    def in_(self, column: str, values: Iterable[Any]) -> "Query":
        return self._where(column, "in", list(values))

    def ilike(self, column: str, pattern: str) -> "Query":
        """Case-insensitive match; ``%`` is the wildcard."""
        return self._where(column, "ilike", pattern)

    def is_null(self, column: str) -> "Query":
        return self._where(column, "is", None)

    def order(self, column: str, *, desc: bool = False) -> "Query":
        self.orders.append(Order(check_identifier(column), desc))
        return self

    def limit(self, count: int) -> "Query":
        self.row_limit = max(0, int(count))
        return self

    def offset(self, count: int) -> "Query":
        self.row_offset = max(0, int(count))
        return self

    def execute(self) -> List[Row]:
        return self.store._select(self)

    def first(self) -> Optional[Row]:
        self.row_limit = 1
        rows = self.execute()
        return rows[0] if rows else None

    def count(self) -> int:
        return self.store._count(self)

    def update(self, values: Row) -> List[Row]:
        if not values:
            return []
        for key in values:
            check_identifier(key)
        rows = self.store._update(self, dict(values))
        for row in rows:
            self.store._emit(ChangeEvent(self.table, "UPDATE", row))
        return rows

    def delete(self) -> List[Row]:
        rows = self.store._delete(self)
        for row in rows:
            self.store._emit(ChangeEvent(self.table, "DELETE", row))
        return rows


class Store:
    """Common surface of the record store backends."""

    def __init__(self) -> None:
        self._listeners: List[ChangeListener] = []

    def add_listener(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: ChangeListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def table(self, name: str) -> Query:
        return Query(self, name)

    def insert(self, table: str, rows: Union[Row, Iterable[Row]]) -> List[Row]:
        check_identifier(table)
        payload = [dict(rows)] if isinstance(rows, dict) else [dict(r) for r in rows]
        if not payload:
            return []
        for row in payload:
            row.setdefault("id", str(uuid4()))
            for key in row:
                check_identifier(key)
        created = self._insert(table, payload)
        for row in created:
            self._emit(ChangeEvent(table, "INSERT", row))
        return created

    def _emit(self, event: ChangeEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as exc:
                logger.warning("Change listener failed for %s/%s: %s", event.table, event.event_type, exc)

    def close(self) -> None:
        pass

    # Backend hooks.
    def _select(self, query: Query) -> List[Row]:
        raise NotImplementedError

    def _count(self, query: Query) -> int:
        raise NotImplementedError

    def _insert(self, table: str, rows: List[Row]) -> List[Row]:
        raise NotImplementedError

    def _update(self, query: Query, values: Row) -> List[Row]:
        raise NotImplementedError

    def _delete(self, query: Query) -> List[Row]:
        raise NotImplementedError
