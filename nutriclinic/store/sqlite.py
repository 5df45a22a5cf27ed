# -*- coding: utf-8 -*-
"""Record store: local SQLite backend."""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from typing import Any, Dict, List, Tuple

from ..app_db import BOOL_COLUMNS, JSON_COLUMNS, db_conn, init_app_db
from ..errors import StoreError
from .base import Query, Row, Store

_COMPARATORS = {
    "eq": "=",
    "neq": "!=",
    "gt": ">",
    "gte": ">=",
    "lt": "<",
    "lte": "<=",
}


def _to_param(value: Any) -> Any:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return value


class SQLiteStore(Store):
    def __init__(self, db_path: Path) -> None:
        super().__init__()
        self.db_path = db_path
        init_app_db(db_path)

    def _encode(self, table: str, row: Row) -> Row:
        json_cols = JSON_COLUMNS.get(table, frozenset())
        out: Row = {}
        for key, value in row.items():
            if key in json_cols and value is not None:
                out[key] = json.dumps(value, ensure_ascii=False)
            else:
                out[key] = _to_param(value)
        return out

    def _decode(self, table: str, row: sqlite3.Row) -> Row:
        data: Row = dict(row)
        for key in JSON_COLUMNS.get(table, frozenset()):
            raw = data.get(key)
            if isinstance(raw, str):
                try:
                    data[key] = json.loads(raw)
                except ValueError:
                    pass
        for key in BOOL_COLUMNS.get(table, frozenset()):
            if data.get(key) is not None:
                data[key] = bool(data[key])
        return data

    def _where(self, query: Query) -> Tuple[str, List[Any]]:
        clauses: List[str] = []
        params: List[Any] = []
        for f in query.filters:
            if f.op in _COMPARATORS:
                clauses.append(f"{f.column} {_COMPARATORS[f.op]} ?")
                params.append(_to_param(f.value))
            elif f.op == "in":
                values = list(f.value or [])
                if not values:
                    clauses.append("0 = 1")
                    continue
                clauses.append(f"{f.column} IN ({', '.join('?' for _ in values)})")
                params.extend(_to_param(v) for v in values)
            elif f.op == "ilike":
                clauses.append(f"LOWER({f.column}) LIKE LOWER(?)")
                params.append(f.value)
            elif f.op == "is":
                clauses.append(f"{f.column} IS NULL")
            else:
                raise StoreError(f"Unsupported filter: {f.op}")
        if not clauses:
            return "", params
        return " WHERE " + " AND ".join(clauses), params

    def _run(self, fn):
        try:
            with db_conn(self.db_path) as conn:
                return fn(conn)
        except sqlite3.Error as exc:
            raise StoreError(str(exc)) from exc

    def _select(self, query: Query) -> List[Row]:
        cols = ", ".join(query.columns) if query.columns else "*"
        where, params = self._where(query)
        sql = f"SELECT {cols} FROM {query.table}{where}"
        if query.orders:
            sql += " ORDER BY " + ", ".join(
                f"{o.column} {'DESC' if o.desc else 'ASC'}" for o in query.orders
            )
        if query.row_limit is not None:
            sql += " LIMIT ? OFFSET ?"
            params += [query.row_limit, query.row_offset]
        elif query.row_offset:
            sql += " LIMIT -1 OFFSET ?"
            params.append(query.row_offset)

        rows = self._run(lambda conn: conn.execute(sql, params).fetchall())
        return [self._decode(query.table, r) for r in rows]

    def _count(self, query: Query) -> int:
        where, params = self._where(query)
        sql = f"SELECT COUNT(*) FROM {query.table}{where}"
        row = self._run(lambda conn: conn.execute(sql, params).fetchone())
        return int(row[0]) if row else 0

    def _insert(self, table: str, rows: List[Row]) -> List[Row]:
        def op(conn: sqlite3.Connection) -> List[Row]:
            created: List[Row] = []
            for row in rows:
                encoded = self._encode(table, row)
                cols = list(encoded.keys())
                conn.execute(
                    f"INSERT INTO {table} ({', '.join(cols)}) VALUES ({', '.join('?' for _ in cols)})",
                    [encoded[c] for c in cols],
                )
                saved = conn.execute(f"SELECT * FROM {table} WHERE id = ?", (row["id"],)).fetchone()
                created.append(self._decode(table, saved))
            return created

        return self._run(op)

    def _update(self, query: Query, values: Row) -> List[Row]:
        where, params = self._where(query)
        encoded = self._encode(query.table, values)
        assignments = ", ".join(f"{k} = ?" for k in encoded)

        def op(conn: sqlite3.Connection) -> List[Row]:
            ids = [r["id"] for r in conn.execute(f"SELECT id FROM {query.table}{where}", params).fetchall()]
            if not ids:
                return []
            marks = ", ".join("?" for _ in ids)
            conn.execute(
                f"UPDATE {query.table} SET {assignments} WHERE id IN ({marks})",
                list(encoded.values()) + ids,
            )
            rows = conn.execute(f"SELECT * FROM {query.table} WHERE id IN ({marks})", ids).fetchall()
            return [self._decode(query.table, r) for r in rows]

        return self._run(op)

    def _delete(self, query: Query) -> List[Row]:
        where, params = self._where(query)

        def op(conn: sqlite3.Connection) -> List[Row]:
            rows = conn.execute(f"SELECT * FROM {query.table}{where}", params).fetchall()
            if rows:
                conn.execute(f"DELETE FROM {query.table}{where}", params)
            return [self._decode(query.table, r) for r in rows]

        return self._run(op)
