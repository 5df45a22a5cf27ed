# -*- coding: utf-8 -*-
"""Record store: PostgREST-style HTTPS backend for the hosted database."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

import httpx

from ..errors import StoreError
from .base import Query, Row, Store

Params = List[Tuple[str, str]]


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


def _format_in_value(value: Any) -> str:
    text = _format_value(value)
    if any(ch in text for ch in ',()"'):
        return '"' + text.replace('"', '\\"') + '"'
    return text


def _error_message(resp: httpx.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        return resp.text.strip() or f"HTTP {resp.status_code}"
    if isinstance(data, dict):
        for key in ("message", "error", "msg", "details"):
            if data.get(key):
                return str(data[key])
    return f"HTTP {resp.status_code}"


class RestStore(Store):
    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        *,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        super().__init__()
        headers = {"Accept": "application/json"}
        if api_key:
            headers["apikey"] = api_key
            headers["Authorization"] = f"Bearer {api_key}"
        self._client = httpx.Client(
            base_url=base_url.rstrip("/") + "/rest/v1",
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    @staticmethod
    def _filter_params(query: Query) -> Params:
        params: Params = []
        for f in query.filters:
            if f.op == "in":
                inner = ",".join(_format_in_value(v) for v in f.value or [])
                params.append((f.column, f"in.({inner})"))
            elif f.op == "ilike":
                params.append((f.column, f"ilike.{str(f.value).replace('%', '*')}"))
            elif f.op == "is":
                params.append((f.column, "is.null"))
            else:
                params.append((f.column, f"{f.op}.{_format_value(f.value)}"))
        return params

    def _request(
        self,
        method: str,
        table: str,
        params: Params,
        *,
        json: Any = None,
        prefer: Optional[str] = None,
    ) -> httpx.Response:
        headers: Dict[str, str] = {}
        if prefer:
            headers["Prefer"] = prefer
        try:
            resp = self._client.request(method, f"/{table}", params=params, json=json, headers=headers)
        except httpx.HTTPError as exc:
            raise StoreError(f"{method} {table} failed: {exc}") from exc
        if resp.status_code >= 400:
            raise StoreError(f"{table}: {_error_message(resp)}", status_code=resp.status_code)
        return resp

    @staticmethod
    def _rows(resp: httpx.Response) -> List[Row]:
        if not resp.content:
            return []
        data = resp.json()
        if isinstance(data, dict):
            return [data]
        return list(data or [])

    def _select(self, query: Query) -> List[Row]:
        params: Params = [("select", ",".join(query.columns) or "*")]
        params += self._filter_params(query)
        if query.orders:
            params.append(
                ("order", ",".join(f"{o.column}.{'desc' if o.desc else 'asc'}" for o in query.orders))
            )
        if query.row_limit is not None:
            params.append(("limit", str(query.row_limit)))
        if query.row_offset:
            params.append(("offset", str(query.row_offset)))
        return self._rows(self._request("GET", query.table, params))

    def _count(self, query: Query) -> int:
        params: Params = [("select", "id")] + self._filter_params(query)
        resp = self._request("HEAD", query.table, params, prefer="count=exact")
        content_range = resp.headers.get("content-range") or ""
        total = content_range.rsplit("/", 1)[-1]
        try:
            return int(total)
        except ValueError as exc:
            raise StoreError(f"{query.table}: missing count in Content-Range {content_range!r}") from exc

    def _insert(self, table: str, rows: List[Row]) -> List[Row]:
        resp = self._request("POST", table, [], json=rows, prefer="return=representation")
        return self._rows(resp)

    def _update(self, query: Query, values: Row) -> List[Row]:
        resp = self._request(
            "PATCH",
            query.table,
            self._filter_params(query),
            json=values,
            prefer="return=representation",
        )
        return self._rows(resp)

    def _delete(self, query: Query) -> List[Row]:
        resp = self._request("DELETE", query.table, self._filter_params(query), prefer="return=representation")
        return self._rows(resp)
