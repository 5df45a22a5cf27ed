# -*- coding: utf-8 -*-
"""Lab result storage helpers."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, BinaryIO, Dict, List, Optional
from uuid import uuid4

from fastapi import HTTPException

from ..files import storage as files
from ..store import get_store

LAB_BUCKET = "lab-results"

_LEADING_NUMBER = re.compile(r"\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?)")


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _has_value(value: Any) -> bool:
    return value is not None and value != ""


def _parse_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    match = _LEADING_NUMBER.match(str(value))
    return float(match.group(1)) if match else None


def calculate_status(test_value: Any, reference_min: Any, reference_max: Any) -> str:
    """``pending`` without a numeric value or a full reference range, else low/high/normal."""
    if reference_min is None or reference_max is None or not _has_value(test_value):
        return "pending"
    numeric = _parse_number(test_value)
    if numeric is None:
        return "pending"
    if numeric < float(reference_min):
        return "low"
    if numeric > float(reference_max):
        return "high"
    return "normal"


def _public(row: Dict[str, Any]) -> Dict[str, Any]:
    value = row.get("test_value")
    return {
        **row,
        "test_value": None if value is None else str(value),
        "has_pdf": bool(row.get("pdf_path")),
    }


def _value_text(value: Any) -> Optional[str]:
    if not _has_value(value):
        return None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def get_lab_result(result_id: str) -> Dict[str, Any]:
    row = get_store().table("lab_results").eq("id", result_id).first()
    if not row:
        raise HTTPException(status_code=404, detail="Lab result not found")
    return row


def create_lab_result(data: Dict[str, Any]) -> Dict[str, Any]:
    value = data.get("test_value")
    row = get_store().insert(
        "lab_results",
        {
            **data,
            "test_value": _value_text(value),
            "status": calculate_status(value, data.get("reference_min"), data.get("reference_max")),
            "created_at": _utc_now(),
        },
    )[0]
    return _public(row)


def update_lab_result(result_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
    current = get_lab_result(result_id)
    values = dict(changes)
    if "test_value" in values:
        values["test_value"] = _value_text(values["test_value"])

    if {"test_value", "reference_min", "reference_max"} & set(values):
        merged = {**current, **values}
        values["status"] = calculate_status(
            merged.get("test_value"),
            merged.get("reference_min"),
            merged.get("reference_max"),
        )
    if not values:
        return _public(current)
    return _public(get_store().table("lab_results").eq("id", result_id).update(values)[0])


def delete_lab_result(result_id: str) -> Dict[str, Any]:
    row = get_lab_result(result_id)
    if row.get("pdf_path"):
        files.remove(LAB_BUCKET, [row["pdf_path"]])
    get_store().table("lab_results").eq("id", result_id).delete()
    return row


def list_lab_results(
    patient_id: str,
    *,
    test_name: Optional[str] = None,
    since: Optional[str] = None,
    limit: int = 50,
) -> List[Dict[str, Any]]:
    query = get_store().table("lab_results").eq("patient_id", patient_id)
    if test_name:
        query = query.ilike("test_name", f"%{test_name}%")
    if since:
        query = query.gte("test_date", since)
    rows = query.order("test_date", desc=True).limit(limit).execute()
    return [_public(r) for r in rows]


def abnormal_lab_results(patient_id: str) -> List[Dict[str, Any]]:
    rows = (
        get_store()
        .table("lab_results")
        .eq("patient_id", patient_id)
        .in_("status", ["low", "high"])
        .order("test_date", desc=True)
        .execute()
    )
    return [_public(r) for r in rows]


def group_by_test_name(rows: List[Dict[str, Any]]) -> Dict[str, List[Dict[str, Any]]]:
    grouped: Dict[str, List[Dict[str, Any]]] = {}
    for row in rows:
        grouped.setdefault(row["test_name"], []).append(row)
    return grouped


def attach_pdf(result_id: str, data: BinaryIO) -> Dict[str, Any]:
    row = get_lab_result(result_id)
    path = files.upload(LAB_BUCKET, f"{row['patient_id']}/{uuid4().hex}.pdf", data)
    if row.get("pdf_path"):
        files.remove(LAB_BUCKET, [row["pdf_path"]])
    return _public(get_store().table("lab_results").eq("id", result_id).update({"pdf_path": path})[0])
